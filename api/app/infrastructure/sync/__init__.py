"""
Pipeline de sincronizacion: origen relacional -> tabla destino.

Se ejecuta como job (cron o ejecucion manual), no dentro del request/response.

Objetivos de diseno:
- Memoria acotada: el origen se lee con cursor en streaming y se procesa en batches.
- Paralelismo acotado: un pool fijo de workers con backpressure (el hilo que
  extrae ejecuta el batch cuando la cola se llena).
- Idempotencia: UPSERT por clave primaria; OVERWRITE trunca antes de cargar.
- Esquema reconciliado antes de mover datos (nunca se borran ni retipan columnas).
"""
