"""
Constantes del motor de sincronizacion y de los flujos de endpoints.
Define estados, modos de escritura y vocabularios cerrados de nodos.
"""
from enum import Enum


class RunStatus(str, Enum):
    """Estados posibles de una ejecucion de sincronizacion (SyncRun)."""
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class TaskStatus(str, Enum):
    """Estados de una definicion de tarea."""
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


class TaskType(str, Enum):
    """Tipos de elementos en el arbol de tareas."""
    TASK = "TASK"
    FOLDER = "FOLDER"


class WriteMode(str, Enum):
    """Modo de escritura sobre la tabla destino."""
    APPEND = "APPEND"
    OVERWRITE = "OVERWRITE"


class ConflictStrategy(str, Enum):
    """Estrategia ante conflicto de clave primaria."""
    UPDATE = "UPDATE"
    IGNORE = "IGNORE"
    ERROR = "ERROR"


class SyncNodeKind(str, Enum):
    """Tipos de nodo en un flujo de sincronizacion."""
    INPUT = "INPUT"
    MAPPING = "MAPPING"
    OUTPUT = "OUTPUT"


class EndpointNodeKind(str, Enum):
    """Tipos de nodo en un flujo de endpoint invocable."""
    ENTRY = "ENTRY"
    AUTH = "AUTH"
    QUERY = "QUERY"
    SCRIPT = "SCRIPT"
    OUTPUT = "OUTPUT"
    UNKNOWN = "UNKNOWN"


class ApiStatus(str, Enum):
    """Estados de publicacion de un endpoint."""
    DRAFT = "DRAFT"
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


class ApiType(str, Enum):
    """Visibilidad de un endpoint."""
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


# Alias historicos aceptados en los flujos guardados por versiones previas del editor
ENDPOINT_NODE_ALIASES = {
    "ENTRY": EndpointNodeKind.ENTRY,
    "AUTH": EndpointNodeKind.AUTH,
    "AUTH_TOKEN": EndpointNodeKind.AUTH,
    "QUERY": EndpointNodeKind.QUERY,
    "SCRIPT": EndpointNodeKind.SCRIPT,
    "GROOVY": EndpointNodeKind.SCRIPT,
    "OUTPUT_GROOVY": EndpointNodeKind.SCRIPT,
    "OUTPUT": EndpointNodeKind.OUTPUT,
    "RESPONSE": EndpointNodeKind.OUTPUT,
}

# Etiqueta que el editor visual asigna a los nodos de mapeo
MAPPING_NODE_LABEL = "字段映射"

# Claves publicadas en el contexto de ejecucion
CTX_QUERY_RESULT = "queryResult"
CTX_SCRIPT_RESULT = "scriptResult"
CTX_LEGACY_SCRIPT_RESULT = "groovyResult"

# Defaults de la definicion de salida
DEFAULT_BATCH_SIZE = 1000
DEFAULT_FIELD_TYPE = "VARCHAR(255)"

# Mensaje usado por la recuperacion al arrancar
CRASH_RECOVERY_MESSAGE = "Task terminated unexpectedly due to application shutdown or crash."

# Identificadores de jobs en el scheduler
SCHEDULER_JOB_PREFIX = "task_"
