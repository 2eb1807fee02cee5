"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .task_dto import (
    TaskCreateDTO,
    TaskUpdateDTO,
    TaskResponseDTO,
    TaskExecuteResponseDTO,
    CronPreviewDTO,
)
from .sync_log_dto import SyncLogDTO, SyncLogPageDTO
from .monitor_dto import TaskProgressDTO, MonitorStatsDTO, DailyTrendDTO, TaskRankingDTO
from .api_definition_dto import (
    ApiDefinitionCreateDTO,
    ApiDefinitionUpdateDTO,
    ApiDefinitionResponseDTO,
    ApiDebugRequestDTO,
)
from .data_source_dto import (
    DataSourceCreateDTO,
    DataSourceUpdateDTO,
    DataSourceResponseDTO,
    DataSourceTestResultDTO,
    SqlRequestDTO,
    SqlPreviewDTO,
)
from .system_config_dto import SystemConfigUpdateDTO

__all__ = [
    "TaskCreateDTO",
    "TaskUpdateDTO",
    "TaskResponseDTO",
    "TaskExecuteResponseDTO",
    "CronPreviewDTO",
    "SyncLogDTO",
    "SyncLogPageDTO",
    "TaskProgressDTO",
    "MonitorStatsDTO",
    "DailyTrendDTO",
    "TaskRankingDTO",
    "ApiDefinitionCreateDTO",
    "ApiDefinitionUpdateDTO",
    "ApiDefinitionResponseDTO",
    "ApiDebugRequestDTO",
    "DataSourceCreateDTO",
    "DataSourceUpdateDTO",
    "DataSourceResponseDTO",
    "DataSourceTestResultDTO",
    "SqlRequestDTO",
    "SqlPreviewDTO",
    "SystemConfigUpdateDTO",
]
