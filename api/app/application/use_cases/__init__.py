"""
Casos de uso de la aplicacion.
"""
from .task_use_cases import TaskUseCases
from .sync_log_use_cases import SyncLogUseCases
from .monitor_use_cases import MonitorUseCases
from .api_definition_use_cases import ApiDefinitionUseCases
from .data_source_use_cases import DataSourceUseCases
from .system_config_use_cases import SystemConfigUseCases

__all__ = [
    "TaskUseCases",
    "SyncLogUseCases",
    "MonitorUseCases",
    "ApiDefinitionUseCases",
    "DataSourceUseCases",
    "SystemConfigUseCases",
]
