"""
Endpoints de monitoreo.
"""
from typing import List

from fastapi import APIRouter, Depends

from app.api.v1.dependencies.use_case_deps import get_monitor_use_cases
from app.application.dto.monitor_dto import MonitorStatsDTO, TaskProgressDTO
from app.application.use_cases.monitor_use_cases import MonitorUseCases


router = APIRouter(prefix="/monitor", tags=["Monitor"])


@router.get("/stats", response_model=MonitorStatsDTO, summary="Resumen del motor")
def get_stats(use_cases: MonitorUseCases = Depends(get_monitor_use_cases)) -> MonitorStatsDTO:
    return use_cases.get_stats()


@router.get("/tasks", response_model=List[TaskProgressDTO], summary="Progreso por tarea")
def get_task_progress(use_cases: MonitorUseCases = Depends(get_monitor_use_cases)) -> List[TaskProgressDTO]:
    return use_cases.get_task_progress()
