# backend/catfacts/api/automation_dashboard.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from catfacts.automation.history import DispatchHistory
from catfacts.automation.schemas import SchedulerStatus
from catfacts.automation.state import get_dispatch_history

router = APIRouter(prefix="/api/automation", tags=["automation-dashboard"])


@router.get(
    "/status",
    response_model=SchedulerStatus,
    summary="Get daily scheduler status",
)
def get_scheduler_status(
    history: DispatchHistory = Depends(get_dispatch_history),
) -> SchedulerStatus:
    """
    スケジューラの現在状態（WAITING / DISPATCHING）、次のトリガー時刻、
    直近のサイクル結果を返す。
    """
    return history.snapshot()
