# backend/app/dependencies.py
"""
Shared FastAPI dependencies and Rejected → HTTP mapping.
"""

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from .database import get_db
from .services.app_settings import load_schedule_settings
from .services.results import Reason, Rejected
from .services.slots.config import ScheduleSettings, SlotGridConfig, get_grid_config

REASON_STATUS = {
    Reason.INVALID_SLOT: status.HTTP_400_BAD_REQUEST,
    Reason.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    Reason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    Reason.CLIENT_INACTIVE: status.HTTP_403_FORBIDDEN,
}


def get_schedule(db: Session = Depends(get_db)) -> ScheduleSettings:
    return load_schedule_settings(db)


def get_grid() -> SlotGridConfig:
    return get_grid_config()


def raise_for_rejection(result) -> None:
    """Raise HTTPException(detail={reason, message}) if result is Rejected."""
    if isinstance(result, Rejected):
        raise HTTPException(
            status_code=REASON_STATUS.get(result.reason, status.HTTP_409_CONFLICT),
            detail={"reason": result.reason.value, "message": result.message},
        )
