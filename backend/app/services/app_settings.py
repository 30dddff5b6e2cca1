# backend/app/services/app_settings.py
"""
Settings singleton (location, default mode, presentiel details) and
per-date-range mode overrides.
"""

import logging

from sqlalchemy.orm import Session

from ..models.generated import AppSettings as DBSettings, ModeOverrides as DBModeOverride
from .slots.config import ModeWindow, ScheduleSettings

logger = logging.getLogger(__name__)

SETTINGS_ID = 1


def get_or_create_settings(db: Session) -> DBSettings:
    row = db.get(DBSettings, SETTINGS_ID)
    if row:
        return row

    row = DBSettings(
        id=SETTINGS_ID,
        location="MIAMI",
        default_mode="VISIO",
        presentiel_location="Vander Valk",
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Created default settings row")
    return row


def update_settings(db: Session, **values) -> DBSettings:
    row = get_or_create_settings(db)
    for key, value in values.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return row


def load_schedule_settings(db: Session) -> ScheduleSettings:
    """Read settings once, as an immutable value passed to the engine."""
    row = get_or_create_settings(db)
    overrides = (
        db.query(DBModeOverride)
        .order_by(DBModeOverride.date_start)
        .all()
    )
    return ScheduleSettings(
        location="BELGIUM" if row.location == "BELGIUM" else "MIAMI",
        default_mode=row.default_mode,
        presentiel_location=row.presentiel_location,
        presentiel_note=row.presentiel_note,
        mode_overrides=tuple(
            ModeWindow(o.date_start, o.date_end, o.mode) for o in overrides
        ),
    )
