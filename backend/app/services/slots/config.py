# backend/app/services/slots/config.py
"""
Slot grid configuration and the per-request schedule settings value.
"""

from dataclasses import dataclass, field
from datetime import date
from functools import lru_cache

from ...config import settings

SLOT_MINUTES = 60

# Working-zone hours used when no weekly rule and no OPEN override exist.
# End hour is exclusive: MIAMI 07:00..20:00 starts, BELGIUM 09:00..18:00 starts.
FALLBACK_WINDOWS = {
    "MIAMI": (7, 21),
    "BELGIUM": (9, 19),
}

MODES = ("VISIO", "PRESENTIEL")
LOCATIONS = ("MIAMI", "BELGIUM")


@dataclass(frozen=True)
class SlotGridConfig:
    """
    Configuration for slot generation.

    Attributes:
        horizon_days: How many days ahead slots are generated (today + N, inclusive)
        slot_minutes: Grid step and slot width, fixed to 60
        fallback_when_empty: Use the location fallback window when no weekly
            rule and no OPEN override exist anywhere in the horizon
    """
    horizon_days: int = 365
    slot_minutes: int = SLOT_MINUTES
    fallback_when_empty: bool = True

    def __post_init__(self):
        if self.slot_minutes != SLOT_MINUTES:
            raise ValueError(f"slot_minutes must be {SLOT_MINUTES}, got {self.slot_minutes}")
        if self.horizon_days < 0:
            raise ValueError(f"horizon_days must be >= 0, got {self.horizon_days}")

    def fallback_range(self, location: str) -> tuple[int, int]:
        """Fallback window as (start_minute, end_minute)."""
        start_hour, end_hour = FALLBACK_WINDOWS.get(location, FALLBACK_WINDOWS["MIAMI"])
        return start_hour * 60, end_hour * 60


@dataclass(frozen=True)
class ModeWindow:
    date_start: date
    date_end: date
    mode: str


@dataclass(frozen=True)
class ScheduleSettings:
    """Snapshot of the settings row, loaded once per request."""
    location: str = "MIAMI"
    default_mode: str = "VISIO"
    presentiel_location: str = "Vander Valk"
    presentiel_note: str | None = None
    mode_overrides: tuple[ModeWindow, ...] = field(default_factory=tuple)

    def mode_for(self, day: date) -> str:
        for window in self.mode_overrides:
            if window.date_start <= day <= window.date_end:
                return window.mode
        return "PRESENTIEL" if self.default_mode == "PRESENTIEL" else "VISIO"


@lru_cache
def get_grid_config() -> SlotGridConfig:
    """Slot grid configuration from application settings (singleton)."""
    return SlotGridConfig(
        horizon_days=settings.horizon_days,
        fallback_when_empty=settings.fallback_when_empty,
    )
