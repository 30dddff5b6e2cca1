# backend/app/services/slots/__init__.py
"""
Slots calculation module.

Generation: weekly rules / OPEN overrides / fallback window → candidate grid
Classification: BLOCK overrides, recurring holds, legacy blocks, bookings
"""

from .config import ScheduleSettings, SlotGridConfig, get_grid_config
from .generator import generate_slots
from .classifier import SlotView, classify_slot
from .availability import check_slot_availability, list_slots

__all__ = [
    "ScheduleSettings",
    "SlotGridConfig",
    "get_grid_config",
    "generate_slots",
    "SlotView",
    "classify_slot",
    "check_slot_availability",
    "list_slots",
]
