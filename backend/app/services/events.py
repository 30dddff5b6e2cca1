"""
backend/app/services/events.py

Event emitter: pushes booking notifications to a Redis queue for the
mail/ICS/webhook workers.

Fire-and-forget: a failed push is logged and never propagates to the
booking operation that triggered it.
"""

import json
import time
import logging

from ..config import settings
from ..redis_client import redis_client

logger = logging.getLogger(__name__)


def emit_event(event_type: str, payload: dict) -> bool:
    """
    Emit a p2p event (instant delivery).

    Pushed to the Redis list `settings.events_queue` for the consumer loop.
    Returns False when the push failed.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis_client.rpush(settings.events_queue, json.dumps(event, default=str))
        logger.info(f"Event emitted: {event_type} → {settings.events_queue}")
        return True
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
        return False
