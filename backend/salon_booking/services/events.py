"""
backend/salon_booking/services/events.py

Event emitter: pushes booking events to Redis for the notification consumer.

Queue:
- events:p2p: booking_created / booking_rescheduled / booking_cancelled /
  booking_reminder

Emitting never raises: a booking that is committed stays committed even when
Redis is unreachable; the failure is logged.
"""

import json
import logging
import time

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

EVENTS_QUEUE = "events:p2p"


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit a p2p event (instant delivery).

    Pushed to Redis list `events:p2p` for the consumer loop.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis_client.rpush(EVENTS_QUEUE, json.dumps(event, default=str))
        logger.info(f"Event emitted: {event_type} → {EVENTS_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
