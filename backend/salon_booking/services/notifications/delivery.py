# backend/salon_booking/services/notifications/delivery.py
"""
Notification delivery.

1. Load the booking (synchronous session, via asyncio.to_thread)
2. Build client + owner emails for the event (reminders: client only,
   and only while the booking is still confirmed)
3. Send each one; a failed email is logged and never retried per recipient
"""

import asyncio
import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from ...config import settings
from ...database import SessionLocal
from ...models import BookingStatus, Bookings
from .formatters import build_messages
from .mailer import send_email

logger = logging.getLogger(__name__)

EMAIL_EVENTS = ("booking_created", "booking_rescheduled", "booking_cancelled", "booking_reminder")


async def process_event(data: dict) -> None:
    event_type = data.get("type")
    if event_type not in EMAIL_EVENTS:
        logger.warning(f"Unknown event type: {event_type}")
        return
    await deliver_booking_event(event_type, data)


async def deliver_booking_event(event_type: str, data: dict) -> None:
    booking_id = data.get("booking_id")
    tenant_id = data.get("tenant_id")

    snapshot = await asyncio.to_thread(load_booking_snapshot, booking_id, tenant_id)
    if not snapshot:
        logger.error(f"Booking not found: {booking_id}")
        return

    if event_type == "booking_reminder" and snapshot["status"] != BookingStatus.CONFIRMED:
        logger.info(f"Reminder skipped, booking={booking_id} is {snapshot['status']}")
        return

    if data.get("old_start_time"):
        tz = ZoneInfo(snapshot["timezone"])
        snapshot["old_start_local"] = datetime.fromisoformat(data["old_start_time"]).astimezone(tz)

    messages = build_messages(event_type, snapshot)
    if not messages:
        logger.info(f"No recipients for {event_type} booking={booking_id}")
        return

    for message in messages:
        try:
            await send_email(message)
        except Exception:
            logger.exception(f"Failed to deliver {event_type} email for booking={booking_id}")


def load_booking_snapshot(booking_id: int, tenant_id: int) -> dict | None:
    """Everything the templates need, read in one short session."""
    db = SessionLocal()
    try:
        booking = (
            db.query(Bookings)
            .filter(Bookings.id == booking_id, Bookings.tenant_id == tenant_id)
            .first()
        )
        if not booking:
            return None

        tenant = booking.tenant
        tz = ZoneInfo(tenant.timezone)
        service_name = booking.service.name
        if booking.variant is not None:
            service_name = f"{service_name} ({booking.variant.name})"

        base = settings.app_base_url.rstrip("/")
        return {
            "booking_id": booking.id,
            "status": booking.status,
            "timezone": tenant.timezone,
            "salon_name": tenant.name,
            "salon_email": tenant.email,
            "salon_phone": tenant.phone,
            "salon_address": tenant.address,
            "service_name": service_name,
            "staff_name": booking.staff.name,
            "client_name": booking.client_name,
            "client_phone": booking.client_phone,
            "client_email": booking.client_email,
            "start_local": booking.start_time.astimezone(tz),
            "duration": booking.duration_at_booking,
            "price": booking.price_at_booking,
            "cancel_url": (
                f"{base}/{tenant.slug}/cancel/{booking.cancel_token}" if booking.cancel_token else None
            ),
            "reschedule_url": (
                f"{base}/{tenant.slug}/reschedule/{booking.reschedule_token}"
                if booking.reschedule_token else None
            ),
        }
    finally:
        db.close()
