# backend/salon_booking/services/reminders.py
"""
Day-before reminder emails.

A booking is due when:
- status is confirmed and the client left an email address
- it starts tomorrow in the tenant's time zone
- reminder_sent_at is still NULL

Each due booking is claimed by setting reminder_sent_at, then a
booking_reminder event goes to events:p2p. The claim is a conditional
UPDATE, so the loop and the cron endpoint can run side by side without
sending twice. Rescheduling clears reminder_sent_at.

Runs as an asyncio task in the app lifespan and via
POST /internal/send-reminders. Uses the synchronous session (via asyncio.to_thread).
"""

import asyncio
import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..config import settings
from ..database import SessionLocal
from ..models import BookingStatus, Bookings, Tenants
from .events import emit_event
from .slots.availability import utcnow

logger = logging.getLogger(__name__)

# Covers "tomorrow" in every zone, DST nights included
LOOKAHEAD = timedelta(hours=50)


def find_due_reminders(db: Session, now: datetime | None = None) -> list[Bookings]:
    now = now or utcnow()

    candidates = (
        db.query(Bookings)
        .join(Tenants, Bookings.tenant_id == Tenants.id)
        .filter(
            Bookings.status == BookingStatus.CONFIRMED,
            Bookings.reminder_sent_at.is_(None),
            Bookings.client_email.isnot(None),
            Bookings.start_time > now,
            Bookings.start_time < now + LOOKAHEAD,
            Tenants.is_active.is_(True),
        )
        .order_by(Bookings.start_time)
        .all()
    )

    due = []
    for booking in candidates:
        tz = ZoneInfo(booking.tenant.timezone)
        tomorrow = now.astimezone(tz).date() + timedelta(days=1)
        if booking.start_time.astimezone(tz).date() == tomorrow:
            due.append(booking)
    return due


def send_due_reminders(db: Session, now: datetime | None = None) -> int:
    """Claim every due booking and emit booking_reminder. Returns the number claimed."""
    now = now or utcnow()
    sent = 0

    for booking in find_due_reminders(db, now):
        booking_id, tenant_id = booking.id, booking.tenant_id
        claimed = db.execute(
            update(Bookings)
            .where(Bookings.id == booking_id, Bookings.reminder_sent_at.is_(None))
            .values(reminder_sent_at=now)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        if claimed.rowcount == 0:
            continue

        emit_event("booking_reminder", {"booking_id": booking_id, "tenant_id": tenant_id})
        sent += 1

    if sent:
        logger.info(f"booking_reminder emitted for {sent} bookings")
    return sent


async def reminder_checker_loop() -> None:
    """Periodic loop emitting day-before reminders."""
    logger.info("reminder_checker_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(_check_once)
            except asyncio.CancelledError:
                logger.info("reminder_checker_loop cancelled")
                raise
            except Exception:
                logger.exception("reminder_checker_loop error")

            await asyncio.sleep(settings.reminder_check_interval)
    except asyncio.CancelledError:
        pass


def _check_once() -> None:
    db = SessionLocal()
    try:
        send_due_reminders(db)
    finally:
        db.close()
