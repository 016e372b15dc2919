# backend/salon_booking/services/cancellation.py
"""
Client cancellation through the cancel link sent by email.

- unknown token             → BOOKING_NOT_FOUND
- already cancelled         → ALREADY_CANCELLED
- start time already passed → PAST_BOOKING
- completed / no_show       → WRONG_STATUS

A cancelled booking stops counting as occupancy immediately.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from ..errors import AlreadyCancelled, BookingNotFound, PastBooking, WrongStatus
from ..models import BookingStatus, Bookings, Tenants
from .bookings import change_status
from .events import emit_event
from .slots.availability import utcnow

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 20


@dataclass
class CancelInfo:
    booking: Bookings
    can_cancel: bool
    reason: str | None = None


def find_by_cancel_token(db: Session, tenant: Tenants, token: str) -> Bookings:
    if not token or len(token) < MIN_TOKEN_LENGTH:
        raise BookingNotFound()

    booking = (
        db.query(Bookings)
        .filter(Bookings.tenant_id == tenant.id, Bookings.cancel_token == token)
        .first()
    )
    if not booking:
        raise BookingNotFound()
    return booking


def _cancel_reason(booking: Bookings, now: datetime) -> str | None:
    if booking.status == BookingStatus.CANCELLED:
        return "already_cancelled"
    if booking.status not in BookingStatus.ACTIVE:
        return "wrong_status"
    if booking.start_time <= now:
        return "past_booking"
    return None


def get_cancel_info(db: Session, tenant: Tenants, token: str, now: datetime | None = None) -> CancelInfo:
    booking = find_by_cancel_token(db, tenant, token)
    reason = _cancel_reason(booking, now or utcnow())
    return CancelInfo(booking=booking, can_cancel=reason is None, reason=reason)


def cancel_booking(db: Session, tenant: Tenants, token: str, now: datetime | None = None) -> Bookings:
    now = now or utcnow()
    booking = find_by_cancel_token(db, tenant, token)

    reason = _cancel_reason(booking, now)
    if reason == "already_cancelled":
        raise AlreadyCancelled()
    if reason == "past_booking":
        raise PastBooking()
    if reason == "wrong_status":
        raise WrongStatus("This booking can no longer be cancelled")

    booking = change_status(db, booking, BookingStatus.CANCELLED, now=now, cancelled_by="client")

    emit_event("booking_cancelled", {
        "booking_id": booking.id,
        "tenant_id": tenant.id,
    })
    return booking
