# backend/salon_booking/services/bookings.py
"""
Booking finalizer and booking status machine.

complete_booking turns a live hold into a booking:
- hold missing / foreign token / expired  → HOLD_EXPIRED
- service or variant switched off since the hold → hold released, HOLD_EXPIRED
- another booking overlaps (created through another path) → SLOT_TAKEN
- duration and price are snapshotted from the service/variant at this moment
- the hold is deleted in the same transaction
- booking_created is emitted after commit (emails never block the response)

Status transitions (dashboard driven):
  pending   → confirmed | cancelled
  confirmed → completed | no_show | cancelled
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import (
    BookingError,
    HoldExpired,
    InvalidStatusTransition,
    ServiceNotFound,
    SlotTaken,
    VariantNotFound,
)
from ..models import BookingStatus, Bookings, SlotHolds, Tenants
from ..utils.tokens import generate_token, tokens_match
from .catalog import (
    effective_duration,
    effective_price,
    get_bookable_service,
    get_variant,
    lock_staff_calendar,
)
from .events import emit_event
from .slots import Interval, load_occupied
from .slots.availability import utcnow

logger = logging.getLogger(__name__)


STATUS_TRANSITIONS: dict[str, tuple[str, ...]] = {
    BookingStatus.PENDING: (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
    BookingStatus.CONFIRMED: (BookingStatus.COMPLETED, BookingStatus.NO_SHOW, BookingStatus.CANCELLED),
    BookingStatus.CANCELLED: (),
    BookingStatus.COMPLETED: (),
    BookingStatus.NO_SHOW: (),
}


def complete_booking(
    db: Session,
    tenant: Tenants,
    hold_id: int,
    session_token: str,
    client_name: str,
    client_phone: str,
    client_email: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Bookings:
    now = now or utcnow()

    # Step 1: Hold ownership and expiry
    hold = (
        db.query(SlotHolds)
        .filter(SlotHolds.id == hold_id, SlotHolds.tenant_id == tenant.id)
        .first()
    )
    if not hold or not tokens_match(hold.session_token, session_token):
        raise HoldExpired()

    if hold.expires_at <= now:
        _drop_hold(db, hold_id)
        logger.info(f"Hold {hold_id} expired, removed")
        raise HoldExpired()

    # Step 2: Snapshot from the current catalog
    try:
        service = get_bookable_service(db, tenant.id, hold.service_id)
        variant = get_variant(db, service, hold.variant_id)
    except (ServiceNotFound, VariantNotFound):
        # Switched off after the hold was taken: back to slot selection
        _drop_hold(db, hold_id)
        logger.info(f"Hold {hold_id} released, service {hold.service_id} no longer bookable")
        raise HoldExpired()
    duration = effective_duration(service, variant)
    price = effective_price(service, variant)
    start = hold.start_time
    end = start + timedelta(minutes=duration + (service.buffer_after or 0))
    staff_id = hold.staff_id

    # Step 3: Convert under the calendar lock
    try:
        lock_staff_calendar(db, tenant.id, staff_id)

        # Consume the hold first; a concurrent cancel leaves nothing to consume
        consumed = db.execute(
            delete(SlotHolds)
            .where(SlotHolds.id == hold_id, SlotHolds.session_token == hold.session_token)
            .execution_options(synchronize_session=False)
        )
        if consumed.rowcount == 0:
            raise HoldExpired()

        if load_occupied(db, tenant.id, staff_id, Interval(start, end), now):
            # Keep the delete: the hold can never be completed anyway
            db.commit()
            raise SlotTaken()

        booking = Bookings(
            tenant_id=tenant.id,
            service_id=service.id,
            variant_id=variant.id if variant else None,
            staff_id=staff_id,
            start_time=start,
            end_time=end,
            status=settings.widget_booking_status,
            source="widget",
            duration_at_booking=duration,
            price_at_booking=price,
            client_name=client_name,
            client_phone=client_phone,
            client_email=client_email,
            notes=notes,
            cancel_token=generate_token(),
            reschedule_token=generate_token(),
            created_at=now,
            updated_at=now,
        )
        db.add(booking)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Booking from hold {hold_id} rejected by constraint")
        raise SlotTaken()
    except BookingError as e:
        db.rollback()
        logger.info(f"Booking from hold {hold_id} rejected ({e.code})")
        raise

    db.refresh(booking)
    logger.info(f"Booking {booking.id} created from hold {hold_id}: staff={staff_id} start={start.isoformat()}")

    emit_event("booking_created", {
        "booking_id": booking.id,
        "tenant_id": tenant.id,
    })
    return booking


def _drop_hold(db: Session, hold_id: int) -> None:
    db.execute(
        delete(SlotHolds)
        .where(SlotHolds.id == hold_id)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def change_status(
    db: Session,
    booking: Bookings,
    new_status: str,
    now: datetime | None = None,
    cancelled_by: str | None = None,
) -> Bookings:
    """Apply one status transition and commit."""
    if new_status not in STATUS_TRANSITIONS.get(booking.status, ()):
        raise InvalidStatusTransition(
            f"Cannot change status from {booking.status} to {new_status}"
        )

    now = now or utcnow()
    booking.status = new_status
    booking.updated_at = now
    if new_status == BookingStatus.CANCELLED:
        booking.cancelled_at = now
        booking.cancelled_by = cancelled_by

    db.commit()
    db.refresh(booking)
    logger.info(f"Booking {booking.id} status → {new_status}")
    return booking
