# backend/salon_booking/services/reschedule.py
"""
Reschedule engine: move a confirmed booking to a new slot, exactly once.

Token states:
  eligible → rescheduled (terminal)
  rejections: already_rescheduled | wrong_status | too_late

too_late = start already passed, or start earlier than now + min_advance_hours.

Read path (get_reschedule_info, reschedule_slots) never mutates.

Write path re-validates everything server-side, then under the staff
calendar lock re-reads occupancy (excluding the booking itself) and applies
a conditional UPDATE guarded by the token, so two concurrent submissions of
the same link cannot both succeed. The consumed token is kept as a SHA-256
digest only, to tell "already used" apart from "never existed".
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import (
    AlreadyRescheduled,
    BookingError,
    BookingNotFound,
    InvalidDate,
    SlotTaken,
    SlotUnavailable,
    TooLate,
    WrongStatus,
)
from ..models import BookingStatus, Bookings, ServiceVariants, Services, Tenants
from ..utils.tokens import hash_token
from .catalog import effective_duration, get_service, get_variant, lock_staff_calendar
from .events import emit_event
from .holds import fits_open_interval
from .slots import (
    BookingConfig,
    Interval,
    booking_window,
    compute_day_slots,
    get_booking_config,
    load_calendar_rules,
    load_occupied,
    local_to_utc,
    tenant_zone,
)
from .slots.availability import utcnow

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 20

REASON_ALREADY_RESCHEDULED = "already_rescheduled"
REASON_WRONG_STATUS = "wrong_status"
REASON_TOO_LATE = "too_late"

_REASON_ERRORS = {
    REASON_ALREADY_RESCHEDULED: AlreadyRescheduled,
    REASON_WRONG_STATUS: WrongStatus,
    REASON_TOO_LATE: TooLate,
}


@dataclass
class RescheduleInfo:
    booking: Bookings
    service: Services
    variant: ServiceVariants | None
    can_reschedule: bool
    reason: str | None = None


# ── Lookup and eligibility ───────────────────────────────────────────────


def find_by_reschedule_token(db: Session, tenant: Tenants, token: str) -> Bookings:
    if not token or len(token) < MIN_TOKEN_LENGTH:
        raise BookingNotFound()

    booking = (
        db.query(Bookings)
        .filter(Bookings.tenant_id == tenant.id, Bookings.reschedule_token == token)
        .first()
    )
    if booking:
        return booking

    used = (
        db.query(Bookings.id)
        .filter(
            Bookings.tenant_id == tenant.id,
            Bookings.used_reschedule_token_hash == hash_token(token),
        )
        .first()
    )
    if used:
        raise AlreadyRescheduled()
    raise BookingNotFound()


def eligibility(
    booking: Bookings,
    service: Services,
    now: datetime,
    config: BookingConfig,
) -> str | None:
    """None when the booking may be rescheduled, else the rejection reason."""
    if booking.was_rescheduled:
        return REASON_ALREADY_RESCHEDULED
    if booking.status != BookingStatus.CONFIRMED:
        return REASON_WRONG_STATUS
    earliest = now + timedelta(hours=config.min_advance_hours(service))
    if booking.start_time <= now or booking.start_time < earliest:
        return REASON_TOO_LATE
    return None


def get_reschedule_info(
    db: Session,
    tenant: Tenants,
    token: str,
    now: datetime | None = None,
    config: BookingConfig | None = None,
) -> RescheduleInfo:
    config = config or get_booking_config()
    now = now or utcnow()

    booking = find_by_reschedule_token(db, tenant, token)
    service = get_service(db, tenant.id, booking.service_id)
    if not service:
        raise BookingNotFound()
    variant = get_variant(db, service, booking.variant_id, active_only=False)

    reason = eligibility(booking, service, now, config)
    return RescheduleInfo(
        booking=booking,
        service=service,
        variant=variant,
        can_reschedule=reason is None,
        reason=reason,
    )


def _require_eligible(info: RescheduleInfo) -> None:
    if not info.can_reschedule:
        raise _REASON_ERRORS[info.reason]()


# ── Read path ────────────────────────────────────────────────────────────


def reschedule_slots(
    db: Session,
    tenant: Tenants,
    token: str,
    target_date: date,
    now: datetime | None = None,
    config: BookingConfig | None = None,
) -> list[str]:
    """Bookable starts for the new date; the booking's own slot counts as free."""
    config = config or get_booking_config()
    now = now or utcnow()

    info = get_reschedule_info(db, tenant, token, now, config)
    _require_eligible(info)

    return compute_day_slots(
        db,
        tenant,
        info.service,
        info.variant,
        info.booking.staff_id,
        target_date,
        now=now,
        config=config,
        exclude_booking_id=info.booking.id,
    )


# ── Write path ───────────────────────────────────────────────────────────


def reschedule_booking(
    db: Session,
    tenant: Tenants,
    token: str,
    new_date: date,
    new_time: time,
    now: datetime | None = None,
    config: BookingConfig | None = None,
) -> Bookings:
    config = config or get_booking_config()
    now = now or utcnow()

    # Step 1: Token and eligibility (never trust the earlier read)
    info = get_reschedule_info(db, tenant, token, now, config)
    _require_eligible(info)
    booking, service, variant = info.booking, info.service, info.variant

    # Step 2: New interval and booking window
    tz = tenant_zone(tenant)
    new_start = local_to_utc(new_date, new_time, tz)
    if new_start.astimezone(tz).time() != new_time:
        raise SlotUnavailable("This time does not exist on the selected day")

    earliest_start, first_day, last_day = booking_window(service, config, now, tz)
    if new_date < first_day or new_date > last_day or new_start < earliest_start:
        raise InvalidDate()

    new_end = new_start + timedelta(
        minutes=effective_duration(service, variant) + (service.buffer_after or 0)
    )
    candidate = Interval(new_start, new_end)

    rules = load_calendar_rules(db, tenant, booking.staff_id, new_date)
    if not fits_open_interval(candidate, rules.open_utc_intervals(new_date)):
        raise SlotUnavailable()

    booking_id = booking.id
    old_start, old_end = booking.start_time, booking.end_time

    # Step 3: Occupancy and conditional write under the calendar lock
    try:
        lock_staff_calendar(db, tenant.id, booking.staff_id)

        if load_occupied(db, tenant.id, booking.staff_id, candidate, now, exclude_booking_id=booking_id):
            raise SlotTaken()

        result = db.execute(
            update(Bookings)
            .where(
                Bookings.id == booking_id,
                Bookings.tenant_id == tenant.id,
                Bookings.reschedule_token == token,
                Bookings.was_rescheduled.is_(False),
                Bookings.status == BookingStatus.CONFIRMED,
            )
            .values(
                original_start_time=old_start,
                original_end_time=old_end,
                start_time=new_start,
                end_time=new_end,
                was_rescheduled=True,
                rescheduled_at=now,
                reschedule_token=None,
                used_reschedule_token_hash=hash_token(token),
                reminder_sent_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Lost a race with another reschedule or a cancellation
            raise AlreadyRescheduled()

        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Reschedule of booking {booking_id} rejected by constraint")
        raise SlotTaken()
    except BookingError as e:
        db.rollback()
        logger.info(f"Reschedule of booking {booking_id} rejected ({e.code})")
        raise

    db.refresh(booking)
    logger.info(
        f"Booking {booking_id} rescheduled: {old_start.isoformat()} → {new_start.isoformat()}"
    )

    emit_event("booking_rescheduled", {
        "booking_id": booking_id,
        "tenant_id": tenant.id,
        "old_start_time": old_start.isoformat(),
    })
    return booking
