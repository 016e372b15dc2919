# backend/salon_booking/services/holds.py
"""
Hold manager: short-lived, token-authenticated reservation of one slot.

create_hold:
  1. Resolve service / variant / staff inside the tenant
  2. Re-validate the booking window against server time (INVALID_DATE)
  3. Check the slot fits an open interval (SLOT_UNAVAILABLE)
  4. Lock the staff calendar, reap this staff's expired holds,
     re-read occupancy and insert (SLOT_TAKEN on any conflict)

Step 4 is one transaction. Two requests for the same staff queue on the
calendar lock, so the second one sees the first one's hold. The unique
(staff_id, start_time) constraint and, on PostgreSQL, the exclusion
constraint on overlapping ranges catch anything that slips past.

Expiry is lazy: expired holds are ignored by occupancy and rejected at
finalize. hold_reaper_loop only deletes dead rows.
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..database import SessionLocal
from ..errors import BookingError, InvalidDate, SlotTaken, SlotUnavailable
from ..models import SlotHolds, Tenants
from ..utils.tokens import generate_token, tokens_match
from .catalog import effective_duration, get_bookable_service, get_staff, get_variant, lock_staff_calendar
from .slots import (
    BookingConfig,
    Interval,
    booking_window,
    get_booking_config,
    load_calendar_rules,
    load_occupied,
    local_to_utc,
)
from .slots.availability import utcnow

logger = logging.getLogger(__name__)


def create_hold(
    db: Session,
    tenant: Tenants,
    service_id: int,
    staff_id: int,
    target_date: date,
    start_time: time,
    variant_id: int | None = None,
    now: datetime | None = None,
    config: BookingConfig | None = None,
) -> SlotHolds:
    config = config or get_booking_config()
    now = now or utcnow()

    # Step 1: Catalog
    service = get_bookable_service(db, tenant.id, service_id)
    variant = get_variant(db, service, variant_id)
    staff = get_staff(db, tenant.id, staff_id)

    rules = load_calendar_rules(db, tenant, staff.id, target_date)
    start = local_to_utc(target_date, start_time, rules.tz)
    if start.astimezone(rules.tz).time() != start_time:
        # Wall-clock time skipped by a DST change
        raise SlotUnavailable("This time does not exist on the selected day")

    # Step 2: Booking window
    earliest_start, first_day, last_day = booking_window(service, config, now, rules.tz)
    if target_date < first_day or target_date > last_day or start < earliest_start:
        raise InvalidDate()

    # Step 3: Fits an open interval
    end = start + timedelta(minutes=effective_duration(service, variant) + (service.buffer_after or 0))
    candidate = Interval(start, end)
    if not fits_open_interval(candidate, rules.open_utc_intervals(target_date)):
        raise SlotUnavailable()

    # Step 4: Serialized check-then-insert
    try:
        lock_staff_calendar(db, tenant.id, staff.id)
        delete_expired_holds(db, now, staff_id=staff.id)

        if load_occupied(db, tenant.id, staff.id, candidate, now):
            raise SlotTaken()

        hold = SlotHolds(
            tenant_id=tenant.id,
            service_id=service.id,
            variant_id=variant.id if variant else None,
            staff_id=staff.id,
            start_time=start,
            end_time=end,
            session_token=generate_token(),
            expires_at=now + timedelta(seconds=config.hold_ttl_seconds),
            created_at=now,
        )
        db.add(hold)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Hold rejected by constraint: staff={staff.id} start={start.isoformat()}")
        raise SlotTaken()
    except BookingError as e:
        db.rollback()
        logger.info(f"Hold rejected ({e.code}): staff={staff.id} start={start.isoformat()}")
        raise

    db.refresh(hold)
    logger.info(f"Hold {hold.id} created: staff={staff.id} start={start.isoformat()} expires={hold.expires_at.isoformat()}")
    return hold


def cancel_hold(db: Session, tenant: Tenants, hold_id: int, session_token: str) -> bool:
    """
    Release a hold. Idempotent: a missing hold or a foreign token is not an
    error, nothing is deleted. Returns True when a row was removed.
    """
    hold = (
        db.query(SlotHolds)
        .filter(SlotHolds.id == hold_id, SlotHolds.tenant_id == tenant.id)
        .first()
    )
    if not hold or not tokens_match(hold.session_token, session_token):
        return False

    db.delete(hold)
    db.commit()
    logger.info(f"Hold {hold_id} released")
    return True


def fits_open_interval(candidate: Interval, open_intervals: list[Interval]) -> bool:
    return any(iv.start <= candidate.start and candidate.end <= iv.end for iv in open_intervals)


# ── Expiry ───────────────────────────────────────────────────────────────


def delete_expired_holds(db: Session, now: datetime, staff_id: int | None = None) -> int:
    """Delete dead holds inside the current transaction (no commit)."""
    stmt = delete(SlotHolds).where(SlotHolds.expires_at <= now)
    if staff_id is not None:
        stmt = stmt.where(SlotHolds.staff_id == staff_id)
    result = db.execute(stmt.execution_options(synchronize_session=False))
    return result.rowcount or 0


def reap_expired_holds(db: Session, now: datetime | None = None) -> int:
    """Housekeeping: delete all expired holds. Returns the number removed."""
    removed = delete_expired_holds(db, now or utcnow())
    db.commit()
    if removed:
        logger.info(f"Reaped {removed} expired holds")
    return removed


async def hold_reaper_loop() -> None:
    """
    Periodic loop deleting expired holds.

    Runs as an asyncio task in the app lifespan.
    Uses the synchronous session (via asyncio.to_thread).
    """
    logger.info("hold_reaper_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(_reap_once)
            except asyncio.CancelledError:
                logger.info("hold_reaper_loop cancelled")
                raise
            except Exception:
                logger.exception("hold_reaper_loop error")

            await asyncio.sleep(settings.hold_reaper_interval)
    except asyncio.CancelledError:
        pass


def _reap_once() -> None:
    db = SessionLocal()
    try:
        reap_expired_holds(db)
    finally:
        db.close()
