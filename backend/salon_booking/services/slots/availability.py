# backend/salon_booking/services/slots/availability.py
"""
Service availability: bookable starts for a day, unavailable dates for a range.

Both views go through build_day_slots() with the same rules, occupancy and
step policy, so a date is reported unavailable in the range view exactly
when its day view is empty.
"""

import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ...errors import ValidationFailed
from ...models import ServiceVariants, Services, Tenants
from ..catalog import effective_duration
from .calculator import DaySlots, empty_day
from .calendar import CalendarRules, load_calendar_rules, tenant_zone
from .config import BookingConfig, get_booking_config
from .intervals import Interval
from .occupancy import load_occupied

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def booking_window(
    service: Services,
    config: BookingConfig,
    now: datetime,
    tz,
) -> tuple[datetime, date, date]:
    """
    Returns (earliest_start, first_day, last_day).

    earliest_start = now + min_advance_hours
    last_day = local date of now + max_advance_days
    """
    earliest_start = now + timedelta(hours=config.min_advance_hours(service))
    first_day = earliest_start.astimezone(tz).date()
    last_day = (now.astimezone(tz) + timedelta(days=config.max_advance_days(service))).date()
    return earliest_start, first_day, last_day


def build_day_slots(
    db: Session,
    tenant: Tenants,
    service: Services,
    variant: ServiceVariants | None,
    staff_id: int,
    target_date: date,
    now: datetime | None = None,
    config: BookingConfig | None = None,
    rules: CalendarRules | None = None,
    occupied: list[Interval] | None = None,
    exclude_booking_id: int | None = None,
) -> DaySlots:
    config = config or get_booking_config()
    now = now or utcnow()
    tz = rules.tz if rules else tenant_zone(tenant)

    # Step 1: Booking window (date level)
    earliest_start, first_day, last_day = booking_window(service, config, now, tz)
    if target_date < first_day or target_date > last_day:
        return empty_day(target_date, tz)

    # Step 2: Open intervals
    rules = rules or load_calendar_rules(db, tenant, staff_id, target_date)
    open_intervals = rules.open_utc_intervals(target_date)
    if not open_intervals:
        return empty_day(target_date, tz)

    # Step 3: Occupancy
    if occupied is None:
        occupied = load_occupied(
            db,
            tenant.id,
            staff_id,
            rules.day_window(target_date),
            now,
            exclude_booking_id=exclude_booking_id,
        )

    duration = effective_duration(service, variant)
    buffer_after = service.buffer_after or 0

    return DaySlots(
        day=target_date,
        tz=tz,
        open_intervals=open_intervals,
        occupied=occupied,
        duration_min=duration,
        buffer_min=buffer_after,
        step_min=config.step_for(duration, buffer_after),
        earliest_start=earliest_start,
    )


def compute_day_slots(
    db: Session,
    tenant: Tenants,
    service: Services,
    variant: ServiceVariants | None,
    staff_id: int,
    target_date: date,
    now: datetime | None = None,
    config: BookingConfig | None = None,
    exclude_booking_id: int | None = None,
) -> list[str]:
    """Ordered "HH:MM" starts bookable on target_date."""
    return list(
        build_day_slots(
            db, tenant, service, variant, staff_id, target_date,
            now=now, config=config, exclude_booking_id=exclude_booking_id,
        )
    )


def find_unavailable_dates(
    db: Session,
    tenant: Tenants,
    service: Services,
    variant: ServiceVariants | None,
    staff_id: int,
    date_from: date,
    date_to: date,
    now: datetime | None = None,
    config: BookingConfig | None = None,
) -> list[date]:
    """Dates in [date_from, date_to] without a single bookable start."""
    config = config or get_booking_config()
    now = now or utcnow()

    if date_to < date_from:
        raise ValidationFailed("'to' must not be before 'from'")
    span = (date_to - date_from).days + 1
    if span > config.max_range_days:
        raise ValidationFailed(f"Date range is limited to {config.max_range_days} days")

    rules = load_calendar_rules(db, tenant, staff_id, date_from, date_to)
    occupied = load_occupied(
        db,
        tenant.id,
        staff_id,
        Interval(rules.day_window(date_from).start, rules.day_window(date_to).end),
        now,
    )

    unavailable = []
    for offset in range(span):
        day = date_from + timedelta(days=offset)
        slots = build_day_slots(
            db, tenant, service, variant, staff_id, day,
            now=now, config=config, rules=rules, occupied=occupied,
        )
        if slots.is_empty():
            unavailable.append(day)

    logger.debug(
        f"Availability tenant={tenant.id} staff={staff_id} service={service.id} "
        f"{date_from}..{date_to}: {len(unavailable)}/{span} unavailable"
    )
    return unavailable
