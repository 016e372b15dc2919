# backend/salon_booking/services/slots/calendar.py
"""
Calendar rules: when is a staff member theoretically workable on a day.

open intervals = WorkingHours(weekday) ∩ StaffSchedule(weekday) − break

Empty when:
✗ salon closed that weekday (or no WorkingHours row)
✗ staff not working that weekday (or no StaffSchedule row)
✗ salon-wide BlockedDate or a BlockedDate of this staff member

Times are wall-clock in the tenant's IANA zone. Conversion to UTC uses the
zone's offset on that date, so DST days come out 23 or 25 hours long.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import BlockedDates, StaffSchedule, Tenants, WorkingHours
from .intervals import Interval


@dataclass(frozen=True)
class StaffDay:
    start: time
    end: time
    break_start: time | None = None
    break_end: time | None = None


@dataclass
class CalendarRules:
    tz: ZoneInfo
    working_hours: dict[int, tuple[time, time]] = field(default_factory=dict)  # open weekdays only
    staff_days: dict[int, StaffDay] = field(default_factory=dict)  # working weekdays only
    blocked_dates: set[date] = field(default_factory=set)

    def open_intervals(self, day: date) -> list[tuple[time, time]]:
        """Ordered, disjoint wall-clock intervals for the day."""
        if day in self.blocked_dates:
            return []

        weekday = day.weekday()
        salon = self.working_hours.get(weekday)
        shift = self.staff_days.get(weekday)
        if salon is None or shift is None:
            return []

        start = max(salon[0], shift.start)
        end = min(salon[1], shift.end)
        if start >= end:
            return []

        if shift.break_start is None or shift.break_end is None:
            return [(start, end)]

        pieces = [
            (start, min(end, shift.break_start)),
            (max(start, shift.break_end), end),
        ]
        return [(s, e) for s, e in pieces if s < e]

    def open_utc_intervals(self, day: date) -> list[Interval]:
        return [
            Interval(local_to_utc(day, s, self.tz), local_to_utc(day, e, self.tz))
            for s, e in self.open_intervals(day)
        ]

    def day_window(self, day: date) -> Interval:
        return day_window(day, self.tz)


# ── Time zone helpers ────────────────────────────────────────────────────


def tenant_zone(tenant: Tenants) -> ZoneInfo:
    return ZoneInfo(tenant.timezone)


def local_to_utc(day: date, wall: time, tz: ZoneInfo) -> datetime:
    """
    Wall-clock time on a date → aware UTC instant.

    Ambiguous times (autumn fall-back) resolve to the first occurrence;
    times inside the spring-forward gap resolve with the pre-transition
    offset, i.e. land after the gap.
    """
    return datetime.combine(day, wall, tzinfo=tz).astimezone(timezone.utc)


def day_window(day: date, tz: ZoneInfo) -> Interval:
    """Local midnight to next local midnight, as UTC instants."""
    return Interval(
        local_to_utc(day, time(0, 0), tz),
        local_to_utc(day + timedelta(days=1), time(0, 0), tz),
    )


# ── Loading ──────────────────────────────────────────────────────────────


def load_calendar_rules(
    db: Session,
    tenant: Tenants,
    staff_id: int,
    date_from: date,
    date_to: date | None = None,
) -> CalendarRules:
    """
    Load everything needed to resolve open intervals for [date_from, date_to]
    in three queries. The day view and the range view use the same object.
    """
    date_to = date_to or date_from

    rules = CalendarRules(tz=tenant_zone(tenant))

    for row in db.query(WorkingHours).filter(WorkingHours.tenant_id == tenant.id).all():
        if row.is_open and row.open_time < row.close_time:
            rules.working_hours[row.day_of_week] = (row.open_time, row.close_time)

    for row in db.query(StaffSchedule).filter(StaffSchedule.staff_id == staff_id).all():
        if row.is_working and row.start_time < row.end_time:
            rules.staff_days[row.day_of_week] = StaffDay(
                start=row.start_time,
                end=row.end_time,
                break_start=row.break_start,
                break_end=row.break_end,
            )

    blocked = (
        db.query(BlockedDates.blocked_date)
        .filter(
            BlockedDates.tenant_id == tenant.id,
            BlockedDates.blocked_date >= date_from,
            BlockedDates.blocked_date <= date_to,
            or_(BlockedDates.staff_id.is_(None), BlockedDates.staff_id == staff_id),
        )
        .all()
    )
    rules.blocked_dates = {row.blocked_date for row in blocked}

    return rules
