# backend/salon_booking/services/slots/calculator.py
"""
Candidate slot starts for one staff member on one day.

For each open interval, starting at its open boundary:
  step forward while start + duration + buffer_after <= interval end

A candidate survives when:
✓ start >= now + min_advance_hours (checked per candidate, not per day)
✓ [start, start + duration + buffer_after) overlaps nothing occupied

Stepping happens on absolute instants, so a shift crossing a DST change
keeps its real length. Labels are wall-clock "HH:MM" in the tenant zone;
starts inside the repeated fall-back hour are dropped (their label would
resolve to the first occurrence).
"""

from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from .intervals import Interval, find_conflict


class DaySlots:
    """
    Lazy, finite, restartable sequence of bookable starts.

    Iterating yields "HH:MM" labels; candidates() yields the UTC intervals
    they stand for (including buffer_after). Each iteration starts over, so
    the same object can be counted, listed and searched.
    """

    def __init__(
        self,
        day: date,
        tz: ZoneInfo,
        open_intervals: list[Interval],
        occupied: list[Interval],
        duration_min: int,
        buffer_min: int,
        step_min: int,
        earliest_start: datetime,
    ):
        if duration_min <= 0:
            raise ValueError(f"duration must be positive, got {duration_min}")
        if step_min <= 0:
            raise ValueError(f"step must be positive, got {step_min}")

        self.day = day
        self.tz = tz
        self.open_intervals = open_intervals
        self.occupied = occupied
        self.length = timedelta(minutes=duration_min + buffer_min)
        self.step = timedelta(minutes=step_min)
        self.earliest_start = earliest_start

    def candidates(self) -> Iterator[Interval]:
        for window in self.open_intervals:
            start = window.start
            while start + self.length <= window.end:
                candidate = Interval(start, start + self.length)
                if (
                    start >= self.earliest_start
                    and self.addressable(start)
                    and find_conflict(candidate, self.occupied) is None
                ):
                    yield candidate
                start += self.step

    def __iter__(self) -> Iterator[str]:
        for candidate in self.candidates():
            yield self.label(candidate.start)

    def addressable(self, instant: datetime) -> bool:
        """
        True when the wall-clock label of instant resolves back to it.

        Labels resolve to their first occurrence, so the repeated hour of a
        fall-back night has no label of its own.
        """
        local = instant.astimezone(self.tz).replace(fold=0)
        return local.astimezone(timezone.utc) == instant

    def label(self, instant: datetime) -> str:
        local = instant.astimezone(self.tz)
        return f"{local.hour:02d}:{local.minute:02d}"

    def is_empty(self) -> bool:
        return next(self.candidates(), None) is None


def empty_day(day: date, tz: ZoneInfo) -> DaySlots:
    return DaySlots(
        day=day,
        tz=tz,
        open_intervals=[],
        occupied=[],
        duration_min=1,
        buffer_min=0,
        step_min=1,
        earliest_start=datetime.min.replace(tzinfo=timezone.utc),
    )
