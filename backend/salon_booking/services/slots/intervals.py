# backend/salon_booking/services/slots/intervals.py

from datetime import datetime
from typing import NamedTuple


class Interval(NamedTuple):
    """Half-open [start, end) range of absolute UTC instants."""
    start: datetime
    end: datetime


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # Touching boundaries do not conflict: [9:00,10:00) and [10:00,11:00) are fine
    return a_start < b_end and a_end > b_start


def find_conflict(candidate: Interval, occupied: list[Interval]) -> Interval | None:
    for busy in occupied:
        if overlaps(candidate.start, candidate.end, busy.start, busy.end):
            return busy
    return None
