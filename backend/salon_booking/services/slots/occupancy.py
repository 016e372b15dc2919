# backend/salon_booking/services/slots/occupancy.py
"""
Occupied intervals of one staff member within a UTC window.

occupied = bookings (pending/confirmed) ∪ live holds (expires_at > now)

Rows are selected by overlap with the window, so a booking that starts the
evening before and runs past midnight still counts. Expired holds are inert
even before the reaper deletes them.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from ...models import BookingStatus, Bookings, SlotHolds
from .intervals import Interval


def load_occupied(
    db: Session,
    tenant_id: int,
    staff_id: int,
    window: Interval,
    now: datetime,
    exclude_booking_id: int | None = None,
) -> list[Interval]:
    booking_q = db.query(Bookings.start_time, Bookings.end_time).filter(
        Bookings.tenant_id == tenant_id,
        Bookings.staff_id == staff_id,
        Bookings.status.in_(BookingStatus.ACTIVE),
        Bookings.start_time < window.end,
        Bookings.end_time > window.start,
    )
    if exclude_booking_id is not None:
        booking_q = booking_q.filter(Bookings.id != exclude_booking_id)

    hold_q = db.query(SlotHolds.start_time, SlotHolds.end_time).filter(
        SlotHolds.tenant_id == tenant_id,
        SlotHolds.staff_id == staff_id,
        SlotHolds.expires_at > now,
        SlotHolds.start_time < window.end,
        SlotHolds.end_time > window.start,
    )
    occupied = [Interval(start, end) for start, end in booking_q.all()]
    occupied += [Interval(start, end) for start, end in hold_q.all()]
    occupied.sort()
    return occupied
