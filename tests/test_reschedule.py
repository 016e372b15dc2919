import json
from datetime import date, time

import pytest

from salon_booking.errors import (
    AlreadyRescheduled,
    BookingNotFound,
    InvalidDate,
    SlotTaken,
    SlotUnavailable,
    TooLate,
    WrongStatus,
)
from salon_booking.models import BookingStatus
from salon_booking.services.events import EVENTS_QUEUE
from salon_booking.services.reschedule import (
    REASON_ALREADY_RESCHEDULED,
    REASON_TOO_LATE,
    REASON_WRONG_STATUS,
    get_reschedule_info,
    reschedule_booking,
    reschedule_slots,
)
from salon_booking.services.slots import BookingConfig, compute_day_slots
from salon_booking.utils.tokens import generate_token, hash_token

from conftest import add_booking, seed_salon, utc

NOW = utc(2026, 10, 19, 10, 0)
TUESDAY = date(2026, 10, 20)
WEDNESDAY = date(2026, 10, 21)
CONFIG = BookingConfig()


def booked(db, salon, start=None, **fields):
    fields.setdefault('reschedule_token', generate_token())
    fields.setdefault('cancel_token', generate_token())
    return add_booking(db, salon, start or utc(2026, 10, 20, 8, 0), **fields)  # Tue 10:00


def test_reschedule_succeeds_once(db, fake_redis) -> None:
    salon = seed_salon(db)
    booking = booked(db, salon)
    token = booking.reschedule_token

    moved = reschedule_booking(db, salon.tenant, token, WEDNESDAY, time(15, 0), now=NOW, config=CONFIG)

    assert moved.start_time == utc(2026, 10, 21, 13, 0)
    assert moved.end_time == utc(2026, 10, 21, 14, 0)
    assert moved.original_start_time == utc(2026, 10, 20, 8, 0)
    assert moved.original_end_time == utc(2026, 10, 20, 9, 0)
    assert moved.was_rescheduled is True
    assert moved.rescheduled_at == NOW
    assert moved.reschedule_token is None
    assert moved.used_reschedule_token_hash == hash_token(token)

    with pytest.raises(AlreadyRescheduled):
        reschedule_booking(db, salon.tenant, token, WEDNESDAY, time(16, 0), now=NOW, config=CONFIG)

    event = json.loads(fake_redis.lists[EVENTS_QUEUE][-1])
    assert event['type'] == 'booking_rescheduled'
    assert event['old_start_time'] == utc(2026, 10, 20, 8, 0).isoformat()


def test_used_token_reads_as_already_rescheduled(db) -> None:
    salon = seed_salon(db)
    booking = booked(db, salon)
    token = booking.reschedule_token
    reschedule_booking(db, salon.tenant, token, WEDNESDAY, time(15, 0), now=NOW, config=CONFIG)

    with pytest.raises(AlreadyRescheduled):
        get_reschedule_info(db, salon.tenant, token, now=NOW, config=CONFIG)


@pytest.mark.parametrize('token', ['', 'short', 'x' * 43])
def test_unknown_token_is_not_found(db, token) -> None:
    salon = seed_salon(db)
    booked(db, salon)

    with pytest.raises(BookingNotFound):
        get_reschedule_info(db, salon.tenant, token, now=NOW, config=CONFIG)


def test_token_of_other_tenant_is_not_found(db) -> None:
    salon = seed_salon(db)
    other = seed_salon(db, slug='salon-b')
    booking = booked(db, salon)

    with pytest.raises(BookingNotFound):
        get_reschedule_info(db, other.tenant, booking.reschedule_token, now=NOW, config=CONFIG)


@pytest.mark.parametrize('fields, reason, error', [
    ({'status': BookingStatus.PENDING}, REASON_WRONG_STATUS, WrongStatus),
    ({'status': BookingStatus.CANCELLED}, REASON_WRONG_STATUS, WrongStatus),
    ({'was_rescheduled': True}, REASON_ALREADY_RESCHEDULED, AlreadyRescheduled),
    ({'start': utc(2026, 10, 19, 9, 0)}, REASON_TOO_LATE, TooLate),
])
def test_ineligible_bookings(db, fields, reason, error) -> None:
    salon = seed_salon(db)
    booking = booked(db, salon, **fields)

    info = get_reschedule_info(db, salon.tenant, booking.reschedule_token, now=NOW, config=CONFIG)

    assert info.can_reschedule is False
    assert info.reason == reason
    with pytest.raises(error):
        reschedule_booking(
            db, salon.tenant, booking.reschedule_token, WEDNESDAY, time(15, 0), now=NOW, config=CONFIG,
        )


def test_too_late_inside_min_advance(db) -> None:
    salon = seed_salon(db, min_advance_hours=24)
    booking = booked(db, salon)  # 22 hours ahead

    info = get_reschedule_info(db, salon.tenant, booking.reschedule_token, now=NOW, config=CONFIG)

    assert info.reason == REASON_TOO_LATE
    with pytest.raises(TooLate):
        reschedule_slots(db, salon.tenant, booking.reschedule_token, WEDNESDAY, now=NOW, config=CONFIG)


def test_eligible_info(db) -> None:
    salon = seed_salon(db)
    booking = booked(db, salon)

    info = get_reschedule_info(db, salon.tenant, booking.reschedule_token, now=NOW, config=CONFIG)

    assert info.can_reschedule is True
    assert info.reason is None
    assert info.booking.id == booking.id
    assert info.service.id == salon.service.id


def test_reschedule_slots_treat_own_slot_as_free(db) -> None:
    salon = seed_salon(db)
    booking = booked(db, salon)
    add_booking(db, salon, utc(2026, 10, 20, 10, 0))  # someone else at 12:00

    slots = reschedule_slots(db, salon.tenant, booking.reschedule_token, TUESDAY, now=NOW, config=CONFIG)

    assert '10:00' in slots
    assert '12:00' not in slots


def test_reschedule_within_own_slot(db) -> None:
    salon = seed_salon(db, duration=60)
    booking = booked(db, salon)

    moved = reschedule_booking(
        db, salon.tenant, booking.reschedule_token, TUESDAY, time(10, 30), now=NOW, config=CONFIG,
    )

    assert moved.start_time == utc(2026, 10, 20, 8, 30)


def test_reschedule_into_taken_slot(db) -> None:
    salon = seed_salon(db)
    booking = booked(db, salon)
    token = booking.reschedule_token
    add_booking(db, salon, utc(2026, 10, 21, 13, 0))

    with pytest.raises(SlotTaken):
        reschedule_booking(db, salon.tenant, token, WEDNESDAY, time(15, 0), now=NOW, config=CONFIG)

    db.refresh(booking)
    assert booking.was_rescheduled is False
    assert booking.reschedule_token == token


@pytest.mark.parametrize('new_date, new_time, error', [
    (date(2026, 10, 18), time(10, 0), InvalidDate),
    (date(2027, 3, 1), time(10, 0), InvalidDate),
    (WEDNESDAY, time(7, 0), SlotUnavailable),
    (WEDNESDAY, time(17, 30), SlotUnavailable),
])
def test_reschedule_target_is_validated(db, new_date, new_time, error) -> None:
    salon = seed_salon(db)
    booking = booked(db, salon)

    with pytest.raises(error):
        reschedule_booking(
            db, salon.tenant, booking.reschedule_token, new_date, new_time, now=NOW, config=CONFIG,
        )


def test_rescheduled_booking_frees_old_slot(db) -> None:
    salon = seed_salon(db)
    booking = booked(db, salon)
    reschedule_booking(db, salon.tenant, booking.reschedule_token, WEDNESDAY, time(15, 0), now=NOW, config=CONFIG)

    tuesday = compute_day_slots(db, salon.tenant, salon.service, None, salon.staff.id, TUESDAY, now=NOW, config=CONFIG)
    wednesday = compute_day_slots(
        db, salon.tenant, salon.service, None, salon.staff.id, WEDNESDAY, now=NOW, config=CONFIG,
    )

    assert '10:00' in tuesday
    assert '15:00' not in wednesday


def test_reschedule_clears_sent_reminder(db) -> None:
    salon = seed_salon(db)
    booking = booked(db, salon, reminder_sent_at=NOW)

    moved = reschedule_booking(
        db, salon.tenant, booking.reschedule_token, WEDNESDAY, time(15, 0), now=NOW, config=CONFIG,
    )

    assert moved.reminder_sent_at is None
