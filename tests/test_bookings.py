import json
from datetime import date, time, timedelta

import pytest

from salon_booking.config import settings
from salon_booking.errors import HoldExpired, InvalidStatusTransition, SlotTaken
from salon_booking.models import BookingStatus, Bookings, SlotHolds
from salon_booking.services.bookings import change_status, complete_booking
from salon_booking.services.events import EVENTS_QUEUE
from salon_booking.services.holds import create_hold
from salon_booking.services.slots import BookingConfig, compute_day_slots

from conftest import add_booking, add_variant, seed_salon, utc

TUESDAY = date(2026, 10, 20)
NOW = utc(2026, 10, 19, 10, 0)
CONFIG = BookingConfig(hold_ttl_seconds=300)


def make_hold(db, salon, start: time = time(14, 0), variant_id=None) -> SlotHolds:
    return create_hold(
        db, salon.tenant, salon.service.id, salon.staff.id, TUESDAY, start,
        variant_id=variant_id, now=NOW, config=CONFIG,
    )


def finalize(db, salon, hold_id: int, token: str, now=None) -> Bookings:
    return complete_booking(
        db, salon.tenant, hold_id, token,
        client_name='Max Mustermann',
        client_phone='+491701234567',
        client_email='max@example.com',
        now=now or NOW + timedelta(minutes=2),
    )


def test_complete_booking_converts_hold(db, fake_redis) -> None:
    salon = seed_salon(db, duration=60, buffer_after=15, price=4500)
    hold = make_hold(db, salon)
    hold_id, token = hold.id, hold.session_token

    booking = finalize(db, salon, hold_id, token)

    assert booking.status == settings.widget_booking_status
    assert booking.source == 'widget'
    assert booking.start_time == utc(2026, 10, 20, 12, 0)
    assert booking.end_time == utc(2026, 10, 20, 13, 15)
    assert booking.duration_at_booking == 60
    assert booking.price_at_booking == 4500
    assert booking.cancel_token and booking.reschedule_token
    assert booking.cancel_token != booking.reschedule_token
    assert db.query(SlotHolds).count() == 0

    events = [json.loads(e) for e in fake_redis.lists[EVENTS_QUEUE]]
    assert events[-1]['type'] == 'booking_created'
    assert events[-1]['booking_id'] == booking.id
    assert events[-1]['tenant_id'] == salon.tenant.id


def test_booked_slot_stays_unavailable(db) -> None:
    salon = seed_salon(db)
    hold = make_hold(db, salon)
    finalize(db, salon, hold.id, hold.session_token)

    slots = compute_day_slots(
        db, salon.tenant, salon.service, None, salon.staff.id, TUESDAY,
        now=NOW + timedelta(hours=1), config=CONFIG,
    )

    assert '14:00' not in slots


def test_snapshot_uses_variant_and_survives_catalog_changes(db) -> None:
    salon = seed_salon(db, duration=30, price=2500)
    variant = add_variant(db, salon.service, duration=90, price=7000)
    hold = make_hold(db, salon, variant_id=variant.id)

    booking = finalize(db, salon, hold.id, hold.session_token)
    variant.duration = 120
    variant.price = 9900
    db.commit()
    db.refresh(booking)

    assert booking.variant_id == variant.id
    assert booking.duration_at_booking == 90
    assert booking.price_at_booking == 7000
    assert booking.end_time - booking.start_time == timedelta(minutes=90)


def test_expired_hold_cannot_be_completed(db) -> None:
    salon = seed_salon(db)
    hold = make_hold(db, salon)
    hold_id, token = hold.id, hold.session_token

    with pytest.raises(HoldExpired):
        finalize(db, salon, hold_id, token, now=NOW + timedelta(seconds=301))

    assert db.query(SlotHolds).count() == 0
    assert db.query(Bookings).count() == 0


@pytest.mark.parametrize('field', ['is_active', 'online_booking_enabled'])
def test_service_switched_off_releases_hold(db, field) -> None:
    salon = seed_salon(db)
    hold = make_hold(db, salon)
    hold_id, token = hold.id, hold.session_token
    setattr(salon.service, field, False)
    db.commit()

    with pytest.raises(HoldExpired):
        finalize(db, salon, hold_id, token)

    assert db.query(SlotHolds).count() == 0
    assert db.query(Bookings).count() == 0


def test_variant_switched_off_releases_hold(db) -> None:
    salon = seed_salon(db)
    variant = add_variant(db, salon.service, duration=45, price=3000)
    hold = make_hold(db, salon, variant_id=variant.id)
    hold_id, token = hold.id, hold.session_token
    variant.is_active = False
    db.commit()

    with pytest.raises(HoldExpired):
        finalize(db, salon, hold_id, token)

    assert db.query(SlotHolds).count() == 0


@pytest.mark.parametrize('token', ['', 'not-the-token', 'x' * 43])
def test_foreign_token_is_rejected(db, token) -> None:
    salon = seed_salon(db)
    hold = make_hold(db, salon)

    with pytest.raises(HoldExpired):
        finalize(db, salon, hold.id, token)

    assert db.query(SlotHolds).count() == 1


def test_hold_can_only_be_completed_once(db) -> None:
    salon = seed_salon(db)
    hold = make_hold(db, salon)
    hold_id, token = hold.id, hold.session_token
    finalize(db, salon, hold_id, token)

    with pytest.raises(HoldExpired):
        finalize(db, salon, hold_id, token)

    assert db.query(Bookings).count() == 1


def test_hold_from_other_tenant_is_rejected(db) -> None:
    salon = seed_salon(db)
    other = seed_salon(db, slug='salon-b')
    hold = make_hold(db, salon)

    with pytest.raises(HoldExpired):
        finalize(db, other, hold.id, hold.session_token)


def test_overlapping_booking_created_elsewhere_wins(db) -> None:
    salon = seed_salon(db)
    hold = make_hold(db, salon)
    hold_id, token = hold.id, hold.session_token
    # Dashboard booking added after the hold, bypassing the widget
    add_booking(db, salon, utc(2026, 10, 20, 12, 30), minutes=30, source='dashboard')

    with pytest.raises(SlotTaken):
        finalize(db, salon, hold_id, token)

    assert db.query(SlotHolds).count() == 0
    assert db.query(Bookings).count() == 1


# ── Status machine ───────────────────────────────────────────────────────


@pytest.mark.parametrize('current, new', [
    (BookingStatus.PENDING, BookingStatus.CONFIRMED),
    (BookingStatus.PENDING, BookingStatus.CANCELLED),
    (BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
    (BookingStatus.CONFIRMED, BookingStatus.NO_SHOW),
    (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
])
def test_allowed_status_transitions(db, current, new) -> None:
    salon = seed_salon(db)
    booking = add_booking(db, salon, utc(2026, 10, 20, 8, 0), status=current)

    updated = change_status(db, booking, new, now=NOW, cancelled_by='salon')

    assert updated.status == new
    if new == BookingStatus.CANCELLED:
        assert updated.cancelled_at == NOW
        assert updated.cancelled_by == 'salon'
    else:
        assert updated.cancelled_at is None


@pytest.mark.parametrize('current, new', [
    (BookingStatus.PENDING, BookingStatus.COMPLETED),
    (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
    (BookingStatus.COMPLETED, BookingStatus.CANCELLED),
    (BookingStatus.NO_SHOW, BookingStatus.CONFIRMED),
])
def test_forbidden_status_transitions(db, current, new) -> None:
    salon = seed_salon(db)
    booking = add_booking(db, salon, utc(2026, 10, 20, 8, 0), status=current)

    with pytest.raises(InvalidStatusTransition):
        change_status(db, booking, new, now=NOW)

    db.refresh(booking)
    assert booking.status == current
