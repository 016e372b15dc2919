import asyncio
import json
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from salon_booking.services.notifications import consumer, delivery
from salon_booking.services.notifications.formatters import (
    build_messages,
    format_duration,
    format_price,
)

START = datetime(2026, 10, 20, 14, 0, tzinfo=ZoneInfo('Europe/Berlin'))


def snapshot(**overrides) -> dict:
    data = {
        'booking_id': 7,
        'status': 'confirmed',
        'timezone': 'Europe/Berlin',
        'salon_name': 'Salon A',
        'salon_email': 'owner@salon-a.example',
        'salon_phone': '+4930123456',
        'salon_address': 'Hauptstr. 1, Berlin',
        'service_name': 'Haircut',
        'staff_name': 'Anna',
        'client_name': 'Erika Musterfrau',
        'client_phone': '+491701234567',
        'client_email': 'erika@example.com',
        'start_local': START,
        'duration': 75,
        'price': 4550,
        'cancel_url': 'https://book.example/salon-a/cancel/abc',
        'reschedule_url': 'https://book.example/salon-a/reschedule/def',
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize('cents, expected', [
    (0, '0,00 €'),
    (4550, '45,50 €'),
    (123456, '1.234,56 €'),
])
def test_format_price(cents, expected) -> None:
    assert format_price(cents) == expected


@pytest.mark.parametrize('minutes, expected', [
    (45, '45 Min.'),
    (60, '1 Std.'),
    (75, '1 Std. 15 Min.'),
])
def test_format_duration(minutes, expected) -> None:
    assert format_duration(minutes) == expected


def test_created_event_mails_client_and_owner() -> None:
    client, owner = build_messages('booking_created', snapshot())

    assert client.to == 'erika@example.com'
    assert 'Dienstag, 20. Oktober 2026' in client.text
    assert 'Uhrzeit: 14:00' in client.text
    assert 'https://book.example/salon-a/reschedule/def' in client.text
    assert 'https://book.example/salon-a/cancel/abc' in client.text
    assert owner.to == 'owner@salon-a.example'
    assert 'Telefon: +491701234567' in owner.text


def test_client_without_email_only_notifies_owner() -> None:
    messages = build_messages('booking_cancelled', snapshot(client_email=None))

    assert [m.to for m in messages] == ['owner@salon-a.example']


def test_rescheduled_event_mentions_previous_time() -> None:
    old = datetime(2026, 10, 19, 10, 0, tzinfo=ZoneInfo('Europe/Berlin'))

    client, _ = build_messages('booking_rescheduled', snapshot(old_start_local=old))

    assert 'Bisher: Montag, 19. Oktober 2026, 10:00' in client.text
    assert 'reschedule' not in client.text


def test_reminder_goes_to_client_only() -> None:
    (message,) = build_messages('booking_reminder', snapshot())

    assert message.to == 'erika@example.com'
    assert message.subject == 'Erinnerung: Ihr Termin morgen bei Salon A'
    assert 'Uhrzeit: 14:00' in message.text
    assert 'https://book.example/salon-a/cancel/abc' in message.text


def test_reminder_without_client_email_builds_nothing() -> None:
    assert build_messages('booking_reminder', snapshot(client_email=None)) == []


def test_unknown_event_builds_nothing() -> None:
    assert build_messages('booking_completed', snapshot()) == []


def test_delivery_sends_every_message(monkeypatch) -> None:
    sent = []

    async def fake_send(message):
        sent.append(message)

    monkeypatch.setattr(delivery, 'load_booking_snapshot', lambda booking_id, tenant_id: snapshot())
    monkeypatch.setattr(delivery, 'send_email', fake_send)

    asyncio.run(delivery.process_event({
        'type': 'booking_rescheduled',
        'booking_id': 7,
        'tenant_id': 1,
        'old_start_time': '2026-10-19T08:00:00+00:00',
    }))

    assert [m.to for m in sent] == ['erika@example.com', 'owner@salon-a.example']
    assert 'Bisher: Montag, 19. Oktober 2026, 10:00' in sent[0].text


def test_delivery_skips_missing_booking(monkeypatch) -> None:
    sent = []

    async def fake_send(message):
        sent.append(message)

    monkeypatch.setattr(delivery, 'load_booking_snapshot', lambda booking_id, tenant_id: None)
    monkeypatch.setattr(delivery, 'send_email', fake_send)

    asyncio.run(delivery.process_event({'type': 'booking_created', 'booking_id': 7, 'tenant_id': 1}))

    assert sent == []


@pytest.mark.parametrize('status, expected', [
    ('confirmed', ['erika@example.com']),
    ('cancelled', []),
])
def test_reminder_only_for_confirmed_booking(monkeypatch, status, expected) -> None:
    sent = []

    async def fake_send(message):
        sent.append(message)

    monkeypatch.setattr(delivery, 'load_booking_snapshot', lambda booking_id, tenant_id: snapshot(status=status))
    monkeypatch.setattr(delivery, 'send_email', fake_send)

    asyncio.run(delivery.process_event({'type': 'booking_reminder', 'booking_id': 7, 'tenant_id': 1}))

    assert [m.to for m in sent] == expected


class FakeAsyncRedis:
    def __init__(self) -> None:
        self.lists: dict[str, list[str]] = {}

    async def rpush(self, key: str, value: str) -> None:
        self.lists.setdefault(key, []).append(value)


@pytest.mark.parametrize('attempt, queue', [
    (1, consumer.RETRY_QUEUE),
    (consumer.MAX_RETRIES, consumer.DEAD_QUEUE),
])
def test_failed_event_is_retried_then_dead_lettered(monkeypatch, attempt, queue) -> None:
    async def failing(data):
        raise RuntimeError('smtp down')

    monkeypatch.setattr(consumer, 'process_event', failing)
    r = FakeAsyncRedis()
    raw = json.dumps({'type': 'booking_created', 'booking_id': 7, 'tenant_id': 1, '_attempt': attempt})

    asyncio.run(consumer.process_event_safe(r, raw))

    (pushed,) = r.lists[queue]
    assert json.loads(pushed)['booking_id'] == 7


def test_malformed_event_goes_to_dead_letter() -> None:
    r = FakeAsyncRedis()

    asyncio.run(consumer.process_event_safe(r, '{not json'))

    assert r.lists[consumer.DEAD_QUEUE] == ['{not json']
