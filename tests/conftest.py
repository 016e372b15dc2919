import os
from datetime import date, datetime, time, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ.setdefault('REDIS_URL', 'redis://localhost:6379/15')
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BACKGROUND_TASKS_ENABLED'] = 'false'
os.environ['TURNSTILE_SECRET_KEY'] = ''
os.environ['RESEND_API_KEY'] = ''
os.environ['CRON_SECRET'] = 'test-cron-secret'
os.environ['SLOT_STEP_MINUTES'] = ''

from salon_booking.models import (  # noqa: E402
    Base,
    BlockedDates,
    BookingStatus,
    Bookings,
    ServiceVariants,
    Services,
    Staff,
    StaffSchedule,
    Tenants,
    WorkingHours,
)

BERLIN = 'Europe/Berlin'


class FakePipeline:
    def __init__(self, redis: 'FakeRedis') -> None:
        self.redis = redis
        self.ops: list[tuple[str, str]] = []

    def incr(self, key: str) -> None:
        self.ops.append(('incr', key))

    def ttl(self, key: str) -> None:
        self.ops.append(('ttl', key))

    def execute(self) -> list[int]:
        results = []
        for op, key in self.ops:
            if op == 'incr':
                self.redis.values[key] = int(self.redis.values.get(key, 0)) + 1
                results.append(self.redis.values[key])
            else:
                results.append(self.redis.ttls.get(key, -1))
        return results


class FakeRedis:
    """In-memory stand-in recording what the app pushes to Redis."""

    def __init__(self) -> None:
        self.lists: dict[str, list[str]] = {}
        self.values: dict[str, object] = {}
        self.ttls: dict[str, int] = {}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError('redis unavailable')

    def rpush(self, key: str, value: str) -> int:
        self._check()
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    def pipeline(self) -> FakePipeline:
        self._check()
        return FakePipeline(self)

    def expire(self, key: str, seconds: int) -> None:
        self.ttls[key] = seconds

    def get(self, key: str):
        self._check()
        return self.values.get(key)

    def setex(self, key: str, seconds: int, value: str) -> None:
        self._check()
        self.values[key] = value
        self.ttls[key] = seconds

    def ping(self) -> bool:
        self._check()
        return True


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    from salon_booking import main
    from salon_booking.middleware import rate_limit
    from salon_booking.services import captcha, events

    redis = FakeRedis()
    for module in (events, rate_limit, captcha, main):
        monkeypatch.setattr(module, 'redis_client', redis)
    return redis


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, 'connect')
    def _fk_on(dbapi_connection, _):
        dbapi_connection.execute('PRAGMA foreign_keys=ON')

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient

    from salon_booking.database import get_db
    from salon_booking.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    # Not entered as a context manager: the lifespan (background loops) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()


# ── Seed helpers ─────────────────────────────────────────────────────────


def seed_salon(
    db,
    slug: str = 'salon-a',
    tz: str = BERLIN,
    open_time: time = time(9, 0),
    close_time: time = time(18, 0),
    closed_days: tuple[int, ...] = (),
    staff_start: time | None = None,
    staff_end: time | None = None,
    break_start: time | None = None,
    break_end: time | None = None,
    staff_off_days: tuple[int, ...] = (),
    duration: int = 60,
    buffer_after: int = 0,
    price: int = 4500,
    min_advance_hours: int | None = None,
    max_advance_days: int | None = None,
) -> SimpleNamespace:
    """Tenant open every day (except closed_days), one staff member, one service."""
    tenant = Tenants(slug=slug, name=f'Salon {slug}', timezone=tz, email=f'owner@{slug}.example')
    db.add(tenant)
    db.flush()

    for day in range(7):
        db.add(WorkingHours(
            tenant_id=tenant.id,
            day_of_week=day,
            open_time=open_time,
            close_time=close_time,
            is_open=day not in closed_days,
        ))

    staff = Staff(tenant_id=tenant.id, name='Anna')
    db.add(staff)
    db.flush()

    for day in range(7):
        db.add(StaffSchedule(
            staff_id=staff.id,
            day_of_week=day,
            start_time=staff_start or open_time,
            end_time=staff_end or close_time,
            break_start=break_start,
            break_end=break_end,
            is_working=day not in staff_off_days,
        ))

    service = Services(
        tenant_id=tenant.id,
        name='Haircut',
        duration=duration,
        price=price,
        buffer_after=buffer_after,
        min_advance_hours=min_advance_hours,
        max_advance_days=max_advance_days,
    )
    db.add(service)
    db.commit()

    return SimpleNamespace(tenant=tenant, staff=staff, service=service)


def add_variant(db, service, duration: int, price: int = 6000, name: str = 'Long hair') -> ServiceVariants:
    variant = ServiceVariants(service_id=service.id, name=name, duration=duration, price=price)
    db.add(variant)
    db.commit()
    return variant


def add_blocked_date(db, tenant, day: date, staff=None) -> None:
    db.add(BlockedDates(tenant_id=tenant.id, staff_id=staff.id if staff else None, blocked_date=day))
    db.commit()


def add_booking(
    db,
    salon: SimpleNamespace,
    start: datetime,
    minutes: int = 60,
    status: str = BookingStatus.CONFIRMED,
    **fields,
) -> Bookings:
    values = dict(
        tenant_id=salon.tenant.id,
        service_id=salon.service.id,
        staff_id=salon.staff.id,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        status=status,
        duration_at_booking=minutes,
        price_at_booking=salon.service.price,
        client_name='Existing Client',
        client_phone='+49301234567',
    )
    values.update(fields)
    booking = Bookings(**values)
    db.add(booking)
    db.commit()
    return booking


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def future_weekday(days_ahead: int = 7, weekday: int = 1) -> date:
    """A date at least days_ahead from today that falls on weekday (0 = Monday)."""
    day = date.today() + timedelta(days=days_ahead)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day
