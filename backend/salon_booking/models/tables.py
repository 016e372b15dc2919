from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Text,
    Time,
    UniqueConstraint,
    false,
    text,
    true,
)
from sqlalchemy.orm import declarative_base, relationship

from .types import UTCDateTime

Base = declarative_base()
metadata = Base.metadata


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"

    # Statuses that occupy the staff member's calendar
    ACTIVE = (PENDING, CONFIRMED)


class Tenants(Base):
    __tablename__ = 'tenants'

    id = Column(Integer, primary_key=True)
    slug = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    timezone = Column(Text, nullable=False, server_default=text("'Europe/Berlin'"), default="Europe/Berlin")
    email = Column(Text)
    phone = Column(Text)
    address = Column(Text)
    is_active = Column(Boolean, nullable=False, server_default=true(), default=True)
    created_at = Column(UTCDateTime, nullable=False, default=_utcnow)

    working_hours = relationship('WorkingHours', back_populates='tenant')
    staff = relationship('Staff', back_populates='tenant')
    services = relationship('Services', back_populates='tenant')


class WorkingHours(Base):
    __tablename__ = 'working_hours'
    __table_args__ = (
        UniqueConstraint('tenant_id', 'day_of_week', name='uq_working_hours_tenant_day'),
        CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_working_hours_day'),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Monday
    open_time = Column(Time, nullable=False)
    close_time = Column(Time, nullable=False)
    is_open = Column(Boolean, nullable=False, server_default=true(), default=True)

    tenant = relationship('Tenants', back_populates='working_hours')


class Staff(Base):
    __tablename__ = 'staff'

    id = Column(Integer, primary_key=True)
    tenant_id = Column(ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(Text, nullable=False)
    email = Column(Text)
    is_active = Column(Boolean, nullable=False, server_default=true(), default=True)
    # Bumped by every calendar writer; the UPDATE is the per-staff write lock.
    calendar_version = Column(Integer, nullable=False, server_default=text('0'), default=0)

    tenant = relationship('Tenants', back_populates='staff')
    schedule = relationship('StaffSchedule', back_populates='staff')


class StaffSchedule(Base):
    __tablename__ = 'staff_schedule'
    __table_args__ = (
        UniqueConstraint('staff_id', 'day_of_week', name='uq_staff_schedule_staff_day'),
        CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_staff_schedule_day'),
        CheckConstraint(
            '(break_start IS NULL AND break_end IS NULL) OR '
            '(break_start >= start_time AND break_end <= end_time AND break_start < break_end)',
            name='ck_staff_schedule_break_within_shift',
        ),
    )

    id = Column(Integer, primary_key=True)
    staff_id = Column(ForeignKey('staff.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    break_start = Column(Time)
    break_end = Column(Time)
    is_working = Column(Boolean, nullable=False, server_default=true(), default=True)

    staff = relationship('Staff', back_populates='schedule')


class BlockedDates(Base):
    __tablename__ = 'blocked_dates'
    __table_args__ = (
        Index('ix_blocked_dates_tenant_date', 'tenant_id', 'blocked_date'),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False)
    staff_id = Column(ForeignKey('staff.id', ondelete='CASCADE'))  # NULL = whole salon
    blocked_date = Column(Date, nullable=False)
    reason = Column(Text)


class Services(Base):
    __tablename__ = 'services'

    id = Column(Integer, primary_key=True)
    tenant_id = Column(ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(Text, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Integer, nullable=False, server_default=text('0'), default=0)  # cents
    buffer_after = Column(Integer, nullable=False, server_default=text('0'), default=0)
    min_advance_hours = Column(Integer)
    max_advance_days = Column(Integer)
    is_active = Column(Boolean, nullable=False, server_default=true(), default=True)
    online_booking_enabled = Column(Boolean, nullable=False, server_default=true(), default=True)

    tenant = relationship('Tenants', back_populates='services')
    variants = relationship('ServiceVariants', back_populates='service')


class ServiceVariants(Base):
    __tablename__ = 'service_variants'

    id = Column(Integer, primary_key=True)
    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(Text, nullable=False)
    duration = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False, server_default=text('0'), default=0)
    is_active = Column(Boolean, nullable=False, server_default=true(), default=True)

    service = relationship('Services', back_populates='variants')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no_show')",
            name='ck_bookings_status',
        ),
        Index('ix_bookings_staff_start', 'staff_id', 'start_time'),
        Index('ix_bookings_status_start', 'status', 'start_time'),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False, index=True)
    service_id = Column(ForeignKey('services.id'), nullable=False)
    variant_id = Column(ForeignKey('service_variants.id', ondelete='SET NULL'))
    staff_id = Column(ForeignKey('staff.id'), nullable=False)

    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)  # start + duration + buffer_after
    status = Column(Text, nullable=False, server_default=text("'pending'"), default=BookingStatus.PENDING)
    source = Column(Text, nullable=False, server_default=text("'widget'"), default="widget")

    duration_at_booking = Column(Integer, nullable=False)
    price_at_booking = Column(Integer, nullable=False)

    client_name = Column(Text, nullable=False)
    client_phone = Column(Text, nullable=False)
    client_email = Column(Text)
    notes = Column(Text)

    cancel_token = Column(Text, unique=True)
    cancelled_at = Column(UTCDateTime)
    cancelled_by = Column(Text)

    reschedule_token = Column(Text, unique=True)
    used_reschedule_token_hash = Column(Text, index=True)
    was_rescheduled = Column(Boolean, nullable=False, server_default=false(), default=False)
    original_start_time = Column(UTCDateTime)
    original_end_time = Column(UTCDateTime)
    rescheduled_at = Column(UTCDateTime)
    reminder_sent_at = Column(UTCDateTime)  # day-before reminder, set once

    created_at = Column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    tenant = relationship('Tenants')
    service = relationship('Services')
    variant = relationship('ServiceVariants')
    staff = relationship('Staff')


class SlotHolds(Base):
    __tablename__ = 'slot_holds'
    __table_args__ = (
        UniqueConstraint('staff_id', 'start_time', name='uq_slot_holds_staff_start'),
        Index('ix_slot_holds_staff_expires', 'staff_id', 'expires_at'),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'), nullable=False)
    variant_id = Column(ForeignKey('service_variants.id', ondelete='SET NULL'))
    staff_id = Column(ForeignKey('staff.id', ondelete='CASCADE'), nullable=False)

    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    session_token = Column(Text, nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=_utcnow)
