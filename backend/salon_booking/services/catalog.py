# backend/salon_booking/services/catalog.py
"""
Tenant-scoped lookups of the records the booking core reads.

Every query filters by tenant_id explicitly: a service, staff member or
variant id from another salon is reported as not found.
"""

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..errors import ServiceNotFound, StaffNotFound, TenantNotFound, VariantNotFound
from ..models import ServiceVariants, Services, Staff, Tenants


def get_tenant_by_slug(db: Session, slug: str) -> Tenants:
    tenant = (
        db.query(Tenants)
        .filter(Tenants.slug == slug, Tenants.is_active.is_(True))
        .first()
    )
    if not tenant:
        raise TenantNotFound()
    return tenant


def get_bookable_service(db: Session, tenant_id: int, service_id: int) -> Services:
    """Active service with online booking enabled."""
    service = (
        db.query(Services)
        .filter(
            Services.id == service_id,
            Services.tenant_id == tenant_id,
            Services.is_active.is_(True),
            Services.online_booking_enabled.is_(True),
        )
        .first()
    )
    if not service:
        raise ServiceNotFound()
    return service


def get_service(db: Session, tenant_id: int, service_id: int) -> Services | None:
    """Any service of the tenant, active or not (reschedule of old bookings)."""
    return (
        db.query(Services)
        .filter(Services.id == service_id, Services.tenant_id == tenant_id)
        .first()
    )


def get_variant(
    db: Session,
    service: Services,
    variant_id: int | None,
    active_only: bool = True,
) -> ServiceVariants | None:
    if variant_id is None:
        return None

    query = db.query(ServiceVariants).filter(
        ServiceVariants.id == variant_id,
        ServiceVariants.service_id == service.id,
    )
    if active_only:
        query = query.filter(ServiceVariants.is_active.is_(True))

    variant = query.first()
    if not variant:
        raise VariantNotFound()
    return variant


def get_staff(db: Session, tenant_id: int, staff_id: int) -> Staff:
    staff = (
        db.query(Staff)
        .filter(
            Staff.id == staff_id,
            Staff.tenant_id == tenant_id,
            Staff.is_active.is_(True),
        )
        .first()
    )
    if not staff:
        raise StaffNotFound()
    return staff


def effective_duration(service: Services, variant: ServiceVariants | None = None) -> int:
    """Variant duration is authoritative when a variant is chosen."""
    if variant is not None and variant.duration:
        return variant.duration
    return service.duration


def effective_price(service: Services, variant: ServiceVariants | None = None) -> int:
    if variant is not None:
        return variant.price
    return service.price


# ── Calendar lock ────────────────────────────────────────────────────────


def lock_staff_calendar(db: Session, tenant_id: int, staff_id: int) -> None:
    """
    Serialize writers of one staff member's calendar.

    The UPDATE takes a row lock on PostgreSQL and the database write lock on
    SQLite; it is held until the surrounding transaction ends. Occupancy must
    be read AFTER this call.
    """
    result = db.execute(
        update(Staff)
        .where(Staff.id == staff_id, Staff.tenant_id == tenant_id)
        .values(calendar_version=Staff.calendar_version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise StaffNotFound()


# ── Public listings ──────────────────────────────────────────────────────


def list_bookable_services(db: Session, tenant_id: int) -> list[Services]:
    return (
        db.query(Services)
        .filter(
            Services.tenant_id == tenant_id,
            Services.is_active.is_(True),
            Services.online_booking_enabled.is_(True),
        )
        .order_by(Services.id)
        .all()
    )


def active_variants(service: Services) -> list[ServiceVariants]:
    return sorted((v for v in service.variants if v.is_active), key=lambda v: v.id)


def list_active_staff(db: Session, tenant_id: int) -> list[Staff]:
    """Every active staff member performs every service of the salon."""
    return (
        db.query(Staff)
        .filter(Staff.tenant_id == tenant_id, Staff.is_active.is_(True))
        .order_by(Staff.id)
        .all()
    )
