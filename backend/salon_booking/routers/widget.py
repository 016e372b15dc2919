# backend/salon_booking/routers/widget.py
"""
Public booking widget API, scoped by tenant slug.

GET  /widget/{slug}/services         - services open for online booking, with variants
GET  /widget/{slug}/staff            - active staff (optionally checked against a service)
GET  /widget/{slug}/availability     - dates without bookable slots in a range
GET  /widget/{slug}/slots            - bookable starts for a day
POST /widget/{slug}/reserve-slot     - hold a slot (SLOT_TAKEN on conflict)
POST /widget/{slug}/complete-booking - turn a hold into a booking (HOLD_EXPIRED)
POST /widget/{slug}/cancel-hold      - release a hold (always 204)

"now" is always server time; nothing in a request can move it.
"""

from datetime import date
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..middleware.rate_limit import RateLimit
from ..schemas.bookings import BookingRead, CompleteBookingRequest, CompleteBookingResponse
from ..schemas.catalog import ServiceRead, ServicesResponse, StaffListResponse, StaffRead, VariantRead
from ..schemas.holds import CancelHoldRequest, HoldRead, ReserveSlotRequest, ReserveSlotResponse
from ..schemas.slots import AvailabilityResponse, SlotsDayResponse
from ..services.bookings import complete_booking
from ..services.catalog import (
    active_variants,
    get_bookable_service,
    get_staff,
    get_tenant_by_slug,
    get_variant,
    list_active_staff,
    list_bookable_services,
)
from ..services.holds import cancel_hold, create_hold
from ..services.slots import compute_day_slots, find_unavailable_dates
from ..services.slots.config import parse_time_str


router = APIRouter(prefix="/widget/{slug}", tags=["widget"])


@router.get(
    "/services",
    response_model=ServicesResponse,
    dependencies=[Depends(RateLimit("slots"))],
)
def get_services(slug: str, db: Session = Depends(get_db)):
    """Services open for online booking, each with its active variants."""
    tenant = get_tenant_by_slug(db, slug)

    services = [
        ServiceRead(
            id=service.id,
            name=service.name,
            duration=service.duration,
            price=service.price,
            variants=[VariantRead.model_validate(v) for v in active_variants(service)],
        )
        for service in list_bookable_services(db, tenant.id)
    ]
    return ServicesResponse(services=services)


@router.get(
    "/staff",
    response_model=StaffListResponse,
    dependencies=[Depends(RateLimit("slots"))],
)
def get_staff_list(
    slug: str,
    service_id: int | None = None,
    db: Session = Depends(get_db),
):
    """Active staff; with service_id, 404 unless that service is bookable."""
    tenant = get_tenant_by_slug(db, slug)
    if service_id is not None:
        get_bookable_service(db, tenant.id, service_id)

    staff = [StaffRead.model_validate(s) for s in list_active_staff(db, tenant.id)]
    return StaffListResponse(staff=staff)


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    dependencies=[Depends(RateLimit("slots"))],
)
def get_availability(
    slug: str,
    service_id: int,
    staff_id: int,
    date_from: date = Query(..., alias="from"),
    date_to: date = Query(..., alias="to"),
    variant_id: int | None = None,
    db: Session = Depends(get_db),
):
    """Dates in [from, to] on which the day view would be empty."""
    tenant = get_tenant_by_slug(db, slug)
    service = get_bookable_service(db, tenant.id, service_id)
    variant = get_variant(db, service, variant_id)
    staff = get_staff(db, tenant.id, staff_id)

    unavailable = find_unavailable_dates(db, tenant, service, variant, staff.id, date_from, date_to)

    return AvailabilityResponse(date_from=date_from, date_to=date_to, unavailable_dates=unavailable)


@router.get(
    "/slots",
    response_model=SlotsDayResponse,
    dependencies=[Depends(RateLimit("slots"))],
)
def get_slots(
    slug: str,
    service_id: int,
    staff_id: int,
    target_date: date = Query(..., alias="date"),
    variant_id: int | None = None,
    db: Session = Depends(get_db),
):
    """Bookable starts for one day; empty outside the booking window."""
    tenant = get_tenant_by_slug(db, slug)
    service = get_bookable_service(db, tenant.id, service_id)
    variant = get_variant(db, service, variant_id)
    staff = get_staff(db, tenant.id, staff_id)

    slots = compute_day_slots(db, tenant, service, variant, staff.id, target_date)

    return SlotsDayResponse(date=target_date, slots=slots)


@router.post(
    "/reserve-slot",
    response_model=ReserveSlotResponse,
    dependencies=[Depends(RateLimit("reserve"))],
)
def reserve_slot(
    slug: str,
    data: ReserveSlotRequest,
    db: Session = Depends(get_db),
):
    tenant = get_tenant_by_slug(db, slug)

    hold = create_hold(
        db,
        tenant,
        service_id=data.service_id,
        staff_id=data.staff_id,
        target_date=data.date,
        start_time=parse_time_str(data.time),
        variant_id=data.variant_id,
    )

    return ReserveSlotResponse(hold=HoldRead.model_validate(hold))


@router.post(
    "/complete-booking",
    response_model=CompleteBookingResponse,
    dependencies=[Depends(RateLimit("complete"))],
)
def complete_booking_endpoint(
    slug: str,
    data: CompleteBookingRequest,
    db: Session = Depends(get_db),
):
    tenant = get_tenant_by_slug(db, slug)

    booking = complete_booking(
        db,
        tenant,
        hold_id=data.hold_id,
        session_token=data.session_token,
        client_name=data.client_name,
        client_phone=data.client_phone,
        client_email=data.client_email,
        notes=data.notes,
    )

    return CompleteBookingResponse(booking=BookingRead.model_validate(booking))


@router.post(
    "/cancel-hold",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(RateLimit("reserve"))],
)
def cancel_hold_endpoint(
    slug: str,
    data: CancelHoldRequest,
    db: Session = Depends(get_db),
):
    """Idempotent: unknown hold or foreign token is still 204."""
    tenant = get_tenant_by_slug(db, slug)
    cancel_hold(db, tenant, data.hold_id, data.session_token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
