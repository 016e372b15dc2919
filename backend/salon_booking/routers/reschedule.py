# backend/salon_booking/routers/reschedule.py
"""
Single-use reschedule link.

GET  /widget/{slug}/reschedule/{token}        - booking + eligibility (read only)
GET  /widget/{slug}/reschedule/{token}/slots  - bookable starts for a new date
POST /widget/{slug}/reschedule/{token}        - move the booking (captcha required)
"""

from datetime import date
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..middleware.audit import client_ip
from ..middleware.rate_limit import RateLimit
from ..schemas.reschedule import (
    RescheduleBookingRead,
    RescheduledBookingRead,
    RescheduleInfoResponse,
    RescheduleRequest,
    RescheduleResponse,
)
from ..schemas.slots import SlotsDayResponse
from ..services.captcha import require_captcha
from ..services.catalog import effective_duration, get_tenant_by_slug
from ..services.reschedule import get_reschedule_info, reschedule_booking, reschedule_slots
from ..services.slots.config import parse_time_str


router = APIRouter(prefix="/widget/{slug}/reschedule", tags=["reschedule"])


@router.get(
    "/{token}",
    response_model=RescheduleInfoResponse,
    dependencies=[Depends(RateLimit("link_read"))],
)
def get_reschedule(
    slug: str,
    token: str,
    db: Session = Depends(get_db),
):
    tenant = get_tenant_by_slug(db, slug)
    info = get_reschedule_info(db, tenant, token)
    booking = info.booking

    return RescheduleInfoResponse(
        booking=RescheduleBookingRead(
            id=booking.id,
            service_id=booking.service_id,
            service_name=info.service.name,
            variant_id=booking.variant_id,
            staff_id=booking.staff_id,
            staff_name=booking.staff.name,
            start_time=booking.start_time,
            end_time=booking.end_time,
            duration=effective_duration(info.service, info.variant),
            status=booking.status,
            was_rescheduled=booking.was_rescheduled,
        ),
        salon_name=tenant.name,
        timezone=tenant.timezone,
        can_reschedule=info.can_reschedule,
        reason=info.reason,
    )


@router.get(
    "/{token}/slots",
    response_model=SlotsDayResponse,
    dependencies=[Depends(RateLimit("slots"))],
)
def get_reschedule_slots(
    slug: str,
    token: str,
    target_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    tenant = get_tenant_by_slug(db, slug)
    slots = reschedule_slots(db, tenant, token, target_date)
    return SlotsDayResponse(date=target_date, slots=slots)


@router.post(
    "/{token}",
    response_model=RescheduleResponse,
    dependencies=[Depends(RateLimit("reschedule_write"))],
)
def post_reschedule(
    slug: str,
    token: str,
    data: RescheduleRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    require_captcha(data.captcha_token, client_ip(request))

    tenant = get_tenant_by_slug(db, slug)
    booking = reschedule_booking(
        db,
        tenant,
        token,
        new_date=data.date,
        new_time=parse_time_str(data.time),
    )

    return RescheduleResponse(booking=RescheduledBookingRead.model_validate(booking))
