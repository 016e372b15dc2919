# backend/salon_booking/routers/cancel.py
"""
Cancel link from the confirmation email.

GET  /widget/{slug}/cancel/{token} - booking + can_cancel / reason
POST /widget/{slug}/cancel/{token} - cancel (status → cancelled, by client)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..middleware.rate_limit import RateLimit
from ..schemas.cancel import CancelBookingRead, CancelInfoResponse, CancelResponse
from ..services.cancellation import cancel_booking, get_cancel_info
from ..services.catalog import get_tenant_by_slug


router = APIRouter(prefix="/widget/{slug}/cancel", tags=["cancel"])


@router.get(
    "/{token}",
    response_model=CancelInfoResponse,
    dependencies=[Depends(RateLimit("link_read"))],
)
def get_cancel(
    slug: str,
    token: str,
    db: Session = Depends(get_db),
):
    tenant = get_tenant_by_slug(db, slug)
    info = get_cancel_info(db, tenant, token)
    return CancelInfoResponse(
        booking=CancelBookingRead.model_validate(info.booking),
        can_cancel=info.can_cancel,
        reason=info.reason,
    )


@router.post(
    "/{token}",
    response_model=CancelResponse,
    dependencies=[Depends(RateLimit("cancel"))],
)
def post_cancel(
    slug: str,
    token: str,
    db: Session = Depends(get_db),
):
    tenant = get_tenant_by_slug(db, slug)
    booking = cancel_booking(db, tenant, token)
    return CancelResponse(booking=CancelBookingRead.model_validate(booking))
