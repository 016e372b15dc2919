# backend/salon_booking/schemas/cancel.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CancelBookingRead(BaseModel):
    id: int
    start_time: datetime
    end_time: datetime
    status: str
    client_name: str
    cancelled_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CancelInfoResponse(BaseModel):
    booking: CancelBookingRead
    can_cancel: bool
    reason: Optional[str] = Field(None, description="already_cancelled / past_booking / wrong_status")


class CancelResponse(BaseModel):
    booking: CancelBookingRead
