# backend/salon_booking/schemas/holds.py

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from ..services.slots.config import parse_time_str


class ReserveSlotRequest(BaseModel):
    service_id: int
    variant_id: Optional[int] = None
    staff_id: int
    date: date
    time: str = Field(description="Time in HH:MM format")

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        try:
            parse_time_str(v)
        except ValueError:
            raise ValueError("Invalid time format, expected HH:MM")
        return v


class HoldRead(BaseModel):
    id: int
    session_token: str
    expires_at: datetime
    start_time: datetime
    end_time: datetime

    model_config = {"from_attributes": True}


class ReserveSlotResponse(BaseModel):
    hold: HoldRead


class CancelHoldRequest(BaseModel):
    hold_id: int
    session_token: str = Field(min_length=1, max_length=200)
