# backend/salon_booking/schemas/reschedule.py

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from ..services.slots.config import parse_time_str


class RescheduleBookingRead(BaseModel):
    id: int
    service_id: int
    service_name: str
    variant_id: Optional[int] = None
    staff_id: int
    staff_name: str
    start_time: datetime
    end_time: datetime
    duration: int
    status: str
    was_rescheduled: bool


class RescheduleInfoResponse(BaseModel):
    booking: RescheduleBookingRead
    salon_name: str
    timezone: str
    can_reschedule: bool
    reason: Optional[str] = Field(None, description="already_rescheduled / wrong_status / too_late")


class RescheduleRequest(BaseModel):
    date: date
    time: str = Field(description="Time in HH:MM format")
    captcha_token: Optional[str] = None

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        try:
            parse_time_str(v)
        except ValueError:
            raise ValueError("Invalid time format, expected HH:MM")
        return v


class RescheduledBookingRead(BaseModel):
    id: int
    start_time: datetime
    end_time: datetime
    original_start_time: Optional[datetime] = None
    original_end_time: Optional[datetime] = None
    was_rescheduled: bool

    model_config = {"from_attributes": True}


class RescheduleResponse(BaseModel):
    booking: RescheduledBookingRead
