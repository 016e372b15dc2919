# backend/salon_booking/schemas/bookings.py

import re
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class CompleteBookingRequest(BaseModel):
    hold_id: int
    session_token: str = Field(min_length=1, max_length=200)
    client_name: str = Field(min_length=2, max_length=100)
    client_phone: str = Field(description="Client phone number")
    client_email: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("client_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name is too short")
        return v

    @field_validator("client_phone")
    @classmethod
    def normalize_phone(cls, v: str) -> str:
        """Keep a leading + and digits only."""
        v = v.strip()
        digits = re.sub(r"\D", "", v)
        if not 6 <= len(digits) <= 15:
            raise ValueError("Invalid phone number")
        return ("+" if v.startswith("+") else "") + digits

    @field_validator("client_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip().lower()
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email address")
        return v


class BookingRead(BaseModel):
    id: int
    start_time: datetime
    end_time: datetime
    status: str

    model_config = {"from_attributes": True}


class CompleteBookingResponse(BaseModel):
    booking: BookingRead
