# backend/salon_booking/schemas/catalog.py
"""
Pydantic schemas for the public service and staff listings.
"""

from pydantic import BaseModel


class VariantRead(BaseModel):
    id: int
    name: str
    duration: int
    price: int

    model_config = {"from_attributes": True}


class ServiceRead(BaseModel):
    id: int
    name: str
    duration: int
    price: int
    variants: list[VariantRead] = []

    model_config = {"from_attributes": True}


class ServicesResponse(BaseModel):
    services: list[ServiceRead]


class StaffRead(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class StaffListResponse(BaseModel):
    staff: list[StaffRead]
