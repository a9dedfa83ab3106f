"""Scheduling domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class BookingCreate(BaseModel):
    """Schema for a booking request. Times are HH:MM in the business time zone."""

    resource_id: int
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    client_ref: str = Field(..., min_length=1, max_length=255)
    service_ref: str = Field(..., min_length=1, max_length=255)
    sale_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("client_ref", "service_ref")
    @classmethod
    def strip_reference(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reference must not be blank")
        return v


class BookingResponse(BaseModel):
    appointment_id: int
    resource_id: int
    date: str
    start_time: str
    end_time: str
    status: str


class BlockCreate(BaseModel):
    """Schema for manually blocking part of a professional's day"""

    resource_id: int
    date: str
    start_time: str
    end_time: str
    reason: Optional[str] = Field(None, max_length=255)


class BlockResponse(BaseModel):
    block_id: int
    resource_id: int
    date: str
    start_time: str
    end_time: str


class StatusUpdate(BaseModel):
    status: str


class StatusResponse(BaseModel):
    appointment_id: int
    old_status: str
    status: str


class SlotItem(BaseModel):
    resource_id: int
    date: str
    start_time: str
    end_time: str


class SlotsResponse(BaseModel):
    resource_id: int
    date: str
    granularity: int
    step: int
    slots: list[SlotItem]
