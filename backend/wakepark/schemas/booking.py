# backend/wakepark/schemas/booking.py
"""Booking schemas for the wakepark engine."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from ..core.enums import ExperienceLevel
from ._strict_base import StrictModel
from .customer import CustomerDetails
from .slot import SlotView


class BookingCreate(CustomerDetails):
    """Customer booking request for a set of persisted available slots."""

    slot_ids: List[int] = Field(..., min_length=1)

    @field_validator("slot_ids")
    @classmethod
    def validate_slot_ids(cls, v: List[int]) -> List[int]:
        if any(slot_id <= 0 for slot_id in v):
            raise ValueError("customers can only book persisted slots")
        if len(set(v)) != len(v):
            raise ValueError("slot_ids must be unique")
        return v


class BookingResponse(StrictModel):
    id: int
    reference: str
    customer_name: str
    phone_number: str
    email: Optional[str] = None
    experience_level: ExperienceLevel
    equipment_rental: bool
    notes: Optional[str] = None
    created_at: datetime


class BookingRunSummary(StrictModel):
    """One contiguous run of slots under a booking reference."""

    reference: str
    slot_ids: List[int]
    start_time: datetime
    end_time: datetime
    slot_count: int
    label: str


class BookingDetails(StrictModel):
    """A booking with its slots, computed total and contiguous runs."""

    booking: BookingResponse
    slots: List[SlotView] = Field(default_factory=list)
    total_price: Decimal
    runs: List[BookingRunSummary] = Field(default_factory=list)
