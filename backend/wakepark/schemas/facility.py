# backend/wakepark/schemas/facility.py
"""Facility configuration and reporting schemas."""

from datetime import date, time
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, model_validator

from ..core.enums import LeadTimeMode
from ._strict_base import StrictModel


class OperatingHoursDay(StrictModel):
    """Opening hours for one canonical local weekday (0 = Monday)."""

    day_index: int = Field(ge=0, le=6)
    open_time: time
    close_time: time
    is_closed: bool = False

    @model_validator(mode="after")
    def validate_hours(self) -> "OperatingHoursDay":
        if not self.is_closed and self.close_time <= self.open_time:
            raise ValueError("close_time must be after open_time on open days")
        return self


class LeadTimeCheck(StrictModel):
    """Outcome of a lead-time check for one local date."""

    allowed: bool
    mode: LeadTimeMode
    lead_time_days: int = 0
    reason: Optional[str] = None
    overridden_by: Optional[str] = None


class DayCount(StrictModel):
    day: str
    count: int
    percentage: float


class TimeCount(StrictModel):
    time: str
    count: int
    percentage: float


class BookingStats(StrictModel):
    """Aggregates over the bookings created in ``[start_date, end_date]``."""

    start_date: date
    end_date: date
    total_bookings: int = 0
    booked_slots: int = 0
    booking_rate: float = 0.0
    forecasted_income: Decimal = Decimal("0")
    avg_session_minutes: float = 0.0
    bookings_by_day: List[DayCount] = Field(default_factory=list)
    popular_start_times: List[TimeCount] = Field(default_factory=list)
