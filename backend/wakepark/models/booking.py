# backend/wakepark/models/booking.py
"""
Booking model for the wakepark engine.

A booking is a purchase of one or more slots under one customer and one
human-readable reference. The slots are not stored here: each booked slot
carries ``booking_reference`` pointing back at ``Booking.reference``.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Integer, String, Text

from ..core.enums import ExperienceLevel
from ..database import Base
from .types import UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(32), nullable=False, unique=True, index=True)

    # Customer contact
    customer_name = Column(String(120), nullable=False)
    phone_number = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)

    experience_level = Column(String(20), nullable=False, default=ExperienceLevel.BEGINNER.value)
    equipment_rental = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime(), nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return f"<Booking {self.reference} {self.customer_name!r}>"
