# backend/wakepark/models/facility.py
"""
Facility configuration tables: operating hours, pricing and lead time.

Operating hours are keyed by the canonical local day index (0 = Monday), the
same index the grid uses, so no weekday convention conversion happens anywhere
downstream.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Numeric, String, Time

from ..core.enums import LeadTimeMode
from ..database import Base
from .types import UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OperatingHours(Base):
    """Opening hours for one local weekday."""

    __tablename__ = "operating_hours"

    id = Column(Integer, primary_key=True, autoincrement=True)
    day_index = Column(Integer, nullable=False, unique=True)
    open_time = Column(Time, nullable=False)
    close_time = Column(Time, nullable=False)
    is_closed = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("day_index >= 0 AND day_index <= 6", name="ck_operating_hours_day_index"),
    )


class PricingRule(Base):
    """
    Named price for a 30-minute slot.

    ``standard`` applies by default. ``peak`` applies inside its
    ``start_time``/``end_time`` window on weekdays, and all day on weekends
    when ``applies_to_weekends`` is set.
    """

    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(40), nullable=False, unique=True)
    price = Column(Numeric(10, 2), nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    applies_to_weekends = Column(Boolean, nullable=False, default=False)


class LeadTimeSettings(Base):
    """Single-row table holding the online booking lead-time policy."""

    __tablename__ = "lead_time_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restriction_mode = Column(String(20), nullable=False, default=LeadTimeMode.OFF.value)
    lead_time_days = Column(Integer, nullable=False, default=0)
    operator_on_site = Column(Boolean, nullable=False, default=False)
    updated_at = Column(UTCDateTime(), nullable=True, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint("lead_time_days >= 0", name="ck_lead_time_days_non_negative"),
    )
