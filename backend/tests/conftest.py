# backend/tests/conftest.py
"""
Pytest configuration for the wakepark engine.

Every test gets a fresh in-memory SQLite schema with the default operating
hours seeded (08:00-22:00, Monday closed). Pricing rules are opt-in through the
``pricing_rules`` fixture; without them every slot costs the facility minimum.
"""

import os
import sys

# Settings are read at import time; point them at memory BEFORE any wakepark import.
os.environ.setdefault("WAKEPARK_DATABASE_URL", "sqlite://")
os.environ.setdefault("WAKEPARK_ENVIRONMENT", "test")
os.environ.setdefault("WAKEPARK_FACILITY_TIMEZONE", "Europe/Riga")

# Add the backend directory to Python path so imports work
backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, backend_dir)

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wakepark.core.enums import ExperienceLevel, SlotStatus
from wakepark.core.timezone_service import TimezoneService
from wakepark.database import Base
from wakepark.models import Booking, Slot
from wakepark.repositories.operating_hours_repository import (
    OperatingHoursRepository,
    PricingRuleRepository,
)

TEST_DATABASE_URL = "sqlite://"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(test_engine, "connect")
def _enable_foreign_keys(dbapi_connection: Any, _: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine, expire_on_commit=False
)

# A Monday in May 2025; Riga is on EEST (UTC+3) for the whole week.
WEEK_START = date(2025, 5, 19)


@pytest.fixture
def db():
    """Fresh schema per test with default operating hours."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    OperatingHoursRepository(session).ensure_defaults()
    session.commit()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def pricing_rules(db: Session):
    """Seed standard (25) and peak (35) pricing."""
    rules = PricingRuleRepository(db).ensure_defaults()
    db.commit()
    return rules


@pytest.fixture
def local_instant():
    """Build the UTC instant of a facility wall time: ``local_instant(date, "10:00")``."""

    def _build(day: date, wall: str) -> datetime:
        hour, minute = (int(part) for part in wall.split(":"))
        return TimezoneService.local_to_utc(day, time(hour, minute), "Europe/Riga")

    return _build


@pytest.fixture
def make_slot(db: Session):
    """Persist (and commit) one 30-minute slot."""

    def _make(
        start: datetime,
        status: SlotStatus = SlotStatus.AVAILABLE,
        reference: Optional[str] = None,
        price: Decimal = Decimal("25"),
        slot_id: Optional[int] = None,
        block_reason: Optional[str] = None,
    ) -> Slot:
        slot = Slot(
            start_time=start,
            end_time=start + timedelta(minutes=30),
            price=price,
            status=SlotStatus(status).value,
            booking_reference=reference,
            block_reason=block_reason,
        )
        if slot_id is not None:
            slot.id = slot_id
        db.add(slot)
        db.commit()
        return slot

    return _make


@pytest.fixture
def make_booking(db: Session):
    """Persist (and commit) a booking row; slots are created separately."""

    def _make(
        reference: str,
        customer_name: str = "Anna Berzina",
        equipment_rental: bool = False,
        created_at: Optional[datetime] = None,
    ) -> Booking:
        booking = Booking(
            reference=reference,
            customer_name=customer_name,
            phone_number="37120000000",
            email="anna@example.com",
            experience_level=ExperienceLevel.BEGINNER.value,
            equipment_rental=equipment_rental,
            created_at=created_at or datetime.now(timezone.utc),
        )
        db.add(booking)
        db.commit()
        return booking

    return _make


@pytest.fixture
def customer_payload():
    return {
        "customer_name": "Janis Ozols",
        "phone_number": "+371 2000 0001",
        "email": "Janis@Example.com",
        "experience_level": "intermediate",
        "equipment_rental": False,
        "notes": None,
    }
