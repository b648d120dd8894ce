"""Dashboard statistics over a local date range."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from wakepark.core.enums import SlotStatus
from wakepark.core.exceptions import ValidationException
from wakepark.services.booking_stats_service import BookingStatsService

MONDAY = date(2025, 5, 19)
SUNDAY = date(2025, 5, 25)
TUESDAY = date(2025, 5, 20)
SATURDAY = date(2025, 5, 24)


@pytest.fixture
def service(db):
    return BookingStatsService(db, timezone_str="Europe/Riga")


@pytest.fixture
def week_of_bookings(make_booking, make_slot, local_instant):
    """
    Two bookings created this week, one created in April.

    WB-2505-0001: Tuesday 10:00 + 10:30 at 25, with equipment.
    WB-2505-0002: Saturday 10:00 at 35.
    WB-2504-0009: Tuesday 11:00, created before the range.
    Plus one available slot on Tuesday 12:00.
    """
    make_booking(
        "WB-2505-0001",
        equipment_rental=True,
        created_at=datetime(2025, 5, 19, 10, 0, tzinfo=timezone.utc),
    )
    make_booking("WB-2505-0002", created_at=datetime(2025, 5, 20, 8, 0, tzinfo=timezone.utc))
    make_booking("WB-2504-0009", created_at=datetime(2025, 4, 28, 8, 0, tzinfo=timezone.utc))

    make_slot(local_instant(TUESDAY, "10:00"), SlotStatus.BOOKED, "WB-2505-0001")
    make_slot(local_instant(TUESDAY, "10:30"), SlotStatus.BOOKED, "WB-2505-0001")
    make_slot(local_instant(SATURDAY, "10:00"), SlotStatus.BOOKED, "WB-2505-0002", price=Decimal("35"))
    make_slot(local_instant(TUESDAY, "11:00"), SlotStatus.BOOKED, "WB-2504-0009")
    make_slot(local_instant(TUESDAY, "12:00"))


def test_totals_and_income(service, week_of_bookings):
    stats = service.get_stats(MONDAY, SUNDAY)

    assert stats.total_bookings == 2
    assert stats.booked_slots == 3
    assert stats.forecasted_income == Decimal("115")
    assert stats.avg_session_minutes == 45.0


def test_booking_rate_counts_slots_starting_in_range(service, week_of_bookings):
    # Four of five persisted slots are booked, whoever booked them.
    assert service.get_stats(MONDAY, SUNDAY).booking_rate == 80.0


def test_breakdowns(service, week_of_bookings):
    stats = service.get_stats(MONDAY, SUNDAY)

    by_day = {entry.day: entry for entry in stats.bookings_by_day}
    assert len(stats.bookings_by_day) == 7
    assert by_day["Tuesday"].count == 2
    assert by_day["Tuesday"].percentage == 66.7
    assert by_day["Saturday"].count == 1
    assert by_day["Monday"].count == 0

    assert [(entry.time, entry.count, entry.percentage) for entry in stats.popular_start_times] == [
        ("10:00", 3, 100.0)
    ]


def test_empty_range(service):
    stats = service.get_stats(MONDAY, MONDAY)

    assert stats.total_bookings == 0
    assert stats.booking_rate == 0.0
    assert stats.forecasted_income == Decimal("0")
    assert stats.avg_session_minutes == 0.0
    assert stats.popular_start_times == []


def test_inverted_range(service):
    with pytest.raises(ValidationException):
        service.get_stats(SUNDAY, MONDAY)
