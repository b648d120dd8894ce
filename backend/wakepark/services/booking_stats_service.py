# backend/wakepark/services/booking_stats_service.py
"""
Booking statistics for the operator dashboard.

Totals, income and the day/time breakdowns cover bookings *created* in the
local date range. The booking rate compares booked slots with all persisted
slots *starting* in the range.
"""

from collections import Counter
from datetime import date, timedelta
from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ValidationException
from ..core.timezone_service import DAY_NAMES, TimezoneService
from ..repositories.factory import RepositoryFactory
from ..schemas.facility import BookingStats, DayCount, TimeCount
from .base import BaseService

logger = logging.getLogger(__name__)

SLOT_MINUTES = 30
POPULAR_TIMES_LIMIT = 5


def _percentage(part: int, whole: int) -> float:
    if not whole:
        return 0.0
    return round(part * 100 / whole, 1)


class BookingStatsService(BaseService):
    def __init__(self, db: Session, timezone_str: Optional[str] = None):
        super().__init__(db)
        self.timezone_str = timezone_str or settings.facility_timezone
        self.slot_repository = RepositoryFactory.create_slot_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("get_booking_stats")
    def get_stats(self, start_date: date, end_date: date) -> BookingStats:
        """Statistics for local dates ``start_date`` through ``end_date`` inclusive."""
        if end_date < start_date:
            raise ValidationException("end_date must not be before start_date")

        range_start, _ = TimezoneService.day_bounds(start_date, self.timezone_str)
        range_end, _ = TimezoneService.day_bounds(end_date + timedelta(days=1), self.timezone_str)

        bookings = self.booking_repository.get_created_between(range_start, range_end)
        slots = self.slot_repository.get_by_references([b.reference for b in bookings])

        income = sum((slot.unit_price for slot in slots), Decimal("0"))
        income += settings.equipment_rental_fee * sum(1 for b in bookings if b.equipment_rental)

        by_day: Counter = Counter()
        by_hour: Counter = Counter()
        for slot in slots:
            local = TimezoneService.utc_to_local(slot.start_time, self.timezone_str)
            by_day[TimezoneService.local_day_index(local)] += 1
            by_hour[local.hour] += 1

        persisted = self.slot_repository.count_in_range(range_start, range_end)
        booked = len(self.slot_repository.get_booked_in_range(range_start, range_end))

        popular = sorted(by_hour.items(), key=lambda item: (-item[1], item[0]))[:POPULAR_TIMES_LIMIT]

        return BookingStats(
            start_date=start_date,
            end_date=end_date,
            total_bookings=len(bookings),
            booked_slots=len(slots),
            booking_rate=_percentage(booked, persisted),
            forecasted_income=income,
            avg_session_minutes=(
                round(len(slots) * SLOT_MINUTES / len(bookings), 1) if bookings else 0.0
            ),
            bookings_by_day=[
                DayCount(
                    day=DAY_NAMES[day_index],
                    count=by_day[day_index],
                    percentage=_percentage(by_day[day_index], len(slots)),
                )
                for day_index in range(7)
            ],
            popular_start_times=[
                TimeCount(time=f"{hour:02d}:00", count=count, percentage=_percentage(count, len(slots)))
                for hour, count in popular
            ],
        )
