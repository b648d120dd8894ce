# backend/wakepark/services/availability_service.py
"""
Availability Service for the wakepark engine.

Entry point for the presentation layer: one local week of grid cells with
grouping positions already applied.
"""

from datetime import date, datetime
import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.timezone_service import TimezoneService
from ..domain.booking_grouping import BookingGroupingEngine
from ..repositories.factory import RepositoryFactory
from ..schemas.slot import WeekGrid
from .base import BaseService
from .pricing_service import PricingService
from .slot_grid import SlotGridGenerator

logger = logging.getLogger(__name__)


class AvailabilityService(BaseService):
    def __init__(
        self,
        db: Session,
        pricing_service: Optional[PricingService] = None,
        grouping_engine: Optional[BookingGroupingEngine] = None,
        timezone_str: Optional[str] = None,
    ):
        super().__init__(db)
        self.timezone_str = timezone_str or settings.facility_timezone
        self.slot_repository = RepositoryFactory.create_slot_repository(db)
        self.hours_repository = RepositoryFactory.create_operating_hours_repository(db)
        self.pricing_service = pricing_service or PricingService(db, timezone_str=self.timezone_str)
        self.grouping_engine = grouping_engine or BookingGroupingEngine(
            timezone_str=self.timezone_str
        )
        self.grid_generator = SlotGridGenerator(
            timezone_str=self.timezone_str, price_resolver=self.pricing_service.price_for
        )

    @BaseService.measure_operation("get_week_grid")
    def get_week_grid(self, week_anchor: Union[date, datetime]) -> WeekGrid:
        """
        Grid for the local Monday-start week containing ``week_anchor``.

        Persisted rows are fetched by the week's UTC bounds; booked rows get a
        first/middle/last position when they belong to a multi-slot run.
        """
        start_utc, end_utc = TimezoneService.week_bounds(week_anchor, self.timezone_str)
        slots = self.slot_repository.get_in_range(start_utc, end_utc)
        hours = self.hours_repository.get_week_table()
        positions = self.grouping_engine.positions(slots)

        grid = self.grid_generator.build_week_grid(week_anchor, slots, hours, positions)
        self.logger.debug(
            f"Built grid for week {grid.week_start}: {len(grid.cells)} cells, "
            f"{len(grid.persisted_slots())} persisted"
        )
        return grid
