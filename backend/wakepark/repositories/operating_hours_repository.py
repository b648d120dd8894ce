# backend/wakepark/repositories/operating_hours_repository.py
"""
Operating hours, pricing rules and lead-time settings.

These tables are small and read on every grid request, so the accessors return
whole tables rather than single rows.
"""

from datetime import time
from decimal import Decimal
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import LeadTimeMode, PricingRuleName
from ..models.facility import LeadTimeSettings, OperatingHours, PricingRule
from ..schemas.facility import OperatingHoursDay
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

DEFAULT_OPEN = time(8, 0)
DEFAULT_CLOSE = time(22, 0)
DEFAULT_CLOSED_DAYS = frozenset({0})  # Monday

DEFAULT_PRICING = (
    {
        "name": PricingRuleName.STANDARD.value,
        "price": Decimal("25"),
        "start_time": None,
        "end_time": None,
        "applies_to_weekends": False,
    },
    {
        "name": PricingRuleName.PEAK.value,
        "price": Decimal("35"),
        "start_time": time(17, 0),
        "end_time": time(22, 0),
        "applies_to_weekends": True,
    },
)


class OperatingHoursRepository(BaseRepository[OperatingHours]):
    """Per-weekday opening hours keyed by canonical day index."""

    def __init__(self, db: Session):
        super().__init__(db, OperatingHours)
        self.logger = logging.getLogger(__name__)

    def get_week_table(self) -> Dict[int, OperatingHoursDay]:
        """
        Opening hours for all seven days, keyed 0 (Monday) .. 6 (Sunday).

        Days without a row are reported closed.
        """
        rows = self._execute_query(self._build_query().order_by(OperatingHours.day_index))
        table = {
            row.day_index: OperatingHoursDay(
                day_index=row.day_index,
                open_time=row.open_time,
                close_time=row.close_time,
                is_closed=row.is_closed,
            )
            for row in rows
        }
        for day_index in range(7):
            if day_index not in table:
                table[day_index] = OperatingHoursDay(
                    day_index=day_index,
                    open_time=DEFAULT_OPEN,
                    close_time=DEFAULT_CLOSE,
                    is_closed=True,
                )
        return table

    def get_for_day(self, day_index: int) -> Optional[OperatingHours]:
        return self.find_one_by(day_index=day_index)

    def ensure_defaults(self) -> List[OperatingHours]:
        """Seed missing weekdays with 08:00-22:00 (Monday closed)."""
        existing = {row.day_index for row in self._execute_query(self._build_query())}
        missing = [
            {
                "day_index": day_index,
                "open_time": DEFAULT_OPEN,
                "close_time": DEFAULT_CLOSE,
                "is_closed": day_index in DEFAULT_CLOSED_DAYS,
            }
            for day_index in range(7)
            if day_index not in existing
        ]
        if missing:
            self.logger.info(f"Seeding default operating hours for {len(missing)} days")
        return self.bulk_create(missing)


class PricingRuleRepository(BaseRepository[PricingRule]):
    def __init__(self, db: Session):
        super().__init__(db, PricingRule)

    def get_rules(self) -> Dict[str, PricingRule]:
        return {rule.name: rule for rule in self._execute_query(self._build_query())}

    def ensure_defaults(self) -> List[PricingRule]:
        existing = set(self.get_rules())
        missing = [dict(rule) for rule in DEFAULT_PRICING if rule["name"] not in existing]
        return self.bulk_create(missing)


class LeadTimeSettingsRepository(BaseRepository[LeadTimeSettings]):
    """Single-row lead-time policy."""

    def __init__(self, db: Session):
        super().__init__(db, LeadTimeSettings)

    def get_current(self) -> Optional[LeadTimeSettings]:
        rows = self._execute_query(self._build_query().order_by(LeadTimeSettings.id).limit(1))
        return rows[0] if rows else None

    def get_or_create(self) -> LeadTimeSettings:
        current = self.get_current()
        if current is not None:
            return current
        return self.create(
            restriction_mode=LeadTimeMode.OFF.value, lead_time_days=0, operator_on_site=False
        )
