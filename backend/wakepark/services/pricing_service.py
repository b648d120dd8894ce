# backend/wakepark/services/pricing_service.py
"""
Slot pricing.

``standard`` applies by default. ``peak`` applies inside its local time window
on weekdays and all day on weekends when ``applies_to_weekends`` is set.
Prices are whole units and never drop below the facility minimum.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import PricingRuleName
from ..core.timezone_service import TimezoneService
from ..models.facility import PricingRule
from ..repositories.factory import RepositoryFactory
from ..repositories.operating_hours_repository import PricingRuleRepository
from .base import BaseService

logger = logging.getLogger(__name__)

WEEKEND_DAY_INDEXES = frozenset({5, 6})


class PricingService(BaseService):
    def __init__(
        self,
        db: Session,
        repository: Optional[PricingRuleRepository] = None,
        timezone_str: Optional[str] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_pricing_rule_repository(db)
        self.timezone_str = timezone_str
        self._rules: Optional[Dict[str, PricingRule]] = None

    @property
    def rules(self) -> Dict[str, PricingRule]:
        if self._rules is None:
            self._rules = self.repository.get_rules()
        return self._rules

    def refresh(self) -> None:
        self._rules = None

    @staticmethod
    def normalize(price: Decimal, minimum: Optional[Decimal] = None) -> Decimal:
        """Round to whole units, then clamp to the facility minimum."""
        floor = settings.minimum_slot_price if minimum is None else minimum
        rounded = Decimal(str(price)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return max(rounded, Decimal(str(floor)))

    def _peak_applies(self, rule: PricingRule, start_utc: datetime) -> bool:
        local = TimezoneService.utc_to_local(start_utc, self.timezone_str)
        if local.weekday() in WEEKEND_DAY_INDEXES:
            return bool(rule.applies_to_weekends)
        if rule.start_time is None or rule.end_time is None:
            return False
        wall = local.time().replace(tzinfo=None)
        return rule.start_time <= wall < rule.end_time

    def price_for(self, start_utc: datetime) -> Decimal:
        """Price of the slot starting at ``start_utc``."""
        peak = self.rules.get(PricingRuleName.PEAK.value)
        if peak is not None and self._peak_applies(peak, start_utc):
            return self.normalize(peak.price)

        standard = self.rules.get(PricingRuleName.STANDARD.value)
        if standard is not None:
            return self.normalize(standard.price)

        return self.normalize(settings.minimum_slot_price)
