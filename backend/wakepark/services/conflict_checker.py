# backend/wakepark/services/conflict_checker.py
"""
Conflict Checker Service for the wakepark engine.

A persisted slot conflicts with a candidate window ``[start, end)`` when it is
booked and ``slot.start < end AND slot.end > start``.

Two entry points:
- ``check_windows``: advisory pre-check. Returns conflicts and logs them.
- ``ensure_no_conflicts``: authoritative commit-time check. Raises
  ``BookingConflictException`` with every overlapping range; one conflict
  rejects the whole candidate set.
"""

from datetime import datetime
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.exceptions import BookingConflictException, ValidationException
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.slot_repository import SlotRepository
from ..schemas.slot import ConflictRange, TimeWindow
from .base import BaseService

logger = logging.getLogger(__name__)


class ConflictChecker(BaseService):
    """Overlap detection against persisted booked slots."""

    def __init__(self, db: Session, repository: Optional[SlotRepository] = None):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_slot_repository(db)

    @staticmethod
    def overlaps(
        existing_start: datetime, existing_end: datetime, start: datetime, end: datetime
    ) -> bool:
        return existing_start < end and existing_end > start

    @BaseService.measure_operation("find_conflicts")
    def find_conflicts(
        self, start: datetime, end: datetime, exclude_reference: Optional[str] = None
    ) -> List[ConflictRange]:
        """Booked slots overlapping ``[start, end)``."""
        if end <= start:
            raise ValidationException(
                "Window end must be after its start",
                details={"start_time": start.isoformat(), "end_time": end.isoformat()},
            )

        booked = self.repository.get_booked_overlapping(start, end, exclude_reference)
        return [
            ConflictRange(
                slot_id=slot.id,
                booking_reference=slot.booking_reference,
                start_time=slot.start_time,
                end_time=slot.end_time,
            )
            for slot in booked
            if self.overlaps(slot.start_time, slot.end_time, start, end)
        ]

    def _collect(
        self, windows: Iterable[TimeWindow], exclude_reference: Optional[str]
    ) -> List[ConflictRange]:
        seen = set()
        conflicts: List[ConflictRange] = []
        for window in windows:
            for conflict in self.find_conflicts(
                window.start_time, window.end_time, exclude_reference
            ):
                if conflict.slot_id in seen:
                    continue
                seen.add(conflict.slot_id)
                conflicts.append(conflict)
        conflicts.sort(key=lambda c: c.start_time)
        return conflicts

    @BaseService.measure_operation("check_windows")
    def check_windows(
        self, windows: Sequence[TimeWindow], exclude_reference: Optional[str] = None
    ) -> List[ConflictRange]:
        """
        Advisory pre-check.

        Never raises for conflicts; the result is informational and is
        re-validated at commit time.
        """
        conflicts = self._collect(windows, exclude_reference)
        if conflicts:
            self.logger.warning(
                f"Advisory check found {len(conflicts)} conflicts for {len(windows)} windows",
                extra={"conflict_slot_ids": [c.slot_id for c in conflicts]},
            )
        return conflicts

    @BaseService.measure_operation("ensure_no_conflicts")
    def ensure_no_conflicts(
        self,
        windows: Sequence[TimeWindow],
        exclude_reference: Optional[str] = None,
        source: str = "booking",
    ) -> None:
        """Authoritative check; raises ``BookingConflictException`` on any overlap."""
        if not windows:
            raise ValidationException("At least one window is required")

        conflicts = self._collect(windows, exclude_reference)
        if conflicts:
            prometheus_metrics.record_booking_conflict(source)
            self.logger.warning(
                f"Rejected {len(windows)} windows: {len(conflicts)} conflicts",
                extra={"source": source},
            )
            raise BookingConflictException(conflicts=self.serialize(conflicts))

    @staticmethod
    def serialize(conflicts: Iterable[ConflictRange]) -> List[Dict[str, Any]]:
        return [
            {
                "slot_id": conflict.slot_id,
                "booking_reference": conflict.booking_reference,
                "start_time": conflict.start_time.isoformat(),
                "end_time": conflict.end_time.isoformat(),
            }
            for conflict in conflicts
        ]
