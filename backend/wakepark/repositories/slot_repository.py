# backend/wakepark/repositories/slot_repository.py
"""
Slot Repository for the wakepark engine.

Key responsibilities:
- Range queries over persisted slots (UTC, half-open)
- Overlap queries for the conflict checker
- Conditional status updates used as atomic check-and-set

Every status-changing method is a single ``UPDATE ... WHERE status = ...``
statement and returns the affected row count. Callers compare the count with
the number of ids they asked for; a shortfall means another actor changed a
row first.
"""

from datetime import datetime
from decimal import Decimal
import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import SlotStatus
from ..core.exceptions import RepositoryException
from ..models.slot import Slot
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SlotRepository(BaseRepository[Slot]):
    """Data access for persisted slots."""

    def __init__(self, db: Session):
        super().__init__(db, Slot)
        self.logger = logging.getLogger(__name__)

    # Retrieval

    def get_by_ids(self, slot_ids: Iterable[int]) -> List[Slot]:
        ids = list(slot_ids)
        if not ids:
            return []
        query = self._build_query().filter(Slot.id.in_(ids)).order_by(Slot.start_time)
        return self._execute_query(query)

    def get_in_range(self, start: datetime, end: datetime) -> List[Slot]:
        """Slots whose start lies in ``[start, end)``, ordered by start."""
        query = (
            self._build_query()
            .filter(Slot.start_time >= start, Slot.start_time < end)
            .order_by(Slot.start_time)
        )
        return self._execute_query(query)

    def get_booked_overlapping(
        self, start: datetime, end: datetime, exclude_reference: Optional[str] = None
    ) -> List[Slot]:
        """Booked slots with ``slot.start < end AND slot.end > start``."""
        query = self._build_query().filter(
            Slot.status == SlotStatus.BOOKED.value,
            Slot.start_time < end,
            Slot.end_time > start,
        )
        if exclude_reference:
            query = query.filter(Slot.booking_reference != exclude_reference)
        return self._execute_query(query.order_by(Slot.start_time))

    def get_booked_in_range(self, start: datetime, end: datetime) -> List[Slot]:
        query = (
            self._build_query()
            .filter(
                Slot.status == SlotStatus.BOOKED.value,
                Slot.start_time >= start,
                Slot.start_time < end,
            )
            .order_by(Slot.start_time)
        )
        return self._execute_query(query)

    def has_booked_between(self, start: datetime, end: datetime) -> bool:
        query = self._build_query().filter(
            Slot.status == SlotStatus.BOOKED.value,
            Slot.start_time >= start,
            Slot.start_time < end,
        )
        try:
            return query.first() is not None
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking booked slots: {str(e)}")
            raise RepositoryException(f"Failed to check booked slots: {str(e)}")

    def get_by_reference(self, reference: str) -> List[Slot]:
        query = (
            self._build_query().filter(Slot.booking_reference == reference).order_by(Slot.start_time)
        )
        return self._execute_query(query)

    def get_by_references(self, references: Sequence[str]) -> List[Slot]:
        if not references:
            return []
        query = (
            self._build_query()
            .filter(Slot.booking_reference.in_(list(references)))
            .order_by(Slot.start_time)
        )
        return self._execute_query(query)

    def find_overlapping(self, start: datetime, end: datetime) -> Optional[Slot]:
        """First row of any status with ``slot.start < end AND slot.end > start``."""
        query = (
            self._build_query()
            .filter(Slot.start_time < end, Slot.end_time > start)
            .order_by(Slot.start_time)
        )
        try:
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding slot overlapping {start}: {str(e)}")
            raise RepositoryException(f"Failed to find slot: {str(e)}")

    def get_existing_starts(self, start: datetime, end: datetime) -> List[datetime]:
        return [slot.start_time for slot in self.get_in_range(start, end)]

    # Conditional updates (check-and-set)

    def _conditional_update(self, slot_ids: Sequence[int], from_status: SlotStatus, values: dict) -> int:
        if not slot_ids:
            return 0
        try:
            return (
                self._build_query()
                .filter(Slot.id.in_(list(slot_ids)), Slot.status == from_status.value)
                .update(values, synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Conditional update from {from_status.value} failed: {str(e)}")
            raise RepositoryException(f"Failed to update slots: {str(e)}")

    def claim_available_for_booking(self, slot_ids: Sequence[int], reference: str) -> int:
        """Mark ``available`` slots as booked under ``reference``."""
        return self._conditional_update(
            slot_ids,
            SlotStatus.AVAILABLE,
            {
                Slot.status: SlotStatus.BOOKED.value,
                Slot.booking_reference: reference,
                Slot.block_reason: None,
            },
        )

    def block_available(self, slot_ids: Sequence[int], reason: str) -> int:
        return self._conditional_update(
            slot_ids,
            SlotStatus.AVAILABLE,
            {Slot.status: SlotStatus.BLOCKED.value, Slot.block_reason: reason},
        )

    def release_blocked(self, slot_ids: Sequence[int], price: Decimal) -> int:
        return self._conditional_update(
            slot_ids,
            SlotStatus.BLOCKED,
            {Slot.status: SlotStatus.AVAILABLE.value, Slot.block_reason: None, Slot.price: price},
        )

    def release_booking(self, reference: str) -> int:
        """Return every slot booked under ``reference`` to ``available``."""
        try:
            return (
                self._build_query()
                .filter(
                    Slot.booking_reference == reference,
                    Slot.status == SlotStatus.BOOKED.value,
                )
                .update(
                    {Slot.status: SlotStatus.AVAILABLE.value, Slot.booking_reference: None},
                    synchronize_session="fetch",
                )
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Releasing booking {reference} failed: {str(e)}")
            raise RepositoryException(f"Failed to release slots: {str(e)}")

    # Deletion

    def delete_by_ids(self, slot_ids: Sequence[int]) -> int:
        if not slot_ids:
            return 0
        try:
            return (
                self._build_query()
                .filter(Slot.id.in_(list(slot_ids)))
                .delete(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Deleting slots failed: {str(e)}")
            raise RepositoryException(f"Failed to delete slots: {str(e)}")

    def delete_by_reference(self, reference: str) -> List[int]:
        """Delete every row carrying ``reference``; returns the deleted ids."""
        slot_ids = [slot.id for slot in self.get_by_reference(reference)]
        self.delete_by_ids(slot_ids)
        return slot_ids

    def delete_unbooked_from(self, start: datetime) -> int:
        """Delete non-booked rows starting at or after ``start``."""
        try:
            return (
                self._build_query()
                .filter(Slot.start_time >= start, Slot.status != SlotStatus.BOOKED.value)
                .delete(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Deleting future slots failed: {str(e)}")
            raise RepositoryException(f"Failed to delete future slots: {str(e)}")

    def count_in_range(self, start: datetime, end: datetime) -> int:
        query = self._build_query().filter(Slot.start_time >= start, Slot.start_time < end)
        try:
            return query.count()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting slots: {str(e)}")
            raise RepositoryException(f"Failed to count slots: {str(e)}")
