# backend/wakepark/repositories/booking_repository.py
"""
Booking Repository for the wakepark engine.

Bookings are looked up by their human-readable reference far more often than
by id; both are supported.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def get_by_reference(self, reference: str) -> Optional[Booking]:
        return self.find_one_by(reference=reference)

    def get_created_between(self, start: datetime, end: datetime) -> List[Booking]:
        """Bookings created in ``[start, end)``, oldest first."""
        query = (
            self._build_query()
            .filter(Booking.created_at >= start, Booking.created_at < end)
            .order_by(Booking.created_at)
        )
        return self._execute_query(query)

    def get_references_with_prefix(self, prefix: str) -> List[str]:
        """All references starting with ``prefix`` (used for sequence numbers)."""
        try:
            rows = (
                self.db.query(Booking.reference)
                .filter(Booking.reference.like(f"{prefix}%"))
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing references for {prefix}: {str(e)}")
            raise RepositoryException(f"Failed to list booking references: {str(e)}")
        return [row[0] for row in rows]

    def delete_by_reference(self, reference: str) -> bool:
        booking = self.get_by_reference(reference)
        if booking is None:
            return False
        return self.delete(booking.id)
