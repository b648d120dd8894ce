# backend/wakepark/services/booking_service.py
"""
Booking Service for the wakepark engine.

Handles the customer booking lifecycle:
- creation with an atomic claim of the requested slots
- details (slots, total price, contiguous runs) through a request-scoped cache
- cancellation (slots released) and operator deletion (slots released or
  deleted)

No slot may keep a ``booking_reference`` to a deleted booking, so every path
that removes a booking row first releases or deletes its slots.
"""

from datetime import datetime, timezone
from decimal import Decimal
import logging
import re
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import SlotAction
from ..core.exceptions import BookingConflictException, NotFoundException
from ..core.timezone_service import TimezoneService
from ..domain import slot_state
from ..domain.booking_grouping import BookingGroupingEngine
from ..models.booking import Booking
from ..models.slot import Slot
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import BookingCreate, BookingDetails, BookingResponse
from ..schemas.customer import CustomerDetails
from ..schemas.slot import TimeWindow
from .base import BaseService
from .conflict_checker import ConflictChecker
from .lead_time_service import LeadTimeService
from .slot_grid import to_slot_view

logger = logging.getLogger(__name__)


class BookingDetailsCache:
    """
    Booking details cached for the lifetime of one service instance.

    Owned by the service that fills it; every mutation of a booking
    invalidates that booking's entry explicitly.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, BookingDetails] = {}
        self.hits = 0
        self.misses = 0

    def get(self, reference: str) -> Optional[BookingDetails]:
        entry = self._entries.get(reference)
        if entry is None:
            self.misses += 1
        else:
            self.hits += 1
        return entry

    def put(self, reference: str, details: BookingDetails) -> None:
        self._entries[reference] = details

    def invalidate(self, *references: str) -> None:
        for reference in references:
            self._entries.pop(reference, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, reference: object) -> bool:
        return reference in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class BookingService(BaseService):
    """Customer booking lifecycle."""

    def __init__(
        self,
        db: Session,
        conflict_checker: Optional[ConflictChecker] = None,
        lead_time_service: Optional[LeadTimeService] = None,
        grouping_engine: Optional[BookingGroupingEngine] = None,
        cache: Optional[BookingDetailsCache] = None,
        timezone_str: Optional[str] = None,
    ):
        super().__init__(db)
        self.timezone_str = timezone_str or settings.facility_timezone
        self.slot_repository = RepositoryFactory.create_slot_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, self.slot_repository)
        self.lead_time_service = lead_time_service or LeadTimeService(db, self.timezone_str)
        self.grouping_engine = grouping_engine or BookingGroupingEngine(
            timezone_str=self.timezone_str
        )
        self.cache = cache or BookingDetailsCache()

    # References

    def generate_reference(self, now: Optional[datetime] = None) -> str:
        """
        Next ``PREFIX-YYMM-NNNN`` reference for the current local month.

        The sequence restarts every month. The unique constraint on
        ``bookings.reference`` backs this up under concurrent creation.
        """
        local_now = TimezoneService.utc_to_local(now or datetime.now(timezone.utc), self.timezone_str)
        prefix = f"{settings.booking_reference_prefix}-{local_now.strftime('%y%m')}-"
        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")

        highest = 0
        for reference in self.booking_repository.get_references_with_prefix(prefix):
            match = pattern.match(reference)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"{prefix}{highest + 1:04d}"

    # Creation

    def _load_slots(self, slot_ids: List[int]) -> List[Slot]:
        slots = self.slot_repository.get_by_ids(slot_ids)
        missing = sorted(set(slot_ids) - {slot.id for slot in slots})
        if missing:
            raise NotFoundException(
                f"Slot {missing[0]} not found", code="SLOT_NOT_FOUND", details={"slot_ids": missing}
            )
        return slots

    def insert_booking(
        self, customer: CustomerDetails, slot_ids: List[int], now: Optional[datetime] = None
    ) -> Booking:
        """
        Create the booking row and claim ``slot_ids`` in one conditional update.

        Caller owns the transaction. A shortfall in claimed rows means another
        actor took a slot first and raises ``BookingConflictException``.
        """
        reference = self.generate_reference(now)
        booking = self.booking_repository.create(
            reference=reference,
            customer_name=customer.customer_name,
            phone_number=customer.phone_number,
            email=customer.email,
            experience_level=customer.experience_level.value,
            equipment_rental=customer.equipment_rental,
            notes=customer.notes,
        )

        claimed = self.slot_repository.claim_available_for_booking(slot_ids, reference)
        if claimed != len(slot_ids):
            prometheus_metrics.record_booking_conflict("claim")
            self.logger.warning(
                f"Claimed {claimed} of {len(slot_ids)} slots for {reference}; rolling back"
            )
            raise BookingConflictException(
                conflicts=[{"slot_ids": sorted(slot_ids), "claimed": claimed}]
            )
        return booking

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        data: BookingCreate,
        now: Optional[datetime] = None,
        enforce_lead_time: bool = True,
    ) -> BookingDetails:
        """
        Book persisted available slots for a customer.

        Validate then commit: overlap, lifecycle and lead-time checks run
        before anything is written, and the write itself re-checks status.
        """
        self.log_operation("create_booking", slot_ids=data.slot_ids)
        slots = self._load_slots(data.slot_ids)

        windows = [TimeWindow(start_time=slot.start_time, end_time=slot.end_time) for slot in slots]
        self.conflict_checker.ensure_no_conflicts(windows, source="booking")

        for slot in slots:
            slot_state.transition(slot.slot_status, SlotAction.CREATE_BOOKING, slot_id=slot.id)

        if enforce_lead_time:
            self.lead_time_service.ensure_allowed(min(slot.start_time for slot in slots), now)

        with self.transaction():
            booking = self.insert_booking(data, data.slot_ids, now)

        self.cache.invalidate(booking.reference)
        self.logger.info(
            f"Booking {booking.reference} created for {len(slots)} slots",
            extra={"reference": booking.reference},
        )
        return self.get_booking_details(booking.reference)

    # Reads

    @BaseService.measure_operation("get_booking_details")
    def get_booking_details(self, reference: str) -> BookingDetails:
        cached = self.cache.get(reference)
        if cached is not None:
            return cached

        booking = self.booking_repository.get_by_reference(reference)
        if booking is None:
            raise NotFoundException(f"Booking {reference} not found", code="BOOKING_NOT_FOUND")

        slots = self.slot_repository.get_by_reference(reference)
        positions = self.grouping_engine.positions(slots)
        total = sum((slot.unit_price for slot in slots), Decimal("0"))
        if booking.equipment_rental:
            total += settings.equipment_rental_fee

        details = BookingDetails(
            booking=BookingResponse.model_validate(booking),
            slots=[to_slot_view(slot, positions.get(slot.id)) for slot in slots],
            total_price=total,
            runs=self.grouping_engine.summaries(slots, reference),
        )
        self.cache.put(reference, details)
        return details

    # Removal

    def remove_booking(self, reference: str, release_slots: bool) -> List[int]:
        """
        Release or delete the booking's slots, then delete the booking row.

        Returns the affected slot ids. Caller owns the transaction.
        """
        booking = self.booking_repository.get_by_reference(reference)
        if booking is None:
            raise NotFoundException(f"Booking {reference} not found", code="BOOKING_NOT_FOUND")

        slots = self.slot_repository.get_by_reference(reference)
        action = SlotAction.CANCEL_BOOKING if release_slots else SlotAction.CLEAR
        for slot in slots:
            slot_state.transition(
                slot.slot_status,
                action,
                slot_id=slot.id,
                booking_reference=slot.booking_reference,
                booking_exists=True,
            )

        slot_ids = [slot.id for slot in slots]
        if release_slots:
            self.slot_repository.release_booking(reference)
        else:
            self.slot_repository.delete_by_ids(slot_ids)
        self.booking_repository.delete(booking.id)
        self.cache.invalidate(reference)
        return slot_ids

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, reference: str) -> List[int]:
        """Cancel a booking; its slots return to ``available``."""
        with self.transaction():
            released = self.remove_booking(reference, release_slots=True)
        self.log_operation("cancel_booking", reference=reference, released=len(released))
        return released

    @BaseService.measure_operation("delete_booking")
    def delete_booking(self, reference: str, release_slots: bool = True) -> List[int]:
        """Operator deletion: release the slots, or delete the slot rows too."""
        with self.transaction():
            affected = self.remove_booking(reference, release_slots=release_slots)
        self.log_operation(
            "delete_booking",
            reference=reference,
            release_slots=release_slots,
            affected=len(affected),
        )
        return affected

