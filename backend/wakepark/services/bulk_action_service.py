# backend/wakepark/services/bulk_action_service.py
"""
Bulk Action Service for the wakepark engine.

Applies one operator action to a batch of grid cells:
- block: available -> blocked (reason required)
- make-available: blocked -> available, or unallocated -> available (row created)
- create-booking: available / unallocated -> booked under one new booking
- clear: delete rows; a booked target takes its whole booking with it

Ephemeral targets (negative ids) are materialized from their own recorded
start/end, never from a recomputed grid position. The batch is validated in
full before anything is written and runs in one transaction, so one bad
target rejects the whole batch.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import BulkAction, SlotAction, SlotStatus
from ..core.exceptions import NotFoundException, SlotStateException, ValidationException
from ..core.timezone_service import TimezoneService
from ..domain import slot_state
from ..models.slot import Slot
from ..repositories.factory import RepositoryFactory
from ..schemas.slot import SLOT_LENGTH, BulkActionRequest, BulkActionResult, SlotTarget, TimeWindow
from .base import BaseService
from .booking_service import BookingService
from .conflict_checker import ConflictChecker
from .pricing_service import PricingService
from .slot_grid import SLOT_MINUTES

logger = logging.getLogger(__name__)


@dataclass
class _ResolvedTarget:
    """A validated target: either a loaded row or a cell to materialize."""

    target: SlotTarget
    slot: Optional[Slot] = None
    materialize_price: Optional[Decimal] = None

    @property
    def is_ephemeral(self) -> bool:
        return self.slot is None

    @property
    def status(self) -> SlotStatus:
        return SlotStatus.UNALLOCATED if self.slot is None else self.slot.slot_status

    @property
    def start_time(self) -> datetime:
        return self.slot.start_time if self.slot is not None else self.target.start_time

    @property
    def end_time(self) -> datetime:
        return self.slot.end_time if self.slot is not None else self.target.end_time


class BulkActionService(BaseService):
    """All-or-nothing operator overrides across a batch of cells."""

    def __init__(
        self,
        db: Session,
        conflict_checker: Optional[ConflictChecker] = None,
        booking_service: Optional[BookingService] = None,
        pricing_service: Optional[PricingService] = None,
        timezone_str: Optional[str] = None,
    ):
        super().__init__(db)
        self.timezone_str = timezone_str or settings.facility_timezone
        self.logger = logging.getLogger(__name__)
        self.slot_repository = RepositoryFactory.create_slot_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, self.slot_repository)
        self.booking_service = booking_service or BookingService(
            db, conflict_checker=self.conflict_checker, timezone_str=self.timezone_str
        )
        self.pricing_service = pricing_service or PricingService(db, timezone_str=self.timezone_str)

    @BaseService.measure_operation("process_bulk_action")
    def process(self, request: BulkActionRequest) -> BulkActionResult:
        """
        Validate every target, then apply the action in one transaction.

        Raises:
            ValidationException: empty batch, duplicate targets, malformed or off-grid cells
            NotFoundException: a persisted id does not exist
            SlotStateException: a target fails its lifecycle precondition
            BookingConflictException: create-booking overlaps a booking
        """
        self.log_operation(
            "process_bulk_action", action=request.action.value, targets=len(request.targets)
        )

        self._validate_request(request)
        resolved = self._resolve_targets(request.targets)
        self._validate_transitions(request, resolved)

        if request.action is BulkAction.CREATE_BOOKING:
            windows = [TimeWindow(start_time=r.start_time, end_time=r.end_time) for r in resolved]
            self.conflict_checker.ensure_no_conflicts(windows, source="bulk")

        with self.transaction():
            result = self._apply(request, resolved)

        self.booking_service.cache.invalidate(*result.deleted_booking_references)
        if result.booking_reference:
            self.booking_service.cache.invalidate(result.booking_reference)

        self.logger.info(
            f"Bulk {request.action.value} applied to {len(resolved)} targets",
            extra={
                "created_slots": len(result.created_slot_ids),
                "deleted_slots": len(result.deleted_slot_ids),
            },
        )
        return result

    # Validation

    def _validate_request(self, request: BulkActionRequest) -> None:
        if not request.targets:
            raise ValidationException("At least one slot must be selected", code="EMPTY_BATCH")

        ids = [target.id for target in request.targets]
        if len(set(ids)) != len(ids):
            raise ValidationException("Each slot may only be targeted once", code="DUPLICATE_TARGET")

        for target in request.targets:
            if not target.is_ephemeral:
                continue
            if target.start_time is None or target.end_time is None:
                raise ValidationException(
                    f"Unallocated cell {target.id} must carry its start and end time",
                    details={"slot_id": target.id},
                )
            if target.end_time - target.start_time != SLOT_LENGTH:
                raise ValidationException(
                    f"Unallocated cell {target.id} must be exactly 30 minutes long",
                    details={"slot_id": target.id},
                )
            _, wall = TimezoneService.to_local_wall(target.start_time, self.timezone_str)
            if wall.minute % SLOT_MINUTES or wall.second or wall.microsecond:
                raise ValidationException(
                    f"Unallocated cell {target.id} starts at {wall.strftime('%H:%M:%S')}, "
                    "which is not on the 30-minute grid",
                    code="OFF_GRID_TARGET",
                    details={"slot_id": target.id, "start_time": target.start_time.isoformat()},
                )

        starts = [target.start_time for target in request.targets if target.is_ephemeral]
        if len(set(starts)) != len(starts):
            raise ValidationException(
                "Two unallocated targets describe the same cell", code="DUPLICATE_TARGET"
            )

        if request.action is BulkAction.CREATE_BOOKING and request.customer is None:
            raise ValidationException("Customer details are required to create a booking")

    def _resolve_targets(self, targets: List[SlotTarget]) -> List[_ResolvedTarget]:
        persisted_ids = [target.id for target in targets if not target.is_ephemeral]
        rows = {slot.id: slot for slot in self.slot_repository.get_by_ids(persisted_ids)}

        resolved = []
        for target in targets:
            if target.is_ephemeral:
                existing = self.slot_repository.find_overlapping(target.start_time, target.end_time)
                if existing is not None:
                    raise SlotStateException(
                        f"Cell {target.id} is no longer unallocated: slot {existing.id} now "
                        f"occupies it",
                        slot_id=target.id,
                        current_status=existing.status,
                    )
                resolved.append(_ResolvedTarget(target=target))
                continue

            slot = rows.get(target.id)
            if slot is None:
                raise NotFoundException(
                    f"Slot {target.id} not found",
                    code="SLOT_NOT_FOUND",
                    details={"slot_id": target.id},
                )
            resolved.append(_ResolvedTarget(target=target, slot=slot))
        return resolved

    def _materialize_price(self, request: BulkActionRequest, item: _ResolvedTarget) -> Decimal:
        if request.price is not None:
            return request.price
        return self.pricing_service.price_for(item.start_time)

    def _validate_transitions(
        self, request: BulkActionRequest, resolved: List[_ResolvedTarget]
    ) -> None:
        action = request.action.slot_action
        for item in resolved:
            context: Dict[str, Any] = {"slot_id": item.target.id}

            if item.is_ephemeral and action in (SlotAction.BLOCK, SlotAction.CREATE_BOOKING):
                # Materialize first, then apply the action to the new row.
                item.materialize_price = self._materialize_price(request, item)
                slot_state.transition(
                    SlotStatus.UNALLOCATED,
                    SlotAction.MAKE_AVAILABLE,
                    price=item.materialize_price,
                    start_time=item.start_time,
                    end_time=item.end_time,
                    **context,
                )
                status = (
                    SlotStatus.UNALLOCATED
                    if action is SlotAction.CREATE_BOOKING
                    else SlotStatus.AVAILABLE
                )
            else:
                status = item.status
                if item.is_ephemeral and action is SlotAction.MAKE_AVAILABLE:
                    item.materialize_price = request.price

            if action is SlotAction.BLOCK:
                context["reason"] = request.reason
            elif action is SlotAction.MAKE_AVAILABLE:
                context.update(
                    price=request.price, start_time=item.start_time, end_time=item.end_time
                )

            slot_state.transition(status, action, **context)

    # Mutation

    def _materialize(self, resolved: List[_ResolvedTarget]) -> List[int]:
        pending = [item for item in resolved if item.is_ephemeral]
        if not pending:
            return []

        rows = self.slot_repository.bulk_create(
            [
                {
                    "start_time": item.target.start_time,
                    "end_time": item.target.end_time,
                    "price": item.materialize_price,
                    "status": SlotStatus.AVAILABLE.value,
                }
                for item in pending
            ]
        )
        for item, row in zip(pending, rows):
            item.slot = row
        self.logger.debug(f"Materialized {len(rows)} unallocated cells")
        return [row.id for row in rows]

    def _expect_all(self, changed: int, slot_ids: List[int], action: BulkAction) -> None:
        if changed != len(slot_ids):
            raise SlotStateException(
                f"Cannot {action.value}: {len(slot_ids) - changed} of {len(slot_ids)} slots "
                f"changed status while the action was being applied",
                action=action.value,
            )

    def _apply(self, request: BulkActionRequest, resolved: List[_ResolvedTarget]) -> BulkActionResult:
        action = request.action
        persisted_before = [item.slot.id for item in resolved if not item.is_ephemeral]

        if action is BulkAction.CLEAR:
            return self._apply_clear(resolved)

        created_ids = self._materialize(resolved)
        slot_ids = [item.slot.id for item in resolved]
        result = BulkActionResult(action=action, slot_ids=slot_ids, created_slot_ids=created_ids)

        if action is BulkAction.BLOCK:
            changed = self.slot_repository.block_available(slot_ids, request.reason.strip())
            self._expect_all(changed, slot_ids, action)
        elif action is BulkAction.MAKE_AVAILABLE:
            changed = self.slot_repository.release_blocked(persisted_before, request.price)
            self._expect_all(changed, persisted_before, action)
        elif action is BulkAction.CREATE_BOOKING:
            booking = self.booking_service.insert_booking(request.customer, slot_ids)
            result.booking_reference = booking.reference

        return result

    def _apply_clear(self, resolved: List[_ResolvedTarget]) -> BulkActionResult:
        target_ids = [item.slot.id for item in resolved]
        deleted: List[int] = []
        references: List[str] = []
        handled: Set[int] = set()

        for item in resolved:
            slot = item.slot
            if slot.id in handled:
                continue
            if slot.slot_status is SlotStatus.BOOKED:
                reference = slot.booking_reference
                # Booking row goes first, then every slot carrying its reference.
                removed = self.booking_service.remove_booking(reference, release_slots=False)
                references.append(reference)
                deleted.extend(removed)
                handled.update(removed)

        remaining = [slot_id for slot_id in target_ids if slot_id not in handled]
        self.slot_repository.delete_by_ids(remaining)
        deleted.extend(remaining)

        return BulkActionResult(
            action=BulkAction.CLEAR,
            slot_ids=target_ids,
            deleted_slot_ids=sorted(deleted),
            deleted_booking_references=references,
        )
