# backend/wakepark/domain/slot_state.py
"""
Slot lifecycle.

Legal moves:

    available / unallocated --create-booking--> booked
    booked      --cancel-booking--> available
    available   --block-----------> blocked
    blocked     --make-available--> available
    unallocated --make-available--> available   (row created from the cell)
    available / blocked / booked --clear--> unallocated   (row deleted)

Every (status, action) pair not listed is rejected with ``SlotStateException``.
Clearing a booked slot is legal here; deleting the owning booking first is the
caller's job. Overlap is not checked here either: callers run
``ConflictChecker.ensure_no_conflicts`` before writing a create-booking move, so an
overlap surfaces as ``BookingConflictException`` rather than a state error.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple, Union

from ..core.config import settings
from ..core.enums import SlotAction, SlotStatus
from ..core.exceptions import SlotStateException

Precondition = Callable[[Dict[str, Any]], Optional[str]]


@dataclass(frozen=True)
class TransitionRule:
    target: SlotStatus
    precondition: Optional[Precondition] = None


def _booking_exists(context: Dict[str, Any]) -> Optional[str]:
    if not context.get("booking_reference"):
        return "the slot has no booking to cancel"
    if context.get("booking_exists") is False:
        return f"booking {context['booking_reference']} does not exist"
    return None


def _reason_supplied(context: Dict[str, Any]) -> Optional[str]:
    reason = context.get("reason")
    if not reason or not str(reason).strip():
        return "a reason is required to block a slot"
    return None


def _price_at_least_minimum(context: Dict[str, Any]) -> Optional[str]:
    raw_price = context.get("price")
    if raw_price is None:
        return "a price is required to make a slot available"
    try:
        price = Decimal(str(raw_price))
    except InvalidOperation:
        return f"price {raw_price!r} is not a number"
    minimum = Decimal(str(context.get("minimum_price", settings.minimum_slot_price)))
    if price < minimum:
        return f"price {price} is below the facility minimum of {minimum}"
    return None


def _cell_bounds_supplied(context: Dict[str, Any]) -> Optional[str]:
    problem = _price_at_least_minimum(context)
    if problem:
        return problem
    start: Optional[datetime] = context.get("start_time")
    end: Optional[datetime] = context.get("end_time")
    if start is None or end is None:
        return "an unallocated cell needs its own start and end to be materialized"
    return None


_RULES: Dict[Tuple[SlotStatus, SlotAction], TransitionRule] = {
    (SlotStatus.AVAILABLE, SlotAction.CREATE_BOOKING): TransitionRule(SlotStatus.BOOKED),
    (SlotStatus.UNALLOCATED, SlotAction.CREATE_BOOKING): TransitionRule(SlotStatus.BOOKED),
    (SlotStatus.BOOKED, SlotAction.CANCEL_BOOKING): TransitionRule(
        SlotStatus.AVAILABLE, _booking_exists
    ),
    (SlotStatus.AVAILABLE, SlotAction.BLOCK): TransitionRule(SlotStatus.BLOCKED, _reason_supplied),
    (SlotStatus.BLOCKED, SlotAction.MAKE_AVAILABLE): TransitionRule(
        SlotStatus.AVAILABLE, _price_at_least_minimum
    ),
    (SlotStatus.UNALLOCATED, SlotAction.MAKE_AVAILABLE): TransitionRule(
        SlotStatus.AVAILABLE, _cell_bounds_supplied
    ),
    (SlotStatus.AVAILABLE, SlotAction.CLEAR): TransitionRule(SlotStatus.UNALLOCATED),
    (SlotStatus.BLOCKED, SlotAction.CLEAR): TransitionRule(SlotStatus.UNALLOCATED),
    (SlotStatus.BOOKED, SlotAction.CLEAR): TransitionRule(SlotStatus.UNALLOCATED),
}


def _coerce(
    status: Union[SlotStatus, str], action: Union[SlotAction, str], slot_id: Optional[int]
) -> Tuple[SlotStatus, SlotAction]:
    try:
        resolved_status = SlotStatus(status)
    except ValueError:
        raise SlotStateException(
            f"Unknown slot status {status!r}", slot_id=slot_id, current_status=str(status)
        )
    try:
        resolved_action = SlotAction(action)
    except ValueError:
        raise SlotStateException(
            f"Unknown slot action {action!r}",
            slot_id=slot_id,
            current_status=resolved_status.value,
            action=str(action),
        )
    return resolved_status, resolved_action


def is_allowed(status: Union[SlotStatus, str], action: Union[SlotAction, str]) -> bool:
    """Whether the pair is a legal move, ignoring preconditions."""
    try:
        return (SlotStatus(status), SlotAction(action)) in _RULES
    except ValueError:
        return False


def allowed_actions(status: Union[SlotStatus, str]) -> FrozenSet[SlotAction]:
    resolved = SlotStatus(status)
    return frozenset(action for (source, action) in _RULES if source is resolved)


def transition(
    status: Union[SlotStatus, str],
    action: Union[SlotAction, str],
    *,
    slot_id: Optional[int] = None,
    **context: Any,
) -> SlotStatus:
    """
    Validate one move and return the resulting status.

    ``UNALLOCATED`` as a result means the row is deleted. Raises
    ``SlotStateException`` naming ``slot_id`` if the move is illegal or its
    precondition fails.
    """
    resolved_status, resolved_action = _coerce(status, action, slot_id)
    rule = _RULES.get((resolved_status, resolved_action))
    label = f"slot {slot_id}" if slot_id is not None else "slot"

    if rule is None:
        raise SlotStateException(
            f"Cannot {resolved_action.value} {label}: it is {resolved_status.value}",
            slot_id=slot_id,
            current_status=resolved_status.value,
            action=resolved_action.value,
        )

    if rule.precondition is not None:
        problem = rule.precondition(context)
        if problem:
            raise SlotStateException(
                f"Cannot {resolved_action.value} {label}: {problem}",
                slot_id=slot_id,
                current_status=resolved_status.value,
                action=resolved_action.value,
            )

    return rule.target
