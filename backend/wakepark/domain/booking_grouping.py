# backend/wakepark/domain/booking_grouping.py
"""
Reconstructs which slots were purchased together.

Bookings do not store a span; their slots are flat rows sharing a
``booking_reference``. Two slots of the same reference are adjacent iff their
starts differ by exactly one slot length, and each connected component of that
relation is one continuous run. Runs drive the first/middle/last styling of the
grid and the "3 slots, starting Friday 14:00" summaries.
"""

from collections import OrderedDict, defaultdict
from datetime import datetime, timedelta
import logging
from typing import Dict, Hashable, List, Optional, Protocol, Sequence, Set, Tuple

from ..core.enums import SlotPosition
from ..core.timezone_service import TimezoneService
from ..schemas.booking import BookingRunSummary

logger = logging.getLogger(__name__)

SLOT_STEP = timedelta(minutes=30)

Revision = Tuple[Tuple[int, datetime, Optional[str]], ...]


class GroupableSlot(Protocol):
    id: int
    start_time: datetime
    end_time: datetime
    booking_reference: Optional[str]


def slot_set_revision(slots: Sequence[GroupableSlot]) -> Revision:
    """Order-independent identity of a slot set as far as grouping cares."""
    return tuple(sorted((slot.id, slot.start_time, slot.booking_reference) for slot in slots))


class SlotAdjacencyGraph:
    """
    Nodes are slot ids, edges join same-reference slots exactly 30 minutes apart.

    Slots without a reference are not part of the graph.
    """

    def __init__(self, slots: Sequence[GroupableSlot]):
        self._slots: Dict[int, GroupableSlot] = {}
        self._edges: Dict[int, Set[int]] = {}
        self._component_cache: Dict[int, Tuple[int, ...]] = {}

        by_reference: Dict[str, Dict[datetime, List[int]]] = defaultdict(lambda: defaultdict(list))
        for slot in slots:
            if not slot.booking_reference:
                continue
            self._slots[slot.id] = slot
            self._edges[slot.id] = set()
            by_reference[slot.booking_reference][slot.start_time].append(slot.id)

        for starts in by_reference.values():
            for start, ids in starts.items():
                for neighbour in starts.get(start + SLOT_STEP, ()):
                    for slot_id in ids:
                        self._edges[slot_id].add(neighbour)
                        self._edges[neighbour].add(slot_id)

    def __contains__(self, slot_id: object) -> bool:
        return slot_id in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def neighbours(self, slot_id: int) -> Set[int]:
        return set(self._edges.get(slot_id, ()))

    def component_of(self, slot_id: int) -> Tuple[int, ...]:
        """Ids of the run containing ``slot_id``, ordered by start time."""
        if slot_id not in self._slots:
            return ()
        cached = self._component_cache.get(slot_id)
        if cached is not None:
            return cached

        seen = {slot_id}
        stack = [slot_id]
        while stack:
            current = stack.pop()
            for neighbour in self._edges[current]:
                if neighbour not in seen:
                    seen.add(neighbour)
                    stack.append(neighbour)

        component = tuple(sorted(seen, key=lambda i: (self._slots[i].start_time, i)))
        for member in component:
            self._component_cache[member] = component
        return component

    def components(self) -> List[Tuple[int, ...]]:
        """All runs, ordered by their first start time."""
        found: List[Tuple[int, ...]] = []
        visited: Set[int] = set()
        for slot_id in self._slots:
            if slot_id in visited:
                continue
            component = self.component_of(slot_id)
            visited.update(component)
            found.append(component)
        found.sort(key=lambda c: (self._slots[c[0]].start_time, c[0]))
        return found

    def position_of(self, slot_id: int) -> Optional[SlotPosition]:
        component = self.component_of(slot_id)
        if len(component) < 2:
            return None
        if component[0] == slot_id:
            return SlotPosition.FIRST
        if component[-1] == slot_id:
            return SlotPosition.LAST
        return SlotPosition.MIDDLE

    def slot(self, slot_id: int) -> GroupableSlot:
        return self._slots[slot_id]


class BookingGroupingEngine:
    """Builds adjacency graphs once per slot-set revision and reuses them."""

    def __init__(self, max_cached_revisions: int = 16, timezone_str: Optional[str] = None):
        self._graphs: "OrderedDict[Hashable, SlotAdjacencyGraph]" = OrderedDict()
        self._max_cached = max_cached_revisions
        self._timezone_str = timezone_str
        self.builds = 0

    def graph_for(self, slots: Sequence[GroupableSlot]) -> SlotAdjacencyGraph:
        revision = slot_set_revision(slots)
        graph = self._graphs.get(revision)
        if graph is not None:
            self._graphs.move_to_end(revision)
            return graph

        graph = SlotAdjacencyGraph(slots)
        self.builds += 1
        self._graphs[revision] = graph
        if len(self._graphs) > self._max_cached:
            self._graphs.popitem(last=False)
        return graph

    def invalidate(self) -> None:
        self._graphs.clear()

    def positions(self, slots: Sequence[GroupableSlot]) -> Dict[int, Optional[SlotPosition]]:
        graph = self.graph_for(slots)
        return {slot.id: graph.position_of(slot.id) for slot in slots}

    def run_for(self, slots: Sequence[GroupableSlot], slot_id: int) -> List[GroupableSlot]:
        graph = self.graph_for(slots)
        return [graph.slot(member) for member in graph.component_of(slot_id)]

    def summaries(
        self, slots: Sequence[GroupableSlot], reference: Optional[str] = None
    ) -> List[BookingRunSummary]:
        """One summary per run, optionally restricted to ``reference``."""
        graph = self.graph_for(slots)
        summaries = []
        for component in graph.components():
            members = [graph.slot(member) for member in component]
            run_reference = members[0].booking_reference
            if reference is not None and run_reference != reference:
                continue
            summaries.append(
                BookingRunSummary(
                    reference=run_reference,
                    slot_ids=list(component),
                    start_time=members[0].start_time,
                    end_time=members[-1].end_time,
                    slot_count=len(members),
                    label=self.describe_run(members),
                )
            )
        return summaries

    def describe_run(self, members: Sequence[GroupableSlot]) -> str:
        count = len(members)
        noun = "slot" if count == 1 else "slots"
        when = TimezoneService.format_for_display(members[0].start_time, self._timezone_str)
        return f"{count} {noun}, starting {when}"
