"""
One-click greedy left/right load balancer.

A fast, solver-free approximation of the exact optimizer:

  1. Fixed slots keep their units; every other slot is cleared.
  2. Movable slots are split at `split_x` (x <= split → left, else right)
     and each side is sorted by lateral position for a stable fill order.
  3. Non-pinned units are taken heaviest first.
  4. Each unit goes to the side with the lower cumulative weight (ties go
     left), into that side's next free slot it fits. A side with no
     fitting slot left is skipped; a unit that fits nowhere stays in the
     pool.

This balances weight between the two halves only. It does not aim at an
arbitrary CG target the way optimize_exact does. O(n log n) for the sorts,
plus a scan of each side's free slots per unit when capacities bite.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loadplanner.assignment.mutations import ensure_fixed_unchanged
from loadplanner.cabin.config import PlannerConfig
from loadplanner.cabin.models import AssignmentState, LoadUnit, Slot


@dataclass
class HeuristicResult:
    """Replacement state plus the slots whose assignment changed."""

    state: AssignmentState
    touched_slots: list[str]
    unplaced: list[str] = field(default_factory=list)


@dataclass
class _Side:
    """Free slots on one half of the hold, in fill order."""

    free: list[Slot]
    load: float = 0.0

    def next_fit(self, unit: LoadUnit, enforce_capacity: bool) -> int | None:
        for k, slot in enumerate(self.free):
            if not enforce_capacity or slot.can_hold(unit):
                return k
        return None

    def take(self, k: int, unit: LoadUnit) -> Slot:
        self.load += unit.weight
        return self.free.pop(k)


def split_point(slots: list[Slot], split_x: float | None) -> float:
    """The x dividing left from right. None → midpoint of the slots' x range."""
    if split_x is not None:
        return split_x
    if not slots:
        return 0.0
    xs = [s.x for s in slots]
    return (min(xs) + max(xs)) / 2.0


def optimize_heuristic(
    state: AssignmentState,
    config: PlannerConfig | None = None,
) -> HeuristicResult:
    """Greedy weight balance across the two halves of the hold."""
    config = config or PlannerConfig()
    enforce = config.capacity.enforce

    movable = [s for s in state.slots if not s.fixed]
    split = split_point(movable, config.heuristic.split_x)
    left = _Side(sorted((s for s in movable if s.x <= split), key=lambda s: (s.y, s.id)))
    right = _Side(sorted((s for s in movable if s.x > split), key=lambda s: (s.y, s.id)))

    pinned = state.pinned_unit_ids
    candidates = sorted(
        (u for u in state.units if u.id not in pinned), key=lambda u: u.weight, reverse=True
    )

    placed: dict[str, LoadUnit] = {}
    unplaced: list[str] = []
    for unit in candidates:
        left_k = left.next_fit(unit, enforce)
        right_k = right.next_fit(unit, enforce)
        if left_k is None and right_k is None:
            unplaced.append(unit.id)
            continue
        if right_k is None or (left_k is not None and left.load <= right.load):
            slot = left.take(left_k, unit)
        else:
            slot = right.take(right_k, unit)
        placed[slot.id] = unit

    new_slots = [
        s if s.fixed else (s.loaded(placed[s.id]) if s.id in placed else s.cleared())
        for s in state.slots
    ]
    new_state = state.with_slots(new_slots)
    ensure_fixed_unchanged(state, new_state)

    before = state.assignments()
    touched = [s.id for s in new_state.slots if s.assigned_unit != before[s.id]]
    return HeuristicResult(new_state, touched, unplaced)
