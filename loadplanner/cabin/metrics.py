"""
Load-plan figures: centre of gravity, quality score and the advisory text.

All three are pure functions of the slot table and the unassigned pool,
O(n) in the number of slots/units. AssignmentState recomputes them after
every transition.

Score:
  occupancy  = filled slots / total slots                   (0–60 points)
  priority   = 40 − 5 × unassigned priority units, floor 0  (0–40 points)
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable, Sequence

if TYPE_CHECKING:
    from loadplanner.cabin.models import LoadUnit, Slot


NEUTRAL_CG: float = 50.0  # midpoint of the 0–100 longitudinal range

OCCUPANCY_POINTS = 60
PRIORITY_POINTS = 40
PRIORITY_PENALTY = 5


def calculate_cg(placements: Iterable[tuple[float, float]], neutral: float = NEUTRAL_CG) -> float:
    """Weighted-average longitudinal position of the loaded mass.

    Args:
        placements: (weight, x) pairs for every assigned unit.
        neutral: Value returned when nothing is loaded.
    """
    total_weight = 0.0
    moment = 0.0
    for weight, x in placements:
        total_weight += weight
        moment += weight * x
    if total_weight == 0:
        return neutral
    return moment / total_weight


def state_cg(slots: Iterable[Slot], neutral: float = NEUTRAL_CG) -> float:
    return calculate_cg(((s.current_weight, s.x) for s in slots if s.assigned_unit), neutral)


def evaluate_score(slots: Sequence[Slot], unassigned: Iterable[LoadUnit]) -> int:
    filled = sum(1 for s in slots if s.assigned_unit is not None)
    total = len(slots) or 1
    occupancy = filled / total * OCCUPANCY_POINTS
    waiting = sum(1 for u in unassigned if u.priority)
    priority = max(0, PRIORITY_POINTS - PRIORITY_PENALTY * waiting)
    # round half up (62.5 → 63)
    return max(0, min(100, math.floor(occupancy + priority + 0.5)))


def generate_suggestion(slots: Iterable[Slot], unassigned: Iterable[LoadUnit]) -> str:
    """Rule-based advisory: priority cargo first, then free slots, else balanced."""
    waiting = [u.id for u in unassigned if u.priority]
    if waiting:
        return f"Load priority units {', '.join(waiting)} into available slots first."

    free = [s.id for s in slots if s.assigned_unit is None and not s.fixed]
    if free:
        return f"Slots still free: {', '.join(free)}. Loading can continue."

    return "Layout is balanced; keep the current loading plan."
