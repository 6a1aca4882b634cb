"""
Load unit, slot and assignment-state models.

AssignmentState is an immutable value: every transition produces a new
state through `AssignmentState.build()`, which re-checks the invariants and
recomputes CG / score / suggestion from scratch. Nothing is ever patched in
place, so the derived figures cannot drift from the assignment data.

Invariants enforced by build():
  1. A unit is referenced by at most one slot.
  2. current_weight == 0 iff the slot is empty, else the unit's weight.
  3. (fixed slots) enforced by the transitions, see assignment.mutations.
  4. Slot ids and unit ids are unique.
  5. The unassigned pool is exactly the units no slot references.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Iterable

from loadplanner.cabin.metrics import evaluate_score, generate_suggestion, state_cg
from loadplanner.errors import NotFoundError, ValidationError


@dataclass(frozen=True)
class LoadUnit:
    """A cargo container or pallet.

    Attributes:
        id: Unique unit identifier.
        weight: Gross weight, strictly positive.
        volume: Informational only; never used by the optimizers.
        priority: Priority cargo should be loaded before anything else.
        type: Container type tag (AKE, AMA, ...).
    """

    id: str
    weight: float
    volume: float = 0.0
    priority: bool = False
    type: str = "AKE"


@dataclass(frozen=True)
class Slot:
    """A fixed stowage position in the hold.

    Attributes:
        id: Unique slot identifier.
        x: Longitudinal coordinate (drives the CG).
        y: Lateral coordinate.
        max_weight: Weight capacity.
        current_weight: Derived; the assigned unit's weight or 0.
        assigned_unit: Id of the unit stowed here, if any.
        fixed: Assignment is pinned externally and never altered.
    """

    id: str
    x: float
    y: float
    max_weight: float
    current_weight: float = 0.0
    assigned_unit: str | None = None
    fixed: bool = False

    @property
    def is_empty(self) -> bool:
        return self.assigned_unit is None

    def loaded(self, unit: LoadUnit) -> Slot:
        return replace(self, assigned_unit=unit.id, current_weight=unit.weight)

    def cleared(self) -> Slot:
        return replace(self, assigned_unit=None, current_weight=0.0)

    def can_hold(self, unit: LoadUnit) -> bool:
        return unit.weight <= self.max_weight


@dataclass(frozen=True)
class AssignmentState:
    """Aggregate root: the full slot table, the manifest and derived figures."""

    slots: tuple[Slot, ...]
    units: tuple[LoadUnit, ...]
    unassigned: tuple[LoadUnit, ...]
    cg: float
    score: int
    suggestion: str
    neutral_cg: float = 50.0

    @classmethod
    def build(
        cls,
        slots: Iterable[Slot],
        units: Iterable[LoadUnit],
        neutral_cg: float = 50.0,
    ) -> AssignmentState:
        """Validate the invariants and derive pool, CG, score and suggestion.

        Raises:
            ValidationError: if any field or invariant is violated.
        """
        slots = tuple(slots)
        units = tuple(units)

        for unit in units:
            _validate_unit(unit)
        for slot in slots:
            _validate_slot(slot)
        _ensure_unique([u.id for u in units], "Unit")
        _ensure_unique([s.id for s in slots], "Slot")

        by_id = {u.id: u for u in units}
        referenced: set[str] = set()
        for slot in slots:
            if slot.assigned_unit is None:
                if slot.current_weight != 0:
                    raise ValidationError(
                        f"Slot {slot.id} is empty but reports weight {slot.current_weight}."
                    )
                continue
            unit = by_id.get(slot.assigned_unit)
            if unit is None:
                raise ValidationError(
                    f"Slot {slot.id} references unknown unit {slot.assigned_unit}."
                )
            if slot.assigned_unit in referenced:
                raise ValidationError(f"Unit {slot.assigned_unit} is assigned to more than one slot.")
            if not math.isclose(slot.current_weight, unit.weight):
                raise ValidationError(
                    f"Slot {slot.id} weight {slot.current_weight} does not match "
                    f"unit {unit.id} weight {unit.weight}."
                )
            referenced.add(slot.assigned_unit)

        unassigned = tuple(u for u in units if u.id not in referenced)
        return cls(
            slots=slots,
            units=units,
            unassigned=unassigned,
            cg=state_cg(slots, neutral=neutral_cg),
            score=evaluate_score(slots, unassigned),
            suggestion=generate_suggestion(slots, unassigned),
            neutral_cg=neutral_cg,
        )

    def with_slots(self, slots: Iterable[Slot]) -> AssignmentState:
        """Rebuild the state around a new slot table (same manifest)."""
        return AssignmentState.build(slots, self.units, neutral_cg=self.neutral_cg)

    # ── Lookups ───────────────────────────────────────────────────────────────

    def slot(self, slot_id: str) -> Slot:
        for slot in self.slots:
            if slot.id == slot_id:
                return slot
        raise NotFoundError(f"Slot {slot_id} does not exist.")

    def unit(self, unit_id: str) -> LoadUnit:
        for unit in self.units:
            if unit.id == unit_id:
                return unit
        raise NotFoundError(f"Unit {unit_id} does not exist.")

    def pooled_unit(self, unit_id: str) -> LoadUnit:
        """Return a unit from the unassigned pool.

        Raises NotFoundError for unknown ids and ValidationError when the unit
        is already stowed somewhere.
        """
        for unit in self.unassigned:
            if unit.id == unit_id:
                return unit
        self.unit(unit_id)
        raise ValidationError(f"Unit {unit_id} is not available; it is already assigned.")

    @property
    def pinned_unit_ids(self) -> set[str]:
        """Units held by fixed slots. Neither optimizer may touch these."""
        return {s.assigned_unit for s in self.slots if s.fixed and s.assigned_unit is not None}

    @property
    def loaded_weight(self) -> float:
        return sum(s.current_weight for s in self.slots)

    def assignments(self) -> dict[str, str | None]:
        """slot id → unit id (or None)."""
        return {s.id: s.assigned_unit for s in self.slots}


# ─────────────────────────────────────────────────────────────────────────────
# Field validation
# ─────────────────────────────────────────────────────────────────────────────


def _validate_unit(unit: LoadUnit) -> None:
    _validate_id(unit.id, "Unit")
    if not _finite(unit.weight) or unit.weight <= 0:
        raise ValidationError(f"Unit {unit.id} weight must be a positive number.")
    if not _finite(unit.volume) or unit.volume < 0:
        raise ValidationError(f"Unit {unit.id} volume must be a non-negative number.")


def _validate_slot(slot: Slot) -> None:
    _validate_id(slot.id, "Slot")
    if not _finite(slot.x) or not _finite(slot.y):
        raise ValidationError(f"Slot {slot.id} coordinates must be finite numbers.")
    if not _finite(slot.max_weight) or slot.max_weight <= 0:
        raise ValidationError(f"Slot {slot.id} capacity must be a positive number.")


def _validate_id(value: object, label: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} id {value!r} is invalid.")


def _finite(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _ensure_unique(ids: list[str], label: str) -> None:
    seen: set[str] = set()
    for item in ids:
        if item in seen:
            raise ValidationError(f'{label} id "{item}" is duplicated.')
        seen.add(item)
