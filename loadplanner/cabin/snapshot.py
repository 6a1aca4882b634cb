"""
Boundary conversion between untyped snapshot records and the typed model.

Repositories, YAML files and HTTP payloads hand us plain dicts. They are
validated and converted here, immediately, so the mutation engine and the
optimizers only ever see LoadUnit / Slot / AssignmentState.

Both the native field names and the legacy manifest names are accepted:

    unit:  id | uld_id,  weight, volume, priority | isPriority, type
    slot:  id | position_code,  x | xpos,  y | ypos,  max_weight,
           assigned_unit | assigned_uld,  fixed | isFixed

current_weight is never read from a record; it is derived from the
assignment.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

from loadplanner.cabin.models import AssignmentState, LoadUnit, Slot
from loadplanner.errors import ValidationError

DEFAULT_MAX_WEIGHT = 7000.0  # used when a slot table carries no capacity column


def unit_from_record(record: Mapping[str, Any], index: int = 0) -> LoadUnit:
    if not isinstance(record, Mapping):
        raise ValidationError(f"Unit[{index}] is not a mapping.")
    unit_id = _text(_first(record, "id", "uld_id"), f"Unit[{index}]")
    return LoadUnit(
        id=unit_id,
        weight=_number(record.get("weight"), f"Unit {unit_id} weight", positive=True),
        volume=_number(record.get("volume", 0.0), f"Unit {unit_id} volume"),
        priority=bool(_first(record, "priority", "isPriority") or False),
        type=str(record.get("type", "AKE")),
    )


def slot_from_record(
    record: Mapping[str, Any],
    index: int = 0,
    default_max_weight: float = DEFAULT_MAX_WEIGHT,
) -> tuple[Slot, str | None]:
    """Convert one slot record. Returns the empty slot plus its assigned unit id."""
    if not isinstance(record, Mapping):
        raise ValidationError(f"Slot[{index}] is not a mapping.")
    slot_id = _text(_first(record, "id", "position_code"), f"Slot[{index}]")
    assigned = _first(record, "assigned_unit", "assigned_uld")
    if assigned is not None:
        assigned = _text(assigned, f"Slot {slot_id} assigned unit")
    max_weight = record.get("max_weight")
    slot = Slot(
        id=slot_id,
        x=_number(_first(record, "x", "xpos"), f"Slot {slot_id} x"),
        y=_number(_first(record, "y", "ypos"), f"Slot {slot_id} y"),
        max_weight=(
            default_max_weight
            if max_weight is None
            else _number(max_weight, f"Slot {slot_id} capacity", positive=True)
        ),
        fixed=bool(_first(record, "fixed", "isFixed") or False),
    )
    return slot, assigned


def state_from_records(
    unit_records: Iterable[Mapping[str, Any]],
    slot_records: Iterable[Mapping[str, Any]],
    neutral_cg: float = 50.0,
) -> AssignmentState:
    """Build a validated AssignmentState from raw manifest and slot records."""
    units = [unit_from_record(r, i) for i, r in enumerate(unit_records)]
    by_id = {u.id: u for u in units}

    slots: list[Slot] = []
    for i, record in enumerate(slot_records):
        slot, assigned = slot_from_record(record, i)
        if assigned is not None:
            unit = by_id.get(assigned)
            if unit is None:
                raise ValidationError(f"Slot {slot.id} references unknown unit {assigned}.")
            slot = slot.loaded(unit)
        slots.append(slot)

    return AssignmentState.build(slots, units, neutral_cg=neutral_cg)


def state_to_dict(state: AssignmentState) -> dict:
    """Plain-dict view of a state, for YAML / JSON output."""
    return {
        "slots": [
            {
                "id": s.id,
                "x": s.x,
                "y": s.y,
                "max_weight": s.max_weight,
                "current_weight": s.current_weight,
                "assigned_unit": s.assigned_unit,
                "fixed": s.fixed,
            }
            for s in state.slots
        ],
        "units": [unit_to_dict(u) for u in state.units],
        "unassigned": [u.id for u in state.unassigned],
        "cg": state.cg,
        "score": state.score,
        "suggestion": state.suggestion,
    }


def unit_to_dict(unit: LoadUnit) -> dict:
    return {
        "id": unit.id,
        "weight": unit.weight,
        "volume": unit.volume,
        "priority": unit.priority,
        "type": unit.type,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Private helpers
# ─────────────────────────────────────────────────────────────────────────────


def _first(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def _text(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} id is invalid.")
    return value.strip()


def _number(value: Any, label: str, positive: bool = False) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{label} is not a valid number.")
    try:
        num = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} is not a valid number.") from None
    if not math.isfinite(num):
        raise ValidationError(f"{label} is not a valid number.")
    if positive and num <= 0:
        raise ValidationError(f"{label} must be greater than 0.")
    return num
