"""
Validated, atomic transitions on an AssignmentState.

Every operation takes the current state and returns a MutationResult. On
success `result.state` is a brand-new state (rebuilt and re-validated, with
CG / score / suggestion recomputed). On failure `result.state` is the input
state, untouched; there is no partially applied transition.

Operation           Fails when
───────────────────────────────────────────────────────────────────────────
assign(u, p)        p unknown / fixed / occupied, u not in the pool
unassign(p)         p unknown / fixed / empty
swap(u, p)          p unknown / fixed / empty, u not in the pool
move(p_from, p_to)  either unknown / fixed, p_from empty, p_to occupied
swap_slots(a, b)    either unknown / fixed, either empty
reset_layout()      never (releases every non-fixed slot)

Capacity policy: a transition that would put a unit into a slot whose
max_weight it exceeds is rejected with a ValidationError. The same policy
applies to both optimizers. Pass enforce_capacity=False to switch it off.
"""

from __future__ import annotations

import functools
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from loadplanner.cabin.models import AssignmentState, LoadUnit, Slot
from loadplanner.errors import ErrorKind, PlannerError, ValidationError

log = logging.getLogger(__name__)


class Operation(Enum):
    """Mutation operations exposed to callers"""

    ASSIGN = "assign"
    UNASSIGN = "unassign"
    SWAP = "swap"
    MOVE = "move_between_slots"
    SWAP_SLOTS = "swap_slots"
    RESET = "reset_layout"


@dataclass(frozen=True)
class MutationResult:
    """Outcome of one transition. `state` is None only when nothing is loaded."""

    ok: bool
    message: str
    state: AssignmentState | None
    error_kind: ErrorKind | None = None


Transition = Callable[..., tuple[list[Slot], str]]


def _transition(fn: Transition) -> Callable[..., MutationResult]:
    """Turn a slot-table rewrite into an atomic, validated state transition."""

    @functools.wraps(fn)
    def wrapper(state: AssignmentState, *args, **kwargs) -> MutationResult:
        try:
            slots, message = fn(state, *args, **kwargs)
            new_state = state.with_slots(slots)
            ensure_fixed_unchanged(state, new_state)
        except PlannerError as exc:
            log.debug("%s rejected: %s", fn.__name__, exc.message)
            return MutationResult(False, exc.message, state, exc.kind)
        return MutationResult(True, message, new_state)

    return wrapper


def ensure_fixed_unchanged(before: AssignmentState, after: AssignmentState) -> None:
    """Raise if any fixed slot's assignment differs between two states."""
    after_map = after.assignments()
    for slot in before.slots:
        if slot.fixed and after_map.get(slot.id) != slot.assigned_unit:
            raise ValidationError(f"{slot.id} is a fixed slot and cannot change.")


# ─────────────────────────────────────────────────────────────────────────────
# Operations
# ─────────────────────────────────────────────────────────────────────────────


@_transition
def assign(
    state: AssignmentState, unit_id: str, slot_id: str, enforce_capacity: bool = True
) -> tuple[list[Slot], str]:
    slot = _movable_slot(state, slot_id)
    if not slot.is_empty:
        raise ValidationError(f"{slot_id} already holds {slot.assigned_unit}; use swap instead.")
    unit = state.pooled_unit(unit_id)
    _check_capacity(unit, slot, enforce_capacity)
    return _replace(state, slot.loaded(unit)), f"{unit_id} assigned to {slot_id}."


@_transition
def unassign(state: AssignmentState, slot_id: str) -> tuple[list[Slot], str]:
    slot = _movable_slot(state, slot_id)
    if slot.is_empty:
        raise ValidationError(f"{slot_id} holds no unit.")
    return _replace(state, slot.cleared()), f"{slot_id} released."


@_transition
def swap(
    state: AssignmentState, unit_id: str, slot_id: str, enforce_capacity: bool = True
) -> tuple[list[Slot], str]:
    slot = _movable_slot(state, slot_id)
    if slot.is_empty:
        raise ValidationError(f"{slot_id} is empty; use assign instead.")
    unit = state.pooled_unit(unit_id)
    _check_capacity(unit, slot, enforce_capacity)
    return _replace(state, slot.loaded(unit)), f"{slot_id} now holds {unit_id}."


@_transition
def move_between_slots(
    state: AssignmentState, from_slot: str, to_slot: str, enforce_capacity: bool = True
) -> tuple[list[Slot], str]:
    src = _movable_slot(state, from_slot)
    dst = _movable_slot(state, to_slot)
    if src.is_empty:
        raise ValidationError(f"{from_slot} holds no unit.")
    if not dst.is_empty:
        raise ValidationError(f"{to_slot} already holds {dst.assigned_unit}.")
    unit = state.unit(src.assigned_unit)
    _check_capacity(unit, dst, enforce_capacity)
    return (
        _replace(state, src.cleared(), dst.loaded(unit)),
        f"{unit.id} moved from {from_slot} to {to_slot}.",
    )


@_transition
def swap_slots(
    state: AssignmentState, slot_a: str, slot_b: str, enforce_capacity: bool = True
) -> tuple[list[Slot], str]:
    a = _movable_slot(state, slot_a)
    b = _movable_slot(state, slot_b)
    if a.id == b.id:
        raise ValidationError(f"Cannot swap {slot_a} with itself.")
    if a.is_empty or b.is_empty:
        raise ValidationError(f"Both {slot_a} and {slot_b} must hold a unit to swap.")
    unit_a = state.unit(a.assigned_unit)
    unit_b = state.unit(b.assigned_unit)
    _check_capacity(unit_a, b, enforce_capacity)
    _check_capacity(unit_b, a, enforce_capacity)
    return (
        _replace(state, a.loaded(unit_b), b.loaded(unit_a)),
        f"{slot_a} and {slot_b} exchanged units.",
    )


@_transition
def reset_layout(state: AssignmentState) -> tuple[list[Slot], str]:
    slots = [s if s.fixed else s.cleared() for s in state.slots]
    return slots, "All movable slots released."


_OPERATIONS: dict[Operation, Callable[..., MutationResult]] = {
    Operation.ASSIGN: assign,
    Operation.UNASSIGN: unassign,
    Operation.SWAP: swap,
    Operation.MOVE: move_between_slots,
    Operation.SWAP_SLOTS: swap_slots,
    Operation.RESET: reset_layout,
}

_CAPACITY_AWARE = {Operation.ASSIGN, Operation.SWAP, Operation.MOVE, Operation.SWAP_SLOTS}


def apply_operation(
    state: AssignmentState,
    operation: Operation | str,
    enforce_capacity: bool = True,
    **kwargs: str,
) -> MutationResult:
    """Dispatch a named operation.

    Unknown operations or wrong arguments yield a VALIDATION failure rather
    than an exception.
    """
    try:
        op = Operation(operation)
    except ValueError:
        return MutationResult(False, f"Unknown operation {operation!r}.", state, ErrorKind.VALIDATION)

    fn = _OPERATIONS[op]
    if op in _CAPACITY_AWARE:
        kwargs["enforce_capacity"] = enforce_capacity
    try:
        inspect.signature(fn).bind(state, **kwargs)
    except TypeError:
        return MutationResult(
            False, f"Invalid arguments for {op.value}: {sorted(kwargs)}.", state, ErrorKind.VALIDATION
        )
    return fn(state, **kwargs)


# ─────────────────────────────────────────────────────────────────────────────
# Private helpers
# ─────────────────────────────────────────────────────────────────────────────


def _movable_slot(state: AssignmentState, slot_id: str) -> Slot:
    slot = state.slot(slot_id)
    if slot.fixed:
        raise ValidationError(f"{slot_id} is a fixed slot and cannot be changed.")
    return slot


def _check_capacity(unit: LoadUnit, slot: Slot, enforce: bool) -> None:
    if enforce and not slot.can_hold(unit):
        raise ValidationError(
            f"{unit.id} ({unit.weight:g}) exceeds the capacity of {slot.id} ({slot.max_weight:g})."
        )


def _replace(state: AssignmentState, *updated: Slot) -> list[Slot]:
    by_id = {s.id: s for s in updated}
    return [by_id.get(s.id, s) for s in state.slots]
