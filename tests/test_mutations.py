"""
Tests for the interactive mutation engine.

Tests cover:
1. Each operation's success path and recomputed figures
2. Fixed slots are never altered
3. Capacity policy (reject, or allow when switched off)
4. Failed transitions leave the state untouched
5. apply_operation dispatch by name

Run with: pytest tests/test_mutations.py -v
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from loadplanner.assignment.mutations import (
    Operation,
    apply_operation,
    assign,
    move_between_slots,
    reset_layout,
    swap,
    swap_slots,
    unassign,
)
from loadplanner.cabin.models import AssignmentState, LoadUnit, Slot
from loadplanner.errors import ErrorKind


# ── Fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def state() -> AssignmentState:
    """Four movable slots, one fixed slot holding PIN, three units in the pool."""
    units = [
        LoadUnit("PIN", 500.0),
        LoadUnit("A", 100.0),
        LoadUnit("B", 300.0, priority=True),
        LoadUnit("HEAVY", 4000.0),
    ]
    slots = [
        Slot("F1", x=0.0, y=0.0, max_weight=1000.0, fixed=True).loaded(units[0]),
        Slot("P1", x=10.0, y=-1.0, max_weight=5000.0),
        Slot("P2", x=50.0, y=1.0, max_weight=5000.0),
        Slot("P3", x=80.0, y=-1.0, max_weight=1000.0),
        Slot("P4", x=90.0, y=1.0, max_weight=5000.0),
    ]
    return AssignmentState.build(slots, units)


def _total_weight(state: AssignmentState) -> float:
    loaded = sum(s.current_weight for s in state.slots)
    pooled = sum(u.weight for u in state.unassigned)
    return loaded + pooled


# ── Operations ────────────────────────────────────────────────────


class TestAssign:
    def test_assign_updates_pool_and_cg(self, state):
        result = assign(state, "A", "P2")
        assert result.ok
        new = result.state
        assert new.slot("P2").assigned_unit == "A"
        assert new.slot("P2").current_weight == 100.0
        assert "A" not in [u.id for u in new.unassigned]
        # (500*0 + 100*50) / 600
        assert new.cg == pytest.approx(5000.0 / 600.0)

    def test_assign_occupied(self, state):
        first = assign(state, "A", "P1").state
        result = assign(first, "B", "P1")
        assert not result.ok
        assert result.error_kind == ErrorKind.VALIDATION
        assert result.state is first

    def test_assign_unit_already_placed(self, state):
        first = assign(state, "A", "P1").state
        result = assign(first, "A", "P2")
        assert not result.ok
        assert result.error_kind == ErrorKind.VALIDATION

    def test_assign_unknown_slot(self, state):
        result = assign(state, "A", "Z9")
        assert result.error_kind == ErrorKind.NOT_FOUND
        assert result.state is state

    def test_assign_unknown_unit(self, state):
        assert assign(state, "NOPE", "P1").error_kind == ErrorKind.NOT_FOUND

    def test_assign_to_fixed(self, state):
        result = assign(state, "A", "F1")
        assert not result.ok
        assert "fixed slot" in result.message

    def test_assign_over_capacity(self, state):
        result = assign(state, "HEAVY", "P3")
        assert not result.ok
        assert result.error_kind == ErrorKind.VALIDATION
        assert "capacity" in result.message

    def test_assign_over_capacity_allowed(self, state):
        result = assign(state, "HEAVY", "P3", enforce_capacity=False)
        assert result.ok
        assert result.state.slot("P3").assigned_unit == "HEAVY"


class TestUnassign:
    def test_round_trip(self, state):
        loaded = assign(state, "B", "P4").state
        back = unassign(loaded, "P4").state
        assert back.assignments() == state.assignments()
        assert [u.id for u in back.unassigned] == [u.id for u in state.unassigned]
        assert back.cg == pytest.approx(state.cg)
        assert back.score == state.score

    def test_unassign_empty(self, state):
        result = unassign(state, "P1")
        assert not result.ok
        assert result.error_kind == ErrorKind.VALIDATION

    def test_unassign_fixed(self, state):
        result = unassign(state, "F1")
        assert not result.ok
        assert result.state.slot("F1").assigned_unit == "PIN"


class TestSwap:
    def test_swap_returns_old_unit_to_pool(self, state):
        loaded = assign(state, "A", "P1").state
        result = swap(loaded, "B", "P1")
        assert result.ok
        new = result.state
        assert new.slot("P1").assigned_unit == "B"
        assert new.slot("P1").current_weight == 300.0
        assert "A" in [u.id for u in new.unassigned]

    def test_swap_into_empty(self, state):
        result = swap(state, "A", "P1")
        assert not result.ok
        assert "assign" in result.message

    def test_swap_capacity(self, state):
        loaded = assign(state, "A", "P3").state
        result = swap(loaded, "HEAVY", "P3")
        assert not result.ok
        assert result.state.slot("P3").assigned_unit == "A"


class TestMove:
    def test_move(self, state):
        loaded = assign(state, "A", "P1").state
        result = move_between_slots(loaded, "P1", "P4")
        assert result.ok
        assert result.state.slot("P1").is_empty
        assert result.state.slot("P4").assigned_unit == "A"

    def test_move_to_occupied(self, state):
        loaded = assign(assign(state, "A", "P1").state, "B", "P2").state
        result = move_between_slots(loaded, "P1", "P2")
        assert not result.ok
        assert result.state is loaded

    def test_move_from_empty(self, state):
        assert not move_between_slots(state, "P1", "P2").ok

    def test_move_out_of_fixed(self, state):
        result = move_between_slots(state, "F1", "P1")
        assert not result.ok
        assert "fixed slot" in result.message

    def test_move_capacity(self, state):
        loaded = assign(state, "HEAVY", "P1").state
        assert not move_between_slots(loaded, "P1", "P3").ok


class TestSwapSlots:
    def test_swap_slots(self, state):
        loaded = assign(assign(state, "A", "P1").state, "B", "P2").state
        result = swap_slots(loaded, "P1", "P2")
        assert result.ok
        assert result.state.slot("P1").assigned_unit == "B"
        assert result.state.slot("P2").assigned_unit == "A"
        assert result.state.slot("P1").current_weight == 300.0

    def test_swap_slots_needs_two_units(self, state):
        loaded = assign(state, "A", "P1").state
        assert not swap_slots(loaded, "P1", "P2").ok

    def test_swap_slot_with_itself(self, state):
        loaded = assign(state, "A", "P1").state
        result = swap_slots(loaded, "P1", "P1")
        assert not result.ok
        assert "itself" in result.message

    def test_swap_slots_with_fixed(self, state):
        loaded = assign(state, "A", "P1").state
        assert not swap_slots(loaded, "P1", "F1").ok

    def test_swap_slots_capacity(self, state):
        loaded = assign(assign(state, "HEAVY", "P1").state, "A", "P3").state
        assert not swap_slots(loaded, "P1", "P3").ok


class TestReset:
    def test_reset_keeps_fixed(self, state):
        loaded = assign(assign(state, "A", "P1").state, "B", "P2").state
        result = reset_layout(loaded)
        assert result.ok
        new = result.state
        assert new.slot("F1").assigned_unit == "PIN"
        assert all(new.slot(p).is_empty for p in ("P1", "P2", "P3", "P4"))
        assert [u.id for u in new.unassigned] == ["A", "B", "HEAVY"]


class TestInvariants:
    def test_total_weight_conserved(self, state):
        total = _total_weight(state)
        s = state
        for step in (
            lambda st: assign(st, "A", "P1"),
            lambda st: assign(st, "B", "P2"),
            lambda st: swap_slots(st, "P1", "P2"),
            lambda st: move_between_slots(st, "P2", "P4"),
            lambda st: swap(st, "HEAVY", "P4"),
            lambda st: unassign(st, "P1"),
            reset_layout,
        ):
            result = step(s)
            assert result.ok, result.message
            s = result.state
            assert _total_weight(s) == pytest.approx(total)
            assert s.slot("F1").assigned_unit == "PIN"

    def test_input_state_never_modified(self, state):
        before = state.assignments()
        assign(state, "A", "P1")
        reset_layout(state)
        assert state.assignments() == before


# ── Dispatch ──────────────────────────────────────────────────────


class TestApplyOperation:
    def test_by_name(self, state):
        result = apply_operation(state, "assign", unit_id="A", slot_id="P1")
        assert result.ok
        assert result.state.slot("P1").assigned_unit == "A"

    def test_by_enum(self, state):
        loaded = apply_operation(state, Operation.ASSIGN, unit_id="A", slot_id="P1").state
        result = apply_operation(loaded, Operation.MOVE, from_slot="P1", to_slot="P2")
        assert result.ok

    def test_reset_without_arguments(self, state):
        assert apply_operation(state, "reset_layout").ok

    def test_unknown_operation(self, state):
        result = apply_operation(state, "teleport", slot_id="P1")
        assert not result.ok
        assert result.error_kind == ErrorKind.VALIDATION
        assert result.state is state

    def test_missing_argument(self, state):
        result = apply_operation(state, "assign", unit_id="A")
        assert not result.ok
        assert result.error_kind == ErrorKind.VALIDATION

    def test_unexpected_argument(self, state):
        result = apply_operation(state, "unassign", slot_id="P1", unit_id="A")
        assert result.error_kind == ErrorKind.VALIDATION

    def test_capacity_switch(self, state):
        assert not apply_operation(state, "assign", unit_id="HEAVY", slot_id="P3").ok
        result = apply_operation(
            state, "assign", enforce_capacity=False, unit_id="HEAVY", slot_id="P3"
        )
        assert result.ok
