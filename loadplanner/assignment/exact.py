"""
Exact CG-balanced assignment via a mixed-integer linear program.

Model (eligible units u, eligible slots p, i.e. everything not pinned)
───────────────────────────────────────────────────────────────────────
  x[u,p] ∈ {0,1}        unit u stowed at slot p
  Σ_p x[u,p] == 1       every unit placed exactly once
  Σ_u x[u,p] <= 1       a slot holds at most one unit
  W·cg − Σ w_u·X_p·x[u,p] == M_fixed
                        cg is the vehicle-wide CG: W is the weight of all
                        units, M_fixed the moment of units in fixed slots
  cg − dev <= target,  −cg − dev <= −target   →  dev >= |cg − target|
  minimise dev

Capacity policy: a (u, p) pair where u is heavier than p's max_weight gets
no variable at all, so the solver can never choose it.

Too many units, or a unit that fits no slot, is rejected before the solver
is called. A non-optimal solver status is InfeasibleError; an "optimal"
answer whose x[u,p] > 0.5 picks do not cover every unit exactly once is
IncompleteResultError.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from loadplanner.assignment.mutations import ensure_fixed_unchanged
from loadplanner.assignment.program import BoundType, LinearProgram, ObjectiveSense
from loadplanner.assignment.solver import MilpSolver, SolverStatus, create_solver
from loadplanner.cabin.config import PlannerConfig
from loadplanner.cabin.metrics import calculate_cg
from loadplanner.cabin.models import AssignmentState, LoadUnit, Slot
from loadplanner.errors import (
    IncompleteResultError,
    InfeasibleError,
    InternalError,
    PlannerError,
    ValidationError,
)

log = logging.getLogger(__name__)

MODEL_NAME = "cg_optimizer"
CG_VAR = "cg_long"
DEV_VAR = "cg_dev"


@dataclass(frozen=True)
class LayoutItem:
    """One placed unit, in the shape handed to the layout sink."""

    unit_id: str
    slot_id: str
    weight: float
    x: float
    y: float


@dataclass
class ExactResult:
    """Output of the exact optimizer.

    Attributes:
        layout: Placement of every eligible unit.
        cg: Vehicle CG as reported by the solver.
        deviation: |cg − target| as reported by the solver.
        score: 100 − 100·deviation/tolerance, clamped to [0, 100].
        cg_pure: CG recomputed from the resulting state.
        state: The replacement AssignmentState (fixed slots untouched).
    """

    layout: list[LayoutItem]
    cg: float
    deviation: float
    score: float
    cg_pure: float
    state: AssignmentState
    target_cg: float = 0.0
    status: SolverStatus = SolverStatus.OPTIMAL
    solve_time_ms: float = 0.0
    backend: str = ""


@dataclass
class CGModel:
    """A built program plus the map back from variable names to (unit, slot)."""

    program: LinearProgram
    units: list[LoadUnit]
    slots: list[Slot]
    var_map: dict[str, tuple[int, int]] = field(default_factory=dict)


def _var_name(unit_index: int, slot_index: int) -> str:
    return f"x_u{unit_index}_p{slot_index}"


def build_model(
    units: list[LoadUnit],
    slots: list[Slot],
    target_cg: float,
    fixed_weight: float = 0.0,
    fixed_moment: float = 0.0,
    enforce_capacity: bool = True,
) -> CGModel:
    """Build the CG-deviation MILP for the given eligible units and slots."""
    total_weight = sum(u.weight for u in units) + fixed_weight
    program = LinearProgram(MODEL_NAME, ObjectiveSense.MINIMIZE, {DEV_VAR: 1.0})
    model = CGModel(program, units, slots)

    program.add_variable(CG_VAR, lower=None, upper=None)
    program.add_variable(DEV_VAR, lower=0.0, upper=None)
    for i, unit in enumerate(units):
        for j, slot in enumerate(slots):
            if enforce_capacity and not slot.can_hold(unit):
                continue
            name = program.add_variable(_var_name(i, j), binary=True)
            model.var_map[name] = (i, j)

    by_unit: dict[int, dict[str, float]] = {i: {} for i in range(len(units))}
    by_slot: dict[int, dict[str, float]] = {j: {} for j in range(len(slots))}
    balance: dict[str, float] = {CG_VAR: total_weight}
    for name, (i, j) in model.var_map.items():
        by_unit[i][name] = 1.0
        by_slot[j][name] = 1.0
        balance[name] = -units[i].weight * slots[j].x

    for i, coefs in by_unit.items():
        program.add_constraint(f"assign_unit_{i}", coefs, BoundType.FIXED, lower=1.0)
    for j, coefs in by_slot.items():
        if coefs:
            program.add_constraint(f"slot_capacity_{j}", coefs, BoundType.UPPER, upper=1.0)
    program.add_constraint("cg_balance", balance, BoundType.FIXED, lower=fixed_moment)
    program.add_constraint(
        "cg_above_target", {CG_VAR: 1.0, DEV_VAR: -1.0}, BoundType.UPPER, upper=target_cg
    )
    program.add_constraint(
        "cg_below_target", {CG_VAR: -1.0, DEV_VAR: -1.0}, BoundType.UPPER, upper=-target_cg
    )
    return model


def optimize_exact(
    state: AssignmentState,
    target_cg: float,
    solver: MilpSolver | None = None,
    config: PlannerConfig | None = None,
) -> ExactResult:
    """Compute the globally CG-optimal layout for every non-pinned unit.

    Raises:
        ValidationError: target is not a finite number.
        InfeasibleError: too many units, a unit fits nowhere, or the solver
            found no optimum.
        IncompleteResultError: solver output does not place every unit once.
        InternalError: the solver itself blew up.
    """
    config = config or PlannerConfig()
    if isinstance(target_cg, bool) or not isinstance(target_cg, (int, float)) or not math.isfinite(target_cg):
        raise ValidationError(f"Target CG {target_cg!r} is not a valid number.")
    enforce = config.capacity.enforce

    pinned = state.pinned_unit_ids
    units = [u for u in state.units if u.id not in pinned]
    slots = [s for s in state.slots if not s.fixed]
    fixed_loaded = [s for s in state.slots if s.fixed and s.assigned_unit is not None]
    fixed_weight = sum(s.current_weight for s in fixed_loaded)
    fixed_moment = sum(s.current_weight * s.x for s in fixed_loaded)

    if len(units) > len(slots):
        raise InfeasibleError(
            f"{len(units)} units cannot fit into {len(slots)} available slots."
        )
    for unit in units:
        if enforce and not any(s.can_hold(unit) for s in slots):
            raise InfeasibleError(f"Unit {unit.id} ({unit.weight:g}) exceeds every slot's capacity.")

    if not units:
        new_state = state.with_slots(s if s.fixed else s.cleared() for s in state.slots)
        return ExactResult(
            layout=[],
            cg=new_state.cg,
            deviation=abs(new_state.cg - target_cg),
            score=_quality(abs(new_state.cg - target_cg), config.optimizer.cg_tolerance),
            cg_pure=new_state.cg,
            state=new_state,
            target_cg=target_cg,
        )

    model = build_model(units, slots, target_cg, fixed_weight, fixed_moment, enforce)
    solver = solver or create_solver(config.optimizer.backend, config.optimizer.time_limit_s)
    log.debug(
        "solving %s: %d units, %d slots, %d binaries",
        MODEL_NAME,
        len(units),
        len(slots),
        len(model.var_map),
    )
    try:
        outcome = solver.solve(model.program)
    except PlannerError:
        raise
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise InternalError(f"Solver failed: {exc}") from exc

    if outcome.status != SolverStatus.OPTIMAL:
        raise InfeasibleError("The solver found no optimal layout; check the input data.")

    layout = _extract_layout(model, outcome.values)
    placed = {item.slot_id: item.unit_id for item in layout}
    by_id = {u.id: u for u in state.units}
    new_slots = [
        s if s.fixed else (s.loaded(by_id[placed[s.id]]) if s.id in placed else s.cleared())
        for s in state.slots
    ]
    new_state = state.with_slots(new_slots)
    ensure_fixed_unchanged(state, new_state)

    deviation = max(0.0, outcome.values.get(DEV_VAR, 0.0))
    cg = outcome.values.get(CG_VAR, new_state.cg)
    return ExactResult(
        layout=layout,
        cg=cg,
        deviation=deviation,
        score=_quality(deviation, config.optimizer.cg_tolerance),
        cg_pure=new_state.cg,
        state=new_state,
        target_cg=target_cg,
        status=outcome.status,
        solve_time_ms=outcome.solve_time_ms,
        backend=outcome.backend,
    )


def layout_cg(layout: list[LayoutItem], neutral: float = 50.0) -> float:
    """CG of the placed units alone, ignoring anything pinned."""
    return calculate_cg(((item.weight, item.x) for item in layout), neutral)


# ─────────────────────────────────────────────────────────────────────────────
# Private helpers
# ─────────────────────────────────────────────────────────────────────────────


def _extract_layout(model: CGModel, values: dict[str, float]) -> list[LayoutItem]:
    placed: list[LayoutItem | None] = [None] * len(model.units)
    used_slots: set[int] = set()
    for name, (i, j) in model.var_map.items():
        if values.get(name, 0.0) <= 0.5:
            continue
        if placed[i] is not None or j in used_slots:
            raise IncompleteResultError(
                "Solver output places a unit twice or reuses a slot."
            )
        unit, slot = model.units[i], model.slots[j]
        placed[i] = LayoutItem(unit.id, slot.id, unit.weight, slot.x, slot.y)
        used_slots.add(j)

    missing = [model.units[i].id for i, item in enumerate(placed) if item is None]
    if missing:
        raise IncompleteResultError(
            f"Optimization result is incomplete; no slot for {', '.join(missing)}."
        )
    return [item for item in placed if item is not None]


def _quality(deviation: float, tolerance: float) -> float:
    if tolerance <= 0:
        return 100.0 if deviation == 0 else 0.0
    return max(0.0, min(100.0, 100.0 - deviation / tolerance * 100.0))
