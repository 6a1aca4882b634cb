"""
MILP solver backends for the exact CG optimizer.

Every backend accepts a LinearProgram and returns a SolverOutcome: a status
(optimal / infeasible / other) plus, when optimal, a mapping from variable
name to value. The optimizer only depends on that contract, so backends are
drop-in replacements for each other.

Solver menu
───────────
  ScipyMilpSolver    scipy.optimize.milp (HiGHS branch-and-cut)   ← DEFAULT
  ORToolsMilpSolver  OR-Tools linear_solver wrapper (SCIP)

ORToolsMilpSolver falls back to ScipyMilpSolver when OR-Tools is not
installed or the requested backend is not compiled in.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

import numpy as np

from loadplanner.assignment.program import LinearProgram, ObjectiveSense

log = logging.getLogger(__name__)


class SolverStatus(Enum):
    """Valid solver status"""

    OPTIMAL = auto()  # proven optimal
    INFEASIBLE = auto()  # no feasible point exists
    OTHER = auto()  # time limit, unbounded, numerical trouble, ...


@dataclass
class SolverOutcome:
    """Unified output, returned by every backend."""

    status: SolverStatus
    values: dict[str, float] = field(default_factory=dict)
    objective: float | None = None
    solve_time_ms: float = 0.0
    backend: str = ""


class MilpSolver(Protocol):
    """Anything that can solve a LinearProgram."""

    def solve(self, program: LinearProgram) -> SolverOutcome: ...


# ─────────────────────────────────────────────────────────────────────────────
# Solver 1: ScipyMilpSolver
# ─────────────────────────────────────────────────────────────────────────────


class ScipyMilpSolver:
    """scipy.optimize.milp wrapper (HiGHS).

    The program is densified into (c, A, lb, ub) arrays; the assignment
    models here are a few hundred columns at most.
    """

    name = "scipy"

    def __init__(self, time_limit_s: float | None = None) -> None:
        self.time_limit_s = time_limit_s
        self.total_solves: int = 0
        self.total_solve_time_ms: float = 0.0

    def solve(self, program: LinearProgram) -> SolverOutcome:
        from scipy.optimize import Bounds, LinearConstraint, milp  # pylint: disable=import-outside-toplevel

        t0 = time.perf_counter()
        c = program.objective_vector()
        lower, upper = program.variable_bounds()
        constraints = None
        if program.constraints:
            a, lb, ub = program.constraint_matrix()
            constraints = LinearConstraint(a, lb, ub)

        options: dict = {"disp": False}
        if self.time_limit_s is not None:
            options["time_limit"] = self.time_limit_s

        res = milp(
            c,
            constraints=constraints,
            integrality=program.integrality(),
            bounds=Bounds(lower, upper),
            options=options,
        )
        ms = (time.perf_counter() - t0) * 1e3
        self.total_solves += 1
        self.total_solve_time_ms += ms

        if res.status == 0 and res.x is not None:
            values = {name: float(v) for name, v in zip(program.variables, np.asarray(res.x))}
            objective = float(res.fun)
            if program.sense == ObjectiveSense.MAXIMIZE:
                objective = -objective
            return SolverOutcome(SolverStatus.OPTIMAL, values, objective, ms, self.name)

        status = SolverStatus.INFEASIBLE if res.status == 2 else SolverStatus.OTHER
        log.info("scipy milp finished without optimum: status=%s (%s)", res.status, res.message)
        return SolverOutcome(status, solve_time_ms=ms, backend=self.name)


# ─────────────────────────────────────────────────────────────────────────────
# Solver 2: ORToolsMilpSolver
# ─────────────────────────────────────────────────────────────────────────────


class ORToolsMilpSolver:
    """OR-Tools pywraplp wrapper. SCIP by default, any MIP backend id works."""

    name = "ortools"

    def __init__(self, backend: str = "SCIP", time_limit_s: float | None = None) -> None:
        self.backend = backend
        self.time_limit_s = time_limit_s
        self.total_solves: int = 0
        self.total_fallbacks: int = 0
        self.total_solve_time_ms: float = 0.0

    def solve(self, program: LinearProgram) -> SolverOutcome:
        # Import guard: OR-Tools is optional
        try:
            from ortools.linear_solver import pywraplp  # pylint: disable=import-outside-toplevel
        except ImportError:
            return self._fallback(program, "OR-Tools is not installed")

        solver = pywraplp.Solver.CreateSolver(self.backend)
        if solver is None:
            return self._fallback(program, f"OR-Tools backend {self.backend} unavailable")

        t0 = time.perf_counter()
        if self.time_limit_s is not None:
            solver.SetTimeLimit(int(self.time_limit_s * 1000))
        inf = solver.infinity()

        def _clip(value: float | None, default: float) -> float:
            if value is None or not np.isfinite(value):
                return default
            return float(value)

        variables = {}
        for var in program.variables.values():
            lb, ub = _clip(var.lower, -inf), _clip(var.upper, inf)
            if var.binary:
                variables[var.name] = solver.IntVar(0, 1, var.name)
            else:
                variables[var.name] = solver.NumVar(lb, ub, var.name)

        for row in program.constraints:
            lb, ub = row.row_bounds
            ct = solver.Constraint(_clip(lb, -inf), _clip(ub, inf), row.name)
            for name, coef in row.coefficients.items():
                ct.SetCoefficient(variables[name], coef)

        objective = solver.Objective()
        for name, coef in program.objective.items():
            objective.SetCoefficient(variables[name], coef)
        if program.sense == ObjectiveSense.MAXIMIZE:
            objective.SetMaximization()
        else:
            objective.SetMinimization()

        status_code = solver.Solve()
        ms = (time.perf_counter() - t0) * 1e3
        self.total_solves += 1
        self.total_solve_time_ms += ms

        if status_code == pywraplp.Solver.OPTIMAL:
            values = {name: var.solution_value() for name, var in variables.items()}
            return SolverOutcome(SolverStatus.OPTIMAL, values, objective.Value(), ms, self.name)

        status = (
            SolverStatus.INFEASIBLE
            if status_code == pywraplp.Solver.INFEASIBLE
            else SolverStatus.OTHER
        )
        log.info("OR-Tools %s finished without optimum: status=%s", self.backend, status_code)
        return SolverOutcome(status, solve_time_ms=ms, backend=self.name)

    def _fallback(self, program: LinearProgram, reason: str) -> SolverOutcome:
        log.warning("%s; falling back to scipy milp", reason)
        self.total_fallbacks += 1
        return ScipyMilpSolver(self.time_limit_s).solve(program)


# ─────────────────────────────────────────────────────────────────────────────
# Factory
# ─────────────────────────────────────────────────────────────────────────────


def create_solver(
    strategy: str = "scipy",
    time_limit_s: float | None = None,
) -> ScipyMilpSolver | ORToolsMilpSolver:
    """Instantiate and return the requested solver.

    strategy options
    ─────────────────
    "scipy"   → ScipyMilpSolver    default, requires scipy >= 1.9
    "ortools" → ORToolsMilpSolver  SCIP through OR-Tools
    """
    if strategy == "scipy":
        return ScipyMilpSolver(time_limit_s)
    if strategy == "ortools":
        return ORToolsMilpSolver(time_limit_s=time_limit_s)
    raise ValueError(f"Unknown strategy {strategy!r}. Valid options: 'scipy', 'ortools'.")
