"""
Load assignment: interactive transitions and the two optimizers.

Quick start:
    from loadplanner.assignment import optimize_exact, optimize_heuristic
    result = optimize_exact(state, target_cg=22.0)
    quick = optimize_heuristic(state)
"""

from loadplanner.assignment.exact import ExactResult, LayoutItem, build_model, optimize_exact
from loadplanner.assignment.heuristic import HeuristicResult, optimize_heuristic
from loadplanner.assignment.mutations import MutationResult, Operation, apply_operation
from loadplanner.assignment.program import BoundType, LinearProgram, ObjectiveSense
from loadplanner.assignment.solver import (
    ORToolsMilpSolver,
    ScipyMilpSolver,
    SolverOutcome,
    SolverStatus,
    create_solver,
)

__all__ = [
    "ExactResult",
    "LayoutItem",
    "build_model",
    "optimize_exact",
    "HeuristicResult",
    "optimize_heuristic",
    "MutationResult",
    "Operation",
    "apply_operation",
    "BoundType",
    "LinearProgram",
    "ObjectiveSense",
    "ORToolsMilpSolver",
    "ScipyMilpSolver",
    "SolverOutcome",
    "SolverStatus",
    "create_solver",
]
