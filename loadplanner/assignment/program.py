"""
Solver-neutral description of a (mixed-integer) linear program.

The exact optimizer builds one of these and hands it to a solver backend;
the backend never sees load units or slots, only named variables, named
constraints and their bounds.

Usage:
    lp = LinearProgram("cg_optimizer", ObjectiveSense.MINIMIZE, {"dev": 1.0})
    lp.add_variable("x", lower=0, upper=1, binary=True)
    lp.add_constraint("row", {"x": 1.0}, BoundType.UPPER, upper=1.0)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

import numpy as np


class ObjectiveSense(Enum):
    """Objective direction"""

    MINIMIZE = auto()
    MAXIMIZE = auto()


class BoundType(Enum):
    """How a constraint row (or variable) is bounded"""

    FREE = auto()  # −inf < row < +inf
    LOWER = auto()  # lower <= row
    UPPER = auto()  # row <= upper
    DOUBLE = auto()  # lower <= row <= upper
    FIXED = auto()  # row == lower


@dataclass(frozen=True)
class Variable:
    """A decision variable. None bounds are unbounded."""

    name: str
    lower: float | None = 0.0
    upper: float | None = None
    binary: bool = False


@dataclass(frozen=True)
class Constraint:
    """A named linear row: sum(coef * var) within the bounds of `bound_type`."""

    name: str
    coefficients: dict[str, float]
    bound_type: BoundType
    lower: float = 0.0
    upper: float = 0.0

    @property
    def row_bounds(self) -> tuple[float, float]:
        """(lb, ub) with ±inf for open sides."""
        if self.bound_type == BoundType.FREE:
            return -np.inf, np.inf
        if self.bound_type == BoundType.LOWER:
            return self.lower, np.inf
        if self.bound_type == BoundType.UPPER:
            return -np.inf, self.upper
        if self.bound_type == BoundType.FIXED:
            return self.lower, self.lower
        return self.lower, self.upper


@dataclass
class LinearProgram:
    """Objective, variables and constraints of one model.

    Variables keep insertion order; that order defines the column index
    used by matrix-based backends.
    """

    name: str
    sense: ObjectiveSense = ObjectiveSense.MINIMIZE
    objective: dict[str, float] = field(default_factory=dict)
    variables: dict[str, Variable] = field(default_factory=dict)
    constraints: list[Constraint] = field(default_factory=list)

    def add_variable(
        self,
        name: str,
        lower: float | None = 0.0,
        upper: float | None = None,
        binary: bool = False,
    ) -> str:
        if name in self.variables:
            raise ValueError(f"Variable {name!r} already defined")
        if binary:
            lower, upper = 0.0, 1.0
        self.variables[name] = Variable(name, lower, upper, binary)
        return name

    def add_constraint(
        self,
        name: str,
        coefficients: dict[str, float],
        bound_type: BoundType,
        lower: float = 0.0,
        upper: float = 0.0,
    ) -> Constraint:
        unknown = set(coefficients) - set(self.variables)
        if unknown:
            raise ValueError(f"Constraint {name!r} uses undefined variables {sorted(unknown)}")
        constraint = Constraint(name, dict(coefficients), bound_type, lower, upper)
        self.constraints.append(constraint)
        return constraint

    @property
    def binaries(self) -> list[str]:
        return [v.name for v in self.variables.values() if v.binary]

    @property
    def column_index(self) -> dict[str, int]:
        return {name: i for i, name in enumerate(self.variables)}

    def objective_vector(self) -> np.ndarray:
        """Dense objective coefficients, sign-flipped for maximisation."""
        idx = self.column_index
        c = np.zeros(len(idx), dtype=np.float64)
        for name, coef in self.objective.items():
            c[idx[name]] = coef
        return -c if self.sense == ObjectiveSense.MAXIMIZE else c

    def constraint_matrix(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Dense (A, lb, ub) for the constraint rows."""
        idx = self.column_index
        a = np.zeros((len(self.constraints), len(idx)), dtype=np.float64)
        lb = np.empty(len(self.constraints), dtype=np.float64)
        ub = np.empty(len(self.constraints), dtype=np.float64)
        for r, row in enumerate(self.constraints):
            for name, coef in row.coefficients.items():
                a[r, idx[name]] = coef
            lb[r], ub[r] = row.row_bounds
        return a, lb, ub

    def variable_bounds(self) -> tuple[np.ndarray, np.ndarray]:
        lower = np.array(
            [-np.inf if v.lower is None else v.lower for v in self.variables.values()],
            dtype=np.float64,
        )
        upper = np.array(
            [np.inf if v.upper is None else v.upper for v in self.variables.values()],
            dtype=np.float64,
        )
        return lower, upper

    def integrality(self) -> np.ndarray:
        return np.array([1 if v.binary else 0 for v in self.variables.values()], dtype=np.int8)
