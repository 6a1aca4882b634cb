"""
Planner configuration dataclasses and YAML loader.

All tunable parameters live here as typed, frozen dataclasses.
Load from YAML with `load_config()` or construct directly for tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml


@dataclass(frozen=True)
class CGConfig:
    """Centre-of-gravity reporting.

    Longitudinal coordinates run 0–100 along the hold; with nothing loaded
    the CG is reported as the midpoint of that range.
    """

    neutral_cg: float = 50.0


@dataclass(frozen=True)
class OptimizerConfig:
    """Exact (MILP) optimizer parameters."""

    backend: Literal["scipy", "ortools"] = "scipy"
    default_target_cg: float = 22.0  # used when the flight carries no target
    cg_tolerance: float = 5.0  # deviation at which the quality score hits 0
    time_limit_s: float = 10.0


@dataclass(frozen=True)
class HeuristicConfig:
    """Left/right greedy balancer parameters."""

    split_x: float | None = 40.0  # None → midpoint of the movable slots' x range


@dataclass(frozen=True)
class CapacityConfig:
    """Slot weight-capacity policy.

    enforce=True rejects any move that would overload a slot, in every
    mutation and in both optimizers alike.
    """

    enforce: bool = True


@dataclass(frozen=True)
class FlightConfig:
    """Flight lookup parameters."""

    code_pattern: str = r"^[A-Z]{2}\d{3,4}$"
    data_dir: str = "data/flights"
    layout_dir: str = "data/layouts"


@dataclass(frozen=True)
class PlannerConfig:
    """Top-level configuration aggregating all sub-configs."""

    cg: CGConfig = field(default_factory=CGConfig)
    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)
    heuristic: HeuristicConfig = field(default_factory=HeuristicConfig)
    capacity: CapacityConfig = field(default_factory=CapacityConfig)
    flight: FlightConfig = field(default_factory=FlightConfig)


def load_config(path: str | Path) -> PlannerConfig:
    """Load a PlannerConfig from a YAML file.

    Args:
        path: Path to a YAML config file.

    Returns:
        Fully constructed PlannerConfig with all sub-configs.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return PlannerConfig(
        cg=CGConfig(**raw.get("cg", {})),
        optimizer=OptimizerConfig(**raw.get("optimizer", {})),
        heuristic=HeuristicConfig(**raw.get("heuristic", {})),
        capacity=CapacityConfig(**raw.get("capacity", {})),
        flight=FlightConfig(**raw.get("flight", {})),
    )
