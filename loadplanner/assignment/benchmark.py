"""
loadplanner/assignment/benchmark.py
──────────────────────────────────────────────────────────────────────────────
Benchmark: greedy left/right balancer vs the exact MILP backends.

Random holds (slot pairs spread along the 0–100 station range, random
capacities) are filled with random manifests and a random target CG.

Metrics per scenario:
  • CG deviation from target
  • Quality score (100 − 100·deviation/tolerance)
  • Placement rate (units placed / units available)
  • Solve time (wall-clock, ms)

Usage:
    python -m loadplanner.assignment.benchmark                 # 30 scenarios
    python -m loadplanner.assignment.benchmark --scenarios 100
    python -m loadplanner.assignment.benchmark --slots 16 --units 12
    python -m loadplanner.assignment.benchmark --methods heuristic scipy
"""

from __future__ import annotations

import argparse
import time
from dataclasses import dataclass

import numpy as np

from loadplanner.assignment.exact import optimize_exact
from loadplanner.assignment.heuristic import optimize_heuristic
from loadplanner.assignment.solver import create_solver
from loadplanner.cabin.config import PlannerConfig
from loadplanner.cabin.models import AssignmentState, LoadUnit, Slot
from loadplanner.errors import PlannerError


@dataclass
class BenchmarkScenario:
    """A single random loading scenario."""

    state: AssignmentState
    target_cg: float


def generate_scenario(
    n_slots: int,
    n_units: int,
    rng: np.random.Generator,
    priority_fraction: float = 0.2,
) -> BenchmarkScenario:
    """Generate a random hold and manifest.

    Slots come in left/right pairs along x ∈ [5, 95]; about a fifth of the
    units are heavy AMA pallets, the rest AKE containers.
    """
    n_rows = (n_slots + 1) // 2
    stations = np.linspace(5.0, 95.0, n_rows)
    slots = []
    for k in range(n_slots):
        side = -1.0 if k % 2 == 0 else 1.0
        slots.append(
            Slot(
                id=f"P{k:02d}",
                x=float(stations[k // 2]),
                y=side,
                max_weight=float(rng.choice([3500.0, 5000.0, 6800.0])),
            )
        )

    units = []
    for j in range(n_units):
        heavy = rng.random() < 0.2
        weight = rng.uniform(3000.0, 4800.0) if heavy else rng.uniform(800.0, 2600.0)
        units.append(
            LoadUnit(
                id=f"U{j:03d}",
                weight=round(float(weight), 1),
                volume=17.5 if heavy else 4.3,
                priority=bool(rng.random() < priority_fraction),
                type="AMA" if heavy else "AKE",
            )
        )

    state = AssignmentState.build(slots, units)
    return BenchmarkScenario(state=state, target_cg=float(rng.uniform(35.0, 60.0)))


def run_benchmark(
    n_scenarios: int = 30,
    n_slots: int = 14,
    n_units: int = 10,
    seed: int = 42,
    methods: list[str] | None = None,
) -> None:
    """Run scenarios and print a comparison table."""

    all_methods = ["heuristic", "scipy", "ortools"]
    active = methods or all_methods
    config = PlannerConfig()
    tolerance = config.optimizer.cg_tolerance

    print("=" * 72)
    print("  Load Planner Benchmark")
    print("=" * 72)
    print(f"  Scenarios: {n_scenarios}  |  Slots: {n_slots}  |  Units: {n_units}  |  Seed: {seed}")
    print(f"  Methods:   {', '.join(active)}")
    print()

    solvers = {name: create_solver(name) for name in active if name != "heuristic"}
    rng = np.random.default_rng(seed)

    results: dict[str, dict[str, list]] = {
        name: {"dev": [], "score": [], "rate": [], "time_ms": [], "failures": []} for name in active
    }

    for _ in range(n_scenarios):
        scenario = generate_scenario(n_slots, n_units, rng)

        for name in active:
            t0 = time.perf_counter()
            try:
                if name == "heuristic":
                    state = optimize_heuristic(scenario.state, config).state
                else:
                    state = optimize_exact(
                        scenario.state, scenario.target_cg, solvers[name], config
                    ).state
            except PlannerError as exc:
                results[name]["failures"].append(exc.kind.name)
                continue
            ms = (time.perf_counter() - t0) * 1e3

            dev = abs(state.cg - scenario.target_cg)
            placed = len(state.units) - len(state.unassigned)
            results[name]["dev"].append(dev)
            results[name]["score"].append(max(0.0, 100.0 - dev / tolerance * 100.0))
            results[name]["rate"].append(placed / max(len(state.units), 1) * 100)
            results[name]["time_ms"].append(ms)

    # ── Print results ─────────────────────────────────────────────────────────
    col_w = 14

    def hdr(label: str) -> str:
        return f"{label:>{col_w}}"

    def val(values: list, fn, fmt: str = ".2f") -> str:
        if not values:
            return f"{'n/a':>{col_w}}"
        return f"{fn(values):{col_w}{fmt}}"

    print(f"  {'Metric':<28}" + "".join(hdr(n) for n in active))
    print("  " + "─" * (28 + col_w * len(active)))

    rows = [
        ("Avg CG deviation", "dev", np.mean, ".2f"),
        ("Max CG deviation", "dev", np.max, ".2f"),
        ("Avg quality score", "score", np.mean, ".1f"),
        ("Avg placement rate (%)", "rate", np.mean, ".1f"),
        ("Avg solve time (ms)", "time_ms", np.mean, ".2f"),
        ("P95 solve time (ms)", "time_ms", lambda d: np.percentile(d, 95), ".2f"),
    ]
    for label, key, fn, fmt in rows:
        print(f"  {label:<28}" + "".join(val(results[n][key], fn, fmt) for n in active))

    print()
    print("  Failures:")
    for name in active:
        counts: dict[str, int] = {}
        for kind in results[name]["failures"]:
            counts[kind] = counts.get(kind, 0) + 1
        summary = "  ".join(f"{k}={c}" for k, c in sorted(counts.items())) or "none"
        print(f"    {name:<12}: {summary}")

    print("\n" + "=" * 72)


# ── CLI entry point ───────────────────────────────────────────────────────────

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Benchmark load planning methods")
    parser.add_argument("--scenarios", type=int, default=30)
    parser.add_argument("--slots", type=int, default=14)
    parser.add_argument("--units", type=int, default=10)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument(
        "--methods",
        nargs="+",
        choices=["heuristic", "scipy", "ortools"],
        default=None,
        help="Subset of methods to benchmark (default: all three)",
    )
    args = parser.parse_args()
    run_benchmark(args.scenarios, args.slots, args.units, args.seed, args.methods)
