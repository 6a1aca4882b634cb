"""
run_optimization.py
──────────────────────────────────────────────────────────────────────────────
Load a flight snapshot and optimize its layout from the command line.

Usage:
    python scripts/run_optimization.py --flight CX2025                 # exact, scipy
    python scripts/run_optimization.py --flight CX2025 --target 45
    python scripts/run_optimization.py --flight CX2025 --strategy ortools
    python scripts/run_optimization.py --flight CX2026 --method heuristic
    python scripts/run_optimization.py --config config/default_planner.yaml

Methods:
    exact      MILP minimising |CG − target|        requires scipy (or or-tools)
    heuristic  greedy left/right weight balance     no solver
"""

import argparse
import asyncio
import dataclasses
import logging
from pathlib import Path

from loadplanner.cabin.config import PlannerConfig, load_config
from loadplanner.flight.repository import YamlFlightRepository, YamlLayoutSink
from loadplanner.session import PlannerSession


def main():
    """Main"""

    parser = argparse.ArgumentParser(description="Optimize a flight's load plan")
    parser.add_argument(
        "--config",
        type=str,
        default="config/default_planner.yaml",
        help="Path to planner config YAML",
    )
    parser.add_argument("--flight", type=str, default="CX2025", help="Flight code to load")
    parser.add_argument(
        "--method", type=str, default="exact", choices=["exact", "heuristic"]
    )
    parser.add_argument(
        "--target", type=float, default=None, help="Target CG (overrides the flight's)"
    )
    parser.add_argument(
        "--strategy",
        type=str,
        default=None,
        choices=["scipy", "ortools"],
        help="MILP backend (overrides config)",
    )
    parser.add_argument("--save", action="store_true", help="Write the layout to the layout dir")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # Load config
    config_path = Path(args.config)
    if config_path.exists():
        config = load_config(config_path)
        print(f"Loaded config from {config_path}")
    else:
        print(f"Config {config_path} not found, using defaults")
        config = PlannerConfig()

    if args.strategy is not None:
        config = dataclasses.replace(
            config, optimizer=dataclasses.replace(config.optimizer, backend=args.strategy)
        )

    session = PlannerSession(
        YamlFlightRepository(config.flight.data_dir),
        sink=YamlLayoutSink(config.flight.layout_dir) if args.save else None,
        config=config,
    )
    asyncio.run(_run(session, args))


async def _run(session: PlannerSession, args: argparse.Namespace) -> None:
    loaded = await session.load_snapshot(args.flight)
    if not loaded.ok:
        print(f"Load failed [{loaded.error_kind.name}]: {loaded.message}")
        return
    print(f"Flight {session.flight.code}: CG {session.cg:.2f}, score {session.score}")

    if args.method == "exact":
        outcome = await session.optimize_exact(args.target)
        if not outcome.ok:
            print(f"Optimization failed [{outcome.error_kind.name}]: {outcome.message}")
            return
        result = outcome.value
        print(
            f"Exact ({result.backend}): CG {result.cg:.2f} → target {result.target_cg:.2f}, "
            f"deviation {result.deviation:.3f}, quality {result.score:.1f}, "
            f"{result.solve_time_ms:.1f} ms"
        )
    else:
        outcome = await session.optimize_heuristic()
        if not outcome.ok:
            print(f"Optimization failed [{outcome.error_kind.name}]: {outcome.message}")
            return
        print(f"Heuristic: {len(outcome.value.touched_slots)} slots changed")

    state = session.state
    print(f"\n{'=' * 60}")
    print("Load Plan:")
    print(f"{'=' * 60}")
    print(f"{'Slot':<6} {'X':>6} {'Y':>5} {'Unit':<10} {'Weight':>8} {'Cap':>7} {'Fixed':>6}")
    print(f"{'-' * 6} {'-' * 6} {'-' * 5} {'-' * 10} {'-' * 8} {'-' * 7} {'-' * 6}")
    for slot in state.slots:
        print(
            f"{slot.id:<6} {slot.x:>6.1f} {slot.y:>5.1f} {slot.assigned_unit or '-':<10} "
            f"{slot.current_weight:>8.0f} {slot.max_weight:>7.0f} {'yes' if slot.fixed else '':>6}"
        )
    print(f"\nCG {state.cg:.2f} | score {state.score} | {state.suggestion}")
    if state.unassigned:
        print(f"Unassigned: {', '.join(u.id for u in state.unassigned)}")


if __name__ == "__main__":
    main()
