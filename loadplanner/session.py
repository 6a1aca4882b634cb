"""
PlannerSession: the core's boundary.

Owns the current AssignmentState for one flight and a single `busy` flag.
Everything that crosses this boundary returns a typed result (Outcome or
MutationResult); PlannerError subclasses raised below are converted here
and never escape.

Concurrency model
─────────────────
  • Mutations are synchronous and complete before the next call starts.
  • load_snapshot / optimize_exact / optimize_heuristic are async,
    single-flight: busy is set before any await and cleared in `finally`.
    A second request while busy is rejected with BUSY, not queued.
    Mutations are rejected while busy too, so an optimizer result is
    always applied to the state it was computed from.
  • Repository reads and solver runs happen in a worker thread
    (asyncio.to_thread). No cancellation once started.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, TypeVar

from loadplanner.assignment.exact import ExactResult, LayoutItem, optimize_exact
from loadplanner.assignment.heuristic import HeuristicResult, optimize_heuristic
from loadplanner.assignment.mutations import MutationResult, Operation, apply_operation
from loadplanner.assignment.solver import MilpSolver, create_solver
from loadplanner.cabin.config import PlannerConfig
from loadplanner.cabin.models import AssignmentState, LoadUnit
from loadplanner.cabin.snapshot import state_from_records
from loadplanner.errors import (
    BusyError,
    ErrorKind,
    InternalError,
    Outcome,
    PlannerError,
    ValidationError,
)
from loadplanner.flight.repository import FlightRecord, FlightRepository, LayoutSink

log = logging.getLogger(__name__)

T = TypeVar("T")

# Set by the session itself, never taken from mutation arguments
_RESERVED_MUTATION_ARGS = frozenset({"state", "operation", "enforce_capacity"})


class PlannerSession:
    """Single-writer holder of the current load plan.

    Usage:
        session = PlannerSession(YamlFlightRepository("data/flights"))
        await session.load_snapshot("CX2025")
        session.mutate("assign", unit_id="AKE1001", slot_id="11L")
        outcome = await session.optimize_exact()
    """

    def __init__(
        self,
        repository: FlightRepository,
        sink: LayoutSink | None = None,
        solver: MilpSolver | None = None,
        config: PlannerConfig | None = None,
    ) -> None:
        self.repository = repository
        self.sink = sink
        self.config = config or PlannerConfig()
        self.solver = solver or create_solver(
            self.config.optimizer.backend, self.config.optimizer.time_limit_s
        )
        self.flight: FlightRecord | None = None
        self.highlighted_slots: list[str] = []
        self._state: AssignmentState | None = None
        self._busy = False
        self._code_re = re.compile(self.config.flight.code_pattern)

    # ── Read accessors ────────────────────────────────────────────────────────

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def state(self) -> AssignmentState | None:
        return self._state

    @property
    def cg(self) -> float:
        return self._state.cg if self._state else self.config.cg.neutral_cg

    @property
    def score(self) -> int:
        return self._state.score if self._state else 0

    @property
    def suggestion(self) -> str:
        return self._state.suggestion if self._state else ""

    @property
    def unassigned(self) -> tuple[LoadUnit, ...]:
        return self._state.unassigned if self._state else ()

    # ── Loading ───────────────────────────────────────────────────────────────

    async def load_snapshot(self, flight_code: str) -> Outcome[AssignmentState]:
        """Look the flight up and replace the current state with its snapshot."""
        return await self._single_flight("flight load", self._load, flight_code)

    async def _load(self, flight_code: str) -> AssignmentState:
        if not isinstance(flight_code, str):
            raise ValidationError("Flight code must be a string.")
        code = flight_code.strip().upper()
        if not self._code_re.match(code):
            raise ValidationError(f"Flight code {flight_code!r} is not valid.")
        if self.flight is not None and self.flight.code == code and self._state is not None:
            return self._state

        record = await asyncio.to_thread(self.repository.get_flight, code)
        units = await asyncio.to_thread(self.repository.get_manifest, record.id)
        slots = await asyncio.to_thread(self.repository.get_slots, record.id)
        state = state_from_records(units, slots, neutral_cg=self.config.cg.neutral_cg)

        self.flight = record
        self._state = state
        self.highlighted_slots = []
        log.info(
            "loaded flight %s: %d units, %d slots, cg=%.1f",
            record.code,
            len(state.units),
            len(state.slots),
            state.cg,
        )
        return state

    def clear(self) -> Outcome[None]:
        """End the current state's lifecycle."""
        if self._busy:
            return Outcome.failure(BusyError("Cannot clear while an operation is running."))
        self._state = None
        self.flight = None
        self.highlighted_slots = []
        return Outcome.success(None, "Session cleared.")

    # ── Interactive edits ─────────────────────────────────────────────────────

    def mutate(self, operation: Operation | str, **kwargs: Any) -> MutationResult:
        """Apply one MutationEngine operation to the current state."""
        if self._busy:
            return MutationResult(
                False, "An operation is in progress; try again shortly.", self._state, ErrorKind.BUSY
            )
        if self._state is None:
            return MutationResult(False, "No flight is loaded.", None, ErrorKind.VALIDATION)
        reserved = sorted(_RESERVED_MUTATION_ARGS.intersection(kwargs))
        if reserved:
            return MutationResult(
                False, f"Arguments {reserved} cannot be set by the caller.", self._state, ErrorKind.VALIDATION
            )

        result = apply_operation(
            self._state, operation, enforce_capacity=self.config.capacity.enforce, **kwargs
        )
        if result.ok:
            self._state = result.state
        return result

    def clear_highlights(self) -> None:
        self.highlighted_slots = []

    # ── Optimization ──────────────────────────────────────────────────────────

    async def optimize_exact(self, target_cg: float | None = None) -> Outcome[ExactResult]:
        """Solve the CG MILP and adopt its layout. Target defaults to the flight's."""
        return await self._single_flight("optimization", self._optimize_exact, target_cg)

    async def _optimize_exact(self, target_cg: float | None) -> ExactResult:
        state = self._require_state()
        if target_cg is None:
            target_cg = self._default_target()
        result = await asyncio.to_thread(optimize_exact, state, target_cg, self.solver, self.config)

        before = state.assignments()
        self._state = result.state
        self.highlighted_slots = [
            s.id for s in result.state.slots if s.assigned_unit != before[s.id]
        ]
        log.info(
            "exact optimization: cg=%.2f target=%.2f deviation=%.3f score=%.1f",
            result.cg,
            target_cg,
            result.deviation,
            result.score,
        )
        await self._persist(result.layout)
        return result

    async def optimize_heuristic(self) -> Outcome[HeuristicResult]:
        """Run the greedy left/right balancer and adopt its layout."""
        return await self._single_flight("optimization", self._optimize_heuristic)

    async def _optimize_heuristic(self) -> HeuristicResult:
        state = self._require_state()
        result = await asyncio.to_thread(optimize_heuristic, state, self.config)
        self._state = result.state
        self.highlighted_slots = list(result.touched_slots)
        if result.unplaced:
            log.info("heuristic left %d units unplaced: %s", len(result.unplaced), result.unplaced)
        return result

    # ── Private helpers ───────────────────────────────────────────────────────

    async def _single_flight(
        self, label: str, fn: Callable[..., Awaitable[T]], *args: Any
    ) -> Outcome[T]:
        if self._busy:
            return Outcome.failure(BusyError(f"Another request is running; {label} rejected."))
        self._busy = True
        try:
            value = await fn(*args)
        except PlannerError as exc:
            log.info("%s failed (%s): %s", label, exc.kind.name, exc.message)
            return Outcome.failure(exc)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log.exception("%s failed unexpectedly", label)
            return Outcome.failure(InternalError(f"Internal error during {label}: {exc}"))
        finally:
            self._busy = False
        return Outcome.success(value)

    def _require_state(self) -> AssignmentState:
        if self._state is None:
            raise ValidationError("No flight is loaded.")
        return self._state

    def _default_target(self) -> float:
        if self.flight is not None and self.flight.target_cg is not None:
            return float(self.flight.target_cg)
        return self.config.optimizer.default_target_cg

    async def _persist(self, layout: list[LayoutItem]) -> None:
        if self.sink is None or self.flight is None:
            return
        try:
            await asyncio.to_thread(self.sink.save_layout, self.flight.id, layout)
        except Exception:  # pylint: disable=broad-exception-caught
            log.exception("failed to save layout for flight %s", self.flight.code)
