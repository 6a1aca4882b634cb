"""FastAPI server exposing one PlannerSession to the cabin UI."""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from loadplanner.assignment.exact import ExactResult, layout_cg
from loadplanner.assignment.heuristic import HeuristicResult
from loadplanner.assignment.mutations import MutationResult
from loadplanner.cabin.config import PlannerConfig, load_config
from loadplanner.cabin.snapshot import state_to_dict
from loadplanner.errors import HTTP_STATUS, ErrorKind, Outcome
from loadplanner.flight.repository import YamlFlightRepository, YamlLayoutSink
from loadplanner.session import PlannerSession


class FlightRequest(BaseModel):
    flight_no: str


class OptimizeRequest(BaseModel):
    flight_no: str | None = None
    target_cg: float | None = None


class MutationRequest(BaseModel):
    unit_id: str | None = None
    slot_id: str | None = None
    from_slot: str | None = None
    to_slot: str | None = None
    slot_a: str | None = None
    slot_b: str | None = None


def _error(kind: ErrorKind, message: str) -> JSONResponse:
    return JSONResponse(
        {"error": message, "kind": kind.name.lower()}, status_code=HTTP_STATUS[kind]
    )


def _exact_payload(result: ExactResult) -> dict:
    return {
        "layout": [asdict(item) for item in result.layout],
        "cg": {
            "long": result.cg,
            "deviation": result.deviation,
            "score": result.score,
            "pure": result.cg_pure,
            "placed": layout_cg(result.layout, result.state.neutral_cg),
            "target": result.target_cg,
        },
        "status": result.status.name.lower(),
        "solve_time_ms": result.solve_time_ms,
        "state": state_to_dict(result.state),
    }


def _heuristic_payload(result: HeuristicResult) -> dict:
    return {
        "state": state_to_dict(result.state),
        "touched_slots": result.touched_slots,
        "unplaced": result.unplaced,
    }


def _load_runtime_config(config_path: str) -> PlannerConfig:
    path = Path(config_path)
    if path.exists():
        return load_config(path)
    return PlannerConfig()


def create_app(session: PlannerSession | None = None) -> FastAPI:
    """Build the app around a session. Without one, read flights from YAML."""
    if session is None:
        config = _load_runtime_config("config/default_planner.yaml")
        session = PlannerSession(
            YamlFlightRepository(config.flight.data_dir),
            sink=YamlLayoutSink(config.flight.layout_dir),
            config=config,
        )

    app = FastAPI(title="Cargo Load Planner API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.session = session

    @app.get("/api/health")
    async def health() -> dict:
        """Basic readiness endpoint."""

        return {"status": "ok", "busy": session.busy}

    @app.post("/api/flight")
    async def load_flight(request: FlightRequest):
        outcome = await session.load_snapshot(request.flight_no)
        if not outcome.ok:
            return _error(outcome.error_kind, outcome.message)
        flight = session.flight
        return {
            "flight": {"id": flight.id, "code": flight.code, "target_cg": flight.target_cg},
            "state": state_to_dict(outcome.value),
        }

    @app.get("/api/layout")
    async def layout():
        if session.state is None:
            return _error(ErrorKind.VALIDATION, "No flight is loaded.")
        return {
            "state": state_to_dict(session.state),
            "highlighted_slots": session.highlighted_slots,
        }

    @app.post("/api/layout/{operation}")
    async def mutate(operation: str, request: MutationRequest):
        kwargs = {k: v for k, v in request.model_dump().items() if v is not None}
        result: MutationResult = session.mutate(operation, **kwargs)
        if not result.ok:
            return _error(result.error_kind, result.message)
        return {"message": result.message, "state": state_to_dict(result.state)}

    @app.post("/api/optimize")
    async def optimize(request: OptimizeRequest):
        if request.flight_no is not None:
            loaded: Outcome = await session.load_snapshot(request.flight_no)
            if not loaded.ok:
                return _error(loaded.error_kind, loaded.message)
        outcome = await session.optimize_exact(request.target_cg)
        if not outcome.ok:
            return _error(outcome.error_kind, outcome.message)
        return _exact_payload(outcome.value)

    @app.post("/api/optimize/heuristic")
    async def optimize_heuristic():
        outcome = await session.optimize_heuristic()
        if not outcome.ok:
            return _error(outcome.error_kind, outcome.message)
        return _heuristic_payload(outcome.value)

    return app


app = create_app()
