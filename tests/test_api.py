"""
Tests for the FastAPI surface.

Run with: pytest tests/test_api.py -v
"""

import pytest
import sys
from pathlib import Path

from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from loadplanner.api.server import create_app
from loadplanner.flight.repository import InMemoryFlightRepository, InMemoryLayoutSink
from loadplanner.session import PlannerSession


UNITS = [
    {"uld_id": "PIN", "weight": 2000},
    {"uld_id": "A", "weight": 1000, "isPriority": True},
    {"uld_id": "B", "weight": 1000},
]

SLOTS = [
    {"position_code": "F1", "xpos": 10, "ypos": 0, "assigned_uld": "PIN", "isFixed": True},
    {"position_code": "M1", "xpos": 0, "ypos": -1},
    {"position_code": "M2", "xpos": 100, "ypos": 1},
    {"position_code": "M3", "xpos": 60, "ypos": -1, "max_weight": 500},
]


# ── Fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def session() -> PlannerSession:
    repo = InMemoryFlightRepository()
    repo.add_flight("CX100", UNITS, SLOTS, target_cg=30.0, flight_id=100)
    repo.add_flight("CX500", UNITS + [{"uld_id": "C", "weight": 10}, {"uld_id": "D", "weight": 10}], SLOTS)
    return PlannerSession(repo, sink=InMemoryLayoutSink())


@pytest.fixture
def client(session) -> TestClient:
    return TestClient(create_app(session))


@pytest.fixture
def loaded(client) -> TestClient:
    assert client.post("/api/flight", json={"flight_no": "CX100"}).status_code == 200
    return client


class TestFlightRoutes:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "busy": False}

    def test_load_flight(self, client):
        resp = client.post("/api/flight", json={"flight_no": "cx100"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["flight"] == {"id": 100, "code": "CX100", "target_cg": 30.0}
        assert body["state"]["unassigned"] == ["A", "B"]
        assert body["state"]["cg"] == pytest.approx(10.0)

    def test_unknown_flight(self, client):
        resp = client.post("/api/flight", json={"flight_no": "ZZ999"})
        assert resp.status_code == 404
        assert resp.json()["kind"] == "not_found"

    def test_invalid_flight_code(self, client):
        resp = client.post("/api/flight", json={"flight_no": "not-a-flight"})
        assert resp.status_code == 400
        assert resp.json()["kind"] == "validation"

    def test_layout_requires_flight(self, client):
        assert client.get("/api/layout").status_code == 400


class TestLayoutRoutes:
    def test_assign_and_read_back(self, loaded):
        resp = loaded.post("/api/layout/assign", json={"unit_id": "A", "slot_id": "M2"})
        assert resp.status_code == 200
        assert resp.json()["state"]["cg"] == pytest.approx(40.0)
        layout = loaded.get("/api/layout").json()
        slots = {s["id"]: s for s in layout["state"]["slots"]}
        assert slots["M2"]["assigned_unit"] == "A"
        assert slots["M2"]["current_weight"] == 1000.0

    def test_fixed_slot_rejected(self, loaded):
        resp = loaded.post("/api/layout/unassign", json={"slot_id": "F1"})
        assert resp.status_code == 400
        assert "fixed slot" in resp.json()["error"]

    def test_capacity_rejected(self, loaded):
        resp = loaded.post("/api/layout/assign", json={"unit_id": "A", "slot_id": "M3"})
        assert resp.status_code == 400

    def test_unknown_slot(self, loaded):
        resp = loaded.post("/api/layout/assign", json={"unit_id": "A", "slot_id": "Z9"})
        assert resp.status_code == 404

    def test_unknown_operation(self, loaded):
        resp = loaded.post("/api/layout/teleport", json={"slot_id": "M1"})
        assert resp.status_code == 400

    def test_reset(self, loaded):
        loaded.post("/api/layout/assign", json={"unit_id": "A", "slot_id": "M1"})
        resp = loaded.post("/api/layout/reset_layout", json={})
        assert resp.status_code == 200
        assert resp.json()["state"]["unassigned"] == ["A", "B"]


class TestOptimizeRoutes:
    def test_exact(self, loaded):
        resp = loaded.post("/api/optimize", json={})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "optimal"
        assert body["cg"]["target"] == 30.0
        assert body["cg"]["pure"] == pytest.approx(30.0)
        # A and B alone, at x=0 and x=100, without the pinned 2000 at x=10
        assert body["cg"]["placed"] == pytest.approx(50.0)
        assert {row["unit_id"] for row in body["layout"]} == {"A", "B"}
        highlighted = loaded.get("/api/layout").json()["highlighted_slots"]
        assert sorted(highlighted) == ["M1", "M2"]

    def test_exact_loads_flight(self, client):
        resp = client.post("/api/optimize", json={"flight_no": "CX100", "target_cg": 45.0})
        assert resp.status_code == 200
        assert resp.json()["cg"]["target"] == 45.0

    def test_exact_infeasible(self, client):
        resp = client.post("/api/optimize", json={"flight_no": "CX500"})
        assert resp.status_code == 422
        assert resp.json()["kind"] == "infeasible"

    def test_exact_without_flight(self, client):
        assert client.post("/api/optimize", json={}).status_code == 400

    def test_heuristic(self, loaded):
        resp = loaded.post("/api/optimize/heuristic")
        assert resp.status_code == 200
        body = resp.json()
        assert body["state"]["unassigned"] == []
        assert body["unplaced"] == []
        assert set(body["touched_slots"]) == {"M1", "M2"}

    def test_busy(self, loaded, session):
        session._busy = True
        resp = loaded.post("/api/optimize", json={})
        assert resp.status_code == 409
        assert resp.json()["kind"] == "busy"
