"""
Flight / manifest repositories and layout sinks.

The core only talks to these through the two protocols below, injected
into PlannerSession. Records come back as plain dicts; snapshot.py turns
them into the typed model.

YAML flight file (one per flight, named <code>.yaml, lower case):

    flight:
      id: 2025
      code: CX2025
      target_cg: 22.0
    units:
      - {id: AKE1001, weight: 1450, volume: 4.3, priority: true, type: AKE}
    slots:
      - {id: 11L, x: 18, y: -1, max_weight: 5000, assigned_unit: null, fixed: false}
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import yaml

from loadplanner.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from loadplanner.assignment.exact import LayoutItem

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlightRecord:
    """Flight identity and its target CG (None → use the configured default)."""

    id: int | str
    code: str
    target_cg: float | None = None


class FlightRepository(Protocol):
    def get_flight(self, code: str) -> FlightRecord: ...

    def get_manifest(self, flight_id: int | str) -> list[dict]: ...

    def get_slots(self, flight_id: int | str) -> list[dict]: ...


class LayoutSink(Protocol):
    def save_layout(self, flight_id: int | str, layout: list[LayoutItem]) -> None: ...


# ─────────────────────────────────────────────────────────────────────────────
# In-memory implementations (tests, demos)
# ─────────────────────────────────────────────────────────────────────────────


class InMemoryFlightRepository:
    """Dict-backed repository. Codes are matched case-insensitively."""

    def __init__(self) -> None:
        self._flights: dict[str, FlightRecord] = {}
        self._manifests: dict[int | str, list[dict]] = {}
        self._slots: dict[int | str, list[dict]] = {}

    def add_flight(
        self,
        code: str,
        units: list[dict],
        slots: list[dict],
        target_cg: float | None = None,
        flight_id: int | str | None = None,
    ) -> FlightRecord:
        record = FlightRecord(
            id=flight_id if flight_id is not None else len(self._flights) + 1,
            code=code.upper(),
            target_cg=target_cg,
        )
        self._flights[record.code] = record
        self._manifests[record.id] = [dict(u) for u in units]
        self._slots[record.id] = [dict(s) for s in slots]
        return record

    def get_flight(self, code: str) -> FlightRecord:
        record = self._flights.get(code.upper())
        if record is None:
            raise NotFoundError(f"Flight {code} not found.")
        return record

    def get_manifest(self, flight_id: int | str) -> list[dict]:
        if flight_id not in self._manifests:
            raise NotFoundError(f"No manifest for flight {flight_id}.")
        return [dict(u) for u in self._manifests[flight_id]]

    def get_slots(self, flight_id: int | str) -> list[dict]:
        if flight_id not in self._slots:
            raise NotFoundError(f"No slot table for flight {flight_id}.")
        return [dict(s) for s in self._slots[flight_id]]


class InMemoryLayoutSink:
    """Keeps every saved layout, newest last."""

    def __init__(self) -> None:
        self.saved: list[tuple[int | str, list[LayoutItem]]] = []

    def save_layout(self, flight_id: int | str, layout: list[LayoutItem]) -> None:
        self.saved.append((flight_id, list(layout)))


# ─────────────────────────────────────────────────────────────────────────────
# YAML file implementations
# ─────────────────────────────────────────────────────────────────────────────


class YamlFlightRepository:
    """Reads one YAML file per flight from a data directory."""

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)
        self._by_id: dict[int | str, dict[str, Any]] = {}

    def get_flight(self, code: str) -> FlightRecord:
        path = self.data_dir / f"{code.lower()}.yaml"
        if not path.exists():
            raise NotFoundError(f"Flight {code} not found.")
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValidationError(f"Flight file {path.name} is malformed.")

        flight = raw.get("flight") or {}
        record = FlightRecord(
            id=flight.get("id", code.upper()),
            code=str(flight.get("code", code)).upper(),
            target_cg=flight.get("target_cg"),
        )
        self._by_id[record.id] = raw
        return record

    def get_manifest(self, flight_id: int | str) -> list[dict]:
        return list(self._raw(flight_id).get("units") or [])

    def get_slots(self, flight_id: int | str) -> list[dict]:
        slots = list(self._raw(flight_id).get("slots") or [])
        if not slots:
            raise ValidationError(f"Flight {flight_id} has no slot data.")
        return slots

    def _raw(self, flight_id: int | str) -> dict[str, Any]:
        if flight_id not in self._by_id:
            raise NotFoundError(f"Flight {flight_id} has not been looked up.")
        return self._by_id[flight_id]


class YamlLayoutSink:
    """Writes each computed layout to <layout_dir>/flight_<id>.yaml."""

    def __init__(self, layout_dir: str | Path) -> None:
        self.layout_dir = Path(layout_dir)

    def save_layout(self, flight_id: int | str, layout: list[LayoutItem]) -> None:
        if not layout:
            return
        self.layout_dir.mkdir(parents=True, exist_ok=True)
        rows = [{"flight_id": flight_id, **asdict(item)} for item in layout]
        path = self.layout_dir / f"flight_{flight_id}.yaml"
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"layout": rows}, f, sort_keys=False)
        log.info("saved %d layout rows to %s", len(rows), path)
