from loadplanner.flight.repository import (
    FlightRecord,
    FlightRepository,
    InMemoryFlightRepository,
    InMemoryLayoutSink,
    LayoutSink,
    YamlFlightRepository,
    YamlLayoutSink,
)

__all__ = [
    "FlightRecord",
    "FlightRepository",
    "InMemoryFlightRepository",
    "InMemoryLayoutSink",
    "LayoutSink",
    "YamlFlightRepository",
    "YamlLayoutSink",
]
