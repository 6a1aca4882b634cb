from loadplanner.cabin.config import PlannerConfig, load_config
from loadplanner.cabin.metrics import calculate_cg, evaluate_score, generate_suggestion
from loadplanner.cabin.models import AssignmentState, LoadUnit, Slot
from loadplanner.cabin.snapshot import state_from_records, state_to_dict

__all__ = [
    "PlannerConfig",
    "load_config",
    "calculate_cg",
    "evaluate_score",
    "generate_suggestion",
    "AssignmentState",
    "LoadUnit",
    "Slot",
    "state_from_records",
    "state_to_dict",
]
