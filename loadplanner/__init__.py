"""
Cargo load planner.

Assigns load units to stowage slots so the loaded centre of gravity lands
as close as possible to the flight's target, with interactive edits and
two optimizers (exact MILP, greedy left/right balancer) sharing one
invariant-checked state model.
"""

__version__ = "0.1.0"
