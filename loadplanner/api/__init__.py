"""HTTP surface for the load planner."""
