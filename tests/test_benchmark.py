"""
Smoke test for the benchmark script.

Run with: pytest tests/test_benchmark.py -v
"""

import numpy as np
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from loadplanner.assignment.benchmark import generate_scenario, run_benchmark


class TestBenchmark:
    def test_scenario_shape(self):
        scenario = generate_scenario(6, 4, np.random.default_rng(0))
        assert len(scenario.state.slots) == 6
        assert len(scenario.state.units) == 4
        assert len(scenario.state.unassigned) == 4
        assert 35.0 <= scenario.target_cg <= 60.0

    @pytest.mark.parametrize("methods", [["heuristic"], ["heuristic", "scipy"]])
    def test_run_prints_table(self, capsys, methods):
        run_benchmark(n_scenarios=1, n_slots=6, n_units=4, seed=1, methods=methods)
        out = capsys.readouterr().out
        assert "Avg CG deviation" in out
        assert "Failures:" in out
        for name in methods:
            assert name in out
