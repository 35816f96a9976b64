"""
Unit tests for the terminal dashboard.
"""

import io
import unittest

from rich.console import Console
from rich.panel import Panel

from llm_race_bench.core.models import RaceConfig, RaceStatus
from llm_race_bench.core.race import run_race
from llm_race_bench.ui.dashboard import Dashboard
from tests.fakes import ScriptedAdapter, make_models, make_rounds


class DashboardTests(unittest.IsolatedAsyncioTestCase):
    """Test Dashboard state tracking and rendering."""

    def setUp(self):
        self.output = io.StringIO()
        self.console = Console(file=self.output, width=120)
        self.models = make_models("a", "b")

    def test_render_before_start(self):
        dashboard = Dashboard(self.models, self.console)
        panel = dashboard.render()
        self.assertIsInstance(panel, Panel)

    async def test_follows_race(self):
        """Callbacks keep running scores, failures and latest outcomes."""
        dashboard = Dashboard(self.models, self.console)
        config = RaceConfig(id="race-ui", name="UI", rounds=make_rounds(3), models=self.models)
        adapter = ScriptedAdapter(responses={"b": RuntimeError("down")})

        with dashboard:
            result = await run_race(config, adapter, budget_s=None, callbacks=dashboard.callbacks())

        self.assertIsNone(dashboard._live)
        self.assertIs(dashboard.state.status, RaceStatus.COMPLETED)
        self.assertEqual(dashboard.scores, {"a": 3.0, "b": 0.0})
        self.assertEqual(dashboard.failures, {"a": 0, "b": 3})
        self.assertEqual(set(dashboard.latest), {"a", "b"})
        self.assertIsInstance(dashboard.render(), Panel)

        dashboard.display_final_results(result, "data/race-results.json")
        text = self.output.getvalue()
        self.assertIn("Final Results", text)
        self.assertIn("Winner: a", text)
        self.assertIn("data/race-results.json", text)

    def test_stop_without_start(self):
        dashboard = Dashboard(self.models, self.console)
        dashboard.stop_live_display()
        dashboard.refresh()
        self.assertIsNone(dashboard._live)


if __name__ == "__main__":
    unittest.main()
