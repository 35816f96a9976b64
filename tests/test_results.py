"""
Unit tests for the results file and leaderboard.

Tests storing races, leaderboard aggregation and cleaning models with bad
data out of the stored history.
"""

import json
import tempfile
import unittest
from pathlib import Path

from rich.table import Table

from llm_race_bench.core.models import RaceConfig
from llm_race_bench.core.race import run_race
from llm_race_bench.core.results import (
    ResultsStore,
    build_leaderboard,
    clean_results,
    create_leaderboard_table,
    load_results,
    store_race_result,
)
from tests.fakes import ScriptedAdapter, make_models, make_rounds


async def make_result(race_id, responses, model_ids=("a", "b", "c"), rounds=2):
    config = RaceConfig(id=race_id, name=race_id, rounds=make_rounds(rounds), models=make_models(*model_ids))
    return await run_race(config, ScriptedAdapter(responses=responses), budget_s=None)


class ResultsStoreTests(unittest.IsolatedAsyncioTestCase):
    """Test ResultsStore persistence."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.path = Path(self.tmpdir.name) / "data" / "race-results.json"

    def test_missing_file_is_empty(self):
        data = load_results(self.path)
        self.assertEqual(data["races"], [])
        self.assertEqual(data["leaderboard"], [])
        self.assertEqual(data["metadata"]["total_races"], 0)

    async def test_store_race(self):
        """Stored races are appended and the leaderboard rebuilt."""
        first = await make_result("race-1", {"b": RuntimeError("down")})
        second = await make_result("race-2", {"c": RuntimeError("down")})
        store_race_result(first, self.path)
        data = store_race_result(second, self.path)

        self.assertTrue(self.path.exists())
        with open(self.path, encoding="utf-8") as f:
            on_disk = json.load(f)
        self.assertEqual(on_disk["metadata"], data["metadata"])

        self.assertEqual([race["race_id"] for race in data["races"]], ["race-1", "race-2"])
        self.assertEqual(data["metadata"]["total_races"], 2)
        self.assertEqual(data["metadata"]["total_models"], 3)
        self.assertEqual(data["metadata"]["total_rounds"], 4)

        leaderboard = {entry["model_id"]: entry for entry in data["leaderboard"]}
        self.assertEqual(leaderboard["a"]["rank"], 1)
        self.assertEqual(leaderboard["a"]["races"], 2)
        self.assertEqual(leaderboard["a"]["wins"], 2)
        self.assertEqual(leaderboard["a"]["score"], 2.0)
        self.assertEqual(leaderboard["b"]["failures"], 2)
        self.assertEqual(leaderboard["b"]["score"], 1.0)
        self.assertEqual(leaderboard["b"]["rounds_played"], 4)

    async def test_leaderboard_limit(self):
        store = ResultsStore(self.path)
        store.store_race(await make_result("race-1", {}))
        self.assertEqual(len(store.leaderboard()), 3)
        self.assertEqual(len(store.leaderboard(limit=2)), 2)

    async def test_clean(self):
        """Cleaning strips a model everywhere and re-ranks what is left."""
        store = ResultsStore(self.path)
        store.store_race(await make_result("race-1", {"b": RuntimeError("down"), "c": RuntimeError("down")}))
        store.store_race(await make_result("race-2", {}, model_ids=("a",)))

        removed = clean_results(self.path, ["a", "unknown"])
        self.assertEqual([entry["model_id"] for entry in removed], ["a"])

        data = store.load()
        self.assertEqual([race["race_id"] for race in data["races"]], ["race-1"])
        race = data["races"][0]
        self.assertEqual([entry["model_id"] for entry in race["ranking"]], ["b", "c"])
        self.assertEqual([entry["rank"] for entry in race["ranking"]], [1, 2])
        self.assertEqual(race["winner"], "b")
        self.assertNotIn("a", race["final_states"])
        for round_data in race["rounds"]:
            self.assertNotIn("a", [entry["model_id"] for entry in round_data["entries"]])

        self.assertEqual([entry["model_id"] for entry in data["leaderboard"]], ["b", "c"])
        self.assertEqual([entry["rank"] for entry in data["leaderboard"]], [1, 2])
        self.assertEqual(data["metadata"]["total_races"], 1)
        self.assertEqual(data["metadata"]["total_models"], 2)

    async def test_clean_nothing_matching(self):
        store = ResultsStore(self.path)
        store.store_race(await make_result("race-1", {}))
        self.assertEqual(store.clean(["zzz"]), [])
        self.assertEqual(len(store.load()["leaderboard"]), 3)


class LeaderboardTests(unittest.TestCase):
    """Test leaderboard aggregation and display."""

    def test_build_leaderboard_ordering(self):
        """Average score first, then wins, then fewer failures."""
        races = [
            {"winner": "x", "ranking": [
                {"model_id": "x", "model_name": "X", "score": 10.0, "total_failures": 0},
                {"model_id": "y", "model_name": "Y", "score": 10.0, "total_failures": 1},
                {"model_id": "z", "model_name": "Z", "score": 10.0, "total_failures": 0},
            ]},
        ]
        leaderboard = build_leaderboard(races)
        self.assertEqual([entry["model_id"] for entry in leaderboard], ["x", "z", "y"])
        self.assertEqual(leaderboard[0]["win_rate"], 1.0)
        self.assertEqual(leaderboard[1]["win_rate"], 0.0)

    def test_table(self):
        entries = build_leaderboard([
            {"winner": "x", "ranking": [
                {"model_id": "x", "model_name": "X", "score": 3.0},
                {"model_id": "y", "model_name": "Y", "score": 1.0},
            ]},
        ])
        table = create_leaderboard_table(entries, limit=1)
        self.assertIsInstance(table, Table)
        self.assertEqual(table.row_count, 1)


if __name__ == "__main__":
    unittest.main()
