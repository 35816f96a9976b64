"""
Results file and leaderboard for LLM Race Bench.

This module keeps a JSON history of finished races, aggregates it into a
cross-race leaderboard and provides the maintenance operation that strips
models with known bad data from the history.

File layout:
    {"metadata": {...}, "races": [RaceResult.to_dict(), ...], "leaderboard": [...]}
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from rich.console import Console
from rich.table import Table

from .models import RaceResult

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_PATH = Path("data/race-results.json")
FORMAT_VERSION = 1


@dataclass
class ModelPerformance:
    """Aggregated performance of one model across stored races."""

    model_id: str
    model_name: str
    races: int = 0
    total_score: float = 0.0
    wins: int = 0
    failures: int = 0
    timeouts: int = 0
    rounds_played: int = 0
    last_seen: Optional[str] = None

    @property
    def avg_score(self) -> float:
        if self.races == 0:
            return 0.0
        return self.total_score / self.races

    @property
    def win_rate(self) -> float:
        if self.races == 0:
            return 0.0
        return self.wins / self.races

    def to_entry(self, rank: int) -> Dict[str, Any]:
        entry = asdict(self)
        entry["rank"] = rank
        entry["score"] = round(self.avg_score, 4)
        entry["win_rate"] = round(self.win_rate, 4)
        return entry


def empty_results() -> Dict[str, Any]:
    return {"metadata": build_metadata([]), "races": [], "leaderboard": []}


def build_metadata(races: List[Dict[str, Any]]) -> Dict[str, Any]:
    model_ids = set()
    total_rounds = 0
    for race in races:
        model_ids.update(entry["model_id"] for entry in race.get("ranking", []))
        total_rounds += len(race.get("rounds", []))

    return {
        "version": FORMAT_VERSION,
        "total_races": len(races),
        "total_models": len(model_ids),
        "total_rounds": total_rounds,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }


def build_leaderboard(races: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Aggregate stored races into a leaderboard.

    Models are ranked by average race score, then by wins, then by fewer
    failures.
    """
    performances: Dict[str, ModelPerformance] = {}

    for race in races:
        winner = race.get("winner")
        final_states = race.get("final_states", {})
        for entry in race.get("ranking", []):
            model_id = entry["model_id"]
            perf = performances.setdefault(
                model_id,
                ModelPerformance(model_id=model_id, model_name=entry.get("model_name", model_id)),
            )
            perf.races += 1
            perf.total_score += entry.get("score", 0.0)
            perf.failures += entry.get("total_failures", 0)
            perf.timeouts += entry.get("timeouts", 0)
            perf.rounds_played += final_states.get(model_id, {}).get("rounds_played", 0)
            perf.last_seen = race.get("started_at", perf.last_seen)
            if model_id == winner:
                perf.wins += 1

    ordered = sorted(
        performances.values(),
        key=lambda perf: (-perf.avg_score, -perf.wins, perf.failures),
    )
    return [perf.to_entry(rank) for rank, perf in enumerate(ordered, start=1)]


class ResultsStore:
    """JSON file holding every stored race and the derived leaderboard."""

    def __init__(self, path: Path = DEFAULT_RESULTS_PATH):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        """Read the results file; a missing file is an empty history."""
        if not self.path.exists():
            return empty_results()

        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        data.setdefault("races", [])
        data.setdefault("leaderboard", [])
        data.setdefault("metadata", build_metadata(data["races"]))
        return data

    def save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)

    def store_race(self, result: RaceResult) -> Dict[str, Any]:
        """Append a race and rebuild the leaderboard and metadata."""
        data = self.load()
        data["races"].append(result.to_dict())
        data["leaderboard"] = build_leaderboard(data["races"])
        data["metadata"] = build_metadata(data["races"])
        self.save(data)
        logger.info(f"Stored race {result.race_id} in {self.path} ({len(data['races'])} races)")
        return data

    def leaderboard(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        entries = self.load()["leaderboard"]
        return entries[:limit] if limit else entries

    def clean(self, bad_model_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """
        Remove models with known bad data.

        The models are stripped from every stored race and from the
        leaderboard; the leaderboard is re-ranked by score and the metadata
        recomputed. Races left with no models are dropped.

        Returns:
            The leaderboard entries that were removed
        """
        bad = set(bad_model_ids)
        data = self.load()

        removed = [entry for entry in data["leaderboard"] if entry["model_id"] in bad]

        races = []
        for race in data["races"]:
            race["ranking"] = [entry for entry in race.get("ranking", []) if entry["model_id"] not in bad]
            if not race["ranking"]:
                logger.info(f"Dropping race {race.get('race_id')}: no models left")
                continue
            for rank, entry in enumerate(race["ranking"], start=1):
                entry["rank"] = rank
            race["winner"] = race["ranking"][0]["model_id"]
            race["final_states"] = {
                model_id: state for model_id, state in race.get("final_states", {}).items()
                if model_id not in bad
            }
            for round_data in race.get("rounds", []):
                round_data["entries"] = [
                    entry for entry in round_data.get("entries", []) if entry["model_id"] not in bad
                ]
            races.append(race)
        data["races"] = races

        leaderboard = [entry for entry in data["leaderboard"] if entry["model_id"] not in bad]
        leaderboard.sort(key=lambda entry: entry.get("score", 0.0), reverse=True)
        for rank, entry in enumerate(leaderboard, start=1):
            entry["rank"] = rank
        data["leaderboard"] = leaderboard
        data["metadata"] = build_metadata(races)

        self.save(data)
        logger.info(f"Removed {len(removed)} models from {self.path}")
        return removed


def store_race_result(result: RaceResult, path: Path = DEFAULT_RESULTS_PATH) -> Dict[str, Any]:
    """Store a race result in the results file."""
    return ResultsStore(path).store_race(result)


def load_results(path: Path = DEFAULT_RESULTS_PATH) -> Dict[str, Any]:
    return ResultsStore(path).load()


def clean_results(path: Path, bad_model_ids: Iterable[str]) -> List[Dict[str, Any]]:
    """Strip the given models from the results file; returns the removed leaderboard entries."""
    return ResultsStore(path).clean(bad_model_ids)


def create_leaderboard_table(entries: List[Dict[str, Any]], limit: int = 20) -> Table:
    """Create the leaderboard table."""
    table = Table(title=f"🏆 LLM Race Leaderboard (Top {limit})")
    table.add_column("Rank", style="bold cyan", width=6)
    table.add_column("Model", style="green", width=28)
    table.add_column("Avg Score", style="yellow", justify="right", width=10)
    table.add_column("Races", style="magenta", justify="right", width=6)
    table.add_column("Wins", style="blue", justify="right", width=6)
    table.add_column("Failures", style="red", justify="right", width=9)

    medals = {1: "🥇 1", 2: "🥈 2", 3: "🥉 3"}
    for entry in entries[:limit]:
        rank = entry["rank"]
        table.add_row(
            medals.get(rank, str(rank)),
            f"{entry['model_name']}\n[dim]{entry['model_id']}[/dim]",
            f"{entry['score']:.2f}",
            str(entry["races"]),
            str(entry["wins"]),
            str(entry["failures"]),
        )

    return table


def show_leaderboard(path: Path = DEFAULT_RESULTS_PATH, limit: int = 20) -> None:
    """Display the current leaderboard."""
    console = Console()
    entries = ResultsStore(path).leaderboard()

    if not entries:
        console.print(f"[yellow]No stored races in {path}[/yellow]")
        return

    console.print("\n")
    console.print(create_leaderboard_table(entries, limit))
    console.print("\n")
