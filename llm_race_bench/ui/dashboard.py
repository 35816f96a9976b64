"""
UI dashboard module for real-time race visualization.

This module provides a Rich-based terminal UI that follows a race through the
orchestrator's callbacks: round progress, live per-model outcomes and running
scores, and a final results summary.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from ..core.models import (
    Config,
    Failure,
    ModelConfig,
    Outcome,
    OutcomeStatus,
    RaceResult,
    RaceState,
    RaceStatus,
    RoundResult,
    Success,
)
from ..core.race import RaceCallbacks

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    OutcomeStatus.SUCCESS: ("✓", "green"),
    OutcomeStatus.FAILURE: ("✗", "red"),
    OutcomeStatus.TIMEOUT: ("⏱", "yellow"),
}

RACE_STATUS_LABELS = {
    RaceStatus.PENDING: "⏳ Pending",
    RaceStatus.RUNNING: "🏁 Running",
    RaceStatus.COMPLETED: "✅ Completed",
    RaceStatus.TRUNCATED_BY_BUDGET: "⌛ Stopped: time budget reached",
    RaceStatus.COMPLETED_ALL_ELIMINATED: "✅ Completed: every model finished early",
    RaceStatus.ABORTED_BY_SCORING_ERROR: "❌ Stopped: scoring error",
}


class Dashboard:
    """
    Rich-based terminal dashboard for a live race.

    Feed it the callbacks from callbacks() and it keeps a running view of
    every model's score, latest answer and failures.
    """

    def __init__(
        self,
        models: Iterable[ModelConfig] = (),
        console: Optional[Console] = None,
        config: Optional[Config] = None,
    ):
        """
        Initialize the dashboard.

        Args:
            models: Models in the race, in configuration order
            console: Rich console instance (creates new if None)
            config: Configuration object for display settings
        """
        self.console = console or Console()
        self.config = config or Config()
        self.models = {model.id: model for model in models}
        self.state: Optional[RaceState] = None
        self.scores: Dict[str, float] = {model_id: 0.0 for model_id in self.models}
        self.failures: Dict[str, int] = {model_id: 0 for model_id in self.models}
        self.eliminated: Dict[str, bool] = {model_id: False for model_id in self.models}
        self.latest: Dict[str, Outcome] = {}
        self._live: Optional[Live] = None

    def callbacks(self) -> RaceCallbacks:
        """Race callbacks that drive this dashboard."""
        return RaceCallbacks(
            on_state_change=self.on_state_change,
            on_outcome=self.on_outcome,
            on_round_complete=self.on_round_complete,
        )

    def start_live_display(self) -> Live:
        """
        Start the live updating display.

        Returns:
            Live context manager for updates
        """
        if self._live is not None:
            return self._live

        self._live = Live(
            self.render(),
            console=self.console,
            refresh_per_second=self.config.refresh_rate,
            auto_refresh=True,
        )
        return self._live

    def stop_live_display(self) -> None:
        """Stop the live display if running."""
        if self._live is not None:
            try:
                self._live.stop()
            except Exception as e:
                logger.warning(f"Error stopping live display: {e}")
            finally:
                self._live = None

    def on_state_change(self, state: RaceState) -> None:
        self.state = state
        self.refresh()

    def on_outcome(self, round_id: str, model_id: str, outcome: Outcome) -> None:
        self.latest[model_id] = outcome
        self.refresh()

    def on_round_complete(self, round_result: RoundResult) -> None:
        for entry in round_result.entries:
            self.scores[entry.model_id] = self.scores.get(entry.model_id, 0.0) + entry.score_delta
            if entry.status is not OutcomeStatus.SUCCESS:
                self.failures[entry.model_id] = self.failures.get(entry.model_id, 0) + 1
            if entry.eliminated:
                self.eliminated[entry.model_id] = True
        self.refresh()

    def refresh(self) -> None:
        """Push the current view to the live display."""
        if self._live is None:
            return
        try:
            self._live.update(self.render())
        except Exception as e:
            logger.error(f"Error updating dashboard: {e}")

    def render(self) -> Panel:
        """Render the complete dashboard."""
        if self.state is None:
            return Panel(
                Text("Waiting for the race to start...", style="dim", justify="center"),
                title="🏁 LLM Race Bench",
                border_style="magenta",
            )

        header = Table.grid(expand=True)
        header.add_column(ratio=1)
        header.add_column(justify="right")
        current = self.state.current_round_id or "-"
        header.add_row(
            Text(RACE_STATUS_LABELS.get(self.state.status, self.state.status.value), style="bold"),
            Text(f"Round {current}  {self.state.completed_rounds}/{self.state.total_rounds}", style="cyan"),
        )

        progress = ProgressBar(total=100, completed=self.state.progress)

        return Panel(
            Group(header, progress, Text(""), self._render_standings()),
            title=f"🏁 LLM Race Bench: {self.state.race_id}",
            title_align="center",
            border_style="magenta",
            padding=(1, 2),
        )

    def _render_standings(self) -> Table:
        table = Table(expand=True, show_header=True, header_style="bold cyan")
        table.add_column("Model", style="cyan", no_wrap=True)
        table.add_column("Score", style="green", justify="right")
        table.add_column("Last", justify="center")
        table.add_column("Answer", style="white")
        table.add_column("Latency", style="bright_magenta", justify="right")
        table.add_column("Failures", style="red", justify="right")

        ordered = sorted(self.models.values(), key=lambda model: -self.scores.get(model.id, 0.0))
        for model in ordered:
            outcome = self.latest.get(model.id)
            if outcome is None:
                symbol, answer, latency = Text("…", style="dim"), "", "—"
            else:
                mark, style = STATUS_STYLES[outcome.status]
                symbol = Text(mark, style=style)
                latency = f"{outcome.elapsed_s:.2f}s"
                if isinstance(outcome, Success):
                    answer = outcome.text[:30]
                elif isinstance(outcome, Failure):
                    answer = Text(outcome.cause[:30], style="red")
                else:
                    answer = Text("timeout", style="yellow")

            name = model.name
            if self.eliminated.get(model.id):
                name = f"{name} 🏁"

            table.add_row(
                name,
                f"{self.scores.get(model.id, 0.0):.1f}",
                symbol,
                answer,
                latency,
                str(self.failures.get(model.id, 0)),
            )

        return table

    def display_final_results(self, result: RaceResult, results_path: Optional[str] = None) -> None:
        """
        Display final race results in a formatted summary.

        Args:
            result: The finished race
            results_path: Where the result was stored, if it was
        """
        self.console.print("\n")

        results_table = Table(expand=True, show_header=True, header_style="bold cyan")
        results_table.add_column("Rank", style="bold", justify="right")
        results_table.add_column("Model", style="cyan", no_wrap=True)
        results_table.add_column("Score", style="green", justify="right")
        results_table.add_column("Rounds", style="blue", justify="right")
        results_table.add_column("Avg Latency", style="bright_magenta", justify="right")
        results_table.add_column("Failures", style="red", justify="right")
        results_table.add_column("Timeouts", style="yellow", justify="right")

        medals = {1: "🥇", 2: "🥈", 3: "🥉"}
        for entry in result.ranking:
            state = result.final_states[entry.model_id]
            avg_latency = f"{state.average_elapsed_s:.2f}s" if state.rounds_played else "—"
            results_table.add_row(
                medals.get(entry.rank, str(entry.rank)),
                entry.model_name,
                f"{entry.score:.2f}",
                str(state.rounds_played),
                avg_latency,
                str(entry.total_failures),
                str(entry.timeouts),
            )

        summary_lines = [
            f"🕐 Started: {result.started_at.strftime('%Y-%m-%d %H:%M:%S')}",
            f"📋 Status: {RACE_STATUS_LABELS.get(result.status, result.status.value)}",
            f"🔁 Rounds completed: {result.rounds_completed}",
            f"⏱️ Total time: {result.duration_s:.2f}s",
        ]
        if result.ranking:
            winner = result.ranking[0]
            summary_lines.append(f"🏆 Winner: {winner.model_name} ({winner.score:.2f})")
        if results_path:
            summary_lines.append(f"💾 Results saved to: {results_path}")

        final_panel = Panel(
            Group(
                results_table,
                Text(""),
                Text("\n".join(summary_lines), style="dim"),
            ),
            title="🎯 Final Results",
            title_align="center",
            border_style="green",
            padding=(1, 2),
        )

        self.console.print(final_panel)

    def __enter__(self):
        """Context manager entry."""
        return self.start_live_display().__enter__()

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.stop_live_display()
