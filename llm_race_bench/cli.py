"""
Command-line interface for LLM Race Bench.

This module provides the main entry point and argument parsing for the race
tool, wiring the model catalog, the provider client, the race orchestrator,
the live dashboard and the results file together.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from .core.models import Config, ConfigurationError, ModelConfig, RaceConfig, RaceResult, RaceStatus, Round
from .core.race import RaceOrchestrator
from .core.results import clean_results, show_leaderboard, store_race_result
from .core.scoring import EXAMPLE_CLUE_SETS, example_rounds, load_rounds
from .core.wordle import DEFAULT_GUESS_TIMEOUT_S, DEFAULT_MAX_GUESSES, random_word, wordle_rounds
from .llm.client import LLMClient, LLMProviderError
from .llm.models import PRESET_CONFIGS, preset_models, print_available_models, print_presets, select_models
from .ui.dashboard import Dashboard

LOG_FILE = "llm_race_bench.log"


# Configure logging to not interfere with live dashboard
def setup_logging(level=logging.INFO, log_file: Optional[str] = None):
    """Setup logging that doesn't interfere with Rich live display."""
    # Remove any existing handlers to avoid console output
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root_logger.addHandler(file_handler)
    else:
        # Use NullHandler during live display to suppress console output
        root_logger.addHandler(logging.NullHandler())
    root_logger.setLevel(level)


# Initialize with null handler to avoid console interference
setup_logging()
logger = logging.getLogger(__name__)

console = Console()


class RaceRunner:
    """
    Runs one race from the command line.

    Builds the provider client for the lineup, drives the orchestrator behind
    the live dashboard, then stores and displays the result.
    """

    def __init__(self, config: Config, models: List[ModelConfig], rounds: List[Round], name: Optional[str] = None):
        """Initialize the race runner."""
        self.config = config
        self.models = models
        self.race_config = RaceConfig.create(rounds, models, name=name)
        self.client = LLMClient(models, max_tokens=config.max_tokens)
        self.dashboard = Dashboard(models, console, config)

    async def run(self) -> RaceResult:
        """
        Run the race with the live dashboard.

        Returns:
            The final race result
        """
        orchestrator = RaceOrchestrator(
            self.client,
            budget_s=self.config.budget_s,
            request_timeout_s=self.config.request_timeout_s,
            callbacks=self.dashboard.callbacks(),
        )

        logger.info(f"Racing {len(self.models)} models over {len(self.race_config.rounds)} rounds")

        with self.dashboard:
            result = await orchestrator.start(self.race_config)

        results_path = None
        if self.config.save_results:
            try:
                store_race_result(result, Path(self.config.results_path))
                results_path = self.config.results_path
            except OSError as e:
                logger.warning(f"Failed to store race results: {e}")
                console.print(f"[yellow]Could not save results: {e}[/yellow]")

        self.dashboard.display_final_results(result, results_path)
        return result


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the command-line argument parser."""
    parser = argparse.ArgumentParser(
        description="🏁 LLM Race Bench - Race language models head to head",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
🎯 Quick Start Examples:
  # Offline demo with random baselines (no API keys needed)
  %(prog)s --preset baseline

  # Crossword sprint with the fast preset on a built-in clue set
  %(prog)s --example tech-challenge

  # Your own clues and models
  %(prog)s --clues clues.json --models gpt-5-mini,claude-haiku-4.5,groq/llama-3.1-8b-instant

  # Wordle race on a given word (or a random one)
  %(prog)s --wordle crane --preset thinking-ab
  %(prog)s --wordle

📊 Results Commands:
  %(prog)s --leaderboard 10
  %(prog)s --clean gpt-5.1-none gemini-2.5-pro

🤖 Models: catalog ids (see --list-models) or "provider/model" strings
  • providers: openai, anthropic, google, groq, xai, deepinfra, random
        """
    )

    # Model selection (mutually exclusive with preset)
    model_group = parser.add_mutually_exclusive_group()
    model_group.add_argument(
        "--models",
        type=str,
        help="Comma-separated catalog ids or provider/model strings"
    )
    model_group.add_argument(
        "--preset",
        type=str,
        choices=list(PRESET_CONFIGS.keys()),
        default="fast",
        help="Use a predefined lineup (default: %(default)s)"
    )
    parser.add_argument(
        "--max-models",
        type=int,
        default=8,
        help="Maximum number of models in a race (default: %(default)s)"
    )

    # Game selection
    game_group = parser.add_mutually_exclusive_group()
    game_group.add_argument(
        "--clues",
        type=str,
        metavar="FILE",
        help="JSON file with crossword clues"
    )
    game_group.add_argument(
        "--example",
        type=str,
        choices=list(EXAMPLE_CLUE_SETS.keys()),
        help="Built-in crossword clue set (default: quick-sprint)"
    )
    game_group.add_argument(
        "--wordle",
        type=str,
        nargs="?",
        const="",
        metavar="WORD",
        help="Race at Wordle (random target word if none given)"
    )
    parser.add_argument(
        "--max-guesses",
        type=int,
        default=DEFAULT_MAX_GUESSES,
        help="Wordle guesses per model (default: %(default)s)"
    )

    # Race settings
    parser.add_argument(
        "--budget",
        type=float,
        default=300.0,
        help="Wall-clock budget for the whole race in seconds, 0 for unlimited (default: %(default)s)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-request timeout in seconds (default: 4 for crossword, 10 for Wordle)"
    )
    parser.add_argument(
        "--max-tokens",
        type=int,
        default=16,
        help="Completion token cap per answer (default: %(default)s)"
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=["json", "plain"],
        help="Crossword output rule, overriding the clue file"
    )

    # Results
    parser.add_argument(
        "--results",
        type=str,
        default="data/race-results.json",
        help="Results file (default: %(default)s)"
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not store the race in the results file"
    )

    # Information commands
    parser.add_argument(
        "--list-models",
        action="store_true",
        help="List all available models and exit"
    )
    parser.add_argument(
        "--list-presets",
        action="store_true",
        help="List all available presets and exit"
    )
    parser.add_argument(
        "--leaderboard",
        type=int,
        nargs="?",
        const=20,
        help="Show model leaderboard (default: top 20)"
    )
    parser.add_argument(
        "--clean",
        type=str,
        nargs="+",
        metavar="MODEL_ID",
        help="Remove models with bad data from the results file"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help=f"Write debug logs to {LOG_FILE}"
    )

    return parser


def build_config(args: argparse.Namespace) -> Config:
    """Create the run configuration from parsed arguments."""
    config = Config(
        models=args.models or "",
        preset=args.preset,
        max_models=args.max_models,
        budget_s=args.budget if args.budget and args.budget > 0 else None,
        max_tokens=args.max_tokens,
        output_mode=args.mode or "json",
        results_path=args.results,
        save_results=not args.no_save,
    )
    if args.timeout is not None:
        config.request_timeout_s = args.timeout
    return config


def resolve_models(config: Config) -> List[ModelConfig]:
    """Resolve the lineup from explicit ids or the preset."""
    if config.models:
        return select_models(config.models.split(","), config.max_models)
    return preset_models(config.preset, config.max_models)


def resolve_rounds(args: argparse.Namespace) -> List[Round]:
    """Build the race rounds for the selected game."""
    if args.wordle is not None:
        target = args.wordle or random_word()
        timeout_s = args.timeout if args.timeout is not None else DEFAULT_GUESS_TIMEOUT_S
        return wordle_rounds(target, max_guesses=args.max_guesses, timeout_s=timeout_s)
    if args.clues:
        rounds = load_rounds(args.clues, args.mode)
    else:
        rounds = example_rounds(args.example or "quick-sprint", args.mode)

    # An explicit --timeout wins over timeLimitMs from the clue set
    if args.timeout is not None:
        rounds = [replace(race_round, timeout_s=args.timeout) for race_round in rounds]
    return rounds


async def main_async(args: argparse.Namespace) -> int:
    """Main async entry point."""
    # Handle information commands
    if args.list_models:
        print_available_models(console)
        return 0

    if args.list_presets:
        print_presets(console)
        return 0

    if args.leaderboard is not None:
        show_leaderboard(Path(args.results), args.leaderboard)
        return 0

    if args.clean:
        removed = clean_results(Path(args.results), args.clean)
        if not removed:
            console.print("[yellow]No matching models found in the leaderboard[/yellow]")
        else:
            console.print("[green]Removed model data:[/green]")
            for entry in removed:
                console.print(f"  • {entry['model_name']} ({entry['model_id']}): {entry['races']} races")
        return 0

    config = build_config(args)

    try:
        models = resolve_models(config)
        if not models:
            raise ConfigurationError("No valid models selected")
        rounds = resolve_rounds(args)

        name = f"Wordle ({len(rounds)} guesses)" if args.wordle is not None else None
        runner = RaceRunner(config, models, rounds, name=name)
        result = await runner.run()

        if result.status is RaceStatus.ABORTED_BY_SCORING_ERROR:
            console.print(f"\n[bold red]Scoring error after {result.rounds_completed} rounds: {result.error}[/bold red]")
            return 1
        if result.truncated:
            console.print(f"\n[yellow]Race stopped after {result.rounds_completed} rounds: "
                          f"time budget reached[/yellow]")
        else:
            console.print("\n[bold green]Race completed successfully![/bold green]")
        return 0

    except (ConfigurationError, LLMProviderError, ValueError) as e:
        console.print(f"\n[bold red]Race failed: {e}[/bold red]")
        logger.error(f"Race failed: {e}")
        return 1


def main() -> int:
    """Main entry point."""
    parser = create_argument_parser()
    args = parser.parse_args()

    if args.verbose:
        setup_logging(logging.DEBUG, LOG_FILE)

    try:
        return asyncio.run(main_async(args))
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Interrupted by user[/bold yellow]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
