"""
Core package for LLM Race Bench.

This package contains the race orchestration engine (data models, the round
executor and the race orchestrator) together with the scoring capabilities
for the crossword sprint and Wordle games and the results file.
"""

from .models import (
    Config,
    ConfigurationError,
    Failure,
    ModelClientAdapter,
    ModelConfig,
    ModelResponse,
    ModelRoundResult,
    ModelRuntimeState,
    OutcomeStatus,
    RaceConfig,
    RaceContext,
    RaceResult,
    RaceState,
    RaceStatus,
    RankingEntry,
    Round,
    RoundResult,
    ScoreUpdate,
    ScoringError,
    Success,
    Timeout,
    TokenUsage,
)

from .round import RoundExecutor

from .race import (
    RaceCallbacks,
    RaceOrchestrator,
    compute_ranking,
    run_race,
    validate_config,
)

from .scoring import Clue, CrosswordScorer, crossword_rounds, load_rounds
from .wordle import WordleScorer, WordleTurn, wordle_rounds

__all__ = [
    # Data models
    "Config",
    "ModelConfig",
    "RaceConfig",
    "Round",
    "RaceContext",
    "ModelResponse",
    "TokenUsage",
    "Success",
    "Failure",
    "Timeout",
    "OutcomeStatus",
    "ScoreUpdate",
    "ModelRoundResult",
    "ModelRuntimeState",
    "RoundResult",
    "RankingEntry",
    "RaceResult",
    "RaceState",
    "RaceStatus",
    "ModelClientAdapter",

    # Errors
    "ConfigurationError",
    "ScoringError",

    # Orchestration
    "RoundExecutor",
    "RaceOrchestrator",
    "RaceCallbacks",
    "run_race",
    "validate_config",
    "compute_ranking",

    # Games
    "Clue",
    "CrosswordScorer",
    "crossword_rounds",
    "load_rounds",
    "WordleTurn",
    "WordleScorer",
    "wordle_rounds",
]
