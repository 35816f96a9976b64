"""
LLM Race Bench - Head-to-head races between Large Language Models.

This package provides a race orchestration engine that runs an ordered
sequence of rounds against many models concurrently, isolates per-model
failures and timeouts, respects a wall-clock budget and ranks the models,
together with crossword sprint and Wordle games, LLM provider adapters and a
live terminal dashboard.
"""

__version__ = "0.3.0"
__author__ = "LLM Race Bench Team"
__license__ = "MIT"

# Core imports
from .core.models import ModelConfig, RaceConfig, RaceResult, Round
from .core.race import RaceOrchestrator, run_race
from .core.round import RoundExecutor
from .llm.client import LLMClient
from .ui.dashboard import Dashboard
from .cli import main

__all__ = [
    "ModelConfig",
    "RaceConfig",
    "RaceResult",
    "Round",
    "RaceOrchestrator",
    "RoundExecutor",
    "run_race",
    "LLMClient",
    "Dashboard",
    "main",
]
