"""
Test package for LLM Race Bench.

This package contains unit tests for all components of the race tool,
including the round executor, race orchestration, crossword and Wordle
scoring, provider adapters, results storage and the command-line interface.
"""

# Import test modules for easier discovery
from . import test_models
from . import test_round
from . import test_race
from . import test_scoring
from . import test_wordle
from . import test_client
from . import test_catalog
from . import test_results
from . import test_dashboard
from . import test_cli

__all__ = [
    "test_models",
    "test_round",
    "test_race",
    "test_scoring",
    "test_wordle",
    "test_client",
    "test_catalog",
    "test_results",
    "test_dashboard",
    "test_cli",
]
