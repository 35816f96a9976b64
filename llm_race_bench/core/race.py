"""
Race orchestration for LLM Race Bench.

This module drives a race: it validates the configuration, runs the rounds
strictly in order through the round executor, folds every round's outcomes
into per-model cumulative state, enforces the race's wall-clock budget and
assembles the final ranked result.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set

from .models import (
    ConfigurationError,
    ModelClientAdapter,
    ModelConfig,
    ModelRuntimeState,
    Outcome,
    RaceConfig,
    RaceContext,
    RaceResult,
    RaceState,
    RaceStatus,
    RankingEntry,
    Round,
    RoundResult,
    ScoringError,
)
from .round import DEFAULT_REQUEST_TIMEOUT_S, RoundExecutor

logger = logging.getLogger(__name__)

# Whole-race wall-clock ceiling in seconds
DEFAULT_BUDGET_S = 300.0


@dataclass
class RaceCallbacks:
    """Optional observers notified while a race runs."""

    on_state_change: Optional[Callable[[RaceState], None]] = None
    on_outcome: Optional[Callable[[str, str, Outcome], None]] = None
    on_round_complete: Optional[Callable[[RoundResult], None]] = None
    on_race_complete: Optional[Callable[[RaceResult], None]] = None


def validate_config(config: RaceConfig) -> None:
    """
    Check a race configuration before anything is started.

    Raises:
        ConfigurationError: If rounds or models are empty, or ids are duplicated
    """
    if not config.rounds:
        raise ConfigurationError("At least one round is required")
    if not config.models:
        raise ConfigurationError("At least one model is required")

    seen: Set[str] = set()
    duplicates = []
    for model in config.models:
        if model.id in seen:
            duplicates.append(model.id)
        seen.add(model.id)
    if duplicates:
        raise ConfigurationError(f"Duplicate model ids: {', '.join(sorted(set(duplicates)))}")

    round_ids: Set[str] = set()
    for race_round in config.rounds:
        if race_round.id in round_ids:
            raise ConfigurationError(f"Duplicate round id: {race_round.id}")
        round_ids.add(race_round.id)
        if not callable(race_round.scorer):
            raise ConfigurationError(f"Round {race_round.id} has no scoring capability")


def compute_ranking(
    models: Sequence[ModelConfig],
    states: Mapping[str, ModelRuntimeState],
) -> List[RankingEntry]:
    """
    Rank models by final score.

    Ties are broken by fewer total failures, then by position in the original
    configuration, so the order is total and deterministic.
    """
    position = {model.id: index for index, model in enumerate(models)}
    ordered = sorted(
        models,
        key=lambda model: (
            -states[model.id].score,
            states[model.id].total_failures,
            position[model.id],
        ),
    )

    ranking = []
    for rank, model in enumerate(ordered, start=1):
        state = states[model.id]
        ranking.append(RankingEntry(
            rank=rank,
            model_id=model.id,
            model_name=model.name,
            score=state.score,
            total_failures=state.total_failures,
            timeouts=state.timeouts,
            active=state.active,
        ))
    return ranking


class RaceOrchestrator:
    """
    Drives a race from its first round to a terminal state.

    Owns every model's runtime state; the round executor only ever sees frozen
    snapshots. Per-model failures are captured as data and never abort the race.
    """

    def __init__(
        self,
        adapter: ModelClientAdapter,
        executor: Optional[RoundExecutor] = None,
        budget_s: Optional[float] = DEFAULT_BUDGET_S,
        request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        callbacks: Optional[RaceCallbacks] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the race orchestrator.

        Args:
            adapter: Model client adapter shared by every round
            executor: Round executor (created from the adapter if None)
            budget_s: Wall-clock ceiling for a whole race (None for unlimited)
            request_timeout_s: Per-request deadline for the default executor
            callbacks: Optional progress observers
            clock: Monotonic clock used for the budget
        """
        if budget_s is not None and budget_s < 0:
            raise ConfigurationError("Race budget cannot be negative")

        self.callbacks = callbacks or RaceCallbacks()
        self.budget_s = budget_s
        self.clock = clock
        self.executor = executor or RoundExecutor(
            adapter,
            request_timeout_s=request_timeout_s,
            clock=clock,
            on_outcome=self._handle_outcome,
        )
        self.state: Optional[RaceState] = None
        self._started: Set[str] = set()

    async def start(self, config: RaceConfig) -> RaceResult:
        """
        Run the race to completion.

        Args:
            config: The race configuration

        Returns:
            RaceResult in state completed, truncated by budget, all eliminated or
            aborted by a scoring error; rounds completed before the abort are kept

        Raises:
            ConfigurationError: If the configuration is invalid or was already started
        """
        validate_config(config)
        if config.id in self._started:
            raise ConfigurationError(f"Race {config.id} has already been started")
        self._started.add(config.id)

        states: Dict[str, ModelRuntimeState] = {
            model.id: ModelRuntimeState(model_id=model.id) for model in config.models
        }
        round_results: List[RoundResult] = []
        status = RaceStatus.COMPLETED
        error: Optional[str] = None
        longest_round_s = 0.0

        started_at = datetime.now(timezone.utc)
        race_start = self.clock()
        self.state = RaceState(race_id=config.id, total_rounds=len(config.rounds))
        self._update_state(status=RaceStatus.RUNNING, started_at=started_at)

        logger.info(f"Starting race {config.id} ({config.name}) with {len(config.models)} models "
                    f"and {len(config.rounds)} rounds")

        for index, race_round in enumerate(config.rounds):
            active = [model for model in config.models if states[model.id].active]
            if not active:
                status = RaceStatus.COMPLETED_ALL_ELIMINATED
                logger.info(f"All models eliminated before round {race_round.id}, ending race")
                break

            if not self._has_budget_for(race_round, race_start, longest_round_s):
                status = RaceStatus.TRUNCATED_BY_BUDGET
                logger.info(f"Race budget of {self.budget_s:.1f}s exhausted before round {race_round.id}, "
                            f"stopping after {len(round_results)} rounds")
                break

            self._update_state(current_round_id=race_round.id)

            context = RaceContext(
                race_id=config.id,
                round_index=index,
                standings=MappingProxyType({
                    model_id: state.snapshot() for model_id, state in states.items()
                }),
                previous_rounds=tuple(round_results),
            )
            try:
                round_result = await self.executor.run(race_round, active, context)
            except ScoringError as e:
                status = RaceStatus.ABORTED_BY_SCORING_ERROR
                error = str(e)
                logger.exception(f"Scoring failed in round {race_round.id}, ending race "
                                 f"after {len(round_results)} rounds")
                break
            round_results.append(round_result)

            for entry in round_result.entries:
                states[entry.model_id].record(entry, index)
                if entry.eliminated:
                    logger.info(f"{entry.model_id} eliminated in round {race_round.id}")
            longest_round_s = max(longest_round_s, round_result.elapsed_s)

            self._update_state(completed_rounds=len(round_results))
            self._notify(self.callbacks.on_round_complete, round_result)

        ranking = compute_ranking(config.models, states)
        result = RaceResult(
            race_id=config.id,
            name=config.name,
            status=status,
            round_results=tuple(round_results),
            final_states=states,
            ranking=ranking,
            started_at=started_at,
            duration_s=self.clock() - race_start,
            error=error,
        )

        self._update_state(status=status, completed_at=datetime.now(timezone.utc))
        self._notify(self.callbacks.on_race_complete, result)

        winner = ranking[0]
        logger.info(f"Race {config.id} {status.value} after {len(round_results)} rounds in "
                    f"{result.duration_s:.2f}s. Winner: {winner.model_name} ({winner.score:.2f})")

        return result

    def _has_budget_for(self, race_round: Round, race_start: float, longest_round_s: float) -> bool:
        """
        Decide at a round boundary whether another round may start.

        The estimate for the next round is the longest round seen so far, capped
        at the round's per-request deadline, since every request in a round runs
        concurrently.
        """
        if self.budget_s is None:
            return True

        remaining = self.budget_s - (self.clock() - race_start)
        if remaining <= 0:
            return False

        estimate = min(longest_round_s, self.executor.timeout_for(race_round))
        return remaining >= estimate

    def _handle_outcome(self, round_id: str, model_id: str, outcome: Outcome) -> None:
        self._notify(self.callbacks.on_outcome, round_id, model_id, outcome)

    def _update_state(self, **changes: Any) -> None:
        """Publish a new progress snapshot."""
        self.state = replace(self.state, **changes)
        self._notify(self.callbacks.on_state_change, self.state)

    @staticmethod
    def _notify(callback: Optional[Callable[..., None]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.warning(f"Race callback failed: {e}")


async def run_race(
    config: RaceConfig,
    adapter: ModelClientAdapter,
    budget_s: Optional[float] = DEFAULT_BUDGET_S,
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
    callbacks: Optional[RaceCallbacks] = None,
) -> RaceResult:
    """
    Run a single race with a fresh orchestrator.

    Configuration errors are raised before any model is contacted.
    """
    validate_config(config)
    orchestrator = RaceOrchestrator(
        adapter,
        budget_s=budget_s,
        request_timeout_s=request_timeout_s,
        callbacks=callbacks,
    )
    return await orchestrator.start(config)
