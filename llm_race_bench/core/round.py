"""
Round executor for LLM Race Bench.

This module runs a single round of a race: it fans a request out to every
active model concurrently, caps each request with its own deadline, waits for
all of them to settle and hands the full set of outcomes to the round's
scoring capability.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from .models import (
    ConfigurationError,
    Failure,
    ModelClientAdapter,
    ModelConfig,
    ModelResponse,
    ModelRoundResult,
    Outcome,
    RaceContext,
    Round,
    RoundResult,
    ScoreUpdate,
    ScoringError,
    Success,
    Timeout,
    is_valid_delta,
)

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT_S = 4.0

OutcomeHook = Callable[[str, str, Outcome], None]


class RoundExecutor:
    """
    Runs one round against every active model.

    Each model's request is an independent task bounded by its own deadline;
    an exception, malformed response or timeout from one model never aborts or
    delays the others. The round completes once every task has settled.
    """

    def __init__(
        self,
        adapter: ModelClientAdapter,
        request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        clock: Callable[[], float] = time.monotonic,
        on_outcome: Optional[OutcomeHook] = None,
    ):
        """
        Initialize the round executor.

        Args:
            adapter: Model client adapter used for every request
            request_timeout_s: Default per-request deadline in seconds
            clock: Monotonic clock used for deadlines and elapsed times
            on_outcome: Optional hook called as each model settles
        """
        if request_timeout_s <= 0:
            raise ConfigurationError("Request timeout must be positive")
        self.adapter = adapter
        self.request_timeout_s = request_timeout_s
        self.clock = clock
        self.on_outcome = on_outcome

    def timeout_for(self, race_round: Round) -> float:
        """Per-request deadline that applies to this round."""
        if race_round.timeout_s is not None and race_round.timeout_s > 0:
            return race_round.timeout_s
        return self.request_timeout_s

    async def run(
        self,
        race_round: Round,
        active_models: Sequence[ModelConfig],
        context: RaceContext,
    ) -> RoundResult:
        """
        Execute a round and score it.

        Args:
            race_round: The round to run
            active_models: Models still in the race, in configuration order
            context: Read-only snapshot of the race so far

        Returns:
            RoundResult with one entry per active model, in the given order
        """
        started_at = datetime.now(timezone.utc)
        start = self.clock()
        timeout_s = self.timeout_for(race_round)
        deadline = start + timeout_s

        logger.info(f"Round {race_round.display_name}: querying {len(active_models)} models "
                    f"(timeout {timeout_s:.1f}s)")

        tasks: Dict[str, asyncio.Task] = {
            model.id: asyncio.create_task(self._invoke(race_round, model.id, context, deadline))
            for model in active_models
        }
        if tasks:
            await asyncio.gather(*tasks.values())

        outcomes: Dict[str, Outcome] = {model_id: task.result() for model_id, task in tasks.items()}
        updates = self._score(race_round, outcomes)

        entries = []
        for model in active_models:
            update = updates.get(model.id, ScoreUpdate())
            entries.append(ModelRoundResult(
                model_id=model.id,
                outcome=outcomes[model.id],
                score_delta=float(update.delta),
                eliminated=update.eliminated,
                details=dict(update.details),
            ))

        elapsed = self.clock() - start
        logger.info(f"Round {race_round.display_name} finished in {elapsed:.2f}s")

        return RoundResult(
            round_id=race_round.id,
            round_index=context.round_index,
            entries=tuple(entries),
            started_at=started_at,
            elapsed_s=elapsed,
        )

    async def _invoke(
        self,
        race_round: Round,
        model_id: str,
        context: RaceContext,
        deadline: float,
    ) -> Outcome:
        """Query one model; always returns an outcome, never raises."""
        start = self.clock()
        timeout_s = max(0.0, deadline - start)

        try:
            response = await asyncio.wait_for(
                self.adapter.invoke(model_id, race_round.payload, context, deadline),
                timeout=timeout_s,
            )
        except (asyncio.TimeoutError, TimeoutError):
            outcome: Outcome = Timeout(elapsed_s=self.clock() - start)
            logger.warning(f"{model_id} timed out on round {race_round.id} after {outcome.elapsed_s:.2f}s")
        except Exception as e:
            outcome = Failure(cause=str(e) or type(e).__name__, elapsed_s=self.clock() - start)
            logger.warning(f"{model_id} failed on round {race_round.id}: {outcome.cause}")
        else:
            outcome = self._to_outcome(response, self.clock() - start)
            if isinstance(outcome, Failure):
                logger.warning(f"{model_id} failed on round {race_round.id}: {outcome.cause}")
            else:
                logger.debug(f"{model_id} answered round {race_round.id} in {outcome.elapsed_s:.2f}s")

        if self.on_outcome:
            try:
                self.on_outcome(race_round.id, model_id, outcome)
            except Exception as e:
                logger.warning(f"Outcome hook failed for {model_id}: {e}")

        return outcome

    @staticmethod
    def _to_outcome(response: Any, elapsed: float) -> Outcome:
        """Classify what an adapter returned."""
        if isinstance(response, (Failure, Timeout)):
            return replace(response, elapsed_s=elapsed)
        if isinstance(response, str):
            response = ModelResponse(text=response)
        if isinstance(response, ModelResponse) and isinstance(response.text, str):
            return Success(response=response, elapsed_s=elapsed)
        return Failure(cause=f"Malformed response of type {type(response).__name__}", elapsed_s=elapsed)

    def _score(self, race_round: Round, outcomes: Dict[str, Outcome]) -> Dict[str, ScoreUpdate]:
        """Invoke the round's scorer once with every model's outcome."""
        try:
            raw = race_round.scorer(race_round.payload, MappingProxyType(dict(outcomes)))
        except Exception as e:
            raise ScoringError(f"Scorer for round {race_round.id} raised: {e}") from e

        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise ScoringError(f"Scorer for round {race_round.id} returned {type(raw).__name__}, expected a mapping")

        updates: Dict[str, ScoreUpdate] = {}
        for model_id, value in raw.items():
            if model_id not in outcomes:
                logger.warning(f"Scorer for round {race_round.id} returned unknown model {model_id}, ignoring")
                continue

            if isinstance(value, ScoreUpdate):
                update = value
            else:
                update = ScoreUpdate(delta=value)

            if not is_valid_delta(update.delta):
                raise ScoringError(f"Scorer for round {race_round.id} gave {model_id} an invalid delta {update.delta!r}")
            updates[model_id] = update

        return updates
