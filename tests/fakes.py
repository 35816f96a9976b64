"""
In-process test doubles for race tests.

The scripted adapter answers from a per-model script with optional per-round
delays, so races can be run without any network access.
"""

import asyncio
from typing import Any, Callable, Dict, List, Mapping, Optional

from llm_race_bench.core.models import (
    ModelClientAdapter,
    ModelConfig,
    Outcome,
    OutcomeStatus,
    RaceContext,
    Round,
)


class ScriptedAdapter(ModelClientAdapter):
    """
    Adapter whose answers and delays are scripted per model.

    A script value may be a single answer used for every round or a list
    indexed by round. Exceptions (instances or classes) are raised instead of
    returned.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Any]] = None,
        delays: Optional[Dict[str, Any]] = None,
    ):
        self.responses = responses or {}
        self.delays = delays or {}
        self.calls: List[tuple] = []
        self.contexts: List[RaceContext] = []

    @staticmethod
    def _for_round(value: Any, round_index: int) -> Any:
        if isinstance(value, list):
            return value[round_index]
        return value

    async def invoke(self, model_id: str, payload: Any, context: RaceContext, deadline: float) -> Any:
        self.calls.append((model_id, context.round_index))
        self.contexts.append(context)

        delay = self._for_round(self.delays.get(model_id, 0.0), context.round_index)
        if delay:
            await asyncio.sleep(delay)

        value = self._for_round(self.responses.get(model_id, f"{model_id}-answer"), context.round_index)
        if isinstance(value, BaseException) or (isinstance(value, type) and issubclass(value, BaseException)):
            raise value
        return value


def make_models(*model_ids: str) -> List[ModelConfig]:
    return [ModelConfig(id=model_id, model_string=f"random/{model_id}") for model_id in model_ids]


def success_scorer(payload: Any, outcomes: Mapping[str, Outcome]) -> Dict[str, float]:
    """One point per successful answer."""
    return {
        model_id: 1.0 if outcome.status is OutcomeStatus.SUCCESS else 0.0
        for model_id, outcome in outcomes.items()
    }


def zero_scorer(payload: Any, outcomes: Mapping[str, Outcome]) -> Dict[str, float]:
    return {}


def winner_scorer(winner: str) -> Callable:
    """One point for the given model, nothing for anyone else."""
    def score(payload: Any, outcomes: Mapping[str, Outcome]) -> Dict[str, float]:
        return {winner: 1.0} if winner in outcomes else {}
    return score


def make_rounds(count: int, scorer: Callable = success_scorer, timeout_s: Optional[float] = None) -> List[Round]:
    return [
        Round(id=f"r{index + 1}", payload=f"prompt {index + 1}", scorer=scorer, timeout_s=timeout_s)
        for index in range(count)
    ]
