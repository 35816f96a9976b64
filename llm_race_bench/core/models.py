"""
Core data models for LLM Race Bench.

This module defines the data structures shared by the race orchestrator, the
round executor and their collaborators: race configuration, per-model round
outcomes, runtime state, progress snapshots and the final race result.
"""

from __future__ import annotations

import math
import random
import string
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union


class ConfigurationError(ValueError):
    """Raised when a race configuration is invalid. Always raised before any model is contacted."""
    pass


class ScoringError(RuntimeError):
    """Raised when a round's scoring capability breaks its contract."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OutcomeStatus(Enum):
    """Status tag of a single model's participation in a round."""
    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"


class RaceStatus(Enum):
    """Lifecycle of a race. Every state after RUNNING is terminal."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    TRUNCATED_BY_BUDGET = "truncated_by_budget"
    COMPLETED_ALL_ELIMINATED = "completed_all_eliminated"
    ABORTED_BY_SCORING_ERROR = "aborted_by_scoring_error"

    @property
    def is_terminal(self) -> bool:
        return self not in (RaceStatus.PENDING, RaceStatus.RUNNING)


@dataclass(frozen=True)
class TokenUsage:
    """Token accounting reported by a provider."""

    prompt: int = 0
    completion: int = 0
    total: int = 0


@dataclass(frozen=True)
class ModelResponse:
    """Raw response returned by a model client adapter."""

    text: str
    usage: Optional[TokenUsage] = None
    ttft_s: Optional[float] = None  # Time to first token, when the provider reports it
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Success:
    """The model answered within its deadline."""

    response: ModelResponse
    elapsed_s: float = 0.0

    status = OutcomeStatus.SUCCESS

    @property
    def text(self) -> str:
        return self.response.text


@dataclass(frozen=True)
class Failure:
    """The adapter raised, reported a failure or returned a malformed response."""

    cause: str
    elapsed_s: float = 0.0

    status = OutcomeStatus.FAILURE


@dataclass(frozen=True)
class Timeout:
    """The model did not settle within its deadline."""

    elapsed_s: float = 0.0

    status = OutcomeStatus.TIMEOUT


Outcome = Union[Success, Failure, Timeout]


@dataclass(frozen=True)
class ScoreUpdate:
    """What a scoring capability decides for one model in one round."""

    delta: float = 0.0
    eliminated: bool = False
    details: Dict[str, Any] = field(default_factory=dict, compare=False)


# score(payload, outcomes) -> {model_id: ScoreUpdate or bare delta}
Scorer = Callable[[Any, Mapping[str, Outcome]], Mapping[str, Union[ScoreUpdate, float]]]


@dataclass(frozen=True)
class ModelConfig:
    """A model competing in a race, with its invocation parameters."""

    id: str                     # Unique within a race
    name: str = ""              # Display name (defaults to id)
    model_string: str = ""      # "provider/model", e.g. "openai/gpt-5"
    temperature: float = 0.1
    top_p: float = 1.0
    max_tokens: Optional[int] = None
    enable_thinking: bool = False
    reasoning_effort: Optional[str] = None  # "none", "low", "medium", "high"
    thinking_level: Optional[str] = None
    custom_prompt: Optional[str] = None

    def __post_init__(self):
        """Validate model configuration after initialization."""
        if not self.id:
            raise ConfigurationError("Model id cannot be empty")
        if not self.name:
            object.__setattr__(self, "name", self.id)

    @property
    def provider(self) -> str:
        """Provider part of the model string ("openai" for "openai/gpt-5")."""
        return self.model_string.split("/", 1)[0].lower()

    @property
    def model_name(self) -> str:
        """Model part of the model string; nested paths are kept intact."""
        parts = self.model_string.split("/", 1)
        return parts[1] if len(parts) == 2 else ""

    def __str__(self) -> str:
        return f"{self.name} ({self.model_string})" if self.model_string else self.name


@dataclass(frozen=True)
class Round:
    """One unit of work applied to every active model."""

    id: str
    payload: Any                # Instruction/prompt payload handed to the adapters
    scorer: Scorer
    name: Optional[str] = None
    timeout_s: Optional[float] = None  # Per-request deadline override for this round

    @property
    def display_name(self) -> str:
        return self.name or self.id


def generate_race_id() -> str:
    """Opaque race identifier: creation time in ms plus a random suffix."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"race-{int(time.time() * 1000)}-{suffix}"


@dataclass(frozen=True)
class RaceConfig:
    """Immutable description of a race."""

    id: str
    name: str
    rounds: Tuple[Round, ...]
    models: Tuple[ModelConfig, ...]
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        object.__setattr__(self, "rounds", tuple(self.rounds))
        object.__setattr__(self, "models", tuple(self.models))

    @classmethod
    def create(cls, rounds, models, name: Optional[str] = None) -> RaceConfig:
        """Create a config with a freshly generated identifier."""
        created_at = utcnow()
        return cls(
            id=generate_race_id(),
            name=name or f"Race {created_at.strftime('%Y-%m-%d %H:%M:%S')}",
            rounds=rounds,
            models=models,
            created_at=created_at,
        )

    @property
    def model_ids(self) -> List[str]:
        return [model.id for model in self.models]


@dataclass(frozen=True)
class ModelStanding:
    """Read-only view of a model's cumulative state between rounds."""

    model_id: str
    score: float
    active: bool
    consecutive_failures: int
    total_failures: int
    timeouts: int
    rounds_played: int


@dataclass
class ModelRuntimeState:
    """Cumulative per-model state, owned and mutated only by the race orchestrator."""

    model_id: str
    score: float = 0.0
    active: bool = True
    consecutive_failures: int = 0
    total_failures: int = 0     # Failures and timeouts
    timeouts: int = 0
    rounds_played: int = 0
    total_elapsed_s: float = 0.0
    eliminated_in_round: Optional[int] = None

    def record(self, entry: ModelRoundResult, round_index: int) -> None:
        """Fold one round's outcome into the cumulative state."""
        self.score += entry.score_delta
        self.rounds_played += 1
        self.total_elapsed_s += entry.elapsed_s

        if entry.status is OutcomeStatus.SUCCESS:
            self.consecutive_failures = 0
        else:
            self.consecutive_failures += 1
            self.total_failures += 1
            if entry.status is OutcomeStatus.TIMEOUT:
                self.timeouts += 1

        if entry.eliminated and self.active:
            self.active = False
            self.eliminated_in_round = round_index

    @property
    def average_elapsed_s(self) -> float:
        """Average time spent waiting on this model per round."""
        if self.rounds_played == 0:
            return 0.0
        return self.total_elapsed_s / self.rounds_played

    def snapshot(self) -> ModelStanding:
        return ModelStanding(
            model_id=self.model_id,
            score=self.score,
            active=self.active,
            consecutive_failures=self.consecutive_failures,
            total_failures=self.total_failures,
            timeouts=self.timeouts,
            rounds_played=self.rounds_played,
        )


@dataclass(frozen=True)
class ModelRoundResult:
    """One model's scored outcome for one round."""

    model_id: str
    outcome: Outcome
    score_delta: float = 0.0
    eliminated: bool = False
    details: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def status(self) -> OutcomeStatus:
        return self.outcome.status

    @property
    def response_text(self) -> Optional[str]:
        """Raw response text, present only for successful outcomes."""
        if isinstance(self.outcome, Success):
            return self.outcome.text
        return None

    @property
    def elapsed_s(self) -> float:
        return self.outcome.elapsed_s

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "model_id": self.model_id,
            "status": self.status.value,
            "response": self.response_text,
            "elapsed_s": round(self.elapsed_s, 4),
            "score_delta": self.score_delta,
            "eliminated": self.eliminated,
            "details": dict(self.details),
        }
        if isinstance(self.outcome, Failure):
            data["error"] = self.outcome.cause
        if isinstance(self.outcome, Success) and self.outcome.response.usage:
            data["token_usage"] = asdict(self.outcome.response.usage)
        return data


@dataclass(frozen=True)
class RoundResult:
    """Outcome of one round for every model that participated in it."""

    round_id: str
    round_index: int
    entries: Tuple[ModelRoundResult, ...]
    started_at: datetime = field(default_factory=utcnow)
    elapsed_s: float = 0.0

    @property
    def model_ids(self) -> List[str]:
        return [entry.model_id for entry in self.entries]

    def entry(self, model_id: str) -> Optional[ModelRoundResult]:
        for entry in self.entries:
            if entry.model_id == model_id:
                return entry
        return None

    def statuses(self) -> Dict[str, OutcomeStatus]:
        return {entry.model_id: entry.status for entry in self.entries}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round_id": self.round_id,
            "round_index": self.round_index,
            "started_at": self.started_at.isoformat(),
            "elapsed_s": round(self.elapsed_s, 4),
            "entries": [entry.to_dict() for entry in self.entries],
        }


@dataclass(frozen=True)
class RaceContext:
    """Read-only snapshot of the race handed to the round executor and the adapters."""

    race_id: str
    round_index: int
    standings: Mapping[str, ModelStanding]
    previous_rounds: Tuple[RoundResult, ...] = ()

    def history_for(self, model_id: str) -> List[ModelRoundResult]:
        """This model's results from earlier rounds, in round order."""
        history = []
        for round_result in self.previous_rounds:
            entry = round_result.entry(model_id)
            if entry is not None:
                history.append(entry)
        return history


@dataclass
class RankingEntry:
    """A model's position in the final ranking."""

    rank: int
    model_id: str
    model_name: str
    score: float
    total_failures: int
    timeouts: int
    active: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RaceResult:
    """Final result of a race, returned to the caller."""

    race_id: str
    name: str
    status: RaceStatus
    round_results: Tuple[RoundResult, ...]
    final_states: Dict[str, ModelRuntimeState]
    ranking: List[RankingEntry]
    started_at: datetime = field(default_factory=utcnow)
    duration_s: float = 0.0
    error: Optional[str] = None

    @property
    def winner(self) -> Optional[str]:
        """Id of the top-ranked model."""
        if not self.ranking:
            return None
        return self.ranking[0].model_id

    @property
    def truncated(self) -> bool:
        return self.status is RaceStatus.TRUNCATED_BY_BUDGET

    @property
    def rounds_completed(self) -> int:
        return len(self.round_results)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form for JSON serialization."""
        return {
            "race_id": self.race_id,
            "name": self.name,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "duration_s": round(self.duration_s, 4),
            "error": self.error,
            "winner": self.winner,
            "ranking": [entry.to_dict() for entry in self.ranking],
            "rounds": [round_result.to_dict() for round_result in self.round_results],
            "final_states": {
                model_id: asdict(state) for model_id, state in self.final_states.items()
            },
        }


@dataclass
class RaceState:
    """Progress snapshot published to observers while a race runs."""

    race_id: str
    status: RaceStatus = RaceStatus.PENDING
    current_round_id: Optional[str] = None
    completed_rounds: int = 0
    total_rounds: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def progress(self) -> int:
        """Completion percentage (0 to 100)."""
        if self.total_rounds == 0:
            return 0
        return round(100 * self.completed_rounds / self.total_rounds)


class ModelClientAdapter(ABC):
    """
    Capability that queries one model for one round.

    Implementations must honour the supplied deadline, must not block
    indefinitely and must be safe to invoke concurrently for distinct models.
    """

    @abstractmethod
    async def invoke(
        self,
        model_id: str,
        payload: Any,
        context: RaceContext,
        deadline: float,
    ) -> Union[ModelResponse, str, Failure]:
        """
        Query a model.

        Args:
            model_id: Identifier of the model to query
            payload: The round's instruction/prompt payload
            context: Read-only snapshot of the race so far
            deadline: Absolute deadline on the executor's clock (time.monotonic by default)

        Returns:
            The model's response, or a Failure describing why there is none
        """
        pass

    @staticmethod
    def remaining(deadline: float, clock: Callable[[], float] = time.monotonic) -> float:
        """Seconds left until the deadline (never negative)."""
        return max(0.0, deadline - clock())


def is_valid_delta(value: Any) -> bool:
    """True for finite real numbers (booleans excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass
class Config:
    """Configuration settings for LLM Race Bench runs."""

    # Model selection
    models: str = ""            # Comma-separated catalog ids or "provider/model" strings
    preset: str = "fast"
    max_models: int = 8

    # Race settings
    budget_s: Optional[float] = 300.0   # Wall-clock ceiling for a whole race
    request_timeout_s: float = 4.0      # Per-model, per-round deadline
    max_tokens: int = 16
    output_mode: str = "json"           # "json" or "plain" crossword answers

    # Output settings
    results_path: str = "data/race-results.json"
    save_results: bool = True

    # UI settings
    refresh_rate: int = 6  # Hz

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            field.name: getattr(self, field.name)
            for field in self.__dataclass_fields__.values()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Config:
        """Create config from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
