"""
Crossword Sprint scoring for LLM Race Bench.

Each clue is one round. Answers are normalized, checked for format and
correctness, and correct answers earn 70 accuracy points plus up to 30 speed
points relative to the other models answering the same clue.
"""

from __future__ import annotations

import json
import logging
import math
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import ConfigurationError, Outcome, RaceContext, Round, ScoreUpdate, Success
from .prompts import crossword_prompt

logger = logging.getLogger(__name__)

CASE_RULES = ("lower", "upper", "title", "as-is")
OUTPUT_MODES = ("json", "plain")

ACCURACY_POINTS = 70.0
SPEED_POINTS = 30.0
SPEED_BONUS_POINTS = 2.0
SPEED_BONUS_THRESHOLD_S = 0.25
MAX_CLUE_SCORE = 100.0


@dataclass(frozen=True)
class Clue:
    """A crossword clue with its ground truth answer."""

    id: str
    clue: str               # e.g. "Capital of France (5)"
    answer: str
    length: int
    allow_hyphen: bool = False
    case_rule: str = "lower"
    mode: str = "json"      # Output rule: "json" or "plain"

    def __post_init__(self):
        if self.case_rule not in CASE_RULES:
            raise ConfigurationError(f"Unknown case rule '{self.case_rule}' for clue {self.id}")
        if self.mode not in OUTPUT_MODES:
            raise ConfigurationError(f"Unknown output mode '{self.mode}' for clue {self.id}")
        if self.length <= 0:
            raise ConfigurationError(f"Clue {self.id} must have a positive length")

    def to_prompt(self, context: Optional[RaceContext] = None, model_id: Optional[str] = None) -> str:
        return crossword_prompt(self.clue, self.length, self.mode)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], mode: str = "json") -> Clue:
        """Create a clue from its JSON form (camelCase keys accepted)."""
        try:
            return cls(
                id=str(data["id"]),
                clue=data["clue"],
                answer=data["answer"],
                length=int(data.get("length") or len(data["answer"])),
                allow_hyphen=bool(data.get("allow_hyphen", data.get("allowHyphen", False))),
                case_rule=data.get("case_rule", data.get("caseRule", "lower")),
                mode=data.get("mode", mode),
            )
        except KeyError as e:
            raise ConfigurationError(f"Clue is missing required field {e}") from e


def _strip_punctuation(word: str, allow_hyphen: bool) -> str:
    if allow_hyphen:
        return "".join(ch for ch in word if ch.isalnum() or ch in "_-")
    return "".join(
        ch for ch in word
        if not ch.isspace() and not unicodedata.category(ch).startswith("P")
    )


def _apply_case_rule(word: str, case_rule: str) -> str:
    if case_rule == "lower":
        return word.lower()
    if case_rule == "upper":
        return word.upper()
    if case_rule == "title":
        return word[:1].upper() + word[1:].lower()
    return word


def normalize_answer(raw: str, mode: str = "json", case_rule: str = "lower", allow_hyphen: bool = False) -> str:
    """
    Normalize a model's answer according to the clue's rules.

    In JSON mode the answer field is extracted first; invalid JSON normalizes
    to an empty string.
    """
    word = raw.strip()

    if mode == "json":
        try:
            obj = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return ""
        answer = obj.get("answer") if isinstance(obj, dict) else None
        word = answer if isinstance(answer, str) else ""

    word = _strip_punctuation(word, allow_hyphen)
    return _apply_case_rule(word, case_rule)


def validate_format(output: str, clue: Clue) -> bool:
    """Check schema compliance (JSON mode) and the length constraint."""
    if clue.mode == "json":
        try:
            obj = json.loads(output)
        except (json.JSONDecodeError, TypeError):
            return False
        if not isinstance(obj, dict):
            return False
        answer = obj.get("answer")
        if not answer or not isinstance(answer, str):
            return False

    normalized = normalize_answer(output, clue.mode, clue.case_rule, clue.allow_hyphen)
    return len(normalized) == clue.length


def check_correctness(normalized: str, ground_truth: str, case_rule: str = "lower") -> bool:
    """Compare a normalized answer with the ground truth normalized the same way."""
    return normalized == normalize_answer(ground_truth, "plain", case_rule, False)


def score_clue(
    format_ok: bool,
    correct: bool,
    latency_s: float,
    min_latency_s: float,
    p95_latency_s: float,
) -> float:
    """
    Score a single clue attempt (0 to 100).

    Format violations and wrong answers score nothing. A correct answer earns
    70 points, up to 30 more for speed relative to the fastest and the 95th
    percentile latency on this clue, and 2 bonus points under 250ms.
    """
    if not format_ok or not correct:
        return 0.0

    denom = max(0.001, p95_latency_s - min_latency_s)
    normalized_speed = max(0.0, min(1.0, (p95_latency_s - latency_s) / denom))
    total = ACCURACY_POINTS + SPEED_POINTS * normalized_speed

    if latency_s < SPEED_BONUS_THRESHOLD_S:
        total += SPEED_BONUS_POINTS

    return min(MAX_CLUE_SCORE, total)


def calculate_percentile(values: Sequence[float], percentile: float) -> float:
    """Nearest-rank percentile; 0 for an empty sequence."""
    if not values:
        return 0.0
    ordered = sorted(values)
    index = math.ceil((percentile / 100) * len(ordered)) - 1
    return ordered[max(0, index)]


def calculate_median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def latency_stats(outcomes: Mapping[str, Outcome]) -> Tuple[float, float]:
    """Minimum and 95th percentile latency across every model on one clue."""
    latencies = [outcome.elapsed_s for outcome in outcomes.values()]
    if not latencies:
        return 0.0, 0.0
    return min(latencies), calculate_percentile(latencies, 95)


class CrosswordScorer:
    """
    Scoring capability for a crossword clue round.

    Never eliminates a model; a failed or timed out request simply scores 0.
    """

    def __init__(self, clue: Clue):
        self.clue = clue

    def __call__(self, payload: Any, outcomes: Mapping[str, Outcome]) -> Dict[str, ScoreUpdate]:
        min_latency, p95_latency = latency_stats(outcomes)
        updates: Dict[str, ScoreUpdate] = {}

        for model_id, outcome in outcomes.items():
            if not isinstance(outcome, Success):
                error = getattr(outcome, "cause", "Timeout exceeded")
                updates[model_id] = ScoreUpdate(delta=0.0, details={"error": error, "correct": False})
                continue

            normalized = normalize_answer(outcome.text, self.clue.mode, self.clue.case_rule, self.clue.allow_hyphen)
            format_ok = validate_format(outcome.text, self.clue)
            correct = check_correctness(normalized, self.clue.answer, self.clue.case_rule)
            clue_score = score_clue(format_ok, correct, outcome.elapsed_s, min_latency, p95_latency)

            updates[model_id] = ScoreUpdate(
                delta=clue_score,
                details={
                    "normalized": normalized,
                    "format_ok": format_ok,
                    "correct": correct,
                    "clue_score": round(clue_score, 2),
                },
            )

        logger.debug(f"Scored clue {self.clue.id}: min {min_latency:.3f}s, p95 {p95_latency:.3f}s")
        return updates


def crossword_rounds(
    clues: Iterable[Clue],
    round_prefix: str = "",
    timeout_s: Optional[float] = None,
) -> List[Round]:
    """Build one race round per clue."""
    rounds = []
    for clue in clues:
        round_id = f"{round_prefix}-{clue.id}" if round_prefix else clue.id
        rounds.append(Round(
            id=round_id,
            payload=clue,
            scorer=CrosswordScorer(clue),
            name=clue.clue,
            timeout_s=timeout_s,
        ))
    return rounds


def rounds_from_document(document: Any, mode: Optional[str] = None) -> List[Round]:
    """
    Build rounds from a parsed clue document.

    Accepted shapes: a list of clues, {"clues": [...]}, or
    {"rounds": [{"id", "clues", "outputRule", "timeLimitMs"}, ...]} where each
    group's time limit becomes the per-request deadline of its clues.
    """
    if isinstance(document, list):
        document = {"clues": document}
    if not isinstance(document, dict):
        raise ConfigurationError("Clue document must be a list or an object")

    if "rounds" in document:
        rounds: List[Round] = []
        for group in document["rounds"]:
            group_mode = mode or group.get("outputRule", group.get("mode", "json"))
            time_limit_ms = group.get("timeLimitMs")
            clues = [Clue.from_dict(item, group_mode) for item in group.get("clues", [])]
            rounds.extend(crossword_rounds(
                clues,
                round_prefix=str(group.get("id", "")),
                timeout_s=time_limit_ms / 1000 if time_limit_ms else None,
            ))
        return rounds

    clues = [Clue.from_dict(item, mode or document.get("outputRule", "json")) for item in document.get("clues", [])]
    return crossword_rounds(clues)


def load_rounds(path: str, mode: Optional[str] = None) -> List[Round]:
    """
    Load crossword rounds from a JSON clue file.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    try:
        with open(Path(path), "r", encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not load clues from {path}: {e}") from e

    rounds = rounds_from_document(document, mode)
    logger.info(f"Loaded {len(rounds)} clues from {path}")
    return rounds


EXAMPLE_CLUE_SETS: Dict[str, Dict[str, Any]] = {
    "quick-sprint": {
        "rounds": [
            {
                "id": "r1",
                "name": "Geography & Culture",
                "outputRule": "json",
                "timeLimitMs": 4000,
                "clues": [
                    {"id": "c1", "clue": "Capital of France (5)", "answer": "paris", "length": 5},
                    {"id": "c2", "clue": "Largest ocean (7)", "answer": "pacific", "length": 7},
                    {"id": "c3", "clue": "Egyptian river (4)", "answer": "nile", "length": 4},
                ],
            },
        ],
    },
    "tech-challenge": {
        "rounds": [
            {
                "id": "r1",
                "name": "Computer Science",
                "outputRule": "json",
                "timeLimitMs": 4000,
                "clues": [
                    {"id": "c1", "clue": "Web protocol (4)", "answer": "http", "length": 4},
                    {"id": "c2", "clue": "Programming snake (6)", "answer": "python", "length": 6},
                    {"id": "c3", "clue": "Binary digit (3)", "answer": "bit", "length": 3},
                    {"id": "c4", "clue": "Computer memory unit (4)", "answer": "byte", "length": 4},
                    {"id": "c5", "clue": "Query language (3)", "answer": "sql", "length": 3},
                ],
            },
        ],
    },
    "mythology-marathon": {
        "rounds": [
            {
                "id": "r1",
                "name": "Greek Gods",
                "outputRule": "json",
                "timeLimitMs": 4000,
                "clues": [
                    {"id": "c1", "clue": "King of the gods (4)", "answer": "zeus", "length": 4},
                    {"id": "c2", "clue": "Greek earth goddess (7)", "answer": "demeter", "length": 7},
                    {"id": "c3", "clue": "Messenger god (6)", "answer": "hermes", "length": 6},
                    {"id": "c4", "clue": "God of war (4)", "answer": "ares", "length": 4},
                ],
            },
            {
                "id": "r2",
                "name": "Norse Gods",
                "outputRule": "json",
                "timeLimitMs": 4000,
                "clues": [
                    {"id": "c5", "clue": "God of thunder (4)", "answer": "thor", "length": 4},
                    {"id": "c6", "clue": "Allfather (4)", "answer": "odin", "length": 4},
                    {"id": "c7", "clue": "Trickster god (4)", "answer": "loki", "length": 4},
                ],
            },
        ],
    },
}


def example_rounds(name: str, mode: Optional[str] = None) -> List[Round]:
    """Rounds for one of the built-in example clue sets."""
    if name not in EXAMPLE_CLUE_SETS:
        available = ", ".join(EXAMPLE_CLUE_SETS)
        raise ConfigurationError(f"Unknown example '{name}'. Available: {available}")
    return rounds_from_document(EXAMPLE_CLUE_SETS[name], mode)
