"""
Wordle race for LLM Race Bench.

Every guess is one round. A model's prompt for guess N is built from its own
guesses and feedback in rounds 1..N-1, read from the race context. A model
that solves the word scores more the earlier it does so and leaves the race.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .models import ConfigurationError, Outcome, RaceContext, Round, ScoreUpdate, Success
from .prompts import wordle_prompt
from .scoring import normalize_answer

logger = logging.getLogger(__name__)

WORD_LENGTH = 5
DEFAULT_MAX_GUESSES = 6
DEFAULT_GUESS_TIMEOUT_S = 10.0

CORRECT = "correct"
PRESENT = "present"
ABSENT = "absent"

GUESS_PATTERN = re.compile(r"[a-z]{5}")

WORDLE_WORDS = (
    "about", "above", "actor", "acute", "admit", "adopt", "adult", "after", "again", "agent",
    "agree", "ahead", "alarm", "album", "alert", "alien", "alike", "alive", "allow", "alone",
    "apple", "arena", "argue", "arise", "arrow", "aside", "asset", "avoid", "awake", "aware",
    "baker", "basic", "beach", "begin", "being", "below", "bench", "birth", "black", "blade",
    "blame", "blank", "blast", "blaze", "blind", "block", "blood", "bloom", "board", "boost",
    "brain", "brand", "brave", "bread", "break", "brick", "bride", "brief", "bring", "broad",
    "brown", "brush", "build", "burst", "cable", "camel", "canal", "candy", "carry", "catch",
    "cause", "chain", "chair", "charm", "chart", "chase", "cheap", "check", "chest", "chief",
    "child", "civic", "claim", "class", "clean", "clear", "climb", "clock", "close", "cloud",
    "coach", "coast", "count", "court", "cover", "crack", "craft", "crane", "crash", "cream",
    "crime", "crisp", "cross", "crowd", "crown", "curve", "cycle", "daily", "dance", "delta",
    "depth", "doubt", "dozen", "draft", "drama", "dream", "dress", "drink", "drive", "eager",
    "early", "earth", "eight", "elbow", "elder", "elite", "empty", "enemy", "enjoy", "enter",
    "equal", "error", "event", "exact", "extra", "faith", "false", "fault", "field", "fight",
    "final", "first", "flash", "fleet", "float", "flood", "floor", "flour", "fluid", "focus",
    "force", "forum", "frame", "fresh", "front", "frost", "fruit", "giant", "glass", "globe",
    "glory", "grace", "grade", "grain", "grand", "grant", "grass", "grave", "great", "green",
    "group", "guard", "guess", "guest", "guide", "habit", "happy", "heart", "heavy", "horse",
    "hotel", "house", "human", "humor", "image", "index", "inner", "input", "issue", "joint",
    "judge", "label", "large", "laser", "laugh", "layer", "learn", "least", "leave", "legal",
    "level", "light", "limit", "local", "lucky", "lunch", "magic", "major", "march", "match",
    "metal", "minor", "model", "money", "month", "motor", "mouse", "mouth", "movie", "music",
    "night", "noble", "noise", "north", "novel", "nurse", "ocean", "offer", "order", "organ",
    "paint", "panel", "paper", "party", "peace", "phase", "phone", "photo", "piano", "piece",
    "pilot", "pitch", "place", "plain", "plane", "plant", "plate", "point", "pound", "power",
    "press", "price", "pride", "prime", "print", "prize", "proof", "proud", "queen", "quick",
    "quiet", "radio", "raise", "range", "rapid", "ratio", "reach", "react", "ready", "realm",
    "rebel", "relax", "reply", "ridge", "right", "rival", "river", "robin", "rough", "round",
    "route", "royal", "scale", "scene", "scope", "score", "sense", "serve", "seven", "shape",
    "share", "sharp", "sheet", "shelf", "shell", "shift", "shine", "shirt", "shock", "shore",
    "short", "sight", "skill", "slate", "sleep", "slide", "small", "smart", "smile", "smoke",
    "snake", "solid", "solve", "sound", "south", "space", "spare", "speak", "speed", "spend",
    "split", "sport", "staff", "stage", "stake", "stand", "start", "state", "steam", "steel",
    "stick", "stock", "stone", "store", "storm", "story", "study", "style", "sugar", "sweet",
    "swift", "swing", "sword", "table", "taste", "teach", "thank", "theme", "thick", "thing",
    "think", "third", "three", "throw", "thumb", "tiger", "tight", "title", "token", "total",
    "touch", "tough", "tower", "track", "trade", "train", "treat", "trend", "trial", "tribe",
    "trick", "truck", "trust", "truth", "twice", "under", "union", "unity", "upper", "urban",
    "usual", "valid", "value", "video", "virus", "visit", "vital", "voice", "waste", "watch",
    "water", "wheel", "white", "whole", "woman", "world", "worry", "worth", "write", "wrong",
    "young", "youth", "zebra",
)


def random_word(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(WORDLE_WORDS)


def is_valid_word(word: str) -> bool:
    """True if the word is in the built-in dictionary."""
    return word.strip().lower() in WORDLE_WORDS


def compute_feedback(guess: str, target: str) -> List[str]:
    """
    Compute Wordle feedback for a guess.

    Exact matches are marked first; remaining letters are "present" only while
    unused occurrences of that letter remain in the target. Guesses or targets
    of the wrong length get all "absent".
    """
    guess = guess.strip().lower()
    target = target.strip().lower()

    if len(guess) != WORD_LENGTH or len(target) != WORD_LENGTH:
        return [ABSENT] * WORD_LENGTH

    feedback = [ABSENT] * WORD_LENGTH
    used_target = set()

    for i in range(WORD_LENGTH):
        if guess[i] == target[i]:
            feedback[i] = CORRECT
            used_target.add(i)

    for i in range(WORD_LENGTH):
        if feedback[i] == CORRECT:
            continue
        for j in range(WORD_LENGTH):
            if j not in used_target and target[j] == guess[i]:
                feedback[i] = PRESENT
                used_target.add(j)
                break

    return feedback


def extract_guess(output: str) -> Optional[str]:
    """First run of five letters in the normalized output, if any."""
    normalized = normalize_answer(output, "plain", "lower", False)
    match = GUESS_PATTERN.search(normalized)
    return match.group(0) if match else None


def closeness_score(feedback: Sequence[str]) -> int:
    """How close a guess came: 2 points per correct letter, 1 per present letter."""
    return 2 * feedback.count(CORRECT) + feedback.count(PRESENT)


@dataclass(frozen=True)
class WordleTurn:
    """Payload of one Wordle guess round."""

    target: str
    guess_index: int            # 0-based
    max_guesses: int = DEFAULT_MAX_GUESSES

    @property
    def is_last(self) -> bool:
        return self.guess_index == self.max_guesses - 1

    def previous_guesses(self, context: Optional[RaceContext], model_id: Optional[str]) -> List[Tuple[str, List[str]]]:
        """This model's earlier valid guesses and their feedback."""
        if context is None or model_id is None:
            return []
        guesses = []
        for entry in context.history_for(model_id):
            guess = entry.details.get("guess")
            if guess:
                guesses.append((guess, list(entry.details.get("feedback", []))))
        return guesses

    def to_prompt(self, context: Optional[RaceContext] = None, model_id: Optional[str] = None) -> str:
        return wordle_prompt(self.previous_guesses(context, model_id), self.max_guesses)


class WordleScorer:
    """
    Scoring capability for one Wordle guess round.

    A solve is worth max_guesses - guess_index points and eliminates the model,
    so its next rounds are skipped. On the final turn an unsolved valid guess
    earns a tenth of its closeness score.

    A word the model already guessed earlier in the race counts as an invalid
    turn. One scorer instance is shared by every round of a race, which is how
    it remembers earlier guesses.
    """

    def __init__(self):
        self._guessed: Dict[str, Set[str]] = {}

    def __call__(self, payload: WordleTurn, outcomes: Mapping[str, Outcome]) -> Dict[str, ScoreUpdate]:
        updates: Dict[str, ScoreUpdate] = {}

        for model_id, outcome in outcomes.items():
            if not isinstance(outcome, Success):
                error = getattr(outcome, "cause", "Timeout exceeded")
                updates[model_id] = ScoreUpdate(details={"valid": False, "error": error})
                continue

            guess = extract_guess(outcome.text)
            if guess is None:
                logger.debug(f"{model_id} produced an invalid guess: {outcome.text!r}")
                updates[model_id] = ScoreUpdate(details={"valid": False, "output": outcome.text})
                continue

            guessed = self._guessed.setdefault(model_id, set())
            if guess in guessed:
                logger.warning(f"{model_id} repeated previous guess '{guess}'")
                updates[model_id] = ScoreUpdate(details={"valid": False, "repeated": guess})
                continue
            guessed.add(guess)

            feedback = compute_feedback(guess, payload.target)
            closeness = closeness_score(feedback)
            details: Dict[str, Any] = {
                "valid": True,
                "guess": guess,
                "feedback": feedback,
                "closeness": closeness,
            }

            if guess == payload.target.lower():
                details["solved_at"] = payload.guess_index + 1
                updates[model_id] = ScoreUpdate(
                    delta=float(payload.max_guesses - payload.guess_index),
                    eliminated=True,
                    details=details,
                )
            elif payload.is_last:
                updates[model_id] = ScoreUpdate(delta=closeness / 10, details=details)
            else:
                updates[model_id] = ScoreUpdate(details=details)

        return updates


def wordle_rounds(
    target: str,
    max_guesses: int = DEFAULT_MAX_GUESSES,
    timeout_s: Optional[float] = DEFAULT_GUESS_TIMEOUT_S,
) -> List[Round]:
    """
    Build the guess rounds of a Wordle race.

    Raises:
        ConfigurationError: If the target is not a five-letter word
    """
    target = target.strip().lower()
    if not GUESS_PATTERN.fullmatch(target):
        raise ConfigurationError(f"Wordle target must be a 5-letter word, got '{target}'")
    if max_guesses <= 0:
        raise ConfigurationError("Wordle needs at least one guess")
    if not is_valid_word(target):
        logger.info(f"Target '{target}' is not in the built-in dictionary")

    scorer = WordleScorer()
    return [
        Round(
            id=f"guess-{index + 1}",
            payload=WordleTurn(target=target, guess_index=index, max_guesses=max_guesses),
            scorer=scorer,
            name=f"Guess {index + 1}/{max_guesses}",
            timeout_s=timeout_s,
        )
        for index in range(max_guesses)
    ]
