"""
Prompt templates for LLM Race Bench rounds.

Crossword prompts are rendered per clue; Wordle prompts include the guesses
and feedback a model has accumulated in earlier rounds of the same race.
"""

from __future__ import annotations

from typing import Iterable, Sequence, Tuple

FEEDBACK_SYMBOLS = {
    "correct": "\U0001F7E9",  # green square
    "present": "\U0001F7E8",  # yellow square
    "absent": "\u2B1C",        # white square
}


def crossword_json_prompt(clue: str, length: int) -> str:
    """Prompt asking for a JSON object with a single answer field."""
    return (
        "You are playing Crossword Sprint. Return ONLY valid JSON matching this schema:\n"
        '{"answer": "<single word, lowercase, no spaces or punctuation>"}\n\n'
        "Rules:\n"
        f"- Answer must be exactly {length} letters.\n"
        "- Use lowercase only.\n"
        "- Do not include spaces, hyphens, periods, quotes, or extra text.\n"
        "- If multiple candidates, choose the most common crossword answer.\n"
        "- If unsure, guess the most likely, but still output valid JSON.\n\n"
        f'Clue: "{clue}"\n'
        f"Length: {length}\n\n"
        'Return only: {"answer":"<word>"}'
    )


def crossword_plain_prompt(clue: str, length: int) -> str:
    """Prompt asking for the bare answer word."""
    return (
        "Return only the answer word, lowercase, no punctuation, no extra text.\n\n"
        f'Clue: "{clue}"\n'
        f"Length: {length}"
    )


def crossword_prompt(clue: str, length: int, mode: str = "json") -> str:
    if mode == "json":
        return crossword_json_prompt(clue, length)
    return crossword_plain_prompt(clue, length)


def format_feedback(feedback: Iterable[str]) -> str:
    """Render feedback as colored squares."""
    return "".join(FEEDBACK_SYMBOLS.get(mark, FEEDBACK_SYMBOLS["absent"]) for mark in feedback)


def wordle_prompt(previous_guesses: Sequence[Tuple[str, Sequence[str]]], max_guesses: int = 6) -> str:
    """
    Build the Wordle prompt for a model's next guess.

    Args:
        previous_guesses: (word, feedback) pairs from this model's earlier turns
        max_guesses: Total number of guesses allowed

    Returns:
        Prompt text
    """
    prompt = (
        "You are playing Wordle. Guess a 5-letter English word.\n\n"
        "Rules:\n"
        f"- You have up to {max_guesses} guesses total\n"
        "- After each guess, you'll get feedback:\n"
        "  * Green (correct): letter is in the word and in the correct position\n"
        "  * Yellow (present): letter is in the word but in a different position\n"
        "  * Gray (absent): letter is not in the word at all\n"
        "- Output ONLY a single 5-letter lowercase word, nothing else\n"
        "- No punctuation, no explanation, just the word\n\n"
    )

    if previous_guesses:
        prompt += "Previous guesses and feedback:\n"
        for index, (word, feedback) in enumerate(previous_guesses, start=1):
            prompt += f"Guess {index}: {word.upper()} {format_feedback(feedback)}\n"
        prompt += "\n"

    prompt += "Your next guess (output only the 5-letter word):"
    return prompt
