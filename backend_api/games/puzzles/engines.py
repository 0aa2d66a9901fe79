from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any, Protocol

CORRECT_MESSAGE = "Correct Answer"
WRONG_MESSAGE = "Wrong Answer"


class Engine(Protocol):
    """Protocol for puzzle engines."""

    # PUBLIC_INTERFACE
    def evaluate(self, target: str, answer: str) -> Dict[str, Any]:
        """Evaluate a submitted answer against the stored target.

        Returns a dict:
        {
            "is_correct": bool,
            "message": str,
            "metadata": Dict[str, Any]          # optional engine-specific info
        }
        """


def normalize_answer(value: str) -> str:
    """Lowercase an answer for comparison. Surrounding whitespace is kept."""
    return (value or "").lower()


@dataclass
class UnjumbleEngine:
    """Unjumble engine: the answer must restore the original text exactly, ignoring case."""

    # PUBLIC_INTERFACE
    def evaluate(self, target: str, answer: str) -> Dict[str, Any]:
        """Evaluate an unjumble answer against the target sentence or word."""
        is_correct = normalize_answer(target) == normalize_answer(answer)
        return {
            "is_correct": is_correct,
            "message": CORRECT_MESSAGE if is_correct else WRONG_MESSAGE,
            "metadata": {"engine": "unjumble"},
        }
