from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_MAX_SHUFFLE_ATTEMPTS = 10


def _fisher_yates(items: Sequence[T], rng: random.Random) -> List[T]:
    """Return a shuffled copy of items using the Fisher-Yates algorithm."""
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def _rotate_left(items: Sequence[T]) -> List[T]:
    items = list(items)
    return items[1:] + items[:1]


def _shuffle_distinct(items: Sequence[T], max_attempts: Optional[int], rng: Optional[random.Random]) -> List[T]:
    """Shuffle until the order differs from the input, with a bounded number of attempts.

    When every attempt reproduces the input the sequence is rotated left by one.
    If the rotation is still equal (single element or all-identical elements),
    the input order is returned unchanged: no distinct permutation exists.
    """
    original = list(items)
    attempts = max_attempts if max_attempts is not None else _configured_max_attempts()
    attempts = max(1, attempts)
    rng = rng or random.Random()

    for _ in range(attempts):
        shuffled = _fisher_yates(original, rng)
        if shuffled != original:
            return shuffled

    rotated = _rotate_left(original)
    if rotated != original:
        logger.warning("Shuffle produced the input %d times, falling back to rotation.", attempts)
    return rotated


def _configured_max_attempts() -> int:
    # Settings may be unconfigured when the puzzle package is used on its own.
    from django.conf import settings
    from django.core.exceptions import ImproperlyConfigured

    try:
        return int(getattr(settings, "UNJUMBLE_MAX_SHUFFLE_ATTEMPTS", DEFAULT_MAX_SHUFFLE_ATTEMPTS))
    except ImproperlyConfigured:
        return DEFAULT_MAX_SHUFFLE_ATTEMPTS


# PUBLIC_INTERFACE
def shuffle_word(text: str, max_attempts: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """Return a permutation of the characters of text that differs from text.

    Strings without a distinct permutation ("a", "aaa") are returned as-is.
    """
    return "".join(_shuffle_distinct(text, max_attempts, rng))


# PUBLIC_INTERFACE
def shuffle_words(sentence: str, max_attempts: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """Return the whitespace-separated words of sentence in a different order."""
    return " ".join(_shuffle_distinct(sentence.split(), max_attempts, rng))


# PUBLIC_INTERFACE
def jumble(text: str, rng: Optional[random.Random] = None) -> str:
    """Jumble a puzzle answer: word order for sentences, letters for single words."""
    if len(text.split()) > 1:
        return shuffle_words(text, rng=rng)
    return shuffle_word(text, rng=rng)
