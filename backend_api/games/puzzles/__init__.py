"""
Puzzle engines and shuffle utilities.

Exports:
- EngineRegistry and get_engine for resolving puzzle engines by template slug
- UnjumbleEngine engine class
- shuffle_word, shuffle_words and jumble for building jumbled questions

These modules are framework-agnostic and can be reused by views or services
without importing request objects.
"""

from .engines import UnjumbleEngine, normalize_answer
from .registry import EngineRegistry, get_engine
from .shuffle import shuffle_word, shuffle_words, jumble

__all__ = [
    "UnjumbleEngine",
    "normalize_answer",
    "EngineRegistry",
    "get_engine",
    "shuffle_word",
    "shuffle_words",
    "jumble",
]
