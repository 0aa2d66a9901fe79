"""
Games app package initializer.

Re-exports puzzle engines, registry helpers and shuffle utilities so callers can
import from games directly, e.g.:

    from games import get_engine, jumble
"""

# PUBLIC_INTERFACE
from .puzzles import (
    UnjumbleEngine,
    EngineRegistry,
    get_engine,
    shuffle_word,
    shuffle_words,
    jumble,
)

__all__ = [
    "UnjumbleEngine",
    "EngineRegistry",
    "get_engine",
    "shuffle_word",
    "shuffle_words",
    "jumble",
]
