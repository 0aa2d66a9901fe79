from __future__ import annotations

from typing import Dict, Type

from .engines import UnjumbleEngine


# PUBLIC_INTERFACE
class EngineRegistry:
    """Registry mapping game template slugs to engine classes."""

    _registry: Dict[str, Type] = {
        "unjumble": UnjumbleEngine,
    }

    @classmethod
    def get(cls, template_slug: str):
        """Return an engine class for a given template slug, or raise KeyError."""
        key = (template_slug or "").strip().lower()
        if key not in cls._registry:
            raise KeyError(f"Unknown game template: {template_slug!r}")
        return cls._registry[key]

    @classmethod
    def register(cls, template_slug: str, engine_cls) -> None:
        """Register or override an engine class for a given template slug."""
        key = (template_slug or "").strip().lower()
        if not key:
            raise ValueError("template_slug must be a non-empty string")
        cls._registry[key] = engine_cls


# PUBLIC_INTERFACE
def get_engine(template_slug: str):
    """Convenience function returning the engine class for a template slug.

    Example:
        engine = get_engine("unjumble")()
        result = engine.evaluate(target="Good morning", answer="good morning")
    """
    return EngineRegistry.get(template_slug)
