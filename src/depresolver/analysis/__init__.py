"""Deprecation analysis for packages and built-in modules."""

from .deprecation import DeprecationEntry, DeprecationKnowledge, load_default_knowledge

__all__ = [
    "DeprecationEntry",
    "DeprecationKnowledge",
    "load_default_knowledge",
]
