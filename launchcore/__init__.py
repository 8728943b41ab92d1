"""Indexing, matching, usage ranking and query dispatch for application launchers."""

__version__ = "0.1.0"

__all__ = [
    "background",
    "config",
    "engine",
    "execution",
    "extensions",
    "handlers",
    "itemindex",
    "items",
    "levenshtein",
    "matching",
    "usage",
]