"""Search system: strategy per retrieval mode plus result normalization."""

from .handler import DEFAULT_LIMIT, SearchHandler, parse_metadata
from .strategies import SearchMode, distance_to_similarity

__all__ = [
    "DEFAULT_LIMIT",
    "SearchHandler",
    "SearchMode",
    "distance_to_similarity",
    "parse_metadata",
]
