"""
Implements the Strategy pattern for the two retrieval modes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from vecmem.embeddings import EmbeddingGateway
    from vecmem.models import BackendHit
    from vecmem.storage import MemoryBackend

__all__ = [
    "SearchMode",
    "SearchStrategy",
    "SemanticSearchStrategy",
    "FulltextSearchStrategy",
    "distance_to_similarity",
]


class SearchMode(str, Enum):
    """Available search strategies."""

    SEMANTIC = "semantic"
    FULLTEXT = "fulltext"


def distance_to_similarity(distance: float) -> float:
    """Map a non-negative distance onto (0, 1], 1.0 meaning identical."""
    return 1.0 / (1.0 + distance)


class SearchStrategy(ABC):
    """Abstract base class for a search strategy."""

    def __init__(self, backend: MemoryBackend):
        self.backend = backend

    @abstractmethod
    async def search(
        self, collection: str, query: str, limit: int
    ) -> list[BackendHit]:
        """Executes a search query and returns backend hits, best match first."""
        pass

    @abstractmethod
    def similarity(self, hit: BackendHit) -> float:
        """Score a hit so that higher is better."""


class SemanticSearchStrategy(SearchStrategy):
    """Nearest-neighbour search over dense embeddings."""

    def __init__(self, backend: MemoryBackend, gateway: EmbeddingGateway):
        super().__init__(backend)
        self.gateway = gateway

    async def search(
        self, collection: str, query: str, limit: int
    ) -> list[BackendHit]:
        logger.info(f"Performing semantic search in '{collection}' for: '{query}'")
        query_vector = await self.gateway.embed(query)
        return await self.backend.vector_search(collection, query_vector, limit)

    def similarity(self, hit: BackendHit) -> float:
        return distance_to_similarity(hit.distance or 0.0)


class FulltextSearchStrategy(SearchStrategy):
    """Relevance-ranked keyword search over the lexical index."""

    async def search(
        self, collection: str, query: str, limit: int
    ) -> list[BackendHit]:
        logger.info(f"Performing fulltext search in '{collection}' for: '{query}'")
        return await self.backend.lexical_search(collection, query, limit)

    def similarity(self, hit: BackendHit) -> float:
        # Relevance scores are already "higher is better"
        return hit.score if hit.score is not None else 1.0
