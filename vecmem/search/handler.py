"""The retrieval engine: dispatches to a search strategy and normalizes hits."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from loguru import logger

from vecmem.errors import UnknownSearchMode
from vecmem.models import ScoredMemory

from .strategies import (
    FulltextSearchStrategy,
    SearchMode,
    SearchStrategy,
    SemanticSearchStrategy,
)

if TYPE_CHECKING:
    from vecmem.embeddings import EmbeddingGateway
    from vecmem.models import BackendHit
    from vecmem.provisioner import SchemaProvisioner
    from vecmem.storage import MemoryBackend

__all__ = ["SearchHandler", "DEFAULT_LIMIT", "parse_metadata"]

DEFAULT_LIMIT = 10


def parse_metadata(metadata_json: str | None) -> dict[str, Any]:
    """Decode stored metadata; absent or malformed values become ``{}``."""
    if not metadata_json:
        return {}
    try:
        metadata = json.loads(metadata_json)
    except (TypeError, ValueError):
        logger.warning(f"Discarding malformed stored metadata: {metadata_json!r}")
        return {}
    return metadata if isinstance(metadata, dict) else {}


class SearchHandler:
    """Dispatch search requests to the proper strategy and return scored memories."""

    def __init__(
        self,
        backend: MemoryBackend,
        gateway: EmbeddingGateway,
        provisioner: SchemaProvisioner,
    ) -> None:
        self.provisioner = provisioner
        self._strategies: dict[str, SearchStrategy] = {
            SearchMode.SEMANTIC.value: SemanticSearchStrategy(backend, gateway),
            SearchMode.FULLTEXT.value: FulltextSearchStrategy(backend),
        }

    async def search(
        self,
        collection: str,
        query: str,
        mode: str = SearchMode.SEMANTIC.value,
        limit: int = DEFAULT_LIMIT,
    ) -> list[ScoredMemory]:
        """Executes a search and returns memories in backend rank order."""
        strategy = self._strategies.get(mode)
        if not strategy:
            raise UnknownSearchMode(mode)

        await self.provisioner.ensure(collection)

        logger.info(f"Dispatching to {mode} strategy.")
        hits = await strategy.search(collection, query, limit)
        return [self._to_scored_memory(hit, strategy) for hit in hits]

    @staticmethod
    def _to_scored_memory(hit: BackendHit, strategy: SearchStrategy) -> ScoredMemory:
        return ScoredMemory(
            id=hit.id,
            content=hit.content,
            similarity=strategy.similarity(hit),
            metadata=parse_metadata(hit.metadata_json),
            created_at=hit.created_at,
        )
