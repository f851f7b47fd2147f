"""Lazy, idempotent creation of per-collection storage."""

from __future__ import annotations

import anyio
from loguru import logger

from .errors import BackendFailure, InvalidCollectionName
from .registry import dimension_for
from .storage import IDENTIFIER_PATTERN, MemoryBackend

__all__ = ["SchemaProvisioner", "validate_collection_name"]


def validate_collection_name(name: object, structural: bool) -> str:
    """Return ``name`` if usable as a collection name on this kind of backend."""
    if not isinstance(name, str) or not name.strip():
        raise InvalidCollectionName(str(name))
    if structural and not IDENTIFIER_PATTERN.match(name):
        raise InvalidCollectionName(name)
    return name


class SchemaProvisioner:
    """Guarantees a collection exists and is queryable before it is used.

    The vector field is sized for the embedding model configured at the time the
    collection is first created. Creation is serialized per collection within a
    process; another process creating the same collection is handled in ``_create``.
    """

    def __init__(self, backend: MemoryBackend, embedding_model: str) -> None:
        self.backend = backend
        self.embedding_model = embedding_model
        self._known: set[str] = set()
        self._locks: dict[str, anyio.Lock] = {}

    async def ensure(self, collection: str) -> None:
        validate_collection_name(collection, self.backend.requires_structural_names)

        if collection not in self._known:
            if collection not in self._locks:
                self._locks[collection] = anyio.Lock()
            async with self._locks[collection]:
                if collection not in self._known:
                    if not await self.backend.has_collection(collection):
                        await self._create(collection)
                    self._known.add(collection)

        await self.backend.activate(collection)

    async def _create(self, collection: str) -> None:
        dimension = dimension_for(self.embedding_model)
        try:
            await self.backend.create_collection(collection, dimension)
        except BackendFailure:
            # Another caller may have created it between our check and create
            if await self.backend.has_collection(collection):
                logger.debug(f"Collection '{collection}' was created concurrently.")
                return
            raise
        logger.info(
            f"Provisioned collection '{collection}' for {self.embedding_model} (dim={dimension})"
        )

    def invalidate(self, collection: str) -> None:
        """Drop cached knowledge of ``collection`` so the next ensure re-checks it."""
        self._known.discard(collection)
