"""Memory lifecycle: store, search and forget behind one response envelope.

Every public operation returns an envelope dictionary and never raises:

    {"success": True, "operation": "store", "result": {...}}
    {"success": False, "operation": "store", "error": "..."}
"""

from __future__ import annotations

import re
import secrets
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from loguru import logger

from .embeddings import EmbeddingGateway
from .errors import (
    BackendFailure,
    CollectionNotFound,
    CollectionRequired,
    InvalidArgument,
    InvalidIdFormat,
    MemoryNotFound,
    UnknownSearchMode,
    VecmemError,
)
from .models import ForgetResult, MemoryRecord, SearchResult, StoreResult
from .provisioner import SchemaProvisioner, validate_collection_name
from .search import DEFAULT_LIMIT, SearchHandler, SearchMode

if TYPE_CHECKING:
    from .config import VecmemConfig
    from .embeddings import EmbedFn
    from .storage import MemoryBackend

__all__ = [
    "Envelope",
    "MEMORY_ID_PATTERN",
    "MemoryService",
    "failure_envelope",
    "generate_memory_id",
    "resolve_collection",
    "success_envelope",
]

MEMORY_ID_PATTERN = re.compile(r"^mem_\d+_[a-z0-9]+$")

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_ID_SUFFIX_LENGTH = 9

type Envelope = dict[str, Any]


def generate_memory_id(timestamp_ms: int | None = None) -> str:
    """Build ``mem_<milliseconds>_<base36 suffix>``."""
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"mem_{timestamp_ms}_{suffix}"


def resolve_collection(explicit: str | None, fixed_default: str | None) -> str:
    """An explicit collection argument wins over the server-wide default."""
    name = explicit or fixed_default
    if not name:
        raise CollectionRequired()
    return name


def success_envelope(operation: str, result: dict[str, Any]) -> Envelope:
    return {"success": True, "operation": operation, "result": result}


def failure_envelope(operation: str, error: str) -> Envelope:
    return {"success": False, "operation": operation, "error": error}


class MemoryService:
    """Orchestrates provisioning, embedding and backend calls for each operation."""

    def __init__(
        self,
        backend: MemoryBackend,
        gateway: EmbeddingGateway,
        fixed_collection: str | None = None,
    ) -> None:
        self.backend = backend
        self.gateway = gateway
        self.fixed_collection = fixed_collection
        self.provisioner = SchemaProvisioner(backend, gateway.model)
        self.search_handler = SearchHandler(backend, gateway, self.provisioner)

    @classmethod
    def from_config(
        cls,
        config: VecmemConfig,
        backend: MemoryBackend,
        embed_fn: EmbedFn | None = None,
    ) -> MemoryService:
        return cls(
            backend,
            EmbeddingGateway(config.embedding_model, embed_fn),
            fixed_collection=config.collection_name,
        )

    @property
    def embedding_model(self) -> str:
        return self.gateway.model

    async def close(self) -> None:
        await self.gateway.close()

    # --- public operations ---

    async def store(
        self,
        content: Any,
        metadata: Any = None,
        collection: str | None = None,
    ) -> Envelope:
        return await self._run("store", self._store, content, metadata, collection)

    async def search(
        self,
        query: Any,
        mode: Any = None,
        limit: Any = None,
        collection: str | None = None,
    ) -> Envelope:
        return await self._run("search", self._search, query, mode, limit, collection)

    async def forget(self, memory_id: Any, collection: str | None = None) -> Envelope:
        return await self._run("delete", self._forget, memory_id, collection)

    # --- implementations ---

    async def _run(
        self,
        operation: str,
        func: Callable[..., Awaitable[dict[str, Any]]],
        *args: Any,
    ) -> Envelope:
        try:
            return success_envelope(operation, await func(*args))
        except VecmemError as e:
            logger.warning(f"{operation} failed ({e.kind}): {e}")
            return failure_envelope(operation, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error during {operation}")
            return failure_envelope(operation, f"An unexpected error occurred: {e}")

    async def _store(
        self, content: Any, metadata: Any, collection: str | None
    ) -> dict[str, Any]:
        if not isinstance(content, str) or not content:
            raise InvalidArgument("content must be a non-empty string")
        if metadata is None:
            metadata = {}
        elif not isinstance(metadata, dict):
            raise InvalidArgument("metadata must be an object")

        name = resolve_collection(collection, self.fixed_collection)
        await self.provisioner.ensure(name)

        embedding = await self.gateway.embed(content)
        record = MemoryRecord(
            id=generate_memory_id(),
            content=content,
            embedding=embedding,
            metadata=metadata,
            created_at=datetime.now(UTC),
        )
        await self.backend.insert(name, record)
        if await self.backend.point_lookup(name, record.id) is None:
            raise BackendFailure(
                "verify", f"memory '{record.id}' was not readable after insert"
            )

        return StoreResult(
            id=record.id,
            collection=name,
            content_length=len(content),
            embedding_dimensions=len(embedding),
            embedding_model=self.embedding_model,
            metadata=metadata,
            created_at=record.created_at_iso,
        ).model_dump()

    async def _search(
        self, query: Any, mode: Any, limit: Any, collection: str | None
    ) -> dict[str, Any]:
        if mode is None:
            mode = SearchMode.SEMANTIC.value
        if not isinstance(mode, str) or mode not in {m.value for m in SearchMode}:
            raise UnknownSearchMode(mode)
        if not isinstance(query, str) or not query.strip():
            raise InvalidArgument("query must be a non-empty string")
        limit = self._coerce_limit(limit)

        name = resolve_collection(collection, self.fixed_collection)
        memories = await self.search_handler.search(name, query, mode, limit)

        return SearchResult(
            query=query, mode=mode, count=len(memories), memories=memories
        ).model_dump()

    async def _forget(self, memory_id: Any, collection: str | None) -> dict[str, Any]:
        if not isinstance(memory_id, str) or not MEMORY_ID_PATTERN.match(memory_id):
            raise InvalidIdFormat(memory_id)

        name = resolve_collection(collection, self.fixed_collection)
        validate_collection_name(name, self.backend.requires_structural_names)

        # Checked before provisioning so forget never creates a collection
        if not await self.backend.has_collection(name):
            self.provisioner.invalidate(name)
            raise CollectionNotFound(name)
        await self.provisioner.ensure(name)

        if await self.backend.point_lookup(name, memory_id) is None:
            raise MemoryNotFound(memory_id, name)

        await self.backend.delete(name, memory_id)
        logger.info(f"Memory '{memory_id}' deleted from '{name}'")
        return ForgetResult(id=memory_id, collection=name).model_dump()

    @staticmethod
    def _coerce_limit(limit: Any) -> int:
        if limit is None:
            return DEFAULT_LIMIT
        if isinstance(limit, float) and limit.is_integer():
            limit = int(limit)
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidArgument(f"limit must be a positive integer, got: {limit}")
        return limit
