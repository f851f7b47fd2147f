"""Backend adapter interface shared by all datastores."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger

from vecmem.errors import BackendFailure, VecmemError
from vecmem.models import BackendHit, MemoryRecord

__all__ = ["MemoryBackend", "IDENTIFIER_PATTERN", "backend_errors"]

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@contextmanager
def backend_errors(operation: str) -> Iterator[None]:
    """Re-raise datastore exceptions as BackendFailure, keeping domain errors as-is."""
    try:
        yield
    except VecmemError:
        raise
    except Exception as e:
        logger.error(f"Backend operation '{operation}' failed: {e}")
        raise BackendFailure(operation, str(e)) from e


class MemoryBackend(ABC):
    """One method per datastore capability the memory service needs.

    Adapters return ``BackendHit`` lists from both search methods and raise
    ``BackendFailure`` for datastore errors.
    """

    name: str = "backend"

    # Relational stores use the collection name as a table identifier
    requires_structural_names: bool = False

    async def connect(self) -> None:
        """Open pools or clients. Default: nothing to do."""

    @abstractmethod
    async def health_check(self) -> None:
        """Raise if the datastore is unreachable."""

    @abstractmethod
    async def has_collection(self, collection: str) -> bool: ...

    @abstractmethod
    async def create_collection(self, collection: str, dimension: int) -> None:
        """Create the collection with id, content, dense vector and lexical fields."""

    @abstractmethod
    async def activate(self, collection: str) -> None:
        """Bring the collection into a queryable state; idempotent."""

    @abstractmethod
    async def insert(self, collection: str, record: MemoryRecord) -> None: ...

    @abstractmethod
    async def vector_search(
        self, collection: str, vector: list[float], limit: int
    ) -> list[BackendHit]:
        """Nearest neighbours by ascending distance."""

    @abstractmethod
    async def lexical_search(
        self, collection: str, query: str, limit: int
    ) -> list[BackendHit]:
        """Keyword relevance by descending score."""

    @abstractmethod
    async def point_lookup(self, collection: str, memory_id: str) -> BackendHit | None: ...

    @abstractmethod
    async def delete(self, collection: str, memory_id: str) -> None: ...

    async def close(self) -> None:
        """Release clients and pools."""
