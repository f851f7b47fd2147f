"""Datastore adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import IDENTIFIER_PATTERN, MemoryBackend, backend_errors

if TYPE_CHECKING:
    from vecmem.config import VecmemConfig

__all__ = [
    "IDENTIFIER_PATTERN",
    "MemoryBackend",
    "backend_errors",
    "create_backend",
]


def create_backend(config: VecmemConfig) -> MemoryBackend:
    """Build the adapter selected by ``config.backend``."""
    if config.backend == "qdrant":
        from .qdrant import QdrantBackend

        return QdrantBackend(config)
    if config.backend == "postgres":
        from .postgres import PostgresBackend

        return PostgresBackend(config)
    raise ValueError(f"Unknown backend: {config.backend}")
