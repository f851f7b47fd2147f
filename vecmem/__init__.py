"""vecmem MCP Server - Persistent memory tools backed by a vector-capable datastore.

vecmem is an MCP server that lets an agent store short text memories with
arbitrary JSON metadata, find them again, and forget them. It provides:

- ``store_memory``, ``search_memory`` and ``forget_memory`` MCP tools
- Semantic search over dense embeddings and BM25-style fulltext search
- Collections created lazily on first use, sized for the embedding model
- Two datastores behind one adapter: Qdrant, or PostgreSQL with pgvector

Key Components:
    VecmemConfig: Configuration management with environment variables
    MemoryService: Store/search/forget orchestration with uniform envelopes
    SearchHandler: Strategy-based search system
    QdrantBackend / PostgresBackend: Datastore adapters

Example:
    >>> from vecmem.config import VecmemConfig
    >>> config = VecmemConfig.from_env()

Architecture:
    MCP tool call → fastjsonschema → MemoryService → Provisioner → Embeddings → Backend

"""

from __future__ import annotations

from .config import VecmemConfig
from .search import SearchHandler
from .service import MemoryService

__version__ = "1.0.0"
__all__ = [
    "VecmemConfig",
    "MemoryService",
    "SearchHandler",
]
