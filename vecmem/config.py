"""Configuration management with environment variable support and type safety.

This module provides the VecmemConfig dataclass for managing server configuration
loaded from environment variables. Command-line flags in ``vecmem.main`` override
individual values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum

from .registry import DEFAULT_EMBEDDING_MODEL, dimension_for

__all__ = [
    "VecmemConfig",
    "BackendType",
    "TransportType",
]


class TransportType(str, Enum):
    """Supported MCP transport types."""

    STDIO = "stdio"


class BackendType(str, Enum):
    """Supported datastores."""

    QDRANT = "qdrant"
    POSTGRES = "postgres"


@dataclass
class VecmemConfig:
    """Configuration for the vecmem server loaded from environment variables."""

    backend: str = BackendType.QDRANT.value

    # Qdrant
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str | None = None
    prefer_grpc: bool = False
    grpc_port: int = 6334

    # PostgreSQL + pgvector
    pg_host: str = "localhost"
    pg_port: int = 5432
    pg_database: str = "mcp_memories"
    pg_user: str = "postgres"
    pg_password: str | None = None
    pg_pool_size: int = 5

    # Fixed collection; when unset every tool call names its own collection
    collection_name: str | None = None
    embedding_model: str = DEFAULT_EMBEDDING_MODEL

    transport: str = TransportType.STDIO.value
    server_name: str = "vecmem"
    server_version: str = "1.0.0"
    debug: bool = False

    @classmethod
    def from_env(cls) -> VecmemConfig:
        """Load configuration from environment variables."""
        return cls(
            backend=os.getenv("VECMEM_BACKEND", BackendType.QDRANT.value).lower(),
            qdrant_url=os.getenv("QDRANT_URL", "http://localhost:6333"),
            qdrant_api_key=os.getenv("QDRANT_API_KEY"),
            prefer_grpc=os.getenv("PREFER_GRPC", "false").lower() == "true",
            grpc_port=int(os.getenv("GRPC_PORT", "6334")),
            pg_host=os.getenv("PG_HOST", "localhost"),
            pg_port=int(os.getenv("PG_PORT", "5432")),
            pg_database=os.getenv("PG_DATABASE", "mcp_memories"),
            pg_user=os.getenv("PGUSER", "postgres"),
            pg_password=os.getenv("PGPASSWORD"),
            pg_pool_size=int(os.getenv("PG_POOL_SIZE", "5")),
            collection_name=os.getenv("COLLECTION_NAME") or None,
            embedding_model=os.getenv("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            transport=os.getenv("TRANSPORT", TransportType.STDIO.value),
            server_name=os.getenv("SERVER_NAME", "vecmem"),
            debug=os.getenv("DEBUG", "false").lower() == "true",
        )

    def validate(self) -> None:
        """Fail fast on settings the server cannot run with."""
        valid_backends = [b.value for b in BackendType]
        if self.backend not in valid_backends:
            raise ValueError(
                f"Unknown backend '{self.backend}'. Valid backends: {valid_backends}"
            )
        valid_transports = [t.value for t in TransportType]
        if self.transport not in valid_transports:
            raise ValueError(
                f"Unsupported transport '{self.transport}'. Valid transports: {valid_transports}"
            )
        dimension_for(self.embedding_model)
