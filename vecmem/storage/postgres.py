"""PostgreSQL + pgvector backend.

Each collection is a table holding the dense embedding (pgvector) and a
generated ``tsvector`` column for ranked full-text search.
"""

from __future__ import annotations

import hashlib
import json
import re
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import asyncpg
from loguru import logger

from vecmem.errors import InvalidCollectionName
from vecmem.models import BackendHit, MemoryRecord

from .base import IDENTIFIER_PATTERN, MemoryBackend, backend_errors

if TYPE_CHECKING:
    from vecmem.config import VecmemConfig

__all__ = ["PostgresBackend", "index_name", "to_tsquery_terms", "vector_literal"]

TEXT_SEARCH_CONFIG = "english"

# pgvector cannot build HNSW indexes over wider vectors; those collections use exact scans
HNSW_MAX_DIMENSIONS = 2000

# Raised when another session created the same table/index/type first
_BENIGN_CREATE_ERRORS = (
    asyncpg.exceptions.DuplicateTableError,
    asyncpg.exceptions.DuplicateObjectError,
    asyncpg.exceptions.UniqueViolationError,
)


def vector_literal(vector: list[float]) -> str:
    """Render a vector in pgvector's text input format."""
    return "[" + ",".join(repr(float(v)) for v in vector) + "]"


def to_tsquery_terms(query: str) -> str:
    """Reduce free text to word terms joined with the AND operator.

    Only word characters survive, so tsquery operators in user input cannot
    change the query structure.
    """
    terms = re.findall(r"\w+", query.lower())
    return " & ".join(terms)


def index_name(collection: str, suffix: str) -> str:
    """Quoted index name that stays unique within the 63-byte identifier limit."""
    digest = hashlib.sha1(collection.encode()).hexdigest()[:10]
    return f'"{collection[:32]}_{digest}_{suffix}"'


def _quote(collection: str) -> str:
    if not IDENTIFIER_PATTERN.match(collection):
        raise InvalidCollectionName(collection)
    return f'"{collection}"'


class PostgresBackend(MemoryBackend):
    """Stores memories in per-collection pgvector tables via an asyncpg pool."""

    name = "postgres"
    requires_structural_names = True

    def __init__(self, config: VecmemConfig, pool: asyncpg.Pool | None = None) -> None:
        self.config = config
        self._pool = pool

    async def connect(self) -> None:
        """Create the pool and make sure the vector extension is installed."""
        if self._pool is None:
            with backend_errors("connect"):
                self._pool = await asyncpg.create_pool(
                    host=self.config.pg_host,
                    port=self.config.pg_port,
                    user=self.config.pg_user,
                    password=self.config.pg_password,
                    database=self.config.pg_database,
                    min_size=1,
                    max_size=self.config.pg_pool_size,
                )
        async with self.connection("connect") as conn:
            await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def connection(self, operation: str) -> AsyncGenerator[asyncpg.Connection, None]:
        """Lease a pooled connection for one backend interaction."""
        with backend_errors(operation):
            async with self.pool.acquire() as conn:
                yield conn

    async def health_check(self) -> None:
        async with self.connection("health_check") as conn:
            await conn.fetchval("SELECT 1")

    async def has_collection(self, collection: str) -> bool:
        async with self.connection("has_collection") as conn:
            return await conn.fetchval(
                "SELECT EXISTS (SELECT 1 FROM information_schema.tables "
                "WHERE table_schema = current_schema() AND table_name = $1)",
                collection,
            )

    async def create_collection(self, collection: str, dimension: int) -> None:
        table = _quote(collection)
        statements = [
            f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                content TEXT NOT NULL,
                embedding vector({int(dimension)}) NOT NULL,
                content_tsv tsvector GENERATED ALWAYS AS
                    (to_tsvector('{TEXT_SEARCH_CONFIG}', content)) STORED,
                metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
            """,
            f"CREATE INDEX IF NOT EXISTS {index_name(collection, 'content_tsv_idx')} "
            f"ON {table} USING gin (content_tsv)",
        ]
        if dimension <= HNSW_MAX_DIMENSIONS:
            statements.append(
                f"CREATE INDEX IF NOT EXISTS {index_name(collection, 'embedding_idx')} "
                f"ON {table} USING hnsw (embedding vector_l2_ops)"
            )
        logger.info(f"Creating table {table} (dim={dimension}).")
        async with self.connection("create_collection") as conn:
            for statement in statements:
                try:
                    await conn.execute(statement)
                except _BENIGN_CREATE_ERRORS as e:
                    logger.debug(f"Concurrent creation of {table} detected: {e}")

    async def activate(self, collection: str) -> None:
        """Tables are queryable as soon as they exist."""

    async def insert(self, collection: str, record: MemoryRecord) -> None:
        table = _quote(collection)
        async with self.connection("insert") as conn:
            await conn.execute(
                f"INSERT INTO {table} (id, content, embedding, metadata, created_at) "
                "VALUES ($1, $2, $3::vector, $4::jsonb, $5)",
                record.id,
                record.content,
                vector_literal(record.embedding),
                json.dumps(record.metadata),
                record.created_at,
            )
        logger.info(f"Memory '{record.id}' stored in {table}")

    async def vector_search(
        self, collection: str, vector: list[float], limit: int
    ) -> list[BackendHit]:
        table = _quote(collection)
        async with self.connection("vector_search") as conn:
            rows = await conn.fetch(
                "SELECT id, content, metadata::text AS metadata_json, created_at, "
                "embedding <-> $1::vector AS distance "
                f"FROM {table} ORDER BY embedding <-> $1::vector LIMIT $2",
                vector_literal(vector),
                limit,
            )
        return [self._to_hit(row, distance=row["distance"]) for row in rows]

    async def lexical_search(
        self, collection: str, query: str, limit: int
    ) -> list[BackendHit]:
        terms = to_tsquery_terms(query)
        if not terms:
            return []
        table = _quote(collection)
        async with self.connection("lexical_search") as conn:
            rows = await conn.fetch(
                "SELECT id, content, metadata::text AS metadata_json, created_at, "
                "ts_rank_cd(content_tsv, q) AS score "
                f"FROM {table}, to_tsquery('{TEXT_SEARCH_CONFIG}', $1) AS q "
                "WHERE content_tsv @@ q ORDER BY score DESC LIMIT $2",
                terms,
                limit,
            )
        return [self._to_hit(row, score=row["score"]) for row in rows]

    async def point_lookup(self, collection: str, memory_id: str) -> BackendHit | None:
        table = _quote(collection)
        async with self.connection("point_lookup") as conn:
            row = await conn.fetchrow(
                "SELECT id, content, metadata::text AS metadata_json, created_at "
                f"FROM {table} WHERE id = $1",
                memory_id,
            )
        return self._to_hit(row) if row is not None else None

    async def delete(self, collection: str, memory_id: str) -> None:
        table = _quote(collection)
        async with self.connection("delete") as conn:
            await conn.execute(f"DELETE FROM {table} WHERE id = $1", memory_id)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    @staticmethod
    def _to_hit(row: Any, **scores: float) -> BackendHit:
        created_at = row["created_at"]
        return BackendHit(
            id=row["id"],
            content=row["content"],
            metadata_json=row["metadata_json"],
            created_at=created_at.isoformat() if created_at is not None else None,
            **{k: float(v) for k, v in scores.items()},
        )
