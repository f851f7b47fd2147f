"""Handles interaction with the Qdrant vector database."""

from __future__ import annotations

import json
import uuid
from typing import TYPE_CHECKING, Any

from loguru import logger
from qdrant_client import AsyncQdrantClient, models

from vecmem.models import BackendHit, MemoryRecord

from .base import MemoryBackend, backend_errors

if TYPE_CHECKING:
    from vecmem.config import VecmemConfig

__all__ = ["QdrantBackend", "point_id_for"]

DENSE_VECTOR = "embedding"
SPARSE_VECTOR = "sparse"
BM25_MODEL = "Qdrant/bm25"

PAYLOAD_INDEXES = {
    "memory_id": models.PayloadSchemaType.KEYWORD,
    "created_at": models.PayloadSchemaType.DATETIME,
}

# Qdrant point ids must be UUIDs or integers, so memory ids are mapped onto UUIDv5
_POINT_NAMESPACE = uuid.UUID("6f1c8a52-3b0e-4d51-9a57-1f0d2c7e4b90")


def point_id_for(memory_id: str) -> str:
    return str(uuid.uuid5(_POINT_NAMESPACE, memory_id))


class QdrantBackend(MemoryBackend):
    """Manages all communication with Qdrant collections."""

    name = "qdrant"
    requires_structural_names = False

    def __init__(
        self, config: VecmemConfig, client: AsyncQdrantClient | None = None
    ) -> None:
        self.config = config
        if client is None:
            client = AsyncQdrantClient(
                url=config.qdrant_url,
                api_key=config.qdrant_api_key,
                prefer_grpc=config.prefer_grpc,
                grpc_port=config.grpc_port,
            )
        self.client = client

    async def health_check(self) -> None:
        with backend_errors("health_check"):
            await self.client.get_collections()

    async def has_collection(self, collection: str) -> bool:
        with backend_errors("has_collection"):
            return await self.client.collection_exists(collection)

    async def create_collection(self, collection: str, dimension: int) -> None:
        logger.info(f"Creating collection '{collection}' (dim={dimension}).")
        with backend_errors("create_collection"):
            await self.client.create_collection(
                collection_name=collection,
                vectors_config={
                    DENSE_VECTOR: models.VectorParams(
                        size=dimension, distance=models.Distance.EUCLID
                    )
                },
                sparse_vectors_config={
                    SPARSE_VECTOR: models.SparseVectorParams(
                        modifier=models.Modifier.IDF
                    )
                },
            )

    async def activate(self, collection: str) -> None:
        """Adds payload indexes that the collection does not have yet."""
        with backend_errors("activate"):
            info = await self.client.get_collection(collection)
            indexed = set(info.payload_schema or {})
            pending = [f for f in PAYLOAD_INDEXES if f not in indexed]
            if pending:
                logger.info(f"Indexing payload fields {pending} in '{collection}'")
            for field in pending:
                await self.client.create_payload_index(
                    collection_name=collection,
                    field_name=field,
                    field_schema=PAYLOAD_INDEXES[field],
                    wait=True,
                )

    async def insert(self, collection: str, record: MemoryRecord) -> None:
        payload = {
            "memory_id": record.id,
            "content": record.content,
            "metadata_json": json.dumps(record.metadata),
            "created_at": record.created_at_iso,
        }
        point = models.PointStruct(
            id=point_id_for(record.id),
            vector={
                DENSE_VECTOR: record.embedding,
                SPARSE_VECTOR: models.Document(text=record.content, model=BM25_MODEL),
            },
            payload=payload,
        )
        with backend_errors("insert"):
            await self.client.upsert(
                collection_name=collection, points=[point], wait=True
            )
        logger.info(f"Memory '{record.id}' stored in '{collection}'")

    async def vector_search(
        self, collection: str, vector: list[float], limit: int
    ) -> list[BackendHit]:
        with backend_errors("vector_search"):
            response = await self.client.query_points(
                collection_name=collection,
                query=vector,
                using=DENSE_VECTOR,
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )
        # For Euclid distance Qdrant reports the distance itself as the score
        return [
            self._to_hit(point.payload, distance=point.score) for point in response.points
        ]

    async def lexical_search(
        self, collection: str, query: str, limit: int
    ) -> list[BackendHit]:
        with backend_errors("lexical_search"):
            response = await self.client.query_points(
                collection_name=collection,
                query=models.Document(text=query, model=BM25_MODEL),
                using=SPARSE_VECTOR,
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )
        return [
            self._to_hit(point.payload, score=point.score) for point in response.points
        ]

    async def point_lookup(self, collection: str, memory_id: str) -> BackendHit | None:
        with backend_errors("point_lookup"):
            points = await self.client.retrieve(
                collection_name=collection,
                ids=[point_id_for(memory_id)],
                with_payload=True,
                with_vectors=False,
            )
        if not points:
            return None
        return self._to_hit(points[0].payload)

    async def delete(self, collection: str, memory_id: str) -> None:
        with backend_errors("delete"):
            await self.client.delete(
                collection_name=collection,
                points_selector=models.PointIdsList(points=[point_id_for(memory_id)]),
                wait=True,
            )

    async def close(self) -> None:
        """Closes the connection to Qdrant."""
        await self.client.close()

    @staticmethod
    def _to_hit(payload: dict[str, Any] | None, **scores: float) -> BackendHit:
        payload = payload or {}
        return BackendHit(
            id=payload.get("memory_id", ""),
            content=payload.get("content", ""),
            metadata_json=payload.get("metadata_json"),
            created_at=payload.get("created_at"),
            **scores,
        )
