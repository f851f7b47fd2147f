"""
Tests for the Qdrant adapter against a mocked AsyncQdrantClient.
"""

import json
import uuid
from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from qdrant_client import models

from vecmem.errors import BackendFailure
from vecmem.models import MemoryRecord
from vecmem.storage.qdrant import BM25_MODEL, QdrantBackend, point_id_for


@pytest.fixture
def mock_client():
    client = MagicMock()
    for name in (
        "get_collections",
        "collection_exists",
        "create_collection",
        "get_collection",
        "create_payload_index",
        "upsert",
        "query_points",
        "retrieve",
        "delete",
        "close",
    ):
        setattr(client, name, AsyncMock())
    return client


@pytest.fixture
def qdrant(config, mock_client):
    return QdrantBackend(config, client=mock_client)


def _payload(memory_id="mem_1_abc", content="hello", metadata=None):
    return {
        "memory_id": memory_id,
        "content": content,
        "metadata_json": json.dumps(metadata or {}),
        "created_at": "2025-01-01T00:00:00+00:00",
    }


def test_point_ids_are_stable_uuids():
    point_id = point_id_for("mem_1700000000000_abc")
    assert point_id == point_id_for("mem_1700000000000_abc")
    assert point_id != point_id_for("mem_1700000000000_abd")
    assert uuid.UUID(point_id).version == 5


@pytest.mark.asyncio
async def test_create_collection_has_dense_and_sparse_vectors(qdrant, mock_client):
    await qdrant.create_collection("notes", 768)

    kwargs = mock_client.create_collection.await_args.kwargs
    assert kwargs["collection_name"] == "notes"
    dense = kwargs["vectors_config"]["embedding"]
    assert dense.size == 768
    assert dense.distance == models.Distance.EUCLID
    assert kwargs["sparse_vectors_config"]["sparse"].modifier == models.Modifier.IDF


@pytest.mark.asyncio
async def test_activate_creates_only_missing_indexes(qdrant, mock_client):
    mock_client.get_collection.return_value = SimpleNamespace(
        payload_schema={"memory_id": object()}
    )

    await qdrant.activate("notes")

    mock_client.create_payload_index.assert_awaited_once()
    kwargs = mock_client.create_payload_index.await_args.kwargs
    assert kwargs["field_name"] == "created_at"
    assert kwargs["field_schema"] == models.PayloadSchemaType.DATETIME


@pytest.mark.asyncio
async def test_activate_is_a_no_op_when_indexed(qdrant, mock_client):
    mock_client.get_collection.return_value = SimpleNamespace(
        payload_schema={"memory_id": object(), "created_at": object()}
    )
    await qdrant.activate("notes")
    mock_client.create_payload_index.assert_not_awaited()


@pytest.mark.asyncio
async def test_insert_writes_point_with_bm25_document(qdrant, mock_client):
    record = MemoryRecord(
        id="mem_1700000000000_abc",
        content="convolutional filters",
        embedding=[0.1, 0.2, 0.3],
        metadata={"tags": ["cnn"], "nested": {"ok": True}},
        created_at=datetime(2025, 1, 1, tzinfo=UTC),
    )

    await qdrant.insert("notes", record)

    kwargs = mock_client.upsert.await_args.kwargs
    assert kwargs["collection_name"] == "notes"
    point = kwargs["points"][0]
    assert point.id == point_id_for(record.id)
    assert point.vector["embedding"] == [0.1, 0.2, 0.3]
    assert point.vector["sparse"].text == "convolutional filters"
    assert point.vector["sparse"].model == BM25_MODEL
    assert point.payload["memory_id"] == record.id
    assert json.loads(point.payload["metadata_json"]) == record.metadata
    assert point.payload["created_at"] == "2025-01-01T00:00:00+00:00"


@pytest.mark.asyncio
async def test_vector_search_reports_distance(qdrant, mock_client):
    mock_client.query_points.return_value = SimpleNamespace(
        points=[SimpleNamespace(score=0.25, payload=_payload())]
    )

    hits = await qdrant.vector_search("notes", [0.0, 1.0], 4)

    kwargs = mock_client.query_points.await_args.kwargs
    assert kwargs["using"] == "embedding"
    assert kwargs["limit"] == 4
    assert hits[0].id == "mem_1_abc"
    assert hits[0].distance == 0.25
    assert hits[0].score is None


@pytest.mark.asyncio
async def test_lexical_search_reports_score(qdrant, mock_client):
    mock_client.query_points.return_value = SimpleNamespace(
        points=[SimpleNamespace(score=3.5, payload=_payload(content="convolutional"))]
    )

    hits = await qdrant.lexical_search("notes", "convolutional", 3)

    kwargs = mock_client.query_points.await_args.kwargs
    assert kwargs["using"] == "sparse"
    assert kwargs["query"].text == "convolutional"
    assert hits[0].score == 3.5
    assert hits[0].distance is None


@pytest.mark.asyncio
async def test_point_lookup_and_delete_use_mapped_id(qdrant, mock_client):
    mock_client.retrieve.return_value = []
    assert await qdrant.point_lookup("notes", "mem_1_abc") is None
    assert mock_client.retrieve.await_args.kwargs["ids"] == [point_id_for("mem_1_abc")]

    mock_client.retrieve.return_value = [SimpleNamespace(payload=_payload())]
    hit = await qdrant.point_lookup("notes", "mem_1_abc")
    assert hit.id == "mem_1_abc"

    await qdrant.delete("notes", "mem_1_abc")
    selector = mock_client.delete.await_args.kwargs["points_selector"]
    assert selector.points == [point_id_for("mem_1_abc")]


@pytest.mark.asyncio
async def test_client_errors_become_backend_failures(qdrant, mock_client):
    mock_client.collection_exists.side_effect = ConnectionError("connection refused")

    with pytest.raises(BackendFailure) as exc_info:
        await qdrant.has_collection("notes")
    assert str(exc_info.value) == (
        "Backend operation 'has_collection' failed: connection refused"
    )
