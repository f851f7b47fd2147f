"""Shared fixtures: an in-memory backend and a deterministic embedder."""

import asyncio
import hashlib
import json
import math
import re

import pytest

from vecmem.config import VecmemConfig
from vecmem.embeddings import EmbeddingGateway
from vecmem.models import BackendHit, MemoryRecord
from vecmem.registry import DEFAULT_EMBEDDING_MODEL, dimension_for
from vecmem.service import MemoryService
from vecmem.storage import MemoryBackend


def _terms(text):
    return re.findall(r"\w+", text.lower())


async def fake_embed(model, text):
    """Bag-of-words hashing embedder: identical texts get identical vectors."""
    dim = dimension_for(model)
    vector = [0.0] * dim
    for term in _terms(text):
        index = int(hashlib.md5(term.encode()).hexdigest(), 16) % dim
        vector[index] += 1.0
    return vector


class FakeBackend(MemoryBackend):
    """Dict-backed stand-in for a datastore."""

    name = "fake"

    def __init__(self, requires_structural_names=False):
        self.requires_structural_names = requires_structural_names
        self.collections = {}
        self.dimensions = {}
        self.created = []
        self.activated = []
        self.deleted = []

    async def health_check(self):
        return None

    async def has_collection(self, collection):
        await asyncio.sleep(0)
        return collection in self.collections

    async def create_collection(self, collection, dimension):
        await asyncio.sleep(0)
        self.created.append(collection)
        self.collections.setdefault(collection, {})
        self.dimensions[collection] = dimension

    async def activate(self, collection):
        self.activated.append(collection)

    async def insert(self, collection, record: MemoryRecord):
        self.collections[collection][record.id] = record

    async def vector_search(self, collection, vector, limit):
        hits = []
        for record in self.collections[collection].values():
            distance = math.dist(vector, record.embedding)
            hits.append(self._hit(record, distance=distance))
        hits.sort(key=lambda h: h.distance)
        return hits[:limit]

    async def lexical_search(self, collection, query, limit):
        terms = _terms(query)
        hits = []
        for record in self.collections[collection].values():
            content_terms = _terms(record.content)
            if terms and all(t in content_terms for t in terms):
                score = float(sum(content_terms.count(t) for t in terms))
                hits.append(self._hit(record, score=score))
        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:limit]

    async def point_lookup(self, collection, memory_id):
        record = self.collections[collection].get(memory_id)
        return self._hit(record) if record else None

    async def delete(self, collection, memory_id):
        self.deleted.append(memory_id)
        self.collections[collection].pop(memory_id, None)

    @staticmethod
    def _hit(record, **scores):
        return BackendHit(
            id=record.id,
            content=record.content,
            metadata_json=json.dumps(record.metadata),
            created_at=record.created_at_iso,
            **scores,
        )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def gateway():
    return EmbeddingGateway(DEFAULT_EMBEDDING_MODEL, fake_embed)


@pytest.fixture
def service(backend, gateway):
    """Service without a fixed collection: every call names its collection."""
    return MemoryService(backend, gateway)


@pytest.fixture
def fixed_service(backend, gateway):
    return MemoryService(backend, gateway, fixed_collection="memories")


@pytest.fixture
def config():
    return VecmemConfig()
