# vecmem/models.py
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MemoryRecord(BaseModel):
    """A memory as written to the backend."""

    id: str
    content: str
    embedding: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @property
    def created_at_iso(self) -> str:
        return self.created_at.isoformat()


class BackendHit(BaseModel):
    """One raw search hit from a backend, before normalization.

    Vector searches fill ``distance`` (lower is better); lexical searches fill
    ``score`` (higher is better).
    """

    id: str
    content: str = ""
    metadata_json: str | None = None
    created_at: str | None = None
    distance: float | None = None
    score: float | None = None

    model_config = ConfigDict(from_attributes=True)


class ScoredMemory(BaseModel):
    """Normalized search result returned to callers."""

    id: str
    content: str
    similarity: float
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None


class StoreResult(BaseModel):
    id: str
    collection: str
    content_length: int
    embedding_dimensions: int
    embedding_model: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str


class SearchResult(BaseModel):
    query: str
    mode: str
    count: int
    memories: list[ScoredMemory] = Field(default_factory=list)


class ForgetResult(BaseModel):
    id: str
    collection: str
