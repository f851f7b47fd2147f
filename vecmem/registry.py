"""Embedding model registry: model identifier -> output dimensionality."""

from __future__ import annotations

from .errors import UnknownModel

__all__ = [
    "DEFAULT_EMBEDDING_MODEL",
    "EMBEDDING_DIMENSIONS",
    "PROVIDER_API_KEYS",
    "available_models",
    "credential_env_var",
    "dimension_for",
    "provider_of",
]

DEFAULT_EMBEDDING_MODEL = "google/text-embedding-004"

EMBEDDING_DIMENSIONS: dict[str, int] = {
    "google/text-embedding-004": 768,
    "google/gemini-embedding-001": 3072,
    "openai/text-embedding-3-small": 1536,
    "openai/text-embedding-3-large": 3072,
    "openai/text-embedding-ada-002": 1536,
}

PROVIDER_API_KEYS: dict[str, str] = {
    "google": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
}


def available_models() -> list[str]:
    return sorted(EMBEDDING_DIMENSIONS)


def dimension_for(model: str) -> int:
    """Return the vector size produced by ``model``.

    Raises UnknownModel (carrying the valid identifiers) for unregistered models.
    """
    try:
        return EMBEDDING_DIMENSIONS[model]
    except KeyError:
        raise UnknownModel(model, EMBEDDING_DIMENSIONS) from None


def provider_of(model: str) -> str:
    """'openai/text-embedding-3-small' -> 'openai'."""
    return model.split("/", 1)[0] if "/" in model else model


def credential_env_var(model: str) -> str:
    provider = provider_of(model)
    return PROVIDER_API_KEYS.get(provider, f"{provider.upper()}_API_KEY")
