"""Embedding generation.

``ProviderEmbeddings`` is the provider-facing capability: it turns text into a raw
vector using the provider named by the model prefix, keeping one client per
provider. ``EmbeddingGateway`` wraps any such capability, validates the vector
against the model registry and translates provider failures into domain errors.
"""

from __future__ import annotations

import math
import os
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from loguru import logger

from .errors import CredentialsMissing, GenerationFailed
from .registry import credential_env_var, dimension_for, provider_of

__all__ = [
    "ApiKeyNotFoundError",
    "EmbedFn",
    "EmbeddingGateway",
    "GoogleEmbedder",
    "OpenAIEmbedder",
    "ProviderEmbeddings",
]

type EmbedFn = Callable[[str, str], Awaitable[Sequence[float]]]


class ApiKeyNotFoundError(RuntimeError):
    """Raised by a provider when its API key is not configured."""


def _require_api_key(model: str) -> str:
    env_var = credential_env_var(model)
    key = os.getenv(env_var)
    if not key:
        raise ApiKeyNotFoundError(f"API key not found in environment variable {env_var}")
    return key


class GoogleEmbedder:
    """One ``genai.Client`` reused for every request."""

    def __init__(self, api_key: str) -> None:
        from google import genai

        self.client = genai.Client(api_key=api_key)

    async def embed(self, model_name: str, text: str) -> list[float]:
        response = await self.client.aio.models.embed_content(
            model=model_name, contents=text
        )
        return list(response.embeddings[0].values)

    async def close(self) -> None:
        await self.client.aio.aclose()
        self.client.close()


class OpenAIEmbedder:
    """One ``AsyncOpenAI`` client reused for every request."""

    def __init__(self, api_key: str) -> None:
        from openai import AsyncOpenAI

        self.client = AsyncOpenAI(api_key=api_key)

    async def embed(self, model_name: str, text: str) -> list[float]:
        response = await self.client.embeddings.create(model=model_name, input=text)
        return response.data[0].embedding

    async def close(self) -> None:
        await self.client.close()


_PROVIDERS = {
    "google": GoogleEmbedder,
    "openai": OpenAIEmbedder,
}


class ProviderEmbeddings:
    """Embeds text with the provider named by the model prefix.

    Provider clients are created on first use and kept until ``close``.
    """

    def __init__(self) -> None:
        self._clients: dict[str, Any] = {}

    async def __call__(self, model: str, text: str) -> list[float]:
        provider = provider_of(model)
        factory = _PROVIDERS.get(provider)
        if factory is None:
            raise ValueError(
                f"No embedding provider for '{provider}'. Available providers: {sorted(_PROVIDERS)}"
            )
        client = self._clients.get(provider)
        if client is None:
            client = factory(_require_api_key(model))
            self._clients[provider] = client
        return await client.embed(model.split("/", 1)[1], text)

    async def close(self) -> None:
        clients, self._clients = self._clients, {}
        for provider, client in clients.items():
            logger.debug(f"Closing {provider} embedding client")
            await client.close()


class EmbeddingGateway:
    """Validated, error-translating access to an embedding capability."""

    def __init__(self, model: str, embed_fn: EmbedFn | None = None) -> None:
        self.model = model
        self._providers: ProviderEmbeddings | None = None
        if embed_fn is None:
            self._providers = embed_fn = ProviderEmbeddings()
        self._embed_fn = embed_fn

    @property
    def dimension(self) -> int:
        return dimension_for(self.model)

    async def close(self) -> None:
        """Release provider clients this gateway created."""
        if self._providers is not None:
            await self._providers.close()

    async def embed(self, text: str) -> list[float]:
        expected_dim = dimension_for(self.model)

        try:
            raw_vector = await self._embed_fn(self.model, text)
        except Exception as e:
            if isinstance(e, ApiKeyNotFoundError) or "API key not found" in str(e):
                raise CredentialsMissing(
                    self.model, credential_env_var(self.model), str(e)
                ) from e
            logger.error(f"Embedding generation with {self.model} failed: {e}")
            raise GenerationFailed(self.model, str(e)) from e

        try:
            vector = [float(v) for v in raw_vector]
        except (TypeError, ValueError) as e:
            raise GenerationFailed(self.model, f"Invalid embedding value: {e}") from e
        if len(vector) != expected_dim:
            raise GenerationFailed(
                self.model,
                f"Embedding dimension mismatch: got {len(vector)}, "
                f"expected {expected_dim} for model {self.model}",
            )
        if any(math.isnan(v) or math.isinf(v) for v in vector):
            raise GenerationFailed(
                self.model,
                f"Generated embedding contains NaN or infinite values. "
                f"Embedding length: {len(vector)}",
            )
        return vector
