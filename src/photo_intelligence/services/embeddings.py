"""Image and text embedding service."""

import math
from dataclasses import dataclass
from typing import Protocol

from photo_intelligence.domain.errors import ProviderError


class EmbeddingClient(Protocol):
    """Interface for a multimodal embedding provider."""

    model: str

    async def embed_image(self, image_bytes: bytes) -> list[float]:
        """Return the embedding vector for an image."""

    async def embed_text(self, text: str) -> list[float]:
        """Return the embedding vector for a text query."""


@dataclass
class EmbeddingService:
    """Validates vectors returned by the embedding provider."""

    client: EmbeddingClient

    @property
    def model(self) -> str:
        """Return the provider model name recorded on photos."""
        return self.client.model

    async def embed_image(self, image_bytes: bytes) -> list[float]:
        """Embed an analysis thumbnail."""
        return _validate(await self.client.embed_image(image_bytes))

    async def embed_text(self, text: str) -> list[float]:
        """Embed a free-text search query."""
        return _validate(await self.client.embed_text(text))


def _validate(vector: object) -> list[float]:
    """Ensure the provider returned a non-empty list of finite numbers."""
    if not isinstance(vector, list) or not vector:
        raise ProviderError("Embedding provider returned an invalid embedding")
    values: list[float] = []
    for value in vector:
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ProviderError("Embedding provider returned a non-numeric value")
        if not math.isfinite(value):
            raise ProviderError("Embedding provider returned a non-finite value")
        values.append(float(value))
    return values
