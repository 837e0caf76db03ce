"""Jina embeddings API client."""

import base64
from dataclasses import dataclass

import httpx

from photo_intelligence.domain.errors import ProviderError, RateLimitedError
from photo_intelligence.services.embeddings import EmbeddingClient

HTTP_TOO_MANY_REQUESTS = 429


@dataclass
class HttpxJinaEmbeddingClient(EmbeddingClient):
    """HTTPX-backed client for Jina's multimodal embeddings endpoint."""

    api_key: str
    base_url: str
    model: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls, api_key: str, base_url: str, model: str
    ) -> "HttpxJinaEmbeddingClient":
        """Create a Jina client with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url,
            model=model,
            http_client=httpx.AsyncClient(),
        )

    async def embed_image(self, image_bytes: bytes) -> list[float]:
        """Embed raw image bytes, sent base64-encoded."""
        encoded = base64.b64encode(image_bytes).decode("ascii")
        return await self._embed({"bytes": encoded})

    async def embed_text(self, text: str) -> list[float]:
        """Embed a text query into the same space as images."""
        return await self._embed(text)

    async def _embed(self, item: object) -> list[float]:
        response = await self.http_client.post(
            f"{self.base_url}/embeddings",
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={"model": self.model, "normalized": True, "input": [item]},
            timeout=30,
        )
        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            raise RateLimitedError("Jina embeddings rate limited")
        if response.is_error:
            raise ProviderError(
                f"Jina embeddings failed: {_error_detail(response)}",
                status_code=response.status_code,
            )
        data = response.json().get("data") or []
        if not data or not isinstance(data[0].get("embedding"), list):
            raise ProviderError("Jina returned invalid embedding")
        return data[0]["embedding"]

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error")
        if detail:
            return str(detail)
    return f"HTTP {response.status_code}"
