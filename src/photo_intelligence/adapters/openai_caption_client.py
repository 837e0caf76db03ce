"""OpenAI Responses API client for captions and tags."""

import json
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from photo_intelligence.domain.errors import ProviderError, RateLimitedError
from photo_intelligence.services.captions import CaptionClient


@dataclass
class OpenAICaptionClient(CaptionClient):
    """Caption client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAICaptionClient":
        """Create an OpenAI caption client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def caption(
        self, *, model: str, image_url: str, prompt: str, temperature: float
    ) -> str:
        """Describe an image given by URL."""
        return await self._create(
            model=model,
            input=[
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": image_url},
                    ],
                }
            ],
            temperature=temperature,
        )

    async def structured(
        self,
        *,
        model: str,
        prompt: str,
        schema: dict[str, object],
        temperature: float,
    ) -> dict[str, object]:
        """Call OpenAI Responses API with structured outputs."""
        output_text = await self._create(
            model=model,
            input=[
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}],
                }
            ],
            text={
                "format": {
                    "type": "json_schema",
                    "name": "photo_tags",
                    "strict": True,
                    "schema": schema,
                }
            },
            temperature=temperature,
        )
        return json.loads(output_text)

    async def _create(self, **request_payload: object) -> str:
        try:
            response = await self.client.responses.create(**request_payload)
        except openai.RateLimitError as exc:
            raise RateLimitedError(f"OpenAI rate limited: {exc}") from exc
        except openai.APIStatusError as exc:
            raise ProviderError(
                f"OpenAI request failed: {exc}", status_code=exc.status_code
            ) from exc
        output_text = response.output_text
        if not output_text:
            raise ProviderError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying OpenAI HTTP session."""
        await self.client.close()
