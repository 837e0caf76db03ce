"""Caption and tag generation via LLMs."""

import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import BaseModel, Field

from photo_intelligence.domain.errors import ProviderError, is_rate_limit_error

_logger = logging.getLogger(__name__)

MAX_TAGS = 24

CAPTION_PROMPT = (
    "Describe what's happening in this photo in 1-2 short, concrete sentences. "
    "Mention people (e.g. 'two people at a table'), place, activity, mood, "
    "or objects. Use a warm, nostalgic tone when appropriate. "
    "Do not guess names or identify anyone. If unclear, say so briefly."
    "\n\nContext: "
)

TAGS_PROMPT = (
    f"Generate up to {MAX_TAGS} short lowercase tags for this photo. "
    "Prefer concrete nouns and activities (e.g. beach, birthday, sunset). "
    "Avoid duplicates."
)

TAGS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "tags": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Short lowercase tags, e.g. 'beach', 'birthday', 'snow'.",
        }
    },
    "required": ["tags"],
    "additionalProperties": False,
}


class TagExtract(BaseModel):
    """Structured output for tag generation."""

    tags: list[str] = Field(default_factory=list)


class CaptionClient(Protocol):
    """Interface for LLM captioning and structured generation."""

    async def caption(
        self, *, model: str, image_url: str, prompt: str, temperature: float
    ) -> str:
        """Return a free-text description of the image."""

    async def structured(
        self,
        *,
        model: str,
        prompt: str,
        schema: dict[str, object],
        temperature: float,
    ) -> dict[str, object]:
        """Return JSON output that follows ``schema``."""


@dataclass
class CaptionService:
    """Produces short, deterministic captions for analysis thumbnails."""

    client: CaptionClient
    models: list[str]

    async def caption(self, image_url: str, hint_text: str) -> str:
        """Caption an image, trying each configured model in order."""
        last_error: Exception | None = None
        for model in self.models:
            try:
                text = await self.client.caption(
                    model=model,
                    image_url=image_url,
                    prompt=CAPTION_PROMPT + hint_text,
                    temperature=0,
                )
                return text.strip()
            except Exception as exc:  # noqa: BLE001
                if is_rate_limit_error(exc):
                    raise
                _logger.warning("Caption model failed: model=%s error=%s", model, exc)
                last_error = exc
        raise last_error or ProviderError("Caption generation failed")


@dataclass
class TagService:
    """Turns a caption into a normalized tag set."""

    client: CaptionClient
    models: list[str]

    async def tagify(self, caption: str, hint_text: str) -> list[str]:
        """Generate tags for a caption, trying each configured model in order."""
        prompt = f"{TAGS_PROMPT}\n\nCaption: {caption}\nContext: {hint_text}"
        last_error: Exception | None = None
        for model in self.models:
            try:
                raw = await self.client.structured(
                    model=model, prompt=prompt, schema=TAGS_SCHEMA, temperature=0
                )
                return normalize_tags(TagExtract.model_validate(raw).tags)
            except Exception as exc:  # noqa: BLE001
                if is_rate_limit_error(exc):
                    raise
                _logger.warning("Tag model failed: model=%s error=%s", model, exc)
                last_error = exc
        raise last_error or ProviderError("Tag generation failed")


def normalize_tags(tags: list[str]) -> list[str]:
    """Trim, lowercase and deduplicate tags, keeping the first occurrence."""
    normalized: list[str] = []
    for tag in tags:
        value = str(tag).strip().lower()
        if value and value not in normalized:
            normalized.append(value)
    return normalized[:MAX_TAGS]
