"""Domain models for photos and their AI-derived fields."""

from dataclasses import dataclass, fields
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class PhotoRecord:
    """Photo metadata plus the AI state written by the worker."""

    id: UUID
    user_id: UUID
    file_name: str
    mime_type: str
    uploaded_at: datetime
    taken_at: datetime | None = None
    location_name: str | None = None
    camera_model: str | None = None
    is_favorite: bool = False
    is_trashed: bool = False
    detected_faces: int | None = None
    ai_quality_score: float | None = None
    analysis_asset_id: str | None = None
    embedding: list[float] | None = None
    embedding_dim: int | None = None
    embedding_model: str | None = None
    caption_short: str | None = None
    caption_version: int | None = None
    tags: list[str] | None = None
    ai_processed_at: datetime | None = None
    ai_processing_version: int | None = None

    @property
    def is_ai_ready(self) -> bool:
        """Return whether a full analysis run has completed."""
        return self.ai_processed_at is not None

    @property
    def moment(self) -> datetime:
        """Return when the photo was taken, falling back to upload time."""
        return self.taken_at or self.uploaded_at


@dataclass(frozen=True)
class AiAnalysisUpdate:
    """Partial update of a photo's AI fields; unset fields are left alone."""

    embedding: list[float] | None = None
    embedding_dim: int | None = None
    embedding_model: str | None = None
    caption_short: str | None = None
    caption_version: int | None = None
    tags: list[str] | None = None
    ai_processed_at: datetime | None = None
    ai_processing_version: int | None = None
    analysis_asset_id: str | None = None

    def to_payload(self) -> dict[str, object]:
        """Return a column payload containing only the fields that were set."""
        payload: dict[str, object] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            if isinstance(value, datetime):
                value = value.isoformat()
            payload[item.name] = value
        return payload
