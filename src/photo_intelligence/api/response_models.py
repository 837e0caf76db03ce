"""Pydantic models for API requests and responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from photo_intelligence.domain.jobs import JobStatus, JobStep


class ScoreBreakdownModel(BaseModel):
    """Scoring signals for one feed item."""

    model_config = ConfigDict(from_attributes=True)

    nostalgia: float
    favorite: float
    coherence: float
    tags: float
    time_of_day: float
    seasonal: float
    faces: float
    quality: float
    total: float


class FeedItemModel(BaseModel):
    """Feed item payload."""

    model_config = ConfigDict(from_attributes=True)

    photo_id: UUID
    taken_at: datetime | None = None
    uploaded_at: datetime
    mime_type: str
    reason: str
    score: float
    score_breakdown: ScoreBreakdownModel
    caption_short: str | None = None
    tags: list[str] | None = None
    location_name: str | None = None
    detected_faces: int | None = None


class FeedPageResponse(BaseModel):
    """One page of the nostalgia feed."""

    model_config = ConfigDict(from_attributes=True)

    items: list[FeedItemModel]
    next_cursor: str | None = None


class SearchHitModel(BaseModel):
    """Photo matched by similarity search."""

    photo_id: UUID
    score: float
    taken_at: datetime | None = None
    mime_type: str
    caption_short: str | None = None
    tags: list[str] | None = None


class SearchResponse(BaseModel):
    """Search results ordered by similarity."""

    results: list[SearchHitModel]


class JobModel(BaseModel):
    """Processing job payload."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    photo_id: UUID
    user_id: UUID
    status: JobStatus
    step: JobStep
    retry_count: int
    created_at: datetime
    locked_until: datetime | None = None
    error: str | None = None
    provider_meta: dict[str, object] | None = None
    processed_at: datetime | None = None


class BatchResultModel(BaseModel):
    """Worker batch counters."""

    model_config = ConfigDict(from_attributes=True)

    processed: int
    succeeded: int
    failed: int
    deferred: int


class AiProgressModel(BaseModel):
    """Per-user AI indexing progress."""

    model_config = ConfigDict(from_attributes=True)

    pending: int
    processing: int
    completed: int
    failed: int
    total: int


class AnalysisAssetRequest(BaseModel):
    """Analysis thumbnail uploaded for a photo."""

    asset_id: str = Field(min_length=1)
