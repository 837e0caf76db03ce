"""Domain models for the nostalgia feed."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class FeedMode(StrEnum):
    """Retrieval strategy requested by the caller."""

    NOSTALGIA = "nostalgia"
    ON_THIS_DAY = "on_this_day"
    DEEP_DIVE_YEAR = "deep_dive_year"
    SERENDIPITY = "serendipity"


@dataclass(frozen=True)
class FeedSession:
    """Continuity record for one user and mode."""

    user_id: UUID
    mode: FeedMode
    seed: str
    recent_photo_ids: list[UUID] = field(default_factory=list)
    last_seen_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ScoreBreakdown:
    """Individual scoring signals for a candidate."""

    nostalgia: float
    favorite: float
    coherence: float
    tags: float
    time_of_day: float
    seasonal: float
    faces: float
    quality: float
    total: float


@dataclass(frozen=True)
class FeedItem:
    """A resurfaced photo returned to the caller."""

    photo_id: UUID
    taken_at: datetime | None
    uploaded_at: datetime
    mime_type: str
    reason: str
    score: float
    score_breakdown: ScoreBreakdown
    caption_short: str | None
    tags: list[str] | None
    location_name: str | None
    detected_faces: int | None


@dataclass(frozen=True)
class FeedPage:
    """One page of the feed plus the cursor for the next request."""

    items: list[FeedItem]
    next_cursor: str | None
