"""Nostalgia feed orchestration."""

import logging
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, UTC, datetime
from uuid import UUID
from zoneinfo import ZoneInfo

from photo_intelligence.domain.errors import FeedRequestError
from photo_intelligence.domain.feed import FeedItem, FeedMode, FeedPage
from photo_intelligence.services.candidates import CandidateGenerator, PhotoRepository
from photo_intelligence.services.diversify import mmr_select
from photo_intelligence.services.feed_random import stream_for
from photo_intelligence.services.feed_sessions import FeedSessionService
from photo_intelligence.services.scoring import (
    ScoredPhoto,
    mean_vector,
    pick_reason,
    score_photo,
)

_logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 30
MAX_LIMIT = 60
TOPIC_WINDOW = 30
# Year bounds leave room for the local-to-UTC shift at both ends.
MIN_YEAR = MINYEAR + 1
MAX_YEAR = MAXYEAR - 1


@dataclass
class FeedService:
    """Produces paginated, deduplicated pages of resurfaced photos."""

    photos: PhotoRepository
    sessions: FeedSessionService
    candidates: CandidateGenerator
    timezone: ZoneInfo = ZoneInfo("UTC")

    def get_nostalgia_feed(  # noqa: PLR0913
        self,
        user_id: UUID,
        mode: FeedMode,
        limit: int | None = None,
        seed: str | None = None,
        cursor: str | None = None,
        year: int | None = None,
        now: datetime | None = None,
    ) -> FeedPage:
        """Return the next page of the feed for ``mode``."""
        limit = max(1, min(limit or DEFAULT_LIMIT, MAX_LIMIT))
        now = now or datetime.now(tz=UTC)
        cursor_value = _parse_cursor(cursor)
        if mode == FeedMode.DEEP_DIVE_YEAR:
            _check_year(year)

        session = self.sessions.load(user_id, mode)
        resolved_seed = self.sessions.resolve_seed(seed, session)
        rng = stream_for(resolved_seed, mode.value, str(cursor_value))
        recent_ids = list(session.recent_photo_ids) if session else []
        topic = self._topic_vector(recent_ids[-TOPIC_WINDOW:])

        pool = self.candidates.generate(
            user_id,
            mode,
            limit,
            now,
            rng,
            year=year,
            exclude_ids=recent_ids,
        )
        scored = [score_photo(photo, topic, now, self.timezone) for photo in pool]
        selected = mmr_select(scored, limit)
        items = [self._to_item(mode, entry, now) for entry in selected]

        self.sessions.record_shown(
            user_id,
            mode,
            resolved_seed,
            recent_ids,
            [item.photo_id for item in items],
        )
        _logger.info(
            "Feed page: mode=%s cursor=%s pool=%s items=%s",
            mode.value,
            cursor_value,
            len(pool),
            len(items),
        )
        next_cursor = str(cursor_value + 1) if items else None
        return FeedPage(items=items, next_cursor=next_cursor)

    def _topic_vector(self, photo_ids: list[UUID]) -> list[float] | None:
        vectors = []
        for photo_id in photo_ids:
            photo = self.photos.get_by_id(photo_id)
            if photo is not None and photo.embedding:
                vectors.append(photo.embedding)
        return mean_vector(vectors)

    def _to_item(self, mode: FeedMode, entry: ScoredPhoto, now: datetime) -> FeedItem:
        photo = entry.photo
        return FeedItem(
            photo_id=photo.id,
            taken_at=photo.taken_at,
            uploaded_at=photo.uploaded_at,
            mime_type=photo.mime_type or "image/jpeg",
            reason=pick_reason(mode, photo, now, self.timezone),
            score=entry.total,
            score_breakdown=entry.breakdown,
            caption_short=photo.caption_short,
            tags=photo.tags,
            location_name=photo.location_name,
            detected_faces=photo.detected_faces,
        )


def _parse_cursor(cursor: str | None) -> int:
    """Parse the opaque sequence cursor; a missing cursor starts at zero."""
    if cursor is None or cursor == "":
        return 0
    try:
        value = int(cursor)
    except ValueError as exc:
        raise FeedRequestError("cursor must be an integer string") from exc
    if value < 0:
        raise FeedRequestError("cursor must not be negative")
    return value


def _check_year(year: int | None) -> None:
    if year is None:
        raise FeedRequestError("year is required for deep_dive_year")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise FeedRequestError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")
