"""Mode-specific candidate retrieval for the nostalgia feed."""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID
from zoneinfo import ZoneInfo

from photo_intelligence.domain.errors import FeedRequestError
from photo_intelligence.domain.feed import FeedMode
from photo_intelligence.domain.photos import AiAnalysisUpdate, PhotoRecord
from photo_intelligence.services.feed_random import XorShift32

_logger = logging.getLogger(__name__)

ON_THIS_DAY_YEARS = 30
ON_THIS_DAY_POOL_FACTOR = 20
NOSTALGIA_MIN_DAYS = 365
NOSTALGIA_MAX_DAYS = 365 * 25
NOSTALGIA_WINDOW_DAYS = 7
NOSTALGIA_WINDOW_ATTEMPTS = 4
NOSTALGIA_POOL_FACTOR = 8
FALLBACK_RECENT_LIMIT = 500


class PhotoRepository(Protocol):
    """Persistence interface for photos."""

    def get_by_id(self, photo_id: UUID) -> PhotoRecord | None:
        """Return a photo by id, if present."""

    def list_by_date(
        self, user_id: UUID, start: datetime | None, end: datetime | None
    ) -> list[PhotoRecord]:
        """Return non-trashed photos taken in ``[start, end)``, newest first."""

    def list_by_user(self, user_id: UUID, limit: int) -> list[PhotoRecord]:
        """Return the user's most recent non-trashed photos."""

    def update_ai_analysis(self, photo_id: UUID, update: AiAnalysisUpdate) -> None:
        """Persist AI-derived fields in one write."""

    def match_embeddings(
        self, user_id: UUID, vector: list[float], limit: int
    ) -> list[tuple[PhotoRecord, float]]:
        """Return the user's photos nearest to ``vector`` with similarity."""


@dataclass
class CandidateGenerator:
    """Proposes a raw candidate pool for each feed mode."""

    photos: PhotoRepository
    timezone: ZoneInfo = ZoneInfo("UTC")

    def generate(  # noqa: PLR0913
        self,
        user_id: UUID,
        mode: FeedMode,
        limit: int,
        now: datetime,
        rng: XorShift32,
        year: int | None = None,
        exclude_ids: Iterable[UUID] = (),
    ) -> list[PhotoRecord]:
        """Return eligible, deduplicated candidates for ``mode``."""
        pool = _CandidatePool(set(exclude_ids))
        if mode == FeedMode.DEEP_DIVE_YEAR:
            if year is None:
                raise FeedRequestError("year is required for deep_dive_year")
            self._deep_dive_year(user_id, year, pool)
        elif mode == FeedMode.ON_THIS_DAY:
            self._on_this_day(user_id, limit, now, pool)
        else:
            self._nostalgia(user_id, limit, now, rng, pool)
        _logger.info("Feed candidates: mode=%s pool=%s", mode.value, len(pool.photos))
        return pool.photos

    def _deep_dive_year(self, user_id: UUID, year: int, pool: "_CandidatePool") -> None:
        start = datetime(year, 1, 1, tzinfo=self.timezone)
        end = datetime(year + 1, 1, 1, tzinfo=self.timezone)
        pool.extend(self.photos.list_by_date(user_id, _utc(start), _utc(end)))

    def _on_this_day(
        self, user_id: UUID, limit: int, now: datetime, pool: "_CandidatePool"
    ) -> None:
        local_now = now.astimezone(self.timezone)
        first_year = local_now.year - 1
        for year in range(first_year, first_year - ON_THIS_DAY_YEARS, -1):
            try:
                start = datetime(
                    year, local_now.month, local_now.day, tzinfo=self.timezone
                )
            except ValueError:
                # Feb 29 in a non-leap year.
                continue
            end = start + timedelta(days=1)
            pool.extend(self.photos.list_by_date(user_id, _utc(start), _utc(end)))
            if len(pool.photos) >= limit * ON_THIS_DAY_POOL_FACTOR:
                break

    def _nostalgia(
        self,
        user_id: UUID,
        limit: int,
        now: datetime,
        rng: XorShift32,
        pool: "_CandidatePool",
    ) -> None:
        days_ago = sample_days_ago(rng.next_float())
        target = now - timedelta(days=days_ago)
        window = timedelta(days=NOSTALGIA_WINDOW_DAYS)
        for _ in range(NOSTALGIA_WINDOW_ATTEMPTS):
            pool.extend(
                self.photos.list_by_date(user_id, target - window, target + window)
            )
            if len(pool.photos) >= limit * NOSTALGIA_POOL_FACTOR:
                break
            window *= 2
        if not pool.photos:
            pool.extend(self.photos.list_by_user(user_id, FALLBACK_RECENT_LIMIT))


def sample_days_ago(u: float) -> int:
    """Map a uniform draw onto a log-uniform age between 1 and 25 years."""
    ratio = math.log(NOSTALGIA_MAX_DAYS / NOSTALGIA_MIN_DAYS)
    return math.floor(NOSTALGIA_MIN_DAYS * math.exp(ratio * u))


class _CandidatePool:
    """Accumulates eligible photos, dropping repeats and excluded ids."""

    def __init__(self, exclude_ids: set[UUID]) -> None:
        self._seen = exclude_ids
        self.photos: list[PhotoRecord] = []

    def extend(self, photos: Iterable[PhotoRecord]) -> None:
        for photo in photos:
            if photo.is_trashed or not photo.is_ai_ready or photo.id in self._seen:
                continue
            self._seen.add(photo.id)
            self.photos.append(photo)


def _utc(value: datetime) -> datetime:
    return value.astimezone(UTC)
