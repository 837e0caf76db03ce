"""Heuristic relevance scoring for feed candidates."""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from photo_intelligence.domain.feed import FeedMode, ScoreBreakdown
from photo_intelligence.domain.photos import PhotoRecord

DAYS_PER_YEAR = 365
FAVORITE_BOOST = 0.5
COHERENCE_WEIGHT = 0.8
TAG_BOOST_CAP = 0.4
TAG_BOOST_DIVISOR = 60
HOURS_PER_DAY = 24
MONTHS_PER_YEAR = 12
FACE_BOOST_CAP = 0.3
FACE_BOOST_PER_FACE = 0.15
QUALITY_MIDPOINT = 0.5
QUALITY_WEIGHT = 0.4
OLD_PHOTO_YEARS = 5


@dataclass(frozen=True)
class ScoredPhoto:
    """A candidate with its score breakdown."""

    photo: PhotoRecord
    breakdown: ScoreBreakdown

    @property
    def total(self) -> float:
        return self.breakdown.total


def dot(a: Sequence[float], b: Sequence[float]) -> float:
    """Dot product of two equal-length vectors."""
    return sum(x * y for x, y in zip(a, b, strict=True))


def mean_vector(vectors: Sequence[Sequence[float]]) -> list[float] | None:
    """Element-wise mean, skipping vectors whose dimension differs from the first."""
    usable = [v for v in vectors if v]
    if not usable:
        return None
    dim = len(usable[0])
    matching = [v for v in usable if len(v) == dim]
    totals = [0.0] * dim
    for vector in matching:
        for index, value in enumerate(vector):
            totals[index] += value
    return [value / len(matching) for value in totals]


def similarity(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """Dot-product similarity, zero when missing or mismatched."""
    if not a or not b or len(a) != len(b):
        return 0.0
    return dot(a, b)


def score_photo(
    photo: PhotoRecord,
    topic: Sequence[float] | None,
    now: datetime,
    tz: ZoneInfo,
) -> ScoredPhoto:
    """Compute every scoring signal for one candidate."""
    age_days = max(0.0, (now - photo.moment).total_seconds() / 86400)
    nostalgia = math.log1p(age_days / DAYS_PER_YEAR)
    favorite = FAVORITE_BOOST if photo.is_favorite else 0.0
    coherence = similarity(topic, photo.embedding)
    tags = 0.0
    if photo.tags:
        tags = min(TAG_BOOST_CAP, len(photo.tags) / TAG_BOOST_DIVISOR)

    time_of_day = 0.0
    seasonal = 0.0
    if photo.taken_at is not None:
        local_now = now.astimezone(tz)
        local_taken = photo.taken_at.astimezone(tz)
        hour_diff = abs(local_taken.hour - local_now.hour)
        hour_diff = min(hour_diff, HOURS_PER_DAY - hour_diff)
        if hour_diff <= 2:  # noqa: PLR2004
            time_of_day = 0.2
        elif hour_diff <= 4:  # noqa: PLR2004
            time_of_day = 0.1
        month_diff = abs(local_taken.month - local_now.month)
        month_diff = min(month_diff, MONTHS_PER_YEAR - month_diff)
        if month_diff <= 1:
            seasonal = 0.25
        elif month_diff <= 2:  # noqa: PLR2004
            seasonal = 0.1

    faces = 0.0
    if photo.detected_faces and photo.detected_faces > 0:
        faces = min(FACE_BOOST_CAP, photo.detected_faces * FACE_BOOST_PER_FACE)

    quality = 0.0
    if photo.ai_quality_score is not None:
        quality = (photo.ai_quality_score - QUALITY_MIDPOINT) * QUALITY_WEIGHT

    total = (
        nostalgia
        + favorite
        + COHERENCE_WEIGHT * coherence
        + tags
        + time_of_day
        + seasonal
        + faces
        + quality
    )
    return ScoredPhoto(
        photo=photo,
        breakdown=ScoreBreakdown(
            nostalgia=nostalgia,
            favorite=favorite,
            coherence=coherence,
            tags=tags,
            time_of_day=time_of_day,
            seasonal=seasonal,
            faces=faces,
            quality=quality,
            total=total,
        ),
    )


def pick_reason(
    mode: FeedMode, photo: PhotoRecord, now: datetime, tz: ZoneInfo
) -> str:
    """Return a short human-readable provenance string."""
    moment = photo.taken_at or now
    year = moment.astimezone(tz).year
    if mode == FeedMode.ON_THIS_DAY:
        return f"On this day in {year}"
    if mode == FeedMode.DEEP_DIVE_YEAR:
        return f"From {year}"
    age_years = max(0.0, (now - moment).total_seconds() / 86400 / DAYS_PER_YEAR)
    if age_years >= OLD_PHOTO_YEARS:
        return f"From {year}"
    return "A moment to revisit"
