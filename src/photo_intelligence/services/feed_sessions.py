"""Feed session continuity across paginated requests."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID, uuid4

from photo_intelligence.domain.feed import FeedMode, FeedSession

RECENT_WINDOW = 50


class FeedSessionRepository(Protocol):
    """Persistence interface for feed sessions."""

    def get_session(self, user_id: UUID, mode: FeedMode) -> FeedSession | None:
        """Return the session for a user and mode, if present."""

    def upsert_session(
        self,
        user_id: UUID,
        mode: FeedMode,
        seed: str,
        recent_photo_ids: list[UUID],
    ) -> None:
        """Create or replace the session for a user and mode."""


@dataclass
class FeedSessionService:
    """Loads and records per-mode feed sessions."""

    repository: FeedSessionRepository
    window: int = RECENT_WINDOW

    def load(self, user_id: UUID, mode: FeedMode) -> FeedSession | None:
        """Return the stored session, if any."""
        return self.repository.get_session(user_id, mode)

    @staticmethod
    def resolve_seed(requested: str | None, session: FeedSession | None) -> str:
        """Prefer the caller's seed, then the stored one, then a fresh seed."""
        if requested:
            return requested
        if session is not None and session.seed:
            return session.seed
        return uuid4().hex

    def record_shown(
        self,
        user_id: UUID,
        mode: FeedMode,
        seed: str,
        previous: list[UUID],
        shown: list[UUID],
    ) -> list[UUID]:
        """Append shown photos to the rolling window and persist it."""
        recent = merge_recent(previous, shown, self.window)
        self.repository.upsert_session(user_id, mode, seed, recent)
        return recent


def merge_recent(previous: list[UUID], shown: list[UUID], window: int) -> list[UUID]:
    """Append ids most-recent-last, without duplicates, keeping the trailing window."""
    merged: list[UUID] = []
    for photo_id in [*previous, *shown]:
        if photo_id in merged:
            merged.remove(photo_id)
        merged.append(photo_id)
    if window <= 0:
        return []
    return merged[-window:]
