"""Supabase-backed feed session repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from photo_intelligence.domain.feed import FeedMode, FeedSession
from photo_intelligence.services.feed_sessions import FeedSessionRepository


@dataclass
class SupabaseFeedSessionRepository(FeedSessionRepository):
    """Supabase implementation for per-mode feed sessions."""

    client: Client

    def get_session(self, user_id: UUID, mode: FeedMode) -> FeedSession | None:
        """Return the session for a user and mode, if present."""
        response = (
            self.client.table("feed_sessions")
            .select(
                "user_id, mode, seed, recent_photo_ids, last_seen_at, "
                "created_at, updated_at"
            )
            .eq("user_id", str(user_id))
            .eq("mode", mode.value)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return FeedSession(
            user_id=UUID(str(row["user_id"])),
            mode=FeedMode(row["mode"]),
            seed=str(row["seed"]),
            recent_photo_ids=[
                UUID(str(item)) for item in row.get("recent_photo_ids") or []
            ],
            last_seen_at=_parse_datetime(row.get("last_seen_at")),
            created_at=_parse_datetime(row.get("created_at")),
            updated_at=_parse_datetime(row.get("updated_at")),
        )

    def upsert_session(
        self,
        user_id: UUID,
        mode: FeedMode,
        seed: str,
        recent_photo_ids: list[UUID],
    ) -> None:
        """Create or replace the session for a user and mode."""
        now = datetime.now(tz=UTC).isoformat()
        self.client.table("feed_sessions").upsert(
            {
                "user_id": str(user_id),
                "mode": mode.value,
                "seed": seed,
                "recent_photo_ids": [str(item) for item in recent_photo_ids],
                "last_seen_at": now,
                "updated_at": now,
            },
            on_conflict="user_id,mode",
        ).execute()


def _parse_datetime(value: object) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(str(value))
