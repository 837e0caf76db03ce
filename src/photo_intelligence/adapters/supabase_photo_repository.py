"""Supabase-backed photo repository."""

import json
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from photo_intelligence.domain.photos import AiAnalysisUpdate, PhotoRecord
from photo_intelligence.services.candidates import PhotoRepository

_PHOTO_COLUMNS = (
    "id, user_id, file_name, mime_type, uploaded_at, taken_at, location_name, "
    "camera_model, is_favorite, is_trashed, detected_faces, ai_quality_score, "
    "analysis_asset_id, embedding, embedding_dim, embedding_model, caption_short, "
    "caption_version, tags, ai_processed_at, ai_processing_version"
)


@dataclass
class SupabasePhotoRepository(PhotoRepository):
    """Supabase implementation for photo metadata and AI state."""

    client: Client

    def get_by_id(self, photo_id: UUID) -> PhotoRecord | None:
        """Return a photo by id, if present."""
        response = (
            self.client.table("photos")
            .select(_PHOTO_COLUMNS)
            .eq("id", str(photo_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_photo(response.data[0])

    def list_by_date(
        self, user_id: UUID, start: datetime | None, end: datetime | None
    ) -> list[PhotoRecord]:
        """Return non-trashed photos taken in ``[start, end)``, newest first."""
        query = (
            self.client.table("photos")
            .select(_PHOTO_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("is_trashed", False)
        )
        if start is not None:
            query = query.gte("taken_at", start.isoformat())
        if end is not None:
            query = query.lt("taken_at", end.isoformat())
        response = query.order("taken_at", desc=True).execute()
        return [_to_photo(row) for row in response.data or []]

    def list_by_user(self, user_id: UUID, limit: int) -> list[PhotoRecord]:
        """Return the user's most recent non-trashed photos."""
        response = (
            self.client.table("photos")
            .select(_PHOTO_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("is_trashed", False)
            .order("uploaded_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_to_photo(row) for row in response.data or []]

    def update_ai_analysis(self, photo_id: UUID, update: AiAnalysisUpdate) -> None:
        """Persist AI-derived fields in one write."""
        payload = update.to_payload()
        if not payload:
            return
        self.client.table("photos").update(payload).eq("id", str(photo_id)).execute()

    def match_embeddings(
        self, user_id: UUID, vector: list[float], limit: int
    ) -> list[tuple[PhotoRecord, float]]:
        """Run the ``match_photos`` vector search for one user."""
        response = self.client.rpc(
            "match_photos",
            {
                "query_embedding": vector,
                "match_user_id": str(user_id),
                "match_count": limit,
            },
        ).execute()
        return [
            (_to_photo(row), float(row.get("similarity") or 0.0))
            for row in response.data or []
        ]


def _to_photo(row: dict[str, object]) -> PhotoRecord:
    return PhotoRecord(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        file_name=str(row.get("file_name") or ""),
        mime_type=str(row.get("mime_type") or "image/jpeg"),
        uploaded_at=_parse_datetime(row["uploaded_at"]),
        taken_at=_parse_datetime(row.get("taken_at")),
        location_name=row.get("location_name"),
        camera_model=row.get("camera_model"),
        is_favorite=bool(row.get("is_favorite")),
        is_trashed=bool(row.get("is_trashed")),
        detected_faces=row.get("detected_faces"),
        ai_quality_score=row.get("ai_quality_score"),
        analysis_asset_id=row.get("analysis_asset_id"),
        embedding=_parse_vector(row.get("embedding")),
        embedding_dim=row.get("embedding_dim"),
        embedding_model=row.get("embedding_model"),
        caption_short=row.get("caption_short"),
        caption_version=row.get("caption_version"),
        tags=row.get("tags"),
        ai_processed_at=_parse_datetime(row.get("ai_processed_at")),
        ai_processing_version=row.get("ai_processing_version"),
    )


def _parse_datetime(value: object) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _parse_vector(value: object) -> list[float] | None:
    """pgvector columns come back as a JSON-style string."""
    if value is None:
        return None
    if isinstance(value, str):
        value = json.loads(value)
    return [float(item) for item in value]
