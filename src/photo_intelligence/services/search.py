"""Semantic search over photo embeddings."""

from dataclasses import dataclass
from uuid import UUID

from photo_intelligence.domain.photos import PhotoRecord
from photo_intelligence.services.candidates import PhotoRepository
from photo_intelligence.services.embeddings import EmbeddingService

DEFAULT_LIMIT = 20
MAX_LIMIT = 50


@dataclass(frozen=True)
class SearchHit:
    """A photo matched by vector similarity."""

    photo: PhotoRecord
    score: float


@dataclass
class SearchService:
    """Text-to-photo and photo-to-photo similarity search."""

    photos: PhotoRepository
    embeddings: EmbeddingService

    async def semantic_search(
        self, user_id: UUID, query: str, limit: int = DEFAULT_LIMIT
    ) -> list[SearchHit]:
        """Return the user's photos closest to a text query."""
        if not query.strip():
            return []
        vector = await self.embeddings.embed_text(query.strip())
        return self._match(user_id, vector, limit)

    def similar_to_photo(
        self, user_id: UUID, photo_id: UUID, limit: int = DEFAULT_LIMIT
    ) -> list[SearchHit]:
        """Return the user's photos closest to an existing photo."""
        photo = self.photos.get_by_id(photo_id)
        if photo is None or photo.user_id != user_id or not photo.embedding:
            return []
        hits = self._match(user_id, photo.embedding, limit + 1)
        return [hit for hit in hits if hit.photo.id != photo_id][: _clamp(limit)]

    def _match(self, user_id: UUID, vector: list[float], limit: int) -> list[SearchHit]:
        matches = self.photos.match_embeddings(user_id, vector, _clamp(limit))
        return [
            SearchHit(photo=photo, score=score)
            for photo, score in matches
            if not photo.is_trashed
        ]


def _clamp(limit: int) -> int:
    return max(1, min(limit, MAX_LIMIT))
