"""Shared test fixtures."""

from dataclasses import dataclass, field, fields, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from photo_intelligence.config import Settings
from photo_intelligence.containers import AppContainer
from photo_intelligence.domain.feed import FeedMode, FeedSession
from photo_intelligence.domain.jobs import (
    JobRecord,
    JobStatus,
    JobStep,
    JobUpdate,
)
from photo_intelligence.domain.photos import AiAnalysisUpdate, PhotoRecord
from photo_intelligence.services.candidates import CandidateGenerator, PhotoRepository
from photo_intelligence.services.captions import (
    CaptionClient,
    CaptionService,
    TagService,
)
from photo_intelligence.services.embeddings import EmbeddingClient, EmbeddingService
from photo_intelligence.services.feed import FeedService
from photo_intelligence.services.feed_sessions import (
    FeedSessionRepository,
    FeedSessionService,
)
from photo_intelligence.services.queue import JobQueueService, JobRepository
from photo_intelligence.services.search import SearchService
from photo_intelligence.services.worker import AnalysisAssetStore, WorkerService

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)


def make_photo(  # noqa: PLR0913
    user_id: UUID,
    taken_at: datetime | None,
    *,
    uploaded_at: datetime | None = None,
    embedding: list[float] | None = None,
    ai_ready: bool = True,
    **overrides: object,
) -> PhotoRecord:
    """Build a photo; AI-ready photos get a processed timestamp."""
    values: dict[str, object] = {
        "id": uuid4(),
        "user_id": user_id,
        "file_name": "IMG_0001.jpg",
        "mime_type": "image/jpeg",
        "uploaded_at": uploaded_at or taken_at or NOW,
        "taken_at": taken_at,
        "analysis_asset_id": "asset-1",
        "embedding": embedding,
        "ai_processed_at": NOW if ai_ready else None,
    }
    values.update(overrides)
    return PhotoRecord(**values)  # type: ignore[arg-type]


def make_job(photo_id: UUID, user_id: UUID, **overrides: object) -> JobRecord:
    values: dict[str, object] = {
        "id": uuid4(),
        "photo_id": photo_id,
        "user_id": user_id,
        "status": JobStatus.PENDING,
        "step": JobStep.PENDING,
        "retry_count": 0,
        "created_at": NOW,
    }
    values.update(overrides)
    return JobRecord(**values)  # type: ignore[arg-type]


@dataclass
class InMemoryPhotoRepository(PhotoRepository):
    """In-memory photo repository for tests."""

    photos: dict[UUID, PhotoRecord] = field(default_factory=dict)
    updates: list[tuple[UUID, AiAnalysisUpdate]] = field(default_factory=list)
    date_queries: list[tuple[datetime | None, datetime | None]] = field(
        default_factory=list
    )

    def add(self, *photos: PhotoRecord) -> None:
        for photo in photos:
            self.photos[photo.id] = photo

    def get_by_id(self, photo_id: UUID) -> PhotoRecord | None:
        return self.photos.get(photo_id)

    def list_by_date(
        self, user_id: UUID, start: datetime | None, end: datetime | None
    ) -> list[PhotoRecord]:
        self.date_queries.append((start, end))
        matches = [
            photo
            for photo in self.photos.values()
            if photo.user_id == user_id
            and not photo.is_trashed
            and photo.taken_at is not None
            and (start is None or photo.taken_at >= start)
            and (end is None or photo.taken_at < end)
        ]
        return sorted(matches, key=lambda photo: photo.taken_at, reverse=True)

    def list_by_user(self, user_id: UUID, limit: int) -> list[PhotoRecord]:
        matches = [
            photo
            for photo in self.photos.values()
            if photo.user_id == user_id and not photo.is_trashed
        ]
        matches.sort(key=lambda photo: photo.uploaded_at, reverse=True)
        return matches[:limit]

    def update_ai_analysis(self, photo_id: UUID, update: AiAnalysisUpdate) -> None:
        self.updates.append((photo_id, update))
        changes = {
            item.name: getattr(update, item.name)
            for item in fields(update)
            if getattr(update, item.name) is not None
        }
        self.photos[photo_id] = replace(self.photos[photo_id], **changes)

    def match_embeddings(
        self, user_id: UUID, vector: list[float], limit: int
    ) -> list[tuple[PhotoRecord, float]]:
        scored = [
            (photo, sum(a * b for a, b in zip(photo.embedding, vector, strict=True)))
            for photo in self.photos.values()
            if photo.user_id == user_id
            and photo.embedding
            and len(photo.embedding) == len(vector)
        ]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[:limit]


@dataclass
class InMemoryJobRepository(JobRepository):
    """In-memory job repository for tests."""

    jobs: dict[UUID, JobRecord] = field(default_factory=dict)
    lease_attempts: list[UUID] = field(default_factory=list)

    def add(self, *jobs: JobRecord) -> None:
        for job in jobs:
            self.jobs[job.id] = job

    def list_leasable(self, now: datetime, limit: int) -> list[JobRecord]:
        leasable = [job for job in self.jobs.values() if job.is_leasable(now)]
        leasable.sort(key=lambda job: job.created_at)
        return leasable[:limit]

    def try_lease(self, job_id: UUID, now: datetime, locked_until: datetime) -> bool:
        self.lease_attempts.append(job_id)
        job = self.jobs[job_id]
        if not job.is_leasable(now):
            return False
        self.jobs[job_id] = replace(
            job,
            status=JobStatus.PROCESSING,
            step=JobStep.EMBEDDING,
            locked_until=locked_until,
            error=None,
            provider_meta=None,
        )
        return True

    def update_job(self, job_id: UUID, update: JobUpdate) -> None:
        self.jobs[job_id] = update.apply(self.jobs[job_id])

    def get_job(self, job_id: UUID) -> JobRecord | None:
        return self.jobs.get(job_id)

    def get_job_by_photo(self, photo_id: UUID) -> JobRecord | None:
        for job in self.jobs.values():
            if job.photo_id == photo_id:
                return job
        return None

    def list_by_status(self, status: JobStatus, limit: int) -> list[JobRecord]:
        return [job for job in self.jobs.values() if job.status == status][:limit]

    def create_job(
        self, photo_id: UUID, user_id: UUID, created_at: datetime
    ) -> JobRecord:
        job = make_job(photo_id, user_id, created_at=created_at)
        self.jobs[job.id] = job
        return job

    def list_statuses_for_user(self, user_id: UUID) -> list[JobStatus]:
        return [job.status for job in self.jobs.values() if job.user_id == user_id]


@dataclass
class InMemoryFeedSessionRepository(FeedSessionRepository):
    """In-memory feed session repository for tests."""

    sessions: dict[tuple[UUID, FeedMode], FeedSession] = field(default_factory=dict)
    writes: int = 0

    def get_session(self, user_id: UUID, mode: FeedMode) -> FeedSession | None:
        return self.sessions.get((user_id, mode))

    def upsert_session(
        self,
        user_id: UUID,
        mode: FeedMode,
        seed: str,
        recent_photo_ids: list[UUID],
    ) -> None:
        self.writes += 1
        self.sessions[(user_id, mode)] = FeedSession(
            user_id=user_id,
            mode=mode,
            seed=seed,
            recent_photo_ids=list(recent_photo_ids),
            last_seen_at=NOW,
        )


@dataclass
class InMemoryAnalysisAssetStore(AnalysisAssetStore):
    """In-memory thumbnail store for tests."""

    assets: dict[str, bytes] = field(default_factory=lambda: {"asset-1": b"thumb"})

    def get(self, asset_id: str) -> bytes | None:
        return self.assets.get(asset_id)

    def get_signed_url(self, asset_id: str) -> str | None:
        if asset_id not in self.assets:
            return None
        return f"https://assets.test/{asset_id}?token=signed"


@dataclass
class FakeEmbeddingClient(EmbeddingClient):
    """Fake embedding provider returning a fixed vector."""

    model: str = "fake-clip"
    vector: list[float] = field(default_factory=lambda: [1.0, 0.0])
    error: Exception | None = None
    texts: list[str] = field(default_factory=list)

    async def embed_image(self, image_bytes: bytes) -> list[float]:
        if self.error is not None:
            raise self.error
        return list(self.vector)

    async def embed_text(self, text: str) -> list[float]:
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        return list(self.vector)


@dataclass
class FakeCaptionClient(CaptionClient):
    """Fake LLM client with optional per-model failures."""

    text: str = "  Two people laughing at a beach at sunset.  "
    tags: list[str] = field(default_factory=lambda: ["Beach", "sunset", "beach"])
    errors: dict[str, Exception] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)

    async def caption(
        self, *, model: str, image_url: str, prompt: str, temperature: float
    ) -> str:
        self.calls.append(("caption", model))
        if model in self.errors:
            raise self.errors[model]
        return self.text

    async def structured(
        self,
        *,
        model: str,
        prompt: str,
        schema: dict[str, object],
        temperature: float,
    ) -> dict[str, object]:
        self.calls.append(("structured", model))
        if model in self.errors:
            raise self.errors[model]
        return {"tags": list(self.tags)}


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="eyJhbGciOiJIUzI1NiJ9.eyJyb2xlIjoic2VydmljZSJ9.signature",
        admin_token="admin-token",
        openai_api_key="openai-key",
        jina_api_key="jina-key",
    )


@pytest.fixture
def photo_repository() -> InMemoryPhotoRepository:
    return InMemoryPhotoRepository()


@pytest.fixture
def job_repository() -> InMemoryJobRepository:
    return InMemoryJobRepository()


@pytest.fixture
def session_repository() -> InMemoryFeedSessionRepository:
    return InMemoryFeedSessionRepository()


@pytest.fixture
def caption_client() -> FakeCaptionClient:
    return FakeCaptionClient()


@pytest.fixture
def embedding_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def queue_service(
    job_repository: InMemoryJobRepository,
    photo_repository: InMemoryPhotoRepository,
) -> JobQueueService:
    return JobQueueService(job_repository, photo_repository)


@pytest.fixture
def worker_service(
    queue_service: JobQueueService,
    photo_repository: InMemoryPhotoRepository,
    embedding_client: FakeEmbeddingClient,
    caption_client: FakeCaptionClient,
) -> WorkerService:
    models = ["model-a", "model-b"]
    return WorkerService(
        queue=queue_service,
        photos=photo_repository,
        assets=InMemoryAnalysisAssetStore(),
        embeddings=EmbeddingService(embedding_client),
        captions=CaptionService(caption_client, models),
        tags=TagService(caption_client, models),
    )


@pytest.fixture
def feed_service(
    photo_repository: InMemoryPhotoRepository,
    session_repository: InMemoryFeedSessionRepository,
) -> FeedService:
    return FeedService(
        photos=photo_repository,
        sessions=FeedSessionService(session_repository),
        candidates=CandidateGenerator(photo_repository),
    )


@pytest.fixture
def container(
    settings: Settings,
    queue_service: JobQueueService,
    worker_service: WorkerService,
    feed_service: FeedService,
    photo_repository: InMemoryPhotoRepository,
    embedding_client: FakeEmbeddingClient,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        queue_service=queue_service,
        worker_service=worker_service,
        feed_service=feed_service,
        search_service=SearchService(
            photo_repository, EmbeddingService(embedding_client)
        ),
        close_resources=close_resources,
    )
