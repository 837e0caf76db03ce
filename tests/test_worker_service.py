"""Tests for the AI worker pipeline."""

import asyncio
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from photo_intelligence.domain.errors import (
    ProviderError,
    RateLimitedError,
    is_rate_limit_error,
)
from photo_intelligence.domain.jobs import JobRecord, JobStatus, JobStep, JobUpdate
from photo_intelligence.domain.photos import PhotoRecord
from photo_intelligence.services.worker import WorkerService, build_hint_text
from tests.conftest import (
    NOW,
    FakeCaptionClient,
    FakeEmbeddingClient,
    InMemoryJobRepository,
    InMemoryPhotoRepository,
    make_job,
    make_photo,
)


def _seed(
    photos: InMemoryPhotoRepository, jobs: InMemoryJobRepository, **overrides: object
) -> tuple[PhotoRecord, JobRecord]:
    user_id = uuid4()
    photo = make_photo(
        user_id,
        NOW,
        ai_ready=False,
        location_name="Lisbon",
        camera_model="Pixel 8",
        **overrides,
    )
    photos.add(photo)
    job = make_job(photo.id, user_id)
    jobs.add(job)
    return photo, job


def test_process_pending_writes_ai_fields_once_and_completes(
    worker_service: WorkerService,
    job_repository: InMemoryJobRepository,
    photo_repository: InMemoryPhotoRepository,
) -> None:
    photo, job = _seed(photo_repository, job_repository)

    result = asyncio.run(worker_service.process_pending())

    assert (result.processed, result.succeeded, result.failed) == (1, 1, 0)
    assert len(photo_repository.updates) == 1
    updated = photo_repository.photos[photo.id]
    assert updated.embedding == [1.0, 0.0]
    assert updated.embedding_dim == 2
    assert updated.embedding_model == "fake-clip"
    assert updated.caption_short == "Two people laughing at a beach at sunset."
    assert updated.tags == ["beach", "sunset"]
    assert updated.caption_version == 1
    assert updated.ai_processing_version == 1
    assert updated.is_ai_ready

    stored = job_repository.jobs[job.id]
    assert stored.status == JobStatus.COMPLETED
    assert stored.step == JobStep.DONE
    assert stored.locked_until is None
    assert stored.error is None
    assert stored.processed_at is not None
    assert stored.provider_meta == {"embedding": {"model": "fake-clip", "dim": 2}}


def test_rate_limit_defers_job_with_backoff(
    worker_service: WorkerService,
    job_repository: InMemoryJobRepository,
    photo_repository: InMemoryPhotoRepository,
    embedding_client: FakeEmbeddingClient,
) -> None:
    photo, job = _seed(photo_repository, job_repository)
    embedding_client.error = RateLimitedError("Jina embeddings rate limited")

    before = datetime.now(tz=UTC)
    result = asyncio.run(worker_service.process_pending())

    assert result.deferred == 1
    stored = job_repository.jobs[job.id]
    assert stored.status == JobStatus.PENDING
    assert stored.step == JobStep.PENDING
    assert stored.error == "rate_limited"
    assert stored.retry_count == 1
    assert stored.locked_until is not None
    assert stored.locked_until >= before + timedelta(seconds=10)
    assert photo_repository.updates == []


def test_provider_failure_marks_job_failed(
    worker_service: WorkerService,
    job_repository: InMemoryJobRepository,
    photo_repository: InMemoryPhotoRepository,
    caption_client: FakeCaptionClient,
) -> None:
    photo, job = _seed(photo_repository, job_repository)
    caption_client.errors = {
        "model-a": ProviderError("bad request"),
        "model-b": ProviderError("still bad"),
    }

    result = asyncio.run(worker_service.process_pending())

    assert result.failed == 1
    stored = job_repository.jobs[job.id]
    assert stored.status == JobStatus.FAILED
    assert stored.locked_until is None
    assert stored.error == "still bad"
    assert stored.retry_count == 1
    assert stored.processed_at is not None
    assert photo_repository.photos[photo.id].caption_short is None


def test_missing_thumbnail_fails_job(
    worker_service: WorkerService,
    job_repository: InMemoryJobRepository,
    photo_repository: InMemoryPhotoRepository,
) -> None:
    _, job = _seed(photo_repository, job_repository, analysis_asset_id="gone")

    result = asyncio.run(worker_service.process_pending())

    assert result.failed == 1
    stored = job_repository.jobs[job.id]
    assert stored.error == "Analysis thumbnail not found in storage"


def test_one_failure_does_not_stop_the_batch(
    worker_service: WorkerService,
    job_repository: InMemoryJobRepository,
    photo_repository: InMemoryPhotoRepository,
) -> None:
    _, broken = _seed(photo_repository, job_repository, analysis_asset_id="gone")
    photo, healthy = _seed(photo_repository, job_repository)

    result = asyncio.run(worker_service.process_pending())

    assert (result.processed, result.succeeded, result.failed) == (2, 1, 1)
    assert job_repository.jobs[broken.id].status == JobStatus.FAILED
    assert job_repository.jobs[healthy.id].status == JobStatus.COMPLETED
    assert photo_repository.photos[photo.id].is_ai_ready


def test_caption_falls_back_to_next_model(
    worker_service: WorkerService,
    job_repository: InMemoryJobRepository,
    photo_repository: InMemoryPhotoRepository,
    caption_client: FakeCaptionClient,
) -> None:
    _seed(photo_repository, job_repository)
    caption_client.errors = {"model-a": ProviderError("unsupported temperature")}

    result = asyncio.run(worker_service.process_pending())

    assert result.succeeded == 1
    assert ("caption", "model-b") in caption_client.calls


def test_rate_limit_on_earlier_caption_model_defers_job(
    worker_service: WorkerService,
    job_repository: InMemoryJobRepository,
    photo_repository: InMemoryPhotoRepository,
    caption_client: FakeCaptionClient,
) -> None:
    _, job = _seed(photo_repository, job_repository)
    caption_client.errors = {
        "model-a": ProviderError("HTTP 429 Too Many Requests"),
        "model-b": ProviderError("unsupported image"),
    }

    result = asyncio.run(worker_service.process_pending())

    assert result.deferred == 1
    assert ("caption", "model-b") not in caption_client.calls
    stored = job_repository.jobs[job.id]
    assert stored.status == JobStatus.PENDING
    assert stored.error == "rate_limited"


def test_rate_limit_on_tag_model_defers_job(
    worker_service: WorkerService,
    job_repository: InMemoryJobRepository,
    photo_repository: InMemoryPhotoRepository,
    caption_client: FakeCaptionClient,
) -> None:
    _seed(photo_repository, job_repository)

    async def limited_structured(
        *, model: str, **_kwargs: object
    ) -> dict[str, object]:
        caption_client.calls.append(("structured", model))
        if model == "model-a":
            raise ProviderError("quota exceeded", status_code=429)
        raise ProviderError("schema rejected", status_code=400)

    caption_client.structured = limited_structured  # type: ignore[method-assign]

    result = asyncio.run(worker_service.process_pending())

    assert result.deferred == 1
    assert ("structured", "model-b") not in caption_client.calls


def test_bookkeeping_error_does_not_stop_the_batch(
    worker_service: WorkerService,
    job_repository: InMemoryJobRepository,
    photo_repository: InMemoryPhotoRepository,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _, broken = _seed(photo_repository, job_repository, analysis_asset_id="gone")
    photo, healthy = _seed(photo_repository, job_repository)
    original_update = job_repository.update_job

    def flaky_update(job_id: UUID, update: JobUpdate) -> None:
        if job_id == broken.id and update.status == JobStatus.FAILED:
            raise RuntimeError("database unavailable")
        original_update(job_id, update)

    monkeypatch.setattr(job_repository, "update_job", flaky_update)

    result = asyncio.run(worker_service.process_pending())

    assert (result.processed, result.succeeded, result.failed) == (2, 1, 1)
    assert job_repository.jobs[broken.id].status == JobStatus.PROCESSING
    assert job_repository.jobs[healthy.id].status == JobStatus.COMPLETED
    assert photo_repository.photos[photo.id].is_ai_ready


def test_is_rate_limit_error_classification() -> None:
    assert is_rate_limit_error(RateLimitedError("slow down"))
    assert is_rate_limit_error(ProviderError("x", status_code=429))
    assert is_rate_limit_error(RuntimeError("HTTP 429 Too Many Requests"))
    assert is_rate_limit_error(RuntimeError("Rate limit exceeded"))
    assert not is_rate_limit_error(ProviderError("bad request", status_code=400))


def test_build_hint_text_skips_empty_fields() -> None:
    photo = make_photo(uuid4(), None, uploaded_at=NOW, location_name="Porto")

    hint = build_hint_text(photo)

    assert hint == f"fileName=IMG_0001.jpg takenAt={NOW.isoformat()} location=Porto"
