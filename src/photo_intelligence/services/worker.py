"""Background worker that drains leased AI jobs."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from photo_intelligence.domain.errors import NotFoundError, is_rate_limit_error
from photo_intelligence.domain.jobs import (
    BatchResult,
    JobRecord,
    JobStatus,
    JobStep,
    JobUpdate,
)
from photo_intelligence.domain.photos import AiAnalysisUpdate, PhotoRecord
from photo_intelligence.services.captions import CaptionService, TagService
from photo_intelligence.services.embeddings import EmbeddingService
from photo_intelligence.services.queue import JobQueueService, backoff

_logger = logging.getLogger(__name__)

DEFAULT_BATCH_LIMIT = 5
CAPTION_VERSION = 1
AI_PROCESSING_VERSION = 1
RATE_LIMITED = "rate_limited"

_SUCCEEDED = "succeeded"
_DEFERRED = "deferred"
_FAILED = "failed"


class AnalysisAssetStore(Protocol):
    """Access to decrypted analysis thumbnails."""

    def get(self, asset_id: str) -> bytes | None:
        """Return the thumbnail bytes, if present."""

    def get_signed_url(self, asset_id: str) -> str | None:
        """Return a short-lived URL for the thumbnail, if present."""


class AiStateRepository(Protocol):
    """Photo access needed by the worker."""

    def get_by_id(self, photo_id: UUID) -> PhotoRecord | None:
        """Return a photo by id, if present."""

    def update_ai_analysis(self, photo_id: UUID, update: AiAnalysisUpdate) -> None:
        """Persist AI-derived fields in one write."""


@dataclass
class WorkerService:
    """Runs the embedding, caption and tag pipeline for leased jobs."""

    queue: JobQueueService
    photos: AiStateRepository
    assets: AnalysisAssetStore
    embeddings: EmbeddingService
    captions: CaptionService
    tags: TagService

    async def process_pending(self, limit: int = DEFAULT_BATCH_LIMIT) -> BatchResult:
        """Lease a batch of jobs and process each one in isolation."""
        job_ids = self.queue.lease_pending_jobs(limit)
        succeeded = failed = deferred = 0
        for job_id in job_ids:
            try:
                outcome = await self._run_job(job_id)
            except Exception:  # noqa: BLE001
                # The job keeps its lease and is reclaimed once it expires.
                failed += 1
                _logger.exception("Job bookkeeping failed: job_id=%s", job_id)
                continue
            if outcome == _SUCCEEDED:
                succeeded += 1
            elif outcome == _DEFERRED:
                deferred += 1
            elif outcome == _FAILED:
                failed += 1

        result = BatchResult(
            processed=len(job_ids),
            succeeded=succeeded,
            failed=failed,
            deferred=deferred,
        )
        _logger.info(
            "Worker batch: processed=%s succeeded=%s failed=%s deferred=%s",
            result.processed,
            result.succeeded,
            result.failed,
            result.deferred,
        )
        return result

    async def _run_job(self, job_id: UUID) -> str | None:
        job = self.queue.get_job(job_id)
        if job is None:
            return None
        try:
            await self._process_job(job)
        except Exception as exc:  # noqa: BLE001
            if is_rate_limit_error(exc):
                self._defer(job)
                _logger.warning("Job deferred: job_id=%s error=%s", job.id, exc)
                return _DEFERRED
            self._fail(job, exc)
            _logger.exception("Job failed: job_id=%s", job.id)
            return _FAILED
        _logger.info("Job completed: job_id=%s", job.id)
        return _SUCCEEDED

    async def _process_job(self, job: JobRecord) -> None:
        photo = self.photos.get_by_id(job.photo_id)
        if photo is None:
            raise NotFoundError("Photo not found for AI processing")
        if not photo.analysis_asset_id:
            raise NotFoundError("Analysis thumbnail missing")
        image_bytes = self.assets.get(photo.analysis_asset_id)
        if image_bytes is None:
            raise NotFoundError("Analysis thumbnail not found in storage")

        embedding = await self.embeddings.embed_image(image_bytes)
        self.queue.renew_lease(
            job.id,
            JobStep.CAPTION,
            provider_meta={
                "embedding": {"model": self.embeddings.model, "dim": len(embedding)}
            },
        )

        image_url = self.assets.get_signed_url(photo.analysis_asset_id)
        if not image_url:
            raise NotFoundError("Analysis thumbnail URL not available")
        hint_text = build_hint_text(photo)
        caption = await self.captions.caption(image_url, hint_text)
        self.queue.renew_lease(job.id, JobStep.TAGS)

        tags = await self.tags.tagify(caption, hint_text)

        now = datetime.now(tz=UTC)
        self.photos.update_ai_analysis(
            photo.id,
            AiAnalysisUpdate(
                embedding=embedding,
                embedding_dim=len(embedding),
                embedding_model=self.embeddings.model,
                caption_short=caption,
                caption_version=CAPTION_VERSION,
                tags=tags,
                ai_processed_at=now,
                ai_processing_version=AI_PROCESSING_VERSION,
            ),
        )
        self.queue.update_job(
            job.id,
            JobUpdate(
                status=JobStatus.COMPLETED,
                step=JobStep.DONE,
                locked_until=None,
                error=None,
                processed_at=now,
            ),
        )

    def _defer(self, job: JobRecord) -> None:
        now = datetime.now(tz=UTC)
        self.queue.update_job(
            job.id,
            JobUpdate(
                status=JobStatus.PENDING,
                step=JobStep.PENDING,
                locked_until=now + backoff(job.retry_count),
                error=RATE_LIMITED,
                retry_count=job.retry_count + 1,
            ),
        )

    def _fail(self, job: JobRecord, exc: Exception) -> None:
        self.queue.update_job(
            job.id,
            JobUpdate(
                status=JobStatus.FAILED,
                locked_until=None,
                error=str(exc) or "AI processing failed",
                processed_at=datetime.now(tz=UTC),
                retry_count=job.retry_count + 1,
            ),
        )


def build_hint_text(photo: PhotoRecord) -> str:
    """Build caption context from the photo's non-empty metadata."""
    parts = [
        f"fileName={photo.file_name}" if photo.file_name else None,
        f"takenAt={photo.moment.isoformat()}",
        f"location={photo.location_name}" if photo.location_name else None,
        f"camera={photo.camera_model}" if photo.camera_model else None,
    ]
    return " ".join(part for part in parts if part)
