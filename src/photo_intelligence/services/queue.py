"""Leasing job queue for AI processing."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from photo_intelligence.domain.errors import NotFoundError
from photo_intelligence.domain.jobs import (
    AiProgress,
    JobRecord,
    JobStatus,
    JobStep,
    JobUpdate,
)
from photo_intelligence.domain.photos import AiAnalysisUpdate, PhotoRecord

_logger = logging.getLogger(__name__)

LEASE_DURATION = timedelta(minutes=2)
DEFAULT_LEASE_LIMIT = 15
MAX_LEASE_LIMIT = 30
OVERFETCH_FACTOR = 5
BACKOFF_BASE = timedelta(seconds=10)
BACKOFF_CEILING = timedelta(minutes=30)
BACKOFF_MAX_EXPONENT = 10
DEFAULT_RETRY_CAP = 3
RETRY_SWEEP_BATCH = 50


class JobRepository(Protocol):
    """Persistence interface for processing jobs."""

    def list_leasable(self, now: datetime, limit: int) -> list[JobRecord]:
        """Return up to ``limit`` claimable jobs at ``now``, oldest first.

        Claimable means pending or processing with no live lease.
        """

    def try_lease(self, job_id: UUID, now: datetime, locked_until: datetime) -> bool:
        """Claim a pending or processing job whose lease is absent or expired.

        Must be a single conditional update; returns whether the row was claimed.
        """

    def update_job(self, job_id: UUID, update: JobUpdate) -> None:
        """Apply a sparse patch to a job."""

    def get_job(self, job_id: UUID) -> JobRecord | None:
        """Return a job by id, if present."""

    def get_job_by_photo(self, photo_id: UUID) -> JobRecord | None:
        """Return the job for a photo, if present."""

    def list_by_status(self, status: JobStatus, limit: int) -> list[JobRecord]:
        """Return jobs with the given status."""

    def create_job(
        self, photo_id: UUID, user_id: UUID, created_at: datetime
    ) -> JobRecord:
        """Create a pending job and return it."""

    def list_statuses_for_user(self, user_id: UUID) -> list[JobStatus]:
        """Return the status of every job owned by a user."""


class PhotoLookup(Protocol):
    """Photo access needed by the queue."""

    def get_by_id(self, photo_id: UUID) -> PhotoRecord | None:
        """Return a photo by id, if present."""

    def update_ai_analysis(self, photo_id: UUID, update: AiAnalysisUpdate) -> None:
        """Persist AI-related photo fields."""


def backoff(retry_count: int) -> timedelta:
    """Return the deferral delay after ``retry_count`` rate-limited attempts."""
    exponent = min(max(retry_count, 0), BACKOFF_MAX_EXPONENT)
    return min(BACKOFF_CEILING, BACKOFF_BASE * (2**exponent))


@dataclass
class JobQueueService:
    """Hands out time-bounded leases on pending jobs."""

    repository: JobRepository
    photos: PhotoLookup

    def lease_pending_jobs(
        self, limit: int = DEFAULT_LEASE_LIMIT, now: datetime | None = None
    ) -> list[UUID]:
        """Lease up to ``limit`` jobs and return their ids."""
        limit = max(1, min(limit, MAX_LEASE_LIMIT))
        now = now or datetime.now(tz=UTC)
        locked_until = now + LEASE_DURATION

        leased: list[UUID] = []
        for job in self.repository.list_leasable(now, limit * OVERFETCH_FACTOR):
            if len(leased) >= limit:
                break
            if not job.is_leasable(now):
                continue
            photo = self.photos.get_by_id(job.photo_id)
            if photo is None or not photo.analysis_asset_id:
                continue
            if self.repository.try_lease(job.id, now, locked_until):
                leased.append(job.id)
        if leased:
            _logger.info("Leased jobs: count=%s", len(leased))
        return leased

    def update_job(self, job_id: UUID, update: JobUpdate) -> None:
        """Apply a sparse patch to a job."""
        self.repository.update_job(job_id, update)

    def renew_lease(
        self,
        job_id: UUID,
        step: JobStep,
        provider_meta: dict[str, object] | None = None,
    ) -> None:
        """Move a job to ``step`` and extend its lease."""
        locked_until = datetime.now(tz=UTC) + LEASE_DURATION
        if provider_meta is None:
            update = JobUpdate(step=step, locked_until=locked_until)
        else:
            update = JobUpdate(
                step=step, locked_until=locked_until, provider_meta=provider_meta
            )
        self.repository.update_job(job_id, update)

    def enqueue(self, photo_id: UUID, user_id: UUID) -> JobRecord:
        """Queue a photo for analysis, resetting any previous job."""
        existing = self.repository.get_job_by_photo(photo_id)
        if existing is None:
            job = self.repository.create_job(
                photo_id, user_id, created_at=datetime.now(tz=UTC)
            )
            _logger.info("Queued analysis: photo_id=%s job_id=%s", photo_id, job.id)
            return job
        update = JobUpdate(
            status=JobStatus.PENDING,
            step=JobStep.PENDING,
            locked_until=None,
            retry_count=0,
            error=None,
            provider_meta=None,
            processed_at=None,
        )
        self.repository.update_job(existing.id, update)
        _logger.info("Requeued analysis: photo_id=%s job_id=%s", photo_id, existing.id)
        return update.apply(existing)

    def attach_analysis_asset(
        self, photo_id: UUID, asset_id: str, user_id: UUID | None = None
    ) -> JobRecord:
        """Point a photo at its analysis thumbnail and queue it for analysis.

        When ``user_id`` is given the photo must belong to that user.
        """
        photo = self.photos.get_by_id(photo_id)
        if photo is None or (user_id is not None and photo.user_id != user_id):
            raise NotFoundError("Photo not found")
        self.photos.update_ai_analysis(
            photo.id, AiAnalysisUpdate(analysis_asset_id=asset_id)
        )
        _logger.info("Attached analysis asset: photo_id=%s", photo.id)
        return self.enqueue(photo.id, photo.user_id)

    def ai_progress(self, user_id: UUID) -> AiProgress:
        """Count a user's jobs by status."""
        counts = dict.fromkeys(JobStatus, 0)
        for job_status in self.repository.list_statuses_for_user(user_id):
            counts[job_status] += 1
        return AiProgress(
            pending=counts[JobStatus.PENDING],
            processing=counts[JobStatus.PROCESSING],
            completed=counts[JobStatus.COMPLETED],
            failed=counts[JobStatus.FAILED],
        )

    def get_job(self, job_id: UUID) -> JobRecord | None:
        """Return a job by id, if present."""
        return self.repository.get_job(job_id)

    def get_for_photo(self, photo_id: UUID) -> JobRecord | None:
        """Return the job for a photo, if present."""
        return self.repository.get_job_by_photo(photo_id)

    def list_by_status(self, status: JobStatus, limit: int = 10) -> list[JobRecord]:
        """Return jobs with the given status."""
        return self.repository.list_by_status(status, limit)

    def requeue(self, job_id: UUID) -> JobRecord | None:
        """Return a job to pending regardless of its current status."""
        job = self.repository.get_job(job_id)
        if job is None:
            return None
        update = JobUpdate(
            status=JobStatus.PENDING,
            step=JobStep.PENDING,
            locked_until=None,
            error=None,
        )
        self.repository.update_job(job_id, update)
        return update.apply(job)

    def retry_failed(
        self, cap: int = DEFAULT_RETRY_CAP, batch: int = RETRY_SWEEP_BATCH
    ) -> int:
        """Move failed jobs below the retry cap back to pending."""
        requeued = 0
        for job in self.repository.list_by_status(JobStatus.FAILED, batch):
            if job.retry_count >= cap:
                continue
            self.repository.update_job(
                job.id,
                JobUpdate(
                    status=JobStatus.PENDING,
                    step=JobStep.PENDING,
                    locked_until=None,
                    error=None,
                ),
            )
            requeued += 1
        _logger.info("Retry sweep: requeued=%s cap=%s", requeued, cap)
        return requeued
