"""Supabase-backed AI processing queue."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from photo_intelligence.domain.jobs import (
    LEASABLE_STATUSES,
    JobRecord,
    JobStatus,
    JobStep,
    JobUpdate,
)
from photo_intelligence.services.queue import JobRepository

_TABLE = "ai_processing_queue"
_LEASABLE = [status.value for status in LEASABLE_STATUSES]
_JOB_COLUMNS = (
    "id, photo_id, user_id, status, step, retry_count, created_at, locked_until, "
    "error, provider_meta, processed_at"
)


@dataclass
class SupabaseJobRepository(JobRepository):
    """Supabase implementation for processing jobs."""

    client: Client

    def list_leasable(self, now: datetime, limit: int) -> list[JobRecord]:
        """Return up to ``limit`` claimable jobs, oldest first."""
        response = (
            self.client.table(_TABLE)
            .select(_JOB_COLUMNS)
            .in_("status", _LEASABLE)
            .or_(_lease_expired(now))
            .order("created_at")
            .limit(limit)
            .execute()
        )
        return [_to_job(row) for row in response.data or []]

    def try_lease(self, job_id: UUID, now: datetime, locked_until: datetime) -> bool:
        """Claim the job with a conditional update on status and lease expiry."""
        response = (
            self.client.table(_TABLE)
            .update(
                {
                    "status": JobStatus.PROCESSING.value,
                    "step": JobStep.EMBEDDING.value,
                    "locked_until": locked_until.isoformat(),
                    "error": None,
                    "provider_meta": None,
                }
            )
            .eq("id", str(job_id))
            .in_("status", _LEASABLE)
            .or_(_lease_expired(now))
            .execute()
        )
        return bool(response.data)

    def update_job(self, job_id: UUID, update: JobUpdate) -> None:
        """Apply a sparse patch to a job."""
        payload = update.to_payload()
        if not payload:
            return
        self.client.table(_TABLE).update(payload).eq("id", str(job_id)).execute()

    def get_job(self, job_id: UUID) -> JobRecord | None:
        """Return a job by id, if present."""
        response = (
            self.client.table(_TABLE)
            .select(_JOB_COLUMNS)
            .eq("id", str(job_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_job(response.data[0])

    def get_job_by_photo(self, photo_id: UUID) -> JobRecord | None:
        """Return the job for a photo, if present."""
        response = (
            self.client.table(_TABLE)
            .select(_JOB_COLUMNS)
            .eq("photo_id", str(photo_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_job(response.data[0])

    def list_by_status(self, status: JobStatus, limit: int) -> list[JobRecord]:
        """Return the most recent jobs with the given status."""
        response = (
            self.client.table(_TABLE)
            .select(_JOB_COLUMNS)
            .eq("status", status.value)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_to_job(row) for row in response.data or []]

    def create_job(
        self, photo_id: UUID, user_id: UUID, created_at: datetime
    ) -> JobRecord:
        """Create a pending job and return it."""
        response = (
            self.client.table(_TABLE)
            .insert(
                {
                    "photo_id": str(photo_id),
                    "user_id": str(user_id),
                    "status": JobStatus.PENDING.value,
                    "step": JobStep.PENDING.value,
                    "retry_count": 0,
                    "created_at": created_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create processing job")
        return _to_job(response.data[0])

    def list_statuses_for_user(self, user_id: UUID) -> list[JobStatus]:
        """Return the status of every job owned by a user."""
        response = (
            self.client.table(_TABLE)
            .select("status")
            .eq("user_id", str(user_id))
            .execute()
        )
        return [JobStatus(row["status"]) for row in response.data or []]


def _to_job(row: dict[str, object]) -> JobRecord:
    return JobRecord(
        id=UUID(str(row["id"])),
        photo_id=UUID(str(row["photo_id"])),
        user_id=UUID(str(row["user_id"])),
        status=JobStatus(row["status"]),
        step=JobStep(row.get("step") or JobStep.PENDING.value),
        retry_count=int(row.get("retry_count") or 0),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        locked_until=_parse_datetime(row.get("locked_until")),
        error=row.get("error"),
        provider_meta=row.get("provider_meta"),
        processed_at=_parse_datetime(row.get("processed_at")),
    )


def _parse_datetime(value: object) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(str(value))


def _lease_expired(now: datetime) -> str:
    return f"locked_until.is.null,locked_until.lt.{now.isoformat()}"
