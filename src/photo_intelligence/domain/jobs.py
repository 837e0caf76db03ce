"""Domain models for the AI processing queue."""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class JobStatus(StrEnum):
    """Lifecycle status of a processing job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# A processing job whose lease expired belongs to a worker that crashed.
LEASABLE_STATUSES = (JobStatus.PENDING, JobStatus.PROCESSING)


class JobStep(StrEnum):
    """Pipeline step a job is currently in."""

    PENDING = "pending"
    EMBEDDING = "embedding"
    CAPTION = "caption"
    TAGS = "tags"
    DONE = "done"


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: object = _Unset()


@dataclass(frozen=True)
class JobRecord:
    """Represents a persisted processing job."""

    id: UUID
    photo_id: UUID
    user_id: UUID
    status: JobStatus
    step: JobStep
    retry_count: int
    created_at: datetime
    locked_until: datetime | None = None
    error: str | None = None
    provider_meta: dict[str, object] | None = None
    processed_at: datetime | None = None

    def is_leased(self, now: datetime) -> bool:
        """Return whether a worker currently holds a live lease."""
        return self.locked_until is not None and self.locked_until > now

    def is_leasable(self, now: datetime) -> bool:
        """Return whether a worker may claim this job at ``now``."""
        return self.status in LEASABLE_STATUSES and not self.is_leased(now)


@dataclass(frozen=True)
class JobUpdate:
    """Sparse patch for a job row.

    Fields left as ``UNSET`` are not written. ``None`` clears the column.
    """

    status: JobStatus | object = field(default=UNSET)
    step: JobStep | object = field(default=UNSET)
    locked_until: datetime | None | object = field(default=UNSET)
    retry_count: int | object = field(default=UNSET)
    error: str | None | object = field(default=UNSET)
    provider_meta: dict[str, object] | None | object = field(default=UNSET)
    processed_at: datetime | None | object = field(default=UNSET)

    def to_payload(self) -> dict[str, object]:
        """Return the column payload for the fields that were set."""
        payload: dict[str, object] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is UNSET:
                continue
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, StrEnum):
                value = value.value
            payload[item.name] = value
        return payload

    def apply(self, job: JobRecord) -> JobRecord:
        """Return a copy of ``job`` with this patch applied."""
        changes = {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not UNSET
        }
        return replace(job, **changes)


@dataclass(frozen=True)
class BatchResult:
    """Aggregate counts for one worker batch."""

    processed: int
    succeeded: int
    failed: int
    deferred: int


@dataclass(frozen=True)
class AiProgress:
    """Per-user job counts shown as indexing progress."""

    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.processing + self.completed + self.failed
