"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from photo_intelligence.api.response_models import (
    AiProgressModel,
    AnalysisAssetRequest,
    BatchResultModel,
    JobModel,
)
from photo_intelligence.domain.jobs import JobStatus

if TYPE_CHECKING:
    from photo_intelligence.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/jobs", dependencies=[Depends(require_admin)])
async def list_jobs(
    request: Request,
    job_status: JobStatus = Query(default=JobStatus.FAILED, alias="status"),
    limit: int = 10,
) -> dict[str, list[JobModel]]:
    """Return jobs in the given status."""
    container: AppContainer = request.app.state.container
    jobs = container.queue_service.list_by_status(job_status, limit)
    return {"jobs": [JobModel.model_validate(job) for job in jobs]}


@router.get("/jobs/photos/{photo_id}", dependencies=[Depends(require_admin)])
async def job_for_photo(photo_id: UUID, request: Request) -> JobModel:
    """Return the processing job for a photo."""
    container: AppContainer = request.app.state.container
    job = container.queue_service.get_for_photo(photo_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return JobModel.model_validate(job)


@router.post("/jobs/{job_id}/requeue", dependencies=[Depends(require_admin)])
async def requeue_job(job_id: UUID, request: Request) -> JobModel:
    """Return a job to pending."""
    container: AppContainer = request.app.state.container
    job = container.queue_service.requeue(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return JobModel.model_validate(job)


@router.post("/photos/{photo_id}/analysis", dependencies=[Depends(require_admin)])
async def enqueue_analysis(
    photo_id: UUID, request: Request, body: AnalysisAssetRequest | None = None
) -> JobModel:
    """Queue a photo for AI processing, optionally attaching a new thumbnail."""
    container: AppContainer = request.app.state.container
    if body is not None:
        job = container.queue_service.attach_analysis_asset(photo_id, body.asset_id)
        return JobModel.model_validate(job)
    photo = container.queue_service.photos.get_by_id(photo_id)
    if photo is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    job = container.queue_service.enqueue(photo.id, photo.user_id)
    return JobModel.model_validate(job)


@router.get("/users/{user_id}/ai-progress", dependencies=[Depends(require_admin)])
async def user_ai_progress(user_id: UUID, request: Request) -> AiProgressModel:
    """Return a user's job counts by status."""
    container: AppContainer = request.app.state.container
    progress = container.queue_service.ai_progress(user_id)
    return AiProgressModel.model_validate(progress)


@router.post("/cron/process", dependencies=[Depends(require_admin)])
async def process_batch(request: Request, limit: int | None = None) -> BatchResultModel:
    """Run one worker batch; triggered by the scheduler every minute."""
    container: AppContainer = request.app.state.container
    result = await container.worker_service.process_pending(
        limit or container.settings.worker_batch_limit
    )
    return BatchResultModel.model_validate(result)


@router.post("/cron/retry-failed", dependencies=[Depends(require_admin)])
async def retry_failed(request: Request) -> dict[str, int]:
    """Requeue failed jobs below the retry cap; triggered hourly."""
    container: AppContainer = request.app.state.container
    requeued = container.queue_service.retry_failed(cap=container.settings.retry_cap)
    return {"requeued": requeued}
