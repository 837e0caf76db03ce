"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from photo_intelligence.api.admin import router as admin_router
from photo_intelligence.api.response_models import (
    AiProgressModel,
    AnalysisAssetRequest,
    FeedPageResponse,
    JobModel,
    SearchHitModel,
    SearchResponse,
)
from photo_intelligence.app_logging import configure_logging
from photo_intelligence.containers import AppContainer
from photo_intelligence.domain.errors import (
    FeedRequestError,
    NotFoundError,
    PipelineError,
    ProviderError,
    RateLimitedError,
)
from photo_intelligence.domain.feed import FeedMode
from photo_intelligence.services.search import SearchHit

_ERROR_STATUS: list[tuple[type[PipelineError], int]] = [
    (FeedRequestError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (RateLimitedError, status.HTTP_429_TOO_MANY_REQUESTS),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
]


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(
        request: Request, exc: PipelineError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Request failed: path=%s error=%s", request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": {"code": exc.code, "message": str(exc)}},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/feed/{mode}")
    async def nostalgia_feed(  # noqa: PLR0913
        mode: FeedMode,
        request: Request,
        limit: int | None = None,
        seed: str | None = None,
        cursor: str | None = None,
        year: int | None = None,
        x_user_id: str | None = Header(default=None),
    ) -> FeedPageResponse:
        """Return the next page of resurfaced photos."""
        state_container: AppContainer = request.app.state.container
        page = state_container.feed_service.get_nostalgia_feed(
            _require_user_id(x_user_id),
            mode,
            limit=limit,
            seed=seed,
            cursor=cursor,
            year=year,
        )
        return FeedPageResponse.model_validate(page)

    @app.get("/search")
    async def semantic_search(
        q: str,
        request: Request,
        limit: int = 20,
        x_user_id: str | None = Header(default=None),
    ) -> SearchResponse:
        """Search photos by a free-text description."""
        state_container: AppContainer = request.app.state.container
        hits = await state_container.search_service.semantic_search(
            _require_user_id(x_user_id), q, limit
        )
        return SearchResponse(results=[_to_hit_model(hit) for hit in hits])

    @app.get("/photos/{photo_id}/similar")
    async def similar_photos(
        photo_id: UUID,
        request: Request,
        limit: int = 20,
        x_user_id: str | None = Header(default=None),
    ) -> SearchResponse:
        """Return photos that look like the given one."""
        state_container: AppContainer = request.app.state.container
        hits = state_container.search_service.similar_to_photo(
            _require_user_id(x_user_id), photo_id, limit
        )
        return SearchResponse(results=[_to_hit_model(hit) for hit in hits])

    @app.put("/photos/{photo_id}/analysis-asset")
    async def attach_analysis_asset(
        photo_id: UUID,
        body: AnalysisAssetRequest,
        request: Request,
        x_user_id: str | None = Header(default=None),
    ) -> JobModel:
        """Attach an uploaded analysis thumbnail and queue the photo."""
        state_container: AppContainer = request.app.state.container
        job = state_container.queue_service.attach_analysis_asset(
            photo_id, body.asset_id, user_id=_require_user_id(x_user_id)
        )
        return JobModel.model_validate(job)

    @app.get("/ai/progress")
    async def ai_progress(
        request: Request, x_user_id: str | None = Header(default=None)
    ) -> AiProgressModel:
        """Return the caller's AI indexing progress."""
        state_container: AppContainer = request.app.state.container
        progress = state_container.queue_service.ai_progress(
            _require_user_id(x_user_id)
        )
        return AiProgressModel.model_validate(progress)

    return app


def _require_user_id(raw: str | None) -> UUID:
    """Parse the caller identity forwarded by the auth layer."""
    if not raw:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    try:
        return UUID(raw)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED) from exc


def _status_for(exc: PipelineError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _to_hit_model(hit: SearchHit) -> SearchHitModel:
    return SearchHitModel(
        photo_id=hit.photo.id,
        score=hit.score,
        taken_at=hit.photo.taken_at,
        mime_type=hit.photo.mime_type,
        caption_short=hit.photo.caption_short,
        tags=hit.photo.tags,
    )
