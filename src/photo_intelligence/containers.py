"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from supabase import create_client

from photo_intelligence.adapters.jina_embedding_client import HttpxJinaEmbeddingClient
from photo_intelligence.adapters.openai_caption_client import OpenAICaptionClient
from photo_intelligence.adapters.supabase_analysis_asset_store import (
    SupabaseAnalysisAssetStore,
)
from photo_intelligence.adapters.supabase_feed_session_repository import (
    SupabaseFeedSessionRepository,
)
from photo_intelligence.adapters.supabase_job_repository import SupabaseJobRepository
from photo_intelligence.adapters.supabase_photo_repository import (
    SupabasePhotoRepository,
)
from photo_intelligence.config import Settings, parse_model_list
from photo_intelligence.services.candidates import CandidateGenerator
from photo_intelligence.services.captions import CaptionService, TagService
from photo_intelligence.services.embeddings import EmbeddingService
from photo_intelligence.services.feed import FeedService
from photo_intelligence.services.feed_sessions import FeedSessionService
from photo_intelligence.services.queue import JobQueueService
from photo_intelligence.services.search import SearchService
from photo_intelligence.services.worker import WorkerService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    queue_service: JobQueueService
    worker_service: WorkerService
    feed_service: FeedService
    search_service: SearchService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    photo_repository = SupabasePhotoRepository(supabase_client)
    job_repository = SupabaseJobRepository(supabase_client)
    session_repository = SupabaseFeedSessionRepository(supabase_client)
    asset_store = SupabaseAnalysisAssetStore(
        client=supabase_client,
        bucket=resolved_settings.analysis_bucket,
        signed_url_ttl_seconds=resolved_settings.signed_url_ttl_seconds,
    )

    jina_client = HttpxJinaEmbeddingClient.create(
        api_key=resolved_settings.jina_api_key,
        base_url=resolved_settings.jina_base_url,
        model=resolved_settings.jina_model,
    )
    openai_client = OpenAICaptionClient.create(resolved_settings.openai_api_key)
    caption_models = parse_model_list(resolved_settings.openai_caption_models)
    embedding_service = EmbeddingService(jina_client)

    queue_service = JobQueueService(job_repository, photo_repository)
    worker_service = WorkerService(
        queue=queue_service,
        photos=photo_repository,
        assets=asset_store,
        embeddings=embedding_service,
        captions=CaptionService(openai_client, caption_models),
        tags=TagService(openai_client, caption_models),
    )
    timezone = ZoneInfo(resolved_settings.feed_timezone)
    feed_service = FeedService(
        photos=photo_repository,
        sessions=FeedSessionService(session_repository),
        candidates=CandidateGenerator(photo_repository, timezone),
        timezone=timezone,
    )
    search_service = SearchService(photo_repository, embedding_service)

    async def close_resources() -> None:
        await jina_client.close()
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        queue_service=queue_service,
        worker_service=worker_service,
        feed_service=feed_service,
        search_service=search_service,
        close_resources=close_resources,
    )
