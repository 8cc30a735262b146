"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from dream_bot.adapters.render_client import HttpxRenderClient, RenderClient
from dream_bot.adapters.supabase_session_store import SupabaseSessionStore
from dream_bot.adapters.telegram_client import HttpxTelegramClient, TelegramClient
from dream_bot.config import Settings
from dream_bot.services.dream import DreamCommandHandler
from dream_bot.services.orchestrator import JobOrchestrator
from dream_bot.services.queue import AdmissionQueue
from dream_bot.services.requests import RequestBuilder, default_request
from dream_bot.services.sessions import SessionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramClient
    render_client: RenderClient
    queue: AdmissionQueue
    session_service: SessionService
    orchestrator: JobOrchestrator
    dream_handler: DreamCommandHandler
    close_resources: Callable[[], Awaitable[None]]


def build_request_builder(settings: Settings) -> RequestBuilder:
    """Create a request builder seeded with the configured defaults."""
    return RequestBuilder(
        defaults=default_request(
            use_stable_diffusion_model=settings.default_model,
            sampler_name=settings.default_sampler,
            num_inference_steps=settings.default_steps,
            vram_usage_level=settings.default_vram_usage_level,
            block_nsfw=settings.block_nsfw,
        )
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_service = SessionService(
        store=SupabaseSessionStore(supabase_client),
        collection=resolved_settings.session_collection,
    )
    render_client = HttpxRenderClient.create(
        resolved_settings.render_backend_url,
        poll_interval=resolved_settings.render_poll_interval,
        max_poll_errors=resolved_settings.render_max_poll_errors,
    )
    queue = AdmissionQueue()
    orchestrator = JobOrchestrator(
        builder=build_request_builder(resolved_settings),
        queue=queue,
        client=render_client,
        session_service=session_service,
        timeout=resolved_settings.render_timeout_seconds,
    )
    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    dream_handler = DreamCommandHandler(
        orchestrator=orchestrator, telegram_client=telegram_client
    )

    async def close_resources() -> None:
        await telegram_client.close()
        await render_client.close()

    return AppContainer(
        settings=resolved_settings,
        telegram_client=telegram_client,
        render_client=render_client,
        queue=queue,
        session_service=session_service,
        orchestrator=orchestrator,
        dream_handler=dream_handler,
        close_resources=close_resources,
    )
