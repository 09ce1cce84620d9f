"""FastAPI application factory."""

from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles

from mascotgen.api.routes import commands, events
from mascotgen.core.config import Settings, configure_logging
from mascotgen.services.dispatch.backoff import BackoffExecutor
from mascotgen.services.image_generation.gemini_client import GeminiClient
from mascotgen.services.image_generation.personas import PERSONAS
from mascotgen.services.image_generation.templates import TemplateLibrary
from mascotgen.services.slack.slack_client import SlackClient
from mascotgen.services.storage import LocalImageStorage
from mascotgen.workers.job_dispatcher import JobDispatcher

logger = structlog.get_logger()

SERVICE_NAME = "mascot-gen"


def build_dispatcher(
    settings: Settings, slack_client: SlackClient
) -> tuple[JobDispatcher, TemplateLibrary, LocalImageStorage]:
    """Wire the dispatcher and its collaborators from settings."""
    gemini = GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        api_base=settings.gemini_api_base,
        request_timeout=settings.gemini_request_timeout_seconds,
    )
    storage = LocalImageStorage(settings.output_dir, settings.public_image_prefix)
    templates = TemplateLibrary(settings.template_dir)
    executor = BackoffExecutor(
        max_attempts=settings.generation_max_attempts,
        base_delay=settings.generation_base_delay_seconds,
        per_attempt_timeout=settings.generation_timeout_seconds,
        max_jitter=settings.generation_jitter_seconds,
    )
    dispatcher = JobDispatcher(
        provider=gemini,
        notifier=slack_client,
        storage=storage,
        templates=templates,
        executor=executor,
        max_concurrent_jobs=settings.max_concurrent_jobs,
        seen_events_capacity=settings.seen_events_capacity,
    )
    return dispatcher, templates, storage


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    - Startup: configure logging, build clients and the dispatcher, check templates
    - Shutdown: wait for in-flight jobs so their results are still delivered
    """
    settings = Settings()  # type: ignore[call-arg]
    configure_logging(settings)

    slack_client = SlackClient(
        bot_token=settings.slack_bot_token,
        api_base=settings.slack_api_base,
        timeout=settings.slack_request_timeout_seconds,
    )
    dispatcher, templates, storage = build_dispatcher(settings, slack_client)
    storage.ensure_directory()

    # Missing templates only fail the jobs that need them
    missing = templates.missing_files(list(PERSONAS.values()))
    if missing:
        logger.warning("startup.templates_missing", paths=[str(p) for p in missing])

    app.state.settings = settings
    app.state.slack_client = slack_client
    app.state.dispatcher = dispatcher

    logger.info(
        "application.startup",
        port=settings.port,
        model=settings.gemini_model,
        max_concurrent_jobs=settings.max_concurrent_jobs,
    )

    yield

    logger.info("application.shutdown", pending_jobs=dispatcher.pending_tasks)
    await dispatcher.drain()


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = Settings()  # type: ignore[call-arg]

    app = FastAPI(
        title="Mascot Gen",
        description="Slack relay for branded mascot image generation",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(commands.router, tags=["commands"])
    app.include_router(events.router, prefix="/slack", tags=["events"])

    @app.get("/health")
    async def health_check(request: Request):
        """Liveness probe with the current number of running jobs."""
        dispatcher = getattr(request.app.state, "dispatcher", None)
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
            "service": SERVICE_NAME,
            "in_flight": dispatcher.in_flight if dispatcher is not None else 0,
        }

    # Output directory is created during startup
    app.mount(
        settings.public_image_prefix.rstrip("/"),
        StaticFiles(directory=settings.output_dir, check_dir=False),
        name="images",
    )

    return app


# Create app instance for uvicorn
app = create_app()
