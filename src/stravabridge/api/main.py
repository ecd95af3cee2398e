"""FastAPI application factory."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI

from stravabridge.api.routes import webhook
from stravabridge.config import get_settings
from stravabridge.processing.activity_processor import ActivityProcessor, get_processor

logger = logging.getLogger(__name__)


def create_app(
    processor: Optional[ActivityProcessor] = None,
    start_scheduler: Optional[bool] = None,
) -> FastAPI:
    """
    Build and return the FastAPI app.

    Args:
        processor: processor for webhook events; the settings-built
                   singleton when None.
        start_scheduler: run the polling scheduler during the app lifespan;
                         defaults to settings.poll_enabled.
    """
    settings = get_settings()
    if start_scheduler is None:
        start_scheduler = settings.poll_enabled

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if start_scheduler:
            from stravabridge.scheduler.jobs import build_scheduler
            scheduler = build_scheduler(processor or get_processor())
            scheduler.start()
            logger.info(
                "Polling enabled: every %ds",
                max(60, settings.poll_interval_sec),
            )
        yield
        if scheduler is not None:
            scheduler.shutdown()

    app = FastAPI(
        title="Strava Bridge",
        description="Strava activity analysis and week-over-week comparison",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    def health():
        return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}

    app.include_router(webhook.router, prefix="/webhook", tags=["webhook"])

    if processor is not None:
        app.dependency_overrides[get_processor] = lambda: processor

    return app
