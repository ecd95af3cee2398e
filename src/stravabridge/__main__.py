"""
Main entrypoint: serves the webhook API with the polling scheduler inside.

Usage:
    python -m stravabridge          # webhook server + polling on settings.port
    python -m stravabridge poll     # one polling pass, then exit
"""
import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


async def _run_poll_once() -> None:
    from stravabridge.processing.activity_processor import get_processor
    from stravabridge.scheduler.jobs import poll_new_activities

    count = await poll_new_activities(get_processor())
    logger.info("Processed %d new activities.", count)


def _run_server() -> None:
    import uvicorn

    from stravabridge.config import get_settings

    settings = get_settings()
    logger.info("Strava webhook listening on %d", settings.port)
    uvicorn.run(
        "stravabridge.api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.port,
    )


if __name__ == "__main__":
    # Dispatch on first argument: `python -m stravabridge poll` or just `python -m stravabridge`
    if len(sys.argv) > 1 and sys.argv[1] == "poll":
        asyncio.run(_run_poll_once())
    else:
        _run_server()
