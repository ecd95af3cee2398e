"""
APScheduler polling job.

Polling catches activities whose webhook never arrived (server asleep,
Strava delivery failure). It lists activities started since the last poll
(minus a 5-minute overlap) and runs each unprocessed one through the
processor. The ledger keeps webhook and poll from processing the same id.

The scheduler runs inside the API process (started from the app lifespan).
"""
import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from stravabridge.config import get_settings
from stravabridge.models.ledger import now_ms
from stravabridge.strava.client import PAGE_SIZE

logger = logging.getLogger(__name__)

CURSOR_OVERLAP_MS = 5 * 60 * 1000
MIN_INTERVAL_SEC = 60


def build_scheduler(processor) -> AsyncIOScheduler:
    """
    Create the scheduler with the polling job registered.

    The first run fires immediately so a restart catches up at once.

    Args:
        processor: ActivityProcessor passed to every poll.

    Returns:
        Configured AsyncIOScheduler (not yet started).
    """
    settings = get_settings()
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        _poll_job,
        trigger="interval",
        seconds=max(MIN_INTERVAL_SEC, settings.poll_interval_sec),
        next_run_time=datetime.now(),
        id="poll_activities",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        kwargs={"processor": processor},
    )

    return scheduler


async def poll_new_activities(processor) -> int:
    """
    One polling pass.

    Returns:
        Number of activities processed.

    Raises:
        StravaAPIError if the token refresh or a listing page fails; the
        cursor is not advanced in that case.
    """
    settings = get_settings()
    store = processor.store
    ledger = store.load_ledger()
    started = now_ms()

    if ledger.last_checked_at:
        after_ms = ledger.last_checked_at - CURSOR_OVERLAP_MS
    else:
        after_ms = started - settings.poll_lookback_hours * 3600 * 1000
    after = after_ms // 1000

    token = await processor.client.get_token()
    page_limit = max(1, settings.poll_page_limit)
    processed = 0

    for page in range(1, page_limit + 1):
        activities = await processor.client.list_activities(token, after=after, page=page)
        if not activities:
            break

        for summary in activities:
            activity_id = summary.get("id")
            if not activity_id or ledger.is_processed(activity_id):
                continue
            try:
                if await processor.process_if_new(activity_id, "poll", ledger=ledger):
                    processed += 1
            except Exception as exc:
                logger.error("Poll: activity %s failed: %s", activity_id, exc)

        if len(activities) < PAGE_SIZE:
            break

    store.commit_cursor(started)
    return processed


async def _poll_job(processor) -> None:
    """Scheduled wrapper: never lets an exception reach the scheduler."""
    logger.info("Poll starting")
    try:
        count = await poll_new_activities(processor)
        logger.info("Poll finished, %d new activit%s", count, "y" if count == 1 else "ies")
    except Exception as exc:
        logger.error("Poll failed: %s", exc)
