"""
ActivityProcessor — the end-to-end pipeline for one Strava activity.

Flow for a single activity:
  1. Refresh the Strava access token
  2. Fetch activity, streams and zones
  3. Build the normalized ActivityRecord (splits + stream stats)
  4. Append it to the store, re-read history, match last week, diff
  5. Format the summary; optionally send it straight to Telegram
  6. Send the coaching prompt + data payload to the agent hook

Idempotency: process_if_new() checks the ledger, claims the id in memory
before any await, and marks it processed only after the pipeline succeeds.
A failed activity is left unmarked so the next poll retries it.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Set, Union

from stravabridge.analysis.comparison import compare_current_vs_prev, pick_comparable_last_week
from stravabridge.analysis.pacing import PacingPattern, pacing_insight
from stravabridge.formatting.formatters import html_to_plain_text
from stravabridge.formatting.message import format_message, format_zones
from stravabridge.models.ledger import Ledger
from stravabridge.models.record import ActivityRecord, ComparisonResult, MetricMode
from stravabridge.prompts.coaching import build_coaching_prompt, build_payload
from stravabridge.storage.store import RecordStore
from stravabridge.strava.normalizer import build_activity_record, cadence_avg

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """A stored record together with what it was compared against."""
    record: ActivityRecord
    previous: Optional[ActivityRecord]
    comparison: Optional[ComparisonResult]
    pacing: Optional[PacingPattern]


class ActivityProcessor:
    """Runs the activity pipeline against injected clients and store."""

    def __init__(
        self,
        client,
        store: RecordStore,
        agent,
        telegram=None,
        history_limit: int = 2500,
        send_raw_telegram: bool = False,
    ):
        """
        Args:
            client: StravaClient (or AsyncMock in tests).
            store: RecordStore holding the log and ledger.
            agent: ClawdbotClient for the coaching prompt.
            telegram: TelegramSender, used only when send_raw_telegram is set.
            history_limit: records read back when looking for last week's match.
        """
        self.client = client
        self.store = store
        self.agent = agent
        self.telegram = telegram
        self.history_limit = history_limit
        self.send_raw_telegram = send_raw_telegram
        self._in_flight: Set[str] = set()

    def append_and_analyze(self, record: ActivityRecord) -> AnalysisResult:
        """Append `record`, then compare it with last week's comparable activity."""
        self.store.append(record)
        history = self.store.read_tail(self.history_limit)
        previous = pick_comparable_last_week(record, history)
        comparison = compare_current_vs_prev(record, previous)
        pacing = None
        if record.derived.mode is MetricMode.PACE:
            pacing = pacing_insight(record.derived.splits_1km)
        return AnalysisResult(record, previous, comparison, pacing)

    async def handle_activity(
        self,
        activity_id: Union[int, str],
        source: str = "webhook",
    ) -> AnalysisResult:
        """Run the full pipeline for one activity. Network errors propagate."""
        token = await self.client.get_token()
        activity = await self.client.get_activity(activity_id, token)
        streams = await self.client.get_activity_streams(activity_id, token)
        zones = await self.client.get_activity_zones(activity_id, token)

        record = build_activity_record(activity, streams, zones, source=source)
        result = self.append_and_analyze(record)
        logger.info(
            "Stored activity %s (%s, %d splits); comparable: %s",
            activity_id,
            record.derived.mode.value,
            len(record.derived.splits_1km),
            result.previous.activity.id if result.previous else "none",
        )

        html = format_message(
            record,
            cadence=cadence_avg(record.activity, streams),
            zones_html=format_zones(zones),
            comparison=result.comparison,
        )
        if self.send_raw_telegram and self.telegram is not None:
            await self.telegram.send_html(html)

        payload = build_payload(record, result.previous, result.comparison)
        prompt = build_coaching_prompt(html_to_plain_text(html), payload)
        await self.agent.send(prompt, payload)
        return result

    async def process_if_new(
        self,
        activity_id: Union[int, str],
        source: str,
        ledger: Optional[Ledger] = None,
    ) -> bool:
        """
        Process an activity unless it was already processed or is in flight.

        Args:
            activity_id: Strava activity id.
            source: "webhook" or "poll".
            ledger: ledger already loaded by the caller; loaded here if None.

        Returns:
            True if the pipeline ran, False if the id was skipped.
        """
        key = str(activity_id)
        if ledger is None:
            ledger = self.store.load_ledger()
        if ledger.is_processed(key) or key in self._in_flight:
            logger.debug("Skipping activity %s (already processed or in flight)", key)
            return False

        self._in_flight.add(key)
        try:
            await self.handle_activity(activity_id, source)
            committed = self.store.commit_processed(key)
            ledger.processed = dict(committed.processed)
        finally:
            self._in_flight.discard(key)
        return True


_processor: Optional[ActivityProcessor] = None


def get_processor() -> ActivityProcessor:
    """Return the process-wide processor, building it from settings on first call."""
    global _processor
    if _processor is None:
        from stravabridge.config import get_settings
        _processor = build_processor(get_settings())
    return _processor


def build_processor(settings) -> ActivityProcessor:
    """Wire an ActivityProcessor from Settings."""
    from stravabridge.delivery.clawdbot import ClawdbotClient
    from stravabridge.delivery.telegram import TelegramSender
    from stravabridge.strava.client import StravaClient

    client = StravaClient(
        settings.strava_client_id,
        settings.strava_client_secret,
        settings.strava_refresh_token,
        timeout=settings.request_timeout_s,
    )
    agent = ClawdbotClient(
        settings.clawdbot_gateway_url,
        settings.clawdbot_hook_token,
        settings.telegram_chat_id,
        timeout=settings.request_timeout_s,
    )
    telegram = None
    if settings.send_raw_telegram:
        telegram = TelegramSender(settings.telegram_bot_token, settings.telegram_chat_id)
    return ActivityProcessor(
        client=client,
        store=RecordStore(settings.store_path, settings.state_path),
        agent=agent,
        telegram=telegram,
        history_limit=settings.history_limit,
        send_raw_telegram=settings.send_raw_telegram,
    )
