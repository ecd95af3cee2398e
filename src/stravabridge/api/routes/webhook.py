"""Strava webhook subscription handshake and event receiver."""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from stravabridge.config import get_settings
from stravabridge.processing.activity_processor import ActivityProcessor, get_processor

logger = logging.getLogger(__name__)

router = APIRouter()


class StravaEvent(BaseModel):
    object_type: Optional[str] = None   # "activity" | "athlete"
    object_id: Optional[int] = None
    aspect_type: Optional[str] = None   # "create" | "update" | "delete"
    owner_id: Optional[int] = None
    event_time: Optional[int] = None


async def _process_event(processor: ActivityProcessor, activity_id: int) -> None:
    """Background task: errors are logged, the poll retries unmarked ids."""
    try:
        await processor.process_if_new(activity_id, "webhook")
    except Exception as exc:
        logger.error("Webhook: activity %s failed: %s", activity_id, exc)


@router.get("")
def verify_subscription(
    hub_mode: Optional[str] = Query(None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(None, alias="hub.challenge"),
):
    """Echo the challenge when Strava validates the subscription callback."""
    expected = get_settings().strava_verify_token
    if hub_mode == "subscribe" and expected and hub_verify_token == expected:
        return {"hub.challenge": hub_challenge}
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("", response_class=PlainTextResponse)
def receive_event(
    event: StravaEvent,
    background_tasks: BackgroundTasks,
    processor: ActivityProcessor = Depends(get_processor),
):
    """
    Acknowledge immediately; Strava retries events that aren't answered within
    two seconds. Activity events are processed in the background.
    """
    if event.object_type == "activity" and event.object_id and event.aspect_type != "delete":
        background_tasks.add_task(_process_event, processor, event.object_id)
    return "ok"
