"""
Coaching prompt builder.

The coaching agent receives the plain-text activity summary followed by the
full data payload as JSON, then a short task list. It picks ride- or
run-specific guidance itself from the activity type in the data.
"""
import json
from typing import Any, Dict, Optional

from stravabridge.models.record import ActivityRecord, ComparisonResult

_TASKS = [
    "- Compare this activity vs last week (use the comparable activity in DATA when present).",
    "- If this is a ride, explicitly compare speed + power + HR (efficiency).",
    "- If this is a run, compare pace + HR and mention pacing pattern from splits.",
    "- Give 1-2 concrete coaching takeaways.",
    "- Suggest the next workout based on the trend.",
]


def build_payload(
    current: ActivityRecord,
    previous: Optional[ActivityRecord],
    comparison: Optional[ComparisonResult],
) -> Dict[str, Any]:
    """JSON-ready payload shared by the prompt and the hook's meta field."""
    return {
        "current": current.model_dump(mode="json", by_alias=True),
        "last_week_comparable": (
            previous.model_dump(mode="json", by_alias=True) if previous else None
        ),
        "deltas_vs_last_week": (
            comparison.model_dump(mode="json") if comparison else None
        ),
    }


def build_coaching_prompt(summary_text: str, payload: Dict[str, Any]) -> str:
    """
    Build the agent prompt.

    Args:
        summary_text: plain-text version of the Telegram summary.
        payload: output of build_payload().

    Returns:
        Prompt string.
    """
    lines = [
        "New Strava activity received.",
        "",
        summary_text,
        "",
        "DATA (json):",
        "```json",
        json.dumps(payload, indent=2, ensure_ascii=False),
        "```",
        "",
        "Task:",
        *_TASKS,
        "",
        "If there is no comparable activity, say so and give a standalone coaching "
        "summary + next workout.",
    ]
    return "\n".join(lines)
