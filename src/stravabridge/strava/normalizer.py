"""
Strava API response normalizer.

Converts the raw activity dict and stream mapping returned by StravaClient
into the ActivityRecord stored in the log. No I/O here; the processor
handles fetching and persistence.

Strava field → record field:
  distance             → distance_m
  moving_time          → moving_time_s
  elapsed_time         → elapsed_time_s
  total_elevation_gain → total_elevation_gain_m
  average_speed        → average_speed_ms
  max_speed            → max_speed_ms
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from stravabridge.analysis.splits import compute_splits, stream_data
from stravabridge.analysis.stream_stats import (
    avg_pace_sec_per_km,
    avg_speed_kmh,
    is_pace_based,
    ms_to_kmh,
    round_half_up,
    safe_num,
    stats_from_stream,
)
from stravabridge.formatting.formatters import html_to_plain_text
from stravabridge.formatting.message import format_zones
from stravabridge.models.record import (
    ActivityRecord,
    ActivitySummary,
    DerivedMetrics,
    MetricMode,
    ZonesText,
)

_FIELD_MAP = {
    "id": "id",
    "name": "name",
    "type": "type",
    "sport_type": "sport_type",
    "start_date": "start_date",
    "start_date_local": "start_date_local",
    "timezone": "timezone",
    "distance": "distance_m",
    "moving_time": "moving_time_s",
    "elapsed_time": "elapsed_time_s",
    "total_elevation_gain": "total_elevation_gain_m",
    "average_speed": "average_speed_ms",
    "max_speed": "max_speed_ms",
    "average_heartrate": "average_heartrate",
    "average_cadence": "average_cadence",
    "average_watts": "average_watts",
    "kilojoules": "kilojoules",
    "device_watts": "device_watts",
}


def normalize_activity(raw: Mapping[str, Any]) -> ActivitySummary:
    """Map a Strava DetailedActivity dict onto ActivitySummary."""
    return ActivitySummary(**{
        field: raw.get(key) for key, field in _FIELD_MAP.items()
    })


def activity_mode(summary: ActivitySummary) -> MetricMode:
    if is_pace_based(summary.type, summary.sport_type):
        return MetricMode.PACE
    return MetricMode.SPEED


def derive_metrics(
    summary: ActivitySummary,
    streams: Optional[Mapping[str, Any]],
) -> DerivedMetrics:
    """
    Compute stream statistics and splits for one activity.

    Stream values win; provider-reported values fill in where a stream is
    absent (power avg, speed avg/max).
    """
    mode = activity_mode(summary)

    hr = stats_from_stream(stream_data(streams, "heartrate"))
    power = stats_from_stream(stream_data(streams, "watts"))
    speed = stats_from_stream(stream_data(streams, "velocity_smooth"))

    power_avg = round_half_up(power.avg)
    if power_avg is None:
        power_avg = safe_num(summary.average_watts)

    speed_avg = ms_to_kmh(speed.avg) if speed.avg is not None else None
    if speed_avg is None:
        speed_avg = avg_speed_kmh(summary.distance_m, summary.moving_time_s)
    speed_max = ms_to_kmh(speed.max) if speed.max is not None else None
    if speed_max is None:
        speed_max = ms_to_kmh(summary.max_speed_ms)

    return DerivedMetrics(
        mode=mode,
        hr_avg_stream=round_half_up(hr.avg),
        hr_max_stream=round_half_up(hr.max),
        power_avg=power_avg,
        power_max=round_half_up(power.max),
        speed_avg_kmh=speed_avg,
        speed_max_kmh=speed_max,
        avg_pace_sec_per_km=(
            avg_pace_sec_per_km(summary.distance_m, summary.moving_time_s)
            if mode is MetricMode.PACE else None
        ),
        splits_1km=compute_splits(streams, mode),
    )


def cadence_avg(summary: ActivitySummary, streams: Optional[Mapping[str, Any]]) -> Optional[float]:
    """Stream cadence average (rounded), else the provider's average cadence."""
    avg = round_half_up(stats_from_stream(stream_data(streams, "cadence")).avg)
    if avg is None:
        return safe_num(summary.average_cadence)
    return avg


def build_activity_record(
    raw_activity: Mapping[str, Any],
    streams: Optional[Mapping[str, Any]],
    zones: Optional[List[Dict[str, Any]]] = None,
    source: str = "webhook",
    stored_at: Optional[datetime] = None,
) -> ActivityRecord:
    """
    Build the normalized record for one activity.

    Args:
        raw_activity: Strava DetailedActivity dict.
        streams: Strava streams keyed by type (may be empty).
        zones: Strava activity zones (only rendered to text).
        source: "webhook" or "poll".
        stored_at: storage timestamp, defaults to now (UTC).

    Returns:
        ActivityRecord ready to append to the store.
    """
    summary = normalize_activity(raw_activity)
    stamp = stored_at or datetime.now(timezone.utc)
    return ActivityRecord(
        stored_at=stamp.isoformat(),
        source=source,
        activity=summary,
        derived=derive_metrics(summary, streams),
        zones=ZonesText(text=html_to_plain_text(format_zones(zones))),
    )
