"""
Week-over-week comparison: pick last week's comparable activity and diff it.

Matching rules (all must hold):
  1. different activity id
  2. same activity type ("Run" only matches "Run")
  3. started between 14 and 7 days before the current activity (inclusive)
  4. distance within ±20% of the current one (skipped when the current
     distance is unknown; a zero current distance matches nothing)

The most recent surviving candidate wins.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from stravabridge.analysis.stream_stats import (
    avg_pace_sec_per_km,
    avg_speed_kmh,
    is_pace_based,
    pct_diff,
    safe_num,
)
from stravabridge.models.record import (
    ActivityRecord,
    ComparisonResult,
    Delta,
    EffortValue,
    MetricMode,
)

WINDOW_MIN_DAYS = 7
WINDOW_MAX_DAYS = 14
DISTANCE_TOLERANCE = 0.20

# Metric → sources in priority order. Stream-derived values come first because
# they are computed from the raw samples; provider averages are the fallback.
_METRIC_SOURCES: Dict[str, Tuple[Callable[[ActivityRecord], Any], ...]] = {
    "hr_avg": (
        lambda r: r.derived.hr_avg_stream,
        lambda r: r.activity.average_heartrate,
    ),
    "hr_max": (
        lambda r: r.derived.hr_max_stream,
    ),
    "power_avg": (
        lambda r: r.derived.power_avg,
        lambda r: r.activity.average_watts,
    ),
}


def resolve_metric(record: ActivityRecord, metric: str) -> Optional[float]:
    """Return the first finite value among the metric's sources, or None."""
    for source in _METRIC_SOURCES[metric]:
        value = safe_num(source(record))
        if value is not None:
            return value
    return None


def parse_start(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 start timestamp into an aware datetime.

    Strava's start_date_local carries a literal "Z" although it is wall-clock
    time; timestamps without any offset are treated as UTC so local and UTC
    values stay comparable.
    """
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def pick_comparable_last_week(
    current: ActivityRecord,
    history: Sequence[ActivityRecord],
) -> Optional[ActivityRecord]:
    """
    Find the activity from last week that best matches `current`.

    Args:
        current: the record just processed.
        history: stored records (any order; may include `current`).

    Returns:
        The most recent matching record, or None if nothing matches or the
        current start time cannot be parsed.
    """
    cur = current.activity
    cur_start = parse_start(cur.start_timestamp)
    if cur_start is None:
        return None

    window_end = cur_start - timedelta(days=WINDOW_MIN_DAYS)
    window_start = cur_start - timedelta(days=WINDOW_MAX_DAYS)
    cur_dist = safe_num(cur.distance_m)

    best: Optional[ActivityRecord] = None
    best_start: Optional[datetime] = None

    for rec in history:
        act = rec.activity
        if not act.id or act.id == cur.id:
            continue
        if act.type != cur.type:
            continue
        start = parse_start(act.start_timestamp)
        if start is None or not (window_start <= start <= window_end):
            continue
        if cur_dist is not None:
            dist = safe_num(act.distance_m)
            # a zero-distance activity (treadmill, workout) has no comparable
            if cur_dist <= 0 or dist is None or dist <= 0:
                continue
            if abs(dist - cur_dist) / cur_dist > DISTANCE_TOLERANCE:
                continue
        if best_start is None or start > best_start:
            best, best_start = rec, start

    return best


def effort_of(record: ActivityRecord, mode: MetricMode) -> Optional[EffortValue]:
    """Average pace or speed of the activity from moving time and distance."""
    act = record.activity
    if mode is MetricMode.PACE:
        value = avg_pace_sec_per_km(act.distance_m, act.moving_time_s)
    else:
        value = avg_speed_kmh(act.distance_m, act.moving_time_s)
    if value is None:
        return None
    return EffortValue(mode, value)


def _minus(a: Any, b: Any) -> Optional[float]:
    x, y = safe_num(a), safe_num(b)
    if x is None or y is None:
        return None
    return x - y


def compare_current_vs_prev(
    current: ActivityRecord,
    prev: Optional[ActivityRecord],
) -> Optional[ComparisonResult]:
    """
    Diff the current activity against last week's comparable one.

    Mode follows the current activity: pace for run/walk/hike, else speed.
    Each delta is None unless both sides are known.
    """
    if prev is None:
        return None

    cur, old = current.activity, prev.activity
    mode = MetricMode.PACE if is_pace_based(cur.type, cur.sport_type) else MetricMode.SPEED

    cur_effort = effort_of(current, mode)
    old_effort = effort_of(prev, mode)
    effort_delta = effort_pct = None
    if cur_effort is not None and old_effort is not None:
        effort_delta = cur_effort.minus(old_effort)
        effort_pct = pct_diff(cur_effort.value, old_effort.value)

    cur_pwr = resolve_metric(current, "power_avg")
    old_pwr = resolve_metric(prev, "power_avg")

    delta = Delta(
        distance_m=_minus(cur.distance_m, old.distance_m),
        moving_time_s=_minus(cur.moving_time_s, old.moving_time_s),
        elevation_gain_m=_minus(cur.total_elevation_gain_m, old.total_elevation_gain_m),
        hr_avg=_minus(resolve_metric(current, "hr_avg"), resolve_metric(prev, "hr_avg")),
        hr_max=_minus(resolve_metric(current, "hr_max"), resolve_metric(prev, "hr_max")),
        power_avg_w=_minus(cur_pwr, old_pwr),
        power_avg_pct=pct_diff(cur_pwr, old_pwr),
    )
    if mode is MetricMode.PACE:
        delta.avg_pace_sec_per_km = effort_delta
        delta.avg_pace_pct = effort_pct
    else:
        delta.avg_speed_kmh = effort_delta
        delta.avg_speed_pct = effort_pct

    return ComparisonResult(
        prev_activity_id=old.id,
        prev_start_date_local=old.start_timestamp,
        mode=mode,
        delta=delta,
    )
