"""
Sample statistics and unit helpers shared by all analysis modules.

Sensor streams from Strava have gaps (HR strap dropout, no power meter,
null samples while paused), so every function here treats missing or
non-finite values as absent instead of raising.
"""
import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional

# Activity type substrings reported as pace (s/km) rather than speed (km/h)
_PACE_TYPE_MARKERS = ("run", "walk", "hike")


@dataclass(frozen=True)
class StreamStats:
    """Average and maximum over the finite samples of a stream."""
    avg: Optional[float] = None
    max: Optional[float] = None


def safe_num(x: Any) -> Optional[float]:
    """Return x if it is a finite int/float, else None. bool is not a number here."""
    if isinstance(x, bool) or not isinstance(x, (int, float)):
        return None
    if not math.isfinite(x):
        return None
    return x


def round_half_up(x: Optional[float]) -> Optional[int]:
    """Round to the nearest integer, halves away from -inf (bpm and watts are shown whole)."""
    if x is None:
        return None
    return int(math.floor(x + 0.5))


def stats_from_stream(values: Optional[Iterable[Any]]) -> StreamStats:
    """
    Compute average and maximum over the finite numeric entries of `values`.

    Args:
        values: any iterable (or None). Non-numeric and non-finite entries
                are skipped.

    Returns:
        StreamStats with both fields None when no finite entry exists.
    """
    if values is None:
        return StreamStats()
    xs = [x for x in (safe_num(v) for v in values) if x is not None]
    if not xs:
        return StreamStats()
    return StreamStats(avg=sum(xs) / len(xs), max=max(xs))


def is_pace_based(activity_type: Optional[str], sport_type: Optional[str] = None) -> bool:
    """True for run/walk/hike activities (substring match on type or sport type)."""
    t = str(activity_type or "").lower()
    s = str(sport_type or "").lower()
    return any(m in t or m in s for m in _PACE_TYPE_MARKERS)


def ms_to_kmh(speed_ms: Any) -> Optional[float]:
    v = safe_num(speed_ms)
    if v is None:
        return None
    return v * 3.6


def avg_pace_sec_per_km(distance_m: Any, moving_time_s: Any) -> Optional[float]:
    """Average pace in s/km, or None when distance or time is unknown or non-positive."""
    d = safe_num(distance_m)
    t = safe_num(moving_time_s)
    if d is None or t is None or d <= 0 or t <= 0:
        return None
    return t / (d / 1000.0)


def avg_speed_kmh(distance_m: Any, moving_time_s: Any) -> Optional[float]:
    """Average speed in km/h, or None when distance or time is unknown or non-positive."""
    d = safe_num(distance_m)
    t = safe_num(moving_time_s)
    if d is None or t is None or d <= 0 or t <= 0:
        return None
    return ms_to_kmh(d / t)


def pct_diff(current: Any, prior: Any) -> Optional[float]:
    """
    Relative change of `current` against `prior` as a fraction (0.05 = +5%).

    Returns None when either side is unknown or prior is zero.
    """
    a = safe_num(current)
    b = safe_num(prior)
    if a is None or b is None or b == 0:
        return None
    return (a - b) / b
