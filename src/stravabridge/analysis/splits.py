"""
Fixed-distance split builder.

Walks the aligned distance/time streams of an activity and closes a split
every time the cumulative distance reaches the next 1 km threshold. Split
distance and time are differences between the boundary samples (both streams
accumulate), so a split can be slightly longer than 1 km when the threshold
falls between two samples.

The trailing partial kilometer is dropped, never merged into the previous
split.
"""
from typing import Any, List, Mapping, Optional, Sequence

from stravabridge.analysis.pace import NO_DATA, fmt_kmh, sec_to_pace
from stravabridge.analysis.stream_stats import (
    ms_to_kmh,
    round_half_up,
    safe_num,
    stats_from_stream,
)
from stravabridge.models.record import MetricMode, Split

SEGMENT_METERS = 1000.0


def stream_data(streams: Optional[Mapping[str, Any]], key: str) -> Optional[Sequence[Any]]:
    """Return streams[key]["data"] if present and list-like, else None."""
    if not streams:
        return None
    entry = streams.get(key)
    if not isinstance(entry, Mapping):
        return None
    data = entry.get("data")
    if not isinstance(data, (list, tuple)):
        return None
    return data


def aligned_stream(
    streams: Optional[Mapping[str, Any]],
    key: str,
    length: int,
) -> Optional[Sequence[Any]]:
    """Return the stream only when it has exactly `length` samples."""
    data = stream_data(streams, key)
    if data is None or len(data) != length:
        return None
    return data


def split_label(mode: MetricMode, sec_per_km: Optional[float], speed_kmh: Optional[float]) -> str:
    if mode is MetricMode.PACE:
        return sec_to_pace(sec_per_km)
    if speed_kmh is None:
        return NO_DATA
    return fmt_kmh(speed_kmh)


def compute_splits(
    streams: Optional[Mapping[str, Any]],
    mode: MetricMode,
    segment_m: float = SEGMENT_METERS,
) -> List[Split]:
    """
    Slice an activity into complete fixed-distance splits.

    Args:
        streams: Strava streams keyed by type, each {"data": [...]}.
                 "distance" (m) and "time" (s) are required; "heartrate"
                 and "watts" are used when aligned with distance.
        mode: PACE or SPEED, selects the split label.
        segment_m: split length in meters.

    Returns:
        Splits in order with contiguous 1-based ordinals. Empty when the
        distance/time streams are missing or have different lengths.
    """
    dist = stream_data(streams, "distance")
    time = stream_data(streams, "time")
    if dist is None or time is None or len(dist) != len(time):
        return []

    hr = aligned_stream(streams, "heartrate", len(dist))
    watts = aligned_stream(streams, "watts", len(dist))

    splits: List[Split] = []
    next_threshold = segment_m
    start_idx = 0

    for i, d in enumerate(dist):
        d = safe_num(d)
        if d is None or d < next_threshold:
            continue

        meters = _diff(dist[i], dist[start_idx])
        seconds = _diff(time[i], time[start_idx])
        moving = meters is not None and seconds is not None and meters > 0 and seconds > 0
        speed_kmh = ms_to_kmh(meters / seconds) if moving else None
        sec_per_km = seconds / (meters / 1000.0) if moving else None

        hr_avg = hr_max = power_avg = None
        if hr is not None:
            hr_stats = stats_from_stream(hr[start_idx:i + 1])
            hr_avg, hr_max = round_half_up(hr_stats.avg), hr_stats.max
        if watts is not None:
            power_avg = round_half_up(stats_from_stream(watts[start_idx:i + 1]).avg)

        splits.append(Split(
            km=len(splits) + 1,
            mode=mode,
            meters=meters,
            seconds=seconds,
            sec_per_km=sec_per_km,
            speed_kmh=speed_kmh,
            label=split_label(mode, sec_per_km, speed_kmh),
            hr_avg=hr_avg,
            hr_max=hr_max,
            power_avg=power_avg,
        ))

        start_idx = i
        next_threshold += segment_m

    return splits


def _diff(end: Any, start: Any) -> Optional[float]:
    a, b = safe_num(end), safe_num(start)
    if a is None or b is None:
        return None
    return a - b
