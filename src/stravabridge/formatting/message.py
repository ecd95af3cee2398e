"""
Telegram HTML summary for a processed activity.

Built from the stored ActivityRecord so the message and the log never
disagree. Every value passes through escape_html; only the <b> tags below
are markup.
"""
import math
from typing import Any, Dict, List, Optional

from stravabridge.analysis.pace import NO_DATA, fmt_kmh, sec_to_pace
from stravabridge.analysis.pacing import pacing_insight
from stravabridge.analysis.stream_stats import ms_to_kmh, round_half_up, safe_num
from stravabridge.formatting.formatters import escape_html, format_datetime_local, sec_to_hms
from stravabridge.models.record import ActivityRecord, ComparisonResult, MetricMode, Split

NO_COMPARISON = "no comparison available"

_ZONE_TITLES = {
    "heartrate": "❤️ HR zones",
    "power": "⚡ Power zones",
}


def format_zones(zones: Optional[List[Dict[str, Any]]]) -> str:
    """
    Render Strava zone buckets as "Z1: 10% | Z2: 45% | …" blocks.

    Zones without buckets or with zero total time are skipped. Returns "" when
    nothing is renderable, else the blocks preceded by a blank line.
    """
    if not isinstance(zones, list):
        return ""

    blocks = []
    for zone in zones:
        buckets = zone.get("distribution_buckets") if isinstance(zone, dict) else None
        if not isinstance(buckets, list):
            continue
        times = [safe_num(b.get("time")) or 0 for b in buckets if isinstance(b, dict)]
        total = sum(times)
        if not total:
            continue
        title = _ZONE_TITLES.get(zone.get("type"), "⚡ Zones")
        line = " | ".join(
            f"Z{i}: {round_half_up(t / total * 100)}%" for i, t in enumerate(times, start=1)
        )
        blocks.append(f"<b>{title}</b>\n{escape_html(line)}")

    if not blocks:
        return ""
    return "\n\n" + "\n".join(blocks)


def _split_line(s: Split) -> str:
    hr = f" (HR {s.hr_avg:.0f}/{s.hr_max:.0f})" if s.hr_avg and s.hr_max is not None else ""
    pw = f" (P {s.power_avg:.0f}W)" if s.power_avg else ""
    return f"KM{s.km}: {s.label}{hr}{pw}"


def _best_and_worst(splits: List[Split], mode: MetricMode):
    if not splits:
        return None, None
    if mode is MetricMode.PACE:
        best = min(splits, key=lambda s: s.sec_per_km if s.sec_per_km is not None else math.inf)
        worst = max(splits, key=lambda s: s.sec_per_km if s.sec_per_km is not None else -math.inf)
    else:
        best = max(splits, key=lambda s: s.speed_kmh if s.speed_kmh is not None else -math.inf)
        worst = min(splits, key=lambda s: s.speed_kmh if s.speed_kmh is not None else math.inf)
    return best, worst


def _signed(value: Optional[float], fmt: str, unit: str = "") -> Optional[str]:
    if value is None:
        return None
    return f"{value:+{fmt}}{unit}"


def _pct(value: Optional[float]) -> str:
    return f" ({value * 100:+.1f}%)" if value is not None else ""


def format_comparison(comparison: Optional[ComparisonResult]) -> str:
    """One-line week-over-week summary, or NO_COMPARISON."""
    if comparison is None:
        return NO_COMPARISON

    d = comparison.delta
    parts = []
    if d.distance_m is not None:
        parts.append(f"Distance {d.distance_m / 1000:+.2f} km")
    if d.moving_time_s is not None:
        sign = "-" if d.moving_time_s < 0 else "+"
        parts.append(f"Moving {sign}{sec_to_hms(abs(d.moving_time_s))}")
    if comparison.mode is MetricMode.PACE and d.avg_pace_sec_per_km is not None:
        trend = "faster" if d.avg_pace_sec_per_km < 0 else "slower"
        parts.append(f"Pace {d.avg_pace_sec_per_km:+.0f} s/km{_pct(d.avg_pace_pct)} {trend}")
    if comparison.mode is MetricMode.SPEED and d.avg_speed_kmh is not None:
        trend = "faster" if d.avg_speed_kmh > 0 else "slower"
        parts.append(f"Speed {d.avg_speed_kmh:+.1f} km/h{_pct(d.avg_speed_pct)} {trend}")
    for label, value, unit in (
        ("HR avg", d.hr_avg, " bpm"),
        ("HR max", d.hr_max, " bpm"),
    ):
        text = _signed(value, ".0f", unit)
        if text:
            parts.append(f"{label} {text}")
    if d.power_avg_w is not None:
        parts.append(f"Power {d.power_avg_w:+.0f} W{_pct(d.power_avg_pct)}")

    when = format_datetime_local(comparison.prev_start_date_local)
    return f"vs {when}: " + (" | ".join(parts) if parts else NO_DATA)


def format_message(
    record: ActivityRecord,
    cadence: Optional[float] = None,
    zones_html: str = "",
    comparison: Optional[ComparisonResult] = None,
) -> str:
    """
    Build the HTML activity summary.

    Args:
        record: the stored record of the activity.
        cadence: average cadence to show (stream or provider value).
        zones_html: output of format_zones() for this activity.
        comparison: week-over-week deltas, None when there was no match.

    Returns:
        HTML string in Telegram's supported subset.
    """
    act, derived = record.activity, record.derived
    pace_based = derived.mode is MetricMode.PACE
    distance_km = (safe_num(act.distance_m) or 0) / 1000
    splits = derived.splits_1km

    if pace_based:
        metric_line = f"⚡ Avg pace: {escape_html(sec_to_pace(derived.avg_pace_sec_per_km))}"
    else:
        avg = derived.speed_avg_kmh if derived.speed_avg_kmh is not None else ms_to_kmh(act.average_speed_ms)
        metric_line = f"🚴 Speed: {escape_html(fmt_kmh(avg))} avg | {escape_html(fmt_kmh(derived.speed_max_kmh))} max"

    extras = []
    if not pace_based and derived.power_avg is not None:
        extras.append(f"⚡ Power: {round_half_up(derived.power_avg)} W avg")
    if cadence is not None:
        extras.append(f"🦵 Cadence: {cadence:g}")
    extra_line = f"ℹ️ {escape_html(' | '.join(extras))}" if extras else ""

    splits_text = "\n".join(_split_line(s) for s in splits) if splits else NO_DATA
    best, worst = _best_and_worst(splits, derived.mode)
    best_worst = ""
    if best and worst:
        best_worst = (
            f"<b>🏁 Best KM:</b> {best.km} ({escape_html(best.label)})\n"
            f"<b>🐢 Worst KM:</b> {worst.km} ({escape_html(worst.label)})"
        )

    insight = pacing_insight(splits) if pace_based else None
    hr_avg = derived.hr_avg_stream
    hr_max = derived.hr_max_stream
    elevation = round_half_up(safe_num(act.total_elevation_gain_m) or 0)

    lines = [
        "<b>🏁 New Strava activity</b>",
        f"🏷️ {escape_html(act.name)}",
        f"🧩 {escape_html(act.type)}",
        f"🕒 {escape_html(format_datetime_local(act.start_date_local))}",
        "",
        f"📏 {distance_km:.2f} km",
        f"⏱️ Moving: {sec_to_hms(act.moving_time_s)} | Elapsed: {sec_to_hms(act.elapsed_time_s)}",
        metric_line,
        f"❤️ HR: {escape_html(_whole(hr_avg))} avg | {escape_html(_whole(hr_max))} max",
        f"⬆️ Elevation: {elevation} m",
        extra_line,
        "",
        f"<b>📌 Splits (≈1km) · {'Pace' if pace_based else 'Speed'}</b>",
        escape_html(splits_text),
        best_worst,
        "",
        "<b>🧠 Insight</b>",
        escape_html(insight.label if insight else NO_DATA),
        "",
        "<b>📊 vs last week</b>",
        escape_html(format_comparison(comparison)),
        zones_html,
    ]
    return "\n".join(lines).strip()


def _whole(value: Optional[float]) -> str:
    return f"{value:.0f}" if value is not None else NO_DATA
