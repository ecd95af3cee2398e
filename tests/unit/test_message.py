"""Tests for the Telegram activity summary."""
import pytest

from stravabridge.analysis.comparison import compare_current_vs_prev
from stravabridge.formatting.message import (
    NO_COMPARISON,
    format_comparison,
    format_message,
    format_zones,
)
from stravabridge.models.record import ComparisonResult, Delta, MetricMode
from stravabridge.strava.normalizer import build_activity_record


@pytest.fixture
def zones():
    return [
        {"type": "heartrate", "distribution_buckets": [{"time": 60}, {"time": 240}, {"time": 0}]},
        {"type": "power", "distribution_buckets": []},
    ]


class TestFormatZones:
    def test_percentages(self, zones):
        assert format_zones(zones) == "\n\n<b>❤️ HR zones</b>\nZ1: 20% | Z2: 80% | Z3: 0%"

    def test_power_title(self):
        out = format_zones([{"type": "power", "distribution_buckets": [{"time": 1}]}])
        assert "⚡ Power zones" in out
        assert "Z1: 100%" in out

    def test_unknown_type_gets_generic_title(self):
        out = format_zones([{"type": "pace", "distribution_buckets": [{"time": 5}]}])
        assert "⚡ Zones" in out

    @pytest.mark.parametrize("value", [None, {}, [], [{"type": "heartrate"}], ["x"]])
    def test_nothing_renderable(self, value):
        assert format_zones(value) == ""


class TestFormatComparison:
    def test_none(self):
        assert format_comparison(None) == NO_COMPARISON

    def test_pace_line(self):
        comparison = ComparisonResult(
            prev_activity_id=2,
            prev_start_date_local="2025-01-08T07:30:00Z",
            mode=MetricMode.PACE,
            delta=Delta(
                distance_m=-500.0,
                moving_time_s=-60.0,
                avg_pace_sec_per_km=-6.0,
                avg_pace_pct=-0.016,
                hr_avg=-5.0,
                hr_max=2.0,
            ),
        )
        assert format_comparison(comparison) == (
            "vs 2025-01-08 07:30: Distance -0.50 km | Moving -1:00 | "
            "Pace -6 s/km (-1.6%) faster | HR avg -5 bpm | HR max +2 bpm"
        )

    def test_speed_line(self):
        comparison = ComparisonResult(
            prev_start_date_local="2025-01-07T08:00:00Z",
            mode=MetricMode.SPEED,
            delta=Delta(avg_speed_kmh=1.2, avg_speed_pct=0.0417, power_avg_w=20.0, power_avg_pct=0.1),
        )
        out = format_comparison(comparison)
        assert "Speed +1.2 km/h (+4.2%) faster" in out
        assert "Power +20 W (+10.0%)" in out
        assert "Pace" not in out

    def test_all_unknown(self):
        comparison = ComparisonResult(mode=MetricMode.PACE, delta=Delta())
        assert format_comparison(comparison) == "vs n/d: n/d"


class TestFormatMessage:
    def test_run_summary(self, raw_run, make_streams, zones):
        record = build_activity_record(raw_run, make_streams())
        html = format_message(record, cadence=86.0, zones_html=format_zones(zones))

        assert html.startswith("<b>🏁 New Strava activity</b>")
        assert "🏷️ Morning Run" in html
        assert "🕒 2025-01-15 07:30" in html
        assert "📏 5.30 km" in html
        assert "⏱️ Moving: 26:30 | Elapsed: 27:30" in html
        assert "⚡ Avg pace: 5:00/km" in html
        assert "❤️ HR: 150 avg | 150 max" in html
        assert "⬆️ Elevation: 42 m" in html
        assert "🦵 Cadence: 86" in html
        assert "KM1: 5:00/km (HR 150/150)" in html
        assert "KM5: 5:00/km" in html
        assert "KM6" not in html
        assert "<b>🧠 Insight</b>\nStable pacing" in html
        assert f"<b>📊 vs last week</b>\n{NO_COMPARISON}" in html
        assert html.endswith("Z1: 20% | Z2: 80% | Z3: 0%")

    def test_escapes_activity_name(self, raw_run):
        raw_run["name"] = "<Tempo> & co"
        html = format_message(build_activity_record(raw_run, {}))
        assert "&lt;Tempo&gt; &amp; co" in html
        assert "<Tempo>" not in html

    def test_without_streams(self, raw_run):
        html = format_message(build_activity_record(raw_run, {}))
        assert "<b>📌 Splits (≈1km) · Pace</b>\nn/d" in html
        assert "<b>🧠 Insight</b>\nn/d" in html
        assert "❤️ HR: n/d avg | n/d max" in html
        assert "Best KM" not in html

    def test_ride_summary(self, make_record, make_streams):
        streams = make_streams(distance_m=3000.0, pace_s_per_km=120.0, watts=200)
        current = make_record(
            activity_id=1, activity_type="Ride", distance_m=40000.0, moving_time_s=4800.0,
            speed_avg_kmh=30.0, speed_max_kmh=52.0, power_avg=220.0,
        )
        prev = make_record(activity_id=2, activity_type="Ride", start="2025-01-07T07:30:00Z",
                           distance_m=40000.0, moving_time_s=5000.0)
        record = build_activity_record(
            {"id": 5, "name": "Ride", "type": "Ride", "distance": 3000.0, "moving_time": 360},
            streams,
        )
        html = format_message(record)
        assert "🚴 Speed: 30.0 km/h avg | n/d max" in html
        assert "⚡ Power: 200 W avg" in html
        assert "Splits (≈1km) · Speed" in html
        assert "KM1: 30.0 km/h (HR 150/150) (P 200W)" in html
        assert "<b>🧠 Insight</b>\nn/d" in html

        html = format_message(current, comparison=compare_current_vs_prev(current, prev))
        assert "🚴 Speed: 30.0 km/h avg | 52.0 km/h max" in html
        assert "vs 2025-01-07 07:30:" in html
        assert "Speed +1.2 km/h" in html
