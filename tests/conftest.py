"""Shared test fixtures."""
from typing import Any, Dict, List, Optional

import pytest

from stravabridge.models.record import (
    ActivityRecord,
    ActivitySummary,
    DerivedMetrics,
    MetricMode,
    Split,
)
from stravabridge.storage.store import RecordStore


def _streams(
    distance_m: float = 5300.0,
    step_m: float = 10.0,
    pace_s_per_km: float = 300.0,
    hr: Optional[int] = 150,
    watts: Optional[int] = None,
) -> Dict[str, Dict[str, List[Any]]]:
    """Constant-pace streams sampled every `step_m` meters."""
    n = int(distance_m / step_m) + 1
    dist = [i * step_m for i in range(n)]
    streams = {
        "distance": {"data": dist},
        "time": {"data": [d * pace_s_per_km / 1000.0 for d in dist]},
    }
    if hr is not None:
        streams["heartrate"] = {"data": [hr] * n}
    if watts is not None:
        streams["watts"] = {"data": [watts] * n}
    return streams


def _record(
    activity_id: int = 1,
    activity_type: str = "Run",
    start: Optional[str] = "2025-01-15T07:30:00Z",
    distance_m: Optional[float] = 10000.0,
    moving_time_s: Optional[float] = 3600.0,
    source: str = "webhook",
    **extra: Any,
) -> ActivityRecord:
    """ActivityRecord with sensible run defaults; `extra` goes to the derived block or activity."""
    derived_fields = {k: extra.pop(k) for k in list(extra) if k in DerivedMetrics.model_fields}
    mode = derived_fields.pop(
        "mode",
        MetricMode.PACE if activity_type in ("Run", "Walk", "Hike") else MetricMode.SPEED,
    )
    return ActivityRecord(
        stored_at="2025-01-15T09:00:00+00:00",
        source=source,
        activity=ActivitySummary(
            id=activity_id,
            name=f"Activity {activity_id}",
            type=activity_type,
            start_date=start,
            start_date_local=start,
            distance_m=distance_m,
            moving_time_s=moving_time_s,
            **extra,
        ),
        derived=DerivedMetrics(mode=mode, **derived_fields),
    )


def _pace_splits(paces: List[Optional[float]]) -> List[Split]:
    return [
        Split(km=i, mode=MetricMode.PACE, meters=1000.0, sec_per_km=p, seconds=p)
        for i, p in enumerate(paces, start=1)
    ]


@pytest.fixture
def make_streams():
    return _streams


@pytest.fixture
def make_record():
    return _record


@pytest.fixture
def pace_splits():
    return _pace_splits


@pytest.fixture(name="store")
def store_fixture(tmp_path) -> RecordStore:
    """RecordStore writing under a per-test temp directory (files not yet created)."""
    return RecordStore(tmp_path / "data" / "activity-store.jsonl", tmp_path / "data" / "state.json")


@pytest.fixture
def raw_run() -> Dict[str, Any]:
    """A Strava DetailedActivity for a 5.3 km run."""
    return {
        "id": 9001,
        "name": "Morning Run",
        "type": "Run",
        "sport_type": "Run",
        "start_date": "2025-01-15T10:30:00Z",
        "start_date_local": "2025-01-15T07:30:00Z",
        "timezone": "(GMT-03:00) America/Sao_Paulo",
        "distance": 5300.0,
        "moving_time": 1590,
        "elapsed_time": 1650,
        "total_elevation_gain": 42.0,
        "average_speed": 3.333,
        "max_speed": 4.1,
        "average_heartrate": 149.5,
        "average_cadence": 86.0,
        "kilojoules": None,
        "device_watts": False,
    }
