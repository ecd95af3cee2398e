"""
Activity record models: the normalized shape appended to the JSONL log.

Field names (including the camelCase split keys) are the on-disk format of
the activity store. The log is replayed for historical matching across
restarts, so renaming a field here breaks every existing log.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MetricMode(str, Enum):
    """How an activity's effort is reported: pace (s/km) or speed (km/h)."""
    PACE = "pace"
    SPEED = "speed"


@dataclass(frozen=True)
class EffortValue:
    """
    Mode-tagged effort value.

    PACE → seconds per km (lower is faster)
    SPEED → km/h (higher is faster)
    """
    mode: MetricMode
    value: float

    def minus(self, other: "EffortValue") -> Optional[float]:
        """Signed difference self - other; None if the modes disagree."""
        if other.mode is not self.mode:
            return None
        return self.value - other.value


class Split(BaseModel):
    """One complete 1 km segment of an activity."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    km: int                                   # 1-based ordinal
    mode: MetricMode
    meters: Optional[float] = None
    seconds: Optional[float] = None
    sec_per_km: Optional[float] = Field(default=None, alias="secPerKm")
    speed_kmh: Optional[float] = Field(default=None, alias="speedKmh")
    label: str = "n/d"
    hr_avg: Optional[float] = Field(default=None, alias="hrAvg")
    hr_max: Optional[float] = Field(default=None, alias="hrMax")
    power_avg: Optional[float] = Field(default=None, alias="powerAvg")


class ActivitySummary(BaseModel):
    """Provider-reported activity fields, renamed with explicit units."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    name: Optional[str] = None
    type: Optional[str] = None                # "Run", "Ride", "Hike", …
    sport_type: Optional[str] = None          # "TrailRun", "GravelRide", …
    start_date: Optional[str] = None          # ISO 8601 UTC
    start_date_local: Optional[str] = None    # ISO 8601 wall-clock time
    timezone: Optional[str] = None

    distance_m: Optional[float] = None
    moving_time_s: Optional[float] = None
    elapsed_time_s: Optional[float] = None
    total_elevation_gain_m: Optional[float] = None

    average_speed_ms: Optional[float] = None
    max_speed_ms: Optional[float] = None
    average_heartrate: Optional[float] = None
    average_cadence: Optional[float] = None
    average_watts: Optional[float] = None
    kilojoules: Optional[float] = None
    device_watts: Optional[bool] = None       # True when a power meter recorded watts

    @property
    def start_timestamp(self) -> Optional[str]:
        """Local start time, falling back to UTC."""
        return self.start_date_local or self.start_date


class DerivedMetrics(BaseModel):
    """Statistics computed from the sample streams."""

    model_config = ConfigDict(frozen=True)

    mode: MetricMode
    hr_avg_stream: Optional[float] = None
    hr_max_stream: Optional[float] = None
    power_avg: Optional[float] = None
    power_max: Optional[float] = None
    speed_avg_kmh: Optional[float] = None
    speed_max_kmh: Optional[float] = None
    avg_pace_sec_per_km: Optional[float] = None
    splits_1km: List[Split] = Field(default_factory=list)


class ZonesText(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""


class ActivityRecord(BaseModel):
    """One line of the activity store."""

    model_config = ConfigDict(frozen=True)

    stored_at: str
    source: str                               # "webhook" | "poll"
    activity: ActivitySummary
    derived: DerivedMetrics
    zones: ZonesText = Field(default_factory=ZonesText)

    def to_json_line(self) -> str:
        return self.model_dump_json(by_alias=True)


class Delta(BaseModel):
    """
    Signed differences current - prior.

    avg_pace_sec_per_km: negative = faster
    avg_speed_kmh:       positive = faster
    *_pct fields are fractions of the prior value.
    """
    distance_m: Optional[float] = None
    moving_time_s: Optional[float] = None
    elevation_gain_m: Optional[float] = None
    avg_pace_sec_per_km: Optional[float] = None
    avg_pace_pct: Optional[float] = None
    avg_speed_kmh: Optional[float] = None
    avg_speed_pct: Optional[float] = None
    hr_avg: Optional[float] = None
    hr_max: Optional[float] = None
    power_avg_w: Optional[float] = None
    power_avg_pct: Optional[float] = None


class ComparisonResult(BaseModel):
    prev_activity_id: Optional[int] = None
    prev_start_date_local: Optional[str] = None
    mode: MetricMode
    delta: Delta
