"""
Pacing pattern classifier for pace-based activities.

Compares the mean split pace of the first half of the run against the
second half. A deliberately simple heuristic: no trend fitting.
"""
from enum import Enum
from statistics import mean
from typing import List, Optional, Sequence

from stravabridge.analysis.stream_stats import safe_num
from stravabridge.models.record import Split

MIN_VALID_SPLITS = 4
STABLE_THRESHOLD_S = 5.0  # s/km difference between halves still called stable


class PacingPattern(str, Enum):
    STABLE = "stable"
    NEGATIVE_SPLIT = "negative_split"   # second half faster
    FADE = "fade"                       # second half slower

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    PacingPattern.STABLE: "Stable pacing",
    PacingPattern.NEGATIVE_SPLIT: "Negative split ✅",
    PacingPattern.FADE: "Fade ⚠️ (pace dropped)",
}


def pacing_insight(splits: Optional[Sequence[Split]]) -> Optional[PacingPattern]:
    """
    Classify the pacing of a pace-mode activity from its splits.

    Args:
        splits: ordered 1 km splits.

    Returns:
        PacingPattern, or None when fewer than MIN_VALID_SPLITS splits carry
        a pace value.
    """
    if not splits:
        return None
    paces: List[float] = [
        s.sec_per_km for s in splits if safe_num(s.sec_per_km) is not None
    ]
    if len(paces) < MIN_VALID_SPLITS:
        return None

    mid = len(paces) // 2
    diff = mean(paces[mid:]) - mean(paces[:mid])

    if abs(diff) < STABLE_THRESHOLD_S:
        return PacingPattern.STABLE
    if diff < 0:
        return PacingPattern.NEGATIVE_SPLIT
    return PacingPattern.FADE
