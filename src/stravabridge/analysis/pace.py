"""
Pace and speed display labels.

Pace is always carried in seconds per kilometer and speed in km/h; these
helpers turn them into the short labels used by split lists and messages.
"""
import math
from typing import Any

from stravabridge.analysis.stream_stats import safe_num

NO_DATA = "n/d"


def sec_to_pace(sec_per_km: Any) -> str:
    """
    Format a pace (seconds/km) as "m:ss/km".

    Rounds to the whole second before splitting into minutes, so 299.6 s/km
    renders as "5:00/km" rather than "4:60/km". Unknown or non-positive
    pace renders as NO_DATA.
    """
    pace = safe_num(sec_per_km)
    if pace is None or pace <= 0:
        return NO_DATA
    minutes, seconds = divmod(int(math.floor(pace + 0.5)), 60)
    return f"{minutes}:{seconds:02d}/km"


def fmt_kmh(kmh: Any) -> str:
    """Format a speed as "12.3 km/h", or NO_DATA when unknown."""
    v = safe_num(kmh)
    if v is None:
        return NO_DATA
    return f"{v:.1f} km/h"
