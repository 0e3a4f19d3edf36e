"""Summary statistics over a window of glucose readings."""

from __future__ import annotations

import math
from typing import Optional, Sequence

from dexcom_oauth.schemas.glucose import GlucoseReading, GlucoseStatistics

TARGET_RANGE_MG_DL = (70, 180)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_statistics(
    readings: Sequence[GlucoseReading],
) -> Optional[GlucoseStatistics]:
    """Mean, spread, extremes and time in range; ``None`` without values."""
    values = [reading.value for reading in readings if reading.value is not None]
    if not values:
        return None

    average = sum(values) / len(values)
    variance = sum((value - average) ** 2 for value in values) / len(values)
    low, high = TARGET_RANGE_MG_DL
    in_range = sum(1 for value in values if low <= value <= high)

    return GlucoseStatistics(
        count=len(values),
        average=_round_half_up(average),
        min=min(values),
        max=max(values),
        standard_deviation=_round_half_up(math.sqrt(variance)),
        time_in_range_percent=_round_half_up(in_range / len(values) * 100),
        unit=readings[0].unit or "mg/dL",
    )


__all__ = ["TARGET_RANGE_MG_DL", "calculate_statistics"]
