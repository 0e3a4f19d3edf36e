"""Synthetic CGM data served when the gateway runs in mock mode."""

from __future__ import annotations

import math
import random
from datetime import datetime, timedelta
from typing import List, Optional

from dexcom_oauth.schemas.glucose import DataRange, DataRangeBound, Device, GlucoseReading
from dexcom_oauth.utils.dates import Clock, format_date_for_dexcom, utcnow

_INTERVAL = timedelta(minutes=5)
_BASE_MG_DL = 120
_AMPLITUDE_MG_DL = 40
_PERIOD_SECONDS = 24 * 60 * 60


def _sine_level(instant: datetime) -> float:
    phase = 2 * math.pi * instant.timestamp() / _PERIOD_SECONDS
    return _BASE_MG_DL + _AMPLITUDE_MG_DL * math.sin(phase)


def _trend(diff: int) -> str:
    if diff > 2:
        return "singleUp"
    if diff > 1:
        return "fortyFiveUp"
    if diff < -2:
        return "singleDown"
    if diff < -1:
        return "fortyFiveDown"
    return "flat"


class MockGlucoseSource:
    """A daily sine wave with a little noise, sampled every five minutes."""

    def __init__(self, *, clock: Clock = utcnow, rng: Optional[random.Random] = None) -> None:
        self._clock = clock
        self._rng = rng or random.Random()

    def readings(self, start: datetime, end: datetime) -> List[GlucoseReading]:
        readings: List[GlucoseReading] = []
        current = start
        while current <= end:
            noise = (self._rng.random() - 0.5) * 10
            value = round(_sine_level(current) + noise)
            diff = round(_sine_level(current + _INTERVAL)) - value
            stamp = format_date_for_dexcom(current)
            readings.append(
                GlucoseReading(
                    system_time=stamp,
                    display_time=stamp,
                    value=value,
                    unit="mg/dL",
                    trend=_trend(diff),
                    trend_rate=round(diff / 5, 1),
                )
            )
            current += _INTERVAL
        return readings

    def current(self) -> Optional[GlucoseReading]:
        now = self._clock()
        readings = self.readings(now - timedelta(minutes=10), now)
        return readings[-1] if readings else None

    def data_range(self) -> DataRange:
        now = self._clock()
        start = format_date_for_dexcom(now - timedelta(days=90))
        end = format_date_for_dexcom(now)
        return DataRange(
            start=DataRangeBound(system_time=start, display_time=start),
            end=DataRangeBound(system_time=end, display_time=end),
        )

    def devices(self) -> List[Device]:
        return [
            Device(
                last_upload_date=format_date_for_dexcom(self._clock()),
                alert_schedules=[],
                units_measurement="mg/dL",
                display_device="iPhone",
                transmitter_generation="g7",
                transmitter_id="MOCK-TX-ID",
                model="G7 Mobile App",
            )
        ]


__all__ = ["MockGlucoseSource"]
