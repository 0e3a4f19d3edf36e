"""
Pydantic models for Dexcom glucose data exposed by the gateway.

Field names follow the Dexcom v3 payloads (camelCase on the wire). Unknown
vendor fields are preserved rather than dropped.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DexcomModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )


class GlucoseReading(DexcomModel):
    """A single estimated glucose value (EGV)."""

    system_time: str
    display_time: str
    value: Optional[int] = Field(None, description="Glucose value; null when unavailable.")
    unit: str = "mg/dL"
    trend: Optional[str] = None
    trend_rate: Optional[float] = None


class Device(DexcomModel):
    """A receiver or app that uploaded CGM data."""

    last_upload_date: Optional[str] = None
    alert_schedules: List[Dict[str, Any]] = Field(default_factory=list)
    units_measurement: Optional[str] = None
    display_device: Optional[str] = None
    transmitter_generation: Optional[str] = None
    transmitter_id: Optional[str] = None
    model: Optional[str] = None


class DataRangeBound(DexcomModel):
    system_time: str
    display_time: str


class DataRange(DexcomModel):
    """Earliest and latest records available for the user."""

    start: Optional[DataRangeBound] = None
    end: Optional[DataRangeBound] = None


class GlucoseStatistics(DexcomModel):
    count: int
    average: int
    min: int
    max: int
    standard_deviation: int
    time_in_range_percent: int
    unit: str


class GlucoseRangeResponse(DexcomModel):
    count: int
    start_date: str
    end_date: str
    readings: List[GlucoseReading]


class StatisticsPeriod(DexcomModel):
    days: int
    start_date: str
    end_date: str


class StatisticsResponse(DexcomModel):
    period: StatisticsPeriod
    statistics: GlucoseStatistics


class DevicesResponse(DexcomModel):
    devices: List[Device]


__all__ = [
    "DataRange",
    "DataRangeBound",
    "Device",
    "DevicesResponse",
    "GlucoseRangeResponse",
    "GlucoseReading",
    "GlucoseStatistics",
    "StatisticsPeriod",
    "StatisticsResponse",
]
