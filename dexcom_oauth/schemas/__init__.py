"""Public schema exports."""

from .auth import AuthorizationResponse, AuthStatus, CallbackResult, LogoutResponse
from .glucose import (
    DataRange,
    DataRangeBound,
    Device,
    DevicesResponse,
    GlucoseRangeResponse,
    GlucoseReading,
    GlucoseStatistics,
    StatisticsPeriod,
    StatisticsResponse,
)

__all__ = [
    "AuthStatus",
    "AuthorizationResponse",
    "CallbackResult",
    "DataRange",
    "DataRangeBound",
    "Device",
    "DevicesResponse",
    "GlucoseRangeResponse",
    "GlucoseReading",
    "GlucoseStatistics",
    "LogoutResponse",
    "StatisticsPeriod",
    "StatisticsResponse",
]
