"""Business days - weekend/holiday gate and holiday sources."""

from .holidays import (
    BrasilApiHolidaySource,
    Holiday,
    HolidaySource,
    StaticHolidaySource,
    brazil_national_holidays,
    create_holiday_source,
    easter_sunday,
)
from .gate import BusinessDayGate, GateDecision, GateState

__all__ = [
    "BrasilApiHolidaySource",
    "Holiday",
    "HolidaySource",
    "StaticHolidaySource",
    "brazil_national_holidays",
    "create_holiday_source",
    "easter_sunday",
    "BusinessDayGate",
    "GateDecision",
    "GateState",
]
