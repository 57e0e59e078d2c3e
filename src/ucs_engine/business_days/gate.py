"""Business-day gate - decides whether a date is eligible for recalculation.

Fail-open policy: when the holiday calendar cannot be fetched (error,
timeout, open circuit) the gate ALLOWS the date and logs a warning.
Weekends are always blocked; that check needs no I/O. Decisions taken
while degraded carry ``degraded=True``.
"""

from __future__ import annotations

import asyncio
import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any

from ..cache.memory import Cache, TTLCache
from ..config import CalendarConfig, parse_month_day
from ..errors import ExternalSourceError
from .holidays import HolidaySource, create_holiday_source


logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class GateState(str, Enum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    ALLOWED = "allowed"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class GateDecision:
    """Outcome of a business-day check."""
    date: date
    state: GateState
    reason: str | None = None
    blocked_by: str | None = None      # weekend | holiday
    holiday_name: str | None = None
    suggested_date: date | None = None

    # True when the calendar was unavailable and the gate failed open
    degraded: bool = False

    @property
    def allowed(self) -> bool:
        return self.state == GateState.ALLOWED

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "allowed": self.allowed,
            "state": self.state.value,
            "reason": self.reason,
            "blocked_by": self.blocked_by,
            "holiday_name": self.holiday_name,
            "suggested_date": self.suggested_date.isoformat() if self.suggested_date else None,
            "degraded": self.degraded,
        }


@dataclass
class BusinessDayGate:
    """
    Weekend and holiday gate with a per-year holiday cache.

    Holidays are cached by calendar year. Concurrent checks that miss the
    cache for the same year share a single lookup.
    """
    source: HolidaySource
    cache: Cache = field(default_factory=TTLCache)
    cache_ttl_seconds: float = 86400.0

    # Upper bound on one year's lookup, retries included
    lookup_timeout_seconds: float = 15.0

    max_walk_attempts: int = 10

    # "MM-DD" -> name, added to every year's calendar
    additional_holidays: dict[str, str] = field(default_factory=dict)

    # Most recent dates whose state is remembered by state()
    max_tracked_states: int = 366

    _states: dict[date, GateState] = field(default_factory=dict, init=False)
    _month_days: dict[tuple[int, int], str] = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._month_days = {
            parse_month_day(month_day): name
            for month_day, name in self.additional_holidays.items()
        }

    @classmethod
    def from_config(
        cls,
        config: CalendarConfig,
        source: HolidaySource | None = None,
        cache: Cache | None = None,
    ) -> BusinessDayGate:
        retries = config.max_retries
        lookup_timeout = (
            config.timeout_seconds * (retries + 1)
            + config.retry_backoff_seconds * (2 ** retries)
        )
        return cls(
            source=source or create_holiday_source(config),
            cache=cache or TTLCache(default_ttl_seconds=config.cache_ttl_seconds),
            cache_ttl_seconds=config.cache_ttl_seconds,
            lookup_timeout_seconds=lookup_timeout,
            max_walk_attempts=config.max_walk_attempts,
            additional_holidays=dict(config.additional_holidays),
        )

    def state(self, target: date) -> GateState:
        """Last known state for a date (UNKNOWN if never checked)."""
        return self._states.get(target, GateState.UNKNOWN)

    async def check(self, target: date) -> GateDecision:
        """Is ``target`` a business day? Weekends are decided without I/O."""
        self._track(target, GateState.CHECKING)
        try:
            decision = await self._decide(target)
        except BaseException:
            self._states.pop(target, None)
            raise
        self._track(target, decision.state)
        return decision

    def _track(self, target: date, state: GateState) -> None:
        self._states.pop(target, None)
        self._states[target] = state
        while len(self._states) > self.max_tracked_states:
            del self._states[next(iter(self._states))]

    async def _decide(self, target: date) -> GateDecision:
        weekday = target.weekday()
        if weekday >= 5:
            day_name = WEEKDAY_NAMES[weekday]
            return GateDecision(
                date=target,
                state=GateState.BLOCKED,
                reason=f"blocked: weekend ({day_name})",
                blocked_by="weekend",
            )

        holidays = await self.holidays_for_year(target.year)
        if holidays is None:
            return GateDecision(date=target, state=GateState.ALLOWED, degraded=True)

        name = holidays.get(target)
        if name is not None:
            return GateDecision(
                date=target,
                state=GateState.BLOCKED,
                reason=f"blocked: holiday ({name})",
                blocked_by="holiday",
                holiday_name=name,
            )

        return GateDecision(date=target, state=GateState.ALLOWED)

    async def validate_operation(self, target: date) -> GateDecision:
        """Check ``target`` and, when blocked, suggest the next business day."""
        decision = await self.check(target)
        if decision.allowed:
            return decision

        suggested = await self.next_business_day(target)
        return GateDecision(
            date=decision.date,
            state=decision.state,
            reason=decision.reason,
            blocked_by=decision.blocked_by,
            holiday_name=decision.holiday_name,
            suggested_date=suggested,
            degraded=decision.degraded,
        )

    async def holidays_for_year(self, year: int) -> dict[date, str] | None:
        """
        Holidays of ``year`` as date -> name, or None if unavailable.

        On lookup failure a stale cached calendar is preferred over
        nothing; with no cached calendar the caller fails open.
        """
        try:
            return await self.cache.get_or_load(
                year, lambda: self._load_year(year), self.cache_ttl_seconds
            )
        except (ExternalSourceError, asyncio.TimeoutError) as e:
            return self._fallback(year, e)
        except Exception as e:
            logger.error(f"Holiday source {self.source.name} raised {type(e).__name__} for {year}")
            return self._fallback(year, e)

    def _fallback(self, year: int, error: Exception) -> dict[date, str] | None:
        """Stale calendar for ``year`` if one is cached, else None (fail open)."""
        stale = self._stale(year)
        if stale is not None:
            logger.warning(f"Holiday lookup for {year} failed ({error}); using stale calendar")
            return stale
        logger.warning(
            f"Holiday lookup for {year} failed ({error}); allowing operations (fail-open)"
        )
        return None

    async def _load_year(self, year: int) -> dict[date, str]:
        try:
            holidays = await asyncio.wait_for(
                self.source.fetch_holidays(year), timeout=self.lookup_timeout_seconds
            )
        except asyncio.TimeoutError:
            raise ExternalSourceError(
                f"Holiday lookup for {year} timed out after {self.lookup_timeout_seconds:.1f}s"
            ) from None

        by_date = {h.date: h.name for h in holidays}
        for (month, day), name in self._month_days.items():
            if (month, day) == (2, 29) and not calendar.isleap(year):
                continue
            by_date.setdefault(date(year, month, day), name)

        logger.info(f"Holiday calendar for {year}: {len(by_date)} holidays from {self.source.name}")
        return by_date

    def _stale(self, year: int) -> dict[date, str] | None:
        get_entry = getattr(self.cache, "get_entry", None)
        if get_entry is None:
            return None
        entry = get_entry(year)
        return entry.value if entry is not None else None

    async def next_business_day(self, target: date) -> date:
        """First business day after ``target``, bounded by ``max_walk_attempts``."""
        return await self._walk(target, 1)

    async def previous_business_day(self, target: date) -> date:
        """Last business day before ``target``, bounded by ``max_walk_attempts``."""
        return await self._walk(target, -1)

    async def _walk(self, target: date, step: int) -> date:
        candidate = target + timedelta(days=step)
        for _ in range(self.max_walk_attempts):
            decision = await self.check(candidate)
            if decision.allowed:
                return candidate
            candidate += timedelta(days=step)

        fallback = target + timedelta(days=step)
        logger.warning(
            f"No business day found within {self.max_walk_attempts} days of "
            f"{target.isoformat()}; falling back to {fallback.isoformat()}"
        )
        return fallback

    def clear_cache(self) -> None:
        """Drop every cached calendar (forces a fresh lookup)."""
        self.cache.invalidate()
        logger.info("Holiday cache cleared")

    def cache_stats(self) -> dict[str, Any]:
        stats = dict(getattr(self.cache, "stats", {}))
        keys = getattr(self.cache, "keys", None)
        if keys is not None:
            stats["cached_years"] = sorted(keys())
        stats["source"] = self.source.name
        return stats
