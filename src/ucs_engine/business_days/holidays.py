"""Holiday sources - where the business-day gate learns about holidays."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable

import httpx

from ..config import CalendarConfig
from ..errors import ConfigurationError, ExternalSourceError
from ..governance.circuit_breaker import CircuitBreaker


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Holiday:
    """A single non-trading day."""
    date: date
    name: str
    type: str = "national"


class HolidaySource(ABC):
    """
    Abstract holiday calendar.

    Implementations raise ExternalSourceError when the calendar cannot be
    fetched; they never return a partial list silently.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in logs and circuit-breaker keys."""
        ...

    @abstractmethod
    async def fetch_holidays(self, year: int) -> list[Holiday]:
        """Return every holiday in ``year``."""
        ...


def easter_sunday(year: int) -> date:
    """Gregorian Easter Sunday (Meeus/Jones/Butcher algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def brazil_national_holidays(year: int) -> list[Holiday]:
    """Fixed and Easter-based Brazilian national holidays for ``year``."""
    easter = easter_sunday(year)
    return sorted(
        [
            Holiday(date(year, 1, 1), "Confraternização Universal"),
            Holiday(easter - timedelta(days=48), "Carnaval", "optional"),
            Holiday(easter - timedelta(days=47), "Carnaval", "optional"),
            Holiday(easter - timedelta(days=2), "Sexta-feira Santa"),
            Holiday(date(year, 4, 21), "Tiradentes"),
            Holiday(date(year, 5, 1), "Dia do Trabalho"),
            Holiday(easter + timedelta(days=60), "Corpus Christi", "optional"),
            Holiday(date(year, 9, 7), "Independência do Brasil"),
            Holiday(date(year, 10, 12), "Nossa Senhora Aparecida"),
            Holiday(date(year, 11, 2), "Finados"),
            Holiday(date(year, 11, 15), "Proclamação da República"),
            Holiday(date(year, 12, 25), "Natal"),
        ],
        key=lambda h: h.date,
    )


@dataclass
class StaticHolidaySource(HolidaySource):
    """
    Offline calendar: computed national holidays plus explicit extras.

    Never fails; used when the public API is unreachable
    (air-gapped deployments) and in tests.
    """
    extra: Iterable[Holiday] = ()
    include_national: bool = True

    def __post_init__(self):
        self.extra = tuple(self.extra)

    @property
    def name(self) -> str:
        return "static"

    async def fetch_holidays(self, year: int) -> list[Holiday]:
        holidays = brazil_national_holidays(year) if self.include_national else []
        holidays.extend(h for h in self.extra if h.date.year == year)
        return holidays


@dataclass
class BrasilApiHolidaySource(HolidaySource):
    """
    Holidays from the public BrasilAPI calendar over HTTP.

    Config:
        base_url: URL template with a ``{year}`` placeholder
        timeout_seconds: Per-request timeout
        max_retries: Retries for timeouts, connection errors and 5xx
        retry_backoff_seconds: Base delay, doubled on each retry

    4xx responses and malformed payloads are not retried.
    """
    config: CalendarConfig = field(default_factory=CalendarConfig)
    breaker: CircuitBreaker | None = None

    # Injected by tests (httpx.MockTransport)
    transport: httpx.AsyncBaseTransport | None = None

    @property
    def name(self) -> str:
        return "brasilapi"

    async def fetch_holidays(self, year: int) -> list[Holiday]:
        if self.breaker:
            self.breaker.check(self.name)

        url = self.config.base_url.format(year=year)
        attempts = self.config.max_retries + 1
        last_error: Exception | None = None

        for attempt in range(attempts):
            if attempt:
                delay = self.config.retry_backoff_seconds * (2 ** (attempt - 1))
                logger.info(f"Retrying holiday lookup for {year} in {delay:.2f}s (attempt {attempt + 1}/{attempts})")
                await asyncio.sleep(delay)
            try:
                payload = await self._get(url)
                holidays = self._parse(payload, year)
            except _TransientError as e:
                last_error = e
                continue
            except ExternalSourceError:
                self._record_failure()
                raise

            if self.breaker:
                self.breaker.record_success(self.name)
            logger.info(f"Loaded {len(holidays)} holidays for {year} from {self.name}")
            return holidays

        self._record_failure()
        raise ExternalSourceError(f"Holiday lookup for {year} failed after {attempts} attempts: {last_error}")

    async def _get(self, url: str) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self.transport,
                headers={"Accept": "application/json", "User-Agent": "ucs-engine/0.1"},
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            raise _TransientError(f"Request timeout: {url}") from e
        except httpx.TransportError as e:
            raise _TransientError(f"Failed to connect to {url}: {e}") from e
        except httpx.HTTPError as e:
            raise ExternalSourceError(f"Holiday API request failed: {e}") from e

        if response.status_code >= 500:
            raise _TransientError(f"Holiday API error: {response.status_code}")
        if response.status_code >= 400:
            raise ExternalSourceError(
                f"Holiday API error: {response.status_code} - {response.text[:200]}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise ExternalSourceError(f"Holiday API returned invalid JSON: {e}") from e

    def _parse(self, payload: Any, year: int) -> list[Holiday]:
        if not isinstance(payload, list):
            raise ExternalSourceError("Holiday API returned an unexpected payload")

        holidays = []
        for item in payload:
            try:
                holiday_date = date.fromisoformat(item["date"])
            except (KeyError, TypeError, ValueError) as e:
                raise ExternalSourceError(f"Holiday API returned a malformed entry: {item!r}") from e
            if holiday_date.year != year:
                continue
            holidays.append(Holiday(
                date=holiday_date,
                name=item.get("name") or "Feriado",
                type=item.get("type") or "national",
            ))
        return holidays

    def _record_failure(self) -> None:
        if self.breaker:
            self.breaker.record_failure(self.name)


class _TransientError(ExternalSourceError):
    """A failure worth retrying."""
    pass


def create_holiday_source(config: CalendarConfig) -> HolidaySource:
    """Build the configured holiday source."""
    if config.source == "static":
        return StaticHolidaySource()
    if config.source == "brasilapi":
        return BrasilApiHolidaySource(
            config=config,
            breaker=CircuitBreaker(config=config.circuit_breaker),
        )
    raise ConfigurationError(f"Unknown holiday source: {config.source}")
