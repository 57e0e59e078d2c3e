"""Shared test fixtures for the UCS engine.

Graphs, formula parameters, deterministic clocks and holiday sources
that record how often they were asked.
"""

from __future__ import annotations

import asyncio
from datetime import date
from pathlib import Path

import pytest

from ucs_engine.business_days.gate import BusinessDayGate
from ucs_engine.business_days.holidays import Holiday, HolidaySource, StaticHolidaySource
from ucs_engine.cache.memory import TTLCache
from ucs_engine.errors import ExternalSourceError
from ucs_engine.formulas.engine import FormulaEngine
from ucs_engine.formulas.parameters import FormulaParameters
from ucs_engine.graph.defaults import create_default_graph
from ucs_engine.graph.registry import AssetGraph
from ucs_engine.graph.resolver import AffectedSetResolver
from ucs_engine.graph.types import AssetNode, CalculationType


REPO_ROOT = Path(__file__).parent.parent

# Christmas Eve 2025 is a Wednesday; Christmas a Thursday
TRADING_DAY = date(2025, 12, 24)
CHRISTMAS = date(2025, 12, 25)

BASE_QUOTES = {
    "usd": 5.52,
    "eur": 6.47,
    "boi_gordo": 319.10,
    "milho": 447.00,
    "soja": 1058.50,
    "madeira": 551.50,
    "carbono": 72.85,
}


class ManualClock:
    """Clock the test moves by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingHolidaySource(HolidaySource):
    """Holiday source that counts lookups and can be told to fail or stall."""

    def __init__(self, holidays: list[Holiday] | None = None, delay: float = 0.0):
        self.holidays = list(holidays or [])
        self.delay = delay
        self.calls: list[int] = []
        self.fail = False

    @property
    def name(self) -> str:
        return "counting"

    async def fetch_holidays(self, year: int) -> list[Holiday]:
        self.calls.append(year)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ExternalSourceError("calendar unavailable")
        return [h for h in self.holidays if h.date.year == year]


# =============================================================================
# Graph Fixtures
# =============================================================================

@pytest.fixture
def example_graph() -> AssetGraph:
    """Three commodities feeding VUS, then PDM, then the main index."""
    return AssetGraph([
        AssetNode("boi_gordo", CalculationType.BASE),
        AssetNode("milho", CalculationType.BASE),
        AssetNode("soja", CalculationType.BASE),
        AssetNode("vus", CalculationType.CALCULATED, ("boi_gordo", "milho", "soja")),
        AssetNode("pdm", CalculationType.INDEX, ("vus",), formula="sum"),
        AssetNode("ucs_ase", CalculationType.MAIN_INDEX, ("pdm",)),
    ])


@pytest.fixture
def default_graph() -> AssetGraph:
    return create_default_graph()


@pytest.fixture
def parameters() -> FormulaParameters:
    return FormulaParameters()


@pytest.fixture
def example_engine(example_graph, parameters) -> FormulaEngine:
    return FormulaEngine(example_graph, parameters)


@pytest.fixture
def default_engine(default_graph, parameters) -> FormulaEngine:
    return FormulaEngine(default_graph, parameters)


@pytest.fixture
def example_resolver(example_graph) -> AffectedSetResolver:
    return AffectedSetResolver(example_graph)


@pytest.fixture
def default_resolver(default_graph) -> AffectedSetResolver:
    return AffectedSetResolver(default_graph)


@pytest.fixture
def default_values(default_engine) -> dict[str, float]:
    """A complete, consistent set of values for the default graph."""
    values = dict(BASE_QUOTES)
    values.update(default_engine.evaluate_all(values))
    return values


# =============================================================================
# Business-Day Fixtures
# =============================================================================

@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def holiday_source() -> CountingHolidaySource:
    return CountingHolidaySource([
        Holiday(date(2025, 12, 25), "Natal"),
        Holiday(date(2025, 11, 20), "Dia Nacional de Zumbi e da Consciência Negra"),
        Holiday(date(2026, 1, 1), "Confraternização Universal"),
    ])


@pytest.fixture
def gate(holiday_source, clock) -> BusinessDayGate:
    return BusinessDayGate(
        source=holiday_source,
        cache=TTLCache(clock=clock),
        lookup_timeout_seconds=1.0,
    )


@pytest.fixture
def static_gate() -> BusinessDayGate:
    return BusinessDayGate(source=StaticHolidaySource())
