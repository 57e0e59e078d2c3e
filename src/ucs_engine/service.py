"""Core service layer - the operations exposed to UI, automation and CLI.

Flow for a manual price correction:
1. ``simulate`` previews the impact against the stored values (read-only)
2. The operator reviews rows and advisory alerts
3. ``commit`` gates the date, recomputes and persists everything at once
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping

from .business_days.gate import BusinessDayGate, GateDecision
from .business_days.holidays import HolidaySource
from .config import Config
from .errors import ComputationError, ConfigurationError, GateBlockedError
from .formulas.engine import FormulaEngine
from .graph.defaults import create_default_graph
from .graph.loader import load_graph
from .graph.registry import AssetGraph
from .graph.resolver import AffectedSetResolver
from .graph.types import AssetValue
from .recalc.orchestrator import RecalculationOrchestrator
from .recalc.types import AuditAction, AuditLogEntry, RecalculationJob, RecalculationPlan
from .simulation.alerts import Alert, AlertGenerator
from .simulation.service import SimulationService
from .simulation.types import SimulationResult, SimulationSummary
from .store.base import AuditStore, QuoteStore
from .store.file import JsonlAuditStore
from .store.memory import InMemoryAuditStore, InMemoryQuoteStore
from .store.seed import load_quote_file


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationReport:
    """A preview with its summary and advisory alerts."""
    target_date: date
    results: list[SimulationResult]
    summary: SimulationSummary
    alerts: list[Alert]

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_date": self.target_date.isoformat(),
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary.to_dict(),
            "alerts": [a.to_dict() for a in self.alerts],
        }


def create_audit_store(config: Config) -> AuditStore:
    sink_type = config.audit.sink_type
    if sink_type == "memory":
        return InMemoryAuditStore()
    if sink_type == "file":
        return JsonlAuditStore(path=config.audit.path)
    raise ConfigurationError(f"Unknown audit sink type: {sink_type}")


def create_quote_store(config: Config, engine: FormulaEngine) -> QuoteStore:
    """
    In-memory quote store, seeded from ``quotes.seed_file`` when set.

    Seed files may carry base quotes only; missing derived values are
    computed on load.
    """
    if not config.quotes.seed_file:
        return InMemoryQuoteStore()

    quotes = load_quote_file(config.quotes.seed_file)
    for target_date, values in quotes.items():
        try:
            derived = engine.evaluate_all(values)
        except ComputationError as e:
            logger.warning(f"Seed quotes for {target_date.isoformat()} incomplete: {e}")
            continue
        for asset_id, value in derived.items():
            values.setdefault(asset_id, value)
    return InMemoryQuoteStore(quotes)


@dataclass
class UcsService:
    """
    Wires the graph, formulas, gate and stores together.

    Build with ``from_config``; every collaborator can be swapped for
    tests (holiday source, stores).
    """
    graph: AssetGraph
    engine: FormulaEngine
    gate: BusinessDayGate
    quote_store: QuoteStore
    audit_store: AuditStore
    config: Config = field(default_factory=Config)

    resolver: AffectedSetResolver = field(init=False)
    simulation: SimulationService = field(init=False)
    alerts: AlertGenerator = field(init=False)
    orchestrator: RecalculationOrchestrator = field(init=False)

    def __post_init__(self):
        self.resolver = AffectedSetResolver(self.graph)
        self.simulation = SimulationService(self.graph, self.engine, self.resolver)
        self.alerts = AlertGenerator(self.graph, self.config.alerts)
        self.orchestrator = RecalculationOrchestrator(
            graph=self.graph,
            engine=self.engine,
            resolver=self.resolver,
            gate=self.gate,
            quote_store=self.quote_store,
            audit_store=self.audit_store,
        )

    @classmethod
    def from_config(
        cls,
        config: Config,
        holiday_source: HolidaySource | None = None,
        quote_store: QuoteStore | None = None,
        audit_store: AuditStore | None = None,
    ) -> UcsService:
        """Build the service. Raises ConfigurationError on an invalid graph or formula set."""
        if config.graph.definition_file:
            graph = load_graph(config.graph.definition_file)
        else:
            graph = create_default_graph()

        engine = FormulaEngine(graph, config.formula)
        gate = BusinessDayGate.from_config(config.calendar, source=holiday_source)

        service = cls(
            graph=graph,
            engine=engine,
            gate=gate,
            quote_store=quote_store or create_quote_store(config, engine),
            audit_store=audit_store or create_audit_store(config),
            config=config,
        )
        logger.info(
            f"UCS service ready: {len(graph)} assets, holidays from {gate.source.name}"
        )
        return service

    async def start(self) -> None:
        await self.quote_store.start()
        await self.audit_store.start()

    async def stop(self) -> None:
        await self.audit_store.stop()
        await self.quote_store.stop()

    # =========================================================================
    # Preview
    # =========================================================================

    def affected(self, edited_ids: Iterable[str]) -> list[str]:
        return self.resolver.resolve(edited_ids)

    async def simulate(self, target_date: date, edit_set: Mapping[str, float]) -> SimulationReport:
        """Preview ``edit_set`` against the stored values for ``target_date``."""
        current = await self.quote_store.get_values(target_date)
        return self.simulate_values(target_date, current, edit_set)

    def simulate_values(
        self,
        target_date: date,
        current_values: Mapping[str, float],
        edit_set: Mapping[str, float],
    ) -> SimulationReport:
        """Preview ``edit_set`` against caller-supplied values."""
        results = self.simulation.simulate(target_date, current_values, edit_set)
        return SimulationReport(
            target_date=target_date,
            results=results,
            summary=SimulationSummary.of(results),
            alerts=self.alerts.generate(results),
        )

    async def plan(self, target_date: date, edit_set: Mapping[str, float]) -> RecalculationPlan:
        """
        The recalculation plan for ``edit_set`` on ``target_date``.

        Raises GateBlockedError when the date is not a business day.
        """
        await self.ensure_business_day(target_date)
        return self.orchestrator.plan(edit_set)

    # =========================================================================
    # Commit
    # =========================================================================

    async def commit(
        self,
        target_date: date,
        edit_set: Mapping[str, float],
        actor: str = "anonymous",
    ) -> RecalculationJob:
        return await self.orchestrator.commit(target_date, edit_set, actor)

    async def audit_for_date(self, target_date: date) -> list[AuditLogEntry]:
        return await self.audit_store.entries_for_date(target_date)

    async def values_for_date(self, target_date: date) -> list[AssetValue]:
        """
        Stored values for the date in declaration order.

        An asset counts as overridden when its latest audit entry for the
        date is a manual edit.
        """
        values = await self.quote_store.get_values(target_date)
        latest: dict[str, AuditAction] = {}
        for entry in await self.audit_store.entries_for_date(target_date):
            latest[entry.asset_id] = entry.action

        return [
            AssetValue(
                asset_id=node.id,
                date=target_date,
                price=values[node.id],
                currency=node.currency,
                is_override=latest.get(node.id) == AuditAction.EDIT,
            )
            for node in self.graph
            if node.id in values
        ]

    # =========================================================================
    # Business days
    # =========================================================================

    async def check(self, target_date: date, suggest: bool = False) -> GateDecision:
        """
        Is ``target_date`` a business day?

        With ``suggest`` a blocked decision also carries the next business
        day, which may require extra calendar lookups.
        """
        if suggest:
            return await self.gate.validate_operation(target_date)
        return await self.gate.check(target_date)

    async def ensure_business_day(self, target_date: date) -> None:
        decision = await self.gate.validate_operation(target_date)
        if not decision.allowed:
            raise GateBlockedError(decision.reason or "blocked", decision.suggested_date)

    async def next_business_day(self, target_date: date) -> date:
        return await self.gate.next_business_day(target_date)

    async def previous_business_day(self, target_date: date) -> date:
        return await self.gate.previous_business_day(target_date)
