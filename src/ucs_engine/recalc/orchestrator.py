"""Recalculation orchestrator - gate, resolve, evaluate, persist and audit."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Mapping

from ..business_days.gate import BusinessDayGate
from ..errors import ComputationError, ConcurrentCommitError, UcsError
from ..formulas.engine import FormulaEngine
from ..graph.registry import AssetGraph
from ..graph.resolver import AffectedSetResolver
from ..simulation.service import validate_edit_set
from .types import (
    AuditAction,
    AuditLogEntry,
    JobStatus,
    PlanStep,
    PlanStepKind,
    RecalculationJob,
    RecalculationPlan,
)

if TYPE_CHECKING:
    from ..store.base import AuditStore, QuoteStore

logger = logging.getLogger(__name__)

# Plan estimate: per asset written, plus fixed overhead
ESTIMATE_MS_PER_ASSET = 500
ESTIMATE_MS_OVERHEAD = 2000


@dataclass
class RecalculationOrchestrator:
    """
    Commits an edit set for one date, all or nothing.

    At most one commit runs per date; a second commit for a date that is
    already running is rejected at once. Commits for the same date that
    run one after another each supersede the previous values they touch.
    """
    graph: AssetGraph
    engine: FormulaEngine
    resolver: AffectedSetResolver
    gate: BusinessDayGate
    quote_store: QuoteStore
    audit_store: AuditStore

    _running: set[date] = field(default_factory=set, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def is_running(self, target_date: date) -> bool:
        return target_date in self._running

    async def commit(
        self,
        target_date: date,
        edit_set: Mapping[str, float],
        actor: str = "anonymous",
    ) -> RecalculationJob:
        job = RecalculationJob(target_date=target_date, edit_set=dict(edit_set), actor=actor)

        async with self._lock:
            if target_date in self._running:
                logger.warning(f"Commit {job.job_id} rejected: {target_date.isoformat()} is busy")
                return job.finish(JobStatus.REJECTED, str(ConcurrentCommitError(target_date)))
            self._running.add(target_date)

        try:
            return await self._run(job)
        except Exception as e:
            logger.exception(f"Commit {job.job_id} for {target_date.isoformat()} crashed")
            return job.finish(JobStatus.FAILED, f"Unexpected error: {e}")
        finally:
            self._running.discard(target_date)

    async def _run(self, job: RecalculationJob) -> RecalculationJob:
        job.status = JobStatus.RUNNING
        day = job.target_date.isoformat()

        decision = await self.gate.validate_operation(job.target_date)
        if not decision.allowed:
            job.suggested_date = decision.suggested_date
            logger.info(f"Commit {job.job_id} for {day} rejected: {decision.reason}")
            return job.finish(JobStatus.REJECTED, decision.reason)

        try:
            edits = validate_edit_set(self.resolver, job.edit_set)
            job.affected_set = self.resolver.resolve(edits)
        except UcsError as e:
            logger.info(f"Commit {job.job_id} for {day} failed validation: {e}")
            return job.finish(JobStatus.FAILED, str(e))

        try:
            current = await self.quote_store.get_values(job.target_date)
        except Exception as e:
            logger.error(f"Commit {job.job_id} for {day} could not read quotes: {e}")
            return job.finish(JobStatus.FAILED, f"Quote store unavailable: {e}")

        working = {**current, **edits}
        recompute = [asset_id for asset_id in job.affected_set if asset_id not in edits]

        try:
            computed = self.engine.evaluate_in_order(recompute, working)
        except ComputationError as e:
            logger.info(f"Commit {job.job_id} for {day} failed: {e}")
            return job.finish(JobStatus.FAILED, str(e))

        job.results = {**edits, **computed}
        entries = self._audit_entries(job, current, edits, computed)

        try:
            # Past this point the commit runs to completion even if the caller goes away
            await asyncio.shield(self._persist(job, current, entries))
        except Exception as e:
            logger.error(f"Commit {job.job_id} for {day} not persisted: {e}")
            return job.finish(JobStatus.FAILED, f"Persistence failed: {e}")

        logger.info(
            f"Commit {job.job_id} for {day} by {job.actor}: "
            f"{len(edits)} edited, {len(computed)} recalculated, {len(entries)} changes audited"
        )
        return job.finish(JobStatus.COMMITTED)

    async def _persist(
        self,
        job: RecalculationJob,
        previous: Mapping[str, float],
        entries: list[AuditLogEntry],
    ) -> None:
        """
        Write values, then the audit batch.

        If the audit append fails the date's previous snapshot is put back,
        so values never change without their audit entries.
        """
        await self.quote_store.put_values(job.target_date, job.results)
        try:
            if entries:
                await self.audit_store.append(entries)
        except Exception:
            logger.warning(
                f"Audit append failed for commit {job.job_id}; "
                f"restoring {job.target_date.isoformat()} values"
            )
            await self.quote_store.replace_values(job.target_date, previous)
            raise
        job.audit_entries = entries

    def _audit_entries(
        self,
        job: RecalculationJob,
        current: Mapping[str, float],
        edits: dict[str, float],
        computed: dict[str, float],
    ) -> list[AuditLogEntry]:
        """One entry per asset whose value actually changes."""
        changed = {asset_id for asset_id, value in computed.items() if current.get(asset_id) != value}
        reached_by: dict[str, list[str]] = {asset_id: [] for asset_id in changed}
        entries: list[AuditLogEntry] = []

        for asset_id, price in edits.items():
            dependents = [d for d in self.resolver.resolve([asset_id]) if d in changed]
            for dependent in dependents:
                reached_by[dependent].append(asset_id)
            if current.get(asset_id) == price:
                continue
            entries.append(AuditLogEntry(
                action=AuditAction.EDIT,
                asset_id=asset_id,
                asset_name=self.graph.get_node(asset_id).display_name,
                target_date=job.target_date,
                old_value=current.get(asset_id),
                new_value=price,
                user=job.actor,
                affected_assets=tuple(dependents),
                details=f"Manual override; {len(dependents)} dependent assets changed",
                job_id=job.job_id,
            ))

        for asset_id, value in computed.items():
            if asset_id not in changed:
                continue
            entries.append(AuditLogEntry(
                action=AuditAction.RECALCULATE,
                asset_id=asset_id,
                asset_name=self.graph.get_node(asset_id).display_name,
                target_date=job.target_date,
                old_value=current.get(asset_id),
                new_value=value,
                user=job.actor,
                affected_assets=tuple(reached_by[asset_id]),
                details=self.engine.describe(asset_id),
                job_id=job.job_id,
            ))

        return entries

    def plan(self, edit_set: Mapping[str, float]) -> RecalculationPlan:
        """Ordered steps a commit of ``edit_set`` would perform, with a time estimate."""
        edits = validate_edit_set(self.resolver, edit_set)
        affected = self.resolver.resolve(edits)
        recompute = [asset_id for asset_id in affected if asset_id not in edits]

        steps = [PlanStep(PlanStepKind.VALIDATION, "Validate edit set and business day")]
        for asset_id, price in edits.items():
            name = self.graph.get_node(asset_id).display_name
            steps.append(PlanStep(PlanStepKind.UPDATE, f"Update {name} to {price:g}", asset_id))
        for asset_id in recompute:
            name = self.graph.get_node(asset_id).display_name
            steps.append(PlanStep(PlanStepKind.RECALCULATE, f"Recalculate {name}", asset_id))

        return RecalculationPlan(
            edited=tuple(edits),
            affected_set=tuple(affected),
            steps=tuple(steps),
            estimate_ms=ESTIMATE_MS_PER_ASSET * (len(edits) + len(recompute)) + ESTIMATE_MS_OVERHEAD,
        )
