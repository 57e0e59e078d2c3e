"""Recalculation - committing edits for a date."""

from .types import (
    AuditAction,
    AuditLogEntry,
    JobStatus,
    PlanStep,
    PlanStepKind,
    RecalculationJob,
    RecalculationPlan,
)
from .orchestrator import RecalculationOrchestrator

__all__ = [
    "AuditAction",
    "AuditLogEntry",
    "JobStatus",
    "PlanStep",
    "PlanStepKind",
    "RecalculationJob",
    "RecalculationPlan",
    "RecalculationOrchestrator",
]
