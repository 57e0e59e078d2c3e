"""Recalculation types - jobs, plans and audit entries."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
    """Lifecycle of a recalculation job."""
    PENDING = "pending"
    RUNNING = "running"
    COMMITTED = "committed"
    REJECTED = "rejected"   # Gate blocked or concurrent commit
    FAILED = "failed"       # Validation or computation error; nothing written

    @property
    def is_final(self) -> bool:
        return self in (JobStatus.COMMITTED, JobStatus.REJECTED, JobStatus.FAILED)


class AuditAction(str, Enum):
    EDIT = "edit"
    RECALCULATE = "recalculate"


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class AuditLogEntry:
    """
    One change to one asset on one date. Append-only.

    For ``edit`` entries ``affected_assets`` lists the recomputed
    dependents of the edit; for ``recalculate`` entries it lists the edited
    base assets that triggered the recomputation.
    """
    action: AuditAction
    asset_id: str
    target_date: date
    new_value: float
    old_value: float | None = None
    asset_name: str = ""
    user: str = "anonymous"
    affected_assets: tuple[str, ...] = ()
    details: str = ""
    job_id: str | None = None
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "action": self.action.value,
            "asset_id": self.asset_id,
            "asset_name": self.asset_name,
            "target_date": self.target_date.isoformat(),
            "old_value": self.old_value,
            "new_value": self.new_value,
            "user": self.user,
            "affected_assets": list(self.affected_assets),
            "details": self.details,
            "job_id": self.job_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditLogEntry:
        return cls(
            id=data["id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            action=AuditAction(data["action"]),
            asset_id=data["asset_id"],
            asset_name=data.get("asset_name", ""),
            target_date=date.fromisoformat(data["target_date"]),
            old_value=data.get("old_value"),
            new_value=data["new_value"],
            user=data.get("user", "anonymous"),
            affected_assets=tuple(data.get("affected_assets", ())),
            details=data.get("details", ""),
            job_id=data.get("job_id"),
        )


@dataclass
class RecalculationJob:
    """A commit request and everything that happened to it."""
    target_date: date
    edit_set: dict[str, float]
    actor: str = "anonymous"
    job_id: str = field(default_factory=_new_id)
    status: JobStatus = JobStatus.PENDING
    affected_set: list[str] = field(default_factory=list)

    # Display-ready explanation for rejected/failed jobs
    reason: str | None = None
    suggested_date: date | None = None

    # asset id -> committed value (edited and recomputed)
    results: dict[str, float] = field(default_factory=dict)
    audit_entries: list[AuditLogEntry] = field(default_factory=list)

    created_at: datetime = field(default_factory=_utcnow)
    finished_at: datetime | None = None

    def finish(self, status: JobStatus, reason: str | None = None) -> RecalculationJob:
        self.status = status
        self.reason = reason
        self.finished_at = _utcnow()
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "target_date": self.target_date.isoformat(),
            "actor": self.actor,
            "status": self.status.value,
            "edit_set": dict(self.edit_set),
            "affected_set": list(self.affected_set),
            "reason": self.reason,
            "suggested_date": self.suggested_date.isoformat() if self.suggested_date else None,
            "results": dict(self.results),
            "audit_entries": [e.to_dict() for e in self.audit_entries],
            "created_at": self.created_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class PlanStepKind(str, Enum):
    VALIDATION = "validation"
    UPDATE = "update"
    RECALCULATE = "recalculate"


@dataclass(frozen=True, slots=True)
class PlanStep:
    kind: PlanStepKind
    description: str
    asset_id: str | None = None


@dataclass(frozen=True)
class RecalculationPlan:
    """Ordered preview of what a commit would do."""
    edited: tuple[str, ...]
    affected_set: tuple[str, ...]
    steps: tuple[PlanStep, ...]
    estimate_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "edited": list(self.edited),
            "affected_set": list(self.affected_set),
            "steps": [
                {"kind": s.kind.value, "description": s.description, "asset_id": s.asset_id}
                for s in self.steps
            ],
            "estimate_ms": self.estimate_ms,
        }
