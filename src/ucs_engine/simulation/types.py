"""Simulation result types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

MANUAL_OVERRIDE = "manual override"


@dataclass(frozen=True, slots=True)
class SimulationResult:
    """One row of a preview: an asset's value before and after the edit."""
    id: str
    name: str
    current_value: float | None
    new_value: float | None
    formula_description: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def change(self) -> float | None:
        """Relative change from current to new, or None when undefined."""
        if self.new_value is None or not self.current_value:
            return None
        return (self.new_value - self.current_value) / abs(self.current_value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "current_value": self.current_value,
            "new_value": self.new_value,
            "formula_description": self.formula_description,
            "error": self.error,
            "change": self.change,
        }


@dataclass(frozen=True)
class SimulationSummary:
    """Counts over a preview, for display ("3 of 4 ok, 1 failed: ...")."""
    total: int
    ok_count: int
    failed_count: int
    errors: tuple[str, ...] = ()

    @classmethod
    def of(cls, results: Iterable[SimulationResult]) -> SimulationSummary:
        rows = list(results)
        errors = tuple(r.error for r in rows if r.error is not None)
        return cls(
            total=len(rows),
            ok_count=len(rows) - len(errors),
            failed_count=len(errors),
            errors=errors,
        )

    def summary(self) -> str:
        text = f"{self.ok_count} of {self.total} ok"
        if self.failed_count:
            text += f", {self.failed_count} failed: " + "; ".join(self.errors)
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "ok_count": self.ok_count,
            "failed_count": self.failed_count,
            "errors": list(self.errors),
            "summary": self.summary(),
        }
