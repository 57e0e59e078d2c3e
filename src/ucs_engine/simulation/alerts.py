"""Advisory alerts over a simulation - nothing here blocks a commit."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from ..config import AlertConfig
from ..errors import NotBaseAssetError, UcsError
from ..graph.registry import AssetGraph
from .types import SimulationResult

logger = logging.getLogger(__name__)


class AlertKind(str, Enum):
    ZERO_VALUE = "zero_value"
    LARGE_SWING = "large_swing"
    COMPUTATION_ERROR = "computation_error"


class AlertSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class Alert:
    """Something an analyst should look at before confirming."""
    asset_id: str
    kind: AlertKind
    severity: AlertSeverity
    message: str
    current_value: float | None = None
    new_value: float | None = None
    change: float | None = None

    # Value to fall back to if the analyst accepts the alert
    suggested_value: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "current_value": self.current_value,
            "new_value": self.new_value,
            "change": self.change,
            "suggested_value": self.suggested_value,
        }


@dataclass
class AlertGenerator:
    """Flags zero values, large swings and failed rows in a preview."""
    graph: AssetGraph
    config: AlertConfig = field(default_factory=AlertConfig)

    def generate(self, results: Iterable[SimulationResult]) -> list[Alert]:
        alerts: list[Alert] = []
        for row in results:
            if row.error is not None:
                alerts.append(Alert(
                    asset_id=row.id,
                    kind=AlertKind.COMPUTATION_ERROR,
                    severity=AlertSeverity.CRITICAL,
                    message=row.error,
                    current_value=row.current_value,
                ))
                continue

            zero = self._zero_value(row)
            if zero is not None:
                alerts.append(zero)
                continue

            swing = self._large_swing(row)
            if swing is not None:
                alerts.append(swing)

        if alerts:
            logger.info(f"Generated {len(alerts)} alerts")
        return alerts

    def accept(self, alert: Alert) -> dict[str, float]:
        """
        Turn an alert into an edit-set entry restoring its suggested value.

        Only base assets can be edited; the returned entry goes through
        the normal simulate/commit path.
        """
        node = self.graph.get_node(alert.asset_id)
        if not node.is_base:
            raise NotBaseAssetError(node.id, node.calculation_type.value)
        if alert.suggested_value is None:
            raise UcsError(f"Alert for {alert.asset_id} has no suggested value")
        return {alert.asset_id: alert.suggested_value}

    def _zero_value(self, row: SimulationResult) -> Alert | None:
        if not self.config.flag_zero_values or row.new_value != 0:
            return None
        if self.graph.get_node(row.id).expected_zero:
            return None
        return Alert(
            asset_id=row.id,
            kind=AlertKind.ZERO_VALUE,
            severity=AlertSeverity.CRITICAL,
            message=f"{row.name} would be zero",
            current_value=row.current_value,
            new_value=row.new_value,
            suggested_value=row.current_value or None,
        )

    def _large_swing(self, row: SimulationResult) -> Alert | None:
        change = row.change
        threshold = self.config.swing_threshold
        if change is None or abs(change) <= threshold:
            return None

        severity = AlertSeverity.CRITICAL if abs(change) > 2 * threshold else AlertSeverity.WARNING
        return Alert(
            asset_id=row.id,
            kind=AlertKind.LARGE_SWING,
            severity=severity,
            message=f"{row.name} changes by {change:+.1%}",
            current_value=row.current_value,
            new_value=row.new_value,
            change=change,
            suggested_value=row.current_value,
        )
