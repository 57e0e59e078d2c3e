"""Simulation - preview of an edit's impact, with advisory alerts."""

from .types import SimulationResult, SimulationSummary
from .service import SimulationService, validate_edit_set
from .alerts import Alert, AlertGenerator, AlertKind, AlertSeverity

__all__ = [
    "SimulationResult",
    "SimulationSummary",
    "SimulationService",
    "validate_edit_set",
    "Alert",
    "AlertGenerator",
    "AlertKind",
    "AlertSeverity",
]
