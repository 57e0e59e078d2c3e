"""Exception hierarchy for the UCS engine.

Every error carries a message that is safe to show to an operator as-is.
"""

from __future__ import annotations

from datetime import date


class UcsError(Exception):
    """Base exception for all engine errors."""
    pass


class ConfigurationError(UcsError):
    """Raised at startup when the asset graph or parameters are invalid."""
    pass


class UnknownAssetError(UcsError):
    """Raised when an asset id is not part of the graph."""

    def __init__(self, asset_id: str):
        super().__init__(f"Unknown asset: {asset_id}")
        self.asset_id = asset_id


class NotBaseAssetError(UcsError):
    """Raised when an edit targets a derived asset."""

    def __init__(self, asset_id: str, calculation_type: str):
        super().__init__(
            f"Asset {asset_id} is {calculation_type} and cannot be edited manually"
        )
        self.asset_id = asset_id
        self.calculation_type = calculation_type


class ComputationError(UcsError):
    """Raised when a formula cannot produce a finite value for an asset."""

    def __init__(self, asset_id: str, reason: str):
        super().__init__(f"Cannot compute {asset_id}: {reason}")
        self.asset_id = asset_id
        self.reason = reason


class GateBlockedError(UcsError):
    """A date is not eligible for recalculation (weekend or holiday)."""

    def __init__(self, reason: str, suggested_date: date | None = None):
        super().__init__(reason)
        self.reason = reason
        self.suggested_date = suggested_date


class ExternalSourceError(UcsError):
    """Raised by holiday sources when the calendar cannot be fetched."""
    pass


class ConcurrentCommitError(UcsError):
    """Raised when a recalculation is already running for a date."""

    def __init__(self, target_date: date):
        super().__init__(f"A recalculation is already running for {target_date.isoformat()}")
        self.target_date = target_date
