"""Asset graph types - calculation classes, nodes and dated values."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any


class CalculationType(str, Enum):
    """How an asset's value is obtained."""
    BASE = "base"               # Directly quoted, editable
    CALCULATED = "calculated"   # Intermediate conversion
    SUB_INDEX = "sub-index"
    INDEX = "index"
    MAIN_INDEX = "main-index"
    CREDIT = "credit"


@dataclass(frozen=True, slots=True)
class AssetNode:
    """
    One tracked asset.

    ``depends_on`` is ordered: formulas receive their inputs in this order.
    ``formula`` names a registered formula and defaults to the node id.
    """
    id: str
    calculation_type: CalculationType = CalculationType.BASE
    depends_on: tuple[str, ...] = ()
    name: str = ""
    formula: str | None = None
    currency: str = "BRL"
    description: str = ""

    # Zero is a legitimate value (suppresses zero-value alerts)
    expected_zero: bool = False

    @property
    def is_base(self) -> bool:
        return self.calculation_type == CalculationType.BASE

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def formula_key(self) -> str | None:
        if self.is_base:
            return None
        return self.formula or self.id


@dataclass(frozen=True, slots=True)
class AssetValue:
    """Value of one asset on one date."""
    asset_id: str
    date: date
    price: float
    currency: str = "BRL"
    is_override: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "date": self.date.isoformat(),
            "price": self.price,
            "currency": self.currency,
            "is_override": self.is_override,
        }
