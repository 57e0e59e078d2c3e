"""Formula constants - productivities, weights and conversion factors."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from typing import Any

from ..errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class FormulaParameters:
    """
    Every constant used by the UCS formulas.

    Operators retune these through the ``formula`` section of the config
    file; nothing in the engine hard-codes them.
    """
    # Productivity per hectare
    prod_boi: float = 18.0          # arrobas/ha
    prod_milho: float = 7.2         # t/ha
    prod_soja: float = 3.3          # t/ha
    volume_madeira_ha: float = 120.0  # m3/ha

    # VUS weights
    peso_pec: float = 0.35
    peso_milho: float = 0.30
    peso_soja: float = 0.35

    # Capitalization and cost factors
    fator_arrend: float = 0.048
    fator_agua: float = 0.07
    fator_carbono: float = 2.59     # tCO2/ha
    fator_conversao_serrada_tora: float = 0.3756

    # Unit conversions
    lumber_m3_per_mbf: float = 424.0
    milho_bushel_kg: float = 25.4
    soja_bushel_kg: float = 27.2

    # Index
    carbono_estocado: float = 900.0
    ucs_ase_multiplier: float = 2.0

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"Formula parameter {f.name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ConfigurationError(f"Formula parameter {f.name} must be finite, got {value!r}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FormulaParameters:
        """Create parameters from a dict, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown formula parameters: {', '.join(unknown)}")
        return cls(**data)

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    def replace(self, **changes: float) -> FormulaParameters:
        """Return a copy with some constants changed."""
        data = self.to_dict()
        data.update(changes)
        return FormulaParameters.from_dict(data)
