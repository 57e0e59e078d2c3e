"""Formula library - the named formulas an asset node can reference.

Each formula takes its inputs in the node's ``depends_on`` order plus the
FormulaParameters, and returns a float. Formulas never check for finite
results themselves; the engine does that for every node.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from .parameters import FormulaParameters

logger = logging.getLogger(__name__)

FormulaFn = Callable[[Sequence[float], FormulaParameters], float]
DescribeFn = Callable[[FormulaParameters], str]


@dataclass(frozen=True)
class Formula:
    """A named formula with a fixed (or open) number of inputs."""
    key: str
    fn: FormulaFn
    describe: DescribeFn

    # None means any number of inputs (at least one)
    arity: int | None = None

    # Placeholder variants kept for comparison against old data only
    legacy: bool = False

    def accepts(self, n_inputs: int) -> bool:
        if self.arity is None:
            return n_inputs >= 1
        return n_inputs == self.arity


_FORMULAS: dict[str, Formula] = {}


def register(
    key: str,
    describe: DescribeFn,
    arity: int | None = None,
    legacy: bool = False,
) -> Callable[[FormulaFn], FormulaFn]:
    """Decorator registering a formula under ``key``."""
    def decorator(fn: FormulaFn) -> FormulaFn:
        _FORMULAS[key] = Formula(key=key, fn=fn, describe=describe, arity=arity, legacy=legacy)
        return fn
    return decorator


def get_formula(key: str) -> Formula | None:
    return _FORMULAS.get(key)


def formula_keys() -> list[str]:
    return sorted(_FORMULAS)


# =============================================================================
# Generic
# =============================================================================

@register("sum", lambda p: "sum of inputs")
def _sum(inputs, p):
    return sum(inputs)


@register("product", lambda p: "product of inputs")
def _product(inputs, p):
    result = 1.0
    for value in inputs:
        result *= value
    return result


# =============================================================================
# Price conversions
# =============================================================================

@register(
    "milho_ton_brl",
    lambda p: f"(milho / 100) × (1000 / {p.milho_bushel_kg}) × usd",
    arity=2,
)
def _milho_ton_brl(inputs, p):
    cents_per_bushel, usd = inputs
    return (cents_per_bushel / 100) * (1000 / p.milho_bushel_kg) * usd


@register(
    "soja_ton_brl",
    lambda p: f"(soja / 100) × (1000 / {p.soja_bushel_kg}) × usd",
    arity=2,
)
def _soja_ton_brl(inputs, p):
    cents_per_bushel, usd = inputs
    return (cents_per_bushel / 100) * (1000 / p.soja_bushel_kg) * usd


@register(
    "madeira_tora_brl",
    lambda p: (
        f"(madeira / 1000) × {p.lumber_m3_per_mbf} × usd × {p.fator_conversao_serrada_tora}"
    ),
    arity=2,
)
def _madeira_tora_brl(inputs, p):
    usd_per_mbf, usd = inputs
    sawn_m3_usd = (usd_per_mbf / 1000) * p.lumber_m3_per_mbf
    return sawn_m3_usd * usd * p.fator_conversao_serrada_tora


# =============================================================================
# Revenue per hectare
# =============================================================================

@register("renda_pecuaria", lambda p: f"boi_gordo × {p.prod_boi}", arity=1)
def _renda_pecuaria(inputs, p):
    return inputs[0] * p.prod_boi


@register("renda_milho", lambda p: f"milho BRL/t × {p.prod_milho}", arity=1)
def _renda_milho(inputs, p):
    return inputs[0] * p.prod_milho


@register("renda_soja", lambda p: f"soja BRL/t × {p.prod_soja}", arity=1)
def _renda_soja(inputs, p):
    return inputs[0] * p.prod_soja


# =============================================================================
# UCS components
# =============================================================================

@register("vm", lambda p: f"VM = {p.volume_madeira_ha} m³/ha × timber price", arity=1)
def _vm(inputs, p):
    return p.volume_madeira_ha * inputs[0]


@register(
    "vus",
    lambda p: (
        f"VUS = (pecuária × {p.peso_pec} + milho × {p.peso_milho} + soja × {p.peso_soja})"
        f" / {p.fator_arrend}"
    ),
    arity=3,
)
def _vus(inputs, p):
    pecuaria, milho, soja = inputs
    weighted = pecuaria * p.peso_pec + milho * p.peso_milho + soja * p.peso_soja
    return weighted / p.fator_arrend


@register(
    "vus_legacy",
    lambda p: (
        f"(pecuária × 25 × {p.peso_pec} + milho × 25 × {p.peso_milho} + soja × 25 × {p.peso_soja})"
        f" × (1 - {p.fator_arrend})  [legacy]"
    ),
    arity=3,
    legacy=True,
)
def _vus_legacy(inputs, p):
    pecuaria, milho, soja = inputs
    weighted = (pecuaria * 25 * p.peso_pec) + (milho * 25 * p.peso_milho) + (soja * 25 * p.peso_soja)
    return weighted * (1 - p.fator_arrend)


@register(
    "carbono_crs",
    lambda p: f"carbon price × {p.volume_madeira_ha} × {p.fator_carbono}",
    arity=1,
)
def _carbono_crs(inputs, p):
    return inputs[0] * p.volume_madeira_ha * p.fator_carbono


@register("agua_crs", lambda p: f"VUS × {p.fator_agua}", arity=1)
def _agua_crs(inputs, p):
    return inputs[0] * p.fator_agua


@register("ivp", lambda p: f"IVP = (PDM / {p.carbono_estocado}) / 2", arity=1)
def _ivp(inputs, p):
    return (inputs[0] / p.carbono_estocado) / 2


@register("ucs", lambda p: "UCS = 2 × IVP", arity=1)
def _ucs(inputs, p):
    return 2 * inputs[0]


@register("ucs_ase", lambda p: f"UCS ASE = UCS × {p.ucs_ase_multiplier}", arity=1)
def _ucs_ase(inputs, p):
    return inputs[0] * p.ucs_ase_multiplier


# =============================================================================
# Currency views
# =============================================================================

@register("brl_to_fx", lambda p: "value in BRL ÷ exchange rate", arity=2)
def _brl_to_fx(inputs, p):
    value_brl, rate = inputs
    return value_brl / rate
