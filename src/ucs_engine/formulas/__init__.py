"""Formula evaluation - parameters, formula library and engine."""

from .parameters import FormulaParameters
from .library import Formula, get_formula, formula_keys
from .engine import FormulaEngine

__all__ = [
    "FormulaParameters",
    "Formula",
    "get_formula",
    "formula_keys",
    "FormulaEngine",
]
