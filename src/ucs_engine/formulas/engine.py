"""Formula evaluation engine - pure computation of derived asset values."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ..errors import ComputationError, ConfigurationError
from ..graph.registry import AssetGraph
from ..graph.resolver import AffectedSetResolver
from .library import Formula, get_formula
from .parameters import FormulaParameters

logger = logging.getLogger(__name__)


@dataclass
class FormulaEngine:
    """
    Evaluates derived assets from a snapshot of current values.

    Pure and deterministic: the graph and parameters are fixed at
    construction, ``evaluate`` reads only its arguments, and nothing is
    cached between calls.

    Construction fails with ConfigurationError if a derived node names an
    unknown formula or one whose arity does not match its dependencies.
    """
    graph: AssetGraph
    parameters: FormulaParameters = field(default_factory=FormulaParameters)

    _formulas: dict[str, Formula] = field(default_factory=dict, init=False)

    def __post_init__(self):
        for node in self.graph.derived_nodes():
            formula = get_formula(node.formula_key)
            if formula is None:
                raise ConfigurationError(
                    f"Asset {node.id} uses unknown formula '{node.formula_key}'"
                )
            if not formula.accepts(len(node.depends_on)):
                raise ConfigurationError(
                    f"Formula '{formula.key}' expects {formula.arity} inputs, "
                    f"asset {node.id} declares {len(node.depends_on)}"
                )
            if formula.legacy:
                logger.warning(
                    f"Asset {node.id} uses legacy formula '{formula.key}'; "
                    f"results will not match the published index"
                )
            self._formulas[node.id] = formula

    def evaluate(self, node_id: str, values: Mapping[str, float | None]) -> float:
        """
        Compute the value of one asset from ``values``.

        Base assets evaluate to their own value. Raises ComputationError
        naming ``node_id`` for missing or non-finite inputs and for results
        that are not finite (division by zero included).
        """
        node = self.graph.get_node(node_id)

        if node.is_base:
            return self._input(node_id, node_id, values)

        inputs = [self._input(node_id, dep, values) for dep in node.depends_on]
        formula = self._formulas[node_id]

        try:
            result = float(formula.fn(inputs, self.parameters))
        except ZeroDivisionError:
            raise ComputationError(node_id, "division by zero") from None
        except OverflowError:
            raise ComputationError(node_id, "numeric overflow") from None

        if not math.isfinite(result):
            raise ComputationError(node_id, f"result is not finite ({result})")

        logger.debug(f"Evaluated {node_id} = {result}")
        return result

    def evaluate_in_order(
        self,
        order: Iterable[str],
        values: Mapping[str, float | None],
    ) -> dict[str, float]:
        """
        Evaluate ids in the given order against a working copy of ``values``.

        Each result is written back before the next id, so later ids see
        earlier results. Stops at the first ComputationError.
        """
        working = dict(values)
        computed: dict[str, float] = {}
        for node_id in order:
            value = self.evaluate(node_id, working)
            working[node_id] = value
            computed[node_id] = value
        return computed

    def evaluate_all(self, values: Mapping[str, float | None]) -> dict[str, float]:
        """Compute every derived asset from base values, in dependency order."""
        resolver = AffectedSetResolver(self.graph)
        order = resolver.closure(n.id for n in self.graph.base_nodes())
        derived = [node_id for node_id in order if not self.graph.get_node(node_id).is_base]
        return self.evaluate_in_order(derived, values)

    def describe(self, node_id: str) -> str:
        """Human-readable formula with the current constants."""
        node = self.graph.get_node(node_id)
        if node.is_base:
            return "quoted value"
        return self._formulas[node_id].describe(self.parameters)

    def formula_for(self, node_id: str) -> Formula | None:
        return self._formulas.get(node_id)

    @staticmethod
    def _input(node_id: str, dep: str, values: Mapping[str, float | None]) -> float:
        value = values.get(dep)
        if value is None:
            if node_id == dep:
                raise ComputationError(node_id, "no value available")
            raise ComputationError(node_id, f"missing input {dep}")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ComputationError(node_id, f"input {dep} is not a number ({value!r})")
        if not math.isfinite(value):
            raise ComputationError(node_id, f"input {dep} is not finite ({value})")
        return float(value)
