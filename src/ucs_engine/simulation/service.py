"""Simulation service - side-effect-free preview of an edit."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Mapping

from ..errors import ComputationError, UcsError
from ..formulas.engine import FormulaEngine
from ..graph.registry import AssetGraph
from ..graph.resolver import AffectedSetResolver
from .types import MANUAL_OVERRIDE, SimulationResult

logger = logging.getLogger(__name__)


def validate_edit_set(
    resolver: AffectedSetResolver,
    edit_set: Mapping[str, float],
) -> dict[str, float]:
    """
    Check an edit set and return it as a plain dict of floats.

    Raises UnknownAssetError / NotBaseAssetError for bad ids and
    ComputationError for prices that are not finite numbers.
    """
    if not edit_set:
        raise UcsError("Edit set is empty")
    resolver.validate(edit_set)
    cleaned: dict[str, float] = {}
    for asset_id, price in edit_set.items():
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            raise ComputationError(asset_id, f"price is not a number ({price!r})")
        if not math.isfinite(price):
            raise ComputationError(asset_id, f"price is not finite ({price})")
        cleaned[asset_id] = float(price)
    return cleaned


@dataclass
class SimulationService:
    """
    Previews the impact of an edit set on one date.

    Works on a copy of the supplied values and never touches a store, so
    any number of previews may run alongside a commit.
    """
    graph: AssetGraph
    engine: FormulaEngine
    resolver: AffectedSetResolver

    def validate_edit_set(self, edit_set: Mapping[str, float]) -> dict[str, float]:
        return validate_edit_set(self.resolver, edit_set)

    def simulate(
        self,
        target_date: date,
        current_values: Mapping[str, float],
        edit_set: Mapping[str, float],
    ) -> list[SimulationResult]:
        """
        One row per edited asset and per affected asset, in evaluation order.

        A row that cannot be computed carries its error; rows depending on
        it report the failed upstream asset instead of a value. Unrelated
        rows are still computed.
        """
        edits = self.validate_edit_set(edit_set)
        order = self.resolver.closure(edits)

        working: dict[str, float | None] = dict(current_values)
        working.update(edits)

        failed: set[str] = set()
        results: list[SimulationResult] = []

        for asset_id in order:
            node = self.graph.get_node(asset_id)
            current = current_values.get(asset_id)

            if asset_id in edits:
                results.append(SimulationResult(
                    id=asset_id,
                    name=node.display_name,
                    current_value=current,
                    new_value=edits[asset_id],
                    formula_description=MANUAL_OVERRIDE,
                ))
                continue

            description = self.engine.describe(asset_id)
            upstream = next((dep for dep in node.depends_on if dep in failed), None)
            if upstream is not None:
                error = str(ComputationError(asset_id, f"upstream asset {upstream} failed"))
            else:
                try:
                    value = self.engine.evaluate(asset_id, working)
                except ComputationError as e:
                    error = str(e)
                else:
                    working[asset_id] = value
                    results.append(SimulationResult(
                        id=asset_id,
                        name=node.display_name,
                        current_value=current,
                        new_value=value,
                        formula_description=description,
                    ))
                    continue

            failed.add(asset_id)
            # Later rows must not read the stale pre-edit value
            working.pop(asset_id, None)
            results.append(SimulationResult(
                id=asset_id,
                name=node.display_name,
                current_value=current,
                new_value=None,
                formula_description=description,
                error=error,
            ))

        logger.debug(
            f"Simulated {sorted(edits)} on {target_date.isoformat()}: "
            f"{len(results)} rows, {len(failed)} failed"
        )
        return results
