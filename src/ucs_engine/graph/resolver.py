"""Affected-set resolution - which assets go stale when base assets change."""

from __future__ import annotations

import heapq
import logging
from collections import deque
from dataclasses import dataclass
from typing import Iterable

from ..errors import NotBaseAssetError, UnknownAssetError
from .registry import AssetGraph

logger = logging.getLogger(__name__)


@dataclass
class AffectedSetResolver:
    """
    Expands edited base assets into the ordered set of assets to recompute.

    The result contains every asset reachable over reverse dependency edges
    and nothing else, ordered so that each asset comes after all of its
    dependencies. Assets with no ordering constraint between them keep the
    graph's declaration order.

    An edited asset is listed itself only when nothing depends on it, so a
    valid edit never resolves to an empty set.
    """
    graph: AssetGraph

    def validate(self, edited_ids: Iterable[str]) -> list[str]:
        """Check that every id exists and is a base asset. Returns the ids deduplicated."""
        result: list[str] = []
        for asset_id in edited_ids:
            node = self.graph.get(asset_id)
            if node is None:
                raise UnknownAssetError(asset_id)
            if not node.is_base:
                raise NotBaseAssetError(asset_id, node.calculation_type.value)
            if asset_id not in result:
                result.append(asset_id)
        return result

    def resolve(self, edited_ids: Iterable[str]) -> list[str]:
        """Return the affected set for the edited ids in safe evaluation order."""
        edited = self.validate(edited_ids)
        reachable = self._reachable(edited)
        for asset_id in edited:
            if not self.graph.dependents(asset_id):
                reachable.add(asset_id)
        ordered = self._topological_order(reachable)
        logger.debug(f"Resolved {edited} -> {ordered}")
        return ordered

    def closure(self, edited_ids: Iterable[str]) -> list[str]:
        """Edited ids plus their affected set, in safe evaluation order."""
        edited = self.validate(edited_ids)
        return self._topological_order(self._reachable(edited) | set(edited))

    def _reachable(self, start_ids: list[str]) -> set[str]:
        """Reverse breadth-first traversal, excluding the start nodes themselves."""
        seen: set[str] = set()
        queue = deque(start_ids)
        while queue:
            current = queue.popleft()
            for dependent in self.graph.dependents(current):
                if dependent not in seen:
                    seen.add(dependent)
                    queue.append(dependent)
        return seen

    def _topological_order(self, ids: set[str]) -> list[str]:
        """
        Kahn's algorithm restricted to ``ids``.

        Only edges between members count; a min-heap on declaration index
        keeps the output deterministic.
        """
        in_degree = {
            asset_id: sum(1 for dep in self.graph.get_node(asset_id).depends_on if dep in ids)
            for asset_id in ids
        }
        index = self.graph.declaration_index
        ready = [(index(asset_id), asset_id) for asset_id, deg in in_degree.items() if deg == 0]
        heapq.heapify(ready)

        ordered: list[str] = []
        while ready:
            _, current = heapq.heappop(ready)
            ordered.append(current)
            for dependent in self.graph.dependents(current):
                if dependent in in_degree:
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        heapq.heappush(ready, (index(dependent), dependent))

        return ordered
