"""Asset graph - validated, read-only registry of asset nodes."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from ..errors import ConfigurationError, UnknownAssetError
from .types import AssetNode, CalculationType

logger = logging.getLogger(__name__)


@dataclass
class AssetGraph:
    """
    Static dependency graph of every tracked asset.

    Built once per process and treated as read-only. Construction fails
    with ConfigurationError if any node references an unknown id, if a
    base node declares dependencies, or if the dependencies form a cycle.

    Declaration order is preserved and used as the deterministic
    tie-break wherever the graph imposes no ordering.
    """
    nodes: Iterable[AssetNode] = ()

    _nodes: dict[str, AssetNode] = field(default_factory=dict, init=False)
    _order: dict[str, int] = field(default_factory=dict, init=False)
    _dependents: dict[str, list[str]] = field(default_factory=dict, init=False)

    def __post_init__(self):
        for node in self.nodes:
            if node.id in self._nodes:
                raise ConfigurationError(f"Duplicate asset id: {node.id}")
            self._order[node.id] = len(self._nodes)
            self._nodes[node.id] = node
        self.nodes = tuple(self._nodes.values())

        self._validate_references()
        self._build_reverse_edges()
        self._validate_acyclic()
        logger.debug(f"Asset graph built with {len(self._nodes)} nodes")

    def _validate_references(self) -> None:
        for node in self._nodes.values():
            if node.is_base and node.depends_on:
                raise ConfigurationError(
                    f"Base asset {node.id} cannot depend on other assets"
                )
            if not node.is_base and not node.depends_on:
                raise ConfigurationError(
                    f"Derived asset {node.id} must depend on at least one asset"
                )
            if len(set(node.depends_on)) != len(node.depends_on):
                raise ConfigurationError(f"Asset {node.id} lists a dependency twice")
            for dep in node.depends_on:
                if dep not in self._nodes:
                    raise ConfigurationError(
                        f"Asset {node.id} depends on unknown asset {dep}"
                    )

    def _build_reverse_edges(self) -> None:
        self._dependents = {node_id: [] for node_id in self._nodes}
        for node in self._nodes.values():
            for dep in node.depends_on:
                self._dependents[dep].append(node.id)

    def _validate_acyclic(self) -> None:
        """Kahn's algorithm over the whole graph; leftovers sit on a cycle."""
        in_degree = {node_id: len(node.depends_on) for node_id, node in self._nodes.items()}
        queue = deque(node_id for node_id, deg in in_degree.items() if deg == 0)
        seen = 0
        while queue:
            current = queue.popleft()
            seen += 1
            for dependent in self._dependents[current]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if seen != len(self._nodes):
            cyclic = sorted(
                (node_id for node_id, deg in in_degree.items() if deg > 0),
                key=self._order.__getitem__,
            )
            raise ConfigurationError(
                f"Dependency cycle detected among: {', '.join(cyclic)}"
            )

    def get_node(self, asset_id: str) -> AssetNode:
        """Get a node by id, raising UnknownAssetError if absent."""
        node = self._nodes.get(asset_id)
        if node is None:
            raise UnknownAssetError(asset_id)
        return node

    def get(self, asset_id: str) -> AssetNode | None:
        """Get a node by id, or None."""
        return self._nodes.get(asset_id)

    def exists(self, asset_id: str) -> bool:
        return asset_id in self._nodes

    def all_nodes(self) -> list[AssetNode]:
        """All nodes in declaration order."""
        return list(self._nodes.values())

    def all_ids(self) -> list[str]:
        return list(self._nodes.keys())

    def dependents(self, asset_id: str) -> list[str]:
        """Direct dependents of an asset (reverse edges), in declaration order."""
        if asset_id not in self._nodes:
            raise UnknownAssetError(asset_id)
        return list(self._dependents[asset_id])

    def declaration_index(self, asset_id: str) -> int:
        return self._order[asset_id]

    def base_nodes(self) -> list[AssetNode]:
        return self.nodes_by_type(CalculationType.BASE)

    def derived_nodes(self) -> list[AssetNode]:
        return [n for n in self._nodes.values() if not n.is_base]

    def nodes_by_type(self, calculation_type: CalculationType) -> list[AssetNode]:
        return [n for n in self._nodes.values() if n.calculation_type == calculation_type]

    def can_edit(self, asset_id: str) -> bool:
        """Only base assets may be edited manually."""
        node = self._nodes.get(asset_id)
        return node is not None and node.is_base

    def __iter__(self) -> Iterator[AssetNode]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._nodes
