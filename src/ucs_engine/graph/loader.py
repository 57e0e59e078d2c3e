"""Graph loader - loads asset definitions from YAML/JSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from ..errors import ConfigurationError
from .registry import AssetGraph
from .types import AssetNode, CalculationType


logger = logging.getLogger(__name__)


class GraphLoader:
    """
    Loads asset graph definitions from YAML or JSON files.

    File order is declaration order. File format:
    ```yaml
    usd:
      name: Dólar Americano
      type: base

    vus:
      name: Valor de Uso do Solo
      type: sub-index
      depends_on: [renda_pecuaria, renda_milho, renda_soja]
      formula: vus
    ```
    """

    def load_file(self, path: str | Path) -> AssetGraph:
        """Load a graph from a YAML or JSON file."""
        path = Path(path)

        if not path.exists():
            raise ConfigurationError(f"Asset graph file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            try:
                if path.suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
            except (yaml.YAMLError, json.JSONDecodeError) as e:
                raise ConfigurationError(f"Invalid asset graph file {path}: {e}") from e

        return self.load_dict(data or {})

    def load_dict(self, data: dict[str, Any]) -> AssetGraph:
        """Load a graph from a dictionary."""
        if not isinstance(data, dict):
            raise ConfigurationError("Asset graph definition must be a mapping of id -> node")

        nodes = [self._parse_node(asset_id, node_data or {}) for asset_id, node_data in data.items()]
        graph = AssetGraph(nodes)
        logger.info(f"Loaded {len(graph)} assets")
        return graph

    def _parse_node(self, asset_id: str, data: dict[str, Any]) -> AssetNode:
        """Parse a single asset node from a dictionary."""
        type_str = str(data.get("type", "base")).lower()
        try:
            calculation_type = CalculationType(type_str)
        except ValueError:
            raise ConfigurationError(f"Unknown calculation type '{type_str}' for {asset_id}") from None

        depends_on = data.get("depends_on", [])
        if isinstance(depends_on, str):
            depends_on = [depends_on]

        return AssetNode(
            id=str(asset_id),
            calculation_type=calculation_type,
            depends_on=tuple(str(d) for d in depends_on),
            name=data.get("name", ""),
            formula=data.get("formula"),
            currency=data.get("currency", "BRL"),
            description=data.get("description", ""),
            expected_zero=bool(data.get("expected_zero", False)),
        )


def load_graph(path: str | Path) -> AssetGraph:
    """Convenience function to load a graph from file."""
    return GraphLoader().load_file(path)
