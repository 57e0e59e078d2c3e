"""Asset graph - static model of which assets derive from which."""

from .types import AssetNode, AssetValue, CalculationType
from .registry import AssetGraph
from .loader import GraphLoader, load_graph
from .defaults import create_default_graph
from .resolver import AffectedSetResolver

__all__ = [
    "AssetNode",
    "AssetValue",
    "CalculationType",
    "AssetGraph",
    "GraphLoader",
    "load_graph",
    "create_default_graph",
    "AffectedSetResolver",
]
