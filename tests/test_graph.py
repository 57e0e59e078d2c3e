"""Tests for the asset graph model and loader."""

import json
from pathlib import Path

import pytest

from ucs_engine.errors import ConfigurationError, UnknownAssetError
from ucs_engine.graph.defaults import create_default_graph, default_nodes
from ucs_engine.graph.loader import GraphLoader, load_graph
from ucs_engine.graph.registry import AssetGraph
from ucs_engine.graph.types import AssetNode, CalculationType

REPO_ROOT = Path(__file__).parent.parent

BASE = CalculationType.BASE
CALCULATED = CalculationType.CALCULATED


class TestAssetNode:
    def test_formula_key_defaults_to_id(self):
        node = AssetNode("vus", CALCULATED, ("a",))
        assert node.formula_key == "vus"

    def test_formula_key_explicit(self):
        node = AssetNode("crs", CALCULATED, ("a", "b"), formula="sum")
        assert node.formula_key == "sum"

    def test_base_has_no_formula(self):
        node = AssetNode("usd", BASE, formula="ignored")
        assert node.is_base
        assert node.formula_key is None

    def test_display_name(self):
        assert AssetNode("usd", name="Dólar").display_name == "Dólar"
        assert AssetNode("usd").display_name == "usd"


class TestAssetGraph:
    def test_declaration_order(self, example_graph):
        assert example_graph.all_ids() == ["boi_gordo", "milho", "soja", "vus", "pdm", "ucs_ase"]
        assert example_graph.declaration_index("vus") == 3

    def test_dependents(self, example_graph):
        assert example_graph.dependents("boi_gordo") == ["vus"]
        assert example_graph.dependents("ucs_ase") == []

    def test_dependents_unknown(self, example_graph):
        with pytest.raises(UnknownAssetError):
            example_graph.dependents("nope")

    def test_get_node_unknown(self, example_graph):
        with pytest.raises(UnknownAssetError, match="Unknown asset: nope"):
            example_graph.get_node("nope")
        assert example_graph.get("nope") is None

    def test_can_edit(self, example_graph):
        assert example_graph.can_edit("milho")
        assert not example_graph.can_edit("vus")
        assert not example_graph.can_edit("nope")

    def test_partitions(self, example_graph):
        assert [n.id for n in example_graph.base_nodes()] == ["boi_gordo", "milho", "soja"]
        assert [n.id for n in example_graph.derived_nodes()] == ["vus", "pdm", "ucs_ase"]
        assert "pdm" in example_graph
        assert len(example_graph) == 6

    def test_duplicate_id(self):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            AssetGraph([AssetNode("a"), AssetNode("a")])

    def test_unknown_dependency(self):
        with pytest.raises(ConfigurationError, match="unknown asset b"):
            AssetGraph([AssetNode("a", CALCULATED, ("b",))])

    def test_base_with_dependencies(self):
        with pytest.raises(ConfigurationError, match="Base asset"):
            AssetGraph([AssetNode("a"), AssetNode("b", BASE, ("a",))])

    def test_derived_without_dependencies(self):
        with pytest.raises(ConfigurationError, match="at least one"):
            AssetGraph([AssetNode("a", CALCULATED)])

    def test_cycle(self):
        with pytest.raises(ConfigurationError, match="cycle detected among: b, c"):
            AssetGraph([
                AssetNode("a"),
                AssetNode("b", CALCULATED, ("a", "c")),
                AssetNode("c", CALCULATED, ("b",)),
            ])

    def test_repeated_dependency(self):
        with pytest.raises(ConfigurationError, match="twice"):
            AssetGraph([AssetNode("a"), AssetNode("b", CALCULATED, ("a", "a"))])


class TestDefaultGraph:
    def test_builds(self):
        graph = create_default_graph()
        assert len(graph) == len(default_nodes())
        assert graph.get_node("ucs_ase").calculation_type == CalculationType.MAIN_INDEX

    def test_only_quotes_are_base(self):
        graph = create_default_graph()
        assert {n.id for n in graph.base_nodes()} == {
            "usd", "eur", "boi_gordo", "milho", "soja", "madeira", "carbono",
        }

    def test_sample_file_matches_builtin(self):
        loaded = load_graph(REPO_ROOT / "sample_assets.yaml")
        builtin = create_default_graph()

        assert loaded.all_ids() == builtin.all_ids()
        for node in builtin:
            other = loaded.get_node(node.id)
            assert other.calculation_type == node.calculation_type
            assert other.depends_on == node.depends_on
            assert other.formula_key == node.formula_key


class TestGraphLoader:
    def test_load_dict(self):
        graph = GraphLoader().load_dict({
            "usd": {"type": "base"},
            "milho": {"type": "base", "currency": "USD"},
            "preco": {"type": "calculated", "depends_on": ["milho", "usd"], "formula": "product"},
            "idx": {"type": "index", "depends_on": "preco", "expected_zero": True},
        })

        assert graph.get_node("preco").depends_on == ("milho", "usd")
        assert graph.get_node("idx").depends_on == ("preco",)
        assert graph.get_node("idx").expected_zero
        assert graph.get_node("milho").currency == "USD"

    def test_unknown_type(self):
        with pytest.raises(ConfigurationError, match="Unknown calculation type"):
            GraphLoader().load_dict({"a": {"type": "magic"}})

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            GraphLoader().load_dict(["a", "b"])

    def test_load_json_file(self, tmp_path):
        path = tmp_path / "assets.json"
        path.write_text(json.dumps({
            "a": {"type": "base"},
            "b": {"type": "calculated", "depends_on": ["a"], "formula": "sum"},
        }))

        graph = load_graph(path)
        assert graph.all_ids() == ["a", "b"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_graph(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "assets.yaml"
        path.write_text("a: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid asset graph file"):
            load_graph(path)
