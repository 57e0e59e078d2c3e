"""Tests for formula parameters, the formula library and the engine."""

import logging
import math

import pytest

from ucs_engine.errors import ComputationError, ConfigurationError
from ucs_engine.formulas.engine import FormulaEngine
from ucs_engine.formulas.library import formula_keys, get_formula
from ucs_engine.formulas.parameters import FormulaParameters
from ucs_engine.graph.registry import AssetGraph
from ucs_engine.graph.types import AssetNode, CalculationType

CALCULATED = CalculationType.CALCULATED


class TestFormulaParameters:
    def test_defaults(self):
        p = FormulaParameters()
        assert p.fator_arrend == 0.048
        assert (p.peso_pec, p.peso_milho, p.peso_soja) == (0.35, 0.30, 0.35)

    def test_from_dict(self):
        p = FormulaParameters.from_dict({"fator_arrend": 0.05})
        assert p.fator_arrend == 0.05
        assert p.prod_boi == 18.0

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="fator_magico"):
            FormulaParameters.from_dict({"fator_magico": 1.0})

    def test_not_finite(self):
        with pytest.raises(ConfigurationError, match="finite"):
            FormulaParameters(fator_agua=float("nan"))

    def test_not_a_number(self):
        with pytest.raises(ConfigurationError, match="number"):
            FormulaParameters.from_dict({"prod_boi": "18"})

    def test_replace(self):
        p = FormulaParameters().replace(carbono_estocado=1000.0)
        assert p.carbono_estocado == 1000.0
        assert FormulaParameters().carbono_estocado == 900.0


class TestFormulaLibrary:
    def test_registered(self):
        keys = formula_keys()
        for key in ("sum", "product", "vus", "vus_legacy", "ivp", "ucs", "ucs_ase", "brl_to_fx"):
            assert key in keys

    def test_arity(self):
        assert get_formula("vus").accepts(3)
        assert not get_formula("vus").accepts(2)
        assert get_formula("sum").accepts(5)
        assert not get_formula("sum").accepts(0)

    def test_legacy_flag(self):
        assert get_formula("vus_legacy").legacy
        assert not get_formula("vus").legacy

    def test_unknown(self):
        assert get_formula("nope") is None


class TestFormulaEngine:
    def test_vus_example(self, example_engine):
        values = {"boi_gordo": 100, "milho": 50, "soja": 80}
        expected = (100 * 0.35 + 50 * 0.30 + 80 * 0.35) / 0.048

        first = example_engine.evaluate("vus", values)
        second = example_engine.evaluate("vus", values)

        assert first == second
        assert first == pytest.approx(expected)
        assert first == pytest.approx(1625.0)

    def test_base_evaluates_to_itself(self, example_engine):
        assert example_engine.evaluate("milho", {"milho": 50}) == 50.0

    def test_base_without_value(self, example_engine):
        with pytest.raises(ComputationError, match="no value available"):
            example_engine.evaluate("milho", {})

    def test_missing_input(self, example_engine):
        with pytest.raises(ComputationError) as exc_info:
            example_engine.evaluate("vus", {"boi_gordo": 100, "milho": 50})
        assert exc_info.value.asset_id == "vus"
        assert "missing input soja" in str(exc_info.value)

    def test_non_finite_input(self, example_engine):
        with pytest.raises(ComputationError, match="not finite"):
            example_engine.evaluate("vus", {"boi_gordo": math.inf, "milho": 50, "soja": 80})

    def test_non_numeric_input(self, example_engine):
        with pytest.raises(ComputationError, match="not a number"):
            example_engine.evaluate("vus", {"boi_gordo": "100", "milho": 50, "soja": 80})

    def test_division_by_zero(self, example_graph):
        engine = FormulaEngine(example_graph, FormulaParameters(fator_arrend=0.0))
        with pytest.raises(ComputationError) as exc_info:
            engine.evaluate("vus", {"boi_gordo": 100, "milho": 50, "soja": 80})
        assert exc_info.value.asset_id == "vus"
        assert exc_info.value.reason == "division by zero"

    def test_infinite_result(self):
        graph = AssetGraph([
            AssetNode("a"),
            AssetNode("b"),
            AssetNode("p", CALCULATED, ("a", "b"), formula="product"),
        ])
        engine = FormulaEngine(graph)
        with pytest.raises(ComputationError, match="Cannot compute p: result is not finite"):
            engine.evaluate("p", {"a": 1e200, "b": 1e200})

    def test_evaluate_in_order_writes_back(self, example_engine):
        values = {"boi_gordo": 100, "milho": 50, "soja": 80}
        computed = example_engine.evaluate_in_order(["vus", "pdm", "ucs_ase"], values)

        assert computed["pdm"] == pytest.approx(computed["vus"])
        assert computed["ucs_ase"] == pytest.approx(computed["pdm"] * 2.0)
        # Input untouched
        assert values == {"boi_gordo": 100, "milho": 50, "soja": 80}

    def test_evaluate_all_default_graph(self, default_values, parameters):
        v = default_values
        p = parameters

        assert v["renda_pecuaria"] == pytest.approx(v["boi_gordo"] * p.prod_boi)
        assert v["preco_milho_ton"] == pytest.approx((v["milho"] / 100) * (1000 / 25.4) * v["usd"])
        assert v["vus"] == pytest.approx(
            (v["renda_pecuaria"] * 0.35 + v["renda_milho"] * 0.30 + v["renda_soja"] * 0.35) / 0.048
        )
        assert v["crs"] == pytest.approx(v["carbono_crs"] + v["agua_crs"])
        assert v["pdm"] == pytest.approx(v["vm"] + v["vus"] + v["crs"])
        assert v["ivp"] == pytest.approx((v["pdm"] / 900) / 2)
        assert v["ucs"] == pytest.approx(2 * v["ivp"])
        assert v["ucs_ase"] == pytest.approx(2 * v["ucs"])
        assert all(math.isfinite(x) for x in v.values())

    def test_ucs_ase_currency_views(self, default_values):
        v = default_values
        assert v["ucs_ase_usd"] == pytest.approx(v["ucs_ase"] / v["usd"])
        assert v["ucs_ase_eur"] == pytest.approx(v["ucs_ase"] / v["eur"])

    def test_currency_view_zero_rate(self, default_engine, default_values):
        values = dict(default_values, usd=0.0)
        with pytest.raises(ComputationError) as exc_info:
            default_engine.evaluate("ucs_ase_usd", values)
        assert exc_info.value.reason == "division by zero"

    def test_describe(self, example_engine):
        assert example_engine.describe("milho") == "quoted value"
        assert "0.048" in example_engine.describe("vus")


class TestEngineConfiguration:
    def test_unknown_formula(self):
        graph = AssetGraph([AssetNode("a"), AssetNode("b", CALCULATED, ("a",), formula="magic")])
        with pytest.raises(ConfigurationError, match="unknown formula 'magic'"):
            FormulaEngine(graph)

    def test_arity_mismatch(self):
        graph = AssetGraph([
            AssetNode("a"),
            AssetNode("b"),
            AssetNode("vus", CALCULATED, ("a", "b")),
        ])
        with pytest.raises(ConfigurationError, match="expects 3 inputs"):
            FormulaEngine(graph)

    def test_legacy_formula_warns(self, caplog):
        graph = AssetGraph([
            AssetNode("a"),
            AssetNode("b"),
            AssetNode("c"),
            AssetNode("vus", CALCULATED, ("a", "b", "c"), formula="vus_legacy"),
        ])
        with caplog.at_level(logging.WARNING, logger="ucs_engine.formulas.engine"):
            engine = FormulaEngine(graph)

        assert "legacy formula 'vus_legacy'" in caplog.text
        assert engine.evaluate("vus", {"a": 1, "b": 1, "c": 1}) == pytest.approx(25 * 0.952)
