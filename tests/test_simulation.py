"""Tests for the simulation (preview) service."""

import math
from datetime import date

import pytest

from ucs_engine.errors import ComputationError, NotBaseAssetError, UcsError, UnknownAssetError
from ucs_engine.formulas.engine import FormulaEngine
from ucs_engine.formulas.parameters import FormulaParameters
from ucs_engine.graph.registry import AssetGraph
from ucs_engine.graph.resolver import AffectedSetResolver
from ucs_engine.graph.types import AssetNode, CalculationType
from ucs_engine.simulation.service import SimulationService
from ucs_engine.simulation.types import SimulationResult, SimulationSummary

TRADING_DAY = date(2025, 12, 24)


def make_service(graph, parameters=None) -> SimulationService:
    engine = FormulaEngine(graph, parameters or FormulaParameters())
    return SimulationService(graph, engine, AffectedSetResolver(graph))


@pytest.fixture
def example_values(example_engine):
    values = {"boi_gordo": 100.0, "milho": 50.0, "soja": 80.0}
    values.update(example_engine.evaluate_all(values))
    return values


class TestSimulate:
    def test_rows_in_resolver_order(self, example_graph, example_values):
        service = make_service(example_graph)
        rows = service.simulate(TRADING_DAY, example_values, {"boi_gordo": 120})

        assert [r.id for r in rows] == ["boi_gordo", "vus", "pdm", "ucs_ase"]

        edited = rows[0]
        assert edited.formula_description == "manual override"
        assert edited.current_value == 100.0
        assert edited.new_value == 120.0

        vus = rows[1]
        assert vus.current_value == pytest.approx(1625.0)
        assert vus.new_value == pytest.approx((120 * 0.35 + 50 * 0.30 + 80 * 0.35) / 0.048)
        assert rows[3].new_value == pytest.approx(vus.new_value * 2.0)
        assert all(r.ok for r in rows)

    def test_idempotent_and_side_effect_free(self, example_graph, example_values):
        service = make_service(example_graph)
        before = dict(example_values)

        first = service.simulate(TRADING_DAY, example_values, {"soja": 90})
        second = service.simulate(TRADING_DAY, example_values, {"soja": 90})

        assert first == second
        assert example_values == before

    def test_change(self, example_graph, example_values):
        rows = make_service(example_graph).simulate(TRADING_DAY, example_values, {"boi_gordo": 110})
        assert rows[0].change == pytest.approx(0.10)

    def test_default_graph(self, default_graph, default_values):
        rows = make_service(default_graph).simulate(TRADING_DAY, default_values, {"usd": 5.80})

        assert rows[0].id == "usd"
        assert rows[-1].id == "ucs_ase_eur"
        assert all(r.ok for r in rows)
        # A stronger dollar raises every converted price
        by_id = {r.id: r for r in rows}
        assert by_id["preco_milho_ton"].new_value > by_id["preco_milho_ton"].current_value
        assert by_id["ucs_ase"].new_value > by_id["ucs_ase"].current_value


class TestRowErrors:
    def test_failed_row_isolated(self):
        graph = AssetGraph([
            AssetNode("a"),
            AssetNode("bad", CalculationType.INDEX, ("a",), formula="ivp"),
            AssetNode("good", CalculationType.INDEX, ("a",), formula="sum"),
            AssetNode("after_bad", CalculationType.INDEX, ("bad",), formula="ucs"),
        ])
        service = make_service(graph, FormulaParameters(carbono_estocado=0.0))

        rows = service.simulate(TRADING_DAY, {"a": 1.0}, {"a": 2.0})
        by_id = {r.id: r for r in rows}

        assert by_id["bad"].error == "Cannot compute bad: division by zero"
        assert by_id["bad"].new_value is None
        assert by_id["good"].ok
        assert by_id["good"].new_value == 2.0
        assert by_id["after_bad"].error == "Cannot compute after_bad: upstream asset bad failed"

    def test_missing_unrelated_input(self, default_graph):
        values = {"boi_gordo": 300.0, "usd": 5.5, "milho": 450.0, "soja": 1050.0}
        rows = make_service(default_graph).simulate(TRADING_DAY, values, {"boi_gordo": 320.0})
        by_id = {r.id: r for r in rows}

        assert by_id["renda_pecuaria"].ok
        # renda_milho/renda_soja are not recomputed and have no stored value
        assert "missing input renda_milho" in by_id["vus"].error
        assert "upstream asset vus failed" in by_id["pdm"].error

    def test_summary(self):
        graph = AssetGraph([
            AssetNode("a"),
            AssetNode("bad", CalculationType.INDEX, ("a",), formula="ivp"),
            AssetNode("good", CalculationType.INDEX, ("a",), formula="sum"),
        ])
        service = make_service(graph, FormulaParameters(carbono_estocado=0.0))
        rows = service.simulate(TRADING_DAY, {"a": 1.0}, {"a": 2.0})

        summary = SimulationSummary.of(rows)
        assert summary.ok_count == 2
        assert summary.failed_count == 1
        assert summary.summary() == "2 of 3 ok, 1 failed: Cannot compute bad: division by zero"


class TestValidation:
    def test_unknown_asset(self, example_graph, example_values):
        with pytest.raises(UnknownAssetError):
            make_service(example_graph).simulate(TRADING_DAY, example_values, {"cafe": 1.0})

    def test_derived_asset(self, example_graph, example_values):
        with pytest.raises(NotBaseAssetError):
            make_service(example_graph).simulate(TRADING_DAY, example_values, {"pdm": 1.0})

    def test_non_finite_price(self, example_graph, example_values):
        with pytest.raises(ComputationError) as exc_info:
            make_service(example_graph).simulate(TRADING_DAY, example_values, {"milho": math.nan})
        assert exc_info.value.asset_id == "milho"

    def test_empty_edit_set(self, example_graph, example_values):
        with pytest.raises(UcsError, match="empty"):
            make_service(example_graph).simulate(TRADING_DAY, example_values, {})


class TestSimulationSummary:
    def test_all_ok(self):
        rows = [SimulationResult("a", "A", 1.0, 2.0, "manual override")]
        assert SimulationSummary.of(rows).summary() == "1 of 1 ok"

    def test_to_dict(self):
        rows = [
            SimulationResult("a", "A", 1.0, 2.0, "manual override"),
            SimulationResult("b", "B", 1.0, None, "sum", error="Cannot compute b: missing input x"),
        ]
        d = SimulationSummary.of(rows).to_dict()
        assert d["ok_count"] == 1
        assert d["errors"] == ["Cannot compute b: missing input x"]
