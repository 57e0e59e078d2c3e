"""Tests for configuration loading and service wiring."""

from datetime import date
from pathlib import Path

import pytest

from ucs_engine.config import Config
from ucs_engine.errors import ConfigurationError
from ucs_engine.service import UcsService, create_audit_store
from ucs_engine.store.file import JsonlAuditStore
from ucs_engine.store.memory import InMemoryAuditStore

REPO_ROOT = Path(__file__).parent.parent


class TestConfig:
    def test_defaults(self):
        config = Config()
        assert config.server.port == 8060
        assert config.calendar.source == "brasilapi"
        assert config.calendar.circuit_breaker.failure_threshold == 3
        assert config.audit.sink_type == "memory"
        assert config.quotes.seed_file is None
        assert config.formula.carbono_estocado == 900.0

    def test_from_dict(self):
        config = Config.from_dict({
            "server": {"port": 9000},
            "calendar": {"source": "static", "circuit_breaker": {"failure_threshold": 5}},
            "alerts": {"swing_threshold": 0.5},
            "formula": {"prod_boi": 20.0},
        })
        assert config.server.port == 9000
        assert config.calendar.source == "static"
        assert config.calendar.circuit_breaker.failure_threshold == 5
        assert config.calendar.circuit_breaker.timeout_seconds == 300.0
        assert config.alerts.swing_threshold == 0.5
        assert config.formula.prod_boi == 20.0
        assert config.formula.prod_milho == 7.2

    @pytest.mark.parametrize("key", ["2025-11-20", "13-01", "02-30"])
    def test_invalid_additional_holiday(self, key):
        with pytest.raises(ConfigurationError, match=f"Invalid additional holiday '{key}'"):
            Config.from_dict({"calendar": {"additional_holidays": {key: "Feriado"}}})

    def test_leap_day_holiday_accepted(self):
        config = Config.from_dict({"calendar": {"additional_holidays": {"02-29": "Dia Bissexto"}}})
        assert config.calendar.additional_holidays == {"02-29": "Dia Bissexto"}

    def test_unknown_formula_parameter(self):
        with pytest.raises(ConfigurationError, match="prod_cafe"):
            Config.from_dict({"formula": {"prod_cafe": 1.0}})

    def test_sample_file(self):
        config = Config.from_yaml(str(REPO_ROOT / "config.sample.yaml"))
        assert config.graph.definition_file == "assets.yaml"
        assert config.audit.sink_type == "file"
        assert config.quotes.seed_file == "quotes.yaml"
        assert config.calendar.additional_holidays == {
            "11-20": "Dia Nacional de Zumbi e da Consciência Negra",
        }

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert Config.from_yaml(str(path)).server.port == 8060


class TestServiceWiring:
    def test_audit_store_types(self, tmp_path):
        assert isinstance(create_audit_store(Config()), InMemoryAuditStore)

        config = Config.from_dict({"audit": {"sink_type": "file", "path": str(tmp_path / "a.jsonl")}})
        assert isinstance(create_audit_store(config), JsonlAuditStore)

        with pytest.raises(ConfigurationError, match="kafka"):
            create_audit_store(Config.from_dict({"audit": {"sink_type": "kafka"}}))

    def test_graph_from_file(self):
        config = Config.from_dict({
            "graph": {"definition_file": str(REPO_ROOT / "sample_assets.yaml")},
            "calendar": {"source": "static"},
        })
        service = UcsService.from_config(config)
        assert len(service.graph) == 25
        assert service.gate.source.name == "static"

    @pytest.mark.asyncio
    async def test_seeded_quotes_include_derived_values(self, default_values):
        config = Config.from_dict({
            "calendar": {"source": "static"},
            "quotes": {"seed_file": str(REPO_ROOT / "sample_quotes.yaml")},
        })
        service = UcsService.from_config(config)

        values = await service.quote_store.get_values(date(2025, 12, 24))
        assert values == pytest.approx(default_values)

    @pytest.mark.asyncio
    async def test_plan_blocked_on_holiday(self):
        from ucs_engine.errors import GateBlockedError

        service = UcsService.from_config(Config.from_dict({"calendar": {"source": "static"}}))
        with pytest.raises(GateBlockedError) as exc_info:
            await service.plan(date(2025, 12, 25), {"milho": 450.0})
        assert exc_info.value.suggested_date == date(2025, 12, 26)
