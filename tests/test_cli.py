"""Tests for the command-line tool."""

import argparse
import json
from pathlib import Path

import pytest

from ucs_engine.cli import main, parse_edit

SAMPLE_QUOTES = str(Path(__file__).parent.parent / "sample_quotes.yaml")


def run(capsys, *argv):
    code = main(["--no-color", "--offline", *argv])
    return code, capsys.readouterr()


class TestParseEdit:
    def test_pair(self):
        assert parse_edit("boi_gordo=320.5") == ("boi_gordo", 320.5)

    def test_spaces(self):
        assert parse_edit(" milho = 450 ") == ("milho", 450.0)

    @pytest.mark.parametrize("text", ["boi_gordo", "boi_gordo=abc", "=1"])
    def test_invalid(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_edit(text)


class TestCommands:
    def test_no_command(self, capsys):
        code, _ = run(capsys)
        assert code == 1

    def test_graph_json(self, capsys):
        code, out = run(capsys, "graph", "--json")
        assert code == 0
        nodes = json.loads(out.out)
        assert nodes[0]["id"] == "usd"
        assert nodes[-1]["id"] == "ucs_ase_eur"
        assert nodes[-1]["type"] == "main-index"
        assert nodes[-1]["depends_on"] == ["ucs_ase", "eur"]

    def test_affected(self, capsys):
        code, out = run(capsys, "affected", "boi_gordo")
        assert code == 0
        lines = [line.split()[1] for line in out.out.splitlines() if line.strip()[:1].isdigit()]
        assert lines == [
            "renda_pecuaria", "vus", "agua_crs", "crs", "pdm", "ivp", "ucs", "ucs_ase",
            "ucs_ase_usd", "ucs_ase_eur",
        ]

    def test_affected_unknown(self, capsys):
        code, out = run(capsys, "affected", "cafe")
        assert code == 2
        assert "Unknown asset: cafe" in out.err

    def test_check_business_day(self, capsys):
        code, out = run(capsys, "check", "2025-12-24")
        assert code == 0
        assert "business day" in out.out

    def test_check_christmas(self, capsys):
        code, out = run(capsys, "check", "2025-12-25", "--suggest", "--json")
        assert code == 1
        decision = json.loads(out.out)
        assert decision["blocked_by"] == "holiday"
        assert decision["suggested_date"] == "2025-12-26"

    def test_simulate(self, capsys):
        code, out = run(capsys, "simulate", "2025-12-24", "boi_gordo=330", "--quotes", SAMPLE_QUOTES, "--json")
        assert code == 0
        report = json.loads(out.out)
        assert report["results"][0]["id"] == "boi_gordo"
        assert report["results"][0]["current_value"] == 319.10
        assert report["summary"]["failed_count"] == 0

    def test_simulate_without_quotes(self, capsys):
        code, out = run(capsys, "simulate", "2025-12-24", "boi_gordo=330")
        assert code == 1
        assert "failed" in out.out
