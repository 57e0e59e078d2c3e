#!/usr/bin/env python3
"""
CLI tool for the UCS recalculation engine.

Usage:
    python -m ucs_engine.cli graph
    python -m ucs_engine.cli affected boi_gordo milho
    python -m ucs_engine.cli check 2025-12-25 --suggest
    python -m ucs_engine.cli simulate 2025-12-24 boi_gordo=320.5 --quotes sample_quotes.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date
from typing import Any

from colorama import Fore, Style, init as colorama_init

from .business_days.holidays import StaticHolidaySource
from .config import Config
from .errors import UcsError
from .graph.types import CalculationType
from .service import UcsService

COLOR_ENABLED = True


def colorize(text: str, color: str) -> str:
    """Apply color if enabled."""
    if COLOR_ENABLED:
        return f"{color}{text}{Style.RESET_ALL}"
    return text


def print_json(data: Any, indent: int = 2) -> None:
    print(json.dumps(data, indent=indent, default=str, ensure_ascii=False))


def format_value(value: float | None) -> str:
    if value is None:
        return colorize("-", Style.DIM)
    return f"{value:,.4f}"


def parse_edit(text: str) -> tuple[str, float]:
    """Parse ``asset=price``."""
    asset_id, sep, price = text.partition("=")
    if not sep or not asset_id:
        raise argparse.ArgumentTypeError(f"Expected asset=price, got '{text}'")
    try:
        return asset_id.strip(), float(price)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid price in '{text}'") from None


def parse_date(text: str) -> date:
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM-DD, got '{text}'") from None


def build_service(args) -> UcsService:
    config = Config.from_yaml(args.config) if args.config else Config()
    source = StaticHolidaySource() if args.offline else None
    if getattr(args, "quotes", None):
        config.quotes.seed_file = args.quotes
    return UcsService.from_config(config, holiday_source=source)


def cmd_graph(args) -> int:
    """Show every asset grouped by calculation type."""
    service = build_service(args)

    if args.json:
        print_json([
            {
                "id": node.id,
                "name": node.display_name,
                "type": node.calculation_type.value,
                "depends_on": list(node.depends_on),
                "formula": service.engine.describe(node.id),
            }
            for node in service.graph
        ])
        return 0

    for calculation_type in CalculationType:
        nodes = service.graph.nodes_by_type(calculation_type)
        if not nodes:
            continue
        print(colorize(f"\n{calculation_type.value}:", Style.BRIGHT))
        for node in nodes:
            line = f"  {colorize(node.id, Fore.CYAN)} {colorize(node.display_name, Style.DIM)}"
            if node.depends_on:
                line += f" <- {', '.join(node.depends_on)}"
            print(line)

    return 0


def cmd_affected(args) -> int:
    """Ordered affected set for the given base assets."""
    service = build_service(args)
    affected = service.affected(args.assets)

    print(colorize("\nEdited:", Style.BRIGHT), ", ".join(args.assets))
    print(colorize("Recalculation order:", Style.BRIGHT))
    for i, asset_id in enumerate(affected, start=1):
        name = service.graph.get_node(asset_id).display_name
        print(f"  {i:2d}. {colorize(asset_id, Fore.CYAN)} {colorize(name, Style.DIM)}")

    return 0


async def cmd_check(args) -> int:
    """Business-day check for a date."""
    service = build_service(args)
    decision = await service.check(args.date, suggest=args.suggest)

    if args.json:
        print_json(decision.to_dict())
    elif decision.allowed:
        note = colorize(" (calendar unavailable)", Fore.YELLOW) if decision.degraded else ""
        print(f"{args.date.isoformat()}: {colorize('business day', Fore.GREEN)}{note}")
    else:
        print(f"{args.date.isoformat()}: {colorize(decision.reason or 'blocked', Fore.RED)}")
        if decision.suggested_date:
            print(f"  {colorize('Next business day:', Style.BRIGHT)} {decision.suggested_date.isoformat()}")

    return 0 if decision.allowed else 1


async def cmd_simulate(args) -> int:
    """Preview an edit set against stored quotes."""
    service = build_service(args)
    report = await service.simulate(args.date, dict(args.edits))

    if args.json:
        print_json(report.to_dict())
        return 0 if report.summary.failed_count == 0 else 1

    print(colorize(f"\nSimulation for {args.date.isoformat()}", Style.BRIGHT))
    for row in report.results:
        if row.error:
            status = colorize(row.error, Fore.RED)
        else:
            status = f"{format_value(row.current_value)} -> {format_value(row.new_value)}"
            if row.change is not None:
                status += colorize(f" ({row.change:+.2%})", Style.DIM)
        print(f"  {colorize(row.id, Fore.CYAN):<28} {status}")

    summary = report.summary
    color = Fore.GREEN if summary.failed_count == 0 else Fore.YELLOW
    print(colorize(f"\n{summary.summary()}", color))

    if report.alerts:
        print(colorize("\nAlerts:", Style.BRIGHT))
        for alert in report.alerts:
            color = Fore.RED if alert.severity.value == "critical" else Fore.YELLOW
            print(f"  {colorize(alert.severity.value, color)} {alert.asset_id}: {alert.message}")

    return 0 if summary.failed_count == 0 else 1


def main(argv: list[str] | None = None) -> int:
    global COLOR_ENABLED

    parser = argparse.ArgumentParser(
        description="CLI tool for the UCS recalculation engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to config YAML")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use the built-in holiday calendar instead of the remote source",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # graph command
    graph_parser = subparsers.add_parser("graph", help="Show the asset graph")
    graph_parser.add_argument("--json", action="store_true", help="Output JSON")

    # affected command
    affected_parser = subparsers.add_parser("affected", help="Show the recalculation order for edits")
    affected_parser.add_argument("assets", nargs="+", help="Edited base asset ids")

    # check command
    check_parser = subparsers.add_parser("check", help="Is a date a business day?")
    check_parser.add_argument("date", type=parse_date, help="Date (YYYY-MM-DD)")
    check_parser.add_argument("--suggest", action="store_true", help="Suggest the next business day")
    check_parser.add_argument("--json", action="store_true", help="Output JSON")

    # simulate command
    sim_parser = subparsers.add_parser("simulate", help="Preview an edit set")
    sim_parser.add_argument("date", type=parse_date, help="Date (YYYY-MM-DD)")
    sim_parser.add_argument("edits", nargs="+", type=parse_edit, help="asset=price pairs")
    sim_parser.add_argument("--quotes", help="YAML/JSON file of current quotes by date")
    sim_parser.add_argument("--json", action="store_true", help="Output JSON")

    args = parser.parse_args(argv)

    if args.no_color:
        COLOR_ENABLED = False
    else:
        colorama_init()

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == "graph":
            return cmd_graph(args)
        elif args.command == "affected":
            return cmd_affected(args)
        elif args.command == "check":
            return asyncio.run(cmd_check(args))
        elif args.command == "simulate":
            return asyncio.run(cmd_simulate(args))
    except UcsError as e:
        print(colorize(f"Error: {e}", Fore.RED), file=sys.stderr)
        return 2

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
