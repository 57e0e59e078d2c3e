"""Quote seed files - initial values for the in-memory quote store."""

from __future__ import annotations

import json
import logging
import math
from datetime import date
from pathlib import Path
from typing import Any

import yaml

from ..errors import ConfigurationError


logger = logging.getLogger(__name__)


def load_quote_file(path: str | Path) -> dict[date, dict[str, float]]:
    """
    Load dated quotes from a YAML or JSON file.

    File format:
    ```yaml
    2025-12-24:
      usd: 5.52
      boi_gordo: 318.5
    ```
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Quote file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Invalid quote file {path}: {e}") from e

    quotes = parse_quotes(data or {})
    logger.info(f"Loaded quotes for {len(quotes)} dates from {path}")
    return quotes


def parse_quotes(data: dict[Any, Any]) -> dict[date, dict[str, float]]:
    if not isinstance(data, dict):
        raise ConfigurationError("Quote data must be a mapping of date -> values")

    quotes: dict[date, dict[str, float]] = {}
    for key, values in data.items():
        # YAML already turns unquoted ISO dates into date objects
        if isinstance(key, date):
            target_date = key
        else:
            try:
                target_date = date.fromisoformat(str(key))
            except ValueError:
                raise ConfigurationError(f"Invalid quote date: {key!r}") from None

        if not isinstance(values, dict):
            raise ConfigurationError(f"Quotes for {target_date} must be a mapping")

        day: dict[str, float] = {}
        for asset_id, price in values.items():
            if isinstance(price, bool) or not isinstance(price, (int, float)) or not math.isfinite(price):
                raise ConfigurationError(f"Invalid price for {asset_id} on {target_date}: {price!r}")
            day[str(asset_id)] = float(price)
        quotes[target_date] = day

    return quotes
