"""Configuration for the UCS engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from .errors import ConfigurationError
from .formulas.parameters import FormulaParameters
from .governance.circuit_breaker import CircuitBreakerConfig


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 8060
    reload: bool = False
    log_level: str = "INFO"


@dataclass
class GraphConfig:
    """Asset graph configuration."""
    # Path to graph definition file (YAML or JSON); None = built-in graph
    definition_file: str | None = None


def parse_month_day(text: str) -> tuple[int, int]:
    """
    Parse an "MM-DD" holiday key into (month, day).

    Raises ConfigurationError unless the pair is a valid day in some year
    (so "02-29" is accepted).
    """
    month_str, sep, day_str = str(text).partition("-")
    if not sep or len(month_str) != 2 or len(day_str) != 2 or not (month_str + day_str).isdigit():
        raise ConfigurationError(f"Invalid additional holiday '{text}': expected MM-DD")
    month, day = int(month_str), int(day_str)
    try:
        date(2000, month, day)
    except ValueError:
        raise ConfigurationError(f"Invalid additional holiday '{text}': no such day") from None
    return month, day


@dataclass
class CalendarConfig:
    """Holiday calendar and business-day gate configuration."""
    source: str = "brasilapi"  # brasilapi | static
    base_url: str = "https://brasilapi.com.br/api/feriados/v1/{year}"
    timeout_seconds: float = 5.0

    # Retries for transient failures (timeouts, connection errors, 5xx)
    max_retries: int = 2
    retry_backoff_seconds: float = 0.5

    # Holiday cache, keyed by year
    cache_ttl_seconds: float = 86400.0

    # Bound for next/previous business-day walks
    max_walk_attempts: int = 10

    # Extra "MM-DD": name holidays applied every year (regional holidays)
    additional_holidays: dict[str, str] = field(
        default_factory=lambda: {"11-20": "Dia Nacional de Zumbi e da Consciência Negra"}
    )

    circuit_breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)

    def __post_init__(self):
        for month_day in self.additional_holidays:
            parse_month_day(month_day)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CalendarConfig:
        data = dict(data)
        breaker = CircuitBreakerConfig(**data.pop("circuit_breaker", {}))
        return cls(circuit_breaker=breaker, **data)


@dataclass
class AlertConfig:
    """Advisory alert thresholds for simulation results."""
    # Relative change above which a result is flagged (0.20 = 20%)
    swing_threshold: float = 0.20
    flag_zero_values: bool = True


@dataclass
class QuotesConfig:
    """Quote store configuration."""
    # Optional YAML/JSON file of {date: {asset_id: price}} loaded at startup
    seed_file: str | None = None


@dataclass
class AuditConfig:
    """Audit trail configuration."""
    sink_type: str = "memory"  # memory | file
    path: str = "audit/audit-log.jsonl"


@dataclass
class Config:
    """Main configuration container."""
    server: ServerConfig = field(default_factory=ServerConfig)
    graph: GraphConfig = field(default_factory=GraphConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    quotes: QuotesConfig = field(default_factory=QuotesConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    formula: FormulaParameters = field(default_factory=FormulaParameters)

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        """Create config from dictionary."""
        return cls(
            server=ServerConfig(**data.get("server", {})),
            graph=GraphConfig(**data.get("graph", {})),
            calendar=CalendarConfig.from_dict(data.get("calendar", {})),
            alerts=AlertConfig(**data.get("alerts", {})),
            quotes=QuotesConfig(**data.get("quotes", {})),
            audit=AuditConfig(**data.get("audit", {})),
            formula=FormulaParameters.from_dict(data.get("formula", {})),
        )

    @classmethod
    def from_yaml(cls, path: str) -> Config:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str) -> Config:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)
