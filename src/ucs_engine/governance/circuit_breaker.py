"""Circuit breaker for external calendar sources."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from ..errors import ExternalSourceError

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"       # Lookups flow through
    OPEN = "open"           # Too many failures - lookups short-circuit
    HALF_OPEN = "half_open" # Probing whether the source recovered


class CircuitBreakerOpen(ExternalSourceError):
    """Raised when lookups to a source are short-circuited."""
    def __init__(self, source_key: str, retry_after_seconds: float):
        super().__init__(f"Circuit breaker open for {source_key}")
        self.source_key = source_key
        self.retry_after_seconds = retry_after_seconds


@dataclass
class _Circuit:
    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    success_count: int = 0
    opened_at: float = 0.0


@dataclass
class CircuitBreakerConfig:
    """Circuit breaker configuration."""
    enabled: bool = True
    failure_threshold: int = 3          # Consecutive failures before opening
    success_threshold: int = 1          # Successes in half-open to close
    timeout_seconds: float = 300.0      # How long to stay open before probing


@dataclass
class CircuitBreaker:
    """
    Stops hammering a calendar source that keeps failing.

    While open, ``check`` raises CircuitBreakerOpen without any I/O; the
    business-day gate treats that like any other source failure and fails
    open.
    """
    config: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    clock: Callable[[], float] = time.monotonic

    _circuits: dict[str, _Circuit] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def check(self, source_key: str) -> None:
        """
        Raise CircuitBreakerOpen if lookups to ``source_key`` are blocked.

        An open circuit moves to half-open once ``timeout_seconds`` elapse.
        """
        if not self.config.enabled:
            return

        with self._lock:
            circuit = self._circuits.get(source_key)
            if circuit is None or circuit.state != CircuitState.OPEN:
                return

            elapsed = self.clock() - circuit.opened_at
            if elapsed >= self.config.timeout_seconds:
                circuit.state = CircuitState.HALF_OPEN
                circuit.success_count = 0
                logger.info(f"Circuit for {source_key} half-open after {elapsed:.0f}s; probing")
                return
            raise CircuitBreakerOpen(source_key, self.config.timeout_seconds - elapsed)

    def record_success(self, source_key: str) -> None:
        if not self.config.enabled:
            return

        with self._lock:
            circuit = self._circuits.get(source_key)
            if circuit is None:
                return

            if circuit.state == CircuitState.HALF_OPEN:
                circuit.success_count += 1
                if circuit.success_count >= self.config.success_threshold:
                    circuit.state = CircuitState.CLOSED
                    circuit.failure_count = 0
                    logger.info(f"Circuit for {source_key} closed; source recovered")
            elif circuit.state == CircuitState.CLOSED:
                circuit.failure_count = 0

    def record_failure(self, source_key: str) -> None:
        if not self.config.enabled:
            return

        now = self.clock()
        with self._lock:
            circuit = self._circuits.setdefault(source_key, _Circuit())
            circuit.failure_count += 1

            probe_failed = circuit.state == CircuitState.HALF_OPEN
            threshold_hit = (
                circuit.state == CircuitState.CLOSED
                and circuit.failure_count >= self.config.failure_threshold
            )
            if probe_failed or threshold_hit:
                circuit.state = CircuitState.OPEN
                circuit.opened_at = now
                logger.warning(
                    f"Circuit for {source_key} opened after {circuit.failure_count} failures; "
                    f"skipping lookups for {self.config.timeout_seconds:.0f}s"
                )

    def state(self, source_key: str) -> CircuitState:
        with self._lock:
            circuit = self._circuits.get(source_key)
            return circuit.state if circuit else CircuitState.CLOSED

    @property
    def stats(self) -> dict:
        with self._lock:
            return {
                key: {
                    "state": c.state.value,
                    "failure_count": c.failure_count,
                    "opened_at": c.opened_at if c.state != CircuitState.CLOSED else None,
                }
                for key, c in self._circuits.items()
            }
