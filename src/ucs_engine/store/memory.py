"""In-memory stores."""

from __future__ import annotations

import logging
from datetime import date
from types import MappingProxyType
from typing import Mapping

from ..recalc.types import AuditLogEntry
from .base import AuditStore, QuoteStore

logger = logging.getLogger(__name__)


class InMemoryQuoteStore(QuoteStore):
    """
    Quote store backed by a dict of per-date snapshots.

    Writes build a new snapshot and swap it in, so readers never observe a
    half-applied batch.
    """

    def __init__(self, initial: Mapping[date, Mapping[str, float]] | None = None) -> None:
        self._snapshots: dict[date, Mapping[str, float]] = {}
        for target_date, values in (initial or {}).items():
            self._snapshots[target_date] = MappingProxyType(dict(values))

    async def get_values(self, target_date: date) -> dict[str, float]:
        return dict(self._snapshots.get(target_date, {}))

    async def put_values(self, target_date: date, values: Mapping[str, float]) -> None:
        updated = dict(self._snapshots.get(target_date, {}))
        updated.update(values)
        self._snapshots[target_date] = MappingProxyType(updated)
        logger.debug(f"Stored {len(values)} values for {target_date.isoformat()}")

    async def replace_values(self, target_date: date, values: Mapping[str, float]) -> None:
        self._snapshots[target_date] = MappingProxyType(dict(values))
        logger.debug(f"Replaced snapshot for {target_date.isoformat()} ({len(values)} values)")

    def snapshot(self, target_date: date) -> Mapping[str, float]:
        """Read-only view of the current snapshot for a date."""
        return self._snapshots.get(target_date, MappingProxyType({}))

    def dates(self) -> list[date]:
        return sorted(self._snapshots)


class InMemoryAuditStore(AuditStore):
    """Audit store kept in a list; lost on restart."""

    def __init__(self) -> None:
        self._entries: list[AuditLogEntry] = []

    async def append(self, entries: list[AuditLogEntry]) -> None:
        self._entries.extend(entries)

    async def entries(self) -> list[AuditLogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
