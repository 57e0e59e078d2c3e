"""Store interfaces - where quotes are read from and changes are recorded."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Mapping

from ..recalc.types import AuditLogEntry


class QuoteStore(ABC):
    """
    Dated asset values.

    ``put_values`` is all-or-nothing: after it returns every given value is
    visible for the date, and if it raises none of them are.
    """

    @abstractmethod
    async def get_values(self, target_date: date) -> dict[str, float]:
        """All known values for ``target_date`` (asset id -> price)."""
        ...

    @abstractmethod
    async def put_values(self, target_date: date, values: Mapping[str, float]) -> None:
        """Atomically merge ``values`` into the date's snapshot."""
        ...

    @abstractmethod
    async def replace_values(self, target_date: date, values: Mapping[str, float]) -> None:
        """Atomically replace the date's whole snapshot with ``values``."""
        ...

    async def start(self) -> None:
        """Initialize the store (called on startup)."""
        pass

    async def stop(self) -> None:
        """Clean up the store (called on shutdown)."""
        pass


class AuditStore(ABC):
    """Append-only audit trail."""

    @abstractmethod
    async def append(self, entries: list[AuditLogEntry]) -> None:
        """Record a batch of entries, in order."""
        ...

    @abstractmethod
    async def entries(self) -> list[AuditLogEntry]:
        """Every entry, oldest first."""
        ...

    async def entries_for_date(self, target_date: date) -> list[AuditLogEntry]:
        """Entries whose target date is ``target_date``, oldest first."""
        return [e for e in await self.entries() if e.target_date == target_date]

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass
