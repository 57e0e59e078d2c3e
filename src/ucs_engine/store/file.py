"""File-based audit store (JSONL format)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from ..recalc.types import AuditLogEntry
from .base import AuditStore

logger = logging.getLogger(__name__)


@dataclass
class JsonlAuditStore(AuditStore):
    """
    Audit store that appends entries to a file, one JSON object per line.

    The file is opened in append mode and flushed after every batch;
    existing lines are never rewritten.
    """
    path: str
    encoding: str = "utf-8"

    # Internal state
    _file: TextIO | None = field(default=None, init=False)

    async def start(self) -> None:
        # Ensure directory exists
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "a", encoding=self.encoding)

    async def stop(self) -> None:
        if self._file:
            self._file.close()
            self._file = None

    async def append(self, entries: list[AuditLogEntry]) -> None:
        if not self._file:
            await self.start()

        for entry in entries:
            self._file.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")

        self._file.flush()

    async def entries(self) -> list[AuditLogEntry]:
        path = Path(self.path)
        if not path.exists():
            return []

        result: list[AuditLogEntry] = []
        with open(path, "r", encoding=self.encoding) as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    result.append(AuditLogEntry.from_dict(json.loads(line)))
                except (ValueError, KeyError) as e:
                    logger.warning(f"Skipping unreadable audit line {line_no} in {self.path}: {e}")
        return result
