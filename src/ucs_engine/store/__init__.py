"""Quote and audit stores."""

from .base import AuditStore, QuoteStore
from .memory import InMemoryAuditStore, InMemoryQuoteStore
from .file import JsonlAuditStore
from .seed import load_quote_file, parse_quotes

__all__ = [
    "AuditStore",
    "QuoteStore",
    "InMemoryAuditStore",
    "InMemoryQuoteStore",
    "JsonlAuditStore",
    "load_quote_file",
    "parse_quotes",
]
