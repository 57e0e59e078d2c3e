"""Caching layer."""

from .memory import Cache, CacheEntry, TTLCache

__all__ = [
    "Cache",
    "CacheEntry",
    "TTLCache",
]
