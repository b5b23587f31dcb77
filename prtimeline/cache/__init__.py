"""Disk-backed response cache."""

from .base import KEY_LENGTH, BaseCache, is_valid_key, make_key, validate_key
from .exceptions import CacheCorruptionError, CacheError, InvalidCacheKeyError
from .response_cache import DEFAULT_RETENTION, CacheEntry, ResponseCache

__all__ = [
    "DEFAULT_RETENTION",
    "KEY_LENGTH",
    "BaseCache",
    "CacheCorruptionError",
    "CacheEntry",
    "CacheError",
    "InvalidCacheKeyError",
    "ResponseCache",
    "is_valid_key",
    "make_key",
    "validate_key",
]
