"""Abstract base cache interface."""

import hashlib
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from .exceptions import InvalidCacheKeyError

KEY_LENGTH = hashlib.sha256().digest_size * 2
_HEX_DIGITS = frozenset("0123456789abcdef")

T = TypeVar("T")


def make_key(*parts: Any) -> str:
    """Derive a cache key from identifying parts.

    Keys are the SHA-256 hex digest of the parts joined with ``/``, so they
    have a fixed length and are safe to use as file names whatever the parts
    contain.
    """
    joined = "/".join(str(part) for part in parts)
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def is_valid_key(key: str) -> bool:
    """Check that a key looks like a ``make_key`` digest."""
    return (
        isinstance(key, str)
        and len(key) == KEY_LENGTH
        and all(char in _HEX_DIGITS for char in key)
    )


def validate_key(key: str) -> str:
    """Return the key unchanged if valid.

    Raises:
        InvalidCacheKeyError: If the key is not a lowercase hex digest
    """
    if not is_valid_key(key):
        raise InvalidCacheKeyError(f"Invalid cache key: {key!r}")
    return key


class BaseCache(ABC, Generic[T]):
    """Abstract base class for cache implementations."""

    @abstractmethod
    async def get(self, key: str) -> T | None:
        """Get value from cache by key."""
        pass

    @abstractmethod
    async def put(self, key: str, value: T) -> None:
        """Store value in cache under key."""
        pass

