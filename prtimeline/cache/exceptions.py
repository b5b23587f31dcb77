"""Cache exceptions."""


class CacheError(Exception):
    """Base exception for cache failures."""

    pass


class CacheCorruptionError(CacheError):
    """Raised when a stored entry cannot be read back."""

    pass


class InvalidCacheKeyError(CacheError):
    """Raised when a key is not a hex digest of the expected length."""

    pass
