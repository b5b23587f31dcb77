"""Disk-backed cache of remote payloads.

Entries are not expired by age. Each entry records the upstream resource's
own freshness marker, and a caller asking with reference time ``R`` accepts
the entry only if that marker is at or after ``R``. Age only matters to the
background sweep, which deletes files that have not been rewritten for the
retention window.
"""

import asyncio
import base64
import binascii
import contextlib
import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

from .base import BaseCache, is_valid_key, validate_key
from .exceptions import CacheCorruptionError, CacheError

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"
DIRECTORY_MODE = 0o700
FILE_MODE = 0o600

DEFAULT_RETENTION = timedelta(days=28)
DEFAULT_SWEEP_INTERVAL = 3600.0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload and the upstream freshness it was fetched at."""

    payload: bytes
    upstream_freshness: datetime
    written_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def is_valid_for(self, reference_time: datetime) -> bool:
        """Check freshness against a reference time (inclusive).

        Naive datetimes on either side are taken to be UTC.
        """
        return _as_utc(self.upstream_freshness) >= _as_utc(reference_time)

    def to_json(self) -> bytes:
        """Serialize for storage."""
        return json.dumps(
            {
                "payload": base64.b64encode(self.payload).decode("ascii"),
                "upstream_freshness": self.upstream_freshness.isoformat(),
                "written_at": self.written_at.isoformat(),
            }
        ).encode("utf-8")

    @classmethod
    def from_json(cls, data: bytes) -> "CacheEntry":
        """Deserialize a stored entry.

        Raises:
            CacheCorruptionError: If the data is not a valid entry
        """
        try:
            raw = json.loads(data)
            return cls(
                payload=base64.b64decode(raw["payload"], validate=True),
                upstream_freshness=datetime.fromisoformat(raw["upstream_freshness"]),
                written_at=datetime.fromisoformat(raw["written_at"]),
            )
        except (
            UnicodeDecodeError,
            ValueError,
            KeyError,
            TypeError,
            binascii.Error,
        ) as e:
            raise CacheCorruptionError(f"Undecodable cache entry: {e}") from e


class ResponseCache(BaseCache[CacheEntry]):
    """One JSON file per key under a private directory.

    Writes go to a temporary file in the same directory that is then renamed
    over the entry, so readers see either the old or the new entry and never
    a partial one. Concurrent writers of one key resolve as last writer wins.
    """

    def __init__(
        self,
        directory: str | os.PathLike[str],
        retention: timedelta = DEFAULT_RETENTION,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        """Initialize response cache.

        Args:
            directory: Absolute path of the cache directory, created if missing
            retention: Files untouched for longer than this are swept
            sweep_interval: Seconds between background sweeps

        Raises:
            CacheError: If the directory is relative or cannot be created
        """
        path = Path(directory)
        if not path.is_absolute():
            raise CacheError(f"Cache directory must be an absolute path: {directory}")

        try:
            path.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"Cannot create cache directory {path}: {e}") from e

        self.directory = path
        self.retention = retention
        self.sweep_interval = sweep_interval

        # Background sweep task
        self._sweep_task: asyncio.Task | None = None
        self._shutdown_event = asyncio.Event()

    def path_for(self, key: str) -> Path:
        """Get the entry file for a key."""
        return self.directory / f"{key}{ENTRY_SUFFIX}"

    async def get(self, key: str) -> CacheEntry | None:
        """Get an entry, or None on miss.

        Unreadable and corrupt entries are logged and reported as a miss.
        """
        if not is_valid_key(key):
            logger.warning(f"Ignoring cache lookup with invalid key {key!r}")
            return None

        try:
            entry = await asyncio.to_thread(self._read, key)
        except CacheCorruptionError as e:
            logger.warning(f"Corrupt cache entry {key}: {e}")
            return None
        except OSError as e:
            logger.warning(f"Failed to read cache entry {key}: {e}")
            return None

        return entry

    def _read(self, key: str) -> CacheEntry | None:
        try:
            data = self.path_for(key).read_bytes()
        except FileNotFoundError:
            return None
        return CacheEntry.from_json(data)

    async def put(self, key: str, value: CacheEntry) -> None:
        """Store an entry atomically.

        Raises:
            InvalidCacheKeyError: If the key is not a valid digest
            CacheError: If the entry could not be written; any previous
                entry is left intact
        """
        validate_key(key)
        await asyncio.to_thread(self._write, key, value)

    def _write(self, key: str, entry: CacheEntry) -> None:
        data = entry.to_json()
        temp_name: str | None = None
        try:
            # mkstemp creates the file with mode 0600
            fd, temp_name = tempfile.mkstemp(
                prefix=f"{key}.", suffix=TEMP_SUFFIX, dir=self.directory
            )
            with os.fdopen(fd, "wb") as temp_file:
                temp_file.write(data)
                temp_file.flush()
                os.fsync(temp_file.fileno())
            os.replace(temp_name, self.path_for(key))
        except OSError as e:
            if temp_name is not None:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(temp_name)
            raise CacheError(f"Failed to write cache entry {key}: {e}") from e

    async def sweep(self) -> int:
        """Remove files not modified within the retention window.

        Returns:
            int: Number of files removed
        """
        cutoff = time.time() - self.retention.total_seconds()
        removed = await asyncio.to_thread(self._remove_files, cutoff)
        if removed:
            logger.info(f"Swept {removed} expired cache files from {self.directory}")
        return removed

    def _remove_files(self, cutoff: float) -> int:
        removed = 0
        for path in self.directory.iterdir():
            if path.suffix not in (ENTRY_SUFFIX, TEMP_SUFFIX) or not path.is_file():
                continue
            try:
                if path.stat().st_mtime >= cutoff:
                    continue
                path.unlink()
            except FileNotFoundError:
                # Replaced or removed concurrently
                continue
            except OSError as e:
                logger.warning(f"Failed to remove cache file {path}: {e}")
                continue
            removed += 1
        return removed

    async def start(self) -> None:
        """Start the background sweep. Sweeps once immediately."""
        if self._sweep_task is None:
            self._shutdown_event.clear()
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def close(self) -> None:
        """Stop the background sweep."""
        self._shutdown_event.set()
        if self._sweep_task:
            try:
                await asyncio.wait_for(self._sweep_task, timeout=5.0)
            except TimeoutError:
                self._sweep_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._sweep_task
            self._sweep_task = None

    async def _sweep_loop(self) -> None:
        """Background task that sweeps old cache files."""
        while not self._shutdown_event.is_set():
            try:
                await self.sweep()
            except OSError as e:
                logger.error(f"Cache sweep of {self.directory} failed: {e}")

            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(), timeout=self.sweep_interval
                )
                # Shutdown event was set
                break
            except TimeoutError:
                continue
