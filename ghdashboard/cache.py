"""A small time-limited cache of API responses, persisted to disk."""

from __future__ import annotations

import logging
import os
import pickle
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

CACHE_FILE = "cache.pickle"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheItem:
    """A cached value and the moment it stops being valid."""

    value: Any
    expiration: datetime

    def expired(self, now: datetime) -> bool:
        return now > self.expiration


class Cache:
    """Key/value cache whose entries expire after a fixed time to live."""

    def __init__(self, directory: str | os.PathLike[str], ttl: timedelta) -> None:
        self.directory = Path(directory)
        self.ttl = ttl
        self._items: dict[str, CacheItem] = {}
        self._lock = threading.RLock()
        self._load()

    @property
    def path(self) -> Path:
        return self.directory / CACHE_FILE

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``, or ``default`` if absent or expired."""
        with self._lock:
            item = self._items.get(key)
            if item is None or item.expired(_now()):
                return default
            return item.value

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key`` and persist the cache."""
        with self._lock:
            self._items[key] = CacheItem(value, _now() + self.ttl)
            self.save()

    def clear(self) -> None:
        """Drop every entry and persist the empty cache."""
        with self._lock:
            self._items = {}
            self.save()

    def save(self) -> None:
        """Write the cache to disk; failures are logged, not raised."""
        with self._lock:
            try:
                data = pickle.dumps(self._items)
            except (pickle.PicklingError, TypeError, AttributeError) as exc:
                log.error("Error encoding cache: %s", exc)
                return
            try:
                fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".cache-")
            except OSError as exc:
                log.error("Error creating cache file: %s", exc)
                return
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                os.replace(tmp_name, self.path)
            except OSError as exc:
                log.error("Error writing cache file: %s", exc)
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    def _load(self) -> None:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return
        except OSError as exc:
            log.error("Error opening cache file: %s", exc)
            return

        try:
            items = pickle.loads(raw)
            if not isinstance(items, dict) or not all(
                isinstance(item, CacheItem) for item in items.values()
            ):
                raise ValueError("unexpected cache contents")
        except Exception as exc:  # any undecodable file means a fresh start
            log.error("Error decoding cache: %s", exc)
            items = {}

        now = _now()
        self._items = {key: item for key, item in items.items() if not item.expired(now)}