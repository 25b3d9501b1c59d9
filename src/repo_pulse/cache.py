"""TTL caches for platform API responses.

Caches are created by the caller and handed to a platform client; nothing in
the package keeps a cache of its own.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "repo-pulse"
DEFAULT_TTL = 3600  # 1 hour


def make_key(url: str, params: dict[str, Any] | None = None) -> str:
    raw = url + json.dumps(params or {}, sort_keys=True)
    return hashlib.sha256(raw.encode()).hexdigest()


class BaseCache(ABC):
    """Key/value cache addressed by request URL and query parameters."""

    def __init__(self, ttl: int = DEFAULT_TTL) -> None:
        self._ttl = ttl

    @property
    def ttl(self) -> int:
        return self._ttl

    @abstractmethod
    def get(self, url: str, params: dict[str, Any] | None = None) -> Any | None:
        """Return the cached value, or None when missing or expired."""

    @abstractmethod
    def set(self, url: str, params: dict[str, Any] | None, value: Any) -> None: ...

    @abstractmethod
    def invalidate(self, url: str, params: dict[str, Any] | None = None) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...

    def _expired(self, ts: float) -> bool:
        return time.time() - ts > self._ttl


class MemoryCache(BaseCache):
    """In-process cache with TTL support."""

    def __init__(self, ttl: int = DEFAULT_TTL) -> None:
        super().__init__(ttl)
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, url: str, params: dict[str, Any] | None = None) -> Any | None:
        key = make_key(url, params)
        entry = self._entries.get(key)
        if entry is None:
            return None
        ts, value = entry
        if self._expired(ts):
            del self._entries[key]
            return None
        return value

    def set(self, url: str, params: dict[str, Any] | None, value: Any) -> None:
        self._entries[make_key(url, params)] = (time.time(), value)

    def invalidate(self, url: str, params: dict[str, Any] | None = None) -> None:
        self._entries.pop(make_key(url, params), None)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        expired = [key for key, (ts, _) in self._entries.items() if self._expired(ts)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class FileCache(BaseCache):
    """Simple file-based cache with TTL support."""

    def __init__(
        self, cache_dir: Path = DEFAULT_CACHE_DIR, ttl: int = DEFAULT_TTL
    ) -> None:
        super().__init__(ttl)
        self._cache_dir = cache_dir
        self._cache_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        return self._cache_dir / f"{key}.json"

    def get(self, url: str, params: dict[str, Any] | None = None) -> Any | None:
        path = self._path_for(make_key(url, params))
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError):
            return None
        if self._expired(data.get("ts", 0)):
            path.unlink(missing_ok=True)
            return None
        return data.get("value")

    def set(self, url: str, params: dict[str, Any] | None, value: Any) -> None:
        path = self._path_for(make_key(url, params))
        payload = {"ts": time.time(), "value": value}
        try:
            path.write_text(json.dumps(payload, ensure_ascii=False))
        except OSError as exc:
            logger.warning("Could not write cache entry %s: %s", path.name, exc)

    def invalidate(self, url: str, params: dict[str, Any] | None = None) -> None:
        self._path_for(make_key(url, params)).unlink(missing_ok=True)

    def clear(self) -> None:
        for path in self._cache_dir.glob("*.json"):
            path.unlink(missing_ok=True)

    def cleanup(self) -> int:
        """Delete expired or unreadable entry files and return how many went."""
        removed = 0
        for path in self._cache_dir.glob("*.json"):
            try:
                data = json.loads(path.read_text())
            except (json.JSONDecodeError, OSError):
                data = {}
            if self._expired(data.get("ts", 0)):
                path.unlink(missing_ok=True)
                removed += 1
        return removed
