from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Tuple

Clock = Callable[[], float]


class ExpiringCache(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def put(self, key: str, value: str, ttl_seconds: int) -> None: ...


class MemoryCache:
    """Process-local string cache with per-entry expiry."""

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (value, self._clock() + ttl_seconds)


class FileCache:
    """JSON-file cache so entries outlive a single scheduler invocation.

    Concurrent writers are not coordinated; the last write wins.
    """

    def __init__(self, path: str, clock: Clock = time.time) -> None:
        self.path = Path(path)
        self._clock = clock

    def get(self, key: str) -> Optional[str]:
        entry = self._load().get(key)
        if entry is None or self._clock() >= entry["expires_at"]:
            return None
        return str(entry["value"])

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        now = self._clock()
        entries = {k: v for k, v in self._load().items() if v["expires_at"] > now}
        entries[key] = {"value": value, "expires_at": now + ttl_seconds}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")

    def _load(self) -> Dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            # A corrupt cache only costs extra estimator calls.
            return {}
        if not isinstance(data, dict):
            return {}
        entries = {}
        for key, entry in data.items():
            if not isinstance(entry, dict) or "value" not in entry:
                continue
            try:
                entries[key] = {"value": entry["value"], "expires_at": float(entry.get("expires_at", 0))}
            except (TypeError, ValueError):
                continue
        return entries
