"""Time-bounded memoization for pure pricing and routing sub-computations."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import OrderedDict
from copy import deepcopy
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Callable, Hashable, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

_MISSING = object()


def _normalize(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return _normalize(asdict(value))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(key): _normalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    if isinstance(value, float):
        return repr(value)
    return value


def make_cache_key(namespace: str, *parts: Any) -> str:
    """Build a stable hash key from dataclasses, enums and plain values."""

    payload = json.dumps([namespace, _normalize(list(parts))], sort_keys=True, default=str)
    return f"{namespace}:{hashlib.sha256(payload.encode('utf-8')).hexdigest()}"


class TTLCache:
    """Key to (value, expiry) store with a fixed time-to-live and bounded size.

    Entries are read-check-then-write; values must be pure functions of their keys
    so recomputing after expiry or a concurrent miss is harmless. Values are
    copied on the way in and out, so callers never share a cached object.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 256,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("Cache TTL must be positive.")
        if max_entries < 1:
            raise ValueError("Cache must hold at least one entry.")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock or time.monotonic
        self._entries: OrderedDict[Hashable, tuple[Any, float]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return default
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self.misses += 1
            return default
        self.hits += 1
        return deepcopy(value)

    def set(self, key: Hashable, value: Any) -> None:
        now = self._clock()
        self._entries.pop(key, None)
        if len(self._entries) >= self.max_entries:
            self._evict_expired(now)
        while len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)
        self._entries[key] = (deepcopy(value), now + self.ttl_seconds)

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            logger.debug(f"Cache hit for {key}")
            return cached
        value = compute()
        self.set(key, value)
        return value

    def clear(self) -> None:
        self._entries.clear()

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
