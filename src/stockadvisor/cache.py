from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass(slots=True)
class _CacheRecord(Generic[T]):
    value: T
    expires_at: float


class TTLCache:
    """In-process key/value store with per-entry expiry.

    Expired entries are evicted lazily when read; there is no background
    sweep. No locking: two concurrent misses on one key both compute and the
    last ``set`` wins.
    """

    def __init__(self, default_ttl: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._default_ttl = float(default_ttl)
        self._clock = clock
        self._store: dict[str, _CacheRecord[Any]] = {}

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def get(self, key: str) -> Any | None:
        record = self._store.get(key)
        if record is None:
            return None
        if self._clock() > record.expires_at:
            # another reader may have evicted it already
            self._store.pop(key, None)
            return None
        return record.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        lifetime = self._default_ttl if ttl is None else float(ttl)
        self._store[key] = _CacheRecord(value=value, expires_at=self._clock() + lifetime)

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store
