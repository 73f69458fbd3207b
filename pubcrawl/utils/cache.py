from __future__ import annotations
import time
from collections import OrderedDict
from typing import Any, Callable, Tuple

_MISSING = object()


class TTLCache:
    """LRU cache whose entries also expire after a per-entry TTL (seconds)."""

    def __init__(self, max_entries: int = 500, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._data: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._data.get(key, _MISSING)
        if entry is _MISSING:
            return default
        value, expires_at = entry
        if self._clock() > expires_at:
            del self._data[key]
            return default
        self._data.move_to_end(key)
        return value

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def set(self, key: str, value: Any, ttl: float) -> None:
        if key in self._data:
            del self._data[key]
        elif len(self._data) >= self.max_entries:
            self._data.popitem(last=False)
        self._data[key] = (value, self._clock() + ttl)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)
