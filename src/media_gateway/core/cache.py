"""Bounded, insertion-ordered cache of recently reported outcomes."""

import hashlib
import json
import threading
from collections import OrderedDict
from dataclasses import asdict, is_dataclass
from typing import Any, Hashable, Optional, Tuple

from pydantic import BaseModel


def _encode(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (bytes, bytearray)):
        return hashlib.sha256(value).hexdigest()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return repr(value)


def fingerprint(value: Any) -> str:
    """Stable content hash of a result, used to build dedup keys."""
    payload = json.dumps(value, sort_keys=True, default=_encode)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class RecentResultCache:
    """
    Remembers the last few outcomes a pipeline reported.

    Eviction is by insertion order: when the cache overflows the oldest entry
    is dropped, and looking up or re-seeing a key never refreshes it. All
    access goes through one lock so check-then-insert is atomic across
    threads.
    """

    def __init__(self, capacity: int = 3):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value for ``key`` or ``None``."""
        with self._lock:
            return self._entries.get(key)

    def remember(self, key: Hashable, value: Any) -> Tuple[bool, Any]:
        """
        Insert ``value`` under ``key`` unless the key is already cached.

        Returns:
            ``(True, value)`` when inserted, ``(False, cached)`` when the key
            was already present.
        """
        with self._lock:
            if key in self._entries:
                return False, self._entries[key]
            self._entries[key] = value
            while len(self._entries) > self._capacity:
                self._entries.popitem(last=False)
            return True, value

    def keys(self) -> list:
        with self._lock:
            return list(self._entries.keys())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
