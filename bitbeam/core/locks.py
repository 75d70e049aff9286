from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Dict, List


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class KeyedLock:
    """Mutual exclusion per key, stored in-memory.

    An entry lives only while someone holds or waits on it, so the table
    stays as small as the set of identifiers currently in use.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, _Entry] = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[key]

    def active_keys(self) -> List[str]:
        with self._guard:
            return list(self._entries)
