from __future__ import annotations

import contextlib
import threading
from typing import Dict, Iterator, List


class KeyedLocks:
    """
    One mutex per module id. Operations on the same id run one at a time;
    different ids never wait on each other.

    Entries are reference counted and dropped once no caller holds or waits
    on them, so the table only ever contains ids with work in flight.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> [lock, number of callers holding or waiting]
        self._locks: Dict[str, List] = {}

    def _acquire_entry(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _release_entry(self, key: str) -> None:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                return
            entry[1] -= 1
            if entry[1] <= 0:
                del self._locks[key]

    @contextlib.contextmanager
    def hold(self, key: str) -> Iterator[None]:
        key = str(key)
        lk = self._acquire_entry(key)
        try:
            lk.acquire()
            try:
                yield
            finally:
                lk.release()
        finally:
            self._release_entry(key)

    def is_held(self, key: str) -> bool:
        with self._guard:
            entry = self._locks.get(str(key))
        return bool(entry is not None and entry[0].locked())

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
