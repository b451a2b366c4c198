"""
In-process per-room locks.

Serializes booking creation for one room inside a single worker process.
PostgreSQL deployments additionally lock the room row (see db_helpers), which
covers multiple processes.
"""

import threading
from contextlib import contextmanager
from typing import Dict


class RoomLockRegistry:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    def get(self, room_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(room_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[room_id] = lock
            return lock

    @contextmanager
    def hold(self, room_id: int):
        lock = self.get(room_id)
        with lock:
            yield


room_locks = RoomLockRegistry()
