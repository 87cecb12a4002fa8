import threading
from contextlib import contextmanager


class ItemLocks:
    """One re-entrant lock per item id, created on first use.

    Every write that touches an item's copies, loans or holds runs while
    holding that item's lock, which serializes them within this process.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def lock_for(self, item_id) -> threading.RLock:
        with self._guard:
            return self._locks.setdefault(item_id, threading.RLock())

    @contextmanager
    def hold(self, item_id):
        lock = self.lock_for(item_id)
        with lock:
            yield
