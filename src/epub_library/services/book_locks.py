"""Per-book serialization of read-modify-write operations."""

import threading
from typing import Dict


class BookLockRegistry:
    """Hands out one re-entrant lock per book id.

    Every read-modify-write against a book record (reading time, highlights,
    position) must hold the book's lock, otherwise two writers can each read
    the same record and the last full-record write wins.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.RLock] = {}

    def lock_for(self, book_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(book_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[book_id] = lock
            return lock

    def forget(self, book_id: int) -> None:
        """Drop the lock of a deleted book."""
        with self._guard:
            self._locks.pop(book_id, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def __bool__(self) -> bool:
        # An empty registry is still a registry.
        return True
