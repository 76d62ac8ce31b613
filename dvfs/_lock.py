import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager


def _calc_deadline(timeout: float | None) -> float | None:
    if timeout is None:
        return None
    if timeout <= 0.0:
        return 0.0
    return time.monotonic() + timeout


def _remaining(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    if deadline == 0.0:
        return 0.0
    return max(0.0, deadline - time.monotonic())


class ReadWriteLock:
    """Readers-writer lock guarding a whole directory tree.

    Any number of readers (lookups, counts, searches, rendering) may hold the
    lock together; a writer (insert, mount, remove, prune) needs it alone.
    There is no fairness: a steady stream of readers can starve a writer, so
    callers bound the wait with ``timeout``. A timed-out wait raises
    :class:`BlockingIOError`.

    :class:`~dvfs.VirtualFileSystem` owns one instance and enters
    :meth:`reading` or :meth:`writing` around every public call, passing its
    ``lock_timeout``. The lock covers the tree structure only: loading a
    handle's bytes under a read lock is serialized by the handle itself, so
    concurrent readers of one file trigger a single load. A bare
    :class:`~dvfs.Directory` takes no lock at all.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers: int = 0
        self._writer: bool = False

    def _wait(self, blocked, deadline: float | None, kind: str) -> None:
        while blocked():
            remaining = _remaining(deadline)
            if remaining == 0.0 or not self._condition.wait(timeout=remaining):
                if blocked():
                    raise BlockingIOError(f"Could not acquire {kind} lock within timeout.")

    def acquire_read(self, timeout: float | None = None) -> None:
        deadline = _calc_deadline(timeout)
        with self._condition:
            self._wait(lambda: self._writer, deadline, "read")
            self._readers += 1

    def release_read(self) -> None:
        with self._condition:
            if self._readers <= 0:
                raise RuntimeError("release_read called without matching acquire_read")
            self._readers -= 1
            if self._readers == 0:
                self._condition.notify_all()

    def acquire_write(self, timeout: float | None = None) -> None:
        deadline = _calc_deadline(timeout)
        with self._condition:
            self._wait(lambda: self._writer or self._readers > 0, deadline, "write")
            self._writer = True

    def release_write(self) -> None:
        with self._condition:
            if not self._writer:
                raise RuntimeError("release_write called without matching acquire_write")
            self._writer = False
            self._condition.notify_all()

    @contextmanager
    def reading(self, timeout: float | None = None) -> Iterator[None]:
        self.acquire_read(timeout)
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def writing(self, timeout: float | None = None) -> Iterator[None]:
        self.acquire_write(timeout)
        try:
            yield
        finally:
            self.release_write()

    @property
    def is_locked(self) -> bool:
        with self._condition:
            return self._writer or self._readers > 0

    @property
    def reader_count(self) -> int:
        with self._condition:
            return self._readers
