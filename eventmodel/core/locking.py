"""Single read-write lock guarding one event model.

Any number of readers may hold the lock together; a writer holds it alone.
Not reentrant: code running under the lock must not acquire it again.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class ReadWriteLock:
    """Readers share, writers exclude. Waiting writers block new readers."""

    _readers: int = 0
    _writer: bool = False
    _writers_waiting: int = 0
    _cond: threading.Condition = field(default_factory=threading.Condition)

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()

    def snapshot(self) -> dict:
        """Return a thread-safe copy of the lock counters."""
        with self._cond:
            return {
                "readers": self._readers,
                "writer": self._writer,
                "writers_waiting": self._writers_waiting,
            }
