"""Tests for the model read-write lock."""

import threading
import time

from eventmodel.core.locking import ReadWriteLock


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return False


def test_readers_share():
    lock = ReadWriteLock()
    with lock.read_locked():
        with lock.read_locked():
            assert lock.snapshot()["readers"] == 2
    assert lock.snapshot() == {"readers": 0, "writer": False, "writers_waiting": 0}


def test_writer_excludes_readers():
    lock = ReadWriteLock()
    entered = threading.Event()

    def reader():
        with lock.read_locked():
            entered.set()

    with lock.write_locked():
        thread = threading.Thread(target=reader)
        thread.start()
        assert not entered.wait(0.1)
        assert lock.snapshot()["writer"] is True
    thread.join(timeout=2)
    assert entered.is_set()


def test_waiting_writer_blocks_new_readers():
    lock = ReadWriteLock()
    order = []

    def writer():
        with lock.write_locked():
            order.append("writer")

    def late_reader():
        with lock.read_locked():
            order.append("reader")

    with lock.read_locked():
        w = threading.Thread(target=writer)
        w.start()
        assert _wait_for(lambda: lock.snapshot()["writers_waiting"] == 1)
        r = threading.Thread(target=late_reader)
        r.start()
        time.sleep(0.05)
        assert order == []
    w.join(timeout=2)
    r.join(timeout=2)
    assert order == ["writer", "reader"]


def test_lock_released_on_exception():
    lock = ReadWriteLock()
    try:
        with lock.write_locked():
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    with lock.read_locked():
        assert lock.snapshot()["writer"] is False
