from __future__ import annotations

import threading

from kvmm.storage import ReadWriteLock


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    both_inside = threading.Barrier(2, timeout=2)

    def _reader():
        with lock.read():
            both_inside.wait()

    threads = [threading.Thread(target=_reader) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert not both_inside.broken


def test_writer_excludes_readers():
    lock = ReadWriteLock()
    events: list[str] = []
    writer_inside = threading.Event()
    release_writer = threading.Event()

    def _writer():
        with lock.write():
            writer_inside.set()
            release_writer.wait(timeout=2)
            events.append("write")

    def _reader():
        with lock.read():
            events.append("read")

    writer = threading.Thread(target=_writer)
    writer.start()
    writer_inside.wait(timeout=2)

    reader = threading.Thread(target=_reader)
    reader.start()
    reader.join(timeout=0.1)
    assert events == []

    release_writer.set()
    writer.join(timeout=2)
    reader.join(timeout=2)
    assert events == ["write", "read"]
