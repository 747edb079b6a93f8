"""
Unit tests for per-key locking.
"""

import threading
import time

from midnight_lace.locks import KeyedLock


class TestKeyedLock:
    def test_same_key_is_serialized(self):
        locks = KeyedLock()
        inside = []
        overlap = []

        def worker():
            with locks.hold("fan_1"):
                if inside:
                    overlap.append(True)
                inside.append(True)
                time.sleep(0.02)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert overlap == []

    def test_different_keys_do_not_block(self):
        locks = KeyedLock()
        acquired = threading.Event()

        with locks.hold("fan_1"):
            def other():
                with locks.hold("fan_2"):
                    acquired.set()

            t = threading.Thread(target=other)
            t.start()
            assert acquired.wait(timeout=1)
            t.join()

    def test_entries_are_released(self):
        locks = KeyedLock()
        with locks.hold("fan_1"):
            assert locks.active_keys() == 1
        assert locks.active_keys() == 0

    def test_released_on_exception(self):
        locks = KeyedLock()
        try:
            with locks.hold("fan_1"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert locks.active_keys() == 0
        with locks.hold("fan_1"):
            pass
