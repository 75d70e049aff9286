import threading
import time

from bitbeam.core.locks import KeyedLock


def test_entries_are_removed_when_released():
    locks = KeyedLock()
    with locks.hold("a"):
        assert locks.active_keys() == ["a"]
    assert locks.active_keys() == []


def test_same_key_is_mutually_exclusive():
    locks = KeyedLock()
    inside = 0
    peak = 0
    guard = threading.Lock()

    def _work():
        nonlocal inside, peak
        with locks.hold("shared"):
            with guard:
                inside += 1
                peak = max(peak, inside)
            time.sleep(0.01)
            with guard:
                inside -= 1

    threads = [threading.Thread(target=_work) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert peak == 1
    assert locks.active_keys() == []


def test_different_keys_do_not_block():
    locks = KeyedLock()
    entered = threading.Event()

    def _other():
        with locks.hold("b"):
            entered.set()

    with locks.hold("a"):
        worker = threading.Thread(target=_other)
        worker.start()
        assert entered.wait(timeout=5)
        worker.join()


def test_entry_released_after_exception():
    locks = KeyedLock()
    try:
        with locks.hold("a"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert locks.active_keys() == []
    with locks.hold("a"):
        pass
