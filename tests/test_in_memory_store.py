"""Unit tests for the in-memory counter store."""

import threading

from quotagate.adapters.counter_store.in_memory import InMemoryCounterStore


def test_get_missing_key_returns_zero(fake_time) -> None:
    store = InMemoryCounterStore(clock=fake_time)

    assert store.get("missing") == 0
    assert store.ttl("missing") == 0


def test_increment_sets_expiry_only_once(fake_time) -> None:
    store = InMemoryCounterStore(clock=fake_time)

    assert store.increment("k", 10) == 1
    assert store.ttl("k") == 10

    fake_time.advance(4)
    assert store.increment("k", 10) == 2
    # Window start is fixed by the first increment
    assert store.ttl("k") == 6


def test_increment_restarts_after_expiry(fake_time) -> None:
    store = InMemoryCounterStore(clock=fake_time)
    store.increment("k", 5)
    store.increment("k", 5)

    fake_time.advance(5)

    assert store.get("k") == 0
    assert store.increment("k", 5) == 1
    assert store.ttl("k") == 5


def test_set_overwrites_value_and_expiry(fake_time) -> None:
    store = InMemoryCounterStore(clock=fake_time)
    store.increment("k", 100)

    store.set("k", 10, 60)

    assert store.get("k") == 10
    assert store.ttl("k") == 60


def test_set_with_non_positive_expiry_removes_key(fake_time) -> None:
    store = InMemoryCounterStore(clock=fake_time)
    store.set("k", 1, 60)

    store.set("k", 1, 0)

    assert store.get("k") == 0
    assert store.ttl("k") == 0


def test_expired_entry_reads_as_absent(fake_time) -> None:
    store = InMemoryCounterStore(clock=fake_time)
    store.set("k", 1, 0.001)

    fake_time.advance(0.002)

    assert store.get("k") == 0
    assert store.ttl("k") == 0


def test_reads_are_idempotent(fake_time) -> None:
    store = InMemoryCounterStore(clock=fake_time)
    store.increment("k", 30)

    assert store.get("k") == store.get("k") == 1
    assert store.ttl("k") == store.ttl("k")

    first = store.ttl("k")
    fake_time.advance(1)
    assert store.ttl("k") == first - 1


def test_close_is_idempotent(fake_time) -> None:
    store = InMemoryCounterStore(clock=fake_time)
    store.increment("k", 30)

    store.close()
    store.close()

    assert store.get("k") == 0


def test_concurrent_increments_yield_distinct_values() -> None:
    store = InMemoryCounterStore()
    total = 50
    results: list[int] = []
    results_lock = threading.Lock()
    barrier = threading.Barrier(total)

    def _worker() -> None:
        barrier.wait()
        value = store.increment("fresh", 60)
        with results_lock:
            results.append(value)

    threads = [threading.Thread(target=_worker) for _ in range(total)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results) == list(range(1, total + 1))
    assert store.get("fresh") == total
    assert 0 < store.ttl("fresh") <= 60
