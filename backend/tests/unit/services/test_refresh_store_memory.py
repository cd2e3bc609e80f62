# tests/unit/services/test_refresh_store_memory.py
"""In-memory refresh store: compare-and-swap semantics and thread safety."""

from __future__ import annotations

import threading
from collections import Counter

from library_auth.services._shared.ports import InMemoryRefreshStore, RotationResult


def test_put_overwrites_single_record():
    store = InMemoryRefreshStore()
    store.put("alice", "t1")
    store.put("alice", "t2")

    view = store.get("alice")
    assert view is not None
    assert view.token == "t2"


def test_rotate_ok_replaces_value():
    store = InMemoryRefreshStore()
    store.put("alice", "t1")

    assert store.rotate(principal="alice", presented="t1", replacement="t2") is RotationResult.OK
    assert store.get("alice").token == "t2"


def test_rotate_mismatch_deletes_record():
    store = InMemoryRefreshStore()
    store.put("alice", "t2")

    assert store.rotate(principal="alice", presented="t1", replacement="t3") is RotationResult.REUSED
    assert store.get("alice") is None


def test_rotate_without_record_is_not_found():
    store = InMemoryRefreshStore()

    assert store.rotate(principal="alice", presented="t1", replacement="t2") is RotationResult.NOT_FOUND
    assert store.get("alice") is None


def test_discard_only_removes_matching_value():
    store = InMemoryRefreshStore()
    store.put("alice", "t2")

    assert store.discard("alice", "t1") is False
    assert store.get("alice") is not None
    assert store.discard("alice", "t2") is True
    assert store.get("alice") is None


def test_delete_reports_existence():
    store = InMemoryRefreshStore()
    store.put("alice", "t1")

    assert store.delete("alice") is True
    assert store.delete("alice") is False


def test_concurrent_rotations_of_same_token_succeed_at_most_once():
    """Many threads race the same presented token: exactly one wins, the rest fail closed."""
    store = InMemoryRefreshStore()
    store.put("alice", "t0")
    barrier = threading.Barrier(16)
    results: list[RotationResult] = []
    lock = threading.Lock()

    def worker(i: int) -> None:
        barrier.wait()
        res = store.rotate(principal="alice", presented="t0", replacement=f"t1-{i}")
        with lock:
            results.append(res)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    counts = Counter(results)
    assert counts[RotationResult.OK] == 1
    # the first loser sees the new value and revokes; later ones find nothing
    assert counts[RotationResult.REUSED] == 1
    assert counts[RotationResult.NOT_FOUND] == 14
    assert store.get("alice") is None
