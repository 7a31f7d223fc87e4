from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from contention.prim.stack import ConcurrentStack


def test_pops_return_values_in_reverse_push_order() -> None:
    s: ConcurrentStack[int] = ConcurrentStack()
    for v in range(1, 51):
        s.push(v)

    popped = [s.pop() for _ in range(50)]
    assert popped == list(range(50, 0, -1))
    assert s.pop() is None
    assert len(s) == 0


def test_pop_on_empty_is_none_not_error() -> None:
    s: ConcurrentStack[str] = ConcurrentStack()
    assert s.pop() is None
    assert s.peek() is None
    assert len(s) == 0


def test_len_follows_the_chain() -> None:
    s: ConcurrentStack[int] = ConcurrentStack()
    s.push(10)
    s.push(20)
    s.push(30)
    assert len(s) == 3
    assert s.peek() == 30

    s.pop()
    assert len(s) == 2
    s.push(40)
    assert len(s) == 3
    assert s.values() == [10, 20, 40]


def test_values_limit_reads_from_the_top() -> None:
    s: ConcurrentStack[int] = ConcurrentStack()
    for v in range(5):
        s.push(v)
    assert s.values(limit=2) == [3, 4]
    assert s.values(limit=0) == []


def test_snapshot_pairs_length_with_the_same_chain() -> None:
    s: ConcurrentStack[int] = ConcurrentStack()
    assert s.snapshot() == (0, [])

    for v in (7, 8, 9):
        s.push(v)
    s.pop()
    assert s.snapshot() == (2, [7, 8])


def test_concurrent_pops_never_hand_out_a_value_twice() -> None:
    k = 2_000
    s: ConcurrentStack[int] = ConcurrentStack()
    for v in range(k):
        s.push(v)

    barrier = threading.Barrier(8)

    def _drain() -> list[int]:
        barrier.wait()
        got: list[int] = []
        while (v := s.pop()) is not None:
            got.append(v)
        return got

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: _drain(), range(8)))

    everything = [v for chunk in results for v in chunk]
    assert len(everything) == k
    assert sorted(everything) == list(range(k))
    assert len(s) == 0


def test_concurrent_pushes_keep_each_workers_order() -> None:
    workers, per_worker = 6, 300
    s: ConcurrentStack[tuple[int, int]] = ConcurrentStack()

    def _push(w: int) -> None:
        for i in range(per_worker):
            s.push((w, i))

    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(_push, range(workers)))

    chain = s.values()
    assert len(chain) == len(s) == workers * per_worker
    for w in range(workers):
        mine = [i for ww, i in chain if ww == w]
        assert mine == list(range(per_worker))
