"""Tests for subtree aggregation."""

import random

import pytest

import pree.aggregate
from pree.aggregate import accumulated_cpu, accumulated_rss
from pree.process import Process
from pree.store import ProcessStore
from tests.conftest import FakeClock, FakeRecordSource, make_process, make_record


@pytest.fixture
def combine_calls(monkeypatch: pytest.MonkeyPatch) -> list[int]:
    """Record the PID of every node whose aggregate gets computed."""
    calls: list[int] = []
    real_combine = pree.aggregate._combine

    def counting(node: Process, own_attr: str, cache_attr: str) -> None:
        calls.append(node.pid)
        real_combine(node, own_attr, cache_attr)

    monkeypatch.setattr(pree.aggregate, "_combine", counting)
    return calls


def random_tree(seed: int, size: int) -> list[Process]:
    """Return processes of a random tree; element 0 is the root."""
    rng = random.Random(seed)
    procs = [make_process(1, rss=rng.randint(0, 5000), cpu=rng.random())]
    for pid in range(2, size + 1):
        parent = rng.choice(procs)
        child = make_process(pid, rss=rng.randint(0, 5000), cpu=rng.random(), ppid=parent.pid)
        parent.adopt(child)
        procs.append(child)
    return procs


class TestAccumulatedRss:
    """Tests for accumulated_rss."""

    def test_scenario(self, scenario_records) -> None:
        store = ProcessStore(FakeRecordSource(scenario_records), FakeClock())
        store.enumerate_all()

        assert accumulated_rss(store.root(1)) == 180
        assert accumulated_rss(store.root(2)) == 50
        assert accumulated_rss(store.root(3)) == 30

    def test_leaf_is_own_rss(self) -> None:
        assert accumulated_rss(make_process(1, rss=64)) == 64

    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    def test_root_equals_total(self, seed: int) -> None:
        """The root aggregate equals the sum over every process in the tree."""
        procs = random_tree(seed, 60)
        assert accumulated_rss(procs[0]) == sum(proc.rss for proc in procs)

    @pytest.mark.parametrize("seed", [0, 1])
    def test_independent_of_query_order(self, seed: int) -> None:
        """Querying leaves first gives the same totals as querying the root first."""
        top_down = random_tree(seed, 40)
        bottom_up = random_tree(seed, 40)

        expected = [accumulated_rss(proc) for proc in top_down]
        actual = [accumulated_rss(proc) for proc in reversed(bottom_up)][::-1]
        assert actual == expected

    def test_enumeration_order_does_not_matter(self) -> None:
        records = [
            make_record(pid, 0 if pid == 1 else max(pid // 3, 1), rss=pid * 10)
            for pid in range(1, 50)
        ]
        totals = []
        for order in (list(range(1, 50)), list(range(49, 0, -1))):
            store = ProcessStore(FakeRecordSource(records, order=order), FakeClock())
            store.enumerate_all()
            totals.append(accumulated_rss(store.root(1)))

        assert totals[0] == totals[1] == sum(pid * 10 for pid in range(1, 50))

    def test_deep_chain(self) -> None:
        """Long ancestor chains do not hit the recursion limit."""
        root = make_process(1, rss=1)
        node = root
        for pid in range(2, 5002):
            child = make_process(pid, rss=1, ppid=node.pid)
            node.adopt(child)
            node = child

        assert accumulated_rss(root) == 5001


class TestMemoization:
    """Tests for cache behavior."""

    def test_second_call_does_not_recompute(self, combine_calls: list[int]) -> None:
        root = make_process(1, rss=10, children=[make_process(2, rss=5), make_process(3, rss=1)])

        first = accumulated_rss(root)
        computed = len(combine_calls)
        second = accumulated_rss(root)

        assert first == second == 16
        assert computed == 3
        assert len(combine_calls) == computed

    def test_each_node_computed_once(self, combine_calls: list[int]) -> None:
        procs = random_tree(7, 30)
        for proc in procs:
            accumulated_rss(proc)
        for proc in reversed(procs):
            accumulated_rss(proc)

        assert sorted(combine_calls) == [proc.pid for proc in procs]

    def test_zero_aggregate_is_cached(self, combine_calls: list[int]) -> None:
        """An idle subtree summing to zero is computed only once."""
        idle = make_process(1, cpu=0.0, children=[make_process(2, cpu=0.0)])

        assert accumulated_cpu(idle) == 0.0
        assert accumulated_cpu(idle) == 0.0
        assert idle.accum_cpu == 0.0
        assert combine_calls == [2, 1]

    def test_cache_not_invalidated(self) -> None:
        """Values are fixed for the snapshot once computed."""
        child = make_process(2, rss=5)
        root = make_process(1, rss=10, children=[child])
        assert accumulated_rss(root) == 15

        child.rss = 500
        assert accumulated_rss(root) == 15

    def test_uses_cached_child(self, combine_calls: list[int]) -> None:
        """A parent reuses a child's already-computed subtree."""
        grandchild = make_process(3, rss=1)
        child = make_process(2, rss=2, children=[grandchild])
        root = make_process(1, rss=4, children=[child])

        accumulated_rss(child)
        accumulated_rss(root)

        assert combine_calls == [3, 2, 1]

    def test_rss_and_cpu_cached_separately(self) -> None:
        root = make_process(1, rss=3, cpu=0.5, children=[make_process(2, rss=4, cpu=0.25)])

        accumulated_rss(root)
        assert root.accum_cpu is None
        assert accumulated_cpu(root) == pytest.approx(0.75)
        assert root.accum_rss == 7


class TestAccumulatedCpu:
    """Tests for accumulated_cpu."""

    def test_scenario(self, scenario_records) -> None:
        store = ProcessStore(FakeRecordSource(scenario_records), FakeClock())
        store.enumerate_all()

        assert accumulated_cpu(store.root(1)) == pytest.approx(0.17)

    @pytest.mark.parametrize("seed", [4, 5])
    def test_root_equals_total(self, seed: int) -> None:
        procs = random_tree(seed, 50)
        assert accumulated_cpu(procs[0]) == pytest.approx(sum(proc.cpu for proc in procs))

    def test_parent_not_below_child(self) -> None:
        """CPU fractions are non-negative, so aggregates grow toward the root."""
        procs = random_tree(11, 40)
        for proc in procs:
            if proc.parent is not None:
                assert accumulated_cpu(proc.parent) >= accumulated_cpu(proc)
