"""Ordering of a process's children by an accumulated metric."""

from collections.abc import Callable
from enum import Enum

from pree.aggregate import accumulated_cpu, accumulated_rss
from pree.process import Process


class SortMetric(Enum):
    """Accumulated metric that drives child ordering."""

    RSS = "rss"
    CPU = "cpu"


_SORT_KEYS: dict[SortMetric, Callable[[Process], float]] = {
    SortMetric.RSS: accumulated_rss,
    SortMetric.CPU: accumulated_cpu,
}


def sort_key(metric: SortMetric) -> Callable[[Process], float]:
    """Return the key function for a metric."""
    return _SORT_KEYS[metric]


def sort_children(proc: Process, metric: SortMetric, reverse: bool = False) -> None:
    """Sort proc.children in place, ascending unless reverse is set.

    list.sort is stable in both directions, so children with equal metric
    values keep their insertion order.
    """
    proc.children.sort(key=sort_key(metric), reverse=reverse)
