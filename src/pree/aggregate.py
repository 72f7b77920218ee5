"""Subtree-accumulated RSS and CPU with per-process memoization."""

from pree.process import Process


def _combine(node: Process, own_attr: str, cache_attr: str) -> None:
    """Fill node's cache from its own value and its children's caches."""
    total = getattr(node, own_attr)
    for child in node.children:
        total += getattr(child, cache_attr)
    setattr(node, cache_attr, total)


def _accumulate(proc: Process, own_attr: str, cache_attr: str) -> int | float:
    cached = getattr(proc, cache_attr)
    if cached is not None:
        return cached

    # Post-order walk with an explicit stack; children are combined before
    # their parent and already-cached subtrees are not entered again.
    stack: list[tuple[Process, bool]] = [(proc, False)]
    while stack:
        node, expanded = stack.pop()
        if getattr(node, cache_attr) is not None:
            continue
        if expanded:
            _combine(node, own_attr, cache_attr)
            continue
        stack.append((node, True))
        stack.extend(
            (child, False) for child in node.children if getattr(child, cache_attr) is None
        )

    return getattr(proc, cache_attr)


def accumulated_rss(proc: Process) -> int:
    """Return RSS in KiB summed over proc and all of its descendants."""
    return _accumulate(proc, "rss", "accum_rss")


def accumulated_cpu(proc: Process) -> float:
    """Return the CPU fraction summed over proc and all of its descendants."""
    return _accumulate(proc, "cpu", "accum_cpu")
