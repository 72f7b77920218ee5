"""Text rendering of a process tree.

Two strategies share the per-process summary:

- FancyRenderer: box-drawing connectors, for terminals
- BoringRenderer: plain indentation, for pipes and scripts

Both walk the tree depth-first, pre-order, sorting each node's children
right before descending into them. The walk uses an explicit stack so deep
trees do not hit the recursion limit.
"""

from collections.abc import Iterator

from rich.cells import cell_len

from pree.aggregate import accumulated_cpu, accumulated_rss
from pree.config import RenderConfig, Style
from pree.formatting import format_percent, format_size
from pree.process import Process
from pree.sorting import sort_children

# Fancy glyphs
JOINT = " ╤"  # After the name of a process that has children
STEM = "─╴"  # Between the connector and the name
TEE = "├"
ELBOW = "└"
BAR = "│"


def format_summary(proc: Process, config: RenderConfig) -> str:
    """Format the pid and metric columns shown after a process name.

    Layout: "(#PID; RSS CPU%) -- ACCUM_RSS ACCUM_CPU%", with the RSS and
    CPU columns dropped according to config. With both hidden only "(#PID)"
    remains.
    """
    own: list[str] = []
    accumulated: list[str] = []
    if config.show_rss:
        own.append(format_size(proc.rss))
        accumulated.append(format_size(accumulated_rss(proc)))
    if config.show_cpu:
        own.append(format_percent(proc.cpu))
        accumulated.append(format_percent(accumulated_cpu(proc)))

    if not own:
        return f"(#{proc.pid})"
    return f"(#{proc.pid}; {' '.join(own)}) -- {' '.join(accumulated)}"


class TreeRenderer:
    """Base class for tree renderers."""

    def __init__(self, config: RenderConfig) -> None:
        self.config = config

    def render(self, root: Process) -> Iterator[str]:
        """Yield one line per process in the subtree rooted at root."""
        raise NotImplementedError

    def _sorted_children(self, proc: Process) -> list[Process]:
        sort_children(proc, self.config.metric, self.config.reverse)
        return proc.children


class FancyRenderer(TreeRenderer):
    """Draws branches with box-drawing characters.

    Children's connectors line up under the parent's joint glyph, so the
    indentation of each level depends on the display width of the parent's
    name.
    """

    def render(self, root: Process) -> Iterator[str]:
        # (process, prefix, bar continuing this process's sibling column, connector)
        stack: list[tuple[Process, str, str, str | None]] = [(root, "", "", None)]
        while stack:
            proc, prefix, bar, connector = stack.pop()
            joint = JOINT if proc.children else ""
            summary = format_summary(proc, self.config)
            width = cell_len(proc.name)

            if connector is None:
                yield f"{proc.name}{joint} {summary}"
                child_prefix = " " * (width + 1)
            else:
                yield f"{prefix}{connector}{STEM}{proc.name}{joint} {summary}"
                child_prefix = prefix + bar + " " * (width + 3)

            children = self._sorted_children(proc)
            last = len(children) - 1
            for index in range(last, -1, -1):
                if index == last:
                    stack.append((children[index], child_prefix, " ", ELBOW))
                else:
                    stack.append((children[index], child_prefix, BAR, TEE))


class BoringRenderer(TreeRenderer):
    """Indents each level by the width of the parent's name plus one."""

    def render(self, root: Process) -> Iterator[str]:
        stack: list[tuple[Process, str]] = [(root, "")]
        while stack:
            proc, prefix = stack.pop()
            yield f"{prefix}{proc.name} {format_summary(proc, self.config)}"

            child_prefix = prefix + " " * (cell_len(proc.name) + 1)
            stack.extend((child, child_prefix) for child in reversed(self._sorted_children(proc)))


def make_renderer(config: RenderConfig, isatty: bool) -> TreeRenderer:
    """Return the renderer for config.style; AUTO picks fancy on a terminal."""
    if config.style.resolve(isatty) is Style.FANCY:
        return FancyRenderer(config)
    return BoringRenderer(config)
