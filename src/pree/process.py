"""Process entity for one snapshot of the process tree."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from pree.records import RawRecord

# PPID reported for processes with no parent
NO_PARENT = 0


def cpu_fraction(user_ticks: int, kernel_ticks: int, start_ticks: int, now_ticks: float) -> float:
    """Return CPU time as a fraction of time elapsed since the process started.

    Both terms are in clock ticks; now_ticks is already averaged over cores,
    so busy multi-threaded processes can exceed 1.0. A non-positive elapsed
    time yields 0.0.
    """
    elapsed = now_ticks - start_ticks
    if elapsed <= 0:
        return 0.0
    return max(user_ticks + kernel_ticks, 0) / elapsed


def _printable(name: str) -> str:
    # One output line per process: control and undecodable characters become "?"
    return "".join(char if char.isprintable() else "?" for char in name)


def display_name(record: RawRecord) -> str:
    """Basename of the executable, or the raw command name if unresolved."""
    if record.exe_path:
        name = os.path.basename(record.exe_path)
        if name:
            return _printable(name)
    return _printable(record.command)


@dataclass(eq=False)
class Process:
    """A process and the subtree it owns.

    accum_rss/accum_cpu are memo caches filled by pree.aggregate; None means
    "not computed yet", so a subtree that sums to zero is cached as well.
    """

    pid: int
    ppid: int
    name: str
    rss: int  # KiB
    cpu: float  # Fraction of elapsed time
    children: list[Process] = field(default_factory=list, repr=False)
    parent: Process | None = field(default=None, repr=False)
    accum_rss: int | None = field(default=None, repr=False)
    accum_cpu: float | None = field(default=None, repr=False)

    @classmethod
    def from_record(cls, record: RawRecord, page_size: int, now_ticks: float) -> Process:
        """Build a Process from a raw record and the clock reading taken with it."""
        return cls(
            pid=record.pid,
            ppid=record.ppid,
            name=display_name(record),
            rss=max(record.resident_pages, 0) * page_size // 1024,
            cpu=cpu_fraction(record.user_ticks, record.kernel_ticks, record.start_ticks, now_ticks),
        )

    @property
    def is_root(self) -> bool:
        """True if this process has no parent in the snapshot."""
        return self.parent is None

    def adopt(self, child: Process) -> None:
        """Append child to this process's children and point it back here."""
        child.parent = self
        self.children.append(child)
