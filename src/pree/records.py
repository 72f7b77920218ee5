"""Raw process record and clock sources.

The tree builder only talks to the two protocols defined here, so tests can
feed it synthetic process graphs. Two concrete backends ship:

- procfs: reads /proc/<pid>/stat directly (Linux)
- psutil: portable fallback for platforms without /proc
"""

import mmap
import os
import time
from collections.abc import Iterable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Protocol

import psutil
import structlog

from pree.errors import ProcessAccessDenied, ProcessNotFound, RecordError

log = structlog.get_logger()

# Zero-based indexes into the fields following "(comm) " in /proc/<pid>/stat.
# proc(5) numbers fields from 1 and the first two are pid and comm.
_STAT_PPID = 4 - 3
_STAT_UTIME = 14 - 3
_STAT_STIME = 15 - 3
_STAT_STARTTIME = 22 - 3
_STAT_RSS = 24 - 3

_DEFAULT_CLOCK_TICKS = 100


@dataclass(frozen=True)
class RawRecord:
    """Per-process accounting data as reported by the OS."""

    pid: int
    ppid: int
    command: str
    resident_pages: int
    user_ticks: int
    kernel_ticks: int
    start_ticks: int  # Ticks since boot at process creation
    exe_path: str | None = None


class RecordSource(Protocol):
    """Supplies raw process records."""

    def list_pids(self) -> Iterable[int]:
        """Return every PID currently visible."""
        ...

    def page_size(self) -> int:
        """Return the memory page size in bytes."""
        ...

    def read(self, pid: int) -> RawRecord:
        """Read one record.

        Raises:
            ProcessNotFound: The process has exited.
            ProcessAccessDenied: The process data is protected.
        """
        ...


class ClockSource(Protocol):
    """Supplies the elapsed-time basis for CPU fractions."""

    def ticks_since_boot(self) -> float:
        """Return ticks elapsed since boot, averaged over processor cores."""
        ...


def clock_ticks_per_second() -> int:
    """Return the kernel's USER_HZ, or 100 where sysconf is unavailable."""
    if hasattr(os, "sysconf"):
        try:
            return os.sysconf("SC_CLK_TCK")
        except (ValueError, OSError):
            pass
    return _DEFAULT_CLOCK_TICKS


def parse_stat(pid: int, stat: str) -> RawRecord:
    """Parse the contents of /proc/<pid>/stat.

    The command name sits between the first "(" and the last ")" and may
    itself contain spaces and parentheses.

    Raises:
        RecordError: If the line is malformed.
    """
    head, sep, tail = stat.rpartition(")")
    _, paren, command = head.partition("(")
    if not sep or not paren:
        raise RecordError(pid, "malformed stat line")

    values = tail.split()
    try:
        return RawRecord(
            pid=pid,
            ppid=int(values[_STAT_PPID]),
            command=command,
            resident_pages=int(values[_STAT_RSS]),
            user_ticks=int(values[_STAT_UTIME]),
            kernel_ticks=int(values[_STAT_STIME]),
            start_ticks=int(values[_STAT_STARTTIME]),
        )
    except (IndexError, ValueError):
        raise RecordError(pid, "malformed stat line") from None


# ─────────────────────────────────────────────────────────────────────────────
# procfs
# ─────────────────────────────────────────────────────────────────────────────


class ProcfsRecordSource:
    """Reads process records from a procfs mount."""

    def __init__(self, proc_root: Path | str = "/proc") -> None:
        self._root = Path(proc_root)

    def list_pids(self) -> list[int]:
        return sorted(int(entry.name) for entry in self._root.iterdir() if entry.name.isdigit())

    def page_size(self) -> int:
        return os.sysconf("SC_PAGE_SIZE")

    def read(self, pid: int) -> RawRecord:
        proc_dir = self._root / str(pid)
        try:
            stat = (proc_dir / "stat").read_text(errors="replace")
        except (FileNotFoundError, ProcessLookupError):
            raise ProcessNotFound(pid) from None
        except PermissionError:
            raise ProcessAccessDenied(pid) from None

        record = parse_stat(pid, stat)
        try:
            exe_path = os.readlink(proc_dir / "exe")
        except OSError:
            # Kernel threads and other users' processes have no readable exe
            exe_path = None
        return replace(record, exe_path=exe_path)


class ProcStatClock:
    """Ticks since boot from the aggregate cpu line of /proc/stat."""

    def __init__(self, proc_root: Path | str = "/proc", cores: int | None = None) -> None:
        self._stat_path = Path(proc_root) / "stat"
        self._cores = cores or psutil.cpu_count() or 1

    def ticks_since_boot(self) -> float:
        with self._stat_path.open() as f:
            fields = f.readline().split()
        if not fields or fields[0] != "cpu":
            raise RuntimeError(f"Unexpected first line in {self._stat_path}")
        return sum(int(value) for value in fields[1:]) / self._cores


# ─────────────────────────────────────────────────────────────────────────────
# psutil
# ─────────────────────────────────────────────────────────────────────────────


class PsutilRecordSource:
    """Portable record source built on psutil.

    psutil reports times in seconds; they are converted to clock ticks so
    records look the same as the procfs ones.
    """

    def __init__(self, clock_ticks: int | None = None) -> None:
        self._ticks = clock_ticks or clock_ticks_per_second()
        self._boot_time = psutil.boot_time()

    def list_pids(self) -> list[int]:
        return psutil.pids()

    def page_size(self) -> int:
        return mmap.PAGESIZE

    def read(self, pid: int) -> RawRecord:
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                ppid = proc.ppid()
                command = proc.name()
                rss = proc.memory_info().rss
                times = proc.cpu_times()
                created = proc.create_time()
                try:
                    exe_path = proc.exe() or None
                except psutil.AccessDenied:
                    exe_path = None
        except psutil.NoSuchProcess:
            raise ProcessNotFound(pid) from None
        except psutil.AccessDenied:
            raise ProcessAccessDenied(pid) from None

        return RawRecord(
            pid=pid,
            ppid=ppid,
            command=command,
            resident_pages=rss // self.page_size(),
            user_ticks=round(times.user * self._ticks),
            kernel_ticks=round(times.system * self._ticks),
            start_ticks=round(max(created - self._boot_time, 0.0) * self._ticks),
            exe_path=exe_path,
        )


class PsutilClock:
    """Wall-clock ticks since boot via psutil.boot_time()."""

    def __init__(self, clock_ticks: int | None = None) -> None:
        self._ticks = clock_ticks or clock_ticks_per_second()
        self._boot_time = psutil.boot_time()

    def ticks_since_boot(self) -> float:
        return (time.time() - self._boot_time) * self._ticks


def default_sources() -> tuple[RecordSource, ClockSource]:
    """Pick the record and clock sources for this platform."""
    if Path("/proc/stat").exists():
        log.debug("record_source_selected", backend="procfs")
        return ProcfsRecordSource(), ProcStatClock()
    log.debug("record_source_selected", backend="psutil")
    return PsutilRecordSource(), PsutilClock()
