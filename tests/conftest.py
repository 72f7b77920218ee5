"""Shared test fixtures for pree."""

import logging
from collections.abc import Iterable

import pytest
import structlog

from pree.errors import ProcessAccessDenied, ProcessNotFound
from pree.process import Process
from pree.records import RawRecord

# One page is one KiB, so resident_pages reads directly as RSS in KiB
FAKE_PAGE_SIZE = 1024
# With every process started at tick 0, CPU fraction is ticks / FAKE_NOW
FAKE_NOW = 1000.0


class FakeRecordSource:
    """In-memory RecordSource that counts reads per PID."""

    def __init__(
        self,
        records: Iterable[RawRecord],
        *,
        order: list[int] | None = None,
        missing: Iterable[int] = (),
        denied: Iterable[int] = (),
    ) -> None:
        self.records = {record.pid: record for record in records}
        self.order = order
        self.missing = set(missing)
        self.denied = set(denied)
        self.reads: dict[int, int] = {}

    def list_pids(self) -> list[int]:
        if self.order is not None:
            return list(self.order)
        return list(self.records) + sorted(self.missing - set(self.records))

    def page_size(self) -> int:
        return FAKE_PAGE_SIZE

    def read(self, pid: int) -> RawRecord:
        self.reads[pid] = self.reads.get(pid, 0) + 1
        if pid in self.denied:
            raise ProcessAccessDenied(pid)
        if pid in self.missing or pid not in self.records:
            raise ProcessNotFound(pid)
        return self.records[pid]


class FakeClock:
    """ClockSource returning a fixed tick count."""

    def __init__(self, now: float = FAKE_NOW) -> None:
        self.now = now
        self.calls = 0

    def ticks_since_boot(self) -> float:
        self.calls += 1
        return self.now


def make_record(
    pid: int,
    ppid: int,
    rss: int = 0,
    cpu: float = 0.0,
    command: str | None = None,
    exe_path: str | None = None,
) -> RawRecord:
    """Create a RawRecord whose RSS (KiB) and CPU fraction come out as given."""
    return RawRecord(
        pid=pid,
        ppid=ppid,
        command=command or f"proc{pid}",
        resident_pages=rss,
        user_ticks=round(cpu * FAKE_NOW),
        kernel_ticks=0,
        start_ticks=0,
        exe_path=exe_path,
    )


def make_process(
    pid: int,
    rss: int = 0,
    cpu: float = 0.0,
    name: str | None = None,
    children: Iterable[Process] = (),
    ppid: int = 0,
) -> Process:
    """Create a Process and adopt the given children."""
    proc = Process(pid=pid, ppid=ppid, name=name or f"proc{pid}", rss=rss, cpu=cpu)
    for child in children:
        child.ppid = pid
        proc.adopt(child)
    return proc


@pytest.fixture
def scenario_records() -> list[RawRecord]:
    """init with two children of different sizes."""
    return [
        make_record(1, 0, rss=100, cpu=0.1, command="init"),
        make_record(2, 1, rss=50, cpu=0.05, command="big"),
        make_record(3, 1, rss=30, cpu=0.02, command="small"),
    ]


@pytest.fixture
def restore_logging():
    """Undo pree.logging.configure() so other tests see default logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)
