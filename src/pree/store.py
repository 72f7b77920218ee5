"""Process store: builds the process forest for one snapshot."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

import structlog

from pree import logging as pree_log
from pree.errors import CycleDetected, RecordError, RootNotFound
from pree.process import NO_PARENT, Process
from pree.records import ClockSource, RecordSource

log = structlog.get_logger()


@dataclass(frozen=True)
class SkippedProcess:
    """A PID that could not be added to the snapshot."""

    pid: int
    reason: str


class ProcessStore:
    """Mapping from PID to Process for one snapshot.

    Records may be enumerated in any order. Missing ancestors are resolved
    on demand before a process is linked, so every stored process is
    attached to its parent (or is a root).
    """

    def __init__(self, source: RecordSource, clock: ClockSource) -> None:
        self._source = source
        self._clock = clock
        self._page_size = source.page_size()
        self._procs: dict[int, Process] = {}

    def __len__(self) -> int:
        return len(self._procs)

    def __contains__(self, pid: object) -> bool:
        return pid in self._procs

    def __iter__(self) -> Iterator[Process]:
        return iter(self._procs.values())

    def get(self, pid: int) -> Process | None:
        """Return the stored process for pid, without reading anything."""
        return self._procs.get(pid)

    def root(self, pid: int) -> Process:
        """Return the stored process to render the tree from.

        Raises:
            RootNotFound: If pid is not part of the snapshot.
        """
        proc = self._procs.get(pid)
        if proc is None:
            raise RootNotFound(pid)
        return proc

    def roots(self) -> list[Process]:
        """Processes without a parent, in insertion order."""
        return [proc for proc in self._procs.values() if proc.parent is None]

    def resolve(self, pid: int) -> Process:
        """Return the Process for pid, reading it and any missing ancestors.

        Ancestors are walked iteratively. A PID seen twice in one walk means
        the raw parent links form a loop. Nothing from a failed walk is
        stored.

        Raises:
            ProcessNotFound: pid or one of its ancestors has exited.
            ProcessAccessDenied: pid or one of its ancestors is protected.
            CycleDetected: The ancestor chain loops back on itself.
        """
        existing = self._procs.get(pid)
        if existing is not None:
            return existing

        chain: list[Process] = []
        in_progress: list[int] = []
        next_pid = pid
        while True:
            if next_pid in in_progress:
                loop = in_progress[in_progress.index(next_pid) :]
                raise CycleDetected([*loop, next_pid])
            in_progress.append(next_pid)

            proc = self._load(next_pid)
            chain.append(proc)
            if proc.ppid == NO_PARENT or proc.ppid in self._procs:
                break
            next_pid = proc.ppid

        # Oldest ancestor first so each parent exists before its child links
        for proc in reversed(chain):
            self._insert(proc)
        return chain[0]

    def enumerate_all(self) -> list[SkippedProcess]:
        """Resolve every visible PID, skipping the ones that fail.

        Returns:
            The PIDs that were skipped and why. A partial tree is expected on
            a live system.
        """
        skipped: list[SkippedProcess] = []
        for pid in self._source.list_pids():
            if pid == NO_PARENT or pid in self._procs:
                continue
            try:
                self.resolve(pid)
            except RecordError as e:
                pree_log.process_skipped(pid, e.reason)
                skipped.append(SkippedProcess(pid, e.reason))
            except CycleDetected as e:
                pree_log.cycle_detected(e.pids)
                skipped.append(SkippedProcess(pid, str(e)))

        log.debug("enumeration_complete", processes=len(self._procs), skipped=len(skipped))
        return skipped

    def _load(self, pid: int) -> Process:
        record = self._source.read(pid)
        # Read the clock right after the record for the best CPU estimate
        now_ticks = self._clock.ticks_since_boot()
        return Process.from_record(record, self._page_size, now_ticks)

    def _insert(self, proc: Process) -> None:
        self._procs[proc.pid] = proc
        if proc.ppid != NO_PARENT:
            self._procs[proc.ppid].adopt(proc)
        log.debug("process_resolved", pid=proc.pid, ppid=proc.ppid, name=proc.name)
