"""Error kinds raised while building and rendering a process snapshot."""

from collections.abc import Iterable, Sequence


class PreeError(Exception):
    """Base class for pree errors."""


class RecordError(PreeError):
    """A raw process record could not be read."""

    def __init__(self, pid: int, reason: str) -> None:
        super().__init__(f"PID {pid}: {reason}")
        self.pid = pid
        self.reason = reason


class ProcessNotFound(RecordError):
    """Process exited between enumeration and lookup."""

    def __init__(self, pid: int) -> None:
        super().__init__(pid, "process not found")


class ProcessAccessDenied(RecordError):
    """Process data exists but is protected."""

    def __init__(self, pid: int) -> None:
        super().__init__(pid, "permission denied")


class CycleDetected(PreeError):
    """An ancestor chain loops back on itself."""

    def __init__(self, pids: Sequence[int]) -> None:
        chain = " -> ".join(str(pid) for pid in pids)
        super().__init__(f"parent cycle detected: {chain}")
        self.pids = tuple(pids)


class RootNotFound(PreeError):
    """The requested root PID is not part of the snapshot."""

    def __init__(self, pid: int) -> None:
        super().__init__(f"PID {pid} not found in process tree")
        self.pid = pid


class InvalidOption(PreeError, ValueError):
    """An option value is not one of the recognized choices."""

    def __init__(self, name: str, value: object, choices: Iterable[str]) -> None:
        self.name = name
        self.value = value
        self.choices = list(choices)
        super().__init__(f"Unknown {name}: {value!r}. Valid values: {self.choices}")
