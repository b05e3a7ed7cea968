"""Per-process record readers."""

import os
from pathlib import Path
from typing import Protocol

import psutil

from proctree.config import Settings
from proctree.errors import EnumerationUnavailable, ProcessNotFound
from proctree.models import ProcessRecord, ProcessState


class ProcessInfoProvider(Protocol):
    """Reads process records and lists the pids currently visible."""

    def fetch(self, pid: int) -> ProcessRecord:
        """Read one record; raises ProcessNotFound when it is unreadable."""
        ...

    def pids(self) -> list[int]:
        """List visible pids; raises EnumerationUnavailable on failure."""
        ...


def parse_stat(pid: int, line: str) -> ProcessRecord:
    """
    Parse the leading fields of a /proc/<pid>/stat line.

    The line reads ``pid (name) state ppid ...``. The name may hold spaces
    and parentheses, so it is located by the first '(' and the last ')'.
    Lines without a '(' are read positionally with a single-token name.

    Raises:
        ProcessNotFound: the line is malformed.
    """
    open_paren = line.find("(")
    if open_paren != -1:
        close_paren = line.rfind(")")
        if close_paren < open_paren:
            raise ProcessNotFound(pid, "unterminated name field")
        head = line[:open_paren].split()
        tail = line[close_paren + 1 :].split()
    else:
        fields = line.split()
        head, tail = fields[:1], fields[2:]

    if len(head) != 1 or len(tail) < 2 or len(tail[0]) != 1:
        raise ProcessNotFound(pid, "malformed stat record")

    try:
        record_pid = int(head[0])
        parent_pid = int(tail[1])
    except ValueError:
        raise ProcessNotFound(pid, "malformed stat record") from None

    if record_pid <= 0 or parent_pid < 0:
        raise ProcessNotFound(pid, "malformed stat record")

    return ProcessRecord(
        pid=record_pid,
        parent_pid=parent_pid,
        state=ProcessState.from_code(tail[0]),
    )


class ProcfsProvider:
    """Reads records from a proc pseudo-filesystem (default ``/proc``)."""

    def __init__(self, proc_root: str | Path = "/proc") -> None:
        self._root = Path(proc_root)

    @property
    def proc_root(self) -> Path:
        return self._root

    def fetch(self, pid: int) -> ProcessRecord:
        if pid <= 0:
            raise ProcessNotFound(pid, "pid must be positive")
        try:
            with open(self._root / str(pid) / "stat", encoding="utf-8", errors="replace") as fp:
                line = fp.readline()
        except OSError as e:
            # Gone, hidden, or exited between listing and reading
            raise ProcessNotFound(pid, e.strerror or str(e)) from None
        return parse_stat(pid, line)

    def pids(self) -> list[int]:
        try:
            names = os.listdir(self._root)
        except OSError as e:
            raise EnumerationUnavailable(str(self._root), e.strerror or str(e)) from e
        return [int(name) for name in names if name.isdigit()]


_PSUTIL_STATES = {
    psutil.STATUS_RUNNING: ProcessState.RUNNING,
    psutil.STATUS_SLEEPING: ProcessState.SLEEPING,
    psutil.STATUS_DISK_SLEEP: ProcessState.SLEEPING,
    psutil.STATUS_IDLE: ProcessState.SLEEPING,
    psutil.STATUS_ZOMBIE: ProcessState.ZOMBIE,
    psutil.STATUS_STOPPED: ProcessState.STOPPED,
}


class PsutilProvider:
    """
    Reads records through psutil.

    Handles NoSuchProcess, AccessDenied and ZombieProcess the same way the
    procfs reader handles an unreadable stat file.
    """

    def fetch(self, pid: int) -> ProcessRecord:
        if pid <= 0:
            raise ProcessNotFound(pid, "pid must be positive")
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                parent_pid = proc.ppid()
                status = proc.status()
        except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
            raise ProcessNotFound(pid, e.__class__.__name__) from None
        return ProcessRecord(
            pid=pid,
            parent_pid=parent_pid,
            state=_PSUTIL_STATES.get(status, ProcessState.OTHER),
        )

    def pids(self) -> list[int]:
        try:
            return [pid for pid in psutil.pids() if pid > 0]
        except OSError as e:
            raise EnumerationUnavailable("psutil", e.strerror or str(e)) from e


def make_provider(settings: Settings) -> ProcessInfoProvider:
    """Build the provider selected by settings.source."""
    if settings.source == "psutil":
        return PsutilProvider()
    return ProcfsProvider(settings.proc_root)
