"""Data models for proctree."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum


class ProcessState(Enum):
    """Coarse process state as seen by the tree operations."""

    RUNNING = "running"
    SLEEPING = "sleeping"
    ZOMBIE = "zombie"
    STOPPED = "stopped"
    OTHER = "other"

    @classmethod
    def from_code(cls, code: str) -> "ProcessState":
        """Map a single-character /proc state code to a ProcessState."""
        return _STATE_CODES.get(code, cls.OTHER)


_STATE_CODES = {
    "R": ProcessState.RUNNING,
    "S": ProcessState.SLEEPING,
    "D": ProcessState.SLEEPING,
    "I": ProcessState.SLEEPING,
    "Z": ProcessState.ZOMBIE,
    "T": ProcessState.STOPPED,
}


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable view of one process at the moment it was read."""

    pid: int
    parent_pid: int  # 0 when there is no further parent
    state: ProcessState

    @property
    def is_zombie(self) -> bool:
        return self.state is ProcessState.ZOMBIE

    @property
    def is_stopped(self) -> bool:
        return self.state is ProcessState.STOPPED


class Snapshot:
    """
    Best-effort collection of every process visible at enumeration time.

    Records keep enumeration order. A pid appears at most once; the first
    record read for a pid wins. Parent pids may point at processes that are
    not in the snapshot.
    """

    __slots__ = ("_records",)

    def __init__(self, records: Iterable[ProcessRecord] = ()) -> None:
        unique: dict[int, ProcessRecord] = {}
        for record in records:
            unique.setdefault(record.pid, record)
        self._records = unique

    def __iter__(self) -> Iterator[ProcessRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, pid: object) -> bool:
        return pid in self._records

    def __repr__(self) -> str:
        return f"Snapshot({len(self._records)} processes)"

    def get(self, pid: int) -> ProcessRecord | None:
        """Return the record for pid, or None if it was not seen."""
        return self._records.get(pid)

    @property
    def pids(self) -> list[int]:
        return list(self._records)


class SignalOutcome(Enum):
    """Result of delivering one signal to one pid."""

    DELIVERED = "delivered"
    NO_SUCH_PROCESS = "no such process"
    PERMISSION_DENIED = "permission denied"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class SignalResult:
    """Outcome of a single signal delivery."""

    pid: int
    signal: int
    outcome: SignalOutcome
    detail: str = ""
    zombie_pid: int | None = None  # set when the parent of a zombie was signaled

    @property
    def ok(self) -> bool:
        return self.outcome is SignalOutcome.DELIVERED


@dataclass(slots=True)
class BulkSignalReport:
    """Summary of one bulk signal operation over a subtree."""

    root: int
    results: list[SignalResult] = field(default_factory=list)
    reconciled: list[SignalResult] = field(default_factory=list)
    overflowed: bool = False
    missed: int = 0
    zombies_found: int = 0

    @property
    def delivered(self) -> list[SignalResult]:
        return [r for r in self.results + self.reconciled if r.ok]

    @property
    def failed(self) -> list[SignalResult]:
        return [r for r in self.results + self.reconciled if not r.ok]
