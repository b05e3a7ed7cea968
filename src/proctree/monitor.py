"""Background subtree monitoring for the proctree viewer."""

import threading
import time
from dataclasses import dataclass, field
from queue import Queue

from loguru import logger

from proctree.config import DEFAULT_MAX_HOPS
from proctree.membership import ancestors
from proctree.models import ProcessRecord
from proctree.provider import ProcessInfoProvider
from proctree.queries import RelationshipQueries


@dataclass(slots=True)
class SubtreeSnapshot:
    """Snapshot of the processes below one root."""

    root: int
    root_alive: bool
    records: list[ProcessRecord]  # root (if alive) plus its descendants
    total_processes: int
    timestamp: float
    lineage: list[int] = field(default_factory=list)  # ancestors of root, nearest first

    def children_of(self, pid: int) -> list[ProcessRecord]:
        return sorted(
            (r for r in self.records if r.parent_pid == pid and r.pid != pid),
            key=lambda r: r.pid,
        )

    @property
    def descendant_count(self) -> int:
        return sum(1 for r in self.records if r.pid != self.root)

    @property
    def zombie_count(self) -> int:
        return sum(1 for r in self.records if r.is_zombie)

    @property
    def stopped_count(self) -> int:
        return sum(1 for r in self.records if r.is_stopped)


class SubtreeMonitor:
    """
    Monitor that snapshots the subtree of a root process.

    Runs in a separate daemon thread and pushes updates to a thread-safe Queue.
    A failed poll is logged and the loop carries on.
    """

    def __init__(
        self,
        root: int,
        provider: ProcessInfoProvider,
        update_queue: Queue[SubtreeSnapshot],
        poll_rate: float = 2.0,
        max_hops: int = DEFAULT_MAX_HOPS,
    ) -> None:
        """
        Initialize the SubtreeMonitor.

        Args:
            root: Pid whose subtree is watched.
            provider: Source of process records.
            update_queue: Thread-safe queue to push updates to.
            poll_rate: How often to poll (in seconds). Default 2.0s.
            max_hops: Bound for ancestor-chain walks.
        """
        self._root = root
        self._queries = RelationshipQueries(provider, max_hops)
        self._max_hops = max_hops
        self._queue = update_queue
        self._poll_rate = poll_rate
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def root(self) -> int:
        return self._root

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SubtreeMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._queue.put(self.collect())
            except Exception as e:
                logger.warning(f"Subtree poll for {self._root} failed: {e}")

            self._stop_event.wait(timeout=self._poll_rate)

    def collect(self) -> SubtreeSnapshot:
        """Collect a snapshot of the root's subtree."""
        snapshot = self._queries.snapshot()
        records = self._queries.descendants(self._root, snapshot, include_target=True)
        return SubtreeSnapshot(
            root=self._root,
            root_alive=self._root in snapshot,
            records=records,
            total_processes=len(snapshot),
            timestamp=time.time(),
            lineage=ancestors(self._queries.provider, self._root, self._max_hops),
        )
