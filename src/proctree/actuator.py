"""Bulk signal delivery over a process subtree."""

import os
import signal
from collections.abc import Callable
from dataclasses import replace

from loguru import logger

from proctree.config import DEFAULT_CAPACITY, DEFAULT_MAX_HOPS
from proctree.models import BulkSignalReport, SignalOutcome, SignalResult
from proctree.provider import ProcessInfoProvider
from proctree.queries import RelationshipQueries

SignalSender = Callable[[int, int], None]


class SignalActuator:
    """
    Applies kill, stop and continue to the descendants of a root process.

    Individual delivery failures (process already gone, permission denied)
    are recorded in the returned report and never abort a pass. Failure to
    enumerate the process table raises EnumerationUnavailable and aborts the
    whole operation.
    """

    def __init__(
        self,
        provider: ProcessInfoProvider,
        send_signal: SignalSender = os.kill,
        max_hops: int = DEFAULT_MAX_HOPS,
        capacity: int = DEFAULT_CAPACITY,
        max_rescans: int = 1,
    ) -> None:
        """
        Initialize the SignalActuator.

        Args:
            provider: Source of process records.
            send_signal: Callable with the signature of os.kill.
            max_hops: Bound for ancestor-chain walks.
            capacity: Maximum number of descendants collected for a kill pass.
            max_rescans: Reconciliation passes run after killing descendants.
        """
        self._queries = RelationshipQueries(provider, max_hops)
        self._send = send_signal
        self._capacity = capacity
        self._max_rescans = max_rescans

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def max_rescans(self) -> int:
        return self._max_rescans

    def deliver(self, pid: int, sig: int, zombie_pid: int | None = None) -> SignalResult:
        """Send one signal and classify the outcome."""
        name = signal.Signals(sig).name
        try:
            self._send(pid, sig)
        except ProcessLookupError as e:
            outcome, detail = SignalOutcome.NO_SUCH_PROCESS, e.strerror or str(e)
        except PermissionError as e:
            outcome, detail = SignalOutcome.PERMISSION_DENIED, e.strerror or str(e)
        except OSError as e:
            outcome, detail = SignalOutcome.FAILED, e.strerror or str(e)
        else:
            logger.debug(f"Sent {name} to {pid}")
            return SignalResult(pid, sig, SignalOutcome.DELIVERED, zombie_pid=zombie_pid)

        logger.warning(f"Failed to send {name} to process {pid}: {detail}")
        return SignalResult(pid, sig, outcome, detail, zombie_pid)

    def _collect(self, root: int, report: BulkSignalReport) -> list[int]:
        collected: list[int] = []
        for record in self._queries.snapshot():
            if record.pid == root or not self._queries.is_descendant(root, record.pid):
                continue
            if len(collected) >= self._capacity:
                report.overflowed = True
                logger.warning(
                    f"Too many descendants of {root}; only the first {self._capacity} "
                    "will be signaled and some may be missed"
                )
                break
            collected.append(record.pid)
        return collected

    def kill_descendants(self, root: int) -> BulkSignalReport:
        """
        SIGKILL every descendant of root, then sweep for late arrivals.

        Collected pids are killed in reverse discovery order, which tends to
        reach leaves before their parents. Descendants may fork or be
        re-parented while the first pass runs, so up to max_rescans follow-up
        scans kill any live descendant still found and count it as missed.
        Zombies are skipped by the follow-up scans; they are already dead.
        """
        report = BulkSignalReport(root=root)
        collected = self._collect(root, report)
        logger.info(f"Killing {len(collected)} descendants of {root}")

        for pid in reversed(collected):
            report.results.append(self.deliver(pid, signal.SIGKILL))

        for attempt in range(self._max_rescans):
            survivors = [
                record.pid
                for record in self._queries.descendants(root)
                if not record.is_zombie
            ]
            if not survivors:
                break
            logger.debug(f"Rescan {attempt + 1} found {len(survivors)} live descendants of {root}")
            for pid in survivors:
                report.reconciled.append(self.deliver(pid, signal.SIGKILL))
            report.missed += len(survivors)

        if report.missed:
            logger.warning(
                f"{report.missed} descendants were missed in first pass and killed on rescan"
            )
        return report

    def stop_descendants(self, root: int) -> BulkSignalReport:
        """SIGSTOP every descendant of root in a single pass."""
        report = BulkSignalReport(root=root)
        for record in self._queries.descendants(root):
            report.results.append(self.deliver(record.pid, signal.SIGSTOP))
        return report

    def continue_descendants(self, root: int) -> BulkSignalReport:
        """SIGCONT the descendants of root that are currently stopped."""
        report = BulkSignalReport(root=root)
        for record in self._queries.descendants(root):
            if record.is_stopped:
                report.results.append(self.deliver(record.pid, signal.SIGCONT))
        return report

    def kill_zombie_parents(self, root: int) -> BulkSignalReport:
        """
        SIGKILL the parent of every zombie below root.

        A zombie cannot be signaled meaningfully; killing its parent hands
        it to a reaper. Each parent is signaled once even when it holds
        several zombies, but every zombie gets its own result; the extra
        ones repeat the outcome of that single delivery.
        """
        report = BulkSignalReport(root=root)
        delivered: dict[int, SignalResult] = {}
        for record in self._queries.zombie_descendants(root):
            if record.parent_pid == 0:
                continue
            report.zombies_found += 1
            first = delivered.get(record.parent_pid)
            if first is None:
                result = self.deliver(record.parent_pid, signal.SIGKILL, zombie_pid=record.pid)
                delivered[record.parent_pid] = result
            else:
                result = replace(first, zombie_pid=record.pid)
            report.results.append(result)

        if not report.zombies_found:
            logger.info(f"No zombie processes found among descendants of {root}")
        return report

    def kill_root(self, root: int) -> SignalResult:
        return self.deliver(root, signal.SIGKILL)
