"""Snapshots of the process table."""

from loguru import logger

from proctree.errors import ProcessNotFound
from proctree.models import ProcessRecord, Snapshot
from proctree.provider import ProcessInfoProvider


def list_all(provider: ProcessInfoProvider) -> Snapshot:
    """
    Take a best-effort snapshot of every visible process.

    Processes that vanish between listing and reading are skipped.

    Raises:
        EnumerationUnavailable: the process listing cannot be opened.
    """
    records: list[ProcessRecord] = []
    skipped = 0
    for pid in provider.pids():
        try:
            records.append(provider.fetch(pid))
        except ProcessNotFound:
            skipped += 1
            continue

    logger.debug(f"Enumerated {len(records)} processes ({skipped} vanished or unreadable)")
    return Snapshot(records)
