"""Relationship queries over a process snapshot."""

from proctree.config import DEFAULT_MAX_HOPS
from proctree.enumerator import list_all
from proctree.membership import is_descendant
from proctree.models import ProcessRecord, Snapshot
from proctree.provider import ProcessInfoProvider


class RelationshipQueries:
    """
    Derives children, siblings, grandchildren and zombie sets for a target.

    Holds no state besides its provider. Every query accepts an optional
    snapshot; without one a fresh snapshot is taken. Descendant tests walk
    ancestor chains through the provider, so a tree-wide query costs one
    walk per process in the snapshot.
    """

    def __init__(self, provider: ProcessInfoProvider, max_hops: int = DEFAULT_MAX_HOPS) -> None:
        self._provider = provider
        self._max_hops = max_hops

    @property
    def provider(self) -> ProcessInfoProvider:
        return self._provider

    def snapshot(self) -> Snapshot:
        return list_all(self._provider)

    def is_descendant(self, root: int, target: int) -> bool:
        return is_descendant(self._provider, root, target, self._max_hops)

    def _resolve(self, snapshot: Snapshot | None) -> Snapshot:
        return snapshot if snapshot is not None else self.snapshot()

    def basic_info(self, target: int) -> ProcessRecord:
        """Fresh record for target; raises ProcessNotFound."""
        return self._provider.fetch(target)

    def status(self, target: int) -> ProcessRecord:
        return self._provider.fetch(target)

    def is_defunct(self, target: int) -> bool:
        """Whether target is a zombie; raises ProcessNotFound if unreadable."""
        return self.status(target).is_zombie

    def descendants(
        self,
        target: int,
        snapshot: Snapshot | None = None,
        include_target: bool = False,
    ) -> list[ProcessRecord]:
        """All descendants of target in enumeration order."""
        return [
            record
            for record in self._resolve(snapshot)
            if (include_target or record.pid != target) and self.is_descendant(target, record.pid)
        ]

    def children(self, target: int, snapshot: Snapshot | None = None) -> list[ProcessRecord]:
        return [record for record in self._resolve(snapshot) if record.parent_pid == target]

    def siblings(self, target: int, snapshot: Snapshot | None = None) -> list[ProcessRecord]:
        """
        Processes other than target that share target's parent.

        Raises:
            ProcessNotFound: target's own record is unavailable.
        """
        parent_pid = self._provider.fetch(target).parent_pid
        return [
            record
            for record in self._resolve(snapshot)
            if record.pid != target and record.parent_pid == parent_pid
        ]

    def grandchildren(self, target: int, snapshot: Snapshot | None = None) -> list[ProcessRecord]:
        snapshot = self._resolve(snapshot)
        found: list[ProcessRecord] = []
        for child in self.children(target, snapshot):
            for record in snapshot:
                if record.parent_pid == child.pid:
                    found.append(record)
        return found

    def non_direct_descendants(
        self, target: int, snapshot: Snapshot | None = None
    ) -> list[ProcessRecord]:
        """Descendants at depth two or more below target."""
        return [
            record
            for record in self._resolve(snapshot)
            if record.pid != target
            and record.parent_pid != target
            and self.is_descendant(target, record.pid)
        ]

    def zombie_descendants(
        self, target: int, snapshot: Snapshot | None = None
    ) -> list[ProcessRecord]:
        return [record for record in self.descendants(target, snapshot) if record.is_zombie]

    def zombie_siblings(self, target: int, snapshot: Snapshot | None = None) -> list[ProcessRecord]:
        return [record for record in self.siblings(target, snapshot) if record.is_zombie]

    def defunct_count(self, target: int, snapshot: Snapshot | None = None) -> int:
        """
        Number of zombies in target's subtree.

        Unlike zombie_descendants, target itself is counted when it is a
        zombie.
        """
        return sum(
            1
            for record in self._resolve(snapshot)
            if record.is_zombie and self.is_descendant(target, record.pid)
        )
