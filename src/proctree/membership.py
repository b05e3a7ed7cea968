"""Ancestor-chain walks over process records."""

from proctree.config import DEFAULT_MAX_HOPS
from proctree.errors import ProcessNotFound
from proctree.provider import ProcessInfoProvider


def is_descendant(
    provider: ProcessInfoProvider,
    root: int,
    target: int,
    max_hops: int = DEFAULT_MAX_HOPS,
) -> bool:
    """
    Check whether target lies in the tree rooted at root.

    Every process is its own descendant. Otherwise the parent chain of
    target is followed one fetch at a time until root is met, the chain
    reaches pid 0, a record can no longer be read, or max_hops parent steps
    have been taken. The hop bound only guards against cyclic or malformed
    parent data; real trees are far shallower.
    """
    if root == target:
        return True

    try:
        current = provider.fetch(target).parent_pid
    except ProcessNotFound:
        return False

    hops = 0
    while current != 0 and hops < max_hops:
        hops += 1
        if current == root:
            return True
        try:
            current = provider.fetch(current).parent_pid
        except ProcessNotFound:
            return False
    return False


def ancestors(
    provider: ProcessInfoProvider,
    pid: int,
    max_hops: int = DEFAULT_MAX_HOPS,
) -> list[int]:
    """Return the parent chain of pid, nearest first, excluding pid itself."""
    chain: list[int] = []
    try:
        current = provider.fetch(pid).parent_pid
    except ProcessNotFound:
        return chain

    while current != 0 and len(chain) < max_hops:
        chain.append(current)
        try:
            current = provider.fetch(current).parent_pid
        except ProcessNotFound:
            break
    return chain
