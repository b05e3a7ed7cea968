"""Exceptions raised by proctree."""


class ProcTreeError(Exception):
    """Base class for proctree errors."""


class ProcessNotFound(ProcTreeError):
    """The process record is unreadable: gone, hidden, or malformed."""

    def __init__(self, pid: int, detail: str = "") -> None:
        self.pid = pid
        self.detail = detail
        message = f"Process {pid} not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class EnumerationUnavailable(ProcTreeError):
    """The process listing source could not be opened."""

    def __init__(self, source: str, detail: str = "") -> None:
        self.source = source
        self.detail = detail
        super().__init__(f"Cannot access {source} directory" + (f": {detail}" if detail else ""))