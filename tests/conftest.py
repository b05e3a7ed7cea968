"""Shared fixtures: a fake proc tree on disk and a recording signal sender."""

import shutil
from collections.abc import Callable
from pathlib import Path

import pytest
from loguru import logger

from proctree.config import get_settings
from proctree.provider import ProcfsProvider


class FakeProc:
    """Writes /proc/<pid>/stat style files under a temporary directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def add(self, pid: int, ppid: int, state: str = "S", name: str | None = None) -> None:
        name = name if name is not None else f"proc{pid}"
        proc_dir = self.root / str(pid)
        proc_dir.mkdir(exist_ok=True)
        (proc_dir / "stat").write_text(
            f"{pid} ({name}) {state} {ppid} {pid} {pid} 0 -1 4194560 120 0 0 0\n"
        )

    def write_raw(self, pid: int, line: str) -> None:
        proc_dir = self.root / str(pid)
        proc_dir.mkdir(exist_ok=True)
        (proc_dir / "stat").write_text(line)

    def set_state(self, pid: int, state: str) -> None:
        line = (self.root / str(pid) / "stat").read_text()
        head, _, tail = line.rpartition(")")
        fields = tail.split()
        fields[0] = state
        (self.root / str(pid) / "stat").write_text(f"{head}) {' '.join(fields)}\n")

    def remove(self, pid: int) -> None:
        shutil.rmtree(self.root / str(pid))

    @property
    def provider(self) -> ProcfsProvider:
        return ProcfsProvider(self.root)


class SignalRecorder:
    """Stand-in for os.kill that records calls and can raise per pid."""

    def __init__(self) -> None:
        self.calls: list[tuple[int, int]] = []
        self.errors: dict[int, OSError] = {}
        self.hooks: list[Callable[[int, int], None]] = []

    def __call__(self, pid: int, sig: int) -> None:
        self.calls.append((pid, sig))
        if pid in self.errors:
            raise self.errors[pid]
        for hook in self.hooks:
            hook(pid, sig)

    def pids(self, sig: int | None = None) -> list[int]:
        return [pid for pid, s in self.calls if sig is None or s == sig]


@pytest.fixture
def fake_proc(tmp_path) -> FakeProc:
    proc_root = tmp_path / "proc"
    proc_root.mkdir()
    (proc_root / "self").mkdir()
    (proc_root / "meminfo").write_text("MemTotal: 1 kB\n")
    return FakeProc(proc_root)


@pytest.fixture
def family(fake_proc) -> FakeProc:
    """
    A small tree:

        1 ─┬─ 100 (T) ─┬─ 101 (C1) ── 201 (G1)
           │           └─ 102 (C2, zombie)
           ├─ 103 (sibling of T, zombie)
           └─ 50 ── 300
    """
    fake_proc.add(1, 0, name="init")
    fake_proc.add(50, 1)
    fake_proc.add(100, 1)
    fake_proc.add(101, 100)
    fake_proc.add(102, 100, state="Z")
    fake_proc.add(103, 1, state="Z")
    fake_proc.add(201, 101)
    fake_proc.add(300, 50)
    return fake_proc


@pytest.fixture
def recorder() -> SignalRecorder:
    return SignalRecorder()


@pytest.fixture
def log_messages():
    """Capture loguru output as a list of 'LEVEL: message' strings."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.rstrip("\n")), format="{level}: {message}")
    yield messages
    logger.remove(handler_id)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate tests from PROCTREE_* variables and the cached settings."""
    import os

    for var in list(os.environ):
        if var.startswith("PROCTREE_"):
            monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    logger.remove()
