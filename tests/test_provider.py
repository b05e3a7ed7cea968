"""Tests for the process record providers."""

import os

import pytest

from proctree.config import Settings
from proctree.errors import EnumerationUnavailable, ProcessNotFound
from proctree.models import ProcessState
from proctree.provider import ProcfsProvider, PsutilProvider, make_provider, parse_stat


class TestParseStat:
    """Tests for parse_stat."""

    def test_plain_line(self):
        record = parse_stat(42, "42 (bash) S 1 42 42 34816 42 4194560\n")

        assert record.pid == 42
        assert record.parent_pid == 1
        assert record.state is ProcessState.SLEEPING

    def test_name_with_spaces(self):
        record = parse_stat(7, "7 (Web Content) R 3 7 7 0\n")

        assert record.parent_pid == 3
        assert record.state is ProcessState.RUNNING

    def test_name_with_parentheses(self):
        """The name ends at the last ')' on the line."""
        record = parse_stat(8, "8 (evil) Z 999 (x) T 5 8 8 0\n")

        assert record.pid == 8
        assert record.state is ProcessState.STOPPED
        assert record.parent_pid == 5

    def test_unparenthesised_name(self):
        record = parse_stat(9, "9 worker Z 4\n")

        assert record.state is ProcessState.ZOMBIE
        assert record.parent_pid == 4

    def test_record_pid_is_taken_from_the_line(self):
        record = parse_stat(10, "11 (x) S 1\n")

        assert record.pid == 11

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "\n",
            "12 (x\n",
            "12 (x) S\n",
            "abc (x) S 1\n",
            "12 (x) S parent\n",
            "12 (x) SS 1\n",
            "0 (x) S 1\n",
            "12 (x) S -1\n",
            "12 ) x ( S 1\n",
        ],
    )
    def test_malformed_lines(self, line):
        with pytest.raises(ProcessNotFound):
            parse_stat(12, line)


class TestProcfsProvider:
    """Tests for ProcfsProvider against a fake proc tree."""

    def test_fetch(self, fake_proc):
        fake_proc.add(100, 1, state="T", name="sleep 30")

        record = fake_proc.provider.fetch(100)

        assert record.pid == 100
        assert record.parent_pid == 1
        assert record.is_stopped

    def test_fetch_missing_process(self, fake_proc):
        with pytest.raises(ProcessNotFound) as excinfo:
            fake_proc.provider.fetch(4242)
        assert excinfo.value.pid == 4242

    def test_fetch_malformed_record(self, fake_proc):
        fake_proc.write_raw(77, "garbage\n")

        with pytest.raises(ProcessNotFound):
            fake_proc.provider.fetch(77)

    @pytest.mark.parametrize("pid", [0, -1])
    def test_fetch_rejects_non_positive_pid(self, fake_proc, pid):
        with pytest.raises(ProcessNotFound):
            fake_proc.provider.fetch(pid)

    def test_pids_lists_numeric_entries_only(self, fake_proc):
        fake_proc.add(1, 0)
        fake_proc.add(20, 1)

        assert sorted(fake_proc.provider.pids()) == [1, 20]

    def test_pids_unavailable(self, tmp_path):
        provider = ProcfsProvider(tmp_path / "missing")

        with pytest.raises(EnumerationUnavailable) as excinfo:
            provider.pids()
        assert "missing" in str(excinfo.value)

    @pytest.mark.skipif(not os.path.isdir("/proc/self"), reason="requires procfs")
    def test_reads_real_procfs(self):
        record = ProcfsProvider().fetch(os.getpid())

        assert record.pid == os.getpid()
        assert record.parent_pid == os.getppid()
        assert record.state is ProcessState.RUNNING


class TestPsutilProvider:
    """Tests for PsutilProvider."""

    def test_fetch_self(self):
        record = PsutilProvider().fetch(os.getpid())

        assert record.pid == os.getpid()
        assert record.parent_pid == os.getppid()

    def test_fetch_missing_process(self):
        with pytest.raises(ProcessNotFound):
            PsutilProvider().fetch(2**30)

    def test_pids_contains_self(self):
        assert os.getpid() in PsutilProvider().pids()


def test_make_provider_defaults_to_procfs(tmp_path):
    provider = make_provider(Settings(proc_root=tmp_path))

    assert isinstance(provider, ProcfsProvider)
    assert provider.proc_root == tmp_path


def test_make_provider_psutil():
    assert isinstance(make_provider(Settings(source="psutil")), PsutilProvider)
