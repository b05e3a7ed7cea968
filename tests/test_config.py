"""Tests for settings and logging setup."""

from pathlib import Path

import pytest
from loguru import logger
from pydantic import ValidationError

from proctree.config import DEFAULT_CAPACITY, DEFAULT_MAX_HOPS, Settings, get_settings
from proctree.logger import setup_logger


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        settings = Settings()

        assert settings.proc_root == Path("/proc")
        assert settings.source == "procfs"
        assert settings.max_hops == DEFAULT_MAX_HOPS == 1000
        assert settings.descendant_capacity == DEFAULT_CAPACITY == 1024
        assert settings.kill_rescans == 1
        assert settings.log_level == "WARNING"
        assert settings.log_file is None

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PROCTREE_PROC_ROOT", str(tmp_path))
        monkeypatch.setenv("PROCTREE_SOURCE", "psutil")
        monkeypatch.setenv("PROCTREE_MAX_HOPS", "50")
        monkeypatch.setenv("PROCTREE_DESCENDANT_CAPACITY", "8")
        monkeypatch.setenv("PROCTREE_LOG_LEVEL", "debug")

        settings = Settings()

        assert settings.proc_root == tmp_path
        assert settings.source == "psutil"
        assert settings.max_hops == 50
        assert settings.descendant_capacity == 8
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "field, value",
        [
            ("max_hops", 0),
            ("descendant_capacity", 0),
            ("kill_rescans", -1),
            ("log_level", "LOUD"),
            ("source", "sysctl"),
            ("poll_rate", 0),
        ],
    )
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(**{field: value})

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


def test_setup_logger_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "proctree.log"

    setup_logger("DEBUG", str(log_file))
    logger.info("hello from the test")
    logger.remove()

    assert "hello from the test" in log_file.read_text()
