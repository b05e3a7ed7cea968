"""
Configuration via Pydantic Settings.

Values come from PROCTREE_* environment variables; command-line options
override them.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MAX_HOPS = 1000
DEFAULT_CAPACITY = 1024


class Settings(BaseSettings):
    """proctree settings with validation."""

    proc_root: Path = Field(default=Path("/proc"), description="Process pseudo-filesystem mount")
    source: Literal["procfs", "psutil"] = Field(default="procfs", description="Process record source")
    max_hops: int = Field(default=DEFAULT_MAX_HOPS, ge=1, description="Ancestor walk bound")
    descendant_capacity: int = Field(
        default=DEFAULT_CAPACITY, ge=1, description="Max descendants collected by kill"
    )
    kill_rescans: int = Field(default=1, ge=0, description="Reconciliation passes after kill")
    log_level: str = Field(default="WARNING", description="Log level")
    log_file: str | None = Field(default=None, description="Optional log file path")
    poll_rate: float = Field(default=2.0, gt=0, description="Viewer refresh interval (seconds)")

    model_config = SettingsConfigDict(
        env_prefix="PROCTREE_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"log_level must be one of {sorted(valid_levels)}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()


def describe_invalid_settings(exc: ValidationError) -> str:
    """One-line summary of the fields that failed validation."""
    parts = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"])
        parts.append(f"{field}: {error['msg']}")
    return "; ".join(parts)
