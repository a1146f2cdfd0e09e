"""
Process settings for the rotator.

Settings come from command-line flags with environment variable fallbacks.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

DEFAULT_PERIOD_SECONDS = 60
DEFAULT_MAX_WORKERS = 4

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class RotatorSettings:
    """
    Settings for a rotator process.

    Attributes:
        config_path: Path to the rotation declaration
        period_seconds: Seconds between reconciliation passes
        enable_deletion: Destroy disabled versions after their retention period
        run_once: Run a single pass and exit
        store_backend: Secret store backend (gcp, memory)
        max_workers: Secrets processed concurrently within a pass
        log_level: Log level name
        log_format: Log output format (human, json)
    """

    config_path: str = ""
    period_seconds: int = DEFAULT_PERIOD_SECONDS
    enable_deletion: bool = False
    run_once: bool = False
    store_backend: str = "gcp"
    max_workers: int = DEFAULT_MAX_WORKERS
    log_level: str = "INFO"
    log_format: str = "human"

    @property
    def period(self) -> timedelta:
        return timedelta(seconds=self.period_seconds)

    def validate(self) -> list[str]:
        """Return a list of problems; empty when the settings are usable."""
        problems = []
        if not self.config_path:
            problems.append("required flag --config-path was unset")
        if self.period_seconds <= 0:
            problems.append("--period must be positive")
        if self.max_workers < 1:
            problems.append("--max-workers must be at least 1")
        return problems

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "config_path": self.config_path,
            "period_seconds": self.period_seconds,
            "enable_deletion": self.enable_deletion,
            "run_once": self.run_once,
            "store_backend": self.store_backend,
            "max_workers": self.max_workers,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }


def load_settings_from_env() -> RotatorSettings:
    """
    Load settings from environment variables.

    Environment variables:
        ROTATOR_CONFIG_PATH: Path to the rotation declaration
        ROTATOR_PERIOD: Seconds between passes
        ROTATOR_ENABLE_DELETION: Enable destruction of retired versions
        ROTATOR_STORE: Store backend (gcp, memory)
        ROTATOR_MAX_WORKERS: Secrets processed concurrently
        ROTATOR_LOG_LEVEL: Log level
        ROTATOR_LOG_FORMAT: Log format (human, json)

    Returns:
        RotatorSettings instance
    """
    settings = RotatorSettings()

    settings.config_path = os.getenv("ROTATOR_CONFIG_PATH", "")

    period = os.getenv("ROTATOR_PERIOD")
    if period:
        settings.period_seconds = int(period)

    deletion = os.getenv("ROTATOR_ENABLE_DELETION")
    if deletion:
        settings.enable_deletion = deletion.strip().lower() in _TRUE_VALUES

    settings.store_backend = os.getenv("ROTATOR_STORE", settings.store_backend)

    workers = os.getenv("ROTATOR_MAX_WORKERS")
    if workers:
        settings.max_workers = int(workers)

    settings.log_level = os.getenv("ROTATOR_LOG_LEVEL", settings.log_level)
    settings.log_format = os.getenv("ROTATOR_LOG_FORMAT", settings.log_format)

    return settings
