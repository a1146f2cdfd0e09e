"""
Config agent for the rotator.

Holds the current RotationConfig and replaces it atomically whenever the
config source reports a new valid declaration. Readers always get a whole
snapshot; a failed reload leaves the previous snapshot in place.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable

from rotator.config.source import ConfigSource, FileConfigSource
from rotator.models import RotationConfig

logger = logging.getLogger(__name__)


class ConfigAgent:
    """
    Owns the live rotation config.

    The published RotationConfig is immutable; updates replace the
    reference under a short lock, so current() never observes a partial
    update and never waits on a reload in progress.
    """

    def __init__(
        self,
        source: ConfigSource | None = None,
        initial: RotationConfig | None = None,
    ) -> None:
        """
        Initialize the agent.

        Args:
            source: Where declarations come from (defaults to files)
            initial: Config to publish before anything is loaded
        """
        self._source = source or FileConfigSource()
        self._config = initial if initial is not None else RotationConfig()
        self._lock = threading.Lock()
        self._reload_count = 0
        self._reload_failures = 0
        self._last_error: str = ""
        self._last_reload: datetime | None = None

    def current(self) -> RotationConfig:
        """Return the current config snapshot."""
        with self._lock:
            return self._config

    def set(self, config: RotationConfig) -> None:
        """Publish a new config snapshot."""
        with self._lock:
            previous = self._config
            self._config = config
            self._reload_count += 1
            self._last_reload = datetime.now(timezone.utc)

        added = sorted(set(config.names()) - set(previous.names()))
        removed = sorted(set(previous.names()) - set(config.names()))
        logger.info(
            f"Loaded config from {config.source or 'memory'}: {len(config)} secrets"
            + (f", added {added}" if added else "")
            + (f", removed {removed}" if removed else "")
        )

    def load(self, source_ref: str) -> RotationConfig:
        """
        Load the declaration synchronously and publish it.

        Raises:
            ConfigError: If the declaration is missing or invalid
        """
        config = self._source.load(source_ref)
        self.set(config)
        return config

    def watch_config(self, source_ref: str) -> Callable[[threading.Event], None]:
        """
        Load the declaration and prepare a background watch.

        Args:
            source_ref: Declaration to load and watch

        Returns:
            Run function; call it (typically on its own thread) with a stop
            event. It blocks until the event is set and then stops watching.
            The loaded config stays published after the watch stops.

        Raises:
            ConfigError: If the initial load fails
        """
        self.load(source_ref)

        def run(stop: threading.Event) -> None:
            cancel = self._source.watch(source_ref, self.set, self._on_error)
            logger.debug(f"Watching {source_ref} for config changes")
            try:
                stop.wait()
            finally:
                cancel()
                logger.debug(f"Stopped watching {source_ref}")

        return run

    def _on_error(self, error: Exception) -> None:
        with self._lock:
            self._reload_failures += 1
            self._last_error = str(error)
        logger.error(f"Config reload failed, still using previous config: {error}")

    @property
    def reload_failures(self) -> int:
        return self._reload_failures

    @property
    def last_error(self) -> str:
        return self._last_error

    def get_status(self) -> dict[str, Any]:
        """Get agent status."""
        config = self.current()
        return {
            "source": config.source,
            "secrets": len(config),
            "reload_count": self._reload_count,
            "reload_failures": self._reload_failures,
            "last_error": self._last_error,
            "last_reload": self._last_reload.isoformat() if self._last_reload else None,
        }
