"""
Configuration sources for the rotator.

A ConfigSource turns a source reference into a validated RotationConfig
and notifies a callback whenever a new valid declaration is available.
FileConfigSource reads YAML or JSON files and polls them for changes.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Callable

import yaml

from rotator.errors import ConfigError
from rotator.models import RotationConfig

logger = logging.getLogger(__name__)

OnChange = Callable[[RotationConfig], None]
OnError = Callable[[Exception], None]

DEFAULT_POLL_INTERVAL = 5.0


def parse_config(content: str, source: str = "", fmt: str = "yaml") -> RotationConfig:
    """
    Parse a rotation declaration.

    Args:
        content: Raw document text
        source: Source reference recorded on the config
        fmt: "yaml" or "json"

    Returns:
        Validated RotationConfig

    Raises:
        ConfigError: If the document cannot be parsed or validated
    """
    try:
        if fmt == "json":
            data = json.loads(content) if content.strip() else None
        else:
            data = yaml.safe_load(content)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse {source or 'config'}: {e}") from e

    # Blank documents are rejected; "specs: []" declares nothing explicitly.
    if data is None:
        raise ConfigError(f"Config is empty: {source or '<inline>'}")

    return RotationConfig.from_dict(data, source=source)


def _decode_config(raw: bytes, path: str) -> RotationConfig:
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid UTF-8: {e}") from e

    fmt = "json" if path.endswith(".json") else "yaml"
    return parse_config(content, source=path, fmt=fmt)


def load_config_file(path: str) -> RotationConfig:
    """
    Load a rotation declaration from a YAML or JSON file.

    Raises:
        ConfigError: If the file cannot be read, decoded, parsed or validated
    """
    path = os.path.expanduser(path)
    try:
        with open(path, "rb") as f:
            raw = f.read()
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    return _decode_config(raw, path)


class ConfigSource(ABC):
    """Port for loading and watching rotation declarations."""

    @abstractmethod
    def load(self, source_ref: str) -> RotationConfig:
        """
        Load and validate the declaration at source_ref.

        Raises:
            ConfigError: If the declaration is missing or invalid
        """
        pass

    @abstractmethod
    def watch(
        self,
        source_ref: str,
        on_change: OnChange,
        on_error: OnError | None = None,
    ) -> Callable[[], None]:
        """
        Watch source_ref and call on_change with every new valid config.

        Invalid declarations are reported through on_error and never passed
        to on_change.

        Returns:
            Function that cancels the watch
        """
        pass


class FileConfigSource(ConfigSource):
    """
    Reads declarations from the filesystem and polls for changes.

    Changes are detected by comparing a digest of the file content, so
    atomic replacements (rename or symlink swaps, as done for mounted
    Kubernetes ConfigMaps) are picked up as well as in-place writes.
    """

    def __init__(self, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        """
        Initialize the file source.

        Args:
            poll_interval: Seconds between change checks
        """
        self._poll_interval = poll_interval
        self._digests: dict[str, str] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _read(source_ref: str) -> tuple[str, bytes]:
        path = os.path.expanduser(source_ref)
        with open(path, "rb") as f:
            return path, f.read()

    def load(self, source_ref: str) -> RotationConfig:
        try:
            path, raw = self._read(source_ref)
        except OSError as e:
            raise ConfigError(f"Failed to read config file {source_ref}: {e}") from e

        # Digest and config come from the same read so a concurrent write
        # is always seen as a change by the watcher.
        config = _decode_config(raw, path)
        with self._lock:
            self._digests[source_ref] = hashlib.sha256(raw).hexdigest()
        return config

    def watch(
        self,
        source_ref: str,
        on_change: OnChange,
        on_error: OnError | None = None,
    ) -> Callable[[], None]:
        stop = threading.Event()
        with self._lock:
            last_digest = self._digests.get(source_ref)

        def report(error: Exception) -> None:
            logger.warning(f"Keeping previous config, reload of {source_ref} failed: {error}")
            if on_error is not None:
                try:
                    on_error(error)
                except Exception as e:
                    logger.error(f"Config error callback failed: {e}")

        def check() -> None:
            nonlocal last_digest
            try:
                path, raw = self._read(source_ref)
            except OSError as e:
                if last_digest != "":
                    report(ConfigError(f"Config file {source_ref} unreadable: {e}"))
                    last_digest = ""
                return

            digest = hashlib.sha256(raw).hexdigest()
            if digest == last_digest:
                return
            last_digest = digest

            config = _decode_config(raw, path)
            with self._lock:
                self._digests[source_ref] = digest
            on_change(config)

        def poll() -> None:
            while not stop.wait(self._poll_interval):
                try:
                    check()
                except Exception as e:
                    # Reported once per distinct content.
                    report(e)

        thread = threading.Thread(
            target=poll,
            name=f"config-watch:{os.path.basename(source_ref)}",
            daemon=True,
        )
        thread.start()

        def cancel() -> None:
            stop.set()
            thread.join(timeout=5)

        return cancel
