"""
In-memory secret store.

Keeps versions in process memory. Used for dry runs from the CLI and as
the store double in tests. Unlike Google Secret Manager it records when
each version was disabled.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

from rotator.errors import SecretNotFoundError, StoreError
from rotator.models import SecretVersion, VersionState
from rotator.store.base import SecretStore

logger = logging.getLogger(__name__)


class InMemorySecretStore(SecretStore):
    """
    Thread-safe in-memory secret store.

    Secrets are created implicitly on first use unless auto_create is
    disabled, in which case unknown secrets raise SecretNotFoundError.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        auto_create: bool = True,
    ) -> None:
        """
        Initialize the in-memory store.

        Args:
            clock: Source of the current time (defaults to UTC now)
            auto_create: Create unknown secrets on first access
        """
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._auto_create = auto_create
        self._versions: dict[str, list[SecretVersion]] = {}
        self._payloads: dict[tuple[str, str], bytes] = {}
        self._lock = threading.Lock()

    def add_secret(self, secret_name: str) -> None:
        """Declare an empty secret."""
        with self._lock:
            self._versions.setdefault(secret_name, [])

    def seed_version(
        self,
        secret_name: str,
        create_time: datetime,
        state: VersionState = VersionState.ENABLED,
        disable_time: datetime | None = None,
        payload: bytes = b"",
    ) -> SecretVersion:
        """
        Insert a version with an explicit creation time.

        Returns:
            The inserted version
        """
        with self._lock:
            versions = self._versions.setdefault(secret_name, [])
            version = SecretVersion(
                version_id=str(len(versions) + 1),
                create_time=create_time,
                state=state,
                disable_time=disable_time,
            )
            versions.append(version)
            self._payloads[(secret_name, version.version_id)] = payload
            return version

    def access_version(self, secret_name: str, version_id: str) -> bytes:
        """Return the payload of a non-destroyed version."""
        with self._lock:
            version = self._find(secret_name, version_id)
            if version.is_destroyed:
                raise StoreError(
                    f"Version {version_id} of {secret_name} is destroyed", secret_name
                )
            return self._payloads[(secret_name, version_id)]

    def _secret(self, secret_name: str) -> list[SecretVersion]:
        if secret_name not in self._versions:
            if not self._auto_create:
                raise SecretNotFoundError(f"Secret not found: {secret_name}", secret_name)
            self._versions[secret_name] = []
        return self._versions[secret_name]

    def _find(self, secret_name: str, version_id: str) -> SecretVersion:
        for version in self._secret(secret_name):
            if version.version_id == version_id:
                return version
        raise StoreError(f"Version {version_id} of {secret_name} not found", secret_name)

    def _replace(self, secret_name: str, updated: SecretVersion) -> None:
        versions = self._versions[secret_name]
        for i, version in enumerate(versions):
            if version.version_id == updated.version_id:
                versions[i] = updated
                return

    def create_version(self, secret_name: str, payload: bytes) -> SecretVersion:
        with self._lock:
            versions = self._secret(secret_name)
            version = SecretVersion(
                version_id=str(len(versions) + 1),
                create_time=self._clock(),
                state=VersionState.ENABLED,
            )
            versions.append(version)
            self._payloads[(secret_name, version.version_id)] = payload
            logger.debug(f"Created version {version.version_id} of {secret_name}")
            return version

    def list_versions(self, secret_name: str) -> list[SecretVersion]:
        with self._lock:
            return list(self._secret(secret_name))

    def disable_version(self, secret_name: str, version_id: str) -> None:
        with self._lock:
            version = self._find(secret_name, version_id)
            if not version.is_enabled:
                raise StoreError(
                    f"Cannot disable version {version_id} of {secret_name} "
                    f"in state {version.state.value}",
                    secret_name,
                )
            self._replace(
                secret_name,
                replace(version, state=VersionState.DISABLED, disable_time=self._clock()),
            )

    def destroy_version(self, secret_name: str, version_id: str) -> None:
        with self._lock:
            version = self._find(secret_name, version_id)
            if version.is_destroyed:
                raise StoreError(
                    f"Version {version_id} of {secret_name} is already destroyed",
                    secret_name,
                )
            self._replace(secret_name, replace(version, state=VersionState.DESTROYED))
            self._payloads[(secret_name, version_id)] = b""
