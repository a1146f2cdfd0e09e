"""
Disable-time bookkeeping for stores that do not report it.

Google Secret Manager exposes a version's creation time but not when it
was disabled. DisableClock remembers when the engine disabled a version,
or when it first saw a version that something else disabled, so the
retention period can still be measured. The record lives in memory only:
after a restart the retention clock of such versions starts again, which
delays destruction but never brings it forward.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Iterable, Sequence

from rotator.models import SecretVersion


class DisableClock:
    """Thread-safe record of disable times keyed by secret and version."""

    def __init__(self) -> None:
        self._times: dict[str, dict[str, datetime]] = {}
        self._lock = threading.Lock()

    def record(self, secret_name: str, version_id: str, when: datetime) -> None:
        """Record that the engine disabled a version at the given time."""
        with self._lock:
            self._times.setdefault(secret_name, {})[version_id] = when

    def forget(self, secret_name: str, version_id: str) -> None:
        with self._lock:
            self._times.get(secret_name, {}).pop(version_id, None)

    def resolve(
        self,
        secret_name: str,
        versions: Sequence[SecretVersion],
        now: datetime,
    ) -> dict[str, datetime]:
        """
        Disable times for a secret's Disabled versions.

        Versions without a store-reported disable time and without a
        record are recorded as first observed at now.

        Returns:
            Disable time by version id for every Disabled version
        """
        with self._lock:
            known = self._times.setdefault(secret_name, {})
            current = {v.version_id for v in versions if v.is_disabled}

            # Drop versions that were re-enabled, destroyed or removed.
            for version_id in list(known):
                if version_id not in current:
                    del known[version_id]

            resolved = {}
            for version in versions:
                if not version.is_disabled:
                    continue
                if version.disable_time is not None:
                    resolved[version.version_id] = version.disable_time
                else:
                    resolved[version.version_id] = known.setdefault(version.version_id, now)
            return resolved

    def prune(self, secret_names: Iterable[str]) -> None:
        """Drop records of secrets that are no longer declared."""
        keep = set(secret_names)
        with self._lock:
            for name in list(self._times):
                if name not in keep:
                    del self._times[name]

    def __len__(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._times.values())
