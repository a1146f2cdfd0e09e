"""
Provisioner registry for the rotator.

Maps secret type identifiers to provisioner instances. The registry is
populated at startup and then frozen; lookups never consult a SecretSpec's
Python type, only its declared type identifier.
"""

from __future__ import annotations

import threading
from typing import Iterator, Mapping

from rotator.errors import ProvisionerNotFoundError, RegistryError
from rotator.provisioners.base import SecretProvisioner


class ProvisionerRegistry:
    """
    Registry of provisioners keyed by secret type.

    Registration is guarded by a lock; once frozen the mapping no longer
    changes and reads need no coordination.
    """

    def __init__(self, provisioners: list[SecretProvisioner] | None = None) -> None:
        """
        Initialize the registry.

        Args:
            provisioners: Provisioners to register immediately
        """
        self._provisioners: dict[str, SecretProvisioner] = {}
        self._frozen = False
        self._lock = threading.RLock()

        for provisioner in provisioners or []:
            self.register(provisioner)

    @classmethod
    def from_mapping(cls, provisioners: Mapping[str, SecretProvisioner]) -> ProvisionerRegistry:
        """
        Build a frozen registry from a type -> provisioner mapping.

        Raises:
            RegistryError: If a key disagrees with its provisioner's type()
        """
        registry = cls()
        for secret_type, provisioner in provisioners.items():
            if provisioner.type() != secret_type:
                raise RegistryError(
                    f"Provisioner {provisioner!r} registered under mismatched type '{secret_type}'"
                )
            registry.register(provisioner)
        return registry.freeze()

    def register(self, provisioner: SecretProvisioner) -> None:
        """
        Register a provisioner under its declared type.

        Raises:
            RegistryError: If the registry is frozen or the type is taken
        """
        with self._lock:
            if self._frozen:
                raise RegistryError("Provisioner registry is frozen")

            secret_type = provisioner.type()
            if secret_type in self._provisioners:
                raise RegistryError(f"Provisioner for type '{secret_type}' is already registered")
            self._provisioners[secret_type] = provisioner

    def freeze(self) -> ProvisionerRegistry:
        """Prevent further registration. Returns self."""
        with self._lock:
            self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, secret_type: str) -> SecretProvisioner:
        """
        Look up the provisioner for a secret type.

        Raises:
            ProvisionerNotFoundError: If no provisioner serves the type
        """
        provisioner = self._provisioners.get(secret_type)
        if provisioner is None:
            raise ProvisionerNotFoundError(secret_type)
        return provisioner

    def types(self) -> list[str]:
        return sorted(self._provisioners)

    def __contains__(self, secret_type: object) -> bool:
        return secret_type in self._provisioners

    def __len__(self) -> int:
        return len(self._provisioners)

    def __iter__(self) -> Iterator[SecretProvisioner]:
        return iter(list(self._provisioners.values()))
