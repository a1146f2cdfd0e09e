"""
Abstract base class for secret stores.

This module defines the SecretStore interface that every secret-versioning
backend must implement. The rotator only observes versions through
list_versions and requests transitions through the other three methods;
the store remains the source of truth for all rotation state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from rotator.models import SecretVersion


class SecretStore(ABC):
    """
    Abstract base class for secret store implementations.

    Implementations must be safe to share between worker threads and
    raise StoreError (or a subclass) for every backend failure.
    """

    @abstractmethod
    def create_version(self, secret_name: str, payload: bytes) -> SecretVersion:
        """
        Add a new enabled version to a secret.

        Args:
            secret_name: Secret path in the store
            payload: Secret material for the new version

        Returns:
            The created version
        """
        pass

    @abstractmethod
    def list_versions(self, secret_name: str) -> list[SecretVersion]:
        """
        List every version of a secret, in no particular order.

        Args:
            secret_name: Secret path in the store

        Returns:
            Versions including disabled and destroyed ones
        """
        pass

    @abstractmethod
    def disable_version(self, secret_name: str, version_id: str) -> None:
        """
        Disable an enabled version.

        Args:
            secret_name: Secret path in the store
            version_id: Version to disable
        """
        pass

    @abstractmethod
    def destroy_version(self, secret_name: str, version_id: str) -> None:
        """
        Irreversibly destroy a version's material.

        Args:
            secret_name: Secret path in the store
            version_id: Version to destroy
        """
        pass
