"""
Base class for secret provisioners.

A provisioner generates new secret material for one secret type. The
rotation engine selects a provisioner by the type identifier declared in
each SecretSpec.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from rotator.models import SecretSpec, SecretVersion


class SecretProvisioner(ABC):
    """
    Abstract base class for secret provisioners.

    Implementations hold no per-call mutable state and may be called
    concurrently for different secrets.
    """

    @abstractmethod
    def type(self) -> str:
        """Return the SecretSpec.type value this provisioner serves."""
        pass

    @abstractmethod
    def generate(self, spec: SecretSpec, existing_versions: Sequence[SecretVersion]) -> bytes:
        """
        Produce new secret material.

        Must work when existing_versions is empty (first rotation) and must
        not rely on the order of existing_versions.

        Args:
            spec: The secret being rotated
            existing_versions: Versions currently reported by the store

        Returns:
            Payload for the new version

        Raises:
            ProvisionerError: If material cannot be generated
        """
        pass

    def supports_deletion(self) -> bool:
        """Whether disabled versions of this type may be destroyed."""
        return False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.type()!r})"
