"""
Random token provisioner.

Generates URL-safe random tokens for secrets that are plain shared
credentials (API tokens, webhook secrets, internal passwords).

Spec params:
    length: Number of random bytes before encoding (default 32, min 16)
"""

from __future__ import annotations

import secrets
from typing import Sequence

from rotator.errors import ProvisionerError
from rotator.models import SecretSpec, SecretVersion
from rotator.provisioners.base import SecretProvisioner

RANDOM_TOKEN_TYPE = "randomToken"

DEFAULT_TOKEN_BYTES = 32
MIN_TOKEN_BYTES = 16


class RandomTokenProvisioner(SecretProvisioner):
    """Generates random tokens; retired tokens are safe to destroy."""

    def type(self) -> str:
        return RANDOM_TOKEN_TYPE

    def supports_deletion(self) -> bool:
        return True

    def generate(self, spec: SecretSpec, existing_versions: Sequence[SecretVersion]) -> bytes:
        length = spec.params.get("length", DEFAULT_TOKEN_BYTES)
        try:
            length = int(length)
        except (TypeError, ValueError) as e:
            raise ProvisionerError(f"Spec '{spec.name}': invalid length {length!r}") from e

        if length < MIN_TOKEN_BYTES:
            raise ProvisionerError(
                f"Spec '{spec.name}': length must be at least {MIN_TOKEN_BYTES}"
            )

        return secrets.token_urlsafe(length).encode("ascii")
