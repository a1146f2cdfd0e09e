"""
Exception hierarchy for the secret rotator.

Every failure raised inside the rotator derives from RotatorError so that
callers can tell rotation failures apart from programming errors.
"""

from __future__ import annotations


class RotatorError(Exception):
    """Base exception for rotator errors."""

    pass


class ConfigError(RotatorError):
    """Error loading or validating a rotation declaration."""

    pass


class StoreError(RotatorError):
    """Error talking to the secret store."""

    def __init__(self, message: str, secret_name: str = "") -> None:
        super().__init__(message)
        self.secret_name = secret_name


class SecretNotFoundError(StoreError):
    """The secret does not exist in the store."""

    pass


class ProvisionerError(RotatorError):
    """Error generating new secret material."""

    pass


class RegistryError(RotatorError):
    """Error registering or resolving a provisioner."""

    pass


class ProvisionerNotFoundError(RegistryError):
    """No provisioner is registered for a secret type."""

    def __init__(self, secret_type: str) -> None:
        super().__init__(f"No provisioner registered for type '{secret_type}'")
        self.secret_type = secret_type
