"""
Secret Rotator - scheduled rotation of versioned secrets

Rotates managed secrets (such as GCP service account keys) held in a
secret-versioning store on a declared schedule. Older versions stay
enabled for an overlap period so consumers can migrate, and retired
versions can optionally be destroyed after a retention period.

Quick Start:
    >>> from datetime import timedelta
    >>> from rotator import ConfigAgent, SecretRotator, build_default_registry, get_store
    >>>
    >>> agent = ConfigAgent()
    >>> agent.load("rotation.yaml")
    >>> rotator = SecretRotator(
    ...     store=get_store("gcp"),
    ...     agent=agent,
    ...     provisioners=build_default_registry(),
    ...     period=timedelta(minutes=1),
    ... )
    >>> result = rotator.run_once()
    >>> print(f"{len(result.failed)} secrets failed")
"""

from __future__ import annotations

__version__ = "0.1.0"

from rotator.config import ConfigAgent, FileConfigSource, RotatorSettings
from rotator.engine import SecretRotator, evaluate_lifecycle
from rotator.errors import (
    ConfigError,
    ProvisionerError,
    ProvisionerNotFoundError,
    RegistryError,
    RotatorError,
    SecretNotFoundError,
    StoreError,
)
from rotator.models import (
    ActionType,
    FailureKind,
    OutcomeStatus,
    PassResult,
    RotationAction,
    RotationConfig,
    SecretOutcome,
    SecretSpec,
    SecretVersion,
    VersionState,
)
from rotator.provisioners import (
    ProvisionerRegistry,
    SecretProvisioner,
    build_default_registry,
)
from rotator.store import SecretStore, get_store

__all__ = [
    "__version__",
    # Config
    "ConfigAgent",
    "FileConfigSource",
    "RotatorSettings",
    # Engine
    "SecretRotator",
    "evaluate_lifecycle",
    # Errors
    "ConfigError",
    "ProvisionerError",
    "ProvisionerNotFoundError",
    "RegistryError",
    "RotatorError",
    "SecretNotFoundError",
    "StoreError",
    # Models
    "ActionType",
    "FailureKind",
    "OutcomeStatus",
    "PassResult",
    "RotationAction",
    "RotationConfig",
    "SecretOutcome",
    "SecretSpec",
    "SecretVersion",
    "VersionState",
    # Provisioners
    "ProvisionerRegistry",
    "SecretProvisioner",
    "build_default_registry",
    # Store
    "SecretStore",
    "get_store",
]
