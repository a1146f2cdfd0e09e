"""
Secret provisioners for the rotator.

- SecretProvisioner: the capability every provisioner implements
- ProvisionerRegistry: type identifier -> provisioner mapping
- ServiceAccountKeyProvisioner: GCP service account keys ("serviceAccountKey")
- RandomTokenProvisioner: random URL-safe tokens ("randomToken")
"""

from __future__ import annotations

import logging
from typing import Any

from rotator.provisioners.base import SecretProvisioner
from rotator.provisioners.random_token import RANDOM_TOKEN_TYPE, RandomTokenProvisioner
from rotator.provisioners.registry import ProvisionerRegistry
from rotator.provisioners.svckey import (
    SERVICE_ACCOUNT_KEY_TYPE,
    ServiceAccountKeyProvisioner,
)

logger = logging.getLogger(__name__)


def build_default_registry(
    enable_deletion: bool = False,
    credentials: Any | None = None,
) -> ProvisionerRegistry:
    """
    Build a frozen registry with every built-in provisioner.

    A provisioner that cannot be constructed is logged and left out; secrets
    of its type then fail individually with a missing-provisioner error.

    Args:
        enable_deletion: Passed to provisioners whose deletion support is
            operator-controlled
        credentials: Optional google-auth credentials for GCP provisioners

    Returns:
        Frozen ProvisionerRegistry
    """
    registry = ProvisionerRegistry()
    registry.register(RandomTokenProvisioner())

    try:
        registry.register(
            ServiceAccountKeyProvisioner(
                enable_deletion=enable_deletion,
                credentials=credentials,
            )
        )
    except ImportError as e:
        logger.error(f"Failed to create service account key provisioner: {e}")

    return registry.freeze()


__all__ = [
    "SecretProvisioner",
    "ProvisionerRegistry",
    "ServiceAccountKeyProvisioner",
    "RandomTokenProvisioner",
    "SERVICE_ACCOUNT_KEY_TYPE",
    "RANDOM_TOKEN_TYPE",
    "build_default_registry",
]
