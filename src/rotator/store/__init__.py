"""
Secret store backends for the rotator.

- SecretStore: the port every backend implements
- GoogleSecretManagerStore: Google Cloud Secret Manager
- InMemorySecretStore: in-process store for dry runs and tests

Use the get_store() factory function to build a backend by name.
"""

from rotator.store.base import SecretStore
from rotator.store.gcp import GoogleSecretManagerStore
from rotator.store.memory import InMemorySecretStore


def get_store(backend: str = "gcp", **kwargs) -> SecretStore:
    """
    Factory function to get the appropriate secret store.

    Args:
        backend: Store type. Supported values:
            - "gcp": Google Secret Manager (requires google-cloud-secret-manager)
            - "memory": in-process store
        **kwargs: Backend-specific configuration options

    Returns:
        Configured SecretStore instance

    Raises:
        ValueError: If backend type is unknown
    """
    backend = backend.lower()

    if backend in ("gcp", "gsm"):
        return GoogleSecretManagerStore(**kwargs)

    elif backend == "memory":
        return InMemorySecretStore(**kwargs)

    raise ValueError(f"Unknown store backend: {backend}. Supported: gcp, memory")


__all__ = [
    "SecretStore",
    "GoogleSecretManagerStore",
    "InMemorySecretStore",
    "get_store",
]
