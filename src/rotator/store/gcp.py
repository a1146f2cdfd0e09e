"""
Google Secret Manager store implementation.

This module provides GoogleSecretManagerStore, the production SecretStore
backed by Google Cloud Secret Manager. Secret names are full resource
paths of the form projects/{project}/secrets/{secret}.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

try:
    from google.cloud import secretmanager
    from google.api_core.exceptions import GoogleAPIError, NotFound, PermissionDenied

    GCP_AVAILABLE = True
except ImportError:
    GCP_AVAILABLE = False

from rotator.errors import SecretNotFoundError, StoreError
from rotator.models import SecretVersion, VersionState
from rotator.store.base import SecretStore

logger = logging.getLogger(__name__)


class GoogleSecretManagerStore(SecretStore):
    """
    Secret store backed by Google Cloud Secret Manager.

    The API client is created on first use, so a missing SDK or bad
    credentials surface as a StoreError for the secret being processed
    rather than at construction time.

    Secret Manager does not report when a version was disabled, so versions
    returned by list_versions never carry a disable_time.
    """

    def __init__(self, credentials: Any = None, client: Any = None) -> None:
        """
        Initialize the Secret Manager store.

        Args:
            credentials: Optional google.auth credentials object
            client: Optional pre-built SecretManagerServiceClient
        """
        self._credentials = credentials
        self._client: Any = client

    def _get_client(self) -> Any:
        """Get or create the Secret Manager client."""
        if self._client is None:
            if not GCP_AVAILABLE:
                raise StoreError(
                    "google-cloud-secret-manager is required for GoogleSecretManagerStore. "
                    "Install with: pip install google-cloud-secret-manager"
                )
            try:
                self._client = secretmanager.SecretManagerServiceClient(
                    credentials=self._credentials
                )
            except Exception as e:
                raise StoreError(f"Failed to create Secret Manager client: {e}") from e
        return self._client

    @staticmethod
    def _version_path(secret_name: str, version_id: str) -> str:
        return f"{secret_name}/versions/{version_id}"

    @staticmethod
    def _to_datetime(value: Any) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def _to_version(self, response: Any) -> SecretVersion | None:
        """Convert an API SecretVersion into the rotator's model."""
        state_name = getattr(response.state, "name", str(response.state))
        try:
            state = VersionState.from_string(state_name)
        except ValueError:
            logger.warning(f"Skipping version {response.name} with state {state_name}")
            return None

        return SecretVersion(
            version_id=response.name.rsplit("/", 1)[-1],
            create_time=self._to_datetime(response.create_time),
            state=state,
        )

    def _wrap(self, e: Exception, secret_name: str, operation: str) -> StoreError:
        if isinstance(e, NotFound):
            return SecretNotFoundError(f"Secret not found: {secret_name}", secret_name)
        if isinstance(e, PermissionDenied):
            return StoreError(
                f"Access denied when trying to {operation} on {secret_name}", secret_name
            )
        return StoreError(f"Failed to {operation} on {secret_name}: {e}", secret_name)

    def create_version(self, secret_name: str, payload: bytes) -> SecretVersion:
        client = self._get_client()
        try:
            response = client.add_secret_version(
                request={"parent": secret_name, "payload": {"data": payload}}
            )
        except GoogleAPIError as e:
            raise self._wrap(e, secret_name, "add a secret version") from e

        version = self._to_version(response)
        if version is None:
            raise StoreError(f"Store returned an unusable version for {secret_name}", secret_name)
        return version

    def list_versions(self, secret_name: str) -> list[SecretVersion]:
        client = self._get_client()
        versions = []
        try:
            for response in client.list_secret_versions(request={"parent": secret_name}):
                version = self._to_version(response)
                if version is not None:
                    versions.append(version)
        except GoogleAPIError as e:
            raise self._wrap(e, secret_name, "list secret versions") from e
        return versions

    def disable_version(self, secret_name: str, version_id: str) -> None:
        client = self._get_client()
        try:
            client.disable_secret_version(
                request={"name": self._version_path(secret_name, version_id)}
            )
        except GoogleAPIError as e:
            raise self._wrap(e, secret_name, f"disable version {version_id}") from e

    def destroy_version(self, secret_name: str, version_id: str) -> None:
        client = self._get_client()
        try:
            client.destroy_secret_version(
                request={"name": self._version_path(secret_name, version_id)}
            )
        except GoogleAPIError as e:
            raise self._wrap(e, secret_name, f"destroy version {version_id}") from e
