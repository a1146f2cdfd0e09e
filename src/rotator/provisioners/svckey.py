"""
GCP service account key provisioner.

Mints a new user-managed key for a service account and returns the
Google credentials JSON file as the secret payload.

Spec params:
    service_account: Service account email (required)
    project: Project owning the service account (default "-", which lets
        IAM resolve the project from the email)
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from rotator.errors import ProvisionerError
from rotator.models import SecretSpec, SecretVersion
from rotator.provisioners.base import SecretProvisioner

logger = logging.getLogger(__name__)

# Optional GCP imports
try:
    from google.cloud import iam_admin_v1
    from google.api_core.exceptions import GoogleAPIError

    GCP_AVAILABLE = True
except ImportError:
    GCP_AVAILABLE = False

SERVICE_ACCOUNT_KEY_TYPE = "serviceAccountKey"


class ServiceAccountKeyProvisioner(SecretProvisioner):
    """
    Generates service account keys through the IAM Admin API.

    Deletion support is decided by the operator at construction time,
    since a destroyed secret version may still be referenced by consumers
    that copied the key elsewhere.
    """

    def __init__(
        self,
        enable_deletion: bool = False,
        credentials: Any | None = None,
    ) -> None:
        """
        Initialize the provisioner.

        Args:
            enable_deletion: Allow destruction of retired versions
            credentials: Optional google-auth credentials object

        Raises:
            ImportError: If google-cloud-iam is not installed
        """
        if not GCP_AVAILABLE:
            raise ImportError(
                "google-cloud-iam is required for the service account key provisioner. "
                "Install with: pip install google-cloud-iam"
            )

        self._enable_deletion = enable_deletion
        self._credentials = credentials
        self._client: Any = None

    def type(self) -> str:
        return SERVICE_ACCOUNT_KEY_TYPE

    def supports_deletion(self) -> bool:
        return self._enable_deletion

    def _get_iam_client(self) -> iam_admin_v1.IAMClient:
        """Get or create IAM client."""
        if self._client is None:
            self._client = iam_admin_v1.IAMClient(credentials=self._credentials)
        return self._client

    def _service_account_path(self, spec: SecretSpec) -> str:
        service_account = spec.params.get("service_account")
        if not service_account:
            raise ProvisionerError(f"Spec '{spec.name}' is missing params.service_account")
        project = spec.params.get("project") or "-"
        return f"projects/{project}/serviceAccounts/{service_account}"

    def generate(self, spec: SecretSpec, existing_versions: Sequence[SecretVersion]) -> bytes:
        name = self._service_account_path(spec)
        request = iam_admin_v1.CreateServiceAccountKeyRequest(
            name=name,
            private_key_type=iam_admin_v1.ServiceAccountPrivateKeyType.TYPE_GOOGLE_CREDENTIALS_FILE,
        )

        try:
            key = self._get_iam_client().create_service_account_key(request=request)
        except GoogleAPIError as e:
            raise ProvisionerError(f"Failed to create key for {name}: {e}") from e

        logger.info(f"Created service account key {key.name} for {spec.name}")
        return key.private_key_data
