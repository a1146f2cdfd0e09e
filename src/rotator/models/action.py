"""
Rotation actions and pass results.

RotationAction values are computed fresh on every pass from the store's
version metadata and are never persisted. SecretOutcome and PassResult
describe what a pass did for each secret.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Iterator


class ActionType(Enum):
    """
    Kinds of lifecycle action the engine can take on a secret.

    A secret that needs nothing gets an empty action list.
    """

    CREATE_VERSION = "create_version"
    DISABLE_VERSION = "disable_version"
    DESTROY_VERSION = "destroy_version"


@dataclass(frozen=True)
class RotationAction:
    """
    A single lifecycle action for one secret.

    Attributes:
        action_type: What to do
        version_id: Target version for disable/destroy actions
    """

    action_type: ActionType
    version_id: str | None = None

    @classmethod
    def create(cls) -> RotationAction:
        return cls(ActionType.CREATE_VERSION)

    @classmethod
    def disable(cls, version_id: str) -> RotationAction:
        return cls(ActionType.DISABLE_VERSION, version_id)

    @classmethod
    def destroy(cls, version_id: str) -> RotationAction:
        return cls(ActionType.DESTROY_VERSION, version_id)

    def __str__(self) -> str:
        if self.version_id is None:
            return self.action_type.value
        return f"{self.action_type.value}({self.version_id})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "action_type": self.action_type.value,
            "version_id": self.version_id,
        }


class OutcomeStatus(Enum):
    """Result of processing one secret in a pass."""

    SUCCESS = "success"
    FAILED = "failed"


class FailureKind(Enum):
    """Why a secret failed during a pass."""

    INVALID_SPEC = "invalid_spec"
    MISSING_PROVISIONER = "missing_provisioner"
    STORE_ERROR = "store_error"
    PROVISIONER_ERROR = "provisioner_error"
    UNEXPECTED = "unexpected"


@dataclass
class SecretOutcome:
    """
    Outcome of one secret in one pass.

    Attributes:
        secret_name: Secret the outcome belongs to
        status: Whether every planned action was applied
        actions: Actions the lifecycle policy planned
        applied: Actions that were applied successfully
        error: Error message if the secret failed
        error_kind: Category of the failure
    """

    secret_name: str
    status: OutcomeStatus = OutcomeStatus.SUCCESS
    actions: list[RotationAction] = field(default_factory=list)
    applied: list[RotationAction] = field(default_factory=list)
    error: str = ""
    error_kind: FailureKind | None = None

    @property
    def success(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    def fail(self, kind: FailureKind, error: str) -> None:
        """Mark the outcome as failed, keeping the first recorded error."""
        if self.status == OutcomeStatus.FAILED:
            return
        self.status = OutcomeStatus.FAILED
        self.error_kind = kind
        self.error = error

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "secret_name": self.secret_name,
            "status": self.status.value,
            "actions": [str(a) for a in self.actions],
            "applied": [str(a) for a in self.applied],
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
        }


@dataclass
class PassResult:
    """
    Aggregated result of a reconciliation pass.

    Attributes:
        started_at: When the pass started
        completed_at: When the pass completed
        outcomes: Per-secret outcome keyed by secret name
    """

    started_at: datetime
    completed_at: datetime | None = None
    outcomes: dict[str, SecretOutcome] = field(default_factory=dict)

    def __iter__(self) -> Iterator[SecretOutcome]:
        return iter(self.outcomes.values())

    def __len__(self) -> int:
        return len(self.outcomes)

    def __getitem__(self, secret_name: str) -> SecretOutcome:
        return self.outcomes[secret_name]

    @property
    def duration(self) -> timedelta | None:
        """Get the duration of the pass."""
        if self.completed_at:
            return self.completed_at - self.started_at
        return None

    @property
    def success(self) -> bool:
        return all(outcome.success for outcome in self.outcomes.values())

    @property
    def failed(self) -> list[SecretOutcome]:
        return [o for o in self.outcomes.values() if not o.success]

    def actions_by_secret(self) -> dict[str, list[RotationAction]]:
        """Planned actions keyed by secret name."""
        return {name: list(o.actions) for name, o in self.outcomes.items()}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration.total_seconds() if self.duration is not None else None,
            "success": self.success,
            "secrets": {name: o.to_dict() for name, o in self.outcomes.items()},
        }
