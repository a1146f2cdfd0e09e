"""
Data models for the secret rotator.

- SecretSpec / RotationConfig: declared secrets and the immutable snapshot
  holding them
- SecretVersion / VersionState: store-reported versions
- RotationAction / ActionType: per-pass lifecycle actions
- SecretOutcome / PassResult: what a pass did
"""

from rotator.models.action import (
    ActionType,
    FailureKind,
    OutcomeStatus,
    PassResult,
    RotationAction,
    SecretOutcome,
)
from rotator.models.duration import format_duration, parse_duration
from rotator.models.secret import (
    DEFAULT_OVERLAP_PERIOD,
    DEFAULT_RETENTION_PERIOD,
    RotationConfig,
    SecretSpec,
    SecretVersion,
    VersionState,
)

__all__ = [
    # Actions and results
    "ActionType",
    "FailureKind",
    "OutcomeStatus",
    "PassResult",
    "RotationAction",
    "SecretOutcome",
    # Durations
    "format_duration",
    "parse_duration",
    # Secrets
    "DEFAULT_OVERLAP_PERIOD",
    "DEFAULT_RETENTION_PERIOD",
    "RotationConfig",
    "SecretSpec",
    "SecretVersion",
    "VersionState",
]
