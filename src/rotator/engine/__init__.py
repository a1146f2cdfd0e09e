"""
Rotation engine for the secret rotator.

- evaluate_lifecycle: pure lifecycle policy for one secret
- DisableClock: disable times for stores that do not report them
- SecretRotator: the periodic reconciliation loop
"""

from rotator.engine.clock import DisableClock
from rotator.engine.policy import (
    evaluate_lifecycle,
    latest_enabled,
    needs_rotation,
    versions_to_destroy,
    versions_to_disable,
)
from rotator.engine.rotator import SecretRotator

__all__ = [
    "DisableClock",
    "SecretRotator",
    "evaluate_lifecycle",
    "latest_enabled",
    "needs_rotation",
    "versions_to_destroy",
    "versions_to_disable",
]
