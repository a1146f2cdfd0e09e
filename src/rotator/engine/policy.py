"""
Secret version lifecycle policy.

Maps a secret's declared periods, its observed versions and the current
time to the lifecycle actions due for it. Versions move strictly
Enabled -> Disabled -> Destroyed:

1. Rotation: create a version when there is no Enabled version, or when
   the newest Enabled version is at least rotation_period old.
2. Deactivation: disable every Enabled version other than the newest once
   it is at least overlap_period old (measured from its own creation). A
   sole Enabled version is never disabled.
3. Destruction: only when deletion is enabled, destroy every Disabled
   version whose disable time is at least retention_period ago. Disabled
   versions with no known disable time are kept.

Actions come back ordered destroys, disables, then create, so a version
created in a pass is never treated as an old version in that same pass.
"""

from __future__ import annotations

from datetime import datetime
from typing import Mapping, Sequence

from rotator.models import RotationAction, SecretSpec, SecretVersion


def _creation_order(version: SecretVersion) -> tuple:
    # Secret Manager version ids are increasing integers; fall back to the
    # raw id for stores that use other schemes.
    vid = version.version_id
    return (version.create_time, int(vid) if vid.isdigit() else 0, vid)


def latest_enabled(versions: Sequence[SecretVersion]) -> SecretVersion | None:
    """Return the most recently created Enabled version, if any."""
    enabled = [v for v in versions if v.is_enabled]
    if not enabled:
        return None
    return max(enabled, key=_creation_order)


def needs_rotation(spec: SecretSpec, versions: Sequence[SecretVersion], now: datetime) -> bool:
    latest = latest_enabled(versions)
    return latest is None or now - latest.create_time >= spec.rotation_period


def versions_to_disable(
    spec: SecretSpec,
    versions: Sequence[SecretVersion],
    now: datetime,
) -> list[SecretVersion]:
    """Superseded Enabled versions whose overlap period has elapsed, oldest first."""
    latest = latest_enabled(versions)
    if latest is None:
        return []

    due = [
        v
        for v in versions
        if v.is_enabled
        and v.version_id != latest.version_id
        and now - v.create_time >= spec.overlap_period
    ]
    return sorted(due, key=_creation_order)


def versions_to_destroy(
    spec: SecretSpec,
    versions: Sequence[SecretVersion],
    now: datetime,
    disable_times: Mapping[str, datetime] | None = None,
) -> list[SecretVersion]:
    """
    Disabled versions whose retention period has elapsed, oldest first.

    The store-reported disable_time wins; disable_times supplies the
    engine's own record for stores that do not report one.
    """
    disable_times = disable_times or {}
    due = []
    for version in versions:
        if not version.is_disabled:
            continue
        disabled_at = version.disable_time or disable_times.get(version.version_id)
        if disabled_at is None:
            continue
        if now - disabled_at >= spec.retention_period:
            due.append(version)
    return sorted(due, key=_creation_order)


def evaluate_lifecycle(
    spec: SecretSpec,
    versions: Sequence[SecretVersion],
    now: datetime,
    deletion_enabled: bool = False,
    disable_times: Mapping[str, datetime] | None = None,
) -> list[RotationAction]:
    """
    Compute the lifecycle actions due for one secret.

    Pure function of its arguments: the same versions and time always
    produce the same actions.

    Args:
        spec: Declared secret
        versions: Versions reported by the store, in any order
        now: Evaluation time
        deletion_enabled: Whether destruction is allowed for this secret
            (global flag and provisioner support combined)
        disable_times: Known disable times by version id

    Returns:
        Ordered actions; empty when nothing is due
    """
    actions: list[RotationAction] = []

    if deletion_enabled:
        for version in versions_to_destroy(spec, versions, now, disable_times):
            actions.append(RotationAction.destroy(version.version_id))

    for version in versions_to_disable(spec, versions, now):
        actions.append(RotationAction.disable(version.version_id))

    if needs_rotation(spec, versions, now):
        actions.append(RotationAction.create())

    return actions
