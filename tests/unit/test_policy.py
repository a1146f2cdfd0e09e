"""
Unit tests for the secret version lifecycle policy.

Tests cover:
- Rotation trigger for empty and aging secrets
- Deactivation of superseded versions after the overlap period
- Destruction of disabled versions after the retention period
- Action ordering and independence from input order
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from rotator.engine.policy import (
    evaluate_lifecycle,
    latest_enabled,
    needs_rotation,
    versions_to_destroy,
    versions_to_disable,
)
from rotator.models import ActionType, RotationAction, SecretVersion, VersionState


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def enabled(version_id: str, created: datetime) -> SecretVersion:
    return SecretVersion(version_id=version_id, create_time=created)


def disabled(
    version_id: str,
    created: datetime,
    disable_time: datetime | None = None,
) -> SecretVersion:
    return SecretVersion(
        version_id=version_id,
        create_time=created,
        state=VersionState.DISABLED,
        disable_time=disable_time,
    )


def destroyed(version_id: str, created: datetime) -> SecretVersion:
    return SecretVersion(
        version_id=version_id,
        create_time=created,
        state=VersionState.DESTROYED,
    )


class TestRotationTrigger:
    """Tests for new version creation."""

    def test_no_versions_creates_exactly_once(self, spec):
        """A secret with no versions gets a single create and nothing else."""
        actions = evaluate_lifecycle(spec, [], T0)

        assert actions == [RotationAction.create()]

    def test_no_versions_with_deletion_enabled(self, spec):
        """Deletion being enabled adds nothing for an empty secret."""
        actions = evaluate_lifecycle(spec, [], T0, deletion_enabled=True)

        assert actions == [RotationAction.create()]

    def test_fresh_version_needs_nothing(self, spec):
        """A version younger than the rotation period is left alone."""
        versions = [enabled("1", T0)]

        assert evaluate_lifecycle(spec, versions, T0 + timedelta(days=29)) == []

    def test_rotation_due_at_exact_period(self, spec):
        """Rotation fires once the newest version is exactly rotation_period old."""
        versions = [enabled("1", T0)]

        assert needs_rotation(spec, versions, T0 + timedelta(days=30))
        assert not needs_rotation(spec, versions, T0 + timedelta(days=30) - timedelta(seconds=1))

    def test_sole_version_rotates_but_is_not_disabled(self, spec):
        """An aged sole version triggers a create but is never disabled."""
        versions = [enabled("1", T0)]
        now = T0 + timedelta(days=30, seconds=1)

        actions = evaluate_lifecycle(spec, versions, now)

        assert actions == [RotationAction.create()]

    def test_only_destroyed_versions_triggers_create(self, spec):
        """Destroyed versions do not count as a live version."""
        versions = [destroyed("1", T0)]

        actions = evaluate_lifecycle(spec, versions, T0 + timedelta(days=1), deletion_enabled=True)

        assert actions == [RotationAction.create()]

    def test_only_disabled_versions_triggers_create(self, spec):
        """A secret whose versions are all disabled needs a new version."""
        versions = [disabled("1", T0)]

        actions = evaluate_lifecycle(spec, versions, T0 + timedelta(days=1))

        assert actions == [RotationAction.create()]

    def test_rotation_measured_from_newest_enabled(self, spec):
        """An old superseded version does not make a fresh newest version rotate."""
        versions = [enabled("1", T0), enabled("2", T0 + timedelta(days=30))]
        now = T0 + timedelta(days=31)

        actions = evaluate_lifecycle(spec, versions, now)

        assert RotationAction.create() not in actions


class TestDeactivation:
    """Tests for disabling superseded versions."""

    def test_superseded_version_disabled_after_overlap(self, spec):
        """v1 is disabled three days into v2's life; v2 is untouched."""
        v1 = enabled("1", T0)
        v2 = enabled("2", T0 + timedelta(days=30))
        now = T0 + timedelta(days=33)

        actions = evaluate_lifecycle(spec, [v1, v2], now)

        assert actions == [RotationAction.disable("1")]

    def test_never_disabled_before_overlap_elapses(self, spec_factory):
        """A superseded version stays enabled until its own T+overlap."""
        spec = spec_factory(rotation_days=1, overlap_days=2)
        v1 = enabled("1", T0)
        v2 = enabled("2", T0 + timedelta(days=1))

        before = versions_to_disable(spec, [v1, v2], T0 + timedelta(days=2) - timedelta(seconds=1))
        at = versions_to_disable(spec, [v1, v2], T0 + timedelta(days=2))

        assert before == []
        assert at == [v1]

    def test_newest_version_never_disabled(self, spec):
        """The newest enabled version is exempt regardless of age."""
        v1 = enabled("1", T0)
        v2 = enabled("2", T0 + timedelta(days=1))
        now = T0 + timedelta(days=365)

        assert v2 not in versions_to_disable(spec, [v1, v2], now)

    def test_multiple_old_versions_disabled_oldest_first(self, spec):
        """Every superseded version past its overlap is disabled, oldest first."""
        versions = [
            enabled("3", T0 + timedelta(days=60)),
            enabled("1", T0),
            enabled("2", T0 + timedelta(days=30)),
        ]
        now = T0 + timedelta(days=63)

        actions = evaluate_lifecycle(spec, versions, now)

        assert actions == [RotationAction.disable("1"), RotationAction.disable("2")]

    def test_zero_overlap_disables_immediately(self, spec_factory):
        """With no overlap a superseded version is disabled at once."""
        spec = spec_factory(overlap_days=0)
        v1 = enabled("1", T0)
        v2 = enabled("2", T0)

        assert versions_to_disable(spec, [v1, v2], T0) == [v1]

    def test_latest_enabled_tie_broken_by_version_id(self):
        """Versions created in the same instant are ordered by numeric id."""
        versions = [enabled("10", T0), enabled("9", T0)]

        assert latest_enabled(versions).version_id == "10"


class TestDestruction:
    """Tests for destroying disabled versions."""

    def test_deletion_disabled_never_destroys(self, spec):
        """Without deletion enabled a long-disabled version is kept."""
        versions = [
            disabled("1", T0, disable_time=T0 + timedelta(days=2)),
            enabled("2", T0 + timedelta(days=30)),
        ]

        actions = evaluate_lifecycle(spec, versions, T0 + timedelta(days=59))

        assert all(a.action_type != ActionType.DESTROY_VERSION for a in actions)

    def test_destroyed_after_retention(self, spec):
        """A disabled version is destroyed once retention_period has passed."""
        disable_time = T0 + timedelta(days=32)
        versions = [
            disabled("1", T0, disable_time=disable_time),
            enabled("2", T0 + timedelta(days=30)),
        ]

        before = evaluate_lifecycle(
            spec, versions, disable_time + timedelta(days=6), deletion_enabled=True
        )
        at = evaluate_lifecycle(
            spec, versions, disable_time + timedelta(days=7), deletion_enabled=True
        )

        assert before == []
        assert at == [RotationAction.destroy("1")]

    def test_unknown_disable_time_is_kept(self, spec):
        """A disabled version with no known disable time is never destroyed."""
        versions = [disabled("1", T0), enabled("2", T0 + timedelta(days=30))]

        due = versions_to_destroy(spec, versions, T0 + timedelta(days=400))

        assert due == []

    def test_disable_times_fallback(self, spec):
        """Engine-recorded disable times are used when the store has none."""
        versions = [disabled("1", T0), enabled("2", T0 + timedelta(days=30))]
        recorded = {"1": T0 + timedelta(days=32)}

        due = versions_to_destroy(spec, versions, T0 + timedelta(days=39), recorded)

        assert [v.version_id for v in due] == ["1"]

    def test_store_disable_time_wins(self, spec):
        """A store-reported disable time takes precedence over the record."""
        versions = [disabled("1", T0, disable_time=T0 + timedelta(days=38))]
        recorded = {"1": T0 + timedelta(days=2)}

        due = versions_to_destroy(spec, versions, T0 + timedelta(days=40), recorded)

        assert due == []

    def test_destroyed_versions_never_targeted(self, spec):
        """No action ever targets a destroyed version."""
        versions = [
            destroyed("1", T0),
            enabled("2", T0 + timedelta(days=30)),
            enabled("3", T0 + timedelta(days=60)),
        ]

        actions = evaluate_lifecycle(
            spec, versions, T0 + timedelta(days=500), deletion_enabled=True
        )

        assert all(a.version_id != "1" for a in actions)

    def test_enabled_version_never_destroyed(self, spec):
        """Destruction only applies to disabled versions."""
        versions = [enabled("1", T0), enabled("2", T0 + timedelta(days=30))]

        actions = evaluate_lifecycle(
            spec, versions, T0 + timedelta(days=500), deletion_enabled=True
        )

        assert all(a.action_type != ActionType.DESTROY_VERSION for a in actions)


class TestOrdering:
    """Tests for action ordering and determinism."""

    def test_destroy_then_disable_then_create(self, spec):
        """Retirement actions come before the create."""
        versions = [
            disabled("1", T0, disable_time=T0 + timedelta(days=32)),
            enabled("2", T0 + timedelta(days=30)),
            enabled("3", T0 + timedelta(days=60)),
        ]
        now = T0 + timedelta(days=95)

        actions = evaluate_lifecycle(spec, versions, now, deletion_enabled=True)

        assert actions == [
            RotationAction.destroy("1"),
            RotationAction.disable("2"),
            RotationAction.create(),
        ]

    @pytest.mark.parametrize("order", [(0, 1, 2), (2, 1, 0), (1, 2, 0)])
    def test_input_order_does_not_matter(self, spec, order):
        """Versions may arrive in any order."""
        versions = [
            enabled("1", T0),
            enabled("2", T0 + timedelta(days=30)),
            enabled("3", T0 + timedelta(days=60)),
        ]
        shuffled = [versions[i] for i in order]
        now = T0 + timedelta(days=91)

        assert evaluate_lifecycle(spec, shuffled, now) == evaluate_lifecycle(spec, versions, now)

    def test_repeated_evaluation_is_identical(self, spec):
        """The policy is a pure function of its inputs."""
        versions = [enabled("1", T0), enabled("2", T0 + timedelta(days=30))]
        now = T0 + timedelta(days=61)

        first = evaluate_lifecycle(spec, versions, now)
        second = evaluate_lifecycle(spec, versions, now)

        assert first == second
        assert first == [RotationAction.disable("1"), RotationAction.create()]
