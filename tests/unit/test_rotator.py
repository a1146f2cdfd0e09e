"""
Unit tests for the SecretRotator engine.

Tests cover:
- Single passes against the in-memory store
- Per-secret failure isolation (config, store and provisioner errors)
- Deletion gating by global flag and provisioner support
- Config snapshotting, concurrency and the periodic loop
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from rotator.config import ConfigAgent
from rotator.engine import SecretRotator
from rotator.errors import StoreError
from rotator.models import (
    FailureKind,
    RotationAction,
    RotationConfig,
    SecretVersion,
    VersionState,
)
from rotator.store import InMemorySecretStore


class FailingStore(InMemorySecretStore):
    """In-memory store that fails selected operations."""

    def __init__(self, clock, fail_list=(), fail_disable=False):
        super().__init__(clock=clock)
        self.fail_list = set(fail_list)
        self.fail_disable = fail_disable

    def list_versions(self, secret_name):
        if secret_name in self.fail_list:
            raise StoreError(f"unavailable: {secret_name}", secret_name)
        return super().list_versions(secret_name)

    def disable_version(self, secret_name, version_id):
        if self.fail_disable:
            raise StoreError("disable rejected", secret_name)
        super().disable_version(secret_name, version_id)


class NoDisableTimeStore(InMemorySecretStore):
    """In-memory store that, like Secret Manager, hides disable times."""

    def list_versions(self, secret_name):
        return [replace(v, disable_time=None) for v in super().list_versions(secret_name)]


def states(store, name):
    return {v.version_id: v.state for v in store.list_versions(name)}


class TestRunOnce:
    """Tests for single reconciliation passes."""

    def test_first_pass_creates_version(self, make_rotator, store, spec):
        """A secret with no versions gets exactly one new version."""
        result = make_rotator().run_once()

        outcome = result[spec.name]
        assert outcome.success
        assert outcome.actions == [RotationAction.create()]
        assert outcome.applied == [RotationAction.create()]
        assert states(store, spec.name) == {"1": VersionState.ENABLED}

    def test_sole_version_rotated_not_disabled(self, make_rotator, store, clock, spec):
        """At t0+30d+1s the t0 version triggers a create and stays enabled."""
        rotator = make_rotator()
        rotator.run_once()

        clock.advance(days=30, seconds=1)
        result = rotator.run_once()

        assert result[spec.name].actions == [RotationAction.create()]
        assert states(store, spec.name) == {
            "1": VersionState.ENABLED,
            "2": VersionState.ENABLED,
        }

    def test_superseded_version_disabled_on_later_pass(self, make_rotator, store, clock, spec):
        """The old version is disabled on the pass after a newer one exists."""
        rotator = make_rotator()
        rotator.run_once()
        clock.advance(days=30)
        rotator.run_once()

        clock.advance(days=3)
        result = rotator.run_once()

        assert result[spec.name].actions == [RotationAction.disable("1")]
        assert states(store, spec.name) == {
            "1": VersionState.DISABLED,
            "2": VersionState.ENABLED,
        }

    def test_nothing_due(self, make_rotator, clock, spec):
        """A fresh secret produces no actions."""
        rotator = make_rotator()
        rotator.run_once()
        clock.advance(days=1)

        result = rotator.run_once()

        assert result[spec.name].success
        assert result[spec.name].actions == []

    def test_repeated_runs_identical_without_store_change(self, agent, clock, spec, provisioner):
        """Two passes over unchanged store state plan the same actions."""
        store = MagicMock()
        store.list_versions.return_value = [
            SecretVersion("1", clock.now - timedelta(days=40)),
            SecretVersion("2", clock.now - timedelta(days=31)),
        ]
        store.create_version.return_value = SecretVersion("3", clock.now)
        rotator = SecretRotator(store, agent, {"static": provisioner}, clock=clock)

        first = rotator.run_once()
        second = rotator.run_once()

        assert first.actions_by_secret() == second.actions_by_secret()
        assert first[spec.name].actions == [RotationAction.disable("1"), RotationAction.create()]

    def test_plan_does_not_apply(self, make_rotator, store, provisioner, spec):
        """plan() reports actions without touching the store or provisioner."""
        result = make_rotator().plan()

        assert result[spec.name].actions == [RotationAction.create()]
        assert result[spec.name].applied == []
        assert store.list_versions(spec.name) == []
        assert provisioner.calls == []

    def test_provisioner_receives_existing_versions(self, make_rotator, clock, provisioner, spec):
        """generate() sees the versions observed at the start of the secret's pass."""
        rotator = make_rotator()
        rotator.run_once()
        clock.advance(days=31)

        rotator.run_once()

        assert provisioner.calls == [(spec.name, 0), (spec.name, 1)]

    def test_accepts_plain_mapping(self, store, agent, provisioner, clock, spec):
        """A type -> provisioner mapping is turned into a registry."""
        rotator = SecretRotator(store, agent, {"static": provisioner}, clock=clock)

        assert rotator.run_once()[spec.name].success

    def test_callbacks_receive_result(self, make_rotator):
        """Registered callbacks are called with each pass result."""
        rotator = make_rotator()
        seen = []
        rotator.add_callback(seen.append)

        result = rotator.run_once()

        assert seen == [result]
        assert rotator.last_result is result

    def test_invalid_arguments(self, store, agent, provisioner):
        with pytest.raises(ValueError):
            SecretRotator(store, agent, {"static": provisioner}, period=timedelta(0))
        with pytest.raises(ValueError):
            SecretRotator(store, agent, {"static": provisioner}, max_workers=0)


class TestFailureIsolation:
    """Tests that failures stay scoped to one secret."""

    def test_missing_provisioner_isolated(self, make_rotator, store, spec_factory, clock):
        """A secret with an unknown type fails while others rotate."""
        good = spec_factory(name="projects/p/secrets/good")
        bad = spec_factory(name="projects/p/secrets/bad", secret_type="unknown")
        agent = ConfigAgent(initial=RotationConfig(specs=(bad, good)))

        result = make_rotator(agent=agent).run_once()

        assert result[bad.name].error_kind == FailureKind.MISSING_PROVISIONER
        assert "unknown" in result[bad.name].error
        assert result[good.name].success
        assert len(store.list_versions(good.name)) == 1
        assert not result.success

    def test_invalid_spec_isolated(self, make_rotator, spec_factory):
        """A spec with a non-positive rotation period is skipped."""
        bad = spec_factory(name="projects/p/secrets/bad", rotation_days=0)
        good = spec_factory(name="projects/p/secrets/good")
        agent = ConfigAgent(initial=RotationConfig(specs=(bad, good)))

        result = make_rotator(agent=agent).run_once()

        assert result[bad.name].error_kind == FailureKind.INVALID_SPEC
        assert result[good.name].success

    def test_list_failure_isolated(self, make_rotator, clock, spec_factory):
        """A store failure listing one secret does not affect others."""
        bad = spec_factory(name="projects/p/secrets/bad")
        good = spec_factory(name="projects/p/secrets/good")
        agent = ConfigAgent(initial=RotationConfig(specs=(bad, good)))
        store = FailingStore(clock, fail_list=[bad.name])

        result = make_rotator(agent=agent, store=store).run_once()

        assert result[bad.name].error_kind == FailureKind.STORE_ERROR
        assert result[good.name].applied == [RotationAction.create()]

    def test_store_failure_aborts_remaining_actions(self, make_rotator, clock, provisioner, spec):
        """A failed disable stops the rest of that secret's actions."""
        store = FailingStore(clock, fail_disable=True)
        store.seed_version(spec.name, clock.now - timedelta(days=65))
        store.seed_version(spec.name, clock.now - timedelta(days=35))

        result = make_rotator(store=store).run_once()

        outcome = result[spec.name]
        assert outcome.actions == [RotationAction.disable("1"), RotationAction.create()]
        assert outcome.applied == []
        assert outcome.error_kind == FailureKind.STORE_ERROR
        assert provisioner.calls == []

    def test_provisioner_failure_keeps_retirement_actions(
        self, make_rotator, store, clock, provisioner_factory, spec
    ):
        """A generation failure fails only the create; the disable still lands."""
        store.seed_version(spec.name, clock.now - timedelta(days=65))
        store.seed_version(spec.name, clock.now - timedelta(days=35))
        failing = provisioner_factory(fail=True)

        result = make_rotator(provisioners=[failing]).run_once()

        outcome = result[spec.name]
        assert outcome.applied == [RotationAction.disable("1")]
        assert outcome.error_kind == FailureKind.PROVISIONER_ERROR
        assert len(store.list_versions(spec.name)) == 2

    def test_unexpected_exception_isolated(self, agent, provisioner, clock, spec):
        """Errors outside the rotator's hierarchy are still contained."""
        store = MagicMock()
        store.list_versions.side_effect = RuntimeError("boom")
        rotator = SecretRotator(store, agent, {"static": provisioner}, clock=clock)

        result = rotator.run_once()

        assert result[spec.name].error_kind == FailureKind.UNEXPECTED
        assert "boom" in result[spec.name].error


class TestDeletion:
    """Tests for destruction of retired versions."""

    def _retire_first_version(self, rotator, clock):
        rotator.run_once()
        clock.advance(days=30)
        rotator.run_once()
        clock.advance(days=3)
        rotator.run_once()

    def test_destroyed_after_retention(self, make_rotator, store, clock, spec):
        """A disabled version is destroyed once the retention period passes."""
        rotator = make_rotator(enable_deletion=True)
        self._retire_first_version(rotator, clock)

        clock.advance(days=6)
        assert rotator.run_once()[spec.name].actions == []

        clock.advance(days=1)
        result = rotator.run_once()

        assert result[spec.name].actions == [RotationAction.destroy("1")]
        assert states(store, spec.name)["1"] == VersionState.DESTROYED

    def test_global_flag_off_never_destroys(self, make_rotator, store, clock, spec):
        rotator = make_rotator(enable_deletion=False)
        self._retire_first_version(rotator, clock)

        clock.advance(days=100)
        rotator.run_once()

        assert states(store, spec.name)["1"] == VersionState.DISABLED

    def test_provisioner_without_deletion_never_destroys(
        self, make_rotator, store, clock, provisioner_factory, spec
    ):
        """Deletion is skipped when the provisioner does not support it."""
        rotator = make_rotator(
            enable_deletion=True,
            provisioners=[provisioner_factory(deletion=False)],
        )
        self._retire_first_version(rotator, clock)

        clock.advance(days=100)
        rotator.run_once()

        assert states(store, spec.name)["1"] == VersionState.DISABLED

    def test_engine_records_disable_time(self, make_rotator, clock, spec):
        """Without store disable times the engine's own record drives retention."""
        store = NoDisableTimeStore(clock=clock)
        rotator = make_rotator(enable_deletion=True, store=store)
        self._retire_first_version(rotator, clock)

        clock.advance(days=7)
        result = rotator.run_once()

        assert result[spec.name].applied == [RotationAction.destroy("1")]

    def test_externally_disabled_version_waits_full_retention(self, make_rotator, clock, spec):
        """A version disabled outside the engine is timed from first sighting."""
        store = NoDisableTimeStore(clock=clock)
        store.seed_version(
            spec.name, clock.now - timedelta(days=90), state=VersionState.DISABLED
        )
        store.seed_version(spec.name, clock.now - timedelta(days=1))
        rotator = make_rotator(enable_deletion=True, store=store)

        assert rotator.run_once()[spec.name].actions == []

        clock.advance(days=7)
        assert rotator.run_once()[spec.name].actions == [RotationAction.destroy("1")]


class TestPassMechanics:
    """Tests for snapshotting, concurrency and the loop."""

    def test_config_snapshot_taken_once_per_pass(
        self, store, clock, spec, spec_factory, provisioner_factory
    ):
        """A config swap during a pass only affects the next pass."""
        agent = ConfigAgent(initial=RotationConfig(specs=(spec,)))
        added = spec_factory(name="projects/p/secrets/added")

        class SwappingProvisioner(provisioner_factory):
            def generate(self, s, versions):
                agent.set(RotationConfig(specs=(spec, added)))
                return super().generate(s, versions)

        rotator = SecretRotator(store, agent, {"static": SwappingProvisioner()}, clock=clock)

        first = rotator.run_once()
        second = rotator.run_once()

        assert list(first.outcomes) == [spec.name]
        assert set(second.outcomes) == {spec.name, added.name}

    def test_concurrent_workers_process_every_secret(self, make_rotator, store, spec_factory):
        specs = tuple(spec_factory(name=f"projects/p/secrets/s{i}") for i in range(8))
        agent = ConfigAgent(initial=RotationConfig(specs=specs))

        result = make_rotator(agent=agent, max_workers=4).run_once()

        assert result.success
        assert len(result) == 8
        for s in specs:
            assert len(store.list_versions(s.name)) == 1

    def test_empty_config(self, make_rotator):
        agent = ConfigAgent()

        result = make_rotator(agent=agent).run_once()

        assert len(result) == 0
        assert result.success

    def test_start_stops_after_signal(self, make_rotator, spec):
        """start() returns once the stop event is set after a pass."""
        rotator = make_rotator(period=timedelta(milliseconds=10))
        stop = threading.Event()
        passes = []

        def on_pass(result):
            passes.append(result)
            if len(passes) == 2:
                stop.set()

        rotator.add_callback(on_pass)
        rotator.start(stop)

        assert len(passes) == 2
        assert rotator.get_status()["pass_count"] == 2

    def test_start_returns_immediately_when_already_stopped(self, make_rotator):
        rotator = make_rotator()
        stop = threading.Event()
        stop.set()

        rotator.start(stop)

        assert rotator.last_result is None

    def test_tick_skipped_while_pass_running(self, make_rotator):
        """A tick never starts a second concurrent pass."""
        rotator = make_rotator()

        with rotator._pass_lock:
            assert rotator._tick() is None

        assert rotator.get_status()["skipped_ticks"] == 1
        assert rotator._tick() is not None
