"""
Pytest configuration and fixtures for rotator tests.

This module provides common fixtures used across unit and integration tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

import pytest

from rotator.config import ConfigAgent
from rotator.engine import SecretRotator
from rotator.errors import ProvisionerError
from rotator.models import RotationConfig, SecretSpec, SecretVersion
from rotator.provisioners import ProvisionerRegistry, SecretProvisioner
from rotator.store import InMemorySecretStore


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class StaticProvisioner(SecretProvisioner):
    """Provisioner returning numbered payloads, optionally failing."""

    def __init__(
        self,
        secret_type: str = "static",
        deletion: bool = True,
        fail: bool = False,
    ):
        self._type = secret_type
        self._deletion = deletion
        self.fail = fail
        self.calls: list[tuple[str, int]] = []

    def type(self) -> str:
        return self._type

    def supports_deletion(self) -> bool:
        return self._deletion

    def generate(self, spec: SecretSpec, existing_versions: Sequence[SecretVersion]) -> bytes:
        self.calls.append((spec.name, len(existing_versions)))
        if self.fail:
            raise ProvisionerError(f"generation failed for {spec.name}")
        return f"{spec.name}-{len(self.calls)}".encode()


def make_spec(
    name: str = "projects/p/secrets/k1",
    secret_type: str = "static",
    rotation_days: float = 30,
    overlap_days: float = 2,
    retention_days: float = 7,
    **params: Any,
) -> SecretSpec:
    return SecretSpec(
        name=name,
        type=secret_type,
        rotation_period=timedelta(days=rotation_days),
        overlap_period=timedelta(days=overlap_days),
        retention_period=timedelta(days=retention_days),
        params=params,
    )


@pytest.fixture
def spec_factory():
    """Return the make_spec factory."""
    return make_spec


@pytest.fixture
def provisioner_factory():
    """Return the StaticProvisioner class for custom instances."""
    return StaticProvisioner


@pytest.fixture
def clock() -> FakeClock:
    """Return a fake clock starting at T0."""
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemorySecretStore:
    """Return an in-memory store driven by the fake clock."""
    return InMemorySecretStore(clock=clock)


@pytest.fixture
def provisioner() -> StaticProvisioner:
    """Return a static provisioner supporting deletion."""
    return StaticProvisioner()


@pytest.fixture
def spec() -> SecretSpec:
    """Return the k1 spec: rotate 30d, overlap 2d, retain 7d."""
    return make_spec()


@pytest.fixture
def agent(spec) -> ConfigAgent:
    """Return a config agent publishing the k1 spec."""
    return ConfigAgent(initial=RotationConfig(specs=(spec,), source="test"))


@pytest.fixture
def make_rotator(store, agent, provisioner, clock):
    """Return a factory for rotators wired to the shared fixtures."""

    def factory(
        enable_deletion: bool = False,
        provisioners: list[SecretProvisioner] | None = None,
        max_workers: int = 1,
        **kwargs: Any,
    ) -> SecretRotator:
        registry = ProvisionerRegistry(provisioners or [provisioner]).freeze()
        return SecretRotator(
            store=kwargs.pop("store", store),
            agent=kwargs.pop("agent", agent),
            provisioners=registry,
            period=kwargs.pop("period", timedelta(seconds=60)),
            enable_deletion=enable_deletion,
            max_workers=max_workers,
            clock=clock,
            **kwargs,
        )

    return factory
