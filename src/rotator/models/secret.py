"""
Secret data models for the rotator.

This module defines SecretSpec (a declared secret to manage),
RotationConfig (an immutable snapshot of all declared secrets) and
SecretVersion (a version of a secret as reported by the store).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from rotator.errors import ConfigError
from rotator.models.duration import format_duration, parse_duration

DEFAULT_OVERLAP_PERIOD = timedelta(0)
DEFAULT_RETENTION_PERIOD = timedelta(days=7)

_SPEC_KEYS = {
    "name",
    "type",
    "rotation_period",
    "overlap_period",
    "retention_period",
    "params",
}


class VersionState(Enum):
    """Lifecycle state of a secret version."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    DESTROYED = "destroyed"

    @classmethod
    def from_string(cls, value: str) -> VersionState:
        """
        Create VersionState from string value.

        Args:
            value: String representation (case-insensitive)

        Returns:
            Matching VersionState enum value

        Raises:
            ValueError: If value is not a valid state
        """
        value_lower = value.lower()
        for state in cls:
            if state.value == value_lower:
                return state
        raise ValueError(f"Invalid version state: {value}")


@dataclass(frozen=True)
class SecretVersion:
    """
    A version of a secret as tracked by the store.

    Attributes:
        version_id: Opaque version identifier assigned by the store
        create_time: When the version was created
        state: Current lifecycle state
        disable_time: When the version was disabled, if the store reports it
    """

    version_id: str
    create_time: datetime
    state: VersionState = VersionState.ENABLED
    disable_time: datetime | None = None

    @property
    def is_enabled(self) -> bool:
        return self.state == VersionState.ENABLED

    @property
    def is_disabled(self) -> bool:
        return self.state == VersionState.DISABLED

    @property
    def is_destroyed(self) -> bool:
        return self.state == VersionState.DESTROYED

    def age(self, now: datetime) -> timedelta:
        """Time elapsed since the version was created."""
        return now - self.create_time

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "version_id": self.version_id,
            "create_time": self.create_time.isoformat(),
            "state": self.state.value,
            "disable_time": self.disable_time.isoformat() if self.disable_time else None,
        }


@dataclass(frozen=True)
class SecretSpec:
    """
    A declared secret to manage.

    Specs are immutable value objects identified by name. A changed
    declaration produces new SecretSpec instances; a live spec is never
    mutated.

    Attributes:
        name: Secret path in the store (e.g. projects/p/secrets/s)
        type: Provisioner type identifier
        rotation_period: Time between new version creations
        overlap_period: How long an older version stays enabled after
            it has been superseded, measured from its own creation
        retention_period: How long a disabled version is kept before
            it is destroyed (only when deletion is enabled)
        params: Provisioner-specific parameters
    """

    name: str
    type: str
    rotation_period: timedelta
    overlap_period: timedelta = DEFAULT_OVERLAP_PERIOD
    retention_period: timedelta = DEFAULT_RETENTION_PERIOD
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def validate(self) -> list[str]:
        """
        Check the spec for semantic problems.

        Returns:
            List of problem descriptions; empty when the spec is usable
        """
        problems = []
        if not self.name:
            problems.append("name must not be empty")
        if not self.type:
            problems.append("type must not be empty")
        if self.rotation_period <= timedelta(0):
            problems.append("rotation_period must be positive")
        if self.overlap_period < timedelta(0):
            problems.append("overlap_period must not be negative")
        if self.retention_period < timedelta(0):
            problems.append("retention_period must not be negative")
        return problems

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "type": self.type,
            "rotation_period": format_duration(self.rotation_period),
            "overlap_period": format_duration(self.overlap_period),
            "retention_period": format_duration(self.retention_period),
            "params": dict(self.params),
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        defaults: dict[str, Any] | None = None,
    ) -> SecretSpec:
        """
        Create from dictionary.

        Args:
            data: Spec declaration
            defaults: Fallback values for overlap_period and retention_period

        Raises:
            ConfigError: If the declaration is structurally invalid
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Secret spec must be a mapping, got {type(data).__name__}")

        unknown = set(data) - _SPEC_KEYS
        if unknown:
            raise ConfigError(
                f"Unknown keys in spec '{data.get('name', '?')}': {', '.join(sorted(unknown))}"
            )

        for required in ("name", "type", "rotation_period"):
            if required not in data:
                raise ConfigError(
                    f"Spec '{data.get('name', '?')}' is missing required key '{required}'"
                )

        for key in ("name", "type"):
            if not isinstance(data[key], str):
                raise ConfigError(
                    f"Spec '{data.get('name', '?')}': {key} must be a string, "
                    f"got {type(data[key]).__name__}"
                )

        defaults = defaults or {}
        name = data["name"]
        params = data.get("params") or {}
        if not isinstance(params, dict):
            raise ConfigError(f"Spec '{name}': params must be a mapping")

        try:
            return cls(
                name=name,
                type=data["type"],
                rotation_period=parse_duration(data["rotation_period"]),
                overlap_period=parse_duration(
                    data.get("overlap_period", defaults.get("overlap_period", DEFAULT_OVERLAP_PERIOD))
                ),
                retention_period=parse_duration(
                    data.get(
                        "retention_period",
                        defaults.get("retention_period", DEFAULT_RETENTION_PERIOD),
                    )
                ),
                params=params,
            )
        except ValueError as e:
            raise ConfigError(f"Spec '{name}': {e}") from e


@dataclass(frozen=True)
class RotationConfig:
    """
    Immutable snapshot of every secret the rotator manages.

    Attributes:
        specs: Declared secrets, in declaration order
        source: Where the declaration was loaded from
        loaded_at: When the snapshot was built
    """

    specs: tuple[SecretSpec, ...] = ()
    source: str = ""
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        object.__setattr__(self, "specs", tuple(self.specs))
        seen: set[str] = set()
        for spec in self.specs:
            if spec.name in seen:
                raise ConfigError(f"Duplicate secret name in config: {spec.name}")
            seen.add(spec.name)

    def __len__(self) -> int:
        return len(self.specs)

    def __iter__(self) -> Iterator[SecretSpec]:
        return iter(self.specs)

    def names(self) -> list[str]:
        return [spec.name for spec in self.specs]

    def get(self, name: str) -> SecretSpec | None:
        for spec in self.specs:
            if spec.name == name:
                return spec
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "source": self.source,
            "loaded_at": self.loaded_at.isoformat(),
            "specs": [spec.to_dict() for spec in self.specs],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, source: str = "") -> RotationConfig:
        """
        Create from a parsed declaration.

        An empty document yields an empty config.

        Raises:
            ConfigError: If the declaration is structurally invalid
        """
        if data is None:
            return cls(source=source)
        if not isinstance(data, dict):
            raise ConfigError("Rotation config must be a mapping at the top level")

        defaults = data.get("defaults") or {}
        if not isinstance(defaults, dict):
            raise ConfigError("'defaults' must be a mapping")

        raw_specs = data.get("specs") or []
        if not isinstance(raw_specs, list):
            raise ConfigError("'specs' must be a list")

        return cls(
            specs=tuple(SecretSpec.from_dict(item, defaults) for item in raw_specs),
            source=source,
        )
