"""Validation Execution Context

Validators receive a ValidationContext carrying an Environment: an opaque
key -> string lookup for runtime configuration such as the timezone used by
temporal constraints.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Protocol, runtime_checkable

from vouch.config import Settings, get_settings

from .validators import TIMEZONE_PROPERTY


@runtime_checkable
class Environment(Protocol):
    """Configuration lookup consulted by individual validators."""

    def get_property(self, key: str, default: str | None = None) -> str | None: ...


@dataclass(frozen=True, slots=True)
class MapEnvironment:
    """Environment backed by a fixed mapping."""
    properties: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    def get_property(self, key: str, default: str | None = None) -> str | None:
        return self.properties.get(key, default)


class SettingsEnvironment:
    """Environment serving `vouch.*` properties from Settings."""

    __slots__ = ("_settings",)

    def __init__(self, settings: Settings | None = None):
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def get_property(self, key: str, default: str | None = None) -> str | None:
        if key == TIMEZONE_PROPERTY:
            return self.settings.TIMEZONE or default
        return default


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Per-call context handed to every validator."""
    environment: Environment

    def get_property(self, key: str, default: str | None = None) -> str | None:
        return self.environment.get_property(key, default)
