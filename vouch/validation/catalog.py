"""Constraint Catalog

Resolves the markers attached to an element into ValidatorBindings: each
pairs the ConstraintDescriptor of one constraint instance with the
validators that evaluate it.

Resolution walks two levels of indirection. A marker whose class is bound
with @constraint contributes a binding; a marker whose class carries
@composed_of markers contributes whatever those markers resolve to,
recursively. Composed markers that keep the default group inherit the
composite's groups and payloads, so `Username(groups=("signup",))` scopes
every constraint it is made of.

Resolution is a pure function of the markers and is cached. A marker that
cannot be inspected is skipped with a warning; the rest still resolve.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Hashable

from vouch.logging import metadata_logger

from .groups import Group
from .markers import (
    ConstraintMarker,
    Marker,
    Valid,
    Validated,
    bound_validators,
    composed_markers,
    marker_attributes,
    with_groups,
)
from .metadata import ElementRef
from .validators import ConstraintValidator

log = metadata_logger()


def _freeze(value: Any) -> Hashable:
    if isinstance(value, dict):
        return tuple(sorted((str(k), _freeze(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, set):
        return frozenset(_freeze(v) for v in value)
    return value


@dataclass(frozen=True, slots=True)
class ConstraintDescriptor:
    """Value object identifying one declared constraint instance."""
    kind: type
    message_template: str
    groups: frozenset[Group]
    payloads: frozenset[Hashable]
    attributes: tuple[tuple[str, Hashable], ...] = ()
    marker: ConstraintMarker | None = field(default=None, compare=False, repr=False)

    @classmethod
    def of(cls, marker: ConstraintMarker) -> ConstraintDescriptor:
        attrs = marker_attributes(marker)
        return cls(
            kind=type(marker),
            message_template=marker.message,
            groups=marker.groups,
            payloads=marker.payloads,
            attributes=tuple(sorted((k, _freeze(v)) for k, v in attrs.items())),
            marker=marker,
        )

    @property
    def name(self) -> str:
        return self.kind.__name__

    @property
    def parameters(self) -> dict[str, Any]:
        """Named parameters of the underlying marker, for message interpolation."""
        if self.marker is not None:
            return marker_attributes(self.marker)
        return dict(self.attributes)

    def __str__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self.attributes)
        return f"{self.name}({params})"


@dataclass(frozen=True, slots=True)
class ValidatorBinding:
    """A constraint descriptor and the validators that evaluate it."""
    descriptor: ConstraintDescriptor
    validators: tuple[ConstraintValidator, ...]

    @property
    def marker(self) -> ConstraintMarker | None:
        return self.descriptor.marker


class ConstraintCatalog:
    """Resolves elements to their (descriptor, validators) bindings."""

    def __init__(self, max_depth: int = 16, cache_size: int = 1024):
        self.max_depth = max_depth
        self._cached = lru_cache(maxsize=cache_size)(self._resolve_markers)

    def resolve(self, element: ElementRef) -> tuple[ValidatorBinding, ...]:
        return self.resolve_markers(element.markers)

    def resolve_markers(self, markers: tuple[Marker, ...]) -> tuple[ValidatorBinding, ...]:
        try:
            return self._cached(markers)
        except TypeError:  # unhashable marker: resolve without caching
            return self._resolve_markers(markers)

    def clear_cache(self) -> None:
        self._cached.cache_clear()

    def _resolve_markers(self, markers: tuple[Marker, ...]) -> tuple[ValidatorBinding, ...]:
        bindings: list[ValidatorBinding] = []
        for marker in markers:
            if isinstance(marker, ConstraintMarker):
                self._collect(marker, bindings, path=(), inherited=None)
        return tuple(bindings)

    def _collect(self, marker: ConstraintMarker, out: list[ValidatorBinding],
                 path: tuple[type, ...], inherited: ConstraintMarker | None) -> None:
        marker_cls = type(marker)
        if len(path) > self.max_depth:
            log.warning("constraint_depth_exceeded", marker=marker_cls.__qualname__, depth=len(path))
            return
        if marker_cls in path:
            log.warning("constraint_cycle_skipped", marker=marker_cls.__qualname__,
                path=[c.__qualname__ for c in path])
            return

        try:
            if inherited is not None and marker.has_default_groups and not inherited.has_default_groups:
                marker = with_groups(marker, inherited.groups, inherited.payloads)
            validators = bound_validators(marker_cls)
            for validator in validators:
                if not isinstance(validator, ConstraintValidator):
                    raise TypeError(f"{validator!r} is not a ConstraintValidator")
            binding = ValidatorBinding(ConstraintDescriptor.of(marker), validators) if validators else None
            composed = composed_markers(marker_cls)
        except Exception as e:
            log.warning("constraint_marker_skipped", marker=marker_cls.__qualname__, error=str(e))
            return

        if binding is not None:
            out.append(binding)
        for meta in composed:
            if isinstance(meta, ConstraintMarker):
                self._collect(meta, out, path=path + (marker_cls,), inherited=marker)

    # -- marker queries ----------------------------------------------------

    @staticmethod
    def has_markers(markers: tuple[Marker, ...]) -> bool:
        """True when any validation marker (constraint, Valid, Validated) is present."""
        return any(isinstance(m, Marker) for m in markers)

    @staticmethod
    def is_cascaded(element: ElementRef) -> bool:
        return any(isinstance(m, Valid) for m in element.markers)

    @staticmethod
    def is_validated(markers: tuple[Marker, ...]) -> bool:
        return any(isinstance(m, Validated) for m in markers)
