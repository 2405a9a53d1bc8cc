"""Validation Engine

Evaluates the constraints declared on an object's fields, cascading into
nested objects and collections marked Valid, and aggregates every failure
into one Report.

Usage:
    engine = ValidationEngine()
    report = engine.validate(user)
    report = engine.validate(user, groups=("update",))
    report = engine.validate_property(user, name="email")

Nested violations carry fully qualified paths: `address.street`,
`items[0].sku`, `labels[en].text`, `tags[].name` (sets have no stable
index).
"""
from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Iterable

from vouch.config import Settings, get_settings
from vouch.logging import engine_logger

from .catalog import ConstraintCatalog
from .context import Environment, SettingsEnvironment, ValidationContext
from .errors import CascadeDepthError, UnknownPropertyError
from .groups import Group, GroupLike, intersects
from .markers import Marker
from .metadata import ElementRef, MetadataIndex, declared_class
from .report import Report, Violation, ViolationFactory
from .resolver import GroupResolver

log = engine_logger()

# Values that never have validatable fields.
_LEAF_TYPES = (str, bytes, bytearray, int, float, complex, bool)


def _join(prefix: str, segment: str) -> str:
    if not prefix:
        return segment
    if segment.startswith("["):
        return f"{prefix}{segment}"
    return f"{prefix}.{segment}"


@dataclass
class _Walk:
    """State of one validation call: accumulated violations and the cascade path."""
    engine: ValidationEngine
    context: ValidationContext
    violations: list[Violation] = field(default_factory=list)
    ancestors: set[int] = field(default_factory=set)

    def visit_object(self, target: Any, cls: type, override: Any, prefix: str, depth: int) -> None:
        for element in self.engine.index.fields_of(cls):
            self.visit_field(target, element, override, prefix, depth)

    def visit_field(self, target: Any, element: ElementRef, override: Any, prefix: str, depth: int) -> None:
        value = element.value_of(target)
        source = self.engine.index.type_markers(declared_class(element.declared_type))
        active = self.engine.resolver.active_groups(element, source, override)
        path = _join(prefix, element.path)
        self.visit_element(element, value, active, path, cascade=self.engine.catalog.is_cascaded(element), depth=depth)

    def visit_element(self, element: ElementRef, value: Any, active: frozenset[Group], path: str,
                *, cascade: bool, depth: int) -> None:
        if cascade and value is not None:
            self.cascade(value, active, path, depth + 1)
        self.check_constraints(element, value, active, path)

    def check_constraints(self, element: ElementRef, value: Any, active: frozenset[Group], path: str) -> None:
        for binding in self.engine.catalog.resolve(element):
            if not intersects(binding.descriptor.groups, active):
                continue
            for validator in binding.validators:
                if not validator.is_valid(value, binding.marker, self.context):
                    self.violations.append(self.engine.factory.build(element, binding, value, active, path))
                    break

    def cascade(self, value: Any, groups: frozenset[Group], path: str, depth: int) -> None:
        if isinstance(value, _LEAF_TYPES):
            return
        key = id(value)
        if key in self.ancestors:
            log.debug("cascade_cycle_skipped", path=path, type=type(value).__qualname__)
            return
        limit = self.engine.settings.MAX_CASCADE_DEPTH
        if depth > limit:
            log.warning("cascade_depth_exceeded", path=path, limit=limit)
            raise CascadeDepthError(path, limit)

        self.ancestors.add(key)
        try:
            if isinstance(value, Mapping):
                for k, item in value.items():
                    if item is not None:
                        self.cascade(item, groups, f"{path}[{k}]", depth + 1)
            elif isinstance(value, Sequence):
                for i, item in enumerate(value):
                    if item is not None:
                        self.cascade(item, groups, f"{path}[{i}]", depth + 1)
            elif isinstance(value, Collection):
                for item in value:
                    if item is not None:
                        self.cascade(item, groups, f"{path}[]", depth + 1)
            else:
                self.visit_object(value, type(value), groups, path, depth)
        finally:
            self.ancestors.discard(key)


class ValidationEngine:
    """Object, property and element validation over declared constraints."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        index: MetadataIndex | None = None,
        catalog: ConstraintCatalog | None = None,
        resolver: GroupResolver | None = None,
        factory: ViolationFactory | None = None,
        environment: Environment | None = None,
    ):
        self.settings = settings or get_settings()
        self.index = index or MetadataIndex(cache_size=self.settings.METADATA_CACHE_SIZE)
        self.catalog = catalog or ConstraintCatalog(max_depth=self.settings.MAX_MARKER_DEPTH,
            cache_size=self.settings.METADATA_CACHE_SIZE)
        self.resolver = resolver or GroupResolver()
        self.factory = factory or ViolationFactory()
        self.environment = environment or SettingsEnvironment(self.settings)

    def create_context(self) -> ValidationContext:
        return ValidationContext(self.environment)

    def clear_caches(self) -> None:
        self.index.clear_cache()
        self.catalog.clear_cache()

    def validate(
        self,
        target: Any,
        type_info: type | None = None,
        groups: Iterable[GroupLike] | GroupLike | None = None,
    ) -> Report:
        """Validate every field of `target`, cascading where fields are marked Valid."""
        if target is None:
            return Report.empty()
        cls = type_info or type(target)
        walk = _Walk(self, self.create_context())
        walk.ancestors.add(id(target))
        walk.visit_object(target, cls, self._override(groups), "", 0)
        return self._finish(walk, cls.__qualname__)

    def validate_property(
        self,
        target: Any,
        type_info: type | None = None,
        name: str | None = None,
        groups: Iterable[GroupLike] | GroupLike | None = None,
    ) -> Report:
        """Validate one named field of `target`.

        An unknown name yields an empty Report, or UnknownPropertyError when
        VOUCH_STRICT_PROPERTIES is enabled.
        """
        if name is None:
            raise TypeError("validate_property() requires a property name")
        if target is None:
            return Report.empty()
        cls = type_info or type(target)
        element = self.index.field_named(cls, name)
        if element is None:
            if self.settings.STRICT_PROPERTIES:
                raise UnknownPropertyError(cls.__qualname__, name)
            log.warning("unknown_property", type=cls.__qualname__, property=name)
            return Report.empty()

        walk = _Walk(self, self.create_context())
        walk.ancestors.add(id(target))
        walk.visit_field(target, element, self._override(groups), "", 0)
        return self._finish(walk, cls.__qualname__)

    def validate_element(
        self,
        element: ElementRef,
        value: Any,
        *,
        source_markers: tuple[Marker, ...] = (),
        groups: Iterable[GroupLike] | GroupLike | None = None,
        cascade: bool | None = None,
    ) -> Report:
        """Validate one value against the markers of a parameter or return slot."""
        active = self.resolver.active_groups(element, source_markers, self._override(groups))
        if cascade is None:
            cascade = self.catalog.is_cascaded(element)
        walk = _Walk(self, self.create_context())
        walk.visit_element(element, value, active, element.path, cascade=cascade, depth=0)
        return Report(frozenset(walk.violations))

    @staticmethod
    def _override(groups: Any) -> Any:
        return None if groups is None else GroupResolver.explicit(groups)

    @staticmethod
    def _finish(walk: _Walk, type_name: str) -> Report:
        report = Report(frozenset(walk.violations))
        log.debug("validation_completed", type=type_name, violation_count=len(report))
        return report
