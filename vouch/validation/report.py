"""Violations and Reports

A Violation records one constraint failure; a Report is the immutable,
order-irrelevant set of violations produced by one validation call.
Both compare and hash structurally, so two runs over equal input produce
equal Reports.

Report format (to_dict):
{
    "valid": false,
    "violation_count": 1,
    "violations": [
        {
            "path": "username",
            "message": "length must be between 3 and 20",
            "constraint": "Size",
            "value": "ab",
            "source": "field",
            "groups": ["default"]
        }
    ]
}
"""
from __future__ import annotations

import re
from collections.abc import Mapping, Set
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, Iterator

from vouch.errors import AppError, constraint_violation

from .catalog import ConstraintDescriptor, ValidatorBinding
from .groups import Group
from .metadata import ElementRef

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def _stable_hash(value: Any) -> int:
    """Hash that agrees with == for common unhashable values."""
    try:
        return hash(value)
    except TypeError:
        pass
    if isinstance(value, Mapping):
        return hash(frozenset((k, _stable_hash(v)) for k, v in value.items()))
    if isinstance(value, Set):
        return hash(frozenset(_stable_hash(v) for v in value))
    if isinstance(value, (list, tuple)):
        return hash(tuple(_stable_hash(v) for v in value))
    return hash(type(value))


@dataclass(frozen=True, slots=True)
class Violation:
    """One recorded constraint failure."""
    property_path: str
    invalid_value: Any
    source: ElementRef
    message: str
    constraint: ConstraintDescriptor
    groups: frozenset[Group]
    payloads: frozenset[Hashable]

    def __hash__(self) -> int:
        return hash((self.property_path, _stable_hash(self.invalid_value), self.source, self.message,
            self.constraint, self.groups, self.payloads))

    @property
    def sort_key(self) -> tuple[str, str, str]:
        return (self.property_path, self.message, self.constraint.name)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses and logs."""
        return {
            "path": self.property_path,
            "message": self.message,
            "constraint": self.constraint.name,
            "value": self.invalid_value,
            "source": self.source.kind.value,
            "groups": sorted(g.name for g in self.groups),
        }


@dataclass(frozen=True, slots=True)
class Report:
    """Immutable outcome of one validation call. Valid iff it holds no violations."""
    violations: frozenset[Violation] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "violations", frozenset(self.violations))

    @classmethod
    def empty(cls) -> Report:
        return cls()

    def is_valid(self) -> bool:
        return not self.violations

    def violations_for(self, property_path: str) -> frozenset[Violation]:
        return frozenset(v for v in self.violations if v.property_path == property_path)

    def first_violation_message(self) -> str | None:
        ordered = self.ordered()
        return ordered[0].message if ordered else None

    def ordered(self) -> list[Violation]:
        """Violations sorted by property path, then message."""
        return sorted(self.violations, key=lambda v: v.sort_key)

    def merge(self, *others: Report) -> Report:
        merged = set(self.violations)
        for other in others:
            merged |= other.violations
        return Report(frozenset(merged))

    def __iter__(self) -> Iterator[Violation]:
        return iter(self.ordered())

    def __len__(self) -> int:
        return len(self.violations)

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.is_valid(), "violation_count": len(self.violations),
            "violations": [v.to_dict() for v in self.ordered()]}

    def to_app_error(self, message: str = "Validation failed", *, origin: str = "") -> AppError:
        """Convert to AppError for callers that propagate a single error value."""
        ordered = self.ordered()
        if len(ordered) == 1:
            v = ordered[0]
            message = f"{v.property_path}: {v.message}"
        return constraint_violation(message, [v.to_dict() for v in ordered], origin=origin).unwrap_err()


class ViolationFactory:
    """Builds Violations with interpolated messages."""

    @staticmethod
    def interpolate(template: str, parameters: Mapping[str, Any]) -> str:
        """Replace `{name}` with str(parameters[name]); unknown placeholders stay verbatim."""
        def _substitute(match: re.Match) -> str:
            name = match.group(1)
            return str(parameters[name]) if name in parameters else match.group(0)
        return _PLACEHOLDER.sub(_substitute, template)

    def build(
        self,
        source: ElementRef,
        binding: ValidatorBinding,
        value: Any,
        active_groups: frozenset[Group],
        path: str | None = None,
    ) -> Violation:
        descriptor = binding.descriptor
        return Violation(
            property_path=path or source.path,
            invalid_value=value,
            source=source,
            message=self.interpolate(descriptor.message_template, descriptor.parameters),
            constraint=descriptor,
            groups=frozenset(active_groups),
            payloads=descriptor.payloads,
        )


def merge_reports(reports: Iterable[Report]) -> Report:
    return Report().merge(*reports)
