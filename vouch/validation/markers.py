"""Declarative Constraint Markers

Markers are immutable metadata objects attached to fields, parameters and
return slots, usually through `typing.Annotated`:

    @dataclass
    class SignUp:
        username: Annotated[str, NotBlank(), Size(3, 20)]
        email: Annotated[str | None, Email()]
        address: Annotated[Address, Valid()]

Three kinds of marker class exist:

- ConstraintMarker subclasses are *validation-participating*: they carry a
  message template, groups and payloads.
- Classes decorated with @constraint(...) are *validator-binding*: the
  decorator records the validators that evaluate them.
- Classes decorated with @composed_of(...) carry markers on the class
  itself, which makes every instance a composite of those markers:

    @composed_of(NotBlank(), Size(3, 20), Pattern(r"^[a-z0-9_]+$"))
    @dataclass(frozen=True, slots=True)
    class Username(ConstraintMarker):
        message: str = field(default="invalid username", kw_only=True)

Valid requests cascading into the element's value; Validated declares the
groups a type or callable is validated with.
"""
from __future__ import annotations

import dataclasses
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Iterable, TypeVar

from .groups import DEFAULT_GROUP, Group, GroupLike, as_groups
from .validators import (
    ConstraintValidator,
    EmailValidator,
    InFutureValidator,
    InPastValidator,
    MaxValidator,
    MinValidator,
    NegativeValidator,
    NotBlankValidator,
    NotEmptyValidator,
    NotNullValidator,
    PatternValidator,
    PositiveValidator,
    SizeValidator,
    as_validator,
)

M = TypeVar("M", bound=type)

VALIDATORS_ATTR = "__vouch_validators__"
COMPOSED_ATTR = "__vouch_composed__"
MARKERS_ATTR = "__vouch_markers__"

# Fields every constraint carries; everything else is a named parameter.
_BASE_FIELDS = frozenset({"message", "groups", "payloads"})


@dataclass(frozen=True, slots=True)
class Marker:
    """Base of every marker the engine recognises."""


@dataclass(frozen=True, slots=True, kw_only=True)
class ConstraintMarker(Marker):
    """Base of validation-participating markers."""
    message: str = "Validation failed"
    groups: frozenset[Group] | Iterable[GroupLike] | GroupLike = frozenset({DEFAULT_GROUP})
    payloads: frozenset[Hashable] | Iterable[Hashable] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "groups", as_groups(self.groups) or frozenset({DEFAULT_GROUP}))
        object.__setattr__(self, "payloads", frozenset(self.payloads))

    @property
    def has_default_groups(self) -> bool:
        return self.groups == frozenset({DEFAULT_GROUP})


@dataclass(frozen=True, slots=True)
class Valid(Marker):
    """Cascade into the element's value, optionally with groups for the nested call."""
    groups: frozenset[Group] | Iterable[GroupLike] | GroupLike = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "groups", as_groups(self.groups))


@dataclass(frozen=True, slots=True)
class Validated(Marker):
    """Groups a type, callable or parameter is validated with."""
    groups: frozenset[Group] | Iterable[GroupLike] | GroupLike = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "groups", as_groups(self.groups))


# ============================================================================
# Marker Class Decorators
# ============================================================================

def constraint(*validators: ConstraintValidator | Callable) -> Callable[[M], M]:
    """Bind validators to a marker class, making it validator-binding.

    Accepts ConstraintValidator instances or classes, or plain callables
    taking (value, constraint, context).
    """
    bound = tuple(as_validator(v) for v in validators)
    if not bound:
        raise ValueError("@constraint requires at least one validator")

    def decorator(cls: M) -> M:
        setattr(cls, VALIDATORS_ATTR, bound)
        return cls
    return decorator


def composed_of(*markers: Marker) -> Callable[[M], M]:
    """Attach markers to a marker class, making its instances composites."""
    for marker in markers:
        if not isinstance(marker, Marker):
            raise TypeError(f"{marker!r} is not a marker")

    def decorator(cls: M) -> M:
        setattr(cls, COMPOSED_ATTR, tuple(markers))
        return cls
    return decorator


def bound_validators(marker_cls: type) -> tuple[ConstraintValidator, ...]:
    return tuple(getattr(marker_cls, VALIDATORS_ATTR, ()))


def composed_markers(marker_cls: type) -> tuple[Marker, ...]:
    return tuple(getattr(marker_cls, COMPOSED_ATTR, ()))


def attached_markers(obj: Any) -> tuple[Marker, ...]:
    """Markers attached to a class or callable (via @validated or the registry)."""
    return tuple(getattr(obj, MARKERS_ATTR, ()))


def attach_markers(obj: Any, *markers: Marker) -> None:
    setattr(obj, MARKERS_ATTR, attached_markers(obj) + tuple(markers))


def marker_attributes(marker: Marker) -> dict[str, Any]:
    """Named parameters of a marker instance, excluding message, groups and payloads."""
    if dataclasses.is_dataclass(marker):
        attrs = {f.name: getattr(marker, f.name) for f in dataclasses.fields(marker)}
    else:
        attrs = {}
    attrs.update(getattr(marker, "__dict__", {}))
    return {k: v for k, v in attrs.items() if k not in _BASE_FIELDS and not k.startswith("_")}


def with_groups(marker: ConstraintMarker, groups: frozenset[Group], payloads: frozenset) -> ConstraintMarker:
    """Copy of `marker` scoped to the given groups and extra payloads."""
    return dataclasses.replace(marker, groups=groups, payloads=marker.payloads | payloads)


def flatten_markers(items: Iterable[Any]) -> tuple[Marker, ...]:
    """Pick markers out of Annotated metadata, accepting nested lists or tuples."""
    found: list[Marker] = []
    for item in items:
        if isinstance(item, Marker):
            found.append(item)
        elif isinstance(item, (list, tuple)):
            found.extend(flatten_markers(item))
    return tuple(found)


# ============================================================================
# Built-in Constraints
# ============================================================================

@constraint(NotNullValidator())
@dataclass(frozen=True, slots=True)
class NotNull(ConstraintMarker):
    message: str = field(default="must not be null", kw_only=True)


@constraint(NotEmptyValidator())
@dataclass(frozen=True, slots=True)
class NotEmpty(ConstraintMarker):
    message: str = field(default="must not be empty", kw_only=True)


@constraint(NotBlankValidator())
@dataclass(frozen=True, slots=True)
class NotBlank(ConstraintMarker):
    message: str = field(default="must not be blank", kw_only=True)


@constraint(SizeValidator())
@dataclass(frozen=True, slots=True)
class Size(ConstraintMarker):
    min: int = -sys.maxsize - 1
    max: int = sys.maxsize
    message: str = field(default="length must be between {min} and {max}", kw_only=True)

    def __post_init__(self):
        ConstraintMarker.__post_init__(self)
        if self.min > self.max:
            raise ValueError(f"Size min ({self.min}) exceeds max ({self.max})")


@constraint(PatternValidator())
@dataclass(frozen=True, slots=True)
class Pattern(ConstraintMarker):
    regexp: str
    message: str = field(default="must match pattern {regexp}", kw_only=True)


@constraint(EmailValidator())
@dataclass(frozen=True, slots=True)
class Email(ConstraintMarker):
    pattern: str | None = None
    message: str = field(default="must be a valid email address", kw_only=True)


@constraint(MinValidator())
@dataclass(frozen=True, slots=True)
class Min(ConstraintMarker):
    value: int | float
    message: str = field(default="must be greater than or equal to {value}", kw_only=True)


@constraint(MaxValidator())
@dataclass(frozen=True, slots=True)
class Max(ConstraintMarker):
    value: int | float
    message: str = field(default="must be less than or equal to {value}", kw_only=True)


@constraint(PositiveValidator())
@dataclass(frozen=True, slots=True)
class Positive(ConstraintMarker):
    message: str = field(default="must be greater than 0", kw_only=True)


@constraint(NegativeValidator())
@dataclass(frozen=True, slots=True)
class Negative(ConstraintMarker):
    message: str = field(default="must be less than 0", kw_only=True)


@constraint(InFutureValidator())
@dataclass(frozen=True, slots=True)
class InFuture(ConstraintMarker):
    message: str = field(default="must be a future date", kw_only=True)


@constraint(InPastValidator())
@dataclass(frozen=True, slots=True)
class InPast(ConstraintMarker):
    message: str = field(default="must be a past date", kw_only=True)
