"""Constraint Validators

The executable predicates bound to constraint markers. A validator decides
pass/fail for one value against one marker instance and must be a pure
function of (value, marker, context): no state, no I/O.

Null handling follows one rule: the presence family (NotNull, NotEmpty,
NotBlank) rejects None; every other validator accepts it, so optional
values are only checked when present.

Values of a type a validator does not understand pass. Type checking is
not a constraint's job.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sized
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from fractions import Fraction
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from .context import ValidationContext

TIMEZONE_PROPERTY = "vouch.timezone"

# RFC 5322 simplified pattern
EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

_NUMBER_TYPES = (int, float, Decimal, Fraction)


class ConstraintValidator(ABC):
    """Base class for constraint predicates."""

    @abstractmethod
    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        """Return True if `value` satisfies `constraint`."""

    def __call__(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        return self.is_valid(value, constraint, context)


@dataclass(frozen=True, slots=True)
class FunctionValidator(ConstraintValidator):
    """Adapts a plain `fn(value, constraint, context) -> bool` to a ConstraintValidator."""
    fn: Callable[[Any, Any, "ValidationContext"], bool]

    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        return bool(self.fn(value, constraint, context))


def as_validator(candidate: ConstraintValidator | Callable) -> ConstraintValidator:
    """Normalize a validator or plain callable to a ConstraintValidator."""
    if isinstance(candidate, ConstraintValidator):
        return candidate
    if isinstance(candidate, type) and issubclass(candidate, ConstraintValidator):
        return candidate()
    if callable(candidate):
        return FunctionValidator(candidate)
    raise TypeError(f"{candidate!r} is not a constraint validator")


@lru_cache(maxsize=256)
def _compiled(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def _is_number(value: Any) -> bool:
    return isinstance(value, _NUMBER_TYPES) and not isinstance(value, bool)


# ============================================================================
# Presence Validators
# ============================================================================

@dataclass(frozen=True, slots=True)
class NotNullValidator(ConstraintValidator):
    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        return value is not None


@dataclass(frozen=True, slots=True)
class NotEmptyValidator(ConstraintValidator):
    """Rejects None and empty strings, collections and mappings."""

    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        if value is None:
            return False
        if isinstance(value, (str, bytes, Sized)):
            return len(value) > 0
        return True


@dataclass(frozen=True, slots=True)
class NotBlankValidator(ConstraintValidator):
    """Rejects None and whitespace-only strings."""

    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        if value is None:
            return False
        if isinstance(value, str):
            return bool(value.strip())
        return True


# ============================================================================
# Size and Format Validators
# ============================================================================

@dataclass(frozen=True, slots=True)
class SizeValidator(ConstraintValidator):
    """Length of strings, collections and mappings, or the value of a number, within [min, max]."""

    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        if value is None:
            return True
        if isinstance(value, (str, bytes, Mapping, Sized)):
            size = len(value)
        elif _is_number(value):
            size = value
        else:
            return True
        return constraint.min <= size <= constraint.max


@dataclass(frozen=True, slots=True)
class PatternValidator(ConstraintValidator):
    """Matches anywhere in the string; anchor the expression for a full match."""

    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        if value is None or not isinstance(value, str):
            return True
        return _compiled(constraint.regexp).search(value) is not None


@dataclass(frozen=True, slots=True)
class EmailValidator(ConstraintValidator):
    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        if value is None or not isinstance(value, str):
            return True
        pattern = getattr(constraint, "pattern", None) or EMAIL_PATTERN
        return _compiled(pattern).search(value) is not None


# ============================================================================
# Numeric Validators
# ============================================================================

@dataclass(frozen=True, slots=True)
class MinValidator(ConstraintValidator):
    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        if not _is_number(value):
            return True
        return value >= constraint.value


@dataclass(frozen=True, slots=True)
class MaxValidator(ConstraintValidator):
    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        if not _is_number(value):
            return True
        return value <= constraint.value


@dataclass(frozen=True, slots=True)
class PositiveValidator(ConstraintValidator):
    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        if not _is_number(value):
            return True
        return value > 0


@dataclass(frozen=True, slots=True)
class NegativeValidator(ConstraintValidator):
    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        if not _is_number(value):
            return True
        return value < 0


# ============================================================================
# Temporal Validators
# ============================================================================

def _now_for(value: date, context: ValidationContext) -> date:
    """Current instant comparable with `value`, honouring the configured timezone."""
    zone_name = context.get_property(TIMEZONE_PROPERTY)
    zone = ZoneInfo(zone_name) if zone_name else None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return datetime.now(zone or value.tzinfo)
        now = datetime.now(zone) if zone else datetime.now()
        return now.replace(tzinfo=None)
    return (datetime.now(zone) if zone else datetime.now()).date()


def _comparable(value: date) -> bool:
    return isinstance(value, (date, datetime))


@dataclass(frozen=True, slots=True)
class InFutureValidator(ConstraintValidator):
    """Dates and datetimes strictly after now.

    Naive datetimes are read as wall-clock time in the configured
    `vouch.timezone`, or local time when none is configured.
    """

    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        if value is None or not _comparable(value):
            return True
        return value > _now_for(value, context)


@dataclass(frozen=True, slots=True)
class InPastValidator(ConstraintValidator):
    """Dates and datetimes strictly before now."""

    def is_valid(self, value: Any, constraint: Any, context: ValidationContext) -> bool:
        if value is None or not _comparable(value):
            return True
        return value < _now_for(value, context)
