"""Declarative Validation Engine

Constraints are declared as markers on fields, parameters and return
values; the engine discovers them at runtime, resolves the active groups,
runs the bound validators and returns every failure as an immutable Report.

Key Features:
- Built-in constraints (NotNull, Size, Pattern, Email, Min, Max, InPast, ...)
- Custom constraints via @constraint and composite constraints via @composed_of
- Validation groups with a default group
- Cascading into nested objects and collections via Valid, cycle-safe
- Parameter and return-value validation with the @validated decorator
- Result-returning boundary helpers

Usage:
    from typing import Annotated
    from vouch.validation import NotBlank, Size, Email, Valid, get_validator

    @dataclass
    class SignUp:
        username: Annotated[str, NotBlank(), Size(3, 20)]
        email: Annotated[str | None, Email()]
        address: Annotated[Address, Valid()]

    report = get_validator().validate(form)
    if not report.is_valid():
        for v in report:
            print(v.property_path, v.message)
"""
from functools import lru_cache

# Groups
from .groups import DEFAULT_GROUP, Group, GroupLike, as_group, as_groups

# Markers
from .markers import (
    ConstraintMarker,
    Marker,
    Valid,
    Validated,
    attach_markers,
    composed_of,
    constraint,
    NotNull,
    NotEmpty,
    NotBlank,
    Size,
    Pattern,
    Email,
    Min,
    Max,
    Positive,
    Negative,
    InFuture,
    InPast,
)

# Validators and context
from .validators import ConstraintValidator, FunctionValidator, TIMEZONE_PROPERTY
from .context import Environment, MapEnvironment, SettingsEnvironment, ValidationContext

# Metadata and resolution
from .metadata import (
    CallableShape,
    ElementKind,
    ElementRef,
    MetadataIndex,
    MethodArguments,
)
from .catalog import ConstraintCatalog, ConstraintDescriptor, ValidatorBinding
from .resolver import GroupResolver

# Results
from .report import Report, Violation, ViolationFactory, merge_reports
from .errors import CascadeDepthError, ConstraintViolationError, UnknownPropertyError, ValidationException

# Execution
from .engine import ValidationEngine
from .executable import ExecutableValidator, Invocation, ValidationInterceptor, validated
from .boundaries import BoundaryValidator, check, ensure_all_valid, ensure_valid


@lru_cache
def get_validator() -> ValidationEngine:
    """Process-wide engine built from the current settings."""
    return ValidationEngine()


@lru_cache
def get_executable_validator() -> ExecutableValidator:
    """Process-wide method validator sharing get_validator()'s engine."""
    return ExecutableValidator(get_validator())


def reset_validators() -> None:
    """Drop the process-wide validators; the next call rebuilds them from settings."""
    get_executable_validator.cache_clear()
    get_validator.cache_clear()


__all__ = [
    # Groups
    "DEFAULT_GROUP", "Group", "GroupLike", "as_group", "as_groups",
    # Markers
    "ConstraintMarker", "Marker", "Valid", "Validated", "attach_markers", "composed_of", "constraint",
    "NotNull", "NotEmpty", "NotBlank", "Size", "Pattern", "Email", "Min", "Max",
    "Positive", "Negative", "InFuture", "InPast",
    # Validators and context
    "ConstraintValidator", "FunctionValidator", "TIMEZONE_PROPERTY",
    "Environment", "MapEnvironment", "SettingsEnvironment", "ValidationContext",
    # Metadata and resolution
    "CallableShape", "ElementKind", "ElementRef", "MetadataIndex", "MethodArguments",
    "ConstraintCatalog", "ConstraintDescriptor", "ValidatorBinding", "GroupResolver",
    # Results
    "Report", "Violation", "ViolationFactory", "merge_reports",
    "CascadeDepthError", "ConstraintViolationError", "UnknownPropertyError", "ValidationException",
    # Execution
    "ValidationEngine", "ExecutableValidator", "Invocation", "ValidationInterceptor", "validated",
    "BoundaryValidator", "check", "ensure_all_valid", "ensure_valid",
    "get_validator", "get_executable_validator", "reset_validators",
]
