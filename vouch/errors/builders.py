"""Error builders.

Each builder returns Err(AppError) with the code and metadata a caller
needs to branch on; None-valued metadata is dropped.
"""
from typing import Any

from .types import AppError, ErrorCode, ErrorContext, Err


def _fail(code: ErrorCode, message: str, origin: str, cause: Exception | None = None, **metadata) -> Err[AppError]:
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata={key: value for key, value in metadata.items() if value is not None},
        cause=cause,
    ))


def validation_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E2000_VALIDATION_GENERIC,
    field: str | None = None,
    origin: str = "",
    **metadata,
) -> Err[AppError]:
    return _fail(code, message, origin, field=field, **metadata)


def constraint_violation(message: str, violations: list[dict[str, Any]], *, origin: str = "") -> Err[AppError]:
    """Error carrying Violation.to_dict() entries under metadata["violations"]."""
    return _fail(
        ErrorCode.E2005_CONSTRAINT_VIOLATION,
        message,
        origin,
        violation_count=len(violations),
        violations=violations,
    )


def unknown_property(type_name: str, property_name: str, origin: str = "") -> Err[AppError]:
    return _fail(
        ErrorCode.E2006_UNKNOWN_PROPERTY,
        f"Type '{type_name}' has no property '{property_name}'",
        origin,
        field=property_name,
        type=type_name,
    )


def internal_error(
    message: str = "An unexpected error occurred",
    *,
    origin: str = "",
    cause: Exception | None = None,
) -> Err[AppError]:
    return _fail(ErrorCode.E9000_INTERNAL_GENERIC, message, origin, cause=cause)
