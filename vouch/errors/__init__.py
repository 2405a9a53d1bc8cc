"""Error Handling Types

Result/Either types and the AppError taxonomy used where validation
outcomes leave the library as a single error value.

Usage:
    from vouch.errors import Ok, Err, Result, AppError

    match ensure_valid(user):
        case Ok(user):
            save(user)
        case Err(error):
            log.warning(error.message, code=error.code.name)
"""
from .types import (
    Result,
    Ok,
    Err,
    AppError,
    ErrorCode,
    ErrorContext,
    ok,
    err,
)

from .builders import (
    validation_error,
    constraint_violation,
    unknown_property,
    internal_error,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "AppError",
    "ErrorCode",
    "ErrorContext",
    "ok",
    "err",
    "validation_error",
    "constraint_violation",
    "unknown_property",
    "internal_error",
]
