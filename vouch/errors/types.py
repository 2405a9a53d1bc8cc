"""Result and Application Error Types

Result/Either types for explicit, composable error propagation at the
library's boundaries, plus the AppError record that validation failures
are converted into when a caller wants a single error value instead of a
Report.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Generic, NoReturn, TypeVar, Union, final
from uuid import uuid4

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E", bound="AppError")


class ErrorCode(Enum):
    """Numeric error codes; the thousands digit is the category (2 = validation, 9 = internal)."""
    E2000_VALIDATION_GENERIC = 2000
    E2005_CONSTRAINT_VIOLATION = 2005
    E2006_UNKNOWN_PROPERTY = 2006

    E9000_INTERNAL_GENERIC = 9000

    @property
    def category(self) -> str:
        return "validation" if 2000 <= self.value < 3000 else "internal"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Where and when an error was produced."""
    correlation_id: str = field(default_factory=lambda: uuid4().hex[:8])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    origin: str = ""

    def with_origin(self, origin: str) -> ErrorContext:
        return replace(self, origin=origin)


@dataclass(frozen=True, slots=True)
class AppError:
    """Error value handed across the library boundary.

    Constraint-violation errors (E2005) list their violations under
    metadata["violations"], each in Violation.to_dict() form:

        error.field_errors()  # {"username": ["length must be between 3 and 20"]}
    """
    code: ErrorCode
    message: str
    context: ErrorContext = field(default_factory=ErrorContext)
    metadata: dict = field(default_factory=dict)
    cause: Exception | None = None

    @property
    def error_id(self) -> str:
        return f"{self.code.name}:{self.context.correlation_id}"

    @property
    def violations(self) -> list[dict]:
        return list(self.metadata.get("violations", ()))

    def field_errors(self) -> dict[str, list[str]]:
        """Violation messages grouped by property path."""
        grouped: dict[str, list[str]] = {}
        for violation in self.violations:
            grouped.setdefault(violation["path"], []).append(violation["message"])
        return grouped

    def with_context(self, *, origin: str) -> AppError:
        return replace(self, context=self.context.with_origin(origin))

    def with_metadata(self, **kwargs) -> AppError:
        return replace(self, metadata={**self.metadata, **kwargs})

    def to_dict(self) -> dict:
        """Serialize for API responses and logs."""
        body = {
            "code": self.code.name,
            "code_num": self.code.value,
            "message": self.message,
            "category": self.code.category,
            "correlation_id": self.context.correlation_id,
            "timestamp": self.context.timestamp.isoformat(),
            "metadata": self.metadata,
        }
        if self.violations:
            body["fields"] = self.field_errors()
        return {"error": body}

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (correlation_id={self.context.correlation_id})"


# ============================================================================
# Result
# ============================================================================

@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant of Result."""
    value: T

    def is_ok(self) -> bool: return True
    def is_err(self) -> bool: return False
    def unwrap(self) -> T: return self.value
    def unwrap_or(self, default: T) -> T: return self.value
    def unwrap_or_else(self, f: Callable[[AppError], T]) -> T: return self.value

    def map(self, f: Callable[[T], U]) -> Result[U, AppError]:
        return Ok(f(self.value))

    def map_err(self, f: Callable[[AppError], AppError]) -> Result[T, AppError]:
        return self

    def and_then(self, f: Callable[[T], Result[U, AppError]]) -> Result[U, AppError]:
        return f(self.value)


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant of Result."""
    error: E

    def is_ok(self) -> bool: return False
    def is_err(self) -> bool: return True
    def unwrap_or(self, default: T) -> T: return default
    def unwrap_or_else(self, f: Callable[[E], T]) -> T: return f(self.error)
    def unwrap_err(self) -> E: return self.error

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def map(self, f: Callable[[T], U]) -> Result[U, E]:
        return self  # type: ignore

    def map_err(self, f: Callable[[E], E]) -> Result[T, E]:
        return Err(f(self.error))

    def and_then(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        return self  # type: ignore


Result = Union[Ok[T], Err[E]]


def ok(value: T) -> Ok[T]:
    return Ok(value)


def err(error: E) -> Err[E]:
    return Err(error)
