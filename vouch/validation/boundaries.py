"""Validation at System Boundaries

Result-returning entry points for code that propagates errors as values
rather than exceptions:

    match ensure_valid(form, groups=("signup",)):
        case Ok(form):
            accounts.create(form)
        case Err(error):
            return error_response(error)

A failing Report becomes an AppError with code E2005_CONSTRAINT_VIOLATION
and the violations in its metadata.
"""
from __future__ import annotations

from typing import Any, Generic, Iterable, TypeVar

from vouch.errors import AppError, Err, Ok, Result, internal_error

from .engine import ValidationEngine
from .groups import GroupLike
from .report import Report

T = TypeVar("T")


class BoundaryValidator(Generic[T]):
    """Validates objects crossing a module boundary with fixed groups.

    Usage:
        signup = BoundaryValidator(groups=("signup",), origin="accounts")
        result = signup.check(form)
    """

    __slots__ = ("engine", "groups", "origin")

    def __init__(
        self,
        engine: ValidationEngine | None = None,
        groups: Iterable[GroupLike] | GroupLike | None = None,
        origin: str = "validation",
    ):
        self.engine, self.groups, self.origin = engine, groups, origin

    def _engine(self) -> ValidationEngine:
        if self.engine is not None:
            return self.engine
        from . import get_validator
        return get_validator()

    def report(self, target: Any) -> Report:
        return self._engine().validate(target, groups=self.groups)

    def check(self, target: T) -> Result[T, AppError]:
        """Ok(target) when it has no violations, otherwise Err with the violations."""
        try:
            report = self.report(target)
        except Exception as e:
            return internal_error(f"Validation of {type(target).__name__} failed: {e}", origin=self.origin, cause=e)
        if report.is_valid():
            return Ok(target)
        return Err(report.to_app_error(origin=self.origin))


def check(target: Any, groups: Iterable[GroupLike] | GroupLike | None = None) -> Report:
    """Validate `target` with the process-wide engine and return the Report."""
    return BoundaryValidator(groups=groups).report(target)


def ensure_valid(
    target: T,
    groups: Iterable[GroupLike] | GroupLike | None = None,
    *,
    origin: str = "validation",
) -> Result[T, AppError]:
    """Validate `target`, returning Ok(target) or Err(AppError).

    Usage:
        result = ensure_valid(order)
        if result.is_err():
            return error_response(result.unwrap_err())
        order = result.unwrap()
    """
    return BoundaryValidator(groups=groups, origin=origin).check(target)


def ensure_all_valid(
    items: Iterable[T],
    groups: Iterable[GroupLike] | GroupLike | None = None,
    *,
    origin: str = "validation",
    max_errors: int = 50,
) -> Result[list[T], list[tuple[int, AppError]]]:
    """Validate a batch. Returns Ok with every item or Err with (index, error) pairs.

    Stops collecting after `max_errors` failing items.
    """
    validator = BoundaryValidator(groups=groups, origin=origin)
    valid: list[T] = []
    errors: list[tuple[int, AppError]] = []

    for idx, item in enumerate(items):
        if len(errors) >= max_errors:
            break
        result = validator.check(item)
        if result.is_ok():
            valid.append(result.unwrap())
        else:
            errors.append((idx, result.unwrap_err().with_metadata(batch_index=idx)))

    if errors:
        return Err(errors)
    return Ok(valid)
