"""Validation Exceptions

Validation itself never raises for failing data: constraint failures are
Violations inside a Report. ConstraintViolationError exists for the
interception entry points, where a failing Report must abort the call.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from vouch.errors import AppError, unknown_property

if TYPE_CHECKING:
    from .report import Report, Violation


class ValidationException(Exception):
    """Base class for exceptions raised by vouch."""


class ConstraintViolationError(ValidationException):
    """A failing Report raised at a method-interception boundary."""

    def __init__(self, report: Report, message: str | None = None, cause: BaseException | None = None):
        self.report = report
        self.message = message or self.default_message(report)
        super().__init__(self.message)
        if cause is not None:
            self.__cause__ = cause

    @staticmethod
    def default_message(report: Report) -> str:
        if report.is_valid():
            return "Validation failed: no violations found."
        lines = ["Validation failed with the following violations:"]
        for v in report:
            invalid = "null" if v.invalid_value is None else v.invalid_value
            lines.append(f' • Property: "{v.property_path}"')
            lines.append(f"   Message : {v.message}")
            lines.append(f"   Invalid : {invalid}")
            lines.append(f"   Source  : {v.source.kind.value}")
        return "\n".join(lines)

    @property
    def violations(self) -> frozenset[Violation]:
        return self.report.violations

    def to_app_error(self, origin: str = "") -> AppError:
        return self.report.to_app_error(origin=origin)

    def __str__(self) -> str:
        summary = "; ".join(f"[{v.property_path}] {v.message}" for v in self.report) or "No constraint violations."
        return f"{self.message}\nViolations: {summary}"


class UnknownPropertyError(ValidationException):
    """validate_property was asked for a name the type does not have (strict mode only)."""

    def __init__(self, type_name: str, property_name: str):
        self.type_name, self.property_name = type_name, property_name
        super().__init__(f"Type '{type_name}' has no property '{property_name}'")

    def to_app_error(self) -> AppError:
        return unknown_property(self.type_name, self.property_name, origin="validate_property").unwrap_err()


class CascadeDepthError(ValidationException):
    """Cascading went deeper than MAX_CASCADE_DEPTH; the remaining subtree was not validated."""

    def __init__(self, path: str, limit: int):
        self.path, self.limit = path, limit
        super().__init__(f"Cascade depth limit ({limit}) exceeded at '{path}'")
