"""Method Validation

Validates the parameters and return values of callables against the
markers declared in their signatures, and intercepts calls so invalid
arguments never reach the body.

Usage:
    class AccountService:
        @validated()
        def rename(self, account_id: Annotated[int, Positive()],
                   name: Annotated[str, NotBlank(), Size(1, 64)]) -> Annotated[str, NotNull()]:
            ...

    service.rename(-1, "")    # raises ConstraintViolationError, body never runs

Or without the decorator:
    validator = ExecutableValidator()
    report = validator.validate_parameters(service, service.rename, MethodArguments.of(-1, ""))
"""
from __future__ import annotations

import functools
import inspect
import types
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, TypeVar

from vouch.logging import interceptor_logger

from .engine import ValidationEngine
from .errors import ConstraintViolationError
from .groups import GroupLike
from .markers import Validated, attach_markers
from .metadata import CallableShape, ElementRef, MethodArguments, declared_class
from .report import Report, merge_reports

log = interceptor_logger()

F = TypeVar("F", bound=Callable[..., Any])


def _receiver_bound(target: Any, func: Callable) -> Callable:
    """Bind a plain function looked up on target's class to target."""
    if target is None or inspect.ismethod(func) or not inspect.isfunction(func):
        return func
    owner = target if isinstance(target, type) else type(target)
    member = inspect.getattr_static(owner, func.__name__, None)
    if isinstance(member, staticmethod):
        return func
    if isinstance(member, classmethod):
        return types.MethodType(func, owner) if member.__func__ is func else func
    if member is func and not isinstance(target, type):
        return types.MethodType(func, target)
    return func


def _argument_value(param: ElementRef, arguments: MethodArguments, shape: CallableShape) -> Any:
    if param.name in arguments.named:
        return arguments.named[param.name]
    if param.index is not None and param.index < len(arguments.positional):
        return arguments.positional[param.index]
    if shape.signature is not None and param.name in shape.signature.parameters:
        default = shape.signature.parameters[param.name].default
        if default is not inspect.Parameter.empty:
            return default
    return None


class ExecutableValidator:
    """Parameter and return-value validation for callables."""

    def __init__(self, engine: ValidationEngine | None = None):
        self.engine = engine or ValidationEngine()

    @property
    def index(self):
        return self.engine.index

    def can_intercept(self, func: Callable) -> bool:
        """True iff a parameter, the return slot or the callable itself carries a marker."""
        has_markers = self.engine.catalog.has_markers
        shape = self.index.shape_of(func)
        return (
            any(has_markers(p.markers) for p in shape.parameters)
            or has_markers(shape.return_slot.markers)
            or has_markers(self.index.callable_markers(func))
        )

    def validate_parameters(
        self,
        target: Any,
        func: Callable,
        arguments: MethodArguments | None = None,
        groups: Iterable[GroupLike] | GroupLike | None = None,
    ) -> Report:
        """Validate every marked parameter of `func` against the supplied arguments."""
        func = _receiver_bound(target, func)
        arguments = arguments or MethodArguments.none()
        shape = self.index.shape_of(func)
        source = self.index.callable_markers(func)

        reports = []
        for param in shape.parameters:
            if not self.engine.catalog.has_markers(param.markers):
                continue
            cascade = self.engine.catalog.is_cascaded(param) or self.engine.catalog.is_validated(param.markers)
            reports.append(self.engine.validate_element(param, _argument_value(param, arguments, shape),
                source_markers=source, groups=groups, cascade=cascade))
        return merge_reports(reports)

    def validate_return_value(
        self,
        target: Any,
        func: Callable,
        return_value: Any,
        groups: Iterable[GroupLike] | GroupLike | None = None,
    ) -> Report:
        """Validate `return_value` against the markers on `func`'s return annotation."""
        func = _receiver_bound(target, func)
        slot = self.index.return_of(func)
        if not self.engine.catalog.has_markers(slot.markers):
            return Report.empty()
        source = self.index.callable_markers(func) + self.index.type_markers(declared_class(slot.declared_type))
        return self.engine.validate_element(slot, return_value, source_markers=source, groups=groups)


# ============================================================================
# Interception
# ============================================================================

@dataclass(frozen=True, slots=True)
class Invocation:
    """One call about to happen: receiver, callable and arguments."""
    target: Any
    func: Callable
    arguments: MethodArguments = field(default_factory=MethodArguments)
    groups: tuple[GroupLike, ...] | None = None

    @property
    def name(self) -> str:
        return getattr(self.func, "__qualname__", repr(self.func))


class ValidationInterceptor:
    """Rejects invocations whose arguments or return value fail validation."""

    def __init__(self, validator: ExecutableValidator | None = None):
        self.validator = validator or ExecutableValidator()

    def supports(self, invocation: Invocation) -> bool:
        return self.validator.can_intercept(invocation.func)

    def before_invocation(self, invocation: Invocation) -> None:
        report = self.validator.validate_parameters(invocation.target, invocation.func,
            invocation.arguments, invocation.groups)
        self._raise_if_invalid(invocation, report, "parameters")

    def after_returning(self, invocation: Invocation, return_value: Any) -> None:
        report = self.validator.validate_return_value(invocation.target, invocation.func,
            return_value, invocation.groups)
        self._raise_if_invalid(invocation, report, "return_value")

    @staticmethod
    def _raise_if_invalid(invocation: Invocation, report: Report, stage: str) -> None:
        if report.is_valid():
            return
        log.warning(
            "invocation_rejected",
            callable=invocation.name,
            stage=stage,
            violation_count=len(report),
            report=report,
        )
        raise ConstraintViolationError(report)


def validated(*groups: GroupLike, interceptor: ValidationInterceptor | None = None) -> Callable[[F], F]:
    """Mark a class or callable as validated with `groups`.

    On a class, records the groups used when its instances are cascaded
    into. On a function or coroutine function, additionally checks the
    parameters before and the return value after every call.

    Usage:
        @validated("signup")
        def register(form: Annotated[SignUp, Valid()]) -> None: ...
    """
    marker = Validated(groups)

    def decorator(obj: F) -> F:
        if isinstance(obj, type):
            attach_markers(obj, marker)
            return obj

        attach_markers(obj, marker)

        if inspect.iscoroutinefunction(obj):
            @functools.wraps(obj)
            async def async_wrapper(*args, **kwargs):
                chosen = interceptor or _default_interceptor()
                invocation = Invocation(None, obj, MethodArguments(args, kwargs))
                chosen.before_invocation(invocation)
                result = await obj(*args, **kwargs)
                chosen.after_returning(invocation, result)
                return result
            return async_wrapper

        @functools.wraps(obj)
        def wrapper(*args, **kwargs):
            chosen = interceptor or _default_interceptor()
            invocation = Invocation(None, obj, MethodArguments(args, kwargs))
            chosen.before_invocation(invocation)
            result = obj(*args, **kwargs)
            chosen.after_returning(invocation, result)
            return result
        return wrapper

    return decorator


def _default_interceptor() -> ValidationInterceptor:
    from . import get_executable_validator
    return ValidationInterceptor(get_executable_validator())
