"""Type Metadata Index

Turns classes and callables into ElementRefs: the fields of a type, the
parameters and return slot of a callable, each with the markers attached
to it.

Markers are discovered from, in order:
1. `typing.Annotated` metadata on class annotations and signatures
2. `dataclasses.field(metadata={"constraints": (...)})`
3. the explicit registry, for types that cannot be annotated:

    index.register(LegacyUser).field("email", NotNull(), Email())

Shapes are a pure function of the type (plus the registry), so they are
cached; registering clears the cache.
"""
from __future__ import annotations

import dataclasses
import inspect
import threading
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Annotated, Any, Callable, ClassVar, TypeVar, Union, get_args, get_origin

from vouch.logging import metadata_logger

from .markers import Marker, attached_markers, flatten_markers

log = metadata_logger()

CONSTRAINTS_METADATA_KEY = "constraints"

_UNION_TYPES = (Union, types.UnionType)
_SKIPPED_PARAMETER_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
_MAX_PLACEHOLDERS = 32

T = TypeVar("T")


class ElementKind(str, Enum):
    """Kind of validated location."""
    FIELD = "field"
    PARAMETER = "parameter"
    RETURN_VALUE = "return_value"
    OBJECT = "object"


@dataclass(frozen=True, slots=True)
class ElementRef:
    """Handle to a validated location and the markers attached to it."""
    kind: ElementKind
    name: str
    owner: str
    markers: tuple[Marker, ...] = field(default=(), compare=False)
    index: int | None = None
    keyword_only: bool = False
    declared_type: Any = field(default=None, compare=False, repr=False)

    @property
    def path(self) -> str:
        return self.name

    def value_of(self, target: Any) -> Any:
        """Current value of this field on `target` (None when absent)."""
        if isinstance(target, Mapping):
            return target.get(self.name)
        return getattr(target, self.name, None)


@dataclass(frozen=True, slots=True)
class MethodArguments:
    """Arguments of one invocation: positional values and named values."""
    positional: tuple[Any, ...] = ()
    named: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def of(cls, *args: Any, **kwargs: Any) -> MethodArguments:
        return cls(positional=tuple(args), named=dict(kwargs))

    @classmethod
    def none(cls) -> MethodArguments:
        return cls()


@dataclass(frozen=True, slots=True)
class CallableShape:
    """Cached view of a callable's validatable elements."""
    parameters: tuple[ElementRef, ...]
    return_slot: ElementRef
    signature: inspect.Signature | None = field(default=None, compare=False)


# ============================================================================
# Type Hint Helpers
# ============================================================================

def _is_annotated(hint: Any) -> bool:
    return get_origin(hint) is Annotated


def markers_from_hint(hint: Any) -> tuple[Marker, ...]:
    """Markers carried by an annotation, including inside Optional[Annotated[...]]."""
    if _is_annotated(hint):
        return flatten_markers(hint.__metadata__)
    if get_origin(hint) in _UNION_TYPES:
        found: list[Marker] = []
        for arg in get_args(hint):
            found.extend(markers_from_hint(arg))
        return tuple(found)
    return ()


def declared_class(hint: Any) -> type | None:
    """The runtime class behind a declared type, or None when there isn't a single one."""
    if hint is None or hint is inspect.Parameter.empty:
        return None
    if _is_annotated(hint):
        return declared_class(get_args(hint)[0])
    origin = get_origin(hint)
    if origin in _UNION_TYPES:
        candidates = [a for a in get_args(hint) if a is not type(None)]
        return declared_class(candidates[0]) if len(candidates) == 1 else None
    if origin is not None:
        return origin if isinstance(origin, type) else None
    return hint if isinstance(hint, type) else None


def _is_class_var(hint: Any) -> bool:
    if _is_annotated(hint):
        return _is_class_var(get_args(hint)[0])
    return hint is ClassVar or get_origin(hint) is ClassVar


def _with_placeholders(resolve: Callable[[dict[str, Any]], T], owner: str) -> T:
    """Call `resolve(localns)`, standing `Any` in for each name it cannot find.

    Classes defined inside a function are invisible to annotation strings
    under `from __future__ import annotations`; the placeholder keeps the
    surrounding Annotated metadata (and its markers) intact.
    """
    placeholders: dict[str, Any] = {}
    while True:
        try:
            return resolve(placeholders)
        except NameError as e:
            if not e.name or e.name in placeholders or len(placeholders) >= _MAX_PLACEHOLDERS:
                raise
            log.debug("annotation_name_unresolved", owner=owner, name=e.name)
            placeholders[e.name] = Any


def _class_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except NameError:
        pass
    except Exception as e:
        log.warning("type_hints_unavailable", type=cls.__qualname__, error=str(e))
        return {}
    try:
        return _with_placeholders(
            lambda localns: typing.get_type_hints(cls, localns=localns, include_extras=True),
            cls.__qualname__)
    except Exception as e:
        log.warning("type_hints_unavailable", type=cls.__qualname__, error=str(e))
        return {}


# ============================================================================
# Registry
# ============================================================================

class TypeRegistration:
    """Builder for explicit field-to-marker bindings of one type."""

    __slots__ = ("_index", "_cls")

    def __init__(self, index: MetadataIndex, cls: type):
        self._index, self._cls = index, cls

    def field(self, name: str, *markers: Marker) -> TypeRegistration:
        self._index._add(self._cls, name, markers)
        return self

    def type_marker(self, *markers: Marker) -> TypeRegistration:
        self._index._add(self._cls, None, markers)
        return self


class MetadataIndex:
    """Resolves classes and callables to their ElementRefs."""

    def __init__(self, cache_size: int = 1024):
        self._lock = threading.Lock()
        self._registry: dict[type, dict[str | None, tuple[Marker, ...]]] = {}
        self._fields = lru_cache(maxsize=cache_size)(self._compute_fields)
        self._shapes = lru_cache(maxsize=cache_size)(self._compute_shape)

    # -- registry ----------------------------------------------------------

    def register(self, cls: type) -> TypeRegistration:
        """Start an explicit registration for `cls`."""
        if not isinstance(cls, type):
            raise TypeError(f"Can only register classes, got {type(cls).__name__}")
        return TypeRegistration(self, cls)

    def _add(self, cls: type, name: str | None, markers: tuple[Marker, ...]) -> None:
        for marker in markers:
            if not isinstance(marker, Marker):
                raise TypeError(f"{marker!r} is not a marker")
        with self._lock:
            entries = dict(self._registry.get(cls, {}))
            entries[name] = entries.get(name, ()) + tuple(markers)
            self._registry[cls] = entries
        self.clear_cache()
        log.debug("markers_registered", type=cls.__qualname__, field=name, count=len(markers))

    def _registered(self, cls: type) -> dict[str | None, tuple[Marker, ...]]:
        merged: dict[str | None, tuple[Marker, ...]] = {}
        for klass in reversed(cls.__mro__):
            for name, markers in self._registry.get(klass, {}).items():
                merged[name] = merged.get(name, ()) + markers
        return merged

    def clear_cache(self) -> None:
        self._fields.cache_clear()
        self._shapes.cache_clear()

    # -- types -------------------------------------------------------------

    def fields_of(self, cls: type) -> tuple[ElementRef, ...]:
        """Fields of `cls` in declaration order, base classes first."""
        return self._fields(cls)

    def field_named(self, cls: type, name: str) -> ElementRef | None:
        return next((f for f in self.fields_of(cls) if f.name == name), None)

    def type_markers(self, cls: type | None) -> tuple[Marker, ...]:
        """Markers attached to the class itself."""
        if cls is None:
            return ()
        return attached_markers(cls) + self._registered(cls).get(None, ())

    def _compute_fields(self, cls: type) -> tuple[ElementRef, ...]:
        hints = _class_hints(cls)
        dc_fields = {f.name: f for f in dataclasses.fields(cls)} if dataclasses.is_dataclass(cls) else {}
        registered = self._registered(cls)

        names = [n for n, h in hints.items() if not n.startswith("__") and not _is_class_var(h)
                 and not isinstance(h, dataclasses.InitVar)]
        names += [n for n in registered if n is not None and n not in hints]

        refs = []
        for name in names:
            hint = hints.get(name)
            markers = markers_from_hint(hint)
            if name in dc_fields:
                markers += flatten_markers(dc_fields[name].metadata.get(CONSTRAINTS_METADATA_KEY, ()))
            markers += registered.get(name, ())
            refs.append(ElementRef(kind=ElementKind.FIELD, name=name, owner=cls.__qualname__,
                markers=markers, declared_type=hint))
        return tuple(refs)

    # -- callables ---------------------------------------------------------

    def shape_of(self, func: Callable) -> CallableShape:
        """Parameters and return slot of `func`; a bound method's receiver is excluded."""
        shape = self._shapes(getattr(func, "__func__", func))
        if inspect.ismethod(func) and shape.parameters and shape.parameters[0].index == 0:
            params = tuple(dataclasses.replace(p, index=p.index - 1 if p.index is not None else None)
                           for p in shape.parameters[1:])
            signature = shape.signature
            if signature is not None:
                signature = signature.replace(parameters=list(signature.parameters.values())[1:])
            return CallableShape(parameters=params, return_slot=shape.return_slot, signature=signature)
        return shape

    def parameters_of(self, func: Callable) -> tuple[ElementRef, ...]:
        return self.shape_of(func).parameters

    def return_of(self, func: Callable) -> ElementRef:
        return self.shape_of(func).return_slot

    def callable_markers(self, func: Callable) -> tuple[Marker, ...]:
        """Markers attached to the callable itself (e.g. by @validated)."""
        found = attached_markers(func)
        unwrapped = inspect.unwrap(getattr(func, "__func__", func))
        if unwrapped is not func:
            found += tuple(m for m in attached_markers(unwrapped) if m not in found)
        return found

    def _compute_shape(self, func: Callable) -> CallableShape:
        owner = getattr(func, "__qualname__", None) or type(func).__qualname__
        name = getattr(func, "__name__", None) or type(func).__name__
        signature = _signature(func)
        if signature is None:
            return CallableShape(parameters=(),
                return_slot=ElementRef(kind=ElementKind.RETURN_VALUE, name=name, owner=owner))

        params = []
        for index, param in enumerate(signature.parameters.values()):
            if param.kind in _SKIPPED_PARAMETER_KINDS:
                continue
            params.append(ElementRef(
                kind=ElementKind.PARAMETER,
                name=param.name,
                owner=owner,
                markers=markers_from_hint(param.annotation),
                index=None if param.kind is inspect.Parameter.KEYWORD_ONLY else index,
                keyword_only=param.kind is inspect.Parameter.KEYWORD_ONLY,
                declared_type=param.annotation,
            ))
        return_slot = ElementRef(kind=ElementKind.RETURN_VALUE, name=name, owner=owner,
            markers=markers_from_hint(signature.return_annotation),
            declared_type=signature.return_annotation)
        return CallableShape(parameters=tuple(params), return_slot=return_slot, signature=signature)


def _signature(func: Callable) -> inspect.Signature | None:
    owner = repr(func)
    try:
        return _with_placeholders(
            lambda localns: inspect.signature(func, locals=localns, eval_str=True), owner)
    except (NameError, SyntaxError, TypeError) as e:
        log.debug("signature_unresolved", callable=owner, error=str(e))
    except ValueError as e:
        log.debug("signature_unavailable", callable=owner, error=str(e))
        return None
    try:
        return inspect.signature(func)
    except (TypeError, ValueError) as e:
        log.warning("signature_unavailable", callable=owner, error=str(e))
        return None
