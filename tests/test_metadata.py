from dataclasses import InitVar, dataclass
from typing import Annotated, ClassVar, Optional

import pytest

from vouch.validation import (
    ElementKind,
    MetadataIndex,
    NotBlank,
    NotNull,
    Size,
    Valid,
    Validated,
    validated,
)
from vouch.validation.metadata import declared_class, markers_from_hint


class Base:
    id: Annotated[int, NotNull()]


class Child(Base):
    name: Annotated[Optional[str], NotBlank()]
    registry: ClassVar[dict] = {}
    untyped = "ignored"


@dataclass
class WithInitVar:
    token: InitVar[str]
    name: Annotated[str, Size(1, 5)] = "x"

    def __post_init__(self, token):
        pass


@validated("audit")
class Audited:
    note: str


def handler(self, payload: Annotated[dict, Valid()], *args, limit: int = 5, **kwargs) -> Annotated[str, NotNull()]:
    return ""


def test_fields_follow_declaration_order_base_first():
    fields = MetadataIndex().fields_of(Child)
    assert [f.name for f in fields] == ["id", "name"]
    assert all(f.kind is ElementKind.FIELD for f in fields)
    assert fields[1].markers == (NotBlank(),)
    assert fields[1].owner == "Child"


def test_init_vars_are_not_fields():
    assert [f.name for f in MetadataIndex().fields_of(WithInitVar)] == ["name"]


def test_field_named():
    index = MetadataIndex()
    assert index.field_named(Child, "id").markers == (NotNull(),)
    assert index.field_named(Child, "missing") is None


def test_markers_inside_optional_annotated():
    assert markers_from_hint(Optional[Annotated[str, NotNull()]]) == (NotNull(),)
    assert markers_from_hint(str) == ()


@pytest.mark.parametrize(
    "hint,expected",
    [
        (Annotated[Optional[Child], Valid()], Child),
        (list[Child], list),
        (Optional[int], int),
        (int | str, None),
        (None, None),
    ],
)
def test_declared_class(hint, expected):
    assert declared_class(hint) is expected


def test_registry_adds_markers_and_clears_cache():
    index = MetadataIndex()
    assert index.field_named(Child, "name").markers == (NotBlank(),)
    index.register(Child).field("name", Size(1, 3))
    assert index.field_named(Child, "name").markers == (NotBlank(), Size(1, 3))


def test_registry_inherits_through_mro():
    index = MetadataIndex()
    index.register(Base).field("id", Size(max=9))
    assert Size(max=9) in index.field_named(Child, "id").markers


def test_registry_rejects_non_markers():
    with pytest.raises(TypeError):
        MetadataIndex().register(Child).field("name", "not a marker")


def test_type_markers():
    index = MetadataIndex()
    assert index.type_markers(Audited) == (Validated("audit"),)
    index.register(Child).type_marker(Validated("x"))
    assert index.type_markers(Child) == (Validated("x"),)
    assert index.type_markers(None) == ()


def test_callable_shape():
    shape = MetadataIndex().shape_of(handler)
    names = [(p.name, p.index, p.keyword_only) for p in shape.parameters]
    assert names == [("self", 0, False), ("payload", 1, False), ("limit", None, True)]
    assert shape.parameters[1].markers == (Valid(),)
    assert shape.return_slot.kind is ElementKind.RETURN_VALUE
    assert shape.return_slot.name == "handler"
    assert shape.return_slot.markers == (NotNull(),)


def test_bound_method_shapes_drop_the_receiver():
    class Service:
        def run(self, job: Annotated[str, NotBlank()]):
            pass

    (param,) = MetadataIndex().parameters_of(Service().run)
    assert (param.name, param.index) == ("job", 0)
