from dataclasses import dataclass, field

from structlog.testing import capture_logs

from vouch.validation import (
    ConstraintCatalog,
    ConstraintDescriptor,
    ConstraintMarker,
    DEFAULT_GROUP,
    ElementKind,
    ElementRef,
    Group,
    NotBlank,
    NotNull,
    Pattern,
    Size,
    Valid,
    Validated,
    composed_of,
    constraint,
)
from vouch.validation.markers import VALIDATORS_ATTR


@composed_of(NotBlank(), Size(3, 20), Pattern(r"^[a-z0-9_]+$"))
@dataclass(frozen=True, slots=True)
class Username(ConstraintMarker):
    message: str = field(default="invalid username", kw_only=True)


@composed_of(Username(), NotNull())
@dataclass(frozen=True, slots=True)
class Handle(ConstraintMarker):
    pass


@dataclass(frozen=True, slots=True)
class Loop(ConstraintMarker):
    pass


composed_of(Loop(), NotBlank())(Loop)


@constraint(lambda value, marker, context: value != "forbidden")
@dataclass(frozen=True, slots=True)
class NotForbidden(ConstraintMarker):
    message: str = field(default="must not be forbidden", kw_only=True)


@dataclass(frozen=True, slots=True)
class Broken(ConstraintMarker):
    pass


setattr(Broken, VALIDATORS_ATTR, ("not a validator",))


def _element(*markers):
    return ElementRef(kind=ElementKind.FIELD, name="value", owner="Form", markers=markers)


def _kinds(bindings):
    return [b.descriptor.kind for b in bindings]


def test_direct_markers_resolve_to_bindings():
    bindings = ConstraintCatalog().resolve(_element(NotNull(), Size(1, 5)))
    assert _kinds(bindings) == [NotNull, Size]
    assert all(b.validators for b in bindings)


def test_cascade_and_group_markers_produce_no_bindings():
    assert ConstraintCatalog().resolve(_element(Valid(), Validated("a"))) == ()


def test_composite_resolves_through_composed_markers():
    bindings = ConstraintCatalog().resolve(_element(Username()))
    assert _kinds(bindings) == [NotBlank, Size, Pattern]


def test_composites_nest():
    bindings = ConstraintCatalog().resolve(_element(Handle()))
    assert _kinds(bindings) == [NotBlank, Size, Pattern, NotNull]


def test_composed_markers_inherit_composite_groups_and_payloads():
    bindings = ConstraintCatalog().resolve(_element(Username(groups=("signup",), payloads=("severe",))))
    for binding in bindings:
        assert binding.descriptor.groups == frozenset({Group("signup")})
        assert "severe" in binding.descriptor.payloads


def test_self_referencing_composite_terminates():
    with capture_logs() as logs:
        bindings = ConstraintCatalog().resolve(_element(Loop()))
    assert _kinds(bindings) == [NotBlank]
    assert any(entry["event"] == "constraint_cycle_skipped" for entry in logs)


def test_depth_limit_bounds_resolution():
    bindings = ConstraintCatalog(max_depth=1).resolve(_element(Handle()))
    assert _kinds(bindings) == [NotNull]


def test_malformed_marker_is_skipped_and_others_still_resolve():
    with capture_logs() as logs:
        bindings = ConstraintCatalog().resolve(_element(Broken(), NotNull()))
    assert _kinds(bindings) == [NotNull]
    skipped = [e for e in logs if e["event"] == "constraint_marker_skipped"]
    assert skipped and skipped[0]["marker"] == "Broken"


def test_plain_callables_bind_as_validators():
    (binding,) = ConstraintCatalog().resolve(_element(NotForbidden()))
    assert binding.validators[0]("forbidden", binding.marker, None) is False
    assert binding.validators[0]("allowed", binding.marker, None) is True


def test_resolution_is_cached_per_marker_tuple():
    catalog = ConstraintCatalog()
    first = catalog.resolve(_element(Size(1, 2)))
    assert catalog.resolve(_element(Size(1, 2))) is first


def test_descriptor_defaults_and_parameters():
    descriptor = ConstraintDescriptor.of(Size(3, 20))
    assert descriptor.groups == frozenset({DEFAULT_GROUP})
    assert descriptor.parameters == {"min": 3, "max": 20}
    assert descriptor.message_template == "length must be between {min} and {max}"
    assert str(descriptor) == "Size(max=20, min=3)"


def test_descriptors_compare_by_value():
    assert ConstraintDescriptor.of(Size(3, 20)) == ConstraintDescriptor.of(Size(3, 20))
    assert ConstraintDescriptor.of(Size(3, 20)) != ConstraintDescriptor.of(Size(3, 21))


def test_marker_queries():
    assert ConstraintCatalog.is_cascaded(_element(Valid()))
    assert not ConstraintCatalog.is_cascaded(_element(NotNull()))
    assert ConstraintCatalog.is_validated((Validated(),))
    assert ConstraintCatalog.has_markers((NotNull(),))
    assert not ConstraintCatalog.has_markers(())
