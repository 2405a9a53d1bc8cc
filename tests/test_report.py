from vouch.errors import ErrorCode
from vouch.validation import (
    DEFAULT_GROUP,
    ConstraintCatalog,
    ConstraintViolationError,
    ElementKind,
    ElementRef,
    Email,
    NotNull,
    Pattern,
    Report,
    Size,
    ViolationFactory,
    merge_reports,
)

ACTIVE = frozenset({DEFAULT_GROUP})


def _violation(marker, value, name="username"):
    element = ElementRef(kind=ElementKind.FIELD, name=name, owner="SignUp", markers=(marker,))
    (binding,) = ConstraintCatalog().resolve(element)
    return ViolationFactory().build(element, binding, value, ACTIVE)


def test_interpolation_replaces_named_parameters():
    violation = _violation(Size(3, 20), "ab")
    assert violation.message == "length must be between 3 and 20"
    assert violation.property_path == "username"
    assert violation.invalid_value == "ab"
    assert violation.groups == ACTIVE


def test_interpolation_keeps_unknown_placeholders():
    assert ViolationFactory.interpolate("{min} to {unknown}", {"min": 1}) == "1 to {unknown}"


def test_custom_message_template():
    violation = _violation(Pattern(r"^\w+$", message="'{regexp}' expected"), "a b")
    assert violation.message == r"'^\w+$' expected"


def test_violations_compare_and_hash_structurally():
    first, second = _violation(Size(3, 20), "ab"), _violation(Size(3, 20), "ab")
    assert first == second
    assert hash(first) == hash(second)
    assert first != _violation(Size(3, 20), "a")


def test_unhashable_invalid_values_still_hash():
    first, second = _violation(Size(5, 9), ["a"]), _violation(Size(5, 9), ["a"])
    assert hash(first) == hash(second)
    assert Report(frozenset({first})) == Report(frozenset({second}))


def test_report_is_an_order_independent_set():
    a, b = _violation(Size(3, 20), "ab"), _violation(Email(), "bad", name="email")
    assert Report(frozenset({a, b})) == Report(frozenset({b, a}))
    assert Report.empty().is_valid()
    assert not Report(frozenset({a})).is_valid()


def test_report_iterates_in_path_order():
    a, b = _violation(Size(3, 20), "ab"), _violation(Email(), "bad", name="email")
    report = Report(frozenset({a, b}))
    assert [v.property_path for v in report] == ["email", "username"]
    assert report.first_violation_message() == "must be a valid email address"
    assert report.violations_for("username") == frozenset({a})
    assert len(report) == 2


def test_merge_deduplicates():
    a = _violation(NotNull(), None)
    merged = merge_reports([Report(frozenset({a})), Report(frozenset({a}))])
    assert len(merged) == 1


def test_to_dict():
    report = Report(frozenset({_violation(Size(3, 20), "ab")}))
    assert report.to_dict() == {
        "valid": False,
        "violation_count": 1,
        "violations": [{
            "path": "username",
            "message": "length must be between 3 and 20",
            "constraint": "Size",
            "value": "ab",
            "source": "field",
            "groups": ["default"],
        }],
    }


def test_to_app_error_uses_constraint_violation_code():
    report = Report(frozenset({_violation(Size(3, 20), "ab")}))
    error = report.to_app_error(origin="signup")
    assert error.code is ErrorCode.E2005_CONSTRAINT_VIOLATION
    assert error.message == "username: length must be between 3 and 20"
    assert error.metadata["violation_count"] == 1
    assert error.context.origin == "signup"


def test_constraint_violation_error_summarizes_report():
    report = Report(frozenset({_violation(NotNull(), None)}))
    error = ConstraintViolationError(report)
    assert 'Property: "username"' in error.message
    assert "Invalid : null" in error.message
    assert "Source  : field" in error.message
    assert "[username] must not be null" in str(error)
    assert error.violations == report.violations


def test_constraint_violation_error_custom_message():
    error = ConstraintViolationError(Report.empty(), message="rejected")
    assert error.message == "rejected"
    assert ConstraintViolationError.default_message(Report.empty()) == "Validation failed: no violations found."
