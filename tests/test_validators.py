from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from vouch.validation import (
    Email,
    InFuture,
    InPast,
    MapEnvironment,
    Max,
    Min,
    Negative,
    NotBlank,
    NotEmpty,
    NotNull,
    Pattern,
    Positive,
    Size,
    TIMEZONE_PROPERTY,
    ValidationContext,
)
from vouch.validation.markers import bound_validators

CONTEXT = ValidationContext(MapEnvironment())


def _passes(marker, value, context=CONTEXT) -> bool:
    return all(v.is_valid(value, marker, context) for v in bound_validators(type(marker)))


@pytest.mark.parametrize(
    "marker",
    [
        Size(3, 20),
        Pattern(r"^[a-z]+$"),
        Email(),
        Min(1),
        Max(10),
        Positive(),
        Negative(),
        InFuture(),
        InPast(),
    ],
)
def test_non_presence_constraints_accept_none(marker):
    assert _passes(marker, None)


@pytest.mark.parametrize("marker", [NotNull(), NotEmpty(), NotBlank()])
def test_presence_constraints_reject_none(marker):
    assert not _passes(marker, None)


@pytest.mark.parametrize(
    "marker,value,expected",
    [
        (NotEmpty(), "", False),
        (NotEmpty(), [], False),
        (NotEmpty(), {}, False),
        (NotEmpty(), "x", True),
        (NotEmpty(), [0], True),
        (NotBlank(), "   ", False),
        (NotBlank(), " a ", True),
        (Size(3, 20), "ab", False),
        (Size(3, 20), "abc", True),
        (Size(3, 20), "a" * 21, False),
        (Size(1, 2), [1, 2, 3], False),
        (Size(1, 2), {"a": 1}, True),
        (Size(max=5), 7, False),
        (Size(max=10), -5, True),
        (Size(max=10), "", True),
        (Pattern(r"\d+"), "order-42", True),
        (Pattern(r"^\d+$"), "order-42", False),
        (Email(), "user@example.com", True),
        (Email(), "not-an-email", False),
        (Email(pattern=r"@corp\.example$"), "a@corp.example", True),
        (Email(pattern=r"@corp\.example$"), "a@example.com", False),
        (Min(18), 17, False),
        (Min(18), 18, True),
        (Max(Decimal("9.99")), Decimal("10.00"), False),
        (Max(10), 10.0, True),
        (Positive(), 0, False),
        (Positive(), 0.1, True),
        (Negative(), 0, False),
        (Negative(), -3, True),
    ],
)
def test_builtin_constraints(marker, value, expected):
    assert _passes(marker, value) is expected


@pytest.mark.parametrize("marker", [Min(5), Positive(), Negative()])
def test_numeric_constraints_ignore_non_numbers(marker):
    assert _passes(marker, "not a number")
    assert _passes(marker, True)


def test_size_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        Size(10, 2)


def test_temporal_constraints_on_aware_datetimes():
    now = datetime.now(timezone.utc)
    assert _passes(InFuture(), now + timedelta(hours=1))
    assert not _passes(InFuture(), now - timedelta(hours=1))
    assert _passes(InPast(), now - timedelta(hours=1))
    assert not _passes(InPast(), now + timedelta(hours=1))


def test_temporal_constraints_on_dates():
    today = date.today()
    assert _passes(InFuture(), today + timedelta(days=2))
    assert _passes(InPast(), today - timedelta(days=2))
    assert not _passes(InPast(), today + timedelta(days=2))


def test_naive_datetimes_use_configured_timezone():
    context = ValidationContext(MapEnvironment({TIMEZONE_PROPERTY: "Pacific/Kiritimati"}))
    # UTC+14: a naive UTC wall-clock reading lies well in the past there.
    naive_utc_now = datetime.now(timezone.utc).replace(tzinfo=None)
    assert _passes(InPast(), naive_utc_now, context)
    assert not _passes(InFuture(), naive_utc_now, context)
