from dataclasses import dataclass
from typing import Annotated, Optional

from vouch.validation import (
    Email,
    MethodArguments,
    NotNull,
    Size,
    get_executable_validator,
    get_validator,
)


@dataclass
class SignUp:
    username: Annotated[str, Size(3, 20)]


@dataclass
class Subscription:
    email: Annotated[Optional[str], Email()]


def deactivate(account_id: Annotated[Optional[int], NotNull()]) -> None:
    pass


def test_short_username_reports_size_violation():
    report = get_validator().validate(SignUp(username="ab"))
    (violation,) = report
    assert violation.property_path == "username"
    assert "3" in violation.message and "20" in violation.message
    assert violation.message == "length must be between 3 and 20"


def test_malformed_email_reports_email_violation():
    (violation,) = get_validator().validate(Subscription(email="not-an-email"))
    assert violation.property_path == "email"
    assert violation.constraint.kind is Email


def test_missing_email_without_presence_constraint_is_valid():
    assert get_validator().validate(Subscription(email=None)).is_valid()


def test_not_null_parameter_end_to_end():
    validator = get_executable_validator()
    assert len(validator.validate_parameters(None, deactivate, MethodArguments.of(None))) == 1
    assert validator.validate_parameters(None, deactivate, MethodArguments.of(42)).is_valid()


def test_process_wide_validators_share_one_engine():
    assert get_executable_validator().engine is get_validator()
