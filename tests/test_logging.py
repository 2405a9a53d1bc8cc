import json
import logging
from dataclasses import dataclass
from typing import Annotated

import pytest
import structlog
from structlog.testing import capture_logs

from vouch.logging import (
    LoggerRegistry,
    _censor_sensitive_keys,
    _summarize_reports,
    configure_from_settings,
    configure_logging,
    engine_logger,
    get_logger,
    interceptor_logger,
)
from vouch.validation import ConstraintViolationError, NotBlank, Size, get_validator, validated


@dataclass
class Credentials:
    username: Annotated[str, NotBlank(), Size(3, 20)]


@validated()
def login(username: Annotated[str, NotBlank()]) -> None:
    pass


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()
    root = logging.getLogger("vouch")
    root.handlers = []
    root.propagate = True
    root.setLevel(logging.NOTSET)


def test_reports_render_as_path_to_messages():
    report = get_validator().validate(Credentials(username=" "))
    event = _summarize_reports(None, "warning", {"event": "rejected", "report": report})
    assert event["report"] == {"username": ["length must be between 3 and 20", "must not be blank"]}


def test_sensitive_keys_are_redacted():
    event = _censor_sensitive_keys(None, "info", {"event": "x", "password": "hunter2", "nested": {"token": "t"}})
    assert event["password"] == "[REDACTED]"
    assert event["nested"]["token"] == "[REDACTED]"


def test_subsystem_loggers_are_shared():
    assert engine_logger() is engine_logger()
    assert interceptor_logger() is not engine_logger()


def test_rejected_invocations_are_logged():
    with capture_logs() as logs:
        with pytest.raises(ConstraintViolationError):
            login("")
    (entry,) = [e for e in logs if e["event"] == "invocation_rejected"]
    assert entry["stage"] == "parameters"
    assert entry["violation_count"] == 1
    assert entry["log_level"] == "warning"


def test_json_logging_renders_reports(capsys, reset_structlog):
    report = get_validator().validate(Credentials(username="ab"))
    configure_logging(level="DEBUG", json_logs=True)
    get_logger("vouch.test").warning("signup_rejected", report=report)

    line = capsys.readouterr().out.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["event"] == "signup_rejected"
    assert payload["report"] == {"username": ["length must be between 3 and 20"]}
    assert payload["library"] == "vouch"


def test_registry_rejects_unknown_subsystems():
    with pytest.raises(ValueError):
        LoggerRegistry.get("network")


def test_configure_from_settings(monkeypatch, reset_structlog):
    monkeypatch.setenv("VOUCH_LOG_LEVEL", "debug")
    monkeypatch.setenv("VOUCH_LOG_JSON", "true")
    configure_from_settings()

    root = logging.getLogger("vouch")
    assert root.level == logging.DEBUG
    assert root.propagate is False
    (handler,) = root.handlers
    assert isinstance(handler.formatter.processors[-1], structlog.processors.JSONRenderer)
