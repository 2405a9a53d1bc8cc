"""Structured logging for vouch.

vouch logs through structlog and never configures anything on import: its
subsystem loggers (`vouch.engine`, `vouch.metadata`, `vouch.interceptor`)
emit snake_case events with keyword context, and the host application
decides where they go. configure_logging() is the batteries-included
option: console output while developing, JSON lines in production.

Two processors keep validation data tidy in either mode:

- Report values are summarised as {path: [messages]}, so the invalid
  values themselves never reach the sink.
- Keys that look like credentials are redacted at any nesting depth.
"""
import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

_REDACTED = "[REDACTED]"
_SENSITIVE_KEYS = frozenset({"password", "token", "secret", "authorization", "cookie", "invalid_value"})
_MAX_REDACTION_DEPTH = 5

_SUBSYSTEMS = ("engine", "metadata", "interceptor")


# ============================================================================
# Processors
# ============================================================================

def _redact(value: Any, depth: int = 0) -> Any:
    if depth > _MAX_REDACTION_DEPTH:
        return value
    if isinstance(value, dict):
        return {
            key: _REDACTED if str(key).lower() in _SENSITIVE_KEYS else _redact(item, depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact(item, depth + 1) for item in value]
    return value


def _censor_sensitive_keys(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    return _redact(event_dict)


def _summarize_reports(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    from vouch.validation.report import Report

    for key, value in event_dict.items():
        if not isinstance(value, Report):
            continue
        summary: dict[str, list[str]] = {}
        for violation in value:
            summary.setdefault(violation.property_path, []).append(violation.message)
        event_dict[key] = summary
    return event_dict


def _add_library_info(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("library", "vouch")
    return event_dict


def get_shared_processors() -> list[Processor]:
    """Processors run for structlog events and foreign stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_library_info,
        _summarize_reports,
        _censor_sensitive_keys,
    ]


# ============================================================================
# Configuration
# ============================================================================

def _renderer(json_logs: bool) -> Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Route vouch's events to stdout.

    Args:
        level: Threshold for the `vouch` logger tree (DEBUG, INFO, ...).
        json_logs: Emit one JSON object per line instead of console output.
    """
    shared = get_shared_processors()
    structlog.configure(
        processors=[
            *shared,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(json_logs)],
        )
    )

    root = logging.getLogger("vouch")
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False


def configure_from_settings() -> None:
    """configure_logging() driven by VOUCH_LOG_LEVEL and VOUCH_LOG_JSON."""
    from vouch.config import get_settings

    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)


# ============================================================================
# Loggers
# ============================================================================

def get_logger(name: str = "vouch") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Attach key/value pairs to every event logged from the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LoggerRegistry:
    """One shared logger per vouch subsystem, named `vouch.<subsystem>`."""

    _loggers: dict[str, structlog.stdlib.BoundLogger] = {}

    @classmethod
    def get(cls, subsystem: str) -> structlog.stdlib.BoundLogger:
        if subsystem not in _SUBSYSTEMS:
            raise ValueError(f"Unknown vouch subsystem: {subsystem!r}")
        return cls._loggers.setdefault(subsystem, get_logger(f"vouch.{subsystem}"))


def engine_logger() -> structlog.stdlib.BoundLogger:
    """Object, property and cascade events."""
    return LoggerRegistry.get("engine")


def metadata_logger() -> structlog.stdlib.BoundLogger:
    """Introspection and constraint resolution events."""
    return LoggerRegistry.get("metadata")


def interceptor_logger() -> structlog.stdlib.BoundLogger:
    """Parameter and return-value interception events."""
    return LoggerRegistry.get("interceptor")
