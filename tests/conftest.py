"""Shared fixtures for the vouch test-suite.

Settings and the process-wide validators are cached; every test starts from
a clean slate so environment tweaks made with monkeypatch never leak.
"""
from __future__ import annotations

import pytest

from vouch.config import Settings, get_settings
from vouch.validation import ExecutableValidator, ValidationEngine, reset_validators


@pytest.fixture(autouse=True)
def _fresh_state():
    get_settings.cache_clear()
    reset_validators()
    yield
    get_settings.cache_clear()
    reset_validators()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def engine(settings) -> ValidationEngine:
    return ValidationEngine(settings=settings)


@pytest.fixture
def strict_engine() -> ValidationEngine:
    return ValidationEngine(settings=Settings(_env_file=None, STRICT_PROPERTIES=True))


@pytest.fixture
def executable(engine) -> ExecutableValidator:
    return ExecutableValidator(engine)
