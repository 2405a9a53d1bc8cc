# Package exports
from vouch.config import Settings, get_settings
from vouch.logging import (
    configure_logging,
    configure_from_settings,
    get_logger,
    bind_context,
    clear_context,
)
from vouch.validation import (
    DEFAULT_GROUP,
    Group,
    Report,
    Violation,
    ValidationEngine,
    ExecutableValidator,
    ConstraintViolationError,
    MethodArguments,
    get_validator,
    get_executable_validator,
    validated,
    ensure_valid,
)

__version__ = "0.1.0"
