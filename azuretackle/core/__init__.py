"""Core module initialization."""

from .config_manager import (
    ConfigManager,
    TackleConfig,
    Stage,
    QueryConfig,
    ProvisioningConfig,
    LoggingConfig,
    DEFAULT_PAGE_SIZE,
)
from .logging_config import setup_logging, get_logger, log_with_context, redact
from .exceptions import (
    TackleError,
    ConfigurationError,
    InvalidTableNameError,
    TableProvisioningError,
    OperationCancelledError,
    QueryExecutionError,
    FilterSyntaxError,
)

__all__ = [
    "ConfigManager",
    "TackleConfig",
    "Stage",
    "QueryConfig",
    "ProvisioningConfig",
    "LoggingConfig",
    "DEFAULT_PAGE_SIZE",
    "setup_logging",
    "get_logger",
    "log_with_context",
    "redact",
    "TackleError",
    "ConfigurationError",
    "InvalidTableNameError",
    "TableProvisioningError",
    "OperationCancelledError",
    "QueryExecutionError",
    "FilterSyntaxError",
]
