"""
AzureTackle Exception Hierarchy

Exception types for filter construction, table provisioning and CRUD
operations, with error codes and context.
"""

from typing import Optional, Dict, Any


class TackleError(Exception):
    """
    Base exception for all AzureTackle errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., 'ConfigurationError')
        details: Additional context (table_name, attempts, etc.)
    """

    error_code: str = "TackleError"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format for structured logging."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# ========== Programmer Errors ==========

class ConfigurationError(TackleError):
    """
    Raised when the session is used before it is fully configured.

    Missing storage account, unresolved table or missing point-lookup keys.
    These are never retried and never captured into an OperationResult.
    """
    error_code = "ConfigurationError"


class InvalidTableNameError(ConfigurationError):
    """Raised when a table name violates Azure naming rules."""
    error_code = "InvalidTableName"

    def __init__(self, table_name: str, reason: str):
        super().__init__(
            f"Invalid table name '{table_name}': {reason}",
            details={"table_name": table_name}
        )


# ========== Service Errors ==========

class TableProvisioningError(TackleError):
    """Raised when a table cannot be created or attached."""
    error_code = "TableProvisioningFailed"

    def __init__(self, table_name: str, attempts: int, message: Optional[str] = None):
        message = message or f"Could not get a table '{table_name}' after {attempts} attempt(s)"
        details = {"table_name": table_name, "attempts": attempts}
        super().__init__(message, details=details)


class OperationCancelledError(TackleError):
    """Raised when a cancellation token is signalled before a service call."""
    error_code = "OperationCancelled"

    def __init__(self, operation: str):
        super().__init__(
            f"Operation '{operation}' was cancelled",
            details={"operation": operation}
        )


class QueryExecutionError(TackleError):
    """Raised by execute_direct when the query fails for any reason."""
    error_code = "QueryExecutionFailed"

    def __init__(self, cause: BaseException):
        super().__init__(
            f"ExecuteDirect failed with exn: {cause}",
            details={"error_type": type(cause).__name__}
        )


# ========== Filter Errors ==========

class FilterSyntaxError(TackleError):
    """
    Raised when a filter-query string cannot be tokenized or parsed.

    Carries the source position (line, column) of the offending input.
    """
    error_code = "FilterSyntaxError"

    def __init__(self, message: str, line: int, column: int, suggestion: Optional[str] = None):
        self.line = line
        self.column = column
        self.suggestion = suggestion
        text = f"Syntax Error at line {line}, column {column}: {message}"
        if suggestion:
            text += f"\n  Suggestion: {suggestion}"
        super().__init__(
            text,
            details={"line": line, "column": column}
        )
