"""
AzureTackle: typed filters and stage-routed CRUD for Azure Table Storage.

Build filter predicates as immutable trees, compile them to the Table
service filter-query syntax, and run queries, upserts, deletes and batch
transactions against a prod table with an optional dev table.
"""

__version__ = "0.1.0"

from .core.config_manager import Stage, TackleConfig, ConfigManager
from .core.exceptions import TackleError, ConfigurationError
from .filter import to_query, parse_filter, EMPTY
from .table import TableProps, OperationResult, CancellationToken

__all__ = [
    "__version__",
    "Stage",
    "TackleConfig",
    "ConfigManager",
    "TackleError",
    "ConfigurationError",
    "to_query",
    "parse_filter",
    "EMPTY",
    "TableProps",
    "OperationResult",
    "CancellationToken",
]
