"""
Table session and CRUD operations with dev/prod stage routing.

This module wraps the async Azure Table Storage SDK with an immutable,
builder-style session and routes writes between prod and dev tables.
"""

from azuretackle.table.models import (
    AzureAccount,
    AzureTableConfig,
    CancellationToken,
    OperationResult,
    StorageOption,
    TableProps,
)
from azuretackle.table.entity import RowEntity, SetEntity
from azuretackle.table.connection import (
    AzureConnection,
    TableClientCache,
    TableNameValidator,
    TABLE_CACHE,
    get_and_create_table,
)
from azuretackle.table.routing import OperationKind, resolve_target
from azuretackle.table.operations import (
    connect,
    connect_with_stages,
    connect_from_config,
    use_service_client,
    table,
    with_filter,
    filter_receive,
    get_table,
    find_dev_table,
    receive,
    execute,
    execute_direct,
    insert,
    insert_batch,
    delete,
    delete_batch,
)

__all__ = [
    "AzureAccount",
    "AzureTableConfig",
    "CancellationToken",
    "OperationResult",
    "StorageOption",
    "TableProps",
    "RowEntity",
    "SetEntity",
    "AzureConnection",
    "TableClientCache",
    "TableNameValidator",
    "TABLE_CACHE",
    "get_and_create_table",
    "OperationKind",
    "resolve_target",
    "connect",
    "connect_with_stages",
    "connect_from_config",
    "use_service_client",
    "table",
    "with_filter",
    "filter_receive",
    "get_table",
    "find_dev_table",
    "receive",
    "execute",
    "execute_direct",
    "insert",
    "insert_batch",
    "delete",
    "delete_batch",
]
