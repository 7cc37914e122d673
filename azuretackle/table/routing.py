"""
Stage routing: which table a call actually touches.

The rule set, kept in one place so it can be audited:

    =========  ==========  ====================================
    kind       stage       effective table
    =========  ==========  ====================================
    QUERY      any         prod
    RECEIVE    any         prod
    WRITE      none        prod
    WRITE      DEV         dev if resolved, else no-op (None)
    WRITE      PROD        dev if resolved, else prod
    =========  ==========  ====================================

DELETE routes like WRITE.
"""

import logging
from enum import Enum
from typing import Any, Optional

from azuretackle.core.config_manager import Stage
from azuretackle.core.exceptions import ConfigurationError
from azuretackle.table.models import StorageOption, TableProps

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    """Kinds of table access with distinct routing."""
    WRITE = "write"
    DELETE = "delete"
    QUERY = "query"
    RECEIVE = "receive"


def require_storage(props: TableProps) -> StorageOption:
    """
    Raises:
        ConfigurationError: If connect() was never called
    """
    if props.storage_option is None:
        raise ConfigurationError("please use connect to initialize the Azure connection")
    return props.storage_option


def prod_table(storage_option: StorageOption) -> Any:
    """
    Raises:
        ConfigurationError: If no table has been resolved on the prod account
    """
    table_client = storage_option.prod_storage.azure_table
    if table_client is None:
        raise ConfigurationError("please add a table")
    return table_client


def dev_table(storage_option: StorageOption) -> Optional[Any]:
    if storage_option.dev_storage is None:
        return None
    return storage_option.dev_storage.azure_table


def resolve_target(storage_option: StorageOption, kind: OperationKind) -> Optional[Any]:
    """
    Pick the effective table for an operation.

    Args:
        storage_option: Session storage (prod, optional dev, stage)
        kind: Kind of access

    Returns:
        Table client to use, or None when the call is a successful no-op

    Raises:
        ConfigurationError: If the required prod table is not resolved
    """
    if kind in (OperationKind.QUERY, OperationKind.RECEIVE):
        return prod_table(storage_option)

    stage = storage_option.stage

    if stage is None:
        return prod_table(storage_option)

    if stage == Stage.DEV:
        target = dev_table(storage_option)
        if target is None:
            logger.debug(f"{kind.value}: stage dev without a dev table, skipping")
        return target

    # Stage.PROD: prod must be resolved even when dev wins
    fallback = prod_table(storage_option)
    target = dev_table(storage_option)
    if target is not None:
        logger.debug(f"{kind.value}: stage prod routed to dev table")
        return target
    return fallback
