"""
CRUD operations over Azure Table Storage with dev/prod stage routing.

Every function takes the session ``props`` last so calls read as a chain:

    >>> props = connect(conn_str)
    >>> props = await table("Customers", props)
    >>> result = await execute(read_customer, with_filter(partition_key("eu"), props))

Service failures are captured into an :class:`OperationResult` (except
for ``execute_direct``, which raises). Configuration mistakes always
raise :class:`ConfigurationError` immediately.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional, TypeVar, Union

from azure.core.exceptions import ResourceNotFoundError
from azure.data.tables import TransactionOperation, UpdateMode

from azuretackle.core.config_manager import DEFAULT_PAGE_SIZE, Stage, TackleConfig
from azuretackle.core.exceptions import ConfigurationError, QueryExecutionError
from azuretackle.core.logging_config import setup_logging
from azuretackle.filter.compiler import to_query
from azuretackle.filter.nodes import AzureFilter
from azuretackle.table.connection import (
    AzureConnection,
    TableClientCache,
    get_and_create_table,
)
from azuretackle.table.entity import RowEntity, SetEntity
from azuretackle.table.models import (
    AzureTableConfig,
    CancellationToken,
    OperationResult,
    StorageOption,
    TableProps,
)
from azuretackle.table.routing import (
    OperationKind,
    dev_table,
    prod_table,
    require_storage,
    resolve_target,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
EntityLike = Union[SetEntity, Mapping[str, Any]]


# ========== Session Construction ==========

def _stage(value: Union[Stage, str]) -> Stage:
    """Accept a Stage or its name in any case, like AZURETACKLE_STAGE."""
    if isinstance(value, Stage):
        return value
    return Stage(value.lower())


def _session(
    prod: AzureConnection,
    dev: Optional[AzureConnection],
    stage: Optional[Stage],
    token: Optional[CancellationToken],
    page_size: int,
) -> TableProps:
    storage = StorageOption(
        stage=stage,
        prod_storage=AzureTableConfig(azure_account=prod.connect()),
        dev_storage=AzureTableConfig(azure_account=dev.connect()) if dev is not None else None,
    )
    return TableProps(
        storage_option=storage,
        token=token or CancellationToken(),
        page_size=page_size,
    )


def connect(
    connection_string: str,
    token: Optional[CancellationToken] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> TableProps:
    """Start a session on a single storage account."""
    return _session(AzureConnection.from_connection_string(connection_string), None, None, token, page_size)


def connect_with_stages(
    connection_string_prod: str,
    connection_string_dev: str,
    stage: Union[Stage, str],
    token: Optional[CancellationToken] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> TableProps:
    """Start a session on a prod account with a dev account alongside."""
    return _session(
        AzureConnection.from_connection_string(connection_string_prod),
        AzureConnection.from_connection_string(connection_string_dev),
        _stage(stage),
        token,
        page_size,
    )


def use_service_client(
    prod_client: Any,
    dev_client: Any = None,
    stage: Optional[Union[Stage, str]] = None,
    token: Optional[CancellationToken] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> TableProps:
    """
    Start a session on already constructed async TableServiceClients.

    Raises:
        ConfigurationError: If a dev client is given without a stage or vice versa
    """
    if (dev_client is None) != (stage is None):
        raise ConfigurationError("a dev client and a stage must be given together")
    return _session(
        AzureConnection.from_service_client(prod_client),
        AzureConnection.from_service_client(dev_client) if dev_client is not None else None,
        _stage(stage) if stage is not None else None,
        token,
        page_size,
    )


def connect_from_config(config: TackleConfig, token: Optional[CancellationToken] = None) -> TableProps:
    """
    Start a session from loaded configuration.

    Applies the logging section first, so the session logs at the
    configured level and format.

    Raises:
        ConfigurationError: If no prod connection string is configured
    """
    if not config.prod_connection_string:
        raise ConfigurationError("prod_connection_string is not configured")

    setup_logging(
        level=config.logging.level.value,
        format_type=config.logging.format,
        log_file=config.logging.file,
        rotation_size=config.logging.rotation_size,
        rotation_count=config.logging.rotation_count,
        module_levels=config.logging.module_levels
    )

    if config.is_staged:
        props = connect_with_stages(
            config.prod_connection_string,
            config.dev_connection_string,
            config.stage,
            token,
            config.query.page_size,
        )
    else:
        props = connect(config.prod_connection_string, token, config.query.page_size)

    return props.model_copy(update={"provisioning": config.provisioning})


async def table(
    table_name: str,
    props: TableProps,
    cache: Optional[TableClientCache] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> TableProps:
    """
    Select a table, creating it on every configured account if missing.

    Raises:
        ConfigurationError: If connect() was never called
        TableProvisioningError: If the table could not be created
    """
    storage = require_storage(props)

    prod_account = storage.prod_storage.azure_account
    if prod_account is None:
        raise ConfigurationError("please use connect to initialize the Azure connection")

    async def resolve(account):
        return await get_and_create_table(
            table_name,
            account,
            provisioning=props.provisioning,
            token=props.token,
            cache=cache,
            sleep=sleep,
        )

    prod_storage = storage.prod_storage.model_copy(
        update={"azure_table": await resolve(prod_account), "table_name": table_name}
    )

    dev_storage = storage.dev_storage
    if dev_storage is not None:
        if dev_storage.azure_account is None:
            raise ConfigurationError("please use connect to initialize the Azure backup connection")
        dev_storage = dev_storage.model_copy(
            update={"azure_table": await resolve(dev_storage.azure_account), "table_name": table_name}
        )

    storage = storage.model_copy(update={"prod_storage": prod_storage, "dev_storage": dev_storage})
    return props.model_copy(update={"storage_option": storage})


def with_filter(filter: AzureFilter, props: TableProps) -> TableProps:
    """Attach a filter used by execute / execute_direct."""
    return props.model_copy(update={"filter": filter})


def filter_receive(partition_key: str, row_key: str, props: TableProps) -> TableProps:
    """Attach the keys used by receive."""
    return props.model_copy(update={"filter_receive": (partition_key, row_key)})


def get_table(props: TableProps) -> Any:
    """
    Raises:
        ConfigurationError: If no storage account or no table is set
    """
    if props.storage_option is None:
        raise ConfigurationError("please add a storage account")
    return prod_table(props.storage_option)


def find_dev_table(props: TableProps) -> Optional[Any]:
    if props.storage_option is None:
        return None
    return dev_table(props.storage_option)


# ========== Reads ==========

async def receive(read: Callable[[RowEntity], T], props: TableProps) -> Optional[T]:
    """
    Point lookup by the keys set with filter_receive.

    Returns:
        The projected entity, or None when it does not exist
    """
    table_client = resolve_target(require_storage(props), OperationKind.RECEIVE)

    if props.filter_receive is None:
        raise ConfigurationError("please use filter_receive to set the PartitionKey and RowKey")
    partition_key, row_key = props.filter_receive

    props.token.raise_if_cancelled("receive")
    try:
        entity = await table_client.get_entity(partition_key=partition_key, row_key=row_key)
    except ResourceNotFoundError:
        logger.debug(f"receive: no entity ({partition_key!r}, {row_key!r})")
        return None

    if entity is None:
        return None
    return read(RowEntity(entity))


async def _query(table_client: Any, props: TableProps) -> List[Any]:
    query_filter = to_query(props.filter) if props.filter is not None else None

    props.token.raise_if_cancelled("query")
    if query_filter is None:
        pages = table_client.list_entities(results_per_page=props.page_size)
    else:
        logger.debug(f"query: $filter={query_filter}")
        pages = table_client.query_entities(query_filter, results_per_page=props.page_size)

    entities = []
    async for entity in pages:
        props.token.raise_if_cancelled("query")
        entities.append(entity)
    return entities


async def execute(read: Callable[[RowEntity], T], props: TableProps) -> OperationResult[List[T]]:
    """
    Query the prod table with the attached filter and project every row.

    Returns:
        OperationResult holding the projected rows or the captured failure
    """
    table_client = resolve_target(require_storage(props), OperationKind.QUERY)
    try:
        entities = await _query(table_client, props)
        return OperationResult.success([read(RowEntity(entity)) for entity in entities])
    except Exception as e:
        logger.error(f"execute failed: {e}")
        return OperationResult.failure(e)


async def execute_direct(read: Callable[[RowEntity], T], props: TableProps) -> List[T]:
    """
    Like execute, but raises instead of returning a result.

    Raises:
        QueryExecutionError: On any query or projection failure
    """
    table_client = resolve_target(require_storage(props), OperationKind.QUERY)
    try:
        entities = await _query(table_client, props)
        return [read(RowEntity(entity)) for entity in entities]
    except Exception as e:
        raise QueryExecutionError(e) from e


# ========== Writes ==========

def _as_entity(value: EntityLike) -> Mapping[str, Any]:
    if isinstance(value, SetEntity):
        return value.to_entity()
    return value


async def insert(
    partition_key: str,
    row_key: str,
    set_entity: Callable[[SetEntity], EntityLike],
    props: TableProps,
) -> OperationResult[None]:
    """Upsert one entity (replace mode) into the effective table."""
    table_client = resolve_target(require_storage(props), OperationKind.WRITE)
    if table_client is None:
        return OperationResult.success()

    try:
        entity = _as_entity(set_entity(SetEntity(partition_key, row_key)))
        props.token.raise_if_cancelled("insert")
        await table_client.upsert_entity(entity, mode=UpdateMode.REPLACE)
        return OperationResult.success()
    except Exception as e:
        logger.error(f"insert ({partition_key!r}, {row_key!r}) failed: {e}")
        return OperationResult.failure(e)


async def delete(partition_key: str, row_key: str, props: TableProps) -> OperationResult[None]:
    """Delete one entity; a missing entity counts as success."""
    table_client = resolve_target(require_storage(props), OperationKind.DELETE)
    if table_client is None:
        return OperationResult.success()

    try:
        props.token.raise_if_cancelled("delete")
        await table_client.delete_entity(partition_key=partition_key, row_key=row_key)
        return OperationResult.success()
    except Exception as e:
        logger.error(f"delete ({partition_key!r}, {row_key!r}) failed: {e}")
        return OperationResult.failure(e)


async def _submit_batch(
    items: Iterable[T],
    mapper: Callable[[T], EntityLike],
    props: TableProps,
    kind: OperationKind,
) -> OperationResult[None]:
    table_client = resolve_target(require_storage(props), kind)
    if table_client is None:
        return OperationResult.success()

    try:
        if kind == OperationKind.WRITE:
            actions = [
                (TransactionOperation.UPSERT, _as_entity(mapper(item)), {"mode": UpdateMode.REPLACE})
                for item in items
            ]
        else:
            actions = [(TransactionOperation.DELETE, _as_entity(mapper(item))) for item in items]

        if not actions:
            logger.debug(f"{kind.value} batch: no items, nothing submitted")
            return OperationResult.success()

        props.token.raise_if_cancelled(f"{kind.value}_batch")
        await table_client.submit_transaction(actions)
        logger.debug(f"{kind.value} batch: submitted {len(actions)} action(s)")
        return OperationResult.success()
    except Exception as e:
        logger.error(f"{kind.value} batch failed: {e}")
        return OperationResult.failure(e)


async def insert_batch(
    items: Iterable[T],
    mapper: Callable[[T], EntityLike],
    props: TableProps,
) -> OperationResult[None]:
    """Upsert (replace) all items in one atomic transaction."""
    return await _submit_batch(items, mapper, props, OperationKind.WRITE)


async def delete_batch(
    items: Iterable[T],
    mapper: Callable[[T], EntityLike],
    props: TableProps,
) -> OperationResult[None]:
    """Delete all items in one atomic transaction."""
    return await _submit_batch(items, mapper, props, OperationKind.DELETE)
