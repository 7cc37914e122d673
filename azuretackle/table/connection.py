"""
Storage account connections and table provisioning.

Resolves table clients on a storage account, creating tables on first use
and caching the resulting clients for the lifetime of the process.
"""

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from azure.core.exceptions import AzureError
from azure.data.tables.aio import TableServiceClient

from azuretackle.core.config_manager import ProvisioningConfig
from azuretackle.core.exceptions import (
    ConfigurationError,
    InvalidTableNameError,
    TableProvisioningError,
)
from azuretackle.core.logging_config import redact
from azuretackle.table.models import AzureAccount, CancellationToken

logger = logging.getLogger(__name__)


class TableNameValidator:
    """Validates Azure Table Storage table naming rules."""

    @staticmethod
    def validate(name: str) -> Tuple[bool, Optional[str]]:
        """
        Validate table name against Azure rules.

        Rules:
        - 3-63 characters
        - Alphanumeric only
        - Must start with a letter

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not name:
            return False, "Table name cannot be empty"

        if len(name) < 3 or len(name) > 63:
            return False, f"Table name must be between 3 and 63 characters, got {len(name)}"

        if not re.match(r"^[A-Za-z][A-Za-z0-9]*$", name):
            return False, "Table name must start with a letter and contain only alphanumeric characters"

        return True, None


class AzureConnection:
    """
    How to reach a storage account: a connection string or an existing client.

    Example:
        >>> account = AzureConnection.from_connection_string(conn_str).connect()
    """

    def __init__(self, connection_string: Optional[str] = None, service_client: Any = None):
        if (connection_string is None) == (service_client is None):
            raise ConfigurationError(
                "AzureConnection needs exactly one of connection_string or service_client"
            )
        self._connection_string = connection_string
        self._service_client = service_client

    @classmethod
    def from_connection_string(cls, connection_string: str) -> "AzureConnection":
        return cls(connection_string=connection_string)

    @classmethod
    def from_service_client(cls, service_client: Any) -> "AzureConnection":
        """Use an already constructed async TableServiceClient."""
        return cls(service_client=service_client)

    def connect(self) -> AzureAccount:
        """
        Create the account handle. No network round-trip happens here.

        Raises:
            ConfigurationError: If the connection string is malformed
        """
        if self._service_client is not None:
            return AzureAccount(self._service_client)

        try:
            client = TableServiceClient.from_connection_string(conn_str=self._connection_string)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid connection string '{redact(self._connection_string)}': {e}"
            ) from e

        logger.debug(f"Connected to storage account {getattr(client, 'account_name', '?')}")
        return AzureAccount(client)

    def __repr__(self) -> str:
        if self._service_client is not None:
            return f"AzureConnection(service_client={self._service_client!r})"
        return f"AzureConnection(connection_string={redact(self._connection_string)!r})"


class TableClientCache:
    """
    Process-scoped cache of resolved table clients.

    Populated lazily and never evicted. Keys are (account, lower-cased
    table name); table names are case-insensitive. Insertion is
    first-writer-wins.
    """

    def __init__(self):
        self._clients: Dict[Tuple[str, str], Any] = {}

    @staticmethod
    def _key(account: AzureAccount, table_name: str) -> Tuple[str, str]:
        return account.key, table_name.lower()

    def get(self, account: AzureAccount, table_name: str) -> Optional[Any]:
        return self._clients.get(self._key(account, table_name))

    def add(self, account: AzureAccount, table_name: str, table_client: Any) -> Any:
        """Store a client unless one is already cached; returns the cached one."""
        return self._clients.setdefault(self._key(account, table_name), table_client)

    def clear(self) -> None:
        self._clients.clear()

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, key: Tuple[AzureAccount, str]) -> bool:
        account, table_name = key
        return self._key(account, table_name) in self._clients


TABLE_CACHE = TableClientCache()


async def get_and_create_table(
    table_name: str,
    account: AzureAccount,
    provisioning: Optional[ProvisioningConfig] = None,
    token: Optional[CancellationToken] = None,
    cache: Optional[TableClientCache] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """
    Resolve a table client, creating the table if it does not exist.

    Azure temporarily locks a table name after the table is deleted, so
    creation is retried on a fixed delay until it succeeds or the attempt
    budget runs out.

    Args:
        table_name: Table to resolve
        account: Connected storage account
        provisioning: Retry delay and attempt budget
        token: Cancellation checked before every attempt
        cache: Table client cache (process-wide TABLE_CACHE by default)
        sleep: Awaitable delay, injectable for tests

    Returns:
        Async TableClient for the table

    Raises:
        InvalidTableNameError: If the name violates Azure naming rules
        TableProvisioningError: If every attempt failed
        OperationCancelledError: If the token is cancelled between attempts
    """
    is_valid, error = TableNameValidator.validate(table_name)
    if not is_valid:
        raise InvalidTableNameError(table_name, error)

    cache = TABLE_CACHE if cache is None else cache
    cached = cache.get(account, table_name)
    if cached is not None:
        return cached

    provisioning = provisioning or ProvisioningConfig()
    token = token or CancellationToken()
    service_client = account.service_client

    for attempt in range(1, provisioning.max_attempts + 1):
        token.raise_if_cancelled("create_table")
        try:
            await service_client.create_table_if_not_exists(table_name)
            break
        except AzureError as e:
            if attempt >= provisioning.max_attempts:
                logger.error(
                    f"Could not create table '{table_name}' after {attempt} attempt(s): {e}"
                )
                raise TableProvisioningError(table_name, attempt) from e

            logger.warning(
                f"Table '{table_name}' not available yet "
                f"(attempt {attempt}/{provisioning.max_attempts}), "
                f"retrying in {provisioning.retry_delay}s: {e}"
            )
            await sleep(provisioning.retry_delay)

    table_client = service_client.get_table_client(table_name)
    logger.debug(f"Resolved table '{table_name}' on {account.key}")
    return cache.add(account, table_name, table_client)
