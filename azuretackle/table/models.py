"""
Session models for AzureTackle table operations.

Defines the immutable records threaded through the builder-style call
chain (connect -> table -> with_filter -> execute), the cooperative
cancellation token and the success-or-failure result of CRUD calls.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from azuretackle.core.config_manager import DEFAULT_PAGE_SIZE, ProvisioningConfig, Stage
from azuretackle.core.exceptions import OperationCancelledError
from azuretackle.filter.nodes import AzureFilter

T = TypeVar("T")


class CancellationToken:
    """
    Cooperative cancellation signal shared by every call of a session.

    Operations check the token before each service round-trip, between
    table-creation attempts and while paging query results.
    """

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        """Signal cancellation."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self, operation: str) -> None:
        """
        Raises:
            OperationCancelledError: If cancel() has been called
        """
        if self._cancelled:
            raise OperationCancelledError(operation)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"


@dataclass(frozen=True)
class AzureAccount:
    """
    Connected storage account.

    Attributes:
        service_client: Async table service client (azure.data.tables.aio)
    """
    service_client: Any

    @property
    def key(self) -> str:
        """Stable identity of the account, used to key the table cache."""
        url = getattr(self.service_client, "url", None)
        return url if url else f"client-{id(self.service_client)}"


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Outcome of a CRUD call: either a value or the captured failure.

    Example:
        >>> result = await execute(read, props)
        >>> if result.ok:
        ...     rows = result.value
    """
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, re-raising the captured failure if there is one."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: Optional[T] = None) -> "OperationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "OperationResult[T]":
        return cls(error=error)


class AzureTableConfig(BaseModel):
    """Storage account plus the table resolved on it."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    azure_table: Optional[Any] = Field(default=None, description="Resolved async TableClient")
    table_name: Optional[str] = None
    azure_account: Optional[AzureAccount] = None


class StorageOption(BaseModel):
    """Prod storage with optional dev storage and the active stage."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    stage: Optional[Stage] = None
    dev_storage: Optional[AzureTableConfig] = None
    prod_storage: AzureTableConfig = Field(default_factory=AzureTableConfig)


class TableProps(BaseModel):
    """
    Per-session options threaded through every operation.

    Instances are immutable; builder functions return updated copies.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    filter: Optional[AzureFilter] = None
    filter_receive: Optional[Tuple[str, str]] = None
    storage_option: Optional[StorageOption] = None
    token: CancellationToken = Field(default_factory=CancellationToken)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    provisioning: ProvisioningConfig = Field(default_factory=ProvisioningConfig)
