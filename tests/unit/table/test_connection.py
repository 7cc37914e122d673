"""
Unit tests for account connections, table provisioning and the client cache.
"""

import logging

import pytest
from azure.core.exceptions import HttpResponseError

from azuretackle.core.config_manager import ConfigManager, ProvisioningConfig, Stage
from azuretackle.core.exceptions import (
    ConfigurationError,
    InvalidTableNameError,
    OperationCancelledError,
    TableProvisioningError,
)
from azuretackle.core.logging_config import JSONFormatter, TextFormatter
from azuretackle.table import (
    AzureAccount,
    AzureConnection,
    CancellationToken,
    TableNameValidator,
    connect,
    connect_from_config,
    get_and_create_table,
    table,
    use_service_client,
)

AZURITE = (
    "DefaultEndpointsProtocol=http;AccountName=devstoreaccount1;"
    "AccountKey=Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFq2UVErCz4I6tq/K1SZFPTOtr/KBHBeksoGMGw==;"
    "TableEndpoint=http://127.0.0.1:10002/devstoreaccount1;"
)


class TestTableNameValidator:
    """Tests for Azure table naming rules."""

    @pytest.mark.parametrize("name", ["abc", "Customers", "orders2024", "a" * 63])
    def test_valid(self, name):
        assert TableNameValidator.validate(name) == (True, None)

    @pytest.mark.parametrize("name", ["", "ab", "a" * 64, "1table", "my-table", "my_table"])
    def test_invalid(self, name):
        is_valid, error = TableNameValidator.validate(name)
        assert not is_valid
        assert error


class TestAzureConnection:
    """Tests for connection handles."""

    def test_requires_exactly_one_source(self, prod_service):
        with pytest.raises(ConfigurationError):
            AzureConnection()
        with pytest.raises(ConfigurationError):
            AzureConnection(connection_string=AZURITE, service_client=prod_service)

    def test_service_client_used_as_is(self, prod_service):
        account = AzureConnection.from_service_client(prod_service).connect()
        assert account.service_client is prod_service
        assert account.key == prod_service.url

    def test_connect_from_connection_string(self):
        props = connect(AZURITE)
        assert props.storage_option.prod_storage.azure_account is not None
        assert props.storage_option.stage is None

    def test_malformed_connection_string(self):
        with pytest.raises(ConfigurationError):
            AzureConnection.from_connection_string("not a connection string").connect()

    def test_repr_hides_account_key(self):
        text = repr(AzureConnection.from_connection_string(AZURITE))
        assert "Eby8vdM02" not in text
        assert "devstoreaccount1" in text

    def test_account_key_without_url(self):
        client = object()
        assert AzureAccount(client).key == f"client-{id(client)}"


class TestGetAndCreateTable:
    """Tests for table provisioning with retry."""

    @pytest.mark.asyncio
    async def test_creates_and_caches(self, prod_service, cache, sleep):
        account = AzureAccount(prod_service)

        first = await get_and_create_table("Customers", account, cache=cache, sleep=sleep)
        second = await get_and_create_table("Customers", account, cache=cache, sleep=sleep)

        assert first is second
        assert prod_service.create_calls == ["Customers"]
        assert (account, "Customers") in cache

    @pytest.mark.asyncio
    async def test_cache_ignores_name_case(self, prod_service, cache, sleep):
        account = AzureAccount(prod_service)

        await get_and_create_table("Customers", account, cache=cache, sleep=sleep)
        await get_and_create_table("CUSTOMERS", account, cache=cache, sleep=sleep)

        assert len(prod_service.create_calls) == 1
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_retries_until_created(self, make_service, cache, sleep, caplog):
        service = make_service(create_failures=2)

        with caplog.at_level(logging.WARNING):
            client = await get_and_create_table("Orders", AzureAccount(service), cache=cache, sleep=sleep)

        assert client is service.tables["Orders"]
        assert service.create_calls == ["Orders"] * 3
        assert sleep.delays == [5.0, 5.0]
        assert "attempt 1/120" in caplog.text

    @pytest.mark.asyncio
    async def test_custom_retry_delay(self, make_service, cache, sleep):
        service = make_service(create_failures=1)
        provisioning = ProvisioningConfig(retry_delay=0.5, max_attempts=3)

        await get_and_create_table("Orders", AzureAccount(service), provisioning, cache=cache, sleep=sleep)

        assert sleep.delays == [0.5]

    @pytest.mark.asyncio
    async def test_budget_exhausted(self, make_service, cache, sleep):
        service = make_service(create_failures=10)
        provisioning = ProvisioningConfig(retry_delay=1.0, max_attempts=3)

        with pytest.raises(TableProvisioningError) as exc_info:
            await get_and_create_table("Orders", AzureAccount(service), provisioning, cache=cache, sleep=sleep)

        assert exc_info.value.details == {"table_name": "Orders", "attempts": 3}
        assert isinstance(exc_info.value.__cause__, HttpResponseError)
        assert len(service.create_calls) == 3
        assert sleep.delays == [1.0, 1.0]
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_invalid_name_not_sent(self, prod_service, cache, sleep):
        with pytest.raises(InvalidTableNameError):
            await get_and_create_table("my-table", AzureAccount(prod_service), cache=cache, sleep=sleep)
        assert prod_service.create_calls == []

    @pytest.mark.asyncio
    async def test_cancelled_before_first_attempt(self, prod_service, cache, sleep):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            await get_and_create_table(
                "Customers", AzureAccount(prod_service), token=token, cache=cache, sleep=sleep
            )
        assert prod_service.create_calls == []

    @pytest.mark.asyncio
    async def test_cancelled_between_attempts(self, make_service, cache):
        service = make_service(create_failures=5)
        token = CancellationToken()

        async def cancel_on_sleep(delay):
            token.cancel()

        with pytest.raises(OperationCancelledError):
            await get_and_create_table(
                "Orders", AzureAccount(service), token=token, cache=cache, sleep=cancel_on_sleep
            )
        assert len(service.create_calls) == 1


class TestTableSelection:
    """Tests for table() across prod and dev accounts."""

    @pytest.mark.asyncio
    async def test_same_name_kept_apart_per_account(self, prod_service, dev_service, cache, sleep):
        props = await table("Customers", use_service_client(prod_service, dev_service, "prod"), cache=cache, sleep=sleep)

        prod = props.storage_option.prod_storage.azure_table
        dev = props.storage_option.dev_storage.azure_table
        assert prod is not dev
        assert prod.account_url == prod_service.url
        assert dev.account_url == dev_service.url
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_second_selection_uses_cache(self, prod_service, cache, sleep):
        props = use_service_client(prod_service)
        await table("Customers", props, cache=cache, sleep=sleep)
        await table("Customers", props, cache=cache, sleep=sleep)
        assert prod_service.create_calls == ["Customers"]

    @pytest.mark.asyncio
    async def test_switching_tables(self, prod_service, cache, sleep):
        props = await table("Customers", use_service_client(prod_service), cache=cache, sleep=sleep)
        props = await table("Orders", props, cache=cache, sleep=sleep)
        assert props.storage_option.prod_storage.table_name == "Orders"
        assert props.storage_option.prod_storage.azure_table is prod_service.tables["Orders"]

    @pytest.mark.asyncio
    async def test_session_provisioning_settings_used(self, make_service, cache, sleep):
        service = make_service(create_failures=10)
        props = use_service_client(service).model_copy(
            update={"provisioning": ProvisioningConfig(retry_delay=2.0, max_attempts=2)}
        )

        with pytest.raises(TableProvisioningError):
            await table("Customers", props, cache=cache, sleep=sleep)
        assert sleep.delays == [2.0]


@pytest.fixture
def config_env(monkeypatch):
    for name in (
        "AZURETACKLE_DEV_CONNECTION_STRING",
        "AZURETACKLE_STAGE",
        "AZURETACKLE_PAGE_SIZE",
        "AZURETACKLE_LOG_LEVEL",
        "AZURETACKLE_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AZURETACKLE_PROD_CONNECTION_STRING", AZURITE)

    root_logger = logging.getLogger()
    handlers, level = list(root_logger.handlers), root_logger.level
    yield monkeypatch
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


class TestConnectFromConfig:
    """Tests for sessions started from loaded configuration."""

    def test_logging_settings_applied(self, config_env):
        config_env.setenv("AZURETACKLE_LOG_LEVEL", "debug")
        config_env.setenv("AZURETACKLE_LOG_FORMAT", "text")

        connect_from_config(ConfigManager().load())

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert isinstance(root_logger.handlers[0].formatter, TextFormatter)

    def test_default_logging_is_json_info(self, config_env):
        connect_from_config(ConfigManager().load())

        root_logger = logging.getLogger()
        assert root_logger.level == logging.INFO
        assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)

    def test_session_settings_copied(self, config_env):
        config_env.setenv("AZURETACKLE_DEV_CONNECTION_STRING", AZURITE)
        config_env.setenv("AZURETACKLE_STAGE", "Prod")
        config_env.setenv("AZURETACKLE_PAGE_SIZE", "200")

        config = ConfigManager().load(overrides={"provisioning": {"max_attempts": 7}})
        props = connect_from_config(config)

        assert props.storage_option.stage == Stage.PROD
        assert props.storage_option.dev_storage is not None
        assert props.page_size == 200
        assert props.provisioning.max_attempts == 7

    def test_missing_prod_connection(self, config_env):
        config_env.delenv("AZURETACKLE_PROD_CONNECTION_STRING")

        with pytest.raises(ConfigurationError, match="prod_connection_string"):
            connect_from_config(ConfigManager().load())
