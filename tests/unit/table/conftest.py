"""
In-memory stand-ins for the async Azure Table SDK clients.
"""

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

from azuretackle.table import TableClientCache


class FakePager:
    """Async iterator over query results, optionally failing mid-way."""

    def __init__(self, entities, fail_after=None):
        self._entities = list(entities)
        self._fail_after = fail_after

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for index, entity in enumerate(self._entities):
            if self._fail_after is not None and index >= self._fail_after:
                raise HttpResponseError(message="query failed")
            yield entity


class FakeTableClient:
    """Records every call and keeps entities in a dict."""

    def __init__(self, table_name, account_url):
        self.table_name = table_name
        self.account_url = account_url
        self.entities = {}
        self.calls = []
        self.fail_with = None
        self.query_fail_after = None

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    def seed(self, *entities):
        for entity in entities:
            self.entities[(entity["PartitionKey"], entity["RowKey"])] = dict(entity)

    async def upsert_entity(self, entity, mode=None):
        self.calls.append(("upsert", dict(entity), mode))
        self._maybe_fail()
        self.seed(entity)

    async def delete_entity(self, partition_key, row_key):
        self.calls.append(("delete", partition_key, row_key))
        self._maybe_fail()
        self.entities.pop((partition_key, row_key), None)

    async def get_entity(self, partition_key, row_key):
        self.calls.append(("get", partition_key, row_key))
        self._maybe_fail()
        if (partition_key, row_key) not in self.entities:
            raise ResourceNotFoundError(message="The specified resource does not exist.")
        return dict(self.entities[(partition_key, row_key)])

    def query_entities(self, query_filter, results_per_page=None):
        self.calls.append(("query", query_filter, results_per_page))
        self._maybe_fail()
        return FakePager(self.entities.values(), self.query_fail_after)

    def list_entities(self, results_per_page=None):
        self.calls.append(("list", None, results_per_page))
        self._maybe_fail()
        return FakePager(self.entities.values(), self.query_fail_after)

    async def submit_transaction(self, operations):
        operations = list(operations)
        self.calls.append(("transaction", operations))
        self._maybe_fail()
        for operation in operations:
            kind, entity = operation[0], operation[1]
            if kind == "delete":
                self.entities.pop((entity["PartitionKey"], entity["RowKey"]), None)
            else:
                self.seed(entity)


class FakeServiceClient:
    """Table service client whose first create attempts can fail."""

    def __init__(self, url, create_failures=0):
        self.url = url
        self.tables = {}
        self.create_calls = []
        self.create_failures = create_failures

    async def create_table_if_not_exists(self, table_name):
        self.create_calls.append(table_name)
        if self.create_failures:
            self.create_failures -= 1
            raise HttpResponseError(message="TableBeingDeleted")

    def get_table_client(self, table_name):
        if table_name not in self.tables:
            self.tables[table_name] = FakeTableClient(table_name, self.url)
        return self.tables[table_name]


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def cache():
    return TableClientCache()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def prod_service():
    return FakeServiceClient("https://prodaccount.table.core.windows.net")


@pytest.fixture
def dev_service():
    return FakeServiceClient("https://devaccount.table.core.windows.net")


@pytest.fixture
def make_service():
    """Factory for service clients whose first create attempts fail."""
    def factory(url="https://flaky.table.core.windows.net", create_failures=0):
        return FakeServiceClient(url, create_failures)
    return factory
