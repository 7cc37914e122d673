"""
Unit tests for RowEntity and SetEntity.
"""

import uuid
from datetime import datetime, timezone

import pytest
from azure.data.tables import EdmType, EntityProperty, TableEntity

from azuretackle.table import RowEntity, SetEntity


@pytest.fixture
def row():
    entity = TableEntity(
        PartitionKey="eu",
        RowKey="42",
        Name="Bob",
        Age=31,
        Visits=EntityProperty(2 ** 40, EdmType.INT64),
        Score=9.5,
        Active=True,
        Joined=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        Id="12345678-1234-5678-1234-567812345678",
        Avatar=b"\x00\xff",
    )
    return RowEntity(entity)


class TestRowEntity:
    """Tests for reading entity properties."""

    def test_keys(self, row):
        assert row.partition_key == "eu"
        assert row.row_key == "42"

    def test_typed_getters(self, row):
        assert row.get_string("Name") == "Bob"
        assert row.get_int("Age") == 31
        assert row.get_float("Score") == 9.5
        assert row.get_bool("Active") is True
        assert row.get_bytes("Avatar") == b"\x00\xff"

    def test_int64_unwrapped(self, row):
        assert row["Visits"] == 2 ** 40
        assert row.get_int64("Visits") == 2 ** 40

    def test_datetime(self, row):
        assert row.get_datetime("Joined") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_datetime_from_string(self):
        entity = RowEntity({"When": "2024-01-02T03:04:05Z"})
        assert entity.get_datetime("When") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_guid_from_string(self, row):
        assert row.get_guid("Id") == uuid.UUID("12345678-1234-5678-1234-567812345678")

    def test_missing_property(self, row):
        with pytest.raises(KeyError):
            row.get_string("Missing")
        assert row.get("Missing") is None
        assert row.get("Missing", 0) == 0
        assert "Missing" not in row
        assert "Name" in row

    def test_plain_mapping_has_no_metadata(self):
        entity = RowEntity({"PartitionKey": "p", "RowKey": "r"})
        assert entity.metadata == {}
        assert entity.timestamp is None
        assert entity.etag is None

    def test_iterates_property_names(self, row):
        assert "Name" in list(row)


class TestSetEntity:
    """Tests for building entities."""

    def test_keys_set(self):
        entity = SetEntity("eu", "42").to_entity()
        assert isinstance(entity, TableEntity)
        assert entity["PartitionKey"] == "eu"
        assert entity["RowKey"] == "42"

    def test_chaining(self):
        builder = SetEntity("eu", "42")
        assert builder.add("Name", "Bob") is builder
        entity = builder.add("Age", 31).to_entity()
        assert entity["Name"] == "Bob"
        assert entity["Age"] == 31

    def test_add_int64(self):
        entity = SetEntity("eu", "42").add_int64("Visits", 7).to_entity()
        assert entity["Visits"] == EntityProperty(7, EdmType.INT64)

    def test_properties(self):
        builder = SetEntity("eu", "42")
        assert builder.partition_key == "eu"
        assert builder.row_key == "42"

    def test_to_entity_is_a_copy(self):
        builder = SetEntity("eu", "42")
        first = builder.to_entity()
        builder.add("Name", "Bob")
        assert "Name" not in first
