"""
Entity helpers for reading and writing Azure Table Storage rows.

RowEntity wraps a raw entity returned by the SDK with typed getters;
SetEntity builds the entity passed to upsert and batch operations.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Iterator, Mapping, Optional

from azure.data.tables import EdmType as SdkEdmType, EntityProperty, TableEntity

from azuretackle.filter.nodes import Keys


_MISSING = object()


def _unwrap(value: Any) -> Any:
    # Int64 and explicitly typed properties come back as EntityProperty
    if isinstance(value, EntityProperty):
        return value.value
    return value


class RowEntity:
    """
    Read-only view of an entity returned by a query or point lookup.

    Typed getters raise KeyError for a missing property so reader
    callbacks fail loudly on schema drift.
    """

    def __init__(self, entity: Mapping[str, Any]):
        self._entity = entity

    @property
    def raw(self) -> Mapping[str, Any]:
        return self._entity

    @property
    def partition_key(self) -> str:
        return self._entity[Keys.PARTITION_KEY]

    @property
    def row_key(self) -> str:
        return self._entity[Keys.ROW_KEY]

    @property
    def metadata(self) -> Dict[str, Any]:
        return dict(getattr(self._entity, "metadata", None) or {})

    @property
    def timestamp(self) -> Optional[datetime]:
        return self.metadata.get("timestamp")

    @property
    def etag(self) -> Optional[str]:
        return self.metadata.get("etag")

    def __getitem__(self, name: str) -> Any:
        return _unwrap(self._entity[name])

    def __contains__(self, name: object) -> bool:
        return name in self._entity

    def __iter__(self) -> Iterator[str]:
        return iter(self._entity)

    def get(self, name: str, default: Any = None) -> Any:
        value = self._entity.get(name, _MISSING)
        if value is _MISSING:
            return default
        return _unwrap(value)

    def get_string(self, name: str) -> str:
        return str(self[name])

    def get_int(self, name: str) -> int:
        return int(self[name])

    def get_int64(self, name: str) -> int:
        return int(self[name])

    def get_float(self, name: str) -> float:
        return float(self[name])

    def get_bool(self, name: str) -> bool:
        return bool(self[name])

    def get_datetime(self, name: str) -> datetime:
        value = self[name]
        if isinstance(value, str):
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        return value

    def get_guid(self, name: str) -> uuid.UUID:
        value = self[name]
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))

    def get_bytes(self, name: str) -> bytes:
        return bytes(self[name])

    def __repr__(self) -> str:
        return f"RowEntity({dict(self._entity)!r})"


class SetEntity:
    """
    Builder for the entity written by insert and batch operations.

    Example:
        >>> entity = (
        ...     SetEntity("customers", "42")
        ...     .add("Name", "Bob")
        ...     .add_int64("Visits", 12)
        ...     .to_entity()
        ... )
    """

    def __init__(self, partition_key: str, row_key: str):
        self._properties: Dict[str, Any] = {
            Keys.PARTITION_KEY: partition_key,
            Keys.ROW_KEY: row_key,
        }

    @property
    def partition_key(self) -> str:
        return self._properties[Keys.PARTITION_KEY]

    @property
    def row_key(self) -> str:
        return self._properties[Keys.ROW_KEY]

    def add(self, name: str, value: Any) -> "SetEntity":
        """Set a property; returns self for chaining."""
        self._properties[name] = value
        return self

    def add_int64(self, name: str, value: int) -> "SetEntity":
        """Set a property stored as Edm.Int64 regardless of magnitude."""
        self._properties[name] = EntityProperty(int(value), SdkEdmType.INT64)
        return self

    def to_entity(self) -> TableEntity:
        return TableEntity(**self._properties)

    def __repr__(self) -> str:
        return f"SetEntity({self._properties!r})"
