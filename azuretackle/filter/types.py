"""
OData EDM literal encoding for Azure Table Storage filters.

Renders Python values into the literal syntax the Table service query
endpoint expects. Every rule is locale-independent, so the same value
always produces the same filter text.

References:
    - OData v3 Primitive Data Types
    - Querying Tables and Entities (Azure Storage REST API)
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict


INT32_MIN = -2147483648
INT32_MAX = 2147483647
INT64_MIN = -9223372036854775808
INT64_MAX = 9223372036854775807


class EdmType(Enum):
    """
    Entity Data Model primitive types understood by the literal encoder.

    STRING doubles as the fallback for any value without a dedicated rule.
    """
    BINARY = "Edm.Binary"
    BOOLEAN = "Edm.Boolean"
    DATETIME = "Edm.DateTime"
    DOUBLE = "Edm.Double"
    GUID = "Edm.Guid"
    INT32 = "Edm.Int32"
    INT64 = "Edm.Int64"
    STRING = "Edm.String"

    def is_numeric(self) -> bool:
        """Check if type is numeric (Int32, Int64, Double)."""
        return self in (EdmType.INT32, EdmType.INT64, EdmType.DOUBLE)


@dataclass(frozen=True)
class TypedValue:
    """
    Value with its EDM type.

    Passing a TypedValue as a comparison value pins the encoding rule,
    e.g. ``TypedValue(5, EdmType.INT64)`` renders ``5L`` where a bare
    ``5`` would render as an Int32.

    Raises:
        TypeError: If value cannot be encoded as edm_type
    """
    value: Any
    edm_type: EdmType

    def __post_init__(self):
        if not _accepts(self.edm_type, self.value):
            raise TypeError(
                f"{type(self.value).__name__} value {self.value!r} cannot be encoded as {self.edm_type.value}"
            )

    def __repr__(self) -> str:
        return f"TypedValue({self.value!r}, {self.edm_type.value})"


def _is_integer(value: Any, low: int, high: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and low <= value <= high


def _is_guid(value: Any) -> bool:
    if isinstance(value, uuid.UUID):
        return True
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def _accepts(edm_type: EdmType, value: Any) -> bool:
    """Check that the encoder for edm_type can render value."""
    if edm_type == EdmType.BINARY:
        return isinstance(value, (bytes, bytearray, memoryview))
    if edm_type == EdmType.BOOLEAN:
        return isinstance(value, bool)
    if edm_type == EdmType.DATETIME:
        return isinstance(value, datetime)
    if edm_type == EdmType.DOUBLE:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if edm_type == EdmType.GUID:
        return _is_guid(value)
    if edm_type == EdmType.INT32:
        return _is_integer(value, INT32_MIN, INT32_MAX)
    if edm_type == EdmType.INT64:
        return _is_integer(value, INT64_MIN, INT64_MAX)
    return True


def infer_type(value: Any) -> EdmType:
    """
    Infer EDM type from Python value.

    Args:
        value: Python value

    Returns:
        Inferred EDM type, STRING for anything unrecognised
    """
    if isinstance(value, TypedValue):
        return value.edm_type
    elif isinstance(value, bool):
        # Must check bool before int (bool is subclass of int)
        return EdmType.BOOLEAN
    elif isinstance(value, int):
        if INT32_MIN <= value <= INT32_MAX:
            return EdmType.INT32
        if INT64_MIN <= value <= INT64_MAX:
            return EdmType.INT64
        # Wider than Edm.Int64: no numeric literal fits
        return EdmType.STRING
    elif isinstance(value, float):
        return EdmType.DOUBLE
    elif isinstance(value, datetime):
        return EdmType.DATETIME
    elif isinstance(value, uuid.UUID):
        return EdmType.GUID
    elif isinstance(value, (bytes, bytearray, memoryview)):
        return EdmType.BINARY
    else:
        return EdmType.STRING


def typed(value: Any) -> TypedValue:
    """Wrap a raw value in a TypedValue, keeping existing TypedValues as-is."""
    if isinstance(value, TypedValue):
        return value
    return TypedValue(value, infer_type(value))


# ========== Encoding Rules ==========

def for_binary(value: Any) -> str:
    return f"X'{bytes(value).hex()}'"


def for_bool(value: Any) -> str:
    return "true" if value else "false"


def for_datetime(value: datetime) -> str:
    """
    Render a datetime as UTC round-trip ISO 8601 with seven fractional digits.

    Naive datetimes carry no offset and are taken as local time.
    """
    if value.tzinfo is None:
        value = value.astimezone()
    utc = value.astimezone(timezone.utc)
    stamp = (
        f"{utc.year:04d}-{utc.month:02d}-{utc.day:02d}"
        f"T{utc.hour:02d}:{utc.minute:02d}:{utc.second:02d}"
        f".{utc.microsecond:06d}0Z"
    )
    return f"datetime'{stamp}'"


def for_double(value: Any) -> str:
    number = float(value)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "INF" if number > 0 else "-INF"
    return repr(number)


def for_guid(value: Any) -> str:
    return f"guid'{str(value).lower()}'"


def for_int(value: Any) -> str:
    return str(int(value))


def for_long(value: Any) -> str:
    return f"{int(value)}L"


def for_any(value: Any) -> str:
    # Embedded quotes are not escaped
    if value is None:
        return "''"
    return f"'{value}'"


ENCODERS: Dict[EdmType, Callable[[Any], str]] = {
    EdmType.BINARY: for_binary,
    EdmType.BOOLEAN: for_bool,
    EdmType.DATETIME: for_datetime,
    EdmType.DOUBLE: for_double,
    EdmType.GUID: for_guid,
    EdmType.INT32: for_int,
    EdmType.INT64: for_long,
    EdmType.STRING: for_any,
}


def encode_literal(value: Any) -> str:
    """
    Encode a value as a filter-query literal.

    Args:
        value: Raw Python value or TypedValue

    Returns:
        Literal text, e.g. ``guid'...'``, ``42L``, ``'Bob'``

    Example:
        >>> encode_literal(True)
        'true'
        >>> encode_literal(b"\\x01\\xff")
        "X'01ff'"
    """
    typed_value = typed(value)
    return ENCODERS[typed_value.edm_type](typed_value.value)
