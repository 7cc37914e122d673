"""
Filter algebra for Azure Table Storage queries.

Build filters from column comparisons and boolean combinators, then
compile them to the service's filter-query syntax with ``to_query``.
"""

from azuretackle.filter.types import EdmType, TypedValue, encode_literal, infer_type
from azuretackle.filter.nodes import (
    AzureFilter,
    EmptyFilter,
    ColumnFilter,
    BinaryFilter,
    UnaryFilter,
    EMPTY,
    Keys,
    ComparisonOperator,
    BinaryOperation,
    UnaryOperation,
    ColumnComparison,
    LessThan,
    LessThanOrEqual,
    GreaterThan,
    GreaterThanOrEqual,
    Equal,
    NotEqual,
    FilterVisitor,
    column,
    and_,
    or_,
    not_,
    partition_key,
    row_key,
    equal,
    not_equal,
    greater_than,
    less_than,
    greater_than_or_equal,
    less_than_or_equal,
)
from azuretackle.filter.compiler import QueryCompiler, to_query
from azuretackle.filter.parser import FilterParser, parse_filter

__all__ = [
    "EdmType",
    "TypedValue",
    "encode_literal",
    "infer_type",
    "AzureFilter",
    "EmptyFilter",
    "ColumnFilter",
    "BinaryFilter",
    "UnaryFilter",
    "EMPTY",
    "Keys",
    "ComparisonOperator",
    "BinaryOperation",
    "UnaryOperation",
    "ColumnComparison",
    "LessThan",
    "LessThanOrEqual",
    "GreaterThan",
    "GreaterThanOrEqual",
    "Equal",
    "NotEqual",
    "FilterVisitor",
    "column",
    "and_",
    "or_",
    "not_",
    "partition_key",
    "row_key",
    "equal",
    "not_equal",
    "greater_than",
    "less_than",
    "greater_than_or_equal",
    "less_than_or_equal",
    "QueryCompiler",
    "to_query",
    "FilterParser",
    "parse_filter",
]
