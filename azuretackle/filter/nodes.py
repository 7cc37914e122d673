"""
Filter expression tree for Azure Table Storage queries.

A filter is an immutable tree of column comparisons joined by ``and`` /
``or`` and negated by ``not``. Trees are built bottom-up with the
constructor functions or operators below and lowered to filter-query text
by :mod:`azuretackle.filter.compiler`.

Example:
    >>> from azuretackle.filter import equal, greater_than, to_query
    >>> f = equal("Name", "Bob") + greater_than("Age", 5)
    >>> to_query(f)
    "(Name eq 'Bob') and (Age gt 5)"

``EMPTY`` is the identity element: it disappears wherever it is combined,
so ``EMPTY + f`` compiles exactly like ``f``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar


class Keys:
    """System column names every entity carries."""
    PARTITION_KEY = "PartitionKey"
    ROW_KEY = "RowKey"


class ComparisonOperator(Enum):
    """Comparison operators with their filter-query spelling."""
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"
    EQ = "eq"
    NE = "ne"

    def __str__(self) -> str:
        return self.value


class BinaryOperation(Enum):
    """Boolean combinators."""
    AND = "and"
    OR = "or"

    def __str__(self) -> str:
        return self.value


class UnaryOperation(Enum):
    """Boolean negation."""
    NOT = "not"

    def __str__(self) -> str:
        return self.value


# ========== Column Comparisons ==========

@dataclass(frozen=True)
class ColumnComparison:
    """
    Comparison of a column against one literal value.

    Use one of the concrete variants (``Equal(5)``, ``LessThan(x)``, ...);
    the variant decides the operator, the value decides the literal
    encoding.
    """
    value: Any
    operator: ClassVar[ComparisonOperator]

    def __post_init__(self):
        if type(self) is ColumnComparison:
            raise TypeError("ColumnComparison has no operator; use Equal, LessThan, ...")


@dataclass(frozen=True)
class LessThan(ColumnComparison):
    operator: ClassVar[ComparisonOperator] = ComparisonOperator.LT


@dataclass(frozen=True)
class LessThanOrEqual(ColumnComparison):
    operator: ClassVar[ComparisonOperator] = ComparisonOperator.LE


@dataclass(frozen=True)
class GreaterThan(ColumnComparison):
    operator: ClassVar[ComparisonOperator] = ComparisonOperator.GT


@dataclass(frozen=True)
class GreaterThanOrEqual(ColumnComparison):
    operator: ClassVar[ComparisonOperator] = ComparisonOperator.GE


@dataclass(frozen=True)
class Equal(ColumnComparison):
    operator: ClassVar[ComparisonOperator] = ComparisonOperator.EQ


@dataclass(frozen=True)
class NotEqual(ColumnComparison):
    operator: ClassVar[ComparisonOperator] = ComparisonOperator.NE


COMPARISONS = {
    ComparisonOperator.LT: LessThan,
    ComparisonOperator.LE: LessThanOrEqual,
    ComparisonOperator.GT: GreaterThan,
    ComparisonOperator.GE: GreaterThanOrEqual,
    ComparisonOperator.EQ: Equal,
    ComparisonOperator.NE: NotEqual,
}


# ========== Filter Tree ==========

class AzureFilter(ABC):
    """
    Base class for all filter nodes.

    Operators build new trees and never mutate their operands:
    ``a + b`` / ``a & b`` is ``and``, ``a * b`` / ``a | b`` is ``or``,
    ``~a`` is ``not``.
    """

    @abstractmethod
    def accept(self, visitor: 'FilterVisitor') -> Any:
        """Accept visitor for traversal (visitor pattern)."""

    def __add__(self, other: 'AzureFilter') -> 'BinaryFilter':
        return BinaryFilter(self, BinaryOperation.AND, other)

    def __mul__(self, other: 'AzureFilter') -> 'BinaryFilter':
        return BinaryFilter(self, BinaryOperation.OR, other)

    __and__ = __add__
    __or__ = __mul__

    def __invert__(self) -> 'UnaryFilter':
        return UnaryFilter(UnaryOperation.NOT, self)


@dataclass(frozen=True)
class EmptyFilter(AzureFilter):
    """Identity element; compiles to nothing."""

    def accept(self, visitor: 'FilterVisitor') -> Any:
        return visitor.visit_empty(self)

    def __str__(self) -> str:
        return "Empty"


@dataclass(frozen=True)
class ColumnFilter(AzureFilter):
    """
    Leaf predicate on a named column.

    Attributes:
        name: Column (property) name
        comparison: Operator variant carrying the literal value
    """
    name: str
    comparison: ColumnComparison

    def accept(self, visitor: 'FilterVisitor') -> Any:
        return visitor.visit_column(self)

    def __str__(self) -> str:
        return f"Column({self.name} {self.comparison.operator} {self.comparison.value!r})"


@dataclass(frozen=True)
class BinaryFilter(AzureFilter):
    """
    Boolean combination of two filters.

    Attributes:
        left: Left operand
        operation: AND or OR
        right: Right operand
    """
    left: AzureFilter
    operation: BinaryOperation
    right: AzureFilter

    def accept(self, visitor: 'FilterVisitor') -> Any:
        return visitor.visit_binary(self)

    def __str__(self) -> str:
        return f"Binary({self.left} {self.operation} {self.right})"


@dataclass(frozen=True)
class UnaryFilter(AzureFilter):
    """
    Negation of a filter.

    Attributes:
        operation: NOT
        operand: Negated filter
    """
    operation: UnaryOperation
    operand: AzureFilter

    def accept(self, visitor: 'FilterVisitor') -> Any:
        return visitor.visit_unary(self)

    def __str__(self) -> str:
        return f"Unary({self.operation} {self.operand})"


EMPTY = EmptyFilter()


class FilterVisitor(ABC):
    """
    Abstract base class for filter tree visitors.

    Implement this interface to traverse and process filter nodes.
    """

    @abstractmethod
    def visit_empty(self, node: EmptyFilter) -> Any:
        """Visit empty node."""

    @abstractmethod
    def visit_column(self, node: ColumnFilter) -> Any:
        """Visit column comparison node."""

    @abstractmethod
    def visit_binary(self, node: BinaryFilter) -> Any:
        """Visit and/or node."""

    @abstractmethod
    def visit_unary(self, node: UnaryFilter) -> Any:
        """Visit not node."""


# ========== Constructors ==========

def column(name: str, comparison: ColumnComparison) -> ColumnFilter:
    """Create a filter condition for a column."""
    return ColumnFilter(name, comparison)


def and_(left: AzureFilter, right: AzureFilter) -> BinaryFilter:
    return BinaryFilter(left, BinaryOperation.AND, right)


def or_(left: AzureFilter, right: AzureFilter) -> BinaryFilter:
    return BinaryFilter(left, BinaryOperation.OR, right)


def not_(operand: AzureFilter) -> UnaryFilter:
    return UnaryFilter(UnaryOperation.NOT, operand)


def partition_key(value: str) -> ColumnFilter:
    """Filter on PartitionKey equals."""
    return column(Keys.PARTITION_KEY, Equal(value))


def row_key(value: str) -> ColumnFilter:
    """Filter on RowKey equals."""
    return column(Keys.ROW_KEY, Equal(value))


def equal(name: str, value: Any) -> ColumnFilter:
    """Filter on column value equals."""
    return column(name, Equal(value))


def not_equal(name: str, value: Any) -> ColumnFilter:
    """Filter on column value not equals."""
    return column(name, NotEqual(value))


def greater_than(name: str, value: Any) -> ColumnFilter:
    return column(name, GreaterThan(value))


def less_than(name: str, value: Any) -> ColumnFilter:
    return column(name, LessThan(value))


def greater_than_or_equal(name: str, value: Any) -> ColumnFilter:
    return column(name, GreaterThanOrEqual(value))


def less_than_or_equal(name: str, value: Any) -> ColumnFilter:
    return column(name, LessThanOrEqual(value))
