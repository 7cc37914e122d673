"""
Filter tree to filter-query string compiler.

Lowers an :class:`~azuretackle.filter.nodes.AzureFilter` into the textual
predicate accepted by the Table service ``$filter`` parameter:

    clause := "" | "<field> <op> <literal>"
            | "(" clause ") " bool " (" clause ")"
            | "not (" clause ")"

Empty sub-trees are elided together with the operator that joins them,
so the output never contains a dangling ``and`` / ``or`` / ``not``.
"""

from typing import Optional

from .nodes import (
    AzureFilter,
    BinaryFilter,
    ColumnFilter,
    EmptyFilter,
    FilterVisitor,
    UnaryFilter,
)
from .types import encode_literal


class QueryCompiler(FilterVisitor):
    """
    Visitor producing filter-query text; ``""`` stands for "no filter".

    Stateless, so one instance can be shared freely.
    """

    def compile(self, node: AzureFilter) -> str:
        return node.accept(self)

    def visit_empty(self, node: EmptyFilter) -> str:
        return ""

    def visit_column(self, node: ColumnFilter) -> str:
        comparison = node.comparison
        return f"{node.name} {comparison.operator.value} {encode_literal(comparison.value)}"

    def visit_binary(self, node: BinaryFilter) -> str:
        left = node.left.accept(self)
        right = node.right.accept(self)

        if not left:
            return right
        if not right:
            return left
        return f"({left}) {node.operation.value} ({right})"

    def visit_unary(self, node: UnaryFilter) -> str:
        operand = node.operand.accept(self)
        if not operand:
            return ""
        return f"{node.operation.value} ({operand})"


_compiler = QueryCompiler()


def to_query(node: AzureFilter) -> Optional[str]:
    """
    Compile a filter tree.

    Args:
        node: Filter tree

    Returns:
        Filter-query string, or None when the tree reduces to nothing and
        the filter clause should be omitted entirely
    """
    query = _compiler.compile(node)
    return query or None
