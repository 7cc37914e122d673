"""
Recursive descent parser turning filter-query strings back into filter trees.

The inverse of :mod:`azuretackle.filter.compiler`: useful for validating
hand-written filters and for checking that compiled literals read back as
the values they were built from.

Grammar (EBNF):
    filter_expression = [ or_expression ]
    or_expression = and_expression { "or" and_expression }
    and_expression = unary_expression { "and" unary_expression }
    unary_expression = "not" unary_expression | primary_expression
    primary_expression = comparison | "(" or_expression ")"
    comparison = identifier comp_op literal

Example:
    >>> parse_filter("(Name eq 'Bob') and (Age gt 5)")
    BinaryFilter(left=ColumnFilter(name='Name', ...), operation=<BinaryOperation.AND: 'and'>, ...)
"""

import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, List

from .lexer import FilterLexer, Token, TokenType, syntax_error
from .nodes import (
    AzureFilter,
    BinaryFilter,
    BinaryOperation,
    COMPARISONS,
    ColumnFilter,
    ComparisonOperator,
    EMPTY,
    UnaryFilter,
    UnaryOperation,
)
from .types import INT32_MAX, INT32_MIN, INT64_MAX, INT64_MIN, EdmType, TypedValue


_DATETIME_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})"
    r"(?:T(\d{2}):(\d{2})(?::(\d{2})(?:\.(\d{1,7}))?)?)?"
    r"(Z|[+-]\d{2}:\d{2})?$"
)


def decode_datetime(text: str) -> datetime:
    """
    Decode the body of a datetime'...' literal into an aware datetime.

    Values without an offset are taken as UTC, as the Table service does.
    Fractions beyond microseconds are truncated.

    Raises:
        ValueError: If text is not ISO 8601
    """
    match = _DATETIME_PATTERN.match(text)
    if not match:
        raise ValueError(f"Invalid datetime format: {text}")

    year, month, day, hour, minute, second, fraction, offset = match.groups()
    microsecond = int((fraction or "0").ljust(7, "0")[:6])

    tz = timezone.utc
    if offset and offset != "Z":
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = offset[1:].split(":")
        tz = timezone(sign * timedelta(hours=int(hours), minutes=int(minutes)))

    value = datetime(
        int(year), int(month), int(day),
        int(hour or 0), int(minute or 0), int(second or 0),
        microsecond, tzinfo=tz
    )
    return value.astimezone(timezone.utc)


class FilterParser:
    """
    Filter-query recursive descent parser.

    Operator Precedence (highest to lowest):
        1. Unary: not
        2. Comparison: eq, ne, gt, ge, lt, le
        3. Logical AND: and
        4. Logical OR: or

    Instances are not thread-safe; create one per token stream.
    """

    COMPARISON_OPS = {
        TokenType.EQ: ComparisonOperator.EQ,
        TokenType.NE: ComparisonOperator.NE,
        TokenType.GT: ComparisonOperator.GT,
        TokenType.GE: ComparisonOperator.GE,
        TokenType.LT: ComparisonOperator.LT,
        TokenType.LE: ComparisonOperator.LE,
    }

    LITERALS = {
        TokenType.STRING,
        TokenType.INTEGER,
        TokenType.LONG,
        TokenType.FLOAT,
        TokenType.BOOLEAN,
        TokenType.DATETIME,
        TokenType.GUID,
        TokenType.BINARY,
    }

    def __init__(self, tokens: List[Token]):
        """
        Args:
            tokens: List of tokens from lexer (must include EOF token)
        """
        self.tokens = tokens
        self.pos = 0

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]

    def _advance(self) -> Token:
        token = self._current()
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def _match(self, token_type: TokenType) -> bool:
        if self._current().type == token_type:
            self._advance()
            return True
        return False

    def _expect(self, token_type: TokenType, message: str) -> Token:
        token = self._current()
        if token.type != token_type:
            raise syntax_error(f"{message}, got {token.type}", token.position)
        return self._advance()

    def parse(self) -> AzureFilter:
        """
        Parse the token stream.

        Returns:
            Filter tree, EMPTY for blank input

        Raises:
            FilterSyntaxError: If the tokens do not form a valid filter
        """
        if self._current().type == TokenType.EOF:
            return EMPTY

        node = self._parse_or()

        token = self._current()
        if token.type != TokenType.EOF:
            raise syntax_error(
                f"Unexpected token {token}",
                token.position,
                "Combine conditions with 'and' / 'or'"
            )
        return node

    def _parse_or(self) -> AzureFilter:
        node = self._parse_and()
        while self._match(TokenType.OR):
            node = BinaryFilter(node, BinaryOperation.OR, self._parse_and())
        return node

    def _parse_and(self) -> AzureFilter:
        node = self._parse_unary()
        while self._match(TokenType.AND):
            node = BinaryFilter(node, BinaryOperation.AND, self._parse_unary())
        return node

    def _parse_unary(self) -> AzureFilter:
        if self._match(TokenType.NOT):
            return UnaryFilter(UnaryOperation.NOT, self._parse_unary())
        return self._parse_primary()

    def _parse_primary(self) -> AzureFilter:
        if self._match(TokenType.LPAREN):
            node = self._parse_or()
            self._expect(TokenType.RPAREN, "Expected ')'")
            return node
        return self._parse_comparison()

    def _parse_comparison(self) -> ColumnFilter:
        name = self._expect(TokenType.IDENTIFIER, "Expected column name")

        op_token = self._current()
        if op_token.type not in self.COMPARISON_OPS:
            raise syntax_error(
                f"Expected comparison operator after '{name.value}', got {op_token.type}",
                op_token.position,
                "Use one of eq, ne, gt, ge, lt, le"
            )
        self._advance()

        literal = self._current()
        if literal.type not in self.LITERALS:
            raise syntax_error(
                f"Expected literal value, got {literal.type}",
                literal.position
            )
        self._advance()

        comparison = COMPARISONS[self.COMPARISON_OPS[op_token.type]]
        return ColumnFilter(name.value, comparison(self._decode(literal)))

    def _decode(self, token: Token) -> Any:
        """Convert a literal token into the Python value it encodes."""
        if token.type == TokenType.LONG:
            if not INT64_MIN <= token.value <= INT64_MAX:
                raise syntax_error(f"Int64 literal out of range: {token.value}L", token.position)
            return TypedValue(token.value, EdmType.INT64)
        if token.type == TokenType.INTEGER and not INT32_MIN <= token.value <= INT32_MAX:
            raise syntax_error(
                f"Int32 literal out of range: {token.value}",
                token.position,
                "Add the L suffix for an Int64 literal"
            )
        if token.type == TokenType.DATETIME:
            try:
                return decode_datetime(token.value)
            except ValueError as e:
                raise syntax_error(str(e), token.position)
        if token.type == TokenType.GUID:
            try:
                return uuid.UUID(token.value)
            except ValueError:
                raise syntax_error(f"Invalid GUID format: {token.value}", token.position)
        if token.type == TokenType.BINARY:
            return bytes.fromhex(token.value)
        return token.value


def parse_filter(text: str) -> AzureFilter:
    """
    Parse filter-query text into a filter tree.

    Args:
        text: Filter-query string, e.g. "(Age gt 5) and (Active eq true)"

    Returns:
        Filter tree; EMPTY for blank text

    Raises:
        FilterSyntaxError: If text is not a valid filter
    """
    tokens = FilterLexer(text).tokenize()
    return FilterParser(tokens).parse()
