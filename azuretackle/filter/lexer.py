"""
Lexical analyzer for Azure Table filter-query strings.

Tokenizes the text produced by :func:`azuretackle.filter.to_query` (and
hand-written filters in the same dialect) with position tracking for
precise error reporting.

Supports:
- Literals: 'string' (with '' escapes), 42, 42L, 1.5, 1e+20, INF, -INF, NaN,
  true/false, datetime'...', guid'...', X'...' / binary'...'
- Comparison operators: eq, ne, gt, ge, lt, le
- Logical operators: and, or, not
- Parentheses

Example:
    >>> lexer = FilterLexer("Price gt 50 and Active eq true")
    >>> [t.type.name for t in lexer.tokenize()]
    ['IDENTIFIER', 'GT', 'INTEGER', 'AND', 'IDENTIFIER', 'EQ', 'BOOLEAN', 'EOF']
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional, List

from azuretackle.core.exceptions import FilterSyntaxError


class TokenType(Enum):
    """Filter-query token types."""

    # Literals
    STRING = auto()      # 'hello', 'can''t'
    INTEGER = auto()     # 123, -456
    LONG = auto()        # 123L
    FLOAT = auto()       # 123.45, 1e+20, INF, NaN
    BOOLEAN = auto()     # true, false
    DATETIME = auto()    # datetime'2025-12-05T10:30:00.0000000Z'
    GUID = auto()        # guid'12345678-1234-1234-1234-123456789012'
    BINARY = auto()      # X'01ff'

    IDENTIFIER = auto()  # PropertyName

    # Comparison Operators
    EQ = auto()
    NE = auto()
    GT = auto()
    GE = auto()
    LT = auto()
    LE = auto()

    # Logical Operators
    AND = auto()
    OR = auto()
    NOT = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()

    EOF = auto()

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Position:
    """Source position in input string."""
    line: int       # 1-indexed line number
    column: int     # 1-indexed column number
    offset: int     # 0-indexed absolute character position

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}"


@dataclass(frozen=True)
class Token:
    """Lexical token with type, value, and position information."""
    type: TokenType
    value: Any
    position: Position
    length: int

    def __str__(self) -> str:
        if self.type == TokenType.EOF:
            return f"EOF at {self.position}"
        return f"{self.type.name}({self.value!r}) at {self.position}"


def syntax_error(message: str, position: Position, suggestion: Optional[str] = None) -> FilterSyntaxError:
    return FilterSyntaxError(message, position.line, position.column, suggestion)


class FilterLexer:
    """
    Filter-query lexical analyzer.

    Keywords are recognised case-insensitively. Instances are not
    thread-safe; create one per input string.
    """

    KEYWORDS = {
        'eq': TokenType.EQ,
        'ne': TokenType.NE,
        'gt': TokenType.GT,
        'ge': TokenType.GE,
        'lt': TokenType.LT,
        'le': TokenType.LE,
        'and': TokenType.AND,
        'or': TokenType.OR,
        'not': TokenType.NOT,
        'true': TokenType.BOOLEAN,
        'false': TokenType.BOOLEAN,
    }

    # Non-finite doubles are case-sensitive in OData
    SPECIAL_FLOATS = {
        'INF': float('inf'),
        'NaN': float('nan'),
    }

    # Prefixed quoted literals: prefix -> token type
    PREFIXED = {
        'datetime': TokenType.DATETIME,
        'guid': TokenType.GUID,
        'x': TokenType.BINARY,
        'binary': TokenType.BINARY,
    }

    HEX_DIGITS = set('0123456789abcdefABCDEF')

    def __init__(self, input_str: str):
        self.input = input_str
        self.pos = 0
        self.line = 1
        self.column = 1

    def _current_position(self) -> Position:
        return Position(self.line, self.column, self.pos)

    def _peek(self, offset: int = 0) -> Optional[str]:
        pos = self.pos + offset
        if pos < len(self.input):
            return self.input[pos]
        return None

    def _advance(self) -> Optional[str]:
        if self.pos >= len(self.input):
            return None

        char = self.input[self.pos]
        self.pos += 1

        if char == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1

        return char

    def _skip_whitespace(self):
        char = self._peek()
        while char is not None and char in ' \t\r\n':
            self._advance()
            char = self._peek()

    def _read_quoted(self, start_pos: Position, what: str) -> str:
        """
        Read a single-quoted body, un-escaping doubled quotes.

        Raises:
            FilterSyntaxError: If the literal is not closed
        """
        self._advance()  # Skip opening quote

        chars = []
        while True:
            char = self._peek()

            if char is None:
                raise syntax_error(
                    f"Unclosed {what} literal",
                    start_pos,
                    "Add closing single quote (')"
                )

            if char == "'":
                self._advance()
                if self._peek() == "'":
                    chars.append("'")
                    self._advance()
                else:
                    break
            else:
                chars.append(char)
                self._advance()

        return ''.join(chars)

    def _read_string(self) -> Token:
        start_pos = self._current_position()
        start_offset = self.pos
        value = self._read_quoted(start_pos, "string")
        return Token(TokenType.STRING, value, start_pos, self.pos - start_offset)

    def _read_number(self) -> Token:
        """
        Read number literal.

        Supports integers (123, -456), longs (123L), floats (123.45, -0.5)
        and scientific notation (1.23e10, 1e+20).

        Raises:
            FilterSyntaxError: If number format is invalid
        """
        start_pos = self._current_position()
        start_offset = self.pos

        chars = []
        has_dot = False
        has_exp = False

        if self._peek() in ('+', '-'):
            chars.append(self._advance())

        while True:
            char = self._peek()

            if char is None:
                break

            if char.isdigit():
                chars.append(self._advance())
            elif char == '.' and not has_dot and not has_exp:
                has_dot = True
                chars.append(self._advance())
            elif char in 'eE' and not has_exp and len(chars) > 0:
                has_exp = True
                chars.append(self._advance())
                if self._peek() in ('+', '-'):
                    chars.append(self._advance())
            else:
                break

        value_str = ''.join(chars)

        is_long = False
        if self._peek() in ('L', 'l'):
            if has_dot or has_exp:
                raise syntax_error(
                    f"Invalid long literal: {value_str}L",
                    start_pos,
                    "Long literals must be whole numbers"
                )
            self._advance()
            is_long = True

        length = self.pos - start_offset

        try:
            if has_dot or has_exp:
                return Token(TokenType.FLOAT, float(value_str), start_pos, length)
            token_type = TokenType.LONG if is_long else TokenType.INTEGER
            return Token(token_type, int(value_str), start_pos, length)
        except ValueError:
            raise syntax_error(
                f"Invalid number format: {value_str}",
                start_pos,
                "Check for malformed scientific notation or decimal point"
            )

    def _read_identifier(self) -> Token:
        """
        Read identifier, keyword, special double or prefixed literal.
        """
        start_pos = self._current_position()
        start_offset = self.pos

        chars = []
        while True:
            char = self._peek()
            if char is None:
                break
            if char.isalnum() or char == '_':
                chars.append(self._advance())
            else:
                break

        value = ''.join(chars)
        lower_value = value.lower()

        if self._peek() == "'" and lower_value in self.PREFIXED:
            return self._read_prefixed(self.PREFIXED[lower_value], start_pos, start_offset)

        length = self.pos - start_offset

        if value in self.SPECIAL_FLOATS:
            return Token(TokenType.FLOAT, self.SPECIAL_FLOATS[value], start_pos, length)

        if lower_value in self.KEYWORDS:
            token_type = self.KEYWORDS[lower_value]
            if token_type == TokenType.BOOLEAN:
                return Token(token_type, lower_value == 'true', start_pos, length)
            return Token(token_type, value, start_pos, length)

        return Token(TokenType.IDENTIFIER, value, start_pos, length)

    def _read_prefixed(self, token_type: TokenType, start_pos: Position, start_offset: int) -> Token:
        """
        Read the quoted body of datetime'...', guid'...' or X'...'.

        Raises:
            FilterSyntaxError: If the body is malformed
        """
        value = self._read_quoted(start_pos, token_type.name.lower())
        length = self.pos - start_offset

        if token_type == TokenType.DATETIME and len(value) < 10:  # Minimum: YYYY-MM-DD
            raise syntax_error(
                f"Invalid datetime format: {value}",
                start_pos,
                "Use ISO 8601 format: YYYY-MM-DDTHH:MM:SSZ"
            )

        if token_type == TokenType.GUID and (len(value) != 36 or value.count('-') != 4):
            raise syntax_error(
                f"Invalid GUID format: {value}",
                start_pos,
                "Use format: guid'12345678-1234-1234-1234-123456789012'"
            )

        if token_type == TokenType.BINARY:
            if len(value) % 2 or not set(value) <= self.HEX_DIGITS:
                raise syntax_error(
                    f"Invalid binary format: {value}",
                    start_pos,
                    "Use an even number of hex digits: X'01ff'"
                )

        return Token(token_type, value, start_pos, length)

    def _starts_negative_infinity(self) -> bool:
        return self.input.startswith('-INF', self.pos) and not (
            self._peek(4) is not None and (self._peek(4).isalnum() or self._peek(4) == '_')
        )

    def tokenize(self) -> List[Token]:
        """
        Tokenize input string into list of tokens.

        Returns:
            List of tokens (excludes whitespace, includes EOF)

        Raises:
            FilterSyntaxError: If invalid syntax is encountered
        """
        tokens = []

        while self.pos < len(self.input):
            char = self._peek()

            if char in ' \t\r\n':
                self._skip_whitespace()
                continue

            if char == "'":
                tokens.append(self._read_string())

            elif char.isdigit() or (char in '+-' and self._peek(1) is not None and self._peek(1).isdigit()):
                tokens.append(self._read_number())

            elif char == '-' and self._starts_negative_infinity():
                start_pos = self._current_position()
                for _ in range(4):
                    self._advance()
                tokens.append(Token(TokenType.FLOAT, float('-inf'), start_pos, 4))

            elif char.isalpha() or char == '_':
                tokens.append(self._read_identifier())

            elif char == '(':
                start_pos = self._current_position()
                self._advance()
                tokens.append(Token(TokenType.LPAREN, '(', start_pos, 1))
            elif char == ')':
                start_pos = self._current_position()
                self._advance()
                tokens.append(Token(TokenType.RPAREN, ')', start_pos, 1))

            else:
                raise syntax_error(
                    f"Unexpected character: {char!r}",
                    self._current_position(),
                    "Only identifiers, literals, operators and parentheses are allowed"
                )

        tokens.append(Token(TokenType.EOF, None, self._current_position(), 0))

        return tokens

    def __repr__(self) -> str:
        return f"FilterLexer(input={self.input!r}, pos={self.pos}, line={self.line}, column={self.column})"
