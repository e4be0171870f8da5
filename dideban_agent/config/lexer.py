"""
Lexer (tokenizer) for the nginx-like configuration syntax.

Supports:
- Identifiers (directive and block names, bare words like ``production``)
- Quoted strings (single or double quotes with escape sequences)
- Numbers (integers and floats, optionally negative)
- Durations (100ms, 10s, 5m, 1h, 1d), converted to seconds
- Booleans (on, off, true, false)
- Braces and semicolons
- Single-line (#) and multi-line (/* */) comments
"""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    """Token types for the nginx-like config syntax."""

    IDENTIFIER = auto()
    STRING = auto()
    NUMBER = auto()
    DURATION = auto()
    BOOLEAN = auto()

    LBRACE = auto()
    RBRACE = auto()
    SEMICOLON = auto()

    INCLUDE = auto()
    EOF = auto()


@dataclass
class Token:
    """A single token from the lexer."""

    type: TokenType
    value: str | int | float | bool
    line: int
    column: int
    raw: str = ""

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


class LexerError(Exception):
    """Exception raised for lexer errors."""

    def __init__(self, message: str, line: int, column: int):
        self.line = line
        self.column = column
        super().__init__(f"Line {line}, column {column}: {message}")


BOOLEAN_KEYWORDS = {"on": True, "off": False, "true": True, "false": False}

# Duration units in seconds
DURATION_UNITS = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}

SINGLE_CHAR_TOKENS = {
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    ";": TokenType.SEMICOLON,
}

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\"}


class Lexer:
    """
    Tokenizer for nginx-like configuration syntax.

    Example config:
        agent {
            id "web-01";
            interval 30s;
        }
    """

    def __init__(self, source: str, filename: str = "<string>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1

    def _current(self, offset: int = 0) -> str:
        """Get character at offset from current position, or '' past the end."""
        pos = self.pos + offset
        return self.source[pos] if pos < len(self.source) else ""

    def _advance(self) -> str:
        char = self._current()
        if not char:
            return ""
        self.pos += 1
        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return char

    def _skip_whitespace_and_comments(self) -> None:
        while True:
            char = self._current()
            if char and char in " \t\r\n":
                self._advance()
            elif char == "#":
                while self._current() and self._current() != "\n":
                    self._advance()
            elif char == "/" and self._current(1) == "*":
                start_line, start_col = self.line, self.column
                self._advance()
                self._advance()
                while not (self._current() == "*" and self._current(1) == "/"):
                    if not self._current():
                        raise LexerError("Unterminated multi-line comment", start_line, start_col)
                    self._advance()
                self._advance()
                self._advance()
            else:
                return

    def _read_string(self) -> Token:
        """Read a quoted string literal."""
        start_line, start_col, start_pos = self.line, self.column, self.pos
        quote = self._advance()
        result = []

        while True:
            char = self._current()
            if not char or char == "\n":
                raise LexerError("Unterminated string literal", start_line, start_col)
            self._advance()
            if char == quote:
                break
            if char == "\\":
                escaped = self._advance()
                if not escaped:
                    raise LexerError("Unexpected end of string", self.line, self.column)
                result.append(ESCAPES.get(escaped, escaped))
            else:
                result.append(char)

        return Token(
            TokenType.STRING,
            "".join(result),
            start_line,
            start_col,
            self.source[start_pos:self.pos],
        )

    def _read_number_or_duration(self) -> Token:
        """Read a number literal, optionally with a duration unit."""
        start_line, start_col, start_pos = self.line, self.column, self.pos

        if self._current() == "-":
            self._advance()
        has_dot = False
        while self._current().isdigit() or (self._current() == "." and not has_dot):
            has_dot = has_dot or self._current() == "."
            self._advance()

        unit_start = self.pos
        while self._current().isalpha():
            self._advance()

        num_str = self.source[start_pos:unit_start]
        unit = self.source[unit_start:self.pos].lower()
        raw = self.source[start_pos:self.pos]

        try:
            number = float(num_str) if has_dot else int(num_str)
        except ValueError:
            raise LexerError(f"Invalid number: {num_str}", start_line, start_col) from None

        if not unit:
            return Token(TokenType.NUMBER, number, start_line, start_col, raw)

        if unit not in DURATION_UNITS:
            raise LexerError(f"Unknown duration unit: {unit}", start_line, start_col)
        return Token(
            TokenType.DURATION,
            number * DURATION_UNITS[unit],
            start_line,
            start_col,
            raw,
        )

    def _read_identifier(self) -> Token:
        """Read an identifier or keyword."""
        start_line, start_col, start_pos = self.line, self.column, self.pos

        while self._current() and (self._current().isalnum() or self._current() in "_-."):
            self._advance()

        raw = self.source[start_pos:self.pos]
        lowered = raw.lower()

        if lowered in BOOLEAN_KEYWORDS:
            return Token(TokenType.BOOLEAN, BOOLEAN_KEYWORDS[lowered], start_line, start_col, raw)
        if lowered == "include":
            return Token(TokenType.INCLUDE, raw, start_line, start_col, raw)
        return Token(TokenType.IDENTIFIER, raw, start_line, start_col, raw)

    def next_token(self) -> Token:
        """Get the next token from the source."""
        self._skip_whitespace_and_comments()

        char = self._current()
        if not char:
            return Token(TokenType.EOF, "", self.line, self.column)

        if char in SINGLE_CHAR_TOKENS:
            line, column = self.line, self.column
            self._advance()
            return Token(SINGLE_CHAR_TOKENS[char], char, line, column, char)

        if char in "\"'":
            return self._read_string()

        if char.isdigit() or (char == "-" and self._current(1).isdigit()):
            return self._read_number_or_duration()

        if char.isalpha() or char == "_":
            return self._read_identifier()

        raise LexerError(f"Unexpected character: {char!r}", self.line, self.column)

    def tokenize(self) -> Iterator[Token]:
        """Generate all tokens from the source."""
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break

    def __iter__(self) -> Iterator[Token]:
        return self.tokenize()


def tokenize(source: str, filename: str = "<string>") -> list[Token]:
    """Convenience function to tokenize a source string."""
    return list(Lexer(source, filename))
