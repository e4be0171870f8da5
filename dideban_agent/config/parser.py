"""
Recursive descent parser for the nginx-like configuration syntax.

Grammar:
    document    := (block | directive | include)*
    block       := IDENTIFIER [STRING] '{' (block | directive | include)* '}'
    directive   := IDENTIFIER value* ';'
    value       := STRING | NUMBER | DURATION | BOOLEAN | IDENTIFIER
    include     := 'include' STRING ';'
"""

import glob
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .lexer import Lexer, Token, TokenType


class ParseError(Exception):
    """Exception raised for parser errors."""

    def __init__(self, message: str, token: Token | None = None):
        self.token = token
        if token:
            super().__init__(f"Line {token.line}, column {token.column}: {message}")
        else:
            super().__init__(message)


VALUE_TOKENS = (
    TokenType.STRING,
    TokenType.NUMBER,
    TokenType.DURATION,
    TokenType.BOOLEAN,
    TokenType.IDENTIFIER,
)


@dataclass
class Directive:
    """
    A configuration directive with a name and values.

    Examples:
        id "web-01";      -> Directive(name="id", values=["web-01"])
        max_retries 3;    -> Directive(name="max_retries", values=[3])
        pretty off;       -> Directive(name="pretty", values=[False])
    """

    name: str
    values: list[Any] = field(default_factory=list)
    line: int = 0
    column: int = 0

    @property
    def value(self) -> Any:
        """Get single value (first) or None."""
        return self.values[0] if self.values else None


@dataclass
class Block:
    """A configuration block with a type, optional name, and contents."""

    type: str
    name: str | None = None
    directives: list[Directive] = field(default_factory=list)
    blocks: list["Block"] = field(default_factory=list)
    line: int = 0
    column: int = 0

    def get_directive(self, name: str) -> Directive | None:
        """Get the last directive with given name (later ones override)."""
        for directive in reversed(self.directives):
            if directive.name == name:
                return directive
        return None

    def get_value(self, name: str, default: Any = None) -> Any:
        """Get single value from directive."""
        directive = self.get_directive(name)
        if directive is not None and directive.values:
            return directive.value
        return default

    def set_value(self, name: str, value: Any) -> None:
        """Append a directive overriding any earlier one with the same name."""
        self.directives.append(Directive(name=name, values=[value]))

    def get_block(self, type_name: str) -> "Block | None":
        """Get first nested block with given type."""
        for block in self.blocks:
            if block.type == type_name:
                return block
        return None


@dataclass
class ConfigDocument:
    """Root document containing all top-level blocks and directives."""

    blocks: list[Block] = field(default_factory=list)
    directives: list[Directive] = field(default_factory=list)
    filename: str = "<string>"

    def get_block(self, type_name: str) -> Block | None:
        """Get first block with given type."""
        for block in self.blocks:
            if block.type == type_name:
                return block
        return None

    def ensure_block(self, type_name: str) -> Block:
        """Get block with given type, creating an empty one if missing."""
        block = self.get_block(type_name)
        if block is None:
            block = Block(type=type_name)
            self.blocks.append(block)
        return block

    def get_value(self, name: str, default: Any = None) -> Any:
        """Get value of the last top-level directive with given name."""
        for directive in reversed(self.directives):
            if directive.name == name and directive.values:
                return directive.value
        return default

    def set_value(self, name: str, value: Any) -> None:
        """Append a top-level directive overriding earlier ones."""
        self.directives.append(Directive(name=name, values=[value]))

    def merge(self, other: "ConfigDocument") -> None:
        """Merge another document into this one (for includes)."""
        self.blocks.extend(other.blocks)
        self.directives.extend(other.directives)


class ConfigParser:
    """Recursive descent parser for nginx-like configuration."""

    def __init__(
        self,
        source: str,
        filename: str = "<string>",
        base_path: Path | None = None,
        included_files: set[str] | None = None,
    ):
        self.lexer = Lexer(source, filename)
        self.filename = filename
        self.base_path = base_path or Path.cwd()
        self.included_files = included_files or set()
        self.current = self.lexer.next_token()

    def _advance(self) -> Token:
        """Advance to next token and return the previous one."""
        previous = self.current
        self.current = self.lexer.next_token()
        return previous

    def _expect(self, token_type: TokenType, message: str = "") -> Token:
        if self.current.type != token_type:
            raise ParseError(
                message or f"Expected {token_type.name}, got {self.current.type.name}",
                self.current,
            )
        return self._advance()

    def parse(self) -> ConfigDocument:
        """Parse the entire configuration document."""
        doc = ConfigDocument(filename=self.filename)
        self._parse_body(doc.blocks, doc.directives, closing=TokenType.EOF)
        return doc

    def _parse_body(
        self,
        blocks: list[Block],
        directives: list[Directive],
        closing: TokenType,
    ) -> None:
        while self.current.type != closing:
            if self.current.type == TokenType.INCLUDE:
                included = self._parse_include()
                blocks.extend(included.blocks)
                directives.extend(included.directives)
            elif self.current.type == TokenType.IDENTIFIER:
                result = self._parse_block_or_directive()
                if isinstance(result, Block):
                    blocks.append(result)
                else:
                    directives.append(result)
            else:
                raise ParseError(
                    f"Expected block, directive, or include; got {self.current.type.name}",
                    self.current,
                )

    def _parse_include(self) -> ConfigDocument:
        """Parse an include directive and load the included file(s)."""
        include_token = self._expect(TokenType.INCLUDE)
        path_token = self._expect(TokenType.STRING, "Expected file path after 'include'")
        self._expect(TokenType.SEMICOLON, "Expected ';' after include path")

        pattern = str(path_token.value)
        if not Path(pattern).is_absolute():
            pattern = str(self.base_path / pattern)

        merged = ConfigDocument()
        for path in sorted(glob.glob(pattern)):
            path_obj = Path(path)
            resolved = str(path_obj.resolve())
            if resolved in self.included_files:
                raise ParseError(f"Circular include detected: {path}", include_token)

            parser = ConfigParser(
                source=path_obj.read_text(),
                filename=path,
                base_path=path_obj.parent,
                included_files=self.included_files | {resolved},
            )
            merged.merge(parser.parse())

        return merged

    def _parse_block_or_directive(self) -> Block | Directive:
        name_token = self._expect(TokenType.IDENTIFIER)
        name = str(name_token.value)

        values: list[Any] = []
        while self.current.type in VALUE_TOKENS:
            values.append(self._advance().value)

        if self.current.type == TokenType.SEMICOLON:
            self._advance()
            return Directive(name, values, name_token.line, name_token.column)

        if self.current.type != TokenType.LBRACE:
            raise ParseError(f"Expected '{{' or ';' after directive '{name}'", self.current)

        if len(values) > 1 or (values and not isinstance(values[0], str)):
            raise ParseError(
                f"Block '{name}' accepts at most one string name before '{{'",
                self.current,
            )

        self._advance()
        block = Block(
            type=name,
            name=values[0] if values else None,
            line=name_token.line,
            column=name_token.column,
        )
        self._parse_body(block.blocks, block.directives, closing=TokenType.RBRACE)
        self._advance()
        return block


def parse_config(
    source: str,
    filename: str = "<string>",
    base_path: Path | None = None,
) -> ConfigDocument:
    """Parse a configuration string."""
    return ConfigParser(source, filename, base_path).parse()


def parse_config_file(path: str | Path) -> ConfigDocument:
    """Parse a configuration file."""
    path = Path(path)
    return parse_config(path.read_text(), str(path), path.parent)
