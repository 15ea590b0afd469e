"""
Quill Lexer (Tokenizer).

Transforms Quill source code into a flat list of tokens. Whitespace is
skipped; every other character belongs to exactly one token, and each
token keeps its raw lexeme so that literals are decoded by the parser.
"""

import logging
from typing import Iterator, Optional

from quill.compiler.tokens import (
    COMPARISON_STARTS,
    ESCAPES,
    LINE_SEPARATORS,
    WHITESPACE,
    Token,
    TokenType,
)
from quill.utils.diagnostics import ErrorCode
from quill.utils.errors import LexerError, SourceLocation

logger = logging.getLogger(__name__)


def _is_digit(char: Optional[str]) -> bool:
    return char is not None and "0" <= char <= "9"


def _is_identifier_start(char: Optional[str]) -> bool:
    return char is not None and (
        "a" <= char <= "z" or "A" <= char <= "Z" or char == "_"
    )


def _is_identifier_part(char: Optional[str]) -> bool:
    return _is_identifier_start(char) or _is_digit(char) or char == "-"


class Lexer:
    """
    Tokenizer for Quill source code.

    The lexer recognizes:
    - Identifiers (``[A-Za-z_][A-Za-z0-9_-]*``), keywords included
    - Signed integer and decimal literals
    - Character literals ('a', '\\n') and string literals ("text")
    - Comparison operators (<=, >=, ==, !=) and any other single character

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()
        # or iterate: for token in lexer: ...
    """

    def __init__(self, source: str, filename: Optional[str] = None) -> None:
        """
        Initialize the lexer with source code.

        Args:
            source: The Quill source code to tokenize
            filename: Optional filename for error reporting
        """
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []

        # Track the start of the current line for error reporting
        self._line_start = 0

    @property
    def _current_char(self) -> Optional[str]:
        """Return the current character or None if at end."""
        if self.pos >= len(self.source):
            return None
        return self.source[self.pos]

    @property
    def _peek_char(self) -> Optional[str]:
        """Return the next character without consuming it."""
        peek_pos = self.pos + 1
        if peek_pos >= len(self.source):
            return None
        return self.source[peek_pos]

    def _location(self) -> SourceLocation:
        """Create a SourceLocation for the current position."""
        return SourceLocation(
            line=self.line,
            column=self.column,
            offset=self.pos,
            filename=self.filename,
        )

    def _current_line_text(self) -> str:
        """Extract the current line of source for error messages."""
        end = self.source.find("\n", self._line_start)
        if end == -1:
            end = len(self.source)
        return self.source[self._line_start:end]

    def _error(self, message: str, code: str = ErrorCode.E0208) -> LexerError:
        return LexerError(message, self._location(), self._current_line_text(), code=code)

    def _advance(self) -> str:
        """Consume and return the current character."""
        char = self.source[self.pos]
        self.pos += 1

        if char == "\n":
            self.line += 1
            self.column = 1
            self._line_start = self.pos
        else:
            self.column += 1

        return char

    def _skip_whitespace(self) -> None:
        while self._current_char is not None and self._current_char in WHITESPACE:
            self._advance()

    def _emit(self, token_type: TokenType, start: SourceLocation) -> Token:
        return Token(token_type, self.source[start.offset:self.pos], start)

    def _read_identifier(self) -> Token:
        start_loc = self._location()
        self._advance()
        while _is_identifier_part(self._current_char):
            self._advance()
        return self._emit(TokenType.IDENTIFIER, start_loc)

    def _read_number(self) -> Token:
        """
        Read a numeric literal.

        An optional leading sign is part of the number. A "." is consumed
        only when a digit follows it, otherwise the number ends before it.

        Returns:
            An INTEGER or DECIMAL token.
        """
        start_loc = self._location()

        if self._current_char in ("+", "-"):
            self._advance()

        while _is_digit(self._current_char):
            self._advance()

        if self._current_char == "." and _is_digit(self._peek_char):
            self._advance()
            while _is_digit(self._current_char):
                self._advance()
            return self._emit(TokenType.DECIMAL, start_loc)

        return self._emit(TokenType.INTEGER, start_loc)

    def _read_escape(self) -> None:
        """Consume a backslash and the escape letter after it."""
        self._advance()
        if self._current_char is None or self._current_char not in ESCAPES:
            raise self._error("Invalid escape sequence", ErrorCode.E0209)
        self._advance()

    def _read_character(self) -> Token:
        """
        Read a character literal: exactly one character or escape in
        single quotes.
        """
        start_loc = self._location()
        self._advance()  # consume opening quote

        char = self._current_char
        if char == "\\":
            self._read_escape()
        elif char is not None and char not in "'\n\r":
            self._advance()
        else:
            raise self._error("Empty character literal")

        if self._current_char != "'":
            raise self._error("Unterminated character literal", ErrorCode.E0206)
        self._advance()

        return self._emit(TokenType.CHARACTER, start_loc)

    def _read_string(self) -> Token:
        """
        Read a string literal.

        Raw newlines and carriage returns are rejected at their offset; a
        missing closing quote is reported at the end of input.
        """
        start_loc = self._location()
        self._advance()  # consume opening quote

        while self._current_char is not None and self._current_char != '"':
            if self._current_char == "\\":
                self._read_escape()
            elif self._current_char in "\n\r":
                raise self._error("Newline in string literal (use \\n for newlines)", ErrorCode.E0206)
            else:
                self._advance()

        if self._current_char is None:
            raise self._error("Unterminated string literal", ErrorCode.E0206)
        self._advance()  # consume closing quote

        return self._emit(TokenType.STRING, start_loc)

    def _read_operator(self) -> Token:
        """
        Read an operator token.

        ``<``, ``>``, ``!`` and ``=`` absorb a following ``=``; anything
        else is a single-character operator.
        """
        start_loc = self._location()
        char = self._advance()
        if char in COMPARISON_STARTS and self._current_char == "=":
            self._advance()
        return self._emit(TokenType.OPERATOR, start_loc)

    def _next_token(self) -> Optional[Token]:
        """
        Extract the next token from the source.

        Returns:
            The next token, or None if only whitespace remains.
        """
        self._skip_whitespace()

        char = self._current_char
        if char is None:
            return None

        if char == "'":
            return self._read_character()

        if char == '"':
            return self._read_string()

        if _is_digit(char) or (char in ("+", "-") and _is_digit(self._peek_char)):
            return self._read_number()

        if _is_identifier_start(char):
            return self._read_identifier()

        if char in LINE_SEPARATORS:
            raise self._error("Unexpected character")

        return self._read_operator()

    def tokenize(self) -> list[Token]:
        """
        Tokenize the entire source code.

        Returns:
            A list of all tokens in source order.
        """
        self.tokens = []
        self.pos = 0
        self.line = 1
        self.column = 1
        self._line_start = 0

        while True:
            token = self._next_token()
            if token is None:
                break
            self.tokens.append(token)

        logger.debug(f"Tokenized {len(self.source)} characters into {len(self.tokens)} tokens")
        return self.tokens

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens (re-tokenizes if necessary)."""
        if not self.tokens:
            self.tokenize()
        return iter(self.tokens)


def tokenize(source: str, filename: Optional[str] = None) -> list[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: Quill source code
        filename: Optional filename for error reporting

    Returns:
        List of tokens
    """
    return Lexer(source, filename).tokenize()
