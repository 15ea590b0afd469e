"""
Token definitions for the Quill lexer.

Quill has only six token kinds. Keywords are not distinguished by the
lexer: they are IDENTIFIER tokens recognized by the parser through their
lexeme, and every operator or punctuation character is an OPERATOR token.
"""

from dataclasses import dataclass
from enum import Enum, auto

from quill.utils.errors import SourceLocation


class TokenType(Enum):
    """Enumeration of all token types in Quill."""

    IDENTIFIER = auto()
    INTEGER = auto()
    DECIMAL = auto()
    CHARACTER = auto()
    STRING = auto()
    OPERATOR = auto()


# Reserved words, matched by the parser against IDENTIFIER lexemes
KEYWORDS: frozenset[str] = frozenset(
    {
        "LET",
        "DEF",
        "DO",
        "END",
        "IF",
        "ELSE",
        "FOR",
        "IN",
        "WHILE",
        "RETURN",
        "NIL",
        "TRUE",
        "FALSE",
        "AND",
        "OR",
    }
)

# Characters that may start a two-character operator ending in "="
COMPARISON_STARTS: frozenset[str] = frozenset("<>!=")

WHITESPACE: frozenset[str] = frozenset(" \b\n\r\t")

# Line separators that match no token pattern
LINE_SEPARATORS: frozenset[str] = frozenset("\u0085\u2028\u2029")

# Escape letter -> substituted character
ESCAPES: dict[str, str] = {
    "b": "\b",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "'": "'",
    '"': '"',
    "\\": "\\",
}


@dataclass(frozen=True, slots=True)
class Token:
    """
    Represents a single token from the source code.

    Attributes:
        type: The type of this token
        lexeme: The exact source text of the token, quotes and escapes included
        location: Source location where the token begins
    """

    type: TokenType
    lexeme: str
    location: SourceLocation

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.lexeme!r}, {self.location})"

    @property
    def offset(self) -> int:
        """The 0-indexed source offset where this token begins."""
        return self.location.offset

    @property
    def end_offset(self) -> int:
        """The source offset just past the last character of this token."""
        return self.location.offset + len(self.lexeme)

    @property
    def is_literal(self) -> bool:
        """Check if this token is a number, character or string literal."""
        return self.type in {
            TokenType.INTEGER,
            TokenType.DECIMAL,
            TokenType.CHARACTER,
            TokenType.STRING,
        }

    @property
    def is_keyword(self) -> bool:
        """Check if this token is a reserved word."""
        return self.type == TokenType.IDENTIFIER and self.lexeme in KEYWORDS
