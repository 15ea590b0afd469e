"""
Rust-like Error Diagnostics for Quill.

Turns a ``QuillError`` into a diagnostic with an error code, the offending
source line and a caret, plus any help text the raising stage attached.

Example output:
    error[E0102]: Undefined variable 'totl'
      --> main.quill:3:12
       |
     3 |     RETURN totl;
       |            ^^^^
       |
       = help: did you mean 'total'?
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from quill.utils.errors import (
    InterpreterError,
    LexerError,
    ParserError,
    QuillError,
    SemanticError,
)


# =============================================================================
# Error Codes Catalog
# =============================================================================


class ErrorCode:
    """
    Centralized catalog of error codes for Quill diagnostics.

    Error codes are organized by category:
    - E01xx: Type and name errors (analyzer)
    - E02xx: Lexical and syntax errors
    - E03xx: Program structure errors (analyzer)
    - E04xx: Runtime errors (interpreter)
    """

    # Type errors: E01xx
    E0101 = "E0101"  # type mismatch
    E0102 = "E0102"  # undefined variable
    E0103 = "E0103"  # undefined function
    E0105 = "E0105"  # incompatible types in operation
    E0106 = "E0106"  # invalid assignment target
    E0109 = "E0109"  # not iterable
    E0110 = "E0110"  # member not found
    E0111 = "E0111"  # return type mismatch
    E0112 = "E0112"  # redefinition
    E0113 = "E0113"  # literal out of range
    E0114 = "E0114"  # unknown type

    # Syntax errors: E02xx
    E0201 = "E0201"  # unexpected token
    E0206 = "E0206"  # unterminated literal
    E0208 = "E0208"  # unexpected character
    E0209 = "E0209"  # invalid escape sequence

    # Semantic errors: E03xx
    E0302 = "E0302"  # return outside method
    E0309 = "E0309"  # missing main
    E0310 = "E0310"  # empty block
    E0311 = "E0311"  # expression statement is not a call

    # Runtime errors: E04xx
    E0401 = "E0401"  # runtime type mismatch
    E0402 = "E0402"  # divide by zero
    E0403 = "E0403"  # wrong number of arguments
    E0404 = "E0404"  # unresolved member


# Error code descriptions for documentation
ERROR_DESCRIPTIONS: dict[str, str] = {
    ErrorCode.E0101: "type mismatch",
    ErrorCode.E0102: "undefined variable",
    ErrorCode.E0103: "undefined function",
    ErrorCode.E0105: "incompatible types in operation",
    ErrorCode.E0106: "invalid assignment target",
    ErrorCode.E0109: "not iterable",
    ErrorCode.E0110: "member not found",
    ErrorCode.E0111: "return type mismatch",
    ErrorCode.E0112: "redefinition",
    ErrorCode.E0113: "literal out of range",
    ErrorCode.E0114: "unknown type",
    ErrorCode.E0201: "unexpected token",
    ErrorCode.E0206: "unterminated literal",
    ErrorCode.E0208: "unexpected character",
    ErrorCode.E0209: "invalid escape sequence",
    ErrorCode.E0302: "return outside method",
    ErrorCode.E0309: "missing main",
    ErrorCode.E0310: "empty block",
    ErrorCode.E0311: "expression statement is not a call",
    ErrorCode.E0401: "runtime type mismatch",
    ErrorCode.E0402: "divide by zero",
    ErrorCode.E0403: "wrong number of arguments",
    ErrorCode.E0404: "unresolved member",
}

# Code used when an error carries none of its own
DEFAULT_CODES: dict[type[QuillError], str] = {
    LexerError: ErrorCode.E0208,
    ParserError: ErrorCode.E0201,
    SemanticError: ErrorCode.E0101,
    InterpreterError: ErrorCode.E0401,
}


# =============================================================================
# Diagnostic Types
# =============================================================================


class DiagnosticLevel(Enum):
    """Severity level of a diagnostic message."""

    ERROR = "error"
    HELP = "help"

    def color_code(self) -> str:
        """Get ANSI color code for this level."""
        colors = {
            DiagnosticLevel.ERROR: "\033[91m",  # Red
            DiagnosticLevel.HELP: "\033[92m",  # Green
        }
        return colors.get(self, "")


@dataclass(frozen=True, slots=True)
class SourceSpan:
    """
    A span of source code on a single line.

    Attributes:
        line: 1-indexed line number
        start_col: 1-indexed starting column number
        end_col: 1-indexed ending column number (exclusive)
        filename: Filename for display
    """

    line: int
    start_col: int
    end_col: int
    filename: str = "<input>"

    @classmethod
    def from_location(
        cls, line: int, col: int, length: int = 1, filename: str = "<input>"
    ) -> SourceSpan:
        """Create a span from a single location with a given length."""
        return cls(line, col, col + length, filename)

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.start_col}"

    @property
    def length(self) -> int:
        return max(1, self.end_col - self.start_col)


@dataclass
class Diagnostic:
    """
    A diagnostic message with source context.

    Attributes:
        code: Error code (e.g., "E0102")
        level: Severity level
        message: The main diagnostic message
        span: Where the problem is, if known
        helps: Help messages with suggestions
    """

    code: str
    level: DiagnosticLevel
    message: str
    span: Optional[SourceSpan] = None
    helps: list[str] = field(default_factory=list)

    @classmethod
    def from_error(
        cls, error: QuillError, source: str = "", filename: str = "<input>"
    ) -> Diagnostic:
        """
        Build a diagnostic from a pipeline error.

        The span covers the identifier-like run of characters starting at
        the error location, or a single character.
        """
        code = error.code or DEFAULT_CODES.get(type(error), ErrorCode.E0101)
        span = None
        if error.location is not None:
            span = SourceSpan.from_location(
                error.location.line,
                error.location.column,
                _word_length(source, error.location.offset),
                error.location.filename or filename,
            )
        helps = [error.hint] if error.hint else []
        return cls(code, DiagnosticLevel.ERROR, error.message, span, helps)

    def render(self, source_code: str, use_color: bool = True) -> str:
        """
        Render this diagnostic as a formatted string.

        Args:
            source_code: The source text for context
            use_color: Whether to use ANSI color codes

        Returns:
            A formatted multi-line string representation
        """
        lines: list[str] = []
        source_lines = source_code.splitlines()

        reset = "\033[0m" if use_color else ""
        bold = "\033[1m" if use_color else ""
        level_color = self.level.color_code() if use_color else ""
        blue = "\033[94m" if use_color else ""
        help_color = DiagnosticLevel.HELP.color_code() if use_color else ""

        # Header line: error[E0102]: Undefined variable 'totl'
        lines.append(
            f"{level_color}{bold}{self.level.value}[{self.code}]{reset}: "
            f"{bold}{self.message}{reset}"
        )

        if self.span is not None:
            lines.append(f"  {blue}-->{reset} {self.span}")

            if 1 <= self.span.line <= len(source_lines):
                lines.append(f"   {blue}|{reset}")
                lines.append(f"{blue}{self.span.line:3} |{reset} {source_lines[self.span.line - 1]}")
                padding = " " * (self.span.start_col - 1)
                underline = "^" * self.span.length
                lines.append(f"   {blue}|{reset} {padding}{level_color}{underline}{reset}")
                lines.append(f"   {blue}|{reset}")

        for help_msg in self.helps:
            lines.append(
                f"   {blue}={reset} {help_color}{DiagnosticLevel.HELP.value}:{reset} {help_msg}"
            )

        return "\n".join(lines)

    def to_simple_message(self) -> str:
        """Get a simple one-line error message."""
        return f"[{self.code}] {self.message}"


def _word_length(source: str, offset: int) -> int:
    end = offset
    while end < len(source) and (source[end].isalnum() or source[end] in "_-"):
        end += 1
    return max(1, end - offset)


# =============================================================================
# String Similarity (Levenshtein Distance)
# =============================================================================


def levenshtein_distance(s1: str, s2: str) -> int:
    """
    Calculate the Levenshtein (edit) distance between two strings.

    The Levenshtein distance is the minimum number of single-character
    edits (insertions, deletions, or substitutions) required to change
    one string into the other.
    """
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    # Two rows are enough
    previous_row = list(range(len(s2) + 1))

    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def suggest_similar(
    name: str,
    candidates: list[str],
    max_distance: int = 2,
    max_suggestions: int = 3,
) -> list[str]:
    """
    Find similar names from a list of candidates.

    Used for "did you mean?" hints on undefined names.

    Args:
        name: The name to find suggestions for
        candidates: List of valid names to compare against
        max_distance: Maximum edit distance to consider (default 2)
        max_suggestions: Maximum number of suggestions to return

    Returns:
        List of similar names, sorted by similarity (closest first)
    """
    scored = []
    for candidate in candidates:
        if candidate == name or abs(len(candidate) - len(name)) > max_distance:
            continue

        distance = levenshtein_distance(name.lower(), candidate.lower())
        if distance <= max_distance:
            scored.append((candidate, distance))

    # Closest first, then alphabetically for ties
    scored.sort(key=lambda x: (x[1], x[0]))

    return [candidate for candidate, _ in scored[:max_suggestions]]


def did_you_mean(name: str, candidates: list[str]) -> Optional[str]:
    """Format a hint naming the closest candidates, or None if none are close."""
    similar = suggest_similar(name, candidates)
    if not similar:
        return None
    if len(similar) == 1:
        return f"did you mean '{similar[0]}'?"
    quoted = ", ".join(f"'{s}'" for s in similar[:-1])
    return f"did you mean {quoted} or '{similar[-1]}'?"
