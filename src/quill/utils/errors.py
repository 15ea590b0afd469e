"""
Error types and source location tracking for the Quill compiler.

Every pipeline stage fails fast: the first error raised by a stage aborts
that stage and nothing after it runs.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """
    Represents a location in the source code.

    Attributes:
        line: 1-indexed line number
        column: 1-indexed column number
        offset: 0-indexed character offset from start of source
        filename: Optional filename for error reporting
    """

    line: int
    column: int
    offset: int = 0
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"

    @classmethod
    def from_offset(
        cls, source: str, offset: int, filename: Optional[str] = None
    ) -> "SourceLocation":
        """Compute line and column for a character offset into source."""
        offset = max(0, min(offset, len(source)))
        line = source.count("\n", 0, offset) + 1
        line_start = source.rfind("\n", 0, offset) + 1
        return cls(line, offset - line_start + 1, offset, filename)


class QuillError(Exception):
    """Base exception for all Quill compiler errors."""

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        *,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        self.message = message
        self.location = location
        self.source_line = source_line
        self.code = code
        self.hint = hint
        super().__init__(self._format_message())

    @property
    def offset(self) -> Optional[int]:
        """Character offset of the error, if the error has a location."""
        return self.location.offset if self.location else None

    def _format_message(self) -> str:
        parts = []

        if self.location:
            parts.append(f"[{self.location}]")

        parts.append(f"{self.message} ({self.hint})" if self.hint else self.message)

        if self.source_line and self.location:
            parts.append(f"\n    {self.source_line}")
            # Add caret pointing to the error column
            padding = " " * (4 + self.location.column - 1)
            parts.append(f"\n{padding}^")

        if len(parts) > 2:
            return parts[0] + " " + "".join(parts[1:])
        return " ".join(parts)


class LexerError(QuillError):
    """Raised when the lexer cannot classify a character or a literal is malformed."""

    pass


class ParserError(QuillError):
    """Raised when the token sequence cannot continue any grammar production."""

    pass


class SemanticError(QuillError):
    """
    Raised when analysis finds an unresolvable name, an assignability
    violation, an out-of-range literal, or a missing/ill-typed main.
    """

    pass


class InterpreterError(QuillError):
    """Raised when evaluation hits a dynamic type mismatch, divide by zero,
    a wrong argument count, or an unresolved member."""

    pass
