"""
Quill Utilities Package.

Error types, source locations, and diagnostics.
"""

from quill.utils.diagnostics import (
    ERROR_DESCRIPTIONS,
    Diagnostic,
    DiagnosticLevel,
    ErrorCode,
    SourceSpan,
    did_you_mean,
    levenshtein_distance,
    suggest_similar,
)
from quill.utils.errors import (
    InterpreterError,
    LexerError,
    ParserError,
    QuillError,
    SemanticError,
    SourceLocation,
)

__all__ = [
    # Errors
    "QuillError",
    "LexerError",
    "ParserError",
    "SemanticError",
    "InterpreterError",
    "SourceLocation",
    # Diagnostics
    "ErrorCode",
    "ERROR_DESCRIPTIONS",
    "DiagnosticLevel",
    "SourceSpan",
    "Diagnostic",
    # String similarity utilities
    "levenshtein_distance",
    "suggest_similar",
    "did_you_mean",
]
