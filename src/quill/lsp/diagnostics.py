"""
Diagnostic generation for Quill LSP.

This module runs the lexer, parser and analyzer over a document and turns
the first failure into an LSP diagnostic. Every stage is fatal, so a
document carries at most one diagnostic at a time.
"""

from typing import Optional

from lsprotocol import types

from quill.compiler.analyzer import Analyzer
from quill.compiler.ast_nodes import Source
from quill.compiler.lexer import Lexer
from quill.compiler.parser import Parser
from quill.compiler.semantics import SemanticModel
from quill.compiler.tokens import Token
from quill.utils.diagnostics import Diagnostic as CompilerDiagnostic
from quill.utils.errors import QuillError


class DiagnosticProvider:
    """
    Generates LSP diagnostics from Quill source code.

    After ``get_diagnostics`` the provider keeps whatever the stages
    produced (``tokens``, ``tree``, ``model``) so callers can reuse them
    without running the pipeline a second time.
    """

    def __init__(self, source: str, uri: str) -> None:
        """
        Initialize the diagnostic provider.

        Args:
            source: The Quill source code to analyze
            uri: The document URI for location information
        """
        self.source = source
        self.uri = uri
        self.tokens: list[Token] = []
        self.tree: Optional[Source] = None
        self.model: Optional[SemanticModel] = None
        self._diagnostics: list[types.Diagnostic] = []

    def get_diagnostics(self) -> list[types.Diagnostic]:
        """
        Get the diagnostics for the document.

        Returns:
            An empty list, or a single diagnostic for the first failing stage
        """
        self._diagnostics = []
        self.tokens = []
        self.tree = None
        self.model = None

        try:
            self.tokens = Lexer(self.source, filename=self.uri).tokenize()
            self.tree = Parser(self.tokens, source=self.source, filename=self.uri).parse()
            self.model = Analyzer(source=self.source).analyze(self.tree)
        except QuillError as e:
            self._add_quill_error(e)

        return self._diagnostics

    def _add_quill_error(self, error: QuillError) -> None:
        """
        Add a Quill pipeline error as an LSP diagnostic.

        Args:
            error: The error raised by a pipeline stage
        """
        diag = CompilerDiagnostic.from_error(error, self.source, self.uri)

        line = 0
        character = 0
        end_character = 1

        if diag.span is not None:
            line = max(0, diag.span.line - 1)  # Convert to 0-indexed
            character = max(0, diag.span.start_col - 1)
            end_character = character + diag.span.length

        message_parts = [diag.message]
        for help_msg in diag.helps:
            message_parts.append(f"help: {help_msg}")

        diagnostic = types.Diagnostic(
            range=types.Range(
                start=types.Position(line=line, character=character),
                end=types.Position(line=line, character=end_character),
            ),
            message="\n".join(message_parts),
            severity=types.DiagnosticSeverity.Error,
            source="quill",
            code=diag.code,
        )

        self._diagnostics.append(diagnostic)


def get_diagnostics_for_document(source: str, uri: str) -> list[types.Diagnostic]:
    """
    Convenience function to get diagnostics for a document.

    Args:
        source: The Quill source code
        uri: The document URI

    Returns:
        List of LSP diagnostics
    """
    provider = DiagnosticProvider(source, uri)
    return provider.get_diagnostics()
