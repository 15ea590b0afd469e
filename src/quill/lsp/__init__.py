"""
Quill Language Server.

Editor integration over the Language Server Protocol: first-failure
diagnostics, hover with resolved types, and an outline of fields and
methods.
"""

from quill.lsp.analyzer import DocumentAnalyzer
from quill.lsp.diagnostics import DiagnosticProvider, get_diagnostics_for_document

__all__ = ["DocumentAnalyzer", "DiagnosticProvider", "get_diagnostics_for_document"]
