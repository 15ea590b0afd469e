"""
Document analysis for Quill LSP.

This module provides document analysis including:
- Diagnostics from the first failing pipeline stage
- Hover with the resolved type of the name under the cursor
- Document symbols (fields and methods) for the outline view
"""

from typing import Any, Optional, Union

from lsprotocol import types

from quill.compiler.ast_nodes import Access, BaseASTVisitor, Field, FunctionCall, Method, Source
from quill.compiler.semantics import SemanticModel
from quill.compiler.tokens import Token
from quill.lsp.diagnostics import DiagnosticProvider
from quill.utils.errors import SourceLocation

Reference = Union[Access, FunctionCall]


class _ReferenceCollector(BaseASTVisitor):
    """Collects every access and call node in source order."""

    def __init__(self) -> None:
        self.references: list[Reference] = []

    def visit_access(self, node: Access) -> Any:
        self.references.append(node)
        super().visit_access(node)

    def visit_function_call(self, node: FunctionCall) -> Any:
        self.references.append(node)
        super().visit_function_call(node)


class DocumentAnalyzer:
    """
    Analyzes a Quill document for LSP features.

    The pipeline runs once per ``analyze`` call; hover and symbol queries
    read the cached tree and semantic model.
    """

    def __init__(self, source: str, uri: str) -> None:
        """
        Initialize the analyzer with source code.

        Args:
            source: The Quill source code
            uri: The document URI
        """
        self.source = source
        self.uri = uri

        # Analysis results
        self.tokens: list[Token] = []
        self.ast: Optional[Source] = None
        self.model: Optional[SemanticModel] = None
        self.diagnostics: list[types.Diagnostic] = []

    def analyze(self) -> None:
        """Run the lexer, parser and analyzer, keeping what each produced."""
        provider = DiagnosticProvider(self.source, self.uri)
        self.diagnostics = provider.get_diagnostics()
        self.tokens = provider.tokens
        self.ast = provider.tree
        self.model = provider.model

    def get_hover(self, line: int, character: int) -> Optional[types.Hover]:
        """
        Get hover information at a position.

        Only available once the document analyzes cleanly, since types come
        from the semantic model.

        Args:
            line: 0-indexed line number
            character: 0-indexed character position

        Returns:
            Hover information or None
        """
        if self.ast is None or self.model is None:
            return None

        node = self._reference_at(line, character)
        if node is None:
            return None

        value = self._describe(node, self.model)
        if value is None:
            return None

        return types.Hover(
            contents=types.MarkupContent(
                kind=types.MarkupKind.Markdown,
                value=f"```quill\n{value}\n```",
            ),
            range=self._name_range(node.location, node.name),
        )

    def _reference_at(self, line: int, character: int) -> Optional[Reference]:
        collector = _ReferenceCollector()
        collector.visit(self.ast)
        for node in collector.references:
            loc = node.location
            if loc is None or loc.line - 1 != line:
                continue
            start = loc.column - 1
            if start <= character < start + len(node.name):
                return node
        return None

    @staticmethod
    def _describe(node: Reference, model: SemanticModel) -> Optional[str]:
        type_ = model.type_of(node)
        if type_ is None:
            return None

        if isinstance(node, Access):
            kind = "variable" if node.receiver is None else "field"
            return f"({kind}) {node.name}: {type_.name}"

        function = model.function_of(node)
        if function is None:
            return f"(function) {node.name}: {type_.name}"
        parameters = function.parameter_types
        if node.receiver is not None:
            parameters = parameters[1:]
        params = ", ".join(t.name for t in parameters)
        kind = "function" if node.receiver is None else "method"
        return f"({kind}) {node.name}({params}): {type_.name}"

    def get_document_symbols(self) -> list[types.DocumentSymbol]:
        """
        Get all document symbols for outline view.

        Available whenever the document parses, even if analysis failed.

        Returns:
            List of document symbols
        """
        if self.ast is None:
            return []

        symbols = [self._field_symbol(field) for field in self.ast.fields]
        symbols.extend(self._method_symbol(method) for method in self.ast.methods)
        return symbols

    def _field_symbol(self, field: Field) -> types.DocumentSymbol:
        name_range = self._declared_name_range(field.location, field.name)
        return types.DocumentSymbol(
            name=field.name,
            kind=types.SymbolKind.Field,
            range=name_range,
            selection_range=name_range,
            detail=field.type_name,
        )

    def _method_symbol(self, method: Method) -> types.DocumentSymbol:
        name_range = self._declared_name_range(method.location, method.name)
        params = ", ".join(
            f"{name}: {type_name}"
            for name, type_name in zip(method.parameters, method.parameter_type_names)
        )
        detail = f"({params})"
        if method.return_type_name is not None:
            detail += f": {method.return_type_name}"
        return types.DocumentSymbol(
            name=method.name,
            kind=types.SymbolKind.Method,
            range=name_range,
            selection_range=name_range,
            detail=detail,
        )

    def _declared_name_range(self, keyword: Optional[SourceLocation], name: str) -> types.Range:
        """Range of a declared name: the token right after its LET or DEF."""
        if keyword is not None:
            for current, following in zip(self.tokens, self.tokens[1:]):
                if current.offset == keyword.offset and following.lexeme == name:
                    return self._name_range(following.location, name)
        return self._name_range(keyword, name)

    @staticmethod
    def _name_range(location: Optional[SourceLocation], name: str) -> types.Range:
        line = 0
        character = 0
        if location is not None:
            line = location.line - 1
            character = location.column - 1
        return types.Range(
            start=types.Position(line=line, character=character),
            end=types.Position(line=line, character=character + len(name)),
        )
