"""Tests for the Quill LSP document analyzer."""

from lsprotocol import types

from quill.lsp.analyzer import DocumentAnalyzer
from quill.lsp.server import QuillLanguageServer, create_server

URI = "test://test.quill"

SOURCE = """LET limit: Integer = 10;
DEF main(): Integer DO
  print("n".length());
  RETURN limit;
END
"""


def analyzed(source: str) -> DocumentAnalyzer:
    analyzer = DocumentAnalyzer(source, URI)
    analyzer.analyze()
    return analyzer


def hover_text(hover: types.Hover) -> str:
    return hover.contents.value


class TestDocumentAnalyzer:
    """Test suite for DocumentAnalyzer."""

    def test_analyze_clean_document(self) -> None:
        analyzer = analyzed(SOURCE)
        assert analyzer.diagnostics == []
        assert analyzer.ast is not None
        assert analyzer.model is not None
        assert analyzer.tokens

    def test_analyze_broken_document(self) -> None:
        analyzer = analyzed("DEF main(): Integer DO RETURN nope; END")
        assert len(analyzer.diagnostics) == 1
        assert analyzer.ast is not None
        assert analyzer.model is None

    def test_hover_variable(self) -> None:
        hover = analyzed(SOURCE).get_hover(3, 9)
        assert hover is not None
        assert hover_text(hover) == "```quill\n(variable) limit: Integer\n```"
        assert hover.range.start == types.Position(line=3, character=9)
        assert hover.range.end == types.Position(line=3, character=14)

    def test_hover_inside_name(self) -> None:
        hover = analyzed(SOURCE).get_hover(3, 13)
        assert "limit" in hover_text(hover)

    def test_hover_builtin_function(self) -> None:
        hover = analyzed(SOURCE).get_hover(2, 2)
        assert hover_text(hover) == "```quill\n(function) print(Any): Nil\n```"

    def test_hover_method_on_string(self) -> None:
        hover = analyzed(SOURCE).get_hover(2, 12)
        assert hover_text(hover) == "```quill\n(method) length(): Integer\n```"

    def test_hover_on_whitespace_or_literal(self) -> None:
        analyzer = analyzed(SOURCE)
        assert analyzer.get_hover(2, 0) is None
        assert analyzer.get_hover(2, 9) is None
        assert analyzer.get_hover(40, 0) is None

    def test_no_hover_when_analysis_fails(self) -> None:
        analyzer = analyzed("LET x = 1; DEF main(): Integer DO RETURN y; END")
        assert analyzer.get_hover(0, 4) is None

    def test_document_symbols(self) -> None:
        symbols = analyzed(SOURCE).get_document_symbols()

        assert [s.name for s in symbols] == ["limit", "main"]
        limit, main = symbols
        assert limit.kind == types.SymbolKind.Field
        assert limit.detail == "Integer"
        assert limit.selection_range.start == types.Position(line=0, character=4)
        assert limit.selection_range.end == types.Position(line=0, character=9)
        assert main.kind == types.SymbolKind.Method
        assert main.detail == "(): Integer"
        assert main.range.start == types.Position(line=1, character=4)

    def test_method_symbol_detail(self) -> None:
        source = "DEF add(a: Integer, b) DO print(a); END DEF main(): Integer DO RETURN 0; END"
        add = analyzed(source).get_document_symbols()[0]
        assert add.detail == "(a: Integer, b: Any)"

    def test_symbols_survive_semantic_errors(self) -> None:
        analyzer = analyzed("DEF helper() DO END")
        assert len(analyzer.diagnostics) == 1
        assert [s.name for s in analyzer.get_document_symbols()] == ["helper"]

    def test_no_symbols_when_parse_fails(self) -> None:
        assert analyzed("DEF main(").get_document_symbols() == []


class TestLanguageServer:
    """Test suite for the server's request handlers."""

    def test_create_server(self) -> None:
        assert isinstance(create_server(), QuillLanguageServer)

    def test_hover_uses_cached_analysis(self) -> None:
        server = QuillLanguageServer()
        server._analyze_document(URI, SOURCE)

        hover = server._on_hover(
            types.HoverParams(
                text_document=types.TextDocumentIdentifier(uri=URI),
                position=types.Position(line=3, character=9),
            )
        )
        assert "limit: Integer" in hover_text(hover)

    def test_unknown_document(self) -> None:
        server = QuillLanguageServer()
        params = types.DocumentSymbolParams(
            text_document=types.TextDocumentIdentifier(uri="test://other.quill")
        )
        assert server._on_document_symbol(params) is None

    def test_handlers_are_registered(self) -> None:
        server = create_server()
        features = server.protocol.fm.features
        for method in (
            types.TEXT_DOCUMENT_DID_OPEN,
            types.TEXT_DOCUMENT_DID_CHANGE,
            types.TEXT_DOCUMENT_DID_SAVE,
            types.TEXT_DOCUMENT_DID_CLOSE,
            types.TEXT_DOCUMENT_HOVER,
            types.TEXT_DOCUMENT_DOCUMENT_SYMBOL,
        ):
            assert method in features

    def test_registered_handlers_use_server_cache(self) -> None:
        server = QuillLanguageServer()
        server._analyze_document(URI, SOURCE)
        features = server.protocol.fm.features
        document = types.TextDocumentIdentifier(uri=URI)

        hover = features[types.TEXT_DOCUMENT_HOVER](
            types.HoverParams(text_document=document, position=types.Position(line=3, character=9))
        )
        assert "limit: Integer" in hover_text(hover)

        symbols = features[types.TEXT_DOCUMENT_DOCUMENT_SYMBOL](
            types.DocumentSymbolParams(text_document=document)
        )
        assert [symbol.name for symbol in symbols] == ["limit", "main"]
