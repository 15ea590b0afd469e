"""Tests for the Quill LSP diagnostics provider."""

from lsprotocol.types import DiagnosticSeverity

from quill.lsp.diagnostics import DiagnosticProvider, get_diagnostics_for_document

URI = "test://test.quill"


class TestDiagnosticProvider:
    """Test suite for DiagnosticProvider."""

    def test_valid_code_no_errors(self) -> None:
        source = "LET x: Integer = 42;\nDEF main(): Integer DO RETURN x; END\n"
        assert get_diagnostics_for_document(source, URI) == []

    def test_lexer_error(self) -> None:
        source = 'LET s = "hello'
        diagnostics = get_diagnostics_for_document(source, URI)

        assert len(diagnostics) == 1
        diag = diagnostics[0]
        assert diag.severity == DiagnosticSeverity.Error
        assert "Unterminated string literal" in diag.message
        assert diag.code == "E0206"
        assert diag.range.start.line == 0
        assert diag.range.start.character == len(source)

    def test_parser_error_at_token(self) -> None:
        source = "DEF main(): Integer DO\n  RETURN 1\nEND"
        (diag,) = get_diagnostics_for_document(source, URI)

        assert "Expected ';'" in diag.message
        assert diag.code == "E0201"
        assert (diag.range.start.line, diag.range.start.character) == (2, 0)
        assert diag.range.end.character == 3

    def test_semantic_error_spans_identifier(self) -> None:
        source = "DEF main(): Integer DO\n  RETURN missing;\nEND"
        (diag,) = get_diagnostics_for_document(source, URI)

        assert diag.code == "E0102"
        assert diag.source == "quill"
        assert (diag.range.start.line, diag.range.start.character) == (1, 9)
        assert diag.range.end.character == 9 + len("missing")

    def test_help_is_appended(self) -> None:
        source = "DEF main(): Integer DO LET total = 1; RETURN totl; END"
        (diag,) = get_diagnostics_for_document(source, URI)

        assert diag.message == "Undefined variable 'totl'\nhelp: did you mean 'total'?"

    def test_error_without_location(self) -> None:
        (diag,) = get_diagnostics_for_document("DEF f() DO END", URI)

        assert diag.code == "E0309"
        assert (diag.range.start.line, diag.range.start.character) == (0, 0)
        assert diag.range.end.character == 1

    def test_only_first_failure_is_reported(self) -> None:
        source = "DEF main(): Integer DO RETURN a; END\nDEF other(): Integer DO RETURN b; END"
        diagnostics = get_diagnostics_for_document(source, URI)

        assert len(diagnostics) == 1
        assert "'a'" in diagnostics[0].message

    def test_runtime_errors_are_not_reported(self) -> None:
        source = "DEF main(): Integer DO RETURN 1 / 0; END"
        assert get_diagnostics_for_document(source, URI) == []

    def test_provider_keeps_stage_results(self) -> None:
        provider = DiagnosticProvider("DEF main(): Integer DO RETURN 0; END", URI)
        assert provider.get_diagnostics() == []
        assert len(provider.tokens) == 11
        assert provider.tree is not None
        assert provider.model is not None

    def test_provider_stops_after_failed_stage(self) -> None:
        provider = DiagnosticProvider("DEF main(", URI)
        assert len(provider.get_diagnostics()) == 1
        assert provider.tokens
        assert provider.tree is None
        assert provider.model is None
