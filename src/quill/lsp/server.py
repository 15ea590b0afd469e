"""
Quill Language Server Protocol (LSP) Server.

This module implements an LSP server for the Quill language using pygls.
It provides:

- Document synchronization (open, change, save, close)
- Diagnostics (the first lexer, parser or analyzer error)
- Hover information (resolved types)
- Document symbols (outline)

Usage:
    # Start the server in stdio mode (for IDE integration)
    quill-lsp

    # Start in TCP mode (for debugging)
    quill-lsp --tcp --port 2087
"""

import logging
from typing import Optional

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from quill import __version__
from quill.lsp.analyzer import DocumentAnalyzer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("quill-lsp")


class QuillLanguageServer(LanguageServer):
    """
    Language Server Protocol implementation for Quill.

    Each open document gets a cached ``DocumentAnalyzer`` that is rebuilt
    on every open, change and save.
    """

    def __init__(self) -> None:
        super().__init__(
            name="quill-lsp",
            version=f"v{__version__}",
        )

        # Document analyzers cache (uri -> analyzer)
        self._analyzers: dict[str, DocumentAnalyzer] = {}

        self._register_handlers()

    def _register_handlers(self) -> None:
        """
        Register all LSP request and notification handlers.

        pygls tags each handler with attributes, which bound methods do not
        accept, so every handler is a plain function forwarding to a method.
        """

        # Document synchronization
        @self.feature(types.TEXT_DOCUMENT_DID_OPEN)
        def did_open(params: types.DidOpenTextDocumentParams) -> None:
            self._on_did_open(params)

        @self.feature(types.TEXT_DOCUMENT_DID_CHANGE)
        def did_change(params: types.DidChangeTextDocumentParams) -> None:
            self._on_did_change(params)

        @self.feature(types.TEXT_DOCUMENT_DID_SAVE)
        def did_save(params: types.DidSaveTextDocumentParams) -> None:
            self._on_did_save(params)

        @self.feature(types.TEXT_DOCUMENT_DID_CLOSE)
        def did_close(params: types.DidCloseTextDocumentParams) -> None:
            self._on_did_close(params)

        @self.feature(types.TEXT_DOCUMENT_HOVER)
        def hover(params: types.HoverParams) -> Optional[types.Hover]:
            return self._on_hover(params)

        @self.feature(types.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
        def document_symbol(
            params: types.DocumentSymbolParams,
        ) -> Optional[list[types.DocumentSymbol]]:
            return self._on_document_symbol(params)

    def _get_analyzer(self, uri: str) -> Optional[DocumentAnalyzer]:
        return self._analyzers.get(uri)

    def _analyze_document(self, uri: str, text: str) -> DocumentAnalyzer:
        """Analyze a document and cache the result."""
        analyzer = DocumentAnalyzer(text, uri)
        analyzer.analyze()
        self._analyzers[uri] = analyzer
        return analyzer

    def _publish_diagnostics(self, uri: str, diagnostics: list[types.Diagnostic]) -> None:
        """Publish diagnostics to the client."""
        self.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )

    def _reanalyze(self, uri: str) -> None:
        doc = self.workspace.get_text_document(uri)
        analyzer = self._analyze_document(uri, doc.source)
        self._publish_diagnostics(uri, analyzer.diagnostics)

    # =========================================================================
    # Document Synchronization
    # =========================================================================

    def _on_did_open(self, params: types.DidOpenTextDocumentParams) -> None:
        """Handle document open notification."""
        document = params.text_document
        logger.info(f"Document opened: {document.uri}")

        analyzer = self._analyze_document(document.uri, document.text)
        self._publish_diagnostics(document.uri, analyzer.diagnostics)

    def _on_did_change(self, params: types.DidChangeTextDocumentParams) -> None:
        """Handle document change notification."""
        uri = params.text_document.uri
        logger.debug(f"Document changed: {uri}")
        self._reanalyze(uri)

    def _on_did_save(self, params: types.DidSaveTextDocumentParams) -> None:
        """Handle document save notification."""
        uri = params.text_document.uri
        logger.info(f"Document saved: {uri}")
        self._reanalyze(uri)

    def _on_did_close(self, params: types.DidCloseTextDocumentParams) -> None:
        """Handle document close notification."""
        uri = params.text_document.uri
        logger.info(f"Document closed: {uri}")

        self._analyzers.pop(uri, None)

        # Clear diagnostics
        self._publish_diagnostics(uri, [])

    # =========================================================================
    # Language Features
    # =========================================================================

    def _on_hover(self, params: types.HoverParams) -> Optional[types.Hover]:
        """Handle hover request."""
        analyzer = self._get_analyzer(params.text_document.uri)
        if analyzer is None:
            return None

        position = params.position
        return analyzer.get_hover(position.line, position.character)

    def _on_document_symbol(
        self, params: types.DocumentSymbolParams
    ) -> Optional[list[types.DocumentSymbol]]:
        """Handle document symbols request (for outline view)."""
        analyzer = self._get_analyzer(params.text_document.uri)
        if analyzer is None:
            return None

        return analyzer.get_document_symbols()


def create_server() -> QuillLanguageServer:
    """Create and configure a Quill language server instance."""
    server = QuillLanguageServer()

    @server.feature(types.INITIALIZE)
    def on_initialize(
        params: types.InitializeParams,  # noqa: ARG001
    ) -> types.InitializeResult:
        """Handle initialize request."""
        logger.info("Initializing Quill Language Server")

        return types.InitializeResult(
            capabilities=types.ServerCapabilities(
                text_document_sync=types.TextDocumentSyncOptions(
                    open_close=True,
                    change=types.TextDocumentSyncKind.Full,
                    save=types.SaveOptions(include_text=True),
                ),
                hover_provider=True,
                document_symbol_provider=True,
            ),
            server_info=types.ServerInfo(
                name="quill-lsp",
                version=__version__,
            ),
        )

    @server.feature(types.INITIALIZED)
    def on_initialized(
        params: types.InitializedParams,  # noqa: ARG001
    ) -> None:
        """Handle initialized notification."""
        logger.info("Quill Language Server initialized")

    @server.feature(types.SHUTDOWN)
    def on_shutdown(
        params: None,  # noqa: ARG001
    ) -> None:
        """Handle shutdown request."""
        logger.info("Shutting down Quill Language Server")

    return server


def main() -> None:
    """
    Main entry point for the Quill language server.

    Starts the server in stdio mode unless ``--tcp`` is given.
    """
    import argparse

    parser = argparse.ArgumentParser(
        description="Quill Language Server",
        prog="quill-lsp",
    )
    parser.add_argument(
        "--tcp",
        action="store_true",
        help="Start server in TCP mode instead of stdio",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to in TCP mode (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=2087,
        help="Port to listen on in TCP mode (default: 2087)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Logging level (default: info)",
    )

    args = parser.parse_args()

    log_level = getattr(logging, args.log_level.upper())
    logging.getLogger("quill-lsp").setLevel(log_level)
    logging.getLogger("quill").setLevel(log_level)

    server = create_server()

    if args.tcp:
        logger.info(f"Starting Quill LSP in TCP mode on {args.host}:{args.port}")
        server.start_tcp(args.host, args.port)
    else:
        logger.info("Starting Quill LSP in stdio mode")
        server.start_io()


if __name__ == "__main__":
    main()
