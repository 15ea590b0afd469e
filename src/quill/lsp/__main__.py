"""
Entry point for running the Quill LSP server as a module.

Usage:
    python -m quill.lsp
    python -m quill.lsp --tcp --port 2087
"""

from quill.lsp.server import main

if __name__ == "__main__":
    main()
