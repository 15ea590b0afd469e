"""
Quill Compiler Package.

The pipeline runs in strict sequence, lexer -> parser -> analyzer ->
interpreter, and stops at the first stage that raises.
"""

import logging
from typing import Optional, TextIO

from quill.compiler.analyzer import Analyzer
from quill.compiler.ast_nodes import Source
from quill.compiler.interpreter import Interpreter
from quill.compiler.lexer import Lexer
from quill.compiler.parser import Parser
from quill.compiler.scope import Scope
from quill.compiler.semantics import SemanticModel
from quill.compiler.tokens import Token

logger = logging.getLogger(__name__)


def tokenize(source: str, filename: Optional[str] = None) -> list[Token]:
    """Scan source text into tokens."""
    return Lexer(source, filename).tokenize()


def parse_source(source: str, filename: Optional[str] = None) -> Source:
    """Scan and parse source text into an AST."""
    return Parser(tokenize(source, filename), source, filename).parse()


def analyze_source(
    source: str, filename: Optional[str] = None, parent: Optional[Scope] = None
) -> SemanticModel:
    """Scan, parse and analyze source text."""
    return Analyzer(parent, source).analyze(parse_source(source, filename))


def run_source(
    source: str,
    output: Optional[TextIO] = None,
    filename: Optional[str] = None,
    analysis_parent: Optional[Scope] = None,
    runtime_parent: Optional[Scope] = None,
) -> int:
    """
    Run all four stages on source text and return the program's exit code.

    The analyzer and interpreter need separate scope chains, so embedders
    that pre-seed bindings pass one parent scope for each stage.

    Raises:
        LexerError, ParserError, SemanticError, InterpreterError: From the
            first stage that fails.
    """
    tree = parse_source(source, filename)
    Analyzer(analysis_parent, source).analyze(tree)
    logger.debug(f"Running {filename or '<input>'}")
    return Interpreter(runtime_parent, output).run(tree)


__all__ = [
    "Analyzer",
    "Interpreter",
    "Lexer",
    "Parser",
    "SemanticModel",
    "tokenize",
    "parse_source",
    "analyze_source",
    "run_source",
]
