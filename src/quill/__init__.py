"""
Quill - a small imperative teaching language.

Source text goes through four stages: scanning, recursive-descent parsing,
static scope and type analysis, and tree-walking interpretation.
"""

from quill.compiler import analyze_source, parse_source, run_source, tokenize
from quill.compiler.analyzer import Analyzer
from quill.compiler.interpreter import Interpreter
from quill.compiler.lexer import Lexer
from quill.compiler.parser import Parser

__version__ = "0.1.0"
__all__ = [
    "tokenize",
    "parse_source",
    "analyze_source",
    "run_source",
    "Lexer",
    "Parser",
    "Analyzer",
    "Interpreter",
]
