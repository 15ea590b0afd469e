"""
Pytest configuration and shared fixtures for Quill tests.
"""

import io
from dataclasses import dataclass

import pytest

from quill.compiler.analyzer import Analyzer
from quill.compiler.ast_nodes import Source
from quill.compiler.environment import INTEGER, INTEGER_ITERABLE, NIL, RuntimeValue
from quill.compiler.interpreter import Interpreter
from quill.compiler.lexer import Lexer
from quill.compiler.parser import Parser
from quill.compiler.scope import Scope
from quill.compiler.semantics import SemanticModel
from quill.compiler.tokens import Token


@pytest.fixture
def lexer_factory():
    """Factory fixture for creating lexers."""

    def _create_lexer(source: str, filename: str = "test.quill") -> Lexer:
        return Lexer(source, filename)

    return _create_lexer


@pytest.fixture
def parser_factory(lexer_factory):
    """Factory fixture for creating parsers from source."""

    def _create_parser(source: str) -> Parser:
        tokens = lexer_factory(source).tokenize()
        return Parser(tokens, source)

    return _create_parser


@pytest.fixture
def tokenize(lexer_factory):
    """Fixture to tokenize source code."""

    def _tokenize(source: str) -> list[Token]:
        return lexer_factory(source).tokenize()

    return _tokenize


@pytest.fixture
def parse(parser_factory):
    """Fixture to parse source code into AST."""

    def _parse(source: str) -> Source:
        return parser_factory(source).parse()

    return _parse


@pytest.fixture
def parse_expression(parser_factory):
    """Fixture to parse a single expression."""

    def _parse_expression(source: str):
        return parser_factory(source)._parse_expression()

    return _parse_expression


@dataclass
class SeededScopes:
    """Parent scopes for the analyzer and the interpreter."""

    analysis: Scope
    runtime: Scope


@pytest.fixture
def range_scope():
    """
    Parent scopes defining ``range(start, end)`` over half-open integer
    ranges, for programs with FOR loops.
    """

    def _range(arguments: list[RuntimeValue]) -> RuntimeValue:
        start, end = arguments
        return RuntimeValue.iterable(
            [RuntimeValue.integer(i) for i in range(start.value, end.value)]
        )

    analysis = Scope()
    analysis.define_function(
        "range", "range", (INTEGER, INTEGER), INTEGER_ITERABLE, lambda arguments: NIL
    )
    runtime = Scope()
    runtime.define_function("range", "range", (INTEGER, INTEGER), INTEGER_ITERABLE, _range)
    return SeededScopes(analysis, runtime)


@pytest.fixture
def analyze(parse):
    """Fixture to analyze source code, returning the tree and its model."""

    def _analyze(source: str, parent: Scope = None) -> tuple[Source, SemanticModel]:
        tree = parse(source)
        model = Analyzer(parent, source).analyze(tree)
        return tree, model

    return _analyze


@dataclass
class RunResult:
    """Exit code and printed output of a program run."""

    exit_code: int
    output: str


@pytest.fixture
def run(analyze):
    """Fixture to analyze and run a program, capturing ``print`` output."""

    def _run(source: str, scopes: SeededScopes = None) -> RunResult:
        tree, _ = analyze(source, scopes.analysis if scopes else None)
        output = io.StringIO()
        interpreter = Interpreter(scopes.runtime if scopes else None, output)
        exit_code = interpreter.run(tree)
        return RunResult(exit_code, output.getvalue())

    return _run
