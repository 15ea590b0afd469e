"""
Quill Parser.

A recursive descent parser that transforms a token list into an Abstract
Syntax Tree (AST). Every binary precedence level is a left-associative
loop, so no production ever backtracks.

Grammar:
    source      := field* method*
    field       := LET declaration
    method      := DEF identifier "(" params? ")" (":" identifier)? DO statement* END
    statement   := LET declaration | IF if | FOR for | WHILE while
                 | RETURN return | expression ("=" expression)? ";"
    declaration := identifier (":" identifier)? ("=" expression)? ";"
    expression  := logical
    logical     := comparison (("AND" | "OR") comparison)*
    comparison  := additive (("<" | "<=" | ">" | ">=" | "==" | "!=") additive)*
    additive    := multiplicative (("+" | "-") multiplicative)*
    multiplicative := secondary (("*" | "/") secondary)*
    secondary   := primary ("." identifier ("(" arguments? ")")?)*
"""

import logging
from decimal import Decimal
from typing import Optional, Union

from quill.compiler.ast_nodes import (
    Access,
    AssignmentStatement,
    BinaryExpression,
    BinaryOperator,
    BooleanLiteral,
    CharacterLiteral,
    DecimalLiteral,
    DeclarationStatement,
    Expression,
    ExpressionStatement,
    Field,
    ForStatement,
    FunctionCall,
    Group,
    IfStatement,
    IntegerLiteral,
    Method,
    NilLiteral,
    ReturnStatement,
    Source,
    Statement,
    StringLiteral,
    WhileStatement,
)
from quill.compiler.tokens import ESCAPES, KEYWORDS, Token, TokenType
from quill.utils.errors import ParserError, SourceLocation

logger = logging.getLogger(__name__)

# A token pattern is either a token type or an exact lexeme
Pattern = Union[TokenType, str]

# Operator lexemes accepted at each binary precedence level
LOGICAL_OPERATORS = ("AND", "OR")
COMPARISON_OPERATORS = ("<", "<=", ">", ">=", "==", "!=")
ADDITIVE_OPERATORS = ("+", "-")
MULTIPLICATIVE_OPERATORS = ("*", "/")

# Parameters declared without a type annotation
DEFAULT_PARAMETER_TYPE = "Any"


def unescape(text: str) -> str:
    """Substitute escape sequences in the body of a character or string literal."""
    chars: list[str] = []
    i = 0
    while i < len(text):
        if text[i] == "\\" and i + 1 < len(text):
            chars.append(ESCAPES.get(text[i + 1], text[i + 1]))
            i += 2
        else:
            chars.append(text[i])
            i += 1
    return "".join(chars)


class Parser:
    """
    Recursive descent parser for Quill.

    Parses a list of tokens into an Abstract Syntax Tree.

    Usage:
        parser = Parser(tokens)
        ast = parser.parse()
    """

    def __init__(
        self, tokens: list[Token], source: str = "", filename: Optional[str] = None
    ) -> None:
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from the lexer
            source: Optional source code, used to show the offending line in errors
            filename: Optional filename for error reporting
        """
        self.tokens = tokens
        self.pos = 0
        self._source = source
        self._filename = filename

    @property
    def _current(self) -> Optional[Token]:
        """Get the current token, or None at end of input."""
        if self.pos >= len(self.tokens):
            return None
        return self.tokens[self.pos]

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def _check(self, *patterns: Pattern) -> bool:
        """Check if the current token matches one of the given types or lexemes."""
        token = self._current
        if token is None:
            return False
        for pattern in patterns:
            if isinstance(pattern, TokenType):
                if token.type == pattern:
                    return True
            elif token.lexeme == pattern and token.type in (
                TokenType.IDENTIFIER,
                TokenType.OPERATOR,
            ):
                return True
        return False

    def _advance(self) -> Token:
        """Consume and return the current token."""
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def _match(self, *patterns: Pattern) -> bool:
        """Consume current token if it matches one of the given patterns."""
        if self._check(*patterns):
            self._advance()
            return True
        return False

    def _expect(self, pattern: Pattern, message: str) -> Token:
        """Consume current token if it matches, else raise error."""
        if self._check(pattern):
            return self._advance()
        raise self._error(message)

    def _expect_identifier(self, message: str) -> Token:
        """Consume a non-keyword identifier, else raise error."""
        if self._check(TokenType.IDENTIFIER) and self._current.lexeme not in KEYWORDS:
            return self._advance()
        raise self._error(message)

    def _error_location(self) -> SourceLocation:
        """
        Location of the current token, or the end-of-input location: just
        past the last token (offset 0 when there are no tokens at all).
        """
        token = self._current
        if token is not None:
            return token.location
        if not self.tokens:
            return SourceLocation(1, 1, 0, self._filename)
        last = self.tokens[-1]
        if self._source:
            return SourceLocation.from_offset(self._source, last.end_offset, self._filename)
        return SourceLocation(
            last.location.line,
            last.location.column + len(last.lexeme),
            last.end_offset,
            self._filename,
        )

    def _error(
        self, message: str, location: Optional[SourceLocation] = None
    ) -> ParserError:
        """Create a parser error at the current token or at end of input."""
        location = location or self._error_location()
        source_line = None
        if self._source:
            lines = self._source.splitlines()
            if 0 < location.line <= len(lines):
                source_line = lines[location.line - 1]
        return ParserError(message, location, source_line)

    # -------------------------------------------------------------------------
    # Source Parsing
    # -------------------------------------------------------------------------

    def parse(self) -> Source:
        """
        Parse the entire program.

        Returns:
            The root Source AST node.
        """
        self.pos = 0
        location = self.tokens[0].location if self.tokens else None

        fields: list[Field] = []
        while self._check("LET"):
            fields.append(self._parse_field())

        methods: list[Method] = []
        while self._check("DEF"):
            methods.append(self._parse_method())

        if not self._is_at_end():
            if self._check("LET"):
                raise self._error("Fields must be declared before methods")
            raise self._error("Expected LET or DEF")

        logger.debug(f"Parsed {len(fields)} fields and {len(methods)} methods")
        return Source(tuple(fields), tuple(methods), location)

    def _parse_field(self) -> Field:
        """Parse: LET name (: Type)? (= value)? ;"""
        loc = self._advance().location  # consume LET
        name, type_name, value = self._parse_declaration()
        return Field(name, type_name, value, loc)

    def _parse_method(self) -> Method:
        """Parse: DEF name(params) (: Type)? DO statements END"""
        loc = self._advance().location  # consume DEF
        name = self._expect_identifier("Expected method name").lexeme
        self._expect("(", "Expected '(' after method name")

        parameters: list[str] = []
        parameter_type_names: list[str] = []
        if not self._check(")"):
            while True:
                parameters.append(self._expect_identifier("Expected parameter name").lexeme)
                if self._match(":"):
                    parameter_type_names.append(
                        self._expect_identifier("Expected parameter type").lexeme
                    )
                else:
                    parameter_type_names.append(DEFAULT_PARAMETER_TYPE)
                if not self._match(","):
                    break

        self._expect(")", "Expected ')' after parameters")

        return_type_name = None
        if self._match(":"):
            return_type_name = self._expect_identifier("Expected return type").lexeme

        self._expect("DO", "Expected DO before method body")
        statements = self._parse_block("END")
        self._advance()  # consume END

        return Method(
            name,
            tuple(parameters),
            tuple(parameter_type_names),
            return_type_name,
            statements,
            loc,
        )

    # -------------------------------------------------------------------------
    # Statement Parsing
    # -------------------------------------------------------------------------

    def _parse_block(self, *terminators: str) -> tuple[Statement, ...]:
        """
        Parse statements up to (not including) one of the terminator keywords.
        """
        statements: list[Statement] = []
        while not self._check(*terminators):
            if self._is_at_end():
                raise self._error(f"Expected {' or '.join(terminators)}")
            statements.append(self._parse_statement())
        return tuple(statements)

    def _parse_statement(self) -> Statement:
        """Parse a single statement."""
        if self._check("LET"):
            loc = self._advance().location
            name, type_name, value = self._parse_declaration()
            return DeclarationStatement(name, type_name, value, loc)
        if self._check("IF"):
            return self._parse_if()
        if self._check("FOR"):
            return self._parse_for()
        if self._check("WHILE"):
            return self._parse_while()
        if self._check("RETURN"):
            return self._parse_return()

        loc = self._current.location
        expression = self._parse_expression()
        if self._match("="):
            value = self._parse_expression()
            self._expect(";", "Expected ';' after assignment")
            return AssignmentStatement(expression, value, loc)

        self._expect(";", "Expected ';' after expression")
        return ExpressionStatement(expression, loc)

    def _parse_declaration(self) -> tuple[str, Optional[str], Optional[Expression]]:
        """Parse: name (: Type)? (= value)? ;  (after LET)"""
        name = self._expect_identifier("Expected variable name").lexeme

        type_name = None
        if self._match(":"):
            type_name = self._expect_identifier("Expected type name").lexeme

        value = None
        if self._match("="):
            value = self._parse_expression()

        self._expect(";", "Expected ';' after declaration")
        return name, type_name, value

    def _parse_if(self) -> IfStatement:
        """Parse: IF condition DO statements (ELSE statements)? END"""
        loc = self._advance().location  # consume IF
        condition = self._parse_expression()
        self._expect("DO", "Expected DO after IF condition")

        then_statements = self._parse_block("ELSE", "END")
        else_statements: tuple[Statement, ...] = ()
        if self._match("ELSE"):
            else_statements = self._parse_block("END")
        self._advance()  # consume END

        return IfStatement(condition, then_statements, else_statements, loc)

    def _parse_for(self) -> ForStatement:
        """Parse: FOR name IN iterable DO statements END"""
        loc = self._advance().location  # consume FOR
        name = self._expect_identifier("Expected loop variable name").lexeme
        self._expect("IN", "Expected IN after loop variable")
        value = self._parse_expression()
        self._expect("DO", "Expected DO after FOR iterable")
        statements = self._parse_block("END")
        self._advance()  # consume END
        return ForStatement(name, value, statements, loc)

    def _parse_while(self) -> WhileStatement:
        """Parse: WHILE condition DO statements END"""
        loc = self._advance().location  # consume WHILE
        condition = self._parse_expression()
        self._expect("DO", "Expected DO after WHILE condition")
        statements = self._parse_block("END")
        self._advance()  # consume END
        return WhileStatement(condition, statements, loc)

    def _parse_return(self) -> ReturnStatement:
        """Parse: RETURN value ;"""
        loc = self._advance().location  # consume RETURN
        value = self._parse_expression()
        self._expect(";", "Expected ';' after return value")
        return ReturnStatement(value, loc)

    # -------------------------------------------------------------------------
    # Expression Parsing (Precedence Climbing)
    # -------------------------------------------------------------------------

    def _parse_expression(self) -> Expression:
        """Parse an expression (entry point for expression parsing)."""
        return self._parse_logical()

    def _parse_binary_level(self, operators: tuple[str, ...], operand) -> Expression:
        """Parse one left-associative binary precedence level."""
        left = operand()
        while self._check(*operators):
            token = self._advance()
            right = operand()
            left = BinaryExpression(BinaryOperator(token.lexeme), left, right, left.location)
        return left

    def _parse_logical(self) -> Expression:
        return self._parse_binary_level(LOGICAL_OPERATORS, self._parse_comparison)

    def _parse_comparison(self) -> Expression:
        return self._parse_binary_level(COMPARISON_OPERATORS, self._parse_additive)

    def _parse_additive(self) -> Expression:
        return self._parse_binary_level(ADDITIVE_OPERATORS, self._parse_multiplicative)

    def _parse_multiplicative(self) -> Expression:
        return self._parse_binary_level(MULTIPLICATIVE_OPERATORS, self._parse_secondary)

    def _parse_secondary(self) -> Expression:
        """Parse member access and method calls: primary(.name(args)?)*"""
        expr = self._parse_primary()

        while self._match("."):
            name_token = self._expect_identifier("Expected member name after '.'")
            if self._match("("):
                arguments = self._parse_arguments()
                expr = FunctionCall(expr, name_token.lexeme, arguments, name_token.location)
            else:
                expr = Access(expr, name_token.lexeme, name_token.location)

        return expr

    def _parse_arguments(self) -> tuple[Expression, ...]:
        """Parse call arguments after '(' up to and including ')'."""
        arguments: list[Expression] = []
        if not self._check(")"):
            while True:
                arguments.append(self._parse_expression())
                if not self._match(","):
                    break
        self._expect(")", "Expected ')' after arguments")
        return tuple(arguments)

    def _parse_primary(self) -> Expression:
        """Parse primary expressions (literals, groups, identifiers, calls)."""
        token = self._current
        if token is None:
            raise self._error("Expected expression")
        loc = token.location

        if self._match("NIL"):
            return NilLiteral(loc)
        if self._match("TRUE"):
            return BooleanLiteral(True, loc)
        if self._match("FALSE"):
            return BooleanLiteral(False, loc)

        if self._match(TokenType.INTEGER):
            return IntegerLiteral(int(token.lexeme), loc)
        if self._match(TokenType.DECIMAL):
            return DecimalLiteral(Decimal(token.lexeme), loc)
        if self._match(TokenType.CHARACTER):
            return CharacterLiteral(unescape(token.lexeme[1:-1]), loc)
        if self._match(TokenType.STRING):
            return StringLiteral(unescape(token.lexeme[1:-1]), loc)

        if self._match("("):
            inner = self._parse_expression()
            self._expect(")", "Expected ')' after expression")
            if not isinstance(inner, BinaryExpression):
                raise self._error(
                    "Parenthesized expression must be a binary expression", loc
                )
            return Group(inner, loc)

        if self._check(TokenType.IDENTIFIER) and token.lexeme not in KEYWORDS:
            self._advance()
            if self._match("("):
                arguments = self._parse_arguments()
                return FunctionCall(None, token.lexeme, arguments, loc)
            return Access(None, token.lexeme, loc)

        raise self._error(f"Expected expression, found '{token.lexeme}'")


def parse(
    tokens: list[Token], source: str = "", filename: Optional[str] = None
) -> Source:
    """
    Convenience function to parse tokens into an AST.

    Args:
        tokens: List of tokens from the lexer
        source: Optional source code for error messages

    Returns:
        The root Source AST node
    """
    return Parser(tokens, source, filename).parse()
