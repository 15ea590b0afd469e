"""
Abstract Syntax Tree (AST) node definitions for Quill.

This module defines all AST node types representing the structure of
a Quill program after parsing. Each node is immutable and carries
source location information for error reporting. Facts discovered by
the analyzer (types and bindings) are kept outside the tree, in a
``quill.compiler.semantics.SemanticModel``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from quill.utils.errors import SourceLocation


class ASTNode(ABC):
    """Base class for all AST nodes."""

    location: Optional[SourceLocation]

    @abstractmethod
    def accept(self, visitor: "ASTVisitor") -> Any:
        """Accept a visitor for tree traversal."""
        pass


class ASTVisitor(ABC):
    """
    Visitor pattern base class for AST traversal.

    Every node variant has one ``visit_*`` method; a concrete visitor
    (the analyzer, the interpreter) must implement all of them.
    """

    def visit(self, node: ASTNode) -> Any:
        """Dispatch to the appropriate visit method."""
        return node.accept(self)

    @abstractmethod
    def visit_source(self, node: "Source") -> Any: ...

    @abstractmethod
    def visit_field(self, node: "Field") -> Any: ...

    @abstractmethod
    def visit_method(self, node: "Method") -> Any: ...

    @abstractmethod
    def visit_expression_statement(self, node: "ExpressionStatement") -> Any: ...

    @abstractmethod
    def visit_declaration_statement(self, node: "DeclarationStatement") -> Any: ...

    @abstractmethod
    def visit_assignment_statement(self, node: "AssignmentStatement") -> Any: ...

    @abstractmethod
    def visit_if_statement(self, node: "IfStatement") -> Any: ...

    @abstractmethod
    def visit_for_statement(self, node: "ForStatement") -> Any: ...

    @abstractmethod
    def visit_while_statement(self, node: "WhileStatement") -> Any: ...

    @abstractmethod
    def visit_return_statement(self, node: "ReturnStatement") -> Any: ...

    @abstractmethod
    def visit_nil_literal(self, node: "NilLiteral") -> Any: ...

    @abstractmethod
    def visit_boolean_literal(self, node: "BooleanLiteral") -> Any: ...

    @abstractmethod
    def visit_character_literal(self, node: "CharacterLiteral") -> Any: ...

    @abstractmethod
    def visit_string_literal(self, node: "StringLiteral") -> Any: ...

    @abstractmethod
    def visit_integer_literal(self, node: "IntegerLiteral") -> Any: ...

    @abstractmethod
    def visit_decimal_literal(self, node: "DecimalLiteral") -> Any: ...

    @abstractmethod
    def visit_group(self, node: "Group") -> Any: ...

    @abstractmethod
    def visit_binary_expression(self, node: "BinaryExpression") -> Any: ...

    @abstractmethod
    def visit_access(self, node: "Access") -> Any: ...

    @abstractmethod
    def visit_function_call(self, node: "FunctionCall") -> Any: ...


# -----------------------------------------------------------------------------
# Base Classes
# -----------------------------------------------------------------------------


class Expression(ASTNode):
    """Base class for all expressions."""

    pass


class Statement(ASTNode):
    """Base class for all statements."""

    pass


class Literal(Expression):
    """Base class for literal values; subclasses carry a ``value``."""

    pass


# -----------------------------------------------------------------------------
# Literals
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NilLiteral(Literal):
    """The NIL literal."""

    location: Optional[SourceLocation] = None

    @property
    def value(self) -> None:
        return None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_nil_literal(self)


@dataclass(frozen=True, slots=True)
class BooleanLiteral(Literal):
    """A boolean literal (TRUE or FALSE)."""

    value: bool
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_boolean_literal(self)


@dataclass(frozen=True, slots=True)
class CharacterLiteral(Literal):
    """A character literal; ``value`` is the decoded one-character string."""

    value: str
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_character_literal(self)


@dataclass(frozen=True, slots=True)
class StringLiteral(Literal):
    """A string literal with quotes removed and escapes substituted."""

    value: str
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_string_literal(self)


@dataclass(frozen=True, slots=True)
class IntegerLiteral(Literal):
    """An integer literal of arbitrary size (range is checked by the analyzer)."""

    value: int
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_integer_literal(self)


@dataclass(frozen=True, slots=True)
class DecimalLiteral(Literal):
    """An exact decimal literal."""

    value: Decimal
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_decimal_literal(self)


# -----------------------------------------------------------------------------
# Expressions
# -----------------------------------------------------------------------------


class BinaryOperator(Enum):
    """Binary operator types; values are the source lexemes."""

    # Logical
    AND = "AND"
    OR = "OR"

    # Comparison
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    EQ = "=="
    NE = "!="

    # Arithmetic
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"

    @property
    def is_logical(self) -> bool:
        return self in (BinaryOperator.AND, BinaryOperator.OR)

    @property
    def is_comparison(self) -> bool:
        return self in (
            BinaryOperator.LT,
            BinaryOperator.LE,
            BinaryOperator.GT,
            BinaryOperator.GE,
            BinaryOperator.EQ,
            BinaryOperator.NE,
        )


@dataclass(frozen=True, slots=True)
class Group(Expression):
    """
    A parenthesized expression.

    Parentheses only reassociate binary operators, so the parser
    guarantees ``expression`` is a BinaryExpression.
    """

    expression: Expression
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_group(self)


@dataclass(frozen=True, slots=True)
class BinaryExpression(Expression):
    """
    A binary operation.

    Examples:
        a + b, x < 10, done AND ready
    """

    operator: BinaryOperator
    left: Expression
    right: Expression
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_binary_expression(self)


@dataclass(frozen=True, slots=True)
class Access(Expression):
    """
    A variable reference or a field access on a receiver.

    Examples:
        x             (receiver is None)
        point.x
    """

    receiver: Optional[Expression]
    name: str
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_access(self)


@dataclass(frozen=True, slots=True)
class FunctionCall(Expression):
    """
    A free function call or a method call on a receiver.

    Examples:
        print(x)                (receiver is None)
        "quill".slice(1, 3)
    """

    receiver: Optional[Expression]
    name: str
    arguments: tuple[Expression, ...] = ()
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_function_call(self)


# -----------------------------------------------------------------------------
# Statements
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExpressionStatement(Statement):
    """An expression evaluated for its side effects, e.g. ``print(x);``."""

    expression: Expression
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_expression_statement(self)


@dataclass(frozen=True, slots=True)
class DeclarationStatement(Statement):
    """
    A local variable declaration.

    Examples:
        LET x = 5;
        LET name: String;
    """

    name: str
    type_name: Optional[str] = None
    value: Optional[Expression] = None
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_declaration_statement(self)


@dataclass(frozen=True, slots=True)
class AssignmentStatement(Statement):
    """
    An assignment; ``receiver`` is whatever expression preceded ``=``.

    The parser does not check that the receiver is assignable.
    """

    receiver: Expression
    value: Expression
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_assignment_statement(self)


@dataclass(frozen=True, slots=True)
class IfStatement(Statement):
    """IF condition DO ... ELSE ... END"""

    condition: Expression
    then_statements: tuple[Statement, ...] = ()
    else_statements: tuple[Statement, ...] = ()
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_if_statement(self)


@dataclass(frozen=True, slots=True)
class ForStatement(Statement):
    """FOR name IN value DO ... END"""

    name: str
    value: Expression
    statements: tuple[Statement, ...] = ()
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_for_statement(self)


@dataclass(frozen=True, slots=True)
class WhileStatement(Statement):
    """WHILE condition DO ... END"""

    condition: Expression
    statements: tuple[Statement, ...] = ()
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_while_statement(self)


@dataclass(frozen=True, slots=True)
class ReturnStatement(Statement):
    """RETURN value;"""

    value: Expression
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_return_statement(self)


# -----------------------------------------------------------------------------
# Declarations
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Field(ASTNode):
    """
    A global variable declared at the top of a source file.

    Example:
        LET limit: Integer = 10;
    """

    name: str
    type_name: Optional[str] = None
    value: Optional[Expression] = None
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_field(self)


@dataclass(frozen=True, slots=True)
class Method(ASTNode):
    """
    A method declaration.

    Parameters without a type annotation get the type name ``"Any"``,
    so ``parameter_type_names`` always has one entry per parameter.

    Example:
        DEF square(n: Integer): Integer DO RETURN n * n; END
    """

    name: str
    parameters: tuple[str, ...] = ()
    parameter_type_names: tuple[str, ...] = ()
    return_type_name: Optional[str] = None
    statements: tuple[Statement, ...] = ()
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_method(self)


@dataclass(frozen=True, slots=True)
class Source(ASTNode):
    """
    The root node of a Quill program.

    Fields always precede methods in the source text.
    """

    fields: tuple[Field, ...] = ()
    methods: tuple[Method, ...] = ()
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_source(self)


# -----------------------------------------------------------------------------
# Visitor with default implementations
# -----------------------------------------------------------------------------


class BaseASTVisitor(ASTVisitor):
    """
    A visitor that walks every child node and returns None.

    Override only the methods you need; call the base implementation to
    keep descending.
    """

    def _visit_all(self, nodes: tuple[ASTNode, ...]) -> None:
        for node in nodes:
            self.visit(node)

    def visit_source(self, node: Source) -> Any:
        self._visit_all(node.fields)
        self._visit_all(node.methods)

    def visit_field(self, node: Field) -> Any:
        if node.value is not None:
            self.visit(node.value)

    def visit_method(self, node: Method) -> Any:
        self._visit_all(node.statements)

    def visit_expression_statement(self, node: ExpressionStatement) -> Any:
        self.visit(node.expression)

    def visit_declaration_statement(self, node: DeclarationStatement) -> Any:
        if node.value is not None:
            self.visit(node.value)

    def visit_assignment_statement(self, node: AssignmentStatement) -> Any:
        self.visit(node.receiver)
        self.visit(node.value)

    def visit_if_statement(self, node: IfStatement) -> Any:
        self.visit(node.condition)
        self._visit_all(node.then_statements)
        self._visit_all(node.else_statements)

    def visit_for_statement(self, node: ForStatement) -> Any:
        self.visit(node.value)
        self._visit_all(node.statements)

    def visit_while_statement(self, node: WhileStatement) -> Any:
        self.visit(node.condition)
        self._visit_all(node.statements)

    def visit_return_statement(self, node: ReturnStatement) -> Any:
        self.visit(node.value)

    def visit_nil_literal(self, node: NilLiteral) -> Any:
        pass

    def visit_boolean_literal(self, node: BooleanLiteral) -> Any:
        pass

    def visit_character_literal(self, node: CharacterLiteral) -> Any:
        pass

    def visit_string_literal(self, node: StringLiteral) -> Any:
        pass

    def visit_integer_literal(self, node: IntegerLiteral) -> Any:
        pass

    def visit_decimal_literal(self, node: DecimalLiteral) -> Any:
        pass

    def visit_group(self, node: Group) -> Any:
        self.visit(node.expression)

    def visit_binary_expression(self, node: BinaryExpression) -> Any:
        self.visit(node.left)
        self.visit(node.right)

    def visit_access(self, node: Access) -> Any:
        if node.receiver is not None:
            self.visit(node.receiver)

    def visit_function_call(self, node: FunctionCall) -> Any:
        if node.receiver is not None:
            self.visit(node.receiver)
        self._visit_all(node.arguments)
