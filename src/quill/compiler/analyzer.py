"""
Quill Static Analyzer.

Walks the AST once, resolving every identifier to a Variable or Function,
inferring and checking the type of every expression, and recording the
results in a ``SemanticModel``. Nothing is evaluated.

The analyzer fails fast: the first violation raises ``SemanticError``.
"""

import logging
import math
from contextlib import contextmanager
from typing import Iterator, Optional

from quill.compiler.ast_nodes import (
    Access,
    ASTNode,
    ASTVisitor,
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
from quill.compiler.builtins import analysis_scope
from quill.compiler.environment import (
    ANY,
    BOOLEAN,
    CHARACTER,
    COMPARABLE,
    COMPARABLE_TYPES,
    DECIMAL,
    INTEGER,
    INTEGER_ITERABLE,
    NIL,
    NIL_TYPE,
    STRING,
    Type,
    Variable,
    get_type,
)
from quill.compiler.scope import Scope
from quill.compiler.semantics import SemanticModel
from quill.utils.diagnostics import ErrorCode, did_you_mean
from quill.utils.errors import SemanticError, SourceLocation

logger = logging.getLogger(__name__)

# Integer literals must fit a signed 32-bit value
INTEGER_MIN = -(2**31)
INTEGER_MAX = 2**31 - 1


def require_assignable(
    target: Type, actual: Type, location: Optional[SourceLocation] = None
) -> None:
    """
    Check that a value of type ``actual`` may be stored where ``target``
    is declared.

    ANY accepts every type; COMPARABLE accepts Integer, Decimal, Character,
    String and Comparable; every other target requires the identical type.

    Raises:
        SemanticError: "not comparable" or "not assignable" on violation.
    """
    if target is ANY:
        return
    if target is COMPARABLE:
        if actual.name not in COMPARABLE_TYPES:
            raise SemanticError(
                f"Type {actual.name} is not comparable", location, code=ErrorCode.E0101
            )
        return
    if actual is not target:
        raise SemanticError(
            f"Type {actual.name} is not assignable to {target.name}",
            location,
            code=ErrorCode.E0101,
        )


class Analyzer(ASTVisitor):
    """
    Scope and type analyzer for Quill.

    Usage:
        analyzer = Analyzer()
        model = analyzer.analyze(source_node)
        model.type_of(expression)

    Fields are analyzed before methods, each extending the analyzer scope.
    A method is bound before its body is analyzed, so it may call itself.
    Every block is analyzed in a child scope that is discarded afterwards.
    """

    def __init__(self, parent: Optional[Scope] = None, source: str = "") -> None:
        """
        Initialize the analyzer.

        Args:
            parent: Optional scope with extra bindings visible to the program
            source: Optional source code, used to show the offending line in errors
        """
        self._parent = parent
        self._source_lines = source.splitlines() if source else []
        self.scope = analysis_scope(parent)
        self.model = SemanticModel()
        self._return_type: Optional[Type] = None

    # -------------------------------------------------------------------------
    # Entry Points
    # -------------------------------------------------------------------------

    def analyze(self, source: Source) -> SemanticModel:
        """
        Analyze a whole program.

        Every run starts from a fresh scope and a fresh model, so analyzing
        the same tree twice yields the same annotations.

        Returns:
            The semantic model holding all resolved types and bindings.
        """
        self.scope = analysis_scope(self._parent)
        self.model = SemanticModel()
        self._return_type = None
        self.visit(source)
        logger.debug(f"Analysis resolved {len(self.model)} annotations")
        return self.model

    def analyze_expression(self, expression: Expression) -> Type:
        """Analyze a standalone expression in the current scope and return its type."""
        return self.visit(expression)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _error(
        self,
        message: str,
        node: Optional[ASTNode],
        code: str = ErrorCode.E0101,
        hint: Optional[str] = None,
    ) -> SemanticError:
        location = node.location if node is not None else None
        source_line = None
        if location is not None and 0 < location.line <= len(self._source_lines):
            source_line = self._source_lines[location.line - 1]
        return SemanticError(message, location, source_line, code=code, hint=hint)

    def _require_assignable(self, target: Type, actual: Type, node: ASTNode) -> None:
        try:
            require_assignable(target, actual, node.location)
        except SemanticError as e:
            raise self._error(e.message, node, e.code) from None

    @contextmanager
    def _child_scope(self) -> Iterator[Scope]:
        """Analyze a block in a fresh child scope, restoring the parent on exit."""
        previous = self.scope
        self.scope = Scope(previous)
        try:
            yield self.scope
        finally:
            self.scope = previous

    def _analyze_block(self, statements: tuple[Statement, ...]) -> None:
        for statement in statements:
            self.visit(statement)

    def _resolve_type(self, name: str, node: ASTNode) -> Type:
        try:
            return get_type(name)
        except SemanticError as e:
            raise self._error(e.message, node, e.code, e.hint) from None

    def _define_variable(self, name: str, type_: Type, node: ASTNode) -> Variable:
        if self.scope.is_defined_locally(name):
            raise self._error(
                f"Variable '{name}' is already defined in this scope", node, ErrorCode.E0112
            )
        return self.scope.define_variable(name, name, type_, NIL)

    def _declare(
        self,
        node: ASTNode,
        name: str,
        type_name: Optional[str],
        value: Optional[Expression],
    ) -> None:
        """Shared rules for fields and local declarations."""
        declared = self._resolve_type(type_name, node) if type_name is not None else None

        if value is not None:
            value_type = self.visit(value)
            if declared is not None:
                self._require_assignable(declared, value_type, value)
            else:
                declared = value_type

        if declared is None:
            raise self._error(
                f"Declaration of '{name}' needs a type or an initial value", node
            )

        self.model.set_variable(node, self._define_variable(name, declared, node))

    def _set_type(self, node: Expression, type_: Type) -> Type:
        self.model.set_type(node, type_)
        return type_

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def visit_source(self, node: Source) -> SemanticModel:
        for field_node in node.fields:
            self.visit(field_node)
        for method in node.methods:
            self.visit(method)

        main = self.scope.lookup_function("main", 0)
        if main is None:
            raise self._error(
                "Program has no zero-argument 'main' method", None, ErrorCode.E0309
            )
        main_node = next(
            (m for m in node.methods if m.name == "main" and not m.parameters), None
        )
        self._require_assignable(INTEGER, main.return_type, main_node or node)
        return self.model

    def visit_field(self, node: Field) -> None:
        self._declare(node, node.name, node.type_name, node.value)

    def visit_method(self, node: Method) -> None:
        logger.debug(f"Analyzing method '{node.name}'")
        return_type = (
            self._resolve_type(node.return_type_name, node)
            if node.return_type_name is not None
            else NIL_TYPE
        )
        parameter_types = [self._resolve_type(name, node) for name in node.parameter_type_names]

        if self.scope.is_defined_locally(node.name, len(parameter_types)):
            raise self._error(
                f"Method '{node.name}' with {len(parameter_types)} parameter(s) "
                "is already defined",
                node,
                ErrorCode.E0112,
            )
        function = self.scope.define_function(
            node.name, node.name, parameter_types, return_type, lambda arguments: NIL
        )
        self.model.set_function(node, function)

        previous_return_type = self._return_type
        self._return_type = return_type
        try:
            with self._child_scope():
                for name, type_ in zip(node.parameters, parameter_types):
                    self._define_variable(name, type_, node)
                self._analyze_block(node.statements)
        finally:
            self._return_type = previous_return_type

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def visit_expression_statement(self, node: ExpressionStatement) -> None:
        if not isinstance(node.expression, FunctionCall):
            raise self._error(
                "Expression statements must be function calls", node, ErrorCode.E0311
            )
        self.visit(node.expression)

    def visit_declaration_statement(self, node: DeclarationStatement) -> None:
        self._declare(node, node.name, node.type_name, node.value)

    def visit_assignment_statement(self, node: AssignmentStatement) -> None:
        if not isinstance(node.receiver, Access):
            raise self._error(
                "The left side of an assignment must be a variable or field",
                node,
                ErrorCode.E0106,
            )
        receiver_type = self.visit(node.receiver)
        value_type = self.visit(node.value)
        self._require_assignable(receiver_type, value_type, node.value)

    def visit_if_statement(self, node: IfStatement) -> None:
        self._require_assignable(BOOLEAN, self.visit(node.condition), node.condition)
        if not node.then_statements:
            raise self._error("IF statement must have a non-empty body", node, ErrorCode.E0310)
        with self._child_scope():
            self._analyze_block(node.then_statements)
        with self._child_scope():
            self._analyze_block(node.else_statements)

    def visit_for_statement(self, node: ForStatement) -> None:
        value_type = self.visit(node.value)
        try:
            require_assignable(INTEGER_ITERABLE, value_type)
        except SemanticError:
            raise self._error(
                f"FOR loops iterate over {INTEGER_ITERABLE.name}, found {value_type.name}",
                node.value,
                ErrorCode.E0109,
            ) from None
        if not node.statements:
            raise self._error("FOR statement must have a non-empty body", node, ErrorCode.E0310)
        with self._child_scope():
            self._define_variable(node.name, INTEGER, node)
            self._analyze_block(node.statements)

    def visit_while_statement(self, node: WhileStatement) -> None:
        self._require_assignable(BOOLEAN, self.visit(node.condition), node.condition)
        with self._child_scope():
            self._analyze_block(node.statements)

    def visit_return_statement(self, node: ReturnStatement) -> None:
        if self._return_type is None:
            raise self._error("RETURN outside of a method", node, ErrorCode.E0302)
        value_type = self.visit(node.value)
        try:
            require_assignable(self._return_type, value_type)
        except SemanticError as e:
            raise self._error(f"Invalid return value: {e.message}", node.value, ErrorCode.E0111) from None

    # -------------------------------------------------------------------------
    # Literals
    # -------------------------------------------------------------------------

    def visit_nil_literal(self, node: NilLiteral) -> Type:
        return self._set_type(node, NIL_TYPE)

    def visit_boolean_literal(self, node: BooleanLiteral) -> Type:
        return self._set_type(node, BOOLEAN)

    def visit_character_literal(self, node: CharacterLiteral) -> Type:
        return self._set_type(node, CHARACTER)

    def visit_string_literal(self, node: StringLiteral) -> Type:
        return self._set_type(node, STRING)

    def visit_integer_literal(self, node: IntegerLiteral) -> Type:
        if not INTEGER_MIN <= node.value <= INTEGER_MAX:
            raise self._error(
                f"Integer literal {node.value} is outside the 32-bit range",
                node,
                ErrorCode.E0113,
            )
        return self._set_type(node, INTEGER)

    def visit_decimal_literal(self, node: DecimalLiteral) -> Type:
        if math.isinf(float(node.value)):
            raise self._error(
                f"Decimal literal {node.value} is too large", node, ErrorCode.E0113
            )
        return self._set_type(node, DECIMAL)

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def visit_group(self, node: Group) -> Type:
        if not isinstance(node.expression, BinaryExpression):
            raise self._error("Parenthesized expression must be a binary expression", node)
        return self._set_type(node, self.visit(node.expression))

    def visit_binary_expression(self, node: BinaryExpression) -> Type:
        left = self.visit(node.left)
        right = self.visit(node.right)
        operator = node.operator

        if operator.is_logical:
            self._require_assignable(BOOLEAN, left, node.left)
            self._require_assignable(BOOLEAN, right, node.right)
            return self._set_type(node, BOOLEAN)

        if operator.is_comparison:
            self._require_assignable(COMPARABLE, left, node.left)
            self._require_assignable(COMPARABLE, right, node.right)
            self._require_assignable(left, right, node.right)
            return self._set_type(node, BOOLEAN)

        if operator is BinaryOperator.ADD and (left is STRING or right is STRING):
            return self._set_type(node, STRING)

        if left is INTEGER or left is DECIMAL:
            self._require_assignable(left, right, node.right)
            return self._set_type(node, left)

        raise self._error(
            f"Operator '{operator.value}' needs Integer or Decimal operands, found {left.name}",
            node,
            ErrorCode.E0105,
        )

    def visit_access(self, node: Access) -> Type:
        if node.receiver is None:
            variable = self.scope.lookup_variable(node.name)
            if variable is None:
                raise self._error(
                    f"Undefined variable '{node.name}'",
                    node,
                    ErrorCode.E0102,
                    did_you_mean(node.name, self.scope.visible_names()),
                )
        else:
            receiver_type = self.visit(node.receiver)
            variable = receiver_type.field(node.name)
            if variable is None:
                raise self._error(
                    f"Type {receiver_type.name} has no field '{node.name}'",
                    node,
                    ErrorCode.E0110,
                    did_you_mean(node.name, list(receiver_type.scope.variables)),
                )

        self.model.set_variable(node, variable)
        return self._set_type(node, variable.type)

    def visit_function_call(self, node: FunctionCall) -> Type:
        arity = len(node.arguments)

        if node.receiver is None:
            function = self.scope.lookup_function(node.name, arity)
            if function is None:
                raise self._error(
                    f"Undefined function '{node.name}' taking {arity} argument(s)",
                    node,
                    ErrorCode.E0103,
                    did_you_mean(node.name, self.scope.visible_names()),
                )
            parameter_types = function.parameter_types
        else:
            receiver_type = self.visit(node.receiver)
            function = receiver_type.method(node.name, arity)
            if function is None:
                raise self._error(
                    f"Type {receiver_type.name} has no method '{node.name}' "
                    f"taking {arity} argument(s)",
                    node,
                    ErrorCode.E0110,
                    did_you_mean(node.name, [name for name, _ in receiver_type.scope.functions]),
                )
            # First parameter is the receiver
            parameter_types = function.parameter_types[1:]

        for argument, parameter_type in zip(node.arguments, parameter_types):
            self._require_assignable(parameter_type, self.visit(argument), argument)

        self.model.set_function(node, function)
        return self._set_type(node, function.return_type)
