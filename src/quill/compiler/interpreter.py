"""
Quill Tree-Walking Interpreter.

Executes a parsed (and normally analyzed) program against a runtime scope
chain. Evaluation is single-threaded and synchronous; the only mutable
state is the scope chain and the current-scope pointer, which is restored
on every exit path from a block or call.
"""

import logging
import sys
from contextlib import contextmanager
from decimal import Context, Decimal, MAX_EMAX, MAX_PREC, MIN_EMIN
from fractions import Fraction
from typing import Iterator, Optional, TextIO

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
from quill.compiler.builtins import runtime_scope
from quill.compiler.environment import (
    ANY,
    NIL,
    NIL_TYPE,
    ORDERED_KINDS,
    TYPES,
    RuntimeValue,
    Type,
    ValueKind,
    Variable,
)
from quill.compiler.scope import Scope
from quill.utils.diagnostics import ErrorCode
from quill.utils.errors import InterpreterError

logger = logging.getLogger(__name__)

# Exact context for decimal add, subtract and multiply
EXACT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)

# Python frames reserved per Quill call while a program runs
FRAMES_PER_CALL = 25


class ReturnSignal(Exception):
    """
    Unwinds statement execution up to the enclosing method invocation.

    Only the method frame catches it; it is never reported as an error
    unless it escapes a method.
    """

    def __init__(self, value: RuntimeValue) -> None:
        super().__init__("RETURN outside of a method")
        self.value = value


def _truncating_divide(left: int, right: int) -> int:
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


class Interpreter(ASTVisitor):
    """
    Tree-walking interpreter for Quill.

    Usage:
        interpreter = Interpreter(output=io.StringIO())
        exit_code = interpreter.run(source_node)

    Configuration:
        parent: Optional scope with extra bindings (e.g. a ``range`` function)
        output: Stream written by ``print`` (defaults to ``sys.stdout``)
        decimal_scale: Digits after the point kept by decimal division
        max_call_depth: Nested method calls allowed before "Stack overflow"
    """

    def __init__(
        self,
        parent: Optional[Scope] = None,
        output: Optional[TextIO] = None,
        decimal_scale: int = 1,
        max_call_depth: int = 1000,
    ) -> None:
        self.parent = parent
        self.output = output
        self.scope = runtime_scope(parent, output)
        self.decimal_scale = decimal_scale
        self.max_call_depth = max_call_depth
        self._call_depth = 0

    # -------------------------------------------------------------------------
    # Entry Points
    # -------------------------------------------------------------------------

    def run(self, source: Source) -> int:
        """
        Execute a program: bind fields, define methods, invoke ``main``.

        Returns:
            The integer returned by ``main``.

        Raises:
            InterpreterError: On any runtime failure, or if ``main`` is
                missing or does not return an integer.
        """
        self.scope = runtime_scope(self.parent, self.output)
        self._call_depth = 0
        result = self._guard(source)
        if result.kind != ValueKind.INTEGER:
            raise InterpreterError(
                f"'main' must return an Integer, got {result.kind.name.capitalize()}",
                code=ErrorCode.E0401,
            )
        return result.value

    def evaluate(self, expression: Expression) -> RuntimeValue:
        """Evaluate a standalone expression in the current scope."""
        return self._guard(expression)

    def execute(self, statement: Statement) -> None:
        """Execute a standalone statement in the current scope."""
        self._guard(statement)

    def _guard(self, node: ASTNode) -> RuntimeValue:
        limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(limit, self.max_call_depth * FRAMES_PER_CALL))
        try:
            return self.visit(node)
        except ReturnSignal:
            raise InterpreterError(
                "RETURN outside of a method", node.location, code=ErrorCode.E0401
            ) from None
        except RecursionError:
            raise InterpreterError("Stack overflow", node.location, code=ErrorCode.E0401) from None
        finally:
            sys.setrecursionlimit(limit)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @contextmanager
    def _child_scope(self, parent: Optional[Scope] = None) -> Iterator[Scope]:
        """Run a block in a fresh scope, restoring the current scope on exit."""
        previous = self.scope
        self.scope = Scope(parent if parent is not None else previous)
        try:
            yield self.scope
        finally:
            self.scope = previous

    def _execute_block(self, statements: tuple[Statement, ...]) -> None:
        with self._child_scope():
            for statement in statements:
                self.visit(statement)

    def _define_variable(self, name: str, type_: Type, value: RuntimeValue, node: ASTNode) -> Variable:
        try:
            return self.scope.define_variable(name, name, type_, value)
        except ValueError as e:
            raise InterpreterError(str(e), node.location) from None

    def _require_kind(self, value: RuntimeValue, kind: ValueKind, node: ASTNode) -> RuntimeValue:
        if value.kind != kind:
            raise InterpreterError(
                f"Expected {kind.name.capitalize()} value, got {value.kind.name.capitalize()}",
                node.location,
                code=ErrorCode.E0401,
            )
        return value

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def visit_source(self, node: Source) -> RuntimeValue:
        for field_node in node.fields:
            self.visit(field_node)
        for method in node.methods:
            self.visit(method)

        main = self.scope.lookup_function("main", 0)
        if main is None:
            raise InterpreterError(
                "Program has no zero-argument 'main' method", code=ErrorCode.E0404
            )
        logger.debug("Invoking main")
        return main.invoke([])

    def visit_field(self, node: Field) -> RuntimeValue:
        value = self.visit(node.value) if node.value is not None else NIL
        self._define_variable(node.name, TYPES.get(node.type_name, ANY), value, node)
        return NIL

    def visit_method(self, node: Method) -> RuntimeValue:
        defining_scope = self.scope
        parameter_types = [TYPES.get(name, ANY) for name in node.parameter_type_names]
        return_type = TYPES.get(node.return_type_name, NIL_TYPE)

        def invoke(arguments: list[RuntimeValue]) -> RuntimeValue:
            if len(arguments) != len(node.parameters):
                raise InterpreterError(
                    f"Method '{node.name}' expects {len(node.parameters)} argument(s), "
                    f"got {len(arguments)}",
                    node.location,
                    code=ErrorCode.E0403,
                )
            if self._call_depth >= self.max_call_depth:
                raise InterpreterError("Stack overflow", node.location, code=ErrorCode.E0401)
            self._call_depth += 1
            try:
                with self._child_scope(defining_scope):
                    for name, type_, argument in zip(node.parameters, parameter_types, arguments):
                        self._define_variable(name, type_, argument, node)
                    try:
                        for statement in node.statements:
                            self.visit(statement)
                    except ReturnSignal as signal:
                        return signal.value
                return NIL
            finally:
                self._call_depth -= 1

        try:
            self.scope.define_function(node.name, node.name, parameter_types, return_type, invoke)
        except ValueError as e:
            raise InterpreterError(str(e), node.location) from None
        return NIL

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def visit_expression_statement(self, node: ExpressionStatement) -> RuntimeValue:
        self.visit(node.expression)
        return NIL

    def visit_declaration_statement(self, node: DeclarationStatement) -> RuntimeValue:
        value = self.visit(node.value) if node.value is not None else NIL
        self._define_variable(node.name, TYPES.get(node.type_name, ANY), value, node)
        return NIL

    def visit_assignment_statement(self, node: AssignmentStatement) -> RuntimeValue:
        receiver = node.receiver
        if not isinstance(receiver, Access):
            raise InterpreterError(
                "The left side of an assignment must be a variable or field",
                node.location,
                code=ErrorCode.E0401,
            )

        if receiver.receiver is not None:
            variable = self._field(self.visit(receiver.receiver), receiver)
        else:
            variable = self._lookup_variable(receiver)
        variable.value = self.visit(node.value)
        return NIL

    def visit_if_statement(self, node: IfStatement) -> RuntimeValue:
        condition = self._require_kind(self.visit(node.condition), ValueKind.BOOLEAN, node.condition)
        if condition.value:
            self._execute_block(node.then_statements)
        else:
            self._execute_block(node.else_statements)
        return NIL

    def visit_for_statement(self, node: ForStatement) -> RuntimeValue:
        iterable = self._require_kind(self.visit(node.value), ValueKind.ITERABLE, node.value)
        for element in iterable.value:
            with self._child_scope():
                self._define_variable(node.name, ANY, element, node)
                for statement in node.statements:
                    self.visit(statement)
        return NIL

    def visit_while_statement(self, node: WhileStatement) -> RuntimeValue:
        while self._require_kind(
            self.visit(node.condition), ValueKind.BOOLEAN, node.condition
        ).value:
            self._execute_block(node.statements)
        return NIL

    def visit_return_statement(self, node: ReturnStatement) -> RuntimeValue:
        raise ReturnSignal(self.visit(node.value))

    # -------------------------------------------------------------------------
    # Literals
    # -------------------------------------------------------------------------

    def visit_nil_literal(self, node: NilLiteral) -> RuntimeValue:
        return NIL

    def visit_boolean_literal(self, node: BooleanLiteral) -> RuntimeValue:
        return RuntimeValue.boolean(node.value)

    def visit_character_literal(self, node: CharacterLiteral) -> RuntimeValue:
        return RuntimeValue.character(node.value)

    def visit_string_literal(self, node: StringLiteral) -> RuntimeValue:
        return RuntimeValue.string(node.value)

    def visit_integer_literal(self, node: IntegerLiteral) -> RuntimeValue:
        return RuntimeValue.integer(node.value)

    def visit_decimal_literal(self, node: DecimalLiteral) -> RuntimeValue:
        return RuntimeValue.decimal(node.value)

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def visit_group(self, node: Group) -> RuntimeValue:
        return self.visit(node.expression)

    def visit_binary_expression(self, node: BinaryExpression) -> RuntimeValue:
        operator = node.operator

        if operator is BinaryOperator.AND:
            if not self._require_kind(self.visit(node.left), ValueKind.BOOLEAN, node.left).value:
                return RuntimeValue.boolean(False)
            right = self._require_kind(self.visit(node.right), ValueKind.BOOLEAN, node.right)
            return RuntimeValue.boolean(right.value)

        if operator is BinaryOperator.OR:
            if self._require_kind(self.visit(node.left), ValueKind.BOOLEAN, node.left).value:
                return RuntimeValue.boolean(True)
            right = self._require_kind(self.visit(node.right), ValueKind.BOOLEAN, node.right)
            return RuntimeValue.boolean(right.value)

        left = self.visit(node.left)
        right = self.visit(node.right)

        if operator is BinaryOperator.EQ:
            return RuntimeValue.boolean(left == right)
        if operator is BinaryOperator.NE:
            return RuntimeValue.boolean(left != right)
        if operator.is_comparison:
            return self._compare(operator, left, right, node)

        if operator is BinaryOperator.ADD and (
            left.kind == ValueKind.STRING or right.kind == ValueKind.STRING
        ):
            return RuntimeValue.string(left.text() + right.text())

        return self._arithmetic(operator, left, right, node)

    def _compare(
        self,
        operator: BinaryOperator,
        left: RuntimeValue,
        right: RuntimeValue,
        node: BinaryExpression,
    ) -> RuntimeValue:
        if left.kind != right.kind:
            raise InterpreterError(
                f"Cannot compare {left.kind.name.capitalize()} with "
                f"{right.kind.name.capitalize()}",
                node.location,
                code=ErrorCode.E0401,
            )
        if left.kind not in ORDERED_KINDS:
            raise InterpreterError(
                f"{left.kind.name.capitalize()} values are not ordered",
                node.location,
                code=ErrorCode.E0401,
            )

        a, b = left.value, right.value
        if operator is BinaryOperator.LT:
            result = a < b
        elif operator is BinaryOperator.LE:
            result = a <= b
        elif operator is BinaryOperator.GT:
            result = a > b
        else:
            result = a >= b
        return RuntimeValue.boolean(result)

    def _arithmetic(
        self,
        operator: BinaryOperator,
        left: RuntimeValue,
        right: RuntimeValue,
        node: BinaryExpression,
    ) -> RuntimeValue:
        if left.kind != right.kind or left.kind not in (ValueKind.INTEGER, ValueKind.DECIMAL):
            raise InterpreterError(
                f"Operator '{operator.value}' needs two Integer or two Decimal values, "
                f"got {left.kind.name.capitalize()} and {right.kind.name.capitalize()}",
                node.location,
                code=ErrorCode.E0401,
            )

        a, b = left.value, right.value
        if operator is BinaryOperator.DIV and b == 0:
            raise InterpreterError("Divide by zero", node.location, code=ErrorCode.E0402)

        if left.kind == ValueKind.INTEGER:
            if operator is BinaryOperator.ADD:
                return RuntimeValue.integer(a + b)
            if operator is BinaryOperator.SUB:
                return RuntimeValue.integer(a - b)
            if operator is BinaryOperator.MUL:
                return RuntimeValue.integer(a * b)
            return RuntimeValue.integer(_truncating_divide(a, b))

        if operator is BinaryOperator.ADD:
            return RuntimeValue.decimal(EXACT.add(a, b))
        if operator is BinaryOperator.SUB:
            return RuntimeValue.decimal(EXACT.subtract(a, b))
        if operator is BinaryOperator.MUL:
            return RuntimeValue.decimal(EXACT.multiply(a, b))
        return RuntimeValue.decimal(self._divide_decimal(a, b))

    def _divide_decimal(self, a: Decimal, b: Decimal) -> Decimal:
        """Divide, rounding half-even to ``decimal_scale`` digits after the point."""
        quotient = Fraction(a) / Fraction(b)
        scaled = round(quotient * 10**self.decimal_scale)
        return EXACT.scaleb(Decimal(scaled), -self.decimal_scale)

    def _lookup_variable(self, node: Access) -> Variable:
        variable = self.scope.lookup_variable(node.name)
        if variable is None:
            raise InterpreterError(
                f"Undefined variable '{node.name}'", node.location, code=ErrorCode.E0404
            )
        return variable

    def _field(self, receiver: RuntimeValue, node: Access) -> Variable:
        try:
            return receiver.field(node.name)
        except InterpreterError as e:
            raise InterpreterError(e.message, node.location, code=ErrorCode.E0404) from None

    def visit_access(self, node: Access) -> RuntimeValue:
        if node.receiver is not None:
            return self._field(self.visit(node.receiver), node).value
        return self._lookup_variable(node).value

    def visit_function_call(self, node: FunctionCall) -> RuntimeValue:
        if node.receiver is not None:
            receiver = self.visit(node.receiver)
            arguments = [self.visit(argument) for argument in node.arguments]
            try:
                return receiver.call_method(node.name, arguments)
            except InterpreterError as e:
                if e.location is not None:
                    raise
                raise InterpreterError(e.message, node.location, code=ErrorCode.E0404) from None

        arguments = [self.visit(argument) for argument in node.arguments]
        function = self.scope.lookup_function(node.name, len(arguments))
        if function is None:
            raise InterpreterError(
                f"Undefined function '{node.name}' taking {len(arguments)} argument(s)",
                node.location,
                code=ErrorCode.E0404,
            )

        caller_scope = self.scope
        try:
            return function.invoke(arguments)
        finally:
            self.scope = caller_scope
