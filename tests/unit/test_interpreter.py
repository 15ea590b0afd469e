"""
Unit tests for the Quill tree-walking interpreter.
"""

import io

import pytest

from quill.compiler.ast_nodes import IntegerLiteral, ReturnStatement
from quill.compiler.environment import NIL, RuntimeValue, ValueKind
from quill.compiler.interpreter import Interpreter
from quill.utils.errors import InterpreterError


def main_returning(statements: str) -> str:
    return f"DEF main(): Integer DO {statements} END"


class TestInterpreterPrograms:
    """Whole-program execution tests."""

    def test_scenario_a(self, run):
        assert run("LET x = 5; DEF main(): Integer DO RETURN x; END").exit_code == 5

    def test_scenario_b_divide_by_zero(self, run):
        with pytest.raises(InterpreterError, match="Divide by zero") as exc_info:
            run("DEF main(): Integer DO RETURN 1 / 0; END")
        assert exc_info.value.code == "E0402"

    @pytest.mark.parametrize("literal,expected", [("TRUE", 1), ("FALSE", 2)])
    def test_scenario_f_if_else(self, run, literal, expected):
        source = f"DEF main(): Integer DO IF {literal} DO RETURN 1; ELSE RETURN 2; END END"
        assert run(source).exit_code == expected

    def test_return_unwinds_nested_blocks(self, run):
        source = main_returning(
            "LET i = 0; WHILE TRUE DO i = i + 1; IF i == 4 DO RETURN i * 10; END END RETURN 0;"
        )
        assert run(source).exit_code == 40

    def test_while_loop(self, run):
        source = main_returning("LET i = 0; WHILE i < 3 DO i = i + 1; END RETURN i;")
        assert run(source).exit_code == 3

    def test_for_loop(self, run, range_scope):
        source = main_returning(
            "LET total = 0; FOR i IN range(0, 5) DO total = total + i; END RETURN total;"
        )
        assert run(source, range_scope).exit_code == 10

    def test_recursion(self, run):
        source = (
            "DEF fact(n: Integer): Integer DO "
            "IF n <= 1 DO RETURN 1; END RETURN n * fact(n - 1); END "
            + main_returning("RETURN fact(5);")
        )
        assert run(source).exit_code == 120

    def test_fields_are_shared_between_methods(self, run):
        source = (
            "LET counter = 0; "
            "DEF bump() DO counter = counter + 1; END "
            + main_returning("bump(); bump(); RETURN counter;")
        )
        assert run(source).exit_code == 2

    def test_fields_initialize_in_order(self, run):
        source = "LET a = 2; LET b = a * 3; " + main_returning("RETURN b;")
        assert run(source).exit_code == 6

    def test_locals_shadow_fields(self, run):
        source = "LET a = 1; " + main_returning("LET a = 7; RETURN a;")
        assert run(source).exit_code == 7

    def test_method_without_return_yields_nil(self, run):
        source = "DEF noop() DO print(1); END " + main_returning("print(noop()); RETURN 0;")
        assert run(source).output == "1\nnil\n"

    def test_scope_is_restored_after_failure(self, parse):
        tree = parse("DEF main(): Integer DO IF TRUE DO RETURN 1 / 0; END RETURN 0; END")
        interpreter = Interpreter(output=io.StringIO())
        with pytest.raises(InterpreterError):
            interpreter.run(tree)
        assert interpreter.scope.is_defined_locally("main", 0)

    def test_run_twice_on_one_interpreter(self, parse):
        tree = parse("LET a = 3; " + main_returning("a = a + 1; RETURN a;"))
        interpreter = Interpreter(output=io.StringIO())
        assert interpreter.run(tree) == 4
        assert interpreter.run(tree) == 4

    def test_deep_recursion(self, run):
        source = (
            "DEF sum(n: Integer): Integer DO "
            "IF n == 0 DO RETURN 0; END RETURN n + sum(n - 1); END "
            + main_returning("RETURN sum(500);")
        )
        assert run(source).exit_code == 125250

    def test_runaway_recursion_is_stack_overflow(self, parse):
        tree = parse(
            "DEF loop(n: Integer): Integer DO RETURN loop(n + 1); END "
            + main_returning("RETURN loop(0);")
        )
        interpreter = Interpreter(output=io.StringIO(), max_call_depth=100)
        with pytest.raises(InterpreterError, match="Stack overflow") as exc_info:
            interpreter.run(tree)
        assert exc_info.value.code == "E0401"
        assert interpreter.scope.is_defined_locally("loop", 1)

    def test_recursion_limit_is_restored(self, run):
        import sys

        limit = sys.getrecursionlimit()
        run(main_returning("RETURN 0;"))
        assert sys.getrecursionlimit() == limit


class TestInterpreterOutput:
    """Tests for print and text conversion."""

    @pytest.mark.parametrize(
        "expression,expected",
        [
            ('"hello"', "hello"),
            ("'c'", "c"),
            ("42", "42"),
            ("1.50", "1.50"),
            ("TRUE", "true"),
            ("FALSE", "false"),
            ("NIL", "nil"),
        ],
    )
    def test_print_text(self, run, expression, expected):
        assert run(main_returning(f"print({expression}); RETURN 0;")).output == expected + "\n"

    def test_print_uses_escapes(self, run):
        assert run(main_returning('print("a\\tb"); RETURN 0;')).output == "a\tb\n"

    def test_print_defaults_to_stdout(self, parse, capsys):
        tree = parse(main_returning('print("out"); RETURN 0;'))
        Interpreter().run(tree)
        assert capsys.readouterr().out == "out\n"


class TestInterpreterArithmetic:
    """Tests for arithmetic and concatenation."""

    def evaluate(self, parse_expression, source: str, **kwargs) -> RuntimeValue:
        return Interpreter(**kwargs).evaluate(parse_expression(source))

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("7 / 2", 3),
            ("-7 / 2", -3),
            ("7 / -2", -3),
            ("2 * 3 + 4", 10),
            ("10 - 4 - 3", 3),
            ("2147483647 + 1", 2147483648),
        ],
    )
    def test_integer_arithmetic(self, parse_expression, source, expected):
        assert self.evaluate(parse_expression, source) == RuntimeValue.integer(expected)

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("0.1 + 0.2", "0.3"),
            ("1.5 * 1.5", "2.25"),
            ("1.0 / 3.0", "0.3"),
            ("2.0 / 3.0", "0.7"),
            ("0.25 / 1.0", "0.2"),
            ("0.35 / 1.0", "0.4"),
        ],
    )
    def test_decimal_arithmetic(self, parse_expression, source, expected):
        assert self.evaluate(parse_expression, source).text() == expected

    def test_decimal_scale_is_configurable(self, parse_expression):
        result = self.evaluate(parse_expression, "1.0 / 3.0", decimal_scale=3)
        assert result.text() == "0.333"

    def test_decimal_divide_by_zero(self, parse_expression):
        with pytest.raises(InterpreterError, match="Divide by zero"):
            self.evaluate(parse_expression, "1.0 / 0.0")

    @pytest.mark.parametrize(
        "source,expected",
        [
            ('"a" + 1', "a1"),
            ('1 + "a"', "1a"),
            ('"x" + 1.50', "x1.50"),
            ('"is " + TRUE', "is true"),
            ('"v" + NIL', "vnil"),
            ("\"c\" + 'd'", "cd"),
        ],
    )
    def test_concatenation(self, parse_expression, source, expected):
        assert self.evaluate(parse_expression, source) == RuntimeValue.string(expected)

    def test_mixed_numbers_fail(self, parse_expression):
        with pytest.raises(InterpreterError, match="two Integer or two Decimal"):
            self.evaluate(parse_expression, "1 + 2.0")


class TestInterpreterComparison:
    """Tests for equality, ordering and logic."""

    def evaluate(self, parse_expression, source: str) -> RuntimeValue:
        return Interpreter().evaluate(parse_expression(source))

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("1 < 2", True),
            ("2 <= 2", True),
            ("1.5 > 2.5", False),
            ("'b' >= 'a'", True),
            ('"abc" < "abd"', True),
            ("1 == 1", True),
            ('"a" != "a"', False),
            ("1 == 1.0", False),
            ("NIL == NIL", True),
            ("1.0 == 1.00", True),
            ("1.50 != 1.5", False),
            ("TRUE AND FALSE", False),
            ("FALSE OR TRUE", True),
        ],
    )
    def test_boolean_results(self, parse_expression, source, expected):
        assert self.evaluate(parse_expression, source) == RuntimeValue.boolean(expected)

    def test_ordering_needs_identical_kinds(self, parse_expression):
        with pytest.raises(InterpreterError, match="Cannot compare Integer with Character"):
            self.evaluate(parse_expression, "1 < 'c'")

    def test_comparable_parameters_checked_at_runtime(self, run):
        source = (
            "DEF lt(a: Comparable, b: Comparable): Boolean DO RETURN a < b; END "
            + main_returning("IF lt(1, 'c') DO RETURN 1; END RETURN 0;")
        )
        with pytest.raises(InterpreterError, match="Cannot compare"):
            run(source)

    def test_nil_is_not_ordered(self, parse_expression):
        with pytest.raises(InterpreterError, match="not ordered"):
            self.evaluate(parse_expression, "NIL < NIL")

    def test_and_short_circuits(self, run):
        source = (
            "DEF boom(): Boolean DO RETURN 1 / 0 == 0; END "
            + main_returning("IF FALSE AND boom() DO RETURN 1; END RETURN 2;")
        )
        assert run(source).exit_code == 2

    def test_or_short_circuits(self, run):
        source = (
            "DEF boom(): Boolean DO RETURN 1 / 0 == 0; END "
            + main_returning("IF TRUE OR boom() DO RETURN 1; END RETURN 2;")
        )
        assert run(source).exit_code == 1

    def test_logic_requires_booleans(self, parse_expression):
        with pytest.raises(InterpreterError, match="Expected Boolean value, got Integer"):
            self.evaluate(parse_expression, "1 AND TRUE")


class TestInterpreterMembers:
    """Tests for string methods and member errors."""

    def test_string_methods(self, run):
        source = main_returning('print("quill".slice(1, 3)); RETURN "quill".length();')
        result = run(source)
        assert result.output == "ui\n"
        assert result.exit_code == 5

    def test_slice_out_of_range(self, run):
        with pytest.raises(InterpreterError, match="out of range") as exc_info:
            run(main_returning('print("ab".slice(1, 5)); RETURN 0;'))
        assert exc_info.value.location is not None

    def test_undefined_variable_at_runtime(self, parse_expression):
        with pytest.raises(InterpreterError, match="Undefined variable 'ghost'"):
            Interpreter().evaluate(parse_expression("ghost"))

    def test_missing_field_at_runtime(self, parse_expression):
        with pytest.raises(InterpreterError, match="has no field 'x'"):
            Interpreter().evaluate(parse_expression("1.x"))


class TestInterpreterErrors:
    """Tests for failures of unanalyzed programs."""

    def test_missing_main(self, parse):
        with pytest.raises(InterpreterError, match="no zero-argument 'main'"):
            Interpreter().run(parse("DEF f() DO END"))

    def test_main_must_return_integer(self, parse):
        with pytest.raises(InterpreterError, match="'main' must return an Integer, got Nil"):
            Interpreter().run(parse("DEF main() DO END"))

    def test_return_outside_method(self):
        with pytest.raises(InterpreterError, match="RETURN outside of a method"):
            Interpreter().execute(ReturnStatement(IntegerLiteral(1)))

    def test_wrong_argument_count(self, parse):
        interpreter = Interpreter()
        interpreter.run(parse("DEF f(a) DO END DEF main(): Integer DO RETURN 0; END"))
        function = interpreter.scope.lookup_function("f", 1)
        with pytest.raises(InterpreterError, match="expects 1 argument") as exc_info:
            function.invoke([])
        assert exc_info.value.code == "E0403"

    def test_method_returns_value_to_caller(self, parse):
        interpreter = Interpreter()
        interpreter.run(parse("DEF f(a) DO RETURN a; END DEF main(): Integer DO RETURN 0; END"))
        function = interpreter.scope.lookup_function("f", 1)
        assert function.invoke([RuntimeValue.string("x")]) == RuntimeValue.string("x")
        assert function.invoke([NIL]).kind == ValueKind.NIL
