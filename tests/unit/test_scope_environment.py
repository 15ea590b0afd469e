"""
Unit tests for scopes, types and runtime values.
"""

from decimal import Decimal

import pytest

from quill.compiler.builtins import BUILTINS, analysis_scope, runtime_scope
from quill.compiler.environment import (
    ANY,
    INTEGER,
    NIL,
    STRING,
    RuntimeValue,
    ValueKind,
    get_type,
)
from quill.compiler.scope import Scope
from quill.utils.errors import InterpreterError, SemanticError


class TestScope:
    """Tests for lexical scope chains."""

    def test_lookup_walks_parents(self):
        outer = Scope()
        outer.define_variable("x", "x", INTEGER, 1)
        inner = Scope(outer)
        assert inner.lookup_variable("x").value == 1
        assert inner.lookup_variable("y") is None

    def test_inner_definition_shadows(self):
        outer = Scope()
        outer.define_variable("x", "x", INTEGER, 1)
        inner = Scope(outer)
        inner.define_variable("x", "x", STRING, "s")
        assert inner.lookup_variable("x").type is STRING
        assert outer.lookup_variable("x").type is INTEGER

    def test_redefinition_raises(self):
        scope = Scope()
        scope.define_variable("x", "x", INTEGER, 1)
        with pytest.raises(ValueError, match="already defined"):
            scope.define_variable("x", "x", INTEGER, 2)

    def test_functions_are_keyed_by_arity(self):
        scope = Scope()
        scope.define_function("f", "f", (), INTEGER, lambda args: NIL)
        scope.define_function("f", "f", (INTEGER,), INTEGER, lambda args: NIL)
        assert scope.lookup_function("f", 0).arity == 0
        assert scope.lookup_function("f", 1).arity == 1
        assert scope.lookup_function("f", 2) is None
        with pytest.raises(ValueError, match="f/1"):
            scope.define_function("f", "f", (ANY,), INTEGER, lambda args: NIL)

    def test_variables_and_functions_are_separate(self):
        scope = Scope()
        scope.define_variable("f", "f", INTEGER, 1)
        scope.define_function("f", "f", (), INTEGER, lambda args: NIL)
        assert scope.is_defined_locally("f")
        assert scope.is_defined_locally("f", 0)
        assert not scope.is_defined_locally("f", 1)

    def test_visible_names(self):
        outer = Scope()
        outer.define_variable("a", "a", INTEGER, 1)
        inner = Scope(Scope(outer))
        inner.define_function("g", "g", (), INTEGER, lambda args: NIL)
        assert inner.visible_names() == ["g", "a"]


class TestTypes:
    """Tests for the type table."""

    def test_get_type(self):
        assert get_type("Integer") is INTEGER

    def test_unknown_type(self):
        with pytest.raises(SemanticError, match="Unknown type 'Float'"):
            get_type("Float")

    def test_unknown_type_hint(self):
        with pytest.raises(SemanticError) as exc_info:
            get_type("Strng")
        assert exc_info.value.code == "E0114"
        assert exc_info.value.hint == "did you mean 'String'?"
        assert exc_info.value.location is None

    def test_host_names(self):
        assert INTEGER.host_name == "int"
        assert STRING.host_name == "str"

    def test_string_methods_exclude_receiver_from_arity(self):
        assert STRING.method("slice", 2).return_type is STRING
        assert STRING.method("length", 0).return_type is INTEGER
        assert STRING.method("length", 1) is None
        assert INTEGER.method("length", 0) is None


class TestRuntimeValue:
    """Tests for tagged runtime values."""

    def test_equality_is_by_value(self):
        assert RuntimeValue.integer(3) == RuntimeValue.integer(3)
        assert RuntimeValue.string("a") == RuntimeValue.string("a")
        assert RuntimeValue.decimal(Decimal("1.0")) == RuntimeValue.decimal(Decimal("1.00"))

    def test_equality_needs_same_kind(self):
        assert RuntimeValue.character("a") != RuntimeValue.string("a")
        assert RuntimeValue.integer(1) != RuntimeValue.decimal(Decimal("1"))

    def test_records_compare_by_identity(self):
        first = RuntimeValue.record()
        second = RuntimeValue.record()
        assert first == first
        assert first != second

    def test_record_fields(self):
        record = RuntimeValue.record()
        record.scope.define_variable("x", "x", INTEGER, RuntimeValue.integer(4))
        assert record.field("x").value == RuntimeValue.integer(4)
        with pytest.raises(InterpreterError, match="Record value has no field 'y'"):
            record.field("y")

    def test_call_method_passes_receiver(self):
        assert RuntimeValue.string("quill").call_method("length", []) == RuntimeValue.integer(5)

    def test_call_unknown_method(self):
        with pytest.raises(InterpreterError, match="no method 'upper' taking 0"):
            RuntimeValue.string("q").call_method("upper", [])

    def test_iterable_text(self):
        value = RuntimeValue.iterable([RuntimeValue.integer(1), RuntimeValue.integer(2)])
        assert value.kind == ValueKind.ITERABLE
        assert value.text() == "[1, 2]"

    def test_decimal_text_has_no_exponent(self):
        assert RuntimeValue.decimal(Decimal("1E-7")).text() == "0.0000001"

    def test_values_are_hashable(self):
        assert len({RuntimeValue.integer(1), RuntimeValue.integer(1), NIL}) == 2


class TestBuiltins:
    """Tests for the builtin table."""

    def test_print_is_declared_once(self):
        assert [b.name for b in BUILTINS] == ["print"]
        assert BUILTINS[0].runtime_name == "builtins.print"

    def test_analysis_and_runtime_scopes_share_signatures(self):
        static = analysis_scope().lookup_function("print", 1)
        dynamic = runtime_scope().lookup_function("print", 1)
        assert static.parameter_types == dynamic.parameter_types
        assert static.return_type is dynamic.return_type

    def test_parent_scope_is_visible(self):
        parent = Scope()
        parent.define_variable("seed", "seed", INTEGER, 1)
        assert analysis_scope(parent).lookup_variable("seed") is not None

    def test_runtime_print_writes_to_output(self):
        import io

        output = io.StringIO()
        print_function = runtime_scope(output=output).lookup_function("print", 1)
        assert print_function.invoke([RuntimeValue.boolean(True)]) is NIL
        assert output.getvalue() == "true\n"
