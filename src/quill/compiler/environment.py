"""
Types, bindings and runtime values shared by the analyzer and interpreter.

The type lattice is small and closed: NIL, BOOLEAN, INTEGER, DECIMAL,
CHARACTER, STRING, COMPARABLE, ANY and INTEGER_ITERABLE. Runtime values
are tagged wrappers around one host value, so evaluation dispatches on a
``ValueKind`` rather than on Python classes.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, auto
from typing import Any, Callable, Iterable, Optional

from quill.compiler.scope import Scope
from quill.utils.diagnostics import ErrorCode, did_you_mean
from quill.utils.errors import InterpreterError, SemanticError


# -----------------------------------------------------------------------------
# Types
# -----------------------------------------------------------------------------


@dataclass(eq=False)
class Type:
    """
    A static type.

    Attributes:
        name: The source-level type name, e.g. ``"Integer"``
        host_name: The host-facing name used by renderers, e.g. ``"int"``
        scope: Fields and methods available on values of this type. Each
            method's first parameter is the receiver.
    """

    name: str
    host_name: str
    scope: Scope = field(default_factory=Scope)

    def __repr__(self) -> str:
        return f"Type({self.name})"

    def __str__(self) -> str:
        return self.name

    def field(self, name: str) -> Optional["Variable"]:
        """Look up a field on this type."""
        return self.scope.lookup_variable(name)

    def method(self, name: str, arity: int) -> Optional["Function"]:
        """Look up a method by name and argument count (receiver excluded)."""
        return self.scope.lookup_function(name, arity + 1)


NIL_TYPE = Type("Nil", "None")
ANY = Type("Any", "object")
BOOLEAN = Type("Boolean", "bool")
INTEGER = Type("Integer", "int")
DECIMAL = Type("Decimal", "Decimal")
CHARACTER = Type("Character", "str")
STRING = Type("String", "str")
COMPARABLE = Type("Comparable", "Comparable")
INTEGER_ITERABLE = Type("IntegerIterable", "Iterable[int]")

TYPES: dict[str, Type] = {
    t.name: t
    for t in (
        NIL_TYPE,
        ANY,
        BOOLEAN,
        INTEGER,
        DECIMAL,
        CHARACTER,
        STRING,
        COMPARABLE,
        INTEGER_ITERABLE,
    )
}

# Types a COMPARABLE slot accepts
COMPARABLE_TYPES: frozenset[str] = frozenset(
    {"Integer", "Decimal", "Character", "String", "Comparable"}
)


def get_type(name: str) -> Type:
    """
    Resolve a source-level type name.

    Raises:
        SemanticError: If no type of that name exists.
    """
    try:
        return TYPES[name]
    except KeyError:
        raise SemanticError(
            f"Unknown type '{name}'",
            code=ErrorCode.E0114,
            hint=did_you_mean(name, list(TYPES)),
        ) from None


# -----------------------------------------------------------------------------
# Bindings
# -----------------------------------------------------------------------------


@dataclass(eq=False, slots=True)
class Variable:
    """
    A named, mutable value cell.

    ``name`` is the declared name used in diagnostics; ``runtime_name`` is
    the name a renderer emits for the host target.
    """

    name: str
    runtime_name: str
    type: Type
    value: Any

    def __repr__(self) -> str:
        return f"Variable({self.name}: {self.type.name})"


@dataclass(eq=False, slots=True)
class Function:
    """
    A named callable with a fixed parameter type list.

    ``function`` receives the evaluated arguments as a list and returns a
    ``RuntimeValue``.
    """

    name: str
    runtime_name: str
    parameter_types: tuple[Type, ...]
    return_type: Type
    function: Callable[[list[Any]], Any]

    def __repr__(self) -> str:
        params = ", ".join(t.name for t in self.parameter_types)
        return f"Function({self.name}({params}): {self.return_type.name})"

    @property
    def arity(self) -> int:
        return len(self.parameter_types)

    def invoke(self, arguments: list[Any]) -> Any:
        return self.function(arguments)


# -----------------------------------------------------------------------------
# Runtime Values
# -----------------------------------------------------------------------------


class ValueKind(Enum):
    """The finite set of runtime value shapes."""

    NIL = auto()
    BOOLEAN = auto()
    CHARACTER = auto()
    STRING = auto()
    INTEGER = auto()
    DECIMAL = auto()
    ITERABLE = auto()
    RECORD = auto()


# Kinds with a natural ordering
ORDERED_KINDS: frozenset[ValueKind] = frozenset(
    {
        ValueKind.BOOLEAN,
        ValueKind.CHARACTER,
        ValueKind.STRING,
        ValueKind.INTEGER,
        ValueKind.DECIMAL,
    }
)


@dataclass(eq=False, slots=True)
class RuntimeValue:
    """
    A tagged runtime value.

    Attributes:
        kind: Which payload this value carries
        value: The host payload (bool, str, int, Decimal, an iterable of
            RuntimeValues, or None for NIL and records)
        scope: Members of the value. Strings share one method scope;
            records own a scope of field cells and methods.
    """

    kind: ValueKind
    value: Any
    scope: Optional[Scope] = None

    # Factories

    @classmethod
    def boolean(cls, value: bool) -> "RuntimeValue":
        return cls(ValueKind.BOOLEAN, bool(value))

    @classmethod
    def character(cls, value: str) -> "RuntimeValue":
        return cls(ValueKind.CHARACTER, value)

    @classmethod
    def string(cls, value: str) -> "RuntimeValue":
        return cls(ValueKind.STRING, value, STRING_METHODS)

    @classmethod
    def integer(cls, value: int) -> "RuntimeValue":
        return cls(ValueKind.INTEGER, int(value))

    @classmethod
    def decimal(cls, value: Decimal) -> "RuntimeValue":
        return cls(ValueKind.DECIMAL, value)

    @classmethod
    def iterable(cls, values: Iterable["RuntimeValue"]) -> "RuntimeValue":
        return cls(ValueKind.ITERABLE, values)

    @classmethod
    def record(cls, scope: Optional[Scope] = None) -> "RuntimeValue":
        return cls(ValueKind.RECORD, None, scope if scope is not None else Scope())

    # Members

    def field(self, name: str) -> Variable:
        """
        Look up a field cell on this value.

        Raises:
            InterpreterError: If the value has no such field.
        """
        variable = self.scope.lookup_variable(name) if self.scope is not None else None
        if variable is None:
            raise InterpreterError(f"{self.kind.name.capitalize()} value has no field '{name}'")
        return variable

    def call_method(self, name: str, arguments: list["RuntimeValue"]) -> "RuntimeValue":
        """
        Invoke a method, passing this value as the first argument.

        Raises:
            InterpreterError: If no method of that name and arity exists.
        """
        function = None
        if self.scope is not None:
            function = self.scope.lookup_function(name, len(arguments) + 1)
        if function is None:
            raise InterpreterError(
                f"{self.kind.name.capitalize()} value has no method "
                f"'{name}' taking {len(arguments)} argument(s)"
            )
        return function.invoke([self, *arguments])

    # Conversions

    def text(self) -> str:
        """The textual form used by concatenation and ``print``."""
        if self.kind == ValueKind.NIL:
            return "nil"
        if self.kind == ValueKind.BOOLEAN:
            return "true" if self.value else "false"
        if self.kind == ValueKind.DECIMAL:
            return format(self.value, "f")
        if self.kind in (ValueKind.CHARACTER, ValueKind.STRING):
            return self.value
        if self.kind == ValueKind.INTEGER:
            return str(self.value)
        if self.kind == ValueKind.ITERABLE:
            return "[" + ", ".join(item.text() for item in self.value) + "]"
        return f"<record at {id(self):#x}>"

    def __repr__(self) -> str:
        if self.kind == ValueKind.NIL:
            return "RuntimeValue(NIL)"
        return f"RuntimeValue({self.kind.name}, {self.value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuntimeValue):
            return NotImplemented
        if self.kind == ValueKind.RECORD or other.kind == ValueKind.RECORD:
            return self is other
        return self.kind == other.kind and self.value == other.value

    def __hash__(self) -> int:
        if self.kind in (ValueKind.RECORD, ValueKind.ITERABLE):
            return id(self)
        return hash((self.kind, self.value))


NIL = RuntimeValue(ValueKind.NIL, None)


# -----------------------------------------------------------------------------
# Built-in String Members
# -----------------------------------------------------------------------------


def _string_slice(arguments: list[RuntimeValue]) -> RuntimeValue:
    receiver, start, end = arguments
    if start.kind != ValueKind.INTEGER or end.kind != ValueKind.INTEGER:
        raise InterpreterError("String slice bounds must be integers")
    text = receiver.value
    if not 0 <= start.value <= end.value <= len(text):
        raise InterpreterError(
            f"String slice [{start.value}, {end.value}) out of range for length {len(text)}"
        )
    return RuntimeValue.string(text[start.value:end.value])


def _string_length(arguments: list[RuntimeValue]) -> RuntimeValue:
    return RuntimeValue.integer(len(arguments[0].value))


def _static_member(arguments: list[Any]) -> RuntimeValue:
    return NIL


# Analysis-time members of String
STRING.scope.define_function("slice", "slice", (STRING, INTEGER, INTEGER), STRING, _static_member)
STRING.scope.define_function("length", "len", (STRING,), INTEGER, _static_member)

# Runtime members shared by every string value
STRING_METHODS = Scope()
STRING_METHODS.define_function("slice", "slice", (STRING, INTEGER, INTEGER), STRING, _string_slice)
STRING_METHODS.define_function("length", "len", (STRING,), INTEGER, _string_length)
