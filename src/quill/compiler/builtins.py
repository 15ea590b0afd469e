"""
Builtin bindings present in every fresh scope chain.

The analyzer and the interpreter each seed their own scope from the same
table, so a builtin's signature is declared exactly once.
"""

import sys
from dataclasses import dataclass
from typing import Callable, Optional, TextIO

from quill.compiler.environment import ANY, NIL, NIL_TYPE, RuntimeValue, Type
from quill.compiler.scope import Scope


@dataclass(frozen=True, slots=True)
class Builtin:
    """
    A builtin function declaration.

    ``implementation`` receives the evaluated arguments and the output
    stream of the running interpreter.
    """

    name: str
    runtime_name: str
    parameter_types: tuple[Type, ...]
    return_type: Type
    implementation: Callable[[list[RuntimeValue], TextIO], RuntimeValue]


def _print(arguments: list[RuntimeValue], output: TextIO) -> RuntimeValue:
    output.write(arguments[0].text() + "\n")
    return NIL


BUILTINS: tuple[Builtin, ...] = (
    Builtin("print", "builtins.print", (ANY,), NIL_TYPE, _print),
)


def analysis_scope(parent: Optional[Scope] = None) -> Scope:
    """Create a scope seeded with builtin signatures for the analyzer."""
    scope = Scope(parent)
    for builtin in BUILTINS:
        scope.define_function(
            builtin.name,
            builtin.runtime_name,
            builtin.parameter_types,
            builtin.return_type,
            lambda arguments: NIL,
        )
    return scope


def runtime_scope(parent: Optional[Scope] = None, output: Optional[TextIO] = None) -> Scope:
    """
    Create a scope seeded with executable builtins for the interpreter.

    Args:
        parent: Optional enclosing scope with embedder-provided bindings
        output: Stream written by ``print``; resolved to ``sys.stdout``
            at call time when not given
    """
    scope = Scope(parent)
    for builtin in BUILTINS:
        scope.define_function(
            builtin.name,
            builtin.runtime_name,
            builtin.parameter_types,
            builtin.return_type,
            _bind_output(builtin.implementation, output),
        )
    return scope


def _bind_output(
    implementation: Callable[[list[RuntimeValue], TextIO], RuntimeValue],
    output: Optional[TextIO],
) -> Callable[[list[RuntimeValue]], RuntimeValue]:
    def invoke(arguments: list[RuntimeValue]) -> RuntimeValue:
        return implementation(arguments, output if output is not None else sys.stdout)

    return invoke
