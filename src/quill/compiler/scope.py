"""
Lexical scopes for analysis and execution.

A scope holds two independent namespaces: variables keyed by name and
functions keyed by (name, arity). Lookup walks outward through parent
scopes, so an inner definition shadows an outer one without removing it.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

if TYPE_CHECKING:
    from quill.compiler.environment import Function, Type, Variable


@dataclass(eq=False)
class Scope:
    """
    A single scope level containing variable and function bindings.

    Scopes form a chain from inner to outer for lexical scoping. The
    analyzer and the interpreter each build their own chain; scope
    instances are never shared between the two.
    """

    parent: Optional["Scope"] = None
    variables: dict[str, "Variable"] = field(default_factory=dict)
    functions: dict[tuple[str, int], "Function"] = field(default_factory=dict)

    def define_variable(
        self, name: str, runtime_name: str, type_: "Type", value: Any
    ) -> "Variable":
        """
        Define a variable in this scope.

        Raises:
            ValueError: If a variable of that name is already defined here.
        """
        from quill.compiler.environment import Variable

        if name in self.variables:
            raise ValueError(f"Variable '{name}' is already defined in this scope")
        variable = Variable(name, runtime_name, type_, value)
        self.variables[name] = variable
        return variable

    def define_function(
        self,
        name: str,
        runtime_name: str,
        parameter_types: Iterable["Type"],
        return_type: "Type",
        function: Callable[[list[Any]], Any],
    ) -> "Function":
        """
        Define a function in this scope.

        Raises:
            ValueError: If a function with that name and arity is already
                defined here.
        """
        from quill.compiler.environment import Function

        parameter_types = tuple(parameter_types)
        key = (name, len(parameter_types))
        if key in self.functions:
            raise ValueError(
                f"Function '{name}/{len(parameter_types)}' is already defined in this scope"
            )
        function_binding = Function(name, runtime_name, parameter_types, return_type, function)
        self.functions[key] = function_binding
        return function_binding

    def lookup_variable(self, name: str) -> Optional["Variable"]:
        """Look up a variable in this scope or parent scopes."""
        scope: Optional[Scope] = self
        while scope is not None:
            if name in scope.variables:
                return scope.variables[name]
            scope = scope.parent
        return None

    def lookup_function(self, name: str, arity: int) -> Optional["Function"]:
        """Look up a function by name and arity in this scope or parent scopes."""
        scope: Optional[Scope] = self
        while scope is not None:
            if (name, arity) in scope.functions:
                return scope.functions[(name, arity)]
            scope = scope.parent
        return None

    def is_defined_locally(self, name: str, arity: Optional[int] = None) -> bool:
        """
        Check if a binding is defined in this immediate scope.

        Without an arity the variable namespace is checked, with one the
        function namespace.
        """
        if arity is None:
            return name in self.variables
        return (name, arity) in self.functions

    def visible_names(self) -> list[str]:
        """Get all variable and function names visible from this scope."""
        names: list[str] = []
        scope: Optional[Scope] = self
        while scope is not None:
            for name in scope.variables:
                if name not in names:
                    names.append(name)
            for name, _ in scope.functions:
                if name not in names:
                    names.append(name)
            scope = scope.parent
        return names
