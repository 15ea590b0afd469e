"""
Semantic annotations produced by the analyzer.

AST nodes are immutable, so the facts the analyzer discovers live in a
side table keyed by node identity. Each slot is written at most once per
model; the interpreter and any renderer only read it.
"""

from typing import Generic, Optional, TypeVar

from quill.compiler.ast_nodes import ASTNode, Expression
from quill.compiler.environment import Function, Type, Variable

T = TypeVar("T")


class _Slots(Generic[T]):
    """Write-once mapping from AST node identity to a value."""

    def __init__(self, kind: str) -> None:
        self._kind = kind
        # Keep the node alive so its id() is never reused while the model exists
        self._entries: dict[int, tuple[ASTNode, T]] = {}

    def get(self, node: ASTNode) -> Optional[T]:
        entry = self._entries.get(id(node))
        return entry[1] if entry is not None else None

    def set(self, node: ASTNode, value: T) -> None:
        if id(node) in self._entries:
            raise ValueError(
                f"{type(node).__name__} already has a resolved {self._kind}"
            )
        self._entries[id(node)] = (node, value)

    def __contains__(self, node: ASTNode) -> bool:
        return id(node) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def items(self) -> list[tuple[ASTNode, T]]:
        return list(self._entries.values())


class SemanticModel:
    """
    Resolved types and bindings for one analyzed program.

    - every analyzed Expression has a type
    - Access, DeclarationStatement and Field nodes have a Variable
    - FunctionCall and Method nodes have a Function
    """

    def __init__(self) -> None:
        self._types: _Slots[Type] = _Slots("type")
        self._variables: _Slots[Variable] = _Slots("variable")
        self._functions: _Slots[Function] = _Slots("function")

    def type_of(self, expression: Expression) -> Optional[Type]:
        return self._types.get(expression)

    def variable_of(self, node: ASTNode) -> Optional[Variable]:
        return self._variables.get(node)

    def function_of(self, node: ASTNode) -> Optional[Function]:
        return self._functions.get(node)

    def set_type(self, expression: Expression, type_: Type) -> None:
        self._types.set(expression, type_)

    def set_variable(self, node: ASTNode, variable: Variable) -> None:
        self._variables.set(node, variable)

    def set_function(self, node: ASTNode, function: Function) -> None:
        self._functions.set(node, function)

    def typed_nodes(self) -> list[tuple[ASTNode, Type]]:
        """All (expression, type) pairs in the order they were resolved."""
        return self._types.items()

    def __len__(self) -> int:
        return len(self._types) + len(self._variables) + len(self._functions)
