## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from typing import Any
from dataclasses import dataclass, field

from .types import TypeRef, VOID


## SYMBOLS
@dataclass(frozen=True)
class MethodRef:
    """Snapshot-independent description of a method, used to find "the same" method again."""
    name: str
    arity: int
    parameter_count: int
    parameter_types: tuple[str, ...]
    namespace: str
    type_name: str

    def __str__(self):
        scope = f"{self.namespace}.{self.type_name}" if self.namespace else self.type_name
        return f"{scope}.{self.name}({', '.join(self.parameter_types)})"


@dataclass(frozen=True)
class ParameterSymbol:
    name: str
    type: TypeRef


@dataclass(eq=False)
class MethodSymbol:
    name: str
    namespace: str                    # Full declaring namespace, empty for global.
    type_name: str                    # Metadata name of the declaring class.
    parameters: tuple[ParameterSymbol, ...]
    return_type: TypeRef
    is_static: bool = True
    is_async: bool = False
    arity: int = 0                    # Type parameter count, always zero in this subset.
    declaration: "MethodDeclaration | None" = None
    meta: dict = field(default_factory=dict)

    @property
    def ref(self) -> MethodRef:
        return MethodRef(name=self.name, arity=self.arity, parameter_count=len(self.parameters),
                         parameter_types=tuple(p.type.full_name for p in self.parameters),
                         namespace=self.namespace, type_name=self.type_name)

    @property
    def is_void(self) -> bool:
        return self.return_type == VOID

    def __repr__(self):
        return f"<method {self.ref}>"


@dataclass(frozen=True)
class HostOperation:
    """Descriptor of a callable supplied by the host, matched structurally against the catalog."""
    scope: str
    name: str
    parameter_types: tuple[str, ...]
    return_type: TypeRef = VOID
    static: bool = True

    @property
    def is_void(self) -> bool:
        return self.return_type == VOID

    def __str__(self):
        return f"{self.scope}.{self.name}({', '.join(self.parameter_types)})"


## EXPRESSIONS
@dataclass(eq=False)
class Literal:
    value: Any
    type: TypeRef
    meta: dict = field(default_factory=dict)

@dataclass(eq=False)
class Identifier:
    name: str
    type: TypeRef
    meta: dict = field(default_factory=dict)

@dataclass(eq=False)
class Binary:
    operator: str                     # Operator kind, e.g. `add` or `equals`.
    left: "Expression"
    right: "Expression"
    type: TypeRef
    meta: dict = field(default_factory=dict)

@dataclass(eq=False)
class Invocation:
    target: MethodSymbol | HostOperation
    arguments: tuple
    type: TypeRef
    meta: dict = field(default_factory=dict)

@dataclass(eq=False)
class Await:
    operand: "Expression"
    type: TypeRef                     # Awaited result type, void for `Task` and yields.
    meta: dict = field(default_factory=dict)


## STATEMENTS
@dataclass(eq=False)
class Block:
    statements: tuple
    meta: dict = field(default_factory=dict)

@dataclass(eq=False)
class VariableDeclaration:
    name: str
    initializer: "Expression"
    meta: dict = field(default_factory=dict)

@dataclass(eq=False)
class ExpressionStatement:
    expression: "Expression"
    meta: dict = field(default_factory=dict)

@dataclass(eq=False)
class If:
    condition: "Expression"
    then: "Statement"
    otherwise: "Statement | None" = None
    meta: dict = field(default_factory=dict)

@dataclass(eq=False)
class While:
    condition: "Expression"
    body: "Statement"
    meta: dict = field(default_factory=dict)

@dataclass(eq=False)
class Return:
    value: "Expression | None" = None
    meta: dict = field(default_factory=dict)

@dataclass(eq=False)
class MethodDeclaration:
    symbol: MethodSymbol
    body: Block
    meta: dict = field(default_factory=dict)


Expression = Literal | Identifier | Binary | Invocation | Await
Statement = Block | VariableDeclaration | ExpressionStatement | If | While | Return
Node = Expression | Statement | MethodDeclaration


def node_name(node) -> str:
    """Short token for error reports and traces."""
    match node:
        case Literal(value=value): return repr(value)
        case Identifier(name=name): return name
        case Binary(operator=op): return op
        case Invocation(target=target): return target.name
        case Await(): return 'await'
        case MethodDeclaration(symbol=symbol): return symbol.name
        case _: return type(node).__name__.lower()
