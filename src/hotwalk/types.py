## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from typing import Any
from collections import namedtuple
from dataclasses import dataclass


# Operand stack cells are a namedtuple to save memory, yet provide tail/head accessors.
class Stack(namedtuple('Stack', ['tail', 'head'])):
    __slots__ = ()
    _nil_singleton = None

    def __new__(cls, tail, head):
        if tail is None and head is None:
            # Only one singleton creation is allowed, and it's the one just below.
            if cls._nil_singleton is None:
                self = super(Stack, cls).__new__(cls, tail, head)
                cls._nil_singleton = self
                return self
            raise ValueError("Use the canonical `nil` instance for empty stacks")
        return super(Stack, cls).__new__(cls, tail, head)

    def __repr__(self):
        if self is nil:
            return "< nil >"
        items = []
        current = self
        while current is not nil:
            items.append(repr(current.head))
            current = current.tail
        return "< " + " ".join(reversed(items)) + " >"

    def __bool__(self):
        raise TypeError("Stack truth value is ambiguous; compare with `is nil` or `is not nil`.")


# All checks for empty stack must be done by comparing to this.
nil = Stack(None, None)


@dataclass(frozen=True)
class TypeRef:
    """Static type as seen by the binder, identified by namespace and metadata name."""
    namespace: str
    name: str
    args: tuple = ()

    @property
    def metadata_name(self) -> str:
        return f"{self.name}`{len(self.args)}" if self.args else self.name

    @property
    def full_name(self) -> str:
        base = f"{self.namespace}.{self.metadata_name}" if self.namespace else self.metadata_name
        if not self.args: return base
        return base + "[" + ",".join(a.full_name for a in self.args) + "]"

    def __str__(self):
        for keyword, known in TYPE_NAME_MAP.items():
            if known == self: return keyword
        if self.args:
            return f"{self.name}<{', '.join(str(a) for a in self.args)}>"
        return self.name


TASKS_NAMESPACE = 'System.Threading.Tasks'

VOID = TypeRef('System', 'Void')
INT = TypeRef('System', 'Int32')
BOOL = TypeRef('System', 'Boolean')
STRING = TypeRef('System', 'String')
OBJECT = TypeRef('System', 'Object')
STRING_ARRAY = TypeRef('System', 'String[]')
TASK = TypeRef(TASKS_NAMESPACE, 'Task')
YIELD_AWAITABLE = TypeRef('System.Runtime.CompilerServices', 'YieldAwaitable')
# Stand-in for expressions that failed to bind, compatible with everything to avoid cascades.
ERROR = TypeRef('', '?')


def task_of(result: TypeRef) -> TypeRef:
    return TypeRef(TASKS_NAMESPACE, 'Task', (result,))


TYPE_NAME_MAP: dict[str, TypeRef] = {
    'void': VOID, 'int': INT, 'bool': BOOL, 'string': STRING, 'object': OBJECT,
    'string[]': STRING_ARRAY, 'Task': TASK,
}


def is_task(t: TypeRef) -> bool:
    return t.namespace == TASKS_NAMESPACE and t.name == 'Task'

def is_awaitable(t: TypeRef) -> bool:
    return is_task(t) or t == YIELD_AWAITABLE

def awaited_type(t: TypeRef) -> TypeRef:
    """Result type of `await` on a value of type `t`, void for `Task` and yields."""
    return t.args[0] if is_task(t) and t.args else VOID

def is_assignable(source: TypeRef, target: TypeRef) -> bool:
    if ERROR in (source, target): return True
    if source == target: return True
    return target == OBJECT and source != VOID


@dataclass(frozen=True)
class Completed:
    """Already-settled asynchronous result, as returned by async methods of the program."""
    value: Any = None
    has_value: bool = False

    @classmethod
    def of(cls, value) -> "Completed":
        return cls(value, True)

    @classmethod
    def signal(cls) -> "Completed":
        return cls(None, False)

    def __await__(self):
        if False: yield
        return self.value

    def __repr__(self):
        return f"Completed({self.value!r})" if self.has_value else "Completed()"


class YieldPoint:
    """Cooperative yield with no payload; awaiting it gives other tasks one turn."""
    __slots__ = ()

    def __await__(self):
        yield

    def __repr__(self):
        return "YieldPoint"
