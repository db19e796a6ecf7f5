## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import inspect
from typing import Any, Callable

from .errors import HotUnsupportedOperator, HotStackError, HotTypeMissing


# Source tokens to operator kinds, as produced by the binder.
ALIASES = {
    '+': 'add', '-': 'subtract', '*': 'multiply', '/': 'divide',
    '==': 'equals', '!=': 'not_equals',
    '<': 'less_than', '>': 'greater_than', '<=': 'less_or_equal', '>=': 'greater_or_equal',
}


## DEFAULT
def op_add(left: int, right: int) -> int: return left + right
def op_equals(left: Any, right: Any) -> bool: return left == right
## EXTENDED
def op_subtract(left: int, right: int) -> int: return left - right
def op_multiply(left: int, right: int) -> int: return left * right
def op_divide(left: int, right: int) -> int:
    if right == 0: raise ZeroDivisionError("Integer division by zero.")
    q = abs(left) // abs(right)
    return q if (left >= 0) == (right >= 0) else -q
def op_not_equals(left: Any, right: Any) -> bool: return left != right
def op_less_than(left: int, right: int) -> bool: return left < right
def op_greater_than(left: int, right: int) -> bool: return left > right
def op_less_or_equal(left: int, right: int) -> bool: return left <= right
def op_greater_or_equal(left: int, right: int) -> bool: return left >= right


def get_operator_kind(py_name: str) -> str:
    return py_name[3:] if py_name.startswith('op_') else py_name


class OperatorTable:
    """Binary operator kinds the engine evaluates; anything else is unsupported."""

    def __init__(self):
        self.functions: dict[str, Callable[[Any, Any], Any]] = {}
        self.inputs: dict[str, tuple[type, type]] = {}

    def add(self, kind: str, fn: Callable[[Any, Any], Any]) -> None:
        params = list(inspect.signature(fn).parameters.values())
        if len(params) != 2:
            raise HotTypeMissing(f"Operator `{kind}` must take exactly two operands.", hot_token=kind)
        self.functions[kind] = fn
        self.inputs[kind] = tuple(Any if p.annotation is inspect._empty else p.annotation for p in params)

    def __contains__(self, kind: str) -> bool:
        return kind in self.functions

    def apply(self, kind: str, left: Any, right: Any) -> Any:
        if (fn := self.functions.get(kind)) is None:
            raise HotUnsupportedOperator(f"Binary operator `{kind}` is not supported.", hot_token=kind)
        for side, value, expected in zip(('left', 'right'), (left, right), self.inputs[kind]):
            if expected is Any: continue
            # Booleans are ints to Python, but not to the interpreted language.
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                type_name = getattr(expected, '__name__', str(expected))
                raise HotStackError(f"`{kind}` expects {type_name} as {side} operand, got {type(value).__name__}.", hot_token=kind)
        return fn(left, right)


DEFAULT_OPERATORS = [op_add, op_equals]
EXTENDED_OPERATORS = [op_subtract, op_multiply, op_divide, op_not_equals,
                      op_less_than, op_greater_than, op_less_or_equal, op_greater_or_equal]


def load_operator_table(extended: bool = False) -> OperatorTable:
    table = OperatorTable()
    for fn in DEFAULT_OPERATORS + (EXTENDED_OPERATORS if extended else []):
        table.add(get_operator_kind(fn.__name__), fn)
    return table
