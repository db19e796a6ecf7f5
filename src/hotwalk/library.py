## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import inspect
from types import MappingProxyType
from typing import Any, Callable
from dataclasses import dataclass, field

from .syntax import HostOperation
from .stack import OperandStack
from .errors import HotHostOperationNotFound
from .loader import get_host_signature


OperationKey = tuple[str, str, tuple[str, ...]]


@dataclass(frozen=True)
class HostFunction:
    descriptor: HostOperation
    fn: Callable[..., Any]
    meta: dict
    invoke: Callable[[OperandStack, bool], None]


@dataclass
class HostLibrary:
    """Statically registered table of host operations: `(scope, name, parameter types) -> callable`."""
    _operations: dict[OperationKey, HostFunction] = field(default_factory=dict)

    # Registration helpers
    def add_operation(self, scope: str, name: str, fn: Callable[..., Any]) -> HostOperation:
        meta = get_host_signature(fn=fn, name=f"{scope}.{name}")
        descriptor = HostOperation(scope=scope, name=name,
                                   parameter_types=tuple(t.full_name for t in meta['parameters']),
                                   return_type=meta['returns'])
        self._operations[_key(descriptor)] = HostFunction(descriptor, fn, meta, _make_wrapper(fn, meta))
        return descriptor

    def ensure_consistent(self) -> None:
        for key, host in self._operations.items():
            assert key == _key(host.descriptor)
            assert host.meta['arity'] == len(host.descriptor.parameter_types)

    @property
    def operations(self) -> MappingProxyType:
        return MappingProxyType(self._operations)

    # Lookup
    def has_scope(self, scope: str) -> bool:
        return any(s == scope for s, _, _ in self._operations)

    def find(self, scope: str, name: str) -> list[HostOperation]:
        """All overloads of `scope.name`, in registration order."""
        return [h.descriptor for (s, n, _), h in self._operations.items() if s == scope and n == name]

    def resolve(self, descriptor: HostOperation) -> HostFunction:
        if not descriptor.static:
            raise HotHostOperationNotFound(f"Instance operation `{descriptor}` is not supported, only static ones.", descriptor=descriptor)
        if (host := self._operations.get(_key(descriptor))) is not None:
            return host
        overloads = ', '.join(str(d) for d in self.find(descriptor.scope, descriptor.name)) or 'none'
        raise HotHostOperationNotFound(f"Host operation `{descriptor}` not found in library (overloads: {overloads}).", descriptor=descriptor)


class HostBridge:
    """Dispatches invocations whose target is not part of the interpreted program."""

    def __init__(self, library: HostLibrary, stack: OperandStack, schedule: Callable[[Any], Any] | None = None):
        self.library = library
        self.stack = stack
        self.schedule = schedule

    def resolve(self, descriptor: HostOperation) -> HostFunction:
        return self.library.resolve(descriptor)

    def invoke(self, descriptor: HostOperation, *, push_result: bool = True) -> None:
        host = self.resolve(descriptor)
        host.invoke(self.stack, push_result)
        # Coroutines become tasks on the session loop, which settle once and can be awaited again.
        if push_result and self.schedule is not None and host.meta['valency'] and inspect.iscoroutine(self.stack.peek()):
            self.stack.push(self.schedule(self.stack.pop()))


def _key(descriptor: HostOperation) -> OperationKey:
    return (descriptor.scope, descriptor.name, descriptor.parameter_types)


def _make_wrapper(fn: Callable[..., Any], meta: dict) -> Callable[[OperandStack, bool], None]:
    # Arguments were pushed left-to-right, so they come off in reverse and are reordered for the call.
    match meta['valency']:
        case 0:
            def push(stk, _res, _wanted): return None
        case _:
            def push(stk, res, wanted):
                if wanted: stk.push(res)

    match meta['arity']:
        case 0:
            def w_0(stk: OperandStack, wanted: bool = True):
                push(stk, fn(), wanted)
            return w_0
        case 1:
            def w_1(stk: OperandStack, wanted: bool = True):
                a = stk.pop()
                push(stk, fn(a), wanted)
            return w_1
        case 2:
            def w_2(stk: OperandStack, wanted: bool = True):
                b = stk.pop()
                a = stk.pop()
                push(stk, fn(a, b), wanted)
            return w_2
        case _:
            def w_x(stk: OperandStack, wanted: bool = True):
                args = [stk.pop() for _ in range(meta['arity'])]
                args.reverse()
                push(stk, fn(*args), wanted)
            return w_x
