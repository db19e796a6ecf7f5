## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from functools import cached_property
from dataclasses import dataclass

from .types import VOID, INT, TASK, STRING_ARRAY, task_of
from .syntax import MethodRef, MethodSymbol


ENTRY_POINT_NAME = 'Main'
ENTRY_RETURN_TYPES = (VOID, INT, TASK, task_of(INT))


@dataclass(frozen=True)
class Diagnostic:
    message: str
    filename: str | None = None
    line: int | None = None
    column: int | None = None
    phase: str = 'bind'               # Either `parse` or `bind`.
    token: str | None = None

    def __str__(self):
        location = self.filename or '<source>'
        if self.line is not None:
            location += f":{self.line}:{self.column or 0}"
        return f"{location}: {self.message}"


@dataclass(frozen=True, eq=False)
class Snapshot:
    """Validated and fully bound program at one point in time; superseded, never mutated."""
    methods: tuple[MethodSymbol, ...]
    diagnostics: tuple[Diagnostic, ...] = ()
    filename: str | None = None

    @property
    def valid(self) -> bool:
        return len(self.diagnostics) == 0

    @cached_property
    def _by_name(self) -> dict[str, list[MethodSymbol]]:
        index: dict[str, list[MethodSymbol]] = {}
        for method in self.methods:
            index.setdefault(method.name, []).append(method)
        return index

    def methods_named(self, name: str) -> list[MethodSymbol]:
        return list(self._by_name.get(name, ()))

    def resolve(self, ref: MethodRef) -> MethodSymbol | None:
        return resolve_method(self, ref)

    def entry_points(self) -> list[MethodSymbol]:
        return [m for m in self.methods_named(ENTRY_POINT_NAME) if is_entry_point(m)]


def is_entry_point(method: MethodSymbol) -> bool:
    if not method.is_static or method.name != ENTRY_POINT_NAME: return False
    if method.return_type not in ENTRY_RETURN_TYPES: return False
    params = [p.type for p in method.parameters]
    return params in ([], [STRING_ARRAY])


def is_structural_match(ref: MethodRef, candidate: MethodRef) -> bool:
    """Same name, arity, parameter count and declaring namespace/type; parameter types are not compared."""
    return (ref.name == candidate.name
            and ref.arity == candidate.arity
            and ref.parameter_count == candidate.parameter_count
            and ref.namespace == candidate.namespace
            and ref.type_name == candidate.type_name)


def resolve_method(snapshot: Snapshot, ref: MethodRef) -> MethodSymbol | None:
    """Find the method of `snapshot` equivalent to `ref`, which may come from any older snapshot.

    Among several structural matches (overloads differing only by parameter types), the one with
    identical parameter type names wins, otherwise the first in declaration order.
    """
    candidates = [m for m in snapshot.methods_named(ref.name) if is_structural_match(ref, m.ref)]
    if not candidates:
        return None
    for method in candidates:
        if method.ref.parameter_types == ref.parameter_types:
            return method
    return candidates[0]
