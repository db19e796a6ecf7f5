## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from typing import Any, Callable

from .snapshot import Snapshot, Diagnostic
from .syntax import HostOperation
from .library import HostLibrary
from .builtins import load_builtins_library
from .operators import load_operator_table
from .binder import build_snapshot
from .session import Session
from .errors import HotInvalidSnapshot


class Runtime:
    """Minimal runtime facade focused on embedding and extension."""

    def __init__(self, library: HostLibrary | None = None, extended: bool = False):
        self.library = library or load_builtins_library()
        self.operators = load_operator_table(extended=extended)

    # Building ────────────────────────────────────────────────────────────────────────────────
    def build(self, source: str, filename: str | None = None) -> Snapshot | list[Diagnostic]:
        return build_snapshot(source, self.library, filename=filename)

    def session(self, source: str, filename: str | None = None, verbosity: int = 0, stats: dict | None = None) -> Session:
        candidate = self.build(source, filename=filename)
        if not isinstance(candidate, Snapshot):
            raise HotInvalidSnapshot(f"Program `{filename or '<source>'}` has {len(candidate)} error(s).",
                                     diagnostics=candidate, hot_meta={'filename': filename})
        return Session(candidate, library=self.library, operators=self.operators, verbosity=verbosity, stats=stats)

    # Execution ───────────────────────────────────────────────────────────────────────────────
    def run(self, source: str, args=(), filename: str | None = None, verbosity: int = 0, stats: dict | None = None) -> Any:
        with self.session(source, filename=filename, verbosity=verbosity, stats=stats) as session:
            return session.run(args)

    # Registration ────────────────────────────────────────────────────────────────────────────
    def register_operation(self, scope: str, name: str, func: Callable) -> HostOperation:
        return self.library.add_operation(scope, name, func)

    def register_operator(self, kind: str, func: Callable[[Any, Any], Any]) -> None:
        self.operators.add(kind, func)

    # Introspection ───────────────────────────────────────────────────────────────────────────
    def get_signature(self, scope: str, name: str) -> list[dict]:
        return [self.library.resolve(d).meta for d in self.library.find(scope, name)]

    def list_operations(self) -> dict[str, list[dict]]:
        result: dict[str, list[dict]] = {}
        for (scope, name, _), host in self.library.operations.items():
            result.setdefault(f"{scope}.{name}", []).append(host.meta)
        return result
