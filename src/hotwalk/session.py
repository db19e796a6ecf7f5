## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import sys
import asyncio
import inspect
import threading
from typing import Any

from .types import TypeRef, Completed
from .stack import OperandStack
from .syntax import MethodRef, MethodSymbol
from .snapshot import Snapshot, Diagnostic, resolve_method
from .library import HostLibrary
from .builtins import load_builtins_library
from .operators import OperatorTable, load_operator_table
from .interpreter import Interpreter
from .formatting import format_diagnostics
from .errors import HotInvalidSnapshot, HotUnresolvedMethod, HotUnboundName, HotEntryPointError, HotCancelled


class Session:
    """One running program: the current snapshot, its call frames and a shared operand stack.

    Calls never hold on to method bodies across snapshots; each one re-resolves its target by
    structure against whatever snapshot is installed at that moment, so a reload takes effect at
    the next call while frames already executing finish with the body they started with.
    """

    def __init__(self, snapshot: Snapshot | None = None, library: HostLibrary | None = None,
                 operators: OperatorTable | None = None, verbosity: int = 0, stats: dict | None = None):
        self.library = library or load_builtins_library()
        self.operators = operators or load_operator_table()
        self.verbosity = verbosity
        self.stats = stats

        self.stack = OperandStack()
        self.frames: list[dict[str, Any]] = [{}]
        self.rejections: list[HotInvalidSnapshot] = []

        self._lock = threading.Lock()
        self._snapshot: Snapshot | None = None
        self._generation = 0
        self._cancel = threading.Event()
        self._loop: asyncio.AbstractEventLoop | None = None

        self.interpreter = Interpreter(self)
        if snapshot is not None:
            self.install_snapshot(snapshot)

    # Snapshots ───────────────────────────────────────────────────────────────────────────────
    @property
    def snapshot(self) -> Snapshot | None:
        with self._lock:
            return self._snapshot

    @property
    def generation(self) -> int:
        return self._generation

    def install_snapshot(self, candidate: Snapshot | list[Diagnostic]) -> bool:
        """Atomically make `candidate` current; invalid candidates are recorded and ignored."""
        if isinstance(candidate, Snapshot) and candidate.valid:
            with self._lock:
                self._snapshot = candidate
                self._generation += 1
            return True

        diagnostics = candidate.diagnostics if isinstance(candidate, Snapshot) else tuple(candidate)
        rejection = HotInvalidSnapshot(f"Program rejected with {len(diagnostics)} diagnostic(s).", diagnostics=diagnostics)
        self.rejections.append(rejection)
        if self.verbosity > 0:
            print(f"\033[30;43m RELOAD REJECTED. \033[0m {rejection}", file=sys.stderr)
            if diagnostics: print(format_diagnostics(diagnostics), file=sys.stderr)
        return False

    # Frames ──────────────────────────────────────────────────────────────────────────────────
    @property
    def depth(self) -> int:
        return len(self.frames)

    def get_local(self, name: str) -> Any:
        frame = self.frames[-1]
        if name not in frame:
            raise HotUnboundName(f"Local `{name}` is not set in the current frame.", hot_token=name)
        return frame[name]

    def set_local(self, name: str, value: Any) -> None:
        self.frames[-1][name] = value

    def call(self, method: MethodSymbol | MethodRef, expected: TypeRef | None = None) -> None:
        """Invoke the current version of `method`, taking its arguments from the operand stack.

        `expected` is the result type the caller was bound against, by default the return type of
        `method` itself; a reloaded target returning anything else is treated as unresolved.
        """
        ref = method.ref if isinstance(method, MethodSymbol) else method
        if expected is None and isinstance(method, MethodSymbol):
            expected = method.return_type
        snapshot = self.snapshot
        target = resolve_method(snapshot, ref) if snapshot is not None else None
        if target is None:
            raise HotUnresolvedMethod(f"Method `{ref}` was removed or renamed in the current program.", method_ref=ref)
        if expected is not None and target.return_type != expected:
            raise HotUnresolvedMethod(f"Method `{ref}` now returns `{target.return_type}` instead of `{expected}` in the current program.", method_ref=ref)

        frame = {}
        for parameter in reversed(target.parameters):
            frame[parameter.name] = self.stack.pop()
        self.frames.append(frame)
        try:
            self.interpreter.execute(target.declaration)
        finally:
            self.frames.pop()

    # Execution ───────────────────────────────────────────────────────────────────────────────
    def find_entry_point(self) -> MethodSymbol:
        if (snapshot := self.snapshot) is None:
            raise HotEntryPointError("No program has been installed in this session.")
        entries = snapshot.entry_points()
        if not entries:
            raise HotEntryPointError("Program does not contain a static `Main` method suitable for an entry point.")
        if len(entries) > 1:
            raise HotEntryPointError(f"Program has more than one entry point defined: {', '.join(str(m.ref) for m in entries)}.")
        return entries[0]

    def run(self, args=()) -> Any:
        self._cancel.clear()
        entry = self.find_entry_point()
        base, steps = self.stack.depth, self.interpreter.step
        try:
            if entry.parameters:
                self.stack.push(list(args))
            self.call(entry)
            if entry.is_void: return None
            result = self.stack.pop()
            if isinstance(result, Completed): return result.value
            if inspect.isawaitable(result): return self.run_async(result)
            return result
        except HotCancelled:
            self.stack.truncate(base)
            raise
        finally:
            if self.stats is not None:
                self.stats['steps'] = self.stats.get('steps', 0) + self.interpreter.step - steps

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.is_set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.new_event_loop()
        return self._loop

    def schedule(self, coroutine) -> asyncio.Task:
        """Start `coroutine` as a task of this session; it progresses whenever the loop runs."""
        return self.loop.create_task(coroutine)

    def run_async(self, awaitable) -> Any:
        """Run `awaitable` to completion on this session's event loop."""
        return self.loop.run_until_complete(awaitable)

    def close(self) -> None:
        if self._loop is None:
            return
        # Started tasks get one step before whatever is still pending gets cancelled.
        self._loop.run_until_complete(asyncio.sleep(0))
        pending = [task for task in asyncio.all_tasks(self._loop) if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            self._loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        self._loop.close()
        self._loop = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
