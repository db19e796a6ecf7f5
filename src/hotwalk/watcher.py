## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import os
import sys
import threading
import traceback
from pathlib import Path
from typing import Callable

from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileSystemEvent

from .session import Session
from .snapshot import Snapshot, Diagnostic
from .library import HostLibrary
from .binder import build_snapshot


DEBUG = bool(os.environ.get('HOTWALK_DEBUG'))


def _fingerprint(path: Path) -> tuple[int, int] | None:
    try:
        st = path.stat()
    except FileNotFoundError:
        return None
    return (st.st_mtime_ns, st.st_size)


class SourceWatcher(FileSystemEventHandler):
    """Observes one source file and calls `on_change(path)` whenever it was modified.

    The observer watches the parent directory, since editors often save by writing a temporary
    file and renaming it over the original; events for other files are ignored.
    """

    def __init__(self, path: str | Path, on_change: Callable[[Path], None]):
        super().__init__()
        self.path = Path(path).resolve()
        self._callback = on_change
        self._guard = threading.Lock()
        self._last = _fingerprint(self.path)
        self._observer = None

    def on_modified(self, event: FileSystemEvent) -> None:
        self._dispatch(event, event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._dispatch(event, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._dispatch(event, event.dest_path)

    def _dispatch(self, event: FileSystemEvent, target) -> None:
        if event.is_directory or Path(os.fsdecode(target)).resolve() != self.path:
            return
        self.check()

    def check(self) -> bool:
        """Compare with the last seen version, returns True if a change was detected and reported."""
        with self._guard:
            current = _fingerprint(self.path)
            if current is None or current == self._last:
                return False
            self._last = current
            if DEBUG: print(f"\033[90m[watcher] change detected in {self.path}\033[0m", file=sys.stderr)
            try:
                self._callback(self.path)
            except Exception:
                # The evaluation chain must never see errors from a rebuild.
                traceback.print_exc()
            return True

    def start(self) -> None:
        self._observer = Observer()
        self._observer.schedule(self, str(self.path.parent), recursive=False)
        self._observer.daemon = True
        self._observer.start()

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()

    def join(self, timeout: float | None = None) -> None:
        if self._observer is not None:
            self._observer.join(timeout)

    def is_alive(self) -> bool:
        return self._observer is not None and self._observer.is_alive()


class Reloader:
    """Rebuilds the program from `path` and hands the result to the session."""

    def __init__(self, session: Session, library: HostLibrary, path: str | Path,
                 on_reload: Callable[[Snapshot], None] | None = None,
                 on_rejected: Callable[[list[Diagnostic]], None] | None = None):
        self.session = session
        self.library = library
        self.path = Path(path)
        self.on_reload = on_reload
        self.on_rejected = on_rejected

    def reload(self, path: Path | None = None) -> bool:
        try:
            source = self.path.read_text(encoding='utf-8')
            candidate = build_snapshot(source, self.library, filename=str(self.path))
        except Exception as exc:
            candidate = [Diagnostic(f"Rebuild failed: {type(exc).__name__}: {exc}", str(self.path))]

        if self.session.install_snapshot(candidate):
            if DEBUG: print(f"\033[90m[watcher] installed generation {self.session.generation}\033[0m", file=sys.stderr)
            if self.on_reload is not None: self.on_reload(candidate)
            return True

        if self.on_rejected is not None:
            self.on_rejected(list(self.session.rejections[-1].diagnostics))
        return False

    def watch(self) -> SourceWatcher:
        watcher = SourceWatcher(self.path, self.reload)
        watcher.start()
        return watcher

    __call__ = reload
