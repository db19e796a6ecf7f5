## hotwalk — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import os
import threading

from watchdog.events import FileModifiedEvent, FileMovedEvent

from hotwalk.watcher import SourceWatcher, Reloader
from hotwalk.builtins import load_builtins_library
from hotwalk.binder import build_snapshot
from hotwalk.session import Session


PROGRAM = "class Program {{ static string Test() {{ return \"{}\"; }} }}\n"


def save_atomically(path, text: str) -> None:
    # Same as most editors: write next to the file, then rename over it.
    partial = path.with_name(path.name + ".partial")
    partial.write_text(text, encoding='utf-8')
    os.replace(partial, path)


def test_check_reports_only_real_changes(tmp_path):
    path = tmp_path / "Program.hw"
    path.write_text("one", encoding='utf-8')
    seen = []
    watcher = SourceWatcher(path, seen.append)
    assert watcher.check() is False
    path.write_text("two, longer", encoding='utf-8')
    assert watcher.check() is True
    assert watcher.check() is False
    assert seen == [path.resolve()]


def test_events_for_other_files_are_ignored(tmp_path):
    path = tmp_path / "Program.hw"
    other = tmp_path / "Other.hw"
    path.write_text("one", encoding='utf-8')
    seen = []
    watcher = SourceWatcher(path, seen.append)

    other.write_text("changed", encoding='utf-8')
    watcher.on_modified(FileModifiedEvent(str(other)))
    assert seen == []

    path.write_text("two, longer", encoding='utf-8')
    watcher.on_moved(FileMovedEvent(str(tmp_path / "Program.hw.partial"), str(path)))
    assert seen == [path.resolve()]


def test_callback_errors_are_reported_not_raised(tmp_path, capsys):
    path = tmp_path / "Program.hw"
    path.write_text("one", encoding='utf-8')
    def explode(_):
        raise RuntimeError("rebuild exploded")
    watcher = SourceWatcher(path, explode)
    path.write_text("two, longer", encoding='utf-8')
    assert watcher.check() is True
    assert "rebuild exploded" in capsys.readouterr().err


def test_deleted_file_is_not_a_change(tmp_path):
    path = tmp_path / "Program.hw"
    path.write_text("one", encoding='utf-8')
    watcher = SourceWatcher(path, lambda p: None)
    path.unlink()
    assert watcher.check() is False


def test_reloader_installs_valid_and_reports_invalid(tmp_path):
    lib = load_builtins_library()
    path = tmp_path / "Program.hw"
    path.write_text(PROGRAM.format("first"), encoding='utf-8')
    session = Session(build_snapshot(path.read_text(encoding='utf-8'), lib), library=lib)

    installed, rejected = [], []
    reloader = Reloader(session, lib, path, on_reload=installed.append, on_rejected=rejected.append)

    path.write_text(PROGRAM.format("second"), encoding='utf-8')
    assert reloader.reload() is True
    assert installed == [session.snapshot]
    [test] = session.snapshot.methods_named('Test')
    session.call(test)
    assert session.stack.pop() == "second"

    path.write_text("class Program { static int Broken() { return \"x\"; } }", encoding='utf-8')
    assert reloader.reload() is False
    [diagnostics] = rejected
    assert "Cannot implicitly convert" in diagnostics[0].message
    assert session.generation == 2


def test_reloader_reports_unreadable_source(tmp_path):
    lib = load_builtins_library()
    session = Session(library=lib)
    rejected = []
    reloader = Reloader(session, lib, tmp_path / "missing.hw", on_rejected=rejected.append)
    assert reloader.reload() is False
    [[diagnostic]] = rejected
    assert "Rebuild failed: FileNotFoundError" in diagnostic.message


def test_background_observer_reloads_session(tmp_path):
    lib = load_builtins_library()
    path = tmp_path / "Program.hw"
    path.write_text(PROGRAM.format("first"), encoding='utf-8')
    session = Session(build_snapshot(path.read_text(encoding='utf-8'), lib), library=lib)

    done = threading.Event()
    reloader = Reloader(session, lib, path, on_reload=lambda _: done.set())
    watcher = reloader.watch()
    try:
        assert watcher.is_alive()
        save_atomically(path, PROGRAM.format("second, from the watcher"))
        assert done.wait(10)
    finally:
        watcher.stop()
        watcher.join(5)
    assert not watcher.is_alive()
    [test] = session.snapshot.methods_named('Test')
    session.call(test)
    assert session.stack.pop() == "second, from the watcher"
