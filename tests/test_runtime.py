## hotwalk — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from pathlib import Path

import pytest

from hotwalk.runtime import Runtime
from hotwalk.snapshot import Snapshot
from hotwalk.session import Session
from hotwalk.types import INT, STRING
from hotwalk.errors import HotInvalidSnapshot, HotUnsupportedOperator, HotTypeMissing


def _program(body: str, members: str = "") -> str:
    return "using System;\nclass Program {\n" + members + "\nstatic int Main() {\n" + body + "\n}\n}\n"


def test_build_returns_snapshot_or_diagnostics():
    rt = Runtime()
    assert isinstance(rt.build(_program("return 1;")), Snapshot)
    diagnostics = rt.build(_program("return true;"), filename="x.hw")
    assert isinstance(diagnostics, list)
    assert diagnostics[0].filename == "x.hw"


def test_session_rejects_invalid_initial_program():
    with pytest.raises(HotInvalidSnapshot) as info:
        Runtime().session(_program("return nope;"), filename="x.hw")
    assert len(info.value.diagnostics) == 1
    assert "nope" in info.value.diagnostics[0].message


def test_session_shares_library_and_operators():
    rt = Runtime(extended=True)
    session = rt.session(_program("return 6 * 7;"))
    assert isinstance(session, Session)
    assert session.library is rt.library
    assert session.operators is rt.operators
    assert session.run() == 42


def test_run_with_default_operator_table():
    rt = Runtime()
    assert rt.run(_program("return 40 + 2;")) == 42
    with pytest.raises(HotUnsupportedOperator):
        rt.run(_program("return 40 * 2;"))


def test_register_operation_and_run():
    rt = Runtime()
    def shout(text: str) -> str: return text.upper() + "!"
    descriptor = rt.register_operation('Text.Util', 'Shout', shout)
    assert descriptor.return_type == STRING
    src = "class Program { static string Main() { return Text.Util.Shout(\"hey\"); } }"
    assert rt.run(src) == "HEY!"


def test_register_operation_without_annotations_fails():
    rt = Runtime()
    def double(x): return x * 2
    with pytest.raises(HotTypeMissing):
        rt.register_operation('Util', 'Double', double)


def test_register_operator():
    rt = Runtime()
    def op_minus(left: int, right: int) -> int: return left - right
    rt.register_operator('subtract', op_minus)
    assert rt.run(_program("return 10 - 4;")) == 6


def test_signatures_and_listing():
    rt = Runtime()
    [max_meta] = rt.get_signature('System.Math', 'Max')
    assert max_meta['parameters'] == [INT, INT]
    assert max_meta['returns'] == INT
    listing = rt.list_operations()
    assert len(listing['System.Console.WriteLine']) == 5
    assert 'System.Threading.Tasks.Task.Delay' in listing


def test_run_fixture_files(capsys):
    root = Path(__file__).resolve().parent
    rt = Runtime(extended=True)
    source = (root / "hello.hw").read_text(encoding='utf-8')
    assert rt.run(source, args=["x"], filename="hello.hw") is None
    assert capsys.readouterr().out == "True!\nValue Foo bar\n"
    assert rt.run((root / "async.hw").read_text(encoding='utf-8')) == 42
    assert capsys.readouterr().out == "Computed 42\n"


def test_stats_are_accumulated():
    stats = {}
    Runtime().run(_program("return 1;"), stats=stats)
    first = stats['steps']
    Runtime().run(_program("return 1;"), stats=stats)
    assert stats['steps'] == 2 * first > 0
