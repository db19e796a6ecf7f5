## hotwalk — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import pytest

from hotwalk.binder import build_snapshot
from hotwalk.builtins import load_builtins_library
from hotwalk.operators import load_operator_table, OperatorTable, op_add
from hotwalk.session import Session
from hotwalk.snapshot import Snapshot
from hotwalk.syntax import Literal, Binary, Block, ExpressionStatement
from hotwalk.types import Completed, INT, BOOL
from hotwalk.errors import HotUnsupportedOperator, HotStackError, HotUnsupportedConstruct


def _hooks_library(calls: list):
    lib = load_builtins_library()
    def seen(value: int) -> int:
        calls.append(value)
        return value
    def write_line(value: str) -> None:
        calls.append(value)
    lib.add_operation('Hooks', 'Seen', seen)
    lib.add_operation('System.Console', 'WriteLine', write_line)
    return lib

def _session(members: str, library=None, extended: bool = False, **kwargs) -> Session:
    lib = library or load_builtins_library()
    src = "using System;\nusing System.Threading.Tasks;\nclass Program {\n" + members + "\n}\n"
    snapshot = build_snapshot(src, lib, filename="<test>")
    assert isinstance(snapshot, Snapshot), snapshot
    return Session(snapshot, library=lib, operators=load_operator_table(extended=extended), **kwargs)

def _call(session: Session, name: str, *args):
    [method] = session.snapshot.methods_named(name)
    for arg in args:
        session.stack.push(arg)
    session.call(method)
    return session.stack.pop() if not method.is_void else None


def test_condition_with_arithmetic_invokes_bridge_once():
    calls = []
    session = _session('static void Main() { if (4 == (1 + 3)) { Console.WriteLine("True!"); } }', _hooks_library(calls))
    session.run()
    assert calls == ["True!"]
    assert session.stack.depth == 0


def test_false_condition_takes_else_branch():
    calls = []
    session = _session('static void Main() { if (4 == 5) { Console.WriteLine("yes"); } else if (true) { Console.WriteLine("no"); } }',
                       _hooks_library(calls))
    session.run()
    assert calls == ["no"]


def test_operands_are_evaluated_left_to_right():
    calls = []
    session = _session('static int Sum() { return Hooks.Seen(1) + Hooks.Seen(2); }', _hooks_library(calls))
    assert _call(session, 'Sum') == 3
    assert calls == [1, 2]


def test_binary_pops_right_operand_first():
    session = _session('static int Diff(int a, int b) { return a - b; }\nstatic bool Less(int a, int b) { return a < b; }', extended=True)
    assert _call(session, 'Diff', 10, 3) == 7
    assert _call(session, 'Less', 1, 2) is True
    assert _call(session, 'Less', 2, 1) is False


def test_unsupported_operator_fails_at_evaluation():
    session = _session('static int Diff(int a, int b) { return a - b; }')
    with pytest.raises(HotUnsupportedOperator) as info:
        _call(session, 'Diff', 3, 1)
    assert isinstance(info.value.hot_node, Binary)
    assert info.value.hot_meta['line'] == 4
    # Frames are always popped, even on errors.
    assert session.depth == 1


def test_operator_table_checks_operand_types():
    table = OperatorTable()
    table.add('add', op_add)
    assert table.apply('add', 2, 3) == 5
    with pytest.raises(HotStackError):
        table.apply('add', "2", 3)
    with pytest.raises(HotStackError):
        table.apply('add', True, 1)
    assert 'equals' not in table
    with pytest.raises(HotUnsupportedOperator):
        table.apply('equals', 1, 1)


def test_method_call_leaves_exactly_one_value_for_non_void():
    session = _session('static int One() { return 1; }\nstatic void Nothing() { Hooks.Seen(5); }', _hooks_library([]))
    session.stack.push("sentinel")
    [one] = session.snapshot.methods_named('One')
    session.call(one)
    assert session.stack.to_list() == [1, "sentinel"]
    session.stack.pop()
    [nothing] = session.snapshot.methods_named('Nothing')
    session.call(nothing)
    assert session.stack.to_list() == ["sentinel"]


def test_expression_statements_discard_their_values():
    session = _session('static void Main() { Test(); Math.Max(1, 2); Task.Delay(1); }\nstatic string Test() { return "x"; }')
    session.run()
    assert session.stack.depth == 0


def test_return_inside_loop_ends_method():
    calls = []
    session = _session('static int First() { while (true) { if (Hooks.Seen(7) == 7) { return 42; } } }', _hooks_library(calls))
    assert _call(session, 'First') == 42
    assert calls == [7]


def test_locals_are_per_frame():
    session = _session('static int Outer(int x) { int y = Inner(x + 1); return x + y; }\nstatic int Inner(int x) { int y = x + x; return y; }')
    assert _call(session, 'Outer', 1) == 5
    assert session.depth == 1
    assert session.frames == [{}]


def test_recursion_through_session():
    session = _session('static int Count(int n) { if (n == 0) { return 0; } return 1 + Count(n - 1); }', extended=True)
    assert _call(session, 'Count', 25) == 25


def test_async_methods_complete_with_values():
    session = _session('static async Task<int> Compute(int seed) { int v = await Task.FromResult(seed + seed); await Task.Yield(); return v; }\n'
                       'static async Task Signal() { await Task.Delay(1); }')
    result = _call(session, 'Compute', 4)
    assert result == Completed.of(8)
    signal = _call(session, 'Signal')
    assert isinstance(signal, Completed) and not signal.has_value
    session.close()


def test_await_program_method_pushes_its_value():
    session = _session('static async Task<int> Main() { int a = await Half(10); return a + 1; }\n'
                       'static async Task<int> Half(int x) { return x; }')
    assert session.run() == 11
    session.close()


def test_stored_host_task_can_be_awaited_twice():
    session = _session('static async Task<int> Main() {\n'
                       '    Task<int> t = Task.FromResult(3);\n'
                       '    int a = await t;\n'
                       '    int b = await t;\n'
                       '    return a + b;\n'
                       '}')
    assert session.run() == 6
    session.close()


def test_host_tasks_start_without_being_awaited():
    calls = []
    lib = load_builtins_library()
    async def record(value: int) -> None:
        calls.append(value)
    lib.add_operation('Hooks', 'Record', record)
    session = _session('static void Main() { Task pending = Hooks.Record(7); Task.Delay(60000); }', lib)
    session.run()
    loop = session.loop
    session.close()
    assert calls == [7]
    assert loop.is_closed()


def test_await_of_non_awaitable_value_is_a_stack_error():
    session = _session('static void Main() { }')
    with pytest.raises(HotStackError):
        session.interpreter._await(5, INT)


def test_unknown_nodes_are_unsupported():
    session = _session('static void Main() { }')
    with pytest.raises(HotUnsupportedConstruct):
        session.interpreter.execute(object())


def test_condition_must_be_boolean_at_runtime():
    session = _session('static void Main() { }')
    session.stack.push(1)
    with pytest.raises(HotStackError, match=r"expects"):
        session.interpreter._pop_bool('if')


def test_manual_nodes_evaluate():
    session = _session('static void Main() { }')
    node = Block((ExpressionStatement(Binary('add', Literal(2, INT), Literal(3, INT), INT)),))
    assert session.interpreter.execute(node) is False
    assert session.stack.depth == 0


def test_tracing_and_stats(capsys):
    stats = {}
    session = _session('static void Main() { Test(); }\nstatic int Test() { return 1 + 2; }', verbosity=2, stats=stats)
    session.run()
    out = capsys.readouterr().out
    assert "<=>" in out
    assert "Program.Test(…)" in out
    assert "return (1 + 2);" in out
    assert stats['steps'] > 0
