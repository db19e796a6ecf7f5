## hotwalk — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import hotwalk.api as H
from hotwalk.snapshot import Snapshot


def test_run_string_program():
    src = "class Program { static int Main() { return 2 + 3; } }"
    assert H.run(src) == 5


def test_register_operation_and_run():
    def inc(x: int) -> int: return x + 1
    H.register_operation('Api.Test', 'Inc', inc)
    src = "class Program { static int Main() { return Api.Test.Inc(4); } }"
    assert H.run(src) == 5


def test_errors_and_values_are_exported():
    assert issubclass(H.HotInvalidSnapshot, H.HotError)
    assert H.Completed.of(1).value == 1
    assert isinstance(H.YieldPoint(), H.YieldPoint)


def test_module_attributes_forward_to_default_runtime():
    assert H.library is H._RUNTIME.library
    assert 'System.Math.Max' in H.list_operations()
    assert isinstance(H.build("class Program { }"), Snapshot)
