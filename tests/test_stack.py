## hotwalk — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import pytest

from hotwalk.stack import OperandStack
from hotwalk.types import nil
from hotwalk.errors import HotStackUnderflow, HotError


def test_push_pop_is_last_in_first_out():
    stk = OperandStack()
    for value in (1, "two", True):
        stk.push(value)
    assert stk.pop() is True
    assert stk.pop() == "two"
    assert stk.pop() == 1
    assert stk.depth == 0


def test_pop_on_empty_stack_underflows():
    stk = OperandStack()
    with pytest.raises(HotStackUnderflow):
        stk.pop()
    # Still an IndexError for Python callers, and a HotError for the runner.
    with pytest.raises(IndexError):
        stk.pop()
    with pytest.raises(HotError):
        stk.peek()


def test_values_are_opaque():
    stk = OperandStack()
    marker = object()
    stk.push(None)
    stk.push(marker)
    assert stk.peek() is marker
    assert stk.depth == 2
    assert stk.pop() is marker
    assert stk.pop() is None


def test_to_list_is_top_first_and_truncate_unwinds():
    stk = OperandStack()
    for i in range(5):
        stk.push(i)
    assert stk.to_list() == [4, 3, 2, 1, 0]
    stk.truncate(2)
    assert stk.to_list() == [1, 0]
    assert len(stk) == 2
    stk.truncate(0)
    assert stk.top is nil


def test_repr_shows_bottom_to_top():
    stk = OperandStack()
    stk.push(1)
    stk.push(2)
    assert repr(stk) == "< 1 2 >"
