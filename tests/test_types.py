## hotwalk — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import asyncio

import pytest

from hotwalk.types import (Stack, nil, TypeRef, VOID, INT, BOOL, STRING, OBJECT, STRING_ARRAY, TASK,
                           YIELD_AWAITABLE, ERROR, task_of, is_task, is_awaitable, awaited_type,
                           is_assignable, Completed, YieldPoint)


def test_nil_is_a_singleton():
    with pytest.raises(ValueError):
        Stack(None, None)
    assert Stack(nil, 1).tail is nil
    with pytest.raises(TypeError):
        bool(nil)


def test_type_names_use_keywords_and_metadata_names():
    assert str(INT) == 'int'
    assert str(STRING_ARRAY) == 'string[]'
    assert str(task_of(INT)) == 'Task<int>'
    assert INT.full_name == 'System.Int32'
    assert task_of(INT).metadata_name == 'Task`1'
    assert task_of(INT).full_name == 'System.Threading.Tasks.Task`1[System.Int32]'
    assert TypeRef('Demo', 'Widget').full_name == 'Demo.Widget'


def test_task_types_and_awaited_results():
    assert is_task(TASK) and is_task(task_of(BOOL))
    assert not is_task(INT)
    assert is_awaitable(YIELD_AWAITABLE) and not is_awaitable(STRING)
    assert awaited_type(task_of(STRING)) == STRING
    assert awaited_type(TASK) == VOID
    assert awaited_type(YIELD_AWAITABLE) == VOID


def test_assignability_is_identity_or_object():
    assert is_assignable(INT, INT)
    assert is_assignable(STRING, OBJECT)
    assert not is_assignable(VOID, OBJECT)
    assert not is_assignable(INT, STRING)
    assert is_assignable(ERROR, STRING) and is_assignable(BOOL, ERROR)


def test_completed_values_are_awaitable():
    async def consume():
        return await Completed.of(7), await Completed.signal(), await YieldPoint()

    assert asyncio.run(consume()) == (7, None, None)
    assert Completed.of(None).has_value
    assert not Completed.signal().has_value
    assert repr(Completed.of(3)) == "Completed(3)"
