## hotwalk — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from typing import Any
from collections.abc import Awaitable

import pytest

from hotwalk.errors import HotTypeMissing, HotTypeError
from hotwalk.loader import get_host_signature, to_type_ref
from hotwalk.types import VOID, INT, BOOL, STRING, OBJECT, STRING_ARRAY, TASK, YIELD_AWAITABLE, YieldPoint, task_of


def test_signature_of_plain_function() -> None:
    def op_max(a: int, b: int) -> int:
        return max(a, b)

    meta = get_host_signature(fn=op_max, name='Math.Max')
    assert meta['arity'] == 2
    assert meta['valency'] == 1
    assert meta['parameters'] == [INT, INT]
    assert meta['returns'] == INT
    assert meta['is_async'] is False


def test_signature_of_void_function_has_no_valency() -> None:
    def op_log(message: str, value: object) -> None:
        pass

    meta = get_host_signature(fn=op_log, name='Log.Write')
    assert meta['parameters'] == [STRING, OBJECT]
    assert meta['returns'] == VOID
    assert meta['valency'] == 0


def test_coroutine_functions_return_tasks() -> None:
    async def op_wait(ms: int) -> None:
        pass

    async def op_fetch(key: str) -> bool:
        return True

    assert get_host_signature(fn=op_wait, name='wait')['returns'] == TASK
    meta = get_host_signature(fn=op_fetch, name='fetch')
    assert meta['returns'] == task_of(BOOL)
    assert meta['is_async'] is True
    assert meta['valency'] == 1


def test_type_mapping_for_arrays_awaitables_and_yields() -> None:
    assert to_type_ref(list[str]) == STRING_ARRAY
    assert to_type_ref(Awaitable[int]) == task_of(INT)
    assert to_type_ref(Awaitable[None]) == TASK
    assert to_type_ref(YieldPoint) == YIELD_AWAITABLE
    assert to_type_ref(Any) == OBJECT


def test_signature_requires_return_annotation() -> None:
    def op_missing(a: int):
        return a

    with pytest.raises(HotTypeMissing, match=r"return annotation"):
        get_host_signature(fn=op_missing, name='missing')


def test_signature_requires_parameter_annotations() -> None:
    def op_missing_pos_only(a, /, b: int) -> int:
        return b

    with pytest.raises(HotTypeMissing, match=r"annotate parameters: a"):
        get_host_signature(fn=op_missing_pos_only, name='missing_pos_only')


def test_signature_rejects_unknown_and_unresolved_types() -> None:
    def op_float(x: float) -> int:
        return int(x)

    def op_unresolved(x: 'NoSuchType') -> int:
        return 0

    def op_dict(x: dict[str, int]) -> int:
        return 0

    with pytest.raises(HotTypeError, match=r"unknown type"):
        get_host_signature(fn=op_float, name='float')
    with pytest.raises(HotTypeError, match=r"cannot be evaluated"):
        get_host_signature(fn=op_unresolved, name='unresolved')
    with pytest.raises(HotTypeError, match=r"generic annotation"):
        get_host_signature(fn=op_dict, name='dict')


def test_signature_rejects_variadic_functions() -> None:
    def op_many(*values: int) -> int:
        return sum(values)

    with pytest.raises(HotTypeError, match=r"variadic"):
        get_host_signature(fn=op_many, name='many')
