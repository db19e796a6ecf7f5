## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import inspect
import collections.abc
from typing import Any, Callable, get_origin, get_args

from .types import TypeRef, VOID, INT, BOOL, STRING, OBJECT, STRING_ARRAY, TASK, YIELD_AWAITABLE, YieldPoint, task_of
from .errors import HotTypeMissing, HotTypeError


PYTHON_TYPE_MAP: dict[Any, TypeRef] = {
    int: INT, bool: BOOL, str: STRING,
    object: OBJECT, Any: OBJECT,
    YieldPoint: YIELD_AWAITABLE,
    type(None): VOID, None: VOID,
}


def to_type_ref(tp: Any, *, op_name: str = '<unnamed>') -> TypeRef:
    """Map a Python annotation onto the static type the binder and catalog use."""
    if (known := PYTHON_TYPE_MAP.get(tp)) is not None:
        return known

    if (origin := get_origin(tp)) is not None:
        args = get_args(tp)
        if origin is list and args == (str,):
            return STRING_ARRAY
        if origin is collections.abc.Awaitable:
            result = to_type_ref(args[0], op_name=op_name) if args else VOID
            return TASK if result == VOID else task_of(result)
        raise HotTypeError(f"Operation `{op_name}` uses unsupported generic annotation {tp}.", hot_token=op_name)

    if isinstance(tp, str):
        raise HotTypeError(f"Operation `{op_name}` uses an unresolved string annotation `{tp}`.", hot_token=op_name)
    raise HotTypeError(f"Operation `{op_name}` uses unknown type {tp!r}.", hot_token=op_name)


def get_host_signature(*, fn: Callable, name: str = None) -> dict:
    """Parse the type annotations of a Python callable to determine its host signature.

    Returns a dict with `parameters` (list of TypeRef, left-to-right), `returns` (TypeRef),
    `arity` (number of values popped), `valency` (0 or 1 values pushed) and `is_async`.
    Coroutine functions return `Task` or `Task<T>` from the point of view of the program.
    """
    assert fn is not None, "Must specify the function to inspect."
    op_name = name or getattr(fn, '__name__', '<unnamed>')

    try:
        sig = inspect.signature(fn, eval_str=True)
    except NameError as exc:
        raise HotTypeError(f"Operation `{op_name}` has annotations that cannot be evaluated: {exc}", hot_token=op_name) from exc
    params = list(sig.parameters.values())

    if any(p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD) for p in params):
        raise HotTypeError(f"Operation `{op_name}` is variadic, which host operations do not support.", hot_token=op_name)
    required_kw = [p.name for p in params if p.kind == inspect.Parameter.KEYWORD_ONLY and p.default is inspect._empty]
    if required_kw:
        raise HotTypeError(f"Operation `{op_name}` requires keyword-only arguments: {', '.join(required_kw)}.", hot_token=op_name)
    positional = [p for p in params if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)]

    ret_ann = sig.return_annotation
    if ret_ann is inspect.Signature.empty:
        raise HotTypeMissing(f"Operation `{op_name}` must declare a return annotation.", hot_token=op_name)
    missing_inputs = [p.name for p in positional if p.annotation is inspect._empty]
    if missing_inputs:
        raise HotTypeMissing(f"Operation `{op_name}` must annotate parameters: {', '.join(missing_inputs)}.", hot_token=op_name)

    returns = to_type_ref(ret_ann, op_name=op_name)
    is_async = inspect.iscoroutinefunction(fn)
    if is_async:
        returns = TASK if returns == VOID else task_of(returns)

    return {
        'parameters': [to_type_ref(p.annotation, op_name=op_name) for p in positional],
        'returns': returns,
        'arity': len(positional),
        'valency': 0 if returns == VOID else 1,
        'is_async': is_async,
    }
