## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# Host operations of the `System` namespace available to interpreted programs.
#

import re
import sys
import asyncio

from .types import YieldPoint


def _to_text(value: object) -> str:
    if isinstance(value, bool): return 'True' if value else 'False'
    if value is None: return ''
    return str(value)

def _composite_format(fmt: str, *args: object) -> str:
    """Minimal .NET composite formatting: `{0}` placeholders and `{{`/`}}` escapes."""
    def _sub(match):
        if match.group(0) in ('{{', '}}'): return match.group(0)[0]
        index = int(match.group(1))
        if index >= len(args):
            raise IndexError(f"Format item {{{index}}} has no matching argument.")
        return _to_text(args[index])
    return re.sub(r'\{\{|\}\}|\{(\d+)\}', _sub, fmt)


## CONSOLE
def console_write_line(value: str) -> None: print(value, file=sys.stdout, flush=True)
def console_write_line_int(value: int) -> None: print(_to_text(value), file=sys.stdout, flush=True)
def console_write_line_bool(value: bool) -> None: print(_to_text(value), file=sys.stdout, flush=True)
def console_write_line_object(value: object) -> None: print(_to_text(value), file=sys.stdout, flush=True)
def console_write_line_format(fmt: str, arg: object) -> None: print(_composite_format(fmt, arg), file=sys.stdout, flush=True)
def console_write(value: str) -> None: print(value, end='', file=sys.stdout, flush=True)

## MATH
def math_max(a: int, b: int) -> int: return max(a, b)
def math_min(a: int, b: int) -> int: return min(a, b)
def math_abs(x: int) -> int: return abs(x)

## STRINGS & CONVERSION
def string_concat(a: str, b: str) -> str: return a + b
def string_is_null_or_empty(value: str) -> bool: return not value
def convert_to_string(value: int) -> str: return _to_text(value)
def convert_to_int32(value: str) -> int: return int(value.strip())

## TASKS
async def task_delay(milliseconds: int) -> None:
    await asyncio.sleep(max(milliseconds, 0) / 1000.0)

async def task_from_result(value: int) -> int:
    return value

def task_yield() -> YieldPoint: return YieldPoint()


__operations__ = [
    ('System.Console', 'WriteLine', console_write_line),
    ('System.Console', 'WriteLine', console_write_line_int),
    ('System.Console', 'WriteLine', console_write_line_bool),
    ('System.Console', 'WriteLine', console_write_line_object),
    ('System.Console', 'WriteLine', console_write_line_format),
    ('System.Console', 'Write', console_write),
    ('System.Math', 'Max', math_max),
    ('System.Math', 'Min', math_min),
    ('System.Math', 'Abs', math_abs),
    ('System.String', 'Concat', string_concat),
    ('System.String', 'IsNullOrEmpty', string_is_null_or_empty),
    ('System.Convert', 'ToString', convert_to_string),
    ('System.Convert', 'ToInt32', convert_to_int32),
    ('System.Threading.Tasks.Task', 'Delay', task_delay),
    ('System.Threading.Tasks.Task', 'FromResult', task_from_result),
    ('System.Threading.Tasks.Task', 'Yield', task_yield),
]
