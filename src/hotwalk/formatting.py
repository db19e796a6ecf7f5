## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import re

from .types import Completed, YieldPoint
from .stack import OperandStack
from .syntax import (Literal, Identifier, Binary, Invocation, Await, Block, VariableDeclaration,
                     ExpressionStatement, If, While, Return, MethodDeclaration)


OPERATOR_TOKENS = {
    'add': '+', 'subtract': '-', 'multiply': '*', 'divide': '/',
    'equals': '==', 'not_equals': '!=',
    'less_than': '<', 'greater_than': '>', 'less_or_equal': '<=', 'greater_or_equal': '>=',
}


def write_without_ansi(write_fn):
    """Wrapper function that strips ANSI codes before calling the original writer."""
    ansi_re = re.compile(r'\033\[[0-9;]*m')
    return lambda text: write_fn(ansi_re.sub('', text))

def _format_item(it, abbreviate: bool = False):
    if isinstance(it, list):
        if abbreviate: return f'≪array:{len(it)}≫'
        return '[' + ', '.join(_format_item(i) for i in it) + ']'
    if isinstance(it, str):
        return f'≪string:{len(it)}≫' if abbreviate else '"' + it.replace('"', '\\"') + '"'
    if isinstance(it, bool): return str(it).lower()
    if it is None: return 'null'
    if isinstance(it, (Completed, YieldPoint)): return repr(it)
    if hasattr(it, '__await__'): return f'≪{type(it).__name__}≫'
    return str(it)

def format_item(it):
    return _format_item(it, abbreviate=False)

def show_stack(stack: OperandStack, width=72, end='\n', file=None, abbreviate: bool = False):
    if stack.depth == 0:
        stack_str = '∅'
    else:
        items = stack.to_list()
        stack_str = ' '.join(_format_item(s) for s in reversed(items))
        if abbreviate and len(stack_str) > 144:
            stack_str = ' '.join(_format_item(s, abbreviate=True) for s in reversed(items))

    if width is not None and len(stack_str) > width:
        stack_str = '… ' + stack_str[-width+2:]
    print(f"{stack_str:>{width}}" if width else stack_str, end=end, file=file)


def format_expression(node) -> str:
    match node:
        case Literal(value=value): return format_item(value)
        case Identifier(name=name): return name
        case Binary(operator=op, left=left, right=right):
            return f"({format_expression(left)} {OPERATOR_TOKENS.get(op, op)} {format_expression(right)})"
        case Invocation(target=target, arguments=arguments):
            scope = getattr(target, 'scope', None) or getattr(target, 'type_name', '')
            return f"{scope}.{target.name}({', '.join(format_expression(a) for a in arguments)})"
        case Await(operand=operand): return f"await {format_expression(operand)}"
    return '?'

def format_statement(node) -> str:
    """Single-line summary of a statement; nested bodies are elided."""
    match node:
        case Block(statements=statements): return f"{{ … {len(statements)} }}"
        case VariableDeclaration(name=name, initializer=init): return f"var {name} = {format_expression(init)};"
        case ExpressionStatement(expression=expr): return f"{format_expression(expr)};"
        case If(condition=cond): return f"if {format_expression(cond)} …"
        case While(condition=cond): return f"while {format_expression(cond)} …"
        case Return(value=None): return "return;"
        case Return(value=value): return f"return {format_expression(value)};"
        case MethodDeclaration(symbol=symbol): return f"{symbol.type_name}.{symbol.name}(…)"
    return format_expression(node)

def show_statement_and_stack(node, stack: OperandStack, depth: int = 0, width=72):
    stmt_str = ('  ' * max(depth - 1, 0)) + format_statement(node)
    if len(stmt_str) > width:
        stmt_str = stmt_str[:+width-2] + ' …'
    show_stack(stack, end='')
    print(f" \033[36m <=> \033[0m {stmt_str:<{width}}")


def format_diagnostics(diagnostics) -> str:
    return '\n'.join(f"  \033[97m{d}\033[0m" for d in diagnostics)
