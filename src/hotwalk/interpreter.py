## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import asyncio
import inspect

from .types import VOID, BOOL, Completed, YieldPoint
from .syntax import (HostOperation, node_name, Literal, Identifier, Binary, Invocation, Await,
                     Block, VariableDeclaration, ExpressionStatement, If, While, Return, MethodDeclaration)
from .errors import HotStackError, HotCancelled, HotUnsupportedConstruct
from .library import HostBridge
from .formatting import show_statement_and_stack


STATEMENTS = (Block, VariableDeclaration, ExpressionStatement, If, While, Return, MethodDeclaration)


class Interpreter:
    """Tree-walking engine: evaluates bound nodes against the operand stack of one session."""

    def __init__(self, session):
        self.session = session
        self.stack = session.stack
        self.bridge = HostBridge(session.library, session.stack, schedule=session.schedule)
        self.step = 0

    def execute(self, node) -> bool:
        """Evaluate one node; returns True when a `return` ended the enclosing method body."""
        if isinstance(node, STATEMENTS):
            if self.session.cancel_requested:
                raise HotCancelled("Execution cancelled.", hot_node=node, hot_token=node_name(node), hot_meta=node.meta)
            self._trace(node)
            self.step += 1

        try:
            return self._dispatch(node)
        except Exception as exc:
            # The innermost node is the most precise location, outer ones must not overwrite it.
            if getattr(exc, 'hot_node', None) is None:
                exc.hot_node = node
                exc.hot_token = node_name(node)
                exc.hot_meta = getattr(node, 'meta', None)
            raise

    def _dispatch(self, node) -> bool:
        stk = self.stack
        match node:
            ## EXPRESSIONS
            case Literal(value=value):
                stk.push(value)
            case Identifier(name=name):
                stk.push(self.session.get_local(name))
            case Binary(operator=kind, left=left, right=right):
                self.execute(left)
                self.execute(right)
                b = stk.pop()
                a = stk.pop()
                stk.push(self.session.operators.apply(kind, a, b))
            case Invocation(target=target, arguments=arguments):
                for argument in arguments:
                    self.execute(argument)
                if isinstance(target, HostOperation):
                    self.bridge.invoke(target)
                else:
                    self.session.call(target, expected=node.type)
            case Await(operand=operand, type=result_type):
                self.execute(operand)
                self._await(stk.pop(), result_type)

            ## STATEMENTS
            case Block(statements=statements):
                for statement in statements:
                    if self.execute(statement): return True
            case VariableDeclaration(name=name, initializer=initializer):
                self.execute(initializer)
                self.session.set_local(name, stk.pop())
            case ExpressionStatement(expression=expression):
                self.execute(expression)
                if expression.type != VOID:
                    residue = stk.pop()
                    if inspect.iscoroutine(residue): residue.close()
            case If(condition=condition, then=then, otherwise=otherwise):
                self.execute(condition)
                if self._pop_bool('if'):
                    return self.execute(then)
                if otherwise is not None:
                    return self.execute(otherwise)
            case While(condition=condition, body=body):
                while True:
                    self.execute(condition)
                    if not self._pop_bool('while'): break
                    if self.execute(body): return True
            case Return(value=value):
                if value is not None:
                    self.execute(value)
                return True
            case MethodDeclaration(symbol=symbol, body=body):
                self.execute(body)
                if symbol.is_async:
                    stk.push(Completed.of(stk.pop()) if symbol.return_type.args else Completed.signal())
            case _:
                raise HotUnsupportedConstruct(f"Node `{type(node).__name__}` is not supported by the interpreter.",
                                              hot_node=node, hot_token=type(node).__name__)
        return False

    def _pop_bool(self, keyword: str) -> bool:
        value = self.stack.pop()
        if not isinstance(value, bool):
            raise HotStackError(f"`{keyword}` expects {BOOL} as condition, got {type(value).__name__}.",
                                hot_token=keyword, hot_stack=self.stack.top)
        return value

    def _await(self, value, result_type) -> None:
        match value:
            case Completed(value=result, has_value=has_value):
                if has_value: self.stack.push(result)
            case YieldPoint():
                self.session.run_async(asyncio.sleep(0))
            case _ if inspect.isawaitable(value):
                result = self.session.run_async(value)
                if result_type != VOID: self.stack.push(result)
            case _:
                raise HotStackError(f"`await` expects an awaitable value, got {type(value).__name__}.",
                                    hot_token='await', hot_stack=self.stack.top)

    def _trace(self, node) -> None:
        verbosity = self.session.verbosity
        if verbosity == 2 or (verbosity == 1 and isinstance(node, MethodDeclaration)):
            print(f"\033[90m{self.step:>3} :\033[0m  ", end='')
            show_statement_and_stack(node, self.stack, depth=self.session.depth)
