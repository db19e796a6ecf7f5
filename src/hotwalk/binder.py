## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import ast
from dataclasses import dataclass, field

import lark

from .types import (TypeRef, VOID, INT, BOOL, STRING, ERROR, STRING_ARRAY, TYPE_NAME_MAP,
                    task_of, is_task, is_awaitable, awaited_type, is_assignable)
from .syntax import (MethodSymbol, ParameterSymbol, HostOperation, MethodDeclaration,
                     Literal, Identifier, Binary, Invocation, Await,
                     Block, VariableDeclaration, ExpressionStatement, If, While, Return)
from .snapshot import Snapshot, Diagnostic
from .library import HostLibrary
from .operators import ALIASES
from .parser import parse
from .errors import HotParseError, HotUnsupportedConstruct


INT32_MAX = 2**31 - 1

ARITHMETIC = {'add', 'subtract', 'multiply', 'divide'}
COMPARISON = {'less_than', 'greater_than', 'less_or_equal', 'greater_or_equal'}


@dataclass
class ClassInfo:
    name: str
    namespace: str
    usings: tuple[str, ...]
    methods: list[tuple[MethodSymbol, lark.Tree]] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name

    def methods_named(self, name: str) -> list[MethodSymbol]:
        return [m for m, _ in self.methods if m.name == name]


class LocalScope:
    """Block-structured declarations of one method body; names may not shadow enclosing ones."""

    def __init__(self, parameters):
        self.blocks: list[dict[str, TypeRef]] = [{p.name: p.type for p in parameters}]

    def push(self): self.blocks.append({})
    def pop(self): self.blocks.pop()

    def lookup(self, name: str) -> TypeRef | None:
        for block in reversed(self.blocks):
            if name in block: return block[name]
        return None

    def declare(self, name: str, tp: TypeRef) -> bool:
        if self.lookup(name) is not None: return False
        self.blocks[-1][name] = tp
        return True


@dataclass
class BindContext:
    method: MethodSymbol
    cls: ClassInfo
    scope: LocalScope


class Binder:
    def __init__(self, library: HostLibrary, filename: str | None = None):
        self.library = library
        self.filename = filename
        self.diagnostics: list[Diagnostic] = []
        self.classes: list[ClassInfo] = []

    def error(self, message: str, node=None) -> None:
        meta = self._meta(node)
        self.diagnostics.append(Diagnostic(message, self.filename, meta.get('line'), meta.get('column')))

    def _meta(self, node) -> dict:
        if isinstance(node, lark.Token):
            return {'filename': self.filename, 'line': node.line, 'column': node.column}
        if isinstance(node, lark.Tree):
            return {'filename': self.filename, 'line': getattr(node.meta, 'line', None),
                    'column': getattr(node.meta, 'column', None), 'end_line': getattr(node.meta, 'end_line', None)}
        return {'filename': self.filename}

    # Declarations ─────────────────────────────────────────────────────────────────────────
    def bind(self, tree: lark.Tree) -> tuple[tuple[MethodSymbol, ...], list[Diagnostic]]:
        # First pass: declare every method so bodies can refer to each other in any order.
        self._collect(tree.children, namespace='', usings=())
        # Second pass: bind each body now that all method symbols are known.
        methods = []
        for cls in self.classes:
            for symbol, body_tree in cls.methods:
                ctx = BindContext(method=symbol, cls=cls, scope=LocalScope(symbol.parameters))
                body = self._bind_block(body_tree, ctx)
                symbol.declaration = MethodDeclaration(symbol, body, meta=symbol.meta)
                if self._needs_value(symbol) and not _always_returns(body):
                    self.error(f"`{symbol.name}`: not all code paths return a value.", body_tree)
                methods.append(symbol)
        return tuple(methods), self.diagnostics

    def _collect(self, children, namespace: str, usings: tuple[str, ...]) -> None:
        usings = usings + tuple(_qualified(ch.children[0]) for ch in children if _is_tree(ch, 'using_directive'))
        for ch in children:
            if _is_tree(ch, 'namespace_declaration'):
                name = _qualified(ch.children[0])
                inner = f"{namespace}.{name}" if namespace else name
                self._collect(ch.children[1:], namespace=inner, usings=usings)
            elif _is_tree(ch, 'class_declaration'):
                self._declare_class(ch, namespace, usings)

    def _declare_class(self, tree: lark.Tree, namespace: str, usings: tuple[str, ...]) -> None:
        name_token = next(t for t in tree.children if isinstance(t, lark.Token) and t.type == 'NAME')
        if any(c.name == name_token.value and c.namespace == namespace for c in self.classes):
            self.error(f"The namespace `{namespace or '<global>'}` already contains a definition for `{name_token}`.", name_token)
            return
        cls = ClassInfo(name=name_token.value, namespace=namespace, usings=usings)
        self.classes.append(cls)
        for ch in tree.children:
            if _is_tree(ch, 'method_declaration'):
                self._declare_method(ch, cls)

    def _declare_method(self, tree: lark.Tree, cls: ClassInfo) -> None:
        modifiers = {m.children[0].value for m in tree.children if _is_tree(m, 'modifier')}
        rest = [ch for ch in tree.children if not _is_tree(ch, 'modifier')]
        type_tree, name_token = rest[0], rest[1]
        param_list = next((ch for ch in rest if _is_tree(ch, 'parameter_list')), None)
        body_tree = rest[-1]

        is_async = 'async' in modifiers
        return_type = self.resolve_type(type_tree)
        if is_async and return_type != ERROR and not is_task(return_type):
            self.error("The return type of an async method must be `Task` or `Task<T>`.", type_tree)

        parameters = []
        for p in (param_list.children if param_list is not None else []):
            p_type, p_name = self.resolve_type(p.children[0]), p.children[1]
            if p_type == VOID:
                self.error(f"Parameter `{p_name}` cannot have type `void`.", p_name)
            if any(existing.name == p_name.value for existing in parameters):
                self.error(f"The parameter name `{p_name}` is a duplicate.", p_name)
            parameters.append(ParameterSymbol(p_name.value, p_type))

        symbol = MethodSymbol(name=name_token.value, namespace=cls.namespace, type_name=cls.name,
                              parameters=tuple(parameters), return_type=return_type,
                              is_static='static' in modifiers, is_async=is_async,
                              meta=self._meta(name_token))
        if any(m.ref.parameter_types == symbol.ref.parameter_types for m in cls.methods_named(symbol.name)):
            self.error(f"Type `{cls.name}` already defines a member called `{symbol.name}` with the same parameter types.", name_token)
            return
        cls.methods.append((symbol, body_tree))

    def resolve_type(self, tree: lark.Tree) -> TypeRef:
        name_token = tree.children[0]
        type_args = next((ch for ch in tree.children if _is_tree(ch, 'type_arguments')), None)
        is_array = any(isinstance(ch, lark.Token) and ch.type == 'ARRAY' for ch in tree.children)

        if type_args is not None:
            args = [self.resolve_type(a) for a in type_args.children if _is_tree(a, 'type_ref')]
            if name_token.value != 'Task' or len(args) != 1:
                self.error(f"The generic type `{name_token}` with {len(args)} type argument(s) could not be found.", name_token)
                return ERROR
            if args[0] == VOID:
                self.error("The type `void` may not be used as a type argument.", name_token)
            tp = task_of(args[0])
        elif (tp := TYPE_NAME_MAP.get(name_token.value)) is None:
            self.error(f"The type name `{name_token}` could not be found.", name_token)
            return ERROR

        if is_array:
            if tp != STRING:
                self.error("Only `string[]` arrays are supported.", name_token)
                return ERROR
            return STRING_ARRAY
        return tp

    def _needs_value(self, symbol: MethodSymbol) -> bool:
        if symbol.return_type == ERROR: return False
        if symbol.is_async: return is_task(symbol.return_type) and bool(symbol.return_type.args)
        return symbol.return_type != VOID

    # Statements ───────────────────────────────────────────────────────────────────────────
    def _bind_block(self, tree: lark.Tree, ctx: BindContext) -> Block:
        ctx.scope.push()
        try:
            statements = tuple(self.bind_statement(ch, ctx) for ch in tree.children)
        finally:
            ctx.scope.pop()
        return Block(statements, meta=self._meta(tree))

    def bind_statement(self, tree: lark.Tree, ctx: BindContext):
        meta = self._meta(tree)
        match tree.data:
            case 'block':
                return self._bind_block(tree, ctx)
            case 'if_statement':
                condition = self._bind_condition(tree.children[0], ctx, 'if')
                then = self.bind_statement(tree.children[1], ctx)
                otherwise = self.bind_statement(tree.children[2], ctx) if len(tree.children) > 2 else None
                return If(condition, then, otherwise, meta=meta)
            case 'while_statement':
                condition = self._bind_condition(tree.children[0], ctx, 'while')
                return While(condition, self.bind_statement(tree.children[1], ctx), meta=meta)
            case 'return_statement':
                return self._bind_return(tree, ctx)
            case 'variable_declaration':
                return self._bind_declaration(tree, ctx)
            case 'expression_statement':
                return ExpressionStatement(self.bind_expression(tree.children[0], ctx), meta=meta)
            case _:
                raise HotUnsupportedConstruct(f"Statement `{tree.data}` is not supported.", hot_token=tree.data, hot_meta=meta)

    def _bind_condition(self, tree, ctx: BindContext, keyword: str):
        condition = self.bind_expression(tree, ctx)
        if condition.type not in (BOOL, ERROR):
            self.error(f"The `{keyword}` condition must be `bool`, not `{condition.type}`.", tree)
        return condition

    def _bind_return(self, tree: lark.Tree, ctx: BindContext) -> Return:
        method = ctx.method
        expected = method.return_type
        if method.is_async:
            expected = awaited_type(expected) if is_task(expected) else ERROR

        if not tree.children:
            if expected not in (VOID, ERROR):
                self.error(f"An object of a type convertible to `{expected}` is required.", tree)
            return Return(None, meta=self._meta(tree))

        value = self.bind_expression(tree.children[0], ctx)
        if expected == VOID:
            self.error(f"Since `{method.name}` returns void, a return keyword must not be followed by an object expression.", tree)
        elif not is_assignable(value.type, expected):
            self.error(f"Cannot implicitly convert type `{value.type}` to `{expected}`.", tree.children[0])
        return Return(value, meta=self._meta(tree))

    def _bind_declaration(self, tree: lark.Tree, ctx: BindContext) -> VariableDeclaration:
        type_node, name_token, init_tree = tree.children
        initializer = self.bind_expression(init_tree, ctx)

        if isinstance(type_node, lark.Token) and type_node.type == 'VAR':
            declared = initializer.type
            if declared == VOID:
                self.error(f"Cannot assign void to an implicitly-typed variable `{name_token}`.", name_token)
        else:
            declared = self.resolve_type(type_node)
            if declared == VOID:
                self.error(f"Variable `{name_token}` cannot be declared as `void`.", name_token)
            elif not is_assignable(initializer.type, declared):
                self.error(f"Cannot implicitly convert type `{initializer.type}` to `{declared}`.", init_tree)

        if not ctx.scope.declare(name_token.value, declared):
            self.error(f"A local variable named `{name_token}` is already defined in this scope.", name_token)
        return VariableDeclaration(name_token.value, initializer, meta=self._meta(tree))

    # Expressions ──────────────────────────────────────────────────────────────────────────
    def bind_expression(self, tree, ctx: BindContext):
        meta = self._meta(tree)
        match tree.data:
            case 'literal':
                return self._bind_literal(tree.children[0], meta)
            case 'identifier':
                name = tree.children[0].value
                if (tp := ctx.scope.lookup(name)) is None:
                    self.error(f"The name `{name}` does not exist in the current context.", tree.children[0])
                    tp = ERROR
                return Identifier(name, tp, meta=meta)
            case 'binary':
                return self._bind_binary(tree, ctx)
            case 'await_expression':
                return self._bind_await(tree, ctx)
            case 'invocation':
                return self._bind_invocation(tree, ctx)
            case _:
                raise HotUnsupportedConstruct(f"Expression `{tree.data}` is not supported.", hot_token=tree.data, hot_meta=meta)

    def _bind_literal(self, token: lark.Token, meta: dict) -> Literal:
        match token.type:
            case 'INTEGER':
                value = int(token.value)
                if value > INT32_MAX:
                    self.error(f"Integral constant `{token}` is too large.", token)
                return Literal(value, INT, meta=meta)
            case 'STRING':
                return Literal(ast.literal_eval(token.value), STRING, meta=meta)
            case 'TRUE' | 'FALSE':
                return Literal(token.type == 'TRUE', BOOL, meta=meta)
        raise HotUnsupportedConstruct(f"Literal `{token}` is not supported.", hot_token=token.value, hot_meta=meta)

    def _bind_binary(self, tree: lark.Tree, ctx: BindContext) -> Binary:
        left_tree, op_token, right_tree = tree.children
        left, right = self.bind_expression(left_tree, ctx), self.bind_expression(right_tree, ctx)
        kind = ALIASES[op_token.value]
        lt, rt = left.type, right.type

        if kind in ARITHMETIC or kind in COMPARISON:
            ok = lt in (INT, ERROR) and rt in (INT, ERROR)
            result = INT if kind in ARITHMETIC else BOOL
        else:
            ok = lt == rt and lt != VOID or ERROR in (lt, rt)
            result = BOOL
        if not ok:
            self.error(f"Operator `{op_token}` cannot be applied to operands of type `{lt}` and `{rt}`.", op_token)
        return Binary(kind, left, right, result, meta=self._meta(tree))

    def _bind_await(self, tree: lark.Tree, ctx: BindContext) -> Await:
        operand = self.bind_expression(tree.children[0], ctx)
        if not ctx.method.is_async:
            self.error("The `await` operator can only be used within an async method.", tree)
        if operand.type == ERROR:
            return Await(operand, ERROR, meta=self._meta(tree))
        if not is_awaitable(operand.type):
            self.error(f"Cannot await `{operand.type}`.", tree)
            return Await(operand, ERROR, meta=self._meta(tree))
        return Await(operand, awaited_type(operand.type), meta=self._meta(tree))

    def _bind_invocation(self, tree: lark.Tree, ctx: BindContext):
        name_tree = tree.children[0]
        parts = [t.value for t in name_tree.children]
        arg_list = tree.children[1] if len(tree.children) > 1 else None
        arguments = tuple(self.bind_expression(a, ctx) for a in (arg_list.children if arg_list is not None else []))
        arg_types = [a.type for a in arguments]
        meta = self._meta(tree)
        method_name, qualifier = parts[-1], '.'.join(parts[:-1])

        if not qualifier:
            cls = ctx.cls
        elif ctx.scope.lookup(parts[0]) is not None:
            self.error(f"Invoking `{method_name}` on instance `{parts[0]}` is not supported, only static methods.", name_tree)
            return Literal(None, ERROR, meta=meta)
        else:
            cls = self._find_class(qualifier, ctx)

        if cls is not None:
            candidates = cls.methods_named(method_name)
            if not candidates:
                self.error(f"The name `{method_name}` does not exist in type `{cls.name}`.", name_tree)
                return Literal(None, ERROR, meta=meta)
            target = _select_overload(candidates, arg_types, lambda m: [p.type for p in m.parameters])
            if target is None:
                self._report_no_overload(method_name, candidates, arg_types, lambda m: m.parameters, name_tree)
                return Literal(None, ERROR, meta=meta)
            if not target.is_static:
                self.error(f"An object reference is required for the non-static method `{method_name}`.", name_tree)
            return Invocation(target, arguments, target.return_type, meta=meta)

        return self._bind_host_invocation(qualifier, method_name, arguments, arg_types, name_tree, meta, ctx)

    def _bind_host_invocation(self, qualifier, method_name, arguments, arg_types, name_tree, meta, ctx: BindContext):
        scopes = [qualifier] + [f"{u}.{qualifier}" for u in ctx.cls.usings]
        if (scope := next((s for s in scopes if self.library.has_scope(s)), None)) is None:
            self.error(f"The name `{qualifier}` does not exist in the current context.", name_tree)
            return Literal(None, ERROR, meta=meta)

        overloads = self.library.find(scope, method_name)
        if not overloads:
            self.error(f"`{scope}` does not contain a definition for `{method_name}`.", name_tree)
            return Literal(None, ERROR, meta=meta)

        def params_of(d: HostOperation): return self.library.resolve(d).meta['parameters']
        target = _select_overload(overloads, arg_types, params_of)
        if target is None:
            self._report_no_overload(method_name, overloads, arg_types, params_of, name_tree)
            return Literal(None, ERROR, meta=meta)
        return Invocation(target, arguments, target.return_type, meta=meta)

    def _report_no_overload(self, name, candidates, arg_types, params_of, node) -> None:
        if not any(len(params_of(c)) == len(arg_types) for c in candidates):
            self.error(f"No overload for method `{name}` takes {len(arg_types)} argument(s).", node)
        else:
            shown = ', '.join(str(t) for t in arg_types)
            self.error(f"The best overload for `{name}` does not accept arguments ({shown}).", node)

    def _find_class(self, qualifier: str, ctx: BindContext) -> ClassInfo | None:
        visible = (ctx.cls.namespace,) + ctx.cls.usings
        for cls in self.classes:
            if cls.full_name == qualifier: return cls
        for cls in self.classes:
            if cls.name == qualifier and cls.namespace in visible: return cls
        return None


def _is_tree(node, data: str) -> bool:
    return isinstance(node, lark.Tree) and node.data == data

def _qualified(tree: lark.Tree) -> str:
    return '.'.join(t.value for t in tree.children)

def _select_overload(candidates, arg_types, params_of):
    """Exact parameter types first, then implicit conversions (to `object`), in declaration order."""
    same_count = [c for c in candidates if len(params_of(c)) == len(arg_types)]
    for c in same_count:
        if all(a == p or ERROR in (a, p) for a, p in zip(arg_types, params_of(c))):
            return c
    for c in same_count:
        if all(is_assignable(a, p) for a, p in zip(arg_types, params_of(c))):
            return c
    return None

def _always_returns(stmt) -> bool:
    match stmt:
        case Return():
            return True
        case Block(statements=statements):
            return any(_always_returns(s) for s in statements)
        case If(then=then, otherwise=otherwise):
            return otherwise is not None and _always_returns(then) and _always_returns(otherwise)
        case While(condition=Literal(value=True)):
            return True
    return False


def bind_program(tree: lark.Tree, library: HostLibrary, filename: str | None = None) -> tuple[tuple[MethodSymbol, ...], list[Diagnostic]]:
    return Binder(library, filename).bind(tree)


def build_snapshot(source: str, library: HostLibrary, filename: str | None = None) -> Snapshot | list[Diagnostic]:
    """Parse and bind `source`; a snapshot is only constructed when there are no diagnostics."""
    try:
        tree = parse(source, filename=filename)
    except HotParseError as exc:
        return [Diagnostic(str(exc), filename, exc.line, exc.column, phase='parse', token=exc.token)]
    methods, diagnostics = bind_program(tree, library, filename)
    if diagnostics:
        return diagnostics
    return Snapshot(methods=methods, filename=filename)
