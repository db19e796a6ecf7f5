## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import lark


class HotError(Exception):
    def __init__(self, message: str = "", *, hot_node=None, hot_token=None, hot_meta=None):
        """Base class for all errors raised by the interpreter and its front end."""
        super().__init__(message)
        self.hot_node: object = hot_node
        self.hot_token: str = hot_token
        self.hot_meta: dict = hot_meta

class HotParseError(HotError):
    def __init__(self, message, *, filename=None, line=None, column=None, token=None):
        super().__init__(message)
        self.filename = filename
        self.line = line
        self.column = column
        self.token = token

class HotIncompleteParse(HotParseError, lark.exceptions.ParseError):
    def __init__(self, message, *, filename=None, line=None, column=None, token=None):
        super().__init__(message, filename=filename, line=line, column=column, token=token)

class HotRuntimeError(HotError, RuntimeError):
    pass


class HotStackUnderflow(HotError, IndexError):
    """Popping an empty operand stack, always an engine defect."""
    pass

class HotStackError(HotError, TypeError):
    """Runtime type exceptions found by checking the operand stack and its content."""
    def __init__(self, message: str = "", *, hot_node=None, hot_token=None, hot_meta=None, hot_stack=None):
        super().__init__(message, hot_node=hot_node, hot_token=hot_token, hot_meta=hot_meta)
        self.hot_stack = hot_stack

class HotUnboundName(HotError, NameError):
    pass


class HotUnresolvedMethod(HotError, LookupError):
    """The current snapshot has no structural match, usually a target removed or renamed."""
    def __init__(self, message: str = "", *, method_ref=None, hot_node=None, hot_meta=None):
        super().__init__(message, hot_node=hot_node, hot_token=getattr(method_ref, 'name', None), hot_meta=hot_meta)
        self.method_ref = method_ref

class HotHostOperationNotFound(HotError, LookupError):
    def __init__(self, message: str = "", *, descriptor=None, hot_node=None, hot_meta=None):
        super().__init__(message, hot_node=hot_node, hot_token=getattr(descriptor, 'name', None), hot_meta=hot_meta)
        self.descriptor = descriptor


class HotUnsupportedConstruct(HotError, NotImplementedError):
    """Construct outside the supported subset; a feature gap, not a user error."""
    pass

class HotUnsupportedOperator(HotUnsupportedConstruct):
    pass


class HotInvalidSnapshot(HotError, ValueError):
    def __init__(self, message: str = "", *, diagnostics=(), hot_meta=None):
        super().__init__(message, hot_meta=hot_meta)
        self.diagnostics = tuple(diagnostics)

class HotEntryPointError(HotError, RuntimeError):
    pass

class HotCancelled(HotError, RuntimeError):
    pass


class HotTypeMissing(HotError, TypeError):
    pass

class HotTypeError(HotError, TypeError):
    """Loading-time problems from the type system, usually from Python-side."""
    pass
