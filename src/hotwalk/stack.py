## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from typing import Any

from .types import Stack, nil
from .errors import HotStackUnderflow


class OperandStack:
    """Growable LIFO of boxed values shared by all frames of one session."""

    def __init__(self):
        self.top: Stack = nil
        self.depth = 0

    def push(self, value: Any) -> None:
        self.top = Stack(self.top, value)
        self.depth += 1

    def pop(self) -> Any:
        if self.top is nil:
            raise HotStackUnderflow("Cannot pop from an empty operand stack.", hot_token="pop")
        self.top, value = self.top
        self.depth -= 1
        return value

    def peek(self) -> Any:
        if self.top is nil:
            raise HotStackUnderflow("Cannot peek into an empty operand stack.", hot_token="peek")
        return self.top.head

    def truncate(self, depth: int) -> None:
        while self.depth > depth:
            self.pop()

    def to_list(self) -> list:
        """Values from top to bottom, for display and tests."""
        result, current = [], self.top
        while current is not nil:
            current, head = current
            result.append(head)
        return result

    def __len__(self):
        return self.depth

    def __repr__(self):
        return repr(self.top)
