from __future__ import annotations

from typing import Any


class _Unbound:
    """Marks a name or counter that had no value. Copies keep identity."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNBOUND"

    def __copy__(self) -> "_Unbound":
        return self

    def __deepcopy__(self, memo: Any) -> "_Unbound":
        return self

    def __reduce__(self) -> str:
        return "UNBOUND"


UNBOUND = _Unbound()
GLOBAL_SCOPE = "Global"
DEFAULT_MAX_CALL_DEPTH = 1000


class SourcePosition:
    """Where a node came from: 1-based line and column plus token length."""

    __slots__ = ("line", "column", "length", "end_line")

    def __init__(self, line: int, column: int, length: int, end_line: int | None = None):
        self.line = line
        self.column = column
        self.length = max(1, length)
        self.end_line = line if end_line is None else end_line

    @property
    def end_column(self) -> int:
        return self.column + self.length - 1

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SourcePosition):
            return NotImplemented
        return (self.line, self.column, self.length, self.end_line) == (
            other.line,
            other.column,
            other.length,
            other.end_line,
        )

    def __repr__(self) -> str:
        return f"<SourcePosition {self.line}:{self.column}+{self.length}>"


NO_POSITION = SourcePosition(0, 0, 1)


class LoopBounds:
    """One active loop: absolute jump targets plus the counter it shadows."""

    __slots__ = ("continue_target", "break_target", "variable", "shadowed")

    def __init__(self, continue_target: int, break_target: int, variable: str = "", shadowed: Any = UNBOUND):
        self.continue_target = continue_target
        self.break_target = break_target
        self.variable = variable
        self.shadowed = shadowed

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, LoopBounds):
            return NotImplemented
        return (self.continue_target, self.break_target, self.variable, self.shadowed) == (
            other.continue_target,
            other.break_target,
            other.variable,
            other.shadowed,
        )

    def __repr__(self) -> str:
        return f"<LoopBounds continue={self.continue_target} break={self.break_target} var={self.variable!r}>"


class CallFrame:
    __slots__ = ("return_pc", "function_name", "stack_depth", "loop_depth")

    def __init__(self, return_pc: int, function_name: str, stack_depth: int, loop_depth: int):
        self.return_pc = return_pc
        self.function_name = function_name
        self.stack_depth = stack_depth
        self.loop_depth = loop_depth

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, CallFrame):
            return NotImplemented
        return (self.return_pc, self.function_name, self.stack_depth, self.loop_depth) == (
            other.return_pc,
            other.function_name,
            other.stack_depth,
            other.loop_depth,
        )

    def __repr__(self) -> str:
        return f"<CallFrame {self.function_name} return_pc={self.return_pc}>"
