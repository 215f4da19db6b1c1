from __future__ import annotations

from typing import Any, List, Optional, Sequence

from .commands import (
    BinaryOpCommand,
    CallUserFunctionCommand,
    Command,
    ComparisonOpCommand,
    ConditionalJumpCommand,
    CreateListCommand,
    HighlightExpressionCommand,
    IndexAccessCommand,
    JumpCommand,
    PushValueCommand,
    RetrieveValueCommand,
    ShortCircuitCommand,
    SliceCommand,
    UnaryOpCommand,
)
from .common import NO_POSITION, SourcePosition
from .lib.builtins import is_builtin, make_builtin_command
from .lib.fstrings import InterpolateFStringCommand, Part, split_template
from .lib.methods import make_method_command


class ExpressionNode:
    """Base for everything that leaves exactly one value on the stack."""

    def __init__(self, position: SourcePosition = NO_POSITION):
        self.position = position

    @property
    def line(self) -> int:
        return self.position.line

    @property
    def start_col(self) -> int:
        return self.position.column

    @property
    def end_col(self) -> int:
        return self.position.end_column

    def compile(self) -> List[Command]:
        return [HighlightExpressionCommand(self)] + self.compile_body()

    def compile_body(self) -> List[Command]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} at {self.line}:{self.start_col}>"


# ----- literals -----


class Literal(ExpressionNode):
    def __init__(self, value: Any, position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.value = value

    def compile_body(self) -> List[Command]:
        return [PushValueCommand(self.value)]


class NumberLiteral(Literal):
    pass


class StringLiteral(Literal):
    pass


class BooleanLiteral(Literal):
    pass


class NoneLiteral(Literal):
    def __init__(self, position: SourcePosition = NO_POSITION):
        super().__init__(None, position)


class FStringLiteral(ExpressionNode):
    def __init__(self, parts: Sequence[Part], position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.parts = list(parts)

    @classmethod
    def from_template(cls, template: str, position: SourcePosition = NO_POSITION) -> "FStringLiteral":
        return cls(split_template(template), position)

    def compile_body(self) -> List[Command]:
        return [InterpolateFStringCommand(self.parts)]


class ListLiteral(ExpressionNode):
    def __init__(self, items: Sequence[ExpressionNode], position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.items = list(items)

    def compile_body(self) -> List[Command]:
        commands: List[Command] = []
        for item in self.items:
            commands.extend(item.compile())
        commands.append(CreateListCommand(len(self.items)))
        return commands


# ----- names and operators -----


class Identifier(ExpressionNode):
    def __init__(self, name: str, position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.name = name

    def compile_body(self) -> List[Command]:
        return [RetrieveValueCommand(self.name)]


class BinaryExpression(ExpressionNode):
    """Arithmetic operators plus `and`/`or`, which skip the right operand once decided."""

    def __init__(self, op: str, left: ExpressionNode, right: ExpressionNode, position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.op = op
        self.left = left
        self.right = right

    def compile_body(self) -> List[Command]:
        left = self.left.compile()
        right = self.right.compile()
        if self.op in ("and", "or"):
            return left + [ShortCircuitCommand(self.op, len(right) + 2)] + right
        return left + right + [BinaryOpCommand(self.op)]


class Comparison(ExpressionNode):
    def __init__(self, op: str, left: ExpressionNode, right: ExpressionNode, position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.op = op
        self.left = left
        self.right = right

    def compile_body(self) -> List[Command]:
        return self.left.compile() + self.right.compile() + [ComparisonOpCommand(self.op)]


class UnaryExpression(ExpressionNode):
    def __init__(self, op: str, operand: ExpressionNode, position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.op = op
        self.operand = operand

    def compile_body(self) -> List[Command]:
        return self.operand.compile() + [UnaryOpCommand(self.op)]


class Conditional(ExpressionNode):
    """`body if test else orelse`; only the chosen branch runs."""

    def __init__(
        self,
        test: ExpressionNode,
        body: ExpressionNode,
        orelse: ExpressionNode,
        position: SourcePosition = NO_POSITION,
    ):
        super().__init__(position)
        self.test = test
        self.body = body
        self.orelse = orelse

    def compile_body(self) -> List[Command]:
        body = self.body.compile()
        orelse = self.orelse.compile()
        return (
            self.test.compile()
            + [ConditionalJumpCommand(len(body) + 3)]
            + body
            + [JumpCommand(len(orelse) + 2)]
            + orelse
        )


# ----- calls -----


class ArgList:
    """Call arguments; compiles to each argument in order, with no highlight of its own."""

    def __init__(self, args: Sequence[ExpressionNode] = ()):
        self.args = list(args)

    def __len__(self) -> int:
        return len(self.args)

    def __iter__(self):
        return iter(self.args)

    def compile(self) -> List[Command]:
        commands: List[Command] = []
        for arg in self.args:
            commands.extend(arg.compile())
        return commands


class FormalParams:
    def __init__(self, names: Sequence[str] = ()):
        self.names = list(names)

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self):
        return iter(self.names)

    def compile(self) -> List[Command]:
        return []


class FunctionCall(ExpressionNode):
    """Built-in names win over user functions of the same name."""

    def __init__(self, name: str, args: ArgList, position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.name = name
        self.args = args

    def compile_body(self) -> List[Command]:
        commands = self.args.compile()
        if is_builtin(self.name):
            commands.append(make_builtin_command(self.name, len(self.args)))
        else:
            commands.append(CallUserFunctionCommand(self.name, len(self.args)))
        return commands


class MethodCall(ExpressionNode):
    def __init__(self, receiver: ExpressionNode, name: str, args: ArgList, position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.receiver = receiver
        self.name = name
        self.args = args

    def compile_body(self) -> List[Command]:
        return self.receiver.compile() + self.args.compile() + [make_method_command(self.name, len(self.args))]


# ----- subscripts -----


class ListAccess(ExpressionNode):
    def __init__(self, target: ExpressionNode, index: ExpressionNode, position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.target = target
        self.index = index

    def compile_body(self) -> List[Command]:
        return self.target.compile() + self.index.compile() + [IndexAccessCommand()]


class Slice(ExpressionNode):
    def __init__(
        self,
        target: ExpressionNode,
        start: Optional[ExpressionNode] = None,
        stop: Optional[ExpressionNode] = None,
        step: Optional[ExpressionNode] = None,
        position: SourcePosition = NO_POSITION,
    ):
        super().__init__(position)
        self.target = target
        self.start = start
        self.stop = stop
        self.step = step

    def compile_body(self) -> List[Command]:
        commands = self.target.compile()
        for bound in (self.start, self.stop, self.step):
            if bound is None:
                commands.append(PushValueCommand(None))
            else:
                commands.extend(bound.compile())
        commands.append(SliceCommand())
        return commands
