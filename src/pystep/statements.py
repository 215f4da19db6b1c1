from __future__ import annotations

from typing import List, Optional, Sequence

from .commands import (
    AssignIndexCommand,
    AssignVariableCommand,
    BreakCommand,
    Command,
    ConditionalJumpCommand,
    ContinueCommand,
    DefineFunctionCommand,
    ForBindCommand,
    HighlightStatementCommand,
    JumpCommand,
    PopLoopBoundsCommand,
    PopValueCommand,
    PushLoopBoundsCommand,
    PushValueCommand,
    ReturnCommand,
)
from .common import NO_POSITION, SourcePosition
from .errors import ParseFailure
from .expressions import ExpressionNode, FormalParams, ListAccess
from .functions import UserFunction


class StatementNode:
    """Base for statements; `compile` always opens with a statement highlight."""

    def __init__(self, position: SourcePosition = NO_POSITION):
        self.position = position

    @property
    def start_line(self) -> int:
        return self.position.line

    @property
    def end_line(self) -> int:
        return self.position.end_line

    def compile(self) -> List[Command]:
        return [HighlightStatementCommand(self)] + self.compile_body()

    def compile_body(self) -> List[Command]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} lines {self.start_line}-{self.end_line}>"


class Block:
    def __init__(self, statements: Sequence[StatementNode] = ()):
        self.statements = list(statements)

    def __len__(self) -> int:
        return len(self.statements)

    def compile(self) -> List[Command]:
        commands: List[Command] = []
        for statement in self.statements:
            commands.extend(statement.compile())
        return commands


class ProgramNode(Block):
    """Root of a parsed program."""


# ----- assignment -----


class Assignment(StatementNode):
    """
    `name op value` or `target[index] op value` with op in `=`, `+=`, `-=`.
    `display_name` labels an indexed target in prediction prompts.
    """

    def __init__(
        self,
        target,
        value: ExpressionNode,
        operator: str = "=",
        position: SourcePosition = NO_POSITION,
        display_name: Optional[str] = None,
    ):
        super().__init__(position)
        self.target = target
        self.value = value
        self.operator = operator
        self.display_name = display_name

    def compile_body(self) -> List[Command]:
        if isinstance(self.target, str):
            return self.value.compile() + [AssignVariableCommand(self.target, self.operator)]
        if isinstance(self.target, ListAccess):
            label = self.display_name or getattr(self.target.target, "name", "list")
            return (
                self.target.target.compile()
                + self.target.index.compile()
                + self.value.compile()
                + [AssignIndexCommand(self.operator, label)]
            )
        raise ParseFailure("cannot assign to expression", self.start_line)


class MultiAssignment(StatementNode):
    """`a, b = x, y`: every value is evaluated before any name is bound."""

    def __init__(
        self,
        names: Sequence[str],
        values: Sequence[ExpressionNode],
        position: SourcePosition = NO_POSITION,
    ):
        super().__init__(position)
        self.names = list(names)
        self.values = list(values)

    def compile_body(self) -> List[Command]:
        if len(self.names) < len(self.values):
            raise ParseFailure(
                f"too many values to unpack (expected {len(self.names)})", self.start_line
            )
        if len(self.names) > len(self.values):
            raise ParseFailure(
                f"not enough values to unpack (expected {len(self.names)}, got {len(self.values)})",
                self.start_line,
            )
        commands: List[Command] = []
        for value in reversed(self.values):
            commands.extend(value.compile())
        commands.extend(AssignVariableCommand(name) for name in self.names)
        return commands


# ----- simple statements -----


class ExpressionStatement(StatementNode):
    def __init__(self, expression: ExpressionNode, position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.expression = expression

    def compile_body(self) -> List[Command]:
        return self.expression.compile() + [PopValueCommand()]


class Return(StatementNode):
    def __init__(self, value: Optional[ExpressionNode] = None, position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.value = value

    def compile_body(self) -> List[Command]:
        value = [PushValueCommand(None)] if self.value is None else self.value.compile()
        return value + [ReturnCommand()]


class Break(StatementNode):
    def compile_body(self) -> List[Command]:
        return [BreakCommand()]


class Continue(StatementNode):
    def compile_body(self) -> List[Command]:
        return [ContinueCommand()]


class Pass(StatementNode):
    def compile_body(self) -> List[Command]:
        return []


# ----- control flow -----


class If(StatementNode):
    def __init__(
        self,
        condition: ExpressionNode,
        then: Block,
        orelse: Optional[Block] = None,
        position: SourcePosition = NO_POSITION,
    ):
        super().__init__(position)
        self.condition = condition
        self.then = then
        self.orelse = orelse

    def compile_body(self) -> List[Command]:
        then = self.then.compile()
        if self.orelse is None:
            return self.condition.compile() + [ConditionalJumpCommand(len(then) + 2)] + then
        orelse = self.orelse.compile()
        return (
            self.condition.compile()
            + [ConditionalJumpCommand(len(then) + 3)]
            + then
            + [JumpCommand(len(orelse) + 2)]
            + orelse
        )


class Elif(If):
    """An `elif` link; it is the else branch of the link before it."""


class For(StatementNode):
    def __init__(
        self,
        variable: str,
        iterable: ExpressionNode,
        body: Block,
        position: SourcePosition = NO_POSITION,
    ):
        super().__init__(position)
        self.variable = variable
        self.iterable = iterable
        self.body = body

    def compile_body(self) -> List[Command]:
        block = self.body.compile()
        size = len(block)
        return (
            self.iterable.compile()
            + [
                PushLoopBoundsCommand(1, size + 4, self.variable),
                ForBindCommand(self.variable),
                ConditionalJumpCommand(size + 3),
            ]
            + block
            + [JumpCommand(-(size + 2)), PopValueCommand(), PopLoopBoundsCommand()]
        )


class While(StatementNode):
    def __init__(self, condition: ExpressionNode, body: Block, position: SourcePosition = NO_POSITION):
        super().__init__(position)
        self.condition = condition
        self.body = body

    def compile_body(self) -> List[Command]:
        condition = self.condition.compile()
        block = self.body.compile()
        size = len(block) + len(condition)
        return (
            [PushLoopBoundsCommand(1, size + 3)]
            + condition
            + [ConditionalJumpCommand(len(block) + 3)]
            + block
            + [JumpCommand(-(size + 1)), PopLoopBoundsCommand()]
        )


class FunctionDefinition(StatementNode):
    """The body is inlined after a jump that skips it; calls enter it directly."""

    def __init__(
        self,
        name: str,
        params: FormalParams,
        body: Block,
        position: SourcePosition = NO_POSITION,
    ):
        super().__init__(position)
        self.name = name
        self.params = params
        self.body = body

    def compile_body(self) -> List[Command]:
        body = self.body.compile()
        function = UserFunction(self.name, list(self.params), body)
        return (
            [DefineFunctionCommand(function), JumpCommand(len(body) + 4)]
            + body
            + [PushValueCommand(None), ReturnCommand()]
        )
