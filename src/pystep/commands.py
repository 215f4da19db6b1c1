from __future__ import annotations

from typing import TYPE_CHECKING, Any, List

from .common import UNBOUND, CallFrame
from .errors import (
    ScriptRuntimeError,
    ScriptTypeError,
    ScriptValueError,
    name_not_defined,
)
from .functions import UserFunction
from .helpers import (
    apply_binop,
    apply_compare,
    apply_unary,
    is_integer,
    normalize_index,
    type_name,
)
from .undo import UndoRecord, apply_undo

if TYPE_CHECKING:
    from .expressions import ExpressionNode
    from .state import ExecutionState
    from .statements import StatementNode

AssignOperator = str  # "=", "+=", "-="
_COMPOUND = {"+=": "+", "-=": "-"}


def jump_target(pc: int, offset: int) -> int:
    """Forward offsets count the jump itself; backward offsets land exactly."""
    return pc + offset - 1 if offset > 0 else pc + offset


def _jump(state: "ExecutionState", offset: int) -> None:
    target = jump_target(state.program_counter, offset)
    # a one-step forward jump lands on the next command through the normal advance
    if target != state.program_counter:
        state.jump_to(target)


class Command:
    """
    One reversible instruction of the flat program.

    `do` mutates the state and returns the UndoRecord that reverses it; the
    latest record is also kept on the command so `undo` can replay it.
    Commands must raise before mutating anything, so a failed `do` leaves
    the state untouched.
    """

    visible = True

    def __init__(self) -> None:
        self.undo_record: UndoRecord | None = None

    def is_visible(self) -> bool:
        return self.visible

    def do(self, state: "ExecutionState") -> UndoRecord:
        state.jumped = False
        record = self.apply(state)
        self.undo_record = record
        return record

    def undo(self, state: "ExecutionState") -> None:
        apply_undo(state, self.undo_record)

    def apply(self, state: "ExecutionState") -> UndoRecord:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class StackCommand(Command):
    """Pops `arity` operands, pushes one result. `mutates` snapshots a list receiver first."""

    arity = 1
    mutates = False

    def apply(self, state: "ExecutionState") -> UndoRecord:
        operands = state.peek(self.arity)
        journal: List[UndoRecord] = []
        if self.mutates and operands and isinstance(operands[0], list):
            journal.append(UndoRecord.list_contents(operands[0]))
        result = self.evaluate(state, journal, *operands)
        state.pop_many(self.arity)
        state.push(result)
        journal.append(UndoRecord.stack(drop=1, restore=operands))
        return UndoRecord.sequence(journal)

    def evaluate(self, state: "ExecutionState", journal: List[UndoRecord], *operands: Any) -> Any:
        raise NotImplementedError


# ----- stack bookkeeping -----


class PushValueCommand(Command):
    visible = False

    def __init__(self, value: Any):
        super().__init__()
        self.value = value

    def apply(self, state: "ExecutionState") -> UndoRecord:
        state.push(self.value)
        return UndoRecord.stack(drop=1)

    def __repr__(self) -> str:
        return f"<PushValueCommand {self.value!r}>"


class PopValueCommand(Command):
    visible = False

    def apply(self, state: "ExecutionState") -> UndoRecord:
        value = state.pop()
        return UndoRecord.stack(restore=[value])


class RetrieveValueCommand(Command):
    visible = False

    def __init__(self, name: str):
        super().__init__()
        self.name = name

    def apply(self, state: "ExecutionState") -> UndoRecord:
        state.push(state.lookup(self.name))
        return UndoRecord.stack(drop=1)

    def __repr__(self) -> str:
        return f"<RetrieveValueCommand {self.name}>"


# ----- source mapping -----


class HighlightStatementCommand(Command):
    visible = False

    def __init__(self, statement: "StatementNode"):
        super().__init__()
        self.statement = statement

    def apply(self, state: "ExecutionState") -> UndoRecord:
        record = UndoRecord.field("current_statement", state.current_statement)
        state.current_statement = self.statement
        return record


class HighlightExpressionCommand(Command):
    visible = False

    def __init__(self, expression: "ExpressionNode"):
        super().__init__()
        self.expression = expression

    def apply(self, state: "ExecutionState") -> UndoRecord:
        record = UndoRecord.field("current_expression", state.current_expression)
        state.current_expression = self.expression
        return record


# ----- variable mutation -----


class AssignVariableCommand(Command):
    def __init__(self, name: str, operator: AssignOperator = "="):
        super().__init__()
        self.name = name
        self.operator = operator

    def apply(self, state: "ExecutionState") -> UndoRecord:
        (value,) = state.peek(1)
        final = value
        if self.operator in _COMPOUND:
            if not state.has_variable(self.name):
                raise name_not_defined(self.name)
            final = apply_binop(_COMPOUND[self.operator], state.lookup(self.name), value)
        state.pop()
        binding = state.bind(self.name, final)
        state.request_prediction(self.name, final)
        return UndoRecord.sequence([UndoRecord.stack(restore=[value]), binding])

    def __repr__(self) -> str:
        return f"<AssignVariableCommand {self.name} {self.operator}>"


class AssignIndexCommand(Command):
    """`target[index] op value` with target, index and value on the stack."""

    def __init__(self, operator: AssignOperator = "=", display_name: str = "list"):
        super().__init__()
        self.operator = operator
        self.display_name = display_name

    def apply(self, state: "ExecutionState") -> UndoRecord:
        target, index, value = state.peek(3)
        if not isinstance(target, list):
            raise ScriptTypeError(f"'{type_name(target)}' object does not support item assignment")
        if not is_integer(index):
            raise ScriptTypeError(f"list indices must be integers, not {type_name(index)}")
        actual = normalize_index(target, index, what="list assignment")
        final = value
        if self.operator in _COMPOUND:
            final = apply_binop(_COMPOUND[self.operator], target[actual], value)
        snapshot = UndoRecord.list_contents(target)
        target[actual] = final
        state.pop_many(3)
        state.request_prediction(f"{self.display_name}[{actual}]", final)
        return UndoRecord.sequence([snapshot, UndoRecord.stack(restore=[target, index, value])])


class ForBindCommand(Command):
    """
    Advance a for-loop: bind the next element and push True, or push False
    once the iterable under it is exhausted. The iterable stays on the stack.
    """

    def __init__(self, name: str):
        super().__init__()
        self.name = name

    def apply(self, state: "ExecutionState") -> UndoRecord:
        (iterable,) = state.peek(1)
        if not isinstance(iterable, (list, str)):
            raise ScriptTypeError(f"'{type_name(iterable)}' object is not iterable")
        previous = state.loop_iteration_state.get(self.name, UNBOUND)
        index = 0 if previous is UNBOUND else previous
        counter = UndoRecord.counter(self.name, previous)
        if index < len(iterable):
            item = iterable[index]
            binding = state.bind(self.name, item)
            state.loop_iteration_state[self.name] = index + 1
            state.push(True)
            state.request_prediction(self.name, item)
            return UndoRecord.sequence([binding, counter, UndoRecord.stack(drop=1)])
        state.loop_iteration_state.pop(self.name, None)
        state.push(False)
        return UndoRecord.sequence([counter, UndoRecord.stack(drop=1)])

    def __repr__(self) -> str:
        return f"<ForBindCommand {self.name}>"


# ----- control flow -----


class ConditionalJumpCommand(Command):
    """Pops a condition and jumps only when it is falsy."""

    visible = False

    def __init__(self, offset: int):
        super().__init__()
        self.offset = offset

    def apply(self, state: "ExecutionState") -> UndoRecord:
        condition = state.pop()
        record = UndoRecord.sequence(
            [
                UndoRecord.stack(restore=[condition]),
                UndoRecord.field("program_counter", state.program_counter),
            ]
        )
        if not condition:
            _jump(state, self.offset)
        return record

    def __repr__(self) -> str:
        return f"<ConditionalJumpCommand {self.offset:+d}>"


class JumpCommand(Command):
    visible = False

    def __init__(self, offset: int):
        super().__init__()
        self.offset = offset

    def apply(self, state: "ExecutionState") -> UndoRecord:
        record = UndoRecord.field("program_counter", state.program_counter)
        _jump(state, self.offset)
        return record

    def __repr__(self) -> str:
        return f"<JumpCommand {self.offset:+d}>"


class PushLoopBoundsCommand(Command):
    """Offsets are relative to this command; `variable` names the for-loop counter it owns."""

    visible = False

    def __init__(self, continue_offset: int, break_offset: int, variable: str = ""):
        super().__init__()
        self.continue_offset = continue_offset
        self.break_offset = break_offset
        self.variable = variable

    def apply(self, state: "ExecutionState") -> UndoRecord:
        pc = state.program_counter
        return state.push_loop_bounds(pc + self.continue_offset, pc + self.break_offset, self.variable)

    def __repr__(self) -> str:
        return f"<PushLoopBoundsCommand {self.continue_offset:+d} {self.break_offset:+d} {self.variable!r}>"


class PopLoopBoundsCommand(Command):
    visible = False

    def apply(self, state: "ExecutionState") -> UndoRecord:
        return state.pop_loop_bounds()


class BreakCommand(Command):
    def apply(self, state: "ExecutionState") -> UndoRecord:
        bounds = state.innermost_loop("break")
        record = UndoRecord.field("program_counter", state.program_counter)
        state.jump_to(bounds.break_target)
        return record


class ContinueCommand(Command):
    def apply(self, state: "ExecutionState") -> UndoRecord:
        bounds = state.innermost_loop("continue")
        record = UndoRecord.field("program_counter", state.program_counter)
        state.jump_to(bounds.continue_target)
        return record


# ----- operators -----


class BinaryOpCommand(StackCommand):
    arity = 2

    def __init__(self, op: str):
        super().__init__()
        self.op = op

    def evaluate(self, state, journal, left, right):
        return apply_binop(self.op, left, right)

    def __repr__(self) -> str:
        return f"<BinaryOpCommand {self.op}>"


class ShortCircuitCommand(Command):
    """
    `and`/`or` with the left operand on the stack. When it decides the result
    it stays as the result and the right operand is skipped; otherwise it is
    popped and the right operand's value becomes the result.
    """

    def __init__(self, op: str, offset: int):
        super().__init__()
        self.op = op
        self.offset = offset

    def apply(self, state: "ExecutionState") -> UndoRecord:
        (left,) = state.peek(1)
        record = UndoRecord.field("program_counter", state.program_counter)
        decided = not left if self.op == "and" else bool(left)
        if decided:
            _jump(state, self.offset)
            return record
        state.pop()
        return UndoRecord.sequence([UndoRecord.stack(restore=[left]), record])

    def __repr__(self) -> str:
        return f"<ShortCircuitCommand {self.op} {self.offset:+d}>"


class ComparisonOpCommand(StackCommand):
    arity = 2

    def __init__(self, op: str):
        super().__init__()
        self.op = op

    def evaluate(self, state, journal, left, right):
        return apply_compare(self.op, left, right)

    def __repr__(self) -> str:
        return f"<ComparisonOpCommand {self.op}>"


class UnaryOpCommand(StackCommand):
    def __init__(self, op: str):
        super().__init__()
        self.op = op

    def evaluate(self, state, journal, operand):
        return apply_unary(self.op, operand)

    def __repr__(self) -> str:
        return f"<UnaryOpCommand {self.op}>"


# ----- lists and subscripts -----


class CreateListCommand(Command):
    def __init__(self, count: int):
        super().__init__()
        self.count = count

    def apply(self, state: "ExecutionState") -> UndoRecord:
        items = state.pop_many(self.count)
        state.push(list(items))
        return UndoRecord.stack(drop=1, restore=items)


class IndexAccessCommand(StackCommand):
    arity = 2

    def evaluate(self, state, journal, target, index):
        if isinstance(target, list):
            return target[normalize_index(target, index, what="list")]
        if isinstance(target, str):
            return target[normalize_index(target, index, what="string")]
        raise ScriptTypeError(f"'{type_name(target)}' object is not subscriptable")


class SliceCommand(StackCommand):
    """target[start:stop:step]; missing bounds arrive as None."""

    arity = 4

    def evaluate(self, state, journal, target, start, stop, step):
        if not isinstance(target, (list, str)):
            raise ScriptTypeError(f"'{type_name(target)}' object is not subscriptable")
        for bound in (start, stop, step):
            if bound is not None and not is_integer(bound):
                raise ScriptTypeError(
                    "slice indices must be integers or None, not " + type_name(bound)
                )
        if step == 0:
            raise ScriptValueError("slice step cannot be zero")
        return target[start:stop:step]


# ----- functions -----


class DefineFunctionCommand(Command):
    def __init__(self, function: UserFunction):
        super().__init__()
        self.function = function

    def apply(self, state: "ExecutionState") -> UndoRecord:
        # body starts after this command and the skip jump
        self.function.start_index = state.program_counter + 2
        name = self.function.name
        record = UndoRecord.function(name, state.function_definitions.get(name, UNBOUND))
        state.function_definitions[name] = self.function
        return record

    def __repr__(self) -> str:
        return f"<DefineFunctionCommand {self.function.name}>"


class CallUserFunctionCommand(Command):
    def __init__(self, name: str, arg_count: int):
        super().__init__()
        self.name = name
        self.arg_count = arg_count

    def apply(self, state: "ExecutionState") -> UndoRecord:
        if not state.allow_calls:
            raise ScriptRuntimeError("calling user functions inside an f-string is not supported")
        function = state.function_definitions.get(self.name)
        if function is None:
            raise name_not_defined(self.name)
        if self.arg_count != function.arity:
            raise ScriptTypeError(function.describe_arity_mismatch(self.arg_count))
        if len(state.call_stack) >= state.max_call_depth:
            raise ScriptRuntimeError("maximum recursion depth exceeded")

        args = state.pop_many(self.arg_count)
        return_pc = state.program_counter
        state.push_scope(self.name, dict(zip(function.params, args)))
        state.call_stack.append(
            CallFrame(return_pc, self.name, len(state.evaluation_stack), len(state.loop_stack))
        )
        state.jump_to(function.start_index)
        return UndoRecord.sequence(
            [
                UndoRecord.stack(restore=args),
                UndoRecord("frame_pushed", function_name=self.name),
                UndoRecord.field("program_counter", return_pc),
            ]
        )

    def __repr__(self) -> str:
        return f"<CallUserFunctionCommand {self.name}/{self.arg_count}>"


class ReturnCommand(Command):
    """
    Leave the innermost call: drop what the frame left on the stack, unwind
    its loops, pop its scope and push the return value for the caller.
    """

    def apply(self, state: "ExecutionState") -> UndoRecord:
        if not state.call_stack:
            raise ScriptRuntimeError("'return' outside function")
        (value,) = state.peek(1)
        frame = state.call_stack[-1]

        journal: List[UndoRecord] = []
        state.pop()
        journal.append(UndoRecord.stack(restore=[value]))
        while len(state.loop_stack) > frame.loop_depth:
            journal.append(state.pop_loop_bounds())
        leftovers = state.evaluation_stack[frame.stack_depth :]
        if leftovers:
            del state.evaluation_stack[frame.stack_depth :]
            journal.append(UndoRecord.stack(restore=leftovers))

        state.call_stack.pop()
        scope = state.pop_scope()
        journal.append(
            UndoRecord(
                "frame_popped",
                scope_name=scope.name,
                variables=dict(scope.variables),
                call_frame=frame,
            )
        )
        journal.append(UndoRecord.field("program_counter", state.program_counter))
        state.jump_to(frame.return_pc + 1)
        state.push(value)
        journal.append(UndoRecord.stack(drop=1))
        return UndoRecord.sequence(journal)


CommandList = List[Command]
