from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from .common import DEFAULT_MAX_CALL_DEPTH, GLOBAL_SCOPE, UNBOUND, CallFrame, LoopBounds
from .errors import ScriptError, ScriptRuntimeError, name_not_defined
from .scopes import ScopeFrame
from .undo import UndoRecord

if TYPE_CHECKING:
    from .expressions import ExpressionNode
    from .functions import UserFunction
    from .statements import StatementNode

InputProvider = Callable[[str], str]


class ExecutionState:
    """
    The whole mutable runtime context of one compiled program.

    Only the stepper (or a command it runs) mutates it, and every mutation a
    command makes is described by the UndoRecord that command returns.
    """

    def __init__(
        self,
        *,
        prediction_mode: bool = False,
        input_provider: Optional[InputProvider] = None,
        allow_calls: bool = True,
        max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
    ):
        self.program_counter = 0
        # set by jump_to during the current command; the stepper advances otherwise
        self.jumped = False
        self.current_statement: Optional["StatementNode"] = None
        self.current_expression: Optional["ExpressionNode"] = None
        self.evaluation_stack: List[Any] = []
        self.scope_stack: List[ScopeFrame] = [ScopeFrame(GLOBAL_SCOPE)]
        self.loop_stack: List[LoopBounds] = []
        self.call_stack: List[CallFrame] = []
        self.function_definitions: Dict[str, "UserFunction"] = {}
        self.loop_iteration_state: Dict[str, int] = {}
        self.outputs: List[str] = []
        self.error: Optional[ScriptError] = None

        self.prediction_mode = prediction_mode
        self.waiting_for_prediction = False
        self.prediction_variable: Optional[str] = None
        self.prediction_correct_value: Any = None

        self.input_provider = input_provider
        # lines read so far; a replay after step_back reuses them instead of asking again
        self.input_log: List[str] = []
        self.input_cursor = 0
        self.allow_calls = allow_calls
        self.max_call_depth = max_call_depth

    def jump_to(self, target: int) -> None:
        self.program_counter = target
        self.jumped = True

    # ----- evaluation stack -----

    def push(self, value: Any) -> None:
        self.evaluation_stack.append(value)

    def peek(self, count: int = 1) -> List[Any]:
        """Top `count` values, bottom-most first, without removing them."""
        if count == 0:
            return []
        if len(self.evaluation_stack) < count:
            raise ScriptRuntimeError("stack underflow")
        return self.evaluation_stack[-count:]

    def pop(self) -> Any:
        if not self.evaluation_stack:
            raise ScriptRuntimeError("stack underflow")
        return self.evaluation_stack.pop()

    def pop_many(self, count: int) -> List[Any]:
        values = self.peek(count)
        if count:
            del self.evaluation_stack[-count:]
        return values

    # ----- scopes -----

    @property
    def scope_names(self) -> List[str]:
        return [frame.name for frame in self.scope_stack]

    @property
    def current_scope(self) -> ScopeFrame:
        return self.scope_stack[-1]

    @property
    def variables(self) -> Dict[str, Any]:
        return self.current_scope.variables

    def push_scope(self, name: str, variables: Dict[str, Any] | None = None) -> ScopeFrame:
        frame = ScopeFrame(name, variables)
        self.scope_stack.append(frame)
        return frame

    def pop_scope(self) -> ScopeFrame:
        if len(self.scope_stack) == 1:
            raise ScriptRuntimeError("cannot leave the global scope")
        return self.scope_stack.pop()

    def has_variable(self, name: str) -> bool:
        return any(name in frame for frame in self.scope_stack)

    def lookup(self, name: str) -> Any:
        for frame in reversed(self.scope_stack):
            if name in frame:
                return frame.variables[name]
        raise name_not_defined(name)

    def bind(self, name: str, value: Any) -> UndoRecord:
        """Bind in the innermost frame and describe how to take it back."""
        index = len(self.scope_stack) - 1
        frame = self.scope_stack[index]
        record = UndoRecord.binding(index, name, frame.get(name))
        frame.store(name, value)
        return record

    # ----- loops -----

    def set_counter(self, name: str, value: Any) -> None:
        if value is UNBOUND:
            self.loop_iteration_state.pop(name, None)
        else:
            self.loop_iteration_state[name] = value

    def push_loop_bounds(self, continue_target: int, break_target: int, variable: str = "") -> UndoRecord:
        shadowed = UNBOUND
        if variable:
            shadowed = self.loop_iteration_state.pop(variable, UNBOUND)
        self.loop_stack.append(LoopBounds(continue_target, break_target, variable, shadowed))
        return UndoRecord("loop_pushed", variable=variable)

    def pop_loop_bounds(self) -> UndoRecord:
        if not self.loop_stack:
            raise ScriptRuntimeError("loop bounds underflow")
        entry = self.loop_stack.pop()
        counter = UNBOUND
        if entry.variable:
            counter = self.loop_iteration_state.pop(entry.variable, UNBOUND)
            self.set_counter(entry.variable, entry.shadowed)
        return UndoRecord("loop_popped", entry=entry, saved_counter=counter)

    @property
    def frame_loop_depth(self) -> int:
        """Loops opened by the caller are not visible to break/continue."""
        return self.call_stack[-1].loop_depth if self.call_stack else 0

    def innermost_loop(self, statement: str) -> LoopBounds:
        if len(self.loop_stack) <= self.frame_loop_depth:
            if statement == "break":
                raise ScriptRuntimeError("'break' outside loop")
            raise ScriptRuntimeError("'continue' not properly in loop")
        return self.loop_stack[-1]

    # ----- outputs -----

    def add_output(self, text: str) -> UndoRecord:
        self.outputs.append(text)
        return UndoRecord.output(1)

    # ----- highlights -----

    @property
    def current_line(self) -> int | None:
        if self.current_statement is None:
            return None
        return self.current_statement.start_line

    def statement_highlight(self) -> Optional[Dict[str, int]]:
        if self.current_statement is None:
            return None
        return {
            "start_line": self.current_statement.start_line,
            "end_line": self.current_statement.end_line,
        }

    def expression_highlight(self) -> Optional[Dict[str, int]]:
        if self.current_expression is None:
            return None
        return {
            "line": self.current_expression.line,
            "start_col": self.current_expression.start_col,
            "end_col": self.current_expression.end_col,
        }

    # ----- prediction -----

    def request_prediction(self, variable: str, correct_value: Any) -> None:
        if not self.prediction_mode:
            return
        self.waiting_for_prediction = True
        self.prediction_variable = variable
        self.prediction_correct_value = correct_value

    def clear_prediction(self) -> None:
        self.waiting_for_prediction = False
        self.prediction_variable = None
        self.prediction_correct_value = None

    # ----- transient sub-states -----

    def spawn_transient(self) -> "ExecutionState":
        """A throwaway state sharing this one's scopes, used for f-string expressions."""
        sub = ExecutionState(input_provider=self.input_provider, allow_calls=False)
        sub.scope_stack = self.scope_stack
        sub.input_log = self.input_log
        sub.input_cursor = self.input_cursor
        sub.current_statement = self.current_statement
        return sub
