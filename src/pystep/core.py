from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

from .code import ProgramCode
from .commands import Command
from .common import DEFAULT_MAX_CALL_DEPTH
from .errors import ParseFailure, ScriptError, ScriptRuntimeError
from .state import ExecutionState, InputProvider
from .undo import UndoRecord, apply_undo

logger = logging.getLogger(__name__)

HistoryEntry = Tuple[int, UndoRecord]


class StepperCore:
    """
    Drives a flat command list forward and backward against one ExecutionState.

    Holds:
      - commands: the compiled program
      - state: the live ExecutionState
      - history: (program counter before the command, its undo record)
      - current_step: how many commands have run, net of undos
    """

    def __init__(
        self,
        *,
        prediction_mode: bool = False,
        input_provider: Optional[InputProvider] = None,
        step_limit: Optional[int] = None,
        max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
    ):
        self.prediction_mode = prediction_mode
        self.input_provider = input_provider
        self.step_limit = step_limit
        self.max_call_depth = max_call_depth

        self.commands: List[Command] = []
        self.parse_error: Optional[str] = None
        self.last_prediction: Optional[Dict[str, Any]] = None
        self._reset_state()

    def _new_state(self) -> ExecutionState:
        return ExecutionState(
            prediction_mode=self.prediction_mode,
            input_provider=self.input_provider,
            max_call_depth=self.max_call_depth,
        )

    def _reset_state(self) -> None:
        self.state = self._new_state()
        self.history: List[HistoryEntry] = []
        self.current_step = 0
        self._pending: Optional[HistoryEntry] = None
        self.last_prediction = None

    # ----- compile -----

    def compile(self, source: Any, filename: str = "<pystep>") -> bool:
        """
        Accepts source text or any tree with a `compile()` that returns commands.
        Returns False and sets `parse_error` when the program is rejected.
        """
        self.commands = []
        self._reset_state()
        try:
            program = ProgramCode(source, filename) if isinstance(source, str) else source
            commands = list(program.compile())
        except ParseFailure as exc:
            self.parse_error = str(exc)
            logger.debug("parse failed for %s: %s", filename, exc)
            return False
        self.parse_error = None
        self.commands = commands
        logger.debug("compiled %s into %d commands", filename, len(commands))
        return True

    def reset(self) -> None:
        self._reset_state()

    # ----- stepping -----

    @property
    def history_size(self) -> int:
        return len(self.history)

    def can_step_forward(self) -> bool:
        state = self.state
        return (
            state.program_counter < len(self.commands)
            and state.error is None
            and not state.waiting_for_prediction
        )

    def can_step_backward(self) -> bool:
        return bool(self.history) or self.state.waiting_for_prediction

    def _record_error(self, pc: int, exc: ScriptError) -> None:
        state = self.state
        if exc.line is None:
            exc.line = state.current_line
        state.error = exc
        self.history.append((pc, UndoRecord.field("error", None)))
        self.current_step += 1
        logger.debug("runtime error at command %d: %s", pc, exc)

    def step_forward(self) -> bool:
        """Run commands up to and including the next visible one."""
        state = self.state
        while self.can_step_forward():
            pc = state.program_counter
            if self.step_limit is not None and self.current_step >= self.step_limit:
                self._record_error(pc, ScriptRuntimeError("step limit exceeded"))
                return False
            command = self.commands[pc]
            try:
                record = command.do(state)
            except ScriptError as exc:
                self._record_error(pc, exc)
                return False
            if state.waiting_for_prediction:
                self._pending = (pc, record)
                return True
            self.history.append((pc, record))
            if not state.jumped:
                state.program_counter += 1
            self.current_step += 1
            if command.is_visible():
                return True
        return False

    def _pop_history(self) -> None:
        pc, record = self.history.pop()
        apply_undo(self.state, record)
        self.state.program_counter = pc
        self.current_step -= 1

    def _rewind_invisible(self) -> None:
        while self.history and not self.commands[self.history[-1][0]].is_visible():
            self._pop_history()

    def step_back(self) -> bool:
        """Undo the most recent visible step together with the invisible commands before it."""
        state = self.state
        if state.waiting_for_prediction:
            pc, record = self._pending
            self._pending = None
            apply_undo(state, record)
            state.clear_prediction()
            state.program_counter = pc
            self._rewind_invisible()
            return True
        if not self.history:
            return False
        self._pop_history()
        self._rewind_invisible()
        return True

    def to_end(self) -> None:
        while self.step_forward():
            pass

    def to_beginning(self) -> None:
        while self.step_back():
            pass

    to_beg = to_beginning

    # ----- snapshot -----

    def get_snapshot(self) -> Dict[str, Any]:
        state = self.state
        return {
            "variables": copy.deepcopy(state.variables),
            "outputs": list(state.outputs),
            "can_step_forward": self.can_step_forward(),
            "can_step_backward": self.can_step_backward(),
            "current_step": self.current_step,
            "total_steps": len(self.commands),
            "highlighted_statement": state.statement_highlight(),
            "highlighted_expression": state.expression_highlight(),
            "function_definitions": {
                name: fn.to_dict() for name, fn in state.function_definitions.items()
            },
            "scope_stack": [
                {"name": frame.name, "variables": copy.deepcopy(frame.variables)}
                for frame in state.scope_stack
            ],
            "scope_names": state.scope_names,
            "loop_iteration_state": dict(state.loop_iteration_state),
            "error": None if state.error is None else state.error.to_dict(),
            "parse_error": self.parse_error,
            "waiting_for_prediction": state.waiting_for_prediction,
            "prediction_variable": state.prediction_variable,
            "prediction_correct_value": copy.deepcopy(state.prediction_correct_value),
            "last_prediction": copy.deepcopy(self.last_prediction),
        }
