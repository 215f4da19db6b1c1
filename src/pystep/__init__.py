from .code import ProgramCode, parse_expression
from .core import StepperCore
from .errors import (
    ParseFailure,
    ScriptError,
    ScriptIndexError,
    ScriptNameError,
    ScriptRuntimeError,
    ScriptTypeError,
    ScriptValueError,
    ScriptZeroDivisionError,
)
from .lib.inputs import ScriptedInputProvider, StdinInputProvider
from .main import Interpreter
from .state import ExecutionState
from .undo import UndoRecord, apply_undo

__all__ = [
    "ExecutionState",
    "Interpreter",
    "ParseFailure",
    "ProgramCode",
    "ScriptError",
    "ScriptIndexError",
    "ScriptNameError",
    "ScriptRuntimeError",
    "ScriptTypeError",
    "ScriptValueError",
    "ScriptZeroDivisionError",
    "ScriptedInputProvider",
    "StdinInputProvider",
    "StepperCore",
    "UndoRecord",
    "apply_undo",
    "parse_expression",
]
