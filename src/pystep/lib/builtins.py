from __future__ import annotations

from typing import Any, Dict, List, Type

from ..commands import StackCommand
from ..errors import ScriptRuntimeError, ScriptTypeError, ScriptValueError
from ..helpers import format_value, is_integer, is_number, type_name
from ..undo import UndoRecord


class BuiltinCommand(StackCommand):
    """
    A call to one of the language's built-in functions.

    Holds:
    - name: the built-in's name, used in error messages
    - min_args / max_args: accepted argument counts (max_args None = any)
    - arg_count: how many arguments this call site passes
    """

    name = ""
    min_args = 1
    max_args: int | None = 1

    def __init__(self, arg_count: int):
        super().__init__()
        self.arg_count = arg_count
        self.arity = arg_count

    def evaluate(self, state, journal, *args):
        self.check_arg_count(len(args))
        return self.call(state, journal, *args)

    def check_arg_count(self, given: int) -> None:
        low, high = self.min_args, self.max_args
        if given >= low and (high is None or given <= high):
            return
        if low == high:
            plural = "" if low == 1 else "s"
            raise ScriptTypeError(f"{self.name}() takes exactly {low} argument{plural} ({given} given)")
        if high is not None and given > high:
            raise ScriptTypeError(f"{self.name} expected at most {high} arguments, got {given}")
        raise ScriptTypeError(f"{self.name} expected at least {low} argument, got {given}")

    def call(self, state, journal: List[UndoRecord], *args: Any) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}/{self.arg_count}>"


class PrintCommand(BuiltinCommand):
    name = "print"
    min_args = 0
    max_args = None

    def call(self, state, journal, *args):
        journal.append(state.add_output(" ".join(format_value(arg) for arg in args)))
        return None


class LenCommand(BuiltinCommand):
    name = "len"

    def call(self, state, journal, value):
        if not isinstance(value, (list, str)):
            raise ScriptTypeError(f"object of type '{type_name(value)}' has no len()")
        return len(value)


class TypeCommand(BuiltinCommand):
    name = "type"

    def call(self, state, journal, value):
        return f"<class '{type_name(value)}'>"


class InputCommand(BuiltinCommand):
    name = "input"
    min_args = 0
    max_args = 1

    def call(self, state, journal, *args):
        cursor = state.input_cursor
        if cursor < len(state.input_log):
            line = state.input_log[cursor]
        else:
            if state.input_provider is None:
                raise ScriptRuntimeError("input() is not available: no input provider configured")
            prompt = format_value(args[0]) if args else ""
            line = str(state.input_provider(prompt))
            state.input_log.append(line)
        journal.append(UndoRecord.field("input_cursor", cursor))
        state.input_cursor = cursor + 1
        return line


class RangeCommand(BuiltinCommand):
    name = "range"
    max_args = 3

    def call(self, state, journal, *args):
        for arg in args:
            if not is_integer(arg):
                raise ScriptTypeError(f"'{type_name(arg)}' object cannot be interpreted as an integer")
        if len(args) == 3 and args[2] == 0:
            raise ScriptValueError("range() arg 3 must not be zero")
        return list(range(*args))


class IntCommand(BuiltinCommand):
    name = "int"

    def call(self, state, journal, value):
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                raise ScriptValueError(f"invalid literal for int() with base 10: {value!r}") from None
        if is_number(value):
            try:
                return int(value)
            except (OverflowError, ValueError) as exc:
                raise ScriptValueError(str(exc)) from exc
        raise ScriptTypeError(
            f"int() argument must be a string or a real number, not '{type_name(value)}'"
        )


class FloatCommand(BuiltinCommand):
    name = "float"

    def call(self, state, journal, value):
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise ScriptValueError(f"could not convert string to float: {value!r}") from None
        if is_number(value):
            return float(value)
        raise ScriptTypeError(
            f"float() argument must be a string or a real number, not '{type_name(value)}'"
        )


class StrCommand(BuiltinCommand):
    name = "str"

    def call(self, state, journal, value):
        return format_value(value)


class BoolCommand(BuiltinCommand):
    name = "bool"

    def call(self, state, journal, value):
        return bool(value)


class ListCommand(BuiltinCommand):
    name = "list"
    min_args = 0

    def call(self, state, journal, *args):
        if not args:
            return []
        (value,) = args
        if isinstance(value, (list, str)):
            return list(value)
        raise ScriptTypeError(f"'{type_name(value)}' object is not iterable")


BUILTIN_COMMANDS: Dict[str, Type[BuiltinCommand]] = {
    cls.name: cls
    for cls in (
        PrintCommand,
        LenCommand,
        TypeCommand,
        InputCommand,
        RangeCommand,
        IntCommand,
        FloatCommand,
        StrCommand,
        BoolCommand,
        ListCommand,
    )
}


def is_builtin(name: str) -> bool:
    return name in BUILTIN_COMMANDS


def make_builtin_command(name: str, arg_count: int) -> BuiltinCommand:
    return BUILTIN_COMMANDS[name](arg_count)
