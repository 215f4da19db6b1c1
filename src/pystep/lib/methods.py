from __future__ import annotations

from typing import Any, Dict, Tuple, Type

from ..commands import StackCommand
from ..errors import ScriptIndexError, ScriptTypeError, ScriptValueError
from ..helpers import apply_compare, is_integer, normalize_index, type_name


def _no_attribute(receiver: Any, name: str) -> ScriptTypeError:
    return ScriptTypeError(f"'{type_name(receiver)}' object has no attribute '{name}'")


class MethodCommand(StackCommand):
    """`receiver.name(args...)`: the receiver sits below the arguments on the stack."""

    name = ""
    receivers: Tuple[type, ...] = (list,)
    min_args = 1
    max_args = 1

    def __init__(self, arg_count: int):
        super().__init__()
        self.arg_count = arg_count
        self.arity = arg_count + 1

    def evaluate(self, state, journal, receiver, *args):
        if not isinstance(receiver, self.receivers):
            raise _no_attribute(receiver, self.name)
        given = len(args)
        if not self.min_args <= given <= self.max_args:
            if self.min_args == self.max_args:
                plural = "" if self.min_args == 1 else "s"
                raise ScriptTypeError(
                    f"{type_name(receiver)}.{self.name}() takes exactly {self.min_args} argument{plural} ({given} given)"
                )
            raise ScriptTypeError(
                f"{type_name(receiver)}.{self.name}() takes at most {self.max_args} argument{'' if self.max_args == 1 else 's'} ({given} given)"
            )
        return self.call(receiver, *args)

    def call(self, receiver: Any, *args: Any) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} .{self.name}/{self.arg_count}>"


class AppendCommand(MethodCommand):
    name = "append"
    mutates = True

    def call(self, receiver, item):
        receiver.append(item)
        return None


class CountCommand(MethodCommand):
    name = "count"
    receivers = (list, str)

    def call(self, receiver, item):
        if isinstance(receiver, str) and not isinstance(item, str):
            raise ScriptTypeError(f"must be str, not {type_name(item)}")
        return receiver.count(item)


class PopCommand(MethodCommand):
    name = "pop"
    mutates = True
    min_args = 0

    def call(self, receiver, *args):
        if not receiver:
            raise ScriptIndexError("pop from empty list")
        if not args:
            return receiver.pop()
        (index,) = args
        if not is_integer(index):
            raise ScriptTypeError(f"'{type_name(index)}' object cannot be interpreted as an integer")
        return receiver.pop(normalize_index(receiver, index, what="pop"))


class SortCommand(MethodCommand):
    name = "sort"
    mutates = True
    min_args = 0
    max_args = 0

    def call(self, receiver):
        try:
            ordered = sorted(receiver)
        except TypeError as exc:
            raise ScriptTypeError(str(exc)) from exc
        receiver[:] = ordered
        return None


class RemoveCommand(MethodCommand):
    name = "remove"
    mutates = True

    def call(self, receiver, item):
        if item not in receiver:
            raise ScriptValueError("list.remove(x): x not in list")
        receiver.remove(item)
        return None


class IndexCommand(MethodCommand):
    """First position of the item, or -1 when it is absent."""

    name = "index"
    receivers = (list, str)

    def call(self, receiver, item):
        if isinstance(receiver, str):
            if not isinstance(item, str):
                raise ScriptTypeError(f"must be str, not {type_name(item)}")
            return receiver.find(item)
        for position, element in enumerate(receiver):
            if element == item:
                return position
        return -1


class ReverseCommand(MethodCommand):
    name = "reverse"
    mutates = True
    min_args = 0
    max_args = 0

    def call(self, receiver):
        receiver.reverse()
        return None


class ContainsCommand(MethodCommand):
    name = "contains"
    receivers = (list, str)

    def call(self, receiver, item):
        return apply_compare("in", item, receiver)


class MissingMethodCommand(StackCommand):
    """Stands in for a method name nothing implements; fails when reached."""

    def __init__(self, name: str, arg_count: int):
        super().__init__()
        self.name = name
        self.arg_count = arg_count
        self.arity = arg_count + 1

    def evaluate(self, state, journal, receiver, *args):
        raise _no_attribute(receiver, self.name)


METHOD_COMMANDS: Dict[str, Type[MethodCommand]] = {
    cls.name: cls
    for cls in (
        AppendCommand,
        CountCommand,
        PopCommand,
        SortCommand,
        RemoveCommand,
        IndexCommand,
        ReverseCommand,
        ContainsCommand,
    )
}


def make_method_command(name: str, arg_count: int) -> StackCommand:
    cls = METHOD_COMMANDS.get(name)
    if cls is None:
        return MissingMethodCommand(name, arg_count)
    return cls(arg_count)
