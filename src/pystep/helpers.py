from __future__ import annotations

import operator
from typing import Any, Callable, Dict

from .errors import (
    ScriptIndexError,
    ScriptRuntimeError,
    ScriptTypeError,
    ScriptZeroDivisionError,
)

_ARITHMETIC: Dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "//": operator.floordiv,
    "%": operator.mod,
    "**": operator.pow,
}

_COMPARISONS: Dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
    "is": operator.is_,
    "is not": operator.is_not,
}


def type_name(value: Any) -> str:
    if value is None:
        return "NoneType"
    return type(value).__name__


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float))


def is_integer(value: Any) -> bool:
    return isinstance(value, int)


def format_value(value: Any) -> str:
    """str() in the interpreted language; lists show nested strings quoted."""
    return str(value)


def repr_value(value: Any) -> str:
    return repr(value)


def _unsupported(op: str, left: Any, right: Any) -> ScriptTypeError:
    return ScriptTypeError(
        f"unsupported operand type(s) for {op}: '{type_name(left)}' and '{type_name(right)}'"
    )


def _check_operands(op: str, left: Any, right: Any) -> None:
    if is_number(left) and is_number(right):
        return
    if op == "+":
        if isinstance(left, str) and isinstance(right, str):
            return
        if isinstance(left, list) and isinstance(right, list):
            return
        if isinstance(left, str):
            raise ScriptTypeError(f'can only concatenate str (not "{type_name(right)}") to str')
        if isinstance(left, list):
            raise ScriptTypeError(f'can only concatenate list (not "{type_name(right)}") to list')
    if op == "*":
        if isinstance(left, (str, list)) and is_integer(right):
            return
        if is_integer(left) and isinstance(right, (str, list)):
            return
    raise _unsupported(op, left, right)


def apply_binop(op: str, left: Any, right: Any) -> Any:
    if op == "and":
        return left and right
    if op == "or":
        return left or right
    fn = _ARITHMETIC.get(op)
    if fn is None:
        raise NotImplementedError(f"BinOp {op!r} not supported")
    _check_operands(op, left, right)
    if op in ("/", "//", "%") and right == 0:
        if op == "/":
            raise ScriptZeroDivisionError("division by zero")
        raise ScriptZeroDivisionError("integer division or modulo by zero")
    try:
        return fn(left, right)
    except ZeroDivisionError as exc:
        # 0 ** -1
        raise ScriptZeroDivisionError(str(exc)) from exc
    except OverflowError as exc:
        raise ScriptRuntimeError(f"numeric overflow: {exc}") from exc


def apply_compare(op: str, left: Any, right: Any) -> bool:
    if op in ("in", "not in"):
        if isinstance(right, str):
            if not isinstance(left, str):
                raise ScriptTypeError(
                    f"'in <string>' requires string as left operand, not {type_name(left)}"
                )
            found = left in right
        elif isinstance(right, list):
            found = left in right
        else:
            raise ScriptTypeError(f"argument of type '{type_name(right)}' is not iterable")
        return found if op == "in" else not found
    fn = _COMPARISONS.get(op)
    if fn is None:
        raise NotImplementedError(f"Compare {op!r} not supported")
    try:
        return fn(left, right)
    except TypeError as exc:
        raise ScriptTypeError(str(exc)) from exc


def apply_unary(op: str, operand: Any) -> Any:
    if op in ("!", "not"):
        return not operand
    if not is_number(operand):
        label = "unary -" if op == "-" else "unary +"
        raise ScriptTypeError(f"bad operand type for {label}: '{type_name(operand)}'")
    if op == "-":
        return -operand
    if op == "+":
        return +operand
    raise NotImplementedError(f"UnaryOp {op!r} not supported")


def normalize_index(sequence: Any, index: Any, *, what: str = "list") -> int:
    """Resolve a possibly negative index; raises the language's IndexError when out of range."""
    if not is_integer(index):
        raise ScriptTypeError(f"{what} indices must be integers, not {type_name(index)}")
    actual = index + len(sequence) if index < 0 else index
    if actual < 0 or actual >= len(sequence):
        raise ScriptIndexError(f"{what} index out of range")
    return actual
