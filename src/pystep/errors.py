from __future__ import annotations

from typing import Any, Dict


class ScriptError(Exception):
    """Base class for failures reported in terms of the interpreted language."""

    kind = "Error"

    def __init__(self, message: str, line: int | None = None):
        super().__init__(message)
        self.message = message
        self.line = line

    def __str__(self) -> str:
        if self.line is None:
            return f"{self.kind}: {self.message}"
        return f"{self.kind}: {self.message} (line {self.line})"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "line": self.line}


class ParseFailure(ScriptError):
    """Raised while building or compiling the program tree; never reaches the state."""

    kind = "SyntaxError"


class ScriptRuntimeError(ScriptError):
    kind = "RuntimeError"


class ScriptTypeError(ScriptError):
    kind = "TypeError"


class ScriptNameError(ScriptError):
    kind = "NameError"


class ScriptIndexError(ScriptError):
    kind = "IndexError"


class ScriptValueError(ScriptError):
    kind = "ValueError"


class ScriptZeroDivisionError(ScriptError):
    kind = "ZeroDivisionError"


def name_not_defined(name: str) -> ScriptNameError:
    return ScriptNameError(f"name '{name}' is not defined")
