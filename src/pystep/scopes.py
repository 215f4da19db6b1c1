from __future__ import annotations

from typing import Any, Dict

from .common import UNBOUND


class ScopeFrame:
    """A named variable frame: "Global" at the bottom, one per active call above it."""

    __slots__ = ("name", "variables")

    def __init__(self, name: str, variables: Dict[str, Any] | None = None):
        self.name = name
        self.variables: Dict[str, Any] = {} if variables is None else variables

    def __contains__(self, name: str) -> bool:
        return name in self.variables

    def get(self, name: str, default: Any = UNBOUND) -> Any:
        return self.variables.get(name, default)

    def store(self, name: str, value: Any) -> Any:
        self.variables[name] = value
        return value

    def unbind(self, name: str) -> None:
        """Forgiving delete used by undo."""
        self.variables.pop(name, None)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ScopeFrame):
            return NotImplemented
        return self.name == other.name and self.variables == other.variables

    def __repr__(self) -> str:
        return f"<ScopeFrame {self.name} {self.variables!r}>"
