from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List

if TYPE_CHECKING:
    from .commands import Command


class UserFunction:
    """
    A compiled `def`:
      - name and ordered parameter names
      - the body commands, inlined in the flat program right after the
        definition's skip jump
      - start_index: absolute index of the first body command, filled in by
        the defining command when it runs (-1 until then)
    """

    def __init__(self, name: str, params: List[str], body: List["Command"]):
        self.name = name
        self.params = list(params)
        self.body = body
        self.start_index = -1

    @property
    def arity(self) -> int:
        return len(self.params)

    def describe_arity_mismatch(self, given: int) -> str:
        expected = self.arity
        plural = "" if expected == 1 else "s"
        verb = "was" if given == 1 else "were"
        return f"{self.name}() takes {expected} positional argument{plural} but {given} {verb} given"

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "params": list(self.params), "start_index": self.start_index}

    def __repr__(self) -> str:
        return f"<UserFunction {self.name}({', '.join(self.params)}) at {self.start_index}>"
