from __future__ import annotations

import builtins
from typing import Iterable, List


class StdinInputProvider:
    """Reads a line from the real stdin via the host `input`."""

    def __call__(self, prompt: str) -> str:
        try:
            return builtins.input(prompt)
        except EOFError:
            return ""


class ScriptedInputProvider:
    """Deterministic provider: hands out `lines` in order, then empty strings."""

    def __init__(self, lines: Iterable[str] = ()):
        self.lines: List[str] = list(lines)
        self.prompts: List[str] = []
        self._next = 0

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self._next >= len(self.lines):
            return ""
        line = self.lines[self._next]
        self._next += 1
        return line
