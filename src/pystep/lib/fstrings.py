from __future__ import annotations

import keyword
from typing import Any, Dict, List, Optional, Sequence, Union

from ..commands import Command
from ..errors import ParseFailure, ScriptError, ScriptRuntimeError, ScriptTypeError, ScriptValueError
from ..helpers import format_value, repr_value
from ..undo import UndoRecord, apply_undo


class Placeholder:
    """One `{expression!conversion:format_spec}` field of an f-string."""

    __slots__ = ("expression", "conversion", "format_spec")

    def __init__(self, expression: str, conversion: Optional[str] = None, format_spec: str = ""):
        self.expression = expression.strip()
        self.conversion = conversion
        self.format_spec = format_spec

    @property
    def is_identifier(self) -> bool:
        return self.expression.isidentifier() and not keyword.iskeyword(self.expression)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Placeholder):
            return NotImplemented
        return (self.expression, self.conversion, self.format_spec) == (
            other.expression,
            other.conversion,
            other.format_spec,
        )

    def __repr__(self) -> str:
        return f"<Placeholder {{{self.expression}}}>"


Part = Union[str, Placeholder]


def split_template(template: str) -> List[Part]:
    """
    Split the body of an f-string (no prefix, no quotes) into literal text and
    placeholders. `{{`/`}}` are literal braces; brackets and quotes inside a
    field are skipped over so `{xs[0]}` and `{"a"}` stay whole.
    """
    parts: List[Part] = []
    literal: List[str] = []
    i, n = 0, len(template)
    while i < n:
        ch = template[i]
        if ch == "{" and template.startswith("{{", i):
            literal.append("{")
            i += 2
            continue
        if ch == "}" and template.startswith("}}", i):
            literal.append("}")
            i += 2
            continue
        if ch == "}":
            raise ParseFailure("f-string: single '}' is not allowed")
        if ch != "{":
            literal.append(ch)
            i += 1
            continue
        if literal:
            parts.append("".join(literal))
            literal = []
        field, i = _read_field(template, i + 1)
        parts.append(field)
    if literal:
        parts.append("".join(literal))
    return parts


def _read_field(template: str, i: int):
    depth = 0
    quote = ""
    start = i
    expression_end = conversion_at = spec_at = None
    while i < len(template):
        ch = template[i]
        if quote:
            if ch == quote:
                quote = ""
        elif ch in "'\"":
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}" and depth:
            depth -= 1
        elif depth == 0 and ch == "!" and conversion_at is None and spec_at is None and not template.startswith("!=", i):
            conversion_at = i
        elif depth == 0 and ch == ":" and spec_at is None:
            spec_at = i
        elif depth == 0 and ch == "}":
            expression_end = i
            break
        i += 1
    if expression_end is None:
        raise ParseFailure("f-string: expecting '}'")

    cut = min(x for x in (conversion_at, spec_at, expression_end) if x is not None)
    expression = template[start:cut]
    if not expression.strip():
        raise ParseFailure("f-string: empty expression not allowed")
    conversion = None
    if conversion_at is not None:
        conversion = template[conversion_at + 1 : spec_at if spec_at is not None else expression_end].strip()
        if conversion not in ("r", "s", "a"):
            raise ParseFailure("f-string: invalid conversion character: expected 's', 'r', or 'a'")
    format_spec = template[spec_at + 1 : expression_end] if spec_at is not None else ""
    return Placeholder(expression, conversion, format_spec), expression_end + 1


class InterpolateFStringCommand(Command):
    """
    Render an f-string. Bare names are looked up directly; any other field is
    parsed and compiled like a top-level expression and run on a transient
    sub-state that shares the caller's scopes.
    """

    def __init__(self, parts: Sequence[Part]):
        super().__init__()
        self.parts = list(parts)
        self._compiled: Dict[str, List[Command]] = {}

    @classmethod
    def from_template(cls, template: str) -> "InterpolateFStringCommand":
        return cls(split_template(template))

    def apply(self, state) -> UndoRecord:
        mutations: List[UndoRecord] = []
        try:
            text = "".join(self._render(state, part, mutations) for part in self.parts)
        except ScriptError:
            for record in reversed(mutations):
                apply_undo(state, record)
            raise
        state.push(text)
        return UndoRecord.sequence(mutations + [UndoRecord.stack(drop=1)])

    def _render(self, state, part: Part, mutations: List[UndoRecord]) -> str:
        if isinstance(part, str):
            return part
        if part.is_identifier:
            value = state.lookup(part.expression)
        else:
            value = self._evaluate(state, part.expression, mutations)

        if part.conversion == "r":
            value = repr_value(value)
        elif part.conversion == "a":
            value = ascii(value)
        elif part.conversion == "s":
            value = format_value(value)
        if not part.format_spec:
            return format_value(value)
        try:
            return format(value, part.format_spec)
        except ValueError as exc:
            raise ScriptValueError(str(exc)) from exc
        except TypeError as exc:
            raise ScriptTypeError(str(exc)) from exc

    def _commands_for(self, expression: str) -> List[Command]:
        commands = self._compiled.get(expression)
        if commands is None:
            from ..code import parse_expression

            try:
                commands = parse_expression(expression).compile()
            except ParseFailure:
                raise ScriptRuntimeError("invalid expression in f-string") from None
            self._compiled[expression] = commands
        return commands

    def _evaluate(self, state, expression: str, mutations: List[UndoRecord]) -> Any:
        commands = self._commands_for(expression)
        sub = state.spawn_transient()
        while sub.program_counter < len(commands):
            pc = sub.program_counter
            record = commands[pc].do(sub)
            mutations.extend(_list_mutations(record))
            if not sub.jumped:
                sub.program_counter += 1
        if not sub.evaluation_stack:
            raise ScriptRuntimeError("invalid expression in f-string")
        if sub.outputs:
            state.outputs.extend(sub.outputs)
            mutations.append(UndoRecord.output(len(sub.outputs)))
        if sub.input_cursor != state.input_cursor:
            mutations.append(UndoRecord.field("input_cursor", state.input_cursor))
            state.input_cursor = sub.input_cursor
        return sub.evaluation_stack[-1]

    def __repr__(self) -> str:
        return f"<InterpolateFStringCommand {self.parts!r}>"


def _list_mutations(record: UndoRecord) -> List[UndoRecord]:
    if record.kind == "list_contents":
        return [record]
    if record.kind == "sequence":
        found: List[UndoRecord] = []
        for child in record.records:
            found.extend(_list_mutations(child))
        return found
    return []
