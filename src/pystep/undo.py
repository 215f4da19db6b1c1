from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable

from .common import UNBOUND

if TYPE_CHECKING:
    from .state import ExecutionState

_RESTORABLE_FIELDS = frozenset(
    {"program_counter", "error", "current_statement", "current_expression", "input_cursor"}
)


class UndoRecord:
    """
    A tagged inverse of one command execution.

    `kind` selects the handler in UndoApplier; `data` holds exactly the values
    captured at execution time. Mutable containers are copied on capture.
    """

    __slots__ = ("kind", "data")

    def __init__(self, kind: str, **data: Any):
        clashing = [key for key in data if hasattr(UndoRecord, key)]
        if clashing:
            raise ValueError(f"undo data key shadows an attribute: {clashing[0]!r}")
        self.kind = kind
        self.data = data

    def __getattr__(self, name: str) -> Any:
        if name in ("kind", "data"):
            raise AttributeError(name)
        try:
            return self.data[name]
        except KeyError:
            raise AttributeError(name) from None

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, UndoRecord):
            return NotImplemented
        return self.kind == other.kind and self.data == other.data

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.data.items())
        return f"UndoRecord({self.kind!r}, {fields})"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kind": self.kind}
        for key, value in self.data.items():
            if key == "records":
                out[key] = [r.to_dict() for r in value]
            elif value is UNBOUND:
                out[key] = "<unbound>"
            elif key == "target":
                out[key] = f"<list at {id(value):#x}>"
            else:
                out[key] = value
        return out

    # ----- constructors -----

    @classmethod
    def noop(cls) -> "UndoRecord":
        return cls("noop")

    @classmethod
    def sequence(cls, records: Iterable["UndoRecord"]) -> "UndoRecord":
        records = [r for r in records if r.kind != "noop"]
        if not records:
            return cls.noop()
        if len(records) == 1:
            return records[0]
        return cls("sequence", records=records)

    @classmethod
    def stack(cls, drop: int = 0, restore: Iterable[Any] = ()) -> "UndoRecord":
        return cls("stack", drop=drop, restore=list(restore))

    @classmethod
    def field(cls, name: str, previous: Any) -> "UndoRecord":
        if name not in _RESTORABLE_FIELDS:
            raise ValueError(f"field {name!r} is not restorable")
        return cls("field", name=name, previous=previous)

    @classmethod
    def binding(cls, frame: int, name: str, previous: Any) -> "UndoRecord":
        return cls("binding", frame=frame, name=name, previous=previous)

    @classmethod
    def list_contents(cls, target: list) -> "UndoRecord":
        return cls("list_contents", target=target, contents=list(target))

    @classmethod
    def output(cls, count: int = 1) -> "UndoRecord":
        return cls("output", count=count)

    @classmethod
    def counter(cls, name: str, previous: Any) -> "UndoRecord":
        return cls("counter", name=name, previous=previous)

    @classmethod
    def function(cls, name: str, previous: Any) -> "UndoRecord":
        return cls("function", name=name, previous=previous)


class UndoApplier:
    def apply(self, state: "ExecutionState", record: UndoRecord) -> None:
        m = getattr(self, f"undo_{record.kind}", None)
        if m is None:
            raise NotImplementedError(f"Undo record not supported: {record.kind}")
        m(state, record)

    def undo_noop(self, state: "ExecutionState", record: UndoRecord) -> None:
        pass

    def undo_sequence(self, state: "ExecutionState", record: UndoRecord) -> None:
        for child in reversed(record.records):
            self.apply(state, child)

    def undo_stack(self, state: "ExecutionState", record: UndoRecord) -> None:
        stack = state.evaluation_stack
        if record.drop:
            del stack[len(stack) - record.drop :]
        stack.extend(record.restore)

    def undo_field(self, state: "ExecutionState", record: UndoRecord) -> None:
        setattr(state, record.name, record.previous)

    def undo_binding(self, state: "ExecutionState", record: UndoRecord) -> None:
        frame = state.scope_stack[record.frame]
        if record.previous is UNBOUND:
            frame.unbind(record.name)
        else:
            frame.store(record.name, record.previous)

    def undo_list_contents(self, state: "ExecutionState", record: UndoRecord) -> None:
        record.target[:] = record.contents

    def undo_output(self, state: "ExecutionState", record: UndoRecord) -> None:
        del state.outputs[len(state.outputs) - record.count :]

    def undo_counter(self, state: "ExecutionState", record: UndoRecord) -> None:
        state.set_counter(record.name, record.previous)

    def undo_function(self, state: "ExecutionState", record: UndoRecord) -> None:
        if record.previous is UNBOUND:
            state.function_definitions.pop(record.name, None)
        else:
            state.function_definitions[record.name] = record.previous

    def undo_loop_pushed(self, state: "ExecutionState", record: UndoRecord) -> None:
        entry = state.loop_stack.pop()
        if entry.variable:
            state.set_counter(entry.variable, entry.shadowed)

    def undo_loop_popped(self, state: "ExecutionState", record: UndoRecord) -> None:
        entry = record.entry
        if entry.variable:
            state.set_counter(entry.variable, record.saved_counter)
        state.loop_stack.append(entry)

    def undo_frame_pushed(self, state: "ExecutionState", record: UndoRecord) -> None:
        state.call_stack.pop()
        state.pop_scope()

    def undo_frame_popped(self, state: "ExecutionState", record: UndoRecord) -> None:
        state.push_scope(record.scope_name, dict(record.variables))
        state.call_stack.append(record.call_frame)


_APPLIER = UndoApplier()


def apply_undo(state: "ExecutionState", record: UndoRecord | None) -> None:
    if record is None:
        return
    _APPLIER.apply(state, record)
