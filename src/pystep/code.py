from __future__ import annotations

import ast
from typing import List, Optional

from .commands import Command
from .common import SourcePosition
from .errors import ParseFailure
from .expressions import (
    ArgList,
    BinaryExpression,
    BooleanLiteral,
    Comparison,
    Conditional,
    ExpressionNode,
    FormalParams,
    FStringLiteral,
    FunctionCall,
    Identifier,
    ListAccess,
    ListLiteral,
    MethodCall,
    NoneLiteral,
    NumberLiteral,
    Slice,
    StringLiteral,
    UnaryExpression,
)
from .lib.fstrings import Part, Placeholder
from .statements import (
    Assignment,
    Block,
    Break,
    Continue,
    Elif,
    ExpressionStatement,
    For,
    FunctionDefinition,
    If,
    MultiAssignment,
    Pass,
    ProgramNode,
    Return,
    StatementNode,
    While,
)

_BINARY_OPS = {
    ast.Add: "+",
    ast.Sub: "-",
    ast.Mult: "*",
    ast.Div: "/",
    ast.FloorDiv: "//",
    ast.Mod: "%",
    ast.Pow: "**",
}

_COMPARE_OPS = {
    ast.Eq: "==",
    ast.NotEq: "!=",
    ast.Lt: "<",
    ast.LtE: "<=",
    ast.Gt: ">",
    ast.GtE: ">=",
    ast.In: "in",
    ast.NotIn: "not in",
    ast.Is: "is",
    ast.IsNot: "is not",
}

_UNARY_OPS = {ast.USub: "-", ast.UAdd: "+", ast.Not: "not"}

_AUG_OPS = {ast.Add: "+=", ast.Sub: "-="}

_CONVERSIONS = {-1: None, ord("s"): "s", ord("r"): "r", ord("a"): "a"}


def _syntax_error(exc: SyntaxError) -> ParseFailure:
    return ParseFailure(exc.msg or "invalid syntax", exc.lineno)


class TreeBuilder:
    """
    Turns a stdlib `ast` tree into pystep statement/expression nodes.

    Positions use 1-based character columns; ast offsets are UTF-8 bytes, so
    they are converted against the source lines.
    """

    def __init__(self, source: str):
        self.lines = source.splitlines()

    # ----- dispatch -----

    def build(self, node: ast.AST):
        m = getattr(self, f"build_{node.__class__.__name__}", None)
        if m is None:
            raise ParseFailure(
                f"unsupported syntax: {node.__class__.__name__}", getattr(node, "lineno", None)
            )
        return m(node)

    def build_block(self, body: List[ast.stmt]) -> Block:
        return Block([self.build(stmt) for stmt in body])

    def unsupported(self, node: ast.AST, what: str) -> ParseFailure:
        return ParseFailure(f"unsupported syntax: {what}", getattr(node, "lineno", None))

    # ----- positions -----

    def _column(self, lineno: int, byte_offset: int) -> int:
        if 0 < lineno <= len(self.lines):
            line = self.lines[lineno - 1]
            return len(line.encode("utf-8")[:byte_offset].decode("utf-8", errors="replace"))
        return byte_offset

    def position(self, node: ast.AST, end_line: Optional[int] = None) -> SourcePosition:
        line = node.lineno
        start = self._column(line, node.col_offset)
        last = node.end_lineno or line
        if last == line:
            length = self._column(line, node.end_col_offset) - start
        else:
            length = len(self.lines[line - 1]) - start if line <= len(self.lines) else 1
        return SourcePosition(line, start + 1, length, last if end_line is None else end_line)

    def header_position(self, node: ast.stmt, *parts: Optional[ast.AST]) -> SourcePosition:
        """Compound statements highlight their header only, not the body."""
        end = node.lineno
        for part in parts:
            if part is not None:
                end = max(end, part.end_lineno or end)
        return self.position(node, end_line=end)

    # ----- statements -----

    def build_Module(self, node: ast.Module) -> ProgramNode:
        return ProgramNode([self.build(stmt) for stmt in node.body])

    def build_Expr(self, node: ast.Expr) -> ExpressionStatement:
        return ExpressionStatement(self.build(node.value), self.position(node))

    def build_Assign(self, node: ast.Assign) -> StatementNode:
        if len(node.targets) != 1:
            raise self.unsupported(node, "chained assignment")
        target = node.targets[0]
        if isinstance(target, (ast.Tuple, ast.List)):
            names = []
            for elt in target.elts:
                if not isinstance(elt, ast.Name):
                    raise self.unsupported(elt, "unpacking into non-names")
                names.append(elt.id)
            if isinstance(node.value, ast.Tuple):
                values = [self.build(elt) for elt in node.value.elts]
            else:
                values = [self.build(node.value)]
            return MultiAssignment(names, values, self.position(node))
        return self._assignment(node, target, "=")

    def build_AugAssign(self, node: ast.AugAssign) -> Assignment:
        op = _AUG_OPS.get(type(node.op))
        if op is None:
            raise self.unsupported(node, f"augmented assignment {node.op.__class__.__name__}")
        return self._assignment(node, node.target, op)

    def _assignment(self, node: ast.stmt, target: ast.expr, op: str) -> Assignment:
        value = self.build(node.value)
        if isinstance(target, ast.Name):
            return Assignment(target.id, value, op, self.position(node))
        if isinstance(target, ast.Subscript) and not isinstance(target.slice, ast.Slice):
            access = ListAccess(self.build(target.value), self.build(target.slice), self.position(target))
            return Assignment(access, value, op, self.position(node), display_name=ast.unparse(target.value))
        raise self.unsupported(target, f"assignment to {target.__class__.__name__}")

    def build_Return(self, node: ast.Return) -> Return:
        value = None if node.value is None else self.build(node.value)
        return Return(value, self.position(node))

    def build_Break(self, node: ast.Break) -> Break:
        return Break(self.position(node))

    def build_Continue(self, node: ast.Continue) -> Continue:
        return Continue(self.position(node))

    def build_Pass(self, node: ast.Pass) -> Pass:
        return Pass(self.position(node))

    def _is_elif(self, node: ast.stmt) -> bool:
        if not isinstance(node, ast.If) or node.lineno > len(self.lines):
            return False
        return self.lines[node.lineno - 1].lstrip().startswith("elif")

    def build_If(self, node: ast.If, cls=If) -> If:
        orelse = None
        if len(node.orelse) == 1 and self._is_elif(node.orelse[0]):
            orelse = Block([self.build_If(node.orelse[0], cls=Elif)])
        elif node.orelse:
            orelse = self.build_block(node.orelse)
        return cls(
            self.build(node.test),
            self.build_block(node.body),
            orelse,
            self.header_position(node, node.test),
        )

    def build_For(self, node: ast.For) -> For:
        if not isinstance(node.target, ast.Name):
            raise self.unsupported(node.target, "for-loop target must be a name")
        if node.orelse:
            raise self.unsupported(node, "for-else")
        return For(
            node.target.id,
            self.build(node.iter),
            self.build_block(node.body),
            self.header_position(node, node.iter),
        )

    def build_While(self, node: ast.While) -> While:
        if node.orelse:
            raise self.unsupported(node, "while-else")
        return While(self.build(node.test), self.build_block(node.body), self.header_position(node, node.test))

    def build_FunctionDef(self, node: ast.FunctionDef) -> FunctionDefinition:
        args = node.args
        if node.decorator_list:
            raise self.unsupported(node, "decorators")
        if args.vararg or args.kwarg or args.kwonlyargs or args.posonlyargs or args.defaults:
            raise self.unsupported(node, "only plain positional parameters are allowed")
        last_arg = args.args[-1] if args.args else None
        return FunctionDefinition(
            node.name,
            FormalParams([arg.arg for arg in args.args]),
            self.build_block(node.body),
            self.header_position(node, last_arg),
        )

    # ----- expressions -----

    def build_Constant(self, node: ast.Constant) -> ExpressionNode:
        value = node.value
        pos = self.position(node)
        if isinstance(value, bool):
            return BooleanLiteral(value, pos)
        if value is None:
            return NoneLiteral(pos)
        if isinstance(value, (int, float)):
            return NumberLiteral(value, pos)
        if isinstance(value, str):
            return StringLiteral(value, pos)
        raise self.unsupported(node, f"{type(value).__name__} literal")

    def build_Name(self, node: ast.Name) -> Identifier:
        return Identifier(node.id, self.position(node))

    def build_BinOp(self, node: ast.BinOp) -> BinaryExpression:
        op = _BINARY_OPS.get(type(node.op))
        if op is None:
            raise self.unsupported(node, f"operator {node.op.__class__.__name__}")
        return BinaryExpression(op, self.build(node.left), self.build(node.right), self.position(node))

    def build_BoolOp(self, node: ast.BoolOp) -> BinaryExpression:
        op = "and" if isinstance(node.op, ast.And) else "or"
        pos = self.position(node)
        result = self.build(node.values[0])
        for value in node.values[1:]:
            result = BinaryExpression(op, result, self.build(value), pos)
        return result

    def build_UnaryOp(self, node: ast.UnaryOp) -> UnaryExpression:
        op = _UNARY_OPS.get(type(node.op))
        if op is None:
            raise self.unsupported(node, f"operator {node.op.__class__.__name__}")
        operand = node.operand
        if (
            op in ("-", "+")
            and isinstance(operand, ast.Constant)
            and isinstance(operand.value, (int, float))
            and not isinstance(operand.value, bool)
        ):
            # signed number literal
            value = -operand.value if op == "-" else operand.value
            return NumberLiteral(value, self.position(node))
        return UnaryExpression(op, self.build(operand), self.position(node))

    def build_Compare(self, node: ast.Compare) -> ExpressionNode:
        # a < b < c becomes (a < b) and (b < c)
        pos = self.position(node)
        operands = [node.left] + list(node.comparators)
        result: Optional[ExpressionNode] = None
        for op, left, right in zip(node.ops, operands, operands[1:]):
            symbol = _COMPARE_OPS.get(type(op))
            if symbol is None:
                raise self.unsupported(node, f"comparison {op.__class__.__name__}")
            link = Comparison(symbol, self.build(left), self.build(right), pos)
            result = link if result is None else BinaryExpression("and", result, link, pos)
        return result

    def build_IfExp(self, node: ast.IfExp) -> Conditional:
        return Conditional(
            self.build(node.test), self.build(node.body), self.build(node.orelse), self.position(node)
        )

    def build_Call(self, node: ast.Call) -> ExpressionNode:
        if node.keywords or any(isinstance(arg, ast.Starred) for arg in node.args):
            raise self.unsupported(node, "keyword or starred arguments")
        args = ArgList([self.build(arg) for arg in node.args])
        if isinstance(node.func, ast.Name):
            return FunctionCall(node.func.id, args, self.position(node))
        if isinstance(node.func, ast.Attribute):
            return MethodCall(self.build(node.func.value), node.func.attr, args, self.position(node))
        raise self.unsupported(node, "call of a non-name")

    def build_Subscript(self, node: ast.Subscript) -> ExpressionNode:
        target = self.build(node.value)
        index = node.slice
        if isinstance(index, ast.Slice):
            bounds = [None if b is None else self.build(b) for b in (index.lower, index.upper, index.step)]
            return Slice(target, *bounds, position=self.position(node))
        return ListAccess(target, self.build(index), self.position(node))

    def build_List(self, node: ast.List) -> ListLiteral:
        return ListLiteral([self.build(elt) for elt in node.elts], self.position(node))

    def build_JoinedStr(self, node: ast.JoinedStr) -> FStringLiteral:
        return FStringLiteral(self._fstring_parts(node), self.position(node))

    def _fstring_parts(self, node: ast.JoinedStr) -> List[Part]:
        parts: List[Part] = []
        for value in node.values:
            if isinstance(value, ast.Constant):
                parts.append(value.value)
                continue
            spec = ""
            if value.format_spec is not None:
                pieces = value.format_spec.values
                if not all(isinstance(p, ast.Constant) for p in pieces):
                    raise self.unsupported(value, "nested fields in an f-string format spec")
                spec = "".join(p.value for p in pieces)
            parts.append(Placeholder(ast.unparse(value.value), _CONVERSIONS[value.conversion], spec))
        return parts


class ProgramCode:
    """
    Holds:
      - the source text and filename
      - the parsed stdlib AST
      - the pystep ProgramNode built from it
    """

    def __init__(self, source: str, filename: str = "<pystep>"):
        self.source = source
        self.filename = filename
        try:
            self.tree = ast.parse(source, filename=filename, mode="exec")
        except SyntaxError as exc:
            raise _syntax_error(exc) from None
        self.program: ProgramNode = TreeBuilder(source).build(self.tree)

    def compile(self) -> List[Command]:
        return self.program.compile()


def parse_expression(text: str) -> ExpressionNode:
    """Parse a single expression, e.g. the body of an f-string field."""
    text = text.strip()
    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as exc:
        raise _syntax_error(exc) from None
    return TreeBuilder(text).build(tree.body)
