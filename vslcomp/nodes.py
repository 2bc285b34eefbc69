"""Abstract syntax tree nodes, tree printing and tree simplification."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from typing import Any, Optional

_INT64_BITS = 64
_INT64_MIN = -(1 << (_INT64_BITS - 1))


class CompileError(Exception):
    """Raised when the program being compiled is invalid."""


class NodeType(enum.Enum):
    """The kinds of node found in the syntax tree."""

    LIST = enum.auto()
    GLOBAL_DECLARATION = enum.auto()
    ARRAY_INDEXING = enum.auto()
    VARIABLE = enum.auto()
    FUNCTION = enum.auto()
    BLOCK = enum.auto()
    ASSIGNMENT_STATEMENT = enum.auto()
    RETURN_STATEMENT = enum.auto()
    PRINT_STATEMENT = enum.auto()
    BREAK_STATEMENT = enum.auto()
    IF_STATEMENT = enum.auto()
    WHILE_STATEMENT = enum.auto()
    RELATION = enum.auto()  # data is the relation operator
    EXPRESSION = enum.auto()  # data is the arithmetic operator
    FUNCTION_CALL = enum.auto()
    IDENTIFIER_DATA = enum.auto()  # data is the name
    NUMBER_DATA = enum.auto()  # data is an int
    STRING_DATA = enum.auto()  # data is the literal, quotes included
    STRING_LIST_REFERENCE = enum.auto()  # data is the index in the string list


_TEXT_DATA = frozenset(
    {NodeType.IDENTIFIER_DATA, NodeType.EXPRESSION, NodeType.RELATION, NodeType.STRING_DATA}
)


@dataclass(eq=False)
class Node:
    """A node of the syntax tree."""

    type: NodeType
    data: Any = None
    children: list[Optional[Node]] = field(default_factory=list)
    symbol: Any = None

    def append(self, element: Optional[Node]) -> Node:
        """Append a child to a LIST node and return the list node."""
        if self.type is not NodeType.LIST:
            raise ValueError(f"cannot append to a {self.type.name} node")
        self.children.append(element)
        return self


def format_tree(node: Optional[Node]) -> str:
    """Render a tree as indented text, one node per line."""
    lines: list[str] = []
    _format_into(node, 0, lines)
    return "".join(lines)


def _format_into(node: Optional[Node], nesting: int, lines: list[str]) -> None:
    indent = " " * nesting
    if node is None:
        lines.append(f"{indent}(NULL)\n")
        return
    text = indent + node.type.name
    if node.type in _TEXT_DATA or node.type in (
        NodeType.NUMBER_DATA,
        NodeType.STRING_LIST_REFERENCE,
    ):
        text += f"({node.data})"
    if node.symbol is not None:
        text += f" {node.symbol.type.name}({node.symbol.sequence_number})"
    lines.append(text + "\n")
    for child in node.children:
        _format_into(child, nesting + 1, lines)


def _graphviz_id(node: Node) -> str:
    return f"node{id(node):#x}"


def _escape_label(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def graphviz_format(root: Node) -> str:
    """Render a tree as a graphviz graph description."""
    lines = ['graph "" {\n node[shape=box];\n']
    _graphviz_into(root, lines)
    lines.append("}\n")
    return "".join(lines)


def _graphviz_into(node: Node, lines: list[str]) -> None:
    label = node.type.name
    if node.type in _TEXT_DATA:
        label += "\\n" + ("NULL" if node.data is None else _escape_label(str(node.data)))
    elif node.type is NodeType.NUMBER_DATA:
        label += f"\\n{node.data}"
    name = _graphviz_id(node)
    lines.append(f'{name} [label="{label}"];\n')
    for index, child in enumerate(node.children):
        if child is None:
            lines.append(f"{name} -- {name}NULL{index} ;\n")
        else:
            lines.append(f"{name} -- {_graphviz_id(child)} ;\n")
            _graphviz_into(child, lines)


def syntax_tree_text(root: Optional[Node]) -> str:
    """Render a tree as graphviz if GRAPHVIZ_OUTPUT is set, else as indented text."""
    if os.environ.get("GRAPHVIZ_OUTPUT") is not None and root is not None:
        return graphviz_format(root)
    return format_tree(root)


def _wrap_int64(value: int) -> int:
    return ((value - _INT64_MIN) % (1 << _INT64_BITS)) + _INT64_MIN


def _divide_truncating(lhs: int, rhs: int) -> int:
    if rhs == 0:
        raise CompileError("division by zero in constant expression")
    quotient = abs(lhs) // abs(rhs)
    return -quotient if (lhs < 0) != (rhs < 0) else quotient


def _check_shift(amount: int) -> None:
    if not 0 <= amount < _INT64_BITS:
        raise CompileError(f"shift amount {amount} out of range in constant expression")


def _fold_binary(op: str, lhs: int, rhs: int) -> int:
    if op == "+":
        return lhs + rhs
    if op == "-":
        return lhs - rhs
    if op == "*":
        return lhs * rhs
    if op == "/":
        return _divide_truncating(lhs, rhs)
    if op == "<<":
        _check_shift(rhs)
        return lhs << rhs
    if op == ">>":
        _check_shift(rhs)
        return lhs >> rhs
    raise CompileError(f"unknown binary operator '{op}'")


def _constant_fold(node: Node) -> Node:
    if node.type is not NodeType.EXPRESSION:
        return node
    if not all(child is not None and child.type is NodeType.NUMBER_DATA for child in node.children):
        return node

    op = node.data
    values = [child.data for child in node.children]
    if len(values) == 1:
        if op != "-":
            raise CompileError(f"unknown unary operator '{op}'")
        result = -values[0]
    elif len(values) == 2:
        result = _fold_binary(op, values[0], values[1])
    else:
        raise CompileError(f"expression with {len(values)} operands")
    return Node(NodeType.NUMBER_DATA, _wrap_int64(result))


def _peephole(node: Node) -> Node:
    if (
        node.type is not NodeType.EXPRESSION
        or len(node.children) != 2
        or node.children[1] is None
        or node.children[1].type is not NodeType.NUMBER_DATA
    ):
        return node

    shift_op = {"*": "<<", "/": ">>"}.get(node.data)
    if shift_op is None:
        return node

    rhs = node.children[1].data
    if rhs == 1:
        return node.children[0]
    if rhs <= 0 or rhs.bit_count() != 1:
        return node

    node.data = shift_op
    node.children[1].data = rhs.bit_length() - 1
    return node


def simplify_tree(node: Optional[Node]) -> Optional[Node]:
    """Fold constant expressions and turn power-of-two products into shifts.

    Returns the (possibly replaced) root of the simplified subtree.
    """
    if node is None:
        return None
    node.children = [simplify_tree(child) for child in node.children]
    node = _constant_fold(node)
    return _peephole(node)