import pytest

from vslcomp.nodes import (
    CompileError,
    Node,
    NodeType,
    format_tree,
    graphviz_format,
    simplify_tree,
    syntax_tree_text,
)


def num(value):
    return Node(NodeType.NUMBER_DATA, value)


def expr(op, *children):
    return Node(NodeType.EXPRESSION, op, list(children))


def ident(name):
    return Node(NodeType.IDENTIFIER_DATA, name)


class FakeSymbol:
    def __init__(self, kind, sequence_number):
        self.type = kind
        self.sequence_number = sequence_number


class FakeKind:
    name = "LOCAL_VAR"


def test_append_returns_list_node_and_keeps_order():
    lst = Node(NodeType.LIST)
    a, b = ident("a"), ident("b")
    assert lst.append(a) is lst
    lst.append(b)
    assert lst.children == [a, b]


def test_append_to_non_list_raises():
    with pytest.raises(ValueError):
        ident("x").append(ident("y"))


def test_format_tree_number_leaf():
    assert format_tree(num(42)) == "NUMBER_DATA(42)\n"


def test_format_tree_nesting_and_null():
    tree = Node(NodeType.LIST, children=[ident("x"), None])
    lines = format_tree(tree).splitlines()
    assert lines == ["LIST", " IDENTIFIER_DATA(x)", " (NULL)"]


def test_format_tree_shows_symbol():
    node = ident("v")
    node.symbol = FakeSymbol(FakeKind, 2)
    assert format_tree(node) == "IDENTIFIER_DATA(v) LOCAL_VAR(2)\n"


def test_graphviz_frame_and_escaping():
    root = Node(NodeType.LIST, children=[Node(NodeType.STRING_DATA, '"a\\b"')])
    out = graphviz_format(root)
    assert out.startswith('graph "" {\n node[shape=box];\n')
    assert out.endswith("}\n")
    assert 'STRING_DATA\\n\\"a\\\\b\\"' in out
    assert out.count(" -- ") == 1


def test_graphviz_null_child_edge():
    root = Node(NodeType.LIST, children=[None])
    out = graphviz_format(root)
    assert "NULL0 ;" in out


def test_syntax_tree_text_respects_environment(monkeypatch):
    tree = num(7)
    monkeypatch.delenv("GRAPHVIZ_OUTPUT", raising=False)
    assert syntax_tree_text(tree) == format_tree(tree)
    monkeypatch.setenv("GRAPHVIZ_OUTPUT", "1")
    assert syntax_tree_text(tree) == graphviz_format(tree)


def test_constant_addition_folds():
    result = simplify_tree(expr("+", num(2), num(3)))
    assert result.type is NodeType.NUMBER_DATA
    assert result.data == 5


def test_unary_minus_folds():
    result = simplify_tree(expr("-", num(9)))
    assert result.type is NodeType.NUMBER_DATA
    assert result.data == -9


def test_division_truncates_toward_zero():
    result = simplify_tree(expr("/", num(-7), num(2)))
    assert result.data == -3


def test_folding_wraps_to_int64():
    result = simplify_tree(expr("<<", num(1), num(63)))
    assert result.data == -(2**63)


def test_nested_folding_reaches_root():
    tree = expr("+", expr("-", num(4)), num(4))
    result = simplify_tree(tree)
    assert result.type is NodeType.NUMBER_DATA
    assert result.data == 0


def test_division_by_zero_is_error():
    with pytest.raises(CompileError):
        simplify_tree(expr("/", num(1), num(0)))


def test_multiplication_by_one_returns_operand():
    x = ident("x")
    assert simplify_tree(expr("*", x, num(1))) is x


def test_multiplication_by_power_of_two_becomes_shift():
    result = simplify_tree(expr("*", ident("x"), num(8)))
    assert result.data == "<<"
    assert result.children[1].data == 3


def test_division_by_power_of_two_becomes_right_shift():
    result = simplify_tree(expr("/", ident("x"), num(2)))
    assert result.data == ">>"
    assert result.children[1].data == 1


@pytest.mark.parametrize("factor", [3, 0, -4])
def test_non_power_of_two_is_left_alone(factor):
    result = simplify_tree(expr("*", ident("x"), num(factor)))
    assert result.data == "*"
    assert result.children[1].data == factor


def test_simplify_keeps_none_children():
    tree = Node(NodeType.LIST, children=[None, expr("+", num(1), num(1))])
    result = simplify_tree(tree)
    assert result.children[0] is None
    assert result.children[1].type is NodeType.NUMBER_DATA