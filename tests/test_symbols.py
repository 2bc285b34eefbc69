import pytest

from vslcomp.nodes import CompileError, Node, NodeType
from vslcomp.symbol_table import DuplicateSymbolError, SymbolType
from vslcomp.symbols import create_tables, format_tables


def ident(name):
    return Node(NodeType.IDENTIFIER_DATA, name)


def number(value):
    return Node(NodeType.NUMBER_DATA, value)


def lst(*children):
    return Node(NodeType.LIST, children=list(children))


def block(statements, declarations=None):
    if declarations is None:
        return Node(NodeType.BLOCK, children=[lst(*statements)])
    decls = lst(*(Node(NodeType.LIST, children=[ident(n) for n in group]) for group in declarations))
    return Node(NodeType.BLOCK, children=[decls, lst(*statements)])


def function(name, params, body):
    return Node(NodeType.FUNCTION, children=[ident(name), lst(*(ident(p) for p in params)), body])


def assign(target, value):
    return Node(NodeType.ASSIGNMENT_STATEMENT, children=[target, value])


def globals_decl(*variables):
    return Node(NodeType.GLOBAL_DECLARATION, children=[lst(*variables)])


def test_global_symbols_in_order():
    root = lst(
        globals_decl(ident("a"), Node(NodeType.ARRAY_INDEXING, children=[ident("arr"), number(10)])),
        function("main", [], block([])),
    )
    tables = create_tables(root)
    summary = [(s.name, s.type, s.sequence_number) for s in tables.global_symbols]
    assert summary == [
        ("a", SymbolType.GLOBAL_VAR, 0),
        ("arr", SymbolType.GLOBAL_ARRAY, 1),
        ("main", SymbolType.FUNCTION, 2),
    ]
    assert tables.global_symbols[0].function_symtable is None


def test_parameters_and_locals():
    x_use = ident("x")
    y_use = ident("y")
    body = block([assign(y_use, x_use)], declarations=[["y"]])
    root = lst(function("f", ["x"], body))
    tables = create_tables(root)
    func = tables.global_symbols[0]
    local = func.function_symtable
    assert [(s.name, s.type, s.sequence_number) for s in local] == [
        ("x", SymbolType.PARAMETER, 0),
        ("y", SymbolType.LOCAL_VAR, 1),
    ]
    assert local[0].function_symtable is None
    assert local[1].function_symtable is local
    assert x_use.symbol is local[0]
    assert y_use.symbol is local[1]


def test_local_shadows_global():
    use = ident("a")
    root = lst(
        globals_decl(ident("a")),
        function("f", [], block([assign(use, number(1))], declarations=[["a"]])),
    )
    tables = create_tables(root)
    assert use.symbol.type is SymbolType.LOCAL_VAR
    assert use.symbol is not tables.global_symbols[0]
    assert use.symbol.name == "a"


def test_global_visible_in_function_and_later_function_callable():
    global_use = ident("g")
    callee = ident("h")
    call = Node(NodeType.FUNCTION_CALL, children=[callee, lst()])
    root = lst(
        function("f", [], block([assign(global_use, call)])),
        function("h", [], block([])),
        globals_decl(ident("g")),
    )
    tables = create_tables(root)
    assert global_use.symbol is tables.global_symbols[2]
    assert callee.symbol is tables.global_symbols[1]


def test_scope_ends_with_block():
    inner = block([assign(ident("t"), number(1))], declarations=[["t"]])
    root = lst(function("f", [], block([inner, assign(ident("t"), number(2))])))
    with pytest.raises(CompileError, match="unrecognized symbol 't'"):
        create_tables(root)


def test_unknown_identifier():
    root = lst(function("f", [], block([assign(ident("missing"), number(0))])))
    with pytest.raises(CompileError, match="missing"):
        create_tables(root)


def test_duplicate_global():
    root = lst(globals_decl(ident("a")), function("a", [], block([])))
    with pytest.raises(DuplicateSymbolError):
        create_tables(root)


def test_duplicate_parameter():
    root = lst(function("f", ["p", "p"], block([])))
    with pytest.raises(DuplicateSymbolError):
        create_tables(root)


def test_local_may_shadow_parameter_in_block():
    use = ident("p")
    root = lst(function("f", ["p"], block([assign(use, number(3))], declarations=[["p"]])))
    tables = create_tables(root)
    assert use.symbol.type is SymbolType.LOCAL_VAR
    assert len(tables.global_symbols[0].function_symtable) == 2


def test_strings_move_to_string_list():
    first = Node(NodeType.STRING_DATA, '"hello"')
    second = Node(NodeType.STRING_DATA, '"world"')
    printing = Node(NodeType.PRINT_STATEMENT, children=[lst(first, second)])
    root = lst(function("f", [], block([printing])))
    tables = create_tables(root)
    assert tables.string_list == ['"hello"', '"world"']
    assert first.type is NodeType.STRING_LIST_REFERENCE
    assert (first.data, second.data) == (0, 1)


def test_unknown_global_node():
    root = lst(Node(NodeType.RETURN_STATEMENT))
    with pytest.raises(CompileError):
        create_tables(root)


def test_format_nests_function_tables():
    root = lst(
        globals_decl(ident("a")),
        function("f", ["x"], block([Node(NodeType.PRINT_STATEMENT, children=[lst(Node(NodeType.STRING_DATA, '"s"'))])])),
    )
    text = create_tables(root).format()
    lines = text.splitlines()
    assert lines[:3] == ["0: GLOBAL_VAR(a)", "1: FUNCTION(f)", "    0: PARAMETER(x)"]
    assert " == STRING LIST == " in lines
    assert lines[-1] == '0: "s"'


def test_format_tables_includes_bound_tree(monkeypatch):
    monkeypatch.delenv("GRAPHVIZ_OUTPUT", raising=False)
    root = lst(function("f", ["x"], block([assign(ident("x"), number(1))])))
    tables = create_tables(root)
    text = format_tables(tables, root)
    assert text.startswith(tables.format())
    assert " == BOUND SYNTAX TREE == " in text
    assert "IDENTIFIER_DATA(x) PARAMETER(0)" in text