"""Building the global and per-function symbol tables for a syntax tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from vslcomp.nodes import CompileError, Node, NodeType, syntax_tree_text
from vslcomp.symbol_table import Symbol, SymbolTable, SymbolType


@dataclass
class ProgramTables:
    """The global symbol table and the global list of string literals."""

    global_symbols: SymbolTable = field(default_factory=SymbolTable)
    string_list: list[str] = field(default_factory=list)

    def format(self) -> str:
        """Render the symbol tables, nested per function, and the string list."""
        lines: list[str] = []
        _format_table(self.global_symbols, 0, lines)
        lines.append("\n == STRING LIST == \n")
        lines.extend(f"{index}: {text}\n" for index, text in enumerate(self.string_list))
        return "".join(lines)


def _format_table(table: SymbolTable, nesting: int, lines: list[str]) -> None:
    indent = " " * (nesting * 4)
    for symbol in table:
        lines.append(f"{indent}{symbol.sequence_number}: {symbol.type.name}({symbol.name})\n")
        if symbol.type is SymbolType.FUNCTION and symbol.function_symtable is not None:
            _format_table(symbol.function_symtable, nesting + 1, lines)


def format_tables(tables: ProgramTables, root: Optional[Node]) -> str:
    """Render the tables followed by the syntax tree with its bound symbols."""
    return tables.format() + "\n == BOUND SYNTAX TREE == \n" + syntax_tree_text(root)


def create_tables(root: Node) -> ProgramTables:
    """Create the symbol tables for a program and bind names in its function bodies.

    String literals in function bodies are moved into the string list and
    their nodes become STRING_LIST_REFERENCE nodes holding the list index.
    """
    tables = ProgramTables()
    _find_globals(tables.global_symbols, root)
    for symbol in tables.global_symbols:
        if symbol.type is SymbolType.FUNCTION and symbol.function_symtable is not None:
            _bind_names(symbol.function_symtable, symbol.node.children[2], tables.string_list)
    return tables


def _find_globals(global_symbols: SymbolTable, root: Node) -> None:
    for node in root.children:
        if node is None:
            raise CompileError("unknown global node type")
        if node.type is NodeType.GLOBAL_DECLARATION:
            for var in node.children[0].children:
                if var.type is NodeType.ARRAY_INDEXING:
                    name, symtype = var.children[0].data, SymbolType.GLOBAL_ARRAY
                elif var.type is NodeType.IDENTIFIER_DATA:
                    name, symtype = var.data, SymbolType.GLOBAL_VAR
                else:
                    raise CompileError(f"unexpected {var.type.name} in global declaration")
                global_symbols.insert(Symbol(name, symtype, var))
        elif node.type is NodeType.FUNCTION:
            function_symtable = SymbolTable()
            function_symtable.hashmap.backup = global_symbols.hashmap
            for parameter in node.children[1].children:
                function_symtable.insert(Symbol(parameter.data, SymbolType.PARAMETER, parameter))
            global_symbols.insert(
                Symbol(
                    node.children[0].data,
                    SymbolType.FUNCTION,
                    node,
                    function_symtable=function_symtable,
                )
            )
        else:
            raise CompileError(f"unknown global node type {node.type.name}")


def _bind_names(local_symbols: SymbolTable, node: Optional[Node], string_list: list[str]) -> None:
    if node is None:
        return
    if node.type is NodeType.IDENTIFIER_DATA:
        symbol = local_symbols.hashmap.lookup(node.data)
        if symbol is None:
            raise CompileError(f"unrecognized symbol '{node.data}'")
        node.symbol = symbol
    elif node.type is NodeType.BLOCK:
        if len(node.children) == 2:
            local_symbols.push_scope()
            try:
                for declaration in node.children[0].children:
                    for identifier in declaration.children:
                        local_symbols.insert(
                            Symbol(
                                identifier.data,
                                SymbolType.LOCAL_VAR,
                                identifier,
                                function_symtable=local_symbols,
                            )
                        )
                _bind_names(local_symbols, node.children[1], string_list)
            finally:
                local_symbols.pop_scope()
        else:
            _bind_names(local_symbols, node.children[0], string_list)
    elif node.type is NodeType.STRING_DATA:
        string_list.append(node.data)
        node.type = NodeType.STRING_LIST_REFERENCE
        node.data = len(string_list) - 1
    else:
        for child in node.children:
            _bind_names(local_symbols, child, string_list)