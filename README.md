# vslcomp

`vslcomp` is the back end of a compiler for VSL, a small teaching
language. VSL has 64-bit integers, global variables and arrays,
functions, `if`/`while`/`break` and a `print` statement. The package
takes an abstract syntax tree and does three things with it:

1. **Simplify**: `simplify_tree` folds constant expressions. It also
   turns multiplication or division by a positive power of two into a
   shift, and drops multiplication or division by 1.
2. **Bind names**: `create_tables` builds the global symbol table and
   one local table for each function, with nested block scopes. It
   links every identifier in a function body to its symbol. It moves
   string literals into a global string list and replaces each one with
   a `STRING_LIST_REFERENCE` node.
3. **Generate x86-64 assembly** in AT&T syntax for the System V calling
   convention: `generate_program`, or `CodeGenerator`. The output
   contains a `main` entry point. It checks the number of command-line
   arguments, parses them with `strtol`, passes them to the first
   function in the program, and exits with that function's return value.

## What the package does not do

The package does not read VSL source text, because it contains no
lexer or parser. It has no command-line program and it does not run an
assembler or linker. You build the syntax tree from `Node` objects
yourself, or with a parser of your own. You get the assembly back as a
string.

## Modules

| Module | Contents |
| --- | --- |
| `vslcomp.nodes` | `NodeType`, `Node` (with `append` for `LIST` nodes), `simplify_tree`, `format_tree`, `graphviz_format`, `syntax_tree_text`, `CompileError` |
| `vslcomp.symbol_table` | `Symbol`, `SymbolType`, `SymbolHashmap`, `SymbolTable`, `hash_string`, `DuplicateSymbolError` |
| `vslcomp.symbols` | `ProgramTables`, `create_tables`, `format_tables` |
| `vslcomp.emit` | register names, `Emitter`, `Platform`, `current_platform` |
| `vslcomp.generator` | `CodeGenerator`, `generate_program` |

## Tree shape

The tree has the following shape:

- The root is a `LIST` node. Its children are `GLOBAL_DECLARATION` and
  `FUNCTION` nodes.
- A `FUNCTION` node has three children: an `IDENTIFIER_DATA` name, a
  `LIST` of parameter identifiers, and the body.
- A `BLOCK` node holds either a statement `LIST` alone, or a `LIST` of
  declarations followed by a statement `LIST`. Each declaration's
  children are `IDENTIFIER_DATA` nodes.
- A `GLOBAL_DECLARATION` node holds a `LIST` of variables. A variable is
  either an `IDENTIFIER_DATA` node or an `ARRAY_INDEXING` node of name
  and length.
- `EXPRESSION` and `RELATION` nodes store their operator in `data`.
  `NUMBER_DATA` nodes store an `int`. `STRING_DATA` nodes store the
  literal including its quotes.

## Example

```python
from vslcomp.nodes import Node, NodeType as T, simplify_tree, syntax_tree_text
from vslcomp.symbols import create_tables, format_tables
from vslcomp.generator import generate_program

def ident(name):
    return Node(T.IDENTIFIER_DATA, name)

def num(value):
    return Node(T.NUMBER_DATA, value)

body = Node(T.BLOCK, children=[Node(T.LIST, children=[
    Node(T.PRINT_STATEMENT, children=[Node(T.LIST, children=[
        Node(T.STRING_DATA, '"sum"'),
        Node(T.EXPRESSION, "+", [ident("a"), num(2)]),
    ])]),
    Node(T.RETURN_STATEMENT, children=[Node(T.EXPRESSION, "*", [ident("a"), num(4)])]),
])])
start = Node(T.FUNCTION, children=[ident("start"), Node(T.LIST, children=[ident("a")]), body])
root = Node(T.LIST, children=[start])

root = simplify_tree(root)            # a * 4 becomes a << 2
print(syntax_tree_text(root))         # indented dump of the tree

tables = create_tables(root)          # binds names, collects strings
print(format_tables(tables, root))    # symbol tables, strings, bound tree

assembly = generate_program(tables)   # assembly text for the whole program
```

`syntax_tree_text` returns the output of `graphviz_format` when the
`GRAPHVIZ_OUTPUT` environment variable is set. Otherwise it returns the
indented text of `format_tree`.

## Errors

The package reports problems in the program being compiled by raising
`CompileError`. It raises it in these cases:

- an unrecognised symbol
- calling something that is not a function
- a call with the wrong number of arguments
- using a function or an array as a variable
- an array whose length is not a constant
- `break` outside a `while` loop
- a program with no functions
- division by zero, or a shift out of range, in a constant expression

A name declared twice in the same scope raises `DuplicateSymbolError`,
which is a subclass of `CompileError`.

## Platforms

Linux and macOS use different section names and symbol declarations.
`generate_program` targets the platform that `current_platform()`
reports. To target another one, pass it yourself:
`CodeGenerator(tables, Platform.MACOS).generate()`.

## Testing

The tests use pytest, which the `test` extra installs.