"""Generation of x86-64 assembly from a bound syntax tree."""

from __future__ import annotations

import itertools
from typing import Optional

from vslcomp.emit import (
    CL,
    R8,
    R9,
    RAX,
    RBP,
    RCX,
    RDI,
    RDX,
    RIP,
    RSI,
    RSP,
    Emitter,
    Platform,
    current_platform,
)
from vslcomp.nodes import CompileError, Node, NodeType
from vslcomp.symbol_table import Symbol, SymbolType
from vslcomp.symbols import ProgramTables

# The System V calling convention passes the first six integer arguments in registers.
REGISTER_PARAMS = (RDI, RSI, RDX, RCX, R8, R9)
NUM_REGISTER_PARAMS = len(REGISTER_PARAMS)

# The jump that skips the guarded code when the relation does not hold.
# After "cmpq lhs, rhs" the flags describe rhs - lhs.
_SKIP_JUMPS = {
    "=": "jne",
    "!=": "je",
    ">=": "jg",
    ">": "jge",
    "<=": "jl",
    "<": "jle",
}


def _param_count(function: Symbol) -> int:
    return len(function.node.children[1].children)


class CodeGenerator:
    """Turns the symbol tables and bound syntax tree of a program into assembly."""

    def __init__(self, tables: ProgramTables, platform: Optional[Platform] = None) -> None:
        self.tables = tables
        self.platform = platform if platform is not None else current_platform()
        self._out = Emitter()
        self._labels = itertools.count()
        self._current_function: Optional[Symbol] = None
        self._break_label: Optional[str] = None

    def generate(self) -> str:
        """Return the assembly text for the whole program."""
        self._out = Emitter()
        self._labels = itertools.count()
        self._break_label = None

        self._generate_stringtable()
        self._generate_global_variables()

        self._out.directive(".text")
        functions = [s for s in self.tables.global_symbols if s.type is SymbolType.FUNCTION]
        for function in functions:
            self._generate_function(function)
        if not functions:
            raise CompileError("program contained no functions")
        self._generate_main(functions[0])
        return self._out.text()

    # Helpers

    def _emit(self, text: str) -> None:
        self._out.instruction(text)

    def _unique_label(self) -> str:
        return f".L{next(self._labels)}"

    # Data sections

    def _generate_stringtable(self) -> None:
        out = self._out
        out.directive(f".section {self.platform.string_section}")
        out.directive('intout: .asciz "%ld"')
        out.directive('strout: .asciz "%s"')
        out.directive('errout: .asciz "Wrong number of arguments"')
        for index, text in enumerate(self.tables.string_list):
            out.directive(f"string{index}: \t.asciz {text}")

    def _generate_global_variables(self) -> None:
        out = self._out
        out.directive(f".section {self.platform.bss_section}")
        out.directive(".align 8")
        for symbol in self.tables.global_symbols:
            if symbol.type is SymbolType.GLOBAL_VAR:
                out.directive(f".{symbol.name}: \t.zero 8")
            elif symbol.type is SymbolType.GLOBAL_ARRAY:
                length_node = symbol.node.children[1]
                if length_node is None or length_node.type is not NodeType.NUMBER_DATA:
                    raise CompileError(
                        f"length of array '{symbol.name}' is not compile time known"
                    )
                out.directive(f".{symbol.name}: \t.zero {length_node.data * 8}")

    # Functions

    def _generate_function(self, function: Symbol) -> None:
        self._out.label(f".{function.name}")
        self._current_function = function

        self._emit(f"pushq {RBP}")
        self._emit(f"movq {RSP}, {RBP}")

        for register in REGISTER_PARAMS[: _param_count(function)]:
            self._emit(f"pushq {register}")

        if function.function_symtable is not None:
            for symbol in function.function_symtable:
                if symbol.type is SymbolType.LOCAL_VAR:
                    self._emit("pushq $0")

        self._generate_statement(function.node.children[2])

        self._emit(f"movq $0, {RAX}")
        self._emit(f"movq {RBP}, {RSP}")
        self._emit(f"popq {RBP}")
        self._emit("ret")

    def _generate_function_call(self, call: Node) -> None:
        symbol = call.children[0].symbol
        if symbol is None:
            raise CompileError(f"unbound name '{call.children[0].data}'")
        if symbol.type is not SymbolType.FUNCTION:
            raise CompileError(f"'{symbol.name}' is not a function")

        arguments = call.children[1].children
        parameter_count = _param_count(symbol)
        if parameter_count != len(arguments):
            raise CompileError(
                f"function '{symbol.name}' expects '{parameter_count}' arguments, "
                f"but '{len(arguments)}' were given"
            )

        for argument in reversed(arguments):
            self._generate_expression(argument)
            self._emit(f"pushq {RAX}")

        for register in REGISTER_PARAMS[:parameter_count]:
            self._emit(f"popq {register}")

        self._emit(f"call .{symbol.name}")

        if parameter_count > NUM_REGISTER_PARAMS:
            self._emit(f"addq ${(parameter_count - NUM_REGISTER_PARAMS) * 8}, {RSP}")

    # Memory access

    def _variable_access(self, node: Node) -> str:
        if node.type is not NodeType.IDENTIFIER_DATA:
            raise CompileError(f"expected a variable, found {node.type.name}")
        symbol = node.symbol
        if symbol is None:
            raise CompileError(f"unbound name '{node.data}'")

        if symbol.type is SymbolType.GLOBAL_VAR:
            return f".{symbol.name}({RIP})"
        if symbol.type is SymbolType.LOCAL_VAR:
            offset = symbol.sequence_number
            assert self._current_function is not None
            params = _param_count(self._current_function)
            if params > NUM_REGISTER_PARAMS:
                offset -= params - NUM_REGISTER_PARAMS
            return f"{(-offset - 1) * 8}({RBP})"
        if symbol.type is SymbolType.PARAMETER:
            if symbol.sequence_number < NUM_REGISTER_PARAMS:
                offset = (-symbol.sequence_number - 1) * 8
            else:
                offset = 16 + (symbol.sequence_number - NUM_REGISTER_PARAMS) * 8
            return f"{offset}({RBP})"
        if symbol.type is SymbolType.FUNCTION:
            raise CompileError(f"symbol '{symbol.name}' is a function, not a variable")
        raise CompileError(f"symbol '{symbol.name}' is an array, not a variable")

    def _array_access(self, node: Node) -> str:
        """Emit code leaving the element's address in RCX; return its memory operand."""
        if node.type is not NodeType.ARRAY_INDEXING:
            raise CompileError(f"expected an array element, found {node.type.name}")
        symbol = node.children[0].symbol
        if symbol is None:
            raise CompileError(f"unbound name '{node.children[0].data}'")
        if symbol.type is not SymbolType.GLOBAL_ARRAY:
            raise CompileError(f"symbol '{symbol.name}' is not an array")

        self._generate_expression(node.children[1])
        self._emit(f"leaq .{symbol.name}({RIP}), {RCX}")
        self._emit(f"leaq ({RCX}, {RAX}, 8), {RCX}")
        return f"({RCX})"

    # Expressions

    def _binary_operands(self, first: Node, second: Node) -> None:
        """Evaluate first then second; leave second in RAX and first in RCX."""
        self._generate_expression(first)
        self._emit(f"pushq {RAX}")
        self._generate_expression(second)
        self._emit(f"popq {RCX}")

    def _generate_expression(self, expression: Node) -> None:
        kind = expression.type
        if kind is NodeType.NUMBER_DATA:
            self._emit(f"movq ${expression.data}, {RAX}")
        elif kind is NodeType.IDENTIFIER_DATA:
            self._emit(f"movq {self._variable_access(expression)}, {RAX}")
        elif kind is NodeType.ARRAY_INDEXING:
            self._emit(f"movq {self._array_access(expression)}, {RAX}")
        elif kind is NodeType.EXPRESSION:
            self._generate_operation(expression)
        elif kind is NodeType.FUNCTION_CALL:
            self._generate_function_call(expression)
        else:
            raise CompileError(f"unknown expression type {kind.name}")

    def _generate_operation(self, expression: Node) -> None:
        op = expression.data
        children = expression.children
        if op == "+":
            self._binary_operands(children[0], children[1])
            self._emit(f"addq {RCX}, {RAX}")
        elif op == "-":
            if len(children) == 1:
                self._generate_expression(children[0])
                self._emit(f"negq {RAX}")
            else:
                self._binary_operands(children[1], children[0])
                self._emit(f"subq {RCX}, {RAX}")
        elif op == "*":
            self._binary_operands(children[0], children[1])
            self._emit(f"imulq {RCX}, {RAX}")
        elif op == "/":
            self._generate_expression(children[1])
            self._emit(f"pushq {RAX}")
            self._generate_expression(children[0])
            self._emit("cqo")
            self._emit(f"popq {RCX}")
            self._emit(f"idivq {RCX}")
        elif op == "<<":
            self._binary_operands(children[1], children[0])
            self._emit(f"salq {CL}, {RAX}")
        elif op == ">>":
            self._binary_operands(children[1], children[0])
            self._emit(f"sarq {CL}, {RAX}")
        else:
            raise CompileError(f"unknown expression operation '{op}'")

    # Statements

    def _generate_assignment(self, statement: Node) -> None:
        dest, expression = statement.children[0], statement.children[1]
        self._generate_expression(expression)
        if dest.type is NodeType.IDENTIFIER_DATA:
            self._emit(f"movq {RAX}, {self._variable_access(dest)}")
        else:
            self._emit(f"pushq {RAX}")
            dest_mem = self._array_access(dest)
            self._emit(f"popq {RAX}")
            self._emit(f"movq {RAX}, {dest_mem}")

    def _generate_print(self, statement: Node) -> None:
        for item in statement.children[0].children:
            if item.type is NodeType.STRING_LIST_REFERENCE:
                self._emit(f"leaq strout({RIP}), {RDI}")
                self._emit(f"leaq string{item.data}({RIP}), {RSI}")
            else:
                self._generate_expression(item)
                self._emit(f"movq {RAX}, {RSI}")
                self._emit(f"leaq intout({RIP}), {RDI}")
            self._emit("call safe_printf")
        self._emit(f"movq $'\\n', {RDI}")
        self._emit("call putchar")

    def _generate_return(self, statement: Node) -> None:
        self._generate_expression(statement.children[0])
        self._emit(f"movq {RBP}, {RSP}")
        self._emit(f"popq {RBP}")
        self._emit("ret")

    def _generate_relation(self, relation: Node) -> str:
        """Emit the comparison and return the jump taken when it fails."""
        skip = _SKIP_JUMPS.get(relation.data)
        if skip is None:
            raise CompileError(f"unknown relation '{relation.data}'")
        self._binary_operands(relation.children[0], relation.children[1])
        self._emit(f"cmpq {RCX}, {RAX}")
        return skip

    def _generate_if(self, statement: Node) -> None:
        skip = self._generate_relation(statement.children[0])
        then_label = self._unique_label()
        else_label = self._unique_label()
        endif_label = self._unique_label()

        self._emit(f"{skip} {else_label}")
        self._out.label(then_label)
        self._generate_statement(statement.children[1])
        self._emit(f"jmp {endif_label}")
        self._out.label(else_label)
        if len(statement.children) > 2:
            self._generate_statement(statement.children[2])
        self._out.label(endif_label)

    def _generate_while(self, statement: Node) -> None:
        start_label = self._unique_label()
        end_label = self._unique_label()
        enclosing = self._break_label
        self._break_label = end_label
        try:
            self._out.label(start_label)
            skip = self._generate_relation(statement.children[0])
            self._emit(f"{skip} {end_label}")
            self._generate_statement(statement.children[1])
            self._emit(f"jmp {start_label}")
            self._out.label(end_label)
        finally:
            self._break_label = enclosing

    def _generate_break(self) -> None:
        if self._break_label is None:
            raise CompileError("break statement outside of a while loop")
        self._emit(f"jmp {self._break_label}")

    def _generate_statement(self, node: Node) -> None:
        kind = node.type
        if kind is NodeType.BLOCK:
            for statement in node.children[-1].children:
                self._generate_statement(statement)
        elif kind is NodeType.ASSIGNMENT_STATEMENT:
            self._generate_assignment(node)
        elif kind is NodeType.PRINT_STATEMENT:
            self._generate_print(node)
        elif kind is NodeType.RETURN_STATEMENT:
            self._generate_return(node)
        elif kind is NodeType.IF_STATEMENT:
            self._generate_if(node)
        elif kind is NodeType.WHILE_STATEMENT:
            self._generate_while(node)
        elif kind is NodeType.BREAK_STATEMENT:
            self._generate_break()
        elif kind is NodeType.FUNCTION_CALL:
            self._generate_function_call(node)
        else:
            raise CompileError(f"unknown statement type {kind.name}")

    # Entry point

    def _generate_safe_printf(self) -> None:
        self._out.label("safe_printf")
        self._emit(f"pushq {RBP}")
        self._emit(f"movq {RSP}, {RBP}")
        # Round the stack pointer down to a 16-byte boundary for the call.
        self._emit(f"andq $-16, {RSP}")
        self._emit("call printf")
        self._emit(f"movq {RBP}, {RSP}")
        self._emit(f"popq {RBP}")
        self._emit("ret")

    def _generate_main(self, first: Symbol) -> None:
        out = self._out
        out.label("main")
        self._emit(f"pushq {RBP}")
        self._emit(f"movq {RSP}, {RBP}")

        argc, argv = RDI, RSI
        expected_args = _param_count(first)

        self._emit(f"subq $1, {argc}")
        self._emit(f"cmpq ${expected_args}, {argc}")
        self._emit("jne ABORT")

        if expected_args:
            self._emit(f"addq ${expected_args * 8}, {argv}")
            self._emit(f"movq {argc}, {RCX}")
            out.label("PARSE_ARGV")
            self._emit(f"pushq {argv}")
            self._emit(f"pushq {RCX}")

            self._emit(f"movq ({argv}), {RDI}")
            self._emit(f"movq $0, {RSI}")
            self._emit(f"movq $10, {RDX}")
            self._emit("call strtol")

            self._emit(f"popq {RCX}")
            self._emit(f"popq {argv}")
            self._emit(f"pushq {RAX}")

            self._emit(f"subq $8, {argv}")
            self._emit("loop PARSE_ARGV")

            for register in REGISTER_PARAMS[:expected_args]:
                self._emit(f"popq {register}")

        self._emit(f"call .{first.name}")
        self._emit(f"movq {RAX}, {RDI}")
        self._emit("call exit")

        out.label("ABORT")
        self._emit(f"leaq errout({RIP}), {RDI}")
        self._emit("call puts")
        self._emit(f"movq $1, {RDI}")
        self._emit("call exit")

        self._generate_safe_printf()
        out.directive(self.platform.declare_symbols)


def generate_program(tables: ProgramTables) -> str:
    """Return the assembly for a program for the platform this process runs on."""
    return CodeGenerator(tables).generate()