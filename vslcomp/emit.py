"""Register names, platform directives and an assembly text collector."""

from __future__ import annotations

import enum
import sys

RAX = "%rax"
RBX = "%rbx"
RCX = "%rcx"
CL = "%cl"
RDX = "%rdx"
RSP = "%rsp"
RBP = "%rbp"
RSI = "%rsi"
RDI = "%rdi"
R8 = "%r8"
R9 = "%r9"
R10 = "%r10"
R11 = "%r11"
R12 = "%r12"
R13 = "%r13"
R14 = "%r14"
R15 = "%r15"
RIP = "%rip"

_MACOS_DECLARATIONS = "\n".join(
    [
        ".set printf, _printf",
        ".set putchar, _putchar",
        ".set puts, _puts",
        ".set strtol, _strtol",
        ".set exit, _exit",
        ".set _main, main",
        ".global _main",
    ]
)


class Platform(enum.Enum):
    """Target platforms, which differ in section names and symbol prefixes."""

    LINUX = "linux"
    MACOS = "macos"

    @property
    def bss_section(self) -> str:
        return "__DATA, __bss" if self is Platform.MACOS else ".bss"

    @property
    def string_section(self) -> str:
        return "__TEXT, __cstring" if self is Platform.MACOS else ".rodata"

    @property
    def declare_symbols(self) -> str:
        return _MACOS_DECLARATIONS if self is Platform.MACOS else ".global main"


def current_platform() -> Platform:
    """Return the platform this process runs on."""
    return Platform.MACOS if sys.platform == "darwin" else Platform.LINUX


class Emitter:
    """Collects lines of assembly text."""

    def __init__(self) -> None:
        self._lines: list[str] = []

    def directive(self, text: str) -> None:
        """Add an assembler directive on a line of its own."""
        self._lines.append(f"{text}\n")

    def label(self, name: str) -> None:
        """Add a label definition."""
        self._lines.append(f"{name}:\n")

    def instruction(self, text: str) -> None:
        """Add an indented instruction."""
        self._lines.append(f"\t{text}\n")

    def text(self) -> str:
        """Return everything emitted so far."""
        return "".join(self._lines)