"""Syntax tree simplification, name binding and x86-64 code generation for VSL."""

__version__ = "0.1.0"