"""
Ophis Front-End Package

Lexer and parser for Ophis, an indentation-structured scripting language
with a Python-like surface syntax.

Architecture:
    ophis/
    ├── lexer/           # Tokenization and lexical analysis
    ├── parser/          # Syntax analysis and AST generation
    └── cli.py           # Token and AST dump tool, interactive loop
"""

__version__ = "0.1.0"

from .lexer import Lexer, tokenize_string, tokenize_file
from .parser import Parser, parse_source, parse_string, parse_file

__all__ = [
    # Core classes
    "Lexer",
    "Parser",

    # Convenience functions
    "tokenize_string",
    "tokenize_file",
    "parse_source",
    "parse_string",
    "parse_file",

    # Version info
    "__version__",
]
