"""
Ophis Lexer Package

Implements the lexical analyzer (tokenizer) for the Ophis language, an
indentation-structured scripting language.

Key Features:
- Indent/Dedent tokens from an indentation stack
- Implicit line continuation inside brackets, explicit with a backslash
- Binary, octal, hexadecimal, decimal and float literals
- String and bytes literals with prefixes and escape decoding
- Longest-match operators with contextual unary +/-
- Error recovery and diagnostics with source locations
"""

from .tokens import (
    Token, TokenType, SourceLocation, Delimiter, Operator, Keyword, Prefix
)
from .lexer import Lexer, tokenize_string, tokenize_file
from .errors import LexerError, LexerWarning, Diagnostic

__all__ = [
    "Lexer",
    "tokenize_string",
    "tokenize_file",
    "Token",
    "TokenType",
    "SourceLocation",
    "Delimiter",
    "Operator",
    "Keyword",
    "Prefix",
    "LexerError",
    "LexerWarning",
    "Diagnostic",
]
