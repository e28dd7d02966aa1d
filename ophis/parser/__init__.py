"""
Ophis Parser Package

Implements a recursive descent parser for the Ophis language, one grammar
level per precedence tier. Produces AST nodes with source spans.

Key Features:
- Strict operator precedence with left-associative binary levels
- Contextual unary/binary +/- and a right-associative, sign-aware '**'
- Calls, subscripts, slices, attribute chains and container displays
- Per-line error recovery that also skips orphaned indented blocks
- Diagnostics with error codes and source locations
"""

from .ast_nodes import (
    AST, ASTNode, ASTNodeType, ASTVisitor, SourceSpan, CompKeyword,
    Program, Statement, Expression, Comparison, Primary, Atom,
    Assignment, AugmentedAssignment, Await, Operation,
    ComparisonOp, ComparisonKeyword, Truthy, Notty,
    AttributeRef, Subscription, Call, KeywordArgument, Slice,
    Identifier, Literal, Yield, Parenthesized,
    TupleDisplay, ListDisplay, SetDisplay, DictDisplay,
)
from .cursor import TokenCursor
from .parser import Parser, parse_source, parse_string, parse_file
from .errors import ParseError, LexicalParseError, InvariantError

__all__ = [
    # Core parser
    "Parser", "TokenCursor", "parse_source", "parse_string", "parse_file",

    # AST nodes
    "AST", "ASTNode", "ASTNodeType", "ASTVisitor", "SourceSpan", "CompKeyword",
    "Program", "Statement", "Expression", "Comparison", "Primary", "Atom",
    "Assignment", "AugmentedAssignment", "Await", "Operation",
    "ComparisonOp", "ComparisonKeyword", "Truthy", "Notty",
    "AttributeRef", "Subscription", "Call", "KeywordArgument", "Slice",
    "Identifier", "Literal", "Yield", "Parenthesized",
    "TupleDisplay", "ListDisplay", "SetDisplay", "DictDisplay",

    # Error handling
    "ParseError", "LexicalParseError", "InvariantError",
]
