"""
Error handling for the Ophis parser.

Every grammar violation derivable from source text is a ``ParseError``
the parser can report and recover from. ``InvariantError`` is reserved for
internal consistency checks that correct grammar code never trips.
"""

from typing import Optional, List, Union

from ..lexer.tokens import Token, TokenType, SourceLocation, Delimiter
from ..lexer.errors import Diagnostic, LexerError


class ParseError(Exception):
    """
    Exception raised when the parser meets a syntax error.

    Contains detailed diagnostic information for error reporting.
    """

    def __init__(
        self,
        message: str,
        location: SourceLocation,
        token: Optional[Token] = None,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="error",
            code=code,
            help_text=help_text,
            suggestions=suggestions
        )
        self.token = token

    @property
    def code(self) -> Optional[str]:
        return self.diagnostic.code

    @property
    def location(self) -> SourceLocation:
        return self.diagnostic.location

    @property
    def offset(self) -> int:
        return self.diagnostic.location.offset

    def __str__(self) -> str:
        return str(self.diagnostic)


class LexicalParseError(ParseError):
    """A lexer error surfaced through the parser's error channel."""

    def __init__(self, lexer_error: LexerError):
        diagnostic = lexer_error.diagnostic
        super().__init__(
            message=diagnostic.message,
            location=diagnostic.location,
            code="P014",
            help_text=diagnostic.help_text,
            suggestions=diagnostic.suggestions
        )
        self.lexer_error = lexer_error

    @property
    def lexer_code(self) -> Optional[str]:
        return self.lexer_error.code


class InvariantError(AssertionError):
    """An internal consistency check failed; this is a bug, not bad input."""


class SyntaxErrorRecovery:
    """
    Suggestion helpers used when building parser errors.
    """

    @staticmethod
    def suggest_missing_token(expected: Union[Delimiter, str, None]) -> List[str]:
        """Suggest what token might be missing."""
        token_suggestions = {
            Delimiter.PAREN_CLOSE: ["Add a closing parenthesis ')'"],
            Delimiter.LIST_CLOSE: ["Add a closing bracket ']'"],
            Delimiter.DICT_CLOSE: ["Add a closing brace '}'"],
        }
        return token_suggestions.get(expected, [])


# Common parser error codes for categorization
PARSER_ERROR_CODES = {
    "P001": "Unexpected token",
    "P004": "Unclosed delimiter",
    "P005": "Invalid expression",
    "P010": "Unexpected end of input",
    "P013": "Unexpected indent",
    "P014": "Lexical error",
    "P015": "Literal is not callable or subscriptable",
    "P016": "Unsupported construct",
}


def describe_token(token: Token) -> str:
    """Human readable name of a token for error messages."""
    if token.type in (TokenType.NEWLINE, TokenType.INDENT, TokenType.DEDENT):
        return token.type.name
    if token.type == TokenType.IDENTIFIER:
        return f"identifier '{token.lexeme}'"
    if token.type == TokenType.KEYWORD:
        return f"keyword '{token.lexeme}'"
    if token.is_literal:
        return f"{token.type.name.lower()} literal {token.lexeme}"
    return f"'{token.lexeme}'"


# Helper functions for creating common parser errors

def create_unexpected_token_error(expected: str, found: Token) -> ParseError:
    """Create an error for an unexpected token."""
    found_str = describe_token(found)

    return ParseError(
        message=f"Expected {expected}, found {found_str}",
        location=found.location,
        token=found,
        code="P001",
        help_text=f"The parser expected to see {expected} at this position, but found {found_str} instead.",
    )


def create_unclosed_delimiter_error(opening: Token, found: Token) -> ParseError:
    """Create an error for a bracket that is still open at the end of the line."""
    delimiter = opening.value
    closing = delimiter.counterpart

    return ParseError(
        message=f"Unclosed delimiter '{delimiter.char}'",
        location=opening.location,
        token=found,
        code="P004",
        help_text=f"The opening '{delimiter.char}' at {opening.location} was never closed.",
        suggestions=SyntaxErrorRecovery.suggest_missing_token(closing)
    )


def create_invalid_expression_error(reason: str, location: SourceLocation,
                                    token: Optional[Token] = None) -> ParseError:
    """Create an error for an invalid expression."""
    return ParseError(
        message=f"Invalid expression: {reason}",
        location=location,
        token=token,
        code="P005",
        help_text=reason,
        suggestions=["Check the expression syntax", "Ensure all operators have operands"]
    )


def create_unexpected_eof_error(expected: str, location: SourceLocation) -> ParseError:
    """Create an error for unexpected end of input."""
    return ParseError(
        message=f"Unexpected end of input, expected {expected}",
        location=location,
        code="P010",
        help_text=f"The token stream ended while the parser was expecting {expected}.",
    )


def create_unexpected_indent_error(token: Token) -> ParseError:
    """Create an error for an indented line with no block to belong to."""
    return ParseError(
        message="Unexpected indent",
        location=token.location,
        token=token,
        code="P013",
        help_text="Only compound statements open indented blocks.",
    )


def create_literal_postfix_error(literal: Token, postfix: Token) -> ParseError:
    """Create an error for a number followed by a call or subscript."""
    action = "callable" if postfix.is_delimiter(Delimiter.PAREN_OPEN) else "subscriptable"

    return ParseError(
        message=f"Numbers aren't {action}: {literal.lexeme}{postfix.lexeme}",
        location=postfix.location,
        token=postfix,
        code="P015",
        help_text="A numeric literal can't be followed by a call or a subscript.",
    )


def create_unsupported_error(construct: str, token: Token) -> ParseError:
    """Create an error for syntax the parser recognises but doesn't build."""
    return ParseError(
        message=f"{construct} is not supported",
        location=token.location,
        token=token,
        code="P016",
    )
