"""
Error handling for the Ophis lexer.

Provides error reporting with source location information, correction
suggestions, and IDE-friendly diagnostics. Every error the lexer can hit
on malformed source is a ``LexerError`` with one of the codes in
``ERROR_CODES``.
"""

from typing import Optional, List, Iterable
from dataclasses import dataclass

from .tokens import SourceLocation


@dataclass
class Diagnostic:
    """Base class for diagnostics (errors, warnings, info)."""
    message: str
    location: SourceLocation
    severity: str  # "error", "warning", "info", "hint"
    code: Optional[str] = None
    help_text: Optional[str] = None
    suggestions: Optional[List[str]] = None

    def __str__(self) -> str:
        severity_prefix = self.severity.upper()
        if self.code:
            severity_prefix = f"{severity_prefix}[{self.code}]"
        result = f"{severity_prefix}: {self.message}\n"
        result += f"  --> {self.location}\n"

        if self.help_text:
            result += f"  help: {self.help_text}\n"

        if self.suggestions:
            result += "  suggestions:\n"
            for suggestion in self.suggestions:
                result += f"    - {suggestion}\n"

        return result


class LexerError(Exception):
    """
    Exception raised when the lexer meets malformed source text.

    Contains detailed diagnostic information for error reporting.
    """

    def __init__(
        self,
        message: str,
        location: SourceLocation,
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


class LexerWarning:
    """
    Represents a lexer warning that doesn't stop tokenization.
    """

    def __init__(
        self,
        message: str,
        location: SourceLocation,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ):
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="warning",
            code=code,
            help_text=help_text,
            suggestions=suggestions
        )

    @property
    def code(self) -> Optional[str]:
        return self.diagnostic.code

    def __str__(self) -> str:
        return str(self.diagnostic)


class ErrorRecovery:
    """
    Suggestion helpers used when building lexer errors.
    """

    @staticmethod
    def suggest_prefix_corrections(invalid_prefix: str) -> List[str]:
        """Suggest valid string prefixes close to an invalid one."""
        from .tokens import PREFIXES

        candidates = sorted({prefix.lower() for prefix in PREFIXES})
        return ErrorRecovery._closest(invalid_prefix.lower(), candidates, max_distance=1)

    @staticmethod
    def suggest_operator_corrections(invalid_op: str) -> List[str]:
        """Suggest corrections for invalid operators."""
        from .tokens import OPERATORS

        candidates = [op for op in OPERATORS if abs(len(op) - len(invalid_op)) <= 1]
        return ErrorRecovery._closest(invalid_op, candidates, max_distance=1)

    @staticmethod
    def _closest(word: str, candidates: Iterable[str], max_distance: int) -> List[str]:
        scored = [
            (ErrorRecovery._edit_distance(word, candidate), candidate)
            for candidate in candidates
        ]
        return [candidate for distance, candidate in sorted(scored) if distance <= max_distance][:3]

    @staticmethod
    def _edit_distance(s1: str, s2: str) -> int:
        """Calculate Levenshtein distance between two strings."""
        if len(s1) < len(s2):
            return ErrorRecovery._edit_distance(s2, s1)

        if len(s2) == 0:
            return len(s1)

        previous_row = list(range(len(s2) + 1))
        for i, c1 in enumerate(s1):
            current_row = [i + 1]
            for j, c2 in enumerate(s2):
                insertions = previous_row[j + 1] + 1
                deletions = current_row[j] + 1
                substitutions = previous_row[j] + (c1 != c2)
                current_row.append(min(insertions, deletions, substitutions))
            previous_row = current_row

        return previous_row[-1]


# Error codes for categorization
ERROR_CODES = {
    "L001": "Invalid character",
    "L002": "Unterminated string literal",
    "L003": "Invalid integer literal",
    "L004": "Invalid hex escape",
    "L005": "Invalid unicode escape",
    "L006": "Invalid escape sequence",
    "L007": "Mixed tabs and spaces in indentation",
    "L008": "Invalid string prefix",
    "L010": "Unexpected end of input",
    "L011": "Inconsistent dedent",
    "L012": "Invalid float literal",
    "L013": "Invalid operator",
    "L014": "Mismatched delimiter",
    "L015": "Invalid octal escape",
    "L016": "Non-ASCII character in bytes literal",
}


# Helper functions for creating common errors

def create_invalid_character_error(char: str, location: SourceLocation) -> LexerError:
    """Create an error for a character that can't start any token."""
    if char.isprintable():
        help_text = f"The character '{char}' is not valid outside a string literal."
    else:
        help_text = f"Non-printable character (Unicode: U+{ord(char):04X}) is not allowed."

    return LexerError(
        message=f"Invalid character: {char!r}",
        location=location,
        code="L001",
        help_text=help_text,
    )


def create_unterminated_string_error(quote: str, location: SourceLocation) -> LexerError:
    """Create an error for an unterminated string literal."""
    return LexerError(
        message="Unterminated string literal",
        location=location,
        code="L002",
        help_text=f"String literals must be closed with a matching {quote} quote.",
        suggestions=[f"Add a closing {quote}", "Use a triple-quoted string to span lines"]
    )


def create_invalid_integer_error(lexeme: str, location: SourceLocation, reason: str) -> LexerError:
    """Create an error for a malformed integer literal."""
    return LexerError(
        message=f"Invalid integer literal: {lexeme!r}",
        location=location,
        code="L003",
        help_text=reason,
        suggestions=["Check the digits are valid for the literal's base",
                     "Ensure proper use of underscores for readability"]
    )


def create_invalid_float_error(lexeme: str, location: SourceLocation) -> LexerError:
    """Create an error for a malformed floating-point literal."""
    return LexerError(
        message=f"Invalid float literal: {lexeme!r}",
        location=location,
        code="L012",
        help_text="Floats are digits with an optional fraction and an optional exponent, e.g. 1.5e-3.",
    )


def create_invalid_escape_error(sequence: str, location: SourceLocation) -> LexerError:
    """Create an error for an unrecognised backslash escape."""
    return LexerError(
        message=f"Invalid escape sequence: {sequence!r}",
        location=location,
        code="L006",
        help_text="Recognised escapes are \\t \\n \\r \\' \\\" \\a \\b \\f \\v \\\\ \\xHH \\uHHHH \\UHHHHHHHH and octal \\ooo.",
        suggestions=["Use a raw string (r'...') to keep backslashes literally"]
    )


def create_invalid_hex_error(sequence: str, location: SourceLocation) -> LexerError:
    """Create an error for a malformed \\x escape."""
    return LexerError(
        message=f"Invalid hex escape: {sequence!r}",
        location=location,
        code="L004",
        help_text="A \\x escape takes exactly two hexadecimal digits.",
    )


def create_invalid_unicode_error(sequence: str, location: SourceLocation) -> LexerError:
    """Create an error for a malformed \\u or \\U escape."""
    return LexerError(
        message=f"Invalid unicode escape: {sequence!r}",
        location=location,
        code="L005",
        help_text="\\u takes four and \\U takes eight hexadecimal digits naming a code point up to U+10FFFF.",
    )


def create_invalid_octal_error(sequence: str, location: SourceLocation) -> LexerError:
    """Create an error for an out-of-range octal escape."""
    return LexerError(
        message=f"Invalid octal escape: {sequence!r}",
        location=location,
        code="L015",
        help_text="Octal escapes take one to three octal digits with a value up to \\377.",
    )


def create_invalid_operator_error(spelling: str, location: SourceLocation) -> LexerError:
    """Create an error for an operator-like character run that spells nothing."""
    suggestions = ErrorRecovery.suggest_operator_corrections(spelling)
    return LexerError(
        message=f"Invalid operator: {spelling!r}",
        location=location,
        code="L013",
        help_text=f"Did you mean one of: {', '.join(suggestions)}?" if suggestions else None,
        suggestions=suggestions
    )


def create_invalid_prefix_error(prefix: str, location: SourceLocation) -> LexerError:
    """Create an error for an unknown string prefix."""
    suggestions = ErrorRecovery.suggest_prefix_corrections(prefix)
    return LexerError(
        message=f"Invalid string prefix: {prefix!r}",
        location=location,
        code="L008",
        help_text="Valid prefixes are combinations of r, b, f and u (br, rb, fr, rf).",
        suggestions=suggestions
    )


def create_unexpected_eof_error(expected: str, location: SourceLocation) -> LexerError:
    """Create an error for input ending in the middle of a token."""
    return LexerError(
        message=f"Unexpected end of input, expected {expected}",
        location=location,
        code="L010",
    )


def create_indentation_error(width: int, levels: List[int], location: SourceLocation) -> LexerError:
    """Create an error for a dedent that lands between indentation levels."""
    known = ", ".join(str(level) for level in [0] + levels)
    return LexerError(
        message="Unindent does not match any outer indentation level",
        location=location,
        code="L011",
        help_text=f"Indentation of {width} columns; open levels are {known}.",
    )


def create_mismatched_delimiter_error(found: str, expected: Optional[str],
                                      location: SourceLocation) -> LexerError:
    """Create an error for a closing bracket that closes nothing."""
    if expected is None:
        message = f"Unmatched closing delimiter '{found}'"
        help_text = "There is no open bracket on this line for it to close."
    else:
        message = f"Closing delimiter '{found}' does not match '{expected}'"
        help_text = f"The innermost open bracket must be closed with '{expected}' first."
    return LexerError(
        message=message,
        location=location,
        code="L014",
        help_text=help_text,
    )


def create_non_ascii_bytes_error(char: str, location: SourceLocation) -> LexerError:
    """Create an error for a non-ASCII character inside a bytes literal."""
    return LexerError(
        message=f"Bytes literal can only contain ASCII characters, found {char!r}",
        location=location,
        code="L016",
        help_text="Use a \\x escape for byte values above 0x7F.",
    )


def create_mixed_indentation_warning(location: SourceLocation) -> LexerWarning:
    """Warn about tabs and spaces mixed in one line's indentation."""
    return LexerWarning(
        message="Indentation mixes tabs and spaces",
        location=location,
        code="L007",
        help_text="Tabs count as a single column, so mixed indentation may not line up as it looks.",
    )
