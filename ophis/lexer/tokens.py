"""
Token definitions for the Ophis lexer.

This module defines every lexical unit the lexer can produce:
- Token categories (identifiers, keywords, literals, operators, ...)
- Operators, including the contextual unary variants
- Keywords
- Bracket delimiters and their open/close pairing
- String prefix flags (raw, formatted, bytes)

Lookup tables at the bottom map source spellings to these values.
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, FrozenSet, Optional


class TokenType(Enum):
    """Category of a lexical token."""

    IDENTIFIER = auto()             # spam, _private, Ωmega
    KEYWORD = auto()                # if, not, None, ...
    INTEGER = auto()                # 42, 0x2A, 0b101010, 0o52
    FLOAT = auto()                  # 3.14, .5, 1e-4
    STR = auto()                    # "text", r'raw', """doc"""
    BYTES = auto()                  # b"data"
    OPERATOR = auto()               # + // **= -> , ...
    DELIMITER = auto()              # ( ) [ ] { }
    INDENT = auto()                 # Indentation increase
    DEDENT = auto()                 # Indentation decrease
    NEWLINE = auto()                # End of a logical line


class Delimiter(Enum):
    """Bracket delimiters, keyed by their source character."""

    PAREN_OPEN = "("
    PAREN_CLOSE = ")"
    LIST_OPEN = "["
    LIST_CLOSE = "]"
    DICT_OPEN = "{"
    DICT_CLOSE = "}"

    @classmethod
    def from_char(cls, char: str) -> Optional["Delimiter"]:
        """Return the delimiter spelled by ``char``, if any."""
        try:
            return cls(char)
        except ValueError:
            return None

    @property
    def char(self) -> str:
        return self.value

    @property
    def is_opening(self) -> bool:
        return self in _OPENING_DELIMITERS

    @property
    def is_closing(self) -> bool:
        return not self.is_opening

    @property
    def counterpart(self) -> "Delimiter":
        """The other half of this bracket pair."""
        return _DELIMITER_PAIRS[self]

    def is_matching(self, other: "Delimiter") -> bool:
        """Check whether ``other`` closes (or opens) this delimiter."""
        return _DELIMITER_PAIRS[self] is other


_OPENING_DELIMITERS = frozenset({
    Delimiter.PAREN_OPEN, Delimiter.LIST_OPEN, Delimiter.DICT_OPEN,
})

_DELIMITER_PAIRS = {
    Delimiter.PAREN_OPEN: Delimiter.PAREN_CLOSE,
    Delimiter.PAREN_CLOSE: Delimiter.PAREN_OPEN,
    Delimiter.LIST_OPEN: Delimiter.LIST_CLOSE,
    Delimiter.LIST_CLOSE: Delimiter.LIST_OPEN,
    Delimiter.DICT_OPEN: Delimiter.DICT_CLOSE,
    Delimiter.DICT_CLOSE: Delimiter.DICT_OPEN,
}


class Operator(Enum):
    """
    Operators and punctuation.

    UNARY_ADD, UNARY_SUB and UNARY_NOT have no spelling of their own; the
    lexer reclassifies ``+``/``-`` into them by looking at the next
    character, and the parser maps ``~`` onto UNARY_NOT in prefix position.
    """

    # Access and punctuation
    ACCESS = auto()                 # .
    COMMA = auto()                  # ,
    COLON = auto()                  # :
    SEMICOLON = auto()              # ;
    ARROW = auto()                  # -> (function annotation)

    # Arithmetic
    ADD = auto()                    # +
    SUB = auto()                    # -
    MUL = auto()                    # *
    MATMUL = auto()                 # @
    DIV = auto()                    # /
    FLOOR_DIV = auto()              # //
    MOD = auto()                    # %
    POW = auto()                    # **

    # Bitwise
    BIT_AND = auto()                # &
    BIT_OR = auto()                 # |
    BIT_XOR = auto()                # ^
    INVERT = auto()                 # ~
    SHL = auto()                    # <<
    SHR = auto()                    # >>

    # Comparison
    EQUALS = auto()                 # ==
    NOT_EQUALS = auto()             # !=
    LESS_THAN = auto()              # <
    LESS_EQUAL = auto()             # <=
    GREATER_THAN = auto()           # >
    GREATER_EQUAL = auto()          # >=

    # Assignment
    ASSIGN = auto()                 # =
    ADD_ASSIGN = auto()             # +=
    SUB_ASSIGN = auto()             # -=
    MUL_ASSIGN = auto()             # *=
    MATMUL_ASSIGN = auto()          # @=
    DIV_ASSIGN = auto()             # /=
    FLOOR_DIV_ASSIGN = auto()       # //=
    MOD_ASSIGN = auto()             # %=
    POW_ASSIGN = auto()             # **=
    AND_ASSIGN = auto()             # &=
    OR_ASSIGN = auto()              # |=
    XOR_ASSIGN = auto()             # ^=
    SHL_ASSIGN = auto()             # <<=
    SHR_ASSIGN = auto()             # >>=

    # Contextual unary forms
    UNARY_ADD = auto()
    UNARY_SUB = auto()
    UNARY_NOT = auto()

    @property
    def is_unary(self) -> bool:
        return self in UNARY_OPERATORS

    @property
    def is_comparison(self) -> bool:
        return self in COMPARISON_OPERATORS

    @property
    def is_augmented_assignment(self) -> bool:
        return self in AUGMENTED_ASSIGNMENTS

    @property
    def binary_form(self) -> "Operator":
        """Binary operator a unary spelling stands for in infix position."""
        return _BINARY_FORMS.get(self, self)

    @property
    def unary_form(self) -> Optional["Operator"]:
        """Unary operator a prefix-position spelling stands for."""
        return _UNARY_FORMS.get(self)

    @property
    def spelling(self) -> str:
        return OPERATOR_SPELLINGS.get(self, self.name)


class Keyword(Enum):
    """Reserved words, keyed by their spelling."""

    FALSE = "False"
    NONE = "None"
    TRUE = "True"
    AND = "and"
    AS = "as"
    ASSERT = "assert"
    AWAIT = "await"
    BREAK = "break"
    CLASS = "class"
    CONTINUE = "continue"
    DEF = "def"
    DEL = "del"
    ELIF = "elif"
    ELSE = "else"
    EXCEPT = "except"
    FINALLY = "finally"
    FOR = "for"
    FROM = "from"
    GLOBAL = "global"
    IF = "if"
    IMPORT = "import"
    IN = "in"
    IS = "is"
    LAMBDA = "lambda"
    NONLOCAL = "nonlocal"
    NOT = "not"
    OR = "or"
    PASS = "pass"
    RAISE = "raise"
    RETURN = "return"
    TRY = "try"
    WHILE = "while"
    WITH = "with"
    YIELD = "yield"

    @property
    def is_comparison(self) -> bool:
        """Keywords that can take part in an infix boolean test."""
        return self in COMPARISON_KEYWORDS

    @property
    def is_constant(self) -> bool:
        return self in (Keyword.TRUE, Keyword.FALSE, Keyword.NONE)

    @property
    def is_compound(self) -> bool:
        """Keywords that lead a statement form the parser doesn't build."""
        return self in COMPOUND_KEYWORDS


class Prefix(Enum):
    """Flags carried by a string literal prefix."""

    RAW = auto()
    FORMATTED = auto()
    BYTES = auto()
    IGNORE = auto()


@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in the source code.

    ``offset`` is the character offset from the start of the buffer;
    ``line`` and ``column`` are 1-based.
    """
    filename: str
    line: int
    column: int
    offset: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"

    def __repr__(self) -> str:
        return f"SourceLocation({self.filename!r}, {self.line}, {self.column}, {self.offset})"


@dataclass(frozen=True)
class Token:
    """
    A lexical token.

    ``lexeme`` is the raw source slice and ``value`` the classified
    payload: the name for identifiers, the ``Keyword``/``Operator``/
    ``Delimiter`` member, the number, or the decoded ``str``/``bytes``.
    """
    type: TokenType
    lexeme: str
    value: Any
    location: SourceLocation

    def __str__(self) -> str:
        if self.type in (TokenType.INDENT, TokenType.DEDENT, TokenType.NEWLINE):
            return self.type.name
        if isinstance(self.value, Enum):
            return f"{self.type.name}({self.value.name})"
        return f"{self.type.name}({self.value!r})"

    def __repr__(self) -> str:
        return (f"Token({self.type.name}, {self.lexeme!r}, "
                f"{self.value!r}, {self.location!r})")

    @property
    def offset(self) -> int:
        return self.location.offset

    @property
    def is_literal(self) -> bool:
        """Check if this token is a literal value."""
        return self.type in LITERAL_TYPES

    @property
    def is_unary(self) -> bool:
        """Check if this token is one of the unary operator lexemes."""
        return self.type == TokenType.OPERATOR and self.value.is_unary

    def is_keyword(self, keyword: Optional[Keyword] = None) -> bool:
        if self.type != TokenType.KEYWORD:
            return False
        return keyword is None or self.value is keyword

    def is_operator(self, operator: Optional[Operator] = None) -> bool:
        if self.type != TokenType.OPERATOR:
            return False
        return operator is None or self.value is operator

    def is_delimiter(self, delimiter: Optional[Delimiter] = None) -> bool:
        if self.type != TokenType.DELIMITER:
            return False
        return delimiter is None or self.value is delimiter


# Lookup tables used by the lexer and the parser

LITERAL_TYPES = frozenset({
    TokenType.INTEGER, TokenType.FLOAT, TokenType.STR, TokenType.BYTES,
})

KEYWORDS = {keyword.value: keyword for keyword in Keyword}

COMPARISON_KEYWORDS = frozenset({
    Keyword.AND, Keyword.OR, Keyword.IN, Keyword.IS, Keyword.NOT,
})

COMPOUND_KEYWORDS = frozenset({
    Keyword.ASSERT, Keyword.BREAK, Keyword.CLASS, Keyword.CONTINUE,
    Keyword.DEF, Keyword.DEL, Keyword.ELIF, Keyword.ELSE, Keyword.EXCEPT,
    Keyword.FINALLY, Keyword.FOR, Keyword.FROM, Keyword.GLOBAL, Keyword.IF,
    Keyword.IMPORT, Keyword.NONLOCAL, Keyword.PASS, Keyword.RAISE,
    Keyword.RETURN, Keyword.TRY, Keyword.WHILE, Keyword.WITH,
})

OPERATORS = {
    # Access and punctuation
    ".": Operator.ACCESS,
    ",": Operator.COMMA,
    ":": Operator.COLON,
    ";": Operator.SEMICOLON,
    "->": Operator.ARROW,

    # Arithmetic
    "+": Operator.ADD,
    "-": Operator.SUB,
    "*": Operator.MUL,
    "@": Operator.MATMUL,
    "/": Operator.DIV,
    "//": Operator.FLOOR_DIV,
    "%": Operator.MOD,
    "**": Operator.POW,

    # Bitwise
    "&": Operator.BIT_AND,
    "|": Operator.BIT_OR,
    "^": Operator.BIT_XOR,
    "~": Operator.INVERT,
    "<<": Operator.SHL,
    ">>": Operator.SHR,

    # Comparison
    "==": Operator.EQUALS,
    "!=": Operator.NOT_EQUALS,
    "<": Operator.LESS_THAN,
    "<=": Operator.LESS_EQUAL,
    ">": Operator.GREATER_THAN,
    ">=": Operator.GREATER_EQUAL,

    # Assignment
    "=": Operator.ASSIGN,
    "+=": Operator.ADD_ASSIGN,
    "-=": Operator.SUB_ASSIGN,
    "*=": Operator.MUL_ASSIGN,
    "@=": Operator.MATMUL_ASSIGN,
    "/=": Operator.DIV_ASSIGN,
    "//=": Operator.FLOOR_DIV_ASSIGN,
    "%=": Operator.MOD_ASSIGN,
    "**=": Operator.POW_ASSIGN,
    "&=": Operator.AND_ASSIGN,
    "|=": Operator.OR_ASSIGN,
    "^=": Operator.XOR_ASSIGN,
    "<<=": Operator.SHL_ASSIGN,
    ">>=": Operator.SHR_ASSIGN,
}

OPERATOR_SPELLINGS = {operator: spelling for spelling, operator in OPERATORS.items()}
OPERATOR_SPELLINGS.update({
    Operator.UNARY_ADD: "+",
    Operator.UNARY_SUB: "-",
    Operator.UNARY_NOT: "~",
})

# Characters that may appear in an operator spelling
OPERATOR_CHARS = frozenset("+=&@/<>*~!|%^-,:;.")

UNARY_OPERATORS = frozenset({
    Operator.UNARY_ADD, Operator.UNARY_SUB, Operator.UNARY_NOT,
})

COMPARISON_OPERATORS = frozenset({
    Operator.EQUALS, Operator.NOT_EQUALS,
    Operator.LESS_THAN, Operator.LESS_EQUAL,
    Operator.GREATER_THAN, Operator.GREATER_EQUAL,
})

AUGMENTED_ASSIGNMENTS = frozenset({
    Operator.ADD_ASSIGN, Operator.SUB_ASSIGN, Operator.MUL_ASSIGN,
    Operator.MATMUL_ASSIGN, Operator.DIV_ASSIGN, Operator.FLOOR_DIV_ASSIGN,
    Operator.MOD_ASSIGN, Operator.POW_ASSIGN, Operator.AND_ASSIGN,
    Operator.OR_ASSIGN, Operator.XOR_ASSIGN, Operator.SHL_ASSIGN,
    Operator.SHR_ASSIGN,
})

_BINARY_FORMS = {
    Operator.UNARY_ADD: Operator.ADD,
    Operator.UNARY_SUB: Operator.SUB,
}

_UNARY_FORMS = {
    Operator.ADD: Operator.UNARY_ADD,
    Operator.SUB: Operator.UNARY_SUB,
    Operator.INVERT: Operator.UNARY_NOT,
    Operator.UNARY_ADD: Operator.UNARY_ADD,
    Operator.UNARY_SUB: Operator.UNARY_SUB,
    Operator.UNARY_NOT: Operator.UNARY_NOT,
}


def _prefix_table():
    """Expand the prefix spellings to every upper/lower case mix."""
    base = {
        "r": frozenset({Prefix.RAW}),
        "u": frozenset({Prefix.IGNORE}),
        "b": frozenset({Prefix.BYTES}),
        "f": frozenset({Prefix.FORMATTED}),
        "br": frozenset({Prefix.BYTES, Prefix.RAW}),
        "rb": frozenset({Prefix.BYTES, Prefix.RAW}),
        "fr": frozenset({Prefix.FORMATTED, Prefix.RAW}),
        "rf": frozenset({Prefix.FORMATTED, Prefix.RAW}),
    }
    table = {}
    for spelling, flags in base.items():
        for mask in range(1 << len(spelling)):
            variant = "".join(
                char.upper() if mask & (1 << i) else char
                for i, char in enumerate(spelling)
            )
            table[variant] = flags
    return table


PREFIXES: dict = _prefix_table()

NO_PREFIX: FrozenSet[Prefix] = frozenset({Prefix.IGNORE})
