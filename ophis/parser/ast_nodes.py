"""
Abstract Syntax Tree node definitions for Ophis.

The node classes form closed families that mirror the grammar layers:

    Statement   Assignment, AugmentedAssignment
    Expression  Await, Operation, Comparison, Primary
    Comparison  ComparisonOp, ComparisonKeyword, Truthy, Notty
    Primary     Atom, AttributeRef, Subscription, Call, Slice
    Atom        Identifier, Literal, Yield, Parenthesized and the displays

Nodes compare structurally on their ``_fields``; source spans are
carried along but never take part in equality.
"""

from abc import ABC
from typing import List, Optional, Any, Tuple, Union, Iterator
from dataclasses import dataclass
from enum import Enum

from ..lexer.tokens import SourceLocation, Token, TokenType, Keyword, Operator
from .errors import InvariantError


class ASTNodeType(Enum):
    """Enumeration of all AST node types."""

    # Top-level
    PROGRAM = "Program"

    # Statements
    ASSIGNMENT = "Assignment"
    AUGMENTED_ASSIGNMENT = "AugmentedAssignment"

    # Expressions
    AWAIT = "Await"
    OPERATION = "Operation"

    # Comparisons
    COMPARISON_OP = "ComparisonOp"
    COMPARISON_KEYWORD = "ComparisonKeyword"
    TRUTHY = "Truthy"
    NOTTY = "Notty"

    # Primaries
    ATTRIBUTE_REF = "AttributeRef"
    SUBSCRIPTION = "Subscription"
    CALL = "Call"
    SLICE = "Slice"
    KEYWORD_ARGUMENT = "KeywordArgument"

    # Atoms
    IDENTIFIER = "Identifier"
    LITERAL = "Literal"
    YIELD = "Yield"
    PARENTHESIZED = "Parenthesized"
    TUPLE_DISPLAY = "TupleDisplay"
    LIST_DISPLAY = "ListDisplay"
    SET_DISPLAY = "SetDisplay"
    DICT_DISPLAY = "DictDisplay"


class CompKeyword(Enum):
    """Keyword comparison operators, including the two-word ones."""

    AND = "and"
    OR = "or"
    IN = "in"
    NOT_IN = "not in"
    IS = "is"
    IS_NOT = "is not"


@dataclass
class SourceSpan:
    """Represents a span of source code (start and end locations)."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename == self.end.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start}-{self.end}"

    @classmethod
    def of_token(cls, token: Token) -> "SourceSpan":
        return cls(token.location, token.location)


class ASTVisitor:
    """
    Visitor base class.

    ``visit`` dispatches to ``visit_<NodeType>`` (e.g. ``visit_Operation``)
    and falls back to ``generic_visit``.
    """

    def visit(self, node: "ASTNode") -> Any:
        method = getattr(self, f"visit_{node.node_type.value}", self.generic_visit)
        return method(node)

    def generic_visit(self, node: "ASTNode") -> Any:
        for child in node.children():
            self.visit(child)


class ASTNode(ABC):
    """Base class for all AST nodes."""

    node_type: ASTNodeType
    _fields: Tuple[str, ...] = ()

    def __init__(self, span: Optional[SourceSpan] = None):
        self.span = span
        self.parent: Optional["ASTNode"] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        """Accept a visitor (visitor pattern)."""
        return visitor.visit(self)

    def children(self) -> List["ASTNode"]:
        """Get all child nodes, in field order."""
        return list(_walk_nodes(getattr(self, name) for name in self._fields))

    def set_parent(self, parent: "ASTNode"):
        """Set the parent node."""
        self.parent = parent

    def _adopt_children(self):
        for child in self.children():
            child.set_parent(self)

    def __eq__(self, other) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in self._fields)

    def __hash__(self) -> int:
        """Structural hash over the fields equality compares."""
        return hash((type(self),) + tuple(_hashable(getattr(self, name)) for name in self._fields))

    def __str__(self) -> str:
        return f"{self.node_type.value}@{self.span}"

    def __repr__(self) -> str:
        fields = ", ".join(f"{name}={getattr(self, name)!r}" for name in self._fields)
        return f"{self.__class__.__name__}({fields})"


def _hashable(value):
    if isinstance(value, (list, tuple)):
        return tuple(_hashable(item) for item in value)
    return value


def _walk_nodes(values) -> Iterator[ASTNode]:
    for value in values:
        if isinstance(value, ASTNode):
            yield value
        elif isinstance(value, (list, tuple)):
            yield from _walk_nodes(value)


# ============================================================================
# Top-level
# ============================================================================

class Program(ASTNode):
    """Root node: the ordered top-level statements and expressions."""

    node_type = ASTNodeType.PROGRAM
    _fields = ("body",)

    def __init__(self, body: List[ASTNode], span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.body = body
        self._adopt_children()


# ============================================================================
# Expressions
# ============================================================================

class Expression(ASTNode):
    """Base class for expressions."""


class Await(Expression):
    """``await primary``"""

    node_type = ASTNodeType.AWAIT
    _fields = ("value",)

    def __init__(self, value: "Primary", span: Optional[SourceSpan] = None):
        super().__init__(span)
        _require_primary("await", value)
        self.value = value
        self._adopt_children()


class Operation(Expression):
    """
    A unary or binary operator application.

    ``rhs is None`` marks a unary operation. Unary-only operators never
    get a right operand and binary operators always do; use ``unary`` and
    ``binary`` to build one.
    """

    node_type = ASTNodeType.OPERATION
    _fields = ("lhs", "operator", "rhs")

    def __init__(self, lhs: Expression, operator: Operator, rhs: Optional[Expression],
                 span: Optional[SourceSpan] = None):
        super().__init__(span)
        if operator.is_unary and rhs is not None:
            raise InvariantError(f"unary operator {operator.name} given a right operand")
        if not operator.is_unary and rhs is None:
            raise InvariantError(f"binary operator {operator.name} missing its right operand")
        self.lhs = lhs
        self.operator = operator
        self.rhs = rhs
        self._adopt_children()

    @classmethod
    def unary(cls, operand: Expression, operator: Operator,
              span: Optional[SourceSpan] = None) -> "Operation":
        return cls(operand, operator, None, span)

    @classmethod
    def binary(cls, lhs: Expression, operator: Operator, rhs: Expression,
               span: Optional[SourceSpan] = None) -> "Operation":
        return cls(lhs, operator, rhs, span)

    @property
    def is_unary(self) -> bool:
        return self.rhs is None


# ============================================================================
# Comparisons
# ============================================================================

class Comparison(Expression):
    """Base class for boolean tests."""


class ComparisonOp(Comparison):
    """``lhs == rhs``, ``lhs < rhs``, ..."""

    node_type = ASTNodeType.COMPARISON_OP
    _fields = ("lhs", "operator", "rhs")

    def __init__(self, lhs: Expression, operator: Operator, rhs: Expression,
                 span: Optional[SourceSpan] = None):
        super().__init__(span)
        if not operator.is_comparison:
            raise InvariantError(f"{operator.name} is not a comparison operator")
        self.lhs = lhs
        self.operator = operator
        self.rhs = rhs
        self._adopt_children()


class ComparisonKeyword(Comparison):
    """``lhs and rhs``, ``lhs not in rhs``, ``lhs is not rhs``, ..."""

    node_type = ASTNodeType.COMPARISON_KEYWORD
    _fields = ("lhs", "keyword", "rhs")

    def __init__(self, lhs: Expression, keyword: CompKeyword, rhs: Expression,
                 span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.lhs = lhs
        self.keyword = keyword
        self.rhs = rhs
        self._adopt_children()


class Truthy(Comparison):
    """A plain expression used as a boolean test."""

    node_type = ASTNodeType.TRUTHY
    _fields = ("value",)

    def __init__(self, value: Expression, span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.value = value
        self._adopt_children()


class Notty(Comparison):
    """``not value``"""

    node_type = ASTNodeType.NOTTY
    _fields = ("value",)

    def __init__(self, value: Expression, span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.value = value
        self._adopt_children()


# ============================================================================
# Primaries
# ============================================================================

class Primary(Expression):
    """Base class for expressions that accept attribute/call/subscript postfixes."""


def _require_primary(context: str, *operands: Any):
    for operand in operands:
        if not isinstance(operand, Primary):
            raise InvariantError(f"{context} operand is not a primary: {operand!r}")


class AttributeRef(Primary):
    """``lhs.rhs``; both operands must already be primaries."""

    node_type = ASTNodeType.ATTRIBUTE_REF
    _fields = ("lhs", "rhs")

    def __init__(self, lhs: Primary, rhs: Primary, span: Optional[SourceSpan] = None):
        super().__init__(span)
        _require_primary("attribute reference", lhs, rhs)
        self.lhs = lhs
        self.rhs = rhs
        self._adopt_children()


class Slice(Primary):
    """``lower:upper`` inside a subscript; either bound may be missing."""

    node_type = ASTNodeType.SLICE
    _fields = ("lower", "upper")

    def __init__(self, lower: Optional[Expression], upper: Optional[Expression],
                 span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.lower = lower
        self.upper = upper
        self._adopt_children()


class Subscription(Primary):
    """``value[subscripts]``"""

    node_type = ASTNodeType.SUBSCRIPTION
    _fields = ("value", "subscripts")

    def __init__(self, value: Primary, subscripts: List[Expression],
                 span: Optional[SourceSpan] = None):
        super().__init__(span)
        _require_primary("subscription", value)
        self.value = value
        self.subscripts = subscripts
        self._adopt_children()


class KeywordArgument(ASTNode):
    """``name=value`` inside a call's argument list."""

    node_type = ASTNodeType.KEYWORD_ARGUMENT
    _fields = ("name", "value")

    def __init__(self, name: str, value: Expression, span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.name = name
        self.value = value
        self._adopt_children()


class Call(Primary):
    """``func(args, name=value)``"""

    node_type = ASTNodeType.CALL
    _fields = ("func", "args", "keywords")

    def __init__(self, func: Primary, args: List[Expression],
                 keywords: Optional[List[KeywordArgument]] = None,
                 span: Optional[SourceSpan] = None):
        super().__init__(span)
        _require_primary("call", func)
        self.func = func
        self.args = args
        self.keywords = keywords or []
        self._adopt_children()


# ============================================================================
# Atoms
# ============================================================================

class Atom(Primary):
    """Base class for the smallest expression units."""


class Identifier(Atom):
    """A name, with the offset of its first character."""

    node_type = ASTNodeType.IDENTIFIER
    _fields = ("name",)

    def __init__(self, name: str, offset: int = 0, span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.name = name
        self.offset = offset

    @classmethod
    def from_token(cls, token: Token) -> "Identifier":
        return cls(token.value, token.offset, SourceSpan.of_token(token))


class Literal(Atom):
    """
    A resolved literal token: integer, float, string, bytes, or one of the
    ``True``/``False``/``None`` keywords.

    Adjacent string (or bytes) tokens are merged by the parser into a
    single token whose value is the concatenation.
    """

    node_type = ASTNodeType.LITERAL
    _fields = ("kind", "value")

    def __init__(self, token: Token, span: Optional[SourceSpan] = None):
        super().__init__(span or SourceSpan.of_token(token))
        if not (token.is_literal or (token.is_keyword() and token.value.is_constant)):
            raise InvariantError(f"{token.type.name} token is not a literal")
        self.token = token

    @property
    def kind(self) -> TokenType:
        return self.token.type

    @property
    def value(self) -> Any:
        if self.token.type == TokenType.KEYWORD:
            return _CONSTANT_VALUES[self.token.value]
        return self.token.value

    @property
    def is_number(self) -> bool:
        return self.token.type in (TokenType.INTEGER, TokenType.FLOAT)


_CONSTANT_VALUES = {
    Keyword.TRUE: True,
    Keyword.FALSE: False,
    Keyword.NONE: None,
}


class Yield(Atom):
    """``yield`` with an optional value."""

    node_type = ASTNodeType.YIELD
    _fields = ("value",)

    def __init__(self, value: Optional[Expression], span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.value = value
        self._adopt_children()


class Parenthesized(Atom):
    """``(value)``; keeps a grouped expression usable as a primary."""

    node_type = ASTNodeType.PARENTHESIZED
    _fields = ("value",)

    def __init__(self, value: Expression, span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.value = value
        self._adopt_children()


class TupleDisplay(Atom):
    """``()``, ``(a,)``, ``(a, b)``"""

    node_type = ASTNodeType.TUPLE_DISPLAY
    _fields = ("elements",)

    def __init__(self, elements: List[Expression], span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.elements = elements
        self._adopt_children()


class ListDisplay(Atom):
    """``[a, b]``"""

    node_type = ASTNodeType.LIST_DISPLAY
    _fields = ("elements",)

    def __init__(self, elements: List[Expression], span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.elements = elements
        self._adopt_children()


class SetDisplay(Atom):
    """``{a, b}``"""

    node_type = ASTNodeType.SET_DISPLAY
    _fields = ("elements",)

    def __init__(self, elements: List[Expression], span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.elements = elements
        self._adopt_children()


class DictDisplay(Atom):
    """``{}``, ``{key: value, ...}``"""

    node_type = ASTNodeType.DICT_DISPLAY
    _fields = ("items",)

    def __init__(self, items: List[Tuple[Expression, Expression]],
                 span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.items = items
        self._adopt_children()


# ============================================================================
# Statements
# ============================================================================

class Statement(ASTNode):
    """Base class for statements."""


class Assignment(Statement):
    """``target = value``"""

    node_type = ASTNodeType.ASSIGNMENT
    _fields = ("target", "value")

    def __init__(self, target: Expression, value: Expression,
                 span: Optional[SourceSpan] = None):
        super().__init__(span)
        self.target = target
        self.value = value
        self._adopt_children()


class AugmentedAssignment(Statement):
    """``target += value`` and the other in-place operators."""

    node_type = ASTNodeType.AUGMENTED_ASSIGNMENT
    _fields = ("target", "operator", "value")

    def __init__(self, target: Expression, operator: Operator, value: Expression,
                 span: Optional[SourceSpan] = None):
        super().__init__(span)
        if not operator.is_augmented_assignment:
            raise InvariantError(f"{operator.name} is not an augmented assignment")
        self.target = target
        self.operator = operator
        self.value = value
        self._adopt_children()


TopLevel = Union[Statement, Expression]

# Alias for the main AST type
AST = Program
