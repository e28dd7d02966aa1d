"""
Ophis Recursive Descent Parser

Builds the AST for a token stream one logical line at a time. Each grammar
level is its own method, loosest binding first:

    line       := statement (';' statement)* NEWLINE
    statement  := test ('=' test | augassign test)?
    test       := or_test
    or_test    := and_test ('or' and_test)*
    and_test   := not_test ('and' not_test)*
    not_test   := 'not' not_test | comparison
    comparison := bitor (comp_op bitor | comp_kw bitor)?
    bitor .. term                 left-associative binary levels
    unary      := ('+'|'-'|'~') unary | power
    power      := await ('**' unary)?
    await      := 'await' primary | primary
    primary    := atom ('(' args ')' | '[' subscripts ']' | '.' NAME)*

A failed line is recorded in ``errors`` and skipped, together with any
indented block hanging off it.
"""

from typing import List, Optional, Tuple, Iterable, Callable, FrozenSet

from ..lexer.tokens import (
    Token, TokenType, SourceLocation, Delimiter, Operator, Keyword
)
from ..lexer.lexer import Lexer
from .ast_nodes import (
    ASTNode, SourceSpan, Program, Expression, Comparison, CompKeyword,
    Await, Operation, ComparisonOp, ComparisonKeyword, Truthy, Notty,
    AttributeRef, Subscription, Call, KeywordArgument, Slice,
    Identifier, Literal, Yield, Parenthesized, TupleDisplay, ListDisplay,
    SetDisplay, DictDisplay, Assignment, AugmentedAssignment
)
from .cursor import TokenCursor
from .errors import (
    ParseError, LexicalParseError, create_unexpected_token_error,
    create_unclosed_delimiter_error, create_invalid_expression_error,
    create_unexpected_eof_error, create_unexpected_indent_error,
    create_literal_postfix_error, create_unsupported_error
)


# Operators accepted at each left-associative binary level
BITOR_OPERATORS = frozenset({Operator.BIT_OR})
XOR_OPERATORS = frozenset({Operator.BIT_XOR})
BITAND_OPERATORS = frozenset({Operator.BIT_AND})
SHIFT_OPERATORS = frozenset({Operator.SHL, Operator.SHR})
ARITH_OPERATORS = frozenset({Operator.ADD, Operator.SUB})
TERM_OPERATORS = frozenset({
    Operator.MUL, Operator.MATMUL, Operator.DIV, Operator.MOD, Operator.FLOOR_DIV,
})

STRING_TYPES = frozenset({TokenType.STR, TokenType.BYTES})
NUMBER_TYPES = frozenset({TokenType.INTEGER, TokenType.FLOAT})


class Parser:
    """
    Ophis recursive descent parser.

    Consumes tokens through a ``TokenCursor`` with two tokens of
    lookahead and collects one ``ParseError`` per failed line.
    """

    def __init__(self, tokens: Iterable[Token], filename: str = "<unknown>"):
        """
        Initialize parser with a token stream.

        Args:
            tokens: Tokens from the lexer, in source order
            filename: Name of source file for error reporting
        """
        self.cursor = TokenCursor(tokens)
        self.filename = filename
        self.errors: List[ParseError] = []
        # Opening brackets of the expression being parsed, innermost last
        self._brackets: List[Token] = []

    def parse(self) -> Program:
        """
        Parse the token stream into an AST.

        Returns:
            Program node holding every statement that parsed; the errors
            for the lines that didn't are left in ``self.errors``
        """
        first = self.cursor.peek()
        start_location = first.location if first else SourceLocation(self.filename, 1, 1, 0)
        body: List[ASTNode] = []

        while not self.cursor.at_end():
            try:
                body.extend(self._parse_line())
            except ParseError as e:
                self.errors.append(e)
                self._brackets.clear()
                self._synchronize()

        end_location = self.cursor.last.location if self.cursor.last else start_location
        return Program(body, SourceSpan(start_location, end_location))

    def has_errors(self) -> bool:
        """Check if parser encountered any errors."""
        return len(self.errors) > 0

    # ------------------------------------------------------------------
    # Lines and statements
    # ------------------------------------------------------------------

    def _parse_line(self) -> List[ASTNode]:
        """Parse one logical line: statements separated by ';'."""
        statements = [self._parse_statement()]

        while self._match_operator(Operator.SEMICOLON):
            if self._at_line_end():
                break
            statements.append(self._parse_statement())

        if not self.cursor.at_end():
            if not self._check(TokenType.NEWLINE):
                raise self._unexpected("end of line")
            self.cursor.advance()

        return statements

    def _parse_statement(self) -> ASTNode:
        """Parse an expression statement, assignment or augmented assignment."""
        token = self._peek_required("a statement")

        if token.type == TokenType.INDENT:
            raise create_unexpected_indent_error(token)
        if token.is_keyword() and token.value.is_compound:
            raise create_unsupported_error(f"'{token.lexeme}' statement", token)

        target = self._parse_test()

        if self._match_operator(Operator.ASSIGN):
            value = self._parse_test()
            return Assignment(target, value, self._span_from(target.span.start))

        token = self.cursor.peek()
        if token is not None and token.is_operator() and token.value.is_augmented_assignment:
            self.cursor.advance()
            value = self._parse_test()
            return AugmentedAssignment(target, token.value, value, self._span_from(target.span.start))

        return target

    def _synchronize(self):
        """
        Skip the rest of a failed line.

        An indented block directly after the line is skipped as well; it
        can only belong to the statement that just failed.
        """
        depth = 0
        while not self.cursor.at_end():
            token = self.cursor.advance()

            if token.type == TokenType.INDENT:
                depth += 1
            elif token.type == TokenType.DEDENT:
                if depth > 0:
                    depth -= 1
                    if depth == 0:
                        return
            elif token.type == TokenType.NEWLINE and depth == 0:
                if not self._check(TokenType.INDENT):
                    return

    # ------------------------------------------------------------------
    # Boolean tests
    # ------------------------------------------------------------------

    def _parse_test(self) -> Expression:
        return self._parse_or_test()

    def _parse_or_test(self) -> Expression:
        lhs = self._parse_and_test()
        while self._match_keyword(Keyword.OR):
            rhs = self._parse_and_test()
            lhs = ComparisonKeyword(
                _as_test(lhs), CompKeyword.OR, _as_test(rhs), self._span_from(lhs.span.start)
            )
        return lhs

    def _parse_and_test(self) -> Expression:
        lhs = self._parse_not_test()
        while self._match_keyword(Keyword.AND):
            rhs = self._parse_not_test()
            lhs = ComparisonKeyword(
                _as_test(lhs), CompKeyword.AND, _as_test(rhs), self._span_from(lhs.span.start)
            )
        return lhs

    def _parse_not_test(self) -> Expression:
        not_token = self._match_keyword(Keyword.NOT)
        if not_token:
            operand = self._parse_not_test()
            return Notty(_as_test(operand), self._span_from(not_token.location))
        return self._parse_comparison()

    def _parse_comparison(self) -> Expression:
        """Parse at most one comparison; chains like a < b < c are rejected."""
        lhs = self._parse_bitor()

        token = self.cursor.peek()
        if token is not None and token.is_operator() and token.value.is_comparison:
            self.cursor.advance()
            rhs = self._parse_bitor()
            return ComparisonOp(lhs, token.value, rhs, self._span_from(lhs.span.start))

        keyword = self._match_comparison_keyword()
        if keyword is not None:
            rhs = self._parse_bitor()
            return ComparisonKeyword(lhs, keyword, rhs, self._span_from(lhs.span.start))

        return lhs

    def _match_comparison_keyword(self) -> Optional[CompKeyword]:
        """Consume 'in', 'is', 'is not' or 'not in' if one comes next."""
        token = self.cursor.peek()
        if token is None or not token.is_keyword():
            return None

        following = self.cursor.peek(1)
        if token.value is Keyword.IN:
            self.cursor.advance()
            return CompKeyword.IN
        if token.value is Keyword.IS:
            self.cursor.advance()
            if following is not None and following.is_keyword(Keyword.NOT):
                self.cursor.advance()
                return CompKeyword.IS_NOT
            return CompKeyword.IS
        if token.value is Keyword.NOT and following is not None and following.is_keyword(Keyword.IN):
            self.cursor.advance()
            self.cursor.advance()
            return CompKeyword.NOT_IN
        return None

    # ------------------------------------------------------------------
    # Arithmetic and bitwise operators
    # ------------------------------------------------------------------

    def _parse_bitor(self) -> Expression:
        return self._parse_binary_level(self._parse_xor, BITOR_OPERATORS)

    def _parse_xor(self) -> Expression:
        return self._parse_binary_level(self._parse_bitand, XOR_OPERATORS)

    def _parse_bitand(self) -> Expression:
        return self._parse_binary_level(self._parse_shift, BITAND_OPERATORS)

    def _parse_shift(self) -> Expression:
        return self._parse_binary_level(self._parse_arith, SHIFT_OPERATORS)

    def _parse_arith(self) -> Expression:
        return self._parse_binary_level(self._parse_term, ARITH_OPERATORS)

    def _parse_term(self) -> Expression:
        return self._parse_binary_level(self._parse_unary, TERM_OPERATORS)

    def _parse_binary_level(self, parse_operand: Callable[[], Expression],
                            operators: FrozenSet[Operator]) -> Expression:
        """Parse a left-associative chain of ``operators``."""
        lhs = parse_operand()
        while True:
            operator = self._match_infix(operators)
            if operator is None:
                return lhs
            rhs = parse_operand()
            lhs = Operation.binary(lhs, operator, rhs, self._span_from(lhs.span.start))

    def _match_infix(self, operators: FrozenSet[Operator]) -> Optional[Operator]:
        # In infix position '-1' is a subtraction, whatever the lexer guessed
        token = self.cursor.peek()
        if token is None or not token.is_operator():
            return None
        operator = token.value.binary_form
        if operator not in operators:
            return None
        self.cursor.advance()
        return operator

    def _parse_unary(self) -> Expression:
        """Parse prefix '+', '-' and '~'."""
        token = self.cursor.peek()
        if token is not None and token.is_operator() and token.value.unary_form is not None:
            self.cursor.advance()
            operand = self._parse_unary()
            return Operation.unary(operand, token.value.unary_form, self._span_from(token.location))
        return self._parse_power()

    def _parse_power(self) -> Expression:
        """Parse '**', which is right-associative and binds a signed exponent."""
        base = self._parse_await()
        if self._match_operator(Operator.POW):
            # A sign opens a unary exponent; otherwise this recurses into power
            exponent = self._parse_unary()
            return Operation.binary(base, Operator.POW, exponent, self._span_from(base.span.start))
        return base

    def _parse_await(self) -> Expression:
        await_token = self._match_keyword(Keyword.AWAIT)
        if await_token:
            value = self._parse_primary()
            return Await(value, self._span_from(await_token.location))
        return self._parse_primary()

    # ------------------------------------------------------------------
    # Primaries
    # ------------------------------------------------------------------

    def _parse_primary(self) -> Expression:
        """Parse an atom followed by any number of calls, subscripts and attributes."""
        expr = self._parse_atom()

        while True:
            token = self.cursor.peek()
            if token is None:
                return expr

            if token.is_delimiter(Delimiter.PAREN_OPEN) or token.is_delimiter(Delimiter.LIST_OPEN):
                if isinstance(expr, Literal) and expr.is_number:
                    raise create_literal_postfix_error(expr.token, token)
                if token.value is Delimiter.PAREN_OPEN:
                    expr = self._parse_call(expr)
                else:
                    expr = self._parse_subscription(expr)
            elif token.is_operator(Operator.ACCESS):
                self.cursor.advance()
                name = self._peek_required("an attribute name")
                if name.type != TokenType.IDENTIFIER:
                    raise self._unexpected("an attribute name")
                self.cursor.advance()
                expr = AttributeRef(expr, Identifier.from_token(name), self._span_from(expr.span.start))
            else:
                return expr

    def _parse_call(self, func: Expression) -> Call:
        """Parse a call's argument list; the current token is '('."""
        opening = self._open_bracket()
        args: List[Expression] = []
        keywords: List[KeywordArgument] = []

        while not self._check_delimiter(Delimiter.PAREN_CLOSE):
            name = self.cursor.peek()
            following = self.cursor.peek(1)
            if (name is not None and name.type == TokenType.IDENTIFIER
                    and following is not None and following.is_operator(Operator.ASSIGN)):
                self.cursor.advance()
                self.cursor.advance()
                value = self._parse_test()
                keywords.append(KeywordArgument(name.value, value, self._span_from(name.location)))
            else:
                if keywords:
                    token = self._peek_required("an argument")
                    raise create_invalid_expression_error(
                        "positional argument follows keyword argument", token.location, token
                    )
                args.append(self._parse_test())

            if not self._match_operator(Operator.COMMA):
                break

        self._close_bracket(opening)
        return Call(func, args, keywords, self._span_from(func.span.start))

    def _parse_subscription(self, value: Expression) -> Subscription:
        """Parse a subscript list; the current token is '['."""
        opening = self._open_bracket()
        subscripts = [self._parse_subscript()]

        while self._match_operator(Operator.COMMA):
            if self._check_delimiter(Delimiter.LIST_CLOSE):
                break
            subscripts.append(self._parse_subscript())

        self._close_bracket(opening)
        return Subscription(value, subscripts, self._span_from(value.span.start))

    def _parse_subscript(self) -> Expression:
        """Parse one subscript: an expression or a lower:upper slice."""
        start = self._peek_required("a subscript")

        lower = None
        if not start.is_operator(Operator.COLON):
            lower = self._parse_test()
            if not self._check_operator(Operator.COLON):
                return lower

        self.cursor.advance()  # Consume ':'

        upper = None
        if not (self._check_operator(Operator.COLON) or self._check_operator(Operator.COMMA)
                or self._check_delimiter(Delimiter.LIST_CLOSE)):
            upper = self._parse_test()

        if self._check_operator(Operator.COLON):
            raise create_unsupported_error("Slice step", self.cursor.peek())

        return Slice(lower, upper, self._span_from(start.location))

    # ------------------------------------------------------------------
    # Atoms
    # ------------------------------------------------------------------

    def _parse_atom(self) -> Expression:
        token = self._peek_required("an expression")

        if token.type == TokenType.IDENTIFIER:
            self.cursor.advance()
            return Identifier.from_token(token)

        if token.type in NUMBER_TYPES:
            self.cursor.advance()
            return Literal(token)

        if token.type in STRING_TYPES:
            return self._parse_string_literal()

        if token.is_keyword():
            if token.value.is_constant:
                self.cursor.advance()
                return Literal(token)
            if token.value is Keyword.YIELD:
                return self._parse_yield()

        if token.is_delimiter(Delimiter.PAREN_OPEN):
            return self._parse_parenthesized()
        if token.is_delimiter(Delimiter.LIST_OPEN):
            return self._parse_list_display()
        if token.is_delimiter(Delimiter.DICT_OPEN):
            return self._parse_brace_display()

        raise self._unexpected("an expression")

    def _parse_string_literal(self) -> Literal:
        """Merge adjacent string (or bytes) tokens into one literal."""
        first = self.cursor.advance()
        parts = [first]

        while True:
            token = self.cursor.peek()
            if token is None or token.type not in STRING_TYPES:
                break
            if token.type != first.type:
                raise create_invalid_expression_error(
                    "cannot mix bytes and str literals", token.location, token
                )
            parts.append(self.cursor.advance())

        if len(parts) == 1:
            return Literal(first)

        joiner = b"" if first.type == TokenType.BYTES else ""
        merged = Token(
            first.type,
            " ".join(part.lexeme for part in parts),
            joiner.join(part.value for part in parts),
            first.location
        )
        return Literal(merged, self._span_from(first.location))

    def _parse_yield(self) -> Yield:
        yield_token = self.cursor.advance()
        value = None
        if self._starts_expression(self.cursor.peek()):
            value = self._parse_test()
        return Yield(value, self._span_from(yield_token.location))

    def _parse_parenthesized(self) -> Expression:
        """Parse '()', '(x)' or a tuple display."""
        opening = self._open_bracket()

        if self._check_delimiter(Delimiter.PAREN_CLOSE):
            self._close_bracket(opening)
            return TupleDisplay([], self._span_from(opening.location))

        first = self._parse_test()
        if self._check_delimiter(Delimiter.PAREN_CLOSE):
            self._close_bracket(opening)
            return Parenthesized(first, self._span_from(opening.location))

        elements = self._parse_elements(first, Delimiter.PAREN_CLOSE)
        self._close_bracket(opening)
        return TupleDisplay(elements, self._span_from(opening.location))

    def _parse_list_display(self) -> ListDisplay:
        opening = self._open_bracket()

        elements: List[Expression] = []
        if not self._check_delimiter(Delimiter.LIST_CLOSE):
            elements = self._parse_elements(self._parse_test(), Delimiter.LIST_CLOSE)

        self._close_bracket(opening)
        return ListDisplay(elements, self._span_from(opening.location))

    def _parse_brace_display(self) -> Expression:
        """Parse a dict display, or a set display when the first item has no ':'."""
        opening = self._open_bracket()

        if self._check_delimiter(Delimiter.DICT_CLOSE):
            self._close_bracket(opening)
            return DictDisplay([], self._span_from(opening.location))

        first = self._parse_test()
        if not self._match_operator(Operator.COLON):
            elements = self._parse_elements(first, Delimiter.DICT_CLOSE)
            self._close_bracket(opening)
            return SetDisplay(elements, self._span_from(opening.location))

        items: List[Tuple[Expression, Expression]] = [(first, self._parse_test())]
        while self._match_operator(Operator.COMMA):
            if self._check_delimiter(Delimiter.DICT_CLOSE):
                break
            key = self._parse_test()
            self._expect_operator(Operator.COLON, "':'")
            items.append((key, self._parse_test()))

        self._close_bracket(opening)
        return DictDisplay(items, self._span_from(opening.location))

    def _parse_elements(self, first: Expression, closing: Delimiter) -> List[Expression]:
        """Parse ', element' repeats after ``first``, allowing a trailing comma."""
        elements = [first]
        while self._match_operator(Operator.COMMA):
            if self._check_delimiter(closing):
                break
            elements.append(self._parse_test())
        return elements

    # ------------------------------------------------------------------
    # Utility methods
    # ------------------------------------------------------------------

    def _open_bracket(self) -> Token:
        opening = self.cursor.advance()
        self._brackets.append(opening)
        return opening

    def _close_bracket(self, opening: Token) -> Token:
        """Consume the bracket that closes ``opening``."""
        closing = opening.value.counterpart
        if not self._check_delimiter(closing):
            raise self._unexpected(f"'{closing.char}'")
        self._brackets.pop()
        return self.cursor.advance()

    def _unexpected(self, expected: str) -> ParseError:
        """Build the error for a token that doesn't fit ``expected``."""
        token = self.cursor.peek()
        if token is None:
            location = self.cursor.last.location if self.cursor.last else SourceLocation(self.filename, 1, 1, 0)
            return create_unexpected_eof_error(expected, location)
        if token.type == TokenType.NEWLINE and self._brackets:
            return create_unclosed_delimiter_error(self._brackets[-1], token)
        return create_unexpected_token_error(expected, token)

    def _peek_required(self, expected: str) -> Token:
        token = self.cursor.peek()
        if token is None:
            raise self._unexpected(expected)
        return token

    def _expect_operator(self, operator: Operator, expected: str) -> Token:
        token = self._match_operator(operator)
        if token is None:
            raise self._unexpected(expected)
        return token

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token matches type without consuming."""
        token = self.cursor.peek()
        return token is not None and token.type == token_type

    def _check_operator(self, operator: Operator) -> bool:
        token = self.cursor.peek()
        return token is not None and token.is_operator(operator)

    def _check_delimiter(self, delimiter: Delimiter) -> bool:
        token = self.cursor.peek()
        return token is not None and token.is_delimiter(delimiter)

    def _match_operator(self, operator: Operator) -> Optional[Token]:
        """Consume the current token if it is ``operator``."""
        if self._check_operator(operator):
            return self.cursor.advance()
        return None

    def _match_keyword(self, keyword: Keyword) -> Optional[Token]:
        """Consume the current token if it is ``keyword``."""
        token = self.cursor.peek()
        if token is not None and token.is_keyword(keyword):
            return self.cursor.advance()
        return None

    def _at_line_end(self) -> bool:
        return self.cursor.at_end() or self._check(TokenType.NEWLINE)

    @staticmethod
    def _starts_expression(token: Optional[Token]) -> bool:
        """Check if ``token`` can begin an expression."""
        if token is None:
            return False
        if token.type == TokenType.IDENTIFIER or token.is_literal:
            return True
        if token.is_keyword():
            return token.value.is_constant or token.value in (Keyword.NOT, Keyword.AWAIT, Keyword.YIELD)
        if token.is_delimiter():
            return token.value.is_opening
        if token.is_operator():
            return token.value.unary_form is not None
        return False

    def _span_from(self, start: SourceLocation) -> SourceSpan:
        """Span from ``start`` to the last consumed token."""
        end = self.cursor.last.location if self.cursor.last else start
        return SourceSpan(start, end)


def _as_test(expr: Expression) -> Comparison:
    """Wrap a non-boolean operand of and/or/not in Truthy."""
    if isinstance(expr, Comparison):
        return expr
    return Truthy(expr, expr.span)


def parse_source(source: str, filename: str = "<string>") -> Tuple[Program, List[ParseError]]:
    """
    Lex and parse a source string without raising on bad input.

    Lexer errors come back as ``LexicalParseError`` alongside the parser's
    own errors, ordered by source offset.

    Returns:
        The program built from every line that parsed, and the errors
    """
    lexer = Lexer(source, filename)
    tokens = lexer.tokenize()

    parser = Parser(tokens, filename)
    program = parser.parse()

    errors: List[ParseError] = [LexicalParseError(e) for e in lexer.errors]
    errors.extend(parser.errors)
    errors.sort(key=lambda error: error.offset)
    return program, errors


def parse_string(source: str, filename: str = "<string>") -> Program:
    """
    Convenience function to parse a source string.

    Args:
        source: Source code string
        filename: Filename for error reporting

    Returns:
        Program AST

    Raises:
        ParseError: If lexing or parsing fails
    """
    program, errors = parse_source(source, filename)

    if errors:
        # Raise the first error encountered
        raise errors[0]

    return program


def parse_file(filepath: str) -> Program:
    """
    Convenience function to parse a source file.

    Args:
        filepath: Path to source file

    Returns:
        Program AST

    Raises:
        ParseError: If lexing or parsing fails
        OSError: If file cannot be read
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        source = f.read()

    return parse_string(source, filepath)
