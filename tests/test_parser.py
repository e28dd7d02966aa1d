"""
Test suite for the Ophis parser.

Tests cover:
- Operator precedence and associativity
- Contextual unary/binary operators and '**'
- Boolean tests and keyword comparisons
- Primaries: calls, subscripts, slices, attribute chains
- Atoms: literals, string concatenation, displays, yield and await
- Statements: assignment, augmented assignment, ';' separators
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from ophis.lexer.tokens import Token, TokenType, SourceLocation, Operator
from ophis.parser import (
    parse_string, parse_file, Program, CompKeyword,
    Assignment, AugmentedAssignment, Await, Operation,
    ComparisonOp, ComparisonKeyword, Truthy, Notty,
    AttributeRef, Subscription, Call, KeywordArgument, Slice,
    Identifier, Literal, Yield, Parenthesized,
    TupleDisplay, ListDisplay, SetDisplay, DictDisplay,
)


LOC = SourceLocation("<test>", 1, 1, 0)


def name(value: str) -> Identifier:
    return Identifier(value)


def num(value) -> Literal:
    token_type = TokenType.FLOAT if isinstance(value, float) else TokenType.INTEGER
    return Literal(Token(token_type, str(value), value, LOC))


def text(value: str) -> Literal:
    return Literal(Token(TokenType.STR, repr(value), value, LOC))


def binop(lhs, operator, rhs) -> Operation:
    return Operation.binary(lhs, operator, rhs)


class ParserTestCase(unittest.TestCase):
    """Shared helpers."""

    def parse_one(self, source: str):
        program = parse_string(source)
        self.assertEqual(len(program.body), 1, program.body)
        return program.body[0]


class TestPrecedence(ParserTestCase):
    """Binding strength and associativity of the operator levels."""

    def test_product_binds_tighter_than_sum(self):
        self.assertEqual(
            self.parse_one("2 + 3 * 4"),
            binop(num(2), Operator.ADD, binop(num(3), Operator.MUL, num(4)))
        )

    def test_left_associativity(self):
        self.assertEqual(
            self.parse_one("a - b - c"),
            binop(binop(name("a"), Operator.SUB, name("b")), Operator.SUB, name("c"))
        )
        self.assertEqual(
            self.parse_one("a / b // c % d"),
            binop(binop(binop(name("a"), Operator.DIV, name("b")), Operator.FLOOR_DIV, name("c")),
                  Operator.MOD, name("d"))
        )

    def test_bitwise_levels(self):
        self.assertEqual(
            self.parse_one("a | b ^ c & d << 1"),
            binop(name("a"), Operator.BIT_OR,
                  binop(name("b"), Operator.BIT_XOR,
                        binop(name("c"), Operator.BIT_AND,
                              binop(name("d"), Operator.SHL, num(1)))))
        )

    def test_long_chains(self):
        expr = self.parse_one("a + b + c + d + e")
        depth = 0
        while isinstance(expr, Operation):
            self.assertIsInstance(expr.rhs, Identifier)
            expr = expr.lhs
            depth += 1
        self.assertEqual(depth, 4)
        self.assertEqual(expr, name("a"))

    def test_parentheses_group(self):
        self.assertEqual(
            self.parse_one("(2 + 3) * 4"),
            binop(Parenthesized(binop(num(2), Operator.ADD, num(3))), Operator.MUL, num(4))
        )

    def test_matmul(self):
        self.assertEqual(self.parse_one("a @ b"), binop(name("a"), Operator.MATMUL, name("b")))


class TestUnaryAndPower(ParserTestCase):
    """Prefix operators, '**' and the lexer's unary guesses."""

    def test_power_with_signed_exponent(self):
        self.assertEqual(
            self.parse_one("2 ** -3"),
            binop(num(2), Operator.POW, Operation.unary(num(3), Operator.UNARY_SUB))
        )

    def test_power_is_right_associative(self):
        self.assertEqual(
            self.parse_one("2 ** 3 ** 4"),
            binop(num(2), Operator.POW, binop(num(3), Operator.POW, num(4)))
        )

    def test_unary_binds_looser_than_power(self):
        self.assertEqual(
            self.parse_one("-2 ** 2"),
            Operation.unary(binop(num(2), Operator.POW, num(2)), Operator.UNARY_SUB)
        )

    def test_unary_spellings(self):
        expected = Operation.unary(name("a"), Operator.UNARY_SUB)
        self.assertEqual(self.parse_one("-a"), expected)
        self.assertEqual(self.parse_one("- a"), expected)
        self.assertEqual(self.parse_one("~a"), Operation.unary(name("a"), Operator.UNARY_NOT))
        self.assertEqual(self.parse_one("+a"), Operation.unary(name("a"), Operator.UNARY_ADD))

    def test_nested_unary(self):
        self.assertEqual(
            self.parse_one("- -a"),
            Operation.unary(Operation.unary(name("a"), Operator.UNARY_SUB), Operator.UNARY_SUB)
        )

    def test_infix_minus_without_space(self):
        # The lexer reads '-1' as unary; in infix position it is a subtraction
        self.assertEqual(self.parse_one("a -1"), binop(name("a"), Operator.SUB, num(1)))
        self.assertEqual(self.parse_one("a+b"), binop(name("a"), Operator.ADD, name("b")))
        self.assertEqual(self.parse_one("1+2"), binop(num(1), Operator.ADD, num(2)))

    def test_unary_operand_of_product(self):
        self.assertEqual(
            self.parse_one("a * -b"),
            binop(name("a"), Operator.MUL, Operation.unary(name("b"), Operator.UNARY_SUB))
        )


class TestBooleanTests(ParserTestCase):
    """and/or/not and comparisons."""

    def test_and_wraps_plain_operands(self):
        self.assertEqual(
            self.parse_one("a and b"),
            ComparisonKeyword(Truthy(name("a")), CompKeyword.AND, Truthy(name("b")))
        )

    def test_comparison_operands_stay_unwrapped(self):
        self.assertEqual(
            self.parse_one("a < b and c"),
            ComparisonKeyword(
                ComparisonOp(name("a"), Operator.LESS_THAN, name("b")),
                CompKeyword.AND,
                Truthy(name("c"))
            )
        )

    def test_or_is_looser_than_and(self):
        self.assertEqual(
            self.parse_one("a or b and c"),
            ComparisonKeyword(
                Truthy(name("a")),
                CompKeyword.OR,
                ComparisonKeyword(Truthy(name("b")), CompKeyword.AND, Truthy(name("c")))
            )
        )

    def test_and_chain_is_left_associative(self):
        self.assertEqual(
            self.parse_one("a and b and c"),
            ComparisonKeyword(
                ComparisonKeyword(Truthy(name("a")), CompKeyword.AND, Truthy(name("b"))),
                CompKeyword.AND,
                Truthy(name("c"))
            )
        )

    def test_not(self):
        self.assertEqual(self.parse_one("not a"), Notty(Truthy(name("a"))))
        self.assertEqual(self.parse_one("not not a"), Notty(Notty(Truthy(name("a")))))
        self.assertEqual(
            self.parse_one("not a in b"),
            Notty(ComparisonKeyword(name("a"), CompKeyword.IN, name("b")))
        )

    def test_comparison_keywords(self):
        cases = {
            "a in b": CompKeyword.IN,
            "a not in b": CompKeyword.NOT_IN,
            "a is b": CompKeyword.IS,
            "a is not b": CompKeyword.IS_NOT,
        }
        for source, keyword in cases.items():
            self.assertEqual(self.parse_one(source), ComparisonKeyword(name("a"), keyword, name("b")), source)

    def test_comparison_operators(self):
        for spelling, operator in [("==", Operator.EQUALS), ("!=", Operator.NOT_EQUALS),
                                   ("<=", Operator.LESS_EQUAL), (">", Operator.GREATER_THAN)]:
            self.assertEqual(
                self.parse_one(f"a {spelling} b + 1"),
                ComparisonOp(name("a"), operator, binop(name("b"), Operator.ADD, num(1)))
            )


class TestPrimaries(ParserTestCase):
    """Calls, subscripts and attribute references."""

    def test_chained_postfix(self):
        self.assertEqual(
            self.parse_one("a.b.c()"),
            Call(AttributeRef(AttributeRef(name("a"), name("b")), name("c")), [])
        )

    def test_call_arguments(self):
        self.assertEqual(
            self.parse_one("f(1, x + 2, key=3,)"),
            Call(name("f"),
                 [num(1), binop(name("x"), Operator.ADD, num(2))],
                 [KeywordArgument("key", num(3))])
        )

    def test_call_on_call_result(self):
        self.assertEqual(self.parse_one("f()(x)"), Call(Call(name("f"), []), [name("x")]))

    def test_subscription(self):
        self.assertEqual(self.parse_one("a[0]"), Subscription(name("a"), [num(0)]))
        self.assertEqual(self.parse_one("a[i, j]"), Subscription(name("a"), [name("i"), name("j")]))

    def test_slices(self):
        self.assertEqual(self.parse_one("a[1:2]"), Subscription(name("a"), [Slice(num(1), num(2))]))
        self.assertEqual(self.parse_one("a[:]"), Subscription(name("a"), [Slice(None, None)]))
        self.assertEqual(self.parse_one("a[:n]"), Subscription(name("a"), [Slice(None, name("n"))]))
        self.assertEqual(
            self.parse_one("a[1:, 0]"),
            Subscription(name("a"), [Slice(num(1), None), num(0)])
        )

    def test_mixed_postfix_chain(self):
        self.assertEqual(
            self.parse_one("a.b[0](c).d"),
            AttributeRef(
                Call(Subscription(AttributeRef(name("a"), name("b")), [num(0)]), [name("c")]),
                name("d")
            )
        )

    def test_attribute_of_parenthesized(self):
        self.assertEqual(
            self.parse_one("(a + b).c"),
            AttributeRef(Parenthesized(binop(name("a"), Operator.ADD, name("b"))), name("c"))
        )

    def test_await(self):
        self.assertEqual(self.parse_one("await f()"), Await(Call(name("f"), [])))
        self.assertEqual(
            self.parse_one("await x ** 2"),
            binop(Await(name("x")), Operator.POW, num(2))
        )

    def test_identifier_offset(self):
        expr = self.parse_one("x = yy")
        self.assertEqual(expr.value.offset, 4)


class TestAtoms(ParserTestCase):
    """Literals, displays and yield."""

    def test_literals(self):
        self.assertEqual(self.parse_one("42"), num(42))
        self.assertEqual(self.parse_one("1.5"), num(1.5))
        self.assertEqual(self.parse_one("'hi'"), text("hi"))

    def test_constants(self):
        self.assertIs(self.parse_one("True").value, True)
        self.assertIs(self.parse_one("False").value, False)
        self.assertIsNone(self.parse_one("None").value)

    def test_integer_and_float_literals_differ(self):
        self.assertNotEqual(num(1), num(1.0))

    def test_string_concatenation(self):
        literal = self.parse_one('"a" "b"')
        self.assertEqual(literal, text("ab"))
        self.assertEqual(literal.kind, TokenType.STR)

    def test_bytes_concatenation(self):
        literal = self.parse_one("b'a' B'b' rb'\\c'")
        self.assertEqual(literal.kind, TokenType.BYTES)
        self.assertEqual(literal.value, b"ab\\c")

    def test_string_concatenation_across_lines(self):
        self.assertEqual(self.parse_one('("a"\n "b")'), Parenthesized(text("ab")))

    def test_tuples(self):
        self.assertEqual(self.parse_one("()"), TupleDisplay([]))
        self.assertEqual(self.parse_one("(a,)"), TupleDisplay([name("a")]))
        self.assertEqual(self.parse_one("(a, b)"), TupleDisplay([name("a"), name("b")]))
        self.assertEqual(self.parse_one("(a)"), Parenthesized(name("a")))

    def test_lists(self):
        self.assertEqual(self.parse_one("[]"), ListDisplay([]))
        self.assertEqual(self.parse_one("[1, 2,]"), ListDisplay([num(1), num(2)]))

    def test_dicts_and_sets(self):
        self.assertEqual(self.parse_one("{}"), DictDisplay([]))
        self.assertEqual(
            self.parse_one("{'a': 1, 'b': 2}"),
            DictDisplay([(text("a"), num(1)), (text("b"), num(2))])
        )
        self.assertEqual(self.parse_one("{1, 2}"), SetDisplay([num(1), num(2)]))

    def test_delimiters_make_one_logical_line(self):
        self.assertEqual(self.parse_one("(\n1\n)"), Parenthesized(num(1)))

    def test_yield(self):
        self.assertEqual(self.parse_one("yield"), Yield(None))
        self.assertEqual(self.parse_one("yield a + 1"), Yield(binop(name("a"), Operator.ADD, num(1))))
        self.assertEqual(self.parse_one("x = yield"), Assignment(name("x"), Yield(None)))
        self.assertEqual(self.parse_one("f((yield))"), Call(name("f"), [Parenthesized(Yield(None))]))


class TestStatements(ParserTestCase):
    """Assignments and statement separators."""

    def test_assignment(self):
        self.assertEqual(self.parse_one("x = 1"), Assignment(name("x"), num(1)))
        self.assertEqual(
            self.parse_one("a.b[0] = f(c)"),
            Assignment(Subscription(AttributeRef(name("a"), name("b")), [num(0)]), Call(name("f"), [name("c")]))
        )

    def test_augmented_assignment(self):
        self.assertEqual(
            self.parse_one("x //= 2"),
            AugmentedAssignment(name("x"), Operator.FLOOR_DIV_ASSIGN, num(2))
        )
        self.assertEqual(
            self.parse_one("x **= y - 1"),
            AugmentedAssignment(name("x"), Operator.POW_ASSIGN, binop(name("y"), Operator.SUB, num(1)))
        )

    def test_semicolons(self):
        program = parse_string("a = 1; b = 2; c\n")
        self.assertEqual(program.body, [Assignment(name("a"), num(1)), Assignment(name("b"), num(2)), name("c")])

    def test_trailing_semicolon(self):
        self.assertEqual(parse_string("a;\n").body, [name("a")])

    def test_multiple_lines(self):
        program = parse_string("x = 1\n\n# comment\ny = x * 2\n")
        self.assertEqual(program.body, [
            Assignment(name("x"), num(1)),
            Assignment(name("y"), binop(name("x"), Operator.MUL, num(2))),
        ])

    def test_empty_source(self):
        program = parse_string("")
        self.assertIsInstance(program, Program)
        self.assertEqual(program.body, [])

    def test_spans(self):
        program = parse_string("x = 1\nfoo(bar)\n", "demo.oph")
        assignment, call = program.body
        self.assertEqual((assignment.span.start.line, assignment.span.start.column), (1, 1))
        self.assertEqual(assignment.span.end.column, 5)
        self.assertEqual(call.span.start.line, 2)
        self.assertEqual(call.span.end.column, 8)
        self.assertEqual(program.span.start.filename, "demo.oph")

    def test_parents(self):
        assignment = self.parse_one("x = a + b")
        self.assertIs(assignment.value.parent, assignment)
        self.assertIs(assignment.value.lhs.parent, assignment.value)

    def test_parse_file(self):
        import tempfile

        with tempfile.NamedTemporaryFile("w", suffix=".oph", delete=False, encoding="utf-8") as f:
            f.write("total = price * (1 + rate)\n")
            path = f.name
        try:
            program = parse_file(path)
        finally:
            os.unlink(path)

        self.assertEqual(len(program.body), 1)
        self.assertEqual(program.body[0].span.start.filename, path)


if __name__ == '__main__':
    unittest.main()
