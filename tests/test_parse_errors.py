"""
Test suite for Ophis parser diagnostics and internals.

Tests cover:
- Parser error codes and locations
- Line-level error recovery, including orphaned indented blocks
- Lexer errors surfaced through the parser
- The token cursor's lookahead bound
- AST construction invariants
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from ophis.lexer.tokens import Token, TokenType, SourceLocation, Operator, Keyword
from ophis.parser import (
    Parser, TokenCursor, parse_source, parse_string,
    ParseError, LexicalParseError, InvariantError,
    Assignment, Operation, AttributeRef, Identifier, Literal, AugmentedAssignment,
    ComparisonOp, Call, ASTVisitor,
)
from ophis.parser.errors import PARSER_ERROR_CODES


LOC = SourceLocation("<test>", 1, 1, 0)


def token(token_type: TokenType, lexeme: str, value=None) -> Token:
    return Token(token_type, lexeme, value, LOC)


class TestErrorCodes(unittest.TestCase):
    """Each syntax error maps to its code."""

    def assertParseError(self, source: str, code: str) -> ParseError:
        with self.assertRaises(ParseError, msg=source) as ctx:
            parse_string(source)
        self.assertEqual(ctx.exception.code, code, f"{source!r}: {ctx.exception}")
        return ctx.exception

    def test_numbers_are_not_callable(self):
        error = self.assertParseError("5(", "P015")
        self.assertIn("callable", error.diagnostic.message)
        error = self.assertParseError("5[0]", "P015")
        self.assertIn("subscriptable", error.diagnostic.message)
        self.assertParseError("1.5(x)", "P015")

    def test_parenthesized_number_is_still_a_primary(self):
        program = parse_string("(5)(x)")
        self.assertIsInstance(program.body[0], Call)

    def test_unexpected_token(self):
        self.assertParseError("a = *", "P001")
        self.assertParseError("a b", "P001")
        self.assertParseError("a.1", "P001")
        self.assertParseError("f(a b)", "P001")

    def test_comparisons_do_not_chain(self):
        self.assertParseError("a < b < c", "P001")

    def test_unclosed_delimiter_points_at_opening_bracket(self):
        error = self.assertParseError("x = (1 +\n", "P004")
        self.assertEqual((error.location.line, error.location.column), (1, 5))
        self.assertParseError("f(1\n", "P004")
        self.assertParseError("[1, 2", "P004")

    def test_mixing_str_and_bytes(self):
        self.assertParseError("'a' b'b'", "P005")

    def test_positional_after_keyword_argument(self):
        self.assertParseError("f(x=1, 2)", "P005")

    def test_unexpected_indent(self):
        self.assertParseError("a\n    b\n", "P013")

    def test_lexer_errors_are_wrapped(self):
        error = self.assertParseError("a = $\n", "P014")
        self.assertIsInstance(error, LexicalParseError)
        self.assertEqual(error.lexer_code, "L001")

    def test_slice_step_is_unsupported(self):
        self.assertParseError("a[1:2:3]", "P016")
        self.assertParseError("a[::2]", "P016")

    def test_compound_statements_are_unsupported(self):
        for source in ["if x:\n    y\n", "while True:\n    pass\n", "def f():\n    pass\n",
                       "return x", "import os"]:
            self.assertParseError(source, "P016")

    def test_every_code_is_documented(self):
        for code in ["P001", "P004", "P005", "P010", "P013", "P014", "P015", "P016"]:
            self.assertIn(code, PARSER_ERROR_CODES)

    def test_rendered_diagnostic(self):
        error = self.assertParseError("a = *\n", "P001")
        rendered = str(error)
        self.assertIn("ERROR[P001]", rendered)
        self.assertIn("<string>:1:5", rendered)
        self.assertEqual(error.offset, 4)


class TestRecovery(unittest.TestCase):
    """One bad line doesn't lose the others."""

    def test_statements_after_an_error_survive(self):
        program, errors = parse_source("a = *\nb = 1\n")
        self.assertEqual([error.code for error in errors], ["P001"])
        self.assertEqual(program.body, [Assignment(Identifier("b"), Literal(token(TokenType.INTEGER, "1", 1)))])

    def test_statements_before_an_error_survive(self):
        program, errors = parse_source("a = 1\nb = (\nc = 2\n")
        self.assertEqual(len(errors), 1)
        self.assertEqual(len(program.body), 1)
        self.assertEqual(program.body[0].target, Identifier("a"))

    def test_block_after_failed_line_is_skipped(self):
        program, errors = parse_source("if x:\n    y = 1\n    if z:\n        w\nz = 2\n")
        self.assertEqual([error.code for error in errors], ["P016"])
        self.assertEqual(len(program.body), 1)
        self.assertEqual(program.body[0].target, Identifier("z"))

    def test_unexpected_indent_skips_the_block(self):
        program, errors = parse_source("a\n    b\n    c\nd\n")
        self.assertEqual([error.code for error in errors], ["P013"])
        self.assertEqual(program.body, [Identifier("a"), Identifier("d")])

    def test_lexer_and_parser_errors_in_source_order(self):
        program, errors = parse_source("a = *\nb = $\nc = 1\nd = )\n")
        self.assertEqual([error.code for error in errors], ["P001", "P014", "P014"])
        self.assertEqual([error.location.line for error in errors], [1, 2, 4])
        self.assertEqual(len(program.body), 1)

    def test_string_contents_never_become_statements(self):
        program, errors = parse_source('s = """bad \\q escape\nfoo = 1\n"""\ny = 2\n')
        self.assertEqual([error.code for error in errors], ["P014"])
        self.assertEqual(errors[0].lexer_code, "L006")
        self.assertEqual(program.body, [Assignment(Identifier("y"), Literal(token(TokenType.INTEGER, "2", 2)))])

    def test_bad_bracket_group_is_one_error(self):
        program, errors = parse_source("x = (1,\n $\n)\ny = 2\n")
        self.assertEqual([error.code for error in errors], ["P014"])
        self.assertEqual(program.body, [Assignment(Identifier("y"), Literal(token(TokenType.INTEGER, "2", 2)))])

    def test_non_ascii_raw_bytes_is_a_lexical_error(self):
        program, errors = parse_source('x = rb"\\€"\ny = 1\n')
        self.assertEqual([error.lexer_code for error in errors], ["L016"])
        self.assertEqual(len(program.body), 1)

    def test_every_line_bad(self):
        program, errors = parse_source("*\n/\n")
        self.assertEqual(len(errors), 2)
        self.assertEqual(program.body, [])

    def test_parser_instance_collects_errors(self):
        from ophis.lexer import tokenize_string

        parser = Parser(tokenize_string("x +\ny\n"), "<test>")
        program = parser.parse()
        self.assertTrue(parser.has_errors())
        self.assertEqual(program.body, [Identifier("y")])


class TestTokenStreams(unittest.TestCase):
    """Parsing hand-built token streams."""

    def test_stream_without_final_newline(self):
        program = Parser([token(TokenType.IDENTIFIER, "a", "a")]).parse()
        self.assertEqual(program.body, [Identifier("a")])

    def test_unexpected_end_of_input(self):
        parser = Parser([
            token(TokenType.IDENTIFIER, "a", "a"),
            token(TokenType.OPERATOR, "+", Operator.ADD),
        ])
        parser.parse()
        self.assertEqual([error.code for error in parser.errors], ["P010"])

    def test_accepts_any_iterable(self):
        stream = iter([
            token(TokenType.IDENTIFIER, "x", "x"),
            token(TokenType.OPERATOR, "+=", Operator.ADD_ASSIGN),
            token(TokenType.INTEGER, "1", 1),
            token(TokenType.NEWLINE, "\n"),
        ])
        program = Parser(stream).parse()
        self.assertEqual(
            program.body,
            [AugmentedAssignment(Identifier("x"), Operator.ADD_ASSIGN, Literal(token(TokenType.INTEGER, "1", 1)))]
        )


class TestTokenCursor(unittest.TestCase):
    """Bounded lookahead over a token iterable."""

    def setUp(self):
        self.tokens = [token(TokenType.IDENTIFIER, name, name) for name in "abc"]

    def test_peek_and_advance(self):
        cursor = TokenCursor(self.tokens)
        self.assertEqual(cursor.peek().value, "a")
        self.assertEqual(cursor.peek(1).value, "b")
        self.assertIsNone(cursor.last)

        self.assertEqual(cursor.advance().value, "a")
        self.assertEqual(cursor.last.value, "a")
        self.assertEqual(cursor.peek().value, "b")

    def test_end_of_stream(self):
        cursor = TokenCursor(self.tokens[:1])
        self.assertIsNone(cursor.peek(1))
        cursor.advance()
        self.assertTrue(cursor.at_end())
        self.assertIsNone(cursor.peek())
        with self.assertRaises(InvariantError):
            cursor.advance()

    def test_lookahead_bound(self):
        cursor = TokenCursor(self.tokens)
        with self.assertRaises(InvariantError):
            cursor.peek(TokenCursor.LOOKAHEAD)
        with self.assertRaises(InvariantError):
            cursor.peek(-1)

    def test_pulls_lazily(self):
        pulled = []

        def generate():
            for item in self.tokens:
                pulled.append(item.value)
                yield item

        cursor = TokenCursor(generate())
        cursor.peek()
        self.assertEqual(pulled, ["a"])
        cursor.peek(1)
        self.assertEqual(pulled, ["a", "b"])


class TestNodeInvariants(unittest.TestCase):
    """Construction checks on AST nodes."""

    def test_binary_operator_needs_rhs(self):
        with self.assertRaises(InvariantError):
            Operation(Identifier("a"), Operator.ADD, None)
        with self.assertRaises(InvariantError):
            Operation.unary(Identifier("a"), Operator.MUL)

    def test_unary_operator_rejects_rhs(self):
        with self.assertRaises(InvariantError):
            Operation(Identifier("a"), Operator.UNARY_SUB, Identifier("b"))

    def test_attribute_operands_must_be_primaries(self):
        operation = Operation.binary(Identifier("a"), Operator.ADD, Identifier("b"))
        with self.assertRaises(InvariantError):
            AttributeRef(operation, Identifier("c"))
        with self.assertRaises(InvariantError):
            AttributeRef(Identifier("c"), operation)

    def test_comparison_op_needs_comparison_operator(self):
        with self.assertRaises(InvariantError):
            ComparisonOp(Identifier("a"), Operator.ADD, Identifier("b"))

    def test_literal_needs_literal_token(self):
        with self.assertRaises(InvariantError):
            Literal(token(TokenType.IDENTIFIER, "a", "a"))
        self.assertIs(Literal(token(TokenType.KEYWORD, "True", Keyword.TRUE)).value, True)
        with self.assertRaises(InvariantError):
            Literal(token(TokenType.KEYWORD, "if", Keyword.IF))

    def test_invariant_error_is_an_assertion(self):
        self.assertTrue(issubclass(InvariantError, AssertionError))
        self.assertFalse(issubclass(InvariantError, ParseError))

    def test_equality_ignores_spans(self):
        program = parse_string("a + b\n")
        self.assertEqual(program.body[0], Operation.binary(Identifier("a"), Operator.ADD, Identifier("b")))
        self.assertIsNotNone(program.body[0].span)

    def test_equal_nodes_hash_alike(self):
        for source in ["f(a, [b, c], k=1)\n", "{a: 1, b: x.y}\n", "s[1:2]\n"]:
            first = parse_string(source).body[0]
            second = parse_string(source).body[0]
            self.assertEqual(first, second)
            self.assertEqual(hash(first), hash(second))
            self.assertEqual(len({first, second}), 1)

        self.assertIn(Identifier("a"), {Identifier("a"): "seen"})

    def test_children_and_visitor(self):
        program = parse_string("x = f(a, k=b)\n")

        class NameCollector(ASTVisitor):
            def __init__(self):
                self.names = []

            def visit_Identifier(self, node):
                self.names.append(node.name)

        collector = NameCollector()
        program.accept(collector)
        self.assertEqual(collector.names, ["x", "f", "a", "b"])


if __name__ == '__main__':
    unittest.main()
