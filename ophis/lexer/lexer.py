"""
Ophis Lexer - turns source text into a token stream.

Works one logical line at a time: measure the indentation, scan tokens
until a line terminator that isn't inside an open bracket, then emit the
Indent/Dedent tokens for the line, the tokens themselves and a Newline.
A line that fails to lex is dropped as a whole so the indentation stack
only ever sees complete lines.
"""

import string
from typing import List, Optional, Tuple, Union, FrozenSet

from .tokens import (
    Token, TokenType, SourceLocation, Delimiter, Operator, Prefix,
    KEYWORDS, OPERATORS, OPERATOR_CHARS, PREFIXES, NO_PREFIX
)
from .errors import (
    LexerError, LexerWarning, create_invalid_character_error,
    create_unterminated_string_error, create_invalid_integer_error,
    create_invalid_float_error, create_invalid_escape_error,
    create_invalid_hex_error, create_invalid_unicode_error,
    create_invalid_octal_error, create_invalid_operator_error,
    create_invalid_prefix_error, create_unexpected_eof_error,
    create_indentation_error, create_mismatched_delimiter_error,
    create_non_ascii_bytes_error, create_mixed_indentation_warning
)


LINE_TERMINATORS = "\n\r\f"
QUOTES = "'\""
DECIMAL_DIGITS = frozenset(string.digits)
OCTAL_DIGITS = frozenset(string.octdigits)
HEX_DIGITS = frozenset(string.hexdigits)

INT64_MAX = (1 << 63) - 1

SIMPLE_ESCAPES = {
    't': '\t',
    'n': '\n',
    'r': '\r',
    "'": "'",
    '"': '"',
    'a': '\a',
    'b': '\b',
    'f': '\f',
    'v': '\v',
    '\\': '\\',
}

# base prefix character -> (base, valid digits, name used in errors)
INTEGER_BASES = {
    'b': (2, frozenset("01"), "binary"),
    'o': (8, OCTAL_DIGITS, "octal"),
    'x': (16, HEX_DIGITS, "hexadecimal"),
}


class Lexer:
    """
    Ophis lexical analyzer.

    Converts source text into a list of tokens. Malformed lines are
    reported in ``errors`` and skipped, so one bad line doesn't hide the
    tokens of the rest of the buffer.
    """

    def __init__(self, source: str, filename: str = "<unknown>"):
        """
        Initialize the lexer with source code.

        Args:
            source: Source code string
            filename: Name of source file for error reporting
        """
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []
        self.errors: List[LexerError] = []
        self.warnings: List[LexerWarning] = []
        self.indent_stack: List[int] = []
        # Brackets open on the logical line being lexed
        self.open_delimiters: List[Token] = []

    def tokenize(self) -> List[Token]:
        """
        Tokenize the entire source buffer.

        Returns:
            List of tokens, one Newline per logical line, with Indent and
            Dedent tokens balanced by the end of input
        """
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens.clear()
        self.errors.clear()
        self.warnings.clear()
        self.indent_stack.clear()

        while self.pos < len(self.source):
            try:
                line_tokens = self._lex_line()
            except LexerError as e:
                self.errors.append(e)
                # Drop the rest of the logical line and carry on
                self._skip_logical_line(len(self.open_delimiters))
                continue

            if line_tokens:
                self.tokens.extend(line_tokens)

        # Close every block still open at the end of input
        end_location = self._location()
        for _ in self.indent_stack:
            self.tokens.append(Token(TokenType.DEDENT, "", None, end_location))
        self.indent_stack.clear()

        return self.tokens

    # ------------------------------------------------------------------
    # Lines and indentation
    # ------------------------------------------------------------------

    def _lex_line(self) -> Optional[List[Token]]:
        """Lex one logical line; None for a blank or comment-only line."""
        line_start = self.pos
        delimiters: List[Token] = []
        self.open_delimiters = delimiters
        while self._current() in (' ', '\t'):
            self._advance()

        indentation = self.source[line_start:self.pos]
        current_char = self._current()

        if current_char == '':
            return None
        if current_char in LINE_TERMINATORS:
            self._consume_line_terminator()
            return None
        if current_char == '#':
            self._skip_comment()
            self._consume_line_terminator()
            return None

        indent_location = self._location()
        prefix, indent_stack = self._indentation_tokens(len(indentation), indentation, indent_location)

        line: List[Token] = []

        while self.pos < len(self.source):
            current_char = self._current()

            if current_char in (' ', '\t'):
                self._advance()
            elif current_char in LINE_TERMINATORS:
                newline_location = self._location()
                lexeme = self._consume_line_terminator()
                if not delimiters:
                    break
                # Implicit continuation inside brackets
                continue
            elif current_char == '#':
                self._skip_comment()
            elif current_char == '\\':
                self._lex_line_continuation()
            else:
                line.append(self._next_token(delimiters))
        else:
            newline_location = self._location()
            lexeme = ""

        if not line:
            return None

        if ' ' in indentation and '\t' in indentation:
            self.warnings.append(create_mixed_indentation_warning(indent_location))

        # Only a completely lexed line moves the indentation stack
        self.indent_stack = indent_stack
        newline = Token(TokenType.NEWLINE, lexeme, None, newline_location)
        return prefix + line + [newline]

    def _indentation_tokens(self, width: int, indentation: str,
                            location: SourceLocation) -> Tuple[List[Token], List[int]]:
        """
        Compare a line's width to the indentation stack.

        Returns the Indent/Dedent tokens for the line and the stack as it
        will be once the line is accepted; ``self.indent_stack`` is left
        alone.
        """
        stack = list(self.indent_stack)
        current = stack[-1] if stack else 0

        if width == current:
            return [], stack

        if width > current:
            stack.append(width)
            return [Token(TokenType.INDENT, indentation, None, location)], stack

        dedents = []
        while stack and stack[-1] > width:
            stack.pop()
            dedents.append(Token(TokenType.DEDENT, "", None, location))

        if (stack[-1] if stack else 0) != width:
            raise create_indentation_error(width, self.indent_stack, location)

        return dedents, stack

    def _lex_line_continuation(self):
        """Swallow a backslash that joins this line with the next."""
        location = self._location()
        self._advance()  # Skip backslash

        if self.pos >= len(self.source):
            raise create_unexpected_eof_error("a line break after '\\'", location)

        if self._current() in LINE_TERMINATORS:
            self._consume_line_terminator()
            return

        raise create_invalid_escape_error('\\' + self._current(), location)

    # ------------------------------------------------------------------
    # Token dispatch
    # ------------------------------------------------------------------

    def _next_token(self, delimiters: List[Token]) -> Token:
        """Get the next token from the source."""
        location = self._location()
        current_char = self._current()

        # Identifiers, keywords and prefixed strings
        if current_char.isalpha() or current_char == '_':
            return self._lex_word(location)

        # Numbers
        if current_char in DECIMAL_DIGITS:
            return self._lex_number(location)

        # Attribute access or a float like .5
        if current_char == '.':
            return self._lex_leading_dot(location)

        # String literals without a prefix
        if current_char in QUOTES:
            return self._lex_string(location, NO_PREFIX)

        # Operators and punctuation
        if current_char in OPERATOR_CHARS:
            return self._lex_operator(location)

        delimiter = Delimiter.from_char(current_char)
        if delimiter is not None:
            return self._lex_delimiter(location, delimiter, delimiters)

        raise create_invalid_character_error(current_char, location)

    def _lex_word(self, location: SourceLocation) -> Token:
        """Lex an identifier, a keyword, or the prefix of a string."""
        start_pos = self.pos
        self._advance()

        while self._current() and (self._current().isalnum() or self._current() == '_'):
            self._advance()

        word = self.source[start_pos:self.pos]

        if self._current() and self._current() in QUOTES:
            prefixes = PREFIXES.get(word)
            if prefixes is None:
                raise create_invalid_prefix_error(word, location)
            return self._lex_string(location, prefixes)

        keyword = KEYWORDS.get(word)
        if keyword is not None:
            return Token(TokenType.KEYWORD, word, keyword, location)

        return Token(TokenType.IDENTIFIER, word, word, location)

    def _lex_delimiter(self, location: SourceLocation, delimiter: Delimiter,
                       delimiters: List[Token]) -> Token:
        """Lex a bracket and keep the line's bracket stack balanced."""
        self._advance()
        token = Token(TokenType.DELIMITER, delimiter.char, delimiter, location)

        if delimiter.is_opening:
            delimiters.append(token)
        elif not delimiters:
            raise create_mismatched_delimiter_error(delimiter.char, None, location)
        else:
            # A wrong closer still closes the innermost bracket
            opening = delimiters.pop().value
            if not opening.is_matching(delimiter):
                raise create_mismatched_delimiter_error(
                    delimiter.char, opening.counterpart.char, location
                )

        return token

    def _lex_operator(self, location: SourceLocation) -> Token:
        """Lex the longest operator spelling starting here."""
        run = ""
        while len(run) < 3 and self._peek(len(run)) in OPERATOR_CHARS:
            run += self._peek(len(run))

        # Check longer operators first
        for op_len in [3, 2, 1]:
            spelling = run[:op_len]
            if len(spelling) == op_len and spelling in OPERATORS:
                break
        else:
            raise create_invalid_operator_error(run, location)

        self._advance_by(op_len)
        operator = OPERATORS[spelling]

        # '-1' and '+x' read as unary; '- 1' stays binary
        if operator in (Operator.ADD, Operator.SUB) and self._current().isalnum():
            operator = operator.unary_form

        return Token(TokenType.OPERATOR, spelling, operator, location)

    # ------------------------------------------------------------------
    # Numbers
    # ------------------------------------------------------------------

    def _lex_number(self, location: SourceLocation) -> Token:
        """Lex an integer or float literal starting with a digit."""
        if self._current() == '0':
            base_char = self._peek().lower()
            if base_char in INTEGER_BASES:
                return self._lex_based_integer(location, base_char)
            return self._lex_leading_zero(location)

        return self._lex_decimal(location)

    def _lex_based_integer(self, location: SourceLocation, base_char: str) -> Token:
        """Lex a 0b/0o/0x literal."""
        base, valid_digits, name = INTEGER_BASES[base_char]
        start_pos = self.pos
        self._advance_by(2)  # Skip '0b', '0o' or '0x'

        digits = []
        while self._current() and (self._current() in valid_digits or self._current() == '_'):
            if self._current() != '_':
                digits.append(self._current())
            self._advance()

        lexeme = self.source[start_pos:self.pos]

        if not digits:
            raise create_invalid_integer_error(
                lexeme, location, f"A {name} literal needs at least one digit after the prefix"
            )

        if self._is_identifier_char(self._current()):
            raise create_invalid_integer_error(
                lexeme + self._current(), location,
                f"'{self._current()}' is not a valid {name} digit"
            )

        return self._integer_token(lexeme, int(''.join(digits), base), location)

    def _lex_leading_zero(self, location: SourceLocation) -> Token:
        """Lex a literal that starts with 0 but has no base prefix."""
        start_pos = self.pos
        text = self._scan_decimal_run()
        lexeme = self.source[start_pos:self.pos]

        self._reject_trailing_identifier_char(lexeme, location)

        if all(char == '0' for char in text):
            return Token(TokenType.INTEGER, lexeme, 0, location)

        return self._float_token(lexeme, text, location)

    def _lex_decimal(self, location: SourceLocation) -> Token:
        """Lex a literal with a non-zero leading digit."""
        start_pos = self.pos
        text = self._scan_decimal_run()
        lexeme = self.source[start_pos:self.pos]

        self._reject_trailing_identifier_char(lexeme, location)

        if '.' in text or 'e' in text.lower():
            return self._float_token(lexeme, text, location)

        try:
            value = int(text)
        except ValueError:
            raise create_invalid_integer_error(lexeme, location, "Cannot parse decimal integer")

        return self._integer_token(lexeme, value, location)

    def _lex_leading_dot(self, location: SourceLocation) -> Token:
        """Lex '.' as attribute access, or a float such as .5e3."""
        if self._peek() not in DECIMAL_DIGITS:
            self._advance()
            return Token(TokenType.OPERATOR, ".", Operator.ACCESS, location)

        start_pos = self.pos
        text = self._scan_decimal_run()
        lexeme = self.source[start_pos:self.pos]
        self._reject_trailing_identifier_char(lexeme, location)
        return self._float_token(lexeme, text, location)

    def _scan_decimal_run(self) -> str:
        """
        Consume digits, '_', '.', exponent markers and exponent signs.

        Returns the consumed text with the underscores removed. A sign is
        only part of the number directly after 'e'/'E', so '1+2' stops at
        the '+'.
        """
        text = []
        while self.pos < len(self.source):
            char = self._current()
            if char in DECIMAL_DIGITS or char == '.':
                text.append(char)
            elif char == '_':
                pass
            elif char in 'eE':
                text.append(char)
            elif char in '+-' and text and text[-1] in 'eE':
                text.append(char)
            else:
                break
            self._advance()
        return ''.join(text)

    def _reject_trailing_identifier_char(self, lexeme: str, location: SourceLocation):
        if self._is_identifier_char(self._current()):
            raise create_invalid_integer_error(
                lexeme + self._current(), location,
                f"'{self._current()}' can't directly follow a number"
            )

    def _integer_token(self, lexeme: str, value: int, location: SourceLocation) -> Token:
        if value > INT64_MAX:
            raise create_invalid_integer_error(
                lexeme, location, "Integer literals must fit in a signed 64-bit integer"
            )
        return Token(TokenType.INTEGER, lexeme, value, location)

    def _float_token(self, lexeme: str, text: str, location: SourceLocation) -> Token:
        try:
            value = float(text)
        except ValueError:
            raise create_invalid_float_error(lexeme, location)
        return Token(TokenType.FLOAT, lexeme, value, location)

    # ------------------------------------------------------------------
    # Strings and bytes
    # ------------------------------------------------------------------

    def _lex_string(self, location: SourceLocation, prefixes: FrozenSet[Prefix]) -> Token:
        """
        Lex a string or bytes literal; the current character is the quote.

        ``location`` points at the prefix when there is one, so the token's
        lexeme covers the prefix as well.
        """
        quote = self._current()
        self._advance()

        quote_len = 1
        if self._current() == quote and self._peek() == quote:
            self._advance_by(2)
            quote_len = 3

        is_raw = Prefix.RAW in prefixes
        is_bytes = Prefix.BYTES in prefixes
        closing = quote * quote_len
        value_parts = []
        # The first bad escape or character is raised once the literal ends,
        # so recovery resumes after the closing quote
        error: Optional[LexerError] = None

        while True:
            if self.pos >= len(self.source):
                raise error or create_unterminated_string_error(closing, location)

            current_char = self._current()

            if current_char == quote:
                if quote_len == 1:
                    self._advance()
                    break
                if self._peek() == quote and self._peek(2) == quote:
                    self._advance_by(3)
                    break
                value_parts.append(current_char)
                self._advance()
            elif current_char in LINE_TERMINATORS and quote_len == 1:
                raise error or create_unterminated_string_error(closing, location)
            elif current_char == '\\' and not is_raw:
                try:
                    value_parts.append(self._lex_escape(is_bytes))
                except LexerError as e:
                    error = error or e
            else:
                if current_char == '\\':
                    # Raw strings keep the backslash and whatever it guards
                    value_parts.append(current_char)
                    self._advance()
                    if self.pos >= len(self.source):
                        continue
                    current_char = self._current()
                if is_bytes and ord(current_char) > 0x7F:
                    error = error or create_non_ascii_bytes_error(current_char, self._location())
                value_parts.append(current_char)
                self._advance()

        if error is not None:
            raise error

        lexeme = self.source[location.offset:self.pos]
        value = ''.join(value_parts)

        if is_bytes:
            # Every character is ASCII or an escape below 0x100
            return Token(TokenType.BYTES, lexeme, value.encode('latin-1'), location)

        return Token(TokenType.STR, lexeme, value, location)

    def _lex_escape(self, is_bytes: bool) -> str:
        """Decode the escape sequence at the current backslash."""
        location = self._location()
        start_pos = self.pos
        self._advance()  # Skip backslash

        if self.pos >= len(self.source):
            raise create_unexpected_eof_error("an escape sequence", location)

        escape_char = self._current()
        self._advance()

        if escape_char in SIMPLE_ESCAPES:
            return SIMPLE_ESCAPES[escape_char]

        if escape_char in LINE_TERMINATORS:
            # Backslash-newline is elided
            if escape_char == '\r' and self._current() == '\n':
                self._advance()
            return ''

        if escape_char == 'x':
            return chr(self._read_hex_escape(2, start_pos, location, create_invalid_hex_error))

        if escape_char in 'uU' and not is_bytes:
            width = 4 if escape_char == 'u' else 8
            code_point = self._read_hex_escape(width, start_pos, location, create_invalid_unicode_error)
            if code_point > 0x10FFFF:
                raise create_invalid_unicode_error(self.source[start_pos:self.pos], location)
            return chr(code_point)

        if escape_char in OCTAL_DIGITS:
            digits = escape_char
            while len(digits) < 3 and self._current() in OCTAL_DIGITS:
                digits += self._current()
                self._advance()
            value = int(digits, 8)
            if value > 0o377:
                raise create_invalid_octal_error(self.source[start_pos:self.pos], location)
            return chr(value)

        raise create_invalid_escape_error(self.source[start_pos:self.pos], location)

    def _read_hex_escape(self, width: int, start_pos: int, location: SourceLocation,
                         error_factory) -> int:
        digits = self.source[self.pos:self.pos + width]
        if len(digits) < width or not all(char in HEX_DIGITS for char in digits):
            raise error_factory(self.source[start_pos:self.pos + width], location)
        self._advance_by(width)
        return int(digits, 16)

    # ------------------------------------------------------------------
    # Character helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _is_identifier_char(char: str) -> bool:
        return bool(char) and (char.isalnum() or char == '_')

    def _skip_comment(self):
        """Skip to the end of the physical line, leaving the terminator."""
        while self.pos < len(self.source) and self._current() not in LINE_TERMINATORS:
            self._advance()

    def _skip_logical_line(self, depth: int):
        """
        Recovery: drop the rest of the logical line, including its break.

        ``depth`` is the number of brackets open where the error was hit;
        line breaks inside brackets, after a backslash, or inside a string
        don't end the line.
        """
        while self.pos < len(self.source):
            char = self._current()
            if char in LINE_TERMINATORS:
                self._consume_line_terminator()
                if depth == 0:
                    return
            elif char == '#':
                self._skip_comment()
            elif char == '\\':
                self._advance()
                if not self._consume_line_terminator():
                    self._advance()
            elif char in QUOTES:
                self._skip_string(char)
            else:
                delimiter = Delimiter.from_char(char)
                if delimiter is not None:
                    depth = depth + 1 if delimiter.is_opening else max(depth - 1, 0)
                self._advance()

    def _skip_string(self, quote: str):
        """Recovery: step over a string literal without decoding it."""
        closing = quote * 3 if self.source.startswith(quote * 3, self.pos) else quote
        self._advance_by(len(closing))

        while self.pos < len(self.source):
            if self.source.startswith(closing, self.pos):
                self._advance_by(len(closing))
                return
            char = self._current()
            if char in LINE_TERMINATORS and len(closing) == 1:
                return
            self._advance()
            if char == '\\' and not self._consume_line_terminator():
                self._advance()

    def _consume_line_terminator(self) -> str:
        """Consume one line terminator, treating \\r\\n as a single break."""
        if self.pos >= len(self.source) or self._current() not in LINE_TERMINATORS:
            return ""
        if self._current() == '\r' and self._peek() == '\n':
            self._advance_by(2)
            return "\r\n"
        terminator = self._current()
        self._advance()
        return terminator

    def _location(self) -> SourceLocation:
        return SourceLocation(self.filename, self.line, self.column, self.pos)

    def _current(self) -> str:
        """Current character, or '' at end of input."""
        if self.pos < len(self.source):
            return self.source[self.pos]
        return ''

    def _advance(self):
        """Advance position by one character, updating line/column."""
        if self.pos < len(self.source):
            char = self.source[self.pos]
            self.pos += 1
            if char in '\n\f' or (char == '\r' and self._current() != '\n'):
                self.line += 1
                self.column = 1
            else:
                self.column += 1

    def _advance_by(self, count: int):
        """Advance position by multiple characters."""
        for _ in range(count):
            self._advance()

    def _peek(self, offset: int = 1) -> str:
        """Peek at character ahead without advancing."""
        peek_pos = self.pos + offset
        if peek_pos < len(self.source):
            return self.source[peek_pos]
        return ''

    def has_errors(self) -> bool:
        """Check if lexer encountered any errors."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Check if lexer encountered any warnings."""
        return len(self.warnings) > 0

    def get_diagnostics(self) -> List[Union[LexerError, LexerWarning]]:
        """Get all diagnostics (errors and warnings)."""
        return self.errors + self.warnings

    def byte_offset(self, location: SourceLocation) -> int:
        """UTF-8 byte offset of a location's character offset."""
        return len(self.source[:location.offset].encode('utf-8'))


def tokenize_string(source: str, filename: str = "<string>") -> List[Token]:
    """
    Convenience function to tokenize a source string.

    Args:
        source: Source code string
        filename: Filename for error reporting

    Returns:
        List of tokens

    Raises:
        LexerError: If lexing fails
    """
    lexer = Lexer(source, filename)
    tokens = lexer.tokenize()

    if lexer.has_errors():
        # Raise the first error encountered
        raise lexer.errors[0]

    return tokens


def tokenize_file(filepath: str) -> List[Token]:
    """
    Convenience function to tokenize a source file.

    Args:
        filepath: Path to source file

    Returns:
        List of tokens

    Raises:
        LexerError: If lexing fails
        OSError: If file cannot be read
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        source = f.read()

    return tokenize_string(source, filepath)
