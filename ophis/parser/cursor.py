"""
Single-pass token cursor used by the parser.

The cursor pulls tokens from any iterable on demand and keeps at most
``LOOKAHEAD`` of them buffered. Consumed tokens are gone; only the most
recent one stays reachable through ``last`` for building source spans.
"""

from collections import deque
from typing import Deque, Iterable, Iterator, Optional

from ..lexer.tokens import Token
from .errors import InvariantError


class TokenCursor:
    """Destructive cursor with a bounded lookahead buffer."""

    LOOKAHEAD = 2

    def __init__(self, tokens: Iterable[Token]):
        self._tokens: Iterator[Token] = iter(tokens)
        self._buffer: Deque[Token] = deque()
        self.last: Optional[Token] = None

    def peek(self, n: int = 0) -> Optional[Token]:
        """
        Look at the token ``n`` positions ahead without consuming it.

        Returns None past the end of the stream. ``n`` must be below
        ``LOOKAHEAD``.
        """
        if not 0 <= n < self.LOOKAHEAD:
            raise InvariantError(f"lookahead of {n} exceeds the cursor bound of {self.LOOKAHEAD}")
        self._fill(n + 1)
        if n < len(self._buffer):
            return self._buffer[n]
        return None

    def advance(self) -> Token:
        """Consume and return the current token."""
        self._fill(1)
        if not self._buffer:
            raise InvariantError("advance past the end of the token stream")
        self.last = self._buffer.popleft()
        return self.last

    def at_end(self) -> bool:
        return self.peek() is None

    def _fill(self, count: int):
        while len(self._buffer) < count:
            token = next(self._tokens, None)
            if token is None:
                return
            self._buffer.append(token)
