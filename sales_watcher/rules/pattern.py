"""Keyword pattern language used by rule fields.

Grammar::

    pattern ::= factor (('&&' | '||') factor)*
    factor  ::= '(' pattern ')' | '!' pattern | keyword
    keyword ::= [alnum]+ | '"' [^"]+ '"'

``&&`` and ``||`` share one precedence level and group left to right, so
``a || b && c`` reads as ``(a || b) && c``. ``!`` negates everything that
follows it up to the closing parenthesis or the end of the pattern; write
``(!a) && b`` to negate a single term.

A keyword matches when it occurs anywhere in the text, ignoring case.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import List, NamedTuple, Optional

from sales_watcher.errors import PatternSyntaxError

logger = logging.getLogger(__name__)

_OPERATOR_CHARS = "!|&()"


class Pattern:
    """Base class for pattern nodes."""

    def matches(self, text: str) -> bool:
        raise NotImplementedError

    def matches_optional(self, text: Optional[str]) -> bool:
        """Match against a value that may be missing.

        A missing value only satisfies a negated pattern: a post without flair
        is "not flaired Expired" but is not "flaired GPU".
        """
        if text is None:
            return isinstance(self, Not)
        return self.matches(text)


@dataclass(frozen=True)
class Keyword(Pattern):
    keyword: str

    def matches(self, text: str) -> bool:
        return self.keyword.lower() in text.lower()

    def __str__(self) -> str:
        return f'"{self.keyword}"'


@dataclass(frozen=True)
class And(Pattern):
    left: Pattern
    right: Pattern

    def matches(self, text: str) -> bool:
        return self.left.matches(text) and self.right.matches(text)

    def __str__(self) -> str:
        return f"({self.left} && {self.right})"


@dataclass(frozen=True)
class Or(Pattern):
    left: Pattern
    right: Pattern

    def matches(self, text: str) -> bool:
        return self.left.matches(text) or self.right.matches(text)

    def __str__(self) -> str:
        return f"({self.left} || {self.right})"


@dataclass(frozen=True)
class Not(Pattern):
    inner: Pattern

    def matches(self, text: str) -> bool:
        return not self.inner.matches(text)

    def __str__(self) -> str:
        return f"!{self.inner}"


class Token(NamedTuple):
    kind: str  # one of: LPAREN, RPAREN, NOT, AND, OR, KEYWORD
    value: str
    column: int


def tokenize(source: str) -> List[Token]:
    """
    Split a pattern source into tokens.

    Args:
        source: Pattern text as written in the rule

    Returns:
        List of tokens; columns are 1-based

    Raises:
        PatternSyntaxError: On a lone ``|``/``&``, an empty or unterminated
            quoted keyword, or a character not allowed in a bare keyword
    """
    tokens: List[Token] = []
    i = 0
    n = len(source)
    while i < n:
        ch = source[i]
        column = i + 1

        if ch.isspace():
            i += 1
        elif ch == "(":
            tokens.append(Token("LPAREN", ch, column))
            i += 1
        elif ch == ")":
            tokens.append(Token("RPAREN", ch, column))
            i += 1
        elif ch == "!":
            tokens.append(Token("NOT", ch, column))
            i += 1
        elif ch in "|&":
            following = source[i + 1] if i + 1 < n else None
            if following != ch:
                got = repr(following) if following is not None else "end of pattern"
                raise PatternSyntaxError(column + 1, f"expected '{ch}' to complete '{ch}{ch}', got {got}")
            tokens.append(Token("OR" if ch == "|" else "AND", ch * 2, column))
            i += 2
        elif ch == '"':
            end = source.find('"', i + 1)
            if end == -1:
                raise PatternSyntaxError(column, "unterminated quoted keyword")
            if end == i + 1:
                raise PatternSyntaxError(column, "empty keyword, check quotes")
            tokens.append(Token("KEYWORD", source[i + 1:end], column))
            i = end + 1
        else:
            start = i
            while i < n and not source[i].isspace() and source[i] not in _OPERATOR_CHARS:
                if not source[i].isalnum():
                    raise PatternSyntaxError(i + 1, f"unexpected character {source[i]!r} in keyword (quote it)")
                i += 1
            tokens.append(Token("KEYWORD", source[start:i], column))

    return tokens


class _Parser:
    """Recursive-descent parser over the token list."""

    def __init__(self, source: str):
        self.source = source
        self.tokens = tokenize(source)
        self.pos = 0

    def parse(self) -> Pattern:
        if not self.tokens:
            raise PatternSyntaxError(1, "empty pattern")
        pattern = self._pattern()
        if self.pos < len(self.tokens):
            tok = self.tokens[self.pos]
            raise PatternSyntaxError(tok.column, f"unexpected {tok.value!r}, expected '&&', '||' or end of pattern")
        return pattern

    def _peek(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> Optional[Token]:
        tok = self._peek()
        if tok is not None:
            self.pos += 1
        return tok

    def _end_column(self) -> int:
        return len(self.source) + 1

    def _pattern(self) -> Pattern:
        left = self._factor()
        while True:
            tok = self._peek()
            if tok is None or tok.kind not in ("AND", "OR"):
                return left
            self.pos += 1
            right = self._factor()
            left = And(left, right) if tok.kind == "AND" else Or(left, right)

    def _factor(self) -> Pattern:
        tok = self._next()
        if tok is None:
            raise PatternSyntaxError(self._end_column(), "expected '(', '!' or a keyword, got end of pattern")

        if tok.kind == "LPAREN":
            inner = self._pattern()
            closing = self._next()
            if closing is None or closing.kind != "RPAREN":
                column = closing.column if closing else self._end_column()
                raise PatternSyntaxError(column, "expected ')'")
            return inner
        if tok.kind == "NOT":
            return Not(self._pattern())
        if tok.kind == "KEYWORD":
            return Keyword(tok.value)

        raise PatternSyntaxError(tok.column, f"expected '(', '!' or a keyword, got {tok.value!r}")


@lru_cache(maxsize=1024)
def parse_pattern(source: str) -> Pattern:
    """
    Parse a rule pattern.

    Args:
        source: Pattern text, e.g. ``'(nvidia && rtx) || "rx 7900"'``

    Returns:
        The pattern tree. Nodes are immutable, so results are cached per source.

    Raises:
        PatternSyntaxError: If the source is not a valid pattern
    """
    pattern = _Parser(source).parse()
    logger.debug(f"Parsed pattern {source!r} as {pattern}")
    return pattern
