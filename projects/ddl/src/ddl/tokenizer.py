"""Tokenizer and statement splitter for DDL text."""

from __future__ import annotations

import re
from enum import StrEnum
from typing import NamedTuple

from erd.errors import ParseError

# Alternatives are tried in order; "unterminated" only matches when the
# proper quoted or comment form above it failed to find its closing mark.
TOKEN_RE = re.compile(
    r"""
    (?P<space>\s+)
    |(?P<comment>--[^\n]*|/\*.*?\*/)
    |(?P<quoted>"(?:[^"]|"")*")
    |(?P<backtick>`(?:[^`]|``)*`)
    |(?P<string>'(?:[^']|'')*')
    |(?P<unterminated>["'`]|/\*)
    |(?P<number>\d+(?:\.\d+)?)
    |(?P<word>[^\W\d][\w$]*)
    |(?P<punct>[(),;.])
    |(?P<operator>.)
    """,
    re.VERBOSE | re.DOTALL,
)


class TokenKind(StrEnum):
    """Kinds of DDL tokens."""

    WORD = "word"
    QUOTED = "quoted"
    STRING = "string"
    NUMBER = "number"
    PUNCT = "punct"
    OPERATOR = "operator"


class Token(NamedTuple):
    """A token and its character span in the source text."""

    kind: TokenKind
    value: str
    start: int
    end: int

    def is_word(self, *words: str) -> bool:
        """Check for an unquoted word, case-insensitively."""
        return self.kind == TokenKind.WORD and self.value.upper() in words

    def is_punct(self, char: str) -> bool:
        """Check for a punctuation character."""
        return self.kind == TokenKind.PUNCT and self.value == char

    @property
    def is_identifier(self) -> bool:
        """Words and quoted names can both name a table or column."""
        return self.kind in (TokenKind.WORD, TokenKind.QUOTED)


class Statement(NamedTuple):
    """Tokens of one statement, without the terminating semicolon."""

    tokens: tuple[Token, ...]
    text: str
    start: int


def _unquote(text: str, quote: str) -> str:
    return text[1:-1].replace(quote * 2, quote)


def tokenize(source: str) -> list[Token]:
    """Split DDL text into tokens, dropping whitespace and comments."""
    tokens: list[Token] = []
    for match in TOKEN_RE.finditer(source):
        kind, text = match.lastgroup, match.group()
        start, end = match.span()
        match kind:
            case "space" | "comment":
                continue
            case "unterminated":
                what = "comment" if text == "/*" else f"{text} quote"
                msg = f"Unterminated {what}"
                raise ParseError(msg, position=start, source=source)
            case "quoted":
                tokens.append(Token(TokenKind.QUOTED, _unquote(text, '"'), start, end))
            case "backtick":
                tokens.append(Token(TokenKind.QUOTED, _unquote(text, "`"), start, end))
            case "string":
                tokens.append(Token(TokenKind.STRING, _unquote(text, "'"), start, end))
            case _:
                tokens.append(Token(TokenKind(kind), text, start, end))
    return tokens


def split_statements(source: str) -> list[Statement]:
    """Group tokens into statements on semicolons outside parentheses.

    Empty statements are dropped. Unbalanced parentheses raise ParseError.
    """
    statements: list[Statement] = []
    current: list[Token] = []
    depth = 0

    def flush() -> None:
        if current:
            start, end = current[0].start, current[-1].end
            statements.append(Statement(tuple(current), source[start:end], start))
            current.clear()

    for token in tokenize(source):
        if token.is_punct("("):
            depth += 1
        elif token.is_punct(")"):
            depth -= 1
            if depth < 0:
                msg = "Unbalanced ')'"
                statement = source[current[0].start : token.end] if current else ")"
                raise ParseError(
                    msg,
                    statement=statement,
                    position=token.start,
                    source=source,
                )
        elif token.is_punct(";") and depth == 0:
            flush()
            continue
        current.append(token)

    if depth > 0:
        msg = "Unclosed '('"
        start = current[0].start
        raise ParseError(
            msg,
            statement=source[start : current[-1].end],
            position=start,
            source=source,
        )
    flush()
    return statements
