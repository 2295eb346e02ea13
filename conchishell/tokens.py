"""Turning parsed words into a flat list of command and operator tokens."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

PIPE = "|"
INPUT = "<"
OUTPUT = ">"
APPEND = ">>"
DELIMITER = "<<"

_SYMBOLS = (PIPE, INPUT, OUTPUT)


class ShellSyntaxError(Exception):
    """Raised when the token list is not a valid command line."""


class Quote(IntEnum):
    """How a token was quoted on the command line."""

    NONE = 0
    DOUBLE = 1
    SINGLE = 2


@dataclass
class Token:
    """One element of a command line: a word or an operator."""

    text: str
    quote: Quote = Quote.NONE

    @property
    def is_operator(self) -> bool:
        """True for an unquoted redirection or pipe symbol."""
        return self.quote == Quote.NONE and symbol_kind(self.text) > 0


def symbol_kind(text: str) -> int:
    """Classify the start of ``text``.

    Returns 0 for no operator, 1 for ``|``, ``<`` or ``>``, and 2 for
    ``>>`` or ``<<`` not followed by another operator character.
    """
    if not text:
        return 0
    if len(text) > 1 and text[:2] in (APPEND, DELIMITER):
        if len(text) == 2 or text[2] not in _SYMBOLS:
            return 2
    if text[0] in _SYMBOLS:
        return 1
    return 0


def find_last_symbol(word: str) -> int:
    """Return the index where the trailing run of operators starts."""
    pos = len(word) - 1
    if pos < 0:
        return 0
    while pos >= 0 and symbol_kind(word[pos:]):
        pos -= 1
    return pos + 1


def _leading_word(text: str) -> str:
    """The text up to the first operator character."""
    end = 0
    while end < len(text) and not symbol_kind(text[end:]):
        end += 1
    return text[:end]


def _last_word_char(word: str, pos: int) -> int:
    while pos < len(word) and not symbol_kind(word[pos:]):
        pos += 1
    while pos < len(word) and symbol_kind(word[pos:]):
        pos -= 1
    return pos


def _char(word: str, pos: int) -> str:
    return word[pos] if pos < len(word) else ""


def _operator_in_middle(word: str, pos: int, kind: int, out: list[Token]) -> int:
    scan = pos + kind
    while scan < len(word):
        if symbol_kind(word[scan:]) or scan + 1 == len(word):
            out.append(Token(word[pos:pos + kind]))
            break
        scan += 1
    pos = scan - 1
    while not symbol_kind(word[pos:]):
        pos -= 1
    return pos


def split_word(word: str) -> list[Token]:
    """Split one parsed word into word and operator tokens.

    A word that starts with a quote is taken whole, without its outer
    quotes, as a single quoted token.
    """
    tokens: list[Token] = []
    if word and word[0] in "\"'":
        quote = Quote.DOUBLE if word[0] == '"' else Quote.SINGLE
        tokens.append(Token(word[1:len(word) - 1], quote))
        return tokens
    pos = 0
    while pos < len(word):
        kind = symbol_kind(word[pos:])
        if kind == 0:
            tokens.append(Token(_leading_word(word[pos:])))
            pos = _last_word_char(word, pos)
            if pos >= len(word):
                pos -= 1
            if pos + 1 >= len(word):
                break
        elif _char(word, pos + kind):
            pos = _operator_in_middle(word, pos, kind, tokens)
        else:
            start = find_last_symbol(word)
            tokens.append(Token(word[start:start + kind]))
            break
        pos += 1
    return tokens


def build_tokens(words: list[str]) -> list[Token]:
    """Split every word and join the results into one token list."""
    return [token for word in words for token in split_word(word)]


def check_redirections(tokens: list[Token]) -> None:
    """Raise ShellSyntaxError for a dangling operator or one before a pipe."""
    for current, following in zip(tokens, tokens[1:] + [None]):
        if not current.is_operator:
            continue
        if following is None:
            raise ShellSyntaxError("Redirection at the end of line")
        if symbol_kind(following.text) and following.text[0] == PIPE:
            raise ShellSyntaxError("Syntax error near unexpected token")