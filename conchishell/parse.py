"""Splitting an input line into words and expanding quotes and variables."""

from __future__ import annotations

from conchishell.env import Environment
from conchishell.tokens import ShellSyntaxError

_QUOTES = ('"', "'")
_WORD_STOPS = ' "\''
_KEY_STOPS = '" \'$'


class UnclosedQuoteError(ValueError):
    """Raised when a quote opened on the line is never closed."""


def _at(text: str, pos: int) -> str:
    """The character at ``pos``, or an empty string past either end."""
    return text[pos] if 0 <= pos < len(text) else ""


def _closing_quote(line: str, start: int) -> int:
    end = line.find(line[start], start + 1)
    if end < 0:
        raise UnclosedQuoteError("Close the quotes")
    return end


def check_line(line: str) -> None:
    """Reject a doubled pipe or a pipe that ends the line."""
    for pos, char in enumerate(line):
        if char == "|" and _at(line, pos + 1) in ("|", ""):
            raise ShellSyntaxError(
                "La Conchi: syntax error near unexpected token `|'"
            )


def _end_of_word(line: str, start: int) -> int:
    pos = start
    while pos < len(line):
        if line[pos] in _QUOTES:
            pos = _closing_quote(line, pos) + 1
        if _at(line, pos) in (" ", ""):
            return pos
        pos += 1
    return pos


def count_words(line: str) -> int:
    """Return the word estimate used to size the line; 1 means nothing to run.

    Raises UnclosedQuoteError when a quote is left open.
    """
    words = 0
    pos = 0
    while pos < len(line):
        if line[pos] == " " and _at(line, pos + 1) != " ":
            words += 1
        if line[pos] not in _QUOTES and line[pos] != " ":
            pos = _end_of_word(line, pos)
            words += 1
        if _at(line, pos) in _QUOTES:
            pos = _closing_quote(line, pos)
            words += 1
        if pos >= len(line):
            break
        pos += 1
    return words + 1


def _plain_word(line: str, start: int) -> tuple[str, int]:
    """A word starting outside quotes; a quote inside it takes the rest of the line."""
    end = start
    while end < len(line) and line[end] not in _WORD_STOPS:
        end += 1
    if end < len(line) and line[end] in _QUOTES:
        return line[start:], len(line)
    return line[start:end], end


def _more_quotes(line: str, close: int, quote: str) -> tuple[str, int]:
    pos = close + 1
    while pos < len(line):
        if line[pos] == " ":
            return quote, pos + 1
        if line[pos] in _QUOTES:
            end = _closing_quote(line, pos)
            quote += line[pos:end + 1]
            pos = end + 1
        else:
            end = pos
            while end < len(line) and line[end] not in _WORD_STOPS:
                end += 1
            quote += line[pos:end]
            pos = end
    return quote, pos


def _quoted_word(line: str, start: int) -> tuple[str | None, int]:
    close = line.find(line[start], start + 1)
    if close < 0:
        return None, start
    quote = line[start:close + 1]
    resume = close
    if _at(line, close + 1) not in ("", " "):
        quote, resume = _more_quotes(line, close, quote)
    return quote, resume


def split_line(line: str) -> list[str]:
    """Cut the line into raw words, keeping their quotes."""
    words: list[str] = []
    pos = 0
    while pos < len(line):
        char = line[pos]
        if char == " ":
            pos += 1
            continue
        if char in _QUOTES:
            word, resume = _quoted_word(line, pos)
            if word is None:
                break
            words.append(word)
            pos = resume
            if _at(line, pos) and _at(line, pos + 1):
                pos += 1
            if pos >= len(line):
                break
        else:
            word, end = _plain_word(line, pos)
            words.append(word)
            pos = end - 1
        pos += 1
    return words


def _expand_variable(
    word: str, pos: int, env: Environment, last_exit: int, out: list[str]
) -> int:
    end = pos + 1
    while end < len(word) and word[end] not in _KEY_STOPS:
        end += 1
    key = word[pos + 1:end]
    value = str(last_exit) if key == "?" else env.get(key)
    if value is not None:
        out.append(value)
    return end


def _clean(word: str, env: Environment, last_exit: int) -> str:
    out: list[str] = []
    pos = 0
    size = len(word)
    while pos < size:
        char = word[pos]
        if char == '"':
            pos += 1
            while pos < size and word[pos] != '"':
                if word[pos] == "$" and _at(word, pos + 1) not in (" ", "", '"'):
                    pos = _expand_variable(word, pos, env, last_exit, out)
                else:
                    out.append(word[pos])
                    pos += 1
            pos += 1
        elif char == "'":
            end = word.find("'", pos + 1)
            if end < 0:
                end = size
            out.append(word[pos + 1:end])
            pos = end + 1
        else:
            while pos < size and word[pos] not in _QUOTES:
                if word[pos] == "$" and _at(word, pos + 1) not in (" ", ""):
                    pos = _expand_variable(word, pos, env, last_exit, out)
                else:
                    out.append(word[pos])
                    pos += 1
    return "".join(out)


def expand_word(word: str, env: Environment, last_exit: int = 0) -> str:
    """Remove quotes and expand variables in one word.

    A word with quotes comes back wrapped in double quotes; a word with
    only variables comes back wrapped in single quotes; any other word is
    returned unchanged.
    """
    if "'" in word or '"' in word:
        wrap = '"'
    elif "$" in word:
        wrap = "'"
    else:
        return word
    return wrap + _clean(word, env, last_exit) + wrap


def expand_words(words: list[str], env: Environment, last_exit: int = 0) -> list[str]:
    """Apply expand_word to every word."""
    return [expand_word(word, env, last_exit) for word in words]


def search_in_line(line: str, env: Environment, last_exit: int = 0) -> list[str]:
    """Split and expand a whole input line; an empty list means nothing to run.

    Raises UnclosedQuoteError when a quote is left open.
    """
    if count_words(line) == 1 or not line:
        return []
    return expand_words(split_line(line), env, last_exit)