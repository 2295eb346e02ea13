"""File redirections, here-documents and saving of the standard streams."""

from __future__ import annotations

import os
import sys
import tempfile
from collections.abc import Callable
from pathlib import Path

from conchishell.tokens import APPEND, DELIMITER, OUTPUT, Token

STDIN_FD = 0
STDOUT_FD = 1
FILE_MODE = 0o644
HERE_DOC_PROMPT = "> "

Reader = Callable[[str], "str | None"]


class RedirectionError(OSError):
    """Raised when a redirection target cannot be opened."""


def _flush_python_streams() -> None:
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError, AttributeError):
            pass


class SavedStreams:
    """Copies of standard input and output that can be put back later.

    Used as a context manager: entering saves both streams, leaving puts
    them back and closes the copies.
    """

    def __init__(self) -> None:
        self._stdin: int | None = None
        self._stdout: int | None = None

    def __enter__(self) -> "SavedStreams":
        self._stdin = os.dup(STDIN_FD)
        self._stdout = os.dup(STDOUT_FD)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()

    def restore_stdout(self) -> None:
        """Point standard output back at the saved stream."""
        if self._stdout is None:
            return
        _flush_python_streams()
        os.dup2(self._stdout, STDOUT_FD)

    def restore(self) -> None:
        """Put both streams back and release the saved copies."""
        _flush_python_streams()
        if self._stdin is not None:
            os.dup2(self._stdin, STDIN_FD)
            os.close(self._stdin)
            self._stdin = None
        if self._stdout is not None:
            os.dup2(self._stdout, STDOUT_FD)
            os.close(self._stdout)
            self._stdout = None


def open_output(path: str, append: bool = False) -> int:
    """Open ``path`` for writing, creating it, and return the descriptor.

    The file is truncated unless ``append`` is true.
    """
    flags = os.O_WRONLY | os.O_CREAT
    flags |= os.O_APPEND if append else os.O_TRUNC
    try:
        return os.open(path, flags, FILE_MODE)
    except OSError as exc:
        raise RedirectionError(
            exc.errno, f"La Conchi says: no such file or directory: {path}"
        ) from exc


def open_input(path: str) -> int:
    """Open ``path`` for reading and return the descriptor."""
    try:
        return os.open(path, os.O_RDONLY)
    except OSError as exc:
        raise RedirectionError(
            exc.errno, f"La Conchi says: no such file or directory: {path}"
        ) from exc


def _touch(path: str) -> None:
    os.close(open_output(path))


def last_in_chain(tokens: list[Token], start: int, operator: str) -> int:
    """Follow ``file OP file OP ...`` from ``start`` and return the last file's index.

    For ``>`` and ``>>`` chains of more than one file, every file passed
    over, the last one included, is created and truncated.
    """
    index = start
    files = [index]
    while index + 2 < len(tokens) and tokens[index + 1].text == operator:
        index += 2
        files.append(index)
    if len(files) > 1 and operator in (OUTPUT, APPEND):
        for position in files:
            _touch(tokens[position].text)
    return index


def write_here_doc(delimiter: str, path: str, reader: Reader) -> str:
    """Read lines until ``delimiter`` and write them to ``path``.

    Input also ends when the reader returns None or is interrupted.
    Returns ``path``.
    """
    with open(path, "w", encoding="utf-8") as target:
        os.chmod(path, FILE_MODE)
        while True:
            try:
                line = reader(HERE_DOC_PROMPT)
            except KeyboardInterrupt:
                break
            if line is None or line == delimiter:
                break
            target.write(line + "\n")
    return path


def replace_here_docs(
    tokens: list[Token], reader: Reader, directory: str | None = None
) -> list[str]:
    """Collect every here-document and put its file path in place of its delimiter.

    The first ``<<`` gets the highest number in its file name. Returns the
    paths written, in order.
    """
    folder = Path(directory if directory is not None else tempfile.gettempdir())
    positions = [pos for pos, token in enumerate(tokens) if token.text == DELIMITER]
    written: list[str] = []
    for number, position in zip(range(len(positions), 0, -1), positions):
        if position + 1 >= len(tokens):
            continue
        eof = tokens[position + 1]
        path = str(folder / f"tmp{number}")
        write_here_doc(eof.text, path, reader)
        eof.text = path
        written.append(path)
    return written


def first_delimiter(command: list[str]) -> list[str] | None:
    """Handle a command that starts with ``<< file``.

    Standard input is taken from the file and the rest of the command is
    returned; None is returned when there is no command after the file.
    """
    if len(command) <= 2:
        return None
    fd = open_input(command[1])
    try:
        os.dup2(fd, STDIN_FD)
    finally:
        os.close(fd)
    return list(command[2:])