"""Running token lists: pipelines, redirections, builtins and programs."""

from __future__ import annotations

import io
import os
import signal
import subprocess
import sys
import threading
from dataclasses import dataclass, field

from conchishell.builtins import ShellExit, is_builtin, run_builtin
from conchishell.env import Environment
from conchishell.redirections import (
    RedirectionError,
    Reader,
    open_input,
    open_output,
    replace_here_docs,
)
from conchishell.tokens import (
    APPEND,
    DELIMITER,
    INPUT,
    PIPE,
    Quote,
    ShellSyntaxError,
    Token,
    symbol_kind,
)

COMMAND_NOT_FOUND = 127
SYNTAX_ERROR = 2
REDIRECTION_FAILED = 1


def _read_line(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


def _reset_child_signals() -> None:
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    signal.signal(signal.SIGQUIT, signal.SIG_DFL)


def _flush_output() -> None:
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError, AttributeError):
            pass


def _close(fd: int | None) -> None:
    if fd is None:
        return
    try:
        os.close(fd)
    except OSError:
        pass


def _write_all(fd: int, data: bytes) -> None:
    try:
        view = memoryview(data)
        while view:
            written = os.write(fd, view)
            view = view[written:]
    except OSError:
        pass
    finally:
        _close(fd)


def search_route(command: str, envp: list[str]) -> str | None:
    """Find the file to run for ``command``.

    Each ``PATH`` directory is tried in order; then ``command`` itself is
    used when it names an existing file. Without a ``PATH`` entry in
    ``envp`` nothing is found.
    """
    path = next((entry[5:] for entry in envp if entry.startswith("PATH=")), None)
    if path is None or not command:
        return None
    for directory in filter(None, path.split(":")):
        candidate = f"{directory}/{command}"
        if os.access(candidate, os.F_OK):
            return candidate
    if os.access(command, os.F_OK):
        return command
    return None


def extract_command(tokens: list[Token], start: int) -> tuple[list[str], int]:
    """Collect the words of one command beginning at ``start``.

    The token at ``start`` is always taken; further tokens are taken while
    they are double-quoted or are not operator symbols. Returns the words
    and the index of the first token not taken.
    """
    words = [tokens[start].text]
    pos = start + 1
    while pos < len(tokens) and (
        tokens[pos].quote == Quote.DOUBLE or not symbol_kind(tokens[pos].text)
    ):
        words.append(tokens[pos].text)
        pos += 1
    return words, pos


@dataclass
class _Segment:
    argv: list[str] = field(default_factory=list)
    redirects: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class _Job:
    process: subprocess.Popen | None = None
    status: int = 0

    def wait(self) -> int:
        if self.process is None:
            return self.status
        code = self.process.wait()
        return 128 - code if code < 0 else code


def _parse_segment(tokens: list[Token]) -> _Segment:
    segment = _Segment()
    pos = 0
    while pos < len(tokens):
        token = tokens[pos]
        if token.is_operator:
            if pos + 1 >= len(tokens) or tokens[pos + 1].is_operator:
                raise ShellSyntaxError("La Conchi says: last command not found")
            segment.redirects.append((token.text, tokens[pos + 1].text))
            pos += 2
        else:
            words, pos = extract_command(tokens, pos)
            segment.argv.extend(words)
    return segment


def _split_segments(tokens: list[Token]) -> list[_Segment]:
    parts: list[list[Token]] = [[]]
    for token in tokens:
        if token.is_operator and token.text == PIPE:
            parts.append([])
        else:
            parts[-1].append(token)
    return [_parse_segment(part) for part in parts]


def _open_redirects(segment: _Segment) -> tuple[int | None, int | None]:
    """Open every redirection in order; the last input and output win."""
    stdin_fd: int | None = None
    stdout_fd: int | None = None
    try:
        for operator, path in segment.redirects:
            if operator in (INPUT, DELIMITER):
                fd = open_input(path)
                _close(stdin_fd)
                stdin_fd = fd
            else:
                fd = open_output(path, append=operator == APPEND)
                _close(stdout_fd)
                stdout_fd = fd
    except RedirectionError:
        _close(stdin_fd)
        _close(stdout_fd)
        raise
    return stdin_fd, stdout_fd


class Executor:
    """Runs token lists against one environment and tracks what it starts."""

    def __init__(self, env: Environment, reader: Reader | None = None) -> None:
        self.env = env
        self.reader: Reader = reader if reader is not None else _read_line
        self._jobs: list[_Job] = []
        self._writers: list[threading.Thread] = []

    def execute(self, tokens: list[Token]) -> None:
        """Start everything the token list asks for; call wait_all afterwards."""
        if not tokens:
            return
        if len(tokens) == 1:
            self._execute_single_token(tokens[0])
            return
        replace_here_docs(tokens, self.reader)
        try:
            segments = _split_segments(tokens)
        except ShellSyntaxError as exc:
            sys.stderr.write(f"{exc}\n")
            self._jobs.append(_Job(status=SYNTAX_ERROR))
            return
        if len(segments) == 1:
            self._run_single(segments[0])
        else:
            self._run_pipeline(segments)

    def run_command(
        self, argv: list[str], stdin: int | None = None, stdout: int | None = None
    ) -> subprocess.Popen | None:
        """Run one command with the given descriptors.

        Builtins run in the shell itself and change its state; other
        commands are started as programs, and the process is returned.
        """
        if not argv:
            return None
        if is_builtin(argv[0]):
            if stdout is None:
                run_builtin(argv, self.env, sys.stdout, sys.stderr)
            else:
                with os.fdopen(os.dup(stdout), "w", encoding="utf-8") as stream:
                    run_builtin(argv, self.env, stream, sys.stderr)
            self._jobs.append(_Job(status=0))
            return None
        return self._start(argv, stdin, stdout)

    def wait_all(self) -> int:
        """Wait for everything started and return the last command's status."""
        previous = None
        if threading.current_thread() is threading.main_thread():
            previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
        status = 0
        try:
            for writer in self._writers:
                writer.join()
            for job in self._jobs:
                status = job.wait()
        finally:
            self._writers.clear()
            self._jobs.clear()
            if previous is not None:
                signal.signal(signal.SIGINT, previous)
        return status

    def _execute_single_token(self, token: Token) -> None:
        if symbol_kind(token.text):
            sys.stderr.write(f"La Conchi says: syntax error near {token.text}\n")
            return
        if token.quote == Quote.DOUBLE:
            argv = [token.text] if token.text else []
        else:
            argv = [part for part in token.text.split(" ") if part]
        self.run_command(argv, None, None)

    def _not_found(self, name: str) -> None:
        sys.stderr.write(f"{name}: command not found\n")
        self._jobs.append(_Job(status=COMMAND_NOT_FOUND))

    def _start(
        self, argv: list[str], stdin: int | None, stdout: int | None
    ) -> subprocess.Popen | None:
        route = search_route(argv[0], self.env.to_envp())
        if route is None:
            self._not_found(argv[0])
            return None
        _flush_output()
        try:
            process = subprocess.Popen(
                argv,
                executable=route,
                stdin=stdin,
                stdout=stdout,
                env=dict(self.env.items()),
                preexec_fn=_reset_child_signals if os.name == "posix" else None,
            )
        except OSError:
            self._not_found(argv[0])
            return None
        self._jobs.append(_Job(process=process))
        return process

    def _run_single(self, segment: _Segment) -> None:
        try:
            stdin_fd, stdout_fd = _open_redirects(segment)
        except RedirectionError as exc:
            sys.stderr.write(f"{exc.strerror}\n")
            self._jobs.append(_Job(status=REDIRECTION_FAILED))
            return
        try:
            self.run_command(segment.argv, stdin_fd, stdout_fd)
        finally:
            _close(stdin_fd)
            _close(stdout_fd)

    def _run_pipeline(self, segments: list[_Segment]) -> None:
        previous_read: int | None = None
        for index, segment in enumerate(segments):
            if index == len(segments) - 1:
                pipe_read, pipe_write = None, None
            else:
                pipe_read, pipe_write = os.pipe()
            stdin_fd = stdout_fd = None
            try:
                stdin_fd, stdout_fd = _open_redirects(segment)
            except RedirectionError as exc:
                sys.stderr.write(f"{exc.strerror}\n")
                self._jobs.append(_Job(status=REDIRECTION_FAILED))
            else:
                source = stdin_fd if stdin_fd is not None else previous_read
                target = stdout_fd if stdout_fd is not None else pipe_write
                self._run_piped(segment.argv, source, target)
            finally:
                for fd in (stdin_fd, stdout_fd, previous_read, pipe_write):
                    _close(fd)
            previous_read = pipe_read
        _close(previous_read)

    def _run_piped(self, argv: list[str], stdin: int | None, stdout: int | None) -> None:
        if not argv:
            self._jobs.append(_Job(status=0))
            return
        if not is_builtin(argv[0]):
            self._start(argv, stdin, stdout)
            return
        status = self._run_isolated_builtin(argv, stdout)
        self._jobs.append(_Job(status=status))

    def _run_isolated_builtin(self, argv: list[str], stdout: int | None) -> int:
        """Run a builtin as part of a pipeline, leaving the shell untouched."""
        scratch = Environment()
        for key, value in self.env.items():
            scratch.set(key, value)
        try:
            saved_cwd: str | None = os.getcwd()
        except OSError:
            saved_cwd = None
        captured = io.StringIO()
        status = 0
        try:
            run_builtin(argv, scratch, captured, sys.stderr)
        except ShellExit as exc:
            status = exc.status
        finally:
            if saved_cwd is not None:
                try:
                    os.chdir(saved_cwd)
                except OSError:
                    pass
        text = captured.getvalue()
        if stdout is None:
            sys.stdout.write(text)
        else:
            writer = threading.Thread(
                target=_write_all, args=(os.dup(stdout), text.encode("utf-8")), daemon=True
            )
            writer.start()
            self._writers.append(writer)
        return status