"""The interactive prompt loop and the command that starts the shell."""

from __future__ import annotations

import os
import signal
import sys
import threading
from collections.abc import Callable

from conchishell.builtins import ShellExit
from conchishell.env import Environment
from conchishell.executor import Executor
from conchishell.parse import UnclosedQuoteError, check_line, search_in_line
from conchishell.tokens import ShellSyntaxError, build_tokens, check_redirections

try:
    import readline as _readline
except ImportError:  # pragma: no cover - platforms without readline
    _readline = None

RED = "\001\033[1;31m\002"
GREEN = "\001\033[1;32m\002"
YELLOW = "\001\033[1;33m\002"
END = "\001\033[0m\002"

PROMPT = GREEN + "🐚La Conchi" + YELLOW + " ⇒ " + END
SYNTAX_ERROR_STATUS = 2
INTERRUPTED_STATUS = 130

Reader = Callable[[str], "str | None"]


def _read_line(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


def _add_history(line: str) -> None:
    if _readline is not None:
        _readline.add_history(line)


def _install_signals() -> None:
    """Ctrl-C interrupts the current prompt; Ctrl-\\ is ignored."""
    signal.signal(signal.SIGINT, signal.default_int_handler)
    if hasattr(signal, "SIGQUIT"):
        signal.signal(signal.SIGQUIT, signal.SIG_IGN)


def _current_handlers() -> dict[int, object]:
    handlers: dict[int, object] = {signal.SIGINT: signal.getsignal(signal.SIGINT)}
    if hasattr(signal, "SIGQUIT"):
        handlers[signal.SIGQUIT] = signal.getsignal(signal.SIGQUIT)
    return handlers


class Shell:
    """Reads command lines, runs them and keeps the last exit status."""

    def __init__(self, env: Environment | None = None, reader: Reader | None = None) -> None:
        if env is None:
            env = Environment.from_strings(
                f"{key}={value}" for key, value in os.environ.items()
            )
        self.env = env
        self.reader: Reader = reader if reader is not None else _read_line
        self.last_exit = 0
        self.executor = Executor(self.env, self.reader)

    def run_line(self, line: str) -> int:
        """Run one input line and return the resulting exit status.

        Raises ShellExit when the exit builtin ends the shell.
        """
        try:
            check_line(line)
        except ShellSyntaxError as exc:
            sys.stderr.write(f"{exc}\n")
            return self.last_exit
        try:
            words = search_in_line(line, self.env, self.last_exit)
        except UnclosedQuoteError:
            sys.stdout.write(RED + "Close the quotes\n" + END)
            return self.last_exit
        if not words:
            return self.last_exit
        tokens = build_tokens(words)
        try:
            check_redirections(tokens)
        except ShellSyntaxError as exc:
            sys.stderr.write(f"{exc}\n")
            self.last_exit = SYNTAX_ERROR_STATUS
            return self.last_exit
        try:
            self.executor.execute(tokens)
        finally:
            status = self.executor.wait_all()
        self.last_exit = status
        return status

    def loop(self) -> int:
        """Prompt and run lines until end of input or exit; return the status."""
        in_main = threading.current_thread() is threading.main_thread()
        previous = _current_handlers() if in_main else {}
        try:
            while True:
                if in_main:
                    _install_signals()
                try:
                    line = self.reader(PROMPT)
                except KeyboardInterrupt:
                    sys.stdout.write("\n")
                    continue
                if line is None or line == "exit":
                    sys.stderr.write("exit\n")
                    return 0
                if line:
                    _add_history(line)
                try:
                    self.run_line(line)
                except ShellExit as exc:
                    return exc.status
                except KeyboardInterrupt:
                    sys.stdout.write("\n")
                    self.last_exit = INTERRUPTED_STATUS
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)


def main(argv: list[str] | None = None) -> int:
    """Start the interactive shell; arguments are refused."""
    args = sys.argv[1:] if argv is None else argv
    if args:
        sys.stdout.write(RED + "Don't put arguments\n" + END)
        return 0
    status = Shell().loop()
    if _readline is not None:
        _readline.clear_history()
    return status


if __name__ == "__main__":
    sys.exit(main())