"""Commands the shell runs itself instead of starting a program."""

from __future__ import annotations

import os
from typing import TextIO

from conchishell.env import Environment

BUILTINS = frozenset({"cd", "pwd", "echo", "env", "export", "unset", "exit"})

_DIGITS = "0123456789"
_LONG_MAX = 2**63 - 1


class ShellExit(Exception):
    """Raised by the exit builtin; carries the status the shell ends with."""

    def __init__(self, status: int = 0) -> None:
        super().__init__(status)
        self.status = status


def is_n_flag(arg: str) -> bool:
    """True for an echo option made of ``-`` followed only by ``n`` letters."""
    return arg.startswith("-n") and all(char == "n" for char in arg[1:])


def echo(args: list[str], stdout: TextIO) -> None:
    """Print the arguments; leading ``-n`` options suppress the newline.

    Without ``-n`` every argument is followed by a space before the newline.
    """
    if len(args) < 2:
        stdout.write("\n")
        return
    rest = args[1:]
    if not rest[0].startswith("-n"):
        stdout.write("".join(f"{arg} " for arg in rest) + "\n")
        return
    start = 0
    while start < len(rest) and rest[start].startswith("-n"):
        if not is_n_flag(rest[start]):
            break
        start += 1
    stdout.write(" ".join(rest[start:]))


def _current_directory() -> str | None:
    try:
        return os.getcwd()
    except OSError:
        return None


def cd(args: list[str], env: Environment, stdout: TextIO) -> None:
    """Change directory, keeping ``OLDPWD`` and ``PWD`` up to date."""
    if len(args) == 1:
        stdout.write("cd: no argument\n")
        return
    if len(args) != 2:
        stdout.write("cd: too many arguments\n")
        return
    old = _current_directory()
    if old is not None:
        env.set("OLDPWD", old)
    try:
        os.chdir(args[1])
    except OSError:
        stdout.write(f"cd: {args[1]}: No such file or directory\n")
    new = _current_directory()
    if new is not None:
        env.set("PWD", new)


def pwd(stdout: TextIO, stderr: TextIO) -> None:
    """Print the current working directory."""
    try:
        current = os.getcwd()
    except OSError as exc:
        stderr.write(f"pwd: cannot get the current directory: {exc.strerror}\n")
        return
    stdout.write(current + "\n")


def print_env(args: list[str], env: Environment, stdout: TextIO, stderr: TextIO) -> None:
    """Print every variable as ``KEY=VALUE``; arguments are refused."""
    if len(args) > 1:
        stderr.write("env: too many arguments\n")
        return
    for key, value in env.items():
        stdout.write(f"{key}={value}\n")


def _export_one(arg: str, env: Environment, stderr: TextIO) -> None:
    if "=" not in arg:
        return
    key, _, value = arg.partition("=")
    if arg[0] in _DIGITS:
        stderr.write(f"export: {key}: not a valid identifier\n")
    elif arg[0] in "=?":
        stderr.write("export: not a valid identifier\n")
    else:
        env.set(key, value)


def export(args: list[str], env: Environment, stderr: TextIO) -> None:
    """Set each ``KEY=VALUE`` argument; arguments without ``=`` are ignored."""
    if len(args) == 1:
        stderr.write("export: too few arguments\n")
        return
    for arg in args[1:]:
        _export_one(arg, env, stderr)


def unset(args: list[str], env: Environment, stderr: TextIO) -> None:
    """Remove every named variable."""
    if len(args) < 2:
        stderr.write("unset: too many arguments\n")
        return
    for key in args[1:]:
        env.remove(key)


def _exit_status(arg: str) -> int:
    value = int(arg) if arg else 0
    if value > _LONG_MAX:
        return 255
    return value & 0xFF


def exit_builtin(args: list[str], stdout: TextIO) -> None:
    """Raise ShellExit, or print why the arguments were refused."""
    if len(args) > 2:
        stdout.write("exit: too many arguments\n")
        return
    if len(args) == 1:
        raise ShellExit(0)
    arg = args[1]
    if any(char not in _DIGITS for char in arg):
        stdout.write("exit: numeric argument required\n")
        return
    raise ShellExit(_exit_status(arg))


def is_builtin(name: str) -> bool:
    """True when ``name`` is run by the shell itself."""
    return name in BUILTINS


def run_builtin(args: list[str], env: Environment, stdout: TextIO, stderr: TextIO) -> bool:
    """Run ``args`` as a builtin; return False when it is not one."""
    if not args or not is_builtin(args[0]):
        return False
    name = args[0]
    if name == "cd":
        cd(args, env, stdout)
    elif name == "pwd":
        pwd(stdout, stderr)
    elif name == "echo":
        echo(args, stdout)
    elif name == "env":
        print_env(args, env, stdout, stderr)
    elif name == "export":
        export(args, env, stderr)
    elif name == "unset":
        unset(args, env, stderr)
    else:
        exit_builtin(args, stdout)
    return True