import io
import os

import pytest

from conchishell.builtins import (
    ShellExit,
    cd,
    echo,
    exit_builtin,
    export,
    is_builtin,
    is_n_flag,
    print_env,
    pwd,
    run_builtin,
    unset,
)
from conchishell.env import Environment


def _streams():
    return io.StringIO(), io.StringIO()


@pytest.mark.parametrize(
    "arg, expected",
    [("-n", True), ("-nnn", True), ("-nx", False), ("hello", False), ("-", False)],
)
def test_is_n_flag(arg, expected):
    assert is_n_flag(arg) is expected


def test_echo_without_arguments_prints_newline():
    out = io.StringIO()
    echo(["echo"], out)
    assert out.getvalue() == "\n"


def test_echo_normal_puts_space_after_each_word():
    out = io.StringIO()
    echo(["echo", "a", "b"], out)
    assert out.getvalue() == "a b \n"


def test_echo_n_flag_suppresses_newline():
    out = io.StringIO()
    echo(["echo", "-n", "a", "b"], out)
    assert out.getvalue() == "a b"


def test_echo_repeated_n_flags():
    out = io.StringIO()
    echo(["echo", "-n", "-nnn", "a"], out)
    assert out.getvalue() == "a"


def test_echo_bad_flag_is_printed():
    out = io.StringIO()
    echo(["echo", "-nx", "a"], out)
    assert out.getvalue() == "-nx a"


def test_cd_without_argument():
    out = io.StringIO()
    cd(["cd"], Environment(), out)
    assert out.getvalue() == "cd: no argument\n"


def test_cd_too_many_arguments():
    out = io.StringIO()
    cd(["cd", "a", "b"], Environment(), out)
    assert out.getvalue() == "cd: too many arguments\n"


def test_cd_changes_directory_and_updates_env(tmp_path, monkeypatch):
    start = tmp_path / "start"
    target = tmp_path / "target"
    start.mkdir()
    target.mkdir()
    monkeypatch.chdir(start)
    env = Environment()
    out = io.StringIO()
    cd(["cd", str(target)], env, out)
    assert out.getvalue() == ""
    assert os.path.samefile(os.getcwd(), target)
    assert os.path.samefile(env.get("OLDPWD"), start)
    assert env.get("PWD") == os.getcwd()


def test_cd_missing_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    env = Environment()
    out = io.StringIO()
    missing = str(tmp_path / "missing")
    cd(["cd", missing], env, out)
    assert out.getvalue() == f"cd: {missing}: No such file or directory\n"
    assert os.path.samefile(os.getcwd(), tmp_path)
    assert env.get("PWD") == env.get("OLDPWD")


def test_pwd_prints_current_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    out, err = _streams()
    pwd(out, err)
    assert out.getvalue() == os.getcwd() + "\n"
    assert err.getvalue() == ""


def test_print_env_lists_variables():
    env = Environment.from_strings(["A=1", "B=2"])
    out, err = _streams()
    print_env(["env"], env, out, err)
    assert out.getvalue().splitlines() == env.to_envp()


def test_print_env_refuses_arguments():
    out, err = _streams()
    print_env(["env", "x"], Environment.from_strings(["A=1"]), out, err)
    assert err.getvalue() == "env: too many arguments\n"
    assert out.getvalue() == ""


def test_export_sets_variable():
    env = Environment()
    err = io.StringIO()
    export(["export", "NAME=value", "EMPTY="], env, err)
    assert env.get("NAME") == "value"
    assert env.get("EMPTY") == ""
    assert err.getvalue() == ""


def test_export_ignores_argument_without_equals():
    env = Environment()
    export(["export", "NAME"], env, io.StringIO())
    assert "NAME" not in env


def test_export_rejects_leading_digit():
    env = Environment()
    err = io.StringIO()
    export(["export", "1abc=x"], env, err)
    assert err.getvalue() == "export: 1abc: not a valid identifier\n"
    assert len(env) == 0


@pytest.mark.parametrize("arg", ["=x", "?=x"])
def test_export_rejects_bad_identifier(arg):
    env = Environment()
    err = io.StringIO()
    export(["export", arg], env, err)
    assert err.getvalue() == "export: not a valid identifier\n"
    assert len(env) == 0


def test_export_without_arguments():
    err = io.StringIO()
    export(["export"], Environment(), err)
    assert err.getvalue() == "export: too few arguments\n"


def test_unset_removes_variables():
    env = Environment.from_strings(["A=1", "B=2", "C=3"])
    unset(["unset", "A", "C", "MISSING"], env, io.StringIO())
    assert env.to_envp() == ["B=2"]


def test_unset_without_arguments():
    err = io.StringIO()
    unset(["unset"], Environment(), err)
    assert err.getvalue() == "unset: too many arguments\n"


def test_exit_without_argument():
    with pytest.raises(ShellExit) as info:
        exit_builtin(["exit"], io.StringIO())
    assert info.value.status == 0


def test_exit_with_status():
    with pytest.raises(ShellExit) as info:
        exit_builtin(["exit", "42"], io.StringIO())
    assert info.value.status == 42


def test_exit_overflow_gives_255():
    with pytest.raises(ShellExit) as info:
        exit_builtin(["exit", "99999999999999999999"], io.StringIO())
    assert info.value.status == 255


@pytest.mark.parametrize("arg", ["-1", "abc", "4x"])
def test_exit_requires_numeric_argument(arg):
    out = io.StringIO()
    exit_builtin(["exit", arg], out)
    assert out.getvalue() == "exit: numeric argument required\n"


def test_exit_too_many_arguments():
    out = io.StringIO()
    exit_builtin(["exit", "1", "2"], out)
    assert out.getvalue() == "exit: too many arguments\n"


@pytest.mark.parametrize(
    "name, expected",
    [("cd", True), ("echo", True), ("exit", True), ("ls", False), ("", False)],
)
def test_is_builtin(name, expected):
    assert is_builtin(name) is expected


def test_run_builtin_dispatches_echo():
    out, err = _streams()
    assert run_builtin(["echo", "-n", "hi"], Environment(), out, err) is True
    assert out.getvalue() == "hi"


def test_run_builtin_dispatches_export():
    env = Environment()
    out, err = _streams()
    assert run_builtin(["export", "K=v"], env, out, err) is True
    assert env.get("K") == "v"


def test_run_builtin_raises_on_exit():
    out, err = _streams()
    with pytest.raises(ShellExit) as info:
        run_builtin(["exit", "7"], Environment(), out, err)
    assert info.value.status == 7


def test_run_builtin_rejects_other_commands():
    out, err = _streams()
    assert run_builtin(["ls", "-l"], Environment(), out, err) is False
    assert out.getvalue() == ""
    assert run_builtin([], Environment(), out, err) is False