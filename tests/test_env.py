import pytest

from conchishell.env import Environment


@pytest.fixture
def env():
    return Environment.from_strings(["HOME=/home/user", "PATH=/bin:/usr/bin", "SHELL=sh"])


def test_from_strings_reverses_order(env):
    assert [key for key, _ in env.items()] == ["SHELL", "PATH", "HOME"]


def test_from_strings_skips_entries_without_equal_sign():
    env = Environment.from_strings(["NOEQUAL", "A=1"])
    assert len(env) == 1
    assert "NOEQUAL" not in env
    assert env.get("A") == "1"


def test_from_strings_last_duplicate_wins():
    env = Environment.from_strings(["A=first", "A=second"])
    assert env.get("A") == "second"
    assert len(env) == 1


def test_value_keeps_later_equal_signs():
    env = Environment.from_strings(["OPTS=a=b=c"])
    assert env.get("OPTS") == "a=b=c"


def test_get_missing_returns_none(env):
    assert env.get("MISSING") is None


def test_set_appends_new_key_at_end(env):
    env.set("NEW", "value")
    assert list(env.items())[-1] == ("NEW", "value")
    assert len(env) == 4


def test_set_updates_in_place(env):
    env.set("PATH", "/opt")
    assert [key for key, _ in env.items()] == ["SHELL", "PATH", "HOME"]
    assert env.get("PATH") == "/opt"


def test_remove_deletes_key(env):
    env.remove("PATH")
    assert "PATH" not in env
    assert len(env) == 2


def test_remove_missing_is_ignored(env):
    env.remove("MISSING")
    assert len(env) == 3


def test_to_envp_round_trip(env):
    envp = env.to_envp()
    rebuilt = Environment.from_strings(reversed(envp))
    assert list(rebuilt.items()) == list(env.items())


def test_to_envp_format(env):
    assert "HOME=/home/user" in env.to_envp()


def test_empty_environment():
    env = Environment()
    assert len(env) == 0
    assert env.to_envp() == []