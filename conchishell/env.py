"""Environment variables kept in the shell's own ordered store."""

from __future__ import annotations

from collections.abc import Iterable, Iterator


class Environment:
    """An ordered mapping of environment variable names to values."""

    def __init__(self) -> None:
        self._vars: dict[str, str] = {}

    @classmethod
    def from_strings(cls, entries: Iterable[str]) -> "Environment":
        """Build an environment from ``KEY=VALUE`` strings.

        Entries without ``=`` are ignored. Later entries come first in the
        resulting order, and for a repeated key the last entry wins.
        """
        env = cls()
        for entry in reversed(list(entries)):
            key, sep, value = entry.partition("=")
            if sep and key not in env._vars:
                env._vars[key] = value
        return env

    def get(self, key: str) -> str | None:
        """Return the value of ``key``, or None when it is not set."""
        return self._vars.get(key)

    def set(self, key: str, value: str) -> None:
        """Update ``key`` in place, or append it when it is new."""
        self._vars[key] = value

    def remove(self, key: str) -> None:
        """Remove ``key``; a missing key is silently ignored."""
        self._vars.pop(key, None)

    def items(self) -> Iterator[tuple[str, str]]:
        """Yield ``(key, value)`` pairs in order."""
        yield from self._vars.items()

    def to_envp(self) -> list[str]:
        """Return the variables as ``KEY=VALUE`` strings, in order."""
        return [f"{key}={value}" for key, value in self._vars.items()]

    def __len__(self) -> int:
        return len(self._vars)

    def __contains__(self, key: object) -> bool:
        return key in self._vars