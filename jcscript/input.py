"""Pressed-key tracking.

Key identifiers follow the browser `KeyboardEvent.key` naming that scripts use
(`"ArrowUp"`, `"a"`, `" "`), compared case-insensitively.
"""

from typing import FrozenSet, Set


def normalize_key(key: str) -> str:
    return key.lower()


class KeyState:
    """Set of keys currently held down."""

    def __init__(self):
        self._pressed: Set[str] = set()

    def press(self, key: str) -> None:
        self._pressed.add(normalize_key(key))

    def release(self, key: str) -> None:
        self._pressed.discard(normalize_key(key))

    def is_down(self, key: str) -> bool:
        return normalize_key(key) in self._pressed

    @property
    def pressed(self) -> FrozenSet[str]:
        return frozenset(self._pressed)

    def clear(self) -> None:
        self._pressed.clear()
