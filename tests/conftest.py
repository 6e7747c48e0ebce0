"""Shared fixtures."""

from __future__ import annotations

import random
from typing import Callable, Iterable

import pytest


class ScriptedRandom(random.Random):
    """Random source that replays fixed ``randrange`` and ``random`` draws."""

    def __init__(self, ints: Iterable[int] = (), floats: Iterable[float] = ()) -> None:
        super().__init__(0)
        self._ints = list(ints)
        self._floats = list(floats)

    def randrange(self, *args, **kwargs) -> int:  # type: ignore[override]
        if not self._ints:
            raise AssertionError("ScriptedRandom ran out of integers")
        return self._ints.pop(0)

    def random(self) -> float:
        if not self._floats:
            raise AssertionError("ScriptedRandom ran out of floats")
        return self._floats.pop(0)


@pytest.fixture
def scripted_rng() -> Callable[..., ScriptedRandom]:
    return ScriptedRandom
