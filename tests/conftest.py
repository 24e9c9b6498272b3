import itertools

import pytest

from tarry import delays


class ScriptedSource:
    """Uniform source that replays a fixed sequence of values (cycling)."""

    def __init__(self, values):
        self._values = itertools.cycle(values)
        self.calls = 0

    def uniform01(self):
        self.calls += 1
        return next(self._values)

    def uniform(self, low, high):
        return low + (high - low) * self.uniform01()


@pytest.fixture
def scripted():
    return ScriptedSource


@pytest.fixture(autouse=True)
def _fresh_sampler_cache():
    delays.clear_cache()
    yield
    delays.clear_cache()
