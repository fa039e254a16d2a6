# tests/conftest.py
import sys
from pathlib import Path
from typing import Iterable, List

import pytest

# Add src/ to sys.path so `import bayesqc` works in tests
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

SETTINGS_DIR = ROOT / "settings"


class ScriptedUniforms:
    """Uniform source replaying a fixed list of values, for exact draws."""

    def __init__(self, values: Iterable[float]):
        self.values: List[float] = list(values)
        self.consumed = 0

    def random(self) -> float:
        value = self.values[self.consumed]
        self.consumed += 1
        return value


class FakeClock:
    """Clock counted in integer milliseconds so window cutoffs stay exact."""

    def __init__(self, start_ms: int = 0):
        self.ms = start_ms

    def __call__(self) -> float:
        return self.ms / 1000.0

    def advance(self, ms: int) -> None:
        self.ms += ms


class ManualTicker:
    """Ticker stand-in that only fires when the test says so."""

    instances: List["ManualTicker"] = []

    def __init__(self, interval_s: float, callback):
        self.interval_s = interval_s
        self.callback = callback
        self.started = False
        self.cancelled = False
        ManualTicker.instances.append(self)

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        # a real timer thread may still fire once after cancel()
        self.callback()


@pytest.fixture
def manual_ticker():
    ManualTicker.instances = []
    yield ManualTicker
    ManualTicker.instances = []


@pytest.fixture
def fake_clock():
    return FakeClock(start_ms=1_000_000)
