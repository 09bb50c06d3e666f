"""Shared fixtures and fakes for CodeSurf tests."""

import asyncio
import json
import sys
from pathlib import Path

import pytest
import yaml

# Ensure the package is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

from codesurf.clipboard import ClipboardText, ClipboardUnavailable
from codesurf.config import ConfigStore
from codesurf.controller import HysteresisController
from codesurf.emitter import PlaybackSurface
from codesurf.stats import CumulativeStats, SessionStatsAggregator


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


class FakeHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Records call_later requests; run_due() fires those whose time has come."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.handles = []

    def call_later(self, delay_ms, callback):
        handle = FakeHandle(self.clock() + delay_ms, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def run_due(self) -> int:
        fired = 0
        for h in self.pending:
            if h.when <= self.clock():
                h.fired = True
                h.callback()
                fired += 1
        return fired


class RecordingTransport:
    """Keeps every surface message in memory."""

    def __init__(self):
        self.messages = []

    def send(self, message):
        self.messages.append(message)

    @property
    def commands(self):
        return [m["command"] for m in self.messages]

    def close(self):
        pass


class MemoryStatsStore:
    def __init__(self, stats=None):
        self._blob = json.dumps(stats.to_dict()) if stats else None
        self.saves = 0

    def load(self):
        return CumulativeStats.from_dict(json.loads(self._blob)) if self._blob else None

    def save(self, stats):
        self._blob = json.dumps(stats.to_dict())
        self.saves += 1
        return True


class FakeClipboard:
    """Async clipboard with optional delay and failure."""

    def __init__(self, text=None, delay=0.0, fail=False):
        self.text = text
        self.delay = delay
        self.fail = fail
        self.reads = 0
        self.cancelled = False

    async def read(self):
        self.reads += 1
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.fail:
            raise RuntimeError("clipboard denied")
        if self.text is None:
            return ClipboardUnavailable("empty")
        return ClipboardText(self.text)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_store(tmp_path):
    """Factory: write settings to a temp config.yaml and return a ConfigStore."""
    path = tmp_path / "config.yaml"

    def _make(**settings):
        with open(path, "w") as f:
            yaml.safe_dump(settings, f)
        return ConfigStore(str(path))

    return _make


class Rig:
    """Controller wired to fakes."""

    def __init__(self, store, clock):
        self.store = store
        self.clock = clock
        self.transport = RecordingTransport()
        self.surface = PlaybackSurface(self.transport)
        self.stats_store = MemoryStatsStore()
        self.stats = SessionStatsAggregator(self.stats_store, clock=clock)
        self.scheduler = FakeScheduler(clock)
        self.controller = HysteresisController(
            store, self.surface, self.stats, scheduler=self.scheduler, clock=clock,
        )


@pytest.fixture
def make_rig(make_store, clock):
    def _make(**settings):
        return Rig(make_store(**settings), clock)
    return _make
