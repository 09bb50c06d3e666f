"""Tests for the system clipboard reader."""
import asyncio

import pytest

from codesurf import clipboard
from codesurf.clipboard import ClipboardText, ClipboardUnavailable, StaticClipboard, SystemClipboard


class FakeProcess:
    """Stands in for an asyncio subprocess."""

    def __init__(self, out=b"", returncode=0, hang=False):
        self.out = out
        self.final = returncode
        self.hang = hang
        self.returncode = None
        self.killed = False

    async def communicate(self):
        if self.hang:
            await asyncio.sleep(3600)
        self.returncode = self.final
        return self.out, b""

    def kill(self):
        self.killed = True
        self.returncode = -9

    async def wait(self):
        return self.returncode


@pytest.fixture
def spawn(monkeypatch):
    """Route subprocess creation to a FakeProcess; returns a setter."""
    holder = {}

    async def fake_exec(*cmd, **kwargs):
        holder["cmd"] = cmd
        return holder["proc"]

    monkeypatch.setattr(clipboard.asyncio, "create_subprocess_exec", fake_exec)

    def _set(proc):
        holder["proc"] = proc
        return holder
    return _set


class TestSystemClipboard:

    def test_reads_stdout(self, spawn):
        seen = spawn(FakeProcess(out=b"hello"))
        result = asyncio.run(SystemClipboard(command=["pbpaste"]).read())
        assert result == ClipboardText("hello")
        assert seen["cmd"] == ("pbpaste",)

    def test_nonzero_exit_is_unavailable(self, spawn):
        spawn(FakeProcess(returncode=1))
        result = asyncio.run(SystemClipboard(command=["xclip"]).read())
        assert isinstance(result, ClipboardUnavailable)

    def test_timeout_kills_process(self, spawn):
        proc = FakeProcess(hang=True)
        spawn(proc)
        result = asyncio.run(SystemClipboard(command=["xsel"], timeout=0.01).read())
        assert result == ClipboardUnavailable("timeout")
        assert proc.killed

    def test_cancel_kills_process(self, spawn):
        proc = FakeProcess(hang=True)
        spawn(proc)

        async def scenario():
            task = asyncio.ensure_future(SystemClipboard(command=["wl-paste"]).read())
            await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert proc.killed

    def test_no_tool(self):
        result = asyncio.run(SystemClipboard(command=[]).read())
        assert isinstance(result, ClipboardUnavailable)


class TestStaticClipboard:

    def test_disabled(self):
        assert isinstance(asyncio.run(StaticClipboard().read()), ClipboardUnavailable)

    def test_fixed_text(self):
        assert asyncio.run(StaticClipboard("x").read()) == ClipboardText("x")
