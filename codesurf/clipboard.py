# CodeSurf — clipboard capability
#
# Reads the system clipboard through the platform's own CLI tool. The read
# is the only suspending call in the detection path and may be slow or fail;
# every failure comes back as Unavailable, never as an exception.

import asyncio
import logging
import shutil
import sys
from dataclasses import dataclass
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

READ_TIMEOUT_SECS = 2.0


@dataclass(frozen=True)
class ClipboardText:
    """Ok result: the current clipboard contents."""
    text: str


@dataclass(frozen=True)
class ClipboardUnavailable:
    """The clipboard could not be read."""
    reason: str = ""


ClipboardResult = Union[ClipboardText, ClipboardUnavailable]


def _detect_command() -> Optional[List[str]]:
    """Pick a clipboard reader for this platform, or None."""
    if sys.platform == "darwin":
        candidates = [["pbpaste"]]
    elif sys.platform.startswith("win"):
        candidates = [["powershell", "-NoProfile", "-Command", "Get-Clipboard"]]
    else:
        candidates = [
            ["wl-paste", "--no-newline"],
            ["xclip", "-selection", "clipboard", "-o"],
            ["xsel", "--clipboard", "--output"],
        ]
    for cmd in candidates:
        if shutil.which(cmd[0]):
            return cmd
    return None


def _kill(proc):
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass


class SystemClipboard:
    """Clipboard reader backed by pbpaste / wl-paste / xclip / xsel / powershell."""

    def __init__(self, command: Optional[List[str]] = None, timeout: float = READ_TIMEOUT_SECS):
        self.command = command if command is not None else _detect_command()
        self.timeout = timeout
        if self.command is None:
            logger.info("No clipboard tool found; clipboard signal disabled")

    async def read(self) -> ClipboardResult:
        if not self.command:
            return ClipboardUnavailable("no clipboard tool")
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            return ClipboardUnavailable(str(e))

        try:
            out, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            _kill(proc)
            await proc.wait()
            return ClipboardUnavailable("timeout")
        except asyncio.CancelledError:
            _kill(proc)
            raise

        if proc.returncode != 0:
            return ClipboardUnavailable(f"exit {proc.returncode}")
        return ClipboardText(out.decode("utf-8", errors="replace"))


class StaticClipboard:
    """Fixed clipboard contents; used when no system clipboard is wanted."""

    def __init__(self, text: Optional[str] = None):
        self.text = text

    async def read(self) -> ClipboardResult:
        if self.text is None:
            return ClipboardUnavailable("disabled")
        return ClipboardText(self.text)
