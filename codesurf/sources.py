# CodeSurf — host event sources
#
# Two ways to get edit events into the monitor:
#   1. WorkspaceWatcher — watchdog observer over a workspace; each file write
#      is diffed against the last snapshot and turned into an EditEvent
#   2. consume_feed    — JSON lines from an editor plugin (stdin), one host
#      event per line, see normalizer.parse_feed_line
#
# The watchdog observer runs on its own thread; events cross into the loop
# only through loop.call_soon_threadsafe.

import asyncio
import difflib
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .normalizer import EditEvent, TextChange, parse_feed_line

logger = logging.getLogger(__name__)

IGNORED_DIRS = {".git", ".hg", ".svn", "node_modules", "__pycache__", ".venv", "venv", ".mypy_cache", ".pytest_cache"}
MAX_FILE_BYTES = 512_000


def _safe_read(path: Path, max_bytes: int = MAX_FILE_BYTES) -> Optional[str]:
    """Read a text file without ever raising. None for big, binary or vanished files."""
    try:
        if path.stat().st_size > max_bytes:
            return None
        data = path.read_bytes()
    except OSError:
        return None
    if b"\x00" in data:
        return None
    return data.decode("utf-8", errors="replace")


def line_count(text: str) -> int:
    return text.count("\n") + 1


def diff_changes(old: str, new: str) -> Tuple[TextChange, ...]:
    """Line-level diff of two snapshots; one TextChange per non-equal hunk."""
    old_lines = old.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    changes = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        changes.append(TextChange(
            text="".join(new_lines[j1:j2]),
            range_length=sum(len(l) for l in old_lines[i1:i2]),
        ))
    return tuple(changes)


class WorkspaceEditHandler(FileSystemEventHandler):
    """Turns file writes under the workspace into EditEvents."""

    def __init__(self, root: str, submit: Callable[[EditEvent], None]):
        self.root = Path(root).resolve()
        self.submit = submit
        self._snapshots: Dict[str, str] = {}

    def _ignored(self, path: str) -> bool:
        try:
            rel = Path(path).resolve().relative_to(self.root)
        except ValueError:
            return True
        return any(part in IGNORED_DIRS for part in rel.parts)

    def prime(self, path: str):
        """Remember the current content without emitting anything."""
        text = _safe_read(Path(path))
        if text is not None:
            self._snapshots[path] = text

    def prime_all(self) -> int:
        """Snapshot every readable file under the root, skipping ignored dirs."""
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = [d for d in dirnames if d not in IGNORED_DIRS]
            for name in filenames:
                self.prime(os.path.join(dirpath, name))
        return len(self._snapshots)

    def on_created(self, fs_event):
        if fs_event.is_directory or self._ignored(fs_event.src_path):
            return
        text = _safe_read(Path(fs_event.src_path))
        if text is None:
            return
        self._snapshots[fs_event.src_path] = text
        if text:
            # A new file counts as one insertion of its whole content.
            self.submit(EditEvent(
                document=fs_event.src_path,
                changes=(TextChange(text),),
                line_count=line_count(text),
            ))

    def on_modified(self, fs_event):
        if fs_event.is_directory or self._ignored(fs_event.src_path):
            return
        path = fs_event.src_path
        new = _safe_read(Path(path))
        if new is None:
            self._snapshots.pop(path, None)
            return
        old = self._snapshots.get(path)
        self._snapshots[path] = new
        if old is None or old == new:
            return
        changes = diff_changes(old, new)
        if changes:
            self.submit(EditEvent(document=path, changes=changes, line_count=line_count(new)))

    def on_deleted(self, fs_event):
        self._snapshots.pop(fs_event.src_path, None)

    def on_moved(self, fs_event):
        text = self._snapshots.pop(fs_event.src_path, None)
        if text is not None and not self._ignored(fs_event.dest_path):
            self._snapshots[fs_event.dest_path] = text


class WorkspaceWatcher:
    """Runs a watchdog observer and forwards its EditEvents into the loop."""

    def __init__(self, workspace_root: str):
        self.workspace_root = str(Path(workspace_root).resolve())
        self._observer: Optional[Observer] = None

    def start(self, loop: asyncio.AbstractEventLoop, submit: Callable[[EditEvent], None]):
        handler = WorkspaceEditHandler(
            self.workspace_root,
            lambda event: loop.call_soon_threadsafe(submit, event),
        )
        primed = handler.prime_all()

        self._observer = Observer()
        self._observer.schedule(handler, self.workspace_root, recursive=True)
        self._observer.start()
        logger.info(f"Watching workspace: {self.workspace_root} ({primed} files)")

    def stop(self):
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None


async def consume_feed(reader: asyncio.StreamReader, submit: Callable) -> int:
    """Read JSON lines until EOF, submitting each parsed event. Returns the count."""
    count = 0
    while True:
        raw = await reader.readline()
        if not raw:
            break
        event = parse_feed_line(raw.decode("utf-8", errors="replace"))
        if event is None:
            logger.debug(f"Ignoring feed line: {raw[:80]!r}")
            continue
        submit(event)
        count += 1
        # Let the submitted event run its synchronous part before the next line.
        await asyncio.sleep(0)
    return count


async def open_stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader
