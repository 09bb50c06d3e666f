# CodeSurf — host event model
#
# Every host notification (edit batch, diagnostics change, window focus,
# playback time report, surface closed, user command) is normalized into one
# of the small dataclasses below before it reaches the engine.
#
# SCHEMA RULES:
#   - Edit events are ephemeral: evaluated once, never stored
#   - Times are wall-clock milliseconds
#   - Feed lines that cannot be parsed are dropped, never raised

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union


def now_ms() -> float:
    return time.time() * 1000.0


# ═══════════════════════════════════════════════════════════════
# FEED TAXONOMY — CLOSED SET
# ═══════════════════════════════════════════════════════════════

class FeedType:
    """All valid "type" values of a host feed line."""

    EDIT           = "edit"
    DIAGNOSTICS    = "diagnostics"
    FOCUS          = "focus"
    PLAYBACK_TIME  = "playback_time"
    SURFACE_CLOSED = "surface_closed"
    COMMAND        = "command"

    _ALL = None

    @classmethod
    def all_types(cls) -> set:
        if cls._ALL is None:
            cls._ALL = {
                v for k, v in vars(cls).items()
                if isinstance(v, str) and not k.startswith("_")
            }
        return cls._ALL

    @classmethod
    def is_valid(cls, feed_type: str) -> bool:
        return feed_type in cls.all_types()


class PlaybackCommand:
    """Command messages understood by the playback surface."""

    PLAY       = "play"
    PAUSE      = "pause"
    UPDATE_URL = "updateUrl"
    SEEK_TO    = "seekTo"


# ═══════════════════════════════════════════════════════════════
# DATA MODEL
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TextChange:
    """One contiguous replacement inside a document."""
    text: str                      # inserted text ("" for a pure deletion)
    range_length: int = 0          # characters replaced/deleted

    @property
    def size(self) -> int:
        return len(self.text)

    @property
    def line_count(self) -> int:
        # An empty insertion still counts as one line.
        return self.text.count("\n") + 1


@dataclass(frozen=True)
class EditEvent:
    """One batch of simultaneous text changes to one document."""
    document: str
    changes: Tuple[TextChange, ...] = ()
    received_ms: float = field(default_factory=now_ms)
    line_count: Optional[int] = None   # document lines after the edit, if known

    @classmethod
    def of(cls, document: str, *texts: str, **kwargs) -> "EditEvent":
        """Shorthand for an event made of plain insertions."""
        return cls(document=document, changes=tuple(TextChange(t) for t in texts), **kwargs)


@dataclass(frozen=True)
class DiagnosticsEvent:
    """Diagnostics changed for a set of documents."""
    documents: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FocusEvent:
    focused: bool


@dataclass(frozen=True)
class PlaybackTimeEvent:
    """Optional current-position report from the playback surface."""
    seconds: float


@dataclass(frozen=True)
class SurfaceClosedEvent:
    """The user closed the playback surface."""
    pass


@dataclass(frozen=True)
class CommandEvent:
    """A user command: toggle, set_video, show_stats, reset_stats."""
    name: str
    arg: Optional[str] = None


HostEvent = Union[
    EditEvent, DiagnosticsEvent, FocusEvent,
    PlaybackTimeEvent, SurfaceClosedEvent, CommandEvent,
]


# ═══════════════════════════════════════════════════════════════
# SIGNALS
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SignalVector:
    """Boolean heuristic outputs for one edit event."""
    rapid_edit: bool = False
    large_block: bool = False
    ai_pattern: bool = False
    clipboard_echo: bool = False

    def count(self) -> int:
        return sum((self.rapid_edit, self.large_block, self.ai_pattern, self.clipboard_echo))

    def with_clipboard(self, echo: bool) -> "SignalVector":
        return SignalVector(self.rapid_edit, self.large_block, self.ai_pattern, echo)

    def describe(self) -> str:
        names = [
            name for name, on in (
                ("rapid", self.rapid_edit),
                ("large", self.large_block),
                ("pattern", self.ai_pattern),
                ("clipboard", self.clipboard_echo),
            ) if on
        ]
        return "+".join(names) or "none"


# ═══════════════════════════════════════════════════════════════
# FEED PARSING
# ═══════════════════════════════════════════════════════════════

def parse_feed_line(line: str) -> Optional[HostEvent]:
    """Parse one JSON line of the host feed. Returns None for anything unusable."""
    line = line.strip()
    if not line:
        return None

    try:
        entry = json.loads(line)
    except (json.JSONDecodeError, ValueError):
        return None

    if not isinstance(entry, dict):
        return None

    feed_type = entry.get("type")
    if not FeedType.is_valid(feed_type):
        return None

    try:
        return _build(feed_type, entry)
    except (TypeError, ValueError, KeyError):
        return None


def _build(feed_type: str, entry: Dict[str, Any]) -> Optional[HostEvent]:
    if feed_type == FeedType.EDIT:
        changes = []
        for c in entry.get("changes") or []:
            if isinstance(c, str):
                changes.append(TextChange(c))
            elif isinstance(c, dict):
                changes.append(TextChange(
                    text=str(c.get("text") or ""),
                    range_length=int(c.get("range_length") or c.get("rangeLength") or 0),
                ))
        line_count = entry.get("line_count", entry.get("lineCount"))
        return EditEvent(
            document=str(entry["document"]),
            changes=tuple(changes),
            line_count=int(line_count) if line_count is not None else None,
        )

    if feed_type == FeedType.DIAGNOSTICS:
        docs = entry.get("documents") or entry.get("uris") or []
        return DiagnosticsEvent(documents=tuple(str(d) for d in docs))

    if feed_type == FeedType.FOCUS:
        return FocusEvent(focused=bool(entry.get("focused")))

    if feed_type == FeedType.PLAYBACK_TIME:
        return PlaybackTimeEvent(seconds=float(entry.get("seconds", entry.get("time"))))

    if feed_type == FeedType.SURFACE_CLOSED:
        return SurfaceClosedEvent()

    if feed_type == FeedType.COMMAND:
        arg = entry.get("arg")
        return CommandEvent(name=str(entry["name"]), arg=str(arg) if arg is not None else None)

    return None
