"""
Session statistics.

The controller reports session boundaries; the aggregator turns them into
cumulative usage metrics and persists them after every mutation.

Session timing:
  open()    new session: counted, video watch counted, timing starts
  resume()  same session continues after a pause: timing restarts, no count
  close()   timing segment ends: duration and line delta are accumulated
"""
import json
import logging
import sqlite3
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

STATS_KEY = "codesurf.stats"


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection in WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def _wall_ms() -> float:
    return time.time() * 1000.0


@dataclass
class CumulativeStats:
    """Persisted aggregate; all durations in milliseconds."""
    total_generation_time: float = 0
    total_video_time: float = 0
    sessions_count: int = 0
    favorite_video: str = ""
    videos_watched: Dict[str, int] = field(default_factory=dict)
    longest_session: float = 0
    total_lines_generated: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CumulativeStats":
        watched = data.get("videos_watched") or {}
        return cls(
            total_generation_time=float(data.get("total_generation_time", 0)),
            total_video_time=float(data.get("total_video_time", 0)),
            sessions_count=int(data.get("sessions_count", 0)),
            favorite_video=str(data.get("favorite_video") or ""),
            videos_watched={str(k): int(v) for k, v in dict(watched).items()},
            longest_session=float(data.get("longest_session", 0)),
            total_lines_generated=int(data.get("total_lines_generated", 0)),
        )


class StatsStore:
    """SQLite key-value store holding the stats blob as JSON."""

    def __init__(self, db_path: str = None):
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "codesurf" / "state.db")
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
                )
            """)
            conn.commit()

    def load(self) -> Optional[CumulativeStats]:
        """Stored stats, or None when absent or unreadable."""
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM kv_state WHERE key = ?", (STATS_KEY,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.warning(f"Failed to read stats from {self.db_path}: {e}")
            return None
        if row is None:
            return None
        try:
            return CumulativeStats.from_dict(json.loads(row[0]))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring corrupt stats blob: {e}")
            return None

    def save(self, stats: CumulativeStats) -> bool:
        try:
            with _connect(self.db_path) as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO kv_state (key, value, updated_at) "
                    "VALUES (?, ?, datetime('now'))",
                    (STATS_KEY, json.dumps(stats.to_dict())),
                )
                conn.commit()
            return True
        except sqlite3.Error as e:
            logger.error(f"Failed to persist stats: {e}")
            return False


def format_duration(ms: float) -> str:
    seconds = int(ms // 1000)
    minutes = seconds // 60
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


class SessionStatsAggregator:
    """Turns session boundaries into CumulativeStats."""

    def __init__(self, store, clock: Callable[[], float] = _wall_ms):
        self.store = store
        self.clock = clock
        self.stats = store.load() or CumulativeStats()

        # Open segment; None when no session is timing
        self._segment_start: Optional[float] = None
        self._segment_lines = 0
        self._session_elapsed = 0.0

    @property
    def is_open(self) -> bool:
        return self._segment_start is not None

    def open(self, video: str, line_count: int):
        """Start a new session: counts it and the video immediately."""
        self._segment_start = self.clock()
        self._segment_lines = line_count
        self._session_elapsed = 0.0

        self.stats.sessions_count += 1
        watched = self.stats.videos_watched
        watched[video] = watched.get(video, 0) + 1
        self.stats.favorite_video = self._favorite()
        self._persist()

    def resume(self, line_count: int):
        """Continue the current session after a pause without counting it again."""
        if self._segment_start is not None:
            return
        self._segment_start = self.clock()
        self._segment_lines = line_count

    def close(self, line_count: int):
        """End the timing segment. No-op when nothing is open."""
        if self._segment_start is None:
            return

        duration = max(0.0, self.clock() - self._segment_start)
        self._session_elapsed += duration
        self.stats.total_generation_time += duration
        self.stats.total_video_time += duration
        if self._session_elapsed > self.stats.longest_session:
            self.stats.longest_session = self._session_elapsed

        self.stats.total_lines_generated += max(0, line_count - self._segment_lines)

        self._segment_start = None
        self._persist()

    def reset(self):
        """Zero everything. An open segment restarts now, keeping its line baseline."""
        self.stats = CumulativeStats()
        self._session_elapsed = 0.0
        if self._segment_start is not None:
            self._segment_start = self.clock()
        self._persist()

    def _favorite(self) -> str:
        # Ties go to the first key in iteration order.
        best, best_count = "", 0
        for video, count in self.stats.videos_watched.items():
            if count > best_count:
                best, best_count = video, count
        return best

    def _persist(self):
        self.store.save(self.stats)

    def format(self) -> str:
        s = self.stats
        favorite = s.favorite_video.rstrip("/").split("/")[-1] if s.favorite_video else "None yet"
        average = s.total_generation_time / max(1, s.sessions_count)
        return "\n".join([
            "CodeSurf Statistics",
            "",
            f"Total Generation Time: {format_duration(s.total_generation_time)}",
            f"Total Sessions: {s.sessions_count}",
            f"Average Session: {format_duration(average)}",
            f"Longest Session: {format_duration(s.longest_session)}",
            f"Lines Generated: {s.total_lines_generated}",
            f"Videos Watched: {len(s.videos_watched)}",
            f"Favorite Video: {favorite}",
        ])
