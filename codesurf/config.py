# CodeSurf — configuration
#
# Detection settings live in a YAML file that is re-read at every decision
# point, so edits to the file apply to the very next event without a restart.
# Runtime paths and endpoints come from the same file or from CLI args.

import logging
from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("~/.config/codesurf/config.yaml").expanduser()

DEFAULT_VIDEO_URL = "https://www.youtube.com/embed/jfKfPfyJRdk"


class ConfigError(Exception):
    """Raised when a configuration key cannot be written."""
    pass


class DetectionMode(Enum):
    """How many concurring signals are needed before playback starts."""
    MANUAL = "manual"            # automatic detection disabled
    SMART = "smart"              # >= 2 signals
    AGGRESSIVE = "aggressive"    # >= 1 signal

    @classmethod
    def from_str(cls, value: Any) -> "DetectionMode":
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.SMART


@dataclass(frozen=True)
class DetectionConfig:
    """Immutable snapshot of the detection settings for one evaluation."""

    detection_mode: DetectionMode = DetectionMode.SMART

    # Large-block thresholds
    min_lines_for_detection: int = 5
    min_characters_for_detection: int = 200

    # Pattern signal needs 3 categories instead of 2
    require_multiple_patterns: bool = True

    # Timing (milliseconds)
    detection_sensitivity: int = 100   # max gap still counted as rapid
    hide_delay: int = 10000            # idle time before pause/hide is considered
    clipboard_timeout_ms: int = 50     # bounded wait on the clipboard read

    # Behavior
    auto_hide: bool = False
    never_auto_pause: bool = False
    auto_play: bool = True
    pause_on_focus: bool = False
    strict_clipboard_match: bool = True

    # Playback surface
    video_url: str = DEFAULT_VIDEO_URL
    panel_column: str = "beside"

    @property
    def clipboard_min_length(self) -> int:
        return 100 if self.strict_clipboard_match else 50

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectionConfig":
        """
        Build a snapshot from raw YAML data. Unknown keys are ignored and any
        value that cannot be coerced falls back to that key's default.
        """
        defaults = cls()
        values = {}
        for f in fields(cls):
            if f.name not in data or data[f.name] is None:
                continue
            raw = data[f.name]
            default = getattr(defaults, f.name)
            try:
                values[f.name] = _coerce(raw, default)
            except (TypeError, ValueError):
                logger.warning(f"Invalid value for {f.name!r}: {raw!r}, using default {default!r}")
        return replace(defaults, **values)


def _coerce(raw: Any, default: Any) -> Any:
    if isinstance(default, DetectionMode):
        mode = DetectionMode.from_str(raw)
        if mode.value != str(raw).lower():
            raise ValueError(raw)
        return mode
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str) and raw.lower() in ("true", "yes", "on", "1"):
            return True
        if isinstance(raw, str) and raw.lower() in ("false", "no", "off", "0"):
            return False
        raise ValueError(raw)
    if isinstance(default, int):
        value = int(raw)
        if value < 0:
            raise ValueError(raw)
        return value
    if isinstance(default, str):
        if not isinstance(raw, str) or not raw.strip():
            raise ValueError(raw)
        return raw.strip()
    return raw


@dataclass
class RuntimeConfig:
    """Paths and endpoints, read once at startup."""

    workspace_root: str = "."
    source: str = "watch"               # "watch" | "stdin"

    # Playback surface endpoint (None = standalone JSONL mode)
    surface_url: Optional[str] = None
    jsonl_path: str = "~/.local/share/codesurf/playback.jsonl"

    # Stats persistence
    stats_db: str = "~/.local/share/codesurf/state.db"

    log_level: str = "INFO"

    def resolve_paths(self):
        """Expand ~ in local paths."""
        self.jsonl_path = str(Path(self.jsonl_path).expanduser())
        self.stats_db = str(Path(self.stats_db).expanduser())
        self.workspace_root = str(Path(self.workspace_root).expanduser().resolve())

    @classmethod
    def load(cls, store: "ConfigStore") -> "RuntimeConfig":
        """Pick runtime keys out of the config file, falling back to defaults."""
        data = store.raw()
        cfg = cls(**{f.name: data[f.name] for f in fields(cls) if data.get(f.name) is not None})
        cfg.resolve_paths()
        return cfg


class ConfigStore:
    """
    Key-value view over the YAML config file.

    snapshot() reads the file every time it is called; nothing is cached
    between evaluations. A missing or unreadable file yields the defaults.
    """

    def __init__(self, path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        self.path = Path(path).expanduser() if path else CONFIG_PATH
        self.overrides = dict(overrides or {})

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read config {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring config {self.path}: top level is not a mapping")
            return {}
        return data

    def raw(self) -> Dict[str, Any]:
        data = self._read()
        data.update(self.overrides)
        return data

    def snapshot(self) -> DetectionConfig:
        return DetectionConfig.from_dict(self.raw())

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw().get(key, default)

    def update(self, key: str, value: Any):
        """Persist a single detection setting back to the YAML file."""
        if key not in {f.name for f in fields(DetectionConfig)}:
            raise ConfigError(f"Unknown setting '{key}'")
        data = self._read()
        data[key] = value.value if isinstance(value, Enum) else value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            yaml.safe_dump(data, f, sort_keys=True)
        logger.info(f"Updated {key} in {self.path}")
