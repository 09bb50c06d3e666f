# CodeSurf — playback hysteresis controller
#
# States:
#   IDLE     no session; surface usually absent
#   PLAYING  session running; idle sweep may arm the hide timer
#   PAUSED   surface kept, playback paused; a trigger resumes it
#
# Transitions:
#   IDLE    --trigger--> PLAYING   open surface, play, open session
#   PAUSED  --trigger--> PLAYING   play, resume session timing (no new count)
#   PLAYING --trigger--> PLAYING   cancel pending hide timer
#   PLAYING --sweep, idle >= hide_delay--> arm hide timer (fixed grace)
#   hide timer fires --auto_hide--> IDLE    pause + dispose, close timing
#   hide timer fires --else------> PAUSED  pause, close timing
#   toggle: surface open -> IDLE, else -> PLAYING (new session)
#   focus gained (pause_on_focus) while PLAYING -> PAUSED immediately, surface kept
#
# The hide timer is the single cancellable token below. It is cancelled
# before a new one is armed and before every exit from PLAYING.

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from .config import ConfigStore, DetectionConfig
from .emitter import PlaybackSurface
from .normalizer import now_ms
from .stats import SessionStatsAggregator

logger = logging.getLogger(__name__)

HIDE_GRACE_MS = 1000.0


class PlaybackState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


class LoopScheduler:
    """Schedules callbacks on the running asyncio loop; returns TimerHandles."""

    def call_later(self, delay_ms: float, callback: Callable[[], None]):
        return asyncio.get_running_loop().call_later(delay_ms / 1000.0, callback)


class HysteresisController:
    """Owns PlaybackState, the hide timer and the activity clock."""

    def __init__(
        self,
        config_store: ConfigStore,
        surface: PlaybackSurface,
        stats: SessionStatsAggregator,
        scheduler=None,
        clock: Callable[[], float] = now_ms,
    ):
        self.config_store = config_store
        self.surface = surface
        self.stats = stats
        self.scheduler = scheduler or LoopScheduler()
        self.clock = clock

        self.state = PlaybackState.IDLE
        self.last_activity_ms: Optional[float] = None
        self.line_count = 0          # lines in the most recently edited document
        self._hide_timer = None

    # ── Introspection ────────────────────────────────────────

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    @property
    def is_paused(self) -> bool:
        return self.state == PlaybackState.PAUSED

    @property
    def hide_pending(self) -> bool:
        return self._hide_timer is not None

    def _config(self, config: Optional[DetectionConfig]) -> DetectionConfig:
        return config if config is not None else self.config_store.snapshot()

    # ── Hide timer token ─────────────────────────────────────

    def _cancel_hide_timer(self):
        if self._hide_timer is not None:
            self._hide_timer.cancel()
            self._hide_timer = None

    def _on_hide_timer(self):
        self._hide_timer = None
        if self.state != PlaybackState.PLAYING:
            return
        config = self.config_store.snapshot()
        logger.info(f"Hide timer fired (auto_hide={config.auto_hide})")
        self._go_quiet(config)

    # ── Inputs ───────────────────────────────────────────────

    def note_activity(self, at_ms: Optional[float] = None, line_count: Optional[int] = None):
        """Any edit refreshes the idle clock."""
        self.last_activity_ms = at_ms if at_ms is not None else self.clock()
        if line_count is not None:
            self.line_count = line_count

    def trigger(self, config: Optional[DetectionConfig] = None):
        """Generation detected."""
        config = self._config(config)
        self.last_activity_ms = self.clock()

        if self.state == PlaybackState.PLAYING:
            self._cancel_hide_timer()
            return
        if not config.auto_play:
            return

        self._cancel_hide_timer()
        if self.state == PlaybackState.IDLE:
            self._start(config)
        else:
            self._resume(config)

    def refresh(self):
        """Late evidence of generation: keep a playing session alive, never start one."""
        if self.state == PlaybackState.PLAYING:
            self.last_activity_ms = self.clock()
            self._cancel_hide_timer()

    def sweep(self, now: Optional[float] = None) -> bool:
        """
        One idle-sweep tick. Arms the hide timer when playback has been idle
        for at least hide_delay. Returns True if a timer was armed.
        """
        config = self.config_store.snapshot()
        if config.never_auto_pause:
            return False
        if self.state != PlaybackState.PLAYING or self._hide_timer is not None:
            return False

        now = now if now is not None else self.clock()
        last = self.last_activity_ms
        if last is not None and now - last < config.hide_delay:
            return False

        self._hide_timer = self.scheduler.call_later(HIDE_GRACE_MS, self._on_hide_timer)
        logger.debug(f"Idle for {now - (last or now):.0f}ms, hide timer armed")
        return True

    def focus_gained(self):
        config = self.config_store.snapshot()
        if config.pause_on_focus and self.state == PlaybackState.PLAYING:
            # Always PAUSED: the surface stays open whatever auto_hide says.
            self._cancel_hide_timer()
            self.surface.pause()
            self.stats.close(self.line_count)
            self.state = PlaybackState.PAUSED
            logger.info("Window focused, playback paused")

    def toggle(self):
        """Manual open/close of the playback surface."""
        if self.surface.is_open:
            self._cancel_hide_timer()
            if self.state == PlaybackState.PLAYING:
                self.stats.close(self.line_count)
            self.surface.dispose()
            self.state = PlaybackState.IDLE
            logger.info("Playback surface closed")
            return

        config = self.config_store.snapshot()
        self._cancel_hide_timer()
        self.last_activity_ms = self.clock()
        self._start(config)

    def surface_closed(self):
        """The user dismissed the surface."""
        self.surface.mark_closed()
        self._cancel_hide_timer()
        if self.state == PlaybackState.PLAYING:
            self.stats.close(self.line_count)
        self.state = PlaybackState.IDLE

    def set_video(self, url: str):
        self.surface.report_position(0.0)
        self.surface.update_url(url, 0.0)

    def report_position(self, seconds: float):
        self.surface.report_position(seconds)

    def shutdown(self):
        self._cancel_hide_timer()
        if self.state == PlaybackState.PLAYING:
            self.stats.close(self.line_count)
        self.surface.dispose()
        self.state = PlaybackState.IDLE

    # ── Transitions ──────────────────────────────────────────

    def _start(self, config: DetectionConfig):
        if not self.surface.is_open:
            self.surface.open(config.video_url, config.panel_column)
        self.surface.play()
        self.state = PlaybackState.PLAYING
        self.stats.open(config.video_url, self.line_count)
        logger.info(f"Playback started ({config.video_url})")

    def _resume(self, config: DetectionConfig):
        if not self.surface.is_open:
            self.surface.open(config.video_url, config.panel_column)
        self.surface.play()
        self.state = PlaybackState.PLAYING
        self.stats.resume(self.line_count)
        logger.info("Playback resumed")

    def _go_quiet(self, config: DetectionConfig):
        self._cancel_hide_timer()
        self.surface.pause()
        self.stats.close(self.line_count)
        if config.auto_hide:
            self.surface.dispose()
            self.state = PlaybackState.IDLE
            logger.info("Playback hidden")
        else:
            self.state = PlaybackState.PAUSED
            logger.info("Playback paused")
