# CodeSurf — detection pipeline
#
# Central routing for host events:
#   edit         -> sync signals -> (bounded clipboard wait) -> policy -> controller
#   diagnostics  -> diagnostics signal -> policy -> controller
#   focus        -> controller.focus_gained
#   commands     -> toggle / set_video / show_stats / reset_stats / seek
#
# Everything runs on one asyncio loop. The rapid-edit signal and the
# last-edit timestamp are settled synchronously when an event arrives, before
# the first await, so overlapping clipboard reads cannot reorder them.

import asyncio
import logging
from functools import partial
from typing import Callable, Optional, Set

from .clipboard import ClipboardUnavailable
from .config import ConfigError, ConfigStore, DetectionConfig, DetectionMode
from .controller import HysteresisController
from .ledger import RecentActivityLedger
from .normalizer import (
    CommandEvent,
    DiagnosticsEvent,
    EditEvent,
    FocusEvent,
    HostEvent,
    PlaybackTimeEvent,
    SignalVector,
    SurfaceClosedEvent,
    now_ms,
)
from .policy import MODE_THRESHOLDS, Decision, decide, decide_diagnostics
from .signals import clipboard_echo, diagnostics_burst, evaluate_sync

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECS = 1.0


class CommandError(Exception):
    """Raised for a command name the monitor does not know."""
    pass


class GenerationMonitor:
    """Routes host events through the signal evaluators, policy and controller."""

    def __init__(
        self,
        config_store: ConfigStore,
        controller: HysteresisController,
        clipboard,
        ledger: Optional[RecentActivityLedger] = None,
        clock: Callable[[], float] = now_ms,
    ):
        self.config_store = config_store
        self.controller = controller
        self.clipboard = clipboard
        self.ledger = ledger or RecentActivityLedger()
        self.clock = clock

        self.last_edit_ms: Optional[float] = None
        self._sweeper: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Future] = set()   # event tasks and clipboard reads

    # ── Lifecycle ────────────────────────────────────────────

    def start(self):
        """Start the idle sweep. Must be called from inside the running loop."""
        if self._sweeper is None:
            self._sweeper = asyncio.get_running_loop().create_task(self._run_sweeper())

    async def _run_sweeper(self):
        while True:
            await asyncio.sleep(SWEEP_INTERVAL_SECS)
            self.tick()

    def tick(self, now: Optional[float] = None):
        now = now if now is not None else self.clock()
        evicted = self.ledger.evict(now)
        if evicted:
            logger.debug(f"Evicted {evicted} stale ledger entries")
        self.controller.sweep(now)

    def submit(self, event: HostEvent) -> asyncio.Task:
        """Schedule an event for processing; safe to call from loop callbacks."""
        return self._track(asyncio.get_running_loop().create_task(self.dispatch(event)))

    def _track(self, future: asyncio.Future) -> asyncio.Future:
        self._tasks.add(future)
        future.add_done_callback(self._tasks.discard)
        return future

    async def shutdown(self):
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self.controller.shutdown()

    # ── Routing ──────────────────────────────────────────────

    async def dispatch(self, event: HostEvent):
        try:
            if isinstance(event, EditEvent):
                return await self.on_edit(event)
            if isinstance(event, DiagnosticsEvent):
                return self.on_diagnostics(event)
            if isinstance(event, FocusEvent):
                return self.on_focus(event)
            if isinstance(event, PlaybackTimeEvent):
                self.controller.report_position(event.seconds)
                return None
            if isinstance(event, SurfaceClosedEvent):
                self.controller.surface_closed()
                return None
            if isinstance(event, CommandEvent):
                return self.on_command(event)
        except CommandError as e:
            logger.warning(str(e))
        except (ConfigError, OSError) as e:
            logger.error(f"Could not save setting for {type(event).__name__}: {e}")
        return None

    async def on_edit(self, event: EditEvent) -> Decision:
        config = self.config_store.snapshot()
        if config.detection_mode == DetectionMode.MANUAL:
            return Decision(False, "manual mode")

        now = event.received_ms
        self.ledger.touch(event.document, now)
        if not event.changes:
            return Decision(False, "no changes")

        vector = evaluate_sync(event, now, self.last_edit_ms, config)
        self.last_edit_ms = now
        self.controller.note_activity(now, event.line_count)

        vector = await self._with_clipboard(event, vector, config)
        decision = decide(vector, config)
        if decision.should_trigger:
            logger.info(
                f"Generation detected in {event.document}: {decision.reason} "
                f"[state={self.controller.state.value}]"
            )
            self.controller.trigger(config)
        return decision

    async def _with_clipboard(
        self, event: EditEvent, vector: SignalVector, config: DetectionConfig,
    ) -> SignalVector:
        """
        Add the clipboard signal if the read resolves within the bounded wait.
        Skipped when the sync signals already decide the event. A late
        result may only refresh an already playing session.
        """
        if vector.count() >= MODE_THRESHOLDS[config.detection_mode]:
            return vector

        read = self._track(asyncio.ensure_future(self.clipboard.read()))
        done, _ = await asyncio.wait({read}, timeout=config.clipboard_timeout_ms / 1000.0)
        if read in done:
            return vector.with_clipboard(clipboard_echo(event, _clipboard_result(read), config))

        read.add_done_callback(partial(self._late_clipboard, event, vector, config))
        return vector

    def _late_clipboard(self, event: EditEvent, vector: SignalVector, config: DetectionConfig, read):
        if not clipboard_echo(event, _clipboard_result(read), config):
            return
        if decide(vector.with_clipboard(True), config).should_trigger:
            logger.debug(f"Late clipboard match for {event.document}")
            self.controller.refresh()

    def on_diagnostics(self, event: DiagnosticsEvent) -> Decision:
        config = self.config_store.snapshot()
        decision = decide_diagnostics(diagnostics_burst(event, config), config)
        if decision.should_trigger:
            logger.info(f"Diagnostics burst across {len(set(event.documents))} documents")
            self.controller.trigger(config)
        return decision

    def on_focus(self, event: FocusEvent):
        if event.focused:
            self.controller.focus_gained()

    def on_command(self, event: CommandEvent) -> Optional[str]:
        name = event.name.replace("-", "_").lower()

        if name == "toggle":
            self.controller.toggle()
            return None

        if name == "set_video":
            if not event.arg:
                raise CommandError("set_video needs a URL")
            self.config_store.update("video_url", event.arg)
            self.controller.set_video(event.arg)
            return None

        if name == "seek":
            try:
                seconds = float(event.arg)
            except (TypeError, ValueError):
                raise CommandError(f"seek needs a number of seconds, got {event.arg!r}")
            self.controller.surface.seek_to(seconds)
            return None

        if name == "show_stats":
            text = self.controller.stats.format()
            logger.info("\n" + text)
            return text

        if name == "reset_stats":
            self.controller.stats.reset()
            logger.info("Statistics reset")
            return None

        raise CommandError(f"Unknown command '{event.name}'")


def _clipboard_result(read: asyncio.Future):
    if read.cancelled():
        return ClipboardUnavailable("cancelled")
    if read.exception() is not None:
        logger.debug(f"Clipboard read failed: {read.exception()}")
        return ClipboardUnavailable(str(read.exception()))
    return read.result()
