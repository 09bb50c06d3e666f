#!/usr/bin/env python3
"""
CodeSurf — main entry point

Watches edits in a workspace (or reads host events from stdin), decides when
the edits look generated, and drives the playback surface.

Usage:
    codesurf run                                  # watch current directory
    codesurf run --workspace ~/myproject          # watch another workspace
    codesurf run --source stdin                   # editor plugin pipes JSON lines
    codesurf run --surface http://localhost:8765  # drive an HTTP playback surface
    codesurf stats                                # print usage statistics
    codesurf reset-stats --yes                    # clear usage statistics
    codesurf set-video https://www.youtube.com/watch?v=ID
"""

import argparse
import asyncio
import logging
import sys

from .clipboard import StaticClipboard, SystemClipboard
from .config import ConfigError, ConfigStore, RuntimeConfig
from .controller import HysteresisController
from .emitter import PlaybackSurface, make_transport
from .pipeline import GenerationMonitor
from .sources import WorkspaceWatcher, consume_feed, open_stdin_reader
from .stats import SessionStatsAggregator, StatsStore

logger = logging.getLogger("codesurf")


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


# ── Monitor ────────────────────────────────────────────────────────────────

def build_monitor(store: ConfigStore, runtime: RuntimeConfig, clipboard) -> GenerationMonitor:
    """Wire stats, surface, controller and pipeline together."""
    stats = SessionStatsAggregator(StatsStore(runtime.stats_db))
    surface = PlaybackSurface(make_transport(runtime.surface_url, runtime.jsonl_path))
    controller = HysteresisController(store, surface, stats)
    return GenerationMonitor(store, controller, clipboard)


async def run_monitor(store: ConfigStore, runtime: RuntimeConfig, clipboard):
    monitor = build_monitor(store, runtime, clipboard)
    monitor.start()
    watcher = None
    try:
        if runtime.source == "stdin":
            reader = await open_stdin_reader()
            count = await consume_feed(reader, monitor.submit)
            logger.info(f"Host feed closed after {count} events")
        else:
            watcher = WorkspaceWatcher(runtime.workspace_root)
            watcher.start(asyncio.get_running_loop(), monitor.submit)
            await asyncio.Event().wait()
    finally:
        if watcher is not None:
            watcher.stop()
        await monitor.shutdown()
        monitor.controller.surface.transport.close()


# ── Commands ───────────────────────────────────────────────────────────────

def cmd_run(args, store: ConfigStore) -> int:
    runtime = RuntimeConfig.load(store)

    # CLI overrides
    if args.workspace:
        runtime.workspace_root = args.workspace
    if args.source:
        runtime.source = args.source
    if args.surface and args.surface != "off":
        runtime.surface_url = args.surface
    elif args.surface == "off":
        runtime.surface_url = None
    if args.jsonl:
        runtime.jsonl_path = args.jsonl
    if args.db:
        runtime.stats_db = args.db
    runtime.resolve_paths()

    if runtime.surface_url:
        print(f"Surface: {runtime.surface_url}")
    else:
        print(f"Surface: standalone ({runtime.jsonl_path})")
    print(f"Stats: {runtime.stats_db}")
    print(f"Mode: {store.snapshot().detection_mode.value}\n")

    clipboard = StaticClipboard() if args.no_clipboard else SystemClipboard()
    try:
        asyncio.run(run_monitor(store, runtime, clipboard))
    except KeyboardInterrupt:
        print("\nStopping...")
    return 0


def _stats_for(args, store: ConfigStore) -> SessionStatsAggregator:
    runtime = RuntimeConfig.load(store)
    if args.db:
        runtime.stats_db = args.db
        runtime.resolve_paths()
    return SessionStatsAggregator(StatsStore(runtime.stats_db))


def cmd_stats(args, store: ConfigStore) -> int:
    print(_stats_for(args, store).format())
    return 0


def cmd_reset_stats(args, store: ConfigStore) -> int:
    if not args.yes:
        answer = input("Reset all CodeSurf statistics? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("Cancelled.")
            return 1
    _stats_for(args, store).reset()
    print("Statistics reset!")
    return 0


def cmd_set_video(args, store: ConfigStore) -> int:
    try:
        store.update("video_url", args.url)
    except (ConfigError, OSError) as e:
        print(f"Could not save video URL: {e}", file=sys.stderr)
        return 1
    print(f"Video set: {args.url}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="codesurf",
        description="CodeSurf — plays a video while code is being generated",
    )
    ap.add_argument("--config", default=None, help="Path to config.yaml")
    ap.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING (default: INFO)")
    sub = ap.add_subparsers(dest="command")

    run = sub.add_parser("run", help="Start monitoring")
    run.add_argument("--workspace", default=None, help="Workspace root to watch (default: .)")
    run.add_argument("--source", choices=("watch", "stdin"), default=None,
                     help="Where edit events come from (default: watch)")
    run.add_argument("--surface", default=None,
                     help="Playback surface endpoint, or 'off' for standalone JSONL mode")
    run.add_argument("--jsonl", default=None, help="Standalone JSONL output path")
    run.add_argument("--db", default=None, help="Stats database path")
    run.add_argument("--no-clipboard", action="store_true", help="Disable the clipboard signal")

    stats = sub.add_parser("stats", help="Show usage statistics")
    stats.add_argument("--db", default=None, help="Stats database path")

    reset = sub.add_parser("reset-stats", help="Reset usage statistics")
    reset.add_argument("--db", default=None, help="Stats database path")
    reset.add_argument("--yes", action="store_true", help="Skip confirmation")

    video = sub.add_parser("set-video", help="Set the video to play")
    video.add_argument("url", help="YouTube watch or embed URL")

    return ap


COMMANDS = {
    "run": cmd_run,
    "stats": cmd_stats,
    "reset-stats": cmd_reset_stats,
    "set-video": cmd_set_video,
}


def main(argv=None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    args = build_parser().parse_args(argv)
    if args.command is None:
        # Bare "codesurf" behaves like "codesurf run" with defaults.
        args = build_parser().parse_args(argv + ["run"])

    store = ConfigStore(args.config)
    _setup_logging(args.log_level or RuntimeConfig.load(store).log_level)
    return COMMANDS[args.command](args, store)


if __name__ == "__main__":
    sys.exit(main())
