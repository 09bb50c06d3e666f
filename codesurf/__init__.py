# CodeSurf: generation monitor for editing environments
#
# Components:
#   config.py     - DetectionConfig snapshot + YAML-backed ConfigStore
#   normalizer.py - Host event model (EditEvent, DiagnosticsEvent, ...) and feed parser
#   signals.py    - Per-event heuristic signal evaluators
#   clipboard.py  - Async clipboard capability (Ok | Unavailable)
#   policy.py     - Mode-dependent trigger decision
#   ledger.py     - Recent per-document activity, swept by the idle tick
#   controller.py - Playback hysteresis state machine
#   stats.py      - Session statistics aggregator + SQLite store
#   emitter.py    - Playback surface and its command transports
#   pipeline.py   - GenerationMonitor: routes host events through the engine
#   sources.py    - Host event sources (watchdog workspace watcher, stdin feed)
#   watcher.py    - CLI entry point

__version__ = "1.0.0"
