# CodeSurf — decision policy
#
# Fuses a SignalVector into a trigger verdict according to the active mode:
#
#   manual      never triggers
#   smart       >= 2 of {rapid, large, pattern, clipboard}
#   aggressive  >= 1
#
# A diagnostics burst is a separate path and does not take part in the
# counting: on its own it is enough, as long as auto-play is on.

from dataclasses import dataclass

from .config import DetectionConfig, DetectionMode
from .normalizer import SignalVector

MODE_THRESHOLDS = {
    DetectionMode.SMART: 2,
    DetectionMode.AGGRESSIVE: 1,
}


@dataclass(frozen=True)
class Decision:
    should_trigger: bool
    reason: str = ""


def decide(vector: SignalVector, config: DetectionConfig) -> Decision:
    mode = config.detection_mode
    if mode == DetectionMode.MANUAL:
        return Decision(False, "manual mode")

    needed = MODE_THRESHOLDS[mode]
    count = vector.count()
    return Decision(
        count >= needed,
        f"{mode.value}: {count}/{needed} signals ({vector.describe()})",
    )


def decide_diagnostics(burst: bool, config: DetectionConfig) -> Decision:
    if config.detection_mode == DetectionMode.MANUAL:
        return Decision(False, "manual mode")
    if not burst:
        return Decision(False, "no diagnostics burst")
    if not config.auto_play:
        return Decision(False, "auto-play off")
    return Decision(True, "diagnostics burst")
