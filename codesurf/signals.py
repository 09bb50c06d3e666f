# CodeSurf — signal evaluators
#
# Cheap, stateless checks over a single edit event. Each one answers a
# yes/no question; the decision policy decides how many "yes" answers are
# enough. None of these look at playback state.

import re
from typing import Optional

from .clipboard import ClipboardResult, ClipboardText
from .config import DetectionConfig, DetectionMode
from .normalizer import DiagnosticsEvent, EditEvent, SignalVector


# Structural categories typical of generated code, in evaluation order.
PATTERN_CATEGORIES = (
    ("function_declaration", re.compile(r"function\s+\w+\s*\([^)]*\)\s*\{")),
    ("arrow_binding", re.compile(r"const\s+\w+\s*=\s*\([^)]*\)\s*=>")),
    ("class_declaration", re.compile(r"class\s+\w+\s*(extends\s+\w+)?\s*\{")),
    ("block_comment", re.compile(r"/\*\*[\s\S]+?\*/")),
    ("import_statement", re.compile(r"import\s+.+\s+from\s+['\"][^'\"]+['\"]")),
    ("export_statement", re.compile(r"export\s+(default\s+)?")),
    ("interface_declaration", re.compile(r"interface\s+\w+\s*\{")),
    ("type_alias", re.compile(r"type\s+\w+\s*=")),
)

DIAGNOSTICS_FILE_THRESHOLD = 3


def rapid_edit(now_ms: float, last_edit_ms: Optional[float], config: DetectionConfig) -> bool:
    """True iff the gap since the previous edit is positive and below the sensitivity."""
    if last_edit_ms is None:
        return False
    gap = now_ms - last_edit_ms
    return 0 < gap < config.detection_sensitivity


def large_block(event: EditEvent, config: DetectionConfig) -> bool:
    """True iff any single change reaches the line or character threshold."""
    for change in event.changes:
        if change.line_count >= config.min_lines_for_detection:
            return True
        if change.size >= config.min_characters_for_detection:
            return True
    return False


def matched_categories(text: str) -> list:
    """Names of the pattern categories found in text."""
    return [name for name, pattern in PATTERN_CATEGORIES if pattern.search(text)]


def ai_pattern(event: EditEvent, config: DetectionConfig) -> bool:
    """
    True iff the first change matches enough distinct structural categories.
    Only the first change of the batch is inspected.
    """
    if not event.changes:
        return False
    threshold = 3 if config.require_multiple_patterns else 2
    return len(matched_categories(event.changes[0].text)) >= threshold


def clipboard_echo(event: EditEvent, result: ClipboardResult, config: DetectionConfig) -> bool:
    """True iff a long enough inserted text also sits in the clipboard."""
    if not isinstance(result, ClipboardText):
        return False
    min_len = config.clipboard_min_length
    return any(
        len(change.text) > min_len and change.text in result.text
        for change in event.changes
    )


def evaluate_sync(
    event: EditEvent,
    now_ms: float,
    last_edit_ms: Optional[float],
    config: DetectionConfig,
) -> SignalVector:
    """All non-suspending signals for one event; clipboard_echo left False."""
    return SignalVector(
        rapid_edit=rapid_edit(now_ms, last_edit_ms, config),
        large_block=large_block(event, config),
        ai_pattern=ai_pattern(event, config),
    )


def diagnostics_burst(event: DiagnosticsEvent, config: DetectionConfig) -> bool:
    """True iff diagnostics changed for more than three distinct documents."""
    if config.detection_mode == DetectionMode.MANUAL:
        return False
    return len(set(event.documents)) > DIAGNOSTICS_FILE_THRESHOLD
