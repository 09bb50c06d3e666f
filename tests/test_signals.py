"""Tests for signal evaluators and the diagnostics signal."""
import pytest

from codesurf.clipboard import ClipboardText, ClipboardUnavailable
from codesurf.config import DetectionConfig, DetectionMode
from codesurf.normalizer import DiagnosticsEvent, EditEvent, TextChange
from codesurf.signals import (
    ai_pattern,
    clipboard_echo,
    diagnostics_burst,
    evaluate_sync,
    large_block,
    matched_categories,
    rapid_edit,
)

CFG = DetectionConfig()


class TestRapidEdit:

    @pytest.mark.parametrize("gap,expected", [
        (-5, False), (0, False), (1, True), (50, True), (99, True), (100, False), (500, False),
    ])
    def test_gap_boundaries(self, gap, expected):
        assert rapid_edit(10_000 + gap, 10_000, CFG) is expected

    def test_first_event_never_rapid(self):
        assert rapid_edit(10, None, CFG) is False

    def test_uses_configured_sensitivity(self):
        cfg = DetectionConfig(detection_sensitivity=1000)
        assert rapid_edit(10_500, 10_000, cfg)


class TestLargeBlock:

    def test_line_threshold_regardless_of_chars(self):
        text = "a\nb\nc\nd\ne"  # 5 lines, 9 chars
        assert large_block(EditEvent.of("f.ts", text), CFG)

    def test_below_both_thresholds(self):
        assert not large_block(EditEvent.of("f.ts", "x = 1\ny = 2"), CFG)

    def test_character_threshold(self):
        assert large_block(EditEvent.of("f.ts", "x" * 200), CFG)
        assert not large_block(EditEvent.of("f.ts", "x" * 199), CFG)

    def test_any_change_qualifies(self):
        event = EditEvent.of("f.ts", "small", "1\n2\n3\n4\n5\n6")
        assert large_block(event, CFG)

    def test_empty_insertion_counts_as_one_line(self):
        assert TextChange("").line_count == 1
        cfg = DetectionConfig(min_lines_for_detection=1)
        assert large_block(EditEvent.of("f.ts", ""), cfg)

    def test_trailing_newline_adds_a_line(self):
        assert TextChange("a\nb\nc\nd\n").line_count == 5


TS_SNIPPET = """import { foo } from './foo'
export default function build(a, b) {
  return a + b;
}
class Widget extends Base {
}
"""


class TestAiPattern:

    def test_categories_detected(self):
        names = matched_categories(TS_SNIPPET)
        assert "import_statement" in names
        assert "export_statement" in names
        assert "function_declaration" in names
        assert "class_declaration" in names

    def test_three_required_when_multiple_patterns(self):
        cfg = DetectionConfig(require_multiple_patterns=True)
        two = "interface Foo {\n}\ntype Bar = string"
        assert len(matched_categories(two)) == 2
        assert not ai_pattern(EditEvent.of("f.ts", two), cfg)
        assert ai_pattern(EditEvent.of("f.ts", TS_SNIPPET), cfg)

    def test_two_suffice_when_relaxed(self):
        cfg = DetectionConfig(require_multiple_patterns=False)
        two = "interface Foo {\n}\ntype Bar = string"
        assert ai_pattern(EditEvent.of("f.ts", two), cfg)

    def test_only_first_change_is_inspected(self):
        cfg = DetectionConfig(require_multiple_patterns=False)
        event = EditEvent.of("f.ts", "hello", TS_SNIPPET)
        assert not ai_pattern(event, cfg)

    def test_repeated_category_counts_once(self):
        cfg = DetectionConfig(require_multiple_patterns=False)
        text = "type A = 1\ntype B = 2\ntype C = 3"
        assert not ai_pattern(EditEvent.of("f.ts", text), cfg)

    def test_block_comment(self):
        assert "block_comment" in matched_categories("/**\n * Docs\n */")

    def test_no_changes(self):
        assert not ai_pattern(EditEvent("f.ts"), CFG)


class TestClipboardEcho:

    def test_long_insertion_found_in_clipboard(self):
        text = "z" * 101
        event = EditEvent.of("f.ts", text)
        assert clipboard_echo(event, ClipboardText("prefix " + text), CFG)

    def test_strict_threshold_is_exclusive(self):
        text = "z" * 100
        assert not clipboard_echo(EditEvent.of("f.ts", text), ClipboardText(text), CFG)

    def test_relaxed_threshold(self):
        cfg = DetectionConfig(strict_clipboard_match=False)
        text = "z" * 51
        assert clipboard_echo(EditEvent.of("f.ts", text), ClipboardText(text), cfg)

    def test_unavailable_is_false(self):
        event = EditEvent.of("f.ts", "z" * 300)
        assert not clipboard_echo(event, ClipboardUnavailable("denied"), CFG)

    def test_not_in_clipboard(self):
        event = EditEvent.of("f.ts", "z" * 300)
        assert not clipboard_echo(event, ClipboardText("something else"), CFG)


class TestEvaluateSync:

    def test_six_lines_forty_chars_fifty_ms_later(self):
        text = "a\nb\nc\nd\ne\n" + "f" * 30
        assert len(text) == 40 and TextChange(text).line_count == 6
        vector = evaluate_sync(EditEvent.of("f.ts", text), 10_050, 10_000, CFG)
        assert vector.rapid_edit and vector.large_block
        assert not vector.ai_pattern and not vector.clipboard_echo
        assert vector.count() == 2

    def test_two_lines_thirty_chars_half_a_second_later(self):
        text = "x" * 14 + "\n" + "y" * 15
        vector = evaluate_sync(EditEvent.of("f.ts", text), 10_500, 10_000, CFG)
        assert vector.count() == 0


class TestDiagnosticsBurst:

    def test_more_than_three_documents(self):
        ev = DiagnosticsEvent(documents=("a", "b", "c", "d"))
        assert diagnostics_burst(ev, CFG)

    def test_three_is_not_enough(self):
        assert not diagnostics_burst(DiagnosticsEvent(documents=("a", "b", "c")), CFG)

    def test_duplicates_count_once(self):
        ev = DiagnosticsEvent(documents=("a", "a", "b", "b", "c"))
        assert not diagnostics_burst(ev, CFG)

    def test_manual_mode_ignores(self):
        cfg = DetectionConfig(detection_mode=DetectionMode.MANUAL)
        ev = DiagnosticsEvent(documents=("a", "b", "c", "d", "e"))
        assert not diagnostics_burst(ev, cfg)
