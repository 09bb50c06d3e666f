"""Tests for the decision policy."""
import itertools

import pytest

from codesurf.config import DetectionConfig, DetectionMode
from codesurf.normalizer import SignalVector
from codesurf.policy import decide, decide_diagnostics

ALL_VECTORS = [SignalVector(*bits) for bits in itertools.product((False, True), repeat=4)]

SMART = DetectionConfig(detection_mode=DetectionMode.SMART)
AGGRESSIVE = DetectionConfig(detection_mode=DetectionMode.AGGRESSIVE)
MANUAL = DetectionConfig(detection_mode=DetectionMode.MANUAL)


class TestDecide:

    @pytest.mark.parametrize("vector", ALL_VECTORS)
    def test_smart_needs_two(self, vector):
        assert decide(vector, SMART).should_trigger is (vector.count() >= 2)

    @pytest.mark.parametrize("vector", ALL_VECTORS)
    def test_aggressive_needs_one(self, vector):
        assert decide(vector, AGGRESSIVE).should_trigger is (vector.count() >= 1)

    @pytest.mark.parametrize("vector", ALL_VECTORS)
    def test_manual_never_triggers(self, vector):
        assert decide(vector, MANUAL).should_trigger is False

    def test_single_signal_never_triggers_smart(self):
        assert not decide(SignalVector(clipboard_echo=True), SMART).should_trigger

    def test_reason_names_signals(self):
        d = decide(SignalVector(rapid_edit=True, large_block=True), SMART)
        assert "rapid+large" in d.reason
        assert "2/2" in d.reason


class TestDecideDiagnostics:

    def test_burst_triggers_alone(self):
        assert decide_diagnostics(True, SMART).should_trigger

    def test_no_burst(self):
        assert not decide_diagnostics(False, AGGRESSIVE).should_trigger

    def test_manual_mode(self):
        assert not decide_diagnostics(True, MANUAL).should_trigger

    def test_auto_play_off(self):
        cfg = DetectionConfig(auto_play=False)
        assert not decide_diagnostics(True, cfg).should_trigger
