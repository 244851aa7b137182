"""
Processing loop tests with a fake clock, fake source and scripted analyzer.
"""

import math
import threading

import numpy as np
import pytest

from drowsiness_monitor.alerter import NullAlert
from drowsiness_monitor.config import MonitorConfig
from drowsiness_monitor.drowsiness_state import DrowsinessStateMachine
from drowsiness_monitor.frame_analyzer import FrameAnalysis
from drowsiness_monitor.geometry import BoundingBox
from drowsiness_monitor.processing_loop import (
    STOP_END_OF_STREAM,
    STOP_MAX_RUNTIME,
    STOP_REQUESTED,
    STOP_WINDOW_CLOSED,
    ProcessingLoop,
    resize_frame,
)
from drowsiness_monitor.visualizer import NullDisplay


class FakeClock:
    """Advances by a fixed step every time it is read; sleep() adds time."""

    def __init__(self, step=0.01):
        self.now = 0.0
        self.step = step
        self.sleeps = []

    def __call__(self):
        self.now += self.step
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class ListSource:
    """Yields the given items; a None item is a dropped frame."""

    def __init__(self, items):
        self.items = list(items)
        self.exhausted = False
        self.reads = 0

    def read(self):
        self.reads += 1
        if not self.items:
            self.exhausted = True
            return None
        return self.items.pop(0)


class ScriptedAnalyzer:
    def __init__(self, scores):
        self.scores = list(scores)
        self.frames = []

    def analyze(self, frame):
        self.frames.append(frame)
        score = self.scores.pop(0) if self.scores else None
        if score is None:
            return FrameAnalysis()
        return FrameAnalysis(score, BoundingBox(10, 10, 100, 100), BoundingBox(20, 30, 60, 20))


class RecordingRenderer:
    def __init__(self):
        self.calls = []

    def __call__(self, frame, is_drowsy, score, closed_frame_count, face_box, eye_box, fps, config):
        self.calls.append({
            "is_drowsy": is_drowsy,
            "score": score,
            "count": closed_frame_count,
            "face_box": face_box,
            "eye_box": eye_box,
            "fps": fps,
        })
        return frame


class ClosingDisplay(NullDisplay):
    """Reports the window closed after a number of frames."""

    def __init__(self, frames_before_close):
        super().__init__()
        self.remaining = frames_before_close

    @property
    def is_open(self):
        return self.remaining > 0

    def show(self, frame):
        super().show(frame)
        self.remaining -= 1


def _frame(width=640, height=360):
    return np.zeros((height, width, 3), dtype=np.uint8)


def _make_loop(scores, frames=None, config=None, display=None, stop_event=None, clock=None):
    config = config or MonitorConfig(
        eye_open_threshold=0.18, closed_frames_for_drowsy=3, target_fps=0, enable_beep=True,
    )
    frames = frames if frames is not None else [_frame() for _ in scores]
    clock = clock or FakeClock()
    renderer = RecordingRenderer()
    alert = NullAlert()
    loop = ProcessingLoop(
        config,
        ListSource(frames),
        ScriptedAnalyzer(scores),
        DrowsinessStateMachine.from_config(config),
        display or NullDisplay(),
        alert,
        stop_event or threading.Event(),
        renderer=renderer,
        clock=clock,
        sleep=clock.sleep,
    )
    return loop, renderer, alert, clock


# ─── End-to-end scenarios ─────────────────────────────────────

def test_scenario_b_through_the_loop():
    loop, renderer, alert, _ = _make_loop([0.10, 0.10, 0.10, 0.30, 0.30, 0.30])
    summary = loop.run()

    assert [c["count"] for c in renderer.calls] == [1, 2, 3, 2, 1, 0]
    assert [c["is_drowsy"] for c in renderer.calls] == [False, False, True, True, True, False]
    assert summary.frames_processed == 6
    assert summary.drowsy_frames == 3
    assert summary.stop_reason == STOP_END_OF_STREAM
    assert alert.trigger_count == 3


def test_no_face_frames_hold_drowsy_state():
    loop, renderer, _, _ = _make_loop([0.1, 0.1, 0.1, None, None, None, None, None])
    loop.run()
    tail = renderer.calls[3:]
    assert all(c["is_drowsy"] for c in tail)
    assert all(c["count"] == 3 for c in tail)
    assert all(c["face_box"] is None and c["score"] is None for c in tail)


def test_beep_disabled_never_triggers():
    config = MonitorConfig(closed_frames_for_drowsy=1, target_fps=0, enable_beep=False)
    loop, _, alert, _ = _make_loop([0.0, 0.0, 0.0], config=config)
    loop.run()
    assert alert.trigger_count == 0


# ─── Stop conditions ──────────────────────────────────────────

def test_stop_event_is_checked_before_reading():
    stop = threading.Event()
    stop.set()
    loop, renderer, _, _ = _make_loop([0.3, 0.3], stop_event=stop)
    summary = loop.run()
    assert summary.stop_reason == STOP_REQUESTED
    assert summary.frames_processed == 0
    assert loop.source.reads == 0
    assert renderer.calls == []


def test_stop_event_set_mid_run_finishes_current_frame():
    stop = threading.Event()

    class StoppingRenderer(RecordingRenderer):
        def __call__(self, *args):
            stop.set()
            return super().__call__(*args)

    loop, _, _, _ = _make_loop([0.3] * 5, stop_event=stop)
    loop.renderer = StoppingRenderer()
    summary = loop.run()
    assert summary.frames_processed == 1
    assert summary.stop_reason == STOP_REQUESTED


def test_max_runtime_stops_loop():
    config = MonitorConfig(target_fps=0, max_runtime_seconds=0.5)
    clock = FakeClock(step=0.1)
    loop, _, _, _ = _make_loop([0.3] * 100, config=config, clock=clock)
    summary = loop.run()
    assert summary.stop_reason == STOP_MAX_RUNTIME
    assert 0 < summary.frames_processed < 100


def test_closed_window_stops_loop():
    loop, _, _, _ = _make_loop([0.3] * 10, display=ClosingDisplay(frames_before_close=4))
    summary = loop.run()
    assert summary.frames_processed == 4
    assert summary.stop_reason == STOP_WINDOW_CLOSED


def test_dropped_frames_are_skipped_not_fatal():
    frames = [_frame(), None, None, _frame()]
    loop, renderer, _, _ = _make_loop([0.1, 0.1], frames=frames)
    summary = loop.run()
    assert summary.frames_processed == 2
    assert summary.frames_skipped == 2
    assert [c["count"] for c in renderer.calls] == [1, 2]


# ─── Resize, fps and pacing ───────────────────────────────────

def test_frames_are_resized_to_target_size():
    config = MonitorConfig(target_fps=0, target_frame_width=320, target_frame_height=180)
    loop, _, _, _ = _make_loop([0.3], frames=[_frame(1280, 720)], config=config)
    loop.run()
    assert loop.analyzer.frames[0].shape == (180, 320, 3)


def test_resize_frame_keeps_matching_frame_object():
    frame = _frame()
    assert resize_frame(frame, 640, 360) is frame


def test_fps_is_estimated_from_clock():
    loop, renderer, _, _ = _make_loop([0.3, 0.3, 0.3], clock=FakeClock(step=0.05))
    loop.run()
    for call in renderer.calls:
        assert math.isfinite(call["fps"])
        assert call["fps"] > 0


def test_fps_is_nan_when_no_time_passed():
    loop, renderer, _, _ = _make_loop([0.3, 0.3], clock=FakeClock(step=0.0))
    loop.run()
    assert all(math.isnan(c["fps"]) for c in renderer.calls)


def test_pacing_sleeps_only_remaining_budget():
    config = MonitorConfig(target_fps=10)
    clock = FakeClock(step=0.01)
    loop, _, _, _ = _make_loop([0.3, 0.3, 0.3], config=config, clock=clock)
    loop.run()
    assert len(clock.sleeps) == 3
    for seconds in clock.sleeps:
        assert 0 < seconds < 0.1


def test_no_sleep_when_slower_than_target():
    config = MonitorConfig(target_fps=100)
    clock = FakeClock(step=0.05)   # every iteration takes longer than 10 ms
    loop, _, _, _ = _make_loop([0.3, 0.3, 0.3], config=config, clock=clock)
    loop.run()
    assert clock.sleeps == []


@pytest.mark.parametrize("target_fps", [0, 0.0])
def test_uncapped_never_sleeps(target_fps):
    config = MonitorConfig(target_fps=target_fps)
    clock = FakeClock(step=0.0001)
    loop, _, _, _ = _make_loop([0.3, 0.3], config=config, clock=clock)
    loop.run()
    assert clock.sleeps == []
