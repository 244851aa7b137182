"""
Frame analysis tests with scripted detectors: no cascade files needed.
"""

import numpy as np
import pytest

from drowsiness_monitor.frame_analyzer import (
    FrameAnalysis,
    FrameAnalyzer,
    select_largest_face,
    select_widest_eye_pair,
    to_gray,
)
from drowsiness_monitor.geometry import BoundingBox


class ScriptedDetector:
    """Returns fixed boxes and remembers the images it was given."""

    def __init__(self, boxes):
        self.boxes = list(boxes)
        self.calls = []

    def detect(self, image, roi=None):
        self.calls.append(image)
        return list(self.boxes)


class RecordingScorer:
    def __init__(self, score=0.42):
        self.score = score
        self.images = []

    def __call__(self, image):
        self.images.append(image.copy())
        return self.score


def _make_frame(height=360, width=640):
    rng = np.random.RandomState(42)
    return rng.randint(0, 256, size=(height, width, 3), dtype=np.uint8)


# ─── Selection ────────────────────────────────────────────────

def test_largest_face_by_area_is_selected():
    small = BoundingBox(0, 0, 10, 10)      # area 100
    large = BoundingBox(50, 50, 20, 20)    # area 400
    assert select_largest_face([small, large]) == large
    assert select_largest_face([large, small]) == large


def test_face_tie_goes_to_first():
    a = BoundingBox(0, 0, 10, 40)
    b = BoundingBox(100, 0, 20, 20)
    assert select_largest_face([a, b]) is a


def test_widest_eye_pair_is_selected_not_largest_area():
    narrow_tall = BoundingBox(0, 0, 30, 40)   # area 1200
    wide_flat = BoundingBox(0, 0, 50, 10)     # area 500
    assert select_widest_eye_pair([narrow_tall, wide_flat]) == wide_flat


def test_eye_tie_goes_to_first():
    a = BoundingBox(0, 0, 50, 10)
    b = BoundingBox(5, 5, 50, 20)
    assert select_widest_eye_pair([a, b]) is a


# ─── Short-circuits ───────────────────────────────────────────

def test_no_face_returns_nothing():
    faces = ScriptedDetector([])
    eyes = ScriptedDetector([BoundingBox(0, 0, 10, 10)])
    scorer = RecordingScorer()
    result = FrameAnalyzer(faces, eyes, scorer).analyze(_make_frame())

    assert result == FrameAnalysis(None, None, None)
    assert eyes.calls == []
    assert scorer.images == []


def test_no_eyes_keeps_face_box():
    face = BoundingBox(100, 50, 200, 200)
    analyzer = FrameAnalyzer(ScriptedDetector([face]), ScriptedDetector([]), RecordingScorer())
    result = analyzer.analyze(_make_frame())
    assert result == FrameAnalysis(None, face, None)


def test_empty_face_crop_short_circuits():
    face = BoundingBox(1000, 1000, 50, 50)   # entirely outside the frame
    eyes = ScriptedDetector([BoundingBox(0, 0, 10, 10)])
    result = FrameAnalyzer(ScriptedDetector([face]), eyes, RecordingScorer()).analyze(_make_frame())
    assert result == FrameAnalysis(None, face, None)
    assert eyes.calls == []


def test_empty_eye_crop_keeps_both_boxes():
    face = BoundingBox(600, 300, 40, 60)
    local_eye = BoundingBox(45, 0, 30, 10)   # maps to x=645, past the right edge
    scorer = RecordingScorer()
    analyzer = FrameAnalyzer(ScriptedDetector([face]), ScriptedDetector([local_eye]), scorer)
    result = analyzer.analyze(_make_frame())

    assert result.score is None
    assert result.face_box == face
    assert result.eye_box == BoundingBox(645, 300, 30, 10)
    assert scorer.images == []


# ─── Full path ────────────────────────────────────────────────

def test_eye_box_is_mapped_to_frame_coordinates_and_scored():
    frame = _make_frame()
    faces = ScriptedDetector([BoundingBox(10, 10, 10, 10), BoundingBox(100, 50, 200, 200)])
    eyes = ScriptedDetector([BoundingBox(5, 5, 30, 10), BoundingBox(5, 5, 50, 10)])
    scorer = RecordingScorer(0.33)

    result = FrameAnalyzer(faces, eyes, scorer).analyze(frame)

    assert result.score == 0.33
    assert result.face_box == BoundingBox(100, 50, 200, 200)
    assert result.eye_box == BoundingBox(105, 55, 50, 10)

    gray = to_gray(frame)
    assert np.array_equal(scorer.images[0], gray[55:65, 105:155])


def test_detectors_see_gray_frame_and_face_crop():
    frame = _make_frame()
    face = BoundingBox(100, 50, 200, 150)
    faces = ScriptedDetector([face])
    eyes = ScriptedDetector([BoundingBox(20, 30, 60, 20)])
    FrameAnalyzer(faces, eyes, RecordingScorer()).analyze(frame)

    assert faces.calls[0].ndim == 2
    assert faces.calls[0].shape == frame.shape[:2]
    assert eyes.calls[0].shape == (150, 200)


def test_eye_crop_comes_from_full_frame_not_face_crop():
    """An eye box hanging past the face box is still cut from the full frame."""
    frame = _make_frame()
    face = BoundingBox(100, 100, 50, 50)
    eyes = ScriptedDetector([BoundingBox(30, 10, 60, 20)])   # extends 40 px past the face
    scorer = RecordingScorer()
    result = FrameAnalyzer(ScriptedDetector([face]), eyes, scorer).analyze(frame)

    assert result.eye_box == BoundingBox(130, 110, 60, 20)
    assert scorer.images[0].shape == (20, 60)


def test_frame_is_not_modified():
    frame = _make_frame()
    before = frame.copy()
    analyzer = FrameAnalyzer(
        ScriptedDetector([BoundingBox(100, 50, 200, 200)]),
        ScriptedDetector([BoundingBox(20, 40, 120, 40)]),
    )
    result = analyzer.analyze(frame)
    assert np.array_equal(frame, before)
    assert 0.0 <= result.score <= 1.0


@pytest.mark.parametrize("frame", [
    np.zeros((40, 60), dtype=np.uint8),
    np.zeros((40, 60, 3), dtype=np.uint8),
    np.zeros((40, 60, 4), dtype=np.uint8),
])
def test_to_gray_handles_channel_layouts(frame):
    assert to_gray(frame).shape == (40, 60)
