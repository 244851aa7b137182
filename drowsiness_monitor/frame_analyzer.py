"""
Frame Analysis Module
Face detection -> eye-pair detection -> eye-openness score for one frame
"""

import logging
from dataclasses import dataclass
from typing import Optional

import cv2

from drowsiness_monitor.eye_openness import score_eye_openness
from drowsiness_monitor.geometry import BoundingBox, crop, to_global

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameAnalysis:
    """Result of analysing one frame. Missing values are None."""

    score: Optional[float] = None
    face_box: Optional[BoundingBox] = None
    eye_box: Optional[BoundingBox] = None


def to_gray(frame):
    """Single-channel view of a BGR/BGRA/grayscale frame."""
    if frame.ndim == 2:
        return frame
    channels = frame.shape[2]
    if channels == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    if channels == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
    return frame[:, :, 0]


def select_largest_face(boxes):
    """Largest width*height; the first one wins ties."""
    best = None
    for box in boxes:
        if best is None or box.area > best.area:
            best = box
    return best


def select_widest_eye_pair(boxes):
    """Largest width; the first one wins ties."""
    best = None
    for box in boxes:
        if best is None or box.width > best.width:
            best = box
    return best


class FrameAnalyzer:
    """
    Runs both detectors and the scorer on a frame.

    The eye detector only ever sees the selected face region. The eye
    region that gets scored is cut from the full-frame grayscale image
    (not from the face crop) after mapping the eye box to frame
    coordinates.
    """

    def __init__(self, face_detector, eye_detector, scorer=score_eye_openness):
        """
        Args:
            face_detector: Object with detect(image) -> list of BoundingBox
            eye_detector: Object with detect(image) -> list of BoundingBox
            scorer: Callable eye image -> score in [0, 1]
        """
        self.face_detector = face_detector
        self.eye_detector = eye_detector
        self.scorer = scorer

    def analyze(self, frame):
        """
        Analyse one frame.

        Args:
            frame: BGR or grayscale frame (not modified)

        Returns:
            FrameAnalysis with whatever could be established this frame
        """
        gray = to_gray(frame)

        faces = self.face_detector.detect(gray)
        if not faces:
            return FrameAnalysis()

        face_box = select_largest_face(faces)
        face_roi = crop(gray, face_box)
        if face_roi.size == 0:
            _log.debug("Face box %s gave an empty crop", face_box)
            return FrameAnalysis(face_box=face_box)

        eyes = self.eye_detector.detect(face_roi)
        if not eyes:
            return FrameAnalysis(face_box=face_box)

        eye_box = to_global(select_widest_eye_pair(eyes), face_box)

        eye_roi = crop(gray, eye_box)
        if eye_roi.size == 0:
            _log.debug("Eye box %s gave an empty crop", eye_box)
            return FrameAnalysis(face_box=face_box, eye_box=eye_box)

        return FrameAnalysis(self.scorer(eye_roi), face_box, eye_box)
