"""
Visualization Module
Draws detection results and state on the frame and shows it in a window
"""

import math

import cv2

from drowsiness_monitor.config import WINDOW_NAME

FACE_COLOR = (255, 255, 0)      # Cyan
EYE_COLOR = (0, 255, 255)       # Yellow
AWAKE_COLOR = (0, 160, 0)       # Green
DROWSY_COLOR = (0, 0, 255)      # Red
TEXT_COLOR = (255, 255, 255)    # White
INFO_BG_COLOR = (0, 0, 0)       # Black

FONT = cv2.FONT_HERSHEY_SIMPLEX


def _draw_box(frame, box, label, color):
    x, y, w, h = box.as_tuple()
    cv2.rectangle(frame, (x, y), (x + w, y + h), color, 2)
    cv2.putText(frame, label, (x, max(y - 6, 12)), FONT, 0.5, color, 1)


def _draw_label(frame, text, origin, scale, thickness, bg_color, opacity):
    """Text on a (semi-transparent) filled box; origin is the box's top-left."""
    (tw, th), baseline = cv2.getTextSize(text, FONT, scale, thickness)
    x, y = origin
    x1, y1 = x + tw + 10, y + th + baseline + 10

    roi = frame[y:y1, x:x1]
    if roi.size:
        overlay = roi.copy()
        cv2.rectangle(overlay, (0, 0), (roi.shape[1], roi.shape[0]), bg_color, -1)
        roi[:] = cv2.addWeighted(overlay, opacity, roi, 1.0 - opacity, 0)

    cv2.putText(frame, text, (x + 5, y + th + 5), FONT, scale, TEXT_COLOR, thickness)
    return y1


def info_lines(score, closed_frame_count, fps, config):
    """
    Build the optional info text lines.

    Returns:
        List of strings (possibly empty)
    """
    lines = []
    if config.show_eye_score:
        if score is None or math.isnan(score):
            lines.append("Eye score: n/a (no face/eye)")
        else:
            lines.append(f"Eye score: {score:.3f} (thr={config.eye_open_threshold:.3f})")
        lines.append(f"Closed frames: {closed_frame_count} / {config.closed_frames_for_drowsy}")

    if config.show_frame_rate and fps is not None and not math.isnan(fps):
        lines.append(f"FPS: {fps:.1f}")
    return lines


def draw_overlay(frame, is_drowsy, score, closed_frame_count, face_box, eye_box, fps, config):
    """
    Draw boxes, status label and info lines on a copy of the frame.

    Args:
        frame: BGR image frame (not modified)
        is_drowsy: Current drowsiness decision
        score: Eye-openness score or None
        closed_frame_count: Current closed-frame counter
        face_box: BoundingBox or None
        eye_box: BoundingBox or None
        fps: Instantaneous frame rate (may be NaN)
        config: MonitorConfig (display flags and thresholds)

    Returns:
        Annotated BGR frame
    """
    out = frame.copy() if frame.ndim == 3 else cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)

    if face_box is not None and not face_box.is_empty:
        _draw_box(out, face_box, "Face", FACE_COLOR)
    if eye_box is not None and not eye_box.is_empty:
        _draw_box(out, eye_box, "Eyes", EYE_COLOR)

    if is_drowsy:
        status_text, status_color = "DROWSY!", DROWSY_COLOR
    else:
        status_text, status_color = "AWAKE", AWAKE_COLOR
    y = _draw_label(out, status_text, (10, 10), 0.9, 2, status_color, 0.8)

    y += 8
    for line in info_lines(score, closed_frame_count, fps, config):
        y = _draw_label(out, line, (10, y), 0.55, 1, INFO_BG_COLOR, 0.6)

    return out


class WindowDisplay:
    """
    OpenCV window. Pressing 'q' or Esc sets the stop event; closing the
    window makes is_open False.
    """

    def __init__(self, stop_event, window_name=WINDOW_NAME):
        self.stop_event = stop_event
        self.window_name = window_name
        self._shown = False
        cv2.namedWindow(self.window_name, cv2.WINDOW_AUTOSIZE)

    @property
    def is_open(self):
        if not self._shown:
            return True
        return cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE) >= 1

    def show(self, frame):
        cv2.imshow(self.window_name, frame)
        self._shown = True
        key = cv2.waitKey(1) & 0xFF
        if key in (ord("q"), ord("Q"), 27):
            self.stop_event.set()

    def close(self):
        cv2.destroyWindow(self.window_name)
        cv2.waitKey(1)


class NullDisplay:
    """Display that shows nothing (headless runs and tests)."""

    is_open = True

    def __init__(self):
        self.last_frame = None

    def show(self, frame):
        self.last_frame = frame

    def close(self):
        pass
