"""
Configuration file for drowsiness detection thresholds and settings

The module-level constants are the defaults. At startup they are collected
into an immutable MonitorConfig (optionally with command line overrides)
and validated once before anything is opened.
"""

import math
import numbers
import os
from dataclasses import dataclass, fields, replace

from drowsiness_monitor.errors import ConfigurationError

# Data source
USE_WEBCAM = True                     # True: webcam, False: video file
WEBCAM_INDEX = 0                      # index of the webcam (0 = default)
VIDEO_FILE = "sample_driver.mp4"      # used if USE_WEBCAM is False

# Camera backend (mainly for Windows reliability)
# Options: "AUTO", "DSHOW", "MSMF"
CAMERA_BACKEND = "AUTO"

# How many camera indices to probe if WEBCAM_INDEX fails (0..N-1)
CAMERA_PROBE_COUNT = 4

# Consecutive failed reads tolerated before the camera is re-opened
MAX_CONSECUTIVE_FAILURES = 20

# Target frame size for processing (input frames are scaled to this)
FRAME_WIDTH = 640
FRAME_HEIGHT = 360

# Approximate processing frame rate cap (Hz), 0 = uncapped
TARGET_FPS = 15

# Eye-openness score threshold: lower => more sensitive to closure
EYE_OPEN_THRESHOLD = 0.18

# Consecutive closed-eye frames required to declare drowsiness
CLOSED_FRAMES_FOR_DROWSY = 15         # with 15 fps ~ 1 second

# Optional hard stop after N seconds (0 = disabled)
MAX_RUNTIME_SECONDS = 0

# Audio alert
ENABLE_BEEP = True
BEEP_FREQUENCY_HZ = 1000
BEEP_DURATION_SECONDS = 0.2

# Visualization settings
SHOW_EYE_SCORE = True
SHOW_FRAME_RATE = True
WINDOW_NAME = "Drowsy Driver Detection"

# Detector tuning (cascade minNeighbors)
FACE_DETECTOR_MERGE_THRESHOLD = 4
EYE_DETECTOR_MERGE_THRESHOLD = 2

# Cascade files, looked up in cv2.data.haarcascades unless a path is given.
# OpenCV does not ship an eye-pair cascade; point EYE_CASCADE at
# haarcascade_mcs_eyepair_big.xml if you have it.
FACE_CASCADE = "haarcascade_frontalface_default.xml"
EYE_CASCADE = "haarcascade_eye.xml"

# Print a status line every N processed frames
STATUS_LOG_INTERVAL_FRAMES = 30


@dataclass(frozen=True)
class MonitorConfig:
    """
    Immutable set of thresholds and flags for one run.

    Values are checked on construction. create() also checks that the
    video file exists, so use it for anything coming from the outside.
    """

    eye_open_threshold: float = EYE_OPEN_THRESHOLD
    closed_frames_for_drowsy: int = CLOSED_FRAMES_FOR_DROWSY
    target_fps: float = TARGET_FPS
    max_runtime_seconds: float = MAX_RUNTIME_SECONDS
    enable_beep: bool = ENABLE_BEEP
    show_eye_score: bool = SHOW_EYE_SCORE
    show_frame_rate: bool = SHOW_FRAME_RATE
    face_detector_merge_threshold: int = FACE_DETECTOR_MERGE_THRESHOLD
    eye_detector_merge_threshold: int = EYE_DETECTOR_MERGE_THRESHOLD
    target_frame_width: int = FRAME_WIDTH
    target_frame_height: int = FRAME_HEIGHT
    use_webcam: bool = USE_WEBCAM
    webcam_index: int = WEBCAM_INDEX
    video_file: str = VIDEO_FILE
    face_cascade: str = FACE_CASCADE
    eye_cascade: str = EYE_CASCADE
    status_log_interval_frames: int = STATUS_LOG_INTERVAL_FRAMES

    def __post_init__(self):
        self._check_values()

    @classmethod
    def create(cls, **overrides):
        """
        Build a validated config from the module defaults.

        Args:
            **overrides: Field values to use instead of the defaults.
                         None values are ignored.

        Returns:
            MonitorConfig

        Raises:
            ConfigurationError: On unknown fields or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration option(s): {', '.join(unknown)}")

        config = replace(cls(), **{k: v for k, v in overrides.items() if v is not None})
        config.validate()
        return config

    def validate(self):
        """
        Check every value and that the video file exists; raise
        ConfigurationError on the first problem.
        """
        self._check_values()
        if not self.use_webcam and not os.path.isfile(self.video_file):
            raise ConfigurationError(f"Video file not found: {self.video_file}")

    def _check_values(self):
        _require_real(self, "eye_open_threshold", low=0.0, high=1.0)
        _require_int(self, "closed_frames_for_drowsy", low=1)
        _require_real(self, "target_fps", low=0.0)
        _require_real(self, "max_runtime_seconds", low=0.0)
        _require_int(self, "face_detector_merge_threshold", low=0)
        _require_int(self, "eye_detector_merge_threshold", low=0)
        _require_int(self, "target_frame_width", low=1)
        _require_int(self, "target_frame_height", low=1)
        _require_int(self, "webcam_index", low=0)
        _require_int(self, "status_log_interval_frames", low=1)

        for name in ("enable_beep", "show_eye_score", "show_frame_rate", "use_webcam"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigurationError(f"{name} must be a boolean, got {getattr(self, name)!r}")

        for name in ("face_cascade", "eye_cascade"):
            if not getattr(self, name):
                raise ConfigurationError(f"{name} must name a cascade file")

    @property
    def frame_size(self):
        """(width, height) tuple in the order cv2.resize expects."""
        return self.target_frame_width, self.target_frame_height


def _require_real(config, name, low=None, high=None):
    value = getattr(config, name)
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or math.isnan(value):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if math.isinf(value):
        raise ConfigurationError(f"{name} must be finite, got {value!r}")
    if low is not None and value < low:
        raise ConfigurationError(f"{name} must be >= {low}, got {value!r}")
    if high is not None and value > high:
        raise ConfigurationError(f"{name} must be <= {high}, got {value!r}")


def _require_int(config, name, low=None):
    value = getattr(config, name)
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if low is not None and value < low:
        raise ConfigurationError(f"{name} must be >= {low}, got {value!r}")
