"""
Error types raised at startup.

Per-frame problems (no face, no eyes, empty crops, a dropped camera frame)
are not errors and never show up here.
"""


class DrowsinessMonitorError(Exception):
    """Base class for all monitor errors."""


class ConfigurationError(DrowsinessMonitorError, ValueError):
    """A configuration value is missing or out of range."""


class SourceOpenError(DrowsinessMonitorError, RuntimeError):
    """The webcam or video file could not be opened."""


class DetectorLoadError(DrowsinessMonitorError, RuntimeError):
    """A cascade classifier file could not be loaded."""
