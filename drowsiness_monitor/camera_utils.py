"""
Camera Utilities Module
Opens the webcam or a video file and reads frames with retry logic
"""

import logging
import os
import time

import cv2

from drowsiness_monitor.config import (
    CAMERA_BACKEND,
    CAMERA_PROBE_COUNT,
    MAX_CONSECUTIVE_FAILURES,
)
from drowsiness_monitor.errors import SourceOpenError

_log = logging.getLogger(__name__)


def _backend_candidates(backend=CAMERA_BACKEND):
    """
    Get list of camera backends to try (Windows compatibility).

    Returns:
        List of backend constants or None for default
    """
    backend = str(backend).upper()
    if backend == "DSHOW" and hasattr(cv2, "CAP_DSHOW"):
        return [cv2.CAP_DSHOW]
    if backend == "MSMF" and hasattr(cv2, "CAP_MSMF"):
        return [cv2.CAP_MSMF]

    # AUTO: try common Windows backends first, then default
    candidates = []
    if hasattr(cv2, "CAP_DSHOW"):
        candidates.append(cv2.CAP_DSHOW)
    if hasattr(cv2, "CAP_MSMF"):
        candidates.append(cv2.CAP_MSMF)
    candidates.append(None)  # default backend
    return candidates


def open_camera(index=0, frame_size=None, fps=None, probe_count=CAMERA_PROBE_COUNT):
    """
    Open a working camera capture device.
    Tries multiple backends and indices and waits for a first good frame.

    Args:
        index: Preferred camera index
        frame_size: Optional (width, height) to request from the driver
        fps: Optional frame rate to request from the driver
        probe_count: Other indices 0..N-1 to try if index fails

    Returns:
        cv2.VideoCapture object

    Raises:
        SourceOpenError: If no camera can be opened
    """
    indices = [index] + [i for i in range(probe_count) if i != index]

    last_error = None
    for backend in _backend_candidates():
        for idx in indices:
            cap = None
            try:
                cap = cv2.VideoCapture(idx, backend) if backend is not None else cv2.VideoCapture(idx)
                if not cap.isOpened():
                    cap.release()
                    continue

                # Some drivers ignore these; that's okay
                if frame_size:
                    cap.set(cv2.CAP_PROP_FRAME_WIDTH, frame_size[0])
                    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, frame_size[1])
                if fps:
                    cap.set(cv2.CAP_PROP_FPS, fps)

                # Warm up a few frames
                for _ in range(10):
                    ret, _frame = cap.read()
                    if ret:
                        backend_name = "DEFAULT" if backend is None else str(backend)
                        _log.info("Camera opened: index=%d, backend=%s", idx, backend_name)
                        return cap
                    time.sleep(0.05)

                cap.release()
            except cv2.error as e:
                last_error = e
                if cap is not None:
                    cap.release()

    msg = (
        f"Could not read frames from any camera.\n"
        f"Tried indices: {indices}\n"
        f"Tried backends: {['DEFAULT' if b is None else b for b in _backend_candidates()]}\n"
        f"Tips:\n"
        f"- Close other apps using the camera (Teams/Zoom/Browser).\n"
        f"- Try a different --camera index.\n"
        f"- On Windows, set CAMERA_BACKEND to 'DSHOW' or 'MSMF'.\n"
    )
    if last_error:
        msg += f"Last error: {last_error}\n"
    raise SourceOpenError(msg)


def open_video(path):
    """
    Open a video file.

    Raises:
        SourceOpenError: If the file is missing or cannot be decoded
    """
    if not os.path.isfile(path):
        raise SourceOpenError(f"Video file not found: {path}")
    cap = cv2.VideoCapture(path)
    if not cap.isOpened():
        cap.release()
        raise SourceOpenError(f"Could not open video file: {path}")
    _log.info("Using video file: %s", path)
    return cap


class FrameSource:
    """
    Uniform frame reader over a live camera or a finite video file.

    read() returns the next frame, or None when no frame is available this
    tick. Once the stream is over, exhausted is True. A camera glitch only
    skips the tick; after MAX_CONSECUTIVE_FAILURES failed reads in a row
    the camera is re-opened once, and if that fails the source is exhausted.

    Use as a context manager so the capture is always released.
    """

    def __init__(self, capture, live, reopen=None, max_failures=MAX_CONSECUTIVE_FAILURES):
        """
        Args:
            capture: Opened cv2.VideoCapture (or anything with read/release)
            live: True for a camera, False for a file
            reopen: Callable returning a fresh capture (cameras only)
            max_failures: Consecutive failed reads before re-opening
        """
        self.capture = capture
        self.live = live
        self.reopen = reopen
        self.max_failures = max_failures
        self.exhausted = False
        self.consecutive_failures = 0
        self._last_warning_time = 0.0

    @classmethod
    def from_config(cls, config):
        """
        Open the source selected by the config.

        Raises:
            SourceOpenError: If the source cannot be opened
        """
        if config.use_webcam:
            def reopen():
                return open_camera(config.webcam_index, config.frame_size, config.target_fps)
            return cls(reopen(), live=True, reopen=reopen)
        return cls(open_video(config.video_file), live=False)

    def read(self):
        """
        Read the next frame.

        Returns:
            Frame array, or None if there is no frame this tick
        """
        if self.exhausted:
            return None

        ret, frame = self.capture.read()
        if ret and frame is not None and frame.size > 0:
            self.consecutive_failures = 0
            return frame

        if not self.live:
            self.exhausted = True
            return None

        self.consecutive_failures += 1
        if self.consecutive_failures <= self.max_failures:
            now = time.monotonic()
            if self.consecutive_failures > 5 and now - self._last_warning_time > 5.0:
                _log.warning("Camera glitch detected (%d failures), retrying...",
                             self.consecutive_failures)
                self._last_warning_time = now
            return None

        _log.error("Camera appears stuck, attempting to re-open...")
        self.capture.release()
        if self.reopen is None:
            self.exhausted = True
            return None
        try:
            self.capture = self.reopen()
        except SourceOpenError as e:
            _log.error("Failed to re-open camera: %s", e)
            self.exhausted = True
            return None

        self.consecutive_failures = 0
        _log.info("Camera successfully re-opened, resuming...")
        return None

    def release(self):
        if self.capture is not None:
            self.capture.release()
            self.capture = None
        self.exhausted = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
