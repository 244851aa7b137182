"""
Processing Loop Module
Acquire -> analyze -> update state -> render -> alert -> pace, one frame at a time
"""

import logging
import math
import time
from dataclasses import dataclass

import cv2

from drowsiness_monitor.visualizer import draw_overlay

_log = logging.getLogger(__name__)

STOP_MAX_RUNTIME = "max_runtime"
STOP_END_OF_STREAM = "end_of_stream"
STOP_REQUESTED = "stop_requested"
STOP_WINDOW_CLOSED = "window_closed"

# Pause after a dropped camera frame before trying again
RETRY_DELAY_SECONDS = 0.01


@dataclass
class RunSummary:
    """What happened during one run of the loop."""

    frames_processed: int = 0
    frames_skipped: int = 0
    drowsy_frames: int = 0
    elapsed_seconds: float = 0.0
    stop_reason: str = ""


def resize_frame(frame, width, height):
    """Scale frame to width x height unless it already has that size."""
    h, w = frame.shape[:2]
    if w == width and h == height:
        return frame
    return cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)


class ProcessingLoop:
    """
    Single-threaded frame loop.

    Stop conditions (max runtime, stop event, closed window) are only
    checked between frames, so a frame in progress always completes.
    """

    def __init__(self, config, source, analyzer, state_machine, display, alert,
                 stop_event, renderer=draw_overlay, clock=time.monotonic, sleep=time.sleep):
        """
        Args:
            config: MonitorConfig
            source: FrameSource (read() -> frame or None, exhausted flag)
            analyzer: FrameAnalyzer
            state_machine: DrowsinessStateMachine
            display: WindowDisplay or NullDisplay
            alert: AudioAlert or NullAlert
            stop_event: threading.Event set from outside to stop the loop
            renderer: Overlay function (see visualizer.draw_overlay)
            clock: Monotonic time source in seconds
            sleep: Sleep function in seconds
        """
        self.config = config
        self.source = source
        self.analyzer = analyzer
        self.state_machine = state_machine
        self.display = display
        self.alert = alert
        self.stop_event = stop_event
        self.renderer = renderer
        self.clock = clock
        self.sleep = sleep

    def _stop_reason(self, start_time):
        max_runtime = self.config.max_runtime_seconds
        if max_runtime > 0 and self.clock() - start_time > max_runtime:
            _log.info("Max runtime reached. Stopping.")
            return STOP_MAX_RUNTIME
        if self.stop_event.is_set():
            _log.info("Stop requested. Stopping.")
            return STOP_REQUESTED
        if not self.display.is_open:
            _log.info("Window closed. Stopping.")
            return STOP_WINDOW_CLOSED
        if self.source.exhausted:
            _log.info("No more frames. Stopping.")
            return STOP_END_OF_STREAM
        return None

    def run(self):
        """
        Process frames until a stop condition is met.

        Returns:
            RunSummary
        """
        config = self.config
        summary = RunSummary()
        frame_budget = 1.0 / config.target_fps if config.target_fps > 0 else 0.0

        _log.info("Starting detection loop. Press 'q' to quit.")
        start_time = self.clock()
        last_render_time = start_time

        while True:
            reason = self._stop_reason(start_time)
            if reason:
                summary.stop_reason = reason
                break

            iteration_start = self.clock()
            frame = self.source.read()
            if frame is None:
                if not self.source.exhausted:
                    summary.frames_skipped += 1
                    _log.debug("No frame this tick, skipping")
                    self.sleep(RETRY_DELAY_SECONDS)
                continue

            frame = resize_frame(frame, config.target_frame_width, config.target_frame_height)

            analysis = self.analyzer.analyze(frame)
            is_drowsy, closed_frame_count = self.state_machine.update(analysis.score)

            now = self.clock()
            delta = now - last_render_time
            last_render_time = now
            fps = 1.0 / delta if delta > 0 else math.nan

            frame_out = self.renderer(
                frame, is_drowsy, analysis.score, closed_frame_count,
                analysis.face_box, analysis.eye_box, fps, config,
            )
            self.display.show(frame_out)

            if is_drowsy and config.enable_beep:
                self.alert.trigger()

            summary.frames_processed += 1
            if is_drowsy:
                summary.drowsy_frames += 1
            if summary.frames_processed % config.status_log_interval_frames == 0:
                score_text = "n/a" if analysis.score is None else f"{analysis.score:.3f}"
                _log.info("FPS: %.1f | State: %s | Eye score: %s | Closed frames: %d",
                          fps, "DROWSY" if is_drowsy else "AWAKE", score_text, closed_frame_count)

            if frame_budget > 0:
                remaining = frame_budget - (self.clock() - iteration_start)
                if remaining > 0:
                    self.sleep(remaining)

        summary.elapsed_seconds = self.clock() - start_time
        _log.info("Detection loop terminated after %d frames (%s).",
                  summary.frames_processed, summary.stop_reason)
        return summary
