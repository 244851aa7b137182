"""
Main Entry Point for the Drowsy Driver Monitor

Startup order: configuration -> detectors -> frame source -> window.
Any failure before the loop starts is reported and nothing is shown.

Run with: drowsiness-monitor [--video PATH | --camera N] ...
Press 'q' in the window to stop.
"""

import argparse
import logging
import signal
import sys
import threading

from drowsiness_monitor import __version__
from drowsiness_monitor.alerter import AudioAlert, NullAlert
from drowsiness_monitor.camera_utils import FrameSource
from drowsiness_monitor.config import MonitorConfig
from drowsiness_monitor.drowsiness_state import DrowsinessStateMachine
from drowsiness_monitor.errors import DrowsinessMonitorError
from drowsiness_monitor.face_detector import create_detectors
from drowsiness_monitor.frame_analyzer import FrameAnalyzer
from drowsiness_monitor.processing_loop import ProcessingLoop
from drowsiness_monitor.visualizer import NullDisplay, WindowDisplay

_log = logging.getLogger("drowsiness_monitor")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="drowsiness-monitor",
        description="Eye-closure based drowsy driver detection.",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--video", metavar="PATH", help="Read frames from a video file")
    source.add_argument("--camera", type=int, metavar="N", help="Webcam index (default 0)")

    parser.add_argument("--threshold", type=float, help="Eye-openness threshold (0..1)")
    parser.add_argument("--closed-frames", type=int, help="Closed frames before DROWSY")
    parser.add_argument("--fps", type=float, help="Target frame rate, 0 = uncapped")
    parser.add_argument("--max-runtime", type=float, help="Stop after N seconds, 0 = never")
    parser.add_argument("--width", type=int, help="Processing frame width")
    parser.add_argument("--height", type=int, help="Processing frame height")
    parser.add_argument("--face-cascade", help="Face cascade file")
    parser.add_argument("--eye-cascade", help="Eye(-pair) cascade file")
    parser.add_argument("--no-beep", action="store_true", help="Disable the audio alert")
    parser.add_argument("--hide-score", action="store_true", help="Hide eye score and counter")
    parser.add_argument("--hide-fps", action="store_true", help="Hide frame rate")
    parser.add_argument("--headless", action="store_true", help="Do not open a window")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def config_from_args(args):
    """
    Apply command line overrides on top of the defaults in config.py.

    Raises:
        ConfigurationError: If the result is invalid
    """
    overrides = {
        "eye_open_threshold": args.threshold,
        "closed_frames_for_drowsy": args.closed_frames,
        "target_fps": args.fps,
        "max_runtime_seconds": args.max_runtime,
        "target_frame_width": args.width,
        "target_frame_height": args.height,
        "face_cascade": args.face_cascade,
        "eye_cascade": args.eye_cascade,
        "webcam_index": args.camera,
    }
    if args.video:
        overrides["use_webcam"] = False
        overrides["video_file"] = args.video
    elif args.camera is not None:
        overrides["use_webcam"] = True
    if args.no_beep:
        overrides["enable_beep"] = False
    if args.hide_score:
        overrides["show_eye_score"] = False
    if args.hide_fps:
        overrides["show_frame_rate"] = False
    return MonitorConfig.create(**overrides)


def run(config, headless=False):
    """
    Open every resource, run the loop and release everything afterwards.

    Returns:
        RunSummary

    Raises:
        DrowsinessMonitorError: If a detector or the source cannot be opened
    """
    face_detector, eye_detector = create_detectors(config)
    analyzer = FrameAnalyzer(face_detector, eye_detector)
    state_machine = DrowsinessStateMachine.from_config(config)
    stop_event = threading.Event()

    with FrameSource.from_config(config) as source:
        display = NullDisplay() if headless else WindowDisplay(stop_event)
        alert = AudioAlert() if config.enable_beep else NullAlert()

        previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: stop_event.set())
        try:
            loop = ProcessingLoop(config, source, analyzer, state_machine,
                                  display, alert, stop_event)
            return loop.run()
        finally:
            signal.signal(signal.SIGINT, previous_handler)
            alert.close()
            display.close()


def main(argv=None):
    """Command line entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        config = config_from_args(args)
        _log.info("Starting Drowsy Driver Monitor %s", __version__)
        summary = run(config, headless=args.headless)
    except DrowsinessMonitorError as e:
        _log.error("%s", e)
        return 1

    _log.info("Processed %d frames in %.1fs, %d drowsy. Shutdown complete.",
              summary.frames_processed, summary.elapsed_seconds, summary.drowsy_frames)
    return 0


if __name__ == "__main__":
    sys.exit(main())
