"""
Drowsiness State Module
Turns per-frame eye-openness scores into a debounced AWAKE/DROWSY decision
"""

import math
from dataclasses import dataclass


@dataclass
class DrowsinessState:
    """Consecutive closed-eye frame counter and the current drowsy flag."""

    closed_frame_count: int = 0
    is_drowsy: bool = False


class DrowsinessStateMachine:
    """
    Saturating closed-frame counter with asymmetric hysteresis.

    - A frame with score below the threshold adds one to the counter.
    - Any other scored frame removes one (never below zero), so recovery
      is gradual.
    - A frame without a score (no face/eyes) leaves everything as it was,
      so detector dropouts neither reset progress nor cancel an alert.
    - is_drowsy is true while counter >= closed_frames_for_drowsy.
    """

    def __init__(self, eye_open_threshold, closed_frames_for_drowsy):
        """
        Initialize state machine.

        Args:
            eye_open_threshold: Scores below this count as closed eyes
            closed_frames_for_drowsy: Counter level at which the driver is drowsy
        """
        self.eye_open_threshold = eye_open_threshold
        self.closed_frames_for_drowsy = closed_frames_for_drowsy
        self._state = DrowsinessState()

    @classmethod
    def from_config(cls, config):
        return cls(config.eye_open_threshold, config.closed_frames_for_drowsy)

    @property
    def state(self):
        """Snapshot of the current state."""
        return DrowsinessState(self._state.closed_frame_count, self._state.is_drowsy)

    @property
    def is_drowsy(self):
        return self._state.is_drowsy

    @property
    def closed_frame_count(self):
        return self._state.closed_frame_count

    def update(self, score):
        """
        Update the state with one frame's score.

        Args:
            score: Eye-openness score, or None if no eye region was found

        Returns:
            Tuple of (is_drowsy, closed_frame_count)
        """
        state = self._state

        if score is None or math.isnan(score):
            return state.is_drowsy, state.closed_frame_count

        if score < self.eye_open_threshold:
            state.closed_frame_count += 1
        else:
            state.closed_frame_count = max(0, state.closed_frame_count - 1)

        state.is_drowsy = state.closed_frame_count >= self.closed_frames_for_drowsy
        return state.is_drowsy, state.closed_frame_count
