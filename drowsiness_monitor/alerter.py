"""
Audio Alert Module
Fire-and-forget beep while the driver is drowsy
"""

import logging
import sys
import threading
from array import array

import pygame

from drowsiness_monitor.config import BEEP_DURATION_SECONDS, BEEP_FREQUENCY_HZ

_log = logging.getLogger(__name__)


def _tone_buffer(frequency_hz, duration_s, sample_rate):
    """Signed 16-bit square wave."""
    n_samples = int(duration_s * sample_rate)
    buf = array("h")
    period = max(1, int(sample_rate / max(1, frequency_hz)))
    amp = 12000
    for i in range(n_samples):
        buf.append(amp if (i % period) < (period // 2) else -amp)
    return buf.tobytes()


class AudioAlert:
    """
    Plays a short tone on each trigger().

    - Windows: winsound.Beep on a daemon thread
    - Else: pygame mixer tone (Sound.play() returns immediately)

    A trigger while the previous tone is still playing is ignored. If no
    audio output is available the alert is disabled with one warning.
    """

    def __init__(self, frequency_hz=BEEP_FREQUENCY_HZ, duration_s=BEEP_DURATION_SECONDS):
        self.frequency_hz = frequency_hz
        self.duration_s = duration_s
        self.use_winsound = sys.platform.startswith("win")
        self.audio_enabled = False
        self.sound = None
        self.channel = None
        self.alert_thread = None

        if self.use_winsound:
            self.audio_enabled = True
            return

        try:
            pygame.mixer.init(frequency=22050, size=-16, channels=1)
            sample_rate, _size, channels = pygame.mixer.get_init()
            raw = _tone_buffer(frequency_hz, duration_s, sample_rate)
            if channels > 1:
                samples = array("h")
                samples.frombytes(raw)
                raw = array("h", (s for s in samples for _ in range(channels))).tobytes()
            self.sound = pygame.mixer.Sound(buffer=raw)
            self.audio_enabled = True
        except pygame.error as e:
            _log.warning("Audio alerts disabled (pygame mixer not available: %s)", e)

    @property
    def is_playing(self):
        if self.use_winsound:
            return self.alert_thread is not None and self.alert_thread.is_alive()
        return self.channel is not None and self.channel.get_busy()

    def trigger(self):
        """Start a tone without blocking; no-op if one is already playing."""
        if not self.audio_enabled or self.is_playing:
            return

        if self.use_winsound:
            self.alert_thread = threading.Thread(target=self._winsound_beep, daemon=True)
            self.alert_thread.start()
        else:
            self.channel = self.sound.play()

    def _winsound_beep(self):
        import winsound
        try:
            winsound.Beep(int(self.frequency_hz), int(self.duration_s * 1000))
        except RuntimeError as e:
            _log.warning("Beep failed: %s", e)

    def close(self):
        if self.sound is not None:
            self.sound.stop()
            pygame.mixer.quit()
            self.sound = None
        self.audio_enabled = False


class NullAlert:
    """Alert that only counts triggers (beep disabled, tests)."""

    def __init__(self):
        self.trigger_count = 0

    def trigger(self):
        self.trigger_count += 1

    def close(self):
        pass
