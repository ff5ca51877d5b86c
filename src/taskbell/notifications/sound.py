# src/taskbell/notifications/sound.py

from __future__ import annotations

import logging

import numpy as np

logger = logging.getLogger(__name__)


class Chime:
    """
    Short synthesized notification tone (sine wave with an exponential fade).

    Playback is best-effort: a missing audio device or PortAudio library only
    produces a debug log line, never an exception.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        frequency_hz: float = 800.0,
        duration_seconds: float = 0.5,
        volume: float = 0.3,
        sample_rate: int = 44100,
    ) -> None:
        self.enabled = bool(enabled)
        self.frequency_hz = float(frequency_hz)
        self.duration_seconds = max(0.05, float(duration_seconds))
        self.volume = min(1.0, max(0.0, float(volume)))
        self.sample_rate = int(sample_rate)
        self._tone: np.ndarray | None = None

    def tone(self) -> np.ndarray:
        if self._tone is None:
            n = int(self.sample_rate * self.duration_seconds)
            t = np.linspace(0.0, self.duration_seconds, n, endpoint=False)
            if self.volume <= 0.0:
                gain = np.zeros_like(t)
            else:
                # Gain ramps from `volume` down to 0.01 over the duration.
                floor = min(0.01, self.volume)
                gain = self.volume * (floor / self.volume) ** (t / self.duration_seconds)
            self._tone = (np.sin(2 * np.pi * self.frequency_hz * t) * gain).astype(np.float32)
        return self._tone

    def play(self) -> bool:
        """Start playback without blocking. Returns True if the tone was handed to the device."""
        if not self.enabled:
            return False
        try:
            # Runtime import: sounddevice loads PortAudio on import and raises if it is absent.
            import sounddevice as sd

            sd.play(self.tone(), self.sample_rate)
            return True
        except Exception as e:
            logger.debug("Could not play notification sound: %s", repr(e))
            return False
