from __future__ import annotations

import logging
import threading

import numpy as np

logger = logging.getLogger(__name__)


def synthesize_tone(
    start_hz: float = 880.0,
    end_hz: float = 440.0,
    duration_s: float = 0.1,
    start_gain: float = 0.1,
    end_gain: float = 0.01,
    sample_rate: int = 44100,
) -> np.ndarray:
    """Short sine chirp with exponential frequency and gain ramps."""
    n = max(int(round(duration_s * sample_rate)), 1)
    t = np.arange(n, dtype=np.float64) / sample_rate
    frac = t / duration_s

    ratio = end_hz / start_hz
    if np.isclose(ratio, 1.0):
        phase = 2 * np.pi * start_hz * t
    else:
        # Integral of start_hz * ratio**(t/duration) dt.
        phase = 2 * np.pi * start_hz * duration_s / np.log(ratio) * (np.power(ratio, frac) - 1.0)

    gain = start_gain * np.power(end_gain / start_gain, frac)
    return (gain * np.sin(phase)).astype(np.float32)


class TonePlayer:
    """Plays a short synthesized alert tone; falls back to the terminal bell without an audio device."""

    def __init__(self, sample_rate: int = 44100) -> None:
        self.sample_rate = int(sample_rate)
        self._lock = threading.Lock()
        self._sd = None
        self._tone = synthesize_tone(sample_rate=self.sample_rate)
        self.backend = "none"
        self._init_backend()

    def _init_backend(self) -> None:
        try:
            import sounddevice as sd
        except Exception:
            logger.warning("sounddevice unavailable; alert tone will use the terminal bell")
            self.backend = "terminal_bell"
            return

        self._sd = sd
        self.backend = "sounddevice"

    def play_tone(self) -> None:
        with self._lock:
            if self._sd is not None:
                # Non-blocking; sounddevice plays on its own stream thread.
                self._sd.play(self._tone, samplerate=self.sample_rate)
                return
        print("\a", end="", flush=True)

    def close(self) -> None:
        with self._lock:
            if self._sd is not None:
                self._sd.stop()
                self._sd = None
