"""Amplitude analysis tap feeding the live waveform."""

import logging
import threading

import numpy as np
from scipy.signal import get_window

from ..models.audio import AnalysisFrame, new_analysis_frame

logger = logging.getLogger(__name__)


class AnalysisTap:
    """Keeps the newest ``fft_size`` samples of the input stream for visualization.

    Writes come from the PortAudio callback thread, reads from the event
    loop, so both sides take the same lock. Reads copy into caller-owned
    arrays that are reused between refreshes.
    """

    def __init__(
        self,
        fft_size: int = 2048,
        smoothing_time_constant: float = 0.8,
        min_decibels: float = -90.0,
        max_decibels: float = -10.0,
        channels: int = 1,
    ):
        """Initialize analysis tap.

        Args:
            fft_size: Transform window size in samples (power of two)
            smoothing_time_constant: Weight of the previous spectrum, 0..1
            min_decibels: Level mapped to byte 0 in frequency data
            max_decibels: Level mapped to byte 255 in frequency data
            channels: Interleaved channel count of incoming chunks
        """
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if not 0.0 <= smoothing_time_constant <= 1.0:
            raise ValueError("smoothing_time_constant must be between 0 and 1")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be below max_decibels")

        self.fft_size = fft_size
        self.smoothing_time_constant = smoothing_time_constant
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels
        self.channels = channels

        self._samples = np.zeros(fft_size, dtype=np.float32)
        self._previous_magnitudes = np.zeros(self.frequency_bin_count, dtype=np.float64)
        self._window = get_window("blackman", fft_size)
        self._lock = threading.Lock()
        self.peak_level = 0.0

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def new_frame(self) -> AnalysisFrame:
        """Allocate a frame sized for ``get_byte_time_domain_data``."""
        return new_analysis_frame(self.frequency_bin_count)

    def write(self, chunk: bytes) -> None:
        """Append a chunk of 16-bit PCM to the analysis window."""
        if not chunk:
            return

        samples = np.frombuffer(chunk, dtype=np.int16)
        if self.channels > 1:
            usable = len(samples) - len(samples) % self.channels
            samples = samples[:usable].reshape(-1, self.channels).mean(axis=1)
        normalized = samples.astype(np.float32) / 32768.0

        with self._lock:
            if len(normalized) >= self.fft_size:
                self._samples[:] = normalized[-self.fft_size:]
            else:
                self._samples = np.roll(self._samples, -len(normalized))
                self._samples[-len(normalized):] = normalized
            self.peak_level = float(np.max(np.abs(normalized))) if len(normalized) else 0.0

    def get_byte_time_domain_data(self, out: AnalysisFrame) -> AnalysisFrame:
        """Fill ``out`` with the newest samples as unsigned bytes centred on 128."""
        count = min(len(out), self.fft_size)
        with self._lock:
            recent = self._samples[-count:].copy()
        out[:count] = np.clip(np.floor(128.0 * (recent + 1.0)), 0, 255).astype(np.uint8)
        return out

    def get_byte_frequency_data(self, out: np.ndarray) -> np.ndarray:
        """Fill ``out`` with the smoothed spectrum scaled to 0..255."""
        with self._lock:
            windowed = self._samples * self._window
        spectrum = np.abs(np.fft.rfft(windowed))[: self.frequency_bin_count] / self.fft_size

        tau = self.smoothing_time_constant
        smoothed = tau * self._previous_magnitudes + (1.0 - tau) * spectrum
        self._previous_magnitudes = smoothed

        with np.errstate(divide="ignore"):
            decibels = 20.0 * np.log10(smoothed)
        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.clip((decibels - self.min_decibels) * scale, 0, 255)

        count = min(len(out), len(scaled))
        out[:count] = np.nan_to_num(scaled[:count], nan=0.0, neginf=0.0).astype(np.uint8)
        return out

    def reset(self) -> None:
        """Forget all buffered samples."""
        with self._lock:
            self._samples[:] = 0.0
            self._previous_magnitudes[:] = 0.0
            self.peak_level = 0.0
        logger.debug("Analysis tap reset")
