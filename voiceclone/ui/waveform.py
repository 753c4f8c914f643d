"""Smoothed bar waveform drawn from the live analysis frame."""

import asyncio
import logging
from typing import Optional, Protocol

import numpy as np

from ..models.audio import SILENCE_BYTE, AnalysisFrame
from .surface import BACKGROUND_COLOR, WAVEFORM_GRADIENT, Gradient, Surface

logger = logging.getLogger(__name__)

BAR_WIDTH = 4
BAR_GAP = 1
BASE_HEIGHT = 4.0
GAIN_EXPONENT = 0.7
GAIN_SCALE = 2.5
HEIGHT_FRACTION = 0.8

# Display modes
WAVEFORM = "waveform"
SPECTRUM = "spectrum"


class FrameSource(Protocol):
    frequency_bin_count: int

    def new_frame(self) -> AnalysisFrame: ...

    def get_byte_time_domain_data(self, out: AnalysisFrame) -> AnalysisFrame: ...

    def get_byte_frequency_data(self, out: np.ndarray) -> np.ndarray: ...


def bar_count(surface_width: int, bar_width: int = BAR_WIDTH, gap: int = BAR_GAP) -> int:
    """Number of bars that fit across the surface."""
    return max(int(surface_width // (bar_width + gap)), 0)


def sample_indices(frame_length: int, total_bars: int) -> np.ndarray:
    """Evenly spaced frame indices, one per bar."""
    if total_bars <= 0:
        return np.zeros(0, dtype=np.intp)
    step = frame_length // total_bars
    return np.arange(total_bars, dtype=np.intp) * step


def raw_bar_heights(frame: AnalysisFrame, surface_width: int, surface_height: int,
                    bar_width: int = BAR_WIDTH, gap: int = BAR_GAP) -> np.ndarray:
    """Per-bar heights before smoothing.

    Quiet speech sits close to the midpoint, so the normalized amplitude is
    pushed through a sub-linear gain curve before scaling to the surface.
    """
    total_bars = bar_count(surface_width, bar_width, gap)
    if total_bars == 0 or len(frame) == 0:
        return np.zeros(total_bars, dtype=np.float64)

    samples = np.asarray(frame, dtype=np.float64)[sample_indices(len(frame), total_bars)]
    normalized = np.abs(samples - SILENCE_BYTE) / SILENCE_BYTE
    amplified = np.power(normalized, GAIN_EXPONENT) * GAIN_SCALE
    return np.maximum(BASE_HEIGHT, amplified * surface_height * HEIGHT_FRACTION)


def spectrum_bar_heights(spectrum: np.ndarray, surface_width: int, surface_height: int,
                         bar_width: int = BAR_WIDTH, gap: int = BAR_GAP) -> np.ndarray:
    """Per-bar heights for a 0..255 byte spectrum; bars rise from the bottom edge."""
    total_bars = bar_count(surface_width, bar_width, gap)
    if total_bars == 0 or len(spectrum) == 0:
        return np.zeros(total_bars, dtype=np.float64)

    values = np.asarray(spectrum, dtype=np.float64)[sample_indices(len(spectrum), total_bars)]
    return np.maximum(BASE_HEIGHT, values / 255.0 * surface_height * HEIGHT_FRACTION)


def smooth_heights(heights: np.ndarray) -> np.ndarray:
    """Average every bar with its immediate neighbours (edges use two bars)."""
    heights = np.asarray(heights, dtype=np.float64)
    if len(heights) < 2:
        return heights.copy()

    sums = heights.copy()
    sums[1:] += heights[:-1]
    sums[:-1] += heights[1:]
    counts = np.full(len(heights), 3.0)
    counts[0] = counts[-1] = 2.0
    return sums / counts


def compute_bar_heights(frame: AnalysisFrame, surface_width: int, surface_height: int,
                        bar_width: int = BAR_WIDTH, gap: int = BAR_GAP) -> np.ndarray:
    """Smoothed bar heights for one frame on a surface of the given size."""
    return smooth_heights(raw_bar_heights(frame, surface_width, surface_height, bar_width, gap))


class WaveformRenderer:
    """Draws the waveform (or the spectrum) on every display refresh while capturing."""

    def __init__(
        self,
        surface: Surface,
        bar_width: int = BAR_WIDTH,
        gap: int = BAR_GAP,
        gradient: Gradient = WAVEFORM_GRADIENT,
        background: str = BACKGROUND_COLOR,
        refresh_hz: float = 30.0,
        mode: str = WAVEFORM,
    ):
        """Initialize waveform renderer.

        Args:
            surface: Surface to draw on
            bar_width: Bar width in pixels
            gap: Space between bars in pixels
            gradient: Top-to-bottom bar gradient stops
            background: Color used to clear the surface
            refresh_hz: Redraws per second while running
            mode: "waveform" for centred amplitude bars, "spectrum" for
                frequency bars rising from the bottom
        """
        if refresh_hz <= 0:
            raise ValueError("refresh_hz must be positive")
        if mode not in (WAVEFORM, SPECTRUM):
            raise ValueError(f"Unknown display mode: {mode}")
        self.mode = mode
        self.surface = surface
        self.bar_width = bar_width
        self.gap = gap
        self.gradient = gradient
        self.background = background
        self.refresh_interval = 1.0 / refresh_hz

        self.frames_rendered = 0
        self._task: Optional[asyncio.Task] = None
        self._cleared = True

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def render(self, frame: AnalysisFrame) -> np.ndarray:
        """Draw one frame and return the bar heights that were drawn."""
        width, height = self.surface.width, self.surface.height
        if self.mode == SPECTRUM:
            heights = smooth_heights(spectrum_bar_heights(frame, width, height, self.bar_width, self.gap))
        else:
            heights = compute_bar_heights(frame, width, height, self.bar_width, self.gap)

        self.surface.clear(self.background)
        for i, bar_height in enumerate(heights):
            x = i * (self.bar_width + self.gap)
            if self.mode == SPECTRUM:
                y = height - bar_height
            else:
                y = (height - bar_height) / 2
            self.surface.fill_bar(x, y, self.bar_width, float(bar_height), self.gradient)

        self.frames_rendered += 1
        return heights

    def start(self, source: FrameSource) -> asyncio.Task:
        """Start the refresh loop on the running event loop."""
        if self.is_running:
            logger.warning("Waveform renderer already running")
            return self._task
        self._cleared = False
        self._task = asyncio.ensure_future(self._refresh_loop(source))
        logger.debug("Waveform refresh loop started")
        return self._task

    async def _refresh_loop(self, source: FrameSource) -> None:
        if self.mode == SPECTRUM:
            frame = np.zeros(source.frequency_bin_count, dtype=np.uint8)
            read = source.get_byte_frequency_data
        else:
            frame = source.new_frame()
            read = source.get_byte_time_domain_data
        while True:
            read(frame)
            self.render(frame)
            await asyncio.sleep(self.refresh_interval)

    async def stop(self) -> None:
        """Cancel the refresh loop and clear the surface once."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            result, = await asyncio.gather(task, return_exceptions=True)
            if isinstance(result, Exception):
                logger.error(f"Waveform refresh loop failed: {result}")
        if not self._cleared:
            self.surface.clear(self.background)
            self._cleared = True
            logger.debug(f"Waveform refresh loop stopped after {self.frames_rendered} frames")
