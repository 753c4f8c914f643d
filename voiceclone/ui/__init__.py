"""Terminal UI: live waveform surfaces and rendering."""

from .surface import CanvasSurface, Surface, TerminalSurface
from .waveform import WaveformRenderer, compute_bar_heights

__all__ = [
    "CanvasSurface",
    "Surface",
    "TerminalSurface",
    "WaveformRenderer",
    "compute_bar_heights",
]
