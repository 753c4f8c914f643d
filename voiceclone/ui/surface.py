"""Rendering surfaces for the live waveform."""

import logging
import math
from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

import numpy as np
from rich.console import Console, ConsoleOptions, RenderResult
from rich.style import Style
from rich.text import Text

logger = logging.getLogger(__name__)

Gradient = Sequence[Tuple[float, str]]
RGB = Tuple[int, int, int]

BACKGROUND_COLOR = "#141414"
WAVEFORM_GRADIENT: Gradient = (
    (0.0, "#7C3AED"),
    (0.5, "#4F46E5"),
    (1.0, "#3B82F6"),
)


def hex_to_rgb(color: str) -> RGB:
    color = color.lstrip("#")
    return int(color[0:2], 16), int(color[2:4], 16), int(color[4:6], 16)


def interpolate_gradient(gradient: Gradient, position: float) -> RGB:
    """Color of a linear gradient at ``position`` in 0..1."""
    position = min(max(position, 0.0), 1.0)
    stops = sorted(gradient)
    if position <= stops[0][0]:
        return hex_to_rgb(stops[0][1])
    for (start, start_color), (end, end_color) in zip(stops, stops[1:]):
        if position <= end:
            span = end - start
            t = (position - start) / span if span else 0.0
            a, b = hex_to_rgb(start_color), hex_to_rgb(end_color)
            return tuple(int(round(a[i] + (b[i] - a[i]) * t)) for i in range(3))
    return hex_to_rgb(stops[-1][1])


class Surface(ABC):
    """Something bars can be drawn on, measured in pixels."""

    @property
    @abstractmethod
    def width(self) -> int:
        pass

    @property
    @abstractmethod
    def height(self) -> int:
        pass

    @abstractmethod
    def clear(self, color: str = BACKGROUND_COLOR) -> None:
        """Paint the whole surface with ``color``."""
        pass

    @abstractmethod
    def fill_bar(self, x: float, y: float, width: float, height: float, gradient: Gradient) -> None:
        """Fill a rectangle with a top-to-bottom gradient."""
        pass


class CanvasSurface(Surface):
    """In-memory RGB canvas backed by a numpy array."""

    def __init__(self, width: int = 800, height: int = 120):
        self._width = width
        self._height = height
        self.pixels = np.zeros((height, width, 3), dtype=np.uint8)
        self.clear_count = 0
        self.bars: List[Tuple[float, float, float, float]] = []

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def clear(self, color: str = BACKGROUND_COLOR) -> None:
        self.pixels[:, :] = hex_to_rgb(color)
        self.bars = []
        self.clear_count += 1

    def fill_bar(self, x: float, y: float, width: float, height: float, gradient: Gradient) -> None:
        self.bars.append((x, y, width, height))

        left = max(int(math.floor(x)), 0)
        right = min(int(math.ceil(x + width)), self._width)
        top = max(int(math.floor(y)), 0)
        bottom = min(int(math.ceil(y + height)), self._height)
        if left >= right or top >= bottom:
            return

        for row in range(top, bottom):
            position = (row - y) / height if height else 0.0
            self.pixels[row, left:right] = interpolate_gradient(gradient, position)


class TerminalSurface(Surface):
    """Rich renderable that maps the pixel surface onto terminal cells.

    Each column of cells shows the tallest bar that falls into it; rows
    are filled around the vertical centre, colored by the bar gradient.
    """

    def __init__(self, width: int = 800, height: int = 120, columns: int = 80, rows: int = 8):
        self._width = width
        self._height = height
        self.columns = columns
        self.rows = rows
        self._background = BACKGROUND_COLOR
        self._column_heights = [0.0] * columns
        self._gradient: Gradient = WAVEFORM_GRADIENT

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def clear(self, color: str = BACKGROUND_COLOR) -> None:
        self._background = color
        self._column_heights = [0.0] * self.columns

    def fill_bar(self, x: float, y: float, width: float, height: float, gradient: Gradient) -> None:
        column = int((x + width / 2) / self._width * self.columns)
        if 0 <= column < self.columns:
            self._column_heights[column] = max(self._column_heights[column], height)
            self._gradient = gradient

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        background = Style(bgcolor=self._background)
        cell_heights = [
            min(self.rows, round(h / self._height * self.rows)) for h in self._column_heights
        ]
        for row in range(self.rows):
            line = Text()
            for filled in cell_heights:
                top = (self.rows - filled) // 2
                if filled and top <= row < top + filled:
                    r, g, b = interpolate_gradient(self._gradient, (row - top) / max(filled - 1, 1))
                    line.append("█", style=Style(color=f"rgb({r},{g},{b})", bgcolor=self._background))
                else:
                    line.append(" ", style=background)
            yield line
