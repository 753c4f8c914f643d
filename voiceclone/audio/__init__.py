"""Audio capture and analysis module."""

from .capture import CaptureSource
from .analysis import AnalysisTap
from .encoder import ChunkEncoder, ClipEncoder, PassThroughEncoder

__all__ = [
    'CaptureSource',
    'AnalysisTap',
    'ChunkEncoder',
    'ClipEncoder',
    'PassThroughEncoder',
]
