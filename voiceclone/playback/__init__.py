"""Exclusive clip playback."""

from .arbiter import CLONED_VOICE, RECORDING_PREVIEW, PlaybackArbiter
from .player import AudioPlayer, PlaybackHandle, PlayerError, PyAudioPlayer

__all__ = [
    "CLONED_VOICE",
    "RECORDING_PREVIEW",
    "PlaybackArbiter",
    "AudioPlayer",
    "PlaybackHandle",
    "PlayerError",
    "PyAudioPlayer",
]
