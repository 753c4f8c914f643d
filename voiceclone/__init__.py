"""VoiceClone - record a voice sample, clone it remotely, play back the responses."""

__version__ = "0.1.0"
