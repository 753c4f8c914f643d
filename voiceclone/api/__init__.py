"""HTTP clients for the remote voice-cloning and avatar services."""

from .client import BaseApiClient, VoiceCloneClient
from .avatar import AvatarClient

__all__ = [
    "BaseApiClient",
    "VoiceCloneClient",
    "AvatarClient",
]
