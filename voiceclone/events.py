"""Event publishing over pypubsub topics."""

import logging
from typing import Any

from pubsub import pub

logger = logging.getLogger(__name__)

RECORDING_STATE = "recording.state"
RECORDING_TICK = "recording.tick"
PIPELINE_STAGE = "pipeline.stage"
RESPONSES_LOADED = "responses.loaded"
RESPONSES_FAILED = "responses.failed"
PLAYBACK_STATE = "playback.state"


class EventPublisher:
    """Publishes state events using pubsub.pub.

    Every message carries a single ``event`` keyword argument so listeners
    subscribe with ``def listener(event): ...``.
    """

    def __init__(self, enabled: bool = True):
        """Initialize event publisher.

        Args:
            enabled: When False, events are dropped (useful for headless runs)
        """
        self.enabled = enabled

    def publish(self, topic: str, event: Any) -> None:
        """Publish an event to a pub/sub topic.

        Args:
            topic: Pub/sub topic name
            event: Event dataclass to deliver
        """
        if not self.enabled:
            return
        pub.sendMessage(topic, event=event)
        logger.debug(f"Published {topic}: {event}")
