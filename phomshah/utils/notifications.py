"""
User-visible notifications raised by the audio engine.
"""

import logging
from typing import Callable, List, Optional

from phomshah.models.errors import Notification

logger = logging.getLogger("phomshah.notifications")

NotificationSink = Callable[[Notification], None]


def audio_not_supported() -> Notification:
    return Notification(
        title="Audio not supported",
        description="Your device does not support advanced audio playback. "
                    "Basic playback will be used instead.",
        variant="destructive"
    )


def playback_blocked() -> Notification:
    return Notification(
        title="Tap to enable audio",
        description="Your browser or device blocked audio playback. "
                    "Interact with the page and try again.",
    )


def audio_error() -> Notification:
    return Notification(
        title="Audio Error",
        description="There was a problem playing the audio. Please try again.",
        variant="destructive"
    )


def batch_failures(failed: int, total: int) -> Notification:
    return Notification(
        title="Some audio failed to load",
        description=f"{failed} of {total} audio files could not be loaded.",
        variant="destructive"
    )


class LoggingNotifier:
    """Notifier that writes to the log and forwards to an optional sink."""

    def __init__(self, sink: Optional[NotificationSink] = None):
        self._sink = sink
        self.history: List[Notification] = []

    def __call__(self, notification: Notification) -> None:
        self.history.append(notification)

        if notification.variant == "destructive":
            logger.warning(str(notification))
        else:
            logger.info(str(notification))

        if self._sink is not None:
            try:
                self._sink(notification)
            except Exception as e:
                logger.error(f"Notification sink failed: {e}")
