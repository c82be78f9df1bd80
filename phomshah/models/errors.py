"""
Error types and structured failure records for audio loading and playback.
"""

from dataclasses import dataclass


class AudioError(Exception):
    """Base class for audio engine errors."""


class LoadError(AudioError):
    """Fetching or buffering a resource failed (network, HTTP status, timeout)."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url


class DecodeError(AudioError):
    """Raw bytes could not be decoded into samples."""


class ContextUnavailableError(AudioError):
    """The shared audio context cannot be created on this platform."""


class PlaybackBlockedError(AudioError):
    """The output backend refused to start playback."""


@dataclass
class LoadFailure:
    """Structured information about a URL that failed to load."""
    url: str
    reason: str = ""
    attempts: int = 0

    def __str__(self) -> str:
        reason_str = f": {self.reason}" if self.reason else ""
        return f"[{self.url}] failed after {self.attempts} attempt(s){reason_str}"


@dataclass
class Notification:
    """User-visible message."""
    title: str
    description: str
    variant: str = "default"  # default, destructive

    def __str__(self) -> str:
        return f"{self.title}: {self.description}"
