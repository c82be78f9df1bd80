"""
Data models for the audio preloading engine.
"""

from .resources import (
    LoadState,
    ContextState,
    DecodedAudio,
    FallbackHandle,
    Playable,
    CacheEntry,
    LoadRequest,
    BatchResult
)
from .errors import (
    AudioError,
    LoadError,
    DecodeError,
    ContextUnavailableError,
    PlaybackBlockedError,
    LoadFailure,
    Notification
)

__all__ = [
    'LoadState',
    'ContextState',
    'DecodedAudio',
    'FallbackHandle',
    'Playable',
    'CacheEntry',
    'LoadRequest',
    'BatchResult',
    'AudioError',
    'LoadError',
    'DecodeError',
    'ContextUnavailableError',
    'PlaybackBlockedError',
    'LoadFailure',
    'Notification'
]
