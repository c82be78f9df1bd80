"""
Resource management layer for audio loading and playback.
"""

from .audio_manager import AudioResourceManager
from .cache import AudioCache
from .context import SharedAudioContext, BufferSource
from .media import MediaHandle
from .scheduler import LoadQueue

__all__ = [
    'AudioResourceManager',
    'AudioCache',
    'SharedAudioContext',
    'BufferSource',
    'MediaHandle',
    'LoadQueue'
]
