"""
PhomShah audio engine: cached preloading and playback of vocabulary audio.
"""

from .preloader import AudioPreloader, AudioPreloaderOptions
from .resources import AudioResourceManager, AudioCache

__version__ = "1.0.0"

__all__ = [
    'AudioPreloader',
    'AudioPreloaderOptions',
    'AudioResourceManager',
    'AudioCache'
]
