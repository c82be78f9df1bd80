"""
Fallback media handle played through ``pygame.mixer``.
"""

import asyncio
import io
import logging
import os
from typing import Awaitable, Callable, Optional

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
import pygame

from phomshah.models.errors import DecodeError, LoadError, PlaybackBlockedError
from phomshah.utils.audio_utils import decode_audio_bytes

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[bytes]]


class MediaHandle:
    """Playable handle for one URL.

    The handle is created empty; ``load`` buffers the whole resource so that
    playback can run through without stalling. The mixer is engaged only on
    the first ``play``.
    """

    def __init__(self,
                 url: str,
                 fetcher: Fetcher,
                 mixer_frequency: int = 44100,
                 mixer_channels: int = 2,
                 mixer_buffer: int = 512):
        self.url = url
        self._fetcher = fetcher
        self._mixer_settings = {
            'frequency': mixer_frequency,
            'channels': mixer_channels,
            'buffer': mixer_buffer
        }
        self._data: Optional[bytes] = None
        self._sound = None
        self._channel = None
        self._paused = False

    @property
    def is_ready(self) -> bool:
        return self._data is not None

    @property
    def is_playing(self) -> bool:
        return (self._channel is not None
                and not self._paused
                and bool(self._channel.get_busy()))

    async def load(self, timeout: float) -> None:
        """Buffer the resource, failing if it is not ready within ``timeout`` seconds."""
        if self._data is not None:
            return

        try:
            data = await asyncio.wait_for(self._fetcher(self.url), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise LoadError(self.url, f"Not ready after {timeout:.0f}s") from e

        await self.load_data(data)

    async def load_data(self, data: bytes) -> None:
        """Adopt bytes that were already fetched.

        The handle becomes ready only if the bytes decode as audio.

        Raises:
            DecodeError: If no decoder accepts the data
        """
        try:
            await asyncio.to_thread(decode_audio_bytes, data)
        except DecodeError as e:
            raise DecodeError(f"Cannot decode {self.url}: {e}") from e

        self._data = data
        self._sound = None
        logger.debug(f"Media handle ready: {self.url} ({len(data)} bytes)")

    def _ensure_mixer(self) -> None:
        if pygame.mixer.get_init():
            return
        try:
            pygame.mixer.init(**self._mixer_settings)
        except pygame.error as e:
            raise PlaybackBlockedError(f"Audio output unavailable: {e}") from e

    def _ensure_sound(self):
        if self._sound is None:
            try:
                self._sound = pygame.mixer.Sound(file=io.BytesIO(self._data))
            except pygame.error as e:
                raise DecodeError(f"Cannot decode {self.url}: {e}") from e
        return self._sound

    def play(self) -> None:
        if self._data is None:
            raise LoadError(self.url, "Media handle is not loaded")

        self._ensure_mixer()
        sound = self._ensure_sound()

        if self._paused and self._channel is not None:
            self._channel.unpause()
            self._paused = False
            return

        try:
            channel = sound.play()
        except pygame.error as e:
            raise PlaybackBlockedError(f"Playback refused: {e}") from e

        if channel is None:
            raise PlaybackBlockedError("No free mixer channel")

        self._channel = channel
        self._paused = False

    def pause(self) -> None:
        if self.is_playing:
            self._channel.pause()
            self._paused = True

    def rewind(self) -> None:
        """Stop playback so the next ``play`` starts at the beginning."""
        if self._channel is not None:
            self._channel.stop()
        self._channel = None
        self._paused = False

    def release(self) -> None:
        """Detach the buffered source."""
        self.rewind()
        self._sound = None
        self._data = None
