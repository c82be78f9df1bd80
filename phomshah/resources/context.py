"""
Shared audio context: decoded-buffer playback through ``sounddevice``.
"""

import asyncio
import logging
import threading
from typing import Any, Callable, List, Optional

from phomshah.models.errors import ContextUnavailableError
from phomshah.models.resources import ContextState, DecodedAudio
from phomshah.utils.audio_utils import decode_audio_bytes

logger = logging.getLogger(__name__)

StateObserver = Callable[[ContextState], None]


class BufferSource:
    """One-shot playback node bound to a decoded buffer.

    Each source owns its own output stream, so several sources for the same
    buffer can play at once.
    """

    def __init__(self, sd: Any, decoded: DecodedAudio, device: Optional[str] = None):
        self._sd = sd
        self._decoded = decoded
        self._device = device
        self._position = 0
        self._stream = None
        self.started = False
        self.finished = threading.Event()

    def start(self, offset: float = 0.0) -> None:
        """Start playback ``offset`` seconds into the buffer."""
        if self.started:
            raise RuntimeError("BufferSource can only be started once")
        self.started = True

        self._position = max(0, int(offset * self._decoded.sample_rate))
        self._stream = self._sd.OutputStream(
            samplerate=self._decoded.sample_rate,
            channels=self._decoded.channels,
            dtype='float32',
            device=self._device,
            callback=self._callback,
            finished_callback=self.finished.set
        )
        self._stream.start()

    def _callback(self, outdata, frames, time_info, status) -> None:
        if status:
            logger.debug(f"Output stream status: {status}")

        samples = self._decoded.samples
        chunk = samples[self._position:self._position + frames]
        count = len(chunk)
        outdata[:count] = chunk
        self._position += count

        if count < frames:
            outdata[count:] = 0
            raise self._sd.CallbackStop

    def stop(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.abort()
            self._stream.close()
        except self._sd.PortAudioError as e:
            logger.debug(f"Error closing output stream: {e}")
        finally:
            self._stream = None
            self.finished.set()


class SharedAudioContext:
    """Process-wide output facility for decoded buffers.

    Construction fails with ``ContextUnavailableError`` when PortAudio or an
    output device is missing.
    """

    def __init__(self, sample_rate: Optional[int] = None, device: Optional[str] = None):
        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:
            raise ContextUnavailableError(f"sounddevice not available: {e}") from e

        try:
            info = sd.query_devices(device, kind='output')
        except (sd.PortAudioError, ValueError) as e:
            raise ContextUnavailableError(f"No audio output device: {e}") from e

        self._sd = sd
        self.device = device
        self.device_name = info['name']
        self.sample_rate = int(sample_rate or info['default_samplerate'])
        self._state = ContextState.RUNNING
        self._observers: List[StateObserver] = []
        self._sources: List[BufferSource] = []

        logger.info(f"Audio context created: device={self.device_name}, sr={self.sample_rate}")

    @property
    def state(self) -> ContextState:
        return self._state

    def on_state_change(self, observer: StateObserver) -> None:
        self._observers.append(observer)

    def _set_state(self, state: ContextState) -> None:
        if state is self._state:
            return
        self._state = state
        for observer in list(self._observers):
            try:
                observer(state)
            except Exception as e:
                logger.warning(f"Audio context observer failed: {e}")

    async def resume(self) -> None:
        if self._state is ContextState.CLOSED:
            raise ContextUnavailableError("Audio context is closed")
        self._set_state(ContextState.RUNNING)

    def suspend(self) -> None:
        if self._state is ContextState.CLOSED:
            return
        self._stop_sources()
        self._set_state(ContextState.SUSPENDED)

    def close(self) -> None:
        self._stop_sources()
        self._set_state(ContextState.CLOSED)

    async def decode(self, data: bytes) -> DecodedAudio:
        """Decode bytes off the event loop, resampled to the context rate."""
        return await asyncio.to_thread(decode_audio_bytes, data, self.sample_rate)

    def create_buffer_source(self, decoded: DecodedAudio) -> BufferSource:
        if self._state is not ContextState.RUNNING:
            raise ContextUnavailableError(f"Audio context is {self._state.value}")

        self._prune_sources()
        source = BufferSource(self._sd, decoded, device=self.device)
        self._sources.append(source)
        return source

    def _prune_sources(self) -> None:
        finished = [source for source in self._sources if source.finished.is_set()]
        for source in finished:
            source.stop()
            self._sources.remove(source)

    def _stop_sources(self) -> None:
        for source in self._sources:
            source.stop()
        self._sources.clear()
