"""
Shared fakes and fixtures for the audio engine tests.
"""

import asyncio
import io
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import numpy as np
import pytest
import soundfile as sf

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from phomshah.models.errors import DecodeError, LoadError, PlaybackBlockedError
from phomshah.models.resources import ContextState, DecodedAudio
from phomshah.resources.audio_manager import AudioResourceManager


def make_wav(duration: float = 0.5, sample_rate: int = 16000, channels: int = 1) -> bytes:
    """Create an in-memory sine wave WAV file."""
    t = np.linspace(0, duration, int(sample_rate * duration), endpoint=False)
    tone = 0.5 * np.sin(2 * np.pi * 440 * t).astype(np.float32)
    samples = np.column_stack([tone] * channels)

    buffer = io.BytesIO()
    sf.write(buffer, samples, sample_rate, format='WAV', subtype='FLOAT')
    return buffer.getvalue()


class FakeFetcher:
    """Async fetcher recording calls and peak concurrency."""

    def __init__(self, delay: float = 0.0, failing: Iterable[str] = (), fail_all: bool = False):
        self.delay = delay
        self.failing = set(failing)
        self.fail_all = fail_all
        self.calls: List[str] = []
        self.active = 0
        self.peak = 0
        self.probe = None
        self.probe_peak = 0

    async def __call__(self, url: str) -> bytes:
        self.calls.append(url)
        self.active += 1
        self.peak = max(self.peak, self.active)
        if self.probe is not None:
            self.probe_peak = max(self.probe_peak, self.probe())
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail_all or url in self.failing:
                raise LoadError(url, "connection reset")
            return b"audio:" + url.encode()
        finally:
            self.active -= 1


class FakeSource:
    def __init__(self, decoded: DecodedAudio):
        self.decoded = decoded
        self.offset = None

    def start(self, offset: float = 0.0) -> None:
        self.offset = offset


class FakeContext:
    """Stand-in for SharedAudioContext."""

    def __init__(self, state: ContextState = ContextState.RUNNING, fail_decode: bool = False):
        self.state = state
        self.fail_decode = fail_decode
        self.observers = []
        self.sources: List[FakeSource] = []
        self.decode_calls = 0
        self.resume_calls = 0
        self.closed = False

    def on_state_change(self, observer) -> None:
        self.observers.append(observer)

    async def resume(self) -> None:
        self.resume_calls += 1
        self.state = ContextState.RUNNING

    def close(self) -> None:
        self.closed = True
        self.state = ContextState.CLOSED

    async def decode(self, data: bytes) -> DecodedAudio:
        self.decode_calls += 1
        if self.fail_decode:
            raise DecodeError("unsupported format")
        return DecodedAudio(samples=np.zeros((441, 1), dtype=np.float32), sample_rate=44100)

    def create_buffer_source(self, decoded: DecodedAudio) -> FakeSource:
        source = FakeSource(decoded)
        self.sources.append(source)
        return source


class FakeHandle:
    """Fallback handle recording every call."""

    def __init__(self, url: str, fail_times: int = 0, blocked_plays: int = 0, delay: float = 0.0):
        self.url = url
        self.fail_times = fail_times
        self.blocked_plays = blocked_plays
        self.delay = delay
        self.load_calls = 0
        self.data_loads = 0
        self.play_calls = 0
        self.pause_calls = 0
        self.rewind_calls = 0
        self.release_calls = 0
        self._ready = False
        self._playing = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def is_playing(self) -> bool:
        return self._playing

    async def load(self, timeout: float) -> None:
        self.load_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_times:
            self.fail_times -= 1
            raise LoadError(self.url, "media error")
        self._ready = True

    async def load_data(self, data: bytes) -> None:
        self.data_loads += 1
        if self.fail_times:
            self.fail_times -= 1
            raise DecodeError("media error")
        self._ready = True

    def play(self) -> None:
        self.play_calls += 1
        if self.blocked_plays:
            self.blocked_plays -= 1
            raise PlaybackBlockedError("play() request was interrupted")
        self._playing = True

    def pause(self) -> None:
        self.pause_calls += 1
        self._playing = False

    def rewind(self) -> None:
        self.rewind_calls += 1
        self._playing = False

    def release(self) -> None:
        self.release_calls += 1
        self._ready = False
        self._playing = False


class FakeHandleFactory:
    """Builds FakeHandles, remembering the latest one per URL."""

    def __init__(self, failing: Iterable[str] = (), fail_times: int = 0,
                 blocked_plays: int = 0, delay: float = 0.0):
        self.failing = set(failing)
        self.fail_times = fail_times
        self.blocked_plays = blocked_plays
        self.delay = delay
        self.handles: Dict[str, FakeHandle] = {}

    def __call__(self, url: str) -> FakeHandle:
        fail_times = 10 ** 6 if url in self.failing else self.fail_times
        handle = FakeHandle(url, fail_times=fail_times,
                            blocked_plays=self.blocked_plays, delay=self.delay)
        self.handles[url] = handle
        return handle


class RecordingSleep:
    """Backoff sleep that records delays without waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


def context_factory_for(context: Optional[FakeContext]):
    """Return a context factory yielding ``context``, or failing if None."""
    calls = []

    def factory():
        calls.append(1)
        if context is None:
            from phomshah.models.errors import ContextUnavailableError
            raise ContextUnavailableError("no output device")
        return context

    factory.calls = calls
    return factory


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def handles():
    return FakeHandleFactory()


@pytest.fixture
def notifications():
    return []


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_manager(fetcher, handles, notifications, sleep):
    """Factory building a manager wired to the fakes."""

    def _make(context: Optional[FakeContext] = None, **kwargs) -> AudioResourceManager:
        options = {
            'fetcher': fetcher,
            'handle_factory': handles,
            'context_factory': context_factory_for(context),
            'notifier': notifications.append,
            'sleep': sleep,
        }
        options.update(kwargs)
        return AudioResourceManager(**options)

    return _make
