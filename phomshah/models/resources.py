"""
Data models for cached audio resources.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Union

import numpy as np


class LoadState(Enum):
    """Lifecycle of a cache entry."""
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


class ContextState(Enum):
    """State of the shared audio context."""
    RUNNING = "running"
    SUSPENDED = "suspended"
    CLOSED = "closed"


@dataclass
class DecodedAudio:
    """Audio samples decoded into memory.

    ``samples`` is a float32 array shaped ``(frames, channels)``.
    """
    samples: np.ndarray
    sample_rate: int

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1]) if self.samples.ndim > 1 else 1

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frames / self.sample_rate

    @property
    def nbytes(self) -> int:
        return int(self.samples.nbytes)


class FallbackHandle(Protocol):
    """Playable media handle used when decoded playback is unavailable."""

    url: str

    @property
    def is_ready(self) -> bool: ...

    @property
    def is_playing(self) -> bool: ...

    async def load(self, timeout: float) -> None: ...

    async def load_data(self, data: bytes) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def rewind(self) -> None: ...

    def release(self) -> None: ...


Playable = Union[DecodedAudio, FallbackHandle]


@dataclass
class CacheEntry:
    """Cached state for one resource URL."""
    url: str
    handle: FallbackHandle
    decoded: Optional[DecodedAudio] = None
    state: LoadState = LoadState.IDLE
    retry_count: int = 0
    last_error: Optional[str] = None
    _settled: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def is_loaded(self) -> bool:
        return self.state is LoadState.LOADED

    @property
    def is_loading(self) -> bool:
        return self.state is LoadState.LOADING

    def mark_loading(self) -> None:
        self.state = LoadState.LOADING
        self._settled.clear()

    def mark_loaded(self) -> None:
        self.state = LoadState.LOADED
        self.last_error = None
        self._settled.set()

    def mark_errored(self, reason: str) -> None:
        self.state = LoadState.ERRORED
        self.last_error = reason
        self._settled.set()

    async def wait_settled(self, timeout: float) -> bool:
        """Wait until the current load leaves the loading state."""
        if not self.is_loading:
            return True
        try:
            await asyncio.wait_for(self._settled.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def playable(self) -> Optional[Playable]:
        """Best available playback variant, decoded samples first."""
        if self.decoded is not None:
            return self.decoded
        if self.handle.is_ready:
            return self.handle
        return None


@dataclass
class LoadRequest:
    """Queued load waiting for a worker slot."""
    url: str
    priority: bool
    future: "asyncio.Future[bool]"


@dataclass
class BatchResult:
    """Outcome of a batch preload."""
    requested: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    loaded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.loaded) + len(self.failed)

    @property
    def success_count(self) -> int:
        return len(self.loaded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)
