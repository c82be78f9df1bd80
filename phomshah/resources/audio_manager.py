"""
Centralized audio resource manager: cache, load scheduling and playback.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set

from config.settings import Config
from phomshah.models.errors import DecodeError, LoadFailure, Notification, PlaybackBlockedError
from phomshah.models.resources import (
    BatchResult,
    CacheEntry,
    ContextState,
    DecodedAudio,
    LoadState,
)
from phomshah.resources.cache import AudioCache, HandleFactory
from phomshah.resources.context import SharedAudioContext
from phomshah.resources.media import MediaHandle
from phomshah.resources.scheduler import LoadQueue
from phomshah.utils.audio_utils import HttpFetcher
from phomshah.utils.logger import ProgressLogger, enable_debug_logging, log_exception
from phomshah.utils import notifications
from phomshah.utils.notifications import LoggingNotifier

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[bytes]]
ContextFactory = Callable[[], Any]
Notifier = Callable[[Notification], None]
ProgressCallback = Callable[[float], None]
Sleep = Callable[[float], Awaitable[Any]]


class AudioResourceManager:
    """Shared audio loading and playback with caching, retries and a concurrency cap.

    One manager is created per application and handed to every caller. It
    owns the URL-keyed cache, the shared audio context (created after a user
    action), and the load queue.
    """

    def __init__(self,
                 fetcher: Optional[Fetcher] = None,
                 context_factory: Optional[ContextFactory] = None,
                 handle_factory: Optional[HandleFactory] = None,
                 notifier: Optional[Notifier] = None,
                 cache: Optional[AudioCache] = None,
                 max_concurrent: int = 3,
                 max_retries: int = 2,
                 retry_base_delay: float = 1.0,
                 initial_batch_size: int = 5,
                 ready_timeout: float = 15.0,
                 debug: bool = False,
                 sleep: Sleep = asyncio.sleep):
        """Initialize audio resource manager.

        Args:
            fetcher: Coroutine function returning the bytes behind a URL
            context_factory: Builds the shared audio context; may raise
            handle_factory: Builds the fallback handle for a URL
            notifier: Receives user-visible notifications
            cache: Cache to use instead of a new one
            max_concurrent: Maximum number of queued loads in flight
            max_retries: Retries after the first failed attempt
            retry_base_delay: First backoff delay in seconds, doubled per retry
            initial_batch_size: URLs loaded before the rest of a batch
            ready_timeout: Fallback handle readiness timeout in seconds
            debug: Enable verbose logging
            sleep: Coroutine function used for backoff delays
        """
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if initial_batch_size < 1:
            raise ValueError("initial_batch_size must be at least 1")

        self._fetcher = fetcher or HttpFetcher()
        self._context_factory = context_factory or SharedAudioContext
        if handle_factory is None:
            handle_factory = self._default_handle_factory
        self.cache = cache or AudioCache(handle_factory)
        self.notifier = notifier or LoggingNotifier()
        self.queue = LoadQueue(self.load_one, max_concurrent=max_concurrent)

        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.initial_batch_size = initial_batch_size
        self.ready_timeout = ready_timeout
        self._sleep = sleep

        self._context = None
        self._context_attempted = False
        self._context_failed = False
        self._background: Set[asyncio.Task] = set()

        self._stats = {
            'loads': 0,
            'cache_hits': 0,
            'cache_misses': 0,
            'retries': 0,
            'failures': 0,
            'decoded_loads': 0,
            'fallback_loads': 0,
            'plays': 0
        }

        if debug:
            enable_debug_logging()

        logger.info(f"AudioResourceManager initialized: max_concurrent={max_concurrent}, "
                    f"max_retries={max_retries}")

    @classmethod
    def from_config(cls, config: Config, notifier: Optional[Notifier] = None) -> "AudioResourceManager":
        """Build a manager with HTTP fetching, sounddevice and pygame backends."""
        config.validate()
        preload = config.preload
        playback = config.playback

        fetcher = HttpFetcher(timeout=preload.http_timeout)

        def context_factory():
            return SharedAudioContext(sample_rate=playback.sample_rate, device=playback.output_device)

        def handle_factory(url: str) -> MediaHandle:
            return MediaHandle(
                url,
                fetcher,
                mixer_frequency=playback.mixer_frequency,
                mixer_channels=playback.mixer_channels,
                mixer_buffer=playback.mixer_buffer
            )

        return cls(
            fetcher=fetcher,
            context_factory=context_factory,
            handle_factory=handle_factory,
            notifier=notifier,
            max_concurrent=preload.max_concurrent,
            max_retries=preload.max_retries,
            retry_base_delay=preload.retry_base_delay,
            initial_batch_size=preload.initial_batch_size,
            ready_timeout=preload.ready_timeout,
            debug=preload.debug
        )

    def _default_handle_factory(self, url: str) -> MediaHandle:
        return MediaHandle(url, self._fetcher)

    # ------------------------------------------------------------------
    # Shared audio context

    @property
    def context(self):
        return self._context

    def initialize_context(self) -> bool:
        """Create the shared audio context once.

        Call from a user-action handler. Returns False if the platform cannot
        provide one; playback then uses fallback handles only.
        """
        if self._context is not None:
            return True

        self._context_attempted = True
        try:
            context = self._context_factory()
        except Exception as e:
            logger.warning(f"Audio context unavailable, using fallback playback: {e}")
            if not self._context_failed:
                self.notifier(notifications.audio_not_supported())
            self._context_failed = True
            return False

        context.on_state_change(self._on_context_state_change)
        self._context = context
        self._context_failed = False
        logger.debug(f"Audio context initialized in state {context.state.value}")
        return True

    def _on_context_state_change(self, state: ContextState) -> None:
        logger.debug(f"Audio context state changed: {state.value}")

    def _usable_context(self):
        context = self._context
        if context is not None and context.state is ContextState.RUNNING:
            return context
        return None

    # ------------------------------------------------------------------
    # Loading

    async def load_one(self, url: str, priority: bool = False) -> bool:
        """Load one resource into the cache.

        Args:
            url: Resource URL
            priority: Proceed even if a load for ``url`` is already running

        Returns:
            True if the resource is cached and playable
        """
        if not url:
            logger.warning("Ignoring load request for empty URL")
            return False

        entry = self.cache.get_or_create(url)
        self._stats['loads'] += 1

        if entry.is_loaded:
            self._stats['cache_hits'] += 1
            logger.debug(f"Audio cache hit: {url}")
            return True

        if entry.is_loading and not priority:
            logger.debug(f"Already loading, skipping duplicate request: {url}")
            return False

        self._stats['cache_misses'] += 1
        entry.mark_loading()
        entry.retry_count = 0

        while True:
            try:
                await self._attempt_load(entry)
            except Exception as e:
                reason = str(e) or type(e).__name__
                if entry.retry_count < self.max_retries:
                    entry.retry_count += 1
                    self._stats['retries'] += 1
                    delay = self.retry_base_delay * 2 ** (entry.retry_count - 1)
                    logger.warning(f"Failed to load {url} ({reason}), "
                                   f"retry {entry.retry_count}/{self.max_retries} in {delay:.1f}s")
                    await self._sleep(delay)
                    continue

                self._stats['failures'] += 1
                entry.mark_errored(reason)
                logger.error(f"Giving up on {url} after {entry.retry_count + 1} attempt(s): {reason}")
                self._spawn(self._last_resort_load(entry))
                return False

            entry.mark_loaded()
            logger.debug(f"Audio loaded: {url}")
            return True

    async def _attempt_load(self, entry: CacheEntry) -> None:
        context = self._usable_context()
        if context is None:
            await entry.handle.load(timeout=self.ready_timeout)
            self._stats['fallback_loads'] += 1
            return

        # Fetch errors propagate to the retry loop
        data = await self._fetcher(entry.url)
        try:
            entry.decoded = await context.decode(data)
            self._stats['decoded_loads'] += 1
            return
        except DecodeError as e:
            logger.debug(f"Decoding failed for {entry.url}, trying fallback handle: {e}")

        await entry.handle.load_data(data)
        self._stats['fallback_loads'] += 1

    async def _last_resort_load(self, entry: CacheEntry) -> None:
        try:
            await entry.handle.load(timeout=self.ready_timeout)
        except Exception as e:
            logger.debug(f"Last-resort fallback failed for {entry.url}: {e}")
            return

        if entry.state is LoadState.ERRORED:
            entry.mark_loaded()
            logger.info(f"Recovered {entry.url} through fallback handle")

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_background(self) -> None:
        """Wait for fire-and-forget fallback loads to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def enqueue(self, url: str, priority: bool = False) -> bool:
        """Load ``url`` through the concurrency-limited queue.

        Priority requests jump to the front of the queue.
        """
        if not url:
            return False

        entry = self.cache.get(url)
        if entry is not None:
            if entry.is_loaded:
                self._stats['loads'] += 1
                self._stats['cache_hits'] += 1
                return True
            if entry.is_loading and not priority:
                return False

        return await self.queue.submit(url, priority)

    def _max_load_time(self) -> float:
        backoff = sum(self.retry_base_delay * 2 ** i for i in range(self.max_retries))
        return self.ready_timeout * (self.max_retries + 1) + backoff

    async def preload_batch(self,
                            urls: Iterable[str],
                            high_priority: bool = False,
                            on_progress: Optional[ProgressCallback] = None) -> BatchResult:
        """Warm the cache for a list of URLs.

        The first ``initial_batch_size`` URLs load with the requested
        priority; the rest follow at normal priority once those have settled.
        Individual failures are collected, never raised.
        """
        urls = list(urls)
        result = BatchResult(requested=urls)

        pending = []
        seen = set()
        for url in urls:
            if not url or url in seen:
                continue
            seen.add(url)
            if self.cache.is_loaded(url):
                result.skipped.append(url)
            else:
                pending.append(url)

        if not pending:
            self._report_progress(on_progress, 100.0)
            return result

        progress = ProgressLogger(logger, total=len(pending))

        async def track(url: str, priority: bool) -> None:
            ok = await self.enqueue(url, priority)
            if not ok:
                # Another caller may own the in-flight load
                entry = self.cache.get(url)
                if entry is not None and entry.is_loading:
                    await entry.wait_settled(self._max_load_time())
                    ok = entry.is_loaded

            if ok:
                result.loaded.append(url)
            else:
                result.failed.append(url)

            percentage = progress.update(message=f"{'loaded' if ok else 'failed'}: {url}")
            self._report_progress(on_progress, percentage)

        initial = pending[:self.initial_batch_size]
        remainder = pending[self.initial_batch_size:]

        await asyncio.gather(*(track(url, high_priority) for url in initial), return_exceptions=True)
        if remainder:
            await asyncio.gather(*(track(url, False) for url in remainder), return_exceptions=True)

        progress.complete(f"{result.success_count} loaded, {result.failure_count} failed")

        if result.failed:
            logger.error(f"Failed to load {result.failure_count} audio file(s): {result.failed}")
            self.notifier(notifications.batch_failures(result.failure_count, result.total))

        return result

    def _report_progress(self, on_progress: Optional[ProgressCallback], percentage: float) -> None:
        if on_progress is None:
            return
        try:
            on_progress(percentage)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")

    def failure_for(self, url: str) -> LoadFailure:
        """Describe why ``url`` is not loaded."""
        entry = self.cache.get(url)
        if entry is None:
            return LoadFailure(url=url, reason="Not in cache")
        return LoadFailure(
            url=url,
            reason=entry.last_error or entry.state.value,
            attempts=entry.retry_count + 1
        )

    # ------------------------------------------------------------------
    # Playback

    async def play(self, url: str) -> None:
        """Play ``url``, loading it first if needed. Never raises."""
        if not url:
            return

        try:
            await self._play(url)
        except Exception as e:
            log_exception(logger, e, f"Playback failed for {url}")
            self.notifier(notifications.audio_error())

    async def _play(self, url: str) -> None:
        if self._context is None and not self._context_attempted:
            self.initialize_context()

        context = self._context
        if context is not None and context.state is ContextState.SUSPENDED:
            try:
                await context.resume()
            except Exception as e:
                logger.warning(f"Could not resume audio context: {e}")

        entry = self.cache.get_or_create(url)
        if entry.is_loading:
            await entry.wait_settled(self._max_load_time())
        elif not entry.is_loaded:
            await self.load_one(url, priority=True)

        playable = entry.playable()
        usable = self._usable_context()
        if isinstance(playable, DecodedAudio) and usable is not None:
            source = usable.create_buffer_source(playable)
            source.start(0.0)
            self._stats['plays'] += 1
            logger.debug(f"Playing decoded buffer: {url}")
            return

        await self._play_handle(entry)

    async def _play_handle(self, entry: CacheEntry) -> None:
        handle = entry.handle
        if not handle.is_ready:
            await handle.load(timeout=self.ready_timeout)

        handle.rewind()
        try:
            handle.play()
        except PlaybackBlockedError as e:
            logger.info(f"Playback blocked for {entry.url} ({e}), retrying once")
            try:
                handle.play()
            except PlaybackBlockedError as e:
                logger.warning(f"Playback still blocked for {entry.url}: {e}")
                self.notifier(notifications.playback_blocked())
                return

        self._stats['plays'] += 1
        logger.debug(f"Playing fallback handle: {entry.url}")

    # ------------------------------------------------------------------
    # Cache management and lifecycle

    def is_cached(self, url: str) -> bool:
        return self.cache.is_loaded(url)

    def clear_cache(self, urls: Optional[Iterable[str]] = None) -> None:
        """Evict ``urls``, or everything when omitted."""
        if urls is None:
            self.cache.clear()
            logger.info("Audio cache cleared")
            return

        for url in urls:
            self.cache.remove(url)

    def pause_all(self) -> None:
        """Pause every fallback handle without evicting anything."""
        for entry in self.cache:
            try:
                entry.handle.pause()
            except Exception as e:
                logger.warning(f"Failed to pause {entry.url}: {e}")

    def on_visibility_change(self, hidden: bool) -> None:
        if hidden:
            logger.debug("Page hidden, pausing audio")
            self.pause_all()

    async def aclose(self) -> None:
        """Finish background work and release the context and HTTP client."""
        await self.wait_background()
        await self.queue.join()

        if self._context is not None:
            self._context.close()
            self._context = None

        aclose = getattr(self._fetcher, 'aclose', None)
        if aclose is not None:
            await aclose()

    def get_stats(self) -> Dict[str, Any]:
        """Get audio manager statistics."""
        hit_ratio = 0.0
        if self._stats['loads'] > 0:
            hit_ratio = self._stats['cache_hits'] / self._stats['loads']

        return {
            'cache': self.cache.get_stats(),
            **self._stats,
            'hit_ratio': hit_ratio,
            'context': self._context.state.value if self._context is not None else None,
            'queue': {
                'active': self.queue.active,
                'pending': self.queue.pending,
                'peak_active': self.queue.peak_active
            }
        }
