"""
Per-caller audio preloader built on a shared AudioResourceManager.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from phomshah.models.errors import LoadFailure
from phomshah.resources.audio_manager import AudioResourceManager
from phomshah.utils.logger import enable_debug_logging, log_exception

logger = logging.getLogger(__name__)


@dataclass
class AudioPreloaderOptions:
    """Callbacks and flags for one preloader."""
    on_load_start: Optional[Callable[[], None]] = None
    on_load_complete: Optional[Callable[[], None]] = None
    on_load_error: Optional[Callable[[List[LoadFailure]], None]] = None
    debug: bool = False


class AudioPreloader:
    """Observable preload/playback state for one caller (a page or screen).

    Preloaders share the manager's cache; tearing one down pauses audio but
    leaves the cache intact for other callers.
    """

    def __init__(self, manager: AudioResourceManager, options: Optional[AudioPreloaderOptions] = None):
        self.manager = manager
        self.options = options or AudioPreloaderOptions()
        self.is_loading = False
        self.progress = 0.0
        self.loaded_urls: List[str] = []

        if self.options.debug:
            enable_debug_logging()

    def _fire(self, name: str, *args) -> None:
        callback = getattr(self.options, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            log_exception(logger, e, f"{name} callback failed")

    def _remember(self, urls: Iterable[str]) -> None:
        for url in urls:
            if url not in self.loaded_urls:
                self.loaded_urls.append(url)

    def _set_progress(self, percentage: float) -> None:
        self.progress = percentage

    def initialize_audio_context(self) -> bool:
        return self.manager.initialize_context()

    async def preload_audio_batch(self, urls: List[str], high_priority: bool = False) -> None:
        """Preload ``urls`` into the shared cache, reporting through the callbacks."""
        if not urls:
            return

        self.is_loading = True
        self.progress = 0.0
        self._fire('on_load_start')

        try:
            result = await self.manager.preload_batch(
                urls,
                high_priority=high_priority,
                on_progress=self._set_progress
            )
            self._remember(result.skipped)
            self._remember(result.loaded)

            if result.failed:
                failures = [self.manager.failure_for(url) for url in result.failed]
                self._fire('on_load_error', failures)
        except Exception as e:
            log_exception(logger, e, "Error preloading audio")
            self._fire('on_load_error', [LoadFailure(url=url, reason=str(e)) for url in urls])
        finally:
            self.is_loading = False
            self.progress = 100.0
            self._fire('on_load_complete')

    async def play_audio(self, url: str) -> None:
        """Play ``url``, loading it on demand."""
        if not url:
            return

        needs_load = not self.manager.is_cached(url)
        if needs_load:
            self.is_loading = True
        try:
            await self.manager.play(url)
        finally:
            if needs_load:
                self.is_loading = False

        if needs_load and self.manager.is_cached(url):
            self._remember([url])

    def is_cached(self, url: str) -> bool:
        return self.manager.is_cached(url)

    def clear_cache(self, urls: Optional[List[str]] = None) -> None:
        self.manager.clear_cache(urls)
        if urls is None:
            self.loaded_urls = []
        else:
            self.loaded_urls = [url for url in self.loaded_urls if url not in urls]

    def teardown(self) -> None:
        """Pause audio for this caller going away; the shared cache is kept."""
        self.manager.pause_all()
