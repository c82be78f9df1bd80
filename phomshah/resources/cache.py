"""
Process-wide cache of audio resources keyed by URL.
"""

from typing import Any, Callable, Dict, Iterator, Optional
import logging

from phomshah.models.resources import CacheEntry, FallbackHandle, LoadState

logger = logging.getLogger(__name__)

HandleFactory = Callable[[str], FallbackHandle]


class AudioCache:
    """Cache of audio resources with explicit eviction only.

    Entries live until ``remove`` or ``clear`` is called. One cache is
    created per application and shared by every caller.
    """

    def __init__(self, handle_factory: HandleFactory):
        """Initialize audio cache.

        Args:
            handle_factory: Builds the (unloaded) fallback handle for a new entry
        """
        self._handle_factory = handle_factory
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, url: str) -> Optional[CacheEntry]:
        """Get entry for ``url`` without creating one."""
        return self._entries.get(url)

    def get_or_create(self, url: str) -> CacheEntry:
        """Get entry for ``url``, creating an idle one if missing."""
        entry = self._entries.get(url)
        if entry is None:
            entry = CacheEntry(url=url, handle=self._handle_factory(url))
            self._entries[url] = entry
            logger.debug(f"Cache entry created: {url}")
        return entry

    def is_loaded(self, url: str) -> bool:
        entry = self._entries.get(url)
        return entry is not None and entry.is_loaded

    def remove(self, url: str) -> bool:
        """Evict entry, releasing its fallback handle."""
        entry = self._entries.pop(url, None)
        if entry is None:
            return False

        entry.handle.release()
        logger.debug(f"Cache evicted: {url}")
        return True

    def clear(self) -> None:
        """Evict all entries."""
        for entry in self._entries.values():
            entry.handle.release()
        self._entries.clear()
        logger.debug("Cache cleared")

    def count(self, state: LoadState) -> int:
        return sum(1 for entry in self._entries.values() if entry.state is state)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        decoded_bytes = sum(
            entry.decoded.nbytes for entry in self._entries.values()
            if entry.decoded is not None
        )
        return {
            'size': len(self._entries),
            'loaded': self.count(LoadState.LOADED),
            'loading': self.count(LoadState.LOADING),
            'errored': self.count(LoadState.ERRORED),
            'decoded_bytes': decoded_bytes,
            'keys': list(self._entries.keys())
        }

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        """Get number of entries in cache."""
        return len(self._entries)

    def __contains__(self, url: str) -> bool:
        """Check if url has an entry (in any state)."""
        return url in self._entries
