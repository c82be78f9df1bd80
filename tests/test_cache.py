"""
Test cases for the audio cache and cache entry model.
"""

import asyncio

import numpy as np
import pytest

from conftest import FakeHandle, FakeHandleFactory
from phomshah.models.resources import BatchResult, CacheEntry, DecodedAudio, LoadState
from phomshah.resources.cache import AudioCache


@pytest.fixture
def cache(handles):
    return AudioCache(handles)


class TestAudioCache:
    """Test cases for AudioCache."""

    def test_get_or_create_builds_idle_entry(self, cache, handles):
        entry = cache.get_or_create("a.mp3")

        assert entry.state is LoadState.IDLE
        assert entry.handle is handles.handles["a.mp3"]
        assert not entry.handle.is_ready
        assert cache.get_or_create("a.mp3") is entry
        assert len(cache) == 1
        assert "a.mp3" in cache

    def test_get_does_not_create(self, cache):
        assert cache.get("missing.mp3") is None
        assert len(cache) == 0

    def test_is_loaded_only_for_loaded_entries(self, cache):
        entry = cache.get_or_create("a.mp3")
        assert not cache.is_loaded("a.mp3")

        entry.mark_loading()
        assert not cache.is_loaded("a.mp3")

        entry.mark_loaded()
        assert cache.is_loaded("a.mp3")

    def test_remove_releases_handle(self, cache, handles):
        cache.get_or_create("a.mp3")

        assert cache.remove("a.mp3") is True
        assert cache.remove("a.mp3") is False
        assert handles.handles["a.mp3"].release_calls == 1
        assert "a.mp3" not in cache

    def test_clear_releases_every_handle(self, cache, handles):
        for name in ("a.mp3", "b.mp3", "c.mp3"):
            cache.get_or_create(name)

        cache.clear()

        assert len(cache) == 0
        assert all(handle.release_calls == 1 for handle in handles.handles.values())

    def test_stats(self, cache):
        loaded = cache.get_or_create("a.mp3")
        loaded.decoded = DecodedAudio(np.zeros((100, 2), dtype=np.float32), 44100)
        loaded.mark_loaded()
        cache.get_or_create("b.mp3").mark_errored("404")
        cache.get_or_create("c.mp3").mark_loading()

        stats = cache.get_stats()
        assert stats['size'] == 3
        assert stats['loaded'] == 1
        assert stats['errored'] == 1
        assert stats['loading'] == 1
        assert stats['decoded_bytes'] == 800
        assert stats['keys'] == ["a.mp3", "b.mp3", "c.mp3"]


class TestCacheEntry:
    """Test cases for CacheEntry."""

    def test_playable_prefers_decoded(self):
        handle = FakeHandle("a.mp3")
        entry = CacheEntry(url="a.mp3", handle=handle)
        assert entry.playable() is None

        handle._ready = True
        assert entry.playable() is handle

        entry.decoded = DecodedAudio(np.zeros((10, 1), dtype=np.float32), 8000)
        assert entry.playable() is entry.decoded

    def test_mark_errored_keeps_reason(self):
        entry = CacheEntry(url="a.mp3", handle=FakeHandle("a.mp3"))
        entry.mark_errored("HTTP 404")

        assert entry.state is LoadState.ERRORED
        assert entry.last_error == "HTTP 404"

        entry.mark_loaded()
        assert entry.last_error is None

    @pytest.mark.asyncio
    async def test_wait_settled(self):
        entry = CacheEntry(url="a.mp3", handle=FakeHandle("a.mp3"))
        assert await entry.wait_settled(0.01) is True

        entry.mark_loading()
        assert await entry.wait_settled(0.01) is False

        asyncio.get_running_loop().call_later(0.01, entry.mark_loaded)
        assert await entry.wait_settled(1.0) is True
        assert entry.is_loaded


class TestDecodedAudio:
    def test_properties(self):
        decoded = DecodedAudio(np.zeros((22050, 2), dtype=np.float32), 44100)

        assert decoded.frames == 22050
        assert decoded.channels == 2
        assert decoded.duration == pytest.approx(0.5)
        assert decoded.nbytes == 22050 * 2 * 4


def test_batch_result_counts():
    result = BatchResult(
        requested=["a", "b", "c", "d"],
        skipped=["a"],
        loaded=["b", "c"],
        failed=["d"]
    )

    assert result.total == 3
    assert result.success_count == 2
    assert result.failure_count == 1


def test_handle_factory_marks_failing_urls():
    factory = FakeHandleFactory(failing=["bad.mp3"])
    assert factory("bad.mp3").fail_times > 0
    assert factory("good.mp3").fail_times == 0
