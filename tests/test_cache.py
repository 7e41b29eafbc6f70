"""Tests for the preview cache and its scoped handles."""
from __future__ import annotations

import threading

import pytest
from PIL import Image

from image_stacker import config
from image_stacker.cache import (
    ImageCache,
    PreviewHandle,
    get_cache,
    override_cache,
)


def test_default_cache_uses_preview_settings() -> None:
    """The shared cache is built from the preview configuration."""

    cache = get_cache()
    assert cache is get_cache()
    assert cache.max_size == config.PREVIEW_CACHE_SIZE
    assert cache.cleanup_threshold == config.PREVIEW_CACHE_CLEANUP_THRESHOLD


def test_override_cache_temporarily_swaps_instance() -> None:
    """The override context should swap caches and restore the prior instance."""

    original = get_cache()
    replacement = ImageCache(max_size=2)
    with override_cache(replacement) as cache:
        assert get_cache() is replacement
        assert cache is replacement
    assert get_cache() is original


def test_lru_eviction_order() -> None:
    """Direct cache instances should evict the least recently used entry."""

    cache = ImageCache(max_size=2, cleanup_threshold=1.0)
    cache.put("a", "A", {})
    cache.put("b", "B", {})
    cache.get("a")
    cache.put("c", "C", {})

    assert cache.get("b") == (None, None)
    assert cache.get("a")[0] == "A"
    assert cache.get("c")[0] == "C"


def test_discard_closes_image() -> None:
    cache = ImageCache()
    image = Image.new("RGB", (2, 2))
    cache.put("k", image, {})

    assert cache.discard("k") is True
    assert cache.discard("k") is False
    assert "k" not in cache
    with pytest.raises(ValueError):
        image.getpixel((0, 0))


def test_preview_handle_builds_once_and_revokes() -> None:
    cache = ImageCache(max_size=10, cleanup_threshold=1.0)
    calls = []

    def loader():
        calls.append(1)
        return Image.new("RGB", (4, 4))

    handle = PreviewHandle("preview:1", cache, loader)
    first = handle.image()
    second = handle.image()

    assert first is second
    assert len(calls) == 1

    handle.revoke()
    handle.revoke()
    assert handle.revoked
    assert len(cache) == 0
    with pytest.raises(ValueError):
        handle.image()


def test_preview_handle_rebuilds_after_eviction() -> None:
    cache = ImageCache(max_size=2, cleanup_threshold=1.0)
    handle = PreviewHandle("p", cache, lambda: Image.new("RGB", (1, 1)))
    handle.image()
    cache.put("other", object(), {})
    cache.put("newest", object(), {})

    assert "p" not in cache
    assert handle.image() is not None


def test_thread_safety() -> None:
    """Cache operations across threads should remain bounded by ``max_size``."""

    cache = ImageCache(max_size=10)

    def worker(start: int) -> None:
        for i in range(start, start + 5):
            cache.put(str(i), i, {})
            cache.get(str(i))

    threads = [threading.Thread(target=worker, args=(n * 5,)) for n in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) <= cache.max_size
