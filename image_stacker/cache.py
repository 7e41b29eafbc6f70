"""Thread-safe LRU cache used for preview thumbnails.

The cache is implemented with ``collections.OrderedDict`` for efficient LRU
eviction and uses a lock so previews can be built from worker threads.

Previews are handed to the UI through :class:`PreviewHandle`, a scoped
resource bound to one working-set entry.  Revoking a handle drops its cached
thumbnail immediately; the working set revokes handles whenever an entry is
removed or the set is cleared, so thumbnails never outlive their entry.

The shared instance is created lazily; :func:`override_cache` swaps it out
for the duration of a ``with`` block.
"""

from __future__ import annotations

from collections import OrderedDict
from contextlib import contextmanager
from threading import RLock
from typing import Any, Callable, Iterator, Optional, Tuple

from . import config


class ImageCache:
    """A simple thread-safe LRU cache."""

    def __init__(self, max_size: int = 50, cleanup_threshold: float = 0.8) -> None:
        self.max_size = max_size
        self.cleanup_threshold = cleanup_threshold
        self._cache: "OrderedDict[str, Tuple[Any, dict]]" = OrderedDict()
        self._lock = RLock()

    def get(self, key: str) -> Tuple[Optional[Any], Optional[dict]]:
        """Retrieve *key* from the cache.

        Returns a tuple ``(image, metadata)`` or ``(None, None)`` if the
        key is absent.  Accessing an item moves it to the end to mark it as
        most recently used.
        """
        with self._lock:
            try:
                value = self._cache.pop(key)
            except KeyError:
                return None, None
            self._cache[key] = value  # re-insert as most recent
            return value

    def put(self, key: str, image: Any, metadata: dict) -> None:
        """Insert *key* into the cache.

        When the cache grows beyond ``max_size * cleanup_threshold`` a cleanup
        pass removes the least recently used entries.
        """
        with self._lock:
            if key in self._cache:
                self._cache.pop(key)
            elif len(self._cache) >= self.max_size * self.cleanup_threshold:
                self._cleanup()
            self._cache[key] = (image, metadata)

    def discard(self, key: str) -> bool:
        """Drop *key* if present and close its image. Returns whether it existed."""
        with self._lock:
            entry = self._cache.pop(key, None)
        if entry is None:
            return False
        image = entry[0]
        close = getattr(image, "close", None)
        if callable(close):
            close()
        return True

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def _cleanup(self) -> None:
        """Remove the oldest entries until the cache is at half capacity."""
        target = max(self.max_size // 2, 1)
        while len(self._cache) > target:
            self._cache.popitem(last=False)

    def clear(self) -> None:
        """Remove all cached entries."""
        with self._lock:
            self._cache.clear()


class PreviewHandle:
    """Scoped access to the preview thumbnail of one working-set entry.

    The thumbnail is built lazily by *loader* on first access and kept in
    *cache* under *key* until :meth:`revoke` is called.
    """

    def __init__(self, key: str, cache: ImageCache, loader: Callable[[], Any]) -> None:
        self.key = key
        self._cache = cache
        self._loader = loader
        self._revoked = False
        self._lock = RLock()

    @property
    def revoked(self) -> bool:
        return self._revoked

    def image(self) -> Any:
        """Return the thumbnail, building it on first use."""
        with self._lock:
            if self._revoked:
                raise ValueError(f"Preview handle {self.key} has been revoked")
            cached, _ = self._cache.get(self.key)
            if cached is not None:
                return cached
            thumbnail = self._loader()
            self._cache.put(self.key, thumbnail, {})
            return thumbnail

    def revoke(self) -> None:
        """Release the cached thumbnail. Safe to call more than once."""
        with self._lock:
            if self._revoked:
                return
            self._revoked = True
            self._cache.discard(self.key)

    def __repr__(self) -> str:  # pragma: no cover - trivial representation
        state = "revoked" if self._revoked else "live"
        return f"PreviewHandle({self.key!r}, {state})"


_cache_factory: Callable[[], ImageCache]
_cache_instance: Optional[ImageCache]
_cache_factory_lock = RLock()


def _default_cache_factory() -> ImageCache:
    """Return a new :class:`ImageCache` using the preview configuration."""

    return ImageCache(
        max_size=config.PREVIEW_CACHE_SIZE,
        cleanup_threshold=config.PREVIEW_CACHE_CLEANUP_THRESHOLD,
    )


_cache_factory = _default_cache_factory
_cache_instance = None


def get_cache() -> ImageCache:
    """Return the lazily constructed cache instance."""

    with _cache_factory_lock:
        global _cache_instance
        if _cache_instance is None:
            _cache_instance = _cache_factory()
        return _cache_instance


@contextmanager
def override_cache(cache: ImageCache) -> Iterator[ImageCache]:
    """Temporarily replace the active cache instance within a ``with`` block.

    Examples
    --------
    ``override_cache`` is primarily intended for tests which need a clean cache
    configuration:

    >>> with override_cache(ImageCache(max_size=1)) as temporary:
    ...     assert get_cache() is temporary
    ...
    >>> assert get_cache() is not temporary
    """

    with _cache_factory_lock:
        global _cache_factory, _cache_instance
        previous_factory = _cache_factory
        previous_instance = _cache_instance

        def _factory() -> ImageCache:
            return cache

        _cache_factory = _factory
        _cache_instance = cache
    try:
        yield cache
    finally:
        with _cache_factory_lock:
            _cache_factory = previous_factory
            _cache_instance = previous_instance


__all__ = [
    "ImageCache",
    "PreviewHandle",
    "get_cache",
    "override_cache",
]
