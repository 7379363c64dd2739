"""
Generic in-memory cache with TTL and size limit.
"""

import hashlib
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from loguru import logger

from radiosync.models import Region, RegionalSongData, Station

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A cached value with the time it was stored."""
    value: V
    cached_at: float
    key: str


class TTLCache(Generic[V]):
    """
    In-memory cache with automatic expiration.

    Entries older than the TTL are dropped when read. When the number of
    entries exceeds max_entries, the oldest inserted entries are evicted
    first. Safe to share between threads and tasks.
    """

    def __init__(
        self,
        name: str,
        ttl: float,
        max_entries: int,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize cache.

        Args:
            name: Label used in log messages
            ttl: Time-to-live in seconds
            max_entries: Maximum number of entries kept
            clock: Source of the current time in seconds
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.name = name
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_expired(self, entry: CacheEntry[V], now: float) -> bool:
        # An entry exactly TTL old is already expired
        return now - entry.cached_at >= self.ttl

    def get_entry(self, key: str) -> Optional[CacheEntry[V]]:
        """
        Get cached entry if not expired.

        Args:
            key: Cache key

        Returns:
            CacheEntry or None if not found/expired
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"{self.name} cache MISS for {key}")
                return None

            if self._is_expired(entry, self._clock()):
                # Delete expired entry
                del self._entries[key]
                logger.debug(f"{self.name} cache EXPIRED for {key}")
                return None

            logger.debug(f"{self.name} cache HIT for {key}")
            return entry

    def get(self, key: str) -> Optional[V]:
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: V) -> CacheEntry[V]:
        """
        Set cache value with current timestamp.

        Args:
            key: Cache key
            value: Value to cache

        Returns:
            The stored entry
        """
        with self._lock:
            now = self._clock()
            entry = CacheEntry(value=value, cached_at=now, key=key)

            # Re-inserting moves the key to the end of the insertion order
            self._entries.pop(key, None)
            self._entries[key] = entry

            if len(self._entries) > self.max_entries:
                self._remove_expired(now)
            evicted = 0
            while len(self._entries) > self.max_entries:
                oldest = min(self._entries.values(), key=lambda e: e.cached_at)
                del self._entries[oldest.key]
                evicted += 1

            if evicted:
                logger.debug(f"{self.name} cache limit enforced: evicted {evicted} entries")
            return entry

    def delete(self, key: str):
        """
        Delete a specific cache entry.

        Args:
            key: Cache key to delete
        """
        with self._lock:
            self._entries.pop(key, None)

    def _remove_expired(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear_expired(self) -> int:
        """
        Clear all expired cache entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            return self._remove_expired(self._clock())

    def clear_all(self):
        """Clear all cache entries."""
        with self._lock:
            self._entries.clear()


@dataclass(frozen=True)
class CachedSong:
    """A song together with the artwork rendered for it."""
    song: RegionalSongData
    artwork: Optional[Any] = None


def song_cache_key(station: Station, region: Region) -> str:
    return f"song_{station.value}_{region.value}"


def artwork_cache_key(artwork_url: str, max_width: int) -> str:
    # Hash the URL to keep special characters out of the key
    url_hash = hashlib.sha1(artwork_url.encode("utf-8")).hexdigest()[:16]
    return f"art_{url_hash}_{max_width}"


class SongCache:
    """
    Song and artwork caches with a shared, rate-limited sweep.

    Songs are keyed by station and region; rendered artwork by URL and
    rendering width.
    """

    def __init__(
        self,
        song_ttl: float = 300,
        song_max_entries: int = 24,
        artwork_ttl: float = 3600,
        artwork_max_entries: int = 20,
        sweep_interval: float = 300,
        clock: Callable[[], float] = time.monotonic
    ):
        self.songs: TTLCache[CachedSong] = TTLCache("Song", song_ttl, song_max_entries, clock)
        self.artwork: TTLCache[Any] = TTLCache("Artwork", artwork_ttl, artwork_max_entries, clock)
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._sweep_lock = threading.Lock()
        self._last_sweep: Optional[float] = None

    def get_song(self, station: Station, region: Region) -> Optional[CachedSong]:
        return self.songs.get(song_cache_key(station, region))

    def get_song_entry(self, station: Station, region: Region) -> Optional[CacheEntry[CachedSong]]:
        return self.songs.get_entry(song_cache_key(station, region))

    def put_song(
        self,
        station: Station,
        region: Region,
        song: RegionalSongData,
        artwork: Optional[Any] = None
    ) -> CacheEntry[CachedSong]:
        entry = self.songs.set(song_cache_key(station, region), CachedSong(song=song, artwork=artwork))
        logger.debug(f"Cached song for {station.value}/{region.value}: {song.title} by {song.artist}")
        return entry

    def get_artwork(self, artwork_url: Optional[str], max_width: int) -> Optional[Any]:
        if not artwork_url:
            return None
        return self.artwork.get(artwork_cache_key(artwork_url, max_width))

    def put_artwork(self, artwork_url: Optional[str], max_width: int, artwork: Any):
        if not artwork_url:
            return
        self.artwork.set(artwork_cache_key(artwork_url, max_width), artwork)

    def sweep(self) -> bool:
        """
        Remove expired entries from both caches.

        Runs at most once per sweep_interval; calls in between return
        without scanning.

        Returns:
            True if a sweep ran
        """
        with self._sweep_lock:
            now = self._clock()
            if self._last_sweep is not None and now - self._last_sweep < self.sweep_interval:
                return False
            self._last_sweep = now

        songs_removed = self.songs.clear_expired()
        artwork_removed = self.artwork.clear_expired()
        if songs_removed or artwork_removed:
            logger.debug(
                f"Cache sweep completed: {songs_removed} songs, {artwork_removed} artworks removed"
            )
        return True

    def clear_all(self):
        self.songs.clear_all()
        self.artwork.clear_all()
