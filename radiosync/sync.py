"""
Now-playing synchronization.

Serves the cached song for a selection immediately, then reconciles it
against the now-playing API in the background and republishes only when
the song actually changed.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

from loguru import logger

from radiosync.artwork import ArtworkRenderer, render_artwork
from radiosync.delay import format_delay
from radiosync.memory_cache import SongCache
from radiosync.models import (
    NOT_MODIFIED, Region, RegionalSongData, Selection, SongStatus, Station
)
from radiosync.now_playing_client import FetchResult, NowPlayingClient
from radiosync.presence import PresencePublisher, PresenceUpdate
from radiosync.settings_store import SettingsStore, UserSettings


@dataclass(frozen=True)
class DisplayState:
    """The song on screen, the artwork drawn next to it and whose they are."""
    selection: Optional[Selection] = None
    song: Optional[RegionalSongData] = None
    artwork: Optional[Any] = None


Listener = Callable[[DisplayState], None]


class SyncOrchestrator:
    """
    Keeps the display in sync with the now-playing API for one selection.

    The display state (selection, song and artwork together) and the active
    selection are guarded by a single lock. Results of fetches whose
    selection is no longer active never reach the display but are still
    cached for their own selection.
    """

    def __init__(
        self,
        client: NowPlayingClient,
        cache: SongCache,
        poll_interval: float = 10.0,
        artwork_max_width: int = 40,
        artwork_renderer: Optional[ArtworkRenderer] = None,
        settings_store: Optional[SettingsStore] = None,
        presence: Optional[PresencePublisher] = None
    ):
        """
        Initialize orchestrator.

        Args:
            client: Now-playing API client
            cache: Song and artwork cache
            poll_interval: Seconds between periodic reconciliations
            artwork_max_width: Width artwork is rendered at
            artwork_renderer: Coroutine function (url, width, cache) -> artwork
            settings_store: Where the last selection and volume are kept
            presence: Receives title/artist/station/region on every publish
        """
        self.client = client
        self.cache = cache
        self.poll_interval = poll_interval
        self.artwork_max_width = artwork_max_width
        self.artwork_renderer = artwork_renderer or render_artwork
        self.settings_store = settings_store
        self.presence = presence

        self._lock = asyncio.Lock()
        self._state = DisplayState()
        self._active: Optional[Selection] = None
        self._playing = True
        self._settings: Optional[UserSettings] = None
        self._listeners: List[Listener] = []
        self._background: Set[asyncio.Task] = set()
        self._tick_task: Optional[asyncio.Task] = None

    # State access

    async def snapshot(self) -> DisplayState:
        async with self._lock:
            return self._state

    async def active_selection(self) -> Optional[Selection]:
        async with self._lock:
            return self._active

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def settings(self) -> UserSettings:
        if self._settings is None:
            self._settings = self.settings_store.load() if self.settings_store else UserSettings()
        return self._settings

    def add_listener(self, listener: Listener):
        self._listeners.append(listener)

    # Selection

    async def activate(self, station: Station, region: Region) -> DisplayState:
        """
        Make a station and region the active selection.

        A cached song is published at once and reconciled in the background;
        without one the fetch happens before the first publish.

        Returns:
            Display state after the first publish
        """
        target = Selection(station=station, region=region)
        async with self._lock:
            self._active = target

        cached = self.cache.get_song(station, region)
        if cached is not None:
            logger.debug(f"Serving cached song for {station.value}/{region.value}")
            await self._publish(target, cached.song, cached.artwork, write_cache=False)
            self._spawn(self._reconcile(target))
        else:
            # Nothing to fall back on, so a 304 would leave the display blank
            self.client.clear_etag(station, region)
            await self._reconcile(target, force_publish=True)

        return await self.snapshot()

    async def select(self, station: Station, region: Region) -> DisplayState:
        """
        Switch to a station and region on the listener's request.

        Forces a fresh pull for the new selection and remembers it.
        """
        self.client.clear_etag(station, region)

        settings = self.settings
        settings.last_station = station
        settings.last_region = region
        self._save_settings()

        return await self.activate(station, region)

    def set_volume(self, volume: int):
        self.settings.last_volume = max(0, min(100, volume))
        self._save_settings()

    def _save_settings(self):
        if self.settings_store is None:
            return
        try:
            self.settings_store.save(self.settings)
        except OSError as e:
            logger.warning(f"Could not save settings: {e}")

    async def refresh(self) -> DisplayState:
        """Drop every stored ETag and reconcile the active selection now."""
        self.client.clear_etags()
        target = await self.active_selection()
        if target is not None:
            await self._reconcile(target)
        return await self.snapshot()

    # Play state

    def pause(self):
        self._playing = False
        logger.debug("Paused: periodic fetches suspended")

    def resume(self):
        self._playing = True
        logger.debug("Resumed: periodic fetches enabled")

    # Reconciliation

    async def _reconcile(self, target: Selection, force_publish: bool = False):
        """Fetch the current song for a selection and publish it if it changed."""
        result = await self.client.fetch_current_song(target.station, target.region)
        if result is NOT_MODIFIED:
            await self._recover_from_cache(target)
            return

        async with self._lock:
            if target != self._active:
                logger.debug(f"Discarding stale result for {target.station.value}/{target.region.value}")
                # The stored ETag now belongs to this result, so keep it reachable
                self._cache_result(target, result)
                return
            displayed = self._state.song if self._state.selection == target else None
            displayed_artwork = self._state.artwork

        if (
            not force_publish
            and displayed is not None
            and result.same_content(displayed)
            and result.status == displayed.status
        ):
            if result.status != SongStatus.ERROR and self.cache.get_song(target.station, target.region) is None:
                self.cache.put_song(target.station, target.region, result, displayed_artwork)
            return

        artwork = await self._render_artwork(result.artwork_url)
        await self._publish(target, result, artwork, write_cache=result.status != SongStatus.ERROR)

    def _cache_result(self, target: Selection, song: RegionalSongData):
        """Cache a fresh result without touching the display."""
        if song.status == SongStatus.ERROR:
            return
        cached = self.cache.get_song(target.station, target.region)
        artwork = None
        if cached is not None and cached.song.artwork_url == song.artwork_url:
            artwork = cached.artwork
        self.cache.put_song(target.station, target.region, song, artwork)

    async def _recover_from_cache(self, target: Selection):
        """
        Handle a 304 for a selection.

        The ETag matches whatever was last fetched for the key, which is the
        cached song. If the display shows something else (an error or an
        older song), the cached song is republished. With no cached song to
        fall back on, the ETag is dropped so the next fetch is unconditional.
        """
        async with self._lock:
            if target != self._active:
                return
            displayed = self._state.song if self._state.selection == target else None

        cached = self.cache.get_song(target.station, target.region)
        if cached is None:
            if displayed is None or displayed.status == SongStatus.ERROR:
                self.client.clear_etag(target.station, target.region)
            return

        if (
            displayed is not None
            and displayed.status != SongStatus.ERROR
            and cached.song.same_content(displayed)
            and cached.song.status == displayed.status
        ):
            return

        logger.debug(f"Republishing cached song for {target.station.value}/{target.region.value}")
        artwork = cached.artwork
        if artwork is None:
            artwork = await self._render_artwork(cached.song.artwork_url)
        await self._publish(target, cached.song, artwork, write_cache=False)

    async def fetch_all_regions(self, station: Station) -> Dict[Region, FetchResult]:
        """
        Fetch a station in every region and cache each fresh result.

        The display is left alone; an active selection picks up its cached
        song on the next 304.
        """
        results = await self.client.fetch_all_regions(station)
        for region, result in results.items():
            if result is not NOT_MODIFIED:
                self._cache_result(Selection(station=station, region=region), result)
        return results

    async def _render_artwork(self, artwork_url: Optional[str]) -> Optional[Any]:
        if not artwork_url:
            return None
        try:
            return await self.artwork_renderer(artwork_url, self.artwork_max_width, self.cache)
        except Exception:
            logger.exception(f"Artwork renderer failed for {artwork_url}")
            return None

    async def _publish(
        self,
        target: Selection,
        song: RegionalSongData,
        artwork: Optional[Any],
        write_cache: bool
    ) -> bool:
        async with self._lock:
            if target != self._active:
                logger.debug(f"Discarding stale result for {target.station.value}/{target.region.value}")
                return False
            if write_cache:
                self.cache.put_song(target.station, target.region, song, artwork)
            self._state = DisplayState(selection=target, song=song, artwork=artwork)
            state = self._state

        logger.debug(f"Publishing {song.title} by {song.artist} for {target.station.value}/{target.region.value}")
        self._notify(state)
        return True

    def _notify(self, state: DisplayState):
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Display listener failed")

        if self.presence is None or state.song is None or state.selection is None:
            return
        try:
            self.presence.update(PresenceUpdate(
                title=state.song.title,
                artist=state.song.artist,
                station_name=state.selection.station.display_name,
                region_name=state.selection.region.display_name,
                delay_display=format_delay(state.song.delay)
            ))
        except Exception:
            logger.exception("Presence update failed")

    def _spawn(self, coro):
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task):
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.opt(exception=task.exception()).error("Background reconciliation failed")

    # Periodic loop

    async def tick(self):
        """One periodic step: sweep the cache, then reconcile unless paused."""
        self.cache.sweep()
        if not self._playing:
            return
        target = await self.active_selection()
        if target is not None:
            await self._reconcile(target)

    async def _run(self):
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.tick()

    async def start(self, selection: Optional[Selection] = None) -> DisplayState:
        """
        Activate the initial selection and start periodic reconciliation.

        Args:
            selection: Selection to start with (defaults to the last one saved)
        """
        if selection is None:
            settings = self.settings
            selection = Selection(station=settings.last_station, region=settings.last_region)

        state = await self.activate(selection.station, selection.region)
        if self._tick_task is None:
            self._tick_task = asyncio.create_task(self._run())
        return state

    async def stop(self):
        """Stop periodic reconciliation and wait for in-flight fetches."""
        if self._tick_task is not None:
            self._tick_task.cancel()
            try:
                await self._tick_task
            except asyncio.CancelledError:
                pass
            self._tick_task = None

        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
