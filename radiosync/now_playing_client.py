"""
Now-playing API client.
Conditional polling of the per-station now-playing endpoint.
"""

import asyncio
import threading
import httpx
from typing import Optional, Dict, Any, Tuple, Union
from loguru import logger

from radiosync.delay import apply_delay, format_delay
from radiosync.models import (
    NOT_MODIFIED, NotModified, Region, RegionalSongData, SongData, Station
)
from radiosync.now_playing_parser import (
    error_placeholder, parse_song_from_now_playing, tuned_in_placeholder
)

DEFAULT_BASE_URL = "https://music.abcradio.net.au/api/v1/plays"

FetchResult = Union[RegionalSongData, NotModified]


class NowPlayingAPIError(Exception):
    """Now-playing API error."""
    def __init__(self, message: str, status_code: Optional[int]):
        super().__init__(message)
        self.status_code = status_code


class NowPlayingClient:
    """
    Now-playing API client.

    Keeps one ETag per (station, region) and sends it back as
    If-None-Match so unchanged payloads come back as 304 without a body.
    Failures never escape the public fetch methods; they become the
    Error placeholder song instead.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize now-playing client.

        Args:
            base_url: Base URL of the plays API, without trailing slash
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._etags: Dict[Tuple[Station, Region], str] = {}
        self._etags_lock = threading.Lock()

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "NowPlayingClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    def endpoint_for(self, station: Station) -> str:
        return f"{self.base_url}/{station.value}/now.json"

    def get_etag(self, station: Station, region: Region) -> Optional[str]:
        with self._etags_lock:
            return self._etags.get((station, region))

    def _store_etag(self, station: Station, region: Region, etag: Optional[str]):
        with self._etags_lock:
            if etag:
                self._etags[(station, region)] = etag
            else:
                self._etags.pop((station, region), None)

    def clear_etag(self, station: Station, region: Region):
        """Make the next fetch for a station and region unconditional."""
        with self._etags_lock:
            self._etags.pop((station, region), None)

    def clear_etags(self):
        """Make the next fetch for every key unconditional."""
        with self._etags_lock:
            self._etags.clear()

    def _get_headers(self, etag: Optional[str]) -> Dict[str, str]:
        headers = {
            "accept": "application/json",
            "accept-encoding": "gzip",
        }
        if etag:
            headers["if-none-match"] = etag
        return headers

    async def _fetch(
        self,
        station: Station,
        region: Region
    ) -> Union[Tuple[Any, Optional[str]], NotModified]:
        """
        Fetch the raw now-playing body for a station in a region's timezone.

        Returns:
            (decoded JSON body or None if undecodable, response ETag),
            or NOT_MODIFIED on 304

        Raises:
            NowPlayingAPIError: On transport errors or unexpected statuses
        """
        url = self.endpoint_for(station)
        params = {"tz": region.timezone}
        headers = self._get_headers(self.get_etag(station, region))

        logger.debug(f"Fetching now playing from {url} ({region.value} - {region.timezone})")

        try:
            response = await self.client.get(url, params=params, headers=headers)
        except httpx.RequestError as e:
            raise NowPlayingAPIError(f"Request error: {str(e) or type(e).__name__}", None)

        if response.status_code == 304:
            return NOT_MODIFIED

        if not response.is_success:
            raise NowPlayingAPIError(
                f"{response.status_code}: {response.reason_phrase or 'HTTP error'}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError:
            data = None

        return data, response.headers.get("etag")

    async def fetch_current_song(self, station: Station, region: Region) -> FetchResult:
        """
        Get the song currently playing on a station, as heard in a region.

        Args:
            station: Station to query
            region: Region whose timezone and delay apply

        Returns:
            RegionalSongData (a real song, the "Tuned into" placeholder or
            the Error placeholder), or NOT_MODIFIED if the payload is unchanged
        """
        try:
            result = await self._fetch(station, region)
        except NowPlayingAPIError as e:
            logger.warning(f"Error fetching now playing for {station.value}/{region.value}: {e}")
            return apply_delay(error_placeholder(), region)

        if result is NOT_MODIFIED:
            logger.debug(f"Now playing not modified for {station.value}/{region.value} (HTTP 304)")
            return NOT_MODIFIED

        data, etag = result
        self._store_etag(station, region, etag)

        song: SongData
        if data is None:
            logger.debug(f"Unreadable now-playing body for {station.value}/{region.value}")
            song = tuned_in_placeholder(station)
        else:
            song = parse_song_from_now_playing(data, station)

        regional = apply_delay(song, region)
        logger.debug(
            f"Now playing for {station.value}/{region.value}: "
            f"{regional.title} by {regional.artist} ({format_delay(regional.delay)})"
        )
        return regional

    async def fetch_all_regions(self, station: Station) -> Dict[Region, FetchResult]:
        """
        Fetch the current song for a station in every region concurrently.

        Args:
            station: Station to query

        Returns:
            Mapping of every region to its fetch result
        """
        regions = list(Region)
        results = await asyncio.gather(
            *(self.fetch_current_song(station, region) for region in regions)
        )
        return dict(zip(regions, results))
