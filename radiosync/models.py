"""
Now-playing data models.
Reference data (stations, regions), song values and API payload shapes.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field


class Station(str, Enum):
    """Broadcast services. The value is the API slug."""
    TRIPLE_J = "triplej"
    DOUBLE_J = "doublej"
    UNEARTHED = "unearthed"

    @property
    def display_name(self) -> str:
        return _STATION_NAMES[self]


_STATION_NAMES = {
    Station.TRIPLE_J: "Triple J",
    Station.DOUBLE_J: "Double J",
    Station.UNEARTHED: "Unearthed",
}


class Region(str, Enum):
    """Geographic broadcast zones."""
    NSW = "NSW"
    ACT = "ACT"
    VIC = "VIC"
    TAS = "TAS"
    QLD = "QLD"
    WA = "WA"
    SA = "SA"
    NT = "NT"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def full_name(self) -> str:
        return _REGION_INFO[self][0]

    @property
    def timezone(self) -> str:
        """IANA timezone identifier sent to the now-playing API."""
        return _REGION_INFO[self][1]

    @property
    def always_live(self) -> bool:
        """
        True for regions sharing the live feed's clock.

        QLD is live only outside daylight saving, so it is left to the
        delay calculator like the other delayed regions.
        """
        return _REGION_INFO[self][2]


_REGION_INFO = {
    Region.NSW: ("New South Wales", "Australia/Sydney", True),
    Region.ACT: ("Australian Capital Territory", "Australia/Canberra", True),
    Region.VIC: ("Victoria", "Australia/Melbourne", True),
    Region.TAS: ("Tasmania", "Australia/Hobart", True),
    Region.QLD: ("Queensland", "Australia/Brisbane", False),
    Region.WA: ("Western Australia", "Australia/Perth", False),
    Region.SA: ("South Australia", "Australia/Adelaide", False),
    Region.NT: ("Northern Territory", "Australia/Darwin", False),
}

LIVE_REGION = Region.NSW


class SongStatus(str, Enum):
    """What kind of value a song is."""
    PLAYING = "playing"
    PLACEHOLDER = "placeholder"
    ERROR = "error"


class SongData(BaseModel):
    """A song as reported by the now-playing API."""
    artist: str
    title: str
    album: str
    played_time: datetime = Field(alias="playedTime")
    artwork_url: Optional[str] = Field(default=None, alias="artworkUrl")
    status: SongStatus = SongStatus.PLAYING

    class Config:
        populate_by_name = True
        frozen = True

    def same_content(self, other: Optional["SongData"]) -> bool:
        """Artist, title and album match. Timing fields are ignored."""
        if other is None:
            return False
        return (
            self.artist == other.artist
            and self.title == other.title
            and self.album == other.album
        )


class RegionalSongData(SongData):
    """A song stamped with the delay of the region it is heard in."""
    region: Region
    delay: timedelta = timedelta(0)
    is_live: bool = Field(default=True, alias="isLive")
    original_air_time: datetime = Field(alias="originalAirTime")


class NotModified(Enum):
    """Returned by the fetcher when the upstream payload is unchanged."""
    NOT_MODIFIED = "not_modified"


NOT_MODIFIED = NotModified.NOT_MODIFIED


class Selection(BaseModel):
    """The station and region a listener has tuned into."""
    station: Station
    region: Region

    class Config:
        frozen = True


# Now-playing API payload

class ArtworkSize(BaseModel):
    """One rendition of an artwork image."""
    url: str
    width: int = 0
    height: int = 0


class ArtworkImage(BaseModel):
    """Artwork attached to an artist or release."""
    url: Optional[str] = None
    sizes: List[ArtworkSize] = Field(default_factory=list)


class Artist(BaseModel):
    """Recording artist."""
    name: Optional[str] = None
    artwork: List[ArtworkImage] = Field(default_factory=list)


class Release(BaseModel):
    """Release (album or single) a recording appears on."""
    title: Optional[str] = None
    artwork: List[ArtworkImage] = Field(default_factory=list)


class Recording(BaseModel):
    """A played recording."""
    title: Optional[str] = None
    artists: List[Artist] = Field(default_factory=list)
    releases: List[Release] = Field(default_factory=list)


class NowPlayingItem(BaseModel):
    """The currently playing item."""
    recording: Optional[Recording] = None
    played_time: Optional[str] = None


class NowPlayingResponse(BaseModel):
    """Body of the now-playing endpoint."""
    now: Optional[NowPlayingItem] = None
