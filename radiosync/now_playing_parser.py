"""
Now-playing response parser.
Converts now-playing API responses to our Pydantic models.
"""

from typing import Any, Optional
from datetime import datetime, timezone
from pydantic import ValidationError
from .models import (
    NowPlayingResponse, Recording, SongData, SongStatus, Station
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(timestamp_str: Optional[str]) -> datetime:
    """Parse an ISO 8601 played time, falling back to now."""
    if not timestamp_str:
        return _now()
    try:
        parsed = datetime.fromisoformat(timestamp_str.replace('Z', '+00:00'))
    except ValueError:
        return _now()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _select_artwork_url(recording: Recording) -> Optional[str]:
    """
    Pick the artwork URL for a recording.

    The first artist's artwork is preferred over the first release's.
    """
    artist = recording.artists[0] if recording.artists else None
    if artist and artist.artwork and artist.artwork[0].url:
        return artist.artwork[0].url

    release = recording.releases[0] if recording.releases else None
    if release and release.artwork and release.artwork[0].url:
        return release.artwork[0].url

    return None


def tuned_in_placeholder(station: Station) -> SongData:
    """Song shown while nothing is playing on a station."""
    return SongData(
        title=f"Tuned into: {station.display_name}",
        artist="",
        album="",
        played_time=_now(),
        status=SongStatus.PLACEHOLDER
    )


def error_placeholder() -> SongData:
    """Song shown when the now-playing API could not be reached."""
    return SongData(
        title="Error",
        artist="Error",
        album="Error",
        played_time=_now(),
        status=SongStatus.ERROR
    )


def parse_song_from_now_playing(data: Any, station: Station) -> SongData:
    """
    Parse the currently playing song from a now-playing response.

    Args:
        data: Decoded JSON body of the now-playing endpoint
        station: Station the response belongs to

    Returns:
        SongData for the current recording, or the "Tuned into" placeholder
        when nothing is playing or the body has an unexpected shape
    """
    if not isinstance(data, dict):
        return tuned_in_placeholder(station)

    try:
        response = NowPlayingResponse.model_validate(data)
    except ValidationError:
        return tuned_in_placeholder(station)

    now = response.now
    if now is None or now.recording is None:
        return tuned_in_placeholder(station)

    recording = now.recording
    artist = recording.artists[0] if recording.artists else None
    release = recording.releases[0] if recording.releases else None

    return SongData(
        title=recording.title or "Unknown Title",
        artist=(artist.name if artist else None) or "Unknown Artist",
        album=(release.title if release else None) or "Unknown Album",
        played_time=_parse_timestamp(now.played_time),
        artwork_url=_select_artwork_url(recording)
    )
