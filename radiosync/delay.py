"""
Regional broadcast delay.

Delayed regions hear the live feed shifted by the difference between the
live region's wall clock and their own, so the delay is a pure function of
the region and the current instant.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from radiosync.models import LIVE_REGION, Region, RegionalSongData, SongData

_ZERO = timedelta(0)


def _zone(region: Region) -> ZoneInfo:
    return ZoneInfo(region.timezone)


def _utc_now(at: Optional[datetime]) -> datetime:
    if at is None:
        return datetime.now(timezone.utc)
    if at.tzinfo is None:
        return at.replace(tzinfo=timezone.utc)
    return at.astimezone(timezone.utc)


def delay_for(region: Region, at: Optional[datetime] = None) -> timedelta:
    """
    Get the broadcast delay for a region.

    Args:
        region: Target region
        at: Instant to evaluate at (defaults to now)

    Returns:
        Zero for always-live regions, otherwise the wall-clock difference
        between the live region and the target region, never negative.
    """
    if region.always_live:
        return _ZERO

    now = _utc_now(at)
    live_wall = now.astimezone(_zone(LIVE_REGION)).replace(tzinfo=None)
    region_wall = now.astimezone(_zone(region)).replace(tzinfo=None)

    delay = live_wall - region_wall
    return delay if delay > _ZERO else _ZERO


def is_daylight_saving(region: Region, at: Optional[datetime] = None) -> bool:
    """Check whether a region is observing daylight saving time."""
    dst = _utc_now(at).astimezone(_zone(region)).dst()
    return bool(dst)


def format_delay(delay: timedelta) -> str:
    """Format a delay as LIVE, -Xh Ym, -Xh, -Xm or -Xs."""
    if delay <= _ZERO:
        return "LIVE"

    total = int(delay.total_seconds())
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)

    if hours >= 1:
        return f"-{hours}h {minutes}m" if minutes > 0 else f"-{hours}h"
    if minutes >= 1:
        return f"-{minutes}m"
    return f"-{seconds}s"


def delay_display(region: Region, at: Optional[datetime] = None) -> str:
    return format_delay(delay_for(region, at))


def apply_delay(
    song: SongData,
    region: Region,
    at: Optional[datetime] = None
) -> RegionalSongData:
    """
    Stamp a song with a region's delay.

    Args:
        song: Song as reported by the live feed
        region: Region the song is heard in
        at: Instant the delay is evaluated at (defaults to now)

    Returns:
        RegionalSongData carrying every SongData field unchanged
    """
    delay = delay_for(region, at)
    is_live = delay == _ZERO

    return RegionalSongData(
        artist=song.artist,
        title=song.title,
        album=song.album,
        played_time=song.played_time,
        artwork_url=song.artwork_url,
        status=song.status,
        region=region,
        delay=delay,
        is_live=is_live,
        original_air_time=song.played_time if is_live else song.played_time + delay,
    )
