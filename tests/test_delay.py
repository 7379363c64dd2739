from datetime import datetime, timedelta, timezone

import pytest

from radiosync.delay import (
    apply_delay, delay_display, delay_for, format_delay, is_daylight_saving
)
from radiosync.models import Region, SongData, SongStatus

# NSW on daylight time (AEDT, UTC+11)
SUMMER = datetime(2024, 1, 15, 2, 0, tzinfo=timezone.utc)
# NSW on standard time (AEST, UTC+10)
WINTER = datetime(2024, 7, 15, 2, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("region", [Region.NSW, Region.ACT, Region.VIC, Region.TAS])
@pytest.mark.parametrize("at", [SUMMER, WINTER, None])
def test_always_live_regions_have_zero_delay(region, at):
    assert delay_for(region, at) == timedelta(0)
    assert delay_display(region, at) == "LIVE"


@pytest.mark.parametrize(
    "region, at, expected",
    [
        (Region.WA, SUMMER, timedelta(hours=3)),
        (Region.WA, WINTER, timedelta(hours=2)),
        (Region.QLD, SUMMER, timedelta(hours=1)),
        (Region.QLD, WINTER, timedelta(0)),
        (Region.SA, SUMMER, timedelta(minutes=30)),
        (Region.SA, WINTER, timedelta(minutes=30)),
        (Region.NT, SUMMER, timedelta(hours=1, minutes=30)),
        (Region.NT, WINTER, timedelta(minutes=30)),
    ],
)
def test_delayed_regions_follow_timezone_offsets(region, at, expected):
    assert delay_for(region, at) == expected


def test_naive_instant_is_treated_as_utc():
    assert delay_for(Region.WA, SUMMER.replace(tzinfo=None)) == timedelta(hours=3)


def test_delay_display():
    assert delay_display(Region.NT, SUMMER) == "-1h 30m"
    assert delay_display(Region.WA, WINTER) == "-2h"
    assert delay_display(Region.SA, SUMMER) == "-30m"
    assert delay_display(Region.QLD, WINTER) == "LIVE"


@pytest.mark.parametrize(
    "delay, expected",
    [
        (timedelta(0), "LIVE"),
        (timedelta(seconds=-5), "LIVE"),
        (timedelta(seconds=45), "-45s"),
        (timedelta(minutes=5), "-5m"),
        (timedelta(minutes=5, seconds=20), "-5m"),
        (timedelta(hours=1), "-1h"),
        (timedelta(hours=2, minutes=15), "-2h 15m"),
    ],
)
def test_format_delay(delay, expected):
    assert format_delay(delay) == expected


def test_daylight_saving():
    assert is_daylight_saving(Region.NSW, SUMMER)
    assert not is_daylight_saving(Region.NSW, WINTER)
    assert not is_daylight_saving(Region.QLD, SUMMER)


def _song():
    return SongData(
        title="Song1",
        artist="Artist1",
        album="Album1",
        played_time=datetime(2024, 1, 15, 1, 0, tzinfo=timezone.utc),
        artwork_url="https://example.com/art.jpg",
    )


def test_apply_delay_live_region_keeps_air_time():
    song = _song()
    regional = apply_delay(song, Region.VIC, SUMMER)

    assert regional.title == song.title
    assert regional.artist == song.artist
    assert regional.album == song.album
    assert regional.artwork_url == song.artwork_url
    assert regional.status == SongStatus.PLAYING
    assert regional.region == Region.VIC
    assert regional.delay == timedelta(0)
    assert regional.is_live is True
    assert regional.original_air_time == song.played_time


def test_apply_delay_delayed_region_shifts_air_time():
    song = _song()
    regional = apply_delay(song, Region.WA, SUMMER)

    assert regional.delay == timedelta(hours=3)
    assert regional.is_live is False
    assert regional.played_time == song.played_time
    assert regional.original_air_time == song.played_time + timedelta(hours=3)
    assert format_delay(regional.delay) == "-3h"


def test_apply_delay_queensland_is_live_in_winter():
    regional = apply_delay(_song(), Region.QLD, WINTER)
    assert regional.is_live is True
    assert regional.original_air_time == regional.played_time
