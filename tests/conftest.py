from typing import Optional

import httpx
import pytest


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def now_playing_payload(
    title: str = "Song1",
    artist: str = "Artist1",
    album: str = "Album1",
    played_time: str = "2024-06-01T10:00:00+10:00",
    artist_artwork: Optional[str] = None,
    release_artwork: Optional[str] = None,
) -> dict:
    artist_entry = {"name": artist, "artwork": []}
    if artist_artwork:
        artist_entry["artwork"].append({
            "url": artist_artwork,
            "sizes": [{"url": artist_artwork + "?w=100", "width": 100, "height": 100}],
        })
    release_entry = {"title": album, "artwork": []}
    if release_artwork:
        release_entry["artwork"].append({"url": release_artwork, "sizes": []})

    return {
        "now": {
            "recording": {
                "title": title,
                "artists": [artist_entry],
                "releases": [release_entry],
            },
            "played_time": played_time,
        }
    }


class FakeNowPlayingApi:
    """
    Stand-in for the now-playing endpoint.

    Responses are queued per station slug; the last queued response is
    repeated once the queue runs dry. A queued exception is raised instead
    of responding.
    """

    def __init__(self):
        self.requests = []
        self._queues = {}

    def queue(self, station_slug: str, *responses):
        self._queues.setdefault(station_slug, []).extend(responses)

    def handler(self, request: httpx.Request):
        self.requests.append(request)
        station_slug = request.url.path.split("/")[-2]
        queue = self._queues.get(station_slug)
        if not queue:
            return httpx.Response(404)

        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def fresh(payload: dict, etag: Optional[str] = None):
    headers = {"ETag": etag} if etag else {}
    return lambda request: httpx.Response(200, json=payload, headers=headers)


def not_modified():
    return lambda request: httpx.Response(304)


def status(code: int):
    return lambda request: httpx.Response(code)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api():
    return FakeNowPlayingApi()
