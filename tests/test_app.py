import pytest
from fastapi.testclient import TestClient

from app import app, build_orchestrator
from conftest import fresh, now_playing_payload
from radiosync.config import AppConfig
from radiosync.models import Region, Station


@pytest.fixture
def client(api, tmp_path):
    config = AppConfig(base_url="https://api.test/plays", settings_path=tmp_path / "settings.json")
    app.state.orchestrator = build_orchestrator(config, transport=api.transport)
    # No context manager: the lifespan (and its network polling) is not started
    yield TestClient(app)
    app.state.orchestrator = None


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "radiosync API"


def test_now_playing_before_selection(client):
    response = client.get("/now-playing")

    assert response.status_code == 200
    assert response.json()["song"] is None
    assert response.json()["playing"] is True


def test_select_then_now_playing(client, api):
    api.queue("doublej", fresh(now_playing_payload(title="Song1", artist="Artist1")))

    response = client.post("/select", params={"station": "doublej", "region": "VIC"})
    assert response.status_code == 200
    body = response.json()
    assert body["station"] == "doublej"
    assert body["region"] == "VIC"
    assert body["song"]["title"] == "Song1"
    assert body["delay"] == "LIVE"

    assert client.get("/now-playing").json()["song"]["artist"] == "Artist1"


def test_select_rejects_unknown_region(client):
    response = client.post("/select", params={"station": "triplej", "region": "XX"})
    assert response.status_code == 422


def test_pause_and_resume(client):
    assert client.post("/pause").json() == {"playing": False}
    assert client.get("/now-playing").json()["playing"] is False
    assert client.post("/resume").json() == {"playing": True}


def test_volume(client, tmp_path):
    assert client.post("/volume", params={"level": 30}).json() == {"volume": 30}
    assert client.post("/volume", params={"level": 101}).status_code == 422
    assert '"lastVolume": 30' in (tmp_path / "settings.json").read_text()


def test_station_regions(client, api):
    api.queue("triplej", fresh(now_playing_payload(title="Song1")))

    response = client.get("/stations/triplej/regions")

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"NSW", "ACT", "VIC", "TAS", "QLD", "WA", "SA", "NT"}
    assert body["NSW"]["title"] == "Song1"
    assert body["NSW"]["delay"] == "LIVE"


def test_not_running_gives_503(client):
    app.state.orchestrator = None
    assert client.get("/now-playing").status_code == 503


def test_station_regions_fills_song_cache(client, api):
    api.queue("triplej", fresh(now_playing_payload(title="Song2"), etag='"v2"'))

    client.get("/stations/triplej/regions")

    cache = app.state.orchestrator.cache
    assert cache.get_song(Station.TRIPLE_J, Region.WA).song.title == "Song2"
    assert cache.get_song(Station.TRIPLE_J, Region.WA).song.region == Region.WA
