from fastapi import FastAPI, HTTPException, Query, Request
from contextlib import asynccontextmanager
from loguru import logger
from radiosync.config import load_config, setup_logging
from radiosync.delay import format_delay
from radiosync.memory_cache import SongCache
from radiosync.models import NOT_MODIFIED, Region, Station
from radiosync.now_playing_client import NowPlayingClient
from radiosync.presence import LogPresencePublisher
from radiosync.settings_store import SettingsStore
from radiosync.sync import DisplayState, SyncOrchestrator


def build_orchestrator(config, transport=None) -> SyncOrchestrator:
    """
    Wire up client, cache and settings store from configuration.

    Args:
        config: AppConfig
        transport: Optional httpx transport for the now-playing client

    Returns:
        SyncOrchestrator (not started)
    """
    client = NowPlayingClient(config.base_url, config.request_timeout, transport=transport)
    cache = SongCache(
        song_ttl=config.song_cache_ttl,
        song_max_entries=config.song_cache_max_entries,
        artwork_ttl=config.artwork_cache_ttl,
        artwork_max_entries=config.artwork_cache_max_entries,
        sweep_interval=config.cache_sweep_interval,
    )
    return SyncOrchestrator(
        client,
        cache,
        poll_interval=config.poll_interval,
        artwork_max_width=config.artwork_max_width,
        settings_store=SettingsStore(config.settings_path),
        presence=LogPresencePublisher(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler - runs on startup and shutdown."""
    # Startup: configure logging and start syncing the last selection
    config = load_config()
    setup_logging(config.log_level, config.log_file)

    orchestrator = build_orchestrator(config)
    app.state.orchestrator = orchestrator
    await orchestrator.start()

    yield
    # Shutdown: stop polling and release the HTTP client
    await orchestrator.stop()
    await orchestrator.client.close()
    app.state.orchestrator = None


app = FastAPI(
    title="radiosync",
    description="Now-playing sync engine for a terminal radio player",
    version="0.1.0",
    lifespan=lifespan
)


def get_orchestrator(request: Request) -> SyncOrchestrator:
    """
    Get the running orchestrator.

    Raises:
        HTTPException: 503 if the service has not started
    """
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Now-playing sync is not running")
    return orchestrator


def _state_to_dict(state: DisplayState) -> dict:
    song = state.song
    return {
        "station": state.selection.station.value if state.selection else None,
        "region": state.selection.region.value if state.selection else None,
        "song": song.model_dump(mode="json") if song else None,
        "delay": format_delay(song.delay) if song else None,
        "has_artwork": state.artwork is not None,
    }


@app.get("/")
def read_root():
    return {
        "message": "radiosync API",
        "docs": "/docs",
        "endpoints": {
            "now_playing": "/now-playing",
            "select": "/select?station={station}&region={region}",
            "regions": "/stations/{station}/regions",
        }
    }


@app.get("/now-playing")
async def get_now_playing(request: Request) -> dict:
    """Get the song currently on display."""
    orchestrator = get_orchestrator(request)
    state = await orchestrator.snapshot()
    return {**_state_to_dict(state), "playing": orchestrator.is_playing}


@app.post("/select")
async def select_station(
    request: Request,
    station: Station = Query(..., description="Station slug"),
    region: Region = Query(..., description="Region code")
) -> dict:
    """
    Tune into a station and region.

    Returns:
        Display state after the first publish for the new selection
    """
    orchestrator = get_orchestrator(request)
    logger.info(f"Selecting {station.display_name} ({region.display_name})")
    state = await orchestrator.select(station, region)
    return _state_to_dict(state)


@app.post("/pause")
async def pause(request: Request) -> dict:
    get_orchestrator(request).pause()
    return {"playing": False}


@app.post("/resume")
async def resume(request: Request) -> dict:
    get_orchestrator(request).resume()
    return {"playing": True}


@app.post("/refresh")
async def refresh(request: Request) -> dict:
    """Force an unconditional fetch for the active selection."""
    state = await get_orchestrator(request).refresh()
    return _state_to_dict(state)


@app.post("/volume")
async def set_volume(
    request: Request,
    level: int = Query(..., ge=0, le=100, description="Volume percentage")
) -> dict:
    """Remember the playback volume."""
    get_orchestrator(request).set_volume(level)
    return {"volume": level}


@app.get("/stations/{station}/regions")
async def get_station_regions(request: Request, station: Station) -> dict:
    """
    Get what a station is playing in every region.

    Regions whose payload is unchanged since the last poll report
    not_modified instead of a song.
    """
    orchestrator = get_orchestrator(request)
    results = await orchestrator.fetch_all_regions(station)
    return {
        region.value: (
            {"not_modified": True} if result is NOT_MODIFIED
            else {**result.model_dump(mode="json"), "delay": format_delay(result.delay)}
        )
        for region, result in results.items()
    }
