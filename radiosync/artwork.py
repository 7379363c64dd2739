"""
Artwork download with caching.

Turning the image into terminal output belongs to the presentation layer;
this module hands it the downloaded bytes and the width it asked for.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx
from loguru import logger

from radiosync.memory_cache import SongCache


@dataclass(frozen=True)
class Artwork:
    """Artwork image ready to be drawn at a given width."""
    url: str
    max_width: int
    content_type: str
    data: bytes


ArtworkRenderer = Callable[[Optional[str], int, SongCache], Awaitable[Optional[Artwork]]]


async def render_artwork(
    artwork_url: Optional[str],
    max_width: int,
    cache: Optional[SongCache] = None,
    client: Optional[httpx.AsyncClient] = None
) -> Optional[Artwork]:
    """
    Get renderable artwork for a URL.

    Args:
        artwork_url: URL of the artwork image
        max_width: Maximum width in terminal cells
        cache: Optional cache consulted before downloading
        client: Optional HTTP client (a short-lived one is created otherwise)

    Returns:
        Artwork, or None if there is no URL or the download failed
    """
    if not artwork_url:
        logger.debug("No artwork URL provided")
        return None

    if cache is not None:
        cached = cache.get_artwork(artwork_url, max_width)
        if cached is not None:
            return cached

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=10.0)

    try:
        logger.debug(f"Downloading artwork from: {artwork_url}")
        response = await client.get(artwork_url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Artwork download failed for {artwork_url}: {e}")
        return None
    finally:
        if owns_client:
            await client.aclose()

    artwork = Artwork(
        url=artwork_url,
        max_width=max_width,
        content_type=response.headers.get("content-type", "application/octet-stream"),
        data=response.content
    )

    if cache is not None:
        cache.put_artwork(artwork_url, max_width, artwork)

    return artwork
