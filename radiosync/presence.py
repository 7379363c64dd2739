"""
Presence publishing boundary.
"""

from dataclasses import dataclass
from typing import Protocol

from loguru import logger


@dataclass(frozen=True)
class PresenceUpdate:
    """What a presence indicator shows for the current song."""
    title: str
    artist: str
    station_name: str
    region_name: str
    delay_display: str


class PresencePublisher(Protocol):
    def update(self, presence: PresenceUpdate) -> None:
        ...


class LogPresencePublisher:
    """Writes presence updates to the log."""

    def update(self, presence: PresenceUpdate) -> None:
        artist = f" by {presence.artist}" if presence.artist else ""
        logger.info(
            f"Now playing on {presence.station_name} ({presence.region_name} "
            f"{presence.delay_display}): {presence.title}{artist}"
        )
