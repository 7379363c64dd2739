"""
Settings store for the last tuned station, region and volume.
Reads and writes a JSON file under the user's config directory.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from radiosync.models import Region, Station


class UserSettings(BaseModel):
    """Settings remembered between runs."""
    last_station: Station = Field(default=Station.TRIPLE_J, alias="lastStation")
    last_region: Region = Field(default=Region.NSW, alias="lastRegion")
    last_volume: int = Field(default=100, alias="lastVolume")
    last_updated: datetime = Field(default_factory=datetime.now, alias="lastUpdated")

    class Config:
        populate_by_name = True

    @field_validator("last_volume")
    @classmethod
    def _clamp_volume(cls, value: int) -> int:
        return max(0, min(100, value))


def default_settings_path() -> Path:
    """Get the settings file path under XDG_CONFIG_HOME (or ~/.config)."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / "radiosync" / "settings.json"


class SettingsStore:
    """
    Loads and saves UserSettings.

    A missing or unreadable file yields default settings; saves go through
    a temporary file so a crash never leaves a half-written file behind.
    """

    def __init__(self, settings_path: Optional[Path] = None):
        """
        Initialize settings store.

        Args:
            settings_path: Path to the settings JSON file
        """
        self.settings_path = Path(settings_path) if settings_path else default_settings_path()

    def load(self) -> UserSettings:
        """
        Load settings from disk.

        Returns:
            Stored settings, or defaults if the file is missing or invalid
        """
        if not self.settings_path.exists():
            logger.debug(f"Settings file not found at {self.settings_path}, using defaults")
            return UserSettings()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                settings = UserSettings.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Invalid settings file {self.settings_path}: {e}; using defaults")
            return UserSettings()

        logger.debug(
            f"Settings loaded: station={settings.last_station.value}, "
            f"region={settings.last_region.value}, volume={settings.last_volume}%"
        )
        return settings

    def save(self, settings: UserSettings):
        """
        Save settings to disk.

        Args:
            settings: Settings to persist
        """
        settings.last_updated = datetime.now()
        self.settings_path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = self.settings_path.with_suffix(self.settings_path.suffix + ".tmp")
        with open(temp_path, 'w', encoding='utf-8') as f:
            f.write(settings.model_dump_json(by_alias=True, indent=2))
        os.replace(temp_path, self.settings_path)

        logger.debug(
            f"Settings saved: station={settings.last_station.value}, "
            f"region={settings.last_region.value}, volume={settings.last_volume}%"
        )
