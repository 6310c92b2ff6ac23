"""Configuration management for the podcastr player.

Loads and saves player settings as TOML. Only device and display
preferences live here; playback positions are never stored.
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import tomllib
import tomli_w

from podcastr.player.logging_config import get_logger

logger = get_logger(__name__)


def get_config_dir() -> Path:
    """Get the platform-specific config directory for podcastr.

    Returns:
        Path to the config directory
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "podcastr"
        return Path.home() / "AppData" / "Roaming" / "podcastr"

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "podcastr"
    return Path.home() / ".config" / "podcastr"


def get_config_path() -> Path:
    """Get the path to the config.toml file.

    Returns:
        Path to config.toml
    """
    return get_config_dir() / "config.toml"


@dataclass
class PlayerConfig:
    """Configuration for the podcastr player.

    Attributes:
        log_dir: Directory for session logs
        volume: Playback volume (0.0 to 1.0)
        buffer_ms: Audio buffer size in milliseconds
        position_interval_ms: How often the device reports its position
        seek_step_seconds: Seek distance for the left/right keys
        request_timeout_seconds: Timeout for fetching remote media
        shuffle_seed: Seed for shuffle picks (None for unseeded)
    """

    log_dir: Path = field(default_factory=lambda: get_config_dir() / "logs")
    volume: float = 0.8
    buffer_ms: int = 500
    position_interval_ms: int = 250
    seek_step_seconds: int = 15
    request_timeout_seconds: float = 30.0
    shuffle_seed: Optional[int] = None

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "PlayerConfig":
        """Load configuration from TOML file.

        Args:
            path: Path to config file (defaults to standard location)

        Returns:
            PlayerConfig instance with loaded values

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        if path is None:
            path = get_config_path()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        config = cls()
        player_data = data.get("player", {})
        if "log_dir" in player_data:
            config.log_dir = Path(player_data["log_dir"])
        config.volume = float(player_data.get("volume", config.volume))
        config.buffer_ms = int(player_data.get("buffer_ms", config.buffer_ms))
        config.position_interval_ms = int(player_data.get("position_interval_ms", config.position_interval_ms))
        config.seek_step_seconds = int(player_data.get("seek_step_seconds", config.seek_step_seconds))
        config.request_timeout_seconds = float(
            player_data.get("request_timeout_seconds", config.request_timeout_seconds)
        )
        config.shuffle_seed = player_data.get("shuffle_seed", config.shuffle_seed)

        return config

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to TOML file.

        Args:
            path: Path to save config (defaults to standard location)
        """
        if path is None:
            path = get_config_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        player_data = {
            "log_dir": str(self.log_dir),
            "volume": self.volume,
            "buffer_ms": self.buffer_ms,
            "position_interval_ms": self.position_interval_ms,
            "seek_step_seconds": self.seek_step_seconds,
            "request_timeout_seconds": self.request_timeout_seconds,
        }
        # TOML has no null
        if self.shuffle_seed is not None:
            player_data["shuffle_seed"] = self.shuffle_seed

        with open(path, "wb") as f:
            tomli_w.dump({"player": player_data}, f)


def ensure_config_exists() -> PlayerConfig:
    """Load the config file, creating a default one if needed.

    A corrupted file is replaced with defaults.

    Returns:
        PlayerConfig instance
    """
    config_path = get_config_path()

    if config_path.exists():
        try:
            return PlayerConfig.load(config_path)
        except (tomllib.TOMLDecodeError, ValueError, TypeError) as e:
            logger.warning(f"Replacing unreadable config {config_path}: {e}")

    config = PlayerConfig()
    config.save(config_path)
    return config
