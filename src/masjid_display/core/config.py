"""
Configuration management for the masjid display
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from loguru import logger


@dataclass
class ApiConfig:
    """Configuration for the content and prayer-time endpoints."""

    content_url: str = "http://localhost:3000/api/displays/default/content"
    prayer_url: str = "http://localhost:3000/api/displays/default/prayer-times"
    api_key: Optional[str] = None  # Sent as apikey header + bearer token
    timeout_seconds: float = 30.0
    max_content_items: Optional[int] = None  # None = let the server decide

    def validate(self) -> None:
        """Validate API configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if not self.content_url or not self.prayer_url:
            raise ValueError("content_url and prayer_url must both be set")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds}")
        if self.max_content_items is not None and self.max_content_items <= 0:
            raise ValueError(
                f"max_content_items must be positive, got {self.max_content_items}"
            )


@dataclass
class RotationConfig:
    """Configuration for the content carousel."""

    default_dwell_seconds: float = 10.0

    def validate(self) -> None:
        if self.default_dwell_seconds <= 0:
            raise ValueError(
                f"default_dwell_seconds must be positive, got {self.default_dwell_seconds}"
            )


@dataclass
class RefreshConfig:
    """Configuration for background refresh cadences."""

    content_refresh_seconds: float = 300.0  # 5 minutes
    prayer_refresh_seconds: float = 1800.0  # 30 minutes

    def validate(self) -> None:
        if self.content_refresh_seconds <= 0 or self.prayer_refresh_seconds <= 0:
            raise ValueError("refresh intervals must be positive")


@dataclass
class PrayerConfig:
    """Configuration for the prayer-time overlay."""

    zone: str = "SGR02"  # JAKIM zone code
    # Manual per-prayer offsets in minutes, e.g. {"maghrib": 2}
    adjustments: Dict[str, int] = field(default_factory=dict)


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/masjid-display/masjid-display.log)
    )
    max_file_size_mb: int = 10  # Maximum log file size before rotation
    backup_count: int = 5  # Number of backup files to keep
    console_output: bool = False  # Also output to console (for debugging)


@dataclass
class Config:
    """Main configuration object."""

    api: ApiConfig = field(default_factory=ApiConfig)
    rotation: RotationConfig = field(default_factory=RotationConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)
    prayer: PrayerConfig = field(default_factory=PrayerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "masjid-display"
    return Path.home() / ".config" / "masjid-display"


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Current working directory
    2. XDG_CONFIG_HOME/masjid-display (or ~/.config/masjid-display)
    """
    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "masjid-display"
    return Path.home() / ".local" / "share" / "masjid-display"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Masjid Display Configuration

[api]
# Endpoint returning the display's content records
content_url = "http://localhost:3000/api/displays/default/content"

# Endpoint returning the day's prayer schedule (?zone=<zone> is appended)
prayer_url = "http://localhost:3000/api/displays/default/prayer-times"

# Optional API key (or set MASJID_DISPLAY_API_KEY)
# api_key = "your-anon-key-here"

# HTTP timeout in seconds
timeout_seconds = 30

# Maximum content items to request (omit to let the server decide)
# max_content_items = 20

[rotation]
# Seconds each item stays on screen unless it sets its own duration
default_dwell_seconds = 10

[refresh]
# Background content re-fetch interval in seconds
content_refresh_seconds = 300

# Prayer schedule refresh interval in seconds
prayer_refresh_seconds = 1800

[prayer]
# JAKIM prayer-time zone
zone = "SGR02"

# Manual adjustments in minutes per prayer
[prayer.adjustments]
# maghrib = 2

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/masjid-display/masjid-display.log)
# log_file = "/path/to/custom/masjid-display.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of backup log files to keep
backup_count = 5

# Also output logs to console (useful for debugging)
console_output = false
""".strip()


def _parse_api(data: dict, default: ApiConfig) -> ApiConfig:
    api = ApiConfig(
        content_url=data.get("content_url", default.content_url),
        prayer_url=data.get("prayer_url", default.prayer_url),
        api_key=data.get("api_key", default.api_key),
        timeout_seconds=float(data.get("timeout_seconds", default.timeout_seconds)),
        max_content_items=data.get("max_content_items", default.max_content_items),
    )
    api.validate()
    return api


def _parse_rotation(data: dict, default: RotationConfig) -> RotationConfig:
    rotation = RotationConfig(
        default_dwell_seconds=float(
            data.get("default_dwell_seconds", default.default_dwell_seconds)
        ),
    )
    rotation.validate()
    return rotation


def _parse_refresh(data: dict, default: RefreshConfig) -> RefreshConfig:
    refresh = RefreshConfig(
        content_refresh_seconds=float(
            data.get("content_refresh_seconds", default.content_refresh_seconds)
        ),
        prayer_refresh_seconds=float(
            data.get("prayer_refresh_seconds", default.prayer_refresh_seconds)
        ),
    )
    refresh.validate()
    return refresh


def _parse_prayer(data: dict, default: PrayerConfig) -> PrayerConfig:
    adjustments = data.get("adjustments", default.adjustments)
    return PrayerConfig(
        zone=data.get("zone", default.zone),
        adjustments={str(name).lower(): int(mins) for name, mins in adjustments.items()},
    )


def _parse_logging(data: dict, default: LoggingConfig) -> LoggingConfig:
    log_file = data.get("log_file")
    if log_file:
        log_file = str(Path(log_file).expanduser())
    return LoggingConfig(
        level=data.get("level", default.level).upper(),
        log_file=log_file,
        max_file_size_mb=data.get("max_file_size_mb", default.max_file_size_mb),
        backup_count=data.get("backup_count", default.backup_count),
        console_output=data.get("console_output", default.console_output),
    )


_SECTION_PARSERS = {
    "api": _parse_api,
    "rotation": _parse_rotation,
    "refresh": _parse_refresh,
    "prayer": _parse_prayer,
    "logging": _parse_logging,
}


def _apply_env_overrides(config: Config) -> None:
    """Override endpoint, key and zone settings from the environment."""
    content_url = os.environ.get("MASJID_DISPLAY_CONTENT_URL")
    prayer_url = os.environ.get("MASJID_DISPLAY_PRAYER_URL")
    api_key = os.environ.get("MASJID_DISPLAY_API_KEY")
    zone = os.environ.get("MASJID_DISPLAY_ZONE")

    if content_url:
        config.api.content_url = content_url
    if prayer_url:
        config.api.prayer_url = prayer_url
    if api_key:
        config.api.api_key = api_key
    if zone:
        config.prayer.zone = zone


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - MASJID_DISPLAY_CONTENT_URL
    - MASJID_DISPLAY_PRAYER_URL
    - MASJID_DISPLAY_API_KEY
    - MASJID_DISPLAY_ZONE

    Args:
        config_path: Explicit config file (default: see get_config_path)

    Returns:
        Loaded configuration. A section with invalid values falls back to
        its defaults.
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = config_path or get_config_path()
    config = Config()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        logger.info(f"Created default configuration at: {config_path}")
        _apply_env_overrides(config)
        return config

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Error loading configuration from {config_path}: {e}")
        logger.warning("Using default configuration.")
        _apply_env_overrides(config)
        return config

    for section, parser in _SECTION_PARSERS.items():
        if section not in toml_data:
            continue
        default = getattr(config, section)
        try:
            setattr(config, section, parser(toml_data[section], default))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Invalid [{section}] configuration: {e}")
            logger.warning(f"Using default [{section}] configuration.")

    _apply_env_overrides(config)
    return config
