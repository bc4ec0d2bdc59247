"""Core infrastructure layer - no display logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML + .env)
- Logging setup (Loguru)
"""

from .config import (
    ApiConfig,
    Config,
    LoggingConfig,
    PrayerConfig,
    RefreshConfig,
    RotationConfig,
    create_default_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    load_config,
)
from .output import get_log_file_path, setup_from_config, setup_loguru

__all__ = [
    "ApiConfig",
    "Config",
    "LoggingConfig",
    "PrayerConfig",
    "RefreshConfig",
    "RotationConfig",
    "create_default_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "get_log_file_path",
    "load_config",
    "setup_from_config",
    "setup_loguru",
]
