"""
Logging setup using Loguru.
The display runs unattended, so the file sink is the primary record.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import LoggingConfig, get_data_dir

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}"


def get_log_file_path() -> Path:
    """Get the path to the log file."""
    return get_data_dir() / "masjid-display.log"


def setup_loguru(
    log_file: Optional[Path] = None,
    level: str = "INFO",
    console_output: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> Path:
    """
    Configure loguru with a rotating file sink and optional console sink.

    Args:
        log_file: Path to log file (default: ~/.local/share/masjid-display/masjid-display.log)
        level: Minimum level (DEBUG, INFO, WARNING, ERROR)
        console_output: Whether to also write to stderr
        max_file_size_mb: Size at which the file is rotated
        backup_count: Number of rotated files to keep

    Returns:
        The log file path in use
    """
    log_file = log_file or get_log_file_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Remove default handler
    logger.remove()

    logger.add(
        log_file,
        rotation=f"{max_file_size_mb} MB",
        retention=backup_count,
        level=level,
        format=LOG_FORMAT,
        enqueue=False,
    )

    if console_output:
        logger.add(sys.stderr, level=level, format="{level}: {message}")

    logger.info(f"Loguru initialized: {log_file} (level={level})")
    return log_file


def setup_from_config(config: LoggingConfig) -> Path:
    """Configure logging from the [logging] config section."""
    return setup_loguru(
        Path(config.log_file) if config.log_file else None,
        level=config.level,
        console_output=config.console_output,
        max_file_size_mb=config.max_file_size_mb,
        backup_count=config.backup_count,
    )
