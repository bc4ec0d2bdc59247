"""
Masjid Display - headless runner

Mounts the display controller against the configured APIs and logs every
rendered frame. Useful on a kiosk box without a browser and for checking a
display's feed from a terminal.
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from masjid_display.core.config import Config, load_config
from masjid_display.core.output import setup_from_config
from masjid_display.domain.display import (
    ContentRepository,
    DisplayController,
    DisplayFrame,
    DisplayState,
)


def describe_frame(frame: DisplayFrame) -> str:
    """One-line summary of a frame for the log."""
    if frame.state is DisplayState.ERROR:
        return f"[error] {frame.error}"
    if frame.item is None:
        text = "[no active content]"
    else:
        text = f"[{frame.position + 1}/{frame.total}] {frame.item.title}"
        if frame.item.sponsorship_tier:
            text += f" ({frame.item.sponsorship_tier} sponsor)"
    if frame.is_paused:
        text += " [paused]"
    if frame.current_prayer:
        text += f" | now: {frame.current_prayer}"
    if frame.upcoming_prayer:
        minutes = int(frame.upcoming_prayer.remaining.total_seconds() // 60)
        text += f" | next: {frame.upcoming_prayer.name} in {minutes // 60}h{minutes % 60:02d}m"
    return text


def log_frame(frame: DisplayFrame) -> None:
    logger.info(describe_frame(frame))


async def run(config: Config, stop: Optional[asyncio.Event] = None) -> None:
    """Run the display until `stop` is set (or SIGINT/SIGTERM)."""
    stop = stop or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform / not the main thread
            pass

    repository = ContentRepository(config.api)
    controller = DisplayController(repository, config, on_render=log_frame)
    try:
        async with controller.running():
            await stop.wait()
    finally:
        repository.close()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="masjid-display",
        description="Run the masjid TV display core headless",
    )
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument("--zone", help="JAKIM prayer-time zone (overrides config)")
    parser.add_argument(
        "--verbose", action="store_true", help="Also log to the console at DEBUG"
    )
    args = parser.parse_args(argv)

    config = load_config(args.config)
    if args.zone:
        config.prayer.zone = args.zone
    if args.verbose:
        config.logging.level = "DEBUG"
        config.logging.console_output = True

    log_file = setup_from_config(config.logging)
    print(f"Masjid display running, logging to {log_file} (Ctrl-C to stop)")

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
