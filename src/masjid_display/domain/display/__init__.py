"""
Display domain module.

Provides the TV display core: content rotation, prayer-time overlay and the
controller that ties them to the backing APIs.
"""

from .controller import DisplayController
from .exceptions import DisplayError, NetworkError, ValidationError
from .models import (
    ContentItem,
    DisplayFrame,
    DisplayState,
    Playlist,
    PrayerSchedule,
    RotationState,
    UpcomingPrayer,
)
from .prayer import PrayerTimeOverlay, current_period, next_prayer
from .records import parse_content_records, parse_prayer_schedule
from .repository import ContentRepository
from .rotation import RotationEngine
from .scheduling import FetchGate, PeriodicTask, TimerGroup

__all__ = [
    # Models
    "ContentItem",
    "Playlist",
    "RotationState",
    "PrayerSchedule",
    "UpcomingPrayer",
    "DisplayState",
    "DisplayFrame",
    # Errors
    "DisplayError",
    "NetworkError",
    "ValidationError",
    # Boundary parsing
    "parse_content_records",
    "parse_prayer_schedule",
    # Components
    "ContentRepository",
    "RotationEngine",
    "PrayerTimeOverlay",
    "DisplayController",
    "current_period",
    "next_prayer",
    # Timers
    "PeriodicTask",
    "TimerGroup",
    "FetchGate",
]
