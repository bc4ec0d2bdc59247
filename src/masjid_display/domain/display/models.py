"""
Display domain models.

Contains data structures for content items, playlists, rotation state
and prayer schedules.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional


@dataclass(frozen=True)
class ContentItem:
    """Represents one piece of display content (poster, video, notice).

    Created by the content-management side and read-only here.
    sponsorship_amount and sponsorship_tier only drive the badge; they
    never affect ordering or dwell time.
    """

    id: str
    title: str
    media_ref: str = ""  # Image URL or video reference
    sponsorship_amount: float = 0.0
    is_active: bool = True
    display_order: int = 0
    duration_seconds: Optional[int] = None  # Dwell override, None = default
    sponsorship_tier: Optional[str] = None  # 'bronze' | 'silver' | 'gold' | 'platinum'
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def is_showing(self, now: datetime) -> bool:
        """Check whether `now` falls inside the item's display window."""
        if self.start_date is not None and now < _align(self.start_date, now):
            return False
        if self.end_date is not None and now > _align(self.end_date, now):
            return False
        return True

    def is_eligible(self, now: Optional[datetime] = None) -> bool:
        """Active and, when a clock is given, inside its display window."""
        if not self.is_active:
            return False
        return now is None or self.is_showing(now)


def _align(boundary: datetime, now: datetime) -> datetime:
    """Drop or assume tz info so naive and aware datetimes compare."""
    if boundary.tzinfo is None and now.tzinfo is not None:
        return boundary.replace(tzinfo=now.tzinfo)
    if boundary.tzinfo is not None and now.tzinfo is None:
        return boundary.astimezone().replace(tzinfo=None)
    return boundary


@dataclass(frozen=True)
class Playlist:
    """Ordered, deduplicated sequence of eligible content items.

    Always build through `from_items`; a Playlist is replaced wholesale on
    every fetch and never mutated.
    """

    items: tuple[ContentItem, ...] = ()

    @classmethod
    def from_items(
        cls, items: Iterable[ContentItem], now: Optional[datetime] = None
    ) -> "Playlist":
        """Filter to eligible items, dedupe by id, sort by (display_order, id).

        Args:
            items: Items in any order, possibly including inactive ones
            now: When given, items outside their display window are dropped

        Returns:
            New Playlist
        """
        seen: set[str] = set()
        eligible: list[ContentItem] = []
        for item in items:
            if item.id in seen or not item.is_eligible(now):
                continue
            seen.add(item.id)
            eligible.append(item)

        eligible.sort(key=lambda item: (item.display_order, item.id))
        return cls(items=tuple(eligible))

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(item.id for item in self.items)

    @property
    def id_set(self) -> frozenset[str]:
        return frozenset(self.ids)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[ContentItem]:
        return iter(self.items)

    def __getitem__(self, index: int) -> ContentItem:
        return self.items[index]


@dataclass
class RotationState:
    """Position of the carousel within a specific playlist version.

    current_index is only meaningful against the playlist whose version
    matches playlist_version.
    """

    current_index: int = 0
    playlist_version: int = 0
    is_paused: bool = False


@dataclass(frozen=True)
class PrayerSchedule:
    """One day's prayer times for a JAKIM zone.

    Immutable snapshot: `times` is exposed as a read-only mapping.
    """

    zone_id: str
    date: date
    times: Mapping[str, time] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "times", MappingProxyType(dict(self.times)))

    def ordered(self) -> list[tuple[str, time]]:
        """Prayer entries in chronological order."""
        return sorted(self.times.items(), key=lambda entry: entry[1])

    def adjusted(self, minutes_by_prayer: Mapping[str, int]) -> "PrayerSchedule":
        """Return a copy with manual per-prayer minute offsets applied.

        Args:
            minutes_by_prayer: Offset in minutes keyed by prayer name;
                names not in the schedule are ignored. A shifted time is
                clamped to 00:00-23:59 of the schedule's own day.

        Returns:
            New PrayerSchedule (self when there is nothing to adjust)
        """
        if not any(minutes_by_prayer.get(name) for name in self.times):
            return self

        shifted = {}
        for name, at in self.times.items():
            offset = minutes_by_prayer.get(name, 0)
            moment = datetime.combine(self.date, at) + timedelta(minutes=offset)
            if moment.date() > self.date:
                shifted[name] = time(23, 59)
            elif moment.date() < self.date:
                shifted[name] = time(0, 0)
            else:
                shifted[name] = moment.time()
        return PrayerSchedule(zone_id=self.zone_id, date=self.date, times=shifted)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrayerSchedule):
            return NotImplemented
        return (
            self.zone_id == other.zone_id
            and self.date == other.date
            and dict(self.times) == dict(other.times)
        )

    def __hash__(self) -> int:
        return hash((self.zone_id, self.date, tuple(sorted(self.times.items()))))


@dataclass(frozen=True)
class UpcomingPrayer:
    """Next prayer and the time left until it."""

    name: str
    at: datetime
    remaining: timedelta


class DisplayState(Enum):
    """Lifecycle states of the display controller."""

    IDLE = "idle"
    LOADING = "loading"
    DISPLAYING = "displaying"
    ERROR = "error"
    UNMOUNTED = "unmounted"


@dataclass(frozen=True)
class DisplayFrame:
    """Snapshot of everything a renderer needs to draw one frame."""

    state: DisplayState
    item: Optional[ContentItem]
    position: int  # Zero-based index of `item`
    total: int
    schedule: Optional[PrayerSchedule]
    current_prayer: Optional[str]
    upcoming_prayer: Optional[UpcomingPrayer]
    is_paused: bool = False
    error: Optional[str] = None
