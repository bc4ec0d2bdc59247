"""
Prayer-time overlay.

Works out the current and next prayer from a day's schedule and keeps the
last good schedule on screen when a refresh fails.
"""

from datetime import date, datetime, time, timedelta
from typing import Mapping, Optional, Union

from loguru import logger

from .exceptions import DisplayError
from .models import PrayerSchedule, UpcomingPrayer
from .repository import ContentRepository


def current_period(
    schedule: PrayerSchedule, now: Union[datetime, time]
) -> Optional[str]:
    """Name of the prayer window `now` falls in.

    Scans the schedule chronologically and returns the last prayer whose
    time is at or before `now`.

    Args:
        schedule: Day's prayer schedule
        now: Current datetime or time of day

    Returns:
        Prayer name, or None if `now` is before the first prayer

    Examples:
        times = {subuh 05:45, zohor 13:15, asar 16:30, maghrib 19:20, isyak 20:35}
        current_period(schedule, time(14, 0))   # "zohor"
        current_period(schedule, time(5, 0))    # None
        current_period(schedule, time(23, 0))   # "isyak"
    """
    clock = now.time() if isinstance(now, datetime) else now
    period: Optional[str] = None
    for name, at in schedule.ordered():
        if at > clock:
            break
        period = name
    return period


def next_prayer(schedule: PrayerSchedule, now: datetime) -> Optional[UpcomingPrayer]:
    """Next prayer after `now`, with a countdown.

    After the last prayer of the day this rolls over to the first prayer of
    the following day (same times, next date).

    Returns:
        UpcomingPrayer, or None for an empty schedule
    """
    entries = schedule.ordered()
    if not entries:
        return None

    clock = now.time()
    for name, at in entries:
        if at > clock:
            moment = datetime.combine(now.date(), at, tzinfo=now.tzinfo)
            return UpcomingPrayer(name=name, at=moment, remaining=moment - now)

    name, at = entries[0]
    moment = datetime.combine(now.date() + timedelta(days=1), at, tzinfo=now.tzinfo)
    return UpcomingPrayer(name=name, at=moment, remaining=moment - now)


class PrayerTimeOverlay:
    """Holds the prayer schedule shown over the carousel."""

    def __init__(
        self,
        repository: ContentRepository,
        zone_id: str,
        adjustments: Optional[Mapping[str, int]] = None,
    ):
        self.repository = repository
        self.zone_id = zone_id
        self.adjustments = dict(adjustments or {})
        self.schedule: Optional[PrayerSchedule] = None
        self.last_refreshed: Optional[datetime] = None
        self._generation = 0

    async def refresh(self, zone_id: Optional[str] = None) -> Optional[PrayerSchedule]:
        """Fetch a fresh schedule and replace the current one.

        Stale-but-available: on failure the previous schedule stays in place
        and the error is re-raised for the caller to log.

        Args:
            zone_id: Zone to fetch (default: the overlay's zone)

        Returns:
            Schedule now shown. A result arriving after clear() is
            discarded, so this may be None.

        Raises:
            NetworkError: Fetch failed
            ValidationError: Response was not a prayer schedule
        """
        zone = zone_id or self.zone_id
        generation = self._generation
        try:
            schedule = await self.repository.fetch_prayer_schedule(zone)
        except DisplayError:
            if self.schedule is not None:
                logger.debug(f"Keeping prayer schedule for {self.schedule.date}")
            raise

        if generation != self._generation:
            logger.debug(f"Discarding prayer schedule for {zone} fetched before clear()")
            return self.schedule
        self.apply(schedule)
        return self.schedule

    def apply(self, schedule: PrayerSchedule) -> bool:
        """Swap in a schedule wholesale, applying manual adjustments.

        Returns:
            True if it differs from the one already shown
        """
        schedule = schedule.adjusted(self.adjustments)
        changed = schedule != self.schedule
        self.schedule = schedule
        self.last_refreshed = datetime.now()
        if changed:
            logger.info(
                f"Prayer schedule for {schedule.zone_id} on {schedule.date}: "
                + ", ".join(f"{name} {at:%H:%M}" for name, at in schedule.ordered())
            )
        return changed

    def clear(self) -> None:
        """Drop the schedule; refreshes still in flight are ignored."""
        self._generation += 1
        self.schedule = None
        self.last_refreshed = None

    def is_stale(self, today: date) -> bool:
        """True when there is nothing to show for `today`."""
        return self.schedule is None or self.schedule.date != today

    def current_period(self, now: datetime) -> Optional[str]:
        if self.schedule is None:
            return None
        return current_period(self.schedule, now)

    def next_prayer(self, now: datetime) -> Optional[UpcomingPrayer]:
        if self.schedule is None:
            return None
        return next_prayer(self.schedule, now)
