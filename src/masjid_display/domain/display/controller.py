"""
Display controller.

Composes the repository, rotation engine and prayer overlay behind a
mount/unmount lifecycle:

    IDLE -> LOADING -> DISPLAYING
                    -> ERROR -> DISPLAYING (successful re-fetch)
    any  -> UNMOUNTED

Three timers run while mounted: rotation (per-item dwell), background
content refresh and prayer refresh. Each fetch resource allows one request
in flight, and results arriving after unmount are discarded by comparing
the mount generation.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, Callable, Optional

from loguru import logger

from masjid_display.core.config import Config

from .exceptions import DisplayError
from .models import DisplayFrame, DisplayState, Playlist, PrayerSchedule
from .prayer import PrayerTimeOverlay
from .repository import ContentRepository
from .rotation import RotationEngine
from .scheduling import FetchGate, TimerGroup

ROTATION_TIMER = "rotation"
CONTENT_TIMER = "content-refresh"
PRAYER_TIMER = "prayer-refresh"

RenderCallback = Callable[[DisplayFrame], None]


class DisplayController:
    """Root of the TV display core."""

    def __init__(
        self,
        repository: ContentRepository,
        config: Optional[Config] = None,
        on_render: Optional[RenderCallback] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or Config()
        self.repository = repository
        self.engine = RotationEngine(self.config.rotation.default_dwell_seconds)
        self.overlay = PrayerTimeOverlay(
            repository,
            zone_id=self.config.prayer.zone,
            adjustments=self.config.prayer.adjustments,
        )
        self.on_render = on_render
        self.clock = clock

        self.state = DisplayState.IDLE
        self.last_error: Optional[DisplayError] = None
        self.timers = TimerGroup()
        self._content_gate = FetchGate("content")
        self._prayer_gate = FetchGate("prayer")
        self._generation = 0
        self._background: set[asyncio.Task] = set()
        self._rollover_requested: Optional[date] = None

    # ---------------------------------------------------------------- lifecycle
    @property
    def mounted(self) -> bool:
        return self.state not in (DisplayState.IDLE, DisplayState.UNMOUNTED)

    async def mount(self) -> DisplayState:
        """Initial load: content and prayer schedule fetched concurrently.

        Returns:
            State after the initial load (DISPLAYING or ERROR), or
            UNMOUNTED if unmount() happened while the load was pending
        """
        if self.mounted:
            return self.state

        self._generation += 1
        generation = self._generation
        self.state = DisplayState.LOADING
        logger.info(f"Mounting display (zone={self.overlay.zone_id})")

        try:
            await asyncio.gather(
                self._gated_content(generation),
                self._gated_prayer(generation),
            )
            if generation != self._generation:
                return self.state

            self.timers.start(
                CONTENT_TIMER,
                self.config.refresh.content_refresh_seconds,
                self.refresh_content,
            )
            self.timers.start(
                PRAYER_TIMER,
                self.config.refresh.prayer_refresh_seconds,
                self._on_prayer_tick,
            )
        except BaseException:
            self.timers.cancel_all()
            raise

        self._render()
        return self.state

    async def unmount(self) -> None:
        """Cancel all timers and drop every snapshot.

        Fetches still pending complete in their worker threads but their
        results are ignored.
        """
        if self.state is DisplayState.UNMOUNTED:
            return
        self._generation += 1
        self.state = DisplayState.UNMOUNTED
        await self.timers.aclose()
        for task in list(self._background):
            task.cancel()
        self._background.clear()
        self._rollover_requested = None
        # Pending fetches of the old mount must not block the next mount
        self._content_gate.reset()
        self._prayer_gate.reset()
        self.overlay.clear()
        self.repository.clear()
        logger.info("Display unmounted")

    @asynccontextmanager
    async def running(self) -> AsyncIterator["DisplayController"]:
        """Mount for the duration of the block; always unmounts.

        Example:
            async with controller.running():
                await stop_event.wait()
        """
        try:
            await self.mount()
            yield self
        finally:
            await self.unmount()

    # ---------------------------------------------------------------- content
    async def refresh_content(self) -> Optional[DisplayState]:
        """Re-fetch content (manual retry or background timer).

        Returns:
            State after the refresh, or None if the request was dropped
            because a fetch was already in flight. Outside a mount nothing
            is fetched and the current state is returned.
        """
        if not self.mounted:
            return self.state

        if not await self._gated_content(self._generation):
            return None
        return self.state

    async def _gated_content(self, generation: int) -> bool:
        async with self._content_gate.claim() as owned:
            if owned:
                await self._fetch_content(generation)
            return owned

    async def _fetch_content(self, generation: int) -> None:
        try:
            playlist = await self.repository.fetch_active_content()
        except DisplayError as e:
            if generation != self._generation:
                return
            self._on_content_failure(e)
            return

        if generation != self._generation:
            logger.debug("Discarding content fetched before unmount")
            return
        self._apply_playlist(playlist)

    def _on_content_failure(self, error: DisplayError) -> None:
        if self.state is DisplayState.DISPLAYING:
            logger.warning(f"Content refresh failed, keeping current playlist: {error}")
            return
        self.last_error = error
        self.state = DisplayState.ERROR
        logger.error(f"Content load failed: {error}")
        self._render()

    def _apply_playlist(self, playlist: Playlist) -> None:
        recovering = self.state is not DisplayState.DISPLAYING
        if recovering:
            changed = self.engine.load(playlist)
            self.state = DisplayState.DISPLAYING
            self.last_error = None
            logger.info(f"Displaying {len(playlist)} item(s)")
        else:
            changed = self.engine.load(playlist, preserve_position=True)
            if changed:
                logger.info(
                    f"Playlist changed: {len(playlist)} item(s), "
                    f"v{self.engine.version}"
                )

        if recovering or changed or self.timers.get(ROTATION_TIMER) is None:
            self._start_rotation()
            self._render()

    # ---------------------------------------------------------------- rotation
    def _start_rotation(self) -> None:
        # Restarting gives the new current item its full dwell time
        self.timers.start(ROTATION_TIMER, self.engine.dwell_seconds, self._on_rotation_tick)

    def _on_rotation_tick(self) -> None:
        if self.state is not DisplayState.DISPLAYING:
            return
        self.engine.advance()
        self._check_prayer_rollover()
        # Re-render even when the index did not move (single item, paused)
        self._render()

    def pause(self) -> None:
        self.engine.pause()
        self._render()

    def resume(self) -> None:
        self.engine.resume()
        self._render()

    # ---------------------------------------------------------------- prayer
    async def refresh_prayer_times(self) -> Optional[PrayerSchedule]:
        """Refresh the prayer overlay; failures keep the stale schedule.

        Returns:
            Schedule on screen after the refresh (None if nothing has ever
            loaded or the request was dropped)
        """
        if not self.mounted:
            return None

        if not await self._gated_prayer(self._generation):
            return None
        return self.overlay.schedule

    async def _gated_prayer(self, generation: int) -> bool:
        async with self._prayer_gate.claim() as owned:
            if owned:
                await self._fetch_prayer(generation)
            return owned

    def _check_prayer_rollover(self) -> None:
        """Fetch the new day's schedule once the shown one is out of date."""
        today = self.clock().date()
        if self.overlay.schedule is None or not self.overlay.is_stale(today):
            return
        if self._rollover_requested == today:
            return
        self._rollover_requested = today
        logger.info(f"Prayer schedule is for {self.overlay.schedule.date}, refreshing")
        task = asyncio.create_task(self.refresh_prayer_times())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _fetch_prayer(self, generation: int) -> None:
        before = self.overlay.schedule
        try:
            await self.overlay.refresh()
        except DisplayError as e:
            if generation == self._generation:
                logger.warning(f"Prayer time refresh failed, keeping last schedule: {e}")
            return

        if generation != self._generation:
            logger.debug("Discarding prayer schedule fetched before unmount")
            return
        if self.overlay.schedule != before and self.state is DisplayState.DISPLAYING:
            self._render()

    async def _on_prayer_tick(self) -> None:
        await self.refresh_prayer_times()

    # ---------------------------------------------------------------- rendering
    def frame(self, now: Optional[datetime] = None) -> DisplayFrame:
        """Snapshot of what should be on screen right now."""
        now = now or self.clock()
        rotation = self.engine.state
        return DisplayFrame(
            state=self.state,
            item=self.engine.current() if self.state is DisplayState.DISPLAYING else None,
            position=rotation.current_index,
            total=len(self.engine.playlist),
            schedule=self.overlay.schedule,
            current_prayer=self.overlay.current_period(now),
            upcoming_prayer=self.overlay.next_prayer(now),
            is_paused=rotation.is_paused,
            error=str(self.last_error) if self.last_error else None,
        )

    def _render(self) -> None:
        if self.on_render is None or self.state is DisplayState.UNMOUNTED:
            return
        try:
            self.on_render(self.frame())
        except Exception:
            logger.exception("Render callback failed")
