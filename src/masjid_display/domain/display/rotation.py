"""
Content rotation engine.

Owns the playlist, the current index and the pause flag. All mutation goes
through this class and happens on the event-loop thread, so there is no
locking; the playlist version is what guards against stale positions.
"""

from dataclasses import replace
from typing import Optional

from loguru import logger

from .models import ContentItem, Playlist, RotationState

DEFAULT_DWELL_SECONDS = 10.0


class RotationEngine:
    """Cycles through a Playlist one item at a time."""

    def __init__(self, default_dwell_seconds: float = DEFAULT_DWELL_SECONDS):
        if default_dwell_seconds <= 0:
            raise ValueError(
                f"default_dwell_seconds must be positive, got {default_dwell_seconds}"
            )
        self.default_dwell_seconds = default_dwell_seconds
        self._playlist = Playlist()
        self._state = RotationState()

    @property
    def playlist(self) -> Playlist:
        return self._playlist

    @property
    def state(self) -> RotationState:
        """Copy of the rotation state; callers cannot mutate the engine."""
        return replace(self._state)

    @property
    def version(self) -> int:
        return self._state.playlist_version

    @property
    def is_paused(self) -> bool:
        return self._state.is_paused

    def load(self, playlist: Playlist, preserve_position: bool = False) -> bool:
        """Replace the playlist.

        Loading a playlist equal to the current one (same items, same order)
        is a no-op. Otherwise the version is bumped and the index reset to 0,
        unless preserve_position is set and the item at the current index
        has the same id in both playlists.

        Args:
            playlist: New playlist
            preserve_position: Keep the index when the item under it is unchanged

        Returns:
            True if the playlist was replaced
        """
        if playlist == self._playlist:
            return False

        old = self._playlist
        index = self._state.current_index
        keep = (
            preserve_position
            and index < len(old)
            and index < len(playlist)
            and old[index].id == playlist[index].id
        )

        self._playlist = playlist
        self._state = RotationState(
            current_index=index if keep else 0,
            playlist_version=self._state.playlist_version + 1,
            is_paused=self._state.is_paused,
        )
        logger.debug(
            f"Loaded playlist v{self._state.playlist_version}: {len(playlist)} item(s), "
            f"index={self._state.current_index}"
        )
        return True

    def current(self) -> Optional[ContentItem]:
        """Item under the current index, or None for an empty playlist."""
        if not self._playlist:
            return None
        return self._playlist[self._state.current_index]

    def advance(self) -> bool:
        """Move to the next item, wrapping at the end.

        Suppressed while paused and a no-op on an empty playlist.

        Returns:
            True if the step was taken (a single-item playlist still counts)
        """
        if not self._playlist or self._state.is_paused:
            return False
        self._state.current_index = (self._state.current_index + 1) % len(self._playlist)
        return True

    def previous(self) -> bool:
        """Move to the previous item, wrapping at the start."""
        if not self._playlist or self._state.is_paused:
            return False
        self._state.current_index = (self._state.current_index - 1) % len(self._playlist)
        return True

    def pause(self) -> None:
        self._state.is_paused = True

    def resume(self) -> None:
        self._state.is_paused = False

    def dwell_seconds(self, item: Optional[ContentItem] = None) -> float:
        """How long an item stays on screen.

        Uses the item's own duration when it has one. Sponsorship has no
        influence here.
        """
        item = item if item is not None else self.current()
        if item is not None and item.duration_seconds:
            return float(item.duration_seconds)
        return self.default_dwell_seconds
