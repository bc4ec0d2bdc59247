"""Tests for the content rotation engine."""

import pytest

from masjid_display.domain.display.models import ContentItem, Playlist
from masjid_display.domain.display.rotation import RotationEngine


def playlist_of(*ids: str) -> Playlist:
    return Playlist.from_items(
        ContentItem(id=item_id, title=item_id.upper(), display_order=position)
        for position, item_id in enumerate(ids)
    )


@pytest.fixture
def engine() -> RotationEngine:
    return RotationEngine(default_dwell_seconds=10.0)


class TestAdvance:
    """Tests for advance() cycling."""

    @pytest.mark.parametrize("length", [1, 2, 3, 7])
    def test_cycles_back_to_start_after_length_steps(
        self, engine: RotationEngine, length: int
    ) -> None:
        """Test L advances visit every index once and return to 0."""
        engine.load(playlist_of(*[f"item{i}" for i in range(length)]))

        visited = []
        for _ in range(length):
            visited.append(engine.state.current_index)
            engine.advance()

        assert sorted(visited) == list(range(length))
        assert engine.state.current_index == 0

    def test_single_item_stays_on_itself(self, engine: RotationEngine) -> None:
        engine.load(playlist_of("only"))
        assert engine.advance() is True
        assert engine.current().id == "only"
        assert engine.state.current_index == 0

    def test_empty_playlist_is_noop(self, engine: RotationEngine) -> None:
        assert engine.advance() is False
        assert engine.current() is None
        assert engine.state.current_index == 0

    def test_previous_wraps_to_end(self, engine: RotationEngine) -> None:
        engine.load(playlist_of("a", "b", "c"))
        engine.previous()
        assert engine.current().id == "c"


class TestLoad:
    """Tests for load() and the playlist-version invariants."""

    def test_empty_load_yields_no_current(self, engine: RotationEngine) -> None:
        engine.load(Playlist.from_items([]))
        assert engine.current() is None

    def test_non_empty_to_empty(self, engine: RotationEngine) -> None:
        """Test all content being deactivated leaves nothing current."""
        engine.load(playlist_of("a", "b", "c"))
        engine.advance()
        engine.advance()

        engine.load(Playlist())

        assert engine.current() is None
        assert engine.state.current_index == 0
        assert engine.advance() is False

    def test_new_playlist_resets_index_and_bumps_version(
        self, engine: RotationEngine
    ) -> None:
        engine.load(playlist_of("a", "b", "c"))
        engine.advance()
        version = engine.version

        assert engine.load(playlist_of("a", "b", "d")) is True

        assert engine.state.current_index == 0
        assert engine.version == version + 1

    def test_identical_playlist_is_idempotent(self, engine: RotationEngine) -> None:
        """Test reloading the same content and order keeps the position."""
        engine.load(playlist_of("a", "b", "c"))
        engine.advance()
        version = engine.version

        assert engine.load(playlist_of("a", "b", "c")) is False

        assert engine.state.current_index == 1
        assert engine.version == version

    def test_reordered_playlist_is_a_change(self, engine: RotationEngine) -> None:
        engine.load(playlist_of("a", "b", "c"))
        engine.advance()
        assert engine.load(playlist_of("c", "b", "a")) is True
        assert engine.state.current_index == 0

    def test_shrunk_playlist_never_points_past_end(self, engine: RotationEngine) -> None:
        engine.load(playlist_of("a", "b", "c", "d"))
        for _ in range(3):
            engine.advance()

        engine.load(playlist_of("a", "b"), preserve_position=True)

        assert engine.state.current_index == 0
        assert engine.current().id == "a"

    def test_preserve_position_when_item_matches(self, engine: RotationEngine) -> None:
        engine.load(playlist_of("a", "b", "c"))
        engine.advance()

        assert engine.load(playlist_of("a", "b", "c", "d"), preserve_position=True)

        assert engine.state.current_index == 1
        assert engine.current().id == "b"

    def test_preserve_position_resets_when_item_differs(
        self, engine: RotationEngine
    ) -> None:
        engine.load(playlist_of("a", "b", "c"))
        engine.advance()

        engine.load(playlist_of("a", "x", "c"), preserve_position=True)

        assert engine.state.current_index == 0

    def test_state_is_a_copy(self, engine: RotationEngine) -> None:
        engine.load(playlist_of("a", "b"))
        state = engine.state
        state.current_index = 1
        assert engine.state.current_index == 0


class TestPause:
    """Tests for pause()/resume()."""

    def test_advance_suppressed_while_paused(self, engine: RotationEngine) -> None:
        engine.load(playlist_of("a", "b", "c"))
        engine.pause()

        assert engine.advance() is False
        assert engine.advance() is False
        assert engine.current().id == "a"

    def test_time_is_not_banked(self, engine: RotationEngine) -> None:
        """Test suppressed ticks are not replayed on resume."""
        engine.load(playlist_of("a", "b", "c"))
        engine.pause()
        engine.advance()
        engine.advance()
        engine.resume()

        engine.advance()

        assert engine.current().id == "b"

    def test_pause_survives_load(self, engine: RotationEngine) -> None:
        engine.pause()
        engine.load(playlist_of("a", "b"))
        assert engine.is_paused


class TestDwell:
    """Tests for dwell_seconds()."""

    def test_default_dwell(self, engine: RotationEngine) -> None:
        engine.load(playlist_of("a"))
        assert engine.dwell_seconds() == 10.0

    def test_item_override(self, engine: RotationEngine) -> None:
        item = ContentItem(id="video", title="Video", duration_seconds=45)
        assert engine.dwell_seconds(item) == 45.0

    def test_sponsorship_does_not_change_dwell(self, engine: RotationEngine) -> None:
        item = ContentItem(id="s", title="S", sponsorship_amount=5000.0)
        assert engine.dwell_seconds(item) == 10.0

    def test_empty_playlist_uses_default(self, engine: RotationEngine) -> None:
        assert engine.dwell_seconds() == 10.0

    def test_rejects_non_positive_default(self) -> None:
        with pytest.raises(ValueError):
            RotationEngine(default_dwell_seconds=0)
