"""Player screen.

Shows the current episode with its progress and transport flags, and the
episode list to start playback from.
"""

from typing import Callable, Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Header, Label, ProgressBar, Static

from podcastr.player.logging_config import get_logger
from podcastr.player.models import Episode
from podcastr.player.services.device import DeviceError
from podcastr.player.state import PlayerState
from podcastr.player.sync import PlayerSync
from podcastr.player.utils import format_duration

logger = get_logger(__name__)

# State properties that change what the screen shows
_WATCHED = ("current_episode", "is_playing", "is_looping", "is_shuffling")


class PlayerScreen(Screen):
    """Screen for controlling playback of an episode queue."""

    BINDINGS = [
        Binding("space", "toggle_play", "Play/Pause", priority=True),
        ("n", "play_next", "Next"),
        ("p", "play_previous", "Previous"),
        ("l", "toggle_loop", "Loop"),
        ("s", "toggle_shuffle", "Shuffle"),
        # The episode table binds the arrow keys itself
        Binding("left", "seek_back", "Back", priority=True),
        Binding("right", "seek_forward", "Forward", priority=True),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        state: PlayerState,
        sync: PlayerSync,
        episodes: list[Episode],
        seek_step_seconds: int = 15,
        on_ready: Optional[Callable[[], None]] = None,
    ):
        """Initialize the screen.

        Args:
            state: Player state store
            sync: Device synchronization for the store
            episodes: Episodes offered for playback
            seek_step_seconds: Seek distance for the arrow keys
            on_ready: Called once the screen is mounted and listening
        """
        super().__init__()
        self.state = state
        self.sync = sync
        self.episodes = episodes
        self.seek_step_seconds = seek_step_seconds
        self._on_ready = on_ready

    def compose(self) -> ComposeResult:
        """Compose the screen layout."""
        yield Header()

        with Vertical(id="now_playing"):
            yield Label("[bold]Now playing[/bold]", id="title")
            yield Static("Select an episode to listen", id="episode_title")
            yield Static("", id="episode_members")

            with Horizontal(id="progress_row"):
                yield Label(format_duration(0), id="elapsed")
                yield ProgressBar(total=None, show_eta=False, show_percentage=False, id="progress_bar")
                yield Label(format_duration(0), id="duration")

            yield Static("", id="flags")

        table = DataTable(id="episode_table")
        table.add_columns("Title", "Members", "Duration")
        table.cursor_type = "row"
        yield table

        yield Footer()

    def on_mount(self) -> None:
        """Handle mount event."""
        table = self.query_one("#episode_table", DataTable)
        for episode in self.episodes:
            table.add_row(episode.title, episode.members, format_duration(episode.duration))

        for name in _WATCHED:
            self.state.add_listener(name, self._on_state_changed)
        self.sync.set_callbacks(
            on_progress_changed=self._on_progress_changed,
            on_error=self._on_load_error,
        )
        self._refresh_episode()

        if self._on_ready:
            self._on_ready()

    def on_unmount(self) -> None:
        """Detach from the store."""
        for name in _WATCHED:
            self.state.remove_listener(name, self._on_state_changed)
        self.sync.set_callbacks()

    # ----- rendering -----

    def _on_state_changed(self, _value) -> None:
        self._refresh_episode()

    def _on_progress_changed(self, progress: float) -> None:
        self._refresh_progress(progress)

    def _on_load_error(self, episode: Episode, error: DeviceError) -> None:
        self.notify(f"Could not play {episode.title}: {error}", severity="error")

    def _refresh_episode(self) -> None:
        episode = self.state.current_episode

        title = self.query_one("#episode_title", Static)
        members = self.query_one("#episode_members", Static)
        if episode is None:
            title.update("Select an episode to listen")
            members.update("")
        else:
            title.update(f"[bold]{episode.title}[/bold]")
            members.update(episode.members)

        flags = []
        if episode is not None:
            flags.append("▶ Playing" if self.state.is_playing else "⏸ Paused")
        if self.state.is_looping:
            flags.append("Loop")
        if self.state.is_shuffling:
            flags.append("Shuffle")
        self.query_one("#flags", Static).update(" | ".join(flags))

        self._refresh_progress(self.sync.progress)

    def _refresh_progress(self, progress: float) -> None:
        episode = self.state.current_episode
        duration = episode.duration if episode else 0

        self.query_one("#elapsed", Label).update(format_duration(progress))
        self.query_one("#duration", Label).update(format_duration(duration))
        bar = self.query_one("#progress_bar", ProgressBar)
        bar.update(total=duration or None, progress=progress)

    # ----- actions -----

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        """Play the episode list from the selected row."""
        logger.info(f"Playing episode list from row {event.cursor_row}")
        self.state.play(self.episodes, event.cursor_row)

    def action_toggle_play(self) -> None:
        """Toggle play/pause."""
        self.state.toggle_play()

    def action_play_next(self) -> None:
        """Play the next episode."""
        if self.state.current_episode is None or not self.state.has_next:
            return
        self.state.play_next()

    def action_play_previous(self) -> None:
        """Play the previous episode."""
        if self.state.current_episode is None or not self.state.has_previous:
            return
        self.state.play_previous()

    def action_toggle_loop(self) -> None:
        """Toggle looping of the current episode."""
        self.state.toggle_loop()

    def action_toggle_shuffle(self) -> None:
        """Toggle shuffle, unavailable for a single-episode queue."""
        if self.state.current_episode is None or len(self.state.queue) == 1:
            return
        self.state.toggle_shuffle()

    def _seek_by(self, delta: int) -> None:
        episode: Optional[Episode] = self.state.current_episode
        if episode is None:
            return
        target = max(0, min(episode.duration, self.sync.progress + delta))
        self.sync.seek(target)

    def action_seek_back(self) -> None:
        """Seek backwards by one step."""
        self._seek_by(-self.seek_step_seconds)

    def action_seek_forward(self) -> None:
        """Seek forwards by one step."""
        self._seek_by(self.seek_step_seconds)

    def action_quit(self) -> None:
        """Quit the application."""
        self.app.action_quit()
