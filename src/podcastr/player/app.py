"""Main TUI application for the podcastr player.

Textual application that wires the player state store, the device
synchronization and an audio device together.
"""

import random
from typing import Optional

from textual.app import App

from podcastr.player.config import PlayerConfig
from podcastr.player.logging_config import get_logger
from podcastr.player.models import Episode
from podcastr.player.screens.player import PlayerScreen
from podcastr.player.services.device import PlaybackDevice
from podcastr.player.services.playback import MiniaudioDevice
from podcastr.player.state import PlayerState
from podcastr.player.sync import DispatchQueue, PlayerSync

logger = get_logger(__name__)

# Seconds between drains of queued device notifications
DISPATCH_INTERVAL = 0.05


class PodcastrApp(App):
    """Podcast episode player.

    Device notifications are queued and drained on the app's thread, so
    every state change happens on one thread in arrival order.
    """

    CSS_PATH = "screens/player.tcss"
    TITLE = "Podcastr"
    SUB_TITLE = "Episode Player"

    def __init__(
        self,
        config: PlayerConfig,
        episodes: list[Episode],
        start_index: Optional[int] = None,
        shuffle: bool = False,
        loop: bool = False,
        device: Optional[PlaybackDevice] = None,
        *args,
        **kwargs,
    ):
        """Initialize the application.

        Args:
            config: Player configuration
            episodes: Episodes offered for playback
            start_index: Episode to start playing on launch (None to wait)
            shuffle: Start with shuffle enabled
            loop: Start with the first episode looping
            device: Playback device (defaults to a miniaudio device)
        """
        super().__init__(*args, **kwargs)

        self.config = config
        self.episodes = episodes
        self.start_index = start_index
        self.start_shuffle = shuffle
        self.start_loop = loop

        self.dispatch_queue = DispatchQueue()
        self.state = PlayerState(rng=random.Random(config.shuffle_seed))
        self.device = device or MiniaudioDevice(
            dispatch=self.dispatch_queue.post,
            buffer_ms=config.buffer_ms,
            volume=config.volume,
            position_interval_ms=config.position_interval_ms,
            request_timeout=config.request_timeout_seconds,
        )
        self.sync = PlayerSync(self.state, self.device)

    def on_mount(self) -> None:
        """Handle app mount event."""
        self.set_interval(DISPATCH_INTERVAL, self.dispatch_queue.drain)

        logger.info(f"App mounted with {len(self.episodes)} episode(s)")
        self.push_screen(
            PlayerScreen(
                self.state,
                self.sync,
                self.episodes,
                seek_step_seconds=self.config.seek_step_seconds,
                on_ready=self._apply_launch_options,
            )
        )

    def _apply_launch_options(self) -> None:
        """Start playback as requested on the command line."""
        if self.start_shuffle:
            self.state.toggle_shuffle()
        if self.start_index is not None:
            self.state.play(self.episodes, self.start_index)
            if self.start_loop:
                self.state.toggle_loop()

    def action_quit(self) -> None:
        """Quit the application with cleanup."""
        logger.info("Quitting, releasing playback device")
        self.sync.close()
        self.device.close()
        self.exit()
