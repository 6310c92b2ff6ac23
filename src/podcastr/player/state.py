"""Player state store for the podcastr player.

Holds the episode queue and the playback intent (current episode and the
play/loop/shuffle flags). It is the only place that state is mutated; readers
watch it through property listeners. The store never talks to a device itself.
"""

import random
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from podcastr.player.logging_config import get_logger
from podcastr.player.models import Episode

logger = get_logger(__name__)

# Listener notification order within a single command
WATCHED_PROPERTIES = (
    "queue",
    "current_index",
    "current_episode",
    "is_playing",
    "is_looping",
    "is_shuffling",
)


@dataclass
class PlayerState:
    """Observable playback state.

    Listeners registered with add_listener() are called once per actual
    change of the watched property, after the command that caused it has
    finished mutating state. "current_episode" fires on every new episode
    selection, including a re-selection of the same index.

    Attributes:
        queue: Episodes available for navigation, in insertion order
        current_index: Index of the current episode, or None
        is_playing: Desired device transport state
        is_looping: Whether the current episode repeats instead of advancing
        is_shuffling: Whether next/previous pick a random index
        rng: Random source used for shuffle picks
    """

    queue: tuple[Episode, ...] = ()
    current_index: Optional[int] = None
    is_playing: bool = False
    is_looping: bool = False
    is_shuffling: bool = False
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    _listeners: dict[str, list[Callable]] = field(default_factory=dict, repr=False, compare=False)
    _selection: int = field(default=0, repr=False, compare=False)
    _announced: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        """Validate the initial intent and seed change tracking."""
        self.queue = tuple(self.queue)
        if self.current_index is not None and not 0 <= self.current_index < len(self.queue):
            raise ValueError(
                f"current_index {self.current_index} out of range for queue of {len(self.queue)}"
            )
        if self.current_index is None:
            self.is_playing = False
        for name in WATCHED_PROPERTIES:
            self._announced[name] = self._snapshot(name)

    # ----- observation -----

    def add_listener(self, property_name: str, callback: Callable) -> None:
        """Add a listener for a property change.

        Args:
            property_name: Name of the property to watch
            callback: Function called with the new value
        """
        if property_name not in WATCHED_PROPERTIES:
            raise ValueError(f"Unknown property: {property_name}")
        self._listeners.setdefault(property_name, []).append(callback)

    def remove_listener(self, property_name: str, callback: Callable) -> None:
        """Remove a property change listener.

        Args:
            property_name: Name of the property
            callback: Callback to remove
        """
        if property_name in self._listeners:
            self._listeners[property_name] = [
                cb for cb in self._listeners[property_name] if cb != callback
            ]

    def _notify(self, property_name: str, value) -> None:
        """Notify listeners of a property change."""
        for callback in list(self._listeners.get(property_name, [])):
            try:
                callback(value)
            except Exception:
                logger.exception(f"Listener for {property_name} failed")

    def _snapshot(self, property_name: str):
        if property_name == "current_episode":
            return self._selection
        return getattr(self, property_name)

    def _publish(self) -> None:
        """Announce every watched property whose value differs from the last announcement.

        Re-reads live values, so a listener that issues a nested command
        leaves nothing stale for the outer command to announce.
        """
        for name in WATCHED_PROPERTIES:
            current = self._snapshot(name)
            if self._announced.get(name) == current:
                continue
            self._announced[name] = current
            self._notify(name, getattr(self, name))

    # ----- derived reads -----

    @property
    def current_episode(self) -> Optional[Episode]:
        """Get the current episode, or None when nothing is selected."""
        if self.current_index is None:
            return None
        return self.queue[self.current_index]

    @property
    def has_next(self) -> bool:
        """Whether play_next() can move to another episode."""
        if self.is_shuffling:
            return True
        return self.current_index is not None and self.current_index + 1 < len(self.queue)

    @property
    def has_previous(self) -> bool:
        """Whether play_previous() can move to another episode."""
        if self.is_shuffling:
            return True
        return self.current_index is not None and self.current_index > 0

    # ----- commands -----

    def _select(self, index: int) -> None:
        self.current_index = index
        self._selection += 1
        self.is_playing = True

    def play(self, episodes: Iterable[Episode], index: int = 0) -> None:
        """Replace the queue and start playing the episode at index.

        An empty list or an out-of-range index leaves the state unchanged.

        Args:
            episodes: New queue contents
            index: Index of the episode to start with
        """
        episodes = tuple(episodes)
        if not episodes:
            logger.debug("play() with empty episode list ignored")
            return
        if not 0 <= index < len(episodes):
            logger.debug(f"play() index {index} out of range for {len(episodes)} episode(s), ignored")
            return

        logger.debug(f"Loading queue of {len(episodes)} episode(s), starting at {index}")
        self.queue = episodes
        self._select(index)
        self._publish()

    def play_episode(self, episode: Episode) -> None:
        """Replace the queue with a single episode and play it."""
        self.play([episode], 0)

    def enqueue(self, episodes: Iterable[Episode]) -> None:
        """Append episodes to the queue without changing the selection.

        Args:
            episodes: Episodes to append
        """
        episodes = tuple(episodes)
        if not episodes:
            return
        self.queue = self.queue + episodes
        self._publish()

    def toggle_play(self) -> None:
        """Flip the desired play/pause state."""
        if self.current_episode is None:
            return
        self.is_playing = not self.is_playing
        self._publish()

    def toggle_loop(self) -> None:
        """Flip looping of the current episode."""
        if self.current_episode is None:
            return
        self.is_looping = not self.is_looping
        self._publish()

    def toggle_shuffle(self) -> None:
        """Flip shuffle navigation. Valid with any queue."""
        self.is_shuffling = not self.is_shuffling
        self._publish()

    def _random_index(self) -> int:
        # Uniform over the whole queue; may pick the current index again
        return self.rng.randrange(len(self.queue))

    def play_next(self) -> None:
        """Move to the next episode.

        Looping keeps the current episode (the device restarts it). Shuffle
        picks a random index. Otherwise advances by one if possible.
        """
        if self.current_index is None:
            logger.debug("play_next() with no current episode ignored")
            return
        if self.is_looping:
            return

        if self.is_shuffling:
            self._select(self._random_index())
        elif self.current_index + 1 < len(self.queue):
            self._select(self.current_index + 1)
        else:
            logger.debug("play_next() at end of queue ignored")
            return
        self._publish()

    def play_previous(self) -> None:
        """Move to the previous episode, or a random one when shuffling."""
        if self.current_index is None:
            logger.debug("play_previous() with no current episode ignored")
            return

        if self.is_shuffling:
            self._select(self._random_index())
        elif self.current_index > 0:
            self._select(self.current_index - 1)
        else:
            logger.debug("play_previous() at start of queue ignored")
            return
        self._publish()

    def set_playing_state(self, value: bool) -> None:
        """Record the transport state the device reports.

        Args:
            value: True if the device started, False if it paused
        """
        self.is_playing = bool(value)
        self._publish()

    def clear_player_state(self) -> None:
        """Empty the queue and reset the intent."""
        logger.debug("Clearing player state")
        had_episode = self.current_index is not None
        self.queue = ()
        self.current_index = None
        self.is_playing = False
        if had_episode:
            self._selection += 1
        self._publish()
