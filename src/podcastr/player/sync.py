"""Device synchronization for the podcastr player.

Keeps a PlaybackDevice in step with a PlayerState: store transitions become
device commands, and device notifications become store commands. Also owns
the progress of the current episode.
"""

import math
import queue
from enum import Enum, auto
from functools import partial
from typing import Callable, Optional

from podcastr.player.logging_config import get_logger
from podcastr.player.models import Episode
from podcastr.player.services.device import DeviceError, DeviceEvent, PlaybackDevice, Subscription
from podcastr.player.state import PlayerState

logger = get_logger(__name__)


class SlotState(Enum):
    """Lifecycle of the current episode slot."""

    IDLE = auto()
    LOADING = auto()
    ACTIVE = auto()
    ENDED = auto()


class DispatchQueue:
    """FIFO of pending callbacks, drained on a single thread.

    post() may be called from any thread; drain() runs everything queued so
    far on the calling thread, in arrival order.
    """

    def __init__(self):
        self._queue: queue.SimpleQueue = queue.SimpleQueue()

    def post(self, callback: Callable, *args) -> None:
        """Queue callback(*args) for the next drain."""
        self._queue.put((callback, args))

    def drain(self) -> int:
        """Run all pending callbacks.

        Returns:
            Number of callbacks run
        """
        processed = 0
        while True:
            try:
                callback, args = self._queue.get_nowait()
            except queue.Empty:
                return processed
            try:
                callback(*args)
            except Exception:
                logger.exception("Dispatched callback failed")
            processed += 1

    def __len__(self) -> int:
        return self._queue.qsize()


class PlayerSync:
    """Reconciles a PlayerState with a PlaybackDevice.

    Subscriptions to the device are scoped to the current episode: they are
    torn down and recreated on every episode change, and anything arriving
    for an earlier episode is discarded.

    Attributes:
        state: Player state store
        device: Playback device
    """

    def __init__(self, state: PlayerState, device: PlaybackDevice):
        """Bind the store to the device.

        Args:
            state: Player state store
            device: Playback device
        """
        self.state = state
        self.device = device

        self._progress: float = 0
        self._slot_state = SlotState.IDLE
        self._generation = 0
        self._subscriptions: list[Subscription] = []
        self._transport_playing = False

        self._ending = False
        self._ended_deferred = False

        # Callbacks
        self._on_progress_changed: Optional[Callable[[float], None]] = None
        self._on_error: Optional[Callable[[Episode, DeviceError], None]] = None

        self.state.add_listener("current_episode", self._on_episode_changed)
        self.state.add_listener("is_playing", self._on_playing_changed)
        self.state.add_listener("is_looping", self._on_looping_changed)
        self.device.loop = self.state.is_looping

        if self.state.current_episode is not None:
            self._on_episode_changed(self.state.current_episode)

    def set_callbacks(
        self,
        on_progress_changed: Optional[Callable[[float], None]] = None,
        on_error: Optional[Callable[[Episode, DeviceError], None]] = None,
    ) -> None:
        """Set sync event callbacks.

        Args:
            on_progress_changed: Called with the new progress in seconds
            on_error: Called when an episode's media fails to load
        """
        self._on_progress_changed = on_progress_changed
        self._on_error = on_error

    @property
    def progress(self) -> float:
        """Get elapsed seconds of the current episode."""
        return self._progress

    @property
    def slot_state(self) -> SlotState:
        """Get the lifecycle state of the current episode slot."""
        return self._slot_state

    def _set_progress(self, value: float) -> None:
        if value == self._progress:
            return
        self._progress = value
        if self._on_progress_changed:
            self._on_progress_changed(value)

    # ----- store -> device -----

    def _push_transport(self, playing: bool) -> None:
        """Issue play/pause unless the device was already told so."""
        if playing == self._transport_playing:
            return
        self._transport_playing = playing
        if playing:
            logger.debug(f"Device play: {self.device.source}")
            self.device.play()
        else:
            logger.debug(f"Device pause: {self.device.source}")
            self.device.pause()

    def _on_playing_changed(self, is_playing: bool) -> None:
        if self._slot_state is SlotState.IDLE:
            return
        self._push_transport(is_playing)

    def _on_looping_changed(self, is_looping: bool) -> None:
        self.device.loop = is_looping

    def _teardown(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []

    def _on_episode_changed(self, episode: Optional[Episode]) -> None:
        self._teardown()
        self._generation += 1
        self._transport_playing = False
        self._set_progress(0)

        if episode is None:
            logger.info("Player cleared, unloading device")
            self._slot_state = SlotState.IDLE
            self.device.unload()
            return

        logger.info(f"Switching to episode {episode.id}: {episode.title}")
        self._slot_state = SlotState.LOADING
        generation = self._generation
        handlers = {
            DeviceEvent.METADATA_READY: self._handle_metadata_ready,
            DeviceEvent.TIME_ADVANCED: self._handle_time_advanced,
            DeviceEvent.STARTED: self._handle_started,
            DeviceEvent.PAUSED: self._handle_paused,
            DeviceEvent.ENDED: self._handle_ended,
            DeviceEvent.LOAD_FAILED: self._handle_load_failed,
        }
        self._subscriptions = [
            self.device.subscribe(event, partial(handler, generation))
            for event, handler in handlers.items()
        ]

        try:
            self.device.load(episode.url)
        except DeviceError as e:
            self._fail_load(episode, e)
            return

        # Media autoplays when the intent is already playing
        if self.state.is_playing and generation == self._generation:
            self._push_transport(True)

    def _fail_load(self, episode: Episode, error: DeviceError) -> None:
        """Give up on an episode whose media cannot play."""
        logger.error(f"Failed to load episode {episode.id}: {error}")
        self._teardown()
        self._slot_state = SlotState.IDLE
        if self._on_error:
            self._on_error(episode, error)
        self.state.clear_player_state()

    # ----- device -> store -----

    def _is_stale(self, generation: int, event: DeviceEvent) -> bool:
        if generation != self._generation:
            logger.debug(f"Discarding stale {event.value} notification (generation {generation})")
            return True
        return False

    def _handle_metadata_ready(self, generation: int) -> None:
        if self._is_stale(generation, DeviceEvent.METADATA_READY):
            return
        self._set_progress(0)
        self._slot_state = SlotState.ACTIVE

    def _handle_time_advanced(self, generation: int, seconds: float) -> None:
        if self._is_stale(generation, DeviceEvent.TIME_ADVANCED):
            return
        if self._slot_state is not SlotState.ACTIVE:
            return
        self._set_progress(math.floor(seconds))

    def _handle_started(self, generation: int) -> None:
        if self._is_stale(generation, DeviceEvent.STARTED):
            return
        self._transport_playing = True
        self.state.set_playing_state(True)

    def _handle_paused(self, generation: int) -> None:
        if self._is_stale(generation, DeviceEvent.PAUSED):
            return
        self._transport_playing = False
        self.state.set_playing_state(False)

    def _handle_load_failed(self, generation: int, error: DeviceError) -> None:
        if self._is_stale(generation, DeviceEvent.LOAD_FAILED):
            return
        self._fail_load(self.state.current_episode, error)

    def _handle_ended(self, generation: int) -> None:
        if self._is_stale(generation, DeviceEvent.ENDED):
            return
        self._slot_state = SlotState.ENDED
        self._transport_playing = False

        if self._ending:
            self._ended_deferred = True
            return

        self._ending = True
        try:
            self._advance()
            while self._ended_deferred:
                self._ended_deferred = False
                self._advance()
        finally:
            self._ending = False

    def _advance(self) -> None:
        if self.state.has_next:
            logger.debug("Episode ended, advancing")
            self.state.play_next()
        else:
            logger.debug("Episode ended with nothing next, clearing")
            self.state.clear_player_state()

    # ----- commands -----

    def seek(self, amount: float) -> None:
        """Move playback to amount seconds and show it immediately.

        Args:
            amount: Target position in seconds
        """
        if self._slot_state is SlotState.IDLE:
            return
        self.device.seek(amount)
        self._set_progress(amount)

    def close(self) -> None:
        """Detach from the store and the device."""
        self._teardown()
        self.state.remove_listener("current_episode", self._on_episode_changed)
        self.state.remove_listener("is_playing", self._on_playing_changed)
        self.state.remove_listener("is_looping", self._on_looping_changed)
