"""Playback device contract for the podcastr player.

A device wraps one playable media resource at a time. It accepts transport
commands and reports what actually happened through notifications; callers
never read its transport state directly.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

from podcastr.player.logging_config import get_logger

logger = get_logger(__name__)

# Schedules callback(*args) for later delivery
Dispatch = Callable[..., None]


class DeviceError(RuntimeError):
    """Raised when a media resource cannot be loaded or decoded."""


class DeviceEvent(Enum):
    """Notifications a playback device emits."""

    STARTED = "started"
    PAUSED = "paused"
    ENDED = "ended"
    METADATA_READY = "metadata_ready"
    TIME_ADVANCED = "time_advanced"
    LOAD_FAILED = "load_failed"


class Subscription:
    """Handle for one device notification subscription.

    Cancelling is idempotent. A notification already queued for a cancelled
    subscription is dropped at delivery time.
    """

    def __init__(self, device: "PlaybackDevice", event: DeviceEvent, callback: Callable):
        self.device = device
        self.event = event
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        """Stop receiving notifications."""
        if not self.active:
            return
        self.active = False
        self.device._unsubscribe(self)

    def _deliver(self, *args) -> None:
        if self.active:
            self.callback(*args)


class PlaybackDevice(ABC):
    """Abstract playback device.

    Subclasses implement the transport commands and call _emit() when
    something happens. Notifications go through the dispatch callable, which
    by default delivers them immediately on the emitting thread.

    Attributes:
        loop: When True the device restarts the media at its end instead of
            emitting ENDED
    """

    def __init__(self, dispatch: Optional[Dispatch] = None):
        """Initialize the device.

        Args:
            dispatch: Callable used to schedule notification delivery
        """
        self.loop = False
        self._dispatch = dispatch
        self._subscriptions: dict[DeviceEvent, list[Subscription]] = {}

    @property
    @abstractmethod
    def source(self) -> Optional[str]:
        """Get the currently loaded media reference."""

    @abstractmethod
    def load(self, source: str) -> None:
        """Load a media resource, replacing any current one.

        Returns without waiting for the media. The device starts paused;
        METADATA_READY is emitted once the resource is ready to play, or
        LOAD_FAILED with a DeviceError if it turns out to be unplayable.
        A play() issued before then takes effect once the media is ready.

        Raises:
            DeviceError: If the resource is rejected up front
        """

    @abstractmethod
    def play(self) -> None:
        """Start or resume playback."""

    @abstractmethod
    def pause(self) -> None:
        """Pause playback."""

    @abstractmethod
    def seek(self, seconds: float) -> None:
        """Move the playback position."""

    @abstractmethod
    def unload(self) -> None:
        """Stop playback and release the current resource."""

    def close(self) -> None:
        """Release the device and drop all subscriptions."""
        self.unload()
        for subscriptions in self._subscriptions.values():
            for subscription in subscriptions:
                subscription.active = False
        self._subscriptions.clear()

    def subscribe(self, event: DeviceEvent, callback: Callable) -> Subscription:
        """Subscribe to a device notification.

        Args:
            event: Notification to receive
            callback: Called with the notification arguments

        Returns:
            Subscription handle
        """
        subscription = Subscription(self, event, callback)
        self._subscriptions.setdefault(event, []).append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.event, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)

    def subscriber_count(self, event: DeviceEvent) -> int:
        """Get the number of active subscriptions for an event."""
        return len(self._subscriptions.get(event, []))

    def _emit(self, event: DeviceEvent, *args) -> None:
        """Deliver a notification to all current subscribers."""
        for subscription in list(self._subscriptions.get(event, [])):
            if self._dispatch is None:
                subscription._deliver(*args)
            else:
                self._dispatch(subscription._deliver, *args)
