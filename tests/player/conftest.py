"""Shared fixtures for player tests."""

import random
from typing import Optional

import pytest

from podcastr.player.models import Episode
from podcastr.player.services.device import DeviceError, DeviceEvent, PlaybackDevice
from podcastr.player.state import PlayerState
from podcastr.player.sync import PlayerSync


class FakeDevice(PlaybackDevice):
    """In-memory playback device that records the commands it receives.

    load() reports METADATA_READY (unless auto_metadata is off) and play()/pause() report STARTED/PAUSED,
    the way a media element does. Tests drive the rest with finish() and
    advance().
    """

    def __init__(self, dispatch=None, auto_metadata: bool = True):
        super().__init__(dispatch)
        self.auto_metadata = auto_metadata
        self.commands: list[tuple] = []
        self.failing_sources: set[str] = set()
        self._source: Optional[str] = None
        self.playing = False

    @property
    def source(self) -> Optional[str]:
        return self._source

    def load(self, source: str) -> None:
        self.commands.append(("load", source))
        if source in self.failing_sources:
            raise DeviceError(f"cannot decode {source}")
        self._source = source
        self.playing = False
        if self.auto_metadata:
            self._emit(DeviceEvent.METADATA_READY)

    def play(self) -> None:
        self.commands.append(("play",))
        self.playing = True
        self._emit(DeviceEvent.STARTED)

    def pause(self) -> None:
        self.commands.append(("pause",))
        self.playing = False
        self._emit(DeviceEvent.PAUSED)

    def seek(self, seconds: float) -> None:
        self.commands.append(("seek", seconds))

    def unload(self) -> None:
        self.commands.append(("unload",))
        self._source = None
        self.playing = False

    def advance(self, seconds: float) -> None:
        """Report a new playback position."""
        self._emit(DeviceEvent.TIME_ADVANCED, seconds)

    def fail_load(self, message: str = "unsupported format") -> None:
        """Report that the loaded media turned out to be unplayable."""
        self._source = None
        self._emit(DeviceEvent.LOAD_FAILED, DeviceError(message))

    def finish(self) -> None:
        """Report the end of the media."""
        self.playing = False
        self._emit(DeviceEvent.ENDED)

    def transport_commands(self) -> list[tuple]:
        """Get only the play/pause commands, in order."""
        return [c for c in self.commands if c[0] in ("play", "pause")]


def make_episode(episode_id: str, duration: int = 100) -> Episode:
    """Build an episode with predictable fields."""
    return Episode(
        id=episode_id,
        title=f"Episode {episode_id}",
        members="Diego, Rodrigo",
        thumbnail=f"https://example.com/{episode_id}.jpg",
        url=f"https://example.com/{episode_id}.mp3",
        duration=duration,
    )


@pytest.fixture
def episodes():
    """Three sample episodes."""
    return [make_episode("a", 100), make_episode("b", 200), make_episode("c", 300)]


@pytest.fixture
def state():
    """Empty player state with a seeded random source."""
    return PlayerState(rng=random.Random(1234))


@pytest.fixture
def device():
    """Fake playback device delivering notifications immediately."""
    return FakeDevice()


@pytest.fixture
def sync(state, device):
    """Player sync bound to the fake device."""
    player_sync = PlayerSync(state, device)
    yield player_sync
    player_sync.close()


@pytest.fixture
def episode_factory():
    """Factory building episodes by ID and duration."""
    return make_episode


@pytest.fixture
def fake_device_cls():
    """The FakeDevice class, for tests that subclass or rebuild it."""
    return FakeDevice
