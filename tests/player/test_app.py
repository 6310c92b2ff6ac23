"""Tests for PodcastrApp and the player screen.

Drives the app through key presses with a fake playback device.
"""

import pytest

from podcastr.player.app import PodcastrApp
from podcastr.player.config import PlayerConfig
from podcastr.player.sync import SlotState


@pytest.fixture
def config(tmp_path):
    """Player config with a fixed shuffle seed."""
    return PlayerConfig(log_dir=tmp_path / "logs", seek_step_seconds=15, shuffle_seed=1)


class TestStartup:
    """Tests for launch options."""

    @pytest.mark.asyncio
    async def test_starts_playing_index(self, config, episodes, fake_device_cls):
        """Verify the start index is loaded and played on mount."""
        device = fake_device_cls()
        app = PodcastrApp(config, episodes, start_index=1, device=device)

        async with app.run_test() as pilot:
            await pilot.pause()

            assert app.state.current_episode == episodes[1]
            assert app.state.is_playing is True
            assert device.commands == [("load", episodes[1].url), ("play",)]

    @pytest.mark.asyncio
    async def test_start_flags(self, config, episodes, fake_device_cls):
        """Verify shuffle and loop launch options."""
        device = fake_device_cls()
        app = PodcastrApp(config, episodes, start_index=0, shuffle=True, loop=True, device=device)

        async with app.run_test() as pilot:
            await pilot.pause()

            assert app.state.is_shuffling is True
            assert app.state.is_looping is True
            assert device.loop is True

    @pytest.mark.asyncio
    async def test_unplayable_start_episode_is_reported(self, config, episodes, fake_device_cls):
        """Verify a start episode that fails to load clears the player and notifies."""
        device = fake_device_cls()
        device.failing_sources.add(episodes[0].url)
        app = PodcastrApp(config, episodes, start_index=0, device=device)

        async with app.run_test() as pilot:
            await pilot.pause()

            assert app.state.current_episode is None
            messages = [notification.message for notification in app._notifications]
            assert any("Could not play Episode a" in message for message in messages)

    @pytest.mark.asyncio
    async def test_waits_without_start_index(self, config, episodes, fake_device_cls):
        """Verify nothing plays until an episode is chosen."""
        device = fake_device_cls()
        app = PodcastrApp(config, episodes, device=device)

        async with app.run_test() as pilot:
            await pilot.pause()

            assert app.state.current_episode is None
            assert app.sync.slot_state is SlotState.IDLE
            assert device.commands == []


class TestKeys:
    """Tests for the player screen key bindings."""

    @pytest.mark.asyncio
    async def test_select_row_plays_list(self, config, episodes, fake_device_cls):
        """Verify choosing a row plays the list from that episode."""
        app = PodcastrApp(config, episodes, device=fake_device_cls())

        async with app.run_test() as pilot:
            await pilot.pause()
            await pilot.press("down", "enter")
            await pilot.pause()

            assert app.state.queue == tuple(episodes)
            assert app.state.current_index == 1

    @pytest.mark.asyncio
    async def test_space_toggles_play(self, config, episodes, fake_device_cls):
        """Verify space pauses and resumes."""
        device = fake_device_cls()
        app = PodcastrApp(config, episodes, start_index=0, device=device)

        async with app.run_test() as pilot:
            await pilot.press("space")
            assert app.state.is_playing is False

            await pilot.press("space")
            assert app.state.is_playing is True
            assert device.transport_commands() == [("play",), ("pause",), ("play",)]

    @pytest.mark.asyncio
    async def test_next_and_previous(self, config, episodes, fake_device_cls):
        """Verify n and p navigate and stop at the ends."""
        app = PodcastrApp(config, episodes, start_index=1, device=fake_device_cls())

        async with app.run_test() as pilot:
            await pilot.press("n")
            assert app.state.current_index == 2

            await pilot.press("n")
            assert app.state.current_index == 2

            await pilot.press("p", "p", "p")
            assert app.state.current_index == 0

    @pytest.mark.asyncio
    async def test_shuffle_unavailable_for_single_episode(self, config, episodes, fake_device_cls):
        """Verify s does nothing for a one-episode queue."""
        app = PodcastrApp(config, episodes[:1], start_index=0, device=fake_device_cls())

        async with app.run_test() as pilot:
            await pilot.press("s")
            assert app.state.is_shuffling is False

            await pilot.press("l")
            assert app.state.is_looping is True

    @pytest.mark.asyncio
    async def test_arrow_keys_seek(self, config, episodes, fake_device_cls):
        """Verify the arrow keys seek by the configured step, clamped to the episode."""
        device = fake_device_cls()
        app = PodcastrApp(config, episodes, start_index=0, device=device)

        async with app.run_test() as pilot:
            await pilot.press("right")
            assert app.sync.progress == 15
            assert device.commands[-1] == ("seek", 15)

            await pilot.press("left", "left")
            assert app.sync.progress == 0

            device.advance(95)
            await pilot.press("right")
            assert app.sync.progress == 100

    @pytest.mark.asyncio
    async def test_quit_releases_device(self, config, episodes, fake_device_cls):
        """Verify q stops playback and releases the device."""
        device = fake_device_cls()
        app = PodcastrApp(config, episodes, start_index=0, device=device)

        async with app.run_test() as pilot:
            await pilot.press("q")

        assert device.commands[-1] == ("unload",)
