"""Tests for player configuration and logging setup."""

from pathlib import Path
from unittest.mock import patch

import pytest

from podcastr.player.config import (
    PlayerConfig,
    ensure_config_exists,
    get_config_dir,
    get_config_path,
)
from podcastr.player.logging_config import _rotate_log_if_needed, get_logger, setup_logging


class TestConfigDir:
    """Tests for config directory functions."""

    def test_get_config_dir_returns_path(self):
        """Verify get_config_dir returns a Path."""
        config_dir = get_config_dir()

        assert isinstance(config_dir, Path)
        assert "podcastr" in str(config_dir)

    def test_respects_xdg_config_home(self, tmp_path, monkeypatch):
        """Verify XDG_CONFIG_HOME is honoured off Windows."""
        monkeypatch.setattr("sys.platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert get_config_dir() == tmp_path / "podcastr"

    def test_get_config_path_returns_toml(self):
        """Verify get_config_path returns path to config.toml."""
        assert get_config_path().name == "config.toml"


class TestPlayerConfigDefaults:
    """Tests for default configuration values."""

    def test_defaults(self):
        """Verify default settings."""
        config = PlayerConfig()

        assert config.volume == 0.8
        assert config.buffer_ms == 500
        assert config.position_interval_ms == 250
        assert config.seek_step_seconds == 15
        assert config.shuffle_seed is None
        assert "logs" in str(config.log_dir)


class TestPlayerConfigLoadSave:
    """Tests for TOML load/save."""

    def test_round_trip(self, tmp_path):
        """Verify saved settings load back unchanged."""
        path = tmp_path / "config.toml"
        config = PlayerConfig(log_dir=tmp_path / "logs", volume=0.5, seek_step_seconds=30, shuffle_seed=42)

        config.save(path)
        loaded = PlayerConfig.load(path)

        assert loaded == config

    def test_round_trip_without_seed(self, tmp_path):
        """Verify an unset seed is omitted and loads back as None."""
        path = tmp_path / "config.toml"
        PlayerConfig(log_dir=tmp_path / "logs").save(path)

        assert "shuffle_seed" not in path.read_text()
        assert PlayerConfig.load(path).shuffle_seed is None

    def test_partial_file_uses_defaults(self, tmp_path):
        """Verify missing keys fall back to defaults."""
        path = tmp_path / "config.toml"
        path.write_text("[player]\nvolume = 0.3\n")

        config = PlayerConfig.load(path)

        assert config.volume == 0.3
        assert config.buffer_ms == 500

    def test_load_missing_file(self, tmp_path):
        """Verify loading a missing file raises."""
        with pytest.raises(FileNotFoundError):
            PlayerConfig.load(tmp_path / "missing.toml")


class TestEnsureConfigExists:
    """Tests for ensure_config_exists()."""

    def test_creates_default(self, tmp_path):
        """Verify a default config is written when none exists."""
        path = tmp_path / "podcastr" / "config.toml"
        with patch("podcastr.player.config.get_config_path", return_value=path):
            config = ensure_config_exists()

        assert path.exists()
        assert config.volume == 0.8

    def test_replaces_corrupt_config(self, tmp_path):
        """Verify a corrupt config is replaced with defaults."""
        path = tmp_path / "config.toml"
        path.write_text("[player\nvolume = ")
        with patch("podcastr.player.config.get_config_path", return_value=path):
            config = ensure_config_exists()

        assert config.buffer_ms == 500
        assert PlayerConfig.load(path).buffer_ms == 500


class TestLogging:
    """Tests for session logging."""

    def test_setup_logging_writes_file(self, tmp_path):
        """Verify setup_logging creates the log file with a session banner."""
        logger = setup_logging(tmp_path / "logs")
        get_logger("podcastr.player.state").info("hello")
        for handler in logger.handlers:
            handler.flush()

        content = (tmp_path / "logs" / "podcastr.log").read_text(encoding="utf-8")
        assert "PODCASTR SESSION STARTED" in content
        assert "hello" in content

        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()

    def test_get_logger_namespaces(self):
        """Verify loggers live under the package logger."""
        assert get_logger("state").name == "podcastr.state"
        assert get_logger("podcastr.player.sync").name == "podcastr.player.sync"

    def test_rotation(self, tmp_path):
        """Verify an oversized log is moved aside."""
        log_file = tmp_path / "podcastr.log"
        log_file.write_text("x" * 100)

        _rotate_log_if_needed(log_file, max_bytes=10)

        assert not log_file.exists()
        assert (tmp_path / "podcastr.log.1").exists()

    def test_no_rotation_below_limit(self, tmp_path):
        """Verify a small log is left alone."""
        log_file = tmp_path / "podcastr.log"
        log_file.write_text("x")

        _rotate_log_if_needed(log_file, max_bytes=10)

        assert log_file.exists()
