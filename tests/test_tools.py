"""Tests for the tools module."""

from pathlib import Path

import yaml

from textclient import tools
from textclient.config import get_bot_settings


class TestSampleConfig:
    """Test the bundled sample config."""

    def test_open_sample_config(self):
        """The bundled file is reachable as a real path."""
        with tools.open_sample_config() as path:
            assert path.name == "sample_config.yaml"
            assert path.is_file()

    def test_sample_config_content(self):
        """The sample parses and documents every section."""
        with tools.open_sample_config() as path:
            config = yaml.safe_load(path.read_text())

        assert set(config) == {"matrix", "bot", "logging"}
        assert config["matrix"]["user_id"].startswith("@")
        assert "password" not in config["matrix"]
        settings = get_bot_settings(config)
        assert (settings.command, settings.response) == ("ping", "pong!")


class TestCopySampleConfig:
    """Test copying the sample config."""

    def test_copy_to_file(self, tmp_path):
        """A file target is written as given, creating parents."""
        target = tmp_path / "a" / "b" / "my.yaml"

        written = tools.copy_sample_config_to(str(target))

        assert Path(written) == target
        assert target.is_file()

    def test_copy_to_directory(self, tmp_path):
        """A directory target gets the sample's file name."""
        written = tools.copy_sample_config_to(str(tmp_path))

        assert Path(written) == tmp_path / "sample_config.yaml"
        assert Path(written).is_file()
