"""Tests for claudx init."""

import tomllib

from claudx.config import ClaudxConfig
from claudx.init import DEFAULT_CONFIG, init_config


class TestInitConfig:
    """Tests for writing the starter config."""

    def test_creates_config(self, tmp_path):
        """Test the config file is written under .claudx."""
        success, message = init_config(tmp_path)

        config_path = tmp_path / ".claudx" / "config.toml"
        assert success
        assert str(config_path) in message
        assert config_path.read_text() == DEFAULT_CONFIG

    def test_default_config_is_loadable(self, tmp_path):
        """Test the starter config parses to a single SQLite destination."""
        init_config(tmp_path)

        config = ClaudxConfig.load(tmp_path / ".claudx" / "config.toml")

        assert [d.type for d in config.destinations] == ["sqlite"]
        assert tomllib.loads(DEFAULT_CONFIG)["destinations"] == [{"type": "sqlite"}]

    def test_refuses_to_overwrite(self, tmp_path):
        """Test an existing config is kept without --force."""
        config_path = tmp_path / ".claudx" / "config.toml"
        config_path.parent.mkdir()
        config_path.write_text("# mine\n")

        success, message = init_config(tmp_path)

        assert not success
        assert "Already initialized" in message
        assert config_path.read_text() == "# mine\n"

    def test_force_overwrites(self, tmp_path):
        """Test --force replaces an existing config."""
        config_path = tmp_path / ".claudx" / "config.toml"
        config_path.parent.mkdir()
        config_path.write_text("# mine\n")

        success, _ = init_config(tmp_path, force=True)

        assert success
        assert config_path.read_text() == DEFAULT_CONFIG

    def test_not_a_directory(self, tmp_path):
        """Test a missing directory is reported."""
        success, message = init_config(tmp_path / "missing")

        assert not success
        assert "Not a directory" in message

    def test_defaults_to_home(self, tmp_path, monkeypatch):
        """Test the home directory is used when none is given."""
        monkeypatch.setenv("HOME", str(tmp_path))

        success, _ = init_config()

        assert success
        assert (tmp_path / ".claudx" / "config.toml").exists()
