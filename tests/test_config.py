"""Tests for configuration loading."""

from pathlib import Path

import pytest

from thread_sharing.config import Config, expand_env_var, load_config


class TestExpandEnvVar:
    """Tests for expand_env_var function."""

    def test_expands_braced_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should substitute ${VAR} with the environment value."""
        monkeypatch.setenv("THREAD_SHARING_TEST_KEY", "secret")
        assert expand_env_var("${THREAD_SHARING_TEST_KEY}") == "secret"

    def test_unset_variable_is_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should give an empty string for unset variables."""
        monkeypatch.delenv("THREAD_SHARING_MISSING", raising=False)
        assert expand_env_var("${THREAD_SHARING_MISSING}") == ""

    def test_plain_value_unchanged(self) -> None:
        """Should leave plain strings untouched."""
        assert expand_env_var("plain") == "plain"


class TestLoadConfig:
    """Tests for load_config function."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        """Should return defaults when the config file does not exist."""
        config = load_config(tmp_path / "missing.yaml")

        assert isinstance(config, Config)
        assert config.sharing.debounce_seconds == 5.0
        assert config.sharing.date_epsilon_seconds == 60
        assert config.api.timeout_seconds == 30.0

    def test_loads_all_sections(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should parse identity, api, store and sharing sections."""
        monkeypatch.setenv("THREAD_SHARING_API_KEY", "abc123")
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            f"""
identity:
  id: user-1
  first_name: Ada
  last_name: Lovelace
  email: ada@example.com
api:
  base_url: https://api.example.com/
  share_url_base: https://share.example.com
  api_key: ${{THREAD_SHARING_API_KEY}}
  timeout_seconds: 10
store:
  db_path: {tmp_path}/mail.db
  attachments_path: {tmp_path}/files
sharing:
  debounce_seconds: 2
  date_epsilon_seconds: 30
  poll_interval_seconds: 0.5
"""
        )

        config = load_config(config_path)

        assert config.identity.id == "user-1"
        assert config.identity.first_name == "Ada"
        assert config.identity.email_address == "ada@example.com"
        assert config.api.base_url == "https://api.example.com"
        assert config.api.share_url_base == "https://share.example.com"
        assert config.api.api_key == "abc123"
        assert config.api.timeout_seconds == 10.0
        assert config.store.db_path == tmp_path / "mail.db"
        assert config.store.attachments_path == tmp_path / "files"
        assert config.sharing.debounce_seconds == 2.0
        assert config.sharing.date_epsilon_seconds == 30
        assert config.sharing.poll_interval_seconds == 0.5

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        """Should tolerate an empty YAML document."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("")

        config = load_config(config_path)

        assert config.identity.id == ""
        assert config.sharing.debounce_seconds == 5.0
