"""Tests for settings, the YAML loader and GitHub token discovery."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from depaudit.core.config import ConfigLoader, get_github_token
from depaudit.core.config.settings import GitHubSettings, LoggingSettings, Settings
from depaudit.core.exceptions.errors import ConfigurationError


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self) -> None:
        """Test default values."""
        settings = Settings()

        assert settings.osv.api_url == "https://api.osv.dev/v1"
        assert settings.osv.batch_size == 50
        assert settings.retry.retries == 3
        assert settings.retry.max_delay == 30.0
        assert settings.scan.ignore_file_name == ".vuln-ignore.json"

    def test_from_yaml(self, temp_dir: Path) -> None:
        """Test loading sections from YAML."""
        path = temp_dir / "depaudit.yaml"
        path.write_text(
            "osv:\n  batch_size: 20\n"
            "retry:\n  retries: 1\n  timeout: 5\n"
            "logging:\n  level: debug\n"
        )

        settings = Settings.from_yaml(path)

        assert settings.osv.batch_size == 20
        assert settings.retry.retries == 1
        assert settings.retry.timeout == 5.0
        assert settings.logging.level == "DEBUG"
        assert settings.scan.concurrency == 10

    def test_from_yaml_invalid_value(self, temp_dir: Path) -> None:
        """Test that out-of-range values raise ConfigurationError."""
        path = temp_dir / "depaudit.yaml"
        path.write_text("osv:\n  batch_size: 0\n")

        with pytest.raises(ConfigurationError):
            Settings.from_yaml(path)

    def test_load_prefers_project_file(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that Settings.load reads depaudit.yaml from the working directory."""
        (temp_dir / "depaudit.yaml").write_text("scan:\n  include_dev: true\n")
        monkeypatch.chdir(temp_dir)

        assert Settings.load().scan.include_dev is True

    def test_invalid_log_level(self) -> None:
        """Test log level validation."""
        with pytest.raises(ValueError):
            LoggingSettings(level="LOUD")


class TestConfigLoader:
    """Tests for ConfigLoader."""

    def test_dot_notation(self, temp_dir: Path) -> None:
        """Test nested key lookup."""
        path = temp_dir / "c.yaml"
        path.write_text("osv:\n  batch_size: 25\n")
        loader = ConfigLoader(path)
        loader.load()

        assert loader.get("osv.batch_size") == 25
        assert loader.get("osv.missing", "x") == "x"
        assert loader.get_section("github") == {}

    def test_missing_file(self, temp_dir: Path) -> None:
        """Test that a missing file raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            ConfigLoader(temp_dir / "nope.yaml").load()

    def test_invalid_yaml(self, temp_dir: Path) -> None:
        """Test that malformed YAML raises ConfigurationError."""
        path = temp_dir / "c.yaml"
        path.write_text("osv: [unclosed\n")

        with pytest.raises(ConfigurationError):
            ConfigLoader(path).load()

    def test_non_mapping(self, temp_dir: Path) -> None:
        """Test that a top-level list is rejected."""
        path = temp_dir / "c.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            ConfigLoader(path).load()

    def test_empty_file(self, temp_dir: Path) -> None:
        """Test that an empty file loads as no settings."""
        path = temp_dir / "c.yaml"
        path.write_text("")

        assert ConfigLoader(path).load() == {}


class TestGetGithubToken:
    """Tests for get_github_token."""

    def test_environment_first(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that GITHUB_TOKEN wins over settings."""
        monkeypatch.setenv("GITHUB_TOKEN", " env-token \n")
        settings = Settings(github=GitHubSettings(token="settings-token"))

        assert get_github_token(settings) == "env-token"

    def test_settings_second(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the configured token when the environment has none."""
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        settings = Settings(github=GitHubSettings(token="settings-token"))

        assert get_github_token(settings) == "settings-token"

    @patch("depaudit.core.config.subprocess.run")
    @patch("depaudit.core.config.shutil.which", return_value="/usr/bin/gh")
    def test_gh_cli_last(
        self,
        mock_which: MagicMock,
        mock_run: MagicMock,
        settings: Settings,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test falling back to `gh auth token`."""
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mock_run.return_value = MagicMock(returncode=0, stdout="gho_fromcli\n")

        assert get_github_token(settings) == "gho_fromcli"
        assert mock_run.call_args.args[0] == ["gh", "auth", "token"]

    @patch("depaudit.core.config.subprocess.run")
    @patch("depaudit.core.config.shutil.which", return_value="/usr/bin/gh")
    def test_gh_cli_not_logged_in(
        self,
        mock_which: MagicMock,
        mock_run: MagicMock,
        settings: Settings,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that an unauthenticated gh CLI gives no token."""
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mock_run.return_value = MagicMock(returncode=1, stdout="")

        assert get_github_token(settings) is None

    @patch("depaudit.core.config.subprocess.run")
    @patch("depaudit.core.config.shutil.which", return_value="/usr/bin/gh")
    def test_gh_cli_timeout(
        self,
        mock_which: MagicMock,
        mock_run: MagicMock,
        settings: Settings,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that a hanging gh CLI gives no token."""
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mock_run.side_effect = subprocess.TimeoutExpired(["gh"], 10)

        assert get_github_token(settings) is None

    @patch("depaudit.core.config.shutil.which", return_value=None)
    def test_no_token_anywhere(
        self, mock_which: MagicMock, settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that no source gives None."""
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

        assert get_github_token(settings) is None
