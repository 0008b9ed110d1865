"""Configuration management for depaudit."""

import os
import shutil
import subprocess

from depaudit.core.config.loader import ConfigLoader
from depaudit.core.config.settings import (
    GitHubSettings,
    LoggingSettings,
    OSVSettings,
    RetrySettings,
    ScanSettings,
    Settings,
    get_settings,
)

# Lazy logger to avoid circular import
_logger = None


def _get_logger():
    global _logger
    if _logger is None:
        from depaudit.core.logger.logger import get_logger
        _logger = get_logger(__name__)
    return _logger


def get_github_token(settings: Settings | None = None) -> str | None:
    """Get a GitHub token for the advisory GraphQL API.

    Priority:
    1. GITHUB_TOKEN environment variable
    2. Settings (DEPAUDIT_GITHUB_TOKEN or the YAML github.token key)
    3. `gh auth token`, when the GitHub CLI is installed and logged in

    Args:
        settings: Settings to consult. Uses global settings if not provided.

    Returns:
        GitHub token or None.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token.strip()

    if settings is None:
        settings = get_settings()
    if settings.github.token:
        return settings.github.token.strip()

    return _token_from_gh_cli()


def _token_from_gh_cli() -> str | None:
    if shutil.which("gh") is None:
        return None
    try:
        completed = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=10,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        _get_logger().debug(f"gh auth token failed: {e}")
        return None

    token = completed.stdout.strip()
    if completed.returncode != 0 or not token:
        _get_logger().debug("gh CLI is installed but not authenticated")
        return None
    return token


__all__ = [
    "ConfigLoader",
    "Settings",
    "ScanSettings",
    "OSVSettings",
    "GitHubSettings",
    "RetrySettings",
    "LoggingSettings",
    "get_settings",
    "get_github_token",
]
