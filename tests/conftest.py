"""Pytest configuration and shared fixtures."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from depaudit.core.config.settings import GitHubSettings, Settings
from depaudit.models.dependency import Dependency, Ecosystem


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory that is cleaned up after the test.

    Yields:
        Path to the temporary directory.
    """
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def settings() -> Settings:
    """Settings with no GitHub token and default sources.

    Returns:
        Settings instance.
    """
    return Settings(github=GitHubSettings(token=None))


@pytest.fixture
def npm_project(temp_dir: Path) -> Path:
    """Create an npm project with a v3 package-lock.json.

    Args:
        temp_dir: Temporary directory fixture.

    Returns:
        Path to the project directory.
    """
    project = temp_dir / "npm_project"
    project.mkdir()
    (project / "package.json").write_text(
        json.dumps(
            {
                "name": "demo",
                "version": "1.0.0",
                "dependencies": {"lodash": "^4.17.20"},
                "devDependencies": {"jest": "^29.0.0"},
            }
        )
    )
    (project / "package-lock.json").write_text(
        json.dumps(
            {
                "name": "demo",
                "lockfileVersion": 3,
                "packages": {
                    "": {"name": "demo", "version": "1.0.0"},
                    "node_modules/lodash": {"version": "4.17.20"},
                    "node_modules/jest": {"version": "29.7.0", "dev": True},
                },
            }
        )
    )
    return project


@pytest.fixture
def lodash() -> Dependency:
    """A single npm dependency."""
    return Dependency(name="lodash", version="4.17.20", ecosystem=Ecosystem.NPM)

