"""Shared helpers for lock-file and manifest parsers."""

import json
import tomllib
from typing import Any

import yaml

from depaudit.core.exceptions.errors import DependencyParseError
from depaudit.models.dependency import Dependency, Ecosystem

LOCAL_PREFIXES = (
    "file:",
    "link:",
    "workspace:",
    "portal:",
    "git+file:",
    "./",
    "../",
    "/",
    "~/",
)

VCS_PREFIXES = (
    "git:",
    "git+",
    "git@",
    "github:",
    "gitlab:",
    "bitbucket:",
    "hg+",
    "svn+",
    "bzr+",
)


def is_local_spec(spec: str) -> bool:
    """Check if a version spec points at a local path or workspace package."""
    return spec.strip().startswith(LOCAL_PREFIXES)


def is_vcs_spec(spec: str) -> bool:
    """Check if a version spec points at a version-control source."""
    return spec.strip().startswith(VCS_PREFIXES)


def is_url_spec(spec: str) -> bool:
    return "://" in spec


def is_external_spec(spec: str) -> bool:
    """True when a spec names a registry version rather than a local or VCS source."""
    return not (is_local_spec(spec) or is_vcs_spec(spec) or is_url_spec(spec))


class DependencyCollector:
    """Ordered, (name, version)-deduplicated accumulator used by every parser."""

    def __init__(self, ecosystem: Ecosystem) -> None:
        self.ecosystem = ecosystem
        self._seen: set[tuple[str, str]] = set()
        self._deps: list[Dependency] = []

    def add(self, name: str, version: str) -> None:
        name = name.strip()
        version = version.strip()
        if not name or not version:
            return
        key = (name, version)
        if key in self._seen:
            return
        self._seen.add(key)
        self._deps.append(Dependency(name=name, version=version, ecosystem=self.ecosystem))

    @property
    def dependencies(self) -> list[Dependency]:
        return list(self._deps)


def load_json(raw_text: str, file_name: str) -> dict[str, Any]:
    """Parse JSON text that must hold an object."""
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError as e:
        raise DependencyParseError(
            f"Invalid {file_name} format: {e.msg} (line {e.lineno})",
            file_name=file_name,
        ) from e
    if not isinstance(data, dict):
        raise DependencyParseError(
            f"Invalid {file_name} format: expected a JSON object",
            file_name=file_name,
        )
    return data


def load_yaml(raw_text: str, file_name: str) -> dict[str, Any]:
    """Parse YAML text that must hold a mapping (an empty document is allowed)."""
    try:
        data = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise DependencyParseError(
            f"Invalid {file_name} format: {e}",
            file_name=file_name,
        ) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DependencyParseError(
            f"Invalid {file_name} format: expected a mapping at the top level",
            file_name=file_name,
        )
    return data


def load_toml(raw_text: str, file_name: str) -> dict[str, Any]:
    """Parse TOML text."""
    try:
        return tomllib.loads(raw_text)
    except tomllib.TOMLDecodeError as e:
        raise DependencyParseError(
            f"Invalid {file_name} format: {e}",
            file_name=file_name,
        ) from e


def strip_v_prefix(version: str) -> str:
    """Drop the leading 'v' that Go module versions carry."""
    if version.startswith("v") and len(version) > 1 and version[1].isdigit():
        return version[1:]
    return version
