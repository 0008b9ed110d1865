"""Parser for poetry.lock."""

from typing import Any

from depaudit.models.dependency import Dependency, Ecosystem
from depaudit.parsers.base import DependencyCollector, load_toml
from depaudit.parsers.requirements_txt import normalize_name

_NON_REGISTRY_SOURCES = {"git", "directory", "file", "url"}


def _is_dev(package: dict[str, Any]) -> bool:
    # Poetry < 1.5 writes category = "dev"; later versions write groups.
    if package.get("category") == "dev":
        return True
    groups = package.get("groups")
    if isinstance(groups, list) and groups:
        return "main" not in groups
    return False


def parse(raw_text: str, include_dev: bool = False) -> list[Dependency]:
    """Parse poetry.lock text into locked packages.

    Raises:
        DependencyParseError: If the TOML is malformed.
    """
    data = load_toml(raw_text, "poetry.lock")
    collector = DependencyCollector(Ecosystem.PYPI)

    for package in data.get("package", []):
        if not isinstance(package, dict):
            continue
        source = package.get("source")
        if isinstance(source, dict) and source.get("type") in _NON_REGISTRY_SOURCES:
            continue
        if _is_dev(package) and not include_dev:
            continue
        name = package.get("name")
        version = package.get("version")
        if isinstance(name, str) and isinstance(version, str):
            collector.add(normalize_name(name), version)

    return collector.dependencies
