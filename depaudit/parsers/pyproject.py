"""Manifest-only parser for pyproject.toml (Poetry tables and PEP 621)."""

from typing import Any

from depaudit.core.exceptions.errors import DependencyParseError
from depaudit.models.dependency import Dependency, Ecosystem
from depaudit.parsers.base import DependencyCollector, load_toml
from depaudit.parsers.requirements_txt import normalize_name, parse_requirement

_LOCAL_KEYS = ("path", "git", "url")


def is_poetry_project(raw_text: str) -> bool:
    """Check whether a pyproject.toml declares a Poetry project."""
    if "[tool.poetry" in raw_text:
        return True
    try:
        data = load_toml(raw_text, "pyproject.toml")
    except DependencyParseError:
        return False
    return isinstance(data.get("tool", {}).get("poetry"), dict)


def _poetry_constraint(value: Any) -> str | None:
    """Return the version constraint of a Poetry dependency declaration."""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        if any(key in value for key in _LOCAL_KEYS):
            return None
        version = value.get("version")
        return version if isinstance(version, str) else "*"
    if isinstance(value, list):
        # Multiple-constraint form; the first entry stands in for the rest
        for item in value:
            constraint = _poetry_constraint(item)
            if constraint:
                return constraint
    return None


def _add_poetry_table(table: Any, collector: DependencyCollector) -> None:
    if not isinstance(table, dict):
        return
    for name, value in table.items():
        if name.lower() == "python":
            continue
        constraint = _poetry_constraint(value)
        if constraint:
            collector.add(normalize_name(name), constraint)


def _add_requirement_list(entries: Any, collector: DependencyCollector) -> None:
    if not isinstance(entries, list):
        return
    for entry in entries:
        if not isinstance(entry, str) or "://" in entry or "@" in entry.split(";")[0]:
            continue
        parsed = parse_requirement(entry)
        if parsed:
            collector.add(*parsed)


def parse(raw_text: str, include_dev: bool = False) -> list[Dependency]:
    """Parse pyproject.toml text into its declared dependencies.

    Raises:
        DependencyParseError: If the TOML is malformed.
    """
    data = load_toml(raw_text, "pyproject.toml")
    collector = DependencyCollector(Ecosystem.PYPI)

    poetry = data.get("tool", {}).get("poetry", {})
    project = data.get("project", {})

    groups = poetry.get("group") or {}
    main_group = groups.get("main")

    _add_poetry_table(poetry.get("dependencies"), collector)
    if isinstance(main_group, dict):
        _add_poetry_table(main_group.get("dependencies"), collector)
    _add_requirement_list(project.get("dependencies"), collector)

    if include_dev:
        _add_poetry_table(poetry.get("dev-dependencies"), collector)
        for group_name, group in groups.items():
            if group_name != "main" and isinstance(group, dict):
                _add_poetry_table(group.get("dependencies"), collector)
        for entries in (project.get("optional-dependencies") or {}).values():
            _add_requirement_list(entries, collector)
        for entries in (data.get("dependency-groups") or {}).values():
            _add_requirement_list(entries, collector)

    return collector.dependencies
