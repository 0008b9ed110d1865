"""Manifest-only parser for package.json.

Only direct dependencies are visible here, so the declared range string is
recorded as the version verbatim.
"""

from typing import Any

from depaudit.core.exceptions.errors import DependencyParseError
from depaudit.models.dependency import Dependency, Ecosystem
from depaudit.parsers.base import DependencyCollector, is_external_spec, load_json

PROD_SECTIONS = ("dependencies", "optionalDependencies")
DEV_SECTIONS = ("devDependencies",)


def _section(data: dict[str, Any], name: str) -> dict[str, str]:
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise DependencyParseError(
            f"Invalid package.json format: '{name}' must be an object",
            file_name="package.json",
        )
    return {str(k): str(v) for k, v in section.items() if isinstance(v, str)}


def package_manager_field(raw_text: str) -> str | None:
    """Return the ``packageManager`` field (e.g. ``pnpm@9.1.0``), if declared."""
    data = load_json(raw_text, "package.json")
    value = data.get("packageManager")
    return value if isinstance(value, str) and value else None


def parse(raw_text: str, include_dev: bool = False) -> list[Dependency]:
    """Parse package.json text into its direct dependencies.

    Raises:
        DependencyParseError: If the JSON is malformed.
    """
    data = load_json(raw_text, "package.json")
    collector = DependencyCollector(Ecosystem.NPM)

    sections = PROD_SECTIONS + (DEV_SECTIONS if include_dev else ())
    for section in sections:
        for name, spec in _section(data, section).items():
            if spec.startswith("npm:"):
                alias_name, _, alias_spec = spec[4:].rpartition("@")
                if alias_name:
                    name, spec = alias_name, alias_spec
            if not is_external_spec(spec):
                continue
            collector.add(name, spec)

    return collector.dependencies
