"""Parser for npm package-lock.json and npm-shrinkwrap.json.

lockfileVersion 2 and 3 record a flat ``packages`` map keyed by install
path ("node_modules/a/node_modules/@scope/b"). Version 1 only has the nested
``dependencies`` tree, which version 2 also keeps for backwards
compatibility; the flat map wins when both are present.
"""

from typing import Any

from depaudit.models.dependency import Dependency, Ecosystem
from depaudit.parsers.base import (
    DependencyCollector,
    is_external_spec,
    is_local_spec,
    is_vcs_spec,
    load_json,
)

_NODE_MODULES = "node_modules/"


def package_name_from_path(path: str) -> str | None:
    """Extract the package name from a ``packages`` key.

    Returns None for keys outside node_modules (root and workspace folders).
    """
    idx = path.rfind(_NODE_MODULES)
    if idx == -1:
        return None
    name = path[idx + len(_NODE_MODULES):]
    return name or None


def _is_dev(entry: dict[str, Any]) -> bool:
    return bool(entry.get("dev") or entry.get("devOptional"))


def _parse_packages(
    packages: dict[str, Any], include_dev: bool, collector: DependencyCollector
) -> None:
    for path, entry in packages.items():
        if not path or not isinstance(entry, dict):
            continue
        if entry.get("link"):
            continue
        name = package_name_from_path(path)
        if name is None:
            continue
        if _is_dev(entry) and not include_dev:
            continue
        resolved = entry.get("resolved")
        if isinstance(resolved, str) and (is_local_spec(resolved) or is_vcs_spec(resolved)):
            continue
        version = entry.get("version")
        if not isinstance(version, str) or not is_external_spec(version):
            continue
        collector.add(entry.get("name") if _is_alias(entry, name) else name, version)


def _is_alias(entry: dict[str, Any], install_name: str) -> bool:
    # "node_modules/foo" installed from "npm:bar@1.0.0" records name "bar"
    real_name = entry.get("name")
    return isinstance(real_name, str) and bool(real_name) and real_name != install_name


def _walk_tree(
    tree: dict[str, Any], include_dev: bool, collector: DependencyCollector
) -> None:
    for name, entry in tree.items():
        if not isinstance(entry, dict):
            continue
        version = entry.get("version")
        skip = _is_dev(entry) and not include_dev
        if not skip and isinstance(version, str) and is_external_spec(version):
            if version.startswith("npm:"):
                alias_name, _, alias_version = version[4:].rpartition("@")
                collector.add(alias_name, alias_version)
            else:
                collector.add(name, version)
        nested = entry.get("dependencies")
        if isinstance(nested, dict) and not skip:
            _walk_tree(nested, include_dev, collector)


def parse(raw_text: str, include_dev: bool = False) -> list[Dependency]:
    """Parse package-lock.json text into dependencies.

    Args:
        raw_text: File contents.
        include_dev: Include entries flagged ``dev`` / ``devOptional``.

    Returns:
        Ordered, deduplicated dependencies.

    Raises:
        DependencyParseError: If the text is not a JSON object.
    """
    data = load_json(raw_text, "package-lock.json")
    collector = DependencyCollector(Ecosystem.NPM)

    packages = data.get("packages")
    if isinstance(packages, dict) and packages:
        _parse_packages(packages, include_dev, collector)
    else:
        tree = data.get("dependencies")
        if isinstance(tree, dict):
            _walk_tree(tree, include_dev, collector)

    return collector.dependencies
