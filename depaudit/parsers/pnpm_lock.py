"""Parser for pnpm-lock.yaml (lockfile formats 5.x, 6.x and 9.x).

Package keys changed shape between formats:

* 5.x: ``/name/1.0.0`` and ``/@scope/name/1.0.0_peer@2.0.0``
* 6.x: ``/name@1.0.0(peer@2.0.0)``
* 9.x: ``name@1.0.0`` with peer qualifiers moved to ``snapshots``

5.x and 6.x flag dev-only packages with ``dev: true``. 9.x dropped the
flag, so the production set is recomputed by walking ``snapshots`` from the
non-dev dependencies of every importer.
"""

from collections import deque
from typing import Any

from depaudit.models.dependency import Dependency, Ecosystem
from depaudit.parsers.base import (
    DependencyCollector,
    is_external_spec,
    load_yaml,
)

_PROD_SECTIONS = ("dependencies", "optionalDependencies")


def lockfile_version(data: dict[str, Any]) -> float:
    raw = data.get("lockfileVersion", 9)
    try:
        return float(str(raw).strip("'\""))
    except ValueError:
        return 9.0


def strip_peer_suffix(spec: str) -> str:
    """Remove a ``(peer@x)`` qualifier from a key or version."""
    paren = spec.find("(")
    return spec[:paren] if paren != -1 else spec


def parse_package_key(key: str, version_hint: float) -> tuple[str, str] | None:
    """Split a ``packages`` key into (name, version).

    Args:
        key: The raw key.
        version_hint: Lockfile format version; below 6 uses slash-separated keys.

    Returns:
        The (name, version) pair, or None if the key cannot be split.
    """
    spec = key[1:] if key.startswith("/") else key
    spec = strip_peer_suffix(spec)

    if version_hint < 6:
        name, _, version = spec.rpartition("/")
        underscore = version.find("_")
        if underscore != -1:
            version = version[:underscore]
    else:
        at = spec.rfind("@")
        if at <= 0:
            return None
        name, version = spec[:at], spec[at + 1:]

    if not name or not version:
        return None
    return name, version


def _is_local_or_vcs(key: str, entry: dict[str, Any]) -> bool:
    if any(marker in key for marker in ("workspace:", "link:", "file:")):
        return True
    resolution = entry.get("resolution")
    if isinstance(resolution, dict):
        if "directory" in resolution or resolution.get("type") == "git":
            return True
        tarball = resolution.get("tarball")
        if isinstance(tarball, str) and tarball.startswith("file:"):
            return True
    return False


def _prod_snapshot_keys(data: dict[str, Any]) -> set[str] | None:
    """Peer-stripped keys reachable from importers' production dependencies."""
    importers = data.get("importers")
    snapshots = data.get("snapshots")
    if not isinstance(importers, dict) or not isinstance(snapshots, dict):
        return None

    def resolve(name: str, ref: Any) -> str | None:
        if not isinstance(ref, str):
            return None
        if f"{name}@{ref}" in snapshots:
            return f"{name}@{ref}"
        if ref in snapshots:
            # npm alias, e.g. "string-width-cjs: string-width@4.2.3"
            return ref
        return None

    queue: deque[str] = deque()
    for importer in importers.values():
        if not isinstance(importer, dict):
            continue
        for section in _PROD_SECTIONS:
            for name, info in (importer.get(section) or {}).items():
                ref = info.get("version") if isinstance(info, dict) else info
                snapshot_key = resolve(name, ref)
                if snapshot_key:
                    queue.append(snapshot_key)

    visited: set[str] = set()
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        snapshot = snapshots.get(current) or {}
        for section in _PROD_SECTIONS:
            for name, ref in (snapshot.get(section) or {}).items():
                snapshot_key = resolve(name, ref)
                if snapshot_key and snapshot_key not in visited:
                    queue.append(snapshot_key)

    return {strip_peer_suffix(k) for k in visited}


def parse(raw_text: str, include_dev: bool = False) -> list[Dependency]:
    """Parse pnpm-lock.yaml text into dependencies.

    Raises:
        DependencyParseError: If the YAML is malformed.
    """
    data = load_yaml(raw_text, "pnpm-lock.yaml")
    collector = DependencyCollector(Ecosystem.NPM)

    packages = data.get("packages")
    if not isinstance(packages, dict):
        return collector.dependencies

    version_hint = lockfile_version(data)
    prod_keys: set[str] | None = None
    if not include_dev and version_hint >= 9:
        prod_keys = _prod_snapshot_keys(data)

    for key, entry in packages.items():
        key = str(key)
        entry = entry if isinstance(entry, dict) else {}

        if entry.get("dev") is True and not include_dev:
            continue
        if _is_local_or_vcs(key, entry):
            continue
        if prod_keys is not None and strip_peer_suffix(key.lstrip("/")) not in prod_keys:
            continue

        parsed = parse_package_key(key, version_hint)
        if parsed is None:
            continue
        name, version = parsed
        name = entry.get("name") or name

        # Non-registry packages keep their real version in the entry body
        recorded = entry.get("version")
        if isinstance(recorded, str) and recorded:
            version = recorded
        if "catalog:" in version or not is_external_spec(version):
            continue

        collector.add(name, version)

    return collector.dependencies
