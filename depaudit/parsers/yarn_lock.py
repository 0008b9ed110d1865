"""Parser for yarn.lock, both classic (v1) and berry (v2+) formats.

Classic lock files use yarn's own indentation grammar; berry lock files
are YAML with a ``__metadata`` block. Neither records which packages are
dev-only, so every locked registry package is reported.
"""

from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote

from depaudit.core.exceptions.errors import DependencyParseError
from depaudit.models.dependency import Dependency, Ecosystem
from depaudit.parsers.base import (
    DependencyCollector,
    is_external_spec,
    is_local_spec,
    is_vcs_spec,
    load_yaml,
)

BERRY_MARKER = "__metadata:"

_NON_REGISTRY_PROTOCOLS = ("workspace:", "file:", "link:", "portal:", "exec:", "git", "github:", "http")


@dataclass
class LockEntry:
    """One resolved block of a yarn.lock file."""

    descriptors: list[str]
    name: str
    version: str
    external: bool = True


def is_berry(raw_text: str) -> bool:
    return BERRY_MARKER in raw_text


def split_descriptor(descriptor: str) -> tuple[str, str]:
    """Split ``name@range`` (scoped names included) into its two parts."""
    descriptor = descriptor.strip().strip('"')
    at = descriptor.find("@", 1)
    if at == -1:
        return descriptor, ""
    return descriptor[:at], descriptor[at + 1:]


def _split_header(header: str, lineno: int) -> list[str]:
    descriptors: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in header:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            descriptors.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    if in_quotes:
        raise DependencyParseError(
            f"Invalid yarn.lock format: unterminated quote on line {lineno}",
            file_name="yarn.lock",
        )
    descriptors.append("".join(current).strip())
    return [d.strip('"') for d in descriptors if d]


def _split_key_value(text: str, lineno: int) -> tuple[str, str]:
    if text.startswith('"'):
        end = text.find('"', 1)
        if end == -1:
            raise DependencyParseError(
                f"Invalid yarn.lock format: unterminated quote on line {lineno}",
                file_name="yarn.lock",
            )
        key, rest = text[1:end], text[end + 1:]
    else:
        key, _, rest = text.partition(" ")
    value = rest.strip()
    if value.startswith('"') and value.endswith('"') and len(value) >= 2:
        value = value[1:-1]
    return key, value


def _parse_classic_blocks(raw_text: str) -> list[tuple[list[str], dict[str, Any]]]:
    blocks: list[tuple[list[str], dict[str, Any]]] = []
    fields: dict[str, Any] | None = None
    section: dict[str, str] | None = None

    for lineno, raw_line in enumerate(raw_text.splitlines(), start=1):
        if not raw_line.strip() or raw_line.lstrip().startswith("#"):
            continue
        indent = len(raw_line) - len(raw_line.lstrip(" "))
        line = raw_line.strip()

        if indent == 0:
            if not line.endswith(":"):
                raise DependencyParseError(
                    f"Invalid yarn.lock format: unexpected text on line {lineno}",
                    file_name="yarn.lock",
                )
            fields = {}
            section = None
            blocks.append((_split_header(line[:-1], lineno), fields))
        elif fields is None:
            raise DependencyParseError(
                f"Invalid yarn.lock format: indented entry before any package on line {lineno}",
                file_name="yarn.lock",
            )
        elif indent <= 2:
            if line.endswith(":"):
                section = {}
                fields[line[:-1].strip('"')] = section
            else:
                section = None
                key, value = _split_key_value(line, lineno)
                fields[key] = value
        else:
            if section is None:
                raise DependencyParseError(
                    f"Invalid yarn.lock format: unexpected nesting on line {lineno}",
                    file_name="yarn.lock",
                )
            key, value = _split_key_value(line, lineno)
            section[key] = value

    return blocks


def _classic_entries(raw_text: str) -> list[LockEntry]:
    entries: list[LockEntry] = []
    for descriptors, fields in _parse_classic_blocks(raw_text):
        if not descriptors:
            continue
        version = fields.get("version")
        if not isinstance(version, str) or not version:
            continue
        name, spec = split_descriptor(descriptors[0])
        if spec.startswith("npm:"):
            # Aliased install: "alias@npm:real-name@^1.0.0"
            name, _ = split_descriptor(spec[4:])
        resolved = fields.get("resolved", "")
        external = is_external_spec(spec) or spec.startswith("npm:")
        if isinstance(resolved, str) and (is_local_spec(resolved) or is_vcs_spec(resolved)):
            external = False
        entries.append(
            LockEntry(
                descriptors=descriptors,
                name=name,
                version=version,
                external=external,
            )
        )
    return entries


def _berry_entries(raw_text: str) -> list[LockEntry]:
    data = load_yaml(raw_text, "yarn.lock")
    entries: list[LockEntry] = []
    for key, fields in data.items():
        if key == "__metadata" or not isinstance(fields, dict):
            continue
        descriptors = [d.strip() for d in str(key).split(",") if d.strip()]
        resolution = str(fields.get("resolution") or descriptors[0])
        name, reference = split_descriptor(resolution)
        version = str(fields.get("version") or "")
        external = True

        if reference.startswith("patch:"):
            # "resolve@patch:resolve@npm%3A1.22.1#~builtin<compat/resolve>::..."
            inner = unquote(reference[len("patch:"):].split("#", 1)[0])
            inner_name, inner_ref = split_descriptor(inner)
            name = inner_name or name
            external = inner_ref.startswith("npm:")
        elif reference.startswith("npm:"):
            pass
        elif reference.startswith(_NON_REGISTRY_PROTOCOLS) or "://" in reference:
            external = False

        if not version or version == "0.0.0-use.local":
            external = False
        entries.append(
            LockEntry(
                descriptors=descriptors,
                name=name,
                version=version,
                external=external,
            )
        )
    return entries


def parse(raw_text: str, include_dev: bool = False) -> list[Dependency]:
    """Parse yarn.lock text (classic or berry) into dependencies.

    The lock file has no dev flag, so include_dev does not change the result.

    Args:
        raw_text: File contents.
        include_dev: Accepted for a uniform parser signature.

    Returns:
        Ordered, deduplicated dependencies.

    Raises:
        DependencyParseError: If the file is syntactically invalid.
    """
    entries = _berry_entries(raw_text) if is_berry(raw_text) else _classic_entries(raw_text)

    collector = DependencyCollector(Ecosystem.NPM)
    for entry in entries:
        if not entry.external:
            continue
        collector.add(entry.name, entry.version)
    return collector.dependencies
