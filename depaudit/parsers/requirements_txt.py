"""Parser for pip requirements.txt files."""

import re

from depaudit.core.exceptions.errors import DependencyParseError
from depaudit.models.dependency import Dependency, Ecosystem
from depaudit.parsers.base import DependencyCollector

REQUIREMENT_PATTERN = re.compile(
    r"^(?P<name>[A-Za-z0-9][A-Za-z0-9._-]*)"
    r"\s*(?P<extras>\[[^\]]*\])?"
    r"\s*(?P<spec>(?:[<>=!~]=?|===)[^;]*)?"
    r"\s*$"
)
EXACT_PATTERN = re.compile(r"^===?\s*(?P<version>[A-Za-z0-9][A-Za-z0-9.+!_-]*)$")
_HASH_OPTION = re.compile(r"\s--hash[=\s]\S+")
_INLINE_COMMENT = re.compile(r"(^|\s)#.*$")


def normalize_name(name: str) -> str:
    """Normalize a distribution name the way PyPI does (PEP 503)."""
    return re.sub(r"[-_.]+", "-", name).lower()


def _logical_lines(raw_text: str) -> list[tuple[int, str]]:
    lines: list[tuple[int, str]] = []
    buffer = ""
    start = 0
    for lineno, raw_line in enumerate(raw_text.splitlines(), start=1):
        if not buffer:
            start = lineno
        line = _INLINE_COMMENT.sub("", raw_line).rstrip()
        if line.endswith("\\"):
            buffer += line[:-1] + " "
            continue
        buffer += line
        lines.append((start, buffer.strip()))
        buffer = ""
    if buffer.strip():
        lines.append((start, buffer.strip()))
    return lines


def _is_skipped(line: str) -> bool:
    if line.startswith("-"):
        return True
    if "://" in line or line.startswith(("./", "../", "/", "file:", "~")):
        return True
    # PEP 508 direct reference: "name @ https://..."
    return bool(re.match(r"^[A-Za-z0-9._-]+(\[[^\]]*\])?\s*@", line))


def parse_requirement(line: str) -> tuple[str, str] | None:
    """Parse one requirement specifier into (normalized name, version).

    The version is the pinned version for ``==``/``===`` pins, otherwise the
    specifier text verbatim, or ``*`` when unconstrained.

    Returns:
        The pair, or None if the line is not a requirement specifier.
    """
    line = line.split(";", 1)[0].strip()
    match = REQUIREMENT_PATTERN.match(line)
    if not match:
        return None
    name = normalize_name(match.group("name"))
    spec = re.sub(r"\s+", "", match.group("spec") or "")
    exact = EXACT_PATTERN.match(spec) if "," not in spec else None
    if exact and "*" not in spec:
        return name, exact.group("version")
    return name, spec or "*"


def parse(raw_text: str, include_dev: bool = False) -> list[Dependency]:
    """Parse requirements.txt text into dependencies.

    Options (``-r``, ``-e``, ``--index-url``), URLs, local paths and direct
    references are skipped. requirements.txt has no dev section, so
    include_dev has no effect.

    Raises:
        DependencyParseError: If a line is not a valid requirement specifier.
    """
    collector = DependencyCollector(Ecosystem.PYPI)

    for lineno, line in _logical_lines(raw_text):
        line = _HASH_OPTION.sub("", f" {line}").strip()
        if not line or _is_skipped(line):
            continue
        parsed = parse_requirement(line)
        if parsed is None:
            raise DependencyParseError(
                f"Invalid requirements.txt format on line {lineno}: {line!r}",
                file_name="requirements.txt",
            )
        collector.add(*parsed)

    return collector.dependencies
