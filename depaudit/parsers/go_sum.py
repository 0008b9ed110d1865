"""Parser for go.sum checksum files."""

from depaudit.core.exceptions.errors import DependencyParseError
from depaudit.models.dependency import Dependency, Ecosystem
from depaudit.parsers.base import DependencyCollector, strip_v_prefix


def parse(raw_text: str, include_dev: bool = False) -> list[Dependency]:
    """Parse go.sum text into module versions.

    Each line is ``<module> <version>[/go.mod] h1:<hash>``. The ``/go.mod``
    lines only checksum a module's go.mod file and are skipped. go.sum has no
    notion of dev dependencies, so include_dev has no effect.

    Raises:
        DependencyParseError: If a line does not have the three expected fields.
    """
    collector = DependencyCollector(Ecosystem.GO)

    for lineno, line in enumerate(raw_text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        fields = line.split()
        if len(fields) != 3 or not fields[2].startswith("h1:"):
            raise DependencyParseError(
                f"Invalid go.sum format on line {lineno}: expected '<module> <version> h1:<hash>'",
                file_name="go.sum",
            )
        module, version, _ = fields
        if version.endswith("/go.mod"):
            continue
        collector.add(module, strip_v_prefix(version))

    return collector.dependencies
