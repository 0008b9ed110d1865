"""Parser for go.mod require directives."""

from dataclasses import dataclass

from depaudit.core.exceptions.errors import DependencyParseError
from depaudit.models.dependency import Dependency, Ecosystem
from depaudit.parsers.base import DependencyCollector, strip_v_prefix

_BLOCK_DIRECTIVES = ("require", "replace", "exclude", "retract", "tool", "godebug", "ignore")


@dataclass
class Requirement:
    module: str
    version: str
    indirect: bool = False


@dataclass
class Replacement:
    target: str
    version: str | None

    @property
    def is_local(self) -> bool:
        return self.target.startswith(("./", "../", "/")) or self.version is None


def _strip_comment(line: str) -> tuple[str, str]:
    code, sep, comment = line.partition("//")
    return code.strip(), comment.strip() if sep else ""


def _parse_require(body: str, comment: str, lineno: int) -> Requirement:
    fields = body.split()
    if len(fields) != 2:
        raise DependencyParseError(
            f"Invalid go.mod format: malformed require on line {lineno}",
            file_name="go.mod",
        )
    module, version = (f.strip('"') for f in fields)
    indirect = "indirect" in comment.replace(";", " ").split()
    return Requirement(module=module, version=version, indirect=indirect)


def _parse_replace(body: str, lineno: int) -> tuple[str, str | None, Replacement]:
    left, arrow, right = body.partition("=>")
    if not arrow:
        raise DependencyParseError(
            f"Invalid go.mod format: replace without '=>' on line {lineno}",
            file_name="go.mod",
        )
    left_fields = left.split()
    right_fields = right.split()
    if not left_fields or not right_fields:
        raise DependencyParseError(
            f"Invalid go.mod format: malformed replace on line {lineno}",
            file_name="go.mod",
        )
    source_version = left_fields[1] if len(left_fields) > 1 else None
    target_version = right_fields[1] if len(right_fields) > 1 else None
    return left_fields[0], source_version, Replacement(right_fields[0], target_version)


def parse_requirements(
    raw_text: str,
) -> tuple[list[Requirement], dict[tuple[str, str | None], Replacement]]:
    """Read require and replace directives from go.mod text.

    Returns:
        The requirements in file order and the replacements keyed by
        (module, version or None).

    Raises:
        DependencyParseError: On unterminated blocks or malformed directives.
    """
    requirements: list[Requirement] = []
    replacements: dict[tuple[str, str | None], Replacement] = {}
    block: str | None = None
    block_start = 0

    for lineno, raw_line in enumerate(raw_text.splitlines(), start=1):
        body, comment = _strip_comment(raw_line)
        if not body:
            continue

        if block is not None:
            if body == ")":
                block = None
                continue
            if block == "require":
                requirements.append(_parse_require(body, comment, lineno))
            elif block == "replace":
                module, version, target = _parse_replace(body, lineno)
                replacements[(module, version)] = target
            continue

        if body.endswith("(") and body[:-1].strip() in _BLOCK_DIRECTIVES:
            body = f"{body[:-1].strip()} ("
        directive, _, rest = body.partition(" ")
        rest = rest.strip()
        if directive in _BLOCK_DIRECTIVES and rest == "(":
            block = directive
            block_start = lineno
        elif directive in _BLOCK_DIRECTIVES and rest.startswith("(") and rest.endswith(")"):
            continue
        elif directive == "require":
            requirements.append(_parse_require(rest, comment, lineno))
        elif directive == "replace":
            module, version, target = _parse_replace(rest, lineno)
            replacements[(module, version)] = target

    if block is not None:
        raise DependencyParseError(
            f"Invalid go.mod format: '{block} (' block opened on line {block_start} is never closed",
            file_name="go.mod",
        )
    return requirements, replacements


def parse(raw_text: str, include_dev: bool = False) -> list[Dependency]:
    """Parse go.mod text into its required modules.

    Indirect requirements play the role of dev-only entries: they are only
    returned when include_dev is true. Modules replaced by a local directory
    are skipped; modules replaced by another module version are reported
    under the replacement.
    """
    requirements, replacements = parse_requirements(raw_text)
    collector = DependencyCollector(Ecosystem.GO)

    for req in requirements:
        if req.indirect and not include_dev:
            continue
        replacement = replacements.get((req.module, req.version)) or replacements.get(
            (req.module, None)
        )
        if replacement is not None:
            if replacement.is_local:
                continue
            collector.add(replacement.target, strip_v_prefix(replacement.version or ""))
            continue
        collector.add(req.module, strip_v_prefix(req.version))

    return collector.dependencies
