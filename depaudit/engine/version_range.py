"""Version-in-range checks for advisory ranges."""

import re

from semantic_version import NpmSpec, Version

from depaudit.core.logger.logger import get_logger
from depaudit.models.dependency import Ecosystem

logger = get_logger(__name__)

_OPERATOR_SPACING = re.compile(r"(<=|>=|<|>|=)\s+")


def normalize_range(range_expr: str) -> str:
    """Rewrite a GitHub-style range into npm range syntax.

    ``">= 1.0, < 2.0"`` becomes ``">=1.0 <2.0"``; ``"= 1.2.3"`` becomes
    ``"=1.2.3"``. ``||`` alternatives are kept.
    """
    alternatives = []
    for alternative in range_expr.split("||"):
        alternative = _OPERATOR_SPACING.sub(r"\1", alternative.replace(",", " "))
        alternatives.append(" ".join(alternative.split()) or "*")
    return " || ".join(alternatives)


def _parse_version(version: str) -> Version:
    version = version.strip().lstrip("v=")
    try:
        return Version(version)
    except ValueError:
        return Version.coerce(version)


def version_in_range(version: str, range_expr: str | None, ecosystem: Ecosystem) -> bool:
    """Whether ``version`` falls inside an advisory's vulnerable range.

    Only npm is evaluated. Go and PyPI ranges are not semver-compatible, so
    every advisory returned for those packages counts as applicable. When
    the version or range cannot be parsed the advisory also counts.

    Args:
        version: Installed version.
        range_expr: Vulnerable range, npm or GitHub syntax.
        ecosystem: Package ecosystem.

    Returns:
        True if the advisory applies.
    """
    if ecosystem is not Ecosystem.NPM or not range_expr:
        return True
    try:
        spec = NpmSpec(normalize_range(range_expr))
        return spec.match(_parse_version(version))
    except ValueError as e:
        logger.debug(f"Cannot evaluate {version!r} against {range_expr!r}: {e}")
        return True
