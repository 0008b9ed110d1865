"""Ignore-list support (``.vuln-ignore.json``).

Example file::

    {
      "version": "1",
      "ignores": [
        {"id": "CVE-2024-1234", "reason": "not reachable", "expires": "2026-12-31"},
        {"package": "lodash", "packageVersion": "4.17.20"},
        {"id": "minimist@1.2.5"}
      ]
    }
"""

import json
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from depaudit.core.exceptions.errors import IgnoreFileError
from depaudit.core.logger.logger import get_logger
from depaudit.models.advisory import UnifiedAdvisory
from depaudit.models.dependency import Dependency

logger = get_logger(__name__)

IGNORE_FILE_NAME = ".vuln-ignore.json"


class IgnoreRule(BaseModel):
    """One ignore entry. Empty rules match nothing."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = Field(default=None, description="Advisory id, CVE id, or name@version")
    package: str | None = None
    package_version: str | None = Field(default=None, alias="packageVersion")
    expires: datetime | None = Field(default=None, description="Rule is inert after this time")
    reason: str | None = None

    @field_validator("expires", mode="before")
    @classmethod
    def parse_expires(cls, v: object) -> datetime | None:
        """Accept ISO dates and datetimes; naive values are taken as UTC."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            try:
                v = datetime.fromisoformat(v.strip().replace("Z", "+00:00"))
            except ValueError as e:
                raise ValueError(f"Invalid expires date: {v}") from e
        if isinstance(v, datetime) and v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v

    def is_expired(self, now: datetime) -> bool:
        return self.expires is not None and now > self.expires

    def matches(self, advisory: UnifiedAdvisory, package: str, versions: list[str]) -> bool:
        """Whether this rule suppresses ``advisory`` reported for ``package``."""
        if self.id:
            if advisory.id == self.id or self.id in advisory.cve_ids:
                return True
            rule_package, sep, rule_version = self.id.rpartition("@")
            if sep and rule_package and rule_package == package and rule_version in versions:
                return True

        if self.package and self.package == package:
            if not self.package_version:
                return True
            return self.package_version in versions

        return False


class IgnoreConfig(BaseModel):
    """Parsed ignore-list file."""

    version: str | None = None
    ignores: list[IgnoreRule]

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: object) -> str | None:
        return None if v is None else str(v)


def find_ignore_file(
    directory: Path,
    explicit: Path | None = None,
    file_name: str = IGNORE_FILE_NAME,
) -> Path | None:
    """Locate the ignore-list file for a scan.

    Args:
        directory: Project directory.
        explicit: User-supplied path, which takes precedence.
        file_name: Name looked up in the project directory.

    Returns:
        Path to the ignore file, or None when there is none.

    Raises:
        IgnoreFileError: If an explicit path does not exist.
    """
    if explicit is not None:
        explicit = Path(explicit)
        if not explicit.is_file():
            raise IgnoreFileError(f"Ignore file not found: {explicit}", path=str(explicit))
        return explicit

    default = Path(directory) / file_name
    return default if default.is_file() else None


def load_ignore_config(path: Path) -> IgnoreConfig:
    """Load and validate an ignore-list file.

    Raises:
        IgnoreFileError: If the file is unreadable, not JSON, or lacks an
            ``ignores`` array.
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise IgnoreFileError(f"Cannot read ignore file: {e}", path=str(path)) from e
    except json.JSONDecodeError as e:
        raise IgnoreFileError(f"Ignore file is not valid JSON: {e}", path=str(path)) from e

    try:
        config = IgnoreConfig.model_validate(raw)
    except ValidationError as e:
        raise IgnoreFileError(f"Invalid ignore file: {e}", path=str(path)) from e

    logger.info(f"Loaded {len(config.ignores)} ignore rule(s) from {path}")
    return config


def should_ignore(
    advisory: UnifiedAdvisory,
    package: str,
    versions: list[str],
    rules: list[IgnoreRule],
    now: datetime | None = None,
) -> bool:
    now = now or datetime.now(timezone.utc)
    return any(
        not rule.is_expired(now) and rule.matches(advisory, package, versions)
        for rule in rules
    )


def filter_advisories(
    advisories_by_package: dict[str, list[UnifiedAdvisory]],
    deps: list[Dependency],
    config: IgnoreConfig | None,
    now: datetime | None = None,
) -> tuple[dict[str, list[UnifiedAdvisory]], int]:
    """Drop ignored advisories.

    Packages whose advisories are all ignored are removed from the map.

    Args:
        advisories_by_package: Advisories keyed by package name.
        deps: Scanned dependencies, used to resolve package versions.
        config: Loaded ignore list, or None.
        now: Reference time for expiry checks.

    Returns:
        The filtered map and the number of advisories ignored.
    """
    if config is None or not config.ignores:
        return advisories_by_package, 0

    now = now or datetime.now(timezone.utc)
    versions_by_name: dict[str, list[str]] = {}
    for dep in deps:
        versions_by_name.setdefault(dep.name, []).append(dep.version)

    filtered: dict[str, list[UnifiedAdvisory]] = {}
    ignored = 0
    for package, advisories in advisories_by_package.items():
        versions = versions_by_name.get(package, [])
        kept = [
            advisory
            for advisory in advisories
            if not should_ignore(advisory, package, versions, config.ignores, now)
        ]
        ignored += len(advisories) - len(kept)
        if kept:
            filtered[package] = kept

    if ignored:
        logger.info(f"Ignored {ignored} advisory(ies) based on ignore rules")
    return filtered, ignored
