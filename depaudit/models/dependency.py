"""Dependency and ecosystem data models."""

from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Ecosystem(str, Enum):
    """Package ecosystem types, spelled the way OSV names them."""

    NPM = "npm"
    GO = "Go"
    PYPI = "PyPI"

    @property
    def github_name(self) -> str:
        """Ecosystem enum value used by the GitHub advisory GraphQL API."""
        return _GITHUB_ECOSYSTEMS[self]


_GITHUB_ECOSYSTEMS = {
    Ecosystem.NPM: "NPM",
    Ecosystem.GO: "GO",
    Ecosystem.PYPI: "PIP",
}


class Dependency(BaseModel):
    """A resolved (or declared) package in a project.

    Identity is the (name, version) pair. The same name may legitimately
    appear with several versions when nested installs conflict.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Package name, scope included")
    version: str = Field(..., description="Recorded version or declared range")
    ecosystem: Ecosystem = Field(..., description="Package ecosystem")

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.version)

    def __hash__(self) -> int:
        return hash(self.key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dependency):
            return False
        return self.key == other.key

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


def dedupe_dependencies(deps: Iterable[Dependency]) -> list[Dependency]:
    """Drop repeated (name, version) pairs, keeping first-seen order."""
    seen: set[tuple[str, str]] = set()
    unique: list[Dependency] = []
    for dep in deps:
        if dep.key in seen:
            continue
        seen.add(dep.key)
        unique.append(dep)
    return unique


class DetectionConfidence(str, Enum):
    """How a provider recognized the project."""

    LOCKFILE = "lockfile"
    PACKAGE_MANAGER_FIELD = "package-manager-field"
    MANIFEST = "manifest"
    WORKSPACE = "workspace"
    DEFAULT = "default"


class EcosystemDetection(BaseModel):
    """Which provider was chosen for a scan and why."""

    model_config = ConfigDict(frozen=True)

    provider_id: str = Field(..., description="Provider identifier, e.g. 'node'")
    name: str = Field(..., description="Human-readable package manager name")
    variant: str | None = Field(default=None, description="Sub-format, e.g. 'berry'")
    confidence: DetectionConfidence = Field(..., description="Detection evidence")

    @property
    def label(self) -> str:
        if self.variant:
            return f"{self.name} ({self.variant})"
        return self.name


class LockfileMode(str, Enum):
    """User-facing lock-file policy."""

    CHECK = "check"
    REFRESH = "refresh"
    ENFORCE = "enforce"


class LockfileOptions(BaseModel):
    """Flags controlling what a provider does with its lock file before parsing."""

    force_refresh: bool = False
    force_validate: bool = False
    create_if_missing: bool = False
    validate_if_present: bool = False

    @classmethod
    def from_mode(cls, mode: LockfileMode | None) -> "LockfileOptions":
        """Translate a user-facing lockfile mode into provider flags."""
        if mode is LockfileMode.CHECK:
            return cls(force_validate=True)
        if mode is LockfileMode.REFRESH:
            return cls(force_refresh=True)
        if mode is LockfileMode.ENFORCE:
            return cls(create_if_missing=True, validate_if_present=True)
        return cls()

    @property
    def any(self) -> bool:
        return (
            self.force_refresh
            or self.force_validate
            or self.create_if_missing
            or self.validate_if_present
        )


class GatherOptions(BaseModel):
    """Options for collecting dependencies from a directory."""

    include_dev: bool = False
    standalone_lockfile: Path | None = Field(
        default=None,
        description="A lock file passed on its own, parsed without manifest context",
    )
