"""Scan options and results."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from depaudit.models.advisory import UnifiedAdvisory
from depaudit.models.dependency import Dependency, EcosystemDetection, LockfileMode


class ScanOptions(BaseModel):
    """Caller-supplied options for one scan."""

    include_dev: bool = Field(default=False, description="Include dev-only dependencies")
    lockfile_mode: LockfileMode | None = Field(default=None)
    concurrency: int = Field(default=10, ge=1, le=100)
    ignore_file: Path | None = Field(
        default=None,
        description="Explicit ignore-list file; looked up in the project when unset",
    )
    check_maintenance: bool = Field(default=False)


class MaintenanceInfo(BaseModel):
    """Registry metadata used to flag stale packages."""

    name: str
    ecosystem: str
    latest_version: str | None = None
    last_release: datetime | None = None
    days_since_release: int | None = None
    is_unmaintained: bool = False
    weekly_downloads: int | None = None
    deprecated: str | None = None


class ScanResult(BaseModel):
    """Result of scanning one project. Built per invocation, never persisted."""

    deps: list[Dependency] = Field(default_factory=list)
    advisories_by_package: dict[str, list[UnifiedAdvisory]] = Field(default_factory=dict)
    detection: EcosystemDetection
    scan_duration_ms: int = 0
    maintenance: dict[str, MaintenanceInfo] = Field(default_factory=dict)
    ignored_count: int = 0

    @property
    def vulnerable_count(self) -> int:
        return len(self.advisories_by_package)

    @property
    def total_vulnerabilities(self) -> int:
        return sum(len(advs) for advs in self.advisories_by_package.values())

    def versions_of(self, name: str) -> list[str]:
        """Distinct versions recorded for a package name, in dependency order."""
        versions: list[str] = []
        for dep in self.deps:
            if dep.name == name and dep.version not in versions:
                versions.append(dep.version)
        return versions

    def ecosystem_of(self, name: str) -> str | None:
        for dep in self.deps:
            if dep.name == name:
                return dep.ecosystem.value
        return None
