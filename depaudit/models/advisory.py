"""Advisory data models."""

from enum import Enum

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """Vulnerability severity levels."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    MODERATE = "MODERATE"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"

    @property
    def rank(self) -> int:
        """Position on the fixed total order; MEDIUM and MODERATE tie."""
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: str | None) -> "Severity":
        """Parse a severity label from any source, case-insensitively.

        Args:
            value: Raw severity text.

        Returns:
            Matching Severity, or UNKNOWN.
        """
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.UNKNOWN


_SEVERITY_RANK = {
    Severity.CRITICAL: 5,
    Severity.HIGH: 4,
    Severity.MEDIUM: 3,
    Severity.MODERATE: 3,
    Severity.LOW: 2,
    Severity.UNKNOWN: 1,
}


class AdvisorySource(str, Enum):
    """Vulnerability data sources."""

    OSV = "osv"
    GHSA = "ghsa"


class RawAdvisory(BaseModel):
    """One source's view of one vulnerability."""

    id: str = Field(..., description="Advisory identifier (GHSA-..., GO-..., PYSEC-...)")
    source: AdvisorySource = Field(..., description="Source the record came from")
    severity: Severity = Field(default=Severity.UNKNOWN)
    summary: str = Field(default="")
    details: str = Field(default="")
    references: list[str] = Field(default_factory=list)
    first_patched_version: str | None = Field(default=None)
    cve_ids: list[str] = Field(default_factory=list)
    affected_range: str | None = Field(
        default=None,
        description="Vulnerable version range expression",
    )


class UnifiedAdvisory(BaseModel):
    """Merged advisory built from one or more sources sharing the same id."""

    id: str
    sources: set[AdvisorySource] = Field(default_factory=set)
    severity: Severity = Field(default=Severity.UNKNOWN)
    summary: str = Field(default="")
    details: str = Field(default="")
    references: list[str] = Field(default_factory=list)
    first_patched_version: str | None = Field(default=None)
    cve_ids: list[str] = Field(default_factory=list)
    affected_range: str | None = Field(default=None)

    @property
    def source(self) -> str:
        """Contributing sources as a sorted, comma-joined string."""
        return ",".join(sorted(s.value for s in self.sources))

    @property
    def title(self) -> str:
        return self.summary or self.details.split("\n", 1)[0] or self.id

    @classmethod
    def from_raw(cls, raw: RawAdvisory) -> "UnifiedAdvisory":
        return cls(
            id=raw.id,
            sources={raw.source},
            severity=raw.severity,
            summary=raw.summary,
            details=raw.details,
            references=list(raw.references),
            first_patched_version=raw.first_patched_version,
            cve_ids=list(raw.cve_ids),
            affected_range=raw.affected_range,
        )
